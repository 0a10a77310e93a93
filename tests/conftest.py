import os
os.environ.setdefault("FLASK_TESTING", "true")

import pytest

from primerweaver.app import create_app
from primerweaver.models import DesignParameters, SequenceRecord
from primerweaver.services import (
    AssemblyPlanner,
    PrimerCoreSelector,
    RestrictionDigestor,
    StructureScanner,
    load_registry,
)
from .test_data import TEST_BACKBONE, TEST_INSERT, TEST_VECTOR


@pytest.fixture(scope="session")
def registry():
    return load_registry()


@pytest.fixture
def digestor(registry):
    return RestrictionDigestor(registry=registry)


@pytest.fixture
def scanner():
    return StructureScanner()


@pytest.fixture
def selector():
    return PrimerCoreSelector(target_tm=60.0, tolerance=2.5, na_mM=50.0, primer_conc_nM=500.0)


@pytest.fixture
def parameters():
    return DesignParameters()


@pytest.fixture
def planner(parameters):
    return AssemblyPlanner(parameters=parameters)


@pytest.fixture
def vector():
    return TEST_VECTOR


@pytest.fixture
def backbone():
    return TEST_BACKBONE


@pytest.fixture
def insert_record():
    return SequenceRecord(name="insert_1", sequence=TEST_INSERT)


@pytest.fixture
def app():
    return create_app(testing=True)


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c
