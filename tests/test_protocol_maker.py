import pytest

from primerweaver.models import DesignParameters, DesignRequest
from primerweaver.services import (
    DesignInputError,
    EnzymeSelectionError,
    ProtocolMaker,
    SequenceInputError,
    rotate,
)
from .test_data import (
    BAMHI_POSITION,
    BLUNT_VECTOR,
    CLEAN_INSERT,
    ECORI_POSITION,
    SHORT_CLEAN_INSERT,
    SITE_INSERT,
    TEST_BACKBONE,
    TEST_INSERT,
    TEST_INSERT_B,
    TEST_VECTOR,
)


@pytest.fixture
def maker(registry):
    return ProtocolMaker(registry=registry)


def _request(**kwargs):
    kwargs.setdefault("inserts", [{"name": "gfp", "sequence": TEST_INSERT}])
    return DesignRequest.model_validate(kwargs)


def test_digest_mode_uses_trimmed_longest_fragment(maker):
    protocol = maker.design(_request(vector=TEST_VECTOR, enzymes=["EcoRI", "BamHI"]))
    assert protocol.backbone_source == "digest"
    assert protocol.digest.fragment_lengths == [2500, 1500]
    assert protocol.backbone.sequence == TEST_VECTOR[ECORI_POSITION + 6:BAMHI_POSITION]
    assert protocol.plan.backbone == protocol.backbone.sequence
    assert protocol.plan.length == 2494 + len(TEST_INSERT)
    assert not [w for w in protocol.warnings if w.code in ("enzyme_missing", "pseudo_single_backbone")]
    assert len(protocol.primer_pairs) == 1


def test_keep_sites_restores_both_recognition_sites(maker):
    protocol = maker.design(_request(
        vector=TEST_VECTOR, enzymes=["EcoRI", "BamHI"], keepSites=True
    ))
    plan = protocol.plan
    assert plan.left_scar == "GAATTC"
    assert plan.right_scar == "GGATCC"
    assert plan.length == 2494 + 12 + len(TEST_INSERT)
    restored = rotate(plan.assembled_sequence, plan.length - plan.rotation_offset)
    assert restored == plan.backbone + "GGATCC" + TEST_INSERT + "GAATTC"


def test_fragment_index_selects_the_other_fragment(maker):
    protocol = maker.design(_request(
        vector=TEST_VECTOR, enzymes=["EcoRI", "BamHI"], fragmentIndex=1
    ))
    assert protocol.backbone.fragment_index == 1
    assert protocol.backbone.left_enzyme == "BamHI"
    assert protocol.backbone.right_enzyme == "EcoRI"


def test_linear_backbone_mode(maker):
    protocol = maker.design(_request(backbone=TEST_BACKBONE))
    assert protocol.backbone_source == "linear"
    assert protocol.digest is None
    assert protocol.plan.length == len(TEST_BACKBONE) + len(TEST_INSERT)


def test_missing_enzyme_is_a_warning(maker):
    protocol = maker.design(_request(vector=TEST_VECTOR, enzymes=["EcoRI", "XhoI"]))
    codes = [w.code for w in protocol.warnings]
    assert "enzyme_missing" in codes
    assert "pseudo_single_backbone" in codes
    assert protocol.digest.enzymes == ["EcoRI"]


def test_all_enzymes_absent_is_an_error(maker):
    with pytest.raises(EnzymeSelectionError):
        maker.design(_request(vector=TEST_VECTOR, enzymes=["XhoI", "NotI"]))


def test_vector_and_backbone_together_is_an_error(maker):
    with pytest.raises(DesignInputError):
        maker.design(_request(vector=TEST_VECTOR, enzymes=["EcoRI"], backbone=TEST_BACKBONE))


def test_no_backbone_source_is_an_error(maker):
    with pytest.raises(SequenceInputError):
        maker.design(_request())


def test_sequence_length_limit(registry):
    maker = ProtocolMaker(parameters=DesignParameters(max_sequence_length=1000), registry=registry)
    with pytest.raises(SequenceInputError):
        maker.design(_request(backbone=TEST_BACKBONE))


def test_parameter_overrides_apply_per_request(maker):
    protocol = maker.design(_request(
        backbone=TEST_BACKBONE, parameters={"overlapLength": 30}
    ))
    assert len(protocol.plan.left_overlap) == 30
    assert maker.parameters.overlap_length == 25


def test_invalid_parameter_override(maker):
    with pytest.raises(DesignInputError):
        maker.design(_request(backbone=TEST_BACKBONE, parameters={"overlapLength": 2}))


def test_uracil_method_from_request(maker):
    protocol = maker.design(_request(backbone=TEST_BACKBONE, method="uracil"))
    assert protocol.method == "uracil"
    assert protocol.plan.mode == "uracil"


def test_fasta_entries_cover_construct_and_primers(maker):
    protocol = maker.design(_request(
        backbone=TEST_BACKBONE,
        inserts=[
            {"name": "a", "sequence": TEST_INSERT},
            {"name": "b", "sequence": TEST_INSERT_B},
        ],
    ))
    names = [entry.name for entry in protocol.fasta]
    assert names == ["standard_assembly", "a_F", "a_R", "b_F", "b_R"]
    assert protocol.fasta[0].sequence == protocol.plan.assembled_sequence


def test_insert_names_from_fasta_headers(maker):
    protocol = maker.design(_request(
        backbone=TEST_BACKBONE,
        inserts=[{"sequence": f">mcherry\n{TEST_INSERT}"}],
    ))
    assert protocol.plan.inserts[0].name == "mcherry"


def test_repeated_design_is_identical(maker):
    request = _request(vector=TEST_VECTOR, enzymes=["EcoRI", "BamHI"], keepSites=True)
    first = maker.design(request)
    second = maker.design(request)
    assert first.model_dump_json() == second.model_dump_json()

    request = _request(
        vector=TEST_VECTOR, enzymes=["EcoRI", "BamHI"], method="restriction",
        inserts=[{"name": "gfp", "sequence": CLEAN_INSERT}],
    )
    assert maker.design(request).model_dump_json() == maker.design(request).model_dump_json()


def _restriction(**kwargs):
    kwargs.setdefault("vector", TEST_VECTOR)
    kwargs.setdefault("enzymes", ["EcoRI", "BamHI"])
    kwargs.setdefault("inserts", [{"name": "gfp", "sequence": CLEAN_INSERT}])
    return _request(method="restriction", **kwargs)


def _codes(protocol):
    return [w.code for w in protocol.warnings]


def test_restriction_cloning_primers_carry_the_sites(maker):
    protocol = maker.design(_restriction())
    assert protocol.method == "restriction"
    plan = protocol.plan
    assert plan.mode == "restriction"
    assert plan.left_scar == "GAATTC"
    assert plan.right_scar == "GGATCC"
    restored = rotate(plan.assembled_sequence, plan.length - plan.rotation_offset)
    assert restored == protocol.backbone.sequence + "GGATCC" + CLEAN_INSERT + "GAATTC"

    pair = protocol.primer_pairs[0]
    assert len(pair.forward.clamp) == 5
    assert pair.forward.sequence.startswith(pair.forward.clamp + "GGATCC")
    assert pair.reverse.sequence.startswith(pair.reverse.clamp + "GAATTC")
    for code in ("insert_has_site", "self_ligation_risk", "short_insert"):
        assert code not in _codes(protocol)


def test_restriction_warns_when_insert_holds_a_site(maker):
    protocol = maker.design(_restriction(inserts=[{"name": "gfp", "sequence": SITE_INSERT}]))
    warning = next(w for w in protocol.warnings if w.code == "insert_has_site")
    assert list(warning.context["sites"]) == ["EcoRI"]


def test_restriction_warns_about_short_insert(maker):
    protocol = maker.design(_restriction(inserts=[{"name": "tag", "sequence": SHORT_CLEAN_INSERT}]))
    assert "short_insert" in _codes(protocol)


def test_restriction_single_enzyme_risks_self_ligation(maker):
    protocol = maker.design(_restriction(enzymes=["EcoRI"]))
    assert "self_ligation_risk" in _codes(protocol)


def test_restriction_blunt_ends_risk_self_ligation(maker):
    protocol = maker.design(_restriction(vector=BLUNT_VECTOR, enzymes=["EcoRV", "SmaI"]))
    warning = next(w for w in protocol.warnings if w.code == "self_ligation_risk")
    assert "blunt" in warning.message
    assert protocol.plan.left_scar == "GATATC"
    assert protocol.plan.right_scar == "CCCGGG"


def test_restriction_needs_a_vector(maker):
    with pytest.raises(DesignInputError):
        maker.design(_request(backbone=TEST_BACKBONE, method="restriction"))


def test_restriction_takes_one_insert(maker):
    with pytest.raises(DesignInputError):
        maker.design(_restriction(inserts=[
            {"name": "a", "sequence": CLEAN_INSERT},
            {"name": "b", "sequence": TEST_INSERT_B},
        ]))
