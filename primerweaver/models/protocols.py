from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict

from .assembly import AssemblyPlan, DesignWarning
from .digestion import DigestResult, PreparedBackbone
from .primers import PrimerPair
from .sequences import FastaEntry, to_camel


class InsertInput(BaseModel):
    name: Optional[str] = None
    sequence: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DesignRequest(BaseModel):
    """One design run: a vector to digest (or a linear backbone) plus inserts."""
    vector: Optional[str] = None
    enzymes: List[str] = []
    fragment_index: Optional[int] = None
    keep_sites: bool = False
    backbone: Optional[str] = None
    inserts: List[InsertInput]
    linkers: List[str] = []
    method: Optional[Literal["standard", "uracil", "restriction"]] = None
    parameters: Dict[str, Any] = {}

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CloningProtocol(BaseModel):
    method: Literal["standard", "uracil", "restriction"]
    backbone_source: Literal["digest", "linear"]
    plan: AssemblyPlan
    primer_pairs: List[PrimerPair] = []
    digest: Optional[DigestResult] = None
    backbone: Optional[PreparedBackbone] = None
    warnings: List[DesignWarning] = []
    fasta: List[FastaEntry] = []
