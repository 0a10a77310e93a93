from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict

from .structures import StructureHit


class PrimerCore(BaseModel):
    """Template-binding part of a primer, chosen for its melting temperature.

    ``start``/``end`` locate the core on the sequence it was selected from.
    Reverse cores are already reverse-complemented.
    """
    sequence: str
    length: int
    melting_temp: float
    direction: Literal["forward", "reverse"]
    within_tolerance: bool
    gc_clamp: bool
    fallback: Literal["none", "closest", "default"] = "none"
    start: int = 0
    end: int = 0

    model_config = ConfigDict(frozen=True)


class PrimerMetrics(BaseModel):
    length: int
    gc_percent: float
    tm: Optional[float] = None
    core_tm: Optional[float] = None
    tm_deviation: Optional[float] = None
    hairpin: Optional[StructureHit] = None
    self_dimer: Optional[StructureHit] = None
    three_prime_dg: Optional[float] = None
    homopolymer: bool = False
    score: int = 100
    label: str = "Excellent"
    issues: List[str] = []


class Primer(BaseModel):
    name: str = ""
    sequence: str = ""
    binding_region: Optional[str] = None
    tail: str = ""
    clamp: str = ""
    tm: Optional[float] = None
    gc_content: Optional[float] = None
    length: Optional[int] = None
    core: Optional[PrimerCore] = None
    metrics: Optional[PrimerMetrics] = None


class PrimerPair(BaseModel):
    insert_index: int
    insert_name: str
    forward: Primer
    reverse: Primer
    product_size: int
    cross_dimer: Optional[StructureHit] = None
    tm_difference: Optional[float] = None
