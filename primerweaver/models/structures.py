from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict


class StructureHit(BaseModel):
    """Most stable complementary run found by the structure scanner."""
    kind: Literal["hairpin", "self_dimer", "cross_dimer"]
    motif_sequence: str
    delta_g: float
    touches_three_prime: bool
    start: int
    partner_start: int
    stem_length: int
    loop_length: Optional[int] = None

    model_config = ConfigDict(frozen=True)
