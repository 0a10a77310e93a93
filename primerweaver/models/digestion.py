from typing import List, Optional, Tuple
from pydantic import BaseModel, ConfigDict

from .enzymes import CutSite


class DigestFragment(BaseModel):
    """One fragment between two consecutive cuts (end is exclusive, modulo length)."""
    index: int
    start: int
    end: int
    length: int
    sequence: str
    left_enzymes: Tuple[str, ...] = ()
    right_enzymes: Tuple[str, ...] = ()

    model_config = ConfigDict(frozen=True)

    @property
    def left_boundary_enzyme(self) -> Optional[str]:
        return self.left_enzymes[0] if self.left_enzymes else None

    @property
    def right_boundary_enzyme(self) -> Optional[str]:
        return self.right_enzymes[0] if self.right_enzymes else None

    @property
    def is_pseudo_single(self) -> bool:
        # Both ends cut by the same enzyme: the fragment can re-ligate either way round.
        return (
            self.left_boundary_enzyme is not None
            and self.left_boundary_enzyme == self.right_boundary_enzyme
        )


class DigestResult(BaseModel):
    sequence_length: int
    circular: bool = True
    enzymes: List[str] = []
    cuts: List[CutSite] = []
    fragments: List[DigestFragment] = []

    @property
    def fragment_lengths(self) -> List[int]:
        return [fragment.length for fragment in self.fragments]


class PreparedBackbone(BaseModel):
    """Backbone fragment with site remnants removed, plus the scars to restore."""
    fragment_index: int
    sequence: str
    left_enzyme: Optional[str] = None
    right_enzyme: Optional[str] = None
    left_scar: str = ""
    right_scar: str = ""
    trimmed_left: int = 0
    trimmed_right: int = 0
    is_pseudo_single: bool = False
