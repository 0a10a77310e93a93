from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .sequences import SequenceRecord, to_camel


class DesignWarning(BaseModel):
    """Non-fatal condition reported alongside a successful design."""
    code: str
    message: str
    context: Dict[str, Any] = {}


class Seam(BaseModel):
    label: str
    kind: Literal["backbone_left", "insert", "backbone_right"]
    raw_position: int
    position: int
    linker_length: int = 0

    model_config = ConfigDict(frozen=True)


class Junction(BaseModel):
    """
    Overlap engineered at one seam; upstream + downstream == overlap.

    In restriction mode the overlap is the recognition site rebuilt at the
    seam. ``start`` and ``end`` are wrapped positions on the assembled circle,
    so a junction across the origin has ``end < start``.
    """
    seam: Seam
    upstream: str
    downstream: str
    start: int
    end: int
    length: int
    melting_temp: float
    gc_percent: float
    motif_found: Optional[bool] = None

    @property
    def overlap(self) -> str:
        return self.upstream + self.downstream


class AssemblyPlan(BaseModel):
    mode: Literal["standard", "uracil", "restriction"]
    backbone: str
    inserts: List[SequenceRecord]
    linkers: List[str] = []
    left_scar: str = ""
    right_scar: str = ""
    rotation_offset: int = 0
    assembled_sequence: str
    seams: List[Seam] = []
    junctions: List[Junction] = []

    @property
    def left_overlap(self) -> str:
        return self.junctions[0].overlap if self.junctions else ""

    @property
    def right_overlap(self) -> str:
        return self.junctions[-1].overlap if self.junctions else ""

    @property
    def length(self) -> int:
        return len(self.assembled_sequence)


class DesignParameters(BaseModel):
    """Numeric settings for one design run, validated once up front."""
    method: Literal["standard", "uracil", "restriction"] = "standard"
    target_tm: float = 60.0
    tm_tolerance: float = Field(2.5, ge=0)
    na_mM: float = Field(50.0, ge=0, alias="naMM")
    mg_mM: float = Field(0.0, ge=0, alias="mgMM")
    primer_conc_nM: float = Field(500.0, gt=0, alias="primerConcNM")
    overlap_length: int = Field(25, ge=6, le=100)
    uracil_overlap_length: int = Field(9, ge=6, le=13)
    overlap_tm: float = 50.0
    min_core_length: int = Field(18, ge=8)
    max_core_length: int = Field(40, le=80)
    default_core_length: int = Field(20, ge=8)
    search_radius: int = Field(25, ge=0)
    clamp_length: int = Field(5, ge=0, le=10)
    max_sequence_length: int = Field(200000, gt=0)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore"
    )

    @model_validator(mode="after")
    def check_core_window(self):
        if self.min_core_length > self.max_core_length:
            raise ValueError("min_core_length must not exceed max_core_length")
        if self.na_mM + self.mg_mM <= 0:
            raise ValueError("at least one of na_mM or mg_mM must be positive")
        return self

    def with_overrides(self, overrides: Dict[str, Any]) -> "DesignParameters":
        """Copy with ``overrides`` applied; keys may be field names or camelCase aliases."""
        field_names = {
            (info.alias or name): name for name, info in type(self).model_fields.items()
        }
        merged = self.model_dump()
        for key, value in overrides.items():
            merged[field_names.get(key, key)] = value
        return type(self).model_validate(merged)

