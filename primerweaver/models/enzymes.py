import re
from typing import Optional
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

IUPAC_SITE_PATTERN = re.compile(r"^[ACGTRYSWKMBDHVN]+$")


class EnzymeSpec(BaseModel):
    """Type II restriction enzyme: recognition site and top-strand cut offset."""
    name: str
    recognition_site: str
    cut_offset: int
    sticky_end: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("recognition_site")
    @classmethod
    def check_site(cls, value: str) -> str:
        value = value.strip().upper()
        if not value or not IUPAC_SITE_PATTERN.match(value):
            raise ValueError(f"invalid recognition site '{value}'")
        return value

    @model_validator(mode="after")
    def check_cut_offset(self):
        if not 0 <= self.cut_offset <= len(self.recognition_site):
            raise ValueError(
                f"{self.name}: cut offset {self.cut_offset} outside site "
                f"{self.recognition_site}"
            )
        return self

    @property
    def site_length(self) -> int:
        return len(self.recognition_site)

    @property
    def is_blunt(self) -> bool:
        return not self.sticky_end


class CutSite(BaseModel):
    position: int
    enzyme: str
    site_position: int

    model_config = ConfigDict(frozen=True)
