# services/enzyme_registry.py
import json
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Union

from pydantic import ValidationError

from primerweaver.config.logging_config import logger
from primerweaver.models import EnzymeSpec
from .base import debug_context
from .exceptions import UnknownEnzymeError

DEFAULT_ENZYME_TABLE = Path(__file__).resolve().parent.parent / "data" / "enzymes.json"


class EnzymeRegistry:
    """Read-only, name-keyed collection of validated Type II enzymes."""

    def __init__(self, enzymes: Mapping[str, EnzymeSpec]):
        self.logger = logger.getChild("EnzymeRegistry")
        self._enzymes = MappingProxyType(dict(enzymes))
        self._by_lower = MappingProxyType({name.lower(): name for name in enzymes})

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "EnzymeRegistry":
        """Load and validate an enzyme table of ``{name: {site, cut_offset, sticky_end}}``."""
        with debug_context("load_enzyme_table"):
            with open(path, "r") as handle:
                raw = json.load(handle)

            enzymes: Dict[str, EnzymeSpec] = {}
            for name, entry in raw.items():
                try:
                    enzymes[name] = EnzymeSpec(
                        name=name,
                        recognition_site=entry["site"],
                        cut_offset=entry["cut_offset"],
                        sticky_end=entry.get("sticky_end"),
                    )
                except (KeyError, ValidationError) as e:
                    raise ValueError(f"Invalid enzyme entry '{name}' in {path}: {e}") from e

            logger.debug(f"Loaded {len(enzymes)} enzymes from {path}")
            return cls(enzymes)

    @property
    def enzymes(self) -> Mapping[str, EnzymeSpec]:
        return self._enzymes

    def get(self, name: str) -> EnzymeSpec:
        key = self._by_lower.get(name.strip().lower()) if name else None
        if key is None:
            raise UnknownEnzymeError(name)
        return self._enzymes[key]

    def resolve(self, names: Iterable[str]) -> List[EnzymeSpec]:
        """Specs for ``names`` in order, dropping repeats."""
        resolved = []
        for name in names:
            spec = self.get(name)
            if spec not in resolved:
                resolved.append(spec)
        return resolved

    def names(self) -> List[str]:
        return sorted(self._enzymes, key=str.lower)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.strip().lower() in self._by_lower

    def __iter__(self) -> Iterator[EnzymeSpec]:
        return iter(self._enzymes.values())

    def __len__(self) -> int:
        return len(self._enzymes)


@lru_cache(maxsize=4)
def load_registry(path: Optional[str] = None) -> EnzymeRegistry:
    """Shared registry for a table path; the default table ships with the package."""
    return EnzymeRegistry.from_json(path or DEFAULT_ENZYME_TABLE)
