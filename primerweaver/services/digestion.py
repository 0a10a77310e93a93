# services/digestion.py
import re
from functools import lru_cache
from typing import Dict, List, Optional, Sequence, Tuple, Union

from primerweaver.config.logging_config import logger
from primerweaver.models import (
    CutSite,
    DesignWarning,
    DigestFragment,
    DigestResult,
    EnzymeSpec,
    PreparedBackbone,
)
from .base import debug_context
from .circular import dist_plus, subsequence_circular
from .enzyme_registry import EnzymeRegistry, load_registry
from .exceptions import DesignInputError, EnzymeSelectionError, SequenceInputError
from .sequence_utils import IUPAC_BASES

EnzymeLike = Union[str, EnzymeSpec]


@lru_cache(maxsize=None)
def _symbol_class(site_symbol: str) -> str:
    """Regex class of sequence symbols whose bases all fall inside ``site_symbol``."""
    allowed = set(IUPAC_BASES[site_symbol])
    members = "".join(
        symbol for symbol, bases in IUPAC_BASES.items() if set(bases) <= allowed
    )
    return f"[{members}]"


@lru_cache(maxsize=None)
def site_regex(site: str) -> "re.Pattern[str]":
    """Overlapping-match pattern for an IUPAC recognition site."""
    body = "".join(_symbol_class(symbol) for symbol in site)
    return re.compile(f"(?=({body}))")


class RestrictionDigestor:
    """
    Simulates Type II restriction digests of circular or linear DNA.

    Sites are searched on the top strand only; every enzyme in the registry
    has a palindromic recognition sequence, so the bottom strand yields the
    same cut positions.
    """

    def __init__(self, registry: Optional[EnzymeRegistry] = None, verbose: bool = False):
        self.logger = logger.getChild("RestrictionDigestor")
        self.registry = registry or load_registry()
        self.verbose = verbose
        self.state = {
            'current_operation': '',
            'cuts_found': 0,
        }

    def _spec(self, enzyme: EnzymeLike) -> EnzymeSpec:
        return enzyme if isinstance(enzyme, EnzymeSpec) else self.registry.get(enzyme)

    def _specs(self, enzymes: Sequence[EnzymeLike]) -> List[EnzymeSpec]:
        """Specs in selection order, each enzyme once however its name was written."""
        specs: List[EnzymeSpec] = []
        for enzyme in enzymes:
            spec = self._spec(enzyme)
            if all(spec.name != seen.name for seen in specs):
                specs.append(spec)
        return specs

    def find_sites(self, seq: str, enzyme: EnzymeLike, circular: bool = True) -> List[CutSite]:
        """Cut sites of one enzyme, ordered by recognition-site start."""
        spec = self._spec(enzyme)
        seq = seq.upper()
        n = len(seq)
        site_len = spec.site_length
        if n == 0:
            return []

        search_space = seq
        if circular:
            # Sites spanning the origin start before n and finish in the copied head.
            search_space = seq + (seq * (site_len // n + 1))[:site_len - 1]

        sites = []
        for match in site_regex(spec.recognition_site).finditer(search_space):
            start = match.start()
            if start >= n:
                break
            if circular:
                position = (start + spec.cut_offset) % n
            else:
                position = start + spec.cut_offset
            sites.append(CutSite(position=position, enzyme=spec.name, site_position=start))
        return sites

    def count_sites(self, seq: str, enzymes: Sequence[EnzymeLike], circular: bool = True) -> Dict[str, int]:
        return {
            spec.name: len(self.find_sites(seq, spec, circular))
            for spec in self._specs(enzymes)
        }

    def _collect_cuts(self, seq: str, specs: List[EnzymeSpec], circular: bool) -> Tuple[List[CutSite], Dict[int, List[str]]]:
        cuts = []
        for spec in specs:
            cuts.extend(self.find_sites(seq, spec, circular))
        cuts.sort(key=lambda cut: (cut.position, cut.site_position))

        by_position: Dict[int, List[str]] = {}
        for cut in cuts:
            names = by_position.setdefault(cut.position, [])
            if cut.enzyme not in names:
                names.append(cut.enzyme)
        return cuts, by_position

    def digest_circular(self, seq: str, enzymes: Sequence[EnzymeLike]) -> DigestResult:
        """
        Cut a circular molecule and return fragments in cut order.

        One fragment runs from each cut to the next, the last one wrapping
        through the origin. Coinciding cuts share a boundary. With no cut
        the intact circle comes back as a single fragment.
        """
        with debug_context("digest_circular"):
            self.state['current_operation'] = 'digest_circular'
            seq = seq.upper()
            n = len(seq)
            if n == 0:
                raise SequenceInputError("Cannot digest an empty sequence")
            specs = self._specs(enzymes)
            cuts, by_position = self._collect_cuts(seq, specs, circular=True)
            positions = sorted(by_position)
            self.state['cuts_found'] = len(positions)

            fragments = []
            if not positions:
                fragments.append(DigestFragment(
                    index=0, start=0, end=0, length=n, sequence=seq,
                ))
            for i, start in enumerate(positions):
                end = positions[(i + 1) % len(positions)]
                length = dist_plus(n, start, end) or n
                fragments.append(DigestFragment(
                    index=i,
                    start=start,
                    end=end,
                    length=length,
                    sequence=subsequence_circular(seq, start, end),
                    left_enzymes=tuple(by_position[start]),
                    right_enzymes=tuple(by_position[end]),
                ))

            self.logger.debug(
                f"Circular digest of {n} bp with {[s.name for s in specs]}: "
                f"{len(fragments)} fragment(s) {[f.length for f in fragments]}"
            )
            return DigestResult(
                sequence_length=n,
                circular=True,
                enzymes=[spec.name for spec in specs],
                cuts=cuts,
                fragments=fragments,
            )

    def digest_linear(self, seq: str, enzymes: Sequence[EnzymeLike]) -> DigestResult:
        """Cut a linear molecule; its two ends act as extra fragment boundaries."""
        with debug_context("digest_linear"):
            self.state['current_operation'] = 'digest_linear'
            seq = seq.upper()
            n = len(seq)
            if n == 0:
                raise SequenceInputError("Cannot digest an empty sequence")
            specs = self._specs(enzymes)
            cuts, by_position = self._collect_cuts(seq, specs, circular=False)
            inner = [p for p in sorted(by_position) if 0 < p < n]
            boundaries = [0] + inner + [n]
            self.state['cuts_found'] = len(inner)

            fragments = []
            for i in range(len(boundaries) - 1):
                start, end = boundaries[i], boundaries[i + 1]
                fragments.append(DigestFragment(
                    index=i,
                    start=start,
                    end=end,
                    length=end - start,
                    sequence=seq[start:end],
                    left_enzymes=tuple(by_position.get(start, [])) if start else (),
                    right_enzymes=tuple(by_position.get(end, [])) if end < n else (),
                ))
            return DigestResult(
                sequence_length=n,
                circular=False,
                enzymes=[spec.name for spec in specs],
                cuts=[cut for cut in cuts if 0 < cut.position < n],
                fragments=fragments,
            )

    def check_enzyme_selection(
        self, seq: str, enzymes: Sequence[EnzymeLike]
    ) -> Tuple[List[EnzymeSpec], List[DesignWarning]]:
        """
        Drop selected enzymes that do not cut ``seq``.

        Raises EnzymeSelectionError when none of them cuts. Losing one enzyme
        of a pair is survivable: the digest becomes single-enzyme and
        non-directional, which is reported as a warning.
        """
        specs = self._specs(enzymes)
        if not specs:
            raise DesignInputError("Select at least one restriction enzyme")
        if len(specs) > 2:
            raise DesignInputError("Select one or two restriction enzymes")

        counts = self.count_sites(seq, specs)
        usable = [spec for spec in specs if counts[spec.name] > 0]
        if not usable:
            raise EnzymeSelectionError(
                f"None of the selected enzymes ({', '.join(counts)}) cuts the vector"
            )

        warnings = []
        for spec in specs:
            if counts[spec.name] == 0:
                message = (
                    f"{spec.name} has no site in the vector; continuing with "
                    f"{', '.join(s.name for s in usable)} alone (non-directional cloning)"
                )
                self.logger.warning(message)
                warnings.append(DesignWarning(
                    code="enzyme_missing",
                    message=message,
                    context={"enzyme": spec.name, "site_counts": counts},
                ))
        return usable, warnings

    def select_backbone(
        self, result: DigestResult, index: Optional[int] = None
    ) -> Tuple[DigestFragment, List[DesignWarning]]:
        """Requested fragment, or the longest one (first on ties) by default."""
        if not result.fragments:
            raise DesignInputError("Digest produced no fragments")
        if index is None:
            fragment = max(result.fragments, key=lambda f: (f.length, -f.index))
        elif 0 <= index < len(result.fragments):
            fragment = result.fragments[index]
        else:
            raise DesignInputError(
                f"Fragment index {index} out of range (0-{len(result.fragments) - 1})"
            )

        warnings = []
        if fragment.is_pseudo_single:
            message = (
                f"Backbone fragment {fragment.index} is cut by {fragment.left_boundary_enzyme} "
                f"at both ends; inserts can ligate in either orientation"
            )
            self.logger.warning(message)
            warnings.append(DesignWarning(
                code="pseudo_single_backbone",
                message=message,
                context={"fragment_index": fragment.index, "enzyme": fragment.left_boundary_enzyme},
            ))
        return fragment, warnings

    def strip_site_remnants(self, fragment: DigestFragment) -> PreparedBackbone:
        """
        Remove the partial recognition sites left at each end of a fragment.

        A fragment starts ``site_length - cut_offset`` bases into the left
        enzyme's site and ends ``cut_offset`` bases into the right enzyme's
        site. Remnants are trimmed only when actually present, and the full
        sites are returned as scars for reinsertion around the insert block.
        """
        seq = fragment.sequence
        left_name = fragment.left_boundary_enzyme
        right_name = fragment.right_boundary_enzyme
        trimmed_left = trimmed_right = 0
        left_scar = right_scar = ""

        if left_name:
            spec = self.registry.get(left_name)
            remnant = spec.recognition_site[spec.cut_offset:]
            left_scar = spec.recognition_site
            if remnant and site_regex(remnant).match(seq):
                trimmed_left = len(remnant)
        if right_name:
            spec = self.registry.get(right_name)
            remnant = spec.recognition_site[:spec.cut_offset]
            right_scar = spec.recognition_site
            tail_start = len(seq) - len(remnant)
            if remnant and tail_start >= trimmed_left and site_regex(remnant).match(seq, tail_start):
                trimmed_right = len(remnant)

        trimmed = seq[trimmed_left:len(seq) - trimmed_right]
        return PreparedBackbone(
            fragment_index=fragment.index,
            sequence=trimmed,
            left_enzyme=left_name,
            right_enzyme=right_name,
            left_scar=left_scar,
            right_scar=right_scar,
            trimmed_left=trimmed_left,
            trimmed_right=trimmed_right,
            is_pseudo_single=fragment.is_pseudo_single,
        )

    def prepare_backbone(
        self,
        vector: str,
        enzymes: Sequence[EnzymeLike],
        fragment_index: Optional[int] = None,
    ) -> Tuple[PreparedBackbone, DigestResult, List[DesignWarning]]:
        """Check the enzyme choice, digest the vector and trim the retained fragment."""
        with debug_context("prepare_backbone"):
            usable, warnings = self.check_enzyme_selection(vector, enzymes)
            result = self.digest_circular(vector, usable)
            fragment, backbone_warnings = self.select_backbone(result, fragment_index)
            warnings.extend(backbone_warnings)
            backbone = self.strip_site_remnants(fragment)
            if not backbone.sequence:
                raise SequenceInputError("Retained backbone fragment is empty after trimming")
            return backbone, result, warnings
