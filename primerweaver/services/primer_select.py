# services/primer_select.py
import math
from typing import List, Optional

from primerweaver.config.logging_config import logger
from primerweaver.models import PrimerCore
from .base import debug_context
from .exceptions import SequenceInputError
from .sequence_utils import reverse_complement
from .thermo import melting_temp


class PrimerCoreSelector:
    """
    Picks the template-binding core of a primer for a target melting temperature.

    Candidates grow one base at a time from the 5' end of the primer. Among
    candidates within tolerance the selector prefers a G/C at the 3' end,
    then the smallest Tm deviation, then the shorter primer. When nothing
    meets the tolerance it falls back to the closest Tm, and only when no
    candidate has a defined Tm to the default length.
    """

    def __init__(
        self,
        target_tm: float = 60.0,
        tolerance: float = 2.5,
        min_length: int = 18,
        max_length: int = 40,
        default_length: int = 20,
        na_mM: float = 50.0,
        mg_mM: float = 0.0,
        primer_conc_nM: float = 500.0,
        verbose: bool = False,
    ):
        self.logger = logger.getChild("PrimerCoreSelector")
        self.target_tm = target_tm
        self.tolerance = tolerance
        self.min_length = min_length
        self.max_length = max_length
        self.default_length = default_length
        self.na_mM = na_mM
        self.mg_mM = mg_mM
        self.primer_conc_nM = primer_conc_nM
        self.verbose = verbose

        self.state = {
            'current_operation': '',
            'candidates_evaluated': 0,
        }

    @classmethod
    def from_parameters(cls, parameters, verbose: bool = False) -> "PrimerCoreSelector":
        return cls(
            target_tm=parameters.target_tm,
            tolerance=parameters.tm_tolerance,
            min_length=parameters.min_core_length,
            max_length=parameters.max_core_length,
            default_length=parameters.default_core_length,
            na_mM=parameters.na_mM,
            mg_mM=parameters.mg_mM,
            primer_conc_nM=parameters.primer_conc_nM,
            verbose=verbose,
        )

    def _tm(self, seq: str) -> float:
        return melting_temp(seq, self.na_mM, self.mg_mM, self.primer_conc_nM)

    def _candidate(self, seq: str, length: int, direction: str, fallback: str = "none") -> PrimerCore:
        n = len(seq)
        if direction == "forward":
            core_seq, start, end = seq[:length], 0, length
        else:
            core_seq, start, end = reverse_complement(seq[n - length:]), n - length, n
        tm = self._tm(core_seq)
        within = not math.isnan(tm) and abs(tm - self.target_tm) <= self.tolerance
        return PrimerCore(
            sequence=core_seq,
            length=length,
            melting_temp=round(tm, 2) if not math.isnan(tm) else tm,
            direction=direction,
            within_tolerance=within,
            gc_clamp=core_seq[-1:] in ("G", "C", "S"),
            fallback=fallback,
            start=start,
            end=end,
        )

    def select_core(self, sequence: str, direction: str = "forward") -> PrimerCore:
        """
        Best core at the 5' end (forward) or 3' end (reverse) of ``sequence``.

        Reverse cores are read from the tail of ``sequence`` and returned as
        their reverse complement, ready to be used as a primer.
        """
        if direction not in ("forward", "reverse"):
            raise ValueError(f"direction must be 'forward' or 'reverse', not {direction!r}")
        seq = sequence.upper()
        if not seq:
            raise SequenceInputError("Cannot select a primer core from an empty sequence")

        with debug_context("select_core"):
            self.state['current_operation'] = f"select_core_{direction}"
            candidates: List[PrimerCore] = [
                self._candidate(seq, length, direction)
                for length in range(self.min_length, min(self.max_length, len(seq)) + 1)
            ]
            self.state['candidates_evaluated'] = len(candidates)

            within = [c for c in candidates if c.within_tolerance]
            if within:
                best = min(
                    within,
                    key=lambda c: (not c.gc_clamp, abs(c.melting_temp - self.target_tm), c.length),
                )
                self.logger.debug(f"{direction} core {best.sequence} Tm {best.melting_temp}")
                return best

            defined = [c for c in candidates if not math.isnan(c.melting_temp)]
            if defined:
                closest = min(defined, key=lambda c: (abs(c.melting_temp - self.target_tm), c.length))
                self.logger.debug(
                    f"No {direction} core within {self.tolerance} C of {self.target_tm} C; "
                    f"closest is {closest.sequence} at {closest.melting_temp} C"
                )
                return closest.model_copy(update={"fallback": "closest"})

            length = min(self.default_length, len(seq))
            self.logger.debug(f"Falling back to default {direction} core length {length}")
            return self._candidate(seq, length, direction, fallback="default")

    def select_core_at(
        self,
        template: str,
        anchor: int,
        direction: str = "forward",
        window: Optional[int] = None,
    ) -> PrimerCore:
        """
        Select a core that starts at ``anchor`` (forward) or ends at it (reverse).

        Returned ``start``/``end`` are positions on ``template``.
        """
        window = window or self.max_length
        anchor = max(0, min(anchor, len(template)))
        if direction == "forward":
            offset = anchor
            region = template[anchor:anchor + window]
        else:
            offset = max(0, anchor - window)
            region = template[offset:anchor]
        core = self.select_core(region, direction)
        return core.model_copy(update={"start": core.start + offset, "end": core.end + offset})
