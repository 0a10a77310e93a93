# services/structure_scanner.py
import math
from typing import List, Optional, Sequence, Tuple

import numpy as np

from primerweaver.config.logging_config import logger
from primerweaver.log_utils import Logger
from primerweaver.models import StructureHit
from .sequence_utils import iupac_mask_array, reverse_complement
from .thermo import duplex_free_energy, hairpin_loop_penalty

TIE_MARGIN = 0.1


def classify_dg(delta_g: Optional[float], touches_three_prime: bool = False) -> Tuple[str, str]:
    """Human label and severity class (ok/warn/bad) for a structure free energy."""
    if delta_g is None or math.isnan(delta_g):
        return "none", "ok"
    if delta_g <= -7:
        label, severity = "very strong", "bad"
    elif delta_g <= -5:
        label, severity = "strong", "bad"
    elif delta_g <= -3:
        label, severity = "moderate", "warn"
    else:
        label, severity = "weak", "ok"
    if touches_three_prime:
        label = f"3' {label}"
    return label, severity


def _runs(diagonal: np.ndarray) -> List[Tuple[int, int]]:
    """[start, end) index pairs of consecutive True values."""
    padded = np.concatenate(([0], diagonal.astype(np.int8), [0]))
    edges = np.diff(padded)
    starts = np.flatnonzero(edges == 1)
    ends = np.flatnonzero(edges == -1)
    return list(zip(starts.tolist(), ends.tolist()))


class StructureScanner:
    """
    Finds the most stable complementary run within or between oligos.

    The pairing matrix holds ``M[i, k] = True`` when base ``i`` of the first
    strand can pair with base ``len2 - 1 - k`` of the second, so antiparallel
    duplexes appear as runs along the matrix diagonals.
    """

    def __init__(
        self,
        min_dimer_run: int = 3,
        min_stem: int = 4,
        min_loop: int = 3,
        three_prime_window: int = 5,
        verbose: bool = False,
    ):
        self.logger = logger.getChild("StructureScanner")
        self.min_dimer_run = min_dimer_run
        self.min_stem = min_stem
        self.min_loop = min_loop
        self.three_prime_window = three_prime_window
        self.verbose = verbose

    def pairing_matrix(self, first: str, second: str) -> np.ndarray:
        first_mask = iupac_mask_array(first.upper())
        partner_mask = iupac_mask_array(reverse_complement(second.upper()))
        matrix = (first_mask[:, None] & partner_mask[None, :]) != 0
        if self.verbose:
            self.logger.debug(
                f"Pairing matrix {first} x {second}\n{Logger.visualize_matrix(matrix)}"
            )
        return matrix

    def _better(self, candidate: StructureHit, best: Optional[StructureHit]) -> bool:
        if best is None:
            return True
        if candidate.delta_g < best.delta_g - TIE_MARGIN:
            return True
        if abs(candidate.delta_g - best.delta_g) <= TIE_MARGIN:
            if candidate.touches_three_prime != best.touches_three_prime:
                return candidate.touches_three_prime
            return candidate.delta_g < best.delta_g
        return False

    def _scan_dimer(self, first: str, second: str, kind: str) -> Optional[StructureHit]:
        first = first.upper()
        second = second.upper()
        n1, n2 = len(first), len(second)
        if n1 < self.min_dimer_run or n2 < self.min_dimer_run:
            return None

        matrix = self.pairing_matrix(first, second)
        best = None
        for offset in range(-(n1 - 1), n2):
            row0 = max(0, -offset)
            for run_start, run_end in _runs(np.diagonal(matrix, offset=offset)):
                length = run_end - run_start
                if length < self.min_dimer_run:
                    continue
                i0 = row0 + run_start
                k0 = i0 + offset
                motif = first[i0:i0 + length]
                delta_g = duplex_free_energy(motif)
                if math.isnan(delta_g):
                    continue
                touches = (
                    i0 + length - 1 >= n1 - self.three_prime_window
                    or k0 <= self.three_prime_window - 1
                )
                candidate = StructureHit(
                    kind=kind,
                    motif_sequence=motif,
                    delta_g=round(delta_g, 2),
                    touches_three_prime=touches,
                    start=i0,
                    partner_start=n2 - k0 - length,
                    stem_length=length,
                )
                if self._better(candidate, best):
                    best = candidate
        return best

    def scan_self_dimer(self, seq: str) -> Optional[StructureHit]:
        return self._scan_dimer(seq, seq, "self_dimer")

    def scan_cross_dimer(self, first: str, second: str) -> Optional[StructureHit]:
        return self._scan_dimer(first, second, "cross_dimer")

    def scan_hairpin(self, seq: str) -> Optional[StructureHit]:
        """
        Best stem-loop within ``seq``.

        On each diagonal of the self pairing matrix the pair (i, j) keeps
        i + j constant. Only pairs with i < j that leave at least
        ``min_loop`` unpaired bases between the innermost pair are scored.
        """
        seq = seq.upper()
        n = len(seq)
        if n < 2 * self.min_stem + self.min_loop:
            return None

        matrix = self.pairing_matrix(seq, seq)
        best = None
        for offset in range(-(n - 1), n):
            row0 = max(0, -offset)
            pair_sum = n - 1 - offset
            last_allowed = (pair_sum - self.min_loop - 1) // 2
            for run_start, run_end in _runs(np.diagonal(matrix, offset=offset)):
                i0 = row0 + run_start
                i_last = min(row0 + run_end - 1, last_allowed)
                stem = i_last - i0 + 1
                if stem < self.min_stem:
                    continue
                loop = pair_sum - 2 * i_last - 1
                delta_g = duplex_free_energy(seq[i0:i_last + 1]) + hairpin_loop_penalty(loop)
                if math.isnan(delta_g) or math.isinf(delta_g):
                    continue
                candidate = StructureHit(
                    kind="hairpin",
                    motif_sequence=seq[i0:i_last + 1],
                    delta_g=round(delta_g, 2),
                    touches_three_prime=pair_sum - i0 >= n - self.three_prime_window,
                    start=i0,
                    partner_start=pair_sum - i_last,
                    stem_length=stem,
                    loop_length=loop,
                )
                if self._better(candidate, best):
                    best = candidate
        return best

    def dimer_matrix(self, primers: Sequence[str]) -> np.ndarray:
        """Pairwise dimer free energies; the diagonal holds self-dimers, 0.0 means no dimer."""
        size = len(primers)
        energies = np.zeros((size, size), dtype=float)
        for i in range(size):
            for j in range(i, size):
                if i == j:
                    hit = self.scan_self_dimer(primers[i])
                else:
                    hit = self.scan_cross_dimer(primers[i], primers[j])
                if hit is not None:
                    energies[i, j] = energies[j, i] = hit.delta_g
        return energies
