# services/primer_qc.py
import math
from typing import Optional

from primerweaver.config.logging_config import logger
from primerweaver.models import PrimerMetrics, StructureHit
from .sequence_utils import gc_content, has_homopolymer, normalize_sequence
from .structure_scanner import StructureScanner
from .thermo import melting_temp, three_prime_dg


def score_label(score: int) -> str:
    if score >= 90:
        return "Excellent"
    if score >= 75:
        return "Good"
    if score >= 60:
        return "Fair"
    if score > 0:
        return "Poor"
    return "Fail"


class PrimerAnalyzer:
    """Quality report for single primers and primer pairs, scored out of 100."""

    def __init__(
        self,
        target_tm: float = 60.0,
        na_mM: float = 50.0,
        mg_mM: float = 0.0,
        primer_conc_nM: float = 500.0,
        scanner: Optional[StructureScanner] = None,
    ):
        self.logger = logger.getChild("PrimerAnalyzer")
        self.target_tm = target_tm
        self.na_mM = na_mM
        self.mg_mM = mg_mM
        self.primer_conc_nM = primer_conc_nM
        self.scanner = scanner or StructureScanner()

    def _tm(self, seq: str) -> float:
        return melting_temp(seq, self.na_mM, self.mg_mM, self.primer_conc_nM)

    @staticmethod
    def _rounded(value: float) -> Optional[float]:
        return None if value is None or math.isnan(value) else round(value, 2)

    def analyze_primer(self, sequence: str, core: Optional[str] = None) -> PrimerMetrics:
        """
        Score one primer.

        The annealing Tm is taken from ``core`` when given (the part that
        binds the template in the first cycles), otherwise from the whole
        primer. Penalties are subtracted from 100 and floored at zero.
        """
        seq = normalize_sequence(sequence)
        core_seq = normalize_sequence(core) if core else seq
        tm = self._tm(seq)
        core_tm = self._tm(core_seq)
        hairpin = self.scanner.scan_hairpin(seq)
        self_dimer = self.scanner.scan_self_dimer(seq)
        end_dg = three_prime_dg(seq)
        homopolymer = has_homopolymer(seq)
        gc = gc_content(seq)

        score = 100
        issues = []
        if len(seq) < 15 or len(seq) > 35:
            score -= 20
            issues.append(f"length {len(seq)} outside 15-35 nt")

        deviation = None
        if math.isnan(core_tm):
            score -= 30
            issues.append("melting temperature undefined")
        else:
            deviation = abs(core_tm - self.target_tm)
            if deviation > 5:
                score -= 20
                issues.append(f"Tm {core_tm:.1f} C is {deviation:.1f} C from target")
            elif deviation > 3:
                score -= 10
                issues.append(f"Tm {core_tm:.1f} C is {deviation:.1f} C from target")

        if gc < 30 or gc > 70:
            score -= 10
            issues.append(f"GC content {gc}% outside 30-70%")

        if hairpin is not None:
            if hairpin.delta_g <= -5:
                score -= 20
                issues.append(f"stable hairpin ({hairpin.delta_g} kcal/mol)")
            elif hairpin.delta_g <= -3:
                score -= 10
                issues.append(f"hairpin ({hairpin.delta_g} kcal/mol)")

        if self_dimer is not None:
            if self_dimer.delta_g <= -7:
                score -= 25
                issues.append(f"strong self-dimer ({self_dimer.delta_g} kcal/mol)")
            elif self_dimer.delta_g <= -5:
                score -= 15
                issues.append(f"self-dimer ({self_dimer.delta_g} kcal/mol)")

        if not math.isnan(end_dg) and end_dg <= -5:
            score -= 10
            issues.append(f"3' end too stable ({end_dg:.2f} kcal/mol)")

        if homopolymer:
            score -= 10
            issues.append("homopolymer run of 4 or more")

        score = max(score, 0)
        return PrimerMetrics(
            length=len(seq),
            gc_percent=gc,
            tm=self._rounded(tm),
            core_tm=self._rounded(core_tm),
            tm_deviation=self._rounded(deviation),
            hairpin=hairpin,
            self_dimer=self_dimer,
            three_prime_dg=self._rounded(end_dg),
            homopolymer=homopolymer,
            score=score,
            label=score_label(score),
            issues=issues,
        )

    def cross_dimer(self, forward: str, reverse: str) -> Optional[StructureHit]:
        return self.scanner.scan_cross_dimer(
            normalize_sequence(forward), normalize_sequence(reverse)
        )

    def analyze_pair(self, forward: str, reverse: str, forward_core: Optional[str] = None, reverse_core: Optional[str] = None) -> dict:
        """Both primer reports, their cross-dimer and the annealing Tm difference."""
        forward_metrics = self.analyze_primer(forward, forward_core)
        reverse_metrics = self.analyze_primer(reverse, reverse_core)
        tm_difference = None
        if forward_metrics.core_tm is not None and reverse_metrics.core_tm is not None:
            tm_difference = round(abs(forward_metrics.core_tm - reverse_metrics.core_tm), 2)
        return {
            "forward": forward_metrics,
            "reverse": reverse_metrics,
            "cross_dimer": self.cross_dimer(forward, reverse),
            "tm_difference": tm_difference,
        }
