# services/assembler.py
"""
Junction planning for multi-fragment overlap assembly.

The construct is laid out as backbone, right scar, inserts separated by
linkers, left scar, and read as a circle. Each seam gets an overlap: a fixed
window in standard mode, the best ``A N(4-11) T`` motif near the seam in
uracil-excision mode, or the rebuilt recognition site in restriction mode.
Primers for every insert are the overlap-bearing tail followed by a
Tm-selected core on the insert; restriction primers also carry a protective
clamp ahead of the site.

Positions are computed in the provisional (unrotated) frame and reported in
both frames; slicing is always circular so windows near the origin never
break.
"""
import math
import random
from typing import List, Optional, Sequence, Tuple

from primerweaver.config.logging_config import logger
from primerweaver.models import (
    AssemblyPlan,
    DesignParameters,
    DesignWarning,
    Junction,
    Primer,
    PrimerCore,
    PrimerPair,
    Seam,
    SequenceRecord,
)
from .base import debug_context
from .circular import circular_slice, dist_plus, rotate, wrap
from .exceptions import DesignInputError, SequenceInputError
from .primer_qc import PrimerAnalyzer
from .primer_select import PrimerCoreSelector
from .sequence_utils import gc_content, normalize_sequence, reverse_complement
from .thermo import melting_temp

URACIL_MIN_LENGTH = 6
URACIL_MAX_LENGTH = 13
CLAMP_ATTEMPTS = 200


def standard_overlap_interval(seam: Seam, position: int, overlap_length: int) -> Tuple[int, int]:
    """[start, end) of a fixed-length overlap for ``seam`` located at ``position``."""
    if seam.kind == "backbone_left":
        start = position - overlap_length
    elif seam.kind == "backbone_right":
        start = position
    elif seam.linker_length >= overlap_length:
        linker_start = position - seam.linker_length // 2
        start = linker_start + (seam.linker_length - overlap_length) // 2
    else:
        start = position - overlap_length // 2
    return start, start + overlap_length


def extract_junction_overlap(plan: AssemblyPlan, index: int, overlap_length: int) -> str:
    """Re-read the fixed-length overlap of junction ``index`` from the assembled sequence."""
    seam = plan.seams[index]
    start, end = standard_overlap_interval(seam, seam.position, overlap_length)
    return circular_slice(plan.assembled_sequence, start, end)


def _unwrap(value: int, reference: int, length: int) -> int:
    """Shift ``value`` by whole turns so it lies within half a turn of ``reference``."""
    return value + length * round((reference - value) / length)


def protective_clamp(length: int, seed: int = 0) -> str:
    """
    Extra 5' bases that let the enzyme bind a site near the end of a PCR product.

    The clamp has no run of four identical bases and is not its own reverse
    complement. A fixed seed keeps repeated designs identical.
    """
    if length <= 0:
        return ""
    rng = random.Random(seed * 100 + length)
    for _ in range(CLAMP_ATTEMPTS):
        bases = []
        for i in range(length):
            base = rng.choice("ACGT")
            while i >= 3 and bases[i - 1] == bases[i - 2] == bases[i - 3] == base:
                base = rng.choice("ACGT")
            bases.append(base)
        clamp = "".join(bases)
        if clamp != reverse_complement(clamp):
            return clamp
    return ("ACGTACGTAC" * (length // 10 + 1))[:length]


class AssemblyPlanner:
    """Builds an AssemblyPlan and the per-insert primer pairs that realize it."""

    def __init__(
        self,
        parameters: Optional[DesignParameters] = None,
        selector: Optional[PrimerCoreSelector] = None,
        analyzer: Optional[PrimerAnalyzer] = None,
        verbose: bool = False,
    ):
        self.logger = logger.getChild("AssemblyPlanner")
        self.parameters = parameters or DesignParameters()
        self.selector = selector or PrimerCoreSelector.from_parameters(self.parameters)
        self.analyzer = analyzer or PrimerAnalyzer(
            target_tm=self.parameters.target_tm,
            na_mM=self.parameters.na_mM,
            mg_mM=self.parameters.mg_mM,
            primer_conc_nM=self.parameters.primer_conc_nM,
        )
        self.verbose = verbose
        self.state = {
            'current_operation': '',
            'seams': 0,
        }

    def _tm(self, seq: str) -> float:
        p = self.parameters
        return melting_temp(seq, p.na_mM, p.mg_mM, p.primer_conc_nM)

    # ----- layout -----

    def _layout(
        self,
        backbone: str,
        inserts: List[SequenceRecord],
        linkers: List[str],
        left_scar: str,
        right_scar: str,
    ) -> Tuple[str, List[Tuple[int, int]], List[Seam]]:
        """Provisional circle, raw insert intervals and seams (positions still unrotated)."""
        parts = [backbone, right_scar]
        insert_spans = []
        cursor = len(backbone) + len(right_scar)
        for i, insert in enumerate(inserts):
            insert_spans.append((cursor, cursor + insert.length))
            parts.append(insert.sequence)
            cursor += insert.length
            if i < len(linkers):
                parts.append(linkers[i])
                cursor += len(linkers[i])
        parts.append(left_scar)
        provisional = "".join(parts)

        seams = [Seam(
            label=f"backbone|{inserts[0].name}",
            kind="backbone_left",
            raw_position=insert_spans[0][0],
            position=insert_spans[0][0],
        )]
        for i in range(len(inserts) - 1):
            linker_length = len(linkers[i])
            seams.append(Seam(
                label=f"{inserts[i].name}|{inserts[i + 1].name}",
                kind="insert",
                raw_position=insert_spans[i][1] + linker_length // 2,
                position=insert_spans[i][1] + linker_length // 2,
                linker_length=linker_length,
            ))
        seams.append(Seam(
            label=f"{inserts[-1].name}|backbone",
            kind="backbone_right",
            raw_position=insert_spans[-1][1],
            position=insert_spans[-1][1],
        ))
        return provisional, insert_spans, seams

    def choose_rotation_offset(self, length: int, raw_positions: Sequence[int]) -> int:
        """New origin in the middle of the largest seam-free arc."""
        positions = sorted({wrap(length, p) for p in raw_positions})
        if not positions:
            return 0
        best_start, best_gap = positions[0], -1
        for i, position in enumerate(positions):
            following = positions[(i + 1) % len(positions)]
            gap = dist_plus(length, position, following) or length
            if gap > best_gap:
                best_start, best_gap = position, gap
        return wrap(length, best_start + best_gap // 2)

    def rotation_margin(self) -> int:
        p = self.parameters
        return max(p.overlap_length, URACIL_MAX_LENGTH) + p.search_radius + p.max_core_length

    # ----- overlaps -----

    def find_uracil_overlap(self, seq: str, seam_position: int) -> Optional[Tuple[int, int]]:
        """
        Best ``5'-A N(4-11) T-3'`` overlap within ``search_radius`` of a seam.

        Candidates are scored ``2*distance + 0.5*|Tm - overlap_tm| +
        3*|length - overlap_length|`` (lower is better), ties going to the
        candidate nearer the seam and then the upstream one.
        """
        p = self.parameters
        lo = seam_position - p.search_radius
        hi = seam_position + p.search_radius
        window = circular_slice(seq, lo, hi)
        best = None
        for offset, base in enumerate(window):
            if base != "A":
                continue
            for length in range(URACIL_MIN_LENGTH, URACIL_MAX_LENGTH + 1):
                if offset + length > len(window):
                    break
                if window[offset + length - 1] != "T":
                    continue
                candidate = window[offset:offset + length]
                tm = self._tm(candidate)
                if math.isnan(tm):
                    continue
                start = lo + offset
                distance = abs(start + length / 2 - seam_position)
                score = (
                    distance * 2
                    + abs(tm - p.overlap_tm) * 0.5
                    + abs(length - p.uracil_overlap_length) * 3
                )
                key = (score, distance, start)
                if best is None or key < best[0]:
                    best = (key, start, start + length)
        if best is None:
            return None
        return best[1], best[2]

    def _junction(self, seq: str, seam: Seam, start: int, end: int, offset: int, motif_found: Optional[bool]) -> Junction:
        split = min(max(seam.raw_position, start), end)
        overlap = circular_slice(seq, start, end)
        tm = self._tm(overlap)
        return Junction(
            seam=seam,
            upstream=circular_slice(seq, start, split),
            downstream=circular_slice(seq, split, end),
            start=wrap(len(seq), start - offset),
            end=wrap(len(seq), end - offset),
            length=end - start,
            melting_temp=round(tm, 2) if not math.isnan(tm) else tm,
            gc_percent=gc_content(overlap),
            motif_found=motif_found,
        )

    # ----- plan -----

    def build_plan(
        self,
        backbone: str,
        inserts: Sequence[SequenceRecord],
        linkers: Optional[Sequence[str]] = None,
        mode: Optional[str] = None,
        left_scar: str = "",
        right_scar: str = "",
    ) -> Tuple[AssemblyPlan, List[DesignWarning]]:
        """Lay out, rotate and derive the overlap for every seam in one pass."""
        mode = mode or self.parameters.method
        backbone = normalize_sequence(backbone)
        if not backbone:
            raise SequenceInputError("Backbone sequence is empty")
        if not inserts:
            raise SequenceInputError("At least one insert is required")
        records = []
        for i, insert in enumerate(inserts):
            seq = normalize_sequence(insert.sequence)
            if not seq:
                raise SequenceInputError(f"Insert {i + 1} ({insert.name}) is empty")
            records.append(SequenceRecord(name=insert.name or f"insert_{i + 1}", sequence=seq))

        linkers = [normalize_sequence(linker) for linker in (linkers or [])]
        if len(linkers) > len(records) - 1:
            raise SequenceInputError(
                f"{len(linkers)} linkers given for {len(records)} inserts (at most {len(records) - 1})"
            )
        linkers += [""] * (len(records) - 1 - len(linkers))
        left_scar = normalize_sequence(left_scar)
        right_scar = normalize_sequence(right_scar)
        if mode == "restriction":
            if len(records) != 1:
                raise DesignInputError("Restriction cloning takes exactly one insert")
            if not left_scar or not right_scar:
                raise DesignInputError("Restriction cloning needs a recognition site on both sides")

        with debug_context("build_assembly_plan"):
            self.state['current_operation'] = 'build_plan'
            provisional, _, raw_seams = self._layout(backbone, records, linkers, left_scar, right_scar)
            n = len(provisional)
            offset = self.choose_rotation_offset(n, [s.raw_position for s in raw_seams])
            seams = [
                s.model_copy(update={"position": wrap(n, s.raw_position - offset)})
                for s in raw_seams
            ]
            self.state['seams'] = len(seams)

            warnings: List[DesignWarning] = []
            margin = self.rotation_margin()
            tight = [s.label for s in seams if min(s.position, n - s.position) < margin]
            if tight:
                message = (
                    f"Construct of {n} bp is too short to keep seams {tight} "
                    f"{margin} bp from the sequence ends"
                )
                self.logger.warning(message)
                warnings.append(DesignWarning(
                    code="rotation_margin", message=message,
                    context={"seams": tight, "margin": margin},
                ))

            junctions = []
            overlap_length = self.parameters.overlap_length
            for seam in seams:
                if mode == "uracil":
                    found = self.find_uracil_overlap(provisional, seam.raw_position)
                    if found is None:
                        start = seam.raw_position - self.parameters.uracil_overlap_length
                        end = seam.raw_position
                        message = (
                            f"No 5'-AN(4-11)T-3' motif within {self.parameters.search_radius} bp "
                            f"of seam {seam.label}; using a fixed {end - start} bp overlap. "
                            f"Check the junction for frameshifts."
                        )
                        self.logger.warning(message)
                        warnings.append(DesignWarning(
                            code="uracil_motif_missing", message=message,
                            context={"seam": seam.label},
                        ))
                        junctions.append(self._junction(provisional, seam, start, end, offset, False))
                    else:
                        junctions.append(self._junction(provisional, seam, found[0], found[1], offset, True))
                elif mode == "restriction":
                    if seam.kind == "backbone_left":
                        start, end = seam.raw_position - len(right_scar), seam.raw_position
                    else:
                        start, end = seam.raw_position, seam.raw_position + len(left_scar)
                    junctions.append(self._junction(provisional, seam, start, end, offset, None))
                else:
                    start, end = standard_overlap_interval(seam, seam.raw_position, overlap_length)
                    junctions.append(self._junction(provisional, seam, start, end, offset, None))

            plan = AssemblyPlan(
                mode=mode,
                backbone=backbone,
                inserts=records,
                linkers=linkers,
                left_scar=left_scar,
                right_scar=right_scar,
                rotation_offset=offset,
                assembled_sequence=rotate(provisional, offset),
                seams=seams,
                junctions=junctions,
            )
            self.logger.debug(
                f"{mode} plan: {n} bp, {len(records)} insert(s), rotation offset {offset}"
            )
            return plan, warnings

    # ----- primers -----

    def _raw_interval(self, plan: AssemblyPlan, junction: Junction) -> Tuple[int, int]:
        n = plan.length
        start = _unwrap(junction.start + plan.rotation_offset, junction.seam.raw_position, n)
        return start, start + junction.length

    def _forward_primer(self, provisional: str, plan: AssemblyPlan, insert: SequenceRecord, span: Tuple[int, int], overlap: Tuple[int, int]) -> Primer:
        insert_start = span[0]
        overlap_start, overlap_end = overlap
        local_anchor = max(overlap_end, insert_start) - insert_start
        if local_anchor >= insert.length:
            local_anchor = max(0, insert.length - self.selector.min_length)
        core = self.selector.select_core_at(insert.sequence, local_anchor, "forward")
        core_start = insert_start + core.start
        tail = circular_slice(provisional, overlap_start, core_start)
        if plan.mode == "uracil":
            u_index = overlap_end - 1 - overlap_start
            if 0 <= u_index < len(tail):
                tail = tail[:u_index] + "U" + tail[u_index + 1:]
        return self._primer(f"{insert.name}_F", tail, core, self._clamp(plan, 0))

    def _reverse_primer(self, provisional: str, plan: AssemblyPlan, insert: SequenceRecord, span: Tuple[int, int], overlap: Tuple[int, int]) -> Primer:
        insert_start, insert_end = span
        overlap_start, overlap_end = overlap
        local_anchor = min(overlap_start, insert_end) - insert_start
        if local_anchor <= 0:
            local_anchor = min(insert.length, self.selector.min_length)
        core = self.selector.select_core_at(insert.sequence, local_anchor, "reverse")
        core_end = insert_start + core.end
        tail = reverse_complement(circular_slice(provisional, core_end, overlap_end))
        if plan.mode == "uracil":
            u_index = overlap_end - 1 - overlap_start
            if 0 <= u_index < len(tail):
                tail = tail[:u_index] + "U" + tail[u_index + 1:]
        return self._primer(f"{insert.name}_R", tail, core, self._clamp(plan, 1))

    def _clamp(self, plan: AssemblyPlan, seed: int) -> str:
        if plan.mode != "restriction":
            return ""
        return protective_clamp(self.parameters.clamp_length, seed)

    def _primer(self, name: str, tail: str, core: PrimerCore, clamp: str = "") -> Primer:
        sequence = clamp + tail + core.sequence
        dna = sequence.replace("U", "T")
        tm = self._tm(dna)
        return Primer(
            name=name,
            sequence=sequence,
            binding_region=core.sequence,
            tail=tail,
            clamp=clamp,
            tm=round(tm, 2) if not math.isnan(tm) else None,
            gc_content=gc_content(dna),
            length=len(sequence),
            core=core,
            metrics=self.analyzer.analyze_primer(sequence, core.sequence),
        )

    def design_primers(self, plan: AssemblyPlan) -> Tuple[List[PrimerPair], List[DesignWarning]]:
        """Forward and reverse primer for every insert of ``plan``."""
        with debug_context("design_insert_primers"):
            self.state['current_operation'] = 'design_primers'
            provisional, spans, _ = self._layout(
                plan.backbone, plan.inserts, plan.linkers, plan.left_scar, plan.right_scar
            )
            pairs = []
            warnings = []
            for i, insert in enumerate(plan.inserts):
                upstream = self._raw_interval(plan, plan.junctions[i])
                downstream = self._raw_interval(plan, plan.junctions[i + 1])
                forward = self._forward_primer(provisional, plan, insert, spans[i], upstream)
                reverse = self._reverse_primer(provisional, plan, insert, spans[i], downstream)

                for primer in (forward, reverse):
                    if primer.core.fallback != "none":
                        message = (
                            f"{primer.name}: no core within {self.selector.tolerance} C of "
                            f"{self.selector.target_tm} C; using {primer.core.length} nt at "
                            f"{primer.core.melting_temp} C"
                        )
                        self.logger.warning(message)
                        warnings.append(DesignWarning(
                            code="tm_out_of_tolerance", message=message,
                            context={"primer": primer.name, "fallback": primer.core.fallback},
                        ))

                tm_difference = abs(forward.core.melting_temp - reverse.core.melting_temp)
                pairs.append(PrimerPair(
                    insert_index=i,
                    insert_name=insert.name,
                    forward=forward,
                    reverse=reverse,
                    product_size=downstream[1] - upstream[0] + len(forward.clamp) + len(reverse.clamp),
                    cross_dimer=self.analyzer.cross_dimer(forward.sequence, reverse.sequence),
                    tm_difference=None if math.isnan(tm_difference) else round(tm_difference, 2),
                ))
            return pairs, warnings
