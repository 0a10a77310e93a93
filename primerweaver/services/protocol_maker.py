# services/protocol_maker.py

from typing import List, Optional, Tuple

from pydantic import ValidationError

from primerweaver.log_utils import logger
from primerweaver.models import (
    CloningProtocol,
    DesignParameters,
    DesignRequest,
    DesignWarning,
    FastaEntry,
    PreparedBackbone,
    SequenceRecord,
)
from .assembler import AssemblyPlanner
from .digestion import RestrictionDigestor
from .enzyme_registry import EnzymeRegistry, load_registry
from .exceptions import DesignInputError, SequenceInputError
from .sequence_utils import parse_single_sequence

SHORT_INSERT_LENGTH = 50


class ProtocolMaker:
    """
    Orchestrates one cloning design: input parsing, backbone preparation,
    junction planning and primer design.

    Each call to ``design`` is independent; nothing from a previous request
    is kept on the instance.
    """

    def __init__(
        self,
        parameters: Optional[DesignParameters] = None,
        registry: Optional[EnzymeRegistry] = None,
        verbose: bool = False,
    ):
        self.parameters = parameters or DesignParameters()
        self.registry = registry or load_registry()
        self.verbose = verbose
        self.digestor = RestrictionDigestor(registry=self.registry, verbose=verbose)
        if verbose:
            logger.log_step("Verbose Mode", "Protocol maker is running in verbose mode.")

    def _parameters_for(self, request: DesignRequest) -> DesignParameters:
        overrides = dict(request.parameters)
        if request.method:
            overrides["method"] = request.method
        if not overrides:
            return self.parameters
        try:
            return self.parameters.with_overrides(overrides)
        except ValidationError as e:
            raise DesignInputError(f"Invalid design parameters: {e}") from e

    def _check_length(self, label: str, seq: str, parameters: DesignParameters) -> None:
        if len(seq) > parameters.max_sequence_length:
            raise SequenceInputError(
                f"{label} is {len(seq)} bp; the limit is {parameters.max_sequence_length} bp"
            )

    def _parse_inserts(self, request: DesignRequest, parameters: DesignParameters) -> List[SequenceRecord]:
        if not request.inserts:
            raise SequenceInputError("At least one insert is required")
        inserts = []
        for i, entry in enumerate(request.inserts):
            parsed_name, seq = parse_single_sequence(entry.sequence, label=f"insert {i + 1}")
            self._check_length(f"Insert {i + 1}", seq, parameters)
            name = entry.name or (parsed_name if parsed_name != "sequence" else f"insert_{i + 1}")
            inserts.append(SequenceRecord(name=name, sequence=seq))
        return inserts

    def _prepare_backbone(self, request: DesignRequest, parameters: DesignParameters) -> Tuple[str, str, str, dict, List[DesignWarning]]:
        if request.vector and request.backbone:
            raise DesignInputError("Provide either a vector to digest or a linear backbone, not both")

        if parameters.method == "restriction" and not request.vector:
            raise DesignInputError("Restriction cloning needs a vector to digest")
        if request.backbone:
            _, backbone = parse_single_sequence(request.backbone, label="backbone")
            self._check_length("Backbone", backbone, parameters)
            logger.log_step("Backbone", f"Using supplied linear backbone ({len(backbone)} bp)")
            return backbone, "", "", {"backbone_source": "linear"}, []

        if not request.vector:
            raise SequenceInputError("No vector or backbone provided")
        _, vector = parse_single_sequence(request.vector, label="vector")
        self._check_length("Vector", vector, parameters)

        logger.log_step("Digestion", f"Digesting {len(vector)} bp vector with {request.enzymes}")
        prepared, digest, warnings = self.digestor.prepare_backbone(
            vector, request.enzymes, request.fragment_index
        )
        logger.validate(
            sum(digest.fragment_lengths) == digest.sequence_length,
            "Digest fragments cover the whole vector",
            {"fragments": digest.fragment_lengths, "length": digest.sequence_length},
        )
        # restriction primers rebuild both sites, so the scars are always kept
        keep_sites = request.keep_sites or parameters.method == "restriction"
        left_scar = prepared.left_scar if keep_sites else ""
        right_scar = prepared.right_scar if keep_sites else ""
        extra = {"backbone_source": "digest", "digest": digest, "backbone": prepared}
        return prepared.sequence, left_scar, right_scar, extra, warnings

    def _restriction_warnings(self, insert: SequenceRecord, prepared: PreparedBackbone) -> List[DesignWarning]:
        """Conditions that make a single-insert restriction clone unreliable."""
        warnings = []
        names = [n for n in dict.fromkeys([prepared.right_enzyme, prepared.left_enzyme]) if n]

        internal = {}
        for name in names:
            sites = self.digestor.find_sites(insert.sequence, name, circular=False)
            if sites:
                internal[name] = [site.position for site in sites]
        if internal:
            message = (
                f"Insert {insert.name} contains sites for {', '.join(internal)}; "
                f"the insert will be cut during digestion"
            )
            logger.warning(message, internal)
            warnings.append(DesignWarning(
                code="insert_has_site", message=message, context={"sites": internal},
            ))

        left = self.registry.get(prepared.left_enzyme) if prepared.left_enzyme else None
        right = self.registry.get(prepared.right_enzyme) if prepared.right_enzyme else None
        reason = None
        if prepared.is_pseudo_single or len(names) == 1:
            reason = "a single enzyme cuts both ends of the backbone"
        elif left and right and left.is_blunt and right.is_blunt:
            reason = "both backbone ends are blunt"
        elif left and right and left.sticky_end == right.sticky_end:
            reason = f"{left.name} and {right.name} leave the same overhang"
        if reason:
            message = f"The backbone can re-ligate without the insert: {reason}"
            logger.warning(message)
            warnings.append(DesignWarning(
                code="self_ligation_risk", message=message,
                context={"left_enzyme": prepared.left_enzyme, "right_enzyme": prepared.right_enzyme},
            ))

        if insert.length < SHORT_INSERT_LENGTH:
            message = (
                f"Insert {insert.name} is only {insert.length} bp; gel-purify the digested "
                f"PCR product before ligation"
            )
            logger.warning(message)
            warnings.append(DesignWarning(
                code="short_insert", message=message, context={"length": insert.length},
            ))
        return warnings

    def design(self, request: DesignRequest) -> CloningProtocol:
        """Run one design request end to end."""
        with logger.debug_context("design_protocol"):
            parameters = self._parameters_for(request)
            logger.log_step("Protocol Start", f"Starting {parameters.method} assembly design")

            inserts = self._parse_inserts(request, parameters)
            backbone, left_scar, right_scar, extra, warnings = self._prepare_backbone(request, parameters)

            planner = AssemblyPlanner(parameters=parameters, verbose=self.verbose)
            logger.log_step(
                "Assembly Plan",
                f"Joining {len(inserts)} insert(s) to a {len(backbone)} bp backbone"
            )
            plan, plan_warnings = planner.build_plan(
                backbone,
                inserts,
                linkers=request.linkers,
                mode=parameters.method,
                left_scar=left_scar,
                right_scar=right_scar,
            )
            warnings.extend(plan_warnings)
            if parameters.method == "restriction":
                warnings.extend(self._restriction_warnings(inserts[0], extra["backbone"]))

            logger.log_step("Primer Design", f"Designing primers for {len(inserts)} insert(s)")
            primer_pairs, primer_warnings = planner.design_primers(plan)
            warnings.extend(primer_warnings)

            fasta = [FastaEntry(name=f"{parameters.method}_assembly", sequence=plan.assembled_sequence)]
            for pair in primer_pairs:
                fasta.append(FastaEntry(name=pair.forward.name, sequence=pair.forward.sequence))
                fasta.append(FastaEntry(name=pair.reverse.name, sequence=pair.reverse.sequence))

            if warnings:
                logger.warning(
                    f"{len(warnings)} warning(s) raised",
                    [w.model_dump() for w in warnings],
                )

            return CloningProtocol(
                method=parameters.method,
                plan=plan,
                primer_pairs=primer_pairs,
                warnings=warnings,
                fasta=fasta,
                **extra,
            )
