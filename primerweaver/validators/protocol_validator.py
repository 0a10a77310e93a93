from typing import Dict, Tuple, Any, Optional, List
import re
from primerweaver.config.logging_config import logger
from primerweaver.services.enzyme_registry import EnzymeRegistry, load_registry

FASTA_HEADER = re.compile(r"^>.*$", re.M)


class ProtocolValidator:
    def __init__(self, registry: Optional[EnzymeRegistry] = None):
        self.registry = registry or load_registry()
        self.logger = logger.getChild("ProtocolValidator")

        self.required_fields = ["inserts"]
        self.required_insert_fields = ["sequence"]
        # camelCase key -> (snake_case key, low, high)
        self.numeric_ranges = {
            "targetTm": ("target_tm", 30.0, 90.0),
            "tmTolerance": ("tm_tolerance", 0.0, 20.0),
            "naMM": ("na_mM", 0.0, 2000.0),
            "mgMM": ("mg_mM", 0.0, 200.0),
            "primerConcNM": ("primer_conc_nM", 1.0, 1e6),
            "overlapLength": ("overlap_length", 6, 100),
            "uracilOverlapLength": ("uracil_overlap_length", 6, 13),
            "overlapTm": ("overlap_tm", 10.0, 90.0),
            "clampLength": ("clamp_length", 0, 10),
        }

    def validate_design_inputs(self, data: Dict[str, Any]) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
        """
        Validate a design request payload before it is turned into models.

        Returns:
            Tuple of (validated_data, error_message). If validation fails,
            validated_data will be None and error_message will contain the error.
        """
        if not isinstance(data, dict):
            return None, "Request body must be a JSON object"

        missing_field = self._check_required_fields(data)
        if missing_field:
            return None, f"Missing required field: {missing_field}"

        inserts = data.get("inserts") or []
        if not inserts:
            return None, "No inserts provided"
        insert_error = self._validate_inserts(inserts)
        if insert_error:
            return None, insert_error

        backbone_error = self._validate_backbone(data)
        if backbone_error:
            return None, backbone_error

        linkers = data.get("linkers") or []
        if len(linkers) > len(inserts) - 1:
            return None, f"At most {len(inserts) - 1} linker(s) allowed for {len(inserts)} insert(s)"
        for i, linker in enumerate(linkers):
            if not self.is_valid_dna_sequence(linker or ""):
                return None, f"Invalid DNA sequence in linker {i + 1}"

        method = data.get("method")
        if method not in (None, "standard", "uracil", "restriction"):
            return None, f"Unknown assembly method: {method}"
        if method == "restriction":
            if not (data.get("vector") or "").strip():
                return None, "Restriction cloning needs a vector to digest"
            if len(inserts) != 1:
                return None, "Restriction cloning takes exactly one insert"

        parameter_error = self._validate_parameters(data.get("parameters") or {})
        if parameter_error:
            return None, parameter_error

        return data, None

    def is_valid_dna_sequence(self, sequence: str) -> bool:
        """Check if sequence contains only valid DNA characters (FASTA headers allowed)."""
        body = re.sub(r"\s+", "", FASTA_HEADER.sub("", sequence))
        return bool(re.match(r'^[ATGCUWSMKRYBDHVNIPX]*$', body, re.I))

    def _check_required_fields(self, data: Dict[str, Any]) -> Optional[str]:
        """Check if all required fields are present."""
        for field in self.required_fields:
            if field not in data:
                return field
        return None

    def _validate_inserts(self, inserts: List[Dict[str, Any]]) -> Optional[str]:
        for i, entry in enumerate(inserts):
            if not isinstance(entry, dict):
                return f"Insert {i + 1} must be an object"
            for field in self.required_insert_fields:
                if field not in entry:
                    return f"Missing {field} in insert {i + 1}"
            sequence = (entry.get("sequence") or "").strip()
            if not sequence:
                return f"Empty sequence in insert {i + 1}"
            if not self.is_valid_dna_sequence(sequence):
                return f"Invalid DNA sequence in insert {i + 1}"
        return None

    def _validate_backbone(self, data: Dict[str, Any]) -> Optional[str]:
        vector = (data.get("vector") or "").strip()
        backbone = (data.get("backbone") or "").strip()
        if vector and backbone:
            return "Provide either a vector or a linear backbone, not both"
        if not vector and not backbone:
            return "Missing required field: vector or backbone"

        sequence = vector or backbone
        if not self.is_valid_dna_sequence(sequence):
            return "Invalid DNA sequence in vector" if vector else "Invalid DNA sequence in backbone"

        if vector:
            enzymes = data.get("enzymes") or []
            if not enzymes:
                return "Select one or two restriction enzymes"
            for name in enzymes:
                if name not in self.registry:
                    return f"Unknown enzyme: {name}"
            if len(self.registry.resolve(enzymes)) > 2:
                return "At most two restriction enzymes can be selected"
            index = data.get("fragmentIndex", data.get("fragment_index"))
            if index is not None and (not isinstance(index, int) or isinstance(index, bool) or index < 0):
                return "fragmentIndex must be a non-negative integer"
        return None

    def _validate_parameters(self, parameters: Dict[str, Any]) -> Optional[str]:
        if not isinstance(parameters, dict):
            return "parameters must be an object"
        for camel_key, (snake_key, low, high) in self.numeric_ranges.items():
            for key in (camel_key, snake_key):
                if key not in parameters:
                    continue
                error = self._check_range(key, parameters[key], low, high)
                if error:
                    return error
        return None

    def _check_range(self, key: str, raw: Any, low: float, high: float) -> Optional[str]:
        try:
            value = float(raw)
        except (TypeError, ValueError):
            return f"Invalid {key} value"
        if not low <= value <= high:
            return f"{key} must be between {low:g} and {high:g}"
        return None
