# routes/api.py
import math

from flask import Blueprint, request, jsonify, current_app
from pydantic import BaseModel, ValidationError

from primerweaver.log_utils import logger
from primerweaver.models import DesignParameters, DesignRequest
from primerweaver.services import (
    DesignError,
    DesignInputError,
    EnzymeSelectionError,
    PrimerAnalyzer,
    ProtocolMaker,
    RestrictionDigestor,
    StructureScanner,
    classify_dg,
    duplex_free_energy,
    format_fasta,
    load_registry,
    melting_temp,
    normalize_sequence,
    parse_single_sequence,
    three_prime_dg,
)
from primerweaver.validators import ProtocolValidator

api = Blueprint("api", __name__, url_prefix="/api")


def convert_to_serializable(obj):
    """
    Recursively convert Pydantic models and non-finite floats into JSON-safe values.
    """
    if isinstance(obj, BaseModel):
        return convert_to_serializable(obj.model_dump())
    elif isinstance(obj, dict):
        return {k: convert_to_serializable(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [convert_to_serializable(item) for item in obj]
    elif isinstance(obj, float) and not math.isfinite(obj):
        return None
    else:
        return obj


def _registry():
    return load_registry(current_app.config.get("ENZYME_TABLE"))


def _parameters(overrides=None) -> DesignParameters:
    """Active design defaults from the loaded config, with request overrides on top."""
    defaults = DesignParameters.model_validate(
        current_app.config.get("ACTIVE_CONFIG", {}).get("design", {})
    )
    if overrides is not None and not isinstance(overrides, dict):
        raise DesignInputError("parameters must be an object")
    return defaults.with_overrides(overrides or {})


def _classified(hit):
    if hit is None:
        return classify_dg(None)
    return classify_dg(hit.delta_g, hit.touches_three_prime)


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise DesignInputError("Request body must be a JSON object")
    return data


@api.route("/enzymes", methods=["GET"])
def list_enzymes():
    """Return the enzyme registry as JSON."""
    registry = _registry()
    return jsonify({
        "enzymes": [registry.get(name).model_dump() for name in registry.names()]
    })


@api.route("/thermo", methods=["POST"])
def thermo():
    """Melting temperature, free energy and secondary structure of one oligo."""
    try:
        data = _json_body()
        seq = normalize_sequence(data.get("sequence", ""))
        if not seq:
            return jsonify({"error": "No sequence provided"}), 400
        params = _parameters(data.get("parameters"))
        scanner = StructureScanner()
        hairpin = scanner.scan_hairpin(seq)
        self_dimer = scanner.scan_self_dimer(seq)
        result = {
            "sequence": seq,
            "length": len(seq),
            "tm": melting_temp(seq, params.na_mM, params.mg_mM, params.primer_conc_nM),
            "delta_g": duplex_free_energy(seq),
            "three_prime_dg": three_prime_dg(seq),
            "hairpin": hairpin,
            "hairpin_class": _classified(hairpin),
            "self_dimer": self_dimer,
            "self_dimer_class": _classified(self_dimer),
        }
        return jsonify(convert_to_serializable(result))
    except (DesignInputError, ValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logger.error(f"Error in thermo endpoint: {str(e)}", exc_info=True)
        return jsonify({"error": str(e)}), 500


@api.route("/qc", methods=["POST"])
def primer_qc():
    """Quality report for one primer, or a forward/reverse pair."""
    try:
        data = _json_body()
        params = _parameters(data.get("parameters"))
        analyzer = PrimerAnalyzer(
            target_tm=params.target_tm,
            na_mM=params.na_mM,
            mg_mM=params.mg_mM,
            primer_conc_nM=params.primer_conc_nM,
        )
        forward = data.get("forward") or data.get("sequence")
        if not forward:
            return jsonify({"error": "No primer sequence provided"}), 400
        reverse = data.get("reverse")
        if reverse:
            report = analyzer.analyze_pair(forward, reverse)
        else:
            report = analyzer.analyze_primer(forward)
        return jsonify(convert_to_serializable(report))
    except (DesignInputError, ValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logger.error(f"Error in qc endpoint: {str(e)}", exc_info=True)
        return jsonify({"error": str(e)}), 500


@api.route("/digest", methods=["POST"])
def digest():
    """Digest a circular vector with the selected enzymes."""
    try:
        data = _json_body()
        _, vector = parse_single_sequence(data.get("vector", ""), label="vector")
        enzymes = data.get("enzymes") or []
        if not enzymes:
            return jsonify({"error": "Select at least one restriction enzyme"}), 400
        digestor = RestrictionDigestor(registry=_registry())
        result = digestor.digest_circular(vector, enzymes)
        logger.log_step("Digest", f"{len(result.fragments)} fragment(s)", {"lengths": result.fragment_lengths})
        return jsonify(convert_to_serializable(result))
    except DesignInputError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logger.error(f"Error in digest endpoint: {str(e)}", exc_info=True)
        return jsonify({"error": str(e)}), 500


@api.route("/design", methods=["POST"])
def design():
    """Run a full cloning design and return the protocol."""
    try:
        data = _json_body()
        validator = ProtocolValidator(registry=_registry())
        validated, error = validator.validate_design_inputs(data)
        if error:
            logger.debug("Design request rejected", {"error": error})
            return jsonify({"error": error}), 400

        design_request = DesignRequest.model_validate(validated)
        maker = ProtocolMaker(
            parameters=_parameters(),
            registry=_registry(),
            verbose=current_app.config.get("ACTIVE_CONFIG", {}).get("verbose_mode", False),
        )
        protocol = maker.design(design_request)
        result = convert_to_serializable(protocol)
        result["fasta_text"] = format_fasta((entry.name, entry.sequence) for entry in protocol.fasta)
        return jsonify(result)
    except EnzymeSelectionError as e:
        return jsonify({"error": str(e)}), 422
    except (DesignInputError, ValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except DesignError as e:
        logger.error(f"Design failed: {str(e)}", exc_info=True)
        return jsonify({"error": str(e)}), 422
    except Exception as e:
        logger.error(f"Error in design endpoint: {str(e)}", exc_info=True)
        return jsonify({"error": str(e)}), 500


@api.route("/fasta", methods=["POST"])
def export_fasta():
    """Render named sequences as FASTA text."""
    try:
        data = _json_body()
        records = data.get("records") or []
        if not records:
            return jsonify({"error": "No records to export"}), 400
        pairs = []
        for i, record in enumerate(records):
            if not isinstance(record, dict):
                return jsonify({"error": f"Record {i + 1} must be an object"}), 400
            seq = normalize_sequence(record.get("sequence", ""))
            if not seq:
                return jsonify({"error": f"Empty sequence in record {i + 1}"}), 400
            pairs.append((record.get("name") or f"record_{i + 1}", seq))
        return jsonify({"fasta": format_fasta(pairs)})
    except DesignInputError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logger.error(f"Error exporting FASTA: {str(e)}", exc_info=True)
        return jsonify({"error": str(e)}), 500


@api.route('/config', methods=['GET'])
def get_config():
    """
    Return the currently loaded configuration.
    """
    config = current_app.config.get("ACTIVE_CONFIG", {})
    return jsonify(config)
