# models/__init__.py
from .sequences import SequenceRecord, FastaEntry, to_camel
from .enzymes import EnzymeSpec, CutSite
from .digestion import DigestFragment, DigestResult, PreparedBackbone
from .structures import StructureHit
from .primers import PrimerCore, PrimerMetrics, Primer, PrimerPair
from .assembly import DesignWarning, Seam, Junction, AssemblyPlan, DesignParameters
from .protocols import InsertInput, DesignRequest, CloningProtocol


# Define what gets imported when using `from models import *`
__all__ = [
    # Sequences
    "SequenceRecord",
    "FastaEntry",
    "to_camel",

    # Enzymes and digestion
    "EnzymeSpec",
    "CutSite",
    "DigestFragment",
    "DigestResult",
    "PreparedBackbone",

    # Structures
    "StructureHit",

    # Primers
    "PrimerCore",
    "PrimerMetrics",
    "Primer",
    "PrimerPair",

    # Assembly
    "DesignWarning",
    "Seam",
    "Junction",
    "AssemblyPlan",
    "DesignParameters",

    # Protocols
    "InsertInput",
    "DesignRequest",
    "CloningProtocol",
]
