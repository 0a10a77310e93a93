"""
PrimerWeaver Services Package

Thermodynamics, structure scanning, restriction digestion, primer core
selection, primer QC, junction assembly and protocol orchestration.
"""

# Errors
from .exceptions import (
    DesignError,
    DesignInputError,
    SequenceInputError,
    UnknownEnzymeError,
    EnzymeSelectionError,
)

# Sequence handling
from .sequence_utils import (
    normalize_sequence,
    reverse_complement,
    parse_fasta,
    parse_single_sequence,
    format_fasta,
)
from .circular import wrap, subsequence_circular, rotate, dist_plus

# Thermodynamics and structure
from .thermo import melting_temp, duplex_free_energy, three_prime_dg
from .structure_scanner import StructureScanner, classify_dg

# Restriction digestion
from .enzyme_registry import EnzymeRegistry, load_registry
from .digestion import RestrictionDigestor

# Primer design and assembly
from .primer_select import PrimerCoreSelector
from .primer_qc import PrimerAnalyzer, score_label
from .assembler import AssemblyPlanner, extract_junction_overlap, protective_clamp

# Protocol generation
from .protocol_maker import ProtocolMaker

# Define what gets imported with 'from services import *'
__all__ = [
    'DesignError',
    'DesignInputError',
    'SequenceInputError',
    'UnknownEnzymeError',
    'EnzymeSelectionError',
    'normalize_sequence',
    'reverse_complement',
    'parse_fasta',
    'parse_single_sequence',
    'format_fasta',
    'wrap',
    'subsequence_circular',
    'rotate',
    'dist_plus',
    'melting_temp',
    'duplex_free_energy',
    'three_prime_dg',
    'StructureScanner',
    'classify_dg',
    'EnzymeRegistry',
    'load_registry',
    'RestrictionDigestor',
    'PrimerCoreSelector',
    'PrimerAnalyzer',
    'score_label',
    'AssemblyPlanner',
    'extract_junction_overlap',
    'protective_clamp',
    'ProtocolMaker',
]
