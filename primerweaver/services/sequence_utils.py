# services/sequence_utils.py
import re
from io import StringIO
from typing import Dict, Iterable, List, Tuple

import numpy as np
from Bio import SeqIO
from Bio.Seq import Seq
from Bio.SeqIO.FastaIO import FastaWriter
from Bio.SeqRecord import SeqRecord

from .exceptions import SequenceInputError

# Concrete bases behind every IUPAC DNA symbol.
IUPAC_BASES: Dict[str, str] = {
    "A": "A", "C": "C", "G": "G", "T": "T",
    "R": "AG", "Y": "CT", "S": "CG", "W": "AT",
    "K": "GT", "M": "AC",
    "B": "CGT", "D": "AGT", "H": "ACT", "V": "ACG",
    "N": "ACGT",
}

_BASE_BITS = {"A": 1, "C": 2, "G": 4, "T": 8}
IUPAC_MASKS: Dict[str, int] = {
    symbol: sum(_BASE_BITS[b] for b in bases) for symbol, bases in IUPAC_BASES.items()
}

_NOT_NUCLEOTIDE = re.compile(r"[^ACGTURYSWKMBDHVNIPX]")
_AMBIGUOUS_AS_N = str.maketrans({"U": "T", "I": "N", "P": "N", "X": "N"})
FASTA_LINE_WIDTH = 80


def normalize_sequence(raw: str) -> str:
    """Uppercase, drop anything that is not a nucleotide symbol, map U to T and I/P/X to N."""
    if not raw:
        return ""
    return _NOT_NUCLEOTIDE.sub("", raw.upper()).translate(_AMBIGUOUS_AS_N)


def is_iupac(seq: str) -> bool:
    return all(base in IUPAC_BASES for base in seq)


def reverse_complement(seq: str) -> str:
    return str(Seq(seq).reverse_complement())


def iupac_mask_array(seq: str) -> np.ndarray:
    """Bit mask per position (A=1, C=2, G=4, T=8); unknown symbols map to 0."""
    return np.fromiter((IUPAC_MASKS.get(base, 0) for base in seq), dtype=np.uint8, count=len(seq))


def gc_fraction(seq: str) -> float:
    if not seq:
        return 0.0
    return sum(1 for base in seq.upper() if base in "GCS") / len(seq)


def gc_content(seq: str) -> float:
    """GC content in percent, rounded to one decimal."""
    return round(gc_fraction(seq) * 100, 1)


def has_homopolymer(seq: str, run: int = 4) -> bool:
    if run < 2:
        return bool(seq)
    return re.search(r"([ACGT])\1{%d,}" % (run - 1), seq.upper()) is not None


def parse_fasta(text: str) -> List[Tuple[str, str]]:
    """Parse FASTA text (or a bare sequence) into normalized (name, sequence) pairs."""
    if text is None or not text.strip():
        return []
    stripped = text.strip()
    if not stripped.startswith(">"):
        if ">" in stripped:
            raise SequenceInputError("Text before the first FASTA header")
        return [("sequence", normalize_sequence(stripped))]

    records = []
    for record in SeqIO.parse(StringIO(stripped), "fasta"):
        name = record.description or record.id or f"record_{len(records) + 1}"
        records.append((name, normalize_sequence(str(record.seq))))
    return records


def parse_single_sequence(text: str, label: str = "sequence") -> Tuple[str, str]:
    """Parse input that must hold exactly one non-empty sequence."""
    records = parse_fasta(text)
    if not records:
        raise SequenceInputError(f"No {label} provided")
    if len(records) > 1:
        raise SequenceInputError(
            f"Expected a single {label} but found {len(records)} FASTA records"
        )
    name, seq = records[0]
    if not seq:
        raise SequenceInputError(f"The {label} contains no nucleotide symbols")
    return name, seq


def format_fasta(records: Iterable[Tuple[str, str]], width: int = FASTA_LINE_WIDTH) -> str:
    """Render (name, sequence) pairs as FASTA text wrapped at ``width`` columns."""
    handle = StringIO()
    writer = FastaWriter(handle, wrap=width)
    for name, seq in records:
        writer.write_record(SeqRecord(Seq(seq), id=name.replace(" ", "_"), description=""))
    return handle.getvalue()
