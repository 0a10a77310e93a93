# services/thermo.py
"""
Nearest-neighbor thermodynamics for short DNA duplexes.

Melting temperature and free energy both sum the SantaLucia (1998) unified
nearest-neighbor parameters over every dinucleotide step. Ambiguous IUPAC
symbols are resolved to the most stable concrete step so that degenerate
primers are never reported as weaker than their worst-case variant.

Units: enthalpy in kcal/mol, entropy in cal/(mol*K), temperatures in Celsius
unless noted.
"""
import math
from functools import lru_cache
from typing import Optional, Tuple

from .sequence_utils import IUPAC_BASES, gc_fraction

# (dH, dS) per dinucleotide step, 5'->3' on the top strand.
NN_TABLE = {
    "AA": (-7.9, -22.2), "TT": (-7.9, -22.2),
    "AT": (-7.2, -20.4),
    "TA": (-7.2, -21.3),
    "CA": (-8.5, -22.7), "TG": (-8.5, -22.7),
    "GT": (-8.4, -22.4), "AC": (-8.4, -22.4),
    "CT": (-7.8, -21.0), "AG": (-7.8, -21.0),
    "GA": (-8.2, -22.2), "TC": (-8.2, -22.2),
    "CG": (-10.6, -27.2),
    "GC": (-9.8, -24.4),
    "GG": (-8.0, -19.9), "CC": (-8.0, -19.9),
}

INIT_DH = 0.2
INIT_DS = -5.7
SYMMETRY_DS = -1.4
GAS_CONSTANT = 1.987
KELVIN = 273.15
T37 = 310.15

# Hairpin loop initiation penalties (kcal/mol) by loop length.
HAIRPIN_LOOP_PENALTY = {3: 5.7, 4: 5.6, 5: 4.9, 6: 4.4, 7: 4.5, 8: 4.6, 9: 4.6}


def _step_dg(dh: float, ds: float) -> float:
    return dh - T37 * ds / 1000.0


@lru_cache(maxsize=256)
def step_parameters(step: str) -> Optional[Tuple[float, float]]:
    """(dH, dS) for one dinucleotide, taking the most stable expansion of ambiguity codes."""
    if step in NN_TABLE:
        return NN_TABLE[step]
    if len(step) != 2 or step[0] not in IUPAC_BASES or step[1] not in IUPAC_BASES:
        return None
    best = None
    for first in IUPAC_BASES[step[0]]:
        for second in IUPAC_BASES[step[1]]:
            dh, ds = NN_TABLE[first + second]
            if best is None or _step_dg(dh, ds) < _step_dg(*best):
                best = (dh, ds)
    return best


def nearest_neighbor_sums(seq: str) -> Optional[Tuple[float, float]]:
    """Summed (dH, dS) over all steps including initiation, or None for unknown steps."""
    if len(seq) < 2:
        return None
    dh = INIT_DH
    ds = INIT_DS
    for i in range(len(seq) - 1):
        params = step_parameters(seq[i:i + 2])
        if params is None:
            return None
        dh += params[0]
        ds += params[1]
    return dh, ds


def salt_equivalent_mM(na_mM: float, mg_mM: float) -> float:
    """Monovalent-equivalent cation concentration, counting Mg2+ as 4*sqrt([Mg])."""
    return na_mM + 4.0 * math.sqrt(max(mg_mM, 0.0))


def melting_temp(
    seq: str,
    na_mM: float = 50.0,
    mg_mM: float = 0.0,
    primer_conc_nM: float = 500.0,
) -> float:
    """
    Melting temperature in Celsius of ``seq`` against its perfect complement.

    Tm at 1 M NaCl comes from the nearest-neighbor sums with a non-self-
    complementary strand concentration term (C/4), then the Owczarzy (2004)
    GC-dependent salt correction moves it to the requested ionic strength.

    Returns NaN when the sequence is shorter than two bases, contains a
    non-IUPAC symbol, or any concentration is non-positive.
    """
    seq = seq.upper()
    if primer_conc_nM <= 0 or na_mM < 0 or mg_mM < 0:
        return math.nan
    sums = nearest_neighbor_sums(seq)
    if sums is None:
        return math.nan
    dh, ds = sums

    conc = primer_conc_nM * 1e-9
    tm_1m = 1000.0 * dh / (ds + GAS_CONSTANT * math.log(conc / 4.0))

    monovalent = salt_equivalent_mM(na_mM, mg_mM) / 1000.0
    if monovalent <= 0:
        return math.nan
    ln_salt = math.log(monovalent)
    f_gc = gc_fraction(seq)
    inverse_tm = 1.0 / tm_1m + ((4.29 * f_gc - 3.95) * ln_salt + 0.94 * ln_salt ** 2) * 1e-5
    return 1.0 / inverse_tm - KELVIN


def duplex_free_energy(seq: str, symmetric: bool = False) -> float:
    """Free energy (kcal/mol, 37 C) of ``seq`` paired with its complement; NaN if undefined."""
    sums = nearest_neighbor_sums(seq.upper())
    if sums is None:
        return math.nan
    dh, ds = sums
    if symmetric:
        ds += SYMMETRY_DS
    return dh - T37 * ds / 1000.0


def three_prime_dg(seq: str, window: int = 4) -> float:
    """Stability of the last ``window`` bases, a proxy for mispriming from the 3' end."""
    if len(seq) < 2:
        return math.nan
    return duplex_free_energy(seq[-window:], symmetric=True)


def hairpin_loop_penalty(loop_length: int) -> float:
    if loop_length < 3:
        return math.inf
    if loop_length in HAIRPIN_LOOP_PENALTY:
        return HAIRPIN_LOOP_PENALTY[loop_length]
    return HAIRPIN_LOOP_PENALTY[9] + 0.1 * (loop_length - 9)
