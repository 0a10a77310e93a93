import math

import pytest

from primerweaver.services.thermo import (
    duplex_free_energy,
    hairpin_loop_penalty,
    melting_temp,
    salt_equivalent_mM,
    step_parameters,
    three_prime_dg,
)


def test_melting_temp_matches_hand_calculation():
    # dH -151.8 kcal/mol, dS -383.8 cal/mol/K -> 365.45 K at 1 M, 82.65 C at 50 mM Na+
    assert melting_temp("G" * 20, na_mM=50, mg_mM=0, primer_conc_nM=500) == pytest.approx(82.65, abs=0.1)


def test_melting_temp_increases_with_gc_fraction():
    low = melting_temp("A" * 20)
    mid = melting_temp("GA" * 10)
    high = melting_temp("G" * 20)
    assert low < mid < high


def test_melting_temp_increases_with_salt():
    seq = "ATGCGTAGCTAGCTAGCTAG"
    assert melting_temp(seq, na_mM=10) < melting_temp(seq, na_mM=50) < melting_temp(seq, na_mM=200)


def test_magnesium_counts_as_monovalent_equivalent():
    assert salt_equivalent_mM(50, 4) == pytest.approx(58.0)
    seq = "ATGCGTAGCTAGCTAGCTAG"
    assert melting_temp(seq, na_mM=50, mg_mM=2) > melting_temp(seq, na_mM=50, mg_mM=0)


@pytest.mark.parametrize(
    "seq,kwargs",
    [
        ("A", {}),
        ("", {}),
        ("ACGZT", {}),
        ("ACGTACGT", {"primer_conc_nM": 0}),
        ("ACGTACGT", {"na_mM": 0, "mg_mM": 0}),
    ],
)
def test_melting_temp_is_nan_when_undefined(seq, kwargs):
    assert math.isnan(melting_temp(seq, **kwargs))


def test_melting_temp_is_case_insensitive():
    assert melting_temp("acgtacgtacgtacgtac") == melting_temp("ACGTACGTACGTACGTAC")


def test_ambiguous_step_uses_most_stable_expansion():
    # S = C/G: among SS steps CG has the lowest free energy.
    assert step_parameters("SS") == step_parameters("CG")
    assert melting_temp("ACGTNACGTACGTACGTA") >= melting_temp("ACGTAACGTACGTACGTA")


def test_duplex_free_energy_of_single_step():
    # dH -9.8 + 0.2, dS -24.4 - 5.7 at 310.15 K
    assert duplex_free_energy("GC") == pytest.approx(-0.2645, abs=1e-3)


def test_symmetric_duplex_is_less_stable():
    assert duplex_free_energy("GAATTC", symmetric=True) > duplex_free_energy("GAATTC")


def test_duplex_free_energy_undefined_for_single_base():
    assert math.isnan(duplex_free_energy("G"))


def test_three_prime_dg_uses_terminal_window():
    assert three_prime_dg("AAAAAAAAGCGC") == pytest.approx(duplex_free_energy("GCGC", symmetric=True))


def test_hairpin_loop_penalty():
    assert hairpin_loop_penalty(3) == 5.7
    assert hairpin_loop_penalty(9) == 4.6
    assert hairpin_loop_penalty(12) == pytest.approx(4.9)
    assert math.isinf(hairpin_loop_penalty(2))
