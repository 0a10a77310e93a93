import math

import pytest

from primerweaver.services import PrimerCoreSelector, SequenceInputError
from primerweaver.services.sequence_utils import reverse_complement
from .test_data import SCENARIO_INSERT, TEST_INSERT


def test_scenario_insert_core(selector):
    core = selector.select_core(SCENARIO_INSERT, "forward")
    assert core.sequence
    assert 18 <= core.length <= 40
    assert SCENARIO_INSERT.startswith(core.sequence)
    assert not math.isnan(core.melting_temp)
    if core.fallback == "none":
        assert abs(core.melting_temp - 60.0) <= 2.5
    else:
        assert core.fallback == "closest"


def test_reverse_core_comes_from_the_tail(selector):
    core = selector.select_core(SCENARIO_INSERT, "reverse")
    assert core.direction == "reverse"
    assert SCENARIO_INSERT.endswith(reverse_complement(core.sequence))
    assert core.end == len(SCENARIO_INSERT)
    assert core.start == len(SCENARIO_INSERT) - core.length


def test_within_tolerance_prefers_gc_clamp():
    selector = PrimerCoreSelector(target_tm=60.0, tolerance=10.0, min_length=18, max_length=30)
    core = selector.select_core(TEST_INSERT, "forward")
    assert core.within_tolerance
    candidates = [
        selector._candidate(TEST_INSERT, length, "forward") for length in range(18, 31)
    ]
    if any(c.within_tolerance and c.gc_clamp for c in candidates):
        assert core.gc_clamp


def test_closest_fallback_when_tolerance_unreachable():
    selector = PrimerCoreSelector(target_tm=95.0, tolerance=0.5)
    core = selector.select_core("AT" * 30, "forward")
    assert core.fallback == "closest"
    assert not core.within_tolerance
    assert 18 <= core.length <= 40


def test_default_length_when_sequence_is_too_short():
    selector = PrimerCoreSelector(min_length=18, default_length=20)
    core = selector.select_core("ACGTACGTAC", "forward")
    assert core.fallback == "default"
    assert core.length == 10
    assert core.sequence == "ACGTACGTAC"


def test_empty_sequence_is_rejected(selector):
    with pytest.raises(SequenceInputError):
        selector.select_core("", "forward")


def test_unknown_direction_is_rejected(selector):
    with pytest.raises(ValueError):
        selector.select_core(SCENARIO_INSERT, "sideways")


def test_select_core_at_forward_anchor(selector):
    core = selector.select_core_at(TEST_INSERT, 100, "forward")
    assert core.start == 100
    assert TEST_INSERT[core.start:core.end] == core.sequence


def test_select_core_at_reverse_anchor(selector):
    core = selector.select_core_at(TEST_INSERT, 300, "reverse")
    assert core.end == 300
    assert reverse_complement(TEST_INSERT[core.start:core.end]) == core.sequence


def test_selection_is_deterministic(selector):
    first = selector.select_core(TEST_INSERT, "forward")
    second = selector.select_core(TEST_INSERT, "forward")
    assert first == second
