import pytest

from primerweaver.models import DesignParameters, SequenceRecord
from primerweaver.services import (
    AssemblyPlanner,
    DesignInputError,
    SequenceInputError,
    extract_junction_overlap,
    protective_clamp,
    reverse_complement,
    rotate,
    subsequence_circular,
)
from .test_data import (
    GC_ONLY_BACKBONE,
    GC_ONLY_INSERT,
    TEST_BACKBONE,
    TEST_INSERT,
    TEST_INSERT_B,
)

LINKER = "GGTGGCGGTTCAGGCGGAGGTTCTGGCGGT"


@pytest.fixture
def standard_plan(planner, insert_record):
    plan, warnings = planner.build_plan(TEST_BACKBONE, [insert_record])
    return plan, warnings


def test_standard_plan_layout(standard_plan):
    plan, warnings = standard_plan
    assert warnings == []
    assert plan.mode == "standard"
    assert plan.length == 3500
    assert len(plan.seams) == 2
    assert len(plan.junctions) == 2
    assert len(plan.left_overlap) == 25
    assert len(plan.right_overlap) == 25
    assert plan.rotation_offset == 1500


def test_rotation_is_reversible(standard_plan):
    plan, _ = standard_plan
    restored = rotate(plan.assembled_sequence, plan.length - plan.rotation_offset)
    assert restored == TEST_BACKBONE + TEST_INSERT


def test_standard_overlaps_flank_the_insert(standard_plan):
    plan, _ = standard_plan
    assert plan.left_overlap == TEST_BACKBONE[-25:]
    assert plan.right_overlap == TEST_BACKBONE[:25]
    for seam in plan.seams:
        assert 0 < seam.position < plan.length


def test_primer_tails_match_junction_overlaps(planner, standard_plan):
    plan, _ = standard_plan
    pairs, _ = planner.design_primers(plan)
    assert len(pairs) == 1
    pair = pairs[0]
    assert pair.forward.tail == extract_junction_overlap(plan, 0, 25)
    assert pair.reverse.tail == reverse_complement(extract_junction_overlap(plan, 1, 25))
    assert pair.forward.sequence == pair.forward.tail + pair.forward.core.sequence
    assert TEST_INSERT.startswith(pair.forward.core.sequence)
    assert TEST_INSERT.endswith(reverse_complement(pair.reverse.core.sequence))
    assert pair.product_size == len(TEST_INSERT) + 50


def test_linker_holds_the_inter_insert_overlap(planner):
    inserts = [
        SequenceRecord(name="a", sequence=TEST_INSERT),
        SequenceRecord(name="b", sequence=TEST_INSERT_B),
    ]
    plan, _ = planner.build_plan(TEST_BACKBONE, inserts, linkers=[LINKER])
    assert len(plan.seams) == 3
    assert plan.seams[1].kind == "insert"
    assert plan.junctions[1].overlap == LINKER[2:27]
    assert extract_junction_overlap(plan, 1, 25) == LINKER[2:27]

    pairs, _ = planner.design_primers(plan)
    assert pairs[0].reverse.tail == reverse_complement(LINKER[:27])
    assert pairs[1].forward.tail == LINKER[2:]


def test_short_linker_overlap_is_centred_on_the_seam(planner):
    inserts = [
        SequenceRecord(name="a", sequence=TEST_INSERT),
        SequenceRecord(name="b", sequence=TEST_INSERT_B),
    ]
    plan, _ = planner.build_plan(TEST_BACKBONE, inserts)
    junction = plan.junctions[1]
    assert junction.upstream == TEST_INSERT[-12:]
    assert junction.downstream == TEST_INSERT_B[:13]


def test_too_many_linkers_is_rejected(planner, insert_record):
    with pytest.raises(SequenceInputError):
        planner.build_plan(TEST_BACKBONE, [insert_record], linkers=["ACGT"])


def test_empty_backbone_is_rejected(planner, insert_record):
    with pytest.raises(SequenceInputError):
        planner.build_plan("", [insert_record])


def test_scars_are_placed_between_backbone_and_inserts(planner, insert_record):
    plan, _ = planner.build_plan(TEST_BACKBONE, [insert_record], left_scar="AATTC", right_scar="G")
    restored = rotate(plan.assembled_sequence, plan.length - plan.rotation_offset)
    assert restored == TEST_BACKBONE + "G" + TEST_INSERT + "AATTC"


def test_short_construct_warns_about_rotation_margin(planner):
    plan, warnings = planner.build_plan("ACGTTGCAAGGCTTAACCGG", [SequenceRecord(name="x", sequence="GATTACAGATTACA")])
    assert any(w.code == "rotation_margin" for w in warnings)
    assert plan.length == 34


def test_uracil_overlaps_follow_the_motif():
    planner = AssemblyPlanner(parameters=DesignParameters(method="uracil"))
    plan, warnings = planner.build_plan(
        TEST_BACKBONE, [SequenceRecord(name="insert_1", sequence=TEST_INSERT)]
    )
    assert plan.mode == "uracil"
    assert not any(w.code == "uracil_motif_missing" for w in warnings)
    for junction in plan.junctions:
        assert junction.motif_found
        assert junction.overlap.startswith("A")
        assert junction.overlap.endswith("T")
        assert 6 <= len(junction.overlap) <= 13

    pairs, _ = planner.design_primers(plan)
    assert "U" in pairs[0].forward.tail
    assert "U" in pairs[0].reverse.tail
    assert "U" not in pairs[0].forward.core.sequence


def test_uracil_fallback_without_motif():
    planner = AssemblyPlanner(parameters=DesignParameters(method="uracil"))
    plan, warnings = planner.build_plan(
        GC_ONLY_BACKBONE, [SequenceRecord(name="gc", sequence=GC_ONLY_INSERT)]
    )
    missing = [w for w in warnings if w.code == "uracil_motif_missing"]
    assert len(missing) == 2
    for junction in plan.junctions:
        assert junction.motif_found is False
        assert junction.length == 9


def test_mode_argument_overrides_parameters(planner, insert_record):
    plan, _ = planner.build_plan(TEST_BACKBONE, [insert_record], mode="uracil")
    assert plan.mode == "uracil"


def test_choose_rotation_offset_picks_largest_gap(planner):
    assert planner.choose_rotation_offset(100, [10, 20]) == 65
    assert planner.choose_rotation_offset(100, []) == 0


def test_junction_positions_stay_on_the_circle(planner):
    plan, _ = planner.build_plan("ACGTTGCAAGGCTTAACCGG", [SequenceRecord(name="x", sequence="GATTACAGATTACA")])
    assert plan.rotation_offset == 10
    crossing = plan.junctions[0]
    assert (crossing.start, crossing.end) == (19, 10)
    for junction in plan.junctions:
        assert 0 <= junction.start < plan.length
        assert 0 <= junction.end < plan.length
        assert (junction.end - junction.start) % plan.length == junction.length % plan.length
        assert subsequence_circular(plan.assembled_sequence, junction.start, junction.end) == junction.overlap


@pytest.fixture
def restriction_plan(planner, insert_record):
    plan, _ = planner.build_plan(
        TEST_BACKBONE, [insert_record], mode="restriction", left_scar="GAATTC", right_scar="GGATCC"
    )
    return plan


def test_restriction_junctions_are_the_rebuilt_sites(restriction_plan):
    plan = restriction_plan
    assert plan.mode == "restriction"
    assert plan.length == len(TEST_BACKBONE) + 12 + len(TEST_INSERT)
    assert [j.overlap for j in plan.junctions] == ["GGATCC", "GAATTC"]
    assert plan.junctions[0].upstream == "GGATCC"
    assert plan.junctions[1].downstream == "GAATTC"
    assert all(j.motif_found is None for j in plan.junctions)


def test_restriction_primers_are_clamp_site_core(planner, restriction_plan):
    pairs, _ = planner.design_primers(restriction_plan)
    pair = pairs[0]
    forward, reverse = pair.forward, pair.reverse
    assert forward.clamp == protective_clamp(5, 0)
    assert reverse.clamp == protective_clamp(5, 1)
    assert forward.tail == "GGATCC"
    assert reverse.tail == "GAATTC"
    assert forward.sequence == forward.clamp + "GGATCC" + forward.binding_region
    assert reverse.sequence == reverse.clamp + "GAATTC" + reverse.binding_region
    assert TEST_INSERT.startswith(forward.binding_region)
    assert TEST_INSERT.endswith(reverse_complement(reverse.binding_region))
    assert pair.product_size == len(TEST_INSERT) + 12 + 10


def test_restriction_primers_without_clamp(insert_record):
    planner = AssemblyPlanner(parameters=DesignParameters(method="restriction", clamp_length=0))
    plan, _ = planner.build_plan(TEST_BACKBONE, [insert_record], left_scar="GAATTC", right_scar="GGATCC")
    pairs, _ = planner.design_primers(plan)
    assert pairs[0].forward.clamp == ""
    assert pairs[0].forward.sequence.startswith("GGATCC")
    assert pairs[0].product_size == len(TEST_INSERT) + 12


def test_restriction_plan_needs_one_insert_and_both_sites(planner, insert_record):
    second = SequenceRecord(name="insert_2", sequence=TEST_INSERT_B)
    with pytest.raises(DesignInputError):
        planner.build_plan(
            TEST_BACKBONE, [insert_record, second], mode="restriction",
            left_scar="GAATTC", right_scar="GGATCC",
        )
    with pytest.raises(DesignInputError):
        planner.build_plan(TEST_BACKBONE, [insert_record], mode="restriction", left_scar="GAATTC")


def test_protective_clamp_is_stable_and_well_formed():
    assert protective_clamp(0) == ""
    assert protective_clamp(5) == protective_clamp(5)
    for length in range(1, 11):
        clamp = protective_clamp(length)
        assert len(clamp) == length
        assert set(clamp) <= set("ACGT")
        assert clamp != reverse_complement(clamp)
        assert not any(base * 4 in clamp for base in "ACGT")
