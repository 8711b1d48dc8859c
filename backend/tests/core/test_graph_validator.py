"""Graph Validator — structural invariants checked before anything is persisted.

Tests:
    - The branching scenario and a max-size outline are accepted
    - Each rule reports its own violation code (and the others stay silent)
    - Multiple broken rules are all reported in one pass
    - Reachability/cycle/depth helpers behave on small graphs
"""

from dataclasses import replace

from epoch_adventures.core.domain_types import NodeType
from epoch_adventures.core.graph_validator import (
    ViolationCode, find_cycle, longest_path_length, reachable_from,
    validate_outline,
)
from epoch_adventures.core.outline import GraphLimits, Outline, make_node

from tests.outline_factory import branching_outline, choice, linear_outline


def _with_nodes(*nodes) -> Outline:
    return Outline(title="t", description="", nodes=tuple(nodes))


# ==============================================================================
# Acceptance
# ==============================================================================


def test_branching_outline_is_valid():
    report = validate_outline(branching_outline())
    assert report.valid
    assert report.violations == ()
    assert report.to_list() == []


def test_outline_at_node_and_depth_limits_is_valid():
    # 20 nodes in a line -> 19 choices deep, within the default depth of 20
    report = validate_outline(linear_outline(20))
    assert report.valid


def test_diamond_shape_is_valid():
    # Two routes converge on the same node: shared nodes are not cycles
    outline = _with_nodes(
        make_node(NodeType.START, "S", "s", choices=[choice("a", "A"), choice("b", "B")]),
        make_node(NodeType.DECISION, "A", "a", choices=[choice("m", "M")]),
        make_node(NodeType.DECISION, "B", "b", choices=[choice("m", "M")]),
        make_node(NodeType.STORY, "M", "m", choices=[choice("e", "E")]),
        make_node(NodeType.ENDING, "E", "e"),
    )
    assert validate_outline(outline).valid


# ==============================================================================
# Individual rules
# ==============================================================================


def test_too_few_nodes_rejected():
    report = validate_outline(linear_outline(4))
    assert report.codes == {ViolationCode.NODE_COUNT_OUT_OF_RANGE}


def test_too_many_nodes_rejected():
    limits = GraphLimits(max_path_depth=30)
    report = validate_outline(linear_outline(21), limits)
    assert report.codes == {ViolationCode.NODE_COUNT_OUT_OF_RANGE}


def test_custom_limits_change_the_node_range():
    limits = GraphLimits(min_nodes=2, max_nodes=3)
    assert validate_outline(linear_outline(3), limits).valid
    assert not validate_outline(branching_outline(), limits).valid


def test_no_start_node_rejected():
    outline = branching_outline()
    nodes = (make_node(NodeType.DECISION, "S", "no longer start", choices=[
        choice("Go left", "A"), choice("Go right", "B"),
    ]),) + outline.nodes[1:]
    report = validate_outline(replace(outline, nodes=nodes))
    assert ViolationCode.START_NODE_COUNT in report.codes
    # Without a root, shape checks are skipped
    assert ViolationCode.UNREACHABLE_NODE not in report.codes


def test_two_start_nodes_rejected():
    outline = branching_outline()
    extra = make_node(NodeType.START, "S2", "second start", choices=[choice("x", "E1")])
    report = validate_outline(replace(outline, nodes=outline.nodes + (extra,)))
    violation = next(
        v for v in report.violations if v.code is ViolationCode.START_NODE_COUNT
    )
    assert set(violation.node_ids) == {"S", "S2"}


def test_duplicate_node_ids_rejected():
    outline = branching_outline()
    dup = make_node(NodeType.ENDING, "E1", "same id again")
    report = validate_outline(replace(outline, nodes=outline.nodes + (dup,)))
    assert ViolationCode.DUPLICATE_NODE_ID in report.codes


def test_branching_node_without_choices_rejected():
    outline = _with_nodes(
        make_node(NodeType.START, "S", "s", choices=[choice("a", "A"), choice("b", "B")]),
        make_node(NodeType.STORY, "A", "dead end"),
        make_node(NodeType.DECISION, "B", "b", choices=[choice("e", "E")]),
        make_node(NodeType.ENDING, "E", "e"),
        make_node(NodeType.ENDING, "E2", "e2"),
    )
    report = validate_outline(outline)
    assert ViolationCode.CHOICE_COUNT_OUT_OF_RANGE in report.codes
    violation = next(
        v for v in report.violations
        if v.code is ViolationCode.CHOICE_COUNT_OUT_OF_RANGE
    )
    assert violation.node_ids == ("A",)


def test_more_than_max_choices_rejected():
    outline = _with_nodes(
        make_node(NodeType.START, "S", "s", choices=[
            choice(str(i), f"E{i}") for i in range(5)
        ]),
        *[make_node(NodeType.ENDING, f"E{i}", "e") for i in range(5)],
    )
    report = validate_outline(outline)
    assert report.codes == {ViolationCode.CHOICE_COUNT_OUT_OF_RANGE}


def test_unknown_target_rejected():
    outline = branching_outline()
    nodes = list(outline.nodes)
    nodes[1] = make_node(NodeType.DECISION, "A", "The council", choices=[
        choice("Into the void", "nowhere"),
    ])
    report = validate_outline(replace(outline, nodes=tuple(nodes)))
    assert ViolationCode.UNKNOWN_TARGET in report.codes
    violation = next(
        v for v in report.violations if v.code is ViolationCode.UNKNOWN_TARGET
    )
    assert violation.node_ids == ("A", "nowhere")


def test_choice_targeting_start_rejected():
    outline = branching_outline()
    nodes = list(outline.nodes)
    nodes[2] = make_node(NodeType.STORY, "B", "The camp", choices=[
        choice("Fall asleep", "E2"), choice("Go back", "S"),
    ])
    report = validate_outline(replace(outline, nodes=tuple(nodes)))
    assert ViolationCode.TARGETS_START in report.codes


def test_unreachable_node_rejected():
    outline = branching_outline()
    orphan = make_node(NodeType.ENDING, "E3", "Nobody gets here")
    report = validate_outline(replace(outline, nodes=outline.nodes + (orphan,)))
    assert report.codes == {ViolationCode.UNREACHABLE_NODE}
    assert report.violations[0].node_ids == ("E3",)


def test_cycle_rejected():
    outline = _with_nodes(
        make_node(NodeType.START, "S", "s", choices=[choice("a", "A")]),
        make_node(NodeType.DECISION, "A", "a", choices=[choice("b", "B"), choice("e", "E")]),
        make_node(NodeType.STORY, "B", "b", choices=[choice("back", "A")]),
        make_node(NodeType.ENDING, "E", "e"),
        make_node(NodeType.ENDING, "E2", "e2"),
    )
    report = validate_outline(outline)
    assert ViolationCode.CYCLE_DETECTED in report.codes
    cycle = next(
        v for v in report.violations if v.code is ViolationCode.CYCLE_DETECTED
    )
    assert cycle.node_ids[0] == cycle.node_ids[-1]
    assert set(cycle.node_ids) == {"A", "B"}


def test_path_deeper_than_limit_rejected():
    limits = GraphLimits(max_path_depth=3)
    report = validate_outline(linear_outline(6), limits)
    assert report.codes == {ViolationCode.PATH_TOO_DEEP}


def test_all_violations_reported_together():
    outline = _with_nodes(
        make_node(NodeType.START, "S", "s", choices=[choice("x", "missing")]),
        make_node(NodeType.ENDING, "E", "e"),
    )
    report = validate_outline(outline)
    assert {
        ViolationCode.NODE_COUNT_OUT_OF_RANGE,
        ViolationCode.UNKNOWN_TARGET,
        ViolationCode.UNREACHABLE_NODE,
    } <= report.codes
    for item in report.to_list():
        assert set(item) == {"code", "message", "node_ids"}


# ==============================================================================
# Graph helpers
# ==============================================================================


def test_reachable_from_follows_edges_only_forward():
    adjacency = {"S": ["A"], "A": ["B"], "B": [], "C": ["S"]}
    assert reachable_from("S", adjacency) == {"S", "A", "B"}


def test_find_cycle_returns_closed_loop():
    adjacency = {"S": ["A"], "A": ["B"], "B": ["C"], "C": ["A"]}
    assert find_cycle("S", adjacency) == ["A", "B", "C", "A"]


def test_find_cycle_none_for_dag():
    adjacency = {"S": ["A", "B"], "A": ["C"], "B": ["C"], "C": []}
    assert find_cycle("S", adjacency) is None


def test_longest_path_counts_edges():
    adjacency = {"S": ["A", "E"], "A": ["B"], "B": ["E"], "E": []}
    assert longest_path_length("S", adjacency) == 3
    assert longest_path_length("E", adjacency) == 0
