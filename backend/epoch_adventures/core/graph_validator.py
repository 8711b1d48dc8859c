"""Graph Validator — structural invariants an outline must satisfy before persistence.

Invariants:
    - validate_outline is PURE: returns a ValidationReport, never raises
    - Every violated rule is reported (no early exit) so a generator can be
      asked to fix all problems in one regeneration
    - Graph-shape checks (reachability, cycles, depth) run only when exactly one
      START exists — without a root they are meaningless
    - Unknown choice targets are reported once and excluded from the adjacency

Design Decisions:
    - Acyclic reachable graph required: a cycle is an unbounded path, so
      "every path reaches an ENDING within max_path_depth" cannot hold with one
    - Iterative DFS over recursion: depth is bounded by config, not by the interpreter
    - Same function re-validates a persisted graph (builder rebuilds an Outline
      keyed by real ids), so accept/persist use one definition of "valid"
"""

from dataclasses import dataclass, field
from enum import Enum

from epoch_adventures.core.domain_types import NodeType
from epoch_adventures.core.outline import GraphLimits, Outline


class ViolationCode(str, Enum):
    """Machine-readable outline rule identifiers."""
    NODE_COUNT_OUT_OF_RANGE = "NODE_COUNT_OUT_OF_RANGE"
    DUPLICATE_NODE_ID = "DUPLICATE_NODE_ID"
    START_NODE_COUNT = "START_NODE_COUNT"
    CHOICE_COUNT_OUT_OF_RANGE = "CHOICE_COUNT_OUT_OF_RANGE"
    UNKNOWN_TARGET = "UNKNOWN_TARGET"
    TARGETS_START = "TARGETS_START"
    UNREACHABLE_NODE = "UNREACHABLE_NODE"
    CYCLE_DETECTED = "CYCLE_DETECTED"
    PATH_TOO_DEEP = "PATH_TOO_DEEP"
    ENDING_HAS_CHOICES = "ENDING_HAS_CHOICES"
    MALFORMED_OUTLINE = "MALFORMED_OUTLINE"


@dataclass(frozen=True)
class Violation:
    """One broken invariant, with the node ids involved."""
    code: ViolationCode
    message: str
    node_ids: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "code": self.code.value,
            "message": self.message,
            "node_ids": list(self.node_ids),
        }


@dataclass(frozen=True)
class ValidationReport:
    """Acceptance iff violations is empty."""
    violations: tuple[Violation, ...] = field(default_factory=tuple)

    @property
    def valid(self) -> bool:
        return not self.violations

    @property
    def codes(self) -> set[ViolationCode]:
        return {v.code for v in self.violations}

    def to_list(self) -> list[dict]:
        return [v.to_dict() for v in self.violations]


def validate_outline(
    outline: Outline, limits: GraphLimits | None = None,
) -> ValidationReport:
    """Check every structural rule against the outline. Pure, no IO."""
    limits = limits or GraphLimits()
    violations: list[Violation] = []
    violations.extend(_check_node_count(outline, limits))
    violations.extend(_check_duplicate_ids(outline))

    starts = outline.start_nodes()
    if len(starts) != 1:
        violations.append(Violation(
            ViolationCode.START_NODE_COUNT,
            f"Must have exactly 1 START node, found {len(starts)}",
            tuple(n.id for n in starts),
        ))

    violations.extend(_check_choice_counts(outline, limits))
    edge_violations, adjacency = _check_edges(outline)
    violations.extend(edge_violations)

    if len(starts) == 1:
        violations.extend(
            _check_shape(outline, starts[0].id, adjacency, limits),
        )
    return ValidationReport(tuple(violations))


# ─── Local rules ─────────────────────────────────────────────────

def _check_node_count(outline: Outline, limits: GraphLimits) -> list[Violation]:
    count = len(outline.nodes)
    if limits.min_nodes <= count <= limits.max_nodes:
        return []
    return [Violation(
        ViolationCode.NODE_COUNT_OUT_OF_RANGE,
        f"Outline has {count} nodes; allowed range is "
        f"{limits.min_nodes}-{limits.max_nodes}",
    )]


def _check_duplicate_ids(outline: Outline) -> list[Violation]:
    seen: set[str] = set()
    duplicates: list[str] = []
    for node in outline.nodes:
        if node.id in seen and node.id not in duplicates:
            duplicates.append(node.id)
        seen.add(node.id)
    if not duplicates:
        return []
    return [Violation(
        ViolationCode.DUPLICATE_NODE_ID,
        f"Duplicate node ids: {', '.join(duplicates)}",
        tuple(duplicates),
    )]


def _check_choice_counts(outline: Outline, limits: GraphLimits) -> list[Violation]:
    violations = []
    for node in outline.nodes:
        if node.node_type is NodeType.ENDING:
            continue
        count = len(node.choices)
        if not limits.min_choices_per_node <= count <= limits.max_choices_per_node:
            violations.append(Violation(
                ViolationCode.CHOICE_COUNT_OUT_OF_RANGE,
                f"{node.node_type.value} node '{node.id}' has {count} choices; "
                f"allowed range is {limits.min_choices_per_node}-"
                f"{limits.max_choices_per_node}",
                (node.id,),
            ))
    return violations


def _check_edges(outline: Outline) -> tuple[list[Violation], dict[str, list[str]]]:
    """Report bad targets; return adjacency over known targets only."""
    index = outline.node_by_id()
    violations = []
    adjacency: dict[str, list[str]] = {node.id: [] for node in outline.nodes}
    for node in outline.nodes:
        for choice in node.choices:
            target = index.get(choice.target_id)
            if target is None:
                violations.append(Violation(
                    ViolationCode.UNKNOWN_TARGET,
                    f"Node '{node.id}' has choice pointing to non-existent "
                    f"node '{choice.target_id}'",
                    (node.id, choice.target_id),
                ))
                continue
            if target.node_type is NodeType.START:
                violations.append(Violation(
                    ViolationCode.TARGETS_START,
                    f"Node '{node.id}' has choice pointing back to START "
                    f"node '{choice.target_id}'",
                    (node.id, choice.target_id),
                ))
            adjacency[node.id].append(choice.target_id)
    return violations, adjacency


# ─── Graph shape ─────────────────────────────────────────────────

def _check_shape(
    outline: Outline, start_id: str,
    adjacency: dict[str, list[str]], limits: GraphLimits,
) -> list[Violation]:
    violations = []
    reachable = reachable_from(start_id, adjacency)
    unreachable = [n.id for n in outline.nodes if n.id not in reachable]
    if unreachable:
        violations.append(Violation(
            ViolationCode.UNREACHABLE_NODE,
            f"Unreachable nodes: {', '.join(unreachable)}",
            tuple(unreachable),
        ))

    cycle = find_cycle(start_id, adjacency)
    if cycle:
        violations.append(Violation(
            ViolationCode.CYCLE_DETECTED,
            f"Cycle never guaranteed to reach an ENDING: {' -> '.join(cycle)}",
            tuple(cycle),
        ))
        return violations

    depth = longest_path_length(start_id, adjacency)
    if depth > limits.max_path_depth:
        violations.append(Violation(
            ViolationCode.PATH_TOO_DEEP,
            f"Longest path from START takes {depth} choices; "
            f"maximum is {limits.max_path_depth}",
            (start_id,),
        ))
    return violations


def reachable_from(start_id: str, adjacency: dict[str, list[str]]) -> set[str]:
    """Forward closure from start_id (breadth-first)."""
    seen = {start_id}
    frontier = [start_id]
    while frontier:
        next_frontier = []
        for node_id in frontier:
            for child in adjacency.get(node_id, ()):
                if child not in seen:
                    seen.add(child)
                    next_frontier.append(child)
        frontier = next_frontier
    return seen


def find_cycle(start_id: str, adjacency: dict[str, list[str]]) -> list[str] | None:
    """First cycle reachable from start_id as [a, b, ..., a], else None."""
    on_path: set[str] = {start_id}
    done: set[str] = set()
    path = [start_id]
    stack = [iter(adjacency.get(start_id, ()))]
    while stack:
        for child in stack[-1]:
            if child in on_path:
                return path[path.index(child):] + [child]
            if child not in done:
                on_path.add(child)
                path.append(child)
                stack.append(iter(adjacency.get(child, ())))
                break
        else:
            stack.pop()
            finished = path.pop()
            on_path.discard(finished)
            done.add(finished)
    return None


def longest_path_length(start_id: str, adjacency: dict[str, list[str]]) -> int:
    """Max number of edges on any path from start_id. Requires an acyclic graph."""
    depth: dict[str, int] = {}
    stack = [(start_id, False)]
    while stack:
        node_id, expanded = stack.pop()
        if node_id in depth:
            continue
        children = adjacency.get(node_id, ())
        if expanded:
            depth[node_id] = 1 + max(
                (depth[c] for c in children), default=-1,
            )
            continue
        stack.append((node_id, True))
        stack.extend((c, False) for c in children if c not in depth)
    return depth[start_id]
