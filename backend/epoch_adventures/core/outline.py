"""Outline — symbolic, not-yet-persisted description of an adventure graph.

Invariants:
    - Node variants are tagged by node_type: branching nodes (START, DECISION,
      STORY) carry choices, EndingNode carries ending_type and never choices
    - Choices reference targets by SymbolicId, never by storage id
    - All dataclasses are frozen: an outline is a value, builders never mutate it

Design Decisions:
    - Tagged variant over one all-optional record: the type says which fields exist
    - GraphLimits lives here (not in config): core stays free of settings imports
"""

from dataclasses import dataclass
from typing import ClassVar

from epoch_adventures.core.domain_types import EndingType, NodeType, SymbolicId


@dataclass(frozen=True)
class OutlineChoice:
    """Symbolic edge from the owning node to target_id."""
    label: str
    target_id: SymbolicId
    consequence: str = ""
    description: str = ""


@dataclass(frozen=True)
class OutlineNode:
    """Common node fields. Use one of the concrete variants below."""
    node_type: ClassVar[NodeType]

    id: SymbolicId
    title: str
    synopsis: str = ""

    @property
    def choices(self) -> tuple[OutlineChoice, ...]:
        return ()


@dataclass(frozen=True)
class BranchingNode(OutlineNode):
    """Node with outgoing choices."""
    outgoing: tuple[OutlineChoice, ...] = ()

    @property
    def choices(self) -> tuple[OutlineChoice, ...]:
        return self.outgoing


@dataclass(frozen=True)
class StartNode(BranchingNode):
    node_type: ClassVar[NodeType] = NodeType.START


@dataclass(frozen=True)
class DecisionNode(BranchingNode):
    node_type: ClassVar[NodeType] = NodeType.DECISION


@dataclass(frozen=True)
class StoryNode(BranchingNode):
    node_type: ClassVar[NodeType] = NodeType.STORY


@dataclass(frozen=True)
class EndingNode(OutlineNode):
    node_type: ClassVar[NodeType] = NodeType.ENDING

    ending_type: EndingType = EndingType.NEUTRAL


NODE_VARIANTS: dict[NodeType, type[OutlineNode]] = {
    NodeType.START: StartNode,
    NodeType.DECISION: DecisionNode,
    NodeType.STORY: StoryNode,
    NodeType.ENDING: EndingNode,
}


@dataclass(frozen=True)
class Outline:
    """Complete symbolic graph plus the adventure-level metadata."""
    title: str
    description: str
    nodes: tuple[OutlineNode, ...]
    setting: str = ""

    def node_by_id(self) -> dict[SymbolicId, OutlineNode]:
        """Index by symbolic id. Later duplicates win; the validator reports them."""
        return {node.id: node for node in self.nodes}

    def start_nodes(self) -> list[OutlineNode]:
        return [n for n in self.nodes if n.node_type is NodeType.START]


@dataclass(frozen=True)
class NodeContent:
    """Narrative produced by the content generator for one node."""
    narrative: str
    word_count: int = 0

    @classmethod
    def from_text(cls, narrative: str) -> "NodeContent":
        return cls(narrative=narrative, word_count=len(narrative.split()))


@dataclass(frozen=True)
class GraphLimits:
    """Structural bounds an outline must respect."""
    min_nodes: int = 5
    max_nodes: int = 20
    min_choices_per_node: int = 1
    max_choices_per_node: int = 4
    max_path_depth: int = 20

    def __post_init__(self):
        if self.min_choices_per_node < 1:
            raise ValueError("min_choices_per_node must be >= 1")
        if self.min_nodes > self.max_nodes:
            raise ValueError("min_nodes must not exceed max_nodes")
        if self.min_choices_per_node > self.max_choices_per_node:
            raise ValueError(
                "min_choices_per_node must not exceed max_choices_per_node",
            )


def make_node(
    node_type: NodeType,
    node_id: str,
    title: str,
    synopsis: str = "",
    choices: list[OutlineChoice] | tuple[OutlineChoice, ...] = (),
    ending_type: EndingType | None = None,
) -> OutlineNode:
    """Build the variant matching node_type. Rejects fields the variant lacks."""
    if node_type is NodeType.ENDING:
        if choices:
            raise ValueError(f"ENDING node '{node_id}' cannot have choices")
        return EndingNode(
            id=SymbolicId(node_id), title=title, synopsis=synopsis,
            ending_type=ending_type or EndingType.NEUTRAL,
        )
    if ending_type is not None:
        raise ValueError(f"{node_type.value} node '{node_id}' cannot have ending_type")
    variant = NODE_VARIANTS[node_type]
    return variant(
        id=SymbolicId(node_id), title=title, synopsis=synopsis,
        outgoing=tuple(choices),
    )

