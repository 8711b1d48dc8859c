"""Outline Schemas — wire shape of a proposed adventure graph.

Invariants:
    - Nodes are a discriminated union on node_type: ENDING nodes cannot carry
      choices, branching nodes cannot carry ending_type (extra="forbid")
    - Schemas check shape only; counts, reachability and termination are
      reported by the graph validator as violations (422), not as 400s
    - to_domain() is the only path from wire data into core.outline types

Design Decisions:
    - Discriminated union over one all-optional model: malformed variants fail
      at parse time with a field-level error
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from epoch_adventures.core.domain_types import EndingType, NodeType
from epoch_adventures.core.outline import (
    Outline, OutlineChoice, OutlineNode, make_node,
)


class ChoiceSchema(BaseModel):
    """Symbolic edge; target_id names another node in the same outline."""
    model_config = ConfigDict(extra="forbid")

    label: str = Field(min_length=1, max_length=200)
    target_id: str = Field(min_length=1, max_length=100)
    consequence: str = ""
    description: str = ""


class _NodeSchema(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1, max_length=100)
    title: str = Field(min_length=1, max_length=300)
    synopsis: str = ""


class StartNodeSchema(_NodeSchema):
    node_type: Literal["START"]
    choices: list[ChoiceSchema] = []


class DecisionNodeSchema(_NodeSchema):
    node_type: Literal["DECISION"]
    choices: list[ChoiceSchema] = []


class StoryNodeSchema(_NodeSchema):
    node_type: Literal["STORY"]
    choices: list[ChoiceSchema] = []


class EndingNodeSchema(_NodeSchema):
    node_type: Literal["ENDING"]
    ending_type: EndingType = EndingType.NEUTRAL


NodeSchema = Annotated[
    Union[StartNodeSchema, DecisionNodeSchema, StoryNodeSchema, EndingNodeSchema],
    Field(discriminator="node_type"),
]


class OutlineSchema(BaseModel):
    """Complete proposed adventure: metadata plus symbolic nodes."""
    title: str = Field(min_length=1, max_length=300)
    description: str = ""
    setting: str = ""
    nodes: list[NodeSchema] = Field(min_length=1)

    def to_domain(self) -> Outline:
        return Outline(
            title=self.title,
            description=self.description,
            setting=self.setting,
            nodes=tuple(_node_to_domain(n) for n in self.nodes),
        )


def _node_to_domain(node: _NodeSchema) -> OutlineNode:
    node_type = NodeType(node.node_type)
    if isinstance(node, EndingNodeSchema):
        return make_node(
            node_type, node.id, node.title, node.synopsis,
            ending_type=node.ending_type,
        )
    return make_node(
        node_type, node.id, node.title, node.synopsis,
        choices=[
            OutlineChoice(
                label=c.label,
                target_id=c.target_id,
                consequence=c.consequence,
                description=c.description,
            )
            for c in node.choices
        ],
    )
