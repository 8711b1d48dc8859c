"""Outline Factory — small, readable outlines shared by core and service tests.

The branching scenario used throughout:

    S (START) ──"Go left"──▶ A (DECISION) ──"Claim the crown"──▶ E1 (ENDING victory)
              └─"Go right"─▶ B (STORY)    ──"Fall asleep"─────▶ E2 (ENDING defeat)
"""

from epoch_adventures.core.domain_types import EndingType, NodeType
from epoch_adventures.core.outline import Outline, OutlineChoice, make_node


def choice(label, target_id):
    return OutlineChoice(label=label, target_id=target_id)


def branching_outline(title="The Rubicon") -> Outline:
    return Outline(
        title=title,
        description="Caesar weighs crossing the river.",
        setting="Northern Italy, 49 BC",
        nodes=(
            make_node(NodeType.START, "S", "The riverbank", choices=[
                choice("Go left", "A"), choice("Go right", "B"),
            ]),
            make_node(NodeType.DECISION, "A", "The council", choices=[
                choice("Claim the crown", "E1"),
            ]),
            make_node(NodeType.STORY, "B", "The camp", choices=[
                choice("Fall asleep", "E2"),
            ]),
            make_node(NodeType.ENDING, "E1", "Dictator", ending_type=EndingType.VICTORY),
            make_node(NodeType.ENDING, "E2", "Ambushed", ending_type=EndingType.DEFEAT),
        ),
    )


def linear_outline(length: int) -> Outline:
    """START -> n1 -> ... -> n(length-2) -> END: `length` nodes, length-1 choices deep."""
    ids = ["S"] + [f"n{i}" for i in range(1, length - 1)] + ["END"]
    nodes = [make_node(NodeType.START, "S", "Start", choices=[choice("On", ids[1])])]
    for i, node_id in enumerate(ids[1:-1], start=1):
        nodes.append(make_node(
            NodeType.STORY, node_id, f"Step {i}", choices=[choice("On", ids[i + 1])],
        ))
    nodes.append(make_node(NodeType.ENDING, "END", "The end"))
    return Outline(title="Long road", description="", nodes=tuple(nodes))


def outline_payload() -> dict:
    """JSON body equivalent of branching_outline() for the HTTP API."""
    return {
        "title": "The Rubicon",
        "description": "Caesar weighs crossing the river.",
        "setting": "Northern Italy, 49 BC",
        "nodes": [
            {"id": "S", "node_type": "START", "title": "The riverbank", "choices": [
                {"label": "Go left", "target_id": "A"},
                {"label": "Go right", "target_id": "B"},
            ]},
            {"id": "A", "node_type": "DECISION", "title": "The council", "choices": [
                {"label": "Claim the crown", "target_id": "E1"},
            ]},
            {"id": "B", "node_type": "STORY", "title": "The camp", "choices": [
                {"label": "Fall asleep", "target_id": "E2"},
            ]},
            {"id": "E1", "node_type": "ENDING", "title": "Dictator", "ending_type": "victory"},
            {"id": "E2", "node_type": "ENDING", "title": "Ambushed", "ending_type": "defeat"},
        ],
    }
