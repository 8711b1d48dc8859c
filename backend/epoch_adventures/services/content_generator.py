"""Anthropic Content Generator — ContentGenerator implementation over tool-use output.

Invariants:
    - Every call forces a single tool (tool_choice) so output is structured JSON
    - Generator output is parsed through OutlineSchema: shape defects (ENDING
      with choices, missing fields) raise OutlineValidationError carrying
      violations, so the publisher re-requests; a missing tool call is a
      ContentGenerationError (502)
    - Keys outside the outline schema are dropped before parsing
    - Structural validity (reachability, termination) is NOT checked here;
      the publisher validates and re-requests

Design Decisions:
    - Flat tool schema (one node shape with optional fields) instead of the
      discriminated union: simpler for the model, normalized before parsing
    - Client injected: tests pass a fake with the same create_message signature
"""

import logging

from pydantic import ValidationError

from epoch_adventures.core.domain_types import EndingType, NodeType
from epoch_adventures.core.errors import (
    ContentGenerationError, OutlineValidationError,
)
from epoch_adventures.core.graph_validator import Violation, ViolationCode
from epoch_adventures.core.outline import (
    GraphLimits, NodeContent, Outline, OutlineNode,
)
from epoch_adventures.schemas.outline import OutlineSchema

logger = logging.getLogger(__name__)

OUTLINE_TOOL_NAME = "submit_outline"
NARRATIVE_TOOL_NAME = "submit_narrative"

OUTLINE_TOOL = {
    "name": OUTLINE_TOOL_NAME,
    "description": (
        "Submits the complete branching adventure outline. Exactly one START "
        "node; ENDING nodes have no choices; every other node has choices."
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "title": {"type": "string"},
            "description": {"type": "string"},
            "setting": {"type": "string"},
            "nodes": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "id": {
                            "type": "string",
                            "description": "Short unique id, e.g. 'node_1'",
                        },
                        "node_type": {
                            "type": "string",
                            "enum": [t.value for t in NodeType],
                        },
                        "title": {"type": "string"},
                        "synopsis": {"type": "string"},
                        "ending_type": {
                            "type": "string",
                            "enum": [t.value for t in EndingType],
                            "description": "ENDING nodes only",
                        },
                        "choices": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "properties": {
                                    "label": {"type": "string"},
                                    "target_id": {"type": "string"},
                                    "consequence": {"type": "string"},
                                },
                                "required": ["label", "target_id"],
                            },
                        },
                    },
                    "required": ["id", "node_type", "title"],
                },
            },
        },
        "required": ["title", "nodes"],
    },
}

NARRATIVE_TOOL = {
    "name": NARRATIVE_TOOL_NAME,
    "description": "Submits the narrative text for one adventure node.",
    "input_schema": {
        "type": "object",
        "properties": {
            "narrative": {
                "type": "string",
                "description": "Second-person narrative, 150-400 words",
            },
        },
        "required": ["narrative"],
    },
}

OUTLINE_SYSTEM = (
    "You design choose-your-own-adventure stories set in real historical "
    "periods. Plan a directed acyclic story graph: every node must be "
    "reachable from the START node and every path must end at an ENDING node."
)

NARRATIVE_SYSTEM = (
    "You write vivid, historically grounded second-person narration for one "
    "node of a choose-your-own-adventure story. Do not list the choices."
)


class AnthropicContentGenerator:
    """Produces outlines and node narratives through the Anthropic Messages API."""

    def __init__(
        self,
        client,
        model: str,
        max_tokens: int = 8192,
        limits: GraphLimits | None = None,
    ):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self.limits = limits or GraphLimits()

    async def generate_outline(self, concept: str) -> Outline:
        limits = self.limits
        prompt = (
            f"Concept: {concept}\n\n"
            f"Use between {limits.min_nodes} and {limits.max_nodes} nodes. "
            f"Branching nodes have {limits.min_choices_per_node}-"
            f"{limits.max_choices_per_node} choices. No path may be longer "
            f"than {limits.max_path_depth} choices."
        )
        response = await self.client.create_message(
            model=self.model,
            max_tokens=self.max_tokens,
            system=OUTLINE_SYSTEM,
            tools=[OUTLINE_TOOL],
            tool_choice={"type": "tool", "name": OUTLINE_TOOL_NAME},
            messages=[{"role": "user", "content": prompt}],
        )
        raw = _tool_input(response, OUTLINE_TOOL_NAME)
        data, violations = _normalize_outline(raw)
        if violations:
            raise OutlineValidationError([v.to_dict() for v in violations])
        try:
            outline = OutlineSchema.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Generator returned malformed outline: {e}")
            raise OutlineValidationError(_schema_violations(e)) from e
        return outline.to_domain()

    async def generate_content(
        self, node: OutlineNode, outline: Outline,
    ) -> NodeContent:
        choice_lines = "\n".join(f"- {c.label}" for c in node.choices)
        prompt = (
            f"Adventure: {outline.title}\n"
            f"Setting: {outline.setting or outline.description}\n\n"
            f"Node ({node.node_type.value}): {node.title}\n"
            f"Synopsis: {node.synopsis}\n"
        )
        if choice_lines:
            prompt += f"The reader will next choose between:\n{choice_lines}\n"
        response = await self.client.create_message(
            model=self.model,
            max_tokens=self.max_tokens,
            system=NARRATIVE_SYSTEM,
            tools=[NARRATIVE_TOOL],
            tool_choice={"type": "tool", "name": NARRATIVE_TOOL_NAME},
            messages=[{"role": "user", "content": prompt}],
        )
        data = _tool_input(response, NARRATIVE_TOOL_NAME)
        narrative = str(data.get("narrative", "")).strip()
        if not narrative:
            raise ContentGenerationError(
                f"Empty narrative for node '{node.id}'", "invalid_output",
            )
        return NodeContent.from_text(narrative)


def _tool_input(response, tool_name: str) -> dict:
    for block in response.content:
        if getattr(block, "type", None) == "tool_use" and block.name == tool_name:
            return dict(block.input)
    raise ContentGenerationError(
        f"Response has no '{tool_name}' tool call", "invalid_output",
    )


_OUTLINE_KEYS = frozenset({"title", "description", "setting", "nodes"})
_NODE_KEYS = frozenset({
    "id", "node_type", "title", "synopsis", "ending_type", "choices",
})
_CHOICE_KEYS = frozenset({"label", "target_id", "consequence", "description"})


def _known(raw, keys: frozenset) -> dict:
    return {k: v for k, v in dict(raw).items() if k in keys and v is not None}


def _normalize_outline(data: dict) -> tuple[dict, list[Violation]]:
    """Map the flat tool shape onto the discriminated outline schema.

    Unknown keys are dropped. ENDING nodes that carry choices are reported
    as violations instead of being silently pruned.
    """
    nodes, violations = [], []
    for raw in data.get("nodes") or []:
        node = _known(raw, _NODE_KEYS)
        node_type = str(node.get("node_type", "")).upper()
        node["node_type"] = node_type
        choices = [_known(c, _CHOICE_KEYS) for c in node.pop("choices", None) or []]
        if node_type == NodeType.ENDING.value:
            if choices:
                node_id = str(node.get("id", "?"))
                violations.append(Violation(
                    ViolationCode.ENDING_HAS_CHOICES,
                    f"ENDING node '{node_id}' must have no choices",
                    (node_id,),
                ))
        else:
            node.pop("ending_type", None)
            node["choices"] = choices
        nodes.append(node)
    return {**_known(data, _OUTLINE_KEYS), "nodes": nodes}, violations


def _schema_violations(error: ValidationError) -> list[dict]:
    return [
        Violation(
            ViolationCode.MALFORMED_OUTLINE,
            f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}",
        ).to_dict()
        for e in error.errors()
    ]
