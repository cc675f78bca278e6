"""Flow graph contracts: nodes, edges and the flow definition."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import Field, TypeAdapter, field_validator, model_validator

from decisionflow.schemas.base import StrictSchemaModel
from decisionflow.schemas.enums import (
    AnswerKind,
    ComparisonOperator,
    ComparisonSource,
    EffectKind,
    NodeType,
    normalize_comparison_source,
    normalize_effect_kind,
    normalize_node_type,
)

LOGGER = logging.getLogger(__name__)

CHOICE_KINDS = frozenset({AnswerKind.SINGLE_CHOICE, AnswerKind.MULTIPLE_CHOICE})


class NodePosition(StrictSchemaModel):
    """Editor canvas coordinates; carried through storage, ignored by the engine."""

    x: float = 0.0
    y: float = 0.0


class QuestionData(StrictSchemaModel):
    """Prompt shown to a human and the shape of the expected answer."""

    prompt: str = Field(min_length=1)
    answer_kind: AnswerKind
    choices: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_choices(self) -> "QuestionData":
        if self.answer_kind in CHOICE_KINDS:
            if not self.choices:
                raise ValueError("Choice questions must define at least one choice")
            if any(not choice for choice in self.choices):
                raise ValueError("Choices must be non-empty strings")
        elif self.choices:
            raise ValueError("Only single/multiple choice questions may define choices")
        return self


class BranchData(StrictSchemaModel):
    """Automatic field comparison that forks traversal on true/false."""

    field_key: str = Field(min_length=1)
    operator: ComparisonOperator | str
    comparison_source: ComparisonSource = ComparisonSource.STATIC
    comparison_value: Any = None
    referenced_question_node_id: str | None = None

    @field_validator("operator", mode="after")
    @classmethod
    def resolve_operator(cls, value: ComparisonOperator | str) -> ComparisonOperator | str:
        if isinstance(value, ComparisonOperator):
            return value
        try:
            return ComparisonOperator(value)
        except ValueError:
            LOGGER.warning("Unknown comparison operator %r; the branch will evaluate false", value)
            return value

    @field_validator("comparison_source", mode="before")
    @classmethod
    def normalize_source(cls, value: str | ComparisonSource) -> ComparisonSource:
        return normalize_comparison_source(value)

    @model_validator(mode="after")
    def validate_reference(self) -> "BranchData":
        if (
            self.comparison_source == ComparisonSource.PRIOR_ANSWER
            and not self.referenced_question_node_id
        ):
            raise ValueError(
                "prior_answer comparisons must define referenced_question_node_id"
            )
        return self


class EffectData(StrictSchemaModel):
    """Side-effecting write performed against the subject."""

    effect_kind: EffectKind
    field_key: str | None = None
    field_value: Any = None
    label_text: str | None = None
    comment_body: str | None = None

    @field_validator("effect_kind", mode="before")
    @classmethod
    def normalize_kind(cls, value: str | EffectKind) -> EffectKind:
        return normalize_effect_kind(value)

    @model_validator(mode="after")
    def validate_kind_requirements(self) -> "EffectData":
        if self.effect_kind == EffectKind.SET_FIELD and not self.field_key:
            raise ValueError("set_field effects must define field_key")
        if self.effect_kind == EffectKind.ADD_LABEL and not self.label_text:
            raise ValueError("add_label effects must define label_text")
        if self.effect_kind == EffectKind.ADD_COMMENT and not self.comment_body:
            raise ValueError("add_comment effects must define comment_body")
        return self


class StartNode(StrictSchemaModel):
    id: str = Field(min_length=1)
    type: Literal["start"] = "start"
    position: NodePosition | None = None


class QuestionNode(StrictSchemaModel):
    id: str = Field(min_length=1)
    type: Literal["question"] = "question"
    data: QuestionData
    position: NodePosition | None = None


class BranchNode(StrictSchemaModel):
    id: str = Field(min_length=1)
    type: Literal["branch"] = "branch"
    data: BranchData
    position: NodePosition | None = None


class EffectNode(StrictSchemaModel):
    id: str = Field(min_length=1)
    type: Literal["effect"] = "effect"
    data: EffectData
    position: NodePosition | None = None


Node = Annotated[
    Union[StartNode, QuestionNode, BranchNode, EffectNode],
    Field(discriminator="type"),
]

_NODE_ADAPTER: TypeAdapter[Node] = TypeAdapter(Node)


def parse_node(payload: dict[str, Any]) -> Node:
    """Validate a single node payload, normalizing legacy type names."""
    return _NODE_ADAPTER.validate_python(_normalize_node_payload(payload))


class Edge(StrictSchemaModel):
    """Directed, optionally labelled connection between two nodes."""

    id: str = Field(min_length=1)
    source_node_id: str = Field(min_length=1)
    target_node_id: str = Field(min_length=1)
    label: str | None = None


class Flow(StrictSchemaModel):
    """Stored directed-graph definition of questions, branches and effects."""

    id: str | None = None
    name: str = Field(min_length=1)
    description: str = ""
    bound_subject_groups: list[str] = Field(min_length=1)
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def normalize_legacy_nodes(cls, data: Any) -> Any:
        if not isinstance(data, dict) or not isinstance(data.get("nodes"), list):
            return data
        normalized = dict(data)
        normalized["nodes"] = [
            _normalize_node_payload(node) if isinstance(node, dict) else node
            for node in data["nodes"]
        ]
        return normalized

    @field_validator("id")
    @classmethod
    def validate_id(cls, value: str | None) -> str | None:
        if value is not None and (not value.strip() or ":" in value):
            raise ValueError("Flow ids must be non-empty and must not contain ':'")
        return value

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Flow name is required")
        return value

    @field_validator("bound_subject_groups")
    @classmethod
    def validate_groups(cls, value: list[str]) -> list[str]:
        cleaned = [group.strip() for group in value if group and group.strip()]
        if not cleaned:
            raise ValueError("At least one subject group is required")
        return list(dict.fromkeys(cleaned))

    @model_validator(mode="after")
    def validate_identity(self) -> "Flow":
        node_ids = [node.id for node in self.nodes]
        if len(node_ids) != len(set(node_ids)):
            raise ValueError("Node ids must be unique within a flow")
        edge_ids = [edge.id for edge in self.edges]
        if len(edge_ids) != len(set(edge_ids)):
            raise ValueError("Edge ids must be unique within a flow")
        start_count = sum(1 for node in self.nodes if node.type == NodeType.START)
        if start_count > 1:
            raise ValueError("A flow may define only one start node")
        return self

    def get_node(self, node_id: str) -> Node | None:
        """Return the node with the given id, if present."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def find_start_node(self) -> StartNode | None:
        """Return the flow's start node, if present."""
        for node in self.nodes:
            if isinstance(node, StartNode):
                return node
        return None

    def outgoing_edges(self, node_id: str) -> list[Edge]:
        """Return outgoing edges of a node in declaration order."""
        return [edge for edge in self.edges if edge.source_node_id == node_id]


def _normalize_node_payload(payload: dict[str, Any]) -> dict[str, Any]:
    if "type" not in payload:
        return payload
    normalized = dict(payload)
    normalized["type"] = normalize_node_type(payload["type"]).value
    return normalized
