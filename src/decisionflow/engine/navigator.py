"""Edge-following helpers over a flow graph."""

from __future__ import annotations

from decisionflow.schemas.enums import AnswerKind
from decisionflow.schemas.execution_models import AnswerValue
from decisionflow.schemas.flow_models import Flow, Node, QuestionNode


def next_node(flow: Flow, from_node_id: str, branch_label: str | None = None) -> str | None:
    """Target of the first outgoing edge, optionally restricted to a label."""
    for edge in flow.edges:
        if edge.source_node_id != from_node_id:
            continue
        if branch_label is None or edge.label == branch_label:
            return edge.target_node_id
    return None


def next_after_submission(
    flow: Flow,
    submitted_node: Node | None,
    submitted_node_id: str,
    answer: AnswerValue,
) -> str | None:
    """Successor of a node a human just answered (start or question).

    Single-choice questions route along the edge labelled with the chosen
    answer, falling back to the first outgoing edge. Every other answer kind
    continues along the first outgoing edge.
    """
    if (
        isinstance(submitted_node, QuestionNode)
        and submitted_node.data.answer_kind == AnswerKind.SINGLE_CHOICE
        and isinstance(answer, str)
    ):
        labelled = next_node(flow, submitted_node_id, answer)
        if labelled is not None:
            return labelled
    return next_node(flow, submitted_node_id)
