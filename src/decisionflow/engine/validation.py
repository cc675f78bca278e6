"""Offline structural checks for a flow graph.

The engine degrades silently at runtime when a graph is malformed (a branch
missing its ``false`` edge simply stops traversal). These checks surface the
same problems before a flow is bound to any subject.
"""

from __future__ import annotations

from collections import Counter, deque

from decisionflow.constants import BRANCH_FALSE_LABEL, BRANCH_TRUE_LABEL
from decisionflow.errors import FlowValidationError
from decisionflow.schemas.base import StrictSchemaModel
from decisionflow.schemas.enums import (
    AnswerKind,
    ComparisonOperator,
    ComparisonSource,
    IssueSeverity,
)
from decisionflow.schemas.flow_models import (
    BranchNode,
    EffectNode,
    Flow,
    QuestionNode,
    StartNode,
)

BRANCH_LABELS = (BRANCH_TRUE_LABEL, BRANCH_FALSE_LABEL)


class GraphIssue(StrictSchemaModel):
    """One structural problem found in a flow."""

    severity: IssueSeverity
    code: str
    message: str
    node_id: str | None = None
    edge_id: str | None = None


def validate_flow(flow: Flow) -> list[GraphIssue]:
    """Return every structural issue in ``flow``; an empty list means well-formed."""
    issues: list[GraphIssue] = []
    node_ids = {node.id for node in flow.nodes}

    for edge in flow.edges:
        for endpoint in (edge.source_node_id, edge.target_node_id):
            if endpoint not in node_ids:
                issues.append(
                    _error(
                        "dangling_edge",
                        f"Edge {edge.id} references missing node {endpoint}",
                        edge_id=edge.id,
                    )
                )

    for node in flow.nodes:
        outgoing = flow.outgoing_edges(node.id)
        if isinstance(node, StartNode):
            if len(outgoing) != 1:
                issues.append(
                    _error(
                        "start_out_degree",
                        f"Start node must have exactly one outgoing edge, found {len(outgoing)}",
                        node_id=node.id,
                    )
                )
        elif isinstance(node, BranchNode):
            issues.extend(_branch_issues(flow, node))
        elif isinstance(node, QuestionNode):
            issues.extend(_question_issues(flow, node))
        elif isinstance(node, EffectNode):
            for edge in outgoing:
                issues.append(
                    _warning(
                        "ignored_edge",
                        f"Edge {edge.id} leaves effect node {node.id}; effects end traversal",
                        node_id=node.id,
                        edge_id=edge.id,
                    )
                )

    start = flow.find_start_node()
    if start is None:
        issues.append(_error("missing_start", "Flow has no start node"))
        return issues

    reachable = _reachable_from(flow, start.id)
    for node in flow.nodes:
        if node.id not in reachable:
            issues.append(
                _error(
                    "unreachable_node",
                    f"Node {node.id} is not reachable from the start node",
                    node_id=node.id,
                )
            )
    return issues


def is_valid(issues: list[GraphIssue]) -> bool:
    """True when no error-severity issue is present."""
    return not any(issue.severity == IssueSeverity.ERROR for issue in issues)


def ensure_valid(flow: Flow) -> list[GraphIssue]:
    """Raise ``FlowValidationError`` on errors; return remaining warnings."""
    issues = validate_flow(flow)
    errors = [issue for issue in issues if issue.severity == IssueSeverity.ERROR]
    if errors:
        summary = "; ".join(issue.message for issue in errors)
        raise FlowValidationError(f"Flow {flow.id or flow.name} is malformed: {summary}")
    return issues


def _branch_issues(flow: Flow, node: BranchNode) -> list[GraphIssue]:
    issues: list[GraphIssue] = []
    outgoing = flow.outgoing_edges(node.id)
    label_counts = Counter(edge.label for edge in outgoing)
    for label in BRANCH_LABELS:
        if label_counts[label] == 0:
            issues.append(
                _error(
                    "branch_missing_edge",
                    f"Branch node {node.id} has no '{label}' edge",
                    node_id=node.id,
                )
            )
        elif label_counts[label] > 1:
            issues.append(
                _warning(
                    "duplicate_branch_label",
                    f"Branch node {node.id} has {label_counts[label]} '{label}' edges; "
                    "only the first is followed",
                    node_id=node.id,
                )
            )
    for edge in outgoing:
        if edge.label not in BRANCH_LABELS:
            issues.append(
                _warning(
                    "ignored_edge",
                    f"Edge {edge.id} from branch node {node.id} has label {edge.label!r}",
                    node_id=node.id,
                    edge_id=edge.id,
                )
            )

    data = node.data
    if not isinstance(data.operator, ComparisonOperator):
        issues.append(
            _warning(
                "unknown_operator",
                f"Branch node {node.id} uses unknown operator {data.operator!r}; "
                "it always evaluates false",
                node_id=node.id,
            )
        )
    if data.comparison_source == ComparisonSource.PRIOR_ANSWER:
        referenced = flow.get_node(data.referenced_question_node_id or "")
        if not isinstance(referenced, QuestionNode):
            issues.append(
                _error(
                    "invalid_answer_reference",
                    f"Branch node {node.id} compares against "
                    f"{data.referenced_question_node_id}, which is not a question node",
                    node_id=node.id,
                )
            )
    return issues


def _question_issues(flow: Flow, node: QuestionNode) -> list[GraphIssue]:
    issues: list[GraphIssue] = []
    outgoing = flow.outgoing_edges(node.id)
    if node.data.answer_kind == AnswerKind.SINGLE_CHOICE:
        for edge in outgoing:
            if edge.label is not None and edge.label not in node.data.choices:
                issues.append(
                    _warning(
                        "unmatched_choice_label",
                        f"Edge {edge.id} label {edge.label!r} matches no choice of "
                        f"question {node.id}",
                        node_id=node.id,
                        edge_id=edge.id,
                    )
                )
        return issues
    for edge in outgoing[1:]:
        issues.append(
            _warning(
                "ignored_edge",
                f"Edge {edge.id} is never followed; {node.data.answer_kind.value} "
                "questions continue along their first edge",
                node_id=node.id,
                edge_id=edge.id,
            )
        )
    return issues


def _reachable_from(flow: Flow, start_id: str) -> set[str]:
    seen = {start_id}
    queue = deque([start_id])
    while queue:
        current = queue.popleft()
        if isinstance(flow.get_node(current), EffectNode):
            continue
        for edge in flow.outgoing_edges(current):
            if edge.target_node_id not in seen:
                seen.add(edge.target_node_id)
                queue.append(edge.target_node_id)
    return seen


def _error(code: str, message: str, **ids: str | None) -> GraphIssue:
    return GraphIssue(severity=IssueSeverity.ERROR, code=code, message=message, **ids)


def _warning(code: str, message: str, **ids: str | None) -> GraphIssue:
    return GraphIssue(severity=IssueSeverity.WARNING, code=code, message=message, **ids)
