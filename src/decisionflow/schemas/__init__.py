"""Schema contract exports."""

from decisionflow.schemas.enums import (
    AnswerKind,
    ComparisonOperator,
    ComparisonSource,
    EffectKind,
    IssueSeverity,
    NodeType,
)
from decisionflow.schemas.execution_models import (
    ActionResult,
    AnswerValue,
    AuditEntry,
    ExecutionState,
)
from decisionflow.schemas.flow_models import (
    BranchData,
    BranchNode,
    Edge,
    EffectData,
    EffectNode,
    Flow,
    Node,
    QuestionData,
    QuestionNode,
    StartNode,
    parse_node,
)

__all__ = [
    "ActionResult",
    "AnswerKind",
    "AnswerValue",
    "AuditEntry",
    "BranchData",
    "BranchNode",
    "ComparisonOperator",
    "ComparisonSource",
    "Edge",
    "EffectData",
    "EffectKind",
    "EffectNode",
    "ExecutionState",
    "Flow",
    "IssueSeverity",
    "Node",
    "NodeType",
    "QuestionData",
    "QuestionNode",
    "StartNode",
    "parse_node",
]
