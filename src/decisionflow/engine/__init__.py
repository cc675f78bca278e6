"""Flow execution exports."""

from decisionflow.engine.conditions import evaluate, is_empty, is_not_empty, loose_equals
from decisionflow.engine.dispatcher import ActionDispatcher
from decisionflow.engine.executor import FlowExecutionEngine
from decisionflow.engine.navigator import next_after_submission, next_node
from decisionflow.engine.validation import GraphIssue, ensure_valid, is_valid, validate_flow

__all__ = [
    "ActionDispatcher",
    "FlowExecutionEngine",
    "GraphIssue",
    "ensure_valid",
    "evaluate",
    "is_empty",
    "is_not_empty",
    "is_valid",
    "loose_equals",
    "next_after_submission",
    "next_node",
    "validate_flow",
]
