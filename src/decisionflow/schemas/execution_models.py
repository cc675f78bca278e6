"""Execution-state and audit-trail contracts."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Union

from pydantic import Field

from decisionflow.schemas.base import FrozenSchemaModel, StrictSchemaModel
from decisionflow.schemas.flow_models import EffectData

AnswerValue = Union[str, int, float, list[str], None]


class ExecutionState(StrictSchemaModel):
    """Durable traversal cursor and accumulated answers for one (subject, flow)."""

    completed: bool = False
    current_node_id: str = Field(min_length=1)
    answers: dict[str, AnswerValue] = Field(default_factory=dict)
    path: list[str] = Field(default_factory=list)
    last_action_succeeded: bool | None = None
    version: int = Field(default=0, ge=0)

    @property
    def reached_terminal(self) -> bool:
        """Whether traversal ended on an effect node."""
        return self.completed

    @classmethod
    def initial(cls, start_node_id: str) -> "ExecutionState":
        """Synthesize the never-touched default positioned at the start node."""
        return cls(current_node_id=start_node_id)


class ActionResult(FrozenSchemaModel):
    """Outcome of one dispatched effect."""

    success: bool
    data: Any = None
    error: str | None = None

    @classmethod
    def ok(cls, data: Any = None) -> "ActionResult":
        return cls(success=True, data=data)

    @classmethod
    def failed(cls, error: str, data: Any = None) -> "ActionResult":
        return cls(success=False, error=error, data=data)


class AuditEntry(FrozenSchemaModel):
    """Immutable record of one executed effect and its outcome."""

    node_id: str = Field(min_length=1)
    effect: EffectData
    result: ActionResult
    timestamp: datetime
    answers_snapshot: dict[str, AnswerValue] = Field(default_factory=dict)
