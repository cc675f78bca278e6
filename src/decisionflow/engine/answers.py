"""Answer validation and normalization for human-answered nodes."""

from __future__ import annotations

import logging
import math
from datetime import date
from typing import Any

from decisionflow.errors import InvalidAnswerError
from decisionflow.schemas.enums import AnswerKind
from decisionflow.schemas.execution_models import AnswerValue
from decisionflow.schemas.flow_models import Node, QuestionNode, StartNode

LOGGER = logging.getLogger(__name__)


def normalize_answer(node: Node, answer: Any) -> AnswerValue:
    """Return the stored form of ``answer`` or raise ``InvalidAnswerError``."""
    if isinstance(node, StartNode):
        return _start_answer(node.id, answer)
    if not isinstance(node, QuestionNode):
        raise InvalidAnswerError(node.id, f"{node.type} nodes are evaluated automatically")

    kind = node.data.answer_kind
    choices = node.data.choices
    if kind == AnswerKind.SINGLE_CHOICE:
        if not isinstance(answer, str) or answer not in choices:
            raise InvalidAnswerError(node.id, f"expected one of {choices}, got {answer!r}")
        return answer
    if kind == AnswerKind.MULTIPLE_CHOICE:
        if not isinstance(answer, (list, tuple)) or not answer:
            raise InvalidAnswerError(node.id, "expected a non-empty list of choices")
        unknown = [item for item in answer if not isinstance(item, str) or item not in choices]
        if unknown:
            raise InvalidAnswerError(node.id, f"unknown choice(s) {unknown!r}")
        return list(dict.fromkeys(answer))
    if kind == AnswerKind.NUMBER:
        return _number_answer(node.id, answer)
    if kind == AnswerKind.DATE:
        return _date_answer(node.id, answer)
    raise InvalidAnswerError(node.id, f"unsupported answer kind {kind}")


def is_answer_value(value: Any) -> bool:
    """Whether ``value`` fits the stored answer variant."""
    if value is None or isinstance(value, str):
        return True
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, float):
        return math.isfinite(value)
    if isinstance(value, (list, tuple)):
        return all(isinstance(item, str) for item in value)
    return False


def coerce_answer_value(node_id: str, answer: Any) -> AnswerValue:
    """Pass ``answer`` through unchanged when it fits the stored variant."""
    if not is_answer_value(answer):
        raise InvalidAnswerError(node_id, f"unsupported answer value {answer!r}")
    return list(answer) if isinstance(answer, tuple) else answer


def _start_answer(node_id: str, answer: Any) -> AnswerValue:
    if is_answer_value(answer):
        return coerce_answer_value(node_id, answer)
    LOGGER.info(
        "Start node %s answer %r does not fit an answer value; recording None", node_id, answer
    )
    return None


def _number_answer(node_id: str, answer: Any) -> AnswerValue:
    if isinstance(answer, bool):
        raise InvalidAnswerError(node_id, "expected a number")
    if isinstance(answer, int):
        return answer
    if isinstance(answer, float):
        if not math.isfinite(answer):
            raise InvalidAnswerError(node_id, "expected a finite number")
        return answer
    if isinstance(answer, str):
        text = answer.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            value = float(text)
        except ValueError:
            raise InvalidAnswerError(node_id, f"expected a number, got {answer!r}") from None
        if not math.isfinite(value):
            raise InvalidAnswerError(node_id, "expected a finite number")
        return value
    raise InvalidAnswerError(node_id, f"expected a number, got {answer!r}")


def _date_answer(node_id: str, answer: Any) -> AnswerValue:
    if isinstance(answer, date):
        return answer.isoformat()[:10]
    if isinstance(answer, str):
        try:
            return date.fromisoformat(answer.strip()[:10]).isoformat()
        except ValueError:
            pass
    raise InvalidAnswerError(node_id, f"expected an ISO date (YYYY-MM-DD), got {answer!r}")
