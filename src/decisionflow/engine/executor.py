"""Flow execution engine: drives one (subject, flow) pair forward per submission."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, assert_never

from decisionflow.concurrency import KeyedLock
from decisionflow.constants import BRANCH_FALSE_LABEL, BRANCH_TRUE_LABEL
from decisionflow.engine.answers import coerce_answer_value, normalize_answer
from decisionflow.engine.conditions import evaluate
from decisionflow.engine.dispatcher import ActionDispatcher
from decisionflow.engine.navigator import next_after_submission, next_node
from decisionflow.errors import FlowNotFoundError, NodeNotFoundError, StartNodeMissingError
from decisionflow.providers.base import SubjectFieldProvider
from decisionflow.schemas.enums import ComparisonOperator, ComparisonSource
from decisionflow.schemas.execution_models import AuditEntry, ExecutionState
from decisionflow.schemas.flow_models import (
    BranchNode,
    EffectNode,
    Flow,
    QuestionNode,
    StartNode,
)
from decisionflow.security.redaction import redact_text
from decisionflow.storage.audit_log import AuditLog
from decisionflow.storage.flow_store import FlowStore
from decisionflow.storage.state_store import ExecutionStateStore

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_AUTOMATIC_STEPS = 1000


class FlowExecutionEngine:
    """Resumable interpreter for stored flows.

    A submission records the human's answer, then evaluates branch nodes and
    dispatches at most one effect automatically until traversal reaches the
    next question, an effect, or a dead end. Only then is state persisted.
    Submissions for the same (subject, flow) pair are serialized in-process;
    the state store's version check rejects writers from elsewhere.
    """

    def __init__(
        self,
        *,
        flow_store: FlowStore,
        state_store: ExecutionStateStore,
        audit_log: AuditLog,
        provider: SubjectFieldProvider,
        validate_answers: bool = True,
        max_automatic_steps: int = DEFAULT_MAX_AUTOMATIC_STEPS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if max_automatic_steps < 1:
            raise ValueError("max_automatic_steps must be >= 1")
        self.flow_store = flow_store
        self.state_store = state_store
        self.audit_log = audit_log
        self.provider = provider
        self.dispatcher = ActionDispatcher(provider)
        self.validate_answers = validate_answers
        self.max_automatic_steps = max_automatic_steps
        self._clock = clock or (lambda: datetime.now(UTC))
        self._locks = KeyedLock()

    async def get_execution_state(self, subject_id: str, flow_id: str) -> ExecutionState:
        """Stored state, or the synthesized default (never persisted here)."""
        stored = await self.state_store.load(subject_id, flow_id)
        if stored is not None:
            return stored
        flow = await self._load_flow(flow_id)
        return self._initial_state(flow)

    async def submit_answer(
        self,
        subject_id: str,
        flow_id: str,
        node_id: str,
        answer: Any = None,
    ) -> ExecutionState:
        """Record an answer for ``node_id`` and advance through automatic nodes."""
        async with self._locks.hold((subject_id, flow_id)):
            flow = await self._load_flow(flow_id)
            state = await self.state_store.load(subject_id, flow_id)
            if state is None:
                state = self._initial_state(flow)

            submitted = flow.get_node(node_id)
            if self.validate_answers:
                if submitted is None:
                    raise NodeNotFoundError(flow_id, node_id)
                answer = normalize_answer(submitted, answer)
            else:
                answer = coerce_answer_value(node_id, answer)

            LOGGER.info(
                "Answer submitted for %s/%s at node %s", subject_id, flow_id, node_id
            )
            state.answers[node_id] = answer
            state.path.append(node_id)

            next_id = next_after_submission(flow, submitted, node_id, answer)
            await self._advance(subject_id, flow_id, flow, state, next_id)

            saved = await self.state_store.save(subject_id, flow_id, state)
            LOGGER.info(
                "Execution state updated for %s/%s: current=%s completed=%s",
                subject_id,
                flow_id,
                saved.current_node_id,
                saved.completed,
            )
            return saved

    async def reset_execution(self, subject_id: str, flow_id: str) -> ExecutionState:
        """Discard stored progress; the audit log is kept."""
        async with self._locks.hold((subject_id, flow_id)):
            await self.state_store.delete(subject_id, flow_id)
            flow = await self._load_flow(flow_id)
            LOGGER.info("Execution state reset for %s/%s", subject_id, flow_id)
            return self._initial_state(flow)

    async def list_audit_entries(
        self,
        subject_id: str,
        flow_id: str,
        *,
        newest_first: bool = False,
    ) -> list[AuditEntry]:
        entries = await self.audit_log.list(subject_id, flow_id)
        if newest_first:
            entries.reverse()
        return entries

    async def _advance(
        self,
        subject_id: str,
        flow_id: str,
        flow: Flow,
        state: ExecutionState,
        next_id: str | None,
    ) -> None:
        steps = 0
        while next_id is not None:
            steps += 1
            if steps > self.max_automatic_steps:
                LOGGER.error(
                    "Flow %s exceeded %d automatic steps for %s; stopping at %s",
                    flow_id,
                    self.max_automatic_steps,
                    subject_id,
                    state.current_node_id,
                )
                return

            node = flow.get_node(next_id)
            if node is None:
                LOGGER.warning("Next node not found in flow %s: %s", flow_id, next_id)
                return

            if isinstance(node, BranchNode):
                state.path.append(node.id)
                outcome = await self._evaluate_branch(subject_id, node, state)
                label = BRANCH_TRUE_LABEL if outcome else BRANCH_FALSE_LABEL
                next_id = next_node(flow, node.id, label)
                if next_id is None:
                    LOGGER.warning(
                        "Branch node %s in flow %s has no %r edge; traversal stops at %s",
                        node.id,
                        flow_id,
                        label,
                        state.current_node_id,
                    )
            elif isinstance(node, EffectNode):
                state.path.append(node.id)
                state.current_node_id = node.id
                result = await self.dispatcher.execute(node, subject_id)
                await self.audit_log.append(
                    subject_id,
                    flow_id,
                    AuditEntry(
                        node_id=node.id,
                        effect=node.data.model_copy(deep=True),
                        result=result,
                        timestamp=self._clock(),
                        answers_snapshot=_snapshot(state.answers),
                    ),
                )
                state.completed = True
                state.last_action_succeeded = result.success
                return
            elif isinstance(node, (QuestionNode, StartNode)):
                state.current_node_id = node.id
                return
            else:
                assert_never(node)

    async def _evaluate_branch(
        self,
        subject_id: str,
        node: BranchNode,
        state: ExecutionState,
    ) -> bool:
        data = node.data
        try:
            actual = await self.provider.read_field(subject_id, data.field_key)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning(
                "Reading field %s of %s for branch %s failed; condition treated as false: %s",
                data.field_key,
                subject_id,
                node.id,
                redact_text(str(exc)),
            )
            return False

        if data.comparison_source == ComparisonSource.PRIOR_ANSWER:
            expected = state.answers.get(data.referenced_question_node_id or "")
        else:
            expected = data.comparison_value
        outcome = evaluate(actual, data.operator, expected)
        operator = data.operator
        LOGGER.info(
            "Branch %s: %r %s %r -> %s",
            node.id,
            actual,
            operator.value if isinstance(operator, ComparisonOperator) else operator,
            expected,
            outcome,
        )
        return outcome

    async def _load_flow(self, flow_id: str) -> Flow:
        flow = await self.flow_store.get_flow(flow_id)
        if flow is None:
            raise FlowNotFoundError(flow_id)
        return flow

    @staticmethod
    def _initial_state(flow: Flow) -> ExecutionState:
        start = flow.find_start_node()
        if start is None:
            raise StartNodeMissingError(flow.id or flow.name)
        return ExecutionState.initial(start.id)


def _snapshot(answers: dict[str, Any]) -> dict[str, Any]:
    return {
        node_id: list(value) if isinstance(value, list) else value
        for node_id, value in answers.items()
    }
