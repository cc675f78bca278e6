"""Test doubles and flow builders shared by unit and integration tests."""

from __future__ import annotations

from typing import Any

from decisionflow.engine.executor import FlowExecutionEngine
from decisionflow.schemas.flow_models import Flow
from decisionflow.storage import (
    AuditLog,
    ExecutionStateStore,
    FlowStore,
    InMemoryKeyValueStore,
    KeyValueStore,
)


class FakeSubjectProvider:
    """Records every call; any method can be told to fail."""

    def __init__(self, fields: dict[str, dict[str, Any]] | None = None) -> None:
        self.fields: dict[str, dict[str, Any]] = fields or {}
        self.labels: dict[str, list[str]] = {}
        self.comments: dict[str, list[Any]] = {}
        self.calls: list[tuple[str, ...]] = []
        self.failures: dict[str, Exception] = {}

    def fail(self, method: str, error: Exception) -> None:
        self.failures[method] = error

    def _maybe_fail(self, method: str) -> None:
        error = self.failures.get(method)
        if error is not None:
            raise error

    async def read_field(self, subject_id: str, field_key: str) -> Any:
        self.calls.append(("read_field", subject_id, field_key))
        self._maybe_fail("read_field")
        return self.fields.get(subject_id, {}).get(field_key)

    async def write_field(self, subject_id: str, field_key: str, value: Any) -> Any:
        self.calls.append(("write_field", subject_id, field_key))
        self._maybe_fail("write_field")
        self.fields.setdefault(subject_id, {})[field_key] = value
        return None

    async def add_label(self, subject_id: str, label_text: str) -> Any:
        self.calls.append(("add_label", subject_id, label_text))
        self._maybe_fail("add_label")
        self.labels.setdefault(subject_id, []).append(label_text)
        return None

    async def add_comment(self, subject_id: str, rich_text: Any) -> Any:
        self.calls.append(("add_comment", subject_id))
        self._maybe_fail("add_comment")
        self.comments.setdefault(subject_id, []).append(rich_text)
        return {"id": "10001", "body": rich_text}

    def rich_text(self, text: str) -> Any:
        return {"type": "doc", "text": text}


class EngineHarness:
    """Engine plus direct handles on its stores for assertions."""

    def __init__(
        self,
        provider: FakeSubjectProvider,
        kv: KeyValueStore | None = None,
        **engine_kwargs: Any,
    ) -> None:
        self.kv = kv if kv is not None else InMemoryKeyValueStore()
        self.provider = provider
        self.flow_store = FlowStore(self.kv)
        self.state_store = ExecutionStateStore(self.kv)
        self.audit_log = AuditLog(self.kv)
        self.engine = FlowExecutionEngine(
            flow_store=self.flow_store,
            state_store=self.state_store,
            audit_log=self.audit_log,
            provider=provider,
            **engine_kwargs,
        )

    async def store(self, flow: Flow) -> Flow:
        return await self.flow_store.save_flow(flow)


def build_flow(nodes: list[dict[str, Any]], edges: list[tuple], **overrides: Any) -> Flow:
    """Build a flow from node dicts and ``(source, target[, label])`` tuples."""
    payload: dict[str, Any] = {
        "id": overrides.pop("id", "flow-1"),
        "name": overrides.pop("name", "Test flow"),
        "bound_subject_groups": overrides.pop("bound_subject_groups", ["PROJ"]),
        "nodes": nodes,
        "edges": [
            {
                "id": f"edge-{index}",
                "source_node_id": edge[0],
                "target_node_id": edge[1],
                "label": edge[2] if len(edge) > 2 else None,
            }
            for index, edge in enumerate(edges)
        ],
    }
    payload.update(overrides)
    return Flow.model_validate(payload)


def start(node_id: str = "start") -> dict[str, Any]:
    return {"id": node_id, "type": "start"}


def question(
    node_id: str,
    kind: str = "single",
    choices: list[str] | None = None,
) -> dict[str, Any]:
    data: dict[str, Any] = {"prompt": f"Question {node_id}?", "answer_kind": kind}
    if kind in {"single", "multiple"}:
        data["choices"] = choices or ["A", "B"]
    return {"id": node_id, "type": "question", "data": data}


def branch(
    node_id: str,
    field_key: str = "status",
    operator: str = "equals",
    value: Any = "Done",
    *,
    prior_answer_of: str | None = None,
) -> dict[str, Any]:
    data: dict[str, Any] = {"field_key": field_key, "operator": operator}
    if prior_answer_of is None:
        data.update({"comparison_source": "static", "comparison_value": value})
    else:
        data.update(
            {"comparison_source": "prior_answer", "referenced_question_node_id": prior_answer_of}
        )
    return {"id": node_id, "type": "branch", "data": data}


def add_label(node_id: str, label: str) -> dict[str, Any]:
    return {
        "id": node_id,
        "type": "effect",
        "data": {"effect_kind": "add_label", "label_text": label},
    }


def example_flow() -> Flow:
    """Start -> Q1 -> Branch(status equals Done) -> done-path / open-path labels."""
    return build_flow(
        [
            start(),
            question("q1", "single", ["A", "B"]),
            branch("b1", "status", "equals", "Done"),
            add_label("e-done", "done-path"),
            add_label("e-open", "open-path"),
        ],
        [
            ("start", "q1"),
            ("q1", "b1"),
            ("b1", "e-done", "true"),
            ("b1", "e-open", "false"),
        ],
    )
