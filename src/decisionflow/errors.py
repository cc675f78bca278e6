"""Domain error taxonomy for flow execution."""

from __future__ import annotations

from typing import Any


class DecisionFlowError(Exception):
    """Base class for errors a presentation layer can render."""

    code = "decisionflow_error"

    def to_payload(self) -> dict[str, Any]:
        """Structured form of the error for presentation layers."""
        return {"error": self.code, "message": str(self)}


class FlowNotFoundError(DecisionFlowError):
    code = "flow_not_found"

    def __init__(self, flow_id: str) -> None:
        super().__init__(f"Flow not found: {flow_id}")
        self.flow_id = flow_id


class StartNodeMissingError(DecisionFlowError):
    code = "start_node_missing"

    def __init__(self, flow_id: str) -> None:
        super().__init__(f"Start node not found in flow: {flow_id}")
        self.flow_id = flow_id


class NodeNotFoundError(DecisionFlowError):
    code = "node_not_found"

    def __init__(self, flow_id: str, node_id: str) -> None:
        super().__init__(f"Node {node_id} not found in flow {flow_id}")
        self.flow_id = flow_id
        self.node_id = node_id


class InvalidAnswerError(DecisionFlowError):
    code = "invalid_answer"

    def __init__(self, node_id: str, reason: str) -> None:
        super().__init__(f"Invalid answer for node {node_id}: {reason}")
        self.node_id = node_id
        self.reason = reason


class FlowValidationError(DecisionFlowError):
    code = "flow_validation_failed"


class StorageError(DecisionFlowError):
    code = "storage_failure"


class ConcurrentModificationError(StorageError):
    code = "concurrent_modification"

    def __init__(
        self,
        subject_id: str,
        flow_id: str,
        expected_version: int,
        actual_version: int,
    ) -> None:
        super().__init__(
            f"Execution state for {subject_id}/{flow_id} changed concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )
        self.expected_version = expected_version
        self.actual_version = actual_version


class ProviderError(DecisionFlowError):
    """Subject field provider failure (network, permission, validation)."""

    code = "provider_failure"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        detail: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail
