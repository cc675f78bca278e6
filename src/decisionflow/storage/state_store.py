"""Durable execution state keyed by ``exec:{subjectId}:{flowId}``."""

from __future__ import annotations

from decisionflow.concurrency import KeyedLock
from decisionflow.constants import EXECUTION_KEY_PREFIX
from decisionflow.errors import ConcurrentModificationError
from decisionflow.schemas.execution_models import ExecutionState
from decisionflow.storage.kv import KeyValueStore, storage_errors


def execution_key(subject_id: str, flow_id: str) -> str:
    return f"{EXECUTION_KEY_PREFIX}{subject_id}:{flow_id}"


class ExecutionStateStore:
    """Load/save/delete execution state with an optimistic version check."""

    def __init__(self, kv: KeyValueStore) -> None:
        self.kv = kv
        self._locks = KeyedLock()

    async def load(self, subject_id: str, flow_id: str) -> ExecutionState | None:
        with storage_errors("load execution state"):
            payload = await self.kv.get(execution_key(subject_id, flow_id))
            state = None if payload is None else ExecutionState.model_validate(payload)
        return state

    async def save(self, subject_id: str, flow_id: str, state: ExecutionState) -> ExecutionState:
        """Persist ``state`` if nobody saved since it was loaded.

        ``state.version`` must equal the stored version (0 when nothing is
        stored). The persisted copy, carrying the incremented version, is
        returned.
        """
        key = execution_key(subject_id, flow_id)
        async with self._locks.hold(key):
            with storage_errors("save execution state"):
                current = await self.kv.get(key)
                current_version = int(current.get("version", 0)) if current else 0
                if current_version != state.version:
                    raise ConcurrentModificationError(
                        subject_id, flow_id, state.version, current_version
                    )
                saved = state.model_copy(update={"version": state.version + 1}, deep=True)
                await self.kv.set(key, saved.model_dump(mode="json"))
        return saved

    async def delete(self, subject_id: str, flow_id: str) -> None:
        key = execution_key(subject_id, flow_id)
        async with self._locks.hold(key):
            with storage_errors("delete execution state"):
                await self.kv.delete(key)
