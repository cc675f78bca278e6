"""Append-only audit trail keyed by ``audit:{subjectId}:{flowId}``."""

from __future__ import annotations

from decisionflow.concurrency import KeyedLock
from decisionflow.constants import AUDIT_KEY_PREFIX
from decisionflow.schemas.execution_models import AuditEntry
from decisionflow.storage.kv import KeyValueStore, storage_errors


def audit_key(subject_id: str, flow_id: str) -> str:
    return f"{AUDIT_KEY_PREFIX}{subject_id}:{flow_id}"


class AuditLog:
    """Ordered, append-only list of effect records per (subject, flow)."""

    def __init__(self, kv: KeyValueStore) -> None:
        self.kv = kv
        self._locks = KeyedLock()

    async def append(self, subject_id: str, flow_id: str, entry: AuditEntry) -> None:
        key = audit_key(subject_id, flow_id)
        async with self._locks.hold(key):
            with storage_errors("append audit entry"):
                entries = await self.kv.get(key) or []
                entries.append(entry.model_dump(mode="json"))
                await self.kv.set(key, entries)

    async def list(self, subject_id: str, flow_id: str) -> list[AuditEntry]:
        """Entries in insertion order (oldest first)."""
        with storage_errors("load audit log"):
            entries = await self.kv.get(audit_key(subject_id, flow_id)) or []
            decoded = [AuditEntry.model_validate(entry) for entry in entries]
        return decoded
