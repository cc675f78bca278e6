"""Storage exports."""

from decisionflow.storage.audit_log import AuditLog, audit_key
from decisionflow.storage.flow_store import FlowStore, default_subject_group, flow_key
from decisionflow.storage.kv import (
    InMemoryKeyValueStore,
    KeyValueStore,
    SQLiteKeyValueStore,
    storage_errors,
)
from decisionflow.storage.state_store import ExecutionStateStore, execution_key

__all__ = [
    "AuditLog",
    "ExecutionStateStore",
    "FlowStore",
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "SQLiteKeyValueStore",
    "audit_key",
    "default_subject_group",
    "execution_key",
    "flow_key",
    "storage_errors",
]
