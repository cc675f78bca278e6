"""Flow definitions keyed by ``flow:{flowId}`` plus a well-known id index."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from uuid import uuid4

from decisionflow.constants import EXECUTION_KEY_PREFIX, FLOW_INDEX_KEY, FLOW_KEY_PREFIX
from decisionflow.schemas.flow_models import Flow
from decisionflow.storage.kv import KeyValueStore, storage_errors

LOGGER = logging.getLogger(__name__)

SubjectGroupResolver = Callable[[str], str]


def default_subject_group(subject_id: str) -> str:
    """Group of a subject id such as ``PROJ-123`` -> ``PROJ``."""
    return subject_id.split("-", 1)[0]


def flow_key(flow_id: str) -> str:
    return f"{FLOW_KEY_PREFIX}{flow_id}"


class FlowStore:
    """Load/save flow graphs by id."""

    def __init__(
        self,
        kv: KeyValueStore,
        *,
        group_resolver: SubjectGroupResolver = default_subject_group,
    ) -> None:
        self.kv = kv
        self.group_resolver = group_resolver

    async def get_flow(self, flow_id: str) -> Flow | None:
        """Return the stored flow or None."""
        with storage_errors(f"load flow {flow_id}"):
            payload = await self.kv.get(flow_key(flow_id))
            flow = None if payload is None else Flow.model_validate(payload)
        return flow

    async def list_flows(self) -> list[Flow]:
        """Return every indexed flow in index order; dangling ids are skipped."""
        flows: list[Flow] = []
        for flow_id in await self._flow_ids():
            flow = await self.get_flow(flow_id)
            if flow is not None:
                flows.append(flow)
        return flows

    async def save_flow(self, flow: Flow) -> Flow:
        """Create or update a flow, assigning an id and timestamps."""
        now = datetime.now(UTC)
        stored = flow.model_copy(deep=True)
        if not stored.id:
            stored.id = str(uuid4())
            stored.created_at = now
        elif stored.created_at is None:
            stored.created_at = now
        stored.updated_at = now
        with storage_errors("save flow"):
            await self.kv.set(flow_key(stored.id), stored.model_dump(mode="json"))
            flow_ids = await self._flow_ids()
            if stored.id not in flow_ids:
                flow_ids.append(stored.id)
                await self.kv.set(FLOW_INDEX_KEY, flow_ids)
        LOGGER.info("Flow saved: %s", stored.id)
        return stored

    async def delete_flow(self, flow_id: str) -> int:
        """Delete a flow and every execution state bound to it.

        Audit logs are retained. Returns the number of execution states removed.
        """
        removed = 0
        with storage_errors("delete flow"):
            await self.kv.delete(flow_key(flow_id))
            flow_ids = [existing for existing in await self._flow_ids() if existing != flow_id]
            await self.kv.set(FLOW_INDEX_KEY, flow_ids)
            for key in await self.kv.keys(EXECUTION_KEY_PREFIX):
                if key.rsplit(":", 1)[-1] == flow_id:
                    await self.kv.delete(key)
                    removed += 1
        LOGGER.info("Flow deleted: %s (%d execution state(s) removed)", flow_id, removed)
        return removed

    async def flows_for_subject(self, subject_id: str) -> list[Flow]:
        """Flows bound to the subject's group."""
        group = self.group_resolver(subject_id)
        return [flow for flow in await self.list_flows() if group in flow.bound_subject_groups]

    async def _flow_ids(self) -> list[str]:
        with storage_errors("load flow index"):
            flow_ids = await self.kv.get(FLOW_INDEX_KEY)
        return list(flow_ids or [])
