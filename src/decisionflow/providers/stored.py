"""Subject fields kept in the key-value substrate under ``subject:{subjectId}``."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from decisionflow.concurrency import KeyedLock
from decisionflow.constants import SUBJECT_KEY_PREFIX
from decisionflow.providers.base import adf_document
from decisionflow.storage.kv import KeyValueStore

LABELS_FIELD = "labels"
COMMENTS_FIELD = "comments"


def subject_key(subject_id: str) -> str:
    return f"{SUBJECT_KEY_PREFIX}{subject_id}"


class StoredSubjectFieldProvider:
    """Offline provider for local runs; labels are de-duplicated."""

    def __init__(self, kv: KeyValueStore) -> None:
        self.kv = kv
        self._locks = KeyedLock()

    async def read_field(self, subject_id: str, field_key: str) -> Any:
        fields = await self.kv.get(subject_key(subject_id)) or {}
        return fields.get(field_key)

    async def read_fields(self, subject_id: str) -> dict[str, Any]:
        return dict(await self.kv.get(subject_key(subject_id)) or {})

    async def write_field(self, subject_id: str, field_key: str, value: Any) -> Any:
        async with self._locks.hold(subject_id):
            fields = await self.read_fields(subject_id)
            fields[field_key] = value
            await self.kv.set(subject_key(subject_id), fields)
        return {"fieldKey": field_key, "value": value}

    async def add_label(self, subject_id: str, label_text: str) -> Any:
        async with self._locks.hold(subject_id):
            fields = await self.read_fields(subject_id)
            labels = list(fields.get(LABELS_FIELD) or [])
            if label_text not in labels:
                labels.append(label_text)
            fields[LABELS_FIELD] = labels
            await self.kv.set(subject_key(subject_id), fields)
        return {"labels": labels}

    async def add_comment(self, subject_id: str, rich_text: Any) -> Any:
        comment = {
            "id": str(uuid4()),
            "created": datetime.now(UTC).isoformat(),
            "body": rich_text,
        }
        async with self._locks.hold(subject_id):
            fields = await self.read_fields(subject_id)
            comments = list(fields.get(COMMENTS_FIELD) or [])
            comments.append(comment)
            fields[COMMENTS_FIELD] = comments
            await self.kv.set(subject_key(subject_id), fields)
        return comment

    def rich_text(self, text: str) -> Any:
        return adf_document(text)
