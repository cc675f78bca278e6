"""Subject field provider contract."""

from __future__ import annotations

from typing import Any, Protocol


class SubjectFieldProvider(Protocol):
    """Reads and writes fields on the external record a flow runs against.

    Every method may raise; callers normalize failures.
    """

    async def read_field(self, subject_id: str, field_key: str) -> Any:
        """Return the current value of ``field_key`` (str, number, list or None)."""

    async def write_field(self, subject_id: str, field_key: str, value: Any) -> Any:
        """Overwrite a single field."""

    async def add_label(self, subject_id: str, label_text: str) -> Any:
        """Add a label to the subject."""

    async def add_comment(self, subject_id: str, rich_text: Any) -> Any:
        """Append a comment already wrapped by ``rich_text``."""

    def rich_text(self, text: str) -> Any:
        """Wrap plain text in the provider's rich-document envelope."""


def adf_document(text: str) -> dict[str, Any]:
    """Atlassian Document Format envelope holding one paragraph of text."""
    return {
        "type": "doc",
        "version": 1,
        "content": [
            {
                "type": "paragraph",
                "content": [{"type": "text", "text": text}],
            }
        ],
    }
