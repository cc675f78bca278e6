"""Jira Cloud REST v3 subject field provider."""

from __future__ import annotations

import logging
from typing import Any, Mapping
from urllib.parse import quote

import httpx

from decisionflow.errors import ProviderError
from decisionflow.providers.base import adf_document
from decisionflow.security.redaction import redact_text

LOGGER = logging.getLogger(__name__)

ISSUE_PATH = "/rest/api/3/issue/{issue_key}"
COMMENT_PATH = "/rest/api/3/issue/{issue_key}/comment"


class JiraSubjectFieldProvider:
    """Subject = Jira issue key; fields, labels and comments via REST."""

    def __init__(
        self,
        *,
        base_url: str,
        email: str | None = None,
        api_token: str | None = None,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        auth = httpx.BasicAuth(email, api_token) if email and api_token else None
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            auth=auth,
            timeout=timeout_seconds,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    @classmethod
    def from_env(
        cls,
        *,
        base_url: str,
        email_env: str,
        api_token_env: str,
        env: Mapping[str, str],
        timeout_seconds: float = 30.0,
    ) -> "JiraSubjectFieldProvider":
        """Build a provider whose credentials live in environment variables."""
        email = env.get(email_env)
        api_token = env.get(api_token_env)
        if not email or not api_token:
            LOGGER.warning(
                "Jira credentials missing (%s/%s); requests will be anonymous",
                email_env,
                api_token_env,
            )
        return cls(
            base_url=base_url,
            email=email,
            api_token=api_token,
            timeout_seconds=timeout_seconds,
        )

    async def __aenter__(self) -> "JiraSubjectFieldProvider":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def read_field(self, subject_id: str, field_key: str) -> Any:
        response = await self._request(
            "GET",
            _issue_path(subject_id),
            action="read issue",
            params={"fields": field_key},
        )
        payload = response.json()
        fields = payload.get("fields") or {}
        return fields.get(field_key)

    async def write_field(self, subject_id: str, field_key: str, value: Any) -> Any:
        await self._request(
            "PUT",
            _issue_path(subject_id),
            action="set field",
            json={"fields": {field_key: value}},
        )
        return {"fieldKey": field_key, "value": value}

    async def add_label(self, subject_id: str, label_text: str) -> Any:
        await self._request(
            "PUT",
            _issue_path(subject_id),
            action="add label",
            json={"update": {"labels": [{"add": label_text}]}},
        )
        return {"label": label_text}

    async def add_comment(self, subject_id: str, rich_text: Any) -> Any:
        response = await self._request(
            "POST",
            COMMENT_PATH.format(issue_key=quote(subject_id, safe="")),
            action="add comment",
            json={"body": rich_text},
        )
        return response.json()

    def rich_text(self, text: str) -> Any:
        return adf_document(text)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        action: str,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise ProviderError(f"Failed to {action}: {redact_text(str(exc))}") from exc
        if response.is_success:
            return response
        detail = redact_text(response.text)
        LOGGER.error("Failed to %s: %s - %s", action, response.status_code, detail)
        raise ProviderError(
            f"API error: {response.status_code}",
            status_code=response.status_code,
            detail=detail,
        )


def _issue_path(subject_id: str) -> str:
    return ISSUE_PATH.format(issue_key=quote(subject_id, safe=""))
