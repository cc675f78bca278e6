"""Redaction of credentials echoed back in provider errors."""

from __future__ import annotations

import re
from typing import Any

REDACTED = "[REDACTED]"
_PREFIXED_PATTERNS = [
    re.compile(r"(?i)\b(authorization\s*:\s*(?:basic|bearer)\s+)[A-Za-z0-9+/=._:-]+"),
    re.compile(r"(?i)\b(api[-_ ]?token\s*[=:]\s*)[\"']?[A-Za-z0-9._:=-]{8,}[\"']?"),
    re.compile(r"(?i)\b(token\s*[=:]\s*)[\"']?[A-Za-z0-9._:=-]{8,}[\"']?"),
    re.compile(r"(?i)\b(password\s*[=:]\s*)[\"']?[^\s\"']{4,}[\"']?"),
]
_ATLASSIAN_TOKEN_PATTERN = re.compile(r"\bATATT[A-Za-z0-9_=-]{16,}")
_URL_CREDENTIALS_PATTERN = re.compile(r"(?i)(https?://)[^/\s:@]+:[^/\s@]+@")


def redact_text(value: str) -> str:
    """Redact secrets from a text value."""
    redacted = value
    for pattern in _PREFIXED_PATTERNS:
        redacted = pattern.sub(r"\1" + REDACTED, redacted)
    redacted = _ATLASSIAN_TOKEN_PATTERN.sub(REDACTED, redacted)
    redacted = _URL_CREDENTIALS_PATTERN.sub(r"\1" + REDACTED + "@", redacted)
    return redacted


def redact_mapping(value: Any) -> Any:
    """Recursively redact strings in nested dictionaries/lists."""
    if isinstance(value, str):
        return redact_text(value)
    if isinstance(value, dict):
        return {k: redact_mapping(v) for k, v in value.items()}
    if isinstance(value, list):
        return [redact_mapping(item) for item in value]
    return value
