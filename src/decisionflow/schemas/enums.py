"""Enum definitions for canonical flow contracts."""

from __future__ import annotations

from enum import Enum


class NodeType(str, Enum):
    START = "start"
    QUESTION = "question"
    BRANCH = "branch"
    EFFECT = "effect"


class AnswerKind(str, Enum):
    SINGLE_CHOICE = "single"
    MULTIPLE_CHOICE = "multiple"
    DATE = "date"
    NUMBER = "number"


class ComparisonOperator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "notEquals"
    CONTAINS = "contains"
    GREATER_THAN = "greaterThan"
    LESS_THAN = "lessThan"
    IS_EMPTY = "isEmpty"
    IS_NOT_EMPTY = "isNotEmpty"


class ComparisonSource(str, Enum):
    STATIC = "static"
    PRIOR_ANSWER = "prior_answer"


class EffectKind(str, Enum):
    SET_FIELD = "set_field"
    ADD_LABEL = "add_label"
    ADD_COMMENT = "add_comment"


class IssueSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


LEGACY_NODE_TYPE_MAP: dict[str, NodeType] = {
    "start": NodeType.START,
    "question": NodeType.QUESTION,
    "branch": NodeType.BRANCH,
    "logic": NodeType.BRANCH,
    "effect": NodeType.EFFECT,
    "action": NodeType.EFFECT,
}

LEGACY_COMPARISON_SOURCE_MAP: dict[str, ComparisonSource] = {
    "static": ComparisonSource.STATIC,
    "prior_answer": ComparisonSource.PRIOR_ANSWER,
    "question": ComparisonSource.PRIOR_ANSWER,
}

LEGACY_EFFECT_KIND_MAP: dict[str, EffectKind] = {
    "set_field": EffectKind.SET_FIELD,
    "setfield": EffectKind.SET_FIELD,
    "add_label": EffectKind.ADD_LABEL,
    "addlabel": EffectKind.ADD_LABEL,
    "add_comment": EffectKind.ADD_COMMENT,
    "addcomment": EffectKind.ADD_COMMENT,
}


def normalize_node_type(raw_value: str | NodeType) -> NodeType:
    """Normalize node type labels, including editor legacy names."""
    if isinstance(raw_value, NodeType):
        return raw_value
    normalized = LEGACY_NODE_TYPE_MAP.get(str(raw_value).strip().lower())
    if normalized is None:
        raise ValueError(f"Unsupported node type: {raw_value}")
    return normalized


def normalize_comparison_source(raw_value: str | ComparisonSource) -> ComparisonSource:
    """Normalize comparison source labels into canonical enum values."""
    if isinstance(raw_value, ComparisonSource):
        return raw_value
    normalized = LEGACY_COMPARISON_SOURCE_MAP.get(str(raw_value).strip().lower())
    if normalized is None:
        raise ValueError(f"Unsupported comparison source: {raw_value}")
    return normalized


def normalize_effect_kind(raw_value: str | EffectKind) -> EffectKind:
    """Normalize effect kind labels (snake_case or camelCase)."""
    if isinstance(raw_value, EffectKind):
        return raw_value
    normalized = LEGACY_EFFECT_KIND_MAP.get(str(raw_value).strip().lower())
    if normalized is None:
        raise ValueError(f"Unsupported effect kind: {raw_value}")
    return normalized


class StorageBackend(str, Enum):
    MEMORY = "memory"
    SQLITE = "sqlite"


class ProviderType(str, Enum):
    STORED = "stored"
    JIRA = "jira"


LEGACY_PROVIDER_MAP: dict[str, ProviderType] = {
    "stored": ProviderType.STORED,
    "local": ProviderType.STORED,
    "jira": ProviderType.JIRA,
    "jira-cloud": ProviderType.JIRA,
    "jira_cloud": ProviderType.JIRA,
}


def normalize_provider_type(raw_value: str | ProviderType) -> ProviderType:
    """Normalize provider labels into canonical enum values."""
    if isinstance(raw_value, ProviderType):
        return raw_value
    normalized = LEGACY_PROVIDER_MAP.get(raw_value.strip().lower())
    if normalized is None:
        raise ValueError(f"Unsupported provider type: {raw_value}")
    return normalized
