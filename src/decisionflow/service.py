"""Wires configuration, storage, provider and engine together."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Mapping

from decisionflow.config import AppConfig, load_app_config
from decisionflow.engine.executor import FlowExecutionEngine
from decisionflow.engine.validation import GraphIssue, ensure_valid, validate_flow
from decisionflow.providers.base import SubjectFieldProvider
from decisionflow.providers.jira import JiraSubjectFieldProvider
from decisionflow.providers.stored import StoredSubjectFieldProvider
from decisionflow.schemas.enums import ProviderType, StorageBackend
from decisionflow.schemas.flow_models import Flow
from decisionflow.storage import (
    AuditLog,
    ExecutionStateStore,
    FlowStore,
    InMemoryKeyValueStore,
    KeyValueStore,
    SQLiteKeyValueStore,
)

LOGGER = logging.getLogger(__name__)


def build_kv_store(config: AppConfig) -> KeyValueStore:
    """Create the configured key-value substrate."""
    if config.storage.backend == StorageBackend.MEMORY:
        return InMemoryKeyValueStore()
    return SQLiteKeyValueStore(Path(config.storage.db_path))


def build_provider(
    config: AppConfig,
    kv: KeyValueStore,
    env: Mapping[str, str],
) -> SubjectFieldProvider:
    """Create the configured subject field provider."""
    provider = config.provider
    if provider.type == ProviderType.JIRA:
        if not provider.base_url:
            raise ValueError("Jira providers must define base_url")
        return JiraSubjectFieldProvider.from_env(
            base_url=provider.base_url,
            email_env=provider.email_env,
            api_token_env=provider.api_token_env,
            env=env,
            timeout_seconds=provider.timeout_seconds,
        )
    return StoredSubjectFieldProvider(kv)


class DecisionFlowService:
    """Facade over flow storage and the execution engine."""

    def __init__(
        self,
        *,
        config: AppConfig,
        env: Mapping[str, str] | None = None,
        kv: KeyValueStore | None = None,
        provider: SubjectFieldProvider | None = None,
    ) -> None:
        self.config = config
        self.env = dict(os.environ) if env is None else dict(env)
        self.kv = kv if kv is not None else build_kv_store(config)
        self.flow_store = FlowStore(self.kv)
        self.state_store = ExecutionStateStore(self.kv)
        self.audit_log = AuditLog(self.kv)
        self.provider = provider if provider is not None else build_provider(
            config, self.kv, self.env
        )
        self.engine = FlowExecutionEngine(
            flow_store=self.flow_store,
            state_store=self.state_store,
            audit_log=self.audit_log,
            provider=self.provider,
            validate_answers=config.engine.validate_answers,
            max_automatic_steps=config.engine.max_automatic_steps,
        )

    @classmethod
    def from_config_path(
        cls,
        config_path: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
        cli_overrides: Mapping[str, Any] | None = None,
    ) -> "DecisionFlowService":
        active_env = dict(os.environ) if env is None else dict(env)
        config = load_app_config(config_path, env=active_env, cli_overrides=cli_overrides)
        return cls(config=config, env=active_env)

    async def import_flow(
        self,
        payload: Mapping[str, Any],
        *,
        allow_invalid: bool = False,
    ) -> tuple[Flow, list[GraphIssue]]:
        """Validate and store a flow definition.

        Structural errors reject the flow unless ``allow_invalid`` is set;
        warnings are always returned alongside the stored flow.
        """
        flow = Flow.model_validate(dict(payload))
        issues = validate_flow(flow) if allow_invalid else ensure_valid(flow)
        stored = await self.flow_store.save_flow(flow)
        if issues:
            LOGGER.warning("Flow %s stored with %d issue(s)", stored.id, len(issues))
        return stored, issues

    async def aclose(self) -> None:
        """Release provider resources."""
        close = getattr(self.provider, "aclose", None)
        if close is not None:
            await close()
