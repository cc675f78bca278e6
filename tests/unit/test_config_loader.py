"""Configuration loading tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from decisionflow.config.loader import apply_overrides, load_app_config
from decisionflow.config.models import AppConfig, ProviderConfig
from decisionflow.schemas.enums import ProviderType, StorageBackend
from decisionflow.service import build_provider
from decisionflow.storage import InMemoryKeyValueStore


def _write_config(tmp_path: Path, content: str) -> Path:
    config_path = tmp_path / "settings.yaml"
    config_path.write_text(content, encoding="utf-8")
    return config_path


def test_cli_overrides_env_and_yaml_defaults(tmp_path: Path) -> None:
    """CLI override should have highest precedence."""
    config_path = _write_config(
        tmp_path,
        """
schema_version: "1.0.0"
storage:
  backend: "sqlite"
  db_path: "from-yaml.db"
logging:
  level: "INFO"
""".strip(),
    )

    config = load_app_config(
        config_path,
        env={"DECISIONFLOW_DB_PATH": "from-env.db", "DECISIONFLOW_LOG_LEVEL": "warning"},
        cli_overrides={"db_path": tmp_path / "from-cli.db"},
    )
    assert config.storage.db_path == tmp_path / "from-cli.db"
    assert config.logging.level == "WARNING"


def test_env_overrides_yaml(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path, 'storage:\n  backend: "sqlite"\n')
    config = load_app_config(
        config_path,
        env={
            "DECISIONFLOW_STORAGE_BACKEND": "memory",
            "DECISIONFLOW_PROVIDER": "jira-cloud",
            "DECISIONFLOW_JIRA_BASE_URL": "https://example.atlassian.net",
        },
    )
    assert config.storage.backend == StorageBackend.MEMORY
    assert config.provider.type == ProviderType.JIRA
    assert config.provider.base_url == "https://example.atlassian.net"


def test_jira_provider_requires_base_url(tmp_path: Path) -> None:
    """Jira providers must define base_url."""
    config_path = _write_config(tmp_path, 'provider:\n  type: "jira"\n')
    with pytest.raises(ValueError):
        load_app_config(config_path, env={})



def test_provider_factory_rejects_jira_without_base_url() -> None:
    """The factory re-checks base_url on configs built without validation."""
    provider = ProviderConfig.model_construct(type=ProviderType.JIRA, base_url=None)
    config = AppConfig().model_copy(update={"provider": provider})
    with pytest.raises(ValueError, match="base_url"):
        build_provider(config, InMemoryKeyValueStore(), env={})

def test_unknown_keys_and_levels_are_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        load_app_config(_write_config(tmp_path, "engine:\n  retries: 3\n"), env={})
    with pytest.raises(ValueError):
        load_app_config(_write_config(tmp_path, "logging:\n  level: LOUD\n"), env={})


def test_explicit_missing_config_fails(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_app_config(tmp_path / "absent.yaml", env={})


def test_defaults_apply_without_config_file(monkeypatch, tmp_path: Path) -> None:  # type: ignore[no-untyped-def]
    """Built-in defaults apply when the default settings file is absent."""
    monkeypatch.chdir(tmp_path)
    config = load_app_config(env={})
    assert config.storage.backend == StorageBackend.SQLITE
    assert config.provider.type == ProviderType.STORED
    assert config.engine.validate_answers is True
    assert config.engine.max_automatic_steps == 1000


def test_apply_overrides_does_not_mutate_input() -> None:
    raw = {"storage": {"db_path": "a.db"}}
    merged = apply_overrides(raw, {"DECISIONFLOW_DB_PATH": "b.db"}, None)
    assert merged["storage"]["db_path"] == "b.db"
    assert raw["storage"]["db_path"] == "a.db"
