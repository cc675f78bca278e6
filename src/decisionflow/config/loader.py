"""Configuration loading and override resolution."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from decisionflow.config.models import AppConfig

DEFAULT_CONFIG_PATH = Path("config/settings.yaml")


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError("Configuration file must deserialize to a mapping")
    return data


def apply_overrides(
    raw_config: dict[str, Any],
    env: Mapping[str, str],
    cli_overrides: Mapping[str, Any] | None,
) -> dict[str, Any]:
    """Apply precedence: CLI > env > YAML defaults."""
    merged = {
        key: dict(value) if isinstance(value, dict) else value
        for key, value in raw_config.items()
    }
    if env.get("DECISIONFLOW_DB_PATH"):
        merged.setdefault("storage", {})["db_path"] = env["DECISIONFLOW_DB_PATH"]
    if env.get("DECISIONFLOW_STORAGE_BACKEND"):
        merged.setdefault("storage", {})["backend"] = env["DECISIONFLOW_STORAGE_BACKEND"]
    if env.get("DECISIONFLOW_PROVIDER"):
        merged.setdefault("provider", {})["type"] = env["DECISIONFLOW_PROVIDER"]
    if env.get("DECISIONFLOW_JIRA_BASE_URL"):
        merged.setdefault("provider", {})["base_url"] = env["DECISIONFLOW_JIRA_BASE_URL"]
    if env.get("DECISIONFLOW_LOG_LEVEL"):
        merged.setdefault("logging", {})["level"] = env["DECISIONFLOW_LOG_LEVEL"]

    if cli_overrides:
        if cli_overrides.get("db_path") is not None:
            merged.setdefault("storage", {})["db_path"] = str(cli_overrides["db_path"])
        if cli_overrides.get("provider"):
            merged.setdefault("provider", {})["type"] = cli_overrides["provider"]
        if cli_overrides.get("log_level"):
            merged.setdefault("logging", {})["level"] = cli_overrides["log_level"]
    return merged


def load_app_config(
    config_path: Path | None = None,
    *,
    env: Mapping[str, str] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> AppConfig:
    """Load and validate central application config.

    An explicit ``config_path`` must exist; the default path is optional and
    built-in defaults apply when it is absent.
    """
    active_env = os.environ if env is None else env
    if config_path is not None:
        raw = _load_yaml(config_path)
    elif DEFAULT_CONFIG_PATH.exists():
        raw = _load_yaml(DEFAULT_CONFIG_PATH)
    else:
        raw = {}
    merged = apply_overrides(raw, active_env, cli_overrides)
    return AppConfig.model_validate(merged)


def configure_logging(config: AppConfig, *, verbose: bool = False) -> None:
    """Configure root logging from config."""
    level = logging.DEBUG if verbose else getattr(logging, config.logging.level)
    logging.basicConfig(level=level, format=config.logging.format)
