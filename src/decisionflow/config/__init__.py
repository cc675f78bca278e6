"""Configuration exports."""

from decisionflow.config.loader import DEFAULT_CONFIG_PATH, configure_logging, load_app_config
from decisionflow.config.models import AppConfig

__all__ = [
    "AppConfig",
    "DEFAULT_CONFIG_PATH",
    "configure_logging",
    "load_app_config",
]
