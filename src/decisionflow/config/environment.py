"""``.env`` discovery for CLI runs."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

LOGGER = logging.getLogger(__name__)

DOTENV_OPT_OUT_VAR = "DECISIONFLOW_DISABLE_DOTENV"


def load_environment_file(env_file: Path | None = None) -> Path | None:
    """Load an explicit env file, or the nearest ``.env`` above the cwd.

    Existing process variables always win. Returns the file that was loaded.
    """
    if os.getenv(DOTENV_OPT_OUT_VAR, "").strip().lower() in {"1", "true", "yes", "on"}:
        return None
    if env_file is not None:
        if not env_file.is_file():
            raise FileNotFoundError(f"Env file not found: {env_file}")
        resolved = env_file
    else:
        discovered = find_dotenv(filename=".env", usecwd=True)
        if not discovered:
            return None
        resolved = Path(discovered)
    load_dotenv(dotenv_path=resolved, override=False)
    LOGGER.debug("Loaded environment from %s", resolved)
    return resolved
