"""Configuration loading utilities.

Supports YAML and JSON configuration files with schema validation, plus
environment variable overrides for container deployments.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from procmon.core.errors import InvalidArgument
from procmon.core.schemas import MonitorConfig

logger = logging.getLogger(__name__)

# Environment variable -> (config section or None, field name)
ENV_OVERRIDES: dict[str, tuple[str | None, str]] = {
    "MONITOR_PID": (None, "pid"),
    "MONITOR_PORT": (None, "port"),
    "MONITOR_OWNER_UID": (None, "owner_uid"),
    "MONITOR_HISTORY": (None, "history_capacity"),
    "MONITOR_INTERVAL": ("sampling", "interval_seconds"),
}


def load_config(path: Path | str) -> MonitorConfig:
    """Load and validate a monitor configuration file.

    Args:
        path: Path to YAML or JSON configuration file

    Returns:
        Validated MonitorConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If file format is unsupported
        pydantic.ValidationError: If config is invalid
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    suffix = path.suffix.lower()
    with open(path, encoding="utf-8") as f:
        if suffix in (".yaml", ".yml"):
            data = yaml.safe_load(f)
        elif suffix == ".json":
            data = json.load(f)
        else:
            raise ValueError(f"Unsupported config format: {suffix}. Use .yaml, .yml, or .json")

    return MonitorConfig.model_validate(data or {})


def apply_env_overrides(
    config: MonitorConfig, environ: Mapping[str, str] | None = None
) -> MonitorConfig:
    """Return a copy of ``config`` with MONITOR_* environment variables applied.

    Args:
        config: Base configuration
        environ: Environment mapping (defaults to ``os.environ``)

    Raises:
        InvalidArgument: If a variable holds a non-numeric value
    """
    environ = os.environ if environ is None else environ
    data: dict[str, Any] = config.model_dump()

    for var, (section, field) in ENV_OVERRIDES.items():
        raw = environ.get(var)
        if raw is None or raw.strip() == "":
            continue
        try:
            value: int | float = float(raw) if field == "interval_seconds" else int(raw)
        except ValueError as e:
            raise InvalidArgument(f"Invalid {var}: {raw!r}") from e

        logger.debug(f"Applying {var}={value}")
        if section is None:
            data[field] = value
        else:
            data[section][field] = value

    sampling = data["sampling"]
    if sampling["idle_interval_seconds"] < sampling["interval_seconds"]:
        # Overriding only the active interval drags the idle one along with it
        sampling["idle_interval_seconds"] = sampling["interval_seconds"]

    return MonitorConfig.model_validate(data)
