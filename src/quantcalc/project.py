"""Project-level configuration and scaffolding."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from quantcalc.formulas.parser import DEFAULT_MAX_DEPTH, MAX_DEPTH_CEILING

CONFIG_FILENAME = "quantcalc.yaml"

DEFAULT_CONFIG = {
    "max_depth": DEFAULT_MAX_DEPTH,
    "logging_enabled": True,
    "logging_fsync": False,
    "logging_tail_bytes": 2_097_152,  # 2 MB
}

DEFAULT_CONFIG_YAML = """\
# quantcalc project config
# Maximum nesting depth of a formula (parentheses, calls and operator chains).
max_depth: {max_depth}

# Structured event log under logs/events.ndjson
logging_enabled: true
logging_fsync: false
# logging_tail_bytes: 2097152
"""


def load_project_config(project_dir: Path) -> dict[str, Any]:
    """Load project configuration from ``quantcalc.yaml``, with defaults.

    Args:
        project_dir: Root of the quantcalc project.

    Returns:
        Merged configuration dict.

    Raises:
        ValueError: If the config file is not a YAML mapping.
    """
    config = dict(DEFAULT_CONFIG)
    config_path = project_dir / CONFIG_FILENAME
    if config_path.exists():
        user_config = yaml.safe_load(config_path.read_text()) or {}
        if not isinstance(user_config, dict):
            raise ValueError(f"{config_path} must contain a YAML mapping")
        config.update(user_config)
    return config


def get_max_depth(project_dir: Path | None) -> int:
    """Return the configured nesting limit for *project_dir*.

    Args:
        project_dir: Root of the quantcalc project, or ``None`` for defaults.

    Returns:
        A depth limit between 1 and ``MAX_DEPTH_CEILING``.

    Raises:
        ValueError: If ``max_depth`` is not an integer in that range.
    """
    if project_dir is None:
        return DEFAULT_MAX_DEPTH
    value = load_project_config(project_dir).get("max_depth")
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"max_depth must be a positive integer, got {value!r}")
    if value > MAX_DEPTH_CEILING:
        raise ValueError(
            f"max_depth must not exceed {MAX_DEPTH_CEILING}, got {value}"
        )
    return value


def scaffold_project(target: Path) -> Path:
    """Create a project directory with a default ``quantcalc.yaml``.

    Args:
        target: Directory to create (or an existing empty directory).

    Returns:
        The project directory path.

    Raises:
        FileExistsError: If a config file already exists at *target*.
    """
    target.mkdir(parents=True, exist_ok=True)
    config_path = target / CONFIG_FILENAME
    if config_path.exists():
        raise FileExistsError(f"Config already exists: {config_path}")
    config_path.write_text(DEFAULT_CONFIG_YAML.format(max_depth=DEFAULT_MAX_DEPTH))
    (target / "logs").mkdir(exist_ok=True)
    return target
