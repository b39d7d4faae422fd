"""TOML configuration loader.

Loads engine settings from defaults.toml and decision patterns from
patterns.toml. Both files ship with the package under concord/config/.
"""

from __future__ import annotations

import tomllib
from pathlib import Path

from concord.schemas.engine import DecisionPattern, EngineConfig, ReliabilityConfig

# Default config directory inside the concord package
CONFIG_DIR = Path(__file__).parent / "config"


def _read_toml(path: Path) -> dict:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path, "rb") as f:
        return tomllib.load(f)


def load_engine_config(config_path: Path | None = None) -> EngineConfig:
    """Load engine settings from a TOML file.

    Args:
        config_path: Path to defaults.toml. Defaults to concord/config/defaults.toml.

    Returns:
        EngineConfig with values from the [engine] and [reliability] sections.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If a section is not a table or holds invalid values.
    """
    path = config_path or CONFIG_DIR / "defaults.toml"
    raw = _read_toml(path)

    engine_section = raw.get("engine", {})
    reliability_section = raw.get("reliability", {})
    if not isinstance(engine_section, dict) or not isinstance(reliability_section, dict):
        raise ValueError(f"[engine] and [reliability] must be tables in {path}")

    # pydantic's ValidationError subclasses ValueError
    return EngineConfig(
        **engine_section,
        reliability=ReliabilityConfig(**reliability_section),
    )


def load_patterns(config_path: Path | None = None) -> dict[str, DecisionPattern]:
    """Load decision patterns from a TOML file.

    Args:
        config_path: Path to patterns.toml. Defaults to concord/config/patterns.toml.

    Returns:
        Dictionary mapping decision type to DecisionPattern.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If the [patterns] section is missing or empty.
    """
    path = config_path or CONFIG_DIR / "patterns.toml"
    raw = _read_toml(path)

    section = raw.get("patterns")
    if not section or not isinstance(section, dict):
        raise ValueError(f"No [patterns] section found in {path}")

    patterns: dict[str, DecisionPattern] = {}
    for decision_type, entry in section.items():
        if not isinstance(entry, dict):
            continue
        patterns[decision_type] = DecisionPattern(type=decision_type, **entry)

    return patterns
