"""
Configuration management and loading.

Handles the optional YAML settings file. CLI flags override file values,
which override the built-in defaults.
"""

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from ccmonitor.core.report import MAX_COST_LIMIT
from ccmonitor.core.rolling import DEFAULT_COST_LIMIT, FULL_SPAN_HOURS
from ccmonitor.core.scheduler import DEFAULT_WATCH_INTERVAL, MIN_WATCH_INTERVAL
from ccmonitor.storage.paths import CONFIG_FILENAME

ALLOWED_KEYS = {"data_dir", "claude_dir", "cost_limit", "watch_interval", "full_span_hours"}


@dataclass(frozen=True)
class MonitorConfig:
    """Complete monitor configuration."""
    data_dir: Optional[str] = None
    claude_dir: Optional[str] = None
    cost_limit: float = DEFAULT_COST_LIMIT
    watch_interval: int = DEFAULT_WATCH_INTERVAL
    full_span_hours: int = FULL_SPAN_HOURS

    def __post_init__(self):
        """Validate numeric settings."""
        if not math.isfinite(self.cost_limit) or not 0 < self.cost_limit <= MAX_COST_LIMIT:
            raise ValueError(f"cost_limit must be > 0 and <= {MAX_COST_LIMIT:g}")
        if self.watch_interval < MIN_WATCH_INTERVAL:
            raise ValueError(f"watch_interval must be >= {MIN_WATCH_INTERVAL}")
        if self.full_span_hours <= 0:
            raise ValueError("full_span_hours must be > 0")


def load_monitor_config(path: Union[str, Path]) -> MonitorConfig:
    """Load and validate monitor configuration from a YAML file.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated MonitorConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if raw_config is None:
        return MonitorConfig()
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration file must contain a mapping")

    unknown_keys = set(raw_config.keys()) - ALLOWED_KEYS
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    return MonitorConfig(
        data_dir=_optional_str(raw_config, 'data_dir'),
        claude_dir=_optional_str(raw_config, 'claude_dir'),
        cost_limit=_number(raw_config, 'cost_limit', DEFAULT_COST_LIMIT),
        watch_interval=int(_number(raw_config, 'watch_interval', DEFAULT_WATCH_INTERVAL)),
        full_span_hours=int(_number(raw_config, 'full_span_hours', FULL_SPAN_HOURS)),
    )


def load_default_config(data_dir: Path) -> MonitorConfig:
    """Load <data_dir>/config.yaml if present, otherwise return defaults."""
    config_path = Path(data_dir) / CONFIG_FILENAME
    if not config_path.exists():
        return MonitorConfig()
    return load_monitor_config(config_path)


def _optional_str(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str) or not value:
        raise ValueError(f"'{key}' must be a non-empty string")
    return value


def _number(data: Dict[str, Any], key: str, default: float) -> float:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"'{key}' must be a number")
    return float(value)
