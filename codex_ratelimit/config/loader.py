"""
Configuration management and loading.

Handles application settings from a YAML file and environment variables.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

DEFAULT_CONFIG_PATH = "~/.codex-ratelimit.yaml"
CONFIG_ENV_VAR = "CODEX_RATELIMIT_CONFIG"
MIN_REFRESH_INTERVAL = 5
DEFAULT_REFRESH_INTERVAL = 10


class LogFormat(Enum):
    """Supported log output formats."""
    TEXT = "text"
    JSON = "json"


_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass(frozen=True)
class ColorConfig:
    """Usage thresholds for colored output."""
    enable: bool = True
    warning_threshold: float = 70.0
    critical_threshold: float = 90.0

    def __post_init__(self):
        """Validate thresholds are ordered percentages."""
        for name in ("warning_threshold", "critical_threshold"):
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise ValueError(f"{name} must be between 0 and 100")
        if self.warning_threshold > self.critical_threshold:
            raise ValueError("warning_threshold must not exceed critical_threshold")


@dataclass(frozen=True)
class AppConfig:
    """Complete application configuration."""
    session_path: str = ""
    refresh_interval: int = DEFAULT_REFRESH_INTERVAL
    enable_logging: bool = False
    log_level: str = "INFO"
    log_format: LogFormat = LogFormat.TEXT
    color: ColorConfig = field(default_factory=ColorConfig)

    def __post_init__(self):
        """Validate log level."""
        if self.log_level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of: {list(_LOG_LEVELS)}")


def clamp_refresh_interval(seconds: int) -> int:
    """Apply the minimum refresh interval."""
    return max(int(seconds), MIN_REFRESH_INTERVAL)


def default_config_path() -> Path:
    """Config file location, honouring CODEX_RATELIMIT_CONFIG."""
    return Path(os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH).expanduser()


def load_config(path: Optional[str] = None) -> AppConfig:
    """Load and validate configuration from a YAML file.

    Strict validation ensures a typo in the config file is reported
    instead of silently falling back to defaults.

    Args:
        path: Path to YAML configuration file. When omitted the default
            location is used, and a missing default file means defaults.

    Returns:
        Validated AppConfig object

    Raises:
        FileNotFoundError: If an explicitly given config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    if path is None:
        config_path = default_config_path()
        if not config_path.exists():
            return AppConfig()
    else:
        config_path = Path(path).expanduser()
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {config_path}: {e}")

    if raw_config is None:
        return AppConfig()
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a dictionary")

    return parse_config(raw_config)


def parse_config(raw_config: Dict[str, Any]) -> AppConfig:
    """Validate a raw configuration mapping.

    Args:
        raw_config: Parsed YAML content

    Returns:
        Validated AppConfig

    Raises:
        ValueError: If configuration is invalid
    """
    allowed_top_keys = {
        'session_path', 'refresh_interval', 'enable_logging',
        'log_level', 'log_format', 'color'
    }
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    kwargs: Dict[str, Any] = {}

    session_path = raw_config.get('session_path')
    if session_path is not None:
        if not isinstance(session_path, str):
            raise ValueError("'session_path' must be a string")
        kwargs['session_path'] = session_path

    if 'refresh_interval' in raw_config:
        interval = raw_config['refresh_interval']
        if isinstance(interval, bool) or not isinstance(interval, int):
            raise ValueError("'refresh_interval' must be an integer number of seconds")
        kwargs['refresh_interval'] = clamp_refresh_interval(interval)

    if 'enable_logging' in raw_config:
        if not isinstance(raw_config['enable_logging'], bool):
            raise ValueError("'enable_logging' must be true or false")
        kwargs['enable_logging'] = raw_config['enable_logging']

    if 'log_level' in raw_config:
        level = raw_config['log_level']
        if not isinstance(level, str) or level.upper() not in _LOG_LEVELS:
            raise ValueError(f"'log_level' must be one of: {list(_LOG_LEVELS)}")
        kwargs['log_level'] = level.upper()

    if 'log_format' in raw_config:
        format_str = raw_config['log_format']
        try:
            kwargs['log_format'] = LogFormat(str(format_str).lower())
        except ValueError:
            valid_formats = [fmt.value for fmt in LogFormat]
            raise ValueError(f"'log_format' must be one of: {valid_formats}")

    if 'color' in raw_config:
        kwargs['color'] = _parse_color_config(raw_config['color'])

    return AppConfig(**kwargs)


def _parse_color_config(data: Any) -> ColorConfig:
    """Parse and validate the color section.

    Args:
        data: Color configuration data

    Returns:
        Validated ColorConfig

    Raises:
        ValueError: If configuration is invalid
    """
    if not isinstance(data, dict):
        raise ValueError("'color' must be a dictionary")

    allowed_keys = {'enable', 'warning_threshold', 'critical_threshold'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in color: {unknown_keys}")

    kwargs: Dict[str, Any] = {}
    if 'enable' in data:
        if not isinstance(data['enable'], bool):
            raise ValueError("'enable' in color must be true or false")
        kwargs['enable'] = data['enable']

    for key in ('warning_threshold', 'critical_threshold'):
        if key in data:
            value = data[key]
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"'{key}' in color must be a number")
            kwargs[key] = float(value)

    return ColorConfig(**kwargs)
