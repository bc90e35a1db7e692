"""Configuration loading for smartblock.

Loads settings from TOML config file with CLI override support.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import tomli

from smartblock.models import Severity
from smartblock.policies.classifier import ClassifierConfig

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised when a config value is present but unusable."""


def get_default_config_path() -> Path:
    """Get the default config file path."""
    return Path.home() / ".config" / "smartblock" / "smartblock.toml"


def get_config_search_paths() -> list[Path]:
    """Get list of paths to search for config file."""
    return [
        Path("smartblock.toml"),  # Current directory
        Path.home() / ".config" / "smartblock" / "smartblock.toml",
        Path("/etc/smartblock/smartblock.toml"),
    ]


def find_config_file() -> Optional[Path]:
    """Find the first existing config file."""
    for path in get_config_search_paths():
        if path.exists():
            return path
    return None


@dataclass
class Config:
    """Loaded configuration with all sections."""

    # Classifier
    window_seconds: float = 10.0
    max_events: int = 10_000
    block_social_media: bool = True
    block_uncontextualized_dependencies: bool = False

    # Categories
    block_adult_content: bool = True
    block_gaming: bool = False
    whitelist: list[str] = field(default_factory=list)
    social_primary: list[str] = field(default_factory=list)
    social_dependency: list[str] = field(default_factory=list)
    blocked_domains: list[str] = field(default_factory=list)
    blocked_keywords: list[str] = field(default_factory=list)

    # Alerting
    alert_severity: Severity = Severity.MEDIUM
    alert_dedup_window: int = 300  # 5 minutes

    # Slack
    slack_enabled: bool = False
    slack_webhook_url: Optional[str] = None
    slack_min_severity: Severity = Severity.MEDIUM

    def classifier_config(self) -> ClassifierConfig:
        return ClassifierConfig(
            window_seconds=self.window_seconds,
            max_events=self.max_events,
            block_social_media=self.block_social_media,
            block_uncontextualized_dependencies=self.block_uncontextualized_dependencies,
        )


def _parse_severity(value: Any, default: Severity) -> Severity:
    try:
        return Severity(str(value).lower())
    except ValueError:
        logger.warning(f"Unknown severity '{value}', using {default.value}")
        return default


def _positive_number(section: str, key: str, value: Any, allow_zero: bool = True) -> Any:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"[{section}] {key} must be a number, got {value!r}")
    if value < 0 or (value == 0 and not allow_zero):
        raise ConfigError(f"[{section}] {key} must be positive, got {value!r}")
    return value


def _string_list(section: str, key: str, value: Any) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"[{section}] {key} must be a list of strings")
    return value


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from TOML file.

    Args:
        config_path: Explicit path to config file, or None to search

    Returns:
        Config object with loaded values

    Raises:
        ConfigError: If a setting has an unusable value
    """
    config = Config()

    # Find config file
    if config_path is None:
        config_path = find_config_file()

    if config_path is None or not config_path.exists():
        logger.debug("No config file found, using defaults")
        return config

    logger.info(f"Loading config from {config_path}")

    try:
        with open(config_path, "rb") as f:
            data = tomli.load(f)
    except Exception as e:
        logger.warning(f"Failed to load config file: {e}")
        return config

    # Classifier section
    if "classifier" in data:
        cl = data["classifier"]
        if "window_seconds" in cl:
            config.window_seconds = float(
                _positive_number("classifier", "window_seconds", cl["window_seconds"])
            )
        if "max_events" in cl:
            config.max_events = int(
                _positive_number("classifier", "max_events", cl["max_events"], allow_zero=False)
            )
        if "block_social_media" in cl:
            config.block_social_media = bool(cl["block_social_media"])
        if "block_uncontextualized_dependencies" in cl:
            config.block_uncontextualized_dependencies = bool(cl["block_uncontextualized_dependencies"])

    # Categories section
    if "categories" in data:
        cat = data["categories"]
        if "block_adult_content" in cat:
            config.block_adult_content = bool(cat["block_adult_content"])
        if "block_gaming" in cat:
            config.block_gaming = bool(cat["block_gaming"])
        for key in (
            "whitelist",
            "social_primary",
            "social_dependency",
            "blocked_domains",
            "blocked_keywords",
        ):
            if key in cat:
                setattr(config, key, _string_list("categories", key, cat[key]))

    # Alerting section
    if "alerting" in data:
        alerting = data["alerting"]
        if "severity" in alerting:
            config.alert_severity = _parse_severity(alerting["severity"], Severity.MEDIUM)
        if "dedup_window" in alerting:
            config.alert_dedup_window = int(
                _positive_number("alerting", "dedup_window", alerting["dedup_window"], allow_zero=False)
            )

    # Slack section
    if "slack" in data:
        slack = data["slack"]
        if "enabled" in slack:
            config.slack_enabled = bool(slack["enabled"])
        if "webhook_url" in slack:
            config.slack_webhook_url = slack["webhook_url"]
        if "min_severity" in slack:
            config.slack_min_severity = _parse_severity(slack["min_severity"], Severity.MEDIUM)

    return config


def merge_cli_options(config: Config, **cli_options: Any) -> Config:
    """Merge CLI options into config (CLI takes precedence).

    Args:
        config: Base config from file
        **cli_options: CLI option overrides (None values are ignored)

    Returns:
        Config with CLI overrides applied
    """
    # Map CLI option names to config attributes
    mappings = {
        "window": "window_seconds",
        "strict_dependencies": "block_uncontextualized_dependencies",
        "social": "block_social_media",
        "adult": "block_adult_content",
        "gaming": "block_gaming",
        "block": "blocked_domains",
        "allow": "whitelist",
    }

    for cli_name, config_name in mappings.items():
        if cli_name in cli_options:
            value = cli_options[cli_name]
            # Only override if CLI value is meaningful
            if value is not None and value != () and value != "":
                if cli_name in ("block", "allow") and isinstance(value, tuple):
                    value = [*getattr(config, config_name), *value]
                if cli_name == "window":
                    value = float(_positive_number("cli", "window", value))
                setattr(config, config_name, value)

    return config
