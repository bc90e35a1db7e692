"""Tests for TOML config loading."""

from pathlib import Path

import pytest

from smartblock.config import Config, ConfigError, load_config, merge_cli_options
from smartblock.models import Severity


def write_config(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "smartblock.toml"
    path.write_text(text)
    return path


class TestLoadConfig:
    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        config = load_config(tmp_path / "nope.toml")
        assert config.window_seconds == 10.0
        assert config.block_social_media is True
        assert config.block_uncontextualized_dependencies is False

    def test_invalid_toml_uses_defaults(self, tmp_path: Path) -> None:
        path = write_config(tmp_path, "[classifier\nwindow_seconds = ")
        assert load_config(path) == Config()

    def test_all_sections(self, tmp_path: Path) -> None:
        path = write_config(
            tmp_path,
            """
[classifier]
window_seconds = 5
max_events = 500
block_social_media = false
block_uncontextualized_dependencies = true

[categories]
block_adult_content = false
block_gaming = true
whitelist = ["school.example"]
blocked_domains = ["casino.example"]
blocked_keywords = ["gamble"]

[alerting]
severity = "high"
dedup_window = 60

[slack]
enabled = true
webhook_url = "https://hooks.slack.com/services/T/B/X"
min_severity = "low"
""",
        )
        config = load_config(path)

        assert config.window_seconds == 5.0
        assert config.max_events == 500
        assert config.block_social_media is False
        assert config.block_uncontextualized_dependencies is True
        assert config.block_adult_content is False
        assert config.block_gaming is True
        assert config.whitelist == ["school.example"]
        assert config.blocked_domains == ["casino.example"]
        assert config.blocked_keywords == ["gamble"]
        assert config.alert_severity is Severity.HIGH
        assert config.alert_dedup_window == 60
        assert config.slack_enabled is True
        assert config.slack_webhook_url == "https://hooks.slack.com/services/T/B/X"
        assert config.slack_min_severity is Severity.LOW

    def test_classifier_config(self) -> None:
        config = Config(window_seconds=3.0, block_uncontextualized_dependencies=True)
        cc = config.classifier_config()
        assert cc.window_seconds == 3.0
        assert cc.block_uncontextualized_dependencies is True

    def test_unknown_severity_falls_back(self, tmp_path: Path) -> None:
        path = write_config(tmp_path, '[alerting]\nseverity = "apocalyptic"\n')
        assert load_config(path).alert_severity is Severity.MEDIUM

    @pytest.mark.parametrize(
        "text",
        [
            "[classifier]\nwindow_seconds = -1\n",
            '[classifier]\nwindow_seconds = "ten"\n',
            "[classifier]\nmax_events = 0\n",
            '[categories]\nwhitelist = "school.example"\n',
            "[alerting]\ndedup_window = 0\n",
        ],
    )
    def test_bad_values_raise(self, tmp_path: Path, text: str) -> None:
        path = write_config(tmp_path, text)
        with pytest.raises(ConfigError):
            load_config(path)


class TestMergeCliOptions:
    def test_overrides(self) -> None:
        config = merge_cli_options(
            Config(whitelist=["a.example"]),
            window=2.5,
            strict_dependencies=True,
            allow=("b.example",),
            block=(),
        )
        assert config.window_seconds == 2.5
        assert config.block_uncontextualized_dependencies is True
        assert config.whitelist == ["a.example", "b.example"]
        assert config.blocked_domains == []

    def test_none_values_ignored(self) -> None:
        config = merge_cli_options(Config(window_seconds=7.0), window=None, strict_dependencies=None)
        assert config.window_seconds == 7.0
        assert config.block_uncontextualized_dependencies is False

    def test_explicit_false_applied(self) -> None:
        config = merge_cli_options(
            Config(block_uncontextualized_dependencies=True),
            strict_dependencies=False,
        )
        assert config.block_uncontextualized_dependencies is False

    def test_negative_window_rejected(self) -> None:
        with pytest.raises(ConfigError):
            merge_cli_options(Config(), window=-3.0)
