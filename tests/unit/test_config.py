"""
tests/unit/test_config.py — Settings Validation Tests

Tests every validator on the config sub-models, the cross-field checks in
validate_all(), and how load_settings() merges YAML with the environment.

Run with:
    pytest tests/unit/test_config.py -v
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from xmppctl.config.settings import (
    ConfigError,
    GatewayConfig,
    LoggingConfig,
    MucConfig,
    QueueConfig,
    Settings,
    load_settings,
)


# ── GatewayConfig ─────────────────────────────────────────────────────────────


class TestGatewayConfig:
    def test_defaults(self):
        cfg = GatewayConfig()
        assert cfg.executable == "clawdbot"
        assert cfg.start_args == ["gateway"]
        assert "{target}" in cfg.send_args
        assert "{message}" in cfg.send_args

    def test_missing_target_placeholder_rejected(self):
        with pytest.raises(ValidationError, match="placeholders"):
            GatewayConfig(send_args=["send", "--message", "{message}"])

    def test_missing_message_placeholder_rejected(self):
        with pytest.raises(ValidationError, match="placeholders"):
            GatewayConfig(send_args=["send", "--to", "{target}"])

    def test_placeholder_embedded_in_arg_ok(self):
        cfg = GatewayConfig(send_args=["send", "--to={target}", "--body={message}"])
        assert cfg.send_args[1] == "--to={target}"

    def test_empty_executable_rejected(self):
        with pytest.raises(ValidationError):
            GatewayConfig(executable="   ")

    def test_negative_delay_rejected(self):
        with pytest.raises(ValidationError):
            GatewayConfig(readiness_delay_seconds=-1)

    def test_zero_delay_ok(self):
        assert GatewayConfig(readiness_delay_seconds=0).readiness_delay_seconds == 0


# ── QueueConfig / MucConfig / LoggingConfig ───────────────────────────────────


class TestQueueConfig:
    def test_defaults(self):
        cfg = QueueConfig()
        assert cfg.max_age_seconds == 86400
        assert cfg.processed_max_age_seconds == 3600
        assert cfg.preview_limit == 5
        assert cfg.preview_width == 50

    @pytest.mark.parametrize(
        "field", ["max_age_seconds", "processed_max_age_seconds", "preview_limit", "preview_width"]
    )
    def test_zero_rejected(self, field):
        with pytest.raises(ValidationError, match=field):
            QueueConfig(**{field: 0})


class TestMucConfig:
    def test_nick_stripped(self):
        assert MucConfig(default_nick="  bot ").default_nick == "bot"

    def test_blank_nick_rejected(self):
        with pytest.raises(ValidationError):
            MucConfig(default_nick=" ")


class TestLoggingConfig:
    def test_level_normalised(self):
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_unknown_level_rejected(self):
        with pytest.raises(ValidationError):
            LoggingConfig(level="LOUD")


# ── validate_all ──────────────────────────────────────────────────────────────


class TestValidateAll:
    def test_defaults_pass(self):
        Settings().validate_all()

    def test_processed_window_longer_than_max_age(self):
        s = Settings(queue={"max_age_seconds": 60, "processed_max_age_seconds": 120})
        with pytest.raises(ConfigError, match="processed_max_age_seconds"):
            s.validate_all()

    def test_missing_working_dir(self, tmp_path):
        s = Settings(gateway={"working_dir": str(tmp_path / "nope")})
        with pytest.raises(ConfigError, match="working_dir"):
            s.validate_all()

    def test_existing_working_dir_ok(self, tmp_path):
        Settings(gateway={"working_dir": str(tmp_path)}).validate_all()

    def test_placeholder_in_start_args(self):
        s = Settings(gateway={"start_args": ["gateway", "{target}"]})
        with pytest.raises(ConfigError, match="start_args"):
            s.validate_all()

    def test_all_problems_reported_together(self, tmp_path):
        s = Settings(
            queue={"max_age_seconds": 60, "processed_max_age_seconds": 120},
            gateway={"working_dir": str(tmp_path / "nope")},
        )
        with pytest.raises(ConfigError) as exc:
            s.validate_all()
        assert "2 configuration problem(s)" in str(exc.value)


# ── load_settings ─────────────────────────────────────────────────────────────


class TestLoadSettings:
    def test_missing_file_gives_defaults(self, tmp_path):
        s = load_settings(tmp_path / "absent.yaml")
        assert s.queue.preview_limit == 5
        assert s.encryption_key is None

    def test_yaml_sections_applied(self, tmp_path):
        cfg = tmp_path / "config.yaml"
        cfg.write_text(
            "gateway:\n"
            "  executable: mygw\n"
            "queue:\n"
            "  preview_limit: 3\n"
            "unknown_section:\n"
            "  anything: 1\n"
        )
        s = load_settings(cfg)
        assert s.gateway.executable == "mygw"
        assert s.queue.preview_limit == 3

    def test_config_env_var_fallback(self, tmp_path, monkeypatch):
        cfg = tmp_path / "other.yaml"
        cfg.write_text("muc:\n  default_nick: envbot\n")
        monkeypatch.setenv("XMPPCTL_CONFIG", str(cfg))
        assert load_settings().muc.default_nick == "envbot"

    def test_encryption_key_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("XMPPCTL_ENCRYPTION_KEY", "s3cret")
        assert load_settings(tmp_path / "absent.yaml").encryption_key == "s3cret"

    def test_blank_encryption_key_is_none(self, tmp_path, monkeypatch):
        monkeypatch.setenv("XMPPCTL_ENCRYPTION_KEY", "")
        assert load_settings(tmp_path / "absent.yaml").encryption_key is None

    def test_nested_env_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("XMPPCTL_QUEUE__PREVIEW_LIMIT", "9")
        assert load_settings(tmp_path / "absent.yaml").queue.preview_limit == 9

    def test_invalid_yaml_value_raises(self, tmp_path):
        cfg = tmp_path / "config.yaml"
        cfg.write_text("gateway:\n  send_args: [message, send]\n")
        with pytest.raises(ValueError):
            load_settings(cfg)
