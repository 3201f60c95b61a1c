"""
config/settings.py — xmppctl Runtime Settings

Merges config.yaml (defaults/structure) with .env / environment (secrets).
Pydantic-powered: all fields are validated and typed.

  - GatewayConfig rejects send_args that lack the {target} / {message}
    placeholders at parse time
  - QueueConfig rejects non-positive retention and preview sizes
  - validate_all() performs cross-field startup validation and raises
    ConfigError with a human-readable numbered list of every problem found
  - load_settings() respects XMPPCTL_CONFIG env var as a fallback
    when no explicit config_path argument is given
"""

from __future__ import annotations

import os
import shutil
import threading as _threading
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# ─────────────────────────────────────────────────────────────────────────────
# Errors
# ─────────────────────────────────────────────────────────────────────────────

class ConfigError(Exception):
    """Raised by validate_all() when one or more config problems are found."""


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

TARGET_PLACEHOLDER = "{target}"
MESSAGE_PLACEHOLDER = "{message}"


# ─────────────────────────────────────────────────────────────────────────────
# Sub-models
# ─────────────────────────────────────────────────────────────────────────────

class GatewayConfig(BaseModel):
    """How to reach the external gateway's own command-line interface."""

    executable: str = "clawdbot"
    start_args: list[str] = Field(default_factory=lambda: ["gateway"])
    send_args: list[str] = Field(
        default_factory=lambda: [
            "message", "send",
            "--channel", "xmpp",
            "--target", TARGET_PLACEHOLDER,
            "--message", MESSAGE_PLACEHOLDER,
        ]
    )
    readiness_delay_seconds: float = 3.0
    windows_shell_wrapper: bool = True
    working_dir: Optional[str] = None

    @field_validator("executable")
    @classmethod
    def _non_empty_executable(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("gateway.executable must not be empty")
        return v.strip()

    @field_validator("send_args")
    @classmethod
    def _placeholders_present(cls, v: list[str]) -> list[str]:
        joined = " ".join(v)
        missing = [p for p in (TARGET_PLACEHOLDER, MESSAGE_PLACEHOLDER) if p not in joined]
        if missing:
            raise ValueError(
                f"gateway.send_args must contain the placeholders {missing}. "
                f"They are replaced by the destination address and message body."
            )
        return v

    @field_validator("readiness_delay_seconds")
    @classmethod
    def _non_negative_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError("gateway.readiness_delay_seconds must be >= 0")
        return v


class QueueConfig(BaseModel):
    max_age_seconds: int = 24 * 60 * 60
    processed_max_age_seconds: int = 60 * 60
    preview_limit: int = 5
    preview_width: int = 50

    @field_validator(
        "max_age_seconds", "processed_max_age_seconds", "preview_limit", "preview_width"
    )
    @classmethod
    def _positive(cls, v: int, info) -> int:
        if v < 1:
            raise ValueError(f"queue.{info.field_name} must be >= 1")
        return v


class MucConfig(BaseModel):
    default_nick: str = "clawdbot"

    @field_validator("default_nick")
    @classmethod
    def _non_empty_nick(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("muc.default_nick must not be empty")
        return v.strip()


class SecurityConfig(BaseModel):
    config_file: str = "openclaw.json"


class LoggingConfig(BaseModel):
    level: str = "INFO"
    log_dir: str = "./data/logs"
    max_file_size_mb: int = 100
    backup_count: int = 5
    console_output: bool = False
    json_format: bool = True

    @field_validator("level")
    @classmethod
    def _valid_log_level(cls, v: str) -> str:
        upper = v.upper()
        if upper not in _VALID_LOG_LEVELS:
            raise ValueError(
                f"logging.level '{v}' is not valid. "
                f"Must be one of: {sorted(_VALID_LOG_LEVELS)}"
            )
        return upper


# ─────────────────────────────────────────────────────────────────────────────
# Root Settings
# ─────────────────────────────────────────────────────────────────────────────

class Settings(BaseSettings):
    """
    xmppctl runtime settings.

    Priority (highest to lowest):
      1. config.yaml sections (passed as init kwargs by load_settings)
      2. Environment variables (XMPPCTL_ prefix, __ for nesting)
      3. .env file
      4. Field defaults
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="XMPPCTL_",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    # -- Secrets from .env ---------------------------------------------------
    encryption_key: Optional[str] = Field(default=None, alias="XMPPCTL_ENCRYPTION_KEY")

    # -- Structured config (from config.yaml) --------------------------------
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    muc: MucConfig = Field(default_factory=MucConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("encryption_key", mode="before")
    @classmethod
    def _blank_key_is_none(cls, v: Any) -> Optional[str]:
        if v in (None, "", "null"):
            return None
        return v

    @field_validator("gateway", mode="before")
    @classmethod
    def _coerce_gateway(cls, v: Any) -> Any:
        return GatewayConfig(**v) if isinstance(v, dict) else v

    @field_validator("queue", mode="before")
    @classmethod
    def _coerce_queue(cls, v: Any) -> Any:
        return QueueConfig(**v) if isinstance(v, dict) else v

    @field_validator("muc", mode="before")
    @classmethod
    def _coerce_muc(cls, v: Any) -> Any:
        return MucConfig(**v) if isinstance(v, dict) else v

    @field_validator("security", mode="before")
    @classmethod
    def _coerce_security(cls, v: Any) -> Any:
        return SecurityConfig(**v) if isinstance(v, dict) else v

    @field_validator("logging", mode="before")
    @classmethod
    def _coerce_logging(cls, v: Any) -> Any:
        return LoggingConfig(**v) if isinstance(v, dict) else v

    # -- Convenience properties ----------------------------------------------

    @property
    def log_level(self) -> str:
        return self.logging.level.upper()

    @property
    def log_dir(self) -> Path:
        return Path(self.logging.log_dir)

    @property
    def log_json_format(self) -> bool:
        return self.logging.json_format

    @property
    def log_console_output(self) -> bool:
        return self.logging.console_output

    def validate_all(self) -> None:
        """
        Full startup validation. Raises ConfigError listing every problem found.

        Pydantic field validators catch type/value errors at parse time; this
        method catches cross-field problems they can't see.
        """
        errors: list[str] = []

        # ── Retention windows ───────────────────────────────────────────────
        if self.queue.processed_max_age_seconds > self.queue.max_age_seconds:
            errors.append(
                "queue.processed_max_age_seconds is larger than "
                "queue.max_age_seconds, so processed messages would outlive "
                "unprocessed ones. Lower it or raise max_age_seconds."
            )

        # ── Working directory for gateway processes ──────────────────────────
        wd = self.gateway.working_dir
        if wd is not None and not Path(wd).expanduser().is_dir():
            errors.append(
                f"gateway.working_dir '{wd}' does not exist or is not a directory."
            )

        # ── Placeholders in non-send args are almost certainly a mistake ─────
        for arg in self.gateway.start_args:
            if TARGET_PLACEHOLDER in arg or MESSAGE_PLACEHOLDER in arg:
                errors.append(
                    f"gateway.start_args contains placeholder argument '{arg}'. "
                    f"Placeholders are only substituted in gateway.send_args."
                )

        # ── Report all errors together ───────────────────────────────────────
        if errors:
            numbered = "\n".join(f"  {i+1}. {e}" for i, e in enumerate(errors))
            raise ConfigError(
                f"\n\nxmppctl startup failed — {len(errors)} configuration "
                f"problem(s) found:\n\n{numbered}\n\n"
                f"Fix the issues above in config/config.yaml or your .env file "
                f"and retry.\n"
            )

    def gateway_installed(self) -> bool:
        """True if the gateway executable resolves on PATH (advisory only)."""
        return shutil.which(self.gateway.executable) is not None


# ─────────────────────────────────────────────────────────────────────────────
# Loader + singleton
# ─────────────────────────────────────────────────────────────────────────────

_singleton: Optional[Settings] = None
_singleton_lock = _threading.Lock()

_KNOWN_SECTIONS = {"gateway", "queue", "muc", "security", "logging"}


def _load_yaml(path: Path) -> dict:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _resolve_config_path(config_path: str | Path | None) -> Path:
    """
    Resolve the config file path with this priority:
      1. Explicit config_path argument (from --config CLI flag)
      2. XMPPCTL_CONFIG environment variable
      3. Default: config/config.yaml
    """
    if config_path is not None:
        return Path(config_path)
    env_path = os.environ.get("XMPPCTL_CONFIG")
    if env_path:
        return Path(env_path)
    return Path("config/config.yaml")


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings by merging config.yaml with environment variables."""
    global _singleton
    resolved_path = _resolve_config_path(config_path)
    yaml_data = _load_yaml(resolved_path)

    init_kwargs = {k: v for k, v in yaml_data.items() if k in _KNOWN_SECTIONS}

    instance = Settings(**init_kwargs)
    with _singleton_lock:
        _singleton = instance
    return instance


def get_settings() -> Settings:
    """
    Return the global Settings singleton, loading it from the default
    config path on first use.
    """
    global _singleton
    if _singleton is not None:
        return _singleton
    with _singleton_lock:
        if _singleton is None:
            load_settings()
        return _singleton  # type: ignore[return-value]
