"""
Unit test conftest — isolate XMPPCTL_* environment variables so that
settings tests are not affected by a developer's or CI's real environment.
"""
import os

import pytest


@pytest.fixture(autouse=True)
def _clear_xmppctl_env(monkeypatch):
    """Remove XMPPCTL_* env vars for every test so Settings() behaves as if
    nothing is configured unless the test provides it explicitly.
    Also disables .env file loading so a local .env does not leak real
    credentials into tests."""
    for var in list(os.environ):
        if var.upper().startswith("XMPPCTL_"):
            monkeypatch.delenv(var, raising=False)

    import xmppctl.config.settings as settings_module
    from pydantic_settings import SettingsConfigDict
    patched_config = SettingsConfigDict(
        env_file=None,
        env_file_encoding="utf-8",
        env_prefix="XMPPCTL_",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )
    monkeypatch.setattr(settings_module.Settings, "model_config", patched_config)
