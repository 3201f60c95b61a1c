"""
tests/unit/test_encryption.py — Password Encryption Tests
"""

from __future__ import annotations

import json

import pytest

from xmppctl.exceptions import DecryptionError, EncryptionKeyMissingError
from xmppctl.security.encryption import (
    PasswordEncryptor,
    is_encrypted,
    update_config_with_encrypted_password,
)


@pytest.fixture
def encryptor():
    return PasswordEncryptor("test-key-material")


class TestPasswordEncryptor:
    def test_missing_key_rejected(self):
        with pytest.raises(EncryptionKeyMissingError):
            PasswordEncryptor(None)
        with pytest.raises(EncryptionKeyMissingError):
            PasswordEncryptor("")

    def test_token_format(self, encryptor):
        token = encryptor.encrypt("hunter2")
        assert token.startswith("enc:v1:")
        assert token.count(":") == 3
        assert "hunter2" not in token
        assert is_encrypted(token)

    def test_decrypts_with_same_key(self, encryptor):
        token = encryptor.encrypt("hunter2")
        assert encryptor.decrypt(token) == "hunter2"

    def test_fresh_nonce_each_time(self, encryptor):
        assert encryptor.encrypt("same") != encryptor.encrypt("same")

    def test_wrong_key_fails(self, encryptor):
        token = encryptor.encrypt("hunter2")
        with pytest.raises(DecryptionError):
            PasswordEncryptor("other-key").decrypt(token)

    def test_context_is_bound(self, encryptor):
        token = encryptor.encrypt("hunter2", context="channels.xmpp.password")
        with pytest.raises(DecryptionError):
            encryptor.decrypt(token, context="channels.other.password")

    @pytest.mark.parametrize("bad", ["plain", "enc:v1:only-three", "enc:v1:!!!:???"])
    def test_malformed_token(self, encryptor, bad):
        with pytest.raises(DecryptionError):
            encryptor.decrypt(bad)


class TestUpdateConfig:
    def test_creates_missing_file(self, tmp_path, encryptor):
        path = tmp_path / "openclaw.json"
        update_config_with_encrypted_password(path, "hunter2", encryptor)

        data = json.loads(path.read_text())
        token = data["channels"]["xmpp"]["password"]
        assert encryptor.decrypt(token) == "hunter2"

    def test_preserves_other_keys(self, tmp_path, encryptor):
        path = tmp_path / "openclaw.json"
        path.write_text(json.dumps({
            "gateway": {"port": 18789},
            "channels": {"xmpp": {"jid": "bot@example.com", "password": "plain"}},
        }))

        update_config_with_encrypted_password(path, "hunter2", encryptor)

        data = json.loads(path.read_text())
        assert data["gateway"] == {"port": 18789}
        assert data["channels"]["xmpp"]["jid"] == "bot@example.com"
        assert is_encrypted(data["channels"]["xmpp"]["password"])

    def test_replaces_non_object_nodes(self, tmp_path, encryptor):
        path = tmp_path / "cfg.json"
        path.write_text(json.dumps({"channels": "oops"}))
        update_config_with_encrypted_password(path, "pw", encryptor)
        data = json.loads(path.read_text())
        assert is_encrypted(data["channels"]["xmpp"]["password"])
