"""
security/encryption.py — XMPP password encryption using AES-256-GCM.

Keeps the account password out of the gateway config file in clear text.

- Derives a 256-bit key from XMPPCTL_ENCRYPTION_KEY using HKDF-SHA256
- Each encryption uses a fresh random 96-bit nonce
- The config field path is bound as associated data, so a token copied into
  another field will not decrypt

Token format (a single string, safe to store in JSON):
    enc:v1:<nonce b64>:<ciphertext b64>
"""

from __future__ import annotations

import base64
import binascii
import json
import os
from pathlib import Path
from typing import Any, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from xmppctl.exceptions import DecryptionError, EncryptionKeyMissingError
from xmppctl.observability.logger import get_logger

log = get_logger(__name__)

TOKEN_PREFIX = "enc"
TOKEN_VERSION = "v1"

PASSWORD_FIELD = ("channels", "xmpp", "password")


def is_encrypted(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(f"{TOKEN_PREFIX}:{TOKEN_VERSION}:")


class PasswordEncryptor:
    """
    AES-256-GCM sealing for account passwords.

    Example:
        encryptor = PasswordEncryptor(key_material)
        token = encryptor.encrypt("hunter2")
        encryptor.decrypt(token)  # "hunter2"
    """

    HKDF_INFO = b"xmppctl-password-encryption-v1"

    def __init__(self, key_material: Optional[str]):
        if not key_material:
            raise EncryptionKeyMissingError()
        self._key = self._derive_key(key_material.encode())

    def _derive_key(self, material: bytes) -> bytes:
        hkdf = HKDF(
            algorithm=hashes.SHA256(),
            length=32,
            salt=None,
            info=self.HKDF_INFO,
        )
        return hkdf.derive(material)

    def encrypt(self, plaintext: str, context: str = ".".join(PASSWORD_FIELD)) -> str:
        nonce = os.urandom(12)
        ciphertext = AESGCM(self._key).encrypt(nonce, plaintext.encode(), context.encode())
        return ":".join([
            TOKEN_PREFIX,
            TOKEN_VERSION,
            base64.b64encode(nonce).decode("ascii"),
            base64.b64encode(ciphertext).decode("ascii"),
        ])

    def decrypt(self, token: str, context: str = ".".join(PASSWORD_FIELD)) -> str:
        if not is_encrypted(token):
            raise DecryptionError("Value is not an xmppctl encrypted token.")
        try:
            _, _, nonce_b64, ct_b64 = token.split(":")
            nonce = base64.b64decode(nonce_b64, validate=True)
            ciphertext = base64.b64decode(ct_b64, validate=True)
        except (ValueError, binascii.Error) as e:
            raise DecryptionError(f"Malformed encrypted token: {e}") from e

        try:
            plaintext = AESGCM(self._key).decrypt(nonce, ciphertext, context.encode())
        except InvalidTag as e:
            raise DecryptionError(
                "Decryption failed: wrong XMPPCTL_ENCRYPTION_KEY or tampered value."
            ) from e
        return plaintext.decode()


def update_config_with_encrypted_password(
    config_path: str | Path,
    password: str,
    encryptor: PasswordEncryptor,
) -> Path:
    """
    Encrypt `password` and store it at channels.xmpp.password in the JSON
    config file, creating the file and intermediate objects if needed.
    """
    path = Path(config_path)
    data: dict[str, Any] = {}
    if path.exists():
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f) or {}

    node = data
    for key in PASSWORD_FIELD[:-1]:
        child = node.get(key)
        if not isinstance(child, dict):
            child = {}
            node[key] = child
        node = child
    node[PASSWORD_FIELD[-1]] = encryptor.encrypt(password)

    if path.parent and not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
        f.write("\n")

    log.info("security.password_encrypted", config_file=str(path))
    return path
