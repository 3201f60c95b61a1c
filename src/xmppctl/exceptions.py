"""
exceptions.py — xmppctl Unified Error Hierarchy

All xmppctl-specific exceptions live here. Every layer raises typed
subclasses of XmppCtlError, never bare Exception.

Import from here, not from individual modules:
    from xmppctl.exceptions import InvalidMessageError, DecryptionError

Hierarchy:
    XmppCtlError
    ├── DispatchError
    │   └── InvalidMessageError
    ├── RoomJoinError
    └── SecurityError
        ├── EncryptionKeyMissingError
        └── DecryptionError

Delivery failures (no live handle, rejected direct send, gateway helper
exiting non-zero) are NOT exceptions: the dispatch router turns them into
a DispatchResult. Only caller mistakes surface as exceptions.
"""

from __future__ import annotations


# ─────────────────────────────────────────────────────────────────────────────
# Root
# ─────────────────────────────────────────────────────────────────────────────

class XmppCtlError(Exception):
    """Base class for all xmppctl exceptions."""


# ─────────────────────────────────────────────────────────────────────────────
# Dispatch layer
# ─────────────────────────────────────────────────────────────────────────────

class DispatchError(XmppCtlError):
    """Base for message dispatch errors."""


class InvalidMessageError(DispatchError):
    """Address or body was empty; raised before any send attempt."""

    def __init__(self, field: str, message: str = "") -> None:
        self.field = field
        super().__init__(message or f"Cannot send message: {field} must not be empty.")


# ─────────────────────────────────────────────────────────────────────────────
# Group chat
# ─────────────────────────────────────────────────────────────────────────────

class RoomJoinError(XmppCtlError):
    """The live client refused or failed a MUC join."""

    def __init__(self, room: str, reason: str = "") -> None:
        self.room = room
        self.reason = reason
        super().__init__(f"Could not join '{room}'" + (f": {reason}" if reason else ""))


# ─────────────────────────────────────────────────────────────────────────────
# Security layer
# ─────────────────────────────────────────────────────────────────────────────

class SecurityError(XmppCtlError):
    """Base for credential encryption errors."""


class EncryptionKeyMissingError(SecurityError):
    """XMPPCTL_ENCRYPTION_KEY is not set."""

    def __init__(self, message: str = "") -> None:
        super().__init__(
            message
            or "No encryption key configured. Set XMPPCTL_ENCRYPTION_KEY in your environment or .env file."
        )


class DecryptionError(SecurityError):
    """Ciphertext is malformed, tampered with, or sealed with another key."""


__all__ = [
    "XmppCtlError",
    # Dispatch
    "DispatchError",
    "InvalidMessageError",
    # MUC
    "RoomJoinError",
    # Security
    "SecurityError",
    "EncryptionKeyMissingError",
    "DecryptionError",
]
