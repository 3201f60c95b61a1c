"""xmppctl — command surface for a background XMPP gateway."""

__version__ = "0.1.0"
