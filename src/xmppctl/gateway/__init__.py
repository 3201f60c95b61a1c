"""
gateway/ — Message delivery to the XMPP gateway

Direct sends go through a live client handle when this process has one;
otherwise the gateway's own CLI is run as a helper process.
"""

from xmppctl.gateway.launcher import ExternalSendResult, GatewayLauncher
from xmppctl.gateway.router import DispatchResult, DispatchRouter, DispatchStatus
from xmppctl.gateway.stanza import Stanza, chat_message, muc_presence

__all__ = [
    "ExternalSendResult",
    "GatewayLauncher",
    "DispatchResult",
    "DispatchRouter",
    "DispatchStatus",
    "Stanza",
    "chat_message",
    "muc_presence",
]
