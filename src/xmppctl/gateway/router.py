"""
gateway/router.py — Dispatch Router with Failover

Delivers one message: first through the host's live client handle if there
is one, otherwise (or if that send fails) through the gateway's own CLI via
GatewayLauncher. The two attempts are strictly sequential and a delivered
message is never sent a second time.

Every delivery outcome is returned as a DispatchResult and echoed to the
operator as one status line. The only exception that leaves dispatch() is
InvalidMessageError, raised before anything is sent.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

from rich.console import Console
from rich.markup import escape

from xmppctl.exceptions import InvalidMessageError
from xmppctl.gateway.launcher import GatewayLauncher
from xmppctl.gateway.stanza import chat_message
from xmppctl.observability.logger import get_logger

if TYPE_CHECKING:
    from xmppctl.host import GatewayHost

log = get_logger(__name__)

ROUTE_DIRECT = "direct"
ROUTE_GATEWAY = "gateway"


class DispatchStatus(str, Enum):
    DELIVERED = "delivered"
    FAILED = "failed"


@dataclass(frozen=True)
class DispatchResult:
    status: DispatchStatus
    route: str
    reason: Optional[str] = None

    @property
    def delivered(self) -> bool:
        return self.status is DispatchStatus.DELIVERED

    @staticmethod
    def delivered_via(route: str) -> "DispatchResult":
        return DispatchResult(status=DispatchStatus.DELIVERED, route=route)

    @staticmethod
    def failed(reason: str, route: str = ROUTE_GATEWAY) -> "DispatchResult":
        return DispatchResult(status=DispatchStatus.FAILED, route=route, reason=reason)


class DispatchRouter:
    """Chooses direct send or gateway-delegated send for each message."""

    def __init__(
        self,
        host: GatewayHost,
        launcher: GatewayLauncher,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ):
        self._host = host
        self._launcher = launcher
        self.console = console or Console()
        self.err_console = err_console or Console(stderr=True)

    async def dispatch(self, address: str, body: str) -> DispatchResult:
        if not address or not address.strip():
            raise InvalidMessageError("address")
        if not body or not body.strip():
            raise InvalidMessageError("body")

        handle = self._host.get_direct_handle()
        if handle is not None:
            if await self._send_direct(handle, address, body):
                self.console.print(f"Message sent to {escape(address)}")
                return DispatchResult.delivered_via(ROUTE_DIRECT)
            self.console.print("[yellow]Direct send failed, trying via gateway...[/]")

        return await self._send_via_gateway(address, body)

    # ─────────────────────────────────────────────────────────────────────────
    # Routes
    # ─────────────────────────────────────────────────────────────────────────

    async def _send_direct(self, handle, address: str, body: str) -> bool:
        """One attempt through the live handle. True if it went out."""
        try:
            outcome = handle.send(chat_message(address, body))
            if inspect.isawaitable(outcome):
                outcome = await outcome
        except Exception as e:
            log.info("dispatch.direct.failed", to=address, error=str(e))
            return False

        if outcome is False:
            log.info("dispatch.direct.rejected", to=address)
            return False

        log.info("dispatch.direct.sent", to=address)
        return True

    async def _send_via_gateway(self, address: str, body: str) -> DispatchResult:
        result = await self._launcher.send_via_external(address, body)
        if result.ok:
            log.info("dispatch.gateway.sent", to=address)
            self.console.print(f"Message sent to {escape(address)}")
            return DispatchResult.delivered_via(ROUTE_GATEWAY)

        reason = result.diagnostic
        log.warning(
            "dispatch.gateway.failed",
            to=address,
            exit_code=result.code,
            reason=reason,
        )
        self.err_console.print(f"[red]Failed to send message: {escape(reason)}[/]")
        return DispatchResult.failed(reason)
