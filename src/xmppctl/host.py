"""
host.py — Host Capability Contract

The command surface never reaches into a gateway process directly. It talks
to a GatewayHost: the exact set of capabilities it consumes (direct handle
lookup plus queue operations). LocalHost is the in-process implementation
used by the CLI and by anything embedding a live XMPP client.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Optional, Protocol, Union, runtime_checkable

from xmppctl.gateway.stanza import Stanza, is_queueable_message
from xmppctl.inbox.message_queue import MessageQueue, QueuedMessage, QueuePreview
from xmppctl.observability.logger import get_logger

log = get_logger(__name__)


@runtime_checkable
class DirectHandle(Protocol):
    """
    A live XMPP connection owned by some other component.

    send() may be a plain function or a coroutine function. Handles may also
    expose a `status` attribute and a `join_room(room, nick)` method; callers
    look those up with getattr because they are optional.
    """

    def send(self, stanza: Stanza) -> Any:
        ...


class GatewayHost(Protocol):
    """Everything the command surface needs from whoever owns the connection."""

    def get_direct_handle(self) -> Optional[DirectHandle]:
        ...

    def enqueue(self, message: QueuedMessage) -> None:
        ...

    def unprocessed(self) -> list[QueuedMessage]:
        ...

    def mark_processed(self, messages: Iterable[QueuedMessage]) -> int:
        ...

    def clear_old(self) -> int:
        ...

    def snapshot(self, limit: int) -> list[QueuePreview]:
        ...

    def __len__(self) -> int:
        ...


HandleProvider = Callable[[], Optional[DirectHandle]]


class LocalHost:
    """
    In-process host: an owned MessageQueue plus an optional live handle.

    The handle is resolved on every call through `handle_provider`, so a
    client that connects or drops after construction is seen immediately.
    """

    def __init__(
        self,
        queue: Optional[MessageQueue] = None,
        handle_provider: Optional[HandleProvider] = None,
    ):
        self.queue = queue if queue is not None else MessageQueue()
        self._handle_provider = handle_provider
        self._handle: Optional[DirectHandle] = None

    # ── Direct handle ────────────────────────────────────────────────────────

    def attach(self, handle: DirectHandle) -> None:
        self._handle = handle
        log.info("host.handle_attached")

    def detach(self) -> None:
        self._handle = None
        log.info("host.handle_detached")

    def get_direct_handle(self) -> Optional[DirectHandle]:
        if self._handle_provider is not None:
            return self._handle_provider()
        return self._handle

    # ── Queue delegation ─────────────────────────────────────────────────────

    def enqueue(self, message: QueuedMessage) -> None:
        self.queue.enqueue(message)

    def unprocessed(self) -> list[QueuedMessage]:
        return self.queue.unprocessed()

    def mark_processed(self, messages: Iterable[QueuedMessage]) -> int:
        return self.queue.mark_processed(messages)

    def clear_old(self) -> int:
        return self.queue.clear_old()

    def snapshot(self, limit: int) -> list[QueuePreview]:
        return self.queue.snapshot(limit)

    def __len__(self) -> int:
        return len(self.queue)

    # ── Inbound stanzas ──────────────────────────────────────────────────────

    def handle_inbound(
        self, account_id: str, stanza: Union[Stanza, str]
    ) -> Optional[QueuedMessage]:
        """
        Queue an inbound stanza from the live client if it is a chat-like
        message with a body. Returns the queued entry, or None if ignored.
        """
        if isinstance(stanza, str):
            try:
                stanza = Stanza.from_xml(stanza)
            except ValueError as e:
                log.warning("host.inbound.malformed", account_id=account_id, error=str(e))
                return None

        if not is_queueable_message(stanza):
            log.debug("host.inbound.ignored", account_id=account_id, name=stanza.name)
            return None

        return self.queue.record(
            account_id=account_id,
            sender=stanza.get("from") or "",
            body=stanza.child_text("body") or "",
        )
