"""
inbox/message_queue.py — Inbound Message Queue

Append-only, in-memory log of inbound messages with a processed flag and
age-based eviction. Owned by a single host object; never module-global.

The queue is mutated only from the event loop thread that hosts the live
client. A threaded host must wrap enqueue() and clear_old() in a lock.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Iterator, Optional

from xmppctl.config.settings import QueueConfig
from xmppctl.observability.logger import get_logger

log = get_logger(__name__)

ELLIPSIS = "..."


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(eq=False)
class QueuedMessage:
    """
    One inbound message. Compared by identity: two arrivals with the same
    text are still two entries.
    """
    account_id: str
    sender: str
    body: str
    received_at: datetime = field(default_factory=_utcnow)
    processed: bool = False


@dataclass(frozen=True)
class QueuePreview:
    """Display row for one queue entry; `body` is already truncated."""
    position: int
    processed: bool
    account_id: str
    sender: str
    body: str

    def render(self) -> str:
        mark = "✓" if self.processed else "✗"
        return f"{self.position}. {mark} [{self.account_id}] {self.sender}: {self.body}"


def truncate(text: str, width: int) -> str:
    if len(text) <= width:
        return text
    return text[:width] + ELLIPSIS


class MessageQueue:
    """
    Ordered inbound message store.

    Length grows only through enqueue() and shrinks only through clear_old().
    """

    def __init__(
        self,
        config: Optional[QueueConfig] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._config = config or QueueConfig()
        self._clock = clock
        self._messages: list[QueuedMessage] = []

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[QueuedMessage]:
        return iter(list(self._messages))

    @property
    def messages(self) -> tuple[QueuedMessage, ...]:
        return tuple(self._messages)

    # ── Writes ───────────────────────────────────────────────────────────────

    def enqueue(self, message: QueuedMessage) -> None:
        # naive timestamps are taken as UTC so clear_old() can compare them
        if message.received_at.tzinfo is None:
            message.received_at = message.received_at.replace(tzinfo=timezone.utc)
        message.processed = False
        self._messages.append(message)
        log.debug(
            "queue.enqueued",
            account_id=message.account_id,
            sender=message.sender,
            size=len(self._messages),
        )

    def record(self, account_id: str, sender: str, body: str) -> QueuedMessage:
        """Build a QueuedMessage stamped with the queue's clock and enqueue it."""
        message = QueuedMessage(
            account_id=account_id,
            sender=sender,
            body=body,
            received_at=self._clock(),
        )
        self.enqueue(message)
        return message

    def mark_processed(self, messages: Iterable[QueuedMessage]) -> int:
        """Flip the given entries to processed. Returns how many changed."""
        wanted = {id(m) for m in messages}
        flipped = 0
        for m in self._messages:
            if id(m) in wanted and not m.processed:
                m.processed = True
                flipped += 1
        if flipped:
            log.info("queue.marked_processed", count=flipped)
        return flipped

    def clear_old(self) -> int:
        """
        Evict stale entries in place and return how many were removed.

        An entry is stale when it is older than max_age_seconds, or when it
        is processed and older than processed_max_age_seconds. Survivors are
        not touched.
        """
        now = self._clock()
        max_age = timedelta(seconds=self._config.max_age_seconds)
        processed_max_age = timedelta(seconds=self._config.processed_max_age_seconds)

        def _stale(m: QueuedMessage) -> bool:
            age = now - m.received_at
            if age > max_age:
                return True
            return m.processed and age > processed_max_age

        before = len(self._messages)
        self._messages[:] = [m for m in self._messages if not _stale(m)]
        removed = before - len(self._messages)
        log.info("queue.cleared", removed=removed, remaining=len(self._messages))
        return removed

    # ── Reads ────────────────────────────────────────────────────────────────

    def unprocessed(self) -> list[QueuedMessage]:
        return [m for m in self._messages if not m.processed]

    def snapshot(self, limit: Optional[int] = None) -> list[QueuePreview]:
        """First `limit` entries (default: preview_limit) as display rows."""
        if limit is None:
            limit = self._config.preview_limit
        width = self._config.preview_width
        return [
            QueuePreview(
                position=i + 1,
                processed=m.processed,
                account_id=m.account_id,
                sender=m.sender,
                body=truncate(m.body, width),
            )
            for i, m in enumerate(self._messages[: max(limit, 0)])
        ]
