"""
roster.py — In-memory roster store (nicknames keyed by JID).

Nothing is persisted; the store lives for one process.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional


@dataclass
class RosterEntry:
    jid: str
    nick: Optional[str] = None


class RosterStore:
    def __init__(self) -> None:
        self._entries: dict[str, RosterEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[RosterEntry]:
        return iter(list(self._entries.values()))

    def get(self, jid: str) -> Optional[RosterEntry]:
        return self._entries.get(jid)

    def set_nick(self, jid: str, nick: str) -> RosterEntry:
        entry = self._entries.get(jid)
        if entry is None:
            entry = RosterEntry(jid=jid)
            self._entries[jid] = entry
        entry.nick = nick
        return entry
