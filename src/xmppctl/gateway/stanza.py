"""
gateway/stanza.py — Minimal XMPP Stanza Model

Typed representation of the few stanzas the command surface builds or reads:
outbound chat messages, MUC join presence, and inbound chat messages that
feed the message queue. The live client owns the wire; this module only
produces and parses the XML payload.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Optional


_QUEUEABLE_TYPES = {"chat", "normal", "groupchat"}


def _local_name(tag: str) -> str:
    # "{jabber:client}message" -> "message"
    return tag.rsplit("}", 1)[-1]


@dataclass
class Stanza:
    """
    A single XML element with attributes, optional text and child elements.

    Only `name` is required. Attributes whose value is None are dropped
    when serialising.
    """
    name: str
    attrs: dict[str, Optional[str]] = field(default_factory=dict)
    text: Optional[str] = None
    children: list["Stanza"] = field(default_factory=list)

    # ── Accessors ────────────────────────────────────────────────────────────

    def get(self, attr: str) -> Optional[str]:
        return self.attrs.get(attr)

    def child(self, name: str) -> Optional["Stanza"]:
        for c in self.children:
            if c.name == name:
                return c
        return None

    def child_text(self, name: str) -> Optional[str]:
        c = self.child(name)
        return c.text if c is not None else None

    # ── Serialisation ────────────────────────────────────────────────────────

    def to_element(self) -> ET.Element:
        el = ET.Element(
            self.name,
            {k: v for k, v in self.attrs.items() if v is not None},
        )
        if self.text is not None:
            el.text = self.text
        for c in self.children:
            el.append(c.to_element())
        return el

    def to_xml(self) -> str:
        """Serialize to an XML string (no declaration)."""
        return ET.tostring(self.to_element(), encoding="unicode")

    @classmethod
    def from_element(cls, el: ET.Element) -> "Stanza":
        return cls(
            name=_local_name(el.tag),
            attrs=dict(el.attrib),
            text=el.text,
            children=[cls.from_element(c) for c in el],
        )

    @classmethod
    def from_xml(cls, raw: str) -> "Stanza":
        """Parse an XML string. Raises ValueError on malformed input."""
        try:
            el = ET.fromstring(raw)
        except ET.ParseError as e:
            raise ValueError(f"Malformed stanza: {e}") from e
        return cls.from_element(el)

    def __str__(self) -> str:
        return self.to_xml()


# ─────────────────────────────────────────────────────────────────────────────
# Factory helpers
# ─────────────────────────────────────────────────────────────────────────────

def chat_message(to: str, body: str) -> Stanza:
    """Build `<message to=... type="chat"><body>...</body></message>`."""
    return Stanza(
        name="message",
        attrs={"to": to, "type": "chat"},
        children=[Stanza(name="body", text=body)],
    )


def muc_presence(room: str, nick: str) -> Stanza:
    """Build the presence stanza that joins `room` under `nick`."""
    return Stanza(name="presence", attrs={"to": f"{room}/{nick}"})


def is_queueable_message(stanza: Stanza) -> bool:
    """
    True for inbound <message> stanzas that carry a non-empty body and a
    chat-like type. Errors, headlines and body-less chat states are ignored.
    """
    if stanza.name != "message":
        return False
    msg_type = stanza.get("type") or "normal"
    if msg_type not in _QUEUEABLE_TYPES:
        return False
    body = stanza.child_text("body")
    return bool(body and body.strip())
