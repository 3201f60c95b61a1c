"""
tests/unit/test_host.py — Host Contract and Stanza Tests

Covers:
  - Stanza building / serialisation / parsing
  - LocalHost handle attach/detach and provider lookup
  - LocalHost queue delegation
  - Inbound stanza filtering into the queue
"""

from __future__ import annotations

import pytest

from xmppctl.gateway.stanza import Stanza, chat_message, is_queueable_message, muc_presence
from xmppctl.host import DirectHandle, LocalHost
from xmppctl.config.settings import QueueConfig
from xmppctl.inbox.message_queue import MessageQueue, QueuedMessage


# ── Stanza ────────────────────────────────────────────────────────────────────


class TestStanza:
    def test_chat_message_xml(self):
        xml = chat_message("a@b.com", "hi & bye").to_xml()
        parsed = Stanza.from_xml(xml)
        assert parsed.name == "message"
        assert parsed.get("to") == "a@b.com"
        assert parsed.get("type") == "chat"
        assert parsed.child_text("body") == "hi & bye"
        assert "&amp;" in xml

    def test_muc_presence(self):
        p = muc_presence("room@conf.example", "bot")
        assert p.name == "presence"
        assert p.get("to") == "room@conf.example/bot"

    def test_none_attrs_dropped(self):
        s = Stanza(name="message", attrs={"to": "x@y", "id": None})
        assert "id=" not in s.to_xml()

    def test_namespace_stripped_on_parse(self):
        raw = '<message xmlns="jabber:client" from="x@y" type="chat"><body>yo</body></message>'
        s = Stanza.from_xml(raw)
        assert s.name == "message"
        assert s.child_text("body") == "yo"

    def test_malformed_raises_value_error(self):
        with pytest.raises(ValueError):
            Stanza.from_xml("<message><body>")

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ('<message type="chat"><body>hi</body></message>', True),
            ('<message><body>hi</body></message>', True),
            ('<message type="groupchat"><body>hi</body></message>', True),
            ('<message type="error"><body>hi</body></message>', False),
            ('<message type="chat"><composing/></message>', False),
            ('<message type="chat"><body>   </body></message>', False),
            ('<presence from="x@y"/>', False),
        ],
    )
    def test_is_queueable_message(self, raw, expected):
        assert is_queueable_message(Stanza.from_xml(raw)) is expected


# ── LocalHost ─────────────────────────────────────────────────────────────────


class _Handle:
    status = "online"

    def send(self, stanza):
        return None


class TestLocalHost:
    def test_no_handle_by_default(self):
        assert LocalHost().get_direct_handle() is None

    def test_attach_and_detach(self):
        host = LocalHost()
        h = _Handle()
        host.attach(h)
        assert host.get_direct_handle() is h
        host.detach()
        assert host.get_direct_handle() is None

    def test_provider_resolved_on_every_call(self):
        current = {"handle": None}
        host = LocalHost(handle_provider=lambda: current["handle"])
        assert host.get_direct_handle() is None
        current["handle"] = _Handle()
        assert host.get_direct_handle() is current["handle"]

    def test_handle_satisfies_protocol(self):
        assert isinstance(_Handle(), DirectHandle)

    def test_empty_queue_is_kept(self):
        queue = MessageQueue(QueueConfig(max_age_seconds=100, processed_max_age_seconds=10))
        host = LocalHost(queue=queue)
        assert host.queue is queue

        m = QueuedMessage(account_id="a", sender="x@y", body="hi")
        host.enqueue(m)
        assert queue.messages == (m,)

    def test_queue_delegation(self):
        host = LocalHost()
        m = QueuedMessage(account_id="a", sender="x@y", body="hi")
        host.enqueue(m)
        assert len(host) == 1
        assert host.unprocessed() == [m]
        assert host.mark_processed([m]) == 1
        assert host.unprocessed() == []
        assert host.snapshot(5)[0].processed is True
        assert host.clear_old() == 0


class TestInbound:
    def test_chat_stanza_is_queued(self):
        host = LocalHost()
        queued = host.handle_inbound(
            "work",
            '<message from="alice@example.com/phone" type="chat"><body>ping</body></message>',
        )
        assert queued is not None
        assert queued.account_id == "work"
        assert queued.sender == "alice@example.com/phone"
        assert queued.body == "ping"
        assert host.unprocessed() == [queued]

    def test_stanza_object_accepted(self):
        host = LocalHost()
        s = Stanza(
            name="message",
            attrs={"from": "bob@example.com", "type": "chat"},
            children=[Stanza(name="body", text="hello")],
        )
        assert host.handle_inbound("default", s) is not None
        assert len(host) == 1

    def test_non_message_ignored(self):
        host = LocalHost()
        assert host.handle_inbound("default", '<presence from="x@y"/>') is None
        assert len(host) == 0

    def test_malformed_ignored(self):
        host = LocalHost()
        assert host.handle_inbound("default", "<message") is None
        assert len(host) == 0
