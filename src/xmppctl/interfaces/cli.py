"""
interfaces/cli.py — xmppctl Command Surface

Maps operator commands onto the dispatch router, the gateway launcher, the
host's message queue and the roster. Each command is one short-lived call
that prints to the operator and returns a process exit code.

Commands:
    start                           launch the gateway in the background
    status                          show live client status
    msg <jid> <words...>            send a message (direct, else via gateway)
    roster                          list in-memory roster
    nick <jid> <name>               set a roster nickname
    join <room> [nick]              join a MUC room through the live client
    poll [--ack]                    list unprocessed queued messages
    clear                           evict old queued messages
    queue                           queue counts and a short preview
    encrypt-password [password]     store an encrypted password in the config
"""

from __future__ import annotations

import argparse
import inspect
import sys
from typing import Optional, TextIO

from rich.console import Console
from rich.markup import escape

from xmppctl.config.settings import Settings
from xmppctl.exceptions import (
    EncryptionKeyMissingError,
    InvalidMessageError,
    RoomJoinError,
)
from xmppctl.gateway.launcher import GatewayLauncher
from xmppctl.gateway.router import DispatchRouter
from xmppctl.gateway.stanza import muc_presence
from xmppctl.host import GatewayHost
from xmppctl.observability.logger import bind_command, clear_command, get_logger
from xmppctl.roster import RosterStore
from xmppctl.security.encryption import (
    PasswordEncryptor,
    update_config_with_encrypted_password,
)

log = get_logger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_USAGE = 2

_ENCRYPT_USAGE = (
    "Usage: xmppctl encrypt-password <password> [--config-file <path>]",
    'Or use stdin: echo "mypassword" | xmppctl encrypt-password --config-file openclaw.json',
)


class XmppCommands:
    """
    Command handlers. All state is owned by the objects passed in; nothing
    here is module-global.
    """

    def __init__(
        self,
        host: GatewayHost,
        launcher: GatewayLauncher,
        router: DispatchRouter,
        roster: RosterStore,
        settings: Settings,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
        stdin: Optional[TextIO] = None,
    ):
        self._host = host
        self._launcher = launcher
        self._router = router
        self._roster = roster
        self._settings = settings
        self.console = console or Console()
        self.err_console = err_console or Console(stderr=True)
        self._stdin = stdin if stdin is not None else sys.stdin

    # ─────────────────────────────────────────────────────────────────────────
    # Gateway lifecycle
    # ─────────────────────────────────────────────────────────────────────────

    async def cmd_start(self) -> int:
        await self._launcher.start_background()
        return EXIT_OK

    def _print_not_connected(self) -> None:
        self.console.print("XMPP client not connected. Gateway must be running.")
        self.console.print("Start gateway with: xmppctl start")

    def cmd_status(self) -> int:
        handle = self._host.get_direct_handle()
        if handle is not None:
            status = getattr(handle, "status", None)
            self.console.print(
                escape(str(status)) if status else "Connected (no status available)"
            )
            return EXIT_OK

        self._print_not_connected()
        self.console.print('Or send messages directly: xmppctl msg user@domain.com "Hello"')
        if not self._settings.gateway_installed():
            self.console.print(
                f"[dim]Note: '{escape(self._settings.gateway.executable)}' "
                f"was not found on PATH.[/]"
            )
        return EXIT_OK

    # ─────────────────────────────────────────────────────────────────────────
    # Messaging
    # ─────────────────────────────────────────────────────────────────────────

    async def cmd_msg(self, jid: str, words: list[str]) -> int:
        message = " ".join(words)
        try:
            result = await self._router.dispatch(jid, message)
        except InvalidMessageError as e:
            self.err_console.print(f"[red]{escape(str(e))}[/]")
            return EXIT_USAGE
        return EXIT_OK if result.delivered else EXIT_ERROR

    # ─────────────────────────────────────────────────────────────────────────
    # Roster
    # ─────────────────────────────────────────────────────────────────────────

    def cmd_roster(self) -> int:
        if len(self._roster) == 0:
            self.console.print("No roster entries (in-memory only)")
            return EXIT_OK
        self.console.print("Roster (in-memory):")
        for entry in self._roster:
            self.console.print(f"  {escape(entry.jid)}: {escape(entry.nick or 'no nick')}")
        return EXIT_OK

    def cmd_nick(self, jid: str, name: str) -> int:
        self._roster.set_nick(jid, name)
        self.console.print(f"Nickname set for {escape(jid)}: {escape(name)}")
        return EXIT_OK

    # ─────────────────────────────────────────────────────────────────────────
    # Group chat
    # ─────────────────────────────────────────────────────────────────────────

    async def cmd_join(self, room: str, nick: Optional[str] = None) -> int:
        handle = self._host.get_direct_handle()
        if handle is None:
            self._print_not_connected()
            return EXIT_ERROR

        actual_nick = nick or self._settings.muc.default_nick
        try:
            await self._join(handle, room, actual_nick)
        except Exception as e:
            log.warning("cli.join.failed", room=room, error=str(e))
            self.err_console.print(f"[red]Failed to join room: {escape(str(e))}[/]")
            return EXIT_ERROR

        self.console.print(f"Joined room: {escape(room)} as {escape(actual_nick)}")
        return EXIT_OK

    async def _join(self, handle, room: str, nick: str) -> None:
        join_room = getattr(handle, "join_room", None)
        if callable(join_room):
            outcome = join_room(room, nick)
        else:
            outcome = handle.send(muc_presence(room, nick))
        if inspect.isawaitable(outcome):
            outcome = await outcome
        if outcome is False:
            raise RoomJoinError(room, "client rejected the join")

    # ─────────────────────────────────────────────────────────────────────────
    # Queue
    # ─────────────────────────────────────────────────────────────────────────

    def cmd_poll(self, ack: bool = False) -> int:
        unprocessed = self._host.unprocessed()
        if not unprocessed:
            self.console.print("No unprocessed messages in queue")
            return EXIT_OK

        self.console.print(f"Found {len(unprocessed)} unprocessed messages:")
        for i, msg in enumerate(unprocessed, start=1):
            self.console.print(escape(f"{i}. [{msg.account_id}] {msg.sender}: {msg.body}"))
        if ack:
            marked = self._host.mark_processed(unprocessed)
            self.console.print(f"Marked {marked} messages as processed")
        return EXIT_OK

    def cmd_clear(self) -> int:
        before = len(self._host)
        self._host.clear_old()
        removed = before - len(self._host)
        self.console.print(f"Cleared {removed} old messages")
        return EXIT_OK

    def cmd_queue(self) -> int:
        total = len(self._host)
        pending = len(self._host.unprocessed())
        self.console.print(f"Message queue: {total} total, {pending} unprocessed")
        for row in self._host.snapshot(self._settings.queue.preview_limit):
            self.console.print(escape(row.render()))
        return EXIT_OK

    # ─────────────────────────────────────────────────────────────────────────
    # Credentials
    # ─────────────────────────────────────────────────────────────────────────

    def _read_piped_password(self) -> Optional[str]:
        if self._stdin is None or self._stdin.isatty():
            return None
        line = self._stdin.readline()
        return line.strip() or None

    def cmd_encrypt_password(
        self, password: Optional[str], config_file: Optional[str] = None
    ) -> int:
        password = password or self._read_piped_password()
        if not password:
            for line in _ENCRYPT_USAGE:
                self.err_console.print(escape(line))
            return EXIT_ERROR

        config_path = config_file or self._settings.security.config_file
        try:
            encryptor = PasswordEncryptor(self._settings.encryption_key)
            path = update_config_with_encrypted_password(config_path, password, encryptor)
        except EncryptionKeyMissingError as e:
            self.err_console.print(f"[red]{escape(str(e))}[/]")
            return EXIT_ERROR
        except (OSError, ValueError) as e:
            self.err_console.print(
                f"[red]Failed to update config {escape(str(config_path))}: {escape(str(e))}[/]"
            )
            return EXIT_ERROR

        self.console.print("Password encrypted successfully!")
        self.console.print(f"Config file: {escape(str(path))}")
        return EXIT_OK


# ─────────────────────────────────────────────────────────────────────────────
# argparse wiring
# ─────────────────────────────────────────────────────────────────────────────

def register_xmpp_cli(parser: argparse.ArgumentParser) -> None:
    """Attach every xmppctl subcommand to `parser`."""
    sub = parser.add_subparsers(dest="command", metavar="<command>")
    sub.required = True

    sub.add_parser("start", help="Start the gateway in background")
    sub.add_parser("status", help="Show XMPP connection status")

    p = sub.add_parser("msg", help="Send direct XMPP message (routes through gateway)")
    p.add_argument("jid", help="Destination address, e.g. user@domain.com")
    p.add_argument("message", nargs="+", help="Message words, joined with single spaces")

    sub.add_parser("roster", help="Show roster (in-memory)")

    p = sub.add_parser("nick", help="Set roster nickname (in-memory)")
    p.add_argument("jid")
    p.add_argument("name")

    p = sub.add_parser("join", help="Join MUC room")
    p.add_argument("room")
    p.add_argument("nick", nargs="?", default=None)

    p = sub.add_parser("poll", help="Poll queued messages")
    p.add_argument(
        "--ack",
        action="store_true",
        default=False,
        help="Mark the listed messages as processed",
    )

    sub.add_parser("clear", help="Clear old messages from queue")
    sub.add_parser("queue", help="Show message queue status")

    p = sub.add_parser("encrypt-password", help="Encrypt the XMPP password into the config file")
    p.add_argument("password", nargs="?", default=None)
    p.add_argument("--config-file", default=None, help="JSON config to update (default: openclaw.json)")


async def run_command(args: argparse.Namespace, commands: XmppCommands) -> int:
    """Route a parsed command line to its handler and return the exit code."""
    bind_command(args.command)
    try:
        if args.command == "start":
            return await commands.cmd_start()
        if args.command == "status":
            return commands.cmd_status()
        if args.command == "msg":
            return await commands.cmd_msg(args.jid, args.message)
        if args.command == "roster":
            return commands.cmd_roster()
        if args.command == "nick":
            return commands.cmd_nick(args.jid, args.name)
        if args.command == "join":
            return await commands.cmd_join(args.room, args.nick)
        if args.command == "poll":
            return commands.cmd_poll(ack=args.ack)
        if args.command == "clear":
            return commands.cmd_clear()
        if args.command == "queue":
            return commands.cmd_queue()
        if args.command == "encrypt-password":
            return commands.cmd_encrypt_password(args.password, args.config_file)
        commands.err_console.print(f"[red]Unknown command: {escape(str(args.command))}[/]")
        return EXIT_USAGE
    finally:
        clear_command()
