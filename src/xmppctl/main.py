"""
main.py — xmppctl Entry Point

Usage:
    xmppctl start                               # launch gateway in background
    xmppctl status
    xmppctl msg user@domain.com Hello there     # direct, else via gateway CLI
    xmppctl poll --ack
    xmppctl --config path/to/config.yaml queue
    xmppctl --log-level DEBUG msg ...
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _find_env_file() -> Path | None:
    """Walk up from CWD looking for .env file."""
    cwd = Path.cwd()
    for d in [cwd, *cwd.parents]:
        candidate = d / ".env"
        if candidate.is_file():
            return candidate
    return None


def build_parser() -> argparse.ArgumentParser:
    from xmppctl.interfaces.cli import register_xmpp_cli

    parser = argparse.ArgumentParser(
        prog="xmppctl",
        description="Operate a background XMPP gateway without holding a live connection",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: $XMPPCTL_CONFIG or config/config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override log level from config",
    )
    register_xmpp_cli(parser)
    return parser


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def bootstrap(args: argparse.Namespace):
    """
    Load config, validate it fully, and set up logging.
    Returns (settings, log) ready for use.

    Exits with code 1 (after printing a clear message) if config.yaml has
    invalid values or cross-field problems.
    """
    from pydantic import ValidationError

    from xmppctl.config.settings import ConfigError, load_settings
    from xmppctl.observability.logger import get_logger, setup_logging

    # -- Load and parse -------------------------------------------------------
    try:
        settings = load_settings(args.config)
    except ValidationError as exc:
        problems = "\n".join(
            f"  • {'.'.join(str(p) for p in e['loc']) or '?'}: {e['msg']}"
            for e in exc.errors()
        )
        print(
            f"\n❌  Config validation failed:\n\n{problems}\n\n"
            f"    Fix config/config.yaml or your .env file and retry.\n",
            file=sys.stderr,
        )
        sys.exit(1)
    except (OSError, ValueError, TypeError) as exc:
        print(
            f"\n❌  Failed to load config: {type(exc).__name__}: {exc}\n",
            file=sys.stderr,
        )
        sys.exit(1)

    # -- Cross-field validation -----------------------------------------------
    try:
        settings.validate_all()
    except ConfigError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(1)

    # -- Logging --------------------------------------------------------------
    setup_logging(
        level=args.log_level or settings.log_level,
        log_dir=settings.log_dir,
        json_format=settings.log_json_format,
        console_output=settings.log_console_output,
        max_bytes=settings.logging.max_file_size_mb * 1024 * 1024,
        backup_count=settings.logging.backup_count,
    )

    log = get_logger("xmppctl.main")
    return settings, log


def build_commands(settings, host=None):
    """
    Wire the object graph for one command invocation.

    `host` defaults to a LocalHost with an empty queue and no live handle,
    which is what a standalone CLI process has. Embedders that own a live
    client pass their own host.
    """
    from rich.console import Console

    from xmppctl.gateway.launcher import GatewayLauncher
    from xmppctl.gateway.router import DispatchRouter
    from xmppctl.host import LocalHost
    from xmppctl.inbox.message_queue import MessageQueue
    from xmppctl.interfaces.cli import XmppCommands
    from xmppctl.roster import RosterStore

    console = Console(highlight=False, emoji=False)
    err_console = Console(stderr=True, highlight=False, emoji=False)

    if host is None:
        host = LocalHost(queue=MessageQueue(settings.queue))
    launcher = GatewayLauncher(settings.gateway, console=console, err_console=err_console)
    router = DispatchRouter(host, launcher, console=console, err_console=err_console)
    return XmppCommands(
        host=host,
        launcher=launcher,
        router=router,
        roster=RosterStore(),
        settings=settings,
        console=console,
        err_console=err_console,
    )


async def main(argv: Optional[list[str]] = None) -> int:
    env_path = _find_env_file()
    if env_path:
        load_dotenv(dotenv_path=env_path)

    args = parse_args(argv)
    settings, log = bootstrap(args)

    from xmppctl.interfaces.cli import run_command

    commands = build_commands(settings)
    log.debug("xmppctl.command", command=args.command)
    try:
        return await run_command(args, commands)
    except (KeyboardInterrupt, asyncio.CancelledError):
        log.info("xmppctl.interrupted", command=args.command)
        return 130


def cli() -> None:
    """Console-script entry point."""
    try:
        code = asyncio.run(main())
    except KeyboardInterrupt:
        code = 130
    sys.exit(code)
