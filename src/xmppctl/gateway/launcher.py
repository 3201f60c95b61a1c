"""
gateway/launcher.py — Gateway Process Launcher

Starts the long-lived gateway in the background, and runs the gateway's own
`message send` command as a short-lived helper when no live client handle is
available in this process.

Neither operation raises on a missing or broken gateway install: the
background start prints the problem and returns None, and the helper send
folds spawn errors into an ExternalSendResult.

The helper send has no timeout. A gateway CLI that hangs will hang the
calling command until the operator interrupts it.
"""

from __future__ import annotations

import asyncio
import os
import subprocess
import sys
from dataclasses import dataclass
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape

from xmppctl.config.settings import GatewayConfig, MESSAGE_PLACEHOLDER, TARGET_PLACEHOLDER
from xmppctl.observability.logger import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class ExternalSendResult:
    """Completion of one helper-process send."""
    code: Optional[int]
    stdout: str = ""
    stderr: str = ""
    error: Optional[str] = None  # set when the process never started

    @property
    def ok(self) -> bool:
        return self.error is None and self.code == 0

    @property
    def diagnostic(self) -> str:
        """Best human-readable reason: stderr, then stdout, then spawn error."""
        return (
            self.stderr.strip()
            or self.stdout.strip()
            or (self.error or "")
            or f"exit code {self.code}"
        )


class GatewayLauncher:
    """Spawns gateway processes from a GatewayConfig."""

    def __init__(
        self,
        config: GatewayConfig,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ):
        self._config = config
        self.console = console or Console()
        self.err_console = err_console or Console(stderr=True)

    # ─────────────────────────────────────────────────────────────────────────
    # argv construction
    # ─────────────────────────────────────────────────────────────────────────

    def _command(self, args: list[str]) -> list[str]:
        argv = [self._config.executable, *args]
        if sys.platform == "win32" and self._config.windows_shell_wrapper:
            # npm-style installs put a .cmd shim on PATH that CreateProcess
            # cannot run directly
            argv = ["cmd.exe", "/c", *argv]
        return argv

    def start_argv(self) -> list[str]:
        return self._command(list(self._config.start_args))

    def send_argv(self, address: str, body: str) -> list[str]:
        """Helper argv with the address and body substituted as whole arguments."""
        args = [
            arg.replace(TARGET_PLACEHOLDER, address).replace(MESSAGE_PLACEHOLDER, body)
            for arg in self._config.send_args
        ]
        return self._command(args)

    def _cwd(self) -> Optional[str]:
        wd = self._config.working_dir
        return os.path.expanduser(wd) if wd else None

    # ─────────────────────────────────────────────────────────────────────────
    # Background gateway
    # ─────────────────────────────────────────────────────────────────────────

    async def start_background(self) -> Optional[int]:
        """
        Launch the gateway detached from this process and return its pid.

        Readiness is not checked; after a fixed delay the operator is told
        to confirm with `xmppctl status`.
        """
        self.console.print("Starting gateway...")
        argv = self.start_argv()

        popen_kwargs: dict[str, Any] = {
            "stdin": subprocess.DEVNULL,
            "stdout": subprocess.DEVNULL,
            "stderr": subprocess.DEVNULL,
            "cwd": self._cwd(),
            "env": dict(os.environ),
        }
        if sys.platform == "win32":
            popen_kwargs["creationflags"] = (
                subprocess.DETACHED_PROCESS | subprocess.CREATE_NEW_PROCESS_GROUP
            )
        else:
            popen_kwargs["start_new_session"] = True

        try:
            proc = subprocess.Popen(argv, **popen_kwargs)
        except (OSError, ValueError) as e:
            log.warning("launcher.start_failed", argv=argv, error=str(e))
            self.err_console.print(
                f"[red]Failed to start gateway: {escape(str(e))}[/]"
            )
            return None

        log.info("launcher.started", argv=argv, pid=proc.pid)
        self.console.print(f"Gateway starting in background (pid: {proc.pid})")
        self.console.print("Waiting for gateway to initialize...")
        await asyncio.sleep(self._config.readiness_delay_seconds)
        self.console.print("Gateway should be ready. Try: xmppctl status")
        return proc.pid

    # ─────────────────────────────────────────────────────────────────────────
    # Helper-process send
    # ─────────────────────────────────────────────────────────────────────────

    async def send_via_external(self, address: str, body: str) -> ExternalSendResult:
        """Run the gateway's send command and wait for it to exit. Never raises."""
        argv = self.send_argv(address, body)
        log.debug("launcher.send.spawn", executable=argv[0], target=address)

        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self._cwd(),
            )
        except (OSError, ValueError) as e:
            log.warning("launcher.send.spawn_failed", executable=argv[0], error=str(e))
            return ExternalSendResult(code=None, error=f"Failed to start process: {e}")

        try:
            stdout_bytes, stderr_bytes = await proc.communicate()
        except asyncio.CancelledError:
            # Ctrl-C: don't leave the helper running behind the operator
            log.info("launcher.send.cancelled", target=address, pid=proc.pid)
            try:
                proc.kill()
            except ProcessLookupError:
                pass
            await proc.wait()
            raise

        result = ExternalSendResult(
            code=proc.returncode,
            stdout=(stdout_bytes or b"").decode("utf-8", errors="replace"),
            stderr=(stderr_bytes or b"").decode("utf-8", errors="replace"),
        )
        log.info("launcher.send.exited", target=address, exit_code=result.code)
        return result
