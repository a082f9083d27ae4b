"""
Thin wrapper around subprocess for the external tools SyncCava drives
(playerctl, pkill). Sources and the reload signaler take a runner so tests
can swap in a fake instead of spawning real processes.
"""
from __future__ import annotations
import asyncio
import subprocess
from dataclasses import dataclass
from typing import Sequence

from logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CommandResult:
    returncode: int
    stdout: str
    stderr: str


class CommandRunner:
    """
    Runs a command without a shell and captures its output.

    FileNotFoundError (binary missing) and subprocess.TimeoutExpired are
    left for the caller to translate into its own error type.
    """

    def run(self, args: Sequence[str], timeout: float = 2.0) -> CommandResult:
        logger.debug(f"Running: {' '.join(args)}")
        result = subprocess.run(
            list(args),
            capture_output=True,
            text=True,
            # Players may report non-UTF-8 metadata; never fail decoding it
            errors="replace",
            timeout=timeout,
        )
        return CommandResult(result.returncode, result.stdout, result.stderr)

    async def run_async(self, args: Sequence[str], timeout: float = 2.0) -> CommandResult:
        """Run in the default executor to avoid blocking the event loop."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: self.run(args, timeout))
