"""
Linux MPRIS artwork source via playerctl.

Works with any MPRIS-compatible media player (Spotify, VLC, Firefox,
Rhythmbox, ...).

Requirements:
- Linux operating system
- playerctl installed: sudo apt install playerctl
"""
import subprocess
import platform
from typing import Optional

from errors import WatchError
from logging_config import get_logger
from .base import BaseMediaWatcher, WatcherConfig
from ..commands import CommandRunner
from ..helpers import normalize_art_url

logger = get_logger(__name__)


class LinuxSource(BaseMediaWatcher):
    """
    Reads mpris:artUrl of the active player through playerctl.

    Configuration:
    - playerctl.player: restrict to one player (e.g. "spotify")
    - playerctl.timeout: seconds before a playerctl call is abandoned
    """

    def __init__(self, player: Optional[str] = None, timeout: float = 2.0,
                 runner: Optional[CommandRunner] = None):
        super().__init__()
        self.player = player
        self.timeout = timeout
        self.runner = runner or CommandRunner()
        self._playerctl_available: Optional[bool] = None

    @classmethod
    def get_config(cls) -> WatcherConfig:
        return WatcherConfig(
            name="playerctl",
            display_name="Linux (MPRIS)",
            platforms=["Linux"],
        )

    def is_available(self) -> bool:
        """
        Check if we're on Linux and playerctl is installed.

        Caches the result to avoid repeated subprocess calls.
        """
        if platform.system() != "Linux":
            return False

        if self._playerctl_available is None:
            try:
                result = self.runner.run(["playerctl", "--version"], timeout=self.timeout)
                self._playerctl_available = result.returncode == 0
                if self._playerctl_available:
                    logger.debug(f"playerctl found: {result.stdout.strip()}")
                else:
                    logger.warning("playerctl not available (command failed)")
            except FileNotFoundError:
                self._playerctl_available = False
                logger.warning("playerctl not installed. Install with: sudo apt install playerctl")
            except subprocess.TimeoutExpired:
                self._playerctl_available = False
                logger.warning("playerctl check timed out")
            except OSError as e:
                self._playerctl_available = False
                logger.warning(f"playerctl check failed: {e}")

        return self._playerctl_available

    def _command(self) -> list:
        args = ["playerctl"]
        if self.player:
            args.append(f"--player={self.player}")
        return args + ["metadata", "mpris:artUrl"]

    async def poll(self) -> Optional[str]:
        try:
            result = await self.runner.run_async(self._command(), timeout=self.timeout)
        except FileNotFoundError as e:
            self._playerctl_available = False
            raise WatchError("playerctl not installed") from e
        except subprocess.TimeoutExpired as e:
            raise WatchError(f"playerctl timed out after {self.timeout}s") from e
        except (OSError, ValueError) as e:
            # e.g. PermissionError spawning playerctl, undecodable output
            raise WatchError(f"playerctl failed: {e}") from e

        # Non-zero exit: "No players found" or the player exposes no artUrl
        if result.returncode != 0:
            logger.debug(f"playerctl: {result.stderr.strip() or 'no artwork'}")
            return None

        return normalize_art_url(result.stdout)
