"""
SyncCava controller.

Polls the media watcher and, whenever the artwork URL changes, runs
fetch -> quantize -> patch -> reload. Nothing that goes wrong inside one
iteration is allowed to stop the loop.
"""
import asyncio
import time
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Union

from errors import (
    ConfigIOError,
    DecodeError,
    FetchError,
    QuantizationError,
    SignalError,
    SyncError,
    WatchError,
)
from logging_config import get_logger
from system_utils import (
    CommandRunner,
    PixelImage,
    fetch_artwork,
    patch_config,
    pick_theme,
    quantize,
    reload_cava,
    run_in_worker,
)
from system_utils.sources import BaseMediaWatcher

logger = get_logger(__name__)

# Log a stats summary every 5 minutes
STATE_LOG_INTERVAL = 300


class SyncOutcome(Enum):
    IDLE = "idle"            # Nothing playing, or the watcher failed this cycle
    UNCHANGED = "unchanged"  # Same artwork as last time
    SYNCED = "synced"        # New colors written (reload may still have been skipped)
    FAILED = "failed"        # New artwork seen but the pipeline was abandoned


class SyncLoop:
    """
    Owns the last-seen artwork URL and drives the pipeline.

    last_seen is updated as soon as a new URL is observed, before the pipeline
    runs. A URL whose pipeline fails is therefore not retried until the
    artwork changes again, which keeps a permanently broken URL from being
    hammered every poll. Watcher errors never touch last_seen.
    """

    def __init__(
        self,
        watcher: BaseMediaWatcher,
        config_path: Union[str, Path],
        num_colors: int = 3,
        poll_interval: float = 1.0,
        process_name: str = "cava",
        reload_signal: str = "USR2",
        runner: Optional[CommandRunner] = None,
        fetcher: Callable[[str], PixelImage] = fetch_artwork,
    ):
        self.watcher = watcher
        self.config_path = Path(config_path)
        self.num_colors = num_colors
        self.poll_interval = poll_interval
        self.process_name = process_name
        self.reload_signal = reload_signal
        self.runner = runner or CommandRunner()
        self.fetcher = fetcher

        self.last_seen: Optional[str] = None
        self.stats = {
            'polls': 0,
            'syncs': 0,
            'failures': 0,
            'watch_errors': 0,
        }
        self._watch_error_streak = 0
        self._last_state_log_time = time.time()
        self._stop_event: Optional[asyncio.Event] = None

    # === Single iteration ===

    async def step(self) -> SyncOutcome:
        """Poll once and run the pipeline if the artwork changed."""
        self.stats['polls'] += 1
        reference = await self._poll()
        if reference is None:
            return SyncOutcome.IDLE
        if reference == self.last_seen:
            return SyncOutcome.UNCHANGED

        logger.info(f"Artwork changed: {reference}")
        self.last_seen = reference
        return await self._run_pipeline(reference)

    async def sync_once(self) -> SyncOutcome:
        """Run the pipeline for whatever is playing now, even if already synced."""
        self.stats['polls'] += 1
        reference = await self._poll()
        if reference is None:
            logger.info("Nothing is playing, leaving cava colors alone")
            return SyncOutcome.IDLE
        self.last_seen = reference
        return await self._run_pipeline(reference)

    async def _poll(self) -> Optional[str]:
        try:
            reference = await self.watcher.poll()
        except WatchError as e:
            self.stats['watch_errors'] += 1
            self._watch_error_streak += 1
            # Only the first error of a streak is worth a warning
            if self._watch_error_streak == 1:
                logger.warning(f"{self.watcher.display_name}: {e}")
            else:
                logger.debug(f"{self.watcher.display_name} ({self._watch_error_streak} in a row): {e}")
            return None
        except Exception:
            self.stats['watch_errors'] += 1
            self._watch_error_streak += 1
            logger.exception(f"Unexpected error polling {self.watcher.display_name}")
            return None

        if self._watch_error_streak:
            logger.info(f"{self.watcher.display_name} recovered after {self._watch_error_streak} failed polls")
            self._watch_error_streak = 0
        return reference

    async def _run_pipeline(self, reference: str) -> SyncOutcome:
        try:
            image = await run_in_worker(self.fetcher, reference)
            palette = await run_in_worker(quantize, image, self.num_colors)
            colors = pick_theme(palette)
            await run_in_worker(patch_config, self.config_path, *colors)
        except (FetchError, DecodeError) as e:
            return self._failed(f"Artwork unusable, keeping current theme: {e}")
        except QuantizationError as e:
            return self._failed(f"No palette from artwork: {e}")
        except ConfigIOError as e:
            return self._failed(f"Cava config not updated: {e}")
        except SyncError as e:
            return self._failed(f"Sync failed: {e}")
        except Exception:
            # Unknown failure: keep the daemon alive, but keep the traceback
            logger.exception(f"Unexpected error while syncing {reference}")
            self.stats['failures'] += 1
            return SyncOutcome.FAILED

        self.stats['syncs'] += 1
        await self._reload()
        return SyncOutcome.SYNCED

    async def _reload(self) -> None:
        try:
            signalled = await run_in_worker(
                reload_cava, self.process_name, self.reload_signal, self.runner
            )
        except SignalError as e:
            logger.warning(f"Could not signal {self.process_name}: {e}")
            return
        except Exception:
            # Colors are already on disk; a failed reload only delays them
            logger.exception(f"Unexpected error while signalling {self.process_name}")
            return
        if not signalled:
            logger.warning(f"{self.process_name} is not running; new colors apply on its next start")

    def _failed(self, message: str) -> SyncOutcome:
        self.stats['failures'] += 1
        logger.error(message)
        return SyncOutcome.FAILED

    # === Main loop ===

    def stop(self) -> None:
        """Ask run() to return after the current iteration."""
        if self._stop_event is not None:
            self._stop_event.set()

    async def run(self) -> None:
        """Poll forever (until stop() is called or the task is cancelled)."""
        self._stop_event = asyncio.Event()
        logger.info(
            f"Watching {self.watcher.display_name} every {self.poll_interval}s, "
            f"writing {self.num_colors} colors to {self.config_path}"
        )
        while not self._stop_event.is_set():
            try:
                await self.step()
            except Exception:
                self.stats['failures'] += 1
                logger.exception("Unexpected error in sync iteration, polling again")
            self._maybe_log_state()
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass
        logger.info("Sync loop stopped")

    def _maybe_log_state(self) -> None:
        now = time.time()
        if now - self._last_state_log_time >= STATE_LOG_INTERVAL:
            self._last_state_log_time = now
            logger.debug(f"Sync stats: {self.stats}, last artwork: {self.last_seen}")
            watcher_stats = self.watcher.get_stats()
            if watcher_stats:
                logger.debug(f"{self.watcher.display_name} stats: {watcher_stats}")
