"""
Helper functions for system_utils package.
Pure utility functions with minimal dependencies.
"""
from __future__ import annotations
import asyncio
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Optional

from logging_config import get_logger

logger = get_logger(__name__)

SPOTIFY_CDN = "https://i.scdn.co/image/"


def normalize_art_url(url: Optional[str]) -> Optional[str]:
    """
    Clean up an artwork URL reported by a media player.

    - Strips whitespace and trailing newlines from command output
    - Spotify's MPRIS client reports open.spotify.com/image/<id>, which is
      slow to redirect; the same image is served directly by i.scdn.co
    - spotify:image:<id> URIs become https://i.scdn.co/image/<id>

    Returns None for empty input.
    """
    if not url:
        return None
    url = url.strip()
    if not url:
        return None
    if url.startswith("spotify:image:"):
        return SPOTIFY_CDN + url[len("spotify:image:"):]
    return url.replace("open.spotify.com", "i.scdn.co", 1)


# =============================================================================
# Thread Executor for Blocking Operations
# =============================================================================
# A single worker keeps pipeline stages strictly sequential even if a caller
# forgets to await one before submitting the next.

_thread_executor: Optional[ThreadPoolExecutor] = None


def _get_executor() -> ThreadPoolExecutor:
    """Get or create the thread executor for blocking operations."""
    global _thread_executor
    if _thread_executor is None:
        _thread_executor = ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix="SyncCava_Worker"
        )
    return _thread_executor


async def run_in_worker(func: Callable, *args: Any) -> Any:
    """
    Run a blocking function (HTTP download, Pillow, file IO) off the event loop.

    Exceptions raised by func propagate to the awaiting coroutine.
    """
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(_get_executor(), func, *args)


def shutdown_worker() -> None:
    """Shutdown the thread executor. Call during app cleanup."""
    global _thread_executor
    if _thread_executor is not None:
        # wait=False ensures we don't block if a download is hung
        _thread_executor.shutdown(wait=False, cancel_futures=True)
        _thread_executor = None
