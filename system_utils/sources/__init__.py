"""
Media watcher registry.

The watcher is chosen once at startup from configuration (sync.source or
--source), never by probing the platform inside the sync loop.

Usage:
    from system_utils.sources import create_watcher

    watcher = create_watcher("playerctl", player="spotify")
    url = await watcher.poll()
"""
from typing import Dict, List, Type

from logging_config import get_logger
from .base import BaseMediaWatcher, WatcherConfig
from .linux import LinuxSource
from .spotify import SpotifySource

logger = get_logger(__name__)

# Registry of watcher classes by config name
_registry: Dict[str, Type[BaseMediaWatcher]] = {
    cls.get_config().name: cls for cls in (LinuxSource, SpotifySource)
}


def available_watchers() -> List[str]:
    """Names accepted by create_watcher()."""
    return sorted(_registry)


def create_watcher(name: str, **kwargs) -> BaseMediaWatcher:
    """
    Instantiate the watcher registered under name.

    Raises:
        ValueError: if no watcher has that name
    """
    try:
        cls = _registry[name]
    except KeyError:
        raise ValueError(f"Unknown media source '{name}' (choose from {', '.join(available_watchers())})") from None

    watcher = cls(**kwargs)
    if not watcher.is_available():
        logger.warning(f"{watcher.display_name} does not look usable on this system, polling anyway")
    else:
        logger.info(f"Using media source: {watcher.display_name} ({watcher.name})")
    return watcher


__all__ = [
    'BaseMediaWatcher',
    'WatcherConfig',
    'LinuxSource',
    'SpotifySource',
    'available_watchers',
    'create_watcher',
]
