"""
Base class for media watchers.

A watcher answers one question: what is the artwork URL of the item that is
playing right now? The sync loop polls it and only cares about changes.

To add a new watcher:
1. Create a new file in system_utils/sources/
2. Subclass BaseMediaWatcher
3. Implement get_config() and poll()
4. Register the class in system_utils/sources/__init__.py
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import platform


@dataclass
class WatcherConfig:
    """Static identity of a watcher."""
    name: str                              # Internal ID used by --source / sync.source
    display_name: str                      # Human-readable name for logs
    platforms: List[str] = field(default_factory=lambda: ["Windows", "Linux", "Darwin"])


class BaseMediaWatcher(ABC):
    """
    Abstract base class for media watchers.

    Required methods:
        get_config() - Return static WatcherConfig
        poll() - Return the current artwork URL or None

    Optional methods:
        is_available() - Check if the watcher can run (platform, dependencies)
    """

    def __init__(self):
        self._config = self.get_config()

    @classmethod
    @abstractmethod
    def get_config(cls) -> WatcherConfig:
        """Return static watcher configuration."""
        pass

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def display_name(self) -> str:
        return self._config.display_name

    def is_available(self) -> bool:
        """
        Check if this watcher can run on the current system.

        Default implementation checks the platform list. Override to also
        check for binaries or credentials.
        """
        return platform.system() in self._config.platforms

    @abstractmethod
    async def poll(self) -> Optional[str]:
        """
        Return the artwork URL of the currently playing item.

        Returns:
            The artwork URL, or None if nothing is playing or the item has
            no artwork.

        Raises:
            WatchError: if the media source could not be queried or its
            answer was malformed. The sync loop treats this as "no change".
        """
        pass

    def get_stats(self) -> Dict[str, Any]:
        """Counters worth including in the periodic state log. None by default."""
        return {}

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name}>"
