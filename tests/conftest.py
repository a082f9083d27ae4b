"""Pytest configuration and shared fixtures"""
import subprocess
from typing import List, Optional

import pytest

from system_utils import CommandResult, CommandRunner, PixelImage
from system_utils.sources import BaseMediaWatcher, WatcherConfig

CAVA_CONFIG = """\
## Configuration file for CAVA.
[general]
framerate = 60

[color]
; background = '#111111'
background = '#000000'
gradient = 1
gradient_count = 2
gradient_color_1 = '#59cc33'
gradient_color_2 = '#cc3333'
"""


class FakeRunner(CommandRunner):
    """Records commands instead of running them"""

    def __init__(self, results=None):
        self.calls: List[List[str]] = []
        self.results = list(results or [])

    def run(self, args, timeout=2.0):
        self.calls.append(list(args))
        result = self.results.pop(0) if self.results else CommandResult(0, "", "")
        if isinstance(result, BaseException):
            raise result
        return result


class FakeWatcher(BaseMediaWatcher):
    """Replays a scripted sequence of poll results (URLs, None or exceptions)"""

    def __init__(self, script):
        super().__init__()
        self.script = list(script)
        self.polls = 0

    @classmethod
    def get_config(cls) -> WatcherConfig:
        return WatcherConfig(name="fake", display_name="Fake Watcher")

    async def poll(self) -> Optional[str]:
        self.polls += 1
        result = self.script.pop(0) if self.script else None
        if isinstance(result, BaseException):
            raise result
        return result


@pytest.fixture
def cava_config(tmp_path):
    """A cava config file with all three color slots"""
    path = tmp_path / "config"
    path.write_text(CAVA_CONFIG, encoding="utf-8")
    return path


@pytest.fixture
def red_image():
    """2x2 opaque red image"""
    return PixelImage.from_rgba(2, 2, [(255, 0, 0, 255)] * 4)


@pytest.fixture
def timeout_error():
    return subprocess.TimeoutExpired(cmd="playerctl", timeout=2)
