"""
Cava integration for system_utils package.
Rewrites the color slots of the cava config and asks a running cava to reload.

See https://github.com/karlstav/cava for the config format and signals.
"""
from __future__ import annotations
import os
import re
import subprocess
import uuid
from pathlib import Path
from typing import Dict, Optional, Union

from errors import ConfigIOError, SignalError
from logging_config import get_logger
from .commands import CommandRunner

logger = get_logger(__name__)

COLOR_KEYS = ("background", "gradient_color_1", "gradient_color_2")

_HEX_RE = re.compile(r'[0-9A-Fa-f]{6}')

# One pattern per key. Anchored at line start so commented-out lines
# ("; background = '#000000'") and longer keys never match.
_KEY_PATTERNS = {
    key: re.compile(
        rf"^(?P<indent>[ \t]*){key}[ \t]*=[ \t]*'#[0-9A-Fa-f]{{6}}'",
        re.MULTILINE,
    )
    for key in COLOR_KEYS
}


def _validate_color(value: str) -> str:
    value = value.lstrip('#')
    if not _HEX_RE.fullmatch(value):
        raise ValueError(f"Not a 6-digit hex color: {value!r}")
    return value.upper()


def apply_colors(document: str, colors: Dict[str, str]) -> str:
    """
    Substitute color values into a cava config document.

    Each key is an independent, single-line substitution of its first
    occurrence. Keys missing from the document are left alone. Everything
    outside the matched slot survives byte-for-byte.
    """
    for key, value in colors.items():
        pattern = _KEY_PATTERNS[key]
        line = f"{key} = '#{_validate_color(value)}'"
        document, count = pattern.subn(lambda m: m.group('indent') + line, document, count=1)
        if not count:
            logger.debug(f"No '{key}' line in cava config, skipping")
    return document


def _atomic_write(path: Path, text: str) -> None:
    """Write to a temp file in the same directory and os.replace it over path."""
    temp_path = path.parent / f".{path.name}_{uuid.uuid4().hex}.tmp"
    try:
        with open(temp_path, 'w', encoding='utf-8', newline='') as f:
            f.write(text)
        # Keep the original file's permissions
        try:
            os.chmod(temp_path, path.stat().st_mode & 0o7777)
        except OSError as e:
            logger.debug(f"Could not copy permissions of {path}: {e}")
        os.replace(temp_path, path)
    except OSError:
        if temp_path.exists():
            try:
                os.remove(temp_path)
            except OSError as e:
                logger.warning(f"Failed to clean up temp file {temp_path}: {e}")
        raise


def patch_config(path: Union[str, Path], background: str, gradient_1: str, gradient_2: str) -> bool:
    """
    Rewrite background, gradient_color_1 and gradient_color_2 in the cava config.

    Returns:
        True if the file changed, False if it already had these colors (or none
        of the keys are present)

    Raises:
        ConfigIOError: if the config cannot be read or written
        ValueError: if a color is not 6 hex digits
    """
    path = Path(path)
    colors = {
        "background": background,
        "gradient_color_1": gradient_1,
        "gradient_color_2": gradient_2,
    }

    try:
        # newline='' keeps \r\n and friends exactly as they are on disk
        with open(path, 'r', encoding='utf-8', newline='') as f:
            original = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigIOError(f"Cannot read cava config {path}: {e}") from e

    updated = apply_colors(original, colors)
    if updated == original:
        logger.debug(f"Cava config {path} already up to date")
        return False

    try:
        _atomic_write(path, updated)
    except OSError as e:
        raise ConfigIOError(f"Cannot write cava config {path}: {e}") from e

    logger.info(f"Updated {path}: background=#{background} gradient=#{gradient_1} -> #{gradient_2}")
    return True


def reload_cava(
    process_name: str = "cava",
    signal_name: str = "USR2",
    runner: Optional[CommandRunner] = None,
    timeout: float = 5.0,
) -> bool:
    """
    Send a reload signal to every process named exactly process_name.

    USR2 makes cava reload its colors only, USR1 the whole config.
    Fire-and-forget: success means the signal was sent.

    Returns:
        True if at least one process was signalled, False if none is running

    Raises:
        SignalError: if pkill cannot be started, times out or fails
    """
    runner = runner or CommandRunner()
    args = ["pkill", f"-{signal_name}", "-x", process_name]
    try:
        result = runner.run(args, timeout=timeout)
    except FileNotFoundError as e:
        raise SignalError("pkill not found (install procps)") from e
    except subprocess.TimeoutExpired as e:
        raise SignalError(f"pkill timed out after {timeout}s") from e
    except OSError as e:
        raise SignalError(f"Could not run pkill: {e}") from e

    # pkill: 0 = matched, 1 = nothing matched, >1 = error
    if result.returncode == 0:
        logger.debug(f"Sent SIG{signal_name} to {process_name}")
        return True
    if result.returncode == 1:
        return False
    raise SignalError(f"pkill exited with {result.returncode}: {result.stderr.strip()}")
