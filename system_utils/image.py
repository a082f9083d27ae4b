"""
Image utilities for system_utils package.
Handles artwork download and decoding into a raw RGBA pixel buffer.
"""
from __future__ import annotations
import time
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Iterable, Tuple
from urllib.parse import unquote, urlparse
from urllib.request import url2pathname

import requests
from PIL import Image, UnidentifiedImageError

from config import ARTWORK
from errors import DecodeError, FetchError
from logging_config import get_logger
from .helpers import normalize_art_url

logger = get_logger(__name__)

# Status codes worth retrying (rate limiting, flaky CDN edges)
_RETRY_STATUS = (403, 429, 500, 502, 503, 504)


@dataclass(frozen=True)
class PixelImage:
    """Row-major RGBA buffer, 4 bytes per pixel."""
    width: int
    height: int
    pixels: bytes

    @classmethod
    def from_rgba(cls, width: int, height: int, pixels: Iterable[Tuple[int, int, int, int]]) -> "PixelImage":
        return cls(width, height, bytes(channel for pixel in pixels for channel in pixel))

    @classmethod
    def from_pil(cls, img: Image.Image) -> "PixelImage":
        rgba = img.convert("RGBA")
        return cls(rgba.width, rgba.height, rgba.tobytes())

    def to_pil(self) -> Image.Image:
        return Image.frombytes("RGBA", (self.width, self.height), self.pixels)


def _read_local_file(url: str) -> bytes:
    path = Path(url2pathname(unquote(urlparse(url).path)))
    try:
        return path.read_bytes()
    except OSError as e:
        raise FetchError(f"Cannot read local artwork {path}: {e}") from e


def download_artwork(url: str, timeout: float = None, retries: int = None) -> bytes:
    """
    Retrieve raw artwork bytes.

    Supports http(s) URLs, spotify:image URIs and file:// paths (local MPRIS
    players such as VLC report those). Retries rate limiting, server errors
    and network errors with a very small exponential backoff (0.1s, 0.2s, ...);
    404 and other client errors fail immediately.

    Raises:
        FetchError: if the artwork could not be retrieved
    """
    timeout = ARTWORK["timeout"] if timeout is None else timeout
    retries = ARTWORK["retries"] if retries is None else retries

    url = normalize_art_url(url)
    if not url:
        raise FetchError("Empty artwork URL")

    if url.startswith("file://"):
        return _read_local_file(url)

    if not url.startswith(("http://", "https://")):
        raise FetchError(f"Unsupported artwork URL scheme: {url}")

    headers = {'User-Agent': ARTWORK["user_agent"]}
    last_error: Exception = None

    for attempt in range(max(1, retries)):
        if attempt:
            time.sleep(0.1 * (2 ** (attempt - 1)))
        try:
            response = requests.get(url, timeout=timeout, headers=headers)
            response.raise_for_status()
            if not response.content:
                raise FetchError(f"Empty response body from {url}")
            return response.content
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            last_error = e
            if status not in _RETRY_STATUS:
                # Don't retry on 404 or other client errors
                break
            logger.debug(f"Retry {attempt + 1}/{retries} for {url}: HTTP {status}")
        except requests.exceptions.RequestException as e:
            # Timeouts, DNS failures, connection resets
            last_error = e
            logger.debug(f"Retry {attempt + 1}/{retries} for {url}: {e}")

    raise FetchError(f"Download failed for {url}: {last_error}") from last_error


def decode_image(data: bytes, max_size: int = None) -> PixelImage:
    """
    Decode image bytes into an RGBA PixelImage.

    Artwork larger than max_size on either side is shrunk first; a few
    hundred pixels is plenty for picking three colors.

    Raises:
        DecodeError: if the bytes are not a supported image
    """
    max_size = ARTWORK["max_size"] if max_size is None else max_size
    if not data:
        raise DecodeError("No image data")

    try:
        with Image.open(BytesIO(data)) as img:
            img.load()
            if max_size and (img.width > max_size or img.height > max_size):
                img.thumbnail((max_size, max_size))
            return PixelImage.from_pil(img)
    # Some broken files surface as SyntaxError from Pillow's plugins during load()
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError, Image.DecompressionBombError) as e:
        raise DecodeError(f"Unsupported or corrupt image: {e}") from e


def fetch_artwork(url: str) -> PixelImage:
    """Download and decode artwork. Blocking; run it in the worker executor."""
    data = download_artwork(url)
    image = decode_image(data)
    logger.debug(f"Decoded artwork {image.width}x{image.height} from {url}")
    return image
