"""
Spotify Web API artwork source.

Uses the currently-playing endpoint, so it follows playback on any device
signed into the account (phone, speaker, web player), not just this machine.

Requirements:
- A Spotify app (https://developer.spotify.com/dashboard)
- SPOTIPY_CLIENT_ID, SPOTIPY_CLIENT_SECRET and SPOTIPY_REDIRECT_URI in the
  environment or .env
"""
import asyncio
import time
from pathlib import Path
from typing import Optional, Dict, Any, List

import requests
import spotipy
from spotipy.exceptions import SpotifyException
from spotipy.oauth2 import SpotifyOAuth, SpotifyOauthError

from config import SPOTIFY
from errors import WatchError
from logging_config import get_logger
from .base import BaseMediaWatcher, WatcherConfig

logger = get_logger(__name__)


def create_spotify_client(
    client_id: str = None,
    client_secret: str = None,
    redirect_uri: str = None,
    cache_path: Optional[str] = None,
) -> spotipy.Spotify:
    """
    Build an authenticated spotipy client from SPOTIFY config.

    The OAuth flow itself is spotipy's: on first run it prints an
    authorization URL and asks for the redirected URL; the token is cached at
    SPOTIPY_CACHE_PATH (or .cache in the working directory) afterwards.
    """
    client_id = client_id or SPOTIFY["client_id"]
    client_secret = client_secret or SPOTIFY["client_secret"]
    redirect_uri = redirect_uri or SPOTIFY["redirect_uri"]
    cache_path = cache_path or SPOTIFY["cache_path"]

    if not all([client_id, client_secret, redirect_uri]):
        raise WatchError("Missing Spotify credentials (SPOTIPY_CLIENT_ID / SPOTIPY_CLIENT_SECRET / SPOTIPY_REDIRECT_URI)")

    if cache_path:
        Path(cache_path).parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"Using persistent Spotify cache: {cache_path}")

    auth_manager = SpotifyOAuth(
        client_id=client_id,
        client_secret=client_secret,
        redirect_uri=redirect_uri,
        scope=SPOTIFY["scope"],
        cache_path=cache_path,
        open_browser=False,  # Headless friendly: print the URL instead
    )
    return spotipy.Spotify(
        auth_manager=auth_manager,
        requests_timeout=SPOTIFY["timeout"],
        retries=SPOTIFY["retries"],
    )


def verify_connection(client: spotipy.Spotify) -> None:
    """
    Make one cheap authenticated call so OAuth happens at startup,
    not silently inside the first poll.

    Raises:
        WatchError: if authentication or the request fails
    """
    try:
        user = client.current_user()
    except (SpotifyException, SpotifyOauthError, requests.exceptions.RequestException,
            ValueError, OSError) as e:
        raise WatchError(f"Failed to connect to Spotify API: {e}") from e
    logger.info(f"Connected to Spotify as {(user or {}).get('display_name') or 'unknown user'}")


def smallest_image_url(images: List[Dict[str, Any]]) -> Optional[str]:
    """
    Pick the image with the smallest declared height.

    The smallest rendition (usually 64px) is plenty for three colors and
    keeps quantization cheap. Ties go to the first image. If no image
    declares a height, the first image with a URL is used.
    """
    if not isinstance(images, list):
        raise WatchError(f"Expected a list of images, got {type(images).__name__}")

    best_url: Optional[str] = None
    best_height: Optional[int] = None
    fallback: Optional[str] = None

    for image in images:
        if not isinstance(image, dict):
            raise WatchError(f"Malformed image descriptor: {image!r}")
        url = image.get("url")
        if not url:
            continue
        if fallback is None:
            fallback = url
        height = image.get("height")
        if height is None:
            continue
        if isinstance(height, bool) or not isinstance(height, int):
            raise WatchError(f"Malformed image height: {height!r}")
        if best_height is None or height < best_height:
            best_url, best_height = url, height

    return best_url or fallback


def artwork_from_playing(current: Optional[Dict[str, Any]]) -> Optional[str]:
    """
    Extract the artwork URL from a currently-playing response.

    Tracks carry images on their album, episodes carry them directly.
    Returns None when nothing is playing (or an ad with no item is).
    """
    if not current:
        return None
    if not isinstance(current, dict):
        raise WatchError(f"Unexpected currently-playing payload: {type(current).__name__}")

    item = current.get("item")
    if not item:
        return None

    try:
        item_type = item.get("type") or current.get("currently_playing_type")
        if item_type == "episode":
            images = item["images"]
        else:
            images = item["album"]["images"]
    except (KeyError, TypeError, AttributeError) as e:
        raise WatchError(f"Malformed currently-playing item: {e!r}") from e

    return smallest_image_url(images)


class SpotifySource(BaseMediaWatcher):
    """
    Polls the Spotify Web API for the current item's artwork.

    Errors (HTTP, rate limiting, token refresh, timeouts, malformed payloads)
    surface as WatchError; the sync loop logs them and polls again.
    """

    def __init__(self, client: Optional[spotipy.Spotify] = None):
        super().__init__()
        self._client = client
        self.request_count = 0
        self.error_count = 0
        self.last_error_time = 0.0

    @classmethod
    def get_config(cls) -> WatcherConfig:
        return WatcherConfig(
            name="spotify",
            display_name="Spotify Web API",
        )

    @property
    def client(self) -> spotipy.Spotify:
        if self._client is None:
            self._client = create_spotify_client()
        return self._client

    def is_available(self) -> bool:
        return self._client is not None or all(
            [SPOTIFY["client_id"], SPOTIFY["client_secret"], SPOTIFY["redirect_uri"]]
        )

    def _record_error(self) -> None:
        self.error_count += 1
        self.last_error_time = time.time()

    def get_stats(self) -> Dict[str, Any]:
        """Request counters for the periodic state log"""
        since = time.time() - self.last_error_time if self.last_error_time else None
        return {
            "requests": self.request_count,
            "errors": self.error_count,
            "seconds_since_error": round(since) if since is not None else None,
        }

    def _fetch_currently_playing(self) -> Optional[Dict[str, Any]]:
        self.request_count += 1
        return self.client.currently_playing(additional_types="track,episode")

    async def poll(self) -> Optional[str]:
        loop = asyncio.get_running_loop()
        try:
            current = await loop.run_in_executor(None, self._fetch_currently_playing)
        except SpotifyException as e:
            self._record_error()
            raise WatchError(f"Spotify API error {e.http_status}: {e.msg}") from e
        except SpotifyOauthError as e:
            self._record_error()
            raise WatchError(f"Spotify authentication failed: {e}") from e
        except requests.exceptions.RequestException as e:
            self._record_error()
            raise WatchError(f"Spotify request failed: {e}") from e
        except (ValueError, OSError) as e:
            # Unparseable response body, socket errors below requests
            self._record_error()
            raise WatchError(f"Spotify returned an unusable response: {e}") from e

        return artwork_from_playing(current)
