"""Tests for artwork download and decoding"""
from io import BytesIO
from unittest.mock import MagicMock, patch

import pytest
import requests
from PIL import Image

from errors import DecodeError, FetchError
from system_utils import PixelImage, decode_image, download_artwork, fetch_artwork, normalize_art_url


def _png_bytes(color=(255, 0, 0), size=(4, 4)):
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


def _response(status=200, content=b"data"):
    response = MagicMock()
    response.status_code = status
    response.content = content
    if status >= 400:
        error = requests.exceptions.HTTPError(f"{status} Error")
        error.response = response
        response.raise_for_status.side_effect = error
    return response


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("system_utils.image.time.sleep") as sleep:
        yield sleep


# === normalize_art_url ===

def test_normalize_rewrites_open_spotify_host():
    url = "https://open.spotify.com/image/ab67616d0000b273deadbeef\n"
    assert normalize_art_url(url) == "https://i.scdn.co/image/ab67616d0000b273deadbeef"


def test_normalize_converts_spotify_image_uri():
    assert normalize_art_url("spotify:image:abc123") == "https://i.scdn.co/image/abc123"


@pytest.mark.parametrize("value", [None, "", "  \n"])
def test_normalize_empty_is_none(value):
    assert normalize_art_url(value) is None


# === download_artwork ===

def test_download_returns_body():
    with patch("system_utils.image.requests.get", return_value=_response(content=b"img")) as get:
        assert download_artwork("https://example.com/a.jpg", timeout=3, retries=3) == b"img"
    assert get.call_args.kwargs["timeout"] == 3
    assert "User-Agent" in get.call_args.kwargs["headers"]


def test_download_retries_server_errors(no_sleep):
    responses = [_response(503), _response(429), _response(content=b"ok")]
    with patch("system_utils.image.requests.get", side_effect=responses) as get:
        assert download_artwork("https://example.com/a.jpg", retries=3) == b"ok"
    assert get.call_count == 3
    assert [c.args[0] for c in no_sleep.call_args_list] == [0.1, 0.2]


def test_download_does_not_retry_404():
    with patch("system_utils.image.requests.get", return_value=_response(404)) as get:
        with pytest.raises(FetchError):
            download_artwork("https://example.com/missing.jpg", retries=3)
    assert get.call_count == 1


def test_download_gives_up_after_network_errors():
    error = requests.exceptions.ConnectTimeout("timed out")
    with patch("system_utils.image.requests.get", side_effect=error) as get:
        with pytest.raises(FetchError):
            download_artwork("https://example.com/a.jpg", retries=2)
    assert get.call_count == 2


def test_download_empty_body_raises():
    with patch("system_utils.image.requests.get", return_value=_response(content=b"")):
        with pytest.raises(FetchError):
            download_artwork("https://example.com/a.jpg", retries=1)


def test_download_spotify_uri_goes_to_cdn():
    with patch("system_utils.image.requests.get", return_value=_response()) as get:
        download_artwork("spotify:image:abc", retries=1)
    assert get.call_args.args[0] == "https://i.scdn.co/image/abc"


@pytest.mark.parametrize("url", ["", "ftp://example.com/a.jpg", "data:image/png;base64,AAAA"])
def test_download_rejects_unsupported_urls(url):
    with patch("system_utils.image.requests.get") as get:
        with pytest.raises(FetchError):
            download_artwork(url)
    get.assert_not_called()


def test_download_reads_file_urls(tmp_path):
    art = tmp_path / "cover art.png"
    art.write_bytes(b"local bytes")
    assert download_artwork(art.as_uri()) == b"local bytes"


def test_download_missing_file_raises(tmp_path):
    with pytest.raises(FetchError):
        download_artwork((tmp_path / "nope.png").as_uri())


# === decode_image ===

def test_decode_png():
    image = decode_image(_png_bytes((0, 128, 255), (3, 2)))
    assert (image.width, image.height) == (3, 2)
    assert image.pixels[:4] == bytes((0, 128, 255, 255))
    assert len(image.pixels) == 3 * 2 * 4


def test_decode_shrinks_large_artwork():
    image = decode_image(_png_bytes(size=(640, 320)), max_size=64)
    assert max(image.width, image.height) == 64


@pytest.mark.parametrize("data", [b"", b"not an image at all", b"\x89PNG\r\n\x1a\ntruncated"])
def test_decode_garbage_raises(data):
    with pytest.raises(DecodeError):
        decode_image(data)


def test_pixel_image_round_trip_through_pil():
    image = PixelImage.from_rgba(1, 2, [(1, 2, 3, 4), (5, 6, 7, 8)])
    assert PixelImage.from_pil(image.to_pil()) == image


def test_fetch_artwork_downloads_and_decodes():
    with patch("system_utils.image.requests.get", return_value=_response(content=_png_bytes())):
        image = fetch_artwork("https://example.com/a.png")
    assert image.pixels[:4] == bytes((255, 0, 0, 255))
