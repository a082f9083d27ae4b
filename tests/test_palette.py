"""Tests for palette quantization and brightness ordering"""
import pytest

from errors import QuantizationError
from system_utils import PixelImage, brightness, parse_hex, pick_theme, quantize, quantize_colors
from system_utils.palette import to_hex


def _stripes(colors, repeat=4):
    """Vertical stripes, one column per color, `repeat` rows tall"""
    width = len(colors)
    pixels = [colors[x] + (255,) for _ in range(repeat) for x in range(width)]
    return PixelImage.from_rgba(width, repeat, pixels)


def test_single_color_image_yields_single_entry(red_image):
    assert quantize(red_image, 3) == ["FF0000"]


def test_palette_length_within_bounds():
    image = _stripes([(10, 20, 30), (200, 50, 50), (50, 200, 50), (50, 50, 200), (250, 250, 250)])
    for k in (1, 2, 3, 5, 8):
        palette = quantize(image, k)
        assert 1 <= len(palette) <= k


def test_palette_sorted_by_brightness():
    image = _stripes([(250, 250, 250), (0, 0, 0), (200, 30, 30), (30, 30, 200)])
    colors = quantize_colors(image, 4)
    scores = [brightness(c) for c in colors]
    assert scores == sorted(scores)


def test_quantize_is_deterministic():
    image = _stripes([(12, 34, 56), (250, 128, 7), (90, 200, 140), (255, 255, 0), (1, 2, 3)], repeat=6)
    assert quantize(image, 3) == quantize(image, 3)


def test_two_color_image_is_exact():
    image = _stripes([(255, 255, 255), (0, 0, 0)])
    assert quantize(image, 3) == ["000000", "FFFFFF"]


def test_hex_round_trip():
    image = _stripes([(18, 52, 86), (171, 205, 239)])
    colors = quantize_colors(image, 2)
    assert [parse_hex(to_hex(c)) for c in colors] == colors


def test_output_is_uppercase_hex():
    image = _stripes([(171, 205, 239)])
    assert quantize(image, 1) == ["ABCDEF"]


def test_transparent_pixels_are_ignored():
    pixels = [(0, 0, 255, 255), (0, 0, 255, 255), (255, 255, 255, 0), (255, 255, 255, 0)]
    image = PixelImage.from_rgba(2, 2, pixels)
    assert quantize(image, 3) == ["0000FF"]


@pytest.mark.parametrize("width,height", [(0, 0), (0, 4), (4, 0)])
def test_zero_size_image_raises(width, height):
    with pytest.raises(QuantizationError):
        quantize(PixelImage(width, height, b""), 3)


def test_short_buffer_raises():
    with pytest.raises(QuantizationError):
        quantize(PixelImage(2, 2, bytes(8)), 3)


@pytest.mark.parametrize("k", [0, -1, 257])
def test_invalid_color_count_raises(red_image, k):
    with pytest.raises(QuantizationError):
        quantize(red_image, k)


def test_brightness_is_monotonic_per_channel():
    base = (100, 100, 100)
    for channel in range(3):
        brighter = list(base)
        brighter[channel] += 1
        assert brightness(tuple(brighter)) > brightness(base)


def test_brightness_weights_green_over_red_over_blue():
    assert brightness((0, 255, 0)) > brightness((255, 0, 0)) > brightness((0, 0, 255))


def test_parse_hex_accepts_hash_prefix():
    assert parse_hex("#ff8000") == (255, 128, 0)
    with pytest.raises(ValueError):
        parse_hex("fff")


def test_pick_theme_full_palette():
    theme = pick_theme(["111111", "777777", "EEEEEE"])
    assert theme == ("111111", "777777", "EEEEEE")
    assert theme.background == "111111"


def test_pick_theme_larger_palette_uses_brightest_last():
    theme = pick_theme(["000000", "333333", "666666", "FFFFFF"])
    assert theme == ("000000", "333333", "FFFFFF")


def test_pick_theme_short_palettes_repeat():
    assert pick_theme(["FF0000"]) == ("FF0000", "FF0000", "FF0000")
    assert pick_theme(["000000", "FFFFFF"]) == ("000000", "FFFFFF", "FFFFFF")


def test_pick_theme_empty_raises():
    with pytest.raises(QuantizationError):
        pick_theme([])
