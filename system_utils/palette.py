"""
Palette extraction for system_utils package.
Reduces artwork to a handful of representative colors ordered dark to light.
"""
from __future__ import annotations
import math
from typing import List, NamedTuple, Sequence, Tuple

from PIL import Image, features

from errors import QuantizationError
from logging_config import get_logger
from .image import PixelImage

logger = get_logger(__name__)

RGB = Tuple[int, int, int]

# HSP color model weights (https://alienryderflex.com/hsp.html).
# Close to Rec. 601 luma but applied to squared channels.
R_WEIGHT = 0.299
G_WEIGHT = 0.587
B_WEIGHT = 0.114

MAX_COLORS = 256


class CavaColors(NamedTuple):
    background: str
    gradient_1: str
    gradient_2: str


def brightness(color: RGB) -> float:
    """Perceived brightness, 0..255. Monotonic in each channel."""
    r, g, b = color
    return math.sqrt(R_WEIGHT * r * r + G_WEIGHT * g * g + B_WEIGHT * b * b)


def to_hex(color: RGB) -> str:
    r, g, b = color
    return f"{r:02X}{g:02X}{b:02X}"


def parse_hex(value: str) -> RGB:
    """Parse 'RRGGBB' (optionally '#'-prefixed) back into an RGB triple."""
    value = value.lstrip('#')
    if len(value) != 6:
        raise ValueError(f"Expected 6 hex digits, got {value!r}")
    return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)


def _quantize_method(img: Image.Image) -> Image.Quantize:
    # libimagequant minimizes perceptual error best but is an optional Pillow build feature
    if features.check_feature("libimagequant"):
        return Image.Quantize.LIBIMAGEQUANT
    # Median cut only accepts RGB input; octree handles alpha
    if img.mode == "RGBA":
        return Image.Quantize.FASTOCTREE
    return Image.Quantize.MEDIANCUT


def _prepare(image: PixelImage) -> Image.Image:
    if image.width <= 0 or image.height <= 0:
        raise QuantizationError(f"Cannot quantize a {image.width}x{image.height} image")
    if len(image.pixels) != image.width * image.height * 4:
        raise QuantizationError(
            f"Pixel buffer has {len(image.pixels)} bytes, expected {image.width * image.height * 4}"
        )
    img = image.to_pil()
    alpha_min, _ = img.getextrema()[3]
    if alpha_min == 255:
        img = img.convert("RGB")
    return img


def quantize_colors(image: PixelImage, num_colors: int) -> List[RGB]:
    """
    Reduce an image to at most num_colors RGB colors, sorted by brightness.

    Fewer colors come back when the image does not have enough distinct ones.
    Only palette entries that some pixel actually maps to are returned, in
    palette order before the (stable) brightness sort, so the result is
    deterministic for a given image.

    Raises:
        QuantizationError: on a degenerate image or an invalid color count
    """
    if not 1 <= num_colors <= MAX_COLORS:
        raise QuantizationError(f"num_colors must be between 1 and {MAX_COLORS}, got {num_colors}")

    img = _prepare(image)
    method = _quantize_method(img)
    try:
        result = img.quantize(colors=num_colors, method=method, dither=Image.Dither.NONE)
    except (ValueError, OSError) as e:
        raise QuantizationError(f"Quantization failed: {e}") from e

    used = result.getcolors(MAX_COLORS)
    if not used:
        raise QuantizationError("Quantizer produced an empty palette")

    mode = result.palette.mode
    stride = len(mode)
    flat = result.getpalette(rawmode=mode)

    entries = []
    for _, index in sorted(used, key=lambda item: item[1]):
        entry = flat[index * stride:(index + 1) * stride]
        alpha = entry[3] if stride == 4 else 255
        entries.append(((entry[0], entry[1], entry[2]), alpha))

    # Fully transparent entries carry meaningless RGB; drop them unless nothing else is left
    visible = [rgb for rgb, alpha in entries if alpha > 0] or [rgb for rgb, _ in entries]

    colors: List[RGB] = []
    for rgb in visible:
        if rgb not in colors:
            colors.append(rgb)

    return sorted(colors, key=brightness)


def quantize(image: PixelImage, num_colors: int) -> List[str]:
    """Quantize and render as uppercase 'RRGGBB' strings, darkest first."""
    palette = [to_hex(color) for color in quantize_colors(image, num_colors)]
    logger.debug(f"Palette ({len(palette)}/{num_colors}): {palette}")
    return palette


def pick_theme(palette: Sequence[str]) -> CavaColors:
    """
    Map a brightness-sorted palette onto cava's three color slots.

    Darkest -> background, second -> gradient_color_1, brightest ->
    gradient_color_2. Short palettes repeat their last color.
    """
    if not palette:
        raise QuantizationError("Empty palette")
    background = palette[0]
    gradient_1 = palette[1] if len(palette) > 1 else palette[-1]
    return CavaColors(background, gradient_1, palette[-1])
