"""
System Utils Package

Re-exports the pipeline stages so callers can write:
    from system_utils import fetch_artwork, quantize, patch_config

The internal structure is:
    helpers.py   - URL normalization, worker executor
    commands.py  - subprocess seam for playerctl / pkill
    image.py     - Artwork download and decoding
    palette.py   - Color quantization and brightness ordering
    cava.py      - Cava config patching and reload signal
    sources/     - Media watchers (playerctl, Spotify)
"""

from .helpers import (
    normalize_art_url,
    run_in_worker,
    shutdown_worker,
)

from .commands import (
    CommandResult,
    CommandRunner,
)

from .image import (
    PixelImage,
    decode_image,
    download_artwork,
    fetch_artwork,
)

from .palette import (
    CavaColors,
    brightness,
    parse_hex,
    pick_theme,
    quantize,
    quantize_colors,
)

from .cava import (
    COLOR_KEYS,
    apply_colors,
    patch_config,
    reload_cava,
)
