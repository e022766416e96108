from __future__ import annotations

import logging
from pathlib import Path

from PIL import Image

from .contracts import ImageKind
from .errors import EncodingFailure

logger = logging.getLogger(__name__)

_MODE_BY_CHANNELS = {1: "L", 2: "LA", 3: "RGB", 4: "RGBA"}


def palette_colors_for_quality(quality: int) -> int:
    """
    Palette size used for a lossy PNG at `quality` (0..100).
    """

    return max(2, round(256 * quality / 100))


def _quantize(image: Image.Image, *, quality: int) -> Image.Image:
    if image.mode == "LA":
        image = image.convert("RGBA")
    # Pillow picks FASTOCTREE for RGBA, MEDIANCUT otherwise
    return image.quantize(colors=palette_colors_for_quality(quality))


def encode_png(
    *,
    data: bytes,
    width: int,
    height: int,
    channels: int,
    kind: ImageKind,
    quality: int,
    out_file: Path,
) -> None:
    """
    Encode a raw pixel buffer as PNG at `out_file`.

    The buffer is interpreted with `channels` components per pixel; `kind`
    only selects the mode when its own channel count agrees. Quality below 100
    produces a palette PNG. The parent directory must already exist.
    """

    if channels not in _MODE_BY_CHANNELS:
        raise EncodingFailure(f"Unsupported channel count {channels}", out_file=out_file)
    mode = kind.value if kind.channels == channels else _MODE_BY_CHANNELS[channels]

    try:
        image = Image.frombytes(mode, (width, height), data)
        if quality < 100:
            image = _quantize(image, quality=quality)
        image.save(out_file, format="PNG")
    except (ValueError, OSError) as e:
        raise EncodingFailure(f"PNG encoding failed ({e})", out_file=out_file) from e

    logger.debug("Wrote %s (%dx%d, mode=%s, quality=%d)", out_file, width, height, mode, quality)
