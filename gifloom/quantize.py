"""
Colour quantization: RGBA pixel grid -> paletted animation frame.

Steps:
    1. Composite alpha over a solid background (GIF frames are opaque).
    2. Build a per-frame median-cut palette of up to ``max_colors`` entries.
    3. Map every pixel to the palette with error-diffusion dithering.
    4. Trim the palette to the entries actually referenced.

Pillow's quantizer is deterministic, so identical pixels always yield
identical indices and palettes.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

import numpy as np
from PIL import Image

from gifloom.exceptions import EmptyFrameError
from gifloom.types import AnimationFrame, ImageAsset


class DitherAlgorithm(enum.Enum):
    """Dithering algorithm applied when mapping pixels to the palette."""
    FLOYD_STEINBERG = "floyd_steinberg"
    NONE = "none"


_PIL_DITHER = {
    DitherAlgorithm.FLOYD_STEINBERG: Image.Dither.FLOYDSTEINBERG,
    DitherAlgorithm.NONE: Image.Dither.NONE,
}


@dataclass(frozen=True)
class QuantizerConfig:
    max_colors: int = 256           # palette entries (2 -- 256)
    dither: DitherAlgorithm = DitherAlgorithm.FLOYD_STEINBERG
    background: str = "white"       # composited under transparent pixels


def flatten_alpha(img: Image.Image, background: str = "white") -> Image.Image:
    """Composite an RGBA image over *background* and return RGB."""
    bg = Image.new("RGBA", img.size, background)
    bg.paste(img, mask=img.split()[3])
    return bg.convert("RGB")


def quantize_asset(
    asset: ImageAsset,
    config: QuantizerConfig = QuantizerConfig(),
) -> AnimationFrame:
    """Reduce *asset* to a paletted :class:`AnimationFrame`.

    The returned frame has ``delay_cs=None``; timing is assigned by the
    caller.
    """
    if asset.width == 0 or asset.height == 0:
        raise EmptyFrameError(
            f"Cannot quantize a frame with zero dimension "
            f"({asset.width}x{asset.height})."
        )

    rgba = Image.fromarray(np.ascontiguousarray(asset.pixels, dtype=np.uint8))
    if rgba.mode != "RGBA":
        rgba = rgba.convert("RGBA")
    rgb = flatten_alpha(rgba, config.background)

    # Pillow only dithers when mapping onto an existing palette: build the
    # palette undithered, then map the pixels in a second pass.
    palette_img = rgb.quantize(
        colors=config.max_colors,
        method=Image.Quantize.MEDIANCUT,
        dither=Image.Dither.NONE,
    )
    paletted = rgb.quantize(palette=palette_img, dither=_PIL_DITHER[config.dither])

    indices = np.asarray(paletted, dtype=np.uint8).copy()
    used = int(indices.max()) + 1
    raw = paletted.getpalette() or []
    entries = [tuple(raw[i:i + 3]) for i in range(0, len(raw) - 2, 3)]
    if len(entries) < used:
        entries.extend([(0, 0, 0)] * (used - len(entries)))
    palette = tuple((int(r), int(g), int(b)) for r, g, b in entries[:used])

    return AnimationFrame(palette_indices=indices, palette=palette)
