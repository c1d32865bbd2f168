"""
Tests for the GIF89a encoder.

Output is read back with Pillow, which acts as an independent decoder for
frame count, timing, loop flag and pixel data.
"""

from __future__ import annotations

import io

import numpy as np
import pytest
from PIL import Image, ImageSequence

from gifloom.encoder import (
    FrameDelay,
    GifConfig,
    encode_animation,
    lzw_compress,
)
from gifloom.exceptions import EncodeError, NoFramesError
from gifloom.types import AnimationFrame, ErrorKind


def _solid_frame(color, size=(10, 10), delay_cs=None) -> AnimationFrame:
    w, h = size
    return AnimationFrame(
        palette_indices=np.zeros((h, w), dtype=np.uint8),
        palette=(color,),
        delay_cs=delay_cs,
    )


def _full_palette() -> tuple[tuple[int, int, int], ...]:
    return tuple((i, 255 - i, (i * 7) % 256) for i in range(256))


def _random_frame(size, n_colors, seed=0) -> AnimationFrame:
    w, h = size
    rng = np.random.default_rng(seed)
    indices = rng.integers(0, n_colors, size=(h, w), dtype=np.uint8)
    return AnimationFrame(palette_indices=indices, palette=_full_palette()[:n_colors])


def _expected_rgb(frame: AnimationFrame) -> np.ndarray:
    lut = np.array(frame.palette, dtype=np.uint8)
    return lut[frame.palette_indices]


def _read_frames(data: bytes) -> list[Image.Image]:
    img = Image.open(io.BytesIO(data))
    return [f.convert("RGB") for f in ImageSequence.Iterator(img)]


def _durations(data: bytes) -> list[int]:
    img = Image.open(io.BytesIO(data))
    out = []
    for i in range(img.n_frames):
        img.seek(i)
        out.append(img.info["duration"])
    return out


# ---------------------------------------------------------------------------
# FrameDelay
# ---------------------------------------------------------------------------

class TestFrameDelay:
    def test_uniform_delay(self):
        assert FrameDelay(default_cs=10).resolve(3) == [10, 10, 10]

    def test_default_is_one_second(self):
        assert FrameDelay().resolve(2) == [100, 100]

    def test_pause_first_last(self):
        fd = FrameDelay(default_cs=5, pause_first_cs=50, pause_last_cs=200)
        assert fd.resolve(4) == [50, 5, 5, 200]

    def test_per_frame_override(self):
        fd = FrameDelay(default_cs=10, delays_cs={1: 20, 3: 30})
        assert fd.resolve(5) == [10, 20, 10, 30, 10]

    def test_empty(self):
        assert FrameDelay().resolve(0) == []


# ---------------------------------------------------------------------------
# Container structure
# ---------------------------------------------------------------------------

class TestEncodeAnimation:
    def test_red_blue_two_frames(self):
        frames = [_solid_frame((255, 0, 0)), _solid_frame((0, 0, 255))]
        data = encode_animation(frames)

        assert data.startswith(b"GIF89a")
        assert data.endswith(b"\x3b")
        img = Image.open(io.BytesIO(data))
        assert img.size == (10, 10)
        assert img.n_frames == 2
        assert img.info.get("loop") == 0

        decoded = _read_frames(data)
        assert decoded[0].getpixel((0, 0)) == (255, 0, 0)
        assert decoded[1].getpixel((9, 9)) == (0, 0, 255)
        assert _durations(data) == [1000, 1000]

    def test_identical_frames_not_merged(self):
        frames = [_solid_frame((10, 20, 30)) for _ in range(5)]
        img = Image.open(io.BytesIO(encode_animation(frames)))
        assert img.n_frames == 5

    def test_single_frame(self):
        img = Image.open(io.BytesIO(encode_animation([_solid_frame((1, 2, 3))])))
        assert img.n_frames == 1

    def test_frame_order(self):
        colours = [(255, 0, 0), (0, 255, 0), (0, 0, 255), (255, 255, 0)]
        data = encode_animation([_solid_frame(c) for c in colours])
        assert [f.getpixel((3, 3)) for f in _read_frames(data)] == colours

    def test_per_frame_delays(self):
        frames = [
            _solid_frame((255, 0, 0), delay_cs=5),
            _solid_frame((0, 255, 0)),
            _solid_frame((0, 0, 255), delay_cs=250),
        ]
        data = encode_animation(frames, GifConfig(default_delay_cs=20))
        assert _durations(data) == [50, 200, 2500]

    def test_play_once(self):
        data = encode_animation([_solid_frame((0, 0, 0))], GifConfig(loop_count=None))
        assert "loop" not in Image.open(io.BytesIO(data)).info

    def test_loop_count(self):
        data = encode_animation([_solid_frame((0, 0, 0))], GifConfig(loop_count=3))
        assert Image.open(io.BytesIO(data)).info["loop"] == 3

    def test_comment(self):
        data = encode_animation([_solid_frame((0, 0, 0))], GifConfig(comment="made by gifloom"))
        assert Image.open(io.BytesIO(data)).info["comment"] == b"made by gifloom"

    def test_each_frame_has_local_palette(self):
        frames = [_solid_frame((255, 0, 0)), _solid_frame((0, 0, 255))]
        data = encode_animation(frames)
        # Logical screen descriptor: no global colour table flag.
        assert data[10] & 0x80 == 0


# ---------------------------------------------------------------------------
# Pixel fidelity (LZW)
# ---------------------------------------------------------------------------

class TestPixelFidelity:
    @pytest.mark.parametrize("n_colors", [1, 2, 3, 16, 200, 256])
    def test_random_indices(self, n_colors):
        frame = _random_frame((37, 23), n_colors, seed=n_colors)
        decoded = _read_frames(encode_animation([frame]))[0]
        assert np.array_equal(np.asarray(decoded), _expected_rgb(frame))

    def test_large_frame_resets_code_table(self):
        # 256 colours of noise fills the 4096-entry table many times over.
        frame = _random_frame((300, 200), 256, seed=42)
        decoded = _read_frames(encode_animation([frame]))[0]
        assert np.array_equal(np.asarray(decoded), _expected_rgb(frame))

    def test_long_runs(self):
        indices = np.zeros((120, 160), dtype=np.uint8)
        indices[:, 80:] = 1
        frame = AnimationFrame(palette_indices=indices, palette=((0, 0, 0), (255, 255, 255)))
        decoded = _read_frames(encode_animation([frame]))[0]
        assert np.array_equal(np.asarray(decoded), _expected_rgb(frame))

    def test_later_frames(self):
        frames = [_random_frame((50, 40), 64, seed=s) for s in range(3)]
        decoded = _read_frames(encode_animation(frames))
        for frame, image in zip(frames, decoded):
            assert np.array_equal(np.asarray(image), _expected_rgb(frame))


class TestLzwCompress:
    def test_empty_input(self):
        # clear (4) then end (5), 3 bits each, LSB first.
        assert lzw_compress(b"", 2) == bytes([0b00101100])

    def test_deterministic(self):
        data = bytes(range(256)) * 10
        assert lzw_compress(data, 8) == lzw_compress(data, 8)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class TestEncodeErrors:
    def test_no_frames(self):
        with pytest.raises(NoFramesError) as info:
            encode_animation([])
        assert info.value.kind == ErrorKind.NO_FRAMES

    def test_size_mismatch(self):
        frames = [_solid_frame((0, 0, 0), size=(10, 10)), _solid_frame((0, 0, 0), size=(12, 10))]
        with pytest.raises(EncodeError) as info:
            encode_animation(frames)
        assert info.value.kind == ErrorKind.ENCODE_FAILED

    def test_index_out_of_range(self):
        frame = AnimationFrame(
            palette_indices=np.full((4, 4), 3, dtype=np.uint8),
            palette=((0, 0, 0), (1, 1, 1)),
        )
        with pytest.raises(EncodeError):
            encode_animation([frame])

    def test_empty_palette(self):
        frame = AnimationFrame(palette_indices=np.zeros((4, 4), dtype=np.uint8), palette=())
        with pytest.raises(EncodeError):
            encode_animation([frame])

    def test_delay_out_of_range(self):
        with pytest.raises(EncodeError):
            encode_animation([_solid_frame((0, 0, 0), delay_cs=70000)])

    def test_zero_size(self):
        frame = AnimationFrame(palette_indices=np.zeros((0, 5), dtype=np.uint8), palette=((0, 0, 0),))
        with pytest.raises(EncodeError):
            encode_animation([frame])
