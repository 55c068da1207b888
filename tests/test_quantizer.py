"""Tests for palette quantization."""

import numpy as np
import pytest

from nft_avatar.quantizer import nearest_indices, quantize

from .imaging import TRANSPARENT, solid_frame


def many_colors_frame(size: int = 32) -> np.ndarray:
    """A frame where every pixel has a different color."""
    frame = np.zeros((size, size, 4), dtype=np.uint8)
    ys, xs = np.mgrid[0:size, 0:size]
    frame[..., 0] = xs * 8
    frame[..., 1] = ys * 8
    frame[..., 2] = (xs + ys) * 4
    frame[..., 3] = 255
    return frame


class TestQuantize:
    """Tests for quantize function."""

    def test_few_colors_are_exact(self):
        red = solid_frame(color=(255, 0, 0, 255))
        blue = solid_frame(color=(0, 0, 255, 255))
        result = quantize([red, blue])
        assert set(result.palette) == {(255, 0, 0), (0, 0, 255)}
        assert result.transparent_index is None
        assert result.palette[result.frames[0][0, 0]] == (255, 0, 0)
        assert result.palette[result.frames[1][0, 0]] == (0, 0, 255)

    def test_palette_shared_across_frames(self):
        first = solid_frame(color=(10, 20, 30, 255))
        second = solid_frame(color=(10, 20, 30, 255))
        second[0, 0] = (200, 100, 0, 255)
        result = quantize([first, second])
        assert len(result.palette) == 2
        assert result.frames[0][1, 1] == result.frames[1][1, 1]

    def test_alpha_below_threshold_is_transparent(self):
        frame = solid_frame(4, 1, (50, 60, 70, 255))
        frame[0, 0, 3] = 63
        frame[0, 1, 3] = 64
        frame[0, 2, 3] = 0
        result = quantize([frame], alpha_threshold=64)
        assert result.transparent_index == len(result.palette)
        assert list(result.frames[0][0]) == [result.transparent_index, 0, result.transparent_index, 0]

    def test_threshold_is_configurable(self):
        frame = solid_frame(2, 1, (50, 60, 70, 30))
        assert quantize([frame], alpha_threshold=25).transparent_index is None
        assert quantize([frame], alpha_threshold=64).transparent_index is not None

    def test_all_transparent(self):
        result = quantize([solid_frame(color=TRANSPARENT)])
        assert result.transparent_index == 1
        assert (result.frames[0] == 1).all()

    def test_many_colors_are_reduced(self):
        frames = [many_colors_frame(), many_colors_frame()[::-1]]
        result = quantize(frames, max_colors=255)
        assert 1 < len(result.palette) <= 255
        assert all(int(frame.max()) < len(result.palette) for frame in result.frames)
        assert result.frames[0].shape == (32, 32)

    def test_deterministic(self):
        frames = [many_colors_frame()]
        first = quantize(frames)
        second = quantize(frames)
        assert first.palette == second.palette
        assert np.array_equal(first.frames[0], second.frames[0])

    def test_small_palette_limit(self):
        result = quantize([many_colors_frame()], max_colors=4)
        assert len(result.palette) <= 4

    def test_mismatched_frames(self):
        with pytest.raises(ValueError):
            quantize([solid_frame(4, 4), solid_frame(2, 2)])

    def test_empty(self):
        with pytest.raises(ValueError):
            quantize([])


class TestNearestIndices:
    """Tests for nearest_indices function."""

    def test_picks_closest(self):
        palette = np.array([[0, 0, 0], [255, 255, 255], [255, 0, 0]])
        colors = np.array([[10, 10, 10], [250, 240, 245], [200, 30, 20]])
        assert list(nearest_indices(colors, palette)) == [0, 1, 2]
