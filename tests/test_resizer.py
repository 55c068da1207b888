"""Tests for nearest-neighbour resizing."""

import numpy as np
import pytest

from nft_avatar.gif_decoder import DecodedLayer, Frame
from nft_avatar.resizer import choose_canvas_size, resize, resize_layer

from .imaging import solid_frame


def make_layer(width, height, frame_count=1, source_format=None) -> DecodedLayer:
    frames = tuple(Frame(solid_frame(width, height), 100) for _ in range(frame_count))
    return DecodedLayer(label="layer", width=width, height=height, frames=frames, source_format=source_format)


class TestResize:
    """Tests for resize function."""

    def test_upscale_duplicates_pixels(self):
        pixels = np.arange(2 * 2 * 4, dtype=np.uint8).reshape(2, 2, 4)
        result = resize(pixels, 4, 4)
        assert result.shape == (4, 4, 4)
        assert np.array_equal(result[0, 0], pixels[0, 0])
        assert np.array_equal(result[1, 1], pixels[0, 0])
        assert np.array_equal(result[0, 2], pixels[0, 1])
        assert np.array_equal(result[3, 3], pixels[1, 1])

    def test_downscale_samples_floor(self):
        pixels = np.zeros((1, 4, 4), dtype=np.uint8)
        pixels[0, :, 0] = [10, 20, 30, 40]
        result = resize(pixels, 2, 1)
        assert list(result[0, :, 0]) == [10, 30]

    def test_non_integer_ratio(self):
        pixels = np.zeros((1, 3, 4), dtype=np.uint8)
        pixels[0, :, 0] = [1, 2, 3]
        result = resize(pixels, 5, 1)
        # src_x = floor(x * 3 / 5)
        assert list(result[0, :, 0]) == [1, 1, 2, 2, 3]

    def test_same_size_is_unchanged(self):
        pixels = solid_frame(6, 6)
        assert resize(pixels, 6, 6) is pixels

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            resize(solid_frame(), 0, 5)


class TestResizeLayer:
    """Tests for resize_layer function."""

    def test_all_frames_resized(self):
        layer = resize_layer(make_layer(4, 4, frame_count=3), (8, 6))
        assert layer.size == (8, 6)
        assert all(frame.pixels.shape == (6, 8, 4) for frame in layer.frames)
        assert [frame.delay_ms for frame in layer.frames] == [100, 100, 100]

    def test_same_size_returns_layer(self):
        layer = make_layer(4, 4)
        assert resize_layer(layer, (4, 4)) is layer


class TestChooseCanvasSize:
    """Tests for choose_canvas_size function."""

    def test_first_animated_layer_wins(self):
        layers = [make_layer(50, 50), make_layer(30, 30, 2), make_layer(40, 40, 3)]
        assert choose_canvas_size(layers, (1000, 1000)) == (30, 30)

    def test_common_static_size(self):
        assert choose_canvas_size([make_layer(20, 10), make_layer(20, 10)], (1000, 1000)) == (20, 10)

    def test_heterogeneous_static_sizes_use_default(self):
        assert choose_canvas_size([make_layer(20, 10), make_layer(10, 10)], (64, 64)) == (64, 64)

    def test_single_frame_gif_sets_canvas(self):
        layers = [make_layer(8, 8, source_format="png"), make_layer(20, 20, source_format="gif")]
        assert choose_canvas_size(layers, (1000, 1000)) == (20, 20)

    def test_first_gif_layer_wins_over_later_animation(self):
        layers = [make_layer(20, 20, source_format="gif"), make_layer(30, 30, 2, source_format="gif")]
        assert choose_canvas_size(layers, (1000, 1000)) == (20, 20)

    def test_resized_layer_keeps_source_format(self):
        layer = resize_layer(make_layer(4, 4, source_format="gif"), (8, 8))
        assert layer.is_gif
