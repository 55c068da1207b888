"""Tests for alpha compositing."""

import numpy as np
import pytest

from nft_avatar.compositor import blend_over, composite
from nft_avatar.errors import DimensionMismatchError

from .imaging import TRANSPARENT, solid_frame

OPAQUE_RED = (255, 0, 0, 255)
OPAQUE_BLUE = (0, 0, 255, 255)


class TestComposite:
    """Tests for composite function."""

    def test_transparent_overlay_keeps_base(self):
        red = solid_frame(color=OPAQUE_RED)
        result = composite([red, solid_frame(color=TRANSPARENT)])
        assert np.array_equal(result, red)

    def test_opaque_overlay_over_transparent_base(self):
        blue = solid_frame(color=OPAQUE_BLUE)
        result = composite([solid_frame(color=TRANSPARENT), blue])
        assert np.array_equal(result, blue)

    def test_opaque_overlay_wins(self):
        result = composite([solid_frame(color=OPAQUE_RED), solid_frame(color=OPAQUE_BLUE)])
        assert tuple(result[0, 0]) == OPAQUE_BLUE

    def test_half_transparent_black_over_white(self):
        result = composite([solid_frame(color=(255, 255, 255, 255)), solid_frame(color=(0, 0, 0, 128))])
        assert tuple(result[0, 0]) == (127, 127, 127, 255)

    def test_two_half_transparent_layers(self):
        result = composite([solid_frame(color=(255, 0, 0, 128)), solid_frame(color=(0, 0, 255, 128))])
        # outA = 0.502 + 0.502 * 0.498 = 0.752 -> 192
        red, green, blue, alpha = (int(v) for v in result[0, 0])
        assert alpha == 192
        assert green == 0
        assert blue > red > 0
        assert red + blue == 255

    def test_transparent_base_keeps_overlay_color_exactly(self):
        overlay = solid_frame(color=(10, 200, 30, 7))
        result = composite([solid_frame(color=(99, 99, 99, 0)), overlay])
        assert np.array_equal(result, overlay)

    def test_later_frames_are_on_top(self):
        bottom = solid_frame(4, 4, OPAQUE_RED)
        middle = solid_frame(4, 4, TRANSPARENT)
        middle[1:3, 1:3] = OPAQUE_BLUE
        top = solid_frame(4, 4, TRANSPARENT)
        top[2, 2] = (0, 255, 0, 255)

        result = composite([bottom, middle, top])
        assert tuple(result[0, 0]) == OPAQUE_RED
        assert tuple(result[1, 1]) == OPAQUE_BLUE
        assert tuple(result[2, 2]) == (0, 255, 0, 255)

    def test_single_frame_is_copied(self):
        frame = solid_frame(color=OPAQUE_RED)
        result = composite([frame])
        assert np.array_equal(result, frame)
        assert result is not frame

    def test_does_not_modify_inputs(self):
        base = solid_frame(color=OPAQUE_RED)
        overlay = solid_frame(color=(0, 0, 255, 100))
        composite([base, overlay])
        assert tuple(base[0, 0]) == OPAQUE_RED

    def test_empty_list_raises(self):
        with pytest.raises(ValueError):
            composite([])

    def test_size_mismatch(self):
        with pytest.raises(DimensionMismatchError):
            composite([solid_frame(8, 8), solid_frame(4, 4)])


class TestBlendOver:
    """Tests for blend_over function."""

    def test_fully_transparent_result(self):
        result = blend_over(solid_frame(color=TRANSPARENT), solid_frame(color=TRANSPARENT))
        assert not result.any()

    def test_size_mismatch(self):
        with pytest.raises(DimensionMismatchError):
            blend_over(solid_frame(8, 8), solid_frame(8, 4))
