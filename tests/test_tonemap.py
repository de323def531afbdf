"""Unit tests for auto-exposure tone mapping."""

import numpy as np
import pytest

from src.gridtracer.core.tonemap import (
    ToneMapConfig,
    compute_exposure,
    mean_luminance,
    pack_rgb,
    tone_map_array,
)


class TestToneMapConfig:
    """Tests for ToneMapConfig validation."""

    def test_defaults(self):
        config = ToneMapConfig()
        assert config.target == 0.5
        assert config.rolloff == 1.0

    @pytest.mark.parametrize("kwargs", [{"target": 0.0}, {"rolloff": -1.0}])
    def test_non_positive(self, kwargs):
        """Test non-positive parameters raise ValueError."""
        with pytest.raises(ValueError):
            ToneMapConfig(**kwargs)


class TestExposure:
    """Tests for luminance metering and exposure."""

    def test_mean_luminance_weights(self):
        """Test the 0.3 / 0.5 / 0.2 channel weights."""
        radiance = np.zeros((1, 3, 3))
        radiance[0, 0] = (1.0, 0.0, 0.0)
        radiance[0, 1] = (0.0, 1.0, 0.0)
        radiance[0, 2] = (0.0, 0.0, 1.0)
        assert mean_luminance(radiance) == pytest.approx(1.0 / 3.0)

    def test_row_order_does_not_matter(self):
        """Test the mean is identical for any permutation of rows."""
        rng = np.random.default_rng(3)
        radiance = rng.uniform(0.0, 5.0, size=(37, 11, 3))
        shuffled = radiance[rng.permutation(37)]
        assert mean_luminance(radiance) == mean_luminance(shuffled)

    def test_compute_exposure(self):
        assert compute_exposure(0.25, 0.5) == 2.0
        assert compute_exposure(0.0, 0.5) == 1.0

    def test_wrong_shape(self):
        """Test radiance without three channels is rejected."""
        with pytest.raises(ValueError):
            mean_luminance(np.zeros((4, 4)))


class TestPacking:
    """Tests for pack_rgb."""

    def test_pack(self):
        """Test r << 16 | g << 8 | b packing with truncation."""
        packed = pack_rgb(np.array([[1.0, 0.5, 0.0]]))
        assert packed.dtype == np.uint32
        assert int(packed[0]) == (255 << 16) | (127 << 8)

    def test_clamped(self):
        """Test values outside [0, 1] clamp before quantization."""
        packed = pack_rgb(np.array([[2.0, -1.0, 1.0]]))
        assert int(packed[0]) == 0xFF00FF


class TestToneMapArray:
    """Tests for the full tone mapping pipeline."""

    def test_black_frame(self):
        """Test an all-black frame maps to black pixels."""
        pixels = tone_map_array(np.zeros((3, 4, 3), dtype=np.float32))
        assert pixels.shape == (12,)
        assert not pixels.any()

    def test_uniform_gray(self):
        """Test a uniform frame is exposed to the target luminance."""
        # Exposure 1.0 / 4.0 gives 1.0, compressed to 1.0 / 2.0 -> 127
        radiance = np.full((2, 2, 3), 4.0)
        pixels = tone_map_array(radiance, ToneMapConfig(target=1.0))
        assert all(int(p) == (127 << 16) | (127 << 8) | 127 for p in pixels)

    def test_exposure_invariant(self):
        """Test scaling the radiance does not change the result."""
        rng = np.random.default_rng(11)
        radiance = rng.uniform(0.0, 1.0, size=(8, 6, 3))
        np.testing.assert_array_equal(
            tone_map_array(radiance), tone_map_array(radiance * 4.0)
        )

    def test_row_major_order(self):
        """Test pixels are emitted row by row from the top."""
        radiance = np.zeros((2, 2, 3))
        radiance[0, 1] = (1.0, 0.0, 0.0)
        pixels = tone_map_array(radiance)
        assert pixels[1] > 0
        assert pixels[0] == pixels[2] == pixels[3] == 0

    def test_custom_config(self):
        """Test a brighter target brightens the frame."""
        radiance = np.full((2, 2, 3), 1.0)
        dim = tone_map_array(radiance, ToneMapConfig(target=0.25))
        bright = tone_map_array(radiance, ToneMapConfig(target=2.0))
        assert (bright & 0xFF)[0] > (dim & 0xFF)[0]
