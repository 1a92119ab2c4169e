"""
Tests for region blur compositing and mask compositing.
"""

import numpy as np
import pytest

from eraser.geometry import Region, to_pixel_bounds
from eraser.masking import build_alpha_mask, composite_mask_blur
from eraser.redactor import Canvas, apply_blur, apply_blur_to_regions, gaussian_blur


@pytest.fixture
def noisy_image():
    """Random texture so that any blur visibly changes pixels."""
    rng = np.random.default_rng(1234)
    return rng.integers(0, 256, size=(120, 160, 3), dtype=np.uint8)


@pytest.fixture
def canvas(noisy_image):
    return Canvas(noisy_image)


class TestCanvas:
    """Test the canvas buffer."""

    def test_source_is_read_only_copy(self, noisy_image):
        """The original array is copied and the source cannot be written."""
        canvas = Canvas(noisy_image)

        assert not canvas.source.flags.writeable
        assert canvas.pixels.flags.writeable
        assert canvas.source is not noisy_image
        with pytest.raises(ValueError):
            canvas.source[0, 0] = 0

    def test_reset(self, canvas):
        """Reset brings back the original pixels."""
        canvas.pixels[:] = 0
        canvas.reset()

        assert np.array_equal(canvas.pixels, canvas.source)

    def test_rejects_bad_shape(self):
        """Only 2-D or 3-D arrays are images."""
        with pytest.raises(ValueError):
            Canvas(np.zeros((2, 2, 2, 2), dtype=np.uint8))


class TestApplyBlur:
    """Test localized region blur."""

    def test_zero_width_is_noop(self, canvas, noisy_image):
        """A zero-width region leaves every pixel identical."""
        assert apply_blur(canvas, Region(10, 10, 0, 50), 15) is False
        assert np.array_equal(canvas.pixels, noisy_image)

    def test_negative_height_is_noop(self, canvas, noisy_image):
        """Negative sizes are skipped, not errors."""
        assert apply_blur(canvas, Region(10, 10, 20, -5), 15) is False
        assert np.array_equal(canvas.pixels, noisy_image)

    def test_region_outside_image_is_noop(self, canvas, noisy_image):
        """Regions clipped to nothing are skipped."""
        assert apply_blur(canvas, Region(500, 500, 20, 20), 15) is False
        assert np.array_equal(canvas.pixels, noisy_image)

    def test_only_region_changes(self, canvas, noisy_image):
        """Pixels inside change, pixels outside stay untouched."""
        assert apply_blur(canvas, Region(40, 30, 50, 40), 8)

        inside = np.zeros(noisy_image.shape[:2], dtype=bool)
        inside[30:70, 40:90] = True

        assert not np.array_equal(canvas.pixels[inside], noisy_image[inside])
        assert np.array_equal(canvas.pixels[~inside], noisy_image[~inside])

    def test_region_is_clipped_to_image(self, canvas, noisy_image):
        """A region crossing the border blurs only the part inside."""
        assert apply_blur(canvas, Region(-20, -20, 60, 60), 5)

        assert not np.array_equal(canvas.pixels[:40, :40], noisy_image[:40, :40])
        assert np.array_equal(canvas.pixels[40:, :], noisy_image[40:, :])
        assert np.array_equal(canvas.pixels[:, 40:], noisy_image[:, 40:])

    def test_blur_reduces_variation(self, canvas, noisy_image):
        """Blurred pixels are smoother than the noise they replace."""
        apply_blur(canvas, Region(20, 20, 100, 80), 10)

        before = noisy_image[20:100, 20:120].astype(float).std()
        after = canvas.pixels[20:100, 20:120].astype(float).std()
        assert after < before / 2

    @pytest.mark.parametrize("region, radius", [
        (Region(40, 30, 50, 40), 8),
        (Region(-15, 90, 70, 60), 6),
        (Region(20.4, 10.6, 33.3, 27.8), 5),
        (Region(60, 40, 30, 30), 50),
    ])
    def test_window_matches_full_image_blur(self, canvas, noisy_image, region, radius):
        """Inside the region the windowed blur equals blurring the whole canvas."""
        apply_blur(canvas, region, radius)

        x0, y0, x1, y1 = to_pixel_bounds(region, canvas.width, canvas.height)
        expected = gaussian_blur(noisy_image, radius)
        assert np.array_equal(canvas.pixels[y0:y1, x0:x1], expected[y0:y1, x0:x1])

    def test_blur_compounds(self, noisy_image):
        """Blurring the same region twice differs from blurring once."""
        once = Canvas(noisy_image)
        twice = Canvas(noisy_image)
        region = Region(30, 30, 60, 50)

        apply_blur(once, region, 6)
        apply_blur(twice, region, 6)
        apply_blur(twice, region, 6)

        assert not np.array_equal(once.pixels, twice.pixels)

    def test_blur_reads_current_canvas(self, noisy_image):
        """Blur starts from the edited canvas, not the original image."""
        canvas = Canvas(noisy_image)
        canvas.pixels[:] = 77

        apply_blur(canvas, Region(10, 10, 50, 50), 5)

        assert np.all(canvas.pixels == 77)

    def test_apply_blur_to_regions_returns_applied(self, canvas):
        """Degenerate regions are left out of the result."""
        regions = [Region(0, 0, 10, 10), Region(5, 5, 0, 0), Region(50, 50, 20, 20)]

        assert apply_blur_to_regions(canvas, regions, 4) == [regions[0], regions[2]]

    def test_apply_blur_to_regions_pads(self, canvas, noisy_image):
        """Padding widens the blurred area but the unpadded region is returned."""
        region = Region(40, 40, 20, 20)

        applied = apply_blur_to_regions(canvas, [region], 4, padding=0.5)

        assert applied == [region]
        assert not np.array_equal(canvas.pixels[30:40, 30:70], noisy_image[30:40, 30:70])
        assert np.array_equal(canvas.pixels[:30], noisy_image[:30])
        assert np.array_equal(canvas.pixels[70:], noisy_image[70:])

    def test_grayscale_canvas(self):
        """Single-channel images are supported."""
        rng = np.random.default_rng(7)
        canvas = Canvas(rng.integers(0, 256, size=(50, 50), dtype=np.uint8))

        assert apply_blur(canvas, Region(10, 10, 20, 20), 3)
        assert np.array_equal(canvas.pixels[:10], canvas.source[:10])


class TestMaskCompositing:
    """Test segmentation mask compositing."""

    def test_alpha_mask_values(self):
        """Person pixels become opaque, everything else transparent."""
        data = np.array([[0, 1], [1, 0]], dtype=np.uint8)

        mask = build_alpha_mask(data, (2, 2, 3))

        assert mask.dtype == np.uint8
        assert mask.tolist() == [[0, 255], [255, 0]]

    def test_alpha_mask_resized_to_canvas(self):
        """Masks of a different size are scaled with nearest neighbour."""
        data = np.zeros((10, 10), dtype=np.uint8)
        data[:, 5:] = 1

        mask = build_alpha_mask(data, (20, 40))

        assert mask.shape == (20, 40)
        assert set(np.unique(mask)) <= {0, 255}
        assert np.all(mask[:, :20] == 0)
        assert np.all(mask[:, 20:] == 255)

    def test_composite_inside_replaced_outside_kept(self, canvas, noisy_image):
        """Masked pixels take the blurred original, others are unchanged."""
        data = np.zeros(noisy_image.shape[:2], dtype=np.uint8)
        data[20:80, 50:110] = 1
        mask = build_alpha_mask(data, canvas.shape)

        covered = composite_mask_blur(canvas, mask, 9)

        inside = mask == 255
        expected = gaussian_blur(noisy_image, 9)
        assert covered == int(inside.sum())
        assert np.array_equal(canvas.pixels[inside], expected[inside])
        assert np.array_equal(canvas.pixels[~inside], noisy_image[~inside])

    def test_composite_blurs_original_not_canvas(self, canvas, noisy_image):
        """The blurred layer comes from the source image."""
        canvas.pixels[:] = 0
        mask = np.full(noisy_image.shape[:2], 255, dtype=np.uint8)

        composite_mask_blur(canvas, mask, 4)

        assert np.array_equal(canvas.pixels, gaussian_blur(noisy_image, 4))

    def test_empty_mask_is_noop(self, canvas, noisy_image):
        """Nothing to composite when no pixel is a person."""
        mask = np.zeros(noisy_image.shape[:2], dtype=np.uint8)

        assert composite_mask_blur(canvas, mask, 10) == 0
        assert np.array_equal(canvas.pixels, noisy_image)

    def test_partial_alpha_blends(self):
        """Intermediate opacity mixes both layers."""
        image = np.zeros((20, 20, 3), dtype=np.uint8)
        image[:, 10:] = 200
        canvas = Canvas(image)
        canvas.pixels[:] = 100
        mask = np.full((20, 20), 128, dtype=np.uint8)

        composite_mask_blur(canvas, mask, 2)

        blurred = gaussian_blur(image, 2).astype(float)
        expected = np.rint(blurred * (128 / 255) + 100 * (1 - 128 / 255))
        assert np.allclose(canvas.pixels, expected, atol=1)
