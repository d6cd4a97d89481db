"""
Tests for land mask classification.

Tests cover:
- MaskRaster construction and immutability
- UV mapping (asin and linear) and cell clamping
- Single-cell land/not-land scenario
- Fully opaque / fully transparent masks
- Image decoding via scikit-image
"""

import math

import pytest
import numpy as np
from pathlib import Path
import sys

from skimage import io as skio

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from landmass.classify import (
    LAND_THRESHOLD,
    MaskRaster,
    extract_alpha,
    point_to_uv,
    uv_to_cell,
    is_land,
    is_land_at,
    classify_points,
)
from landmass.sampler import SpherePoint, fibonacci_sphere
from common.config import LatitudeMapping
from common.coords import GeoCoordinate
from common.errors import RasterOutOfBounds


# ============== Fixtures ==============

@pytest.fixture
def empty_mask():
    """Reference-size mask with no land."""
    return MaskRaster.filled(400, 200, 0)


@pytest.fixture
def northern_mask():
    """Top half of the image (rows 0-99) is land."""
    alpha = np.zeros((200, 400), dtype=np.uint8)
    alpha[:100, :] = 255
    return MaskRaster(alpha)


@pytest.fixture
def rgba_png(tmp_path):
    """20x10 RGBA PNG whose left half is opaque."""
    image = np.zeros((10, 20, 4), dtype=np.uint8)
    image[..., :3] = 128
    image[:, :10, 3] = 255
    path = tmp_path / "map.png"
    skio.imsave(str(path), image, check_contrast=False)
    return path


# ============== MaskRaster Tests ==============

class TestMaskRaster:
    """Raster construction and immutability."""

    def test_dimensions(self, empty_mask):
        assert empty_mask.width == 400
        assert empty_mask.height == 200
        assert empty_mask.shape == (200, 400)

    def test_alpha_is_read_only(self, empty_mask):
        with pytest.raises(ValueError):
            empty_mask.alpha[0, 0] = 255

    def test_attributes_frozen(self, empty_mask):
        with pytest.raises(AttributeError):
            empty_mask.width = 10

    def test_source_array_is_copied(self):
        """Mutating the source array later does not change the raster."""
        alpha = np.zeros((2, 2), dtype=np.uint8)
        mask = MaskRaster(alpha)
        alpha[0, 0] = 255
        assert mask.opacity_at(0, 0) == 0

    def test_with_cell_returns_new_raster(self, empty_mask):
        updated = empty_mask.with_cell(3, 4, 200)
        assert updated.opacity_at(3, 4) == 200
        assert empty_mask.opacity_at(3, 4) == 0

    def test_rejects_bad_shapes(self):
        with pytest.raises(ValueError):
            MaskRaster(np.zeros((2, 2, 4)))
        with pytest.raises(ValueError):
            MaskRaster(np.zeros((0, 5)))

    def test_rejects_out_of_range_values(self):
        with pytest.raises(ValueError):
            MaskRaster(np.full((2, 2), 300.0))

    def test_opacity_out_of_bounds(self, empty_mask):
        with pytest.raises(RasterOutOfBounds):
            empty_mask.opacity_at(400, 0)


# ============== UV Mapping Tests ==============

class TestUVMapping:
    """Direction → UV → raster cell."""

    def test_front_center(self):
        """+Z maps to the raster center."""
        u, v = point_to_uv(np.array([0.0, 0.0, 10.0]))
        assert u == pytest.approx(0.5)
        assert v == pytest.approx(0.5)

    def test_east(self):
        """+X is a quarter turn east of the center."""
        u, v = point_to_uv(np.array([5.0, 0.0, 0.0]))
        assert u == pytest.approx(0.75)

    def test_asin_latitude(self):
        """30 degrees up maps to v = 2/3 with asin."""
        p = np.array([0.0, math.sin(math.radians(30)), math.cos(math.radians(30))])
        _, v = point_to_uv(p, LatitudeMapping.ASIN)
        assert v == pytest.approx(30 / 180 + 0.5)

    def test_linear_latitude(self):
        """The older linear mapping gives v = y/2 + 0.5."""
        p = np.array([0.0, math.sin(math.radians(30)), math.cos(math.radians(30))])
        _, v = point_to_uv(p, LatitudeMapping.LINEAR)
        assert v == pytest.approx(0.75)

    def test_radius_independent(self):
        a = point_to_uv(np.array([1.0, 2.0, 3.0]))
        b = point_to_uv(np.array([10.0, 20.0, 30.0]))
        np.testing.assert_allclose(a, b)

    def test_clamp_upper_edges(self):
        """u = v = 1 clamps to the last column/row."""
        col, row = uv_to_cell(1.0, 1.0, 400, 200)
        assert (int(col), int(row)) == (399, 199)

    def test_clamp_lower_edges(self):
        col, row = uv_to_cell(0.0, 0.0, 400, 200)
        assert (int(col), int(row)) == (0, 0)

    def test_non_finite_uv_raises(self):
        with pytest.raises(RasterOutOfBounds):
            uv_to_cell(float("nan"), 0.5, 400, 200)

    def test_zero_point_raises(self, empty_mask):
        """A zero-length point is a defect, not 'not land'."""
        with pytest.raises(RasterOutOfBounds):
            is_land(np.zeros(3), empty_mask)


# ============== Classification Tests ==============

class TestIsLand:
    """Single point classification."""

    def test_single_cell_scenario(self, empty_mask):
        """Cell (200, 100) under +Z decides the answer."""
        point = SpherePoint(0.0, 0.0, 600.0, 600.0)

        land = empty_mask.with_cell(200, 100, 255)
        assert is_land(point, land) is True

        water = land.with_cell(200, 100, 0)
        assert is_land(point, water) is False

    def test_threshold_inclusive(self, empty_mask):
        point = np.array([0.0, 0.0, 1.0])
        assert is_land(point, empty_mask.with_cell(200, 100, LAND_THRESHOLD))
        assert not is_land(point, empty_mask.with_cell(200, 100, LAND_THRESHOLD - 1))

    def test_pole_uses_last_row(self, empty_mask):
        """+Y reads v = 1, clamped into row 199."""
        mask = empty_mask.with_cell(200, 199, 255)
        assert is_land(np.array([0.0, 600.0, 0.0]), mask)

    def test_back_seam_uses_last_column(self, empty_mask):
        """-Z reads u = 1, clamped into column 399."""
        mask = empty_mask.with_cell(399, 100, 255)
        assert is_land(np.array([0.0, 0.0, -600.0]), mask)

    def test_pure(self, northern_mask):
        """Same inputs, same answer."""
        point = np.array([1.0, -2.0, 3.0])
        results = {is_land(point, northern_mask) for _ in range(5)}
        assert len(results) == 1

    def test_rejects_point_arrays(self, empty_mask):
        with pytest.raises(ValueError):
            is_land(np.zeros((2, 3)), empty_mask)


class TestClassifyPoints:
    """Vectorized classification over a spiral."""

    def test_fully_opaque_mask(self):
        points = fibonacci_sphere(500, 600.0)
        mask = MaskRaster.filled(400, 200, 255)
        assert classify_points(points, mask).all()

    def test_fully_transparent_mask(self, empty_mask):
        points = fibonacci_sphere(500, 600.0)
        assert not classify_points(points, empty_mask).any()

    def test_matches_scalar(self, northern_mask):
        points = fibonacci_sphere(200, 1.0)
        vector = classify_points(points, northern_mask)
        scalar = [is_land(p, northern_mask) for p in points]
        assert vector.tolist() == scalar

    def test_empty_input(self, empty_mask):
        assert classify_points(np.empty((0, 3)), empty_mask).shape == (0,)


class TestIsLandAt:
    """Geographic lookups read the image the way the globe displays it."""

    def test_north_reads_top_rows(self, northern_mask):
        assert is_land_at(GeoCoordinate(60.0, 10.0), northern_mask)
        assert not is_land_at(GeoCoordinate(-60.0, 10.0), northern_mask)


# ============== Decoding Tests ==============

class TestImageDecoding:
    """Alpha extraction and decoding with scikit-image."""

    def test_from_image_keeps_alpha(self, rgba_png):
        mask = MaskRaster.from_image(rgba_png, width=20, height=10)

        assert mask.shape == (10, 20)
        assert mask.opacity_at(0, 0) == 255
        assert mask.opacity_at(19, 9) == 0

    def test_from_image_resamples(self, rgba_png):
        mask = MaskRaster.from_image(rgba_png, width=10, height=5)

        assert mask.shape == (5, 10)
        assert mask.opacity_at(0, 2) == 255
        assert mask.opacity_at(9, 2) == 0

    def test_rgb_is_opaque(self):
        alpha = extract_alpha(np.zeros((4, 6, 3), dtype=np.uint8))
        assert alpha.shape == (4, 6)
        assert np.all(alpha == 255)

    def test_gray_alpha(self):
        image = np.zeros((2, 2, 2), dtype=np.uint8)
        image[..., 1] = 77
        assert np.all(extract_alpha(image) == 77)

    def test_missing_file(self, tmp_path):
        with pytest.raises((OSError, ValueError)):
            MaskRaster.from_image(tmp_path / "missing.png")
