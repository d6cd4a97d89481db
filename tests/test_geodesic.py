"""
Tests for geodesic arc construction.

Tests cover:
- Geographic conversions and great-circle interpolation
- Quarter-circle arc measurements
- Symmetry of separation and height
- Degenerate (coincident / antipodal) arcs
- Bézier evaluation and descriptor immutability
"""

import dataclasses
import math

import pytest
import numpy as np
from pathlib import Path
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from arcs.geodesic import (
    ArcCurveDescriptor,
    angular_separation,
    build_arc,
    build_arcs,
    cubic_bezier,
    require_proper_arc,
)
from common.coords import (
    GeoCoordinate,
    geo_to_cartesian,
    cartesian_to_geo,
    geo_interpolate,
    angular_distance,
)
from common.errors import DegenerateArc, InvalidRadius
from common.io import Connection
from arcs.animation import AnimationClock


# ============== Fixtures ==============

@pytest.fixture
def origin():
    return GeoCoordinate(latitude_deg=0.0, longitude_deg=0.0)


@pytest.fixture
def quarter_east():
    return GeoCoordinate(latitude_deg=0.0, longitude_deg=90.0)


@pytest.fixture
def quarter_arc(origin, quarter_east):
    """Quarter great circle along the equator on the reference sphere."""
    return build_arc(origin, quarter_east, radius=600.0)


# ============== Coordinate Tests ==============

class TestGeoCoordinates:
    """Geographic ↔ Cartesian conversions."""

    def test_origin_on_plus_z(self, origin):
        np.testing.assert_allclose(geo_to_cartesian(origin, 600.0), [0, 0, 600], atol=1e-9)

    def test_lon_90_on_plus_x(self, quarter_east):
        np.testing.assert_allclose(geo_to_cartesian(quarter_east, 600.0), [600, 0, 0], atol=1e-9)

    def test_north_pole_on_plus_y(self):
        p = geo_to_cartesian(GeoCoordinate(90.0, 45.0), 2.0)
        np.testing.assert_allclose(p, [0, 2, 0], atol=1e-12)

    def test_round_trip(self):
        coord = GeoCoordinate(latitude_deg=-33.9, longitude_deg=151.2)
        back = cartesian_to_geo(geo_to_cartesian(coord, 600.0))
        assert back.latitude_deg == pytest.approx(coord.latitude_deg)
        assert back.longitude_deg == pytest.approx(coord.longitude_deg)

    @pytest.mark.parametrize("lat,lon", [(91, 0), (-90.5, 0), (0, 181), (0, -200)])
    def test_rejects_out_of_range(self, lat, lon):
        with pytest.raises(ValueError):
            GeoCoordinate(lat, lon)

    def test_immutable(self, origin):
        with pytest.raises(dataclasses.FrozenInstanceError):
            origin.latitude_deg = 10.0


class TestGeoInterpolate:
    """Great-circle interpolation."""

    def test_endpoints(self, origin, quarter_east):
        lon, lat = geo_interpolate(origin, quarter_east, [0.0, 1.0])
        np.testing.assert_allclose(lon, [0.0, 90.0], atol=1e-9)
        np.testing.assert_allclose(lat, [0.0, 0.0], atol=1e-9)

    def test_equator_quarter_points(self, origin, quarter_east):
        lon, lat = geo_interpolate(origin, quarter_east, [0.25, 0.75])
        np.testing.assert_allclose(lon, [22.5, 67.5])
        np.testing.assert_allclose(lat, [0.0, 0.0], atol=1e-9)

    def test_follows_great_circle_over_pole(self):
        """Halfway between opposite meridians at 45N is the pole, not lon 90."""
        a = GeoCoordinate(45.0, 0.0)
        b = GeoCoordinate(45.0, 180.0)
        _, lat = geo_interpolate(a, b, 0.5)
        assert float(lat) == pytest.approx(90.0)

    def test_crosses_date_line(self):
        """170E → 170W goes the short way across 180."""
        a = GeoCoordinate(0.0, 170.0)
        b = GeoCoordinate(0.0, -170.0)
        lon, _ = geo_interpolate(a, b, 0.5)

        assert abs(float(lon)) == pytest.approx(180.0)
        assert angular_distance(a, b) == pytest.approx(math.radians(20))

    def test_coincident(self, origin):
        lon, lat = geo_interpolate(origin, origin, [0.25, 0.75])
        np.testing.assert_array_equal(lon, [0.0, 0.0])

    def test_antipodal_undefined(self):
        with pytest.raises(ValueError):
            geo_interpolate(GeoCoordinate(0, 0), GeoCoordinate(0, 180), 0.5)


# ============== Arc Measurement Tests ==============

class TestQuarterArc:
    """buildArc((0,0), (0,90), 600)."""

    def test_angular_separation(self, quarter_arc):
        assert quarter_arc.angular_separation == pytest.approx(math.pi / 2)

    def test_distance_between(self, quarter_arc):
        assert quarter_arc.distance_between == pytest.approx(600 * math.pi / 2)
        assert quarter_arc.distance_between == pytest.approx(942.4778, abs=1e-3)

    def test_control_radius(self, quarter_arc):
        expected = 600 + 600 * math.pi / 4
        assert quarter_arc.control_radius == pytest.approx(expected)
        assert np.linalg.norm(quarter_arc.control2) == pytest.approx(expected)
        assert quarter_arc.height == pytest.approx(471.2389, abs=1e-3)

    def test_control_points_on_great_circle(self, quarter_arc):
        """Controls sit over lon 22.5 and 67.5 on the equator."""
        r = quarter_arc.control_radius
        a, b = math.radians(22.5), math.radians(67.5)

        np.testing.assert_allclose(quarter_arc.control1, [r * math.sin(a), 0, r * math.cos(a)], atol=1e-9)
        np.testing.assert_allclose(quarter_arc.control2, [r * math.sin(b), 0, r * math.cos(b)], atol=1e-9)

    def test_endpoints(self, quarter_arc):
        np.testing.assert_allclose(quarter_arc.start, [0, 0, 600], atol=1e-9)
        np.testing.assert_allclose(quarter_arc.end, [600, 0, 0], atol=1e-9)
        assert not quarter_arc.degenerate

    def test_height_factor_scales_elevation(self, origin, quarter_east):
        flat = build_arc(origin, quarter_east, 600.0, height_factor=0.0)
        tall = build_arc(origin, quarter_east, 600.0, height_factor=1.0)

        assert flat.height == pytest.approx(0.0, abs=1e-9)
        assert tall.height == pytest.approx(600 * math.pi / 2)

    def test_farther_is_taller(self, origin):
        near = build_arc(origin, GeoCoordinate(10, 10), 600.0)
        far = build_arc(origin, GeoCoordinate(40, 100), 600.0)
        assert far.height > near.height


class TestArcSymmetry:
    """Reversing endpoints keeps the magnitudes."""

    def test_separation_and_height(self):
        a = GeoCoordinate(10.0, 20.0)
        b = GeoCoordinate(-35.0, 140.0)

        ab = build_arc(a, b, 600.0)
        ba = build_arc(b, a, 600.0)

        assert ab.angular_separation == pytest.approx(ba.angular_separation)
        assert ab.height == pytest.approx(ba.height)

    def test_reversed_controls(self):
        a = GeoCoordinate(51.5, -0.1)
        b = GeoCoordinate(40.7, -74.0)

        ab = build_arc(a, b, 600.0)
        ba = build_arc(b, a, 600.0)

        np.testing.assert_allclose(ab.control1, ba.control2, atol=1e-9)
        np.testing.assert_allclose(ab.control2, ba.control1, atol=1e-9)

    def test_matches_haversine(self):
        a = GeoCoordinate(51.5, -0.1)
        b = GeoCoordinate(35.7, 139.7)
        arc = build_arc(a, b, 1.0)
        assert arc.angular_separation == pytest.approx(angular_distance(a, b), abs=1e-9)


# ============== Degenerate Arc Tests ==============

class TestDegenerateArcs:
    """Coincident and antipodal endpoints recover as zero-height arcs."""

    def test_coincident(self):
        p = GeoCoordinate(45.0, 45.0)
        arc = build_arc(p, p, 600.0)

        assert arc.degenerate
        assert arc.distance_between == pytest.approx(0.0, abs=1e-3)
        np.testing.assert_allclose(arc.start, arc.end)
        np.testing.assert_allclose(arc.control1, arc.start)
        np.testing.assert_allclose(arc.control2, arc.start)

    def test_same_pole_different_longitude(self):
        arc = build_arc(GeoCoordinate(90, 0), GeoCoordinate(90, 120), 600.0)
        assert arc.degenerate

    def test_antipodal(self):
        arc = build_arc(GeoCoordinate(0, 0), GeoCoordinate(0, 180), 600.0)

        assert arc.degenerate
        assert arc.angular_separation == pytest.approx(math.pi)
        np.testing.assert_allclose(arc.point_at(0.5), [0.0, 600.0, 0.0], atol=1e-9)

    @pytest.mark.parametrize("a, b", [
        ((0, 0), (0, 180)),
        ((30, -45), (-30, 135)),
        ((90, 0), (-90, 0)),
    ])
    def test_antipodal_stays_on_surface(self, a, b):
        """The curve never dips inside the globe and barely rises above it."""
        arc = build_arc(GeoCoordinate(*a), GeoCoordinate(*b), 600.0)
        r = np.linalg.norm(arc.sample(257), axis=1)

        assert arc.degenerate
        assert r.min() >= 600.0 - 1e-6
        assert r.max() <= 600.0 * 1.02
        np.testing.assert_allclose(arc.point_at(0.0), arc.start)
        np.testing.assert_allclose(arc.point_at(1.0), arc.end)

    def test_poles_antipodal(self):
        arc = build_arc(GeoCoordinate(90, 0), GeoCoordinate(-90, 0), 600.0)
        assert arc.degenerate
        assert np.all(np.isfinite(arc.sample(16)))

    def test_require_proper_arc(self, quarter_arc):
        assert require_proper_arc(quarter_arc) is quarter_arc
        p = GeoCoordinate(1.0, 2.0)
        with pytest.raises(DegenerateArc):
            require_proper_arc(build_arc(p, p, 1.0))

    def test_separation_clamped(self):
        """Rounding past ±1 in the dot product must not fail acos."""
        p = np.array([0.0, 0.0, 1.0 + 1e-12])
        assert angular_separation(p, p, 1.0) == 0.0
        assert angular_separation(p, -p, 1.0) == pytest.approx(math.pi)


# ============== Validation Tests ==============

class TestArcValidation:

    @pytest.mark.parametrize("radius", [0.0, -600.0])
    def test_invalid_radius(self, origin, quarter_east, radius):
        with pytest.raises(InvalidRadius):
            build_arc(origin, quarter_east, radius)

    def test_negative_height_factor(self, origin, quarter_east):
        with pytest.raises(ValueError):
            build_arc(origin, quarter_east, 1.0, height_factor=-0.5)


# ============== Curve Tests ==============

class TestCurve:
    """Cubic Bézier evaluation."""

    def test_curve_endpoints(self, quarter_arc):
        np.testing.assert_allclose(quarter_arc.point_at(0.0), quarter_arc.start)
        np.testing.assert_allclose(quarter_arc.point_at(1.0), quarter_arc.end)

    def test_midpoint_above_surface(self, quarter_arc):
        assert np.linalg.norm(quarter_arc.point_at(0.5)) > 600.0

    def test_sample_shape(self, quarter_arc):
        assert quarter_arc.sample(32).shape == (32, 3)
        with pytest.raises(ValueError):
            quarter_arc.sample(1)

    def test_bezier_midpoint_formula(self):
        p = [np.array(v, dtype=float) for v in ([0, 0, 0], [1, 2, 0], [3, 2, 0], [4, 0, 0])]
        mid = cubic_bezier(*p, 0.5)
        np.testing.assert_allclose(mid, (p[0] + 3 * p[1] + 3 * p[2] + p[3]) / 8)

    def test_control_points_order(self, quarter_arc):
        cp = quarter_arc.control_points
        assert cp.shape == (4, 3)
        np.testing.assert_array_equal(cp[0], quarter_arc.start)
        np.testing.assert_array_equal(cp[3], quarter_arc.end)


class TestDescriptorImmutability:
    """Descriptors never change after construction."""

    def test_fields_frozen(self, quarter_arc):
        with pytest.raises(dataclasses.FrozenInstanceError):
            quarter_arc.degenerate = True

    def test_arrays_read_only(self, quarter_arc):
        with pytest.raises(ValueError):
            quarter_arc.control1[0] = 0.0

    def test_to_dict(self, quarter_arc):
        d = quarter_arc.to_dict()
        assert d["distance_between"] == pytest.approx(942.4778, abs=1e-3)
        assert d["start_geo"] == [0.0, 0.0]
        assert len(d["control1"]) == 3


class TestBuildArcs:
    """Batch construction from connections."""

    def test_ids(self):
        connections = [
            Connection.from_latlon(0, 0, 10, 10, id="lhr-jfk"),
            Connection.from_latlon(5, 5, 5, 5),
        ]
        arcs = build_arcs(connections, 600.0)

        assert [a.arc_id for a in arcs] == ["lhr-jfk", "arc_1"]
        assert arcs[1].degenerate
        assert all(isinstance(a, ArcCurveDescriptor) for a in arcs)

    def test_repeated_ids_made_unique(self):
        """Rows sharing an id still get separate arcs and dash states."""
        connections = [
            Connection.from_latlon(0, 0, 10, 10, id="air"),
            Connection.from_latlon(1, 1, 20, 20, id="air"),
            Connection.from_latlon(2, 2, 30, 30, id="air_1"),
        ]
        arcs = build_arcs(connections, 600.0)
        ids = [a.arc_id for a in arcs]

        assert ids[:2] == ["air", "air_1"]
        assert len(set(ids)) == 3

        clock = AnimationClock(seed=5)
        clock.register_all(ids)
        assert len(clock) == 3
