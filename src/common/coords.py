"""
Coordinate conversion utilities.

Axis Convention:
Spherical (radius, phi, theta) → Cartesian with +Y as the polar axis
    x = r * sin(phi) * sin(theta)
    y = r * cos(phi)
    z = r * sin(phi) * cos(theta)

Geographic (lat, lon) → spherical with phi = 90° - lat, theta = lon.
Longitude 0 on the equator lands on +Z, longitude 90 on +X.

All functions accept scalars or numpy arrays.
"""

import math
import numpy as np
from typing import Tuple, Union
from dataclasses import dataclass
import logging

from .errors import validate_radius

logger = logging.getLogger(__name__)

ArrayLike = Union[float, np.ndarray]


@dataclass(frozen=True)
class GeoCoordinate:
    """Geographic position in degrees."""
    latitude_deg: float
    longitude_deg: float

    def __post_init__(self):
        lat = float(self.latitude_deg)
        lon = float(self.longitude_deg)
        if not -90.0 <= lat <= 90.0:
            raise ValueError(f"latitude must be in [-90, 90], got {lat}")
        if not -180.0 <= lon <= 180.0:
            raise ValueError(f"longitude must be in [-180, 180], got {lon}")
        object.__setattr__(self, "latitude_deg", lat)
        object.__setattr__(self, "longitude_deg", lon)

    @property
    def lonlat(self) -> Tuple[float, float]:
        return (self.longitude_deg, self.latitude_deg)

    @classmethod
    def from_lonlat(cls, lon: float, lat: float) -> "GeoCoordinate":
        return cls(latitude_deg=lat, longitude_deg=lon)


def spherical_to_cartesian(r: ArrayLike, phi: ArrayLike, theta: ArrayLike) -> np.ndarray:
    """
    Convert spherical coordinates to Cartesian.

    Args:
        r: Radius
        phi: Polar angle from +Y (0 to pi)
        theta: Azimuthal angle around Y, measured from +Z toward +X

    Returns:
        (3,) array for scalar input, otherwise (N, 3)
    """
    r = np.asarray(r, dtype=np.float64)
    phi = np.asarray(phi, dtype=np.float64)
    theta = np.asarray(theta, dtype=np.float64)

    sin_phi_r = np.sin(phi) * r
    x = sin_phi_r * np.sin(theta)
    y = np.cos(phi) * r
    z = sin_phi_r * np.cos(theta)

    return np.stack(np.broadcast_arrays(x, y, z), axis=-1)


def cartesian_to_spherical(points: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Inverse of spherical_to_cartesian.

    Returns:
        (r, phi, theta); phi is 0 for the zero vector
    """
    points = np.asarray(points, dtype=np.float64)
    x, y, z = points[..., 0], points[..., 1], points[..., 2]
    r = np.sqrt(x**2 + y**2 + z**2)
    with np.errstate(invalid="ignore", divide="ignore"):
        phi = np.where(r > 0, np.arccos(np.clip(y / np.where(r > 0, r, 1.0), -1.0, 1.0)), 0.0)
    theta = np.arctan2(x, z)
    return r, phi, theta


def lonlat_to_spherical(lon: ArrayLike, lat: ArrayLike) -> Tuple[np.ndarray, np.ndarray]:
    """
    Convert longitude/latitude to spherical angles (phi, theta).

    phi: colatitude (0 at the north pole, pi at the south pole)
    theta: longitude in radians

    Args:
        lon: Longitude in degrees (-180 to 180)
        lat: Latitude in degrees (-90 to 90)
    """
    phi = np.deg2rad(90.0 - np.asarray(lat, dtype=np.float64))
    theta = np.deg2rad(np.asarray(lon, dtype=np.float64))
    return phi, theta


def lonlat_to_cartesian(lon: ArrayLike, lat: ArrayLike, radius: ArrayLike) -> np.ndarray:
    """Vectorized geographic → Cartesian conversion."""
    phi, theta = lonlat_to_spherical(lon, lat)
    return spherical_to_cartesian(radius, phi, theta)


def geo_to_cartesian(coord: GeoCoordinate, radius: float) -> np.ndarray:
    """Place a geographic coordinate on the sphere of ``radius``."""
    radius = validate_radius(radius)
    return lonlat_to_cartesian(coord.longitude_deg, coord.latitude_deg, radius)


def cartesian_to_geo(point: np.ndarray) -> GeoCoordinate:
    """Geographic coordinate of the direction of ``point``."""
    r, phi, theta = cartesian_to_spherical(point)
    if not r > 0:
        raise ValueError("cannot take the direction of a zero-length point")
    lat = 90.0 - math.degrees(float(phi))
    lon = math.degrees(float(theta))
    return GeoCoordinate.from_lonlat(lon, min(90.0, max(-90.0, lat)))


def _haversin(x: ArrayLike) -> ArrayLike:
    s = np.sin(np.asarray(x) / 2.0)
    return s * s


def angular_distance(a: GeoCoordinate, b: GeoCoordinate) -> float:
    """
    Great-circle angle between two coordinates in radians.

    Haversine form, well-conditioned for nearby points.
    """
    lon0, lat0 = np.deg2rad(a.lonlat)
    lon1, lat1 = np.deg2rad(b.lonlat)
    h = _haversin(lat1 - lat0) + np.cos(lat0) * np.cos(lat1) * _haversin(lon1 - lon0)
    return float(2.0 * np.arcsin(np.sqrt(np.clip(h, 0.0, 1.0))))


def geo_interpolate(
    a: GeoCoordinate,
    b: GeoCoordinate,
    t: ArrayLike
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Interpolate along the great circle from ``a`` to ``b``.

    Spherical linear interpolation of the unit vectors, expressed back as
    (lon, lat). t=0 gives ``a``, t=1 gives ``b``.

    Args:
        a: Start coordinate
        b: End coordinate
        t: Fraction(s) along the path

    Returns:
        (lon, lat) arrays in degrees, same shape as ``t``

    Raises:
        ValueError: if the endpoints are antipodal (path undefined)
    """
    t = np.asarray(t, dtype=np.float64)
    x0, y0 = np.deg2rad(a.lonlat)
    x1, y1 = np.deg2rad(b.lonlat)

    cy0, sy0 = np.cos(y0), np.sin(y0)
    cy1, sy1 = np.cos(y1), np.sin(y1)
    kx0, ky0 = cy0 * np.cos(x0), cy0 * np.sin(x0)
    kx1, ky1 = cy1 * np.cos(x1), cy1 * np.sin(x1)

    d = angular_distance(a, b)
    if d == 0.0:
        return np.full(t.shape, a.longitude_deg), np.full(t.shape, a.latitude_deg)

    k = np.sin(d)
    if k < 1e-12:
        raise ValueError(f"great circle between antipodal points {a} and {b} is undefined")

    td = t * d
    B = np.sin(td) / k
    A = np.sin(d - td) / k
    x = A * kx0 + B * kx1
    y = A * ky0 + B * ky1
    z = A * sy0 + B * sy1

    lon = np.rad2deg(np.arctan2(y, x))
    lat = np.rad2deg(np.arctan2(z, np.sqrt(x * x + y * y)))
    return lon, lat
