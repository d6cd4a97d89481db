"""
Fibonacci-lattice sphere sampling.

Generates near-uniform points on a sphere with a spherical spiral:
for each index i (count down to 0)

    phi   = acos(-1 + 2 * i / count)
    theta = sqrt(count * pi) * phi

The loop bound is inclusive, so count + 1 points come out. Output runs
from the +Y pole (phi = 0) to the -Y pole (phi = pi).
"""

import logging
from dataclasses import dataclass
from typing import Dict, List

import numpy as np
from scipy.spatial import cKDTree

from common.coords import spherical_to_cartesian, cartesian_to_spherical
from common.errors import validate_count, validate_radius

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpherePoint:
    """A point on the sphere surface of ``radius``."""
    x: float
    y: float
    z: float
    radius: float

    @property
    def xyz(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    @property
    def normal(self) -> np.ndarray:
        """Unit direction from the sphere center."""
        return self.xyz / self.radius


def spiral_angles(count: int) -> tuple:
    """
    Polar and azimuthal angles of the spiral, in output order.

    Returns:
        (phi, theta) arrays of length count + 1
    """
    count = validate_count(count)
    i = np.arange(count, -1, -1, dtype=np.float64)
    # Clip guards against -1 + 2*i/count drifting past 1 in floating point
    phi = np.arccos(np.clip(-1.0 + 2.0 * i / count, -1.0, 1.0))
    theta = np.sqrt(count * np.pi) * phi
    return phi, theta


def fibonacci_sphere(count: int, radius: float) -> np.ndarray:
    """
    Sample count + 1 points on a sphere.

    Args:
        count: Spiral resolution (> 0)
        radius: Sphere radius (> 0)

    Returns:
        (count + 1, 3) array of Cartesian positions, deterministic for fixed inputs

    Raises:
        InvalidSampleCount, InvalidRadius
    """
    radius = validate_radius(radius)
    phi, theta = spiral_angles(count)
    logger.debug(f"Sampling {len(phi)} spiral points at radius {radius}")
    return spherical_to_cartesian(radius, phi, theta)


def sample(count: int, radius: float) -> List[SpherePoint]:
    """Sample the spiral as SpherePoint values."""
    radius = validate_radius(radius)
    return [SpherePoint(float(x), float(y), float(z), radius)
            for x, y, z in fibonacci_sphere(count, radius)]


def polar_angles(points: np.ndarray) -> np.ndarray:
    """Polar angle (from +Y) of each point."""
    _, phi, _ = cartesian_to_spherical(points)
    return phi


def spacing_stats(points: np.ndarray) -> Dict[str, float]:
    """
    Nearest-neighbour spacing of a point set.

    A well-spread lattice has min/mean close to 1; clustering or seams
    show up as a small minimum.
    """
    points = np.asarray(points, dtype=np.float64)
    if len(points) < 2:
        return {"min": 0.0, "mean": 0.0, "max": 0.0, "uniformity": 0.0}

    tree = cKDTree(points)
    # k=2: the closest hit is the point itself
    dists, _ = tree.query(points, k=2)
    nn = dists[:, 1]
    mean = float(nn.mean())
    return {
        "min": float(nn.min()),
        "mean": mean,
        "max": float(nn.max()),
        "uniformity": float(nn.min() / mean) if mean > 0 else 0.0,
    }
