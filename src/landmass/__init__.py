"""
Landmass: Spiral-Sampled Land Dots

Sample a Fibonacci spiral over the sphere and keep the points whose
position falls on land in an equirectangular alpha mask.
"""

from pathlib import Path

__version__ = "1.0.0"

MODULE_DIR = Path(__file__).parent

from .sampler import SpherePoint, fibonacci_sphere, sample, polar_angles, spacing_stats
from .classify import (
    LAND_THRESHOLD,
    MaskRaster,
    point_to_uv,
    uv_to_cell,
    is_land,
    is_land_at,
    classify_points,
)
from .build import LandPointSet, build_land_points, load_mask_async, land_points_when_ready

__all__ = [
    "SpherePoint",
    "fibonacci_sphere",
    "sample",
    "polar_angles",
    "spacing_stats",
    "LAND_THRESHOLD",
    "MaskRaster",
    "point_to_uv",
    "uv_to_cell",
    "is_land",
    "is_land_at",
    "classify_points",
    "LandPointSet",
    "build_land_points",
    "load_mask_async",
    "land_points_when_ready",
]
