"""
Arcs: Geodesic Connection Curves

Elevated cubic Bézier arcs following the great circle between two
geographic coordinates, plus the per-arc dash animation clock.
"""

from pathlib import Path

__version__ = "1.0.0"

MODULE_DIR = Path(__file__).parent

from .geodesic import (
    ArcCurveDescriptor,
    antipodal_controls,
    angular_separation,
    build_arc,
    build_arcs,
    cubic_bezier,
    require_proper_arc,
)
from .animation import AnimationClock, DashState

__all__ = [
    "ArcCurveDescriptor",
    "antipodal_controls",
    "angular_separation",
    "build_arc",
    "build_arcs",
    "cubic_bezier",
    "require_proper_arc",
    "AnimationClock",
    "DashState",
]
