"""
Geodesic connection arcs.

Algorithm:
A1. Place both endpoints on the sphere (colatitude = 90° - lat, azimuth = lon)
A2. Find the 25% and 75% points along the great circle between them
A3. angular_separation = acos(start · end / R²), distance_between = R * angle
A4. Lift the two great-circle points to R + distance_between * height_factor
A5. (start, control1, control2, end) define a cubic Bézier

Farther-apart endpoints produce taller arcs. Coincident endpoints collapse
to a point. Antipodal endpoints have no unique great circle; one is picked
through the +Y pole (+Z for the poles) and the curve hugs the surface.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

import numpy as np

from common.coords import GeoCoordinate, geo_interpolate, geo_to_cartesian, lonlat_to_cartesian
from common.errors import DegenerateArc, validate_radius

logger = logging.getLogger(__name__)

DEFAULT_HEIGHT_FACTOR = 0.5
CONTROL_FRACTIONS = (0.25, 0.75)

# Separations closer than this to 0 or pi count as degenerate
DEGENERATE_EPS = 1e-6

# Tangent length of a cubic that approximates a half circle of unit radius
HALF_CIRCLE_TANGENT = 4.0 / 3.0


def _frozen(a: np.ndarray) -> np.ndarray:
    a = np.array(a, dtype=np.float64)
    a.setflags(write=False)
    return a


def cubic_bezier(p0, p1, p2, p3, t) -> np.ndarray:
    """
    Evaluate a cubic Bézier at t (scalar or array).

    Returns:
        (3,) for scalar t, (N, 3) for array t
    """
    t = np.asarray(t, dtype=np.float64)[..., None]
    mt = 1.0 - t
    return (
        mt**3 * np.asarray(p0)
        + 3 * mt**2 * t * np.asarray(p1)
        + 3 * mt * t**2 * np.asarray(p2)
        + t**3 * np.asarray(p3)
    )


@dataclass(frozen=True, eq=False)
class ArcCurveDescriptor:
    """
    Cubic curve for one connection.

    Immutable once built; animation state lives with the renderer
    (see AnimationClock), keyed by ``arc_id``.
    """
    start: np.ndarray
    end: np.ndarray
    control1: np.ndarray
    control2: np.ndarray
    radius: float
    angular_separation: float
    distance_between: float
    degenerate: bool = False
    arc_id: Optional[str] = None
    start_geo: Optional[GeoCoordinate] = None
    end_geo: Optional[GeoCoordinate] = None
    params: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        for name in ("start", "end", "control1", "control2"):
            object.__setattr__(self, name, _frozen(getattr(self, name)))

    @property
    def control_points(self) -> np.ndarray:
        """(4, 3) array: start, control1, control2, end."""
        return np.vstack([self.start, self.control1, self.control2, self.end])

    @property
    def control_radius(self) -> float:
        """Distance of the control points from the sphere center."""
        return float(np.linalg.norm(self.control1))

    @property
    def height(self) -> float:
        """How far the control points sit above the surface."""
        return self.control_radius - self.radius

    def point_at(self, t: float) -> np.ndarray:
        return cubic_bezier(self.start, self.control1, self.control2, self.end, t)

    def sample(self, n: int = 64) -> np.ndarray:
        """n evenly spaced (in t) points along the curve, endpoints included."""
        if n < 2:
            raise ValueError(f"need at least 2 samples, got {n}")
        return self.point_at(np.linspace(0.0, 1.0, n))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "arc_id": self.arc_id,
            "start": self.start.tolist(),
            "control1": self.control1.tolist(),
            "control2": self.control2.tolist(),
            "end": self.end.tolist(),
            "radius": self.radius,
            "angular_separation": self.angular_separation,
            "distance_between": self.distance_between,
            "degenerate": self.degenerate,
            "start_geo": list(self.start_geo.lonlat) if self.start_geo else None,
            "end_geo": list(self.end_geo.lonlat) if self.end_geo else None,
        }


def angular_separation(start: np.ndarray, end: np.ndarray, radius: float) -> float:
    """Angle between two sphere points, with the acos argument clamped to [-1, 1]."""
    cos_angle = float(np.dot(start, end)) / (radius * radius)
    return math.acos(min(1.0, max(-1.0, cos_angle)))


def antipodal_controls(
    start: np.ndarray,
    end: np.ndarray,
    radius: float
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Control points for a half great circle between antipodal ``start`` and ``end``.

    The circle runs through the direction of +Y projected off ``start``
    (+Z when ``start`` is a pole). The cubic meets the surface at both ends
    and at its midpoint, and stays on or just above it in between.
    """
    s = np.asarray(start, dtype=np.float64) / radius
    ref = np.array([0.0, 1.0, 0.0]) if abs(s[1]) < 1.0 - 1e-9 else np.array([0.0, 0.0, 1.0])
    w = ref - np.dot(ref, s) * s
    w /= np.linalg.norm(w)

    k = HALF_CIRCLE_TANGENT * radius
    return np.asarray(start, dtype=np.float64) + k * w, np.asarray(end, dtype=np.float64) + k * w


def build_arc(
    start: GeoCoordinate,
    end: GeoCoordinate,
    radius: float,
    height_factor: float = DEFAULT_HEIGHT_FACTOR,
    arc_id: Optional[str] = None
) -> ArcCurveDescriptor:
    """
    Build the elevated cubic arc between two coordinates.

    Args:
        start: Origin coordinate
        end: Destination coordinate
        radius: Sphere radius (> 0)
        height_factor: Control point elevation per unit of surface distance
        arc_id: Optional identity used by the renderer

    Returns:
        ArcCurveDescriptor; ``degenerate`` is set for coincident endpoints
        (a single point) and antipodal ones (a half great circle on the surface)

    Raises:
        InvalidRadius
    """
    radius = validate_radius(radius)
    if height_factor < 0:
        raise ValueError(f"height_factor must be >= 0, got {height_factor}")

    start_pt = geo_to_cartesian(start, radius)
    end_pt = geo_to_cartesian(end, radius)

    angle = angular_separation(start_pt, end_pt, radius)
    distance = radius * angle

    coincident = angle < DEGENERATE_EPS
    antipodal = angle > math.pi - DEGENERATE_EPS
    degenerate = coincident or antipodal
    if coincident:
        logger.debug(f"Coincident arc {arc_id or ''} {start} -> {end}")
        control1, control2 = start_pt, end_pt
    elif antipodal:
        logger.debug(f"Antipodal arc {arc_id or ''} {start} -> {end}")
        control1, control2 = antipodal_controls(start_pt, end_pt, radius)
    else:
        lon, lat = geo_interpolate(start, end, CONTROL_FRACTIONS)
        elevated = radius + distance * height_factor
        control1, control2 = lonlat_to_cartesian(lon, lat, elevated)

    return ArcCurveDescriptor(
        start=start_pt,
        end=end_pt,
        control1=control1,
        control2=control2,
        radius=radius,
        angular_separation=angle,
        distance_between=distance,
        degenerate=degenerate,
        arc_id=arc_id,
        start_geo=start,
        end_geo=end,
        params={"height_factor": height_factor},
    )


def build_arcs(
    connections: Iterable,
    radius: float,
    height_factor: float = DEFAULT_HEIGHT_FACTOR
) -> List[ArcCurveDescriptor]:
    """
    Build one arc per connection.

    Connections need ``origin`` and ``destination`` GeoCoordinates; an
    ``id`` attribute becomes the arc id, otherwise the index is used.
    Repeated ids get an ``_{index}`` suffix so every arc keeps its own
    animation state.
    """
    arcs = []
    seen = set()
    for i, conn in enumerate(connections):
        arc_id = getattr(conn, "id", None) or f"arc_{i}"
        if arc_id in seen:
            unique_id = f"{arc_id}_{i}"
            while unique_id in seen:
                unique_id += "_"
            logger.warning(f"Duplicate arc id {arc_id!r} at row {i}, using {unique_id!r}")
            arc_id = unique_id
        seen.add(arc_id)
        arcs.append(build_arc(conn.origin, conn.destination, radius, height_factor, arc_id))

    n_degenerate = sum(a.degenerate for a in arcs)
    logger.info(f"Built {len(arcs)} arcs ({n_degenerate} degenerate)")
    return arcs


def require_proper_arc(arc: ArcCurveDescriptor) -> ArcCurveDescriptor:
    """Return ``arc`` unchanged, or raise DegenerateArc if it collapsed."""
    if arc.degenerate:
        raise DegenerateArc(
            f"arc {arc.arc_id} has coincident or antipodal endpoints "
            f"(separation {arc.angular_separation:.6f} rad)"
        )
    return arc
