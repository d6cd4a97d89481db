"""
Error taxonomy for globe geometry.

All geometry failures are local: nothing here is retried, and no
partial state needs rolling back.
"""

import math
import operator


class GlobeError(Exception):
    """Base class for all globe geometry errors."""


class InvalidSampleCount(GlobeError, ValueError):
    """Sample count must be a positive integer."""


class InvalidRadius(GlobeError, ValueError):
    """Sphere radius must be positive and finite."""


class RasterOutOfBounds(GlobeError, IndexError):
    """
    A point mapped outside the mask raster even after clamping.

    This signals a programming defect (NaN direction, zero-length point),
    never a "not land" answer.
    """


class DegenerateArc(GlobeError):
    """
    Coincident or antipodal arc endpoints.

    The arc builder does not raise this; it recovers with a zero-height arc.
    Raised only by ``require_proper_arc`` for callers that want strictness.
    """


class MaskNotReady(GlobeError, RuntimeError):
    """Classification was requested before the mask raster finished decoding."""


def validate_count(count) -> int:
    """Return ``count`` as int or raise InvalidSampleCount."""
    if isinstance(count, bool):
        raise InvalidSampleCount(f"count must be an integer, got {count!r}")
    try:
        count = operator.index(count)
    except TypeError:
        raise InvalidSampleCount(f"count must be an integer, got {count!r}") from None
    if count <= 0:
        raise InvalidSampleCount(f"count must be > 0, got {count}")
    return count


def validate_radius(radius) -> float:
    """Return ``radius`` as float or raise InvalidRadius."""
    try:
        radius = float(radius)
    except (TypeError, ValueError):
        raise InvalidRadius(f"radius must be a number, got {radius!r}") from None
    if not math.isfinite(radius) or radius <= 0:
        raise InvalidRadius(f"radius must be > 0 and finite, got {radius}")
    return radius
