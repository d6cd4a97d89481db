"""
Common modules for globe generation.

Geometry Model:
- Sphere centered at the origin, +Y is the polar axis
- Geographic (lat, lon) → colatitude/azimuth → Cartesian
- Land dots and connection arcs share one fixed sphere radius
"""

from .config import GlobeConfig, GlobeMetadata, LatitudeMapping, DEFAULT_CONFIG
from .coords import (
    GeoCoordinate, spherical_to_cartesian, lonlat_to_cartesian,
    geo_to_cartesian, cartesian_to_geo, geo_interpolate, angular_distance,
)
from .errors import (
    GlobeError, InvalidSampleCount, InvalidRadius, RasterOutOfBounds,
    DegenerateArc, MaskNotReady,
)
from .io import Connection, load_connections, save_connections, save_mesh, load_mesh
from .mesh_ops import look_at_matrices, instance_dots, polyline_length, compute_mesh_stats

__all__ = [
    'GlobeConfig', 'GlobeMetadata', 'LatitudeMapping', 'DEFAULT_CONFIG',
    'GeoCoordinate', 'spherical_to_cartesian', 'lonlat_to_cartesian',
    'geo_to_cartesian', 'cartesian_to_geo', 'geo_interpolate', 'angular_distance',
    'GlobeError', 'InvalidSampleCount', 'InvalidRadius', 'RasterOutOfBounds',
    'DegenerateArc', 'MaskNotReady',
    'Connection', 'load_connections', 'save_connections', 'save_mesh', 'load_mesh',
    'look_at_matrices', 'instance_dots', 'polyline_length', 'compute_mesh_stats',
]
