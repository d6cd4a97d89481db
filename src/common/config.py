"""
Configuration and constants for globe generation.

Geometry Model:
- Sphere centered at the origin, +Y is the polar axis
- Mask raster is an equirectangular world map (alpha channel = land)
- Land dots and connection arcs share one fixed sphere radius
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, Tuple
import json
from pathlib import Path

from .errors import validate_count, validate_radius


class LatitudeMapping(Enum):
    """
    How normalized Y maps to the raster V coordinate.

    ASIN (default): v = asin(n.y) / pi + 0.5
        - True equirectangular latitude
        - Correct polar regions

    LINEAR: v = n.y * 0.5 + 0.5
        - Older approximation, squashes the poles
        - Kept for maps tuned against it
    """
    ASIN = "asin"
    LINEAR = "linear"


@dataclass
class GlobeMetadata:
    """
    Metadata written next to every exported globe.

    Records the parameters a globe was built from so a render can be
    reproduced exactly.
    """
    n_sampled: int
    n_land: int
    n_arcs: int
    radius: float
    latitude_mapping: str
    land_threshold: int
    n_degenerate_arcs: int = 0
    mask_source: Optional[str] = None
    connections_source: Optional[str] = None
    n_vertices: int = 0
    n_triangles: int = 0
    generation_params: Dict[str, Any] = field(default_factory=dict)

    @property
    def land_fraction(self) -> float:
        return self.n_land / self.n_sampled if self.n_sampled else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "n_sampled": self.n_sampled,
            "n_land": self.n_land,
            "land_fraction": round(self.land_fraction, 4),
            "n_arcs": self.n_arcs,
            "n_degenerate_arcs": self.n_degenerate_arcs,
            "radius": self.radius,
            "latitude_mapping": self.latitude_mapping,
            "land_threshold": self.land_threshold,
            "mask_source": self.mask_source,
            "connections_source": self.connections_source,
            "n_vertices": self.n_vertices,
            "n_triangles": self.n_triangles,
            "generation_params": self.generation_params,
        }

    def save(self, path: Path) -> None:
        """Save metadata to JSON file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GlobeMetadata":
        data = dict(data)
        data.pop("land_fraction", None)
        return cls(**data)


@dataclass
class GlobeConfig:
    """
    Global configuration for globe generation.

    Defaults reproduce the reference scene: 60k candidate dots on a
    radius-600 sphere classified against a 400x200 mask.
    """

    # Sampling
    dot_count: int = 60000
    radius: float = 600.0

    # Mask raster (the decoded image is resampled to this size)
    mask_width: int = 400
    mask_height: int = 200
    land_threshold: int = 90  # alpha >= threshold is land (0-255)
    latitude_mapping: LatitudeMapping = LatitudeMapping.ASIN

    # Dot instances
    dot_radius: float = 4.0
    dot_subdivisions: int = 0  # icosphere subdivisions per dot
    flip_y: bool = True  # instances are placed at (x, -y, z)

    # Arcs
    arc_height_factor: float = 0.5  # elevation = distance_between * factor
    arc_samples: int = 64  # polyline points per exported arc
    dash_rate_range: Tuple[float, float] = (0.001, 0.005)  # per frame

    # Reproducible dash rates when set
    seed: Optional[int] = None

    # Camera sits at radius * factor on -Z
    camera_distance_factor: float = 3.5

    # Paths (relative to project root)
    output_dir: Path = field(default_factory=lambda: Path("outputs"))

    def __post_init__(self):
        self.dot_count = validate_count(self.dot_count)
        self.radius = validate_radius(self.radius)
        if isinstance(self.latitude_mapping, str):
            self.latitude_mapping = LatitudeMapping(self.latitude_mapping)
        self.output_dir = Path(self.output_dir)
        self.dash_rate_range = tuple(self.dash_rate_range)

        if self.mask_width <= 0 or self.mask_height <= 0:
            raise ValueError(
                f"mask size must be positive, got {self.mask_width}x{self.mask_height}"
            )
        if not 0 <= self.land_threshold <= 255:
            raise ValueError(f"land_threshold must be in [0, 255], got {self.land_threshold}")
        if self.dot_radius <= 0 or self.dot_subdivisions < 0:
            raise ValueError(
                f"invalid dot shape: radius={self.dot_radius}, subdivisions={self.dot_subdivisions}"
            )
        if self.arc_height_factor < 0:
            raise ValueError(f"arc_height_factor must be >= 0, got {self.arc_height_factor}")
        if self.arc_samples < 2:
            raise ValueError(f"arc_samples must be >= 2, got {self.arc_samples}")
        low, high = self.dash_rate_range
        if low < 0 or high < low:
            raise ValueError(f"invalid dash_rate_range {self.dash_rate_range}")

    @property
    def camera_position(self) -> Tuple[float, float, float]:
        return (0.0, 0.0, -self.radius * self.camera_distance_factor)

    def get_output_path(self, name: str) -> Path:
        """Get GLB output path for a named globe."""
        return self.output_dir / "globes" / f"{name}.glb"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dot_count": self.dot_count,
            "radius": self.radius,
            "mask_width": self.mask_width,
            "mask_height": self.mask_height,
            "land_threshold": self.land_threshold,
            "latitude_mapping": self.latitude_mapping.value,
            "dot_radius": self.dot_radius,
            "dot_subdivisions": self.dot_subdivisions,
            "flip_y": self.flip_y,
            "arc_height_factor": self.arc_height_factor,
            "arc_samples": self.arc_samples,
            "dash_rate_range": list(self.dash_rate_range),
            "seed": self.seed,
            "camera_distance_factor": self.camera_distance_factor,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GlobeConfig":
        data = dict(data)
        data["latitude_mapping"] = LatitudeMapping(data.get("latitude_mapping", "asin"))
        data["output_dir"] = Path(data.get("output_dir", "outputs"))
        return cls(**data)

    @classmethod
    def from_json(cls, path: Path) -> "GlobeConfig":
        """Load config from JSON file."""
        with open(path) as f:
            data = json.load(f)
        return cls.from_dict(data)

    def save(self, path: Path) -> None:
        """Save config to JSON file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)


# Global default config
DEFAULT_CONFIG = GlobeConfig()
