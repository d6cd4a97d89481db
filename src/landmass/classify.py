"""
Land mask classification.

A sphere point is land when the opacity of the equirectangular mask
under it reaches the threshold:

    n = p / |p|
    u = atan2(n.x, n.z) / (2*pi) + 0.5
    v = asin(n.y) / pi + 0.5          (LINEAR mapping: n.y * 0.5 + 0.5)
    cell = (floor(u * W), floor(v * H)), clamped to the raster

Rows are addressed exactly as the image stores them, so +Y in sample
space reads toward the last row. The renderer mirrors Y when placing
dots, which puts the first (northern) image row at the top of the globe.
"""

import logging
from pathlib import Path
from typing import Tuple, Union

import numpy as np
from skimage import io as skio
from skimage.transform import resize
from skimage.util import img_as_ubyte

from common.config import LatitudeMapping
from common.coords import GeoCoordinate, geo_to_cartesian
from common.errors import RasterOutOfBounds

from .sampler import SpherePoint

logger = logging.getLogger(__name__)

LAND_THRESHOLD = 90

PointLike = Union[np.ndarray, SpherePoint]


class MaskRaster:
    """
    Immutable opacity grid (H rows x W columns, values 0-255).

    Only built from already-decoded pixel data, so holding one means the
    mask is ready.
    """

    __slots__ = ("_alpha",)

    def __init__(self, alpha: np.ndarray):
        alpha = np.asarray(alpha)
        if alpha.ndim != 2 or alpha.size == 0:
            raise ValueError(f"mask must be a non-empty 2D array, got shape {alpha.shape}")
        if alpha.dtype != np.uint8:
            if np.any(alpha < 0) or np.any(alpha > 255):
                raise ValueError("mask opacity must lie in [0, 255]")
            alpha = np.rint(alpha).astype(np.uint8)
        alpha = alpha.copy()
        alpha.setflags(write=False)
        object.__setattr__(self, "_alpha", alpha)

    def __setattr__(self, name, value):
        raise AttributeError("MaskRaster is immutable")

    @property
    def alpha(self) -> np.ndarray:
        """Read-only view of the opacity grid."""
        return self._alpha

    @property
    def width(self) -> int:
        return self._alpha.shape[1]

    @property
    def height(self) -> int:
        return self._alpha.shape[0]

    @property
    def shape(self) -> Tuple[int, int]:
        return self._alpha.shape

    def opacity_at(self, x: int, y: int) -> int:
        """Opacity of column ``x``, row ``y``."""
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise RasterOutOfBounds(f"cell ({x}, {y}) outside {self.width}x{self.height} raster")
        return int(self._alpha[y, x])

    def with_cell(self, x: int, y: int, opacity: int) -> "MaskRaster":
        """Copy of this raster with one cell replaced."""
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise RasterOutOfBounds(f"cell ({x}, {y}) outside {self.width}x{self.height} raster")
        alpha = self._alpha.copy()
        alpha[y, x] = opacity
        return MaskRaster(alpha)

    @classmethod
    def from_array(cls, alpha: np.ndarray) -> "MaskRaster":
        return cls(alpha)

    @classmethod
    def filled(cls, width: int, height: int, opacity: int) -> "MaskRaster":
        return cls(np.full((height, width), opacity, dtype=np.uint8))

    @classmethod
    def from_image(
        cls,
        path: Path,
        width: int = 400,
        height: int = 200
    ) -> "MaskRaster":
        """
        Decode an image and keep its alpha channel.

        The image is resampled to ``width`` x ``height``. Images without an
        alpha channel decode as fully opaque.

        Args:
            path: Image file (PNG with transparency for oceans)
            width: Raster columns
            height: Raster rows
        """
        image = skio.imread(str(path))
        alpha = extract_alpha(image)

        if alpha.shape != (height, width):
            resized = resize(
                alpha, (height, width), order=1,
                preserve_range=True, anti_aliasing=True
            )
            alpha = np.clip(np.rint(resized), 0, 255).astype(np.uint8)

        logger.info(f"Decoded mask {path}: {image.shape} -> {width}x{height}")
        return cls(alpha)

    def __repr__(self) -> str:
        return f"MaskRaster({self.width}x{self.height})"


def extract_alpha(image: np.ndarray) -> np.ndarray:
    """
    Opacity channel of a decoded image as uint8.

    RGBA → A, LA → A, RGB and grayscale → fully opaque.
    """
    image = np.asarray(image)
    if image.ndim == 2:
        return np.full(image.shape, 255, dtype=np.uint8)
    channels = image.shape[-1]
    if channels == 4:
        alpha = image[..., 3]
    elif channels == 2:
        alpha = image[..., 1]
    elif channels == 3:
        return np.full(image.shape[:2], 255, dtype=np.uint8)
    else:
        raise ValueError(f"unsupported image with {channels} channels")
    return img_as_ubyte(alpha)


def point_to_uv(
    points: np.ndarray,
    mapping: LatitudeMapping = LatitudeMapping.ASIN
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Equirectangular UV of point direction(s).

    Args:
        points: (3,) or (N, 3) positions, any radius
        mapping: Latitude → V convention

    Returns:
        (u, v) in [0, 1]; NaN for zero-length points
    """
    points = np.asarray(points, dtype=np.float64)
    norm = np.linalg.norm(points, axis=-1, keepdims=True)
    with np.errstate(invalid="ignore", divide="ignore"):
        n = points / norm

    u = np.arctan2(n[..., 0], n[..., 2]) / (2 * np.pi) + 0.5
    if mapping is LatitudeMapping.LINEAR:
        v = n[..., 1] * 0.5 + 0.5
    else:
        v = np.arcsin(np.clip(n[..., 1], -1.0, 1.0)) / np.pi + 0.5
    return u, v


def uv_to_cell(u, v, width: int, height: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Nearest raster cell for UV, clamped to [0, W-1] x [0, H-1].

    Raises:
        RasterOutOfBounds: UV is not finite
    """
    u = np.asarray(u, dtype=np.float64)
    v = np.asarray(v, dtype=np.float64)
    if not (np.all(np.isfinite(u)) and np.all(np.isfinite(v))):
        raise RasterOutOfBounds("non-finite UV (zero-length or NaN point)")

    col = np.clip(np.floor(u * width), 0, width - 1).astype(np.intp)
    row = np.clip(np.floor(v * height), 0, height - 1).astype(np.intp)

    if np.any(col < 0) or np.any(col >= width) or np.any(row < 0) or np.any(row >= height):
        raise RasterOutOfBounds(f"UV mapped outside {width}x{height} raster")
    return col, row


def _as_xyz(point) -> np.ndarray:
    if hasattr(point, "xyz"):
        return point.xyz
    return np.asarray(point, dtype=np.float64)


def sample_opacity(
    points: np.ndarray,
    mask: MaskRaster,
    mapping: LatitudeMapping = LatitudeMapping.ASIN
) -> np.ndarray:
    """Mask opacity under each point (nearest neighbour, no interpolation)."""
    u, v = point_to_uv(points, mapping)
    col, row = uv_to_cell(u, v, mask.width, mask.height)
    return mask.alpha[row, col]


def is_land(
    point: PointLike,
    mask: MaskRaster,
    threshold: int = LAND_THRESHOLD,
    mapping: LatitudeMapping = LatitudeMapping.ASIN
) -> bool:
    """Whether a single sphere point lies on land."""
    xyz = _as_xyz(point)
    if xyz.shape != (3,):
        raise ValueError(f"expected a single 3D point, got shape {xyz.shape}")
    return bool(sample_opacity(xyz, mask, mapping) >= threshold)


def classify_points(
    points: np.ndarray,
    mask: MaskRaster,
    threshold: int = LAND_THRESHOLD,
    mapping: LatitudeMapping = LatitudeMapping.ASIN
) -> np.ndarray:
    """
    Vectorized is_land over an (N, 3) array.

    Returns:
        (N,) boolean array
    """
    points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    if len(points) == 0:
        return np.zeros(0, dtype=bool)
    return sample_opacity(points, mask, mapping) >= threshold


def is_land_at(
    coord: GeoCoordinate,
    mask: MaskRaster,
    threshold: int = LAND_THRESHOLD,
    mapping: LatitudeMapping = LatitudeMapping.ASIN
) -> bool:
    """
    Whether a geographic coordinate is land, as it appears on the rendered globe.

    Mirrors Y the same way the renderer does, so latitude 60 reads the
    northern part of the map.
    """
    xyz = geo_to_cartesian(coord, 1.0)
    xyz[1] = -xyz[1]
    return is_land(xyz, mask, threshold, mapping)
