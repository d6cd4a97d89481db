"""
Landmass build step.

Algorithm:
L1. Wait for the mask raster decode (one-shot readiness gate)
L2. Sample the Fibonacci spiral at (dot_count, radius)
L3. Classify every candidate against the mask
L4. Keep land points in spiral order as an immutable LandPointSet

The set is derived once per mask; nothing here is recomputed unless the
count, radius or mask change.
"""

import logging
from concurrent.futures import CancelledError, Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

import numpy as np

from common.config import GlobeConfig, DEFAULT_CONFIG
from common.errors import MaskNotReady

from .classify import MaskRaster, classify_points
from .sampler import SpherePoint, fibonacci_sphere, spacing_stats

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class LandPointSet:
    """
    Sphere points retained as land, in sampling order.

    ``points`` is a read-only (N, 3) array in sample space. Use
    ``render_positions`` for where the renderer places each dot.
    """
    points: np.ndarray
    radius: float
    n_sampled: int
    flip_y: bool = True
    params: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        points = np.array(self.points, dtype=np.float64).reshape(-1, 3)
        points.setflags(write=False)
        object.__setattr__(self, "points", points)

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[SpherePoint]:
        for x, y, z in self.points:
            yield SpherePoint(float(x), float(y), float(z), self.radius)

    @property
    def land_fraction(self) -> float:
        return len(self) / self.n_sampled if self.n_sampled else 0.0

    @property
    def render_positions(self) -> np.ndarray:
        """Dot positions as placed by the renderer (Y mirrored when flip_y)."""
        positions = self.points.copy()
        if self.flip_y:
            positions[:, 1] = -positions[:, 1]
        return positions

    def stats(self) -> Dict[str, Any]:
        return {
            "n_sampled": self.n_sampled,
            "n_land": len(self),
            "land_fraction": round(self.land_fraction, 4),
            "spacing": spacing_stats(self.points),
        }


def build_land_points(
    mask: MaskRaster,
    config: GlobeConfig = DEFAULT_CONFIG
) -> LandPointSet:
    """
    Sample the sphere and keep the points that fall on land.

    Args:
        mask: Decoded mask raster
        config: Sampling and classification parameters

    Returns:
        LandPointSet with at most dot_count + 1 points
    """
    if not isinstance(mask, MaskRaster):
        raise MaskNotReady(f"expected a decoded MaskRaster, got {type(mask).__name__}")

    candidates = fibonacci_sphere(config.dot_count, config.radius)
    keep = classify_points(
        candidates, mask,
        threshold=config.land_threshold,
        mapping=config.latitude_mapping
    )

    land = LandPointSet(
        points=candidates[keep],
        radius=config.radius,
        n_sampled=len(candidates),
        flip_y=config.flip_y,
        params={
            "dot_count": config.dot_count,
            "land_threshold": config.land_threshold,
            "latitude_mapping": config.latitude_mapping.value,
            "mask_size": [mask.width, mask.height],
        }
    )
    logger.info(
        f"Classified {len(candidates)} spiral points: {len(land)} land "
        f"({land.land_fraction:.1%})"
    )
    return land


def load_mask_async(
    path: Path,
    config: GlobeConfig = DEFAULT_CONFIG,
    executor: Optional[Executor] = None
) -> "Future[MaskRaster]":
    """
    Start decoding the mask image; resolves once with a MaskRaster.

    Without an executor the decode runs on a single-use worker that is
    joined before returning, so the future comes back already resolved.
    """
    if executor is not None:
        return executor.submit(
            MaskRaster.from_image, path, config.mask_width, config.mask_height
        )
    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="mask-decode") as pool:
        return pool.submit(
            MaskRaster.from_image, path, config.mask_width, config.mask_height
        )


def land_points_when_ready(
    mask_future: "Future[MaskRaster]",
    config: GlobeConfig = DEFAULT_CONFIG
) -> LandPointSet:
    """
    Block until the mask is decoded, then build the land points.

    Decode errors propagate unchanged.

    Raises:
        MaskNotReady: the decode was cancelled
    """
    try:
        mask = mask_future.result()
    except CancelledError:
        raise MaskNotReady("mask decode was cancelled before completion") from None
    return build_land_points(mask, config)
