#!/usr/bin/env python3
"""
Globe Dots - Orchestrator

Build a dotted globe from a land mask image and, optionally, a feed of
origin/destination connections, then export it as GLB.

Usage:
    python src/run_globe.py --mask data/map.png --connections data/routes.csv
    python src/run_globe.py --mask data/map.png --dots 20000 --radius 300 --frames 120
"""

import argparse
import json
import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from common.config import GlobeConfig, GlobeMetadata, LatitudeMapping
from common.io import load_connections
from common.mesh_ops import instance_dots, compute_mesh_stats
from landmass.build import LandPointSet, load_mask_async, land_points_when_ready
from arcs.geodesic import ArcCurveDescriptor, build_arcs
from arcs.animation import AnimationClock
from export.gltf_exporter import GLTFExporter

logger = logging.getLogger(__name__)


@dataclass
class GlobeModel:
    """Everything the renderer needs for one globe."""
    config: GlobeConfig
    land: LandPointSet
    arcs: List[ArcCurveDescriptor] = field(default_factory=list)
    clock: Optional[AnimationClock] = None
    mask_source: Optional[str] = None
    connections_source: Optional[str] = None
    errors: List[Dict[str, str]] = field(default_factory=list)

    @property
    def n_degenerate_arcs(self) -> int:
        return sum(a.degenerate for a in self.arcs)

    def metadata(self, n_vertices: int = 0, n_triangles: int = 0) -> GlobeMetadata:
        return GlobeMetadata(
            n_sampled=self.land.n_sampled,
            n_land=len(self.land),
            n_arcs=len(self.arcs),
            radius=self.config.radius,
            latitude_mapping=self.config.latitude_mapping.value,
            land_threshold=self.config.land_threshold,
            n_degenerate_arcs=self.n_degenerate_arcs,
            mask_source=self.mask_source,
            connections_source=self.connections_source,
            n_vertices=n_vertices,
            n_triangles=n_triangles,
            generation_params=self.config.to_dict(),
        )


def build_globe(
    mask_path: Path,
    connections_path: Optional[Path] = None,
    config: Optional[GlobeConfig] = None
) -> GlobeModel:
    """
    Build land dots and arcs.

    The mask decode runs on a worker while the connection feed is parsed
    and its arcs built; land classification waits for the decode.

    Args:
        mask_path: Equirectangular land mask image
        connections_path: Optional connection feed (CSV/JSON/parquet)
        config: Configuration (defaults if None)

    Returns:
        GlobeModel; arc failures are recorded in ``errors``, mask failures raise
    """
    config = config or GlobeConfig()
    arcs: List[ArcCurveDescriptor] = []
    errors: List[Dict[str, str]] = []

    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="mask-decode") as pool:
        mask_future = load_mask_async(mask_path, config, executor=pool)

        if connections_path is not None:
            try:
                connections = load_connections(connections_path)
                arcs = build_arcs(connections, config.radius, config.arc_height_factor)
            except (OSError, ValueError) as e:
                logger.error(f"Arc stage failed: {e}")
                errors.append({"stage": "arcs", "error": str(e)})

        land = land_points_when_ready(mask_future, config)

    clock = AnimationClock(config.dash_rate_range, seed=config.seed)
    clock.register_all(a.arc_id for a in arcs)

    return GlobeModel(
        config=config,
        land=land,
        arcs=arcs,
        clock=clock,
        mask_source=str(mask_path),
        connections_source=str(connections_path) if connections_path else None,
        errors=errors,
    )


def export_globe(model: GlobeModel, output_path: Path) -> Dict[str, Any]:
    """
    Write GLB, metadata sidecar and arc descriptors.

    Returns:
        Summary of what was written
    """
    config = model.config
    output_path = Path(output_path)

    dots = instance_dots(model.land.render_positions, config.dot_radius, config.dot_subdivisions)
    metadata = model.metadata(len(dots.vertices), len(dots.faces))

    GLTFExporter().export_globe(
        dots,
        model.arcs,
        output_path,
        clock=model.clock,
        n_samples=config.arc_samples,
        metadata=metadata.to_dict(),
    )

    meta_path = output_path.with_suffix('.json')
    metadata.save(meta_path)
    logger.info(f"Saved metadata: {meta_path}")

    arcs_path = output_path.with_name(f"{output_path.stem}_arcs.json")
    with open(arcs_path, 'w') as f:
        json.dump({
            "arcs": [a.to_dict() for a in model.arcs],
            "animation": model.clock.snapshot() if model.clock else {},
        }, f, indent=2)
    logger.info(f"Saved {len(model.arcs)} arc descriptors: {arcs_path}")

    return {
        "glb": str(output_path),
        "metadata": str(meta_path),
        "arcs": str(arcs_path),
        "mesh": compute_mesh_stats(dots),
        "land": model.land.stats(),
    }


def main():
    parser = argparse.ArgumentParser(
        description="Globe Dots - Build a dotted land globe with connection arcs"
    )
    parser.add_argument(
        "--mask", "-m",
        type=Path,
        required=True,
        help="Equirectangular land mask image (alpha = land)"
    )
    parser.add_argument(
        "--connections", "-c",
        type=Path,
        default=None,
        help="Connection feed (CSV, JSON or parquet)"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="JSON config file (command line flags override it)"
    )
    parser.add_argument(
        "--dots", "-n",
        type=int,
        default=None,
        help="Spiral sample count"
    )
    parser.add_argument(
        "--radius", "-r",
        type=float,
        default=None,
        help="Globe radius"
    )
    parser.add_argument(
        "--latitude-mapping",
        choices=[m.value for m in LatitudeMapping],
        default=None,
        help="Latitude to raster row mapping"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for dash rates"
    )
    parser.add_argument(
        "--frames",
        type=int,
        default=0,
        help="Advance the dash animation this many frames before export"
    )
    parser.add_argument(
        "--name",
        default="globe",
        help="Output file stem"
    )
    parser.add_argument(
        "--output", "-o",
        type=Path,
        default=Path("outputs"),
        help="Output directory"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose logging"
    )

    args = parser.parse_args()

    # Setup logging
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    # Build config
    data = GlobeConfig.from_json(args.config).to_dict() if args.config else {}
    overrides = {
        "dot_count": args.dots,
        "radius": args.radius,
        "latitude_mapping": args.latitude_mapping,
        "seed": args.seed,
    }
    data.update({k: v for k, v in overrides.items() if v is not None})
    data["output_dir"] = args.output
    config = GlobeConfig.from_dict(data)

    logger.info(f"Building globe: {config.dot_count} dots, radius {config.radius}")
    logger.info(f"Mask: {args.mask}")
    logger.info(f"Output: {args.output}")

    model = build_globe(args.mask, args.connections, config)
    if model.clock is not None and args.frames > 0:
        model.clock.run(args.frames)

    written = export_globe(model, config.get_output_path(args.name))

    summary = {
        "timestamp": datetime.now().isoformat(),
        "config": config.to_dict(),
        "outputs": written,
        "n_arcs": len(model.arcs),
        "n_degenerate_arcs": model.n_degenerate_arcs,
        "frames": args.frames,
        "errors": model.errors,
    }

    summary_path = args.output / "run_summary.json"
    summary_path.parent.mkdir(parents=True, exist_ok=True)
    with open(summary_path, 'w') as f:
        json.dump(summary, f, indent=2)

    logger.info(f"Summary saved to: {summary_path}")
    logger.info(f"{'='*60}")
    logger.info(f"COMPLETE: {len(model.land)} land dots, {len(model.arcs)} arcs, "
                f"{len(model.errors)} errors")
    logger.info(f"{'='*60}")

    if model.errors:
        sys.exit(1)


if __name__ == "__main__":
    main()
