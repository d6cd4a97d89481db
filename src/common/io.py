"""
Data I/O utilities.

Handles loading connection feeds and saving globe meshes with metadata.
A connection feed is a table with one origin/destination pair per row.
"""

import json
import logging
from pathlib import Path
from typing import List, Optional, Tuple
from dataclasses import dataclass

import numpy as np
import pandas as pd
import trimesh

from .config import GlobeMetadata
from .coords import GeoCoordinate

logger = logging.getLogger(__name__)

ORIGIN_LAT_COLUMNS = ['origin_lat', 'start_lat', 'src_lat', 'from_lat', 'lat1']
ORIGIN_LON_COLUMNS = ['origin_lon', 'start_lon', 'src_lon', 'from_lon', 'lon1',
                      'origin_lng', 'start_lng']
DEST_LAT_COLUMNS = ['destination_lat', 'dest_lat', 'end_lat', 'dst_lat', 'to_lat', 'lat2']
DEST_LON_COLUMNS = ['destination_lon', 'dest_lon', 'end_lon', 'dst_lon', 'to_lon', 'lon2',
                    'destination_lng', 'end_lng']
ID_COLUMNS = ['id', 'arc_id', 'connection_id', 'name']


@dataclass(frozen=True)
class Connection:
    """One origin → destination pair from the data feed."""
    origin: GeoCoordinate
    destination: GeoCoordinate
    id: Optional[str] = None

    @classmethod
    def from_latlon(
        cls,
        origin_lat: float,
        origin_lon: float,
        dest_lat: float,
        dest_lon: float,
        id: Optional[str] = None
    ) -> "Connection":
        return cls(
            origin=GeoCoordinate(origin_lat, origin_lon),
            destination=GeoCoordinate(dest_lat, dest_lon),
            id=id
        )


def load_connections(path: Path, strict: bool = False) -> List[Connection]:
    """
    Load connections from CSV, JSON or parquet file.

    Expected columns (first match wins):
    - origin_lat / start_lat / src_lat / from_lat / lat1
    - origin_lon / start_lon / src_lon / from_lon / lon1
    - destination_lat / dest_lat / end_lat / dst_lat / to_lat / lat2
    - destination_lon / dest_lon / end_lon / dst_lon / to_lon / lon2
    - optional id / arc_id / connection_id / name

    Args:
        path: Path to data file
        strict: Raise on the first invalid row instead of skipping it

    Returns:
        Connections in file order
    """
    path = Path(path)

    if path.suffix == '.parquet':
        df = pd.read_parquet(path)
    elif path.suffix == '.json':
        df = pd.read_json(path)
    else:
        df = pd.read_csv(path)

    logger.info(f"Loaded {len(df)} rows from {path}")

    def find_col(candidates: List[str]) -> Optional[str]:
        for c in candidates:
            if c in df.columns:
                return c
        return None

    cols = [
        find_col(ORIGIN_LAT_COLUMNS),
        find_col(ORIGIN_LON_COLUMNS),
        find_col(DEST_LAT_COLUMNS),
        find_col(DEST_LON_COLUMNS),
    ]
    if not all(cols):
        raise ValueError(f"Could not find origin/destination columns in {df.columns.tolist()}")
    id_col = find_col(ID_COLUMNS)

    values = df[cols].to_numpy(dtype=np.float64)
    ids = [None if pd.isna(v) else str(v) for v in df[id_col]] if id_col else [None] * len(df)

    connections = []
    n_skipped = 0
    for row, (o_lat, o_lon, d_lat, d_lon), conn_id in zip(df.index, values, ids):
        try:
            if not np.all(np.isfinite([o_lat, o_lon, d_lat, d_lon])):
                raise ValueError("missing coordinate")
            connections.append(Connection.from_latlon(o_lat, o_lon, d_lat, d_lon, conn_id))
        except ValueError as e:
            if strict:
                raise ValueError(f"Invalid connection at row {row}: {e}") from e
            logger.warning(f"Skipping row {row}: {e}")
            n_skipped += 1

    logger.info(f"Parsed {len(connections)} connections ({n_skipped} skipped)")
    return connections


def save_connections(connections: List[Connection], path: Path) -> None:
    """Write connections as CSV with the canonical column names."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df = pd.DataFrame({
        'id': [c.id for c in connections],
        'origin_lat': [c.origin.latitude_deg for c in connections],
        'origin_lon': [c.origin.longitude_deg for c in connections],
        'destination_lat': [c.destination.latitude_deg for c in connections],
        'destination_lon': [c.destination.longitude_deg for c in connections],
    })
    df.to_csv(path, index=False)
    logger.info(f"Saved {len(connections)} connections: {path}")


def save_mesh(
    mesh: trimesh.Trimesh,
    path: Path,
    metadata: GlobeMetadata
) -> None:
    """
    Save mesh to GLB file with metadata sidecar.

    Args:
        mesh: Trimesh mesh object
        path: Output path (should end in .glb)
        metadata: GlobeMetadata object (will be saved as .json sidecar)
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    mesh.export(str(path))
    logger.info(f"Saved mesh: {path} ({len(mesh.vertices)} verts, {len(mesh.faces)} tris)")

    meta_path = path.with_suffix('.json')
    metadata.save(meta_path)
    logger.info(f"Saved metadata: {meta_path}")


def load_mesh(path: Path) -> Tuple[trimesh.Trimesh, Optional[GlobeMetadata]]:
    """
    Load mesh and its metadata sidecar.

    Args:
        path: Path to mesh file

    Returns:
        Tuple of (mesh, metadata) - metadata may be None if not found
    """
    path = Path(path)
    mesh = trimesh.load(str(path), force='mesh')

    meta_path = path.with_suffix('.json')
    metadata = None
    if meta_path.exists():
        with open(meta_path) as f:
            metadata = GlobeMetadata.from_dict(json.load(f))

    return mesh, metadata
