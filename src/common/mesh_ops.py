"""
Mesh operation utilities.

Instanced dot geometry, polyline lengths, statistics.
"""

import numpy as np
from typing import Dict, Any, Sequence
import logging

import trimesh

logger = logging.getLogger(__name__)


def compute_mesh_stats(mesh: trimesh.Trimesh) -> Dict[str, Any]:
    """
    Compute mesh statistics.

    Args:
        mesh: Trimesh mesh object

    Returns:
        Dictionary of mesh statistics
    """
    if len(mesh.vertices) == 0:
        return {"n_vertices": 0, "n_faces": 0, "bounds": None, "extents": None,
                "max_extent": 0.0, "surface_area": 0.0}

    bounds = mesh.bounds
    extents = mesh.extents

    return {
        "n_vertices": len(mesh.vertices),
        "n_faces": len(mesh.faces),
        "bounds": {
            "min": bounds[0].tolist(),
            "max": bounds[1].tolist()
        },
        "extents": extents.tolist(),
        "max_extent": float(max(extents)),
        "surface_area": float(mesh.area),
    }


def look_at_matrices(
    positions: np.ndarray,
    up: Sequence[float] = (0.0, 1.0, 0.0)
) -> np.ndarray:
    """
    Rotations that point local +Z from the origin toward each position.

    Local X is perpendicular to ``up``; at the poles, where the radial
    direction is parallel to ``up``, X falls back to world +X.

    Args:
        positions: (N, 3) instance positions
        up: World up vector

    Returns:
        (N, 3, 3) rotation matrices, columns are the local X, Y, Z axes
    """
    positions = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
    norms = np.linalg.norm(positions, axis=1, keepdims=True)
    if np.any(norms == 0):
        raise ValueError("cannot orient an instance placed at the sphere center")
    z = positions / norms

    x = np.cross(np.asarray(up, dtype=np.float64), z)
    x_norm = np.linalg.norm(x, axis=1, keepdims=True)
    parallel = x_norm[:, 0] < 1e-12
    x[parallel] = (1.0, 0.0, 0.0)
    x_norm[parallel] = 1.0
    x = x / x_norm

    y = np.cross(z, x)
    return np.stack([x, y, z], axis=-1)


def dot_template(radius: float = 4.0, subdivisions: int = 0) -> trimesh.Trimesh:
    """Low-poly sphere used for every land dot."""
    return trimesh.creation.icosphere(subdivisions=subdivisions, radius=radius)


def instance_dots(
    positions: np.ndarray,
    radius: float = 4.0,
    subdivisions: int = 0
) -> trimesh.Trimesh:
    """
    Copy the dot template to every position as one merged mesh.

    Each copy is rotated with look_at_matrices so it faces along the
    radial line through the sphere center.

    Args:
        positions: (N, 3) render-space dot positions
        radius: Dot radius
        subdivisions: Icosphere subdivisions of the template

    Returns:
        Merged Trimesh (empty for no positions)
    """
    positions = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
    if len(positions) == 0:
        return trimesh.Trimesh(vertices=np.empty((0, 3)), faces=np.empty((0, 3), dtype=np.int64))

    template = dot_template(radius, subdivisions)
    tv = np.asarray(template.vertices)
    tf = np.asarray(template.faces)

    rotations = look_at_matrices(positions)
    vertices = np.einsum("nij,vj->nvi", rotations, tv) + positions[:, None, :]
    offsets = np.arange(len(positions)) * len(tv)
    faces = tf[None, :, :] + offsets[:, None, None]

    mesh = trimesh.Trimesh(
        vertices=vertices.reshape(-1, 3),
        faces=faces.reshape(-1, 3),
        process=False
    )
    logger.info(f"Instanced {len(positions)} dots ({len(mesh.vertices)} verts, {len(mesh.faces)} tris)")
    return mesh


def polyline_length(points: np.ndarray) -> float:
    """Total length of a polyline."""
    points = np.asarray(points, dtype=np.float64)
    if len(points) < 2:
        return 0.0
    return float(np.linalg.norm(np.diff(points, axis=0), axis=1).sum())
