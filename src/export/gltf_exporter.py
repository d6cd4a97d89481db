"""
glTF/GLB Export Module

Exports the globe scene (land dots + connection arcs) to glTF binary
format for web visualization.
"""

import logging
from typing import Dict, Any, List, Optional, Sequence, Tuple
from pathlib import Path

import numpy as np
import trimesh
from pygltflib import (
    GLTF2, Asset, Scene, Node, Mesh as GLTFMesh, Primitive, Attributes, Accessor, BufferView,
    Buffer,
    Material, PbrMetallicRoughness,
    ARRAY_BUFFER, ELEMENT_ARRAY_BUFFER, FLOAT, UNSIGNED_INT, TRIANGLES, LINE_STRIP,
)

logger = logging.getLogger(__name__)

GENERATOR = "globe-dots"


class _BlobBuilder:
    """Packs arrays into one binary buffer with matching views and accessors."""

    def __init__(self):
        self.chunks: List[bytes] = []
        self.offset = 0
        self.buffer_views: List[BufferView] = []
        self.accessors: List[Accessor] = []

    def add(
        self,
        array: np.ndarray,
        component_type: int,
        accessor_type: str,
        target: int,
        with_bounds: bool = False
    ) -> int:
        data = array.tobytes()
        self.buffer_views.append(BufferView(
            buffer=0,
            byteOffset=self.offset,
            byteLength=len(data),
            target=target
        ))
        count = len(array) if array.ndim > 1 else array.size
        accessor = Accessor(
            bufferView=len(self.buffer_views) - 1,
            componentType=component_type,
            count=count,
            type=accessor_type
        )
        if with_bounds:
            accessor.min = array.min(axis=0).tolist()
            accessor.max = array.max(axis=0).tolist()
        self.accessors.append(accessor)

        self.chunks.append(data)
        self.offset += len(data)
        # float32/uint32 keep every view 4-byte aligned
        return len(self.accessors) - 1

    @property
    def blob(self) -> bytes:
        return b"".join(self.chunks)


class GLTFExporter:
    """
    Exports globe scenes to GLB for Three.js style renderers.

    Scene layout:
    - node "land_dots": one merged triangle mesh of all dot instances
    - one node per arc, named by arc id: a LINE_STRIP of the sampled Bézier, with
      dash rate/offset and arc measurements in the node extras
    """

    def __init__(self, embed_metadata: bool = True):
        """
        Initialize exporter.

        Args:
            embed_metadata: Whether to embed globe metadata in glTF extras
        """
        self.embed_metadata = embed_metadata

    def export_globe(
        self,
        dots: Optional[trimesh.Trimesh],
        arcs: Sequence,
        output_path: Path,
        clock=None,
        n_samples: int = 64,
        metadata: Optional[Dict[str, Any]] = None,
        dot_color: Tuple[float, float, float, float] = (1.0, 1.0, 1.0, 1.0),
        arc_color: Tuple[float, float, float, float] = (0.3, 0.7, 1.0, 1.0)
    ) -> Path:
        """
        Export dots and arcs to one GLB file.

        Args:
            dots: Merged dot mesh (None or empty to skip)
            arcs: ArcCurveDescriptor sequence
            output_path: Output file path (.glb)
            clock: Optional AnimationClock supplying dash rate/offset per arc
            n_samples: Polyline points per arc
            metadata: Optional metadata dictionary to embed
            dot_color: Dot base color (r, g, b, a) in 0-1 range
            arc_color: Arc base color (r, g, b, a) in 0-1 range

        Returns:
            Path to exported file
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        blob = _BlobBuilder()
        meshes: List[GLTFMesh] = []
        nodes: List[Node] = []

        materials = [
            self._material(dot_color, double_sided=False),
            self._material(arc_color, double_sided=True),
        ]

        if dots is not None and len(dots.vertices) > 0:
            position = blob.add(
                np.asarray(dots.vertices, dtype=np.float32), FLOAT, "VEC3",
                ARRAY_BUFFER, with_bounds=True
            )
            normal = blob.add(
                np.asarray(dots.vertex_normals, dtype=np.float32), FLOAT, "VEC3", ARRAY_BUFFER
            )
            indices = blob.add(
                np.asarray(dots.faces, dtype=np.uint32).flatten(), UNSIGNED_INT, "SCALAR",
                ELEMENT_ARRAY_BUFFER
            )
            meshes.append(GLTFMesh(name="land_dots", primitives=[
                Primitive(
                    attributes=Attributes(POSITION=position, NORMAL=normal),
                    indices=indices,
                    material=0,
                    mode=TRIANGLES
                )
            ]))
            nodes.append(Node(name="land_dots", mesh=len(meshes) - 1))

        for i, arc in enumerate(arcs):
            arc_id = arc.arc_id or f"arc_{i}"
            points = np.asarray(arc.sample(n_samples), dtype=np.float32)
            position = blob.add(points, FLOAT, "VEC3", ARRAY_BUFFER, with_bounds=True)
            meshes.append(GLTFMesh(name=arc_id, primitives=[
                Primitive(attributes=Attributes(POSITION=position), material=1, mode=LINE_STRIP)
            ]))

            extras = {
                "arc_id": arc_id,
                "angular_separation": arc.angular_separation,
                "distance_between": arc.distance_between,
                "degenerate": arc.degenerate,
                "control_points": arc.control_points.tolist(),
            }
            if clock is not None and arc_id in clock:
                extras["dash_rate"] = clock.rate(arc_id)
                extras["dash_offset"] = clock.phase(arc_id)
            nodes.append(Node(name=arc_id, mesh=len(meshes) - 1, extras=extras))

        if not nodes:
            raise ValueError("nothing to export: no dots and no arcs")

        data = blob.blob
        gltf = GLTF2(
            asset=Asset(generator=GENERATOR, version="2.0"),
            scene=0,
            scenes=[Scene(nodes=list(range(len(nodes))))],
            nodes=nodes,
            meshes=meshes,
            materials=materials,
            accessors=blob.accessors,
            bufferViews=blob.buffer_views,
            buffers=[Buffer(byteLength=len(data))],
        )

        if self.embed_metadata and metadata:
            gltf.extras = metadata

        gltf.set_binary_blob(data)

        gltf.save(str(output_path))

        logger.info(f"Exported GLB to {output_path} ({len(nodes)} nodes, {len(data)} bytes)")
        return output_path

    @staticmethod
    def _material(color: Tuple[float, float, float, float], double_sided: bool) -> Material:
        return Material(
            pbrMetallicRoughness=PbrMetallicRoughness(
                baseColorFactor=list(color),
                metallicFactor=0.0,
                roughnessFactor=1.0
            ),
            alphaMode="BLEND" if color[3] < 1.0 else "OPAQUE",
            doubleSided=double_sided
        )
