"""
Scene export for web renderers.
"""

from .gltf_exporter import GLTFExporter

__all__ = [
    "GLTFExporter"
]
