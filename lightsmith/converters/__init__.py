"""Mesh import/export for Lightsmith"""

from lightsmith.converters.obj_importer import import_obj, build_transform
from lightsmith.converters.gltf_exporter import export_glb

__all__ = [
    "import_obj",
    "build_transform",
    "export_glb",
]
