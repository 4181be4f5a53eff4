"""
Mesh + lightmap -> GLB exporter

Writes the mesh with its lightmap UV stream bound as a texture coordinate set
and the atlas image bound as the (unlit) base color texture, so any glTF
viewer shows the mesh the way the lightmap-only debug view does.

Layout:
- One node, one mesh, one non-indexed primitive (the mesh is de-indexed so
  every corner carries its own lightmap UV)
- POSITION, NORMAL (if present), COLOR_0 (if present), TEXCOORD_0 = lightmap
- Atlas PNG embedded in the binary chunk, nearest filtering, clamped

UV convention: v = 0 is the top row of the atlas image, which is also glTF's
convention, so UVs are written unchanged.
"""

import logging
from typing import List, Optional

import numpy as np
from pygltflib import (
    GLTF2,
    Accessor,
    Asset,
    Attributes,
    Buffer,
    BufferView,
    Image as GLTFImage,
    Material,
    Mesh as GLTFMesh,
    Node,
    PbrMetallicRoughness,
    Primitive,
    Sampler,
    Scene,
    Texture,
    TextureInfo,
)

from lightsmith.schema.mesh import ChannelSemantic, ChannelType, Mesh

logger = logging.getLogger(__name__)

ARRAY_BUFFER = 34962
COMPONENT_UNSIGNED_BYTE = 5121
COMPONENT_FLOAT = 5126
FILTER_NEAREST = 9728
WRAP_CLAMP_TO_EDGE = 33071
UNLIT_EXTENSION = "KHR_materials_unlit"


class _BinaryChunk:
    """Accumulates buffer views and accessors over one 4-byte aligned blob."""

    def __init__(self):
        self.blob = bytearray()
        self.buffer_views: List[BufferView] = []
        self.accessors: List[Accessor] = []

    def add_view(self, data: bytes, target: Optional[int] = None) -> int:
        offset = len(self.blob)
        self.blob.extend(data)
        self.blob.extend(b'\x00' * ((4 - len(self.blob) % 4) % 4))
        self.buffer_views.append(BufferView(buffer=0, byteOffset=offset, byteLength=len(data), target=target))
        return len(self.buffer_views) - 1

    def add_accessor(
        self,
        array: np.ndarray,
        component_type: int,
        accessor_type: str,
        normalized: bool = False,
        with_bounds: bool = False,
    ) -> int:
        array = np.ascontiguousarray(array)
        view = self.add_view(array.tobytes(), target=ARRAY_BUFFER)
        accessor = Accessor(
            bufferView=view,
            componentType=component_type,
            count=len(array),
            type=accessor_type,
            normalized=normalized,
        )
        if with_bounds and len(array):
            accessor.min = array.min(axis=0).tolist()
            accessor.max = array.max(axis=0).tolist()
        self.accessors.append(accessor)
        return len(self.accessors) - 1


def export_glb(mesh: Mesh, uvs: np.ndarray, atlas_png: Optional[bytes] = None, name: str = "lightmapped") -> bytes:
    """
    Export a mesh with lightmap UVs to GLB bytes.

    Args:
        mesh: Source mesh (float3 positions, 16-bit indices)
        uvs: (3 * triangle_count, 2) lightmap UVs in mesh corner order
        atlas_png: Optional PNG bytes bound as the base color texture
        name: Node/mesh name

    Returns:
        GLB file contents

    Raises:
        NoPositionChannelError: Mesh has no float3 position channel
        ValueError: UV count does not match the mesh's corner count
    """
    uvs = np.asarray(uvs, dtype=np.float32).reshape(-1, 2)
    corners = mesh.index_array().reshape(-1)
    if len(uvs) != len(corners):
        raise ValueError(f"Expected {len(corners)} lightmap UVs (3 per triangle), got {len(uvs)}")

    layout = mesh.layout
    chunk = _BinaryChunk()

    positions = layout.read_channel(mesh.vertices, layout.position_channel_index())[corners]
    attributes = Attributes(
        POSITION=chunk.add_accessor(positions.astype(np.float32), COMPONENT_FLOAT, "VEC3", with_bounds=True)
    )

    normal_index = layout.find_channel(ChannelSemantic.NORMAL)
    if normal_index is not None and layout.channels[normal_index].type == ChannelType.FLOAT_3:
        normals = layout.read_channel(mesh.vertices, normal_index)[corners]
        attributes.NORMAL = chunk.add_accessor(normals.astype(np.float32), COMPONENT_FLOAT, "VEC3")

    color_index = layout.find_channel(ChannelSemantic.COLOR)
    if color_index is not None:
        colors = layout.read_channel(mesh.vertices, color_index)[corners]
        if layout.channels[color_index].type == ChannelType.UBYTE_4:
            attributes.COLOR_0 = chunk.add_accessor(
                colors.astype(np.uint8), COMPONENT_UNSIGNED_BYTE, "VEC4", normalized=True
            )
        else:
            attributes.COLOR_0 = chunk.add_accessor(colors.astype(np.float32), COMPONENT_FLOAT, "VEC3")

    attributes.TEXCOORD_0 = chunk.add_accessor(uvs, COMPONENT_FLOAT, "VEC2")

    gltf = GLTF2(
        asset=Asset(generator="lightsmith"),
        scene=0,
        scenes=[Scene(nodes=[0])],
        nodes=[Node(mesh=0, name=name)],
        meshes=[GLTFMesh(name=name, primitives=[Primitive(attributes=attributes, material=0)])],
    )

    material = Material(name="lightmap", doubleSided=True)
    if atlas_png:
        image_view = chunk.add_view(atlas_png)
        gltf.images = [GLTFImage(mimeType="image/png", bufferView=image_view)]
        gltf.samplers = [Sampler(
            magFilter=FILTER_NEAREST,
            minFilter=FILTER_NEAREST,
            wrapS=WRAP_CLAMP_TO_EDGE,
            wrapT=WRAP_CLAMP_TO_EDGE,
        )]
        gltf.textures = [Texture(sampler=0, source=0)]
        material.pbrMetallicRoughness = PbrMetallicRoughness(
            baseColorTexture=TextureInfo(index=0, texCoord=0),
            metallicFactor=0.0,
            roughnessFactor=1.0,
        )
        material.extensions = {UNLIT_EXTENSION: {}}
        gltf.extensionsUsed = [UNLIT_EXTENSION]
    gltf.materials = [material]

    gltf.bufferViews = chunk.buffer_views
    gltf.accessors = chunk.accessors
    gltf.buffers = [Buffer(byteLength=len(chunk.blob))]
    gltf.set_binary_blob(bytes(chunk.blob))

    data = b"".join(gltf.save_to_bytes())
    logger.info(f"Exported {len(corners) // 3} triangles to GLB ({len(data)} bytes)")
    return data
