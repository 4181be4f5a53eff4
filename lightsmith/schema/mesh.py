"""
Mesh Schema: interleaved vertex buffers described by channel lists

VERTEX LAYOUT:
A mesh stores its vertices as one interleaved byte buffer. The channel list
describes, in order, what each vertex contains:

    | position (FLOAT_3) | normal (FLOAT_3) | color (FLOAT_3 or UBYTE_4) |
      12 bytes             12 bytes           12 or 4 bytes

- FLOAT_3 = three little-endian float32 values (12 bytes)
- UBYTE_4 = four unsigned bytes, packed RGBA (4 bytes)
- Stride = sum of channel sizes, no padding between channels

The layout is resolved once into a VertexLayout (offsets, stride and a numpy
structured dtype) so channel data is read through typed views instead of
manual offset arithmetic.

INDICES:
Triangles are stored as a flat index buffer, three indices per triangle, in
16-bit unsigned little-endian form. A mesh may declare 32-bit indices, but the
lightmap pipeline only reads 16-bit buffers and refuses the others.

De-indexed meshes (the layout produced by the OBJ importer) store one vertex
per triangle corner, so per-vertex and per-corner channels line up and the
lightmap UV stream can be bound next to them as a parallel attribute.
"""

from __future__ import annotations
from enum import Enum
from functools import cached_property
from typing import List, Optional
import numpy as np
from pydantic import BaseModel, Field, ConfigDict, model_validator

from lightsmith.exceptions import (
    MalformedMeshError,
    NoPositionChannelError,
    UnsupportedIndexWidthError,
)

MAX_16BIT_VERTICES = 0x10000

#########################
# CHANNELS
#########################

class ChannelType(str, Enum):
    FLOAT_3 = "float3"
    UBYTE_4 = "ubyte4"

class ChannelSemantic(str, Enum):
    COLOR = "color"
    NORMAL = "normal"
    POSITION = "position"
    TEXCOORD = "texcoord"

CHANNEL_SIZES = {
    ChannelType.FLOAT_3: 12,
    ChannelType.UBYTE_4: 4,
}

CHANNEL_FORMATS = {
    ChannelType.FLOAT_3: ('<f4', (3,)),
    ChannelType.UBYTE_4: ('u1', (4,)),
}

class VertexChannelDesc(BaseModel):
    model_config = ConfigDict(extra='forbid', frozen=True)

    type: ChannelType = Field(..., description="Element type stored for each vertex.")
    semantic: ChannelSemantic = Field(..., description="What the channel means.")


class VertexLayout:
    """
    Resolved interleaved vertex layout.

    Offsets and stride are computed once from the channel list. The numpy
    structured dtype gives each channel a field named ``ch<index>_<semantic>``.
    """

    def __init__(self, channels: List[VertexChannelDesc]):
        self.channels = list(channels)
        self.offsets: List[int] = []
        offset = 0
        for channel in self.channels:
            self.offsets.append(offset)
            offset += CHANNEL_SIZES[channel.type]
        self.stride = offset
        self.names = [f"ch{index}_{channel.semantic.value}" for index, channel in enumerate(self.channels)]
        self.dtype = np.dtype({
            'names': self.names,
            'formats': [CHANNEL_FORMATS[channel.type] for channel in self.channels],
            'offsets': self.offsets,
            'itemsize': self.stride,
        })

    def find_channel(self, semantic: ChannelSemantic) -> Optional[int]:
        """Index of the first channel with the given semantic, or None."""
        for index, channel in enumerate(self.channels):
            if channel.semantic == semantic:
                return index
        return None

    def position_channel_index(self) -> int:
        """
        Locate the position channel.

        Raises:
            NoPositionChannelError: No POSITION channel, or it is not FLOAT_3
        """
        index = self.find_channel(ChannelSemantic.POSITION)
        if index is None:
            raise NoPositionChannelError("Mesh has no position channel")
        if self.channels[index].type != ChannelType.FLOAT_3:
            raise NoPositionChannelError(
                f"Position channel is {self.channels[index].type.value}, expected float3"
            )
        return index

    def view(self, vertices: bytes) -> np.ndarray:
        """Structured, read-only view over an interleaved vertex buffer."""
        return np.frombuffer(vertices, dtype=self.dtype)

    def read_channel(self, vertices: bytes, index: int) -> np.ndarray:
        """Read one channel as a (vertex_count, components) array."""
        return self.view(vertices)[self.names[index]]

    def pack(self, columns: List[np.ndarray]) -> bytes:
        """Interleave per-channel arrays (one per channel, same length) into a vertex buffer."""
        count = len(columns[0]) if columns else 0
        data = np.zeros(count, dtype=self.dtype)
        for name, column in zip(self.names, columns):
            data[name] = column
        return data.tobytes()

    def __repr__(self) -> str:
        parts = ", ".join(
            f"{channel.semantic.value}:{channel.type.value}@{offset}"
            for channel, offset in zip(self.channels, self.offsets)
        )
        return f"VertexLayout({parts}; stride={self.stride})"

#########################
# MESH
#########################

class Mesh(BaseModel):
    """
    In-memory triangle mesh with an interleaved vertex buffer.

    Layout problems (buffer sizes, index ranges, duplicate position channels)
    are programmer errors and fail at construction time.
    """
    model_config = ConfigDict(extra='forbid')

    channels: List[VertexChannelDesc] = Field(..., description="Channel descriptors in vertex order.")
    vertices: bytes = Field(..., description="Interleaved vertex buffer.")
    indices: bytes = Field(..., description="Triangle index buffer (little-endian).")
    index_size_32_bit: bool = Field(False, description="True when indices are 32-bit.")

    @model_validator(mode='after')
    def validate_buffers(self):
        if not self.channels:
            raise MalformedMeshError("Mesh must define at least one channel")
        positions = [c for c in self.channels if c.semantic == ChannelSemantic.POSITION]
        if len(positions) > 1:
            raise MalformedMeshError("Mesh defines more than one position channel")

        stride = self.layout.stride
        if len(self.vertices) % stride != 0:
            raise MalformedMeshError(
                f"Vertex buffer size {len(self.vertices)} is not a multiple of stride {stride}"
            )

        index_size = 4 if self.index_size_32_bit else 2
        if len(self.indices) % index_size != 0:
            raise MalformedMeshError(
                f"Index buffer size {len(self.indices)} is not a multiple of {index_size}"
            )
        if (len(self.indices) // index_size) % 3 != 0:
            raise MalformedMeshError("Index count must be a multiple of 3 (triangles only)")

        if not self.index_size_32_bit and len(self.indices):
            highest = int(np.frombuffer(self.indices, dtype='<u2').max())
            if highest >= self.vertex_count:
                raise MalformedMeshError(
                    f"Index {highest} out of range for {self.vertex_count} vertices"
                )
        return self

    @cached_property
    def layout(self) -> VertexLayout:
        return VertexLayout(self.channels)

    @property
    def vertex_count(self) -> int:
        return len(self.vertices) // self.layout.stride

    @property
    def index_count(self) -> int:
        return len(self.indices) // (4 if self.index_size_32_bit else 2)

    @property
    def triangle_count(self) -> int:
        return self.index_count // 3

    def index_array(self) -> np.ndarray:
        """
        Indices as a (triangle_count, 3) array.

        Raises:
            UnsupportedIndexWidthError: The mesh declares 32-bit indices
        """
        if self.index_size_32_bit:
            raise UnsupportedIndexWidthError(
                "Mesh uses 32-bit indices; lightmap generation only supports 16-bit index buffers"
            )
        return np.frombuffer(self.indices, dtype='<u2').reshape(-1, 3)

    def positions(self) -> np.ndarray:
        """Vertex positions as a float64 (vertex_count, 3) array."""
        index = self.layout.position_channel_index()
        return self.layout.read_channel(self.vertices, index).astype(np.float64)

    def channel(self, semantic: ChannelSemantic) -> Optional[np.ndarray]:
        """Data of the first channel with this semantic, or None."""
        index = self.layout.find_channel(semantic)
        if index is None:
            return None
        return self.layout.read_channel(self.vertices, index)

    @classmethod
    def from_arrays(
        cls,
        positions,
        normals=None,
        colors=None,
        indices=None,
    ) -> "Mesh":
        """
        Build a mesh from per-vertex arrays.

        Args:
            positions: (N, 3) vertex positions
            normals: Optional (N, 3) normals
            colors: Optional (N, 3) float colors or (N, 4) uint8 RGBA
            indices: Optional (M, 3) or flat triangle indices. When omitted,
                every three consecutive vertices form a triangle.

        Returns:
            Mesh with position[, normal][, color] channels and 16-bit indices

        Raises:
            UnsupportedIndexWidthError: More vertices than 16-bit indices can address
        """
        positions = np.asarray(positions, dtype=np.float32).reshape(-1, 3)
        vertex_count = len(positions)
        if vertex_count > MAX_16BIT_VERTICES:
            raise UnsupportedIndexWidthError(
                f"{vertex_count} vertices exceed the 16-bit index space ({MAX_16BIT_VERTICES})"
            )

        channels = [VertexChannelDesc(type=ChannelType.FLOAT_3, semantic=ChannelSemantic.POSITION)]
        columns = [positions]
        if normals is not None:
            channels.append(VertexChannelDesc(type=ChannelType.FLOAT_3, semantic=ChannelSemantic.NORMAL))
            columns.append(np.asarray(normals, dtype=np.float32).reshape(-1, 3))
        if colors is not None:
            colors = np.asarray(colors)
            if colors.ndim == 2 and colors.shape[1] == 4:
                channels.append(VertexChannelDesc(type=ChannelType.UBYTE_4, semantic=ChannelSemantic.COLOR))
                columns.append(colors.astype(np.uint8))
            else:
                channels.append(VertexChannelDesc(type=ChannelType.FLOAT_3, semantic=ChannelSemantic.COLOR))
                columns.append(colors.astype(np.float32).reshape(-1, 3))

        if indices is None:
            indices = np.arange(vertex_count)
        index_data = np.asarray(indices, dtype='<u2').reshape(-1)

        layout = VertexLayout(channels)
        return cls(
            channels=channels,
            vertices=layout.pack(columns),
            indices=index_data.tobytes(),
        )
