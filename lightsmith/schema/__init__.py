"""Mesh and settings schema definitions."""
from .mesh import (
    ChannelSemantic,
    ChannelType,
    Mesh,
    VertexChannelDesc,
    VertexLayout,
)
from .settings import LightmapSettings

__all__ = [
    "ChannelSemantic",
    "ChannelType",
    "Mesh",
    "VertexChannelDesc",
    "VertexLayout",
    "LightmapSettings",
]
