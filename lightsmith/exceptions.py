"""Custom exceptions for lightmap generation"""


class LightmapError(Exception):
    """Base exception for lightmap errors"""
    pass


class NoPositionChannelError(LightmapError):
    """Mesh has no 3-float position channel (lightmap is skipped)"""
    pass


class DegenerateTriangleError(LightmapError):
    """Triangle with near-zero area (only raised in strict mode)"""

    def __init__(self, message: str, triangle_index: int):
        super().__init__(message)
        self.triangle_index = triangle_index


class AtlasOverflowError(LightmapError):
    """A triangle cannot be placed inside the atlas, even on a fresh shelf"""

    def __init__(self, message: str, triangle_index: int, required, available):
        super().__init__(message)
        self.triangle_index = triangle_index
        self.required = required
        self.available = available


class UnsupportedIndexWidthError(LightmapError):
    """Index buffer is not 16-bit"""
    pass


class MalformedMeshError(LightmapError):
    """Channel layout or buffers are inconsistent"""
    pass
