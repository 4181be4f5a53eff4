"""
Lightmap generation settings.

UNITS:
- Atlas sizes and padding are in pixels (texels)
- texels_per_unit converts mesh units into atlas pixels before flattening
  (1.0 = one mesh unit per pixel)
"""

from pydantic import BaseModel, Field, ConfigDict, model_validator


class LightmapSettings(BaseModel):
    model_config = ConfigDict(extra='forbid')

    atlas_width: int = Field(512, gt=0, description="Atlas width in pixels.")
    atlas_height: int = Field(512, gt=0, description="Atlas height in pixels.")
    padding: int = Field(2, ge=0, description="Horizontal gap between neighbouring triangles, in pixels.")
    texels_per_unit: float = Field(1.0, gt=0, description="Pixels per mesh unit.")
    grow_atlas: bool = Field(False, description="Double the atlas size on overflow instead of failing.")
    max_atlas_size: int = Field(4096, gt=0, description="Largest atlas dimension tried when growing.")
    degenerate_epsilon: float = Field(1e-6, ge=0, description="Edge length / area below which a triangle is degenerate.")
    fail_on_degenerate: bool = Field(False, description="Raise instead of placing degenerate triangles.")

    @model_validator(mode='after')
    def validate_growth(self):
        if self.grow_atlas and max(self.atlas_width, self.atlas_height) > self.max_atlas_size:
            raise ValueError("max_atlas_size must be >= the starting atlas size when grow_atlas is set")
        return self
