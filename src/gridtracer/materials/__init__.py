"""Materials module: surface parameters and textures.

Components:
    surface: Base color with lambert, specular and refraction weights
    texture: Image textures with nearest-texel lookup
"""

from .surface import MAX_SURFACES, add_surface, clear_surfaces, get_surface, get_surface_count
from .texture import (
    MAX_TEXELS,
    MAX_TEXTURES,
    add_texture,
    clear_textures,
    get_texture_count,
    sample_texture,
)

__all__ = [
    "add_surface",
    "clear_surfaces",
    "get_surface",
    "get_surface_count",
    "MAX_SURFACES",
    "add_texture",
    "clear_textures",
    "get_texture_count",
    "sample_texture",
    "MAX_TEXTURES",
    "MAX_TEXELS",
]
