"""Surface material registry.

Every shape references one surface, which holds the parameters of the
Whitted-style shading model:

    color = base_color * diffuse * lambert + trace(mirror) * specular

Attributes per surface:
    color: Base (diffuse) color, RGB.
    lambert: Weight of the diffuse term in [0, 1]. Zero skips light
        sampling entirely.
    specular: Weight of the mirror reflection term in [0, 1]. Zero skips the
        reflected ray.
    refraction: Weight of a transmitted term in [0, 1]. Stored for
        scene descriptions that carry it; shading does not use it yet.
    ior: Index of refraction (>= 1). Stored alongside refraction, unused.

Example:
    >>> from src.gridtracer.materials.surface import add_surface
    >>> mirror = add_surface((1.0, 1.0, 1.0), lambert=0.0, specular=1.0)
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors
vec3 = tm.vec3

# Maximum number of surfaces in the scene
MAX_SURFACES = 1024

surface_colors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SURFACES)
surface_lamberts = ti.field(dtype=ti.f32, shape=MAX_SURFACES)
surface_speculars = ti.field(dtype=ti.f32, shape=MAX_SURFACES)
surface_refractions = ti.field(dtype=ti.f32, shape=MAX_SURFACES)
surface_iors = ti.field(dtype=ti.f32, shape=MAX_SURFACES)
num_surfaces = ti.field(dtype=ti.i32, shape=())


def clear_surfaces() -> None:
    """Clear all surfaces.

    Resets the surface count to zero. Existing data in the fields will be
    overwritten when new surfaces are added.
    """
    num_surfaces[None] = 0


def _check_weight(name: str, value: float) -> None:
    if value < 0.0 or value > 1.0:
        raise ValueError(f"{name} weight {value} is outside [0, 1]")


def add_surface(
    color: tuple[float, float, float],
    lambert: float = 1.0,
    specular: float = 0.0,
    refraction: float = 0.0,
    ior: float = 1.0,
) -> int:
    """Add a surface to the registry.

    Args:
        color: Base color as (R, G, B). Components must be non-negative.
        lambert: Diffuse weight in [0, 1].
        specular: Mirror reflection weight in [0, 1].
        refraction: Transmission weight in [0, 1] (stored, not shaded).
        ior: Index of refraction, at least 1.0 (stored, not shaded).

    Returns:
        The index of the added surface.

    Raises:
        RuntimeError: If the maximum number of surfaces is exceeded.
        ValueError: If any parameter is out of range.
    """
    for i, component in enumerate(color):
        if component < 0.0:
            raise ValueError(f"Color component {i} = {component} is negative")
    _check_weight("lambert", lambert)
    _check_weight("specular", specular)
    _check_weight("refraction", refraction)
    if ior < 1.0:
        raise ValueError(f"Index of refraction must be >= 1.0, got {ior}")

    idx = num_surfaces[None]
    if idx >= MAX_SURFACES:
        raise RuntimeError(f"Maximum number of surfaces ({MAX_SURFACES}) exceeded")

    surface_colors[idx] = vec3(color[0], color[1], color[2])
    surface_lamberts[idx] = lambert
    surface_speculars[idx] = specular
    surface_refractions[idx] = refraction
    surface_iors[idx] = ior
    num_surfaces[None] = idx + 1
    return idx


def get_surface_count() -> int:
    """Get the number of surfaces in the registry."""
    return int(num_surfaces[None])


@ti.func
def get_surface(surface_id: ti.i32):
    """Look up the shading parameters of a surface.

    Args:
        surface_id: Index of the surface in the registry.

    Returns:
        A tuple (color, lambert, specular).
    """
    return surface_colors[surface_id], surface_lamberts[surface_id], surface_speculars[surface_id]
