"""Point lights and shadow-ray visibility.

Lights are points with an RGB color. A light contributes to a surface point
only if it lies in front of the surface and nothing blocks the segment
between them. The shadow ray starts slightly above the surface along the
normal so it does not hit the surface it leaves from.

Example:
    >>> from src.gridtracer.scene.lights import add_light
    >>> add_light((3.0, 3.0, -8.0), (1.0, 1.0, 1.0))
    0
"""

import taichi as ti
import taichi.math as tm

from src.gridtracer.core.ray import make_ray
from src.gridtracer.scene.grid import intersect_scene

# Type alias for 3D vectors
vec3 = tm.vec3

# Maximum number of lights in the scene
MAX_LIGHTS = 64

# Offset of the shadow ray origin along the surface normal
SHADOW_EPSILON = 1e-4

light_positions = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
light_colors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
num_lights = ti.field(dtype=ti.i32, shape=())


def clear_lights() -> None:
    """Remove all lights."""
    num_lights[None] = 0


def add_light(position: tuple[float, float, float], color: tuple[float, float, float]) -> int:
    """Add a point light.

    Args:
        position: Light position in world space.
        color: Light color (RGB). Values above 1 are allowed.

    Returns:
        The index of the added light.

    Raises:
        RuntimeError: If the maximum number of lights is exceeded.
        ValueError: If any color component is negative.
    """
    for i, component in enumerate(color):
        if component < 0.0:
            raise ValueError(f"Light color component {i} = {component} is negative")

    idx = num_lights[None]
    if idx >= MAX_LIGHTS:
        raise RuntimeError(f"Maximum number of lights ({MAX_LIGHTS}) exceeded")

    light_positions[idx] = vec3(position[0], position[1], position[2])
    light_colors[idx] = vec3(color[0], color[1], color[2])
    num_lights[None] = idx + 1
    return idx


def get_light_count() -> int:
    """Get the number of lights."""
    return int(num_lights[None])


@ti.func
def light_visible(light_id: ti.i32, point: vec3, normal: vec3) -> ti.i32:
    """Check whether a light illuminates a surface point.

    Args:
        light_id: Index of the light.
        point: The surface point.
        normal: Unit surface normal at the point.

    Returns:
        0 if the light is behind the surface (more than 90 degrees from the
        normal) or an occluder lies between point and light, 1 otherwise.
    """
    visible = 0
    to_light = light_positions[light_id] - point

    if tm.dot(to_light, normal) >= 0.0:
        visible = 1
        origin = point + normal * SHADOW_EPSILON
        offset = light_positions[light_id] - origin
        distance = tm.length(offset)
        if distance > 0.0:
            shadow_ray = make_ray(origin, offset / distance, 0, 1.0)
            rec = intersect_scene(shadow_ray)
            if rec.hit == 1 and rec.t < distance:
                visible = 0

    return visible
