"""Grid-accelerated Whitted ray tracer built on Taichi.

This package renders scenes of spheres, triangles, textured triangles and
triangle-mesh models with:
- A uniform grid to accelerate ray-scene queries
- Whitted-style shading (diffuse point lighting plus mirror reflection)
- Stratified anti-aliasing
- Auto-exposure tone mapping into packed 24-bit pixels

Subpackages:
    core: Rays, the integrator, tone mapping and the frame renderer
    geometry: Shape intersection routines and mesh assembly
    materials: Surface parameters and image textures
    scene: Shape table, grid, lights and the scene manager
    camera: Pinhole camera with full and preview resolutions
    preview: Pixel unpacking and PNG export

Taichi must be initialized (see config.init_taichi) before importing any
module that declares fields.
"""

__version__ = "0.1.0"
