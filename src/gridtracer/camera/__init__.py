"""Camera module for view and ray generation.

Components:
    pinhole: Pinhole (perspective) camera with full and preview resolutions

Pixel coordinates run left to right and top to bottom: pixel (i, j) covers
[i, i + 1) x [j, j + 1) and row 0 is the top of the image.
"""

from .pinhole import (
    CameraMode,
    PinholeCamera,
    camera_avatar_corners,
    camera_basis,
    generate_camera_ray,
    get_camera_info,
    get_camera_mode,
    get_camera_ray,
    get_ray_stratified,
    get_resolution,
    set_camera_mode,
    setup_camera,
)

__all__ = [
    "CameraMode",
    "PinholeCamera",
    "setup_camera",
    "camera_basis",
    "set_camera_mode",
    "get_camera_mode",
    "get_resolution",
    "get_camera_ray",
    "get_ray_stratified",
    "generate_camera_ray",
    "camera_avatar_corners",
    "get_camera_info",
]
