"""Preview module for rendered output.

Components:
    export: Unpacking of packed pixel buffers and PNG export

Example:
    >>> from src.gridtracer.preview import save_png
    >>> pixels = renderer.render()
    >>> save_png(pixels, renderer.width, renderer.height, "output.png")
"""

from src.gridtracer.preview.export import save_png, unpack_pixels

__all__ = [
    "save_png",
    "unpack_pixels",
]
