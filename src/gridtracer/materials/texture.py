"""Image texture storage and nearest-texel sampling.

All textures share one flat texel field; each texture records its offset
into that field and its width and height. Texel rows are stored top to
bottom, so texture coordinate t = 1 addresses the first row of the image.

Decoding image files is left to the caller, which passes the decoded pixels
as a NumPy array.

Example:
    >>> import numpy as np
    >>> from src.gridtracer.materials.texture import add_texture
    >>> checker = np.zeros((2, 2, 3), dtype=np.uint8)
    >>> checker[0, 0] = checker[1, 1] = 255
    >>> tex_id = add_texture(checker)
"""

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

# Type aliases
vec2 = tm.vec2
vec3 = tm.vec3

# Maximum number of textures and total texels across all textures
MAX_TEXTURES = 64
MAX_TEXELS = 1 << 21

texels = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TEXELS)
texture_offsets = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
texture_widths = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
texture_heights = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
num_textures = ti.field(dtype=ti.i32, shape=())
num_texels = ti.field(dtype=ti.i32, shape=())


def clear_textures() -> None:
    """Clear all textures."""
    num_textures[None] = 0
    num_texels[None] = 0


@ti.kernel
def _upload_texels(offset: ti.i32, count: ti.i32, data: ti.types.ndarray()):
    for i in range(count):
        texels[offset + i] = vec3(data[i, 0], data[i, 1], data[i, 2])


def _normalize_image(image: npt.ArrayLike) -> npt.NDArray[np.float32]:
    """Convert an image to float32 RGB in [0, 1]."""
    arr = np.asarray(image)
    if arr.ndim != 3 or arr.shape[2] not in (3, 4):
        raise ValueError(f"Texture must have shape (H, W, 3) or (H, W, 4), got {arr.shape}")
    if arr.shape[0] == 0 or arr.shape[1] == 0:
        raise ValueError("Texture must not be empty")

    rgb = arr[:, :, :3]
    if np.issubdtype(rgb.dtype, np.integer):
        return rgb.astype(np.float32) / 255.0
    return rgb.astype(np.float32)


def add_texture(image: npt.ArrayLike) -> int:
    """Add a texture image.

    Args:
        image: Array of shape (H, W, 3) or (H, W, 4). Integer arrays are
            treated as 8-bit and scaled to [0, 1]; float arrays are used
            as-is. An alpha channel is dropped.

    Returns:
        The index of the added texture.

    Raises:
        RuntimeError: If the texture or texel capacity is exceeded.
        ValueError: If the image has an unsupported shape.
    """
    rgb = _normalize_image(image)
    height, width = rgb.shape[0], rgb.shape[1]

    idx = num_textures[None]
    if idx >= MAX_TEXTURES:
        raise RuntimeError(f"Maximum number of textures ({MAX_TEXTURES}) exceeded")

    offset = num_texels[None]
    count = width * height
    if offset + count > MAX_TEXELS:
        raise RuntimeError(
            f"Texture of {width}x{height} exceeds remaining texel capacity "
            f"({MAX_TEXELS - offset} of {MAX_TEXELS})"
        )

    _upload_texels(offset, count, np.ascontiguousarray(rgb.reshape(count, 3)))

    texture_offsets[idx] = offset
    texture_widths[idx] = width
    texture_heights[idx] = height
    num_texels[None] = offset + count
    num_textures[None] = idx + 1
    return idx


def get_texture_count() -> int:
    """Get the number of textures."""
    return int(num_textures[None])


@ti.func
def sample_texture(texture_id: ti.i32, uv: vec2) -> vec3:
    """Nearest-texel lookup.

    Args:
        texture_id: Index of the texture.
        uv: Texture coordinate; values outside [0, 1] clamp to the border.

    Returns:
        The RGB color of the texel containing uv.
    """
    width = texture_widths[texture_id]
    height = texture_heights[texture_id]

    s = ti.min(ti.max(uv.x, 0.0), 1.0)
    t = ti.min(ti.max(uv.y, 0.0), 1.0)

    col = ti.cast(s * ti.cast(width, ti.f32), ti.i32)
    row = ti.cast((1.0 - t) * ti.cast(height, ti.f32), ti.i32)
    col = ti.max(0, ti.min(width - 1, col))
    row = ti.max(0, ti.min(height - 1, row))

    return texels[texture_offsets[texture_id] + row * width + col]
