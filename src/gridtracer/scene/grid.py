"""Uniform grid acceleration structure.

The grid partitions the scene's bounding box into nx * ny * nz equally
sized cells. Each cell lists the shapes whose bounding boxes overlap it; a
shape spanning several cells is listed (by id) in every one of them and its
geometry is never split.

Cell lists are stored in compressed form for GPU-friendly access:

    cell_start[c]  first entry of cell c in cell_items
    cell_count[c]  number of entries of cell c
    cell_items[i]  shape id

with the flat cell index c = (iz * ny + iy) * nx + ix.

Traversal steps a ray through the cells it crosses in order of distance
(Amanatides & Woo). Per axis it tracks the parametric distance to the next
cell boundary and the distance needed to cross a whole cell. Testing stops
as soon as the nearest hit found so far lies before the next boundary: any
shape only registered in farther cells cannot be hit before that boundary.

Example:
    >>> import numpy as np
    >>> from src.gridtracer.scene.grid import GridConfig, build_grid
    >>> mins = np.array([[-1.0, -1.0, -11.0]])
    >>> maxs = np.array([[1.0, 1.0, -9.0]])
    >>> info = build_grid(mins, maxs, GridConfig(cells=(4, 4, 4)))
    >>> info.resolution
    (4, 4, 4)
"""

import logging
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.gridtracer.core.ray import T_FAR, Ray, intersect_box
from src.gridtracer.scene.intersection import (
    IntersectionRecord,
    intersect_objects,
    intersect_shape,
    make_miss_record,
)

logger = logging.getLogger(__name__)

# Type alias for 3D vectors
vec3 = tm.vec3

# Capacity of the preallocated cell storage
MAX_CELLS_PER_AXIS = 64
MAX_CELLS = MAX_CELLS_PER_AXIS**3
MAX_CELL_ENTRIES = 1 << 22

# Every side of the scene box is pushed out by this much so that flat scenes
# still get cells of non-zero size and boundary points fall inside the grid.
GRID_PADDING = 1e-3

# Shape boxes are grown by this fraction of a cell when assigning cells, so a
# shape touching a cell plane is listed on both sides of it.
CELL_EPSILON = 1e-3

grid_min = ti.Vector.field(3, dtype=ti.f32, shape=())
grid_max = ti.Vector.field(3, dtype=ti.f32, shape=())
grid_cell_size = ti.Vector.field(3, dtype=ti.f32, shape=())
grid_resolution = ti.Vector.field(3, dtype=ti.i32, shape=())
grid_ready = ti.field(dtype=ti.i32, shape=())

cell_start = ti.field(dtype=ti.i32, shape=MAX_CELLS)
cell_count = ti.field(dtype=ti.i32, shape=MAX_CELLS)
cell_items = ti.field(dtype=ti.i32, shape=MAX_CELL_ENTRIES)


@dataclass
class GridConfig:
    """Configuration of the grid resolution.

    Attributes:
        cells: Explicit cell counts (nx, ny, nz). Counts below 1 are clamped
            to 1. When None, the counts are derived from density.
        density: Target average number of shapes per cell used to derive
            the counts when cells is None.
    """

    cells: tuple[int, int, int] | None = None
    density: float = 2.0

    def __post_init__(self) -> None:
        if self.density <= 0.0:
            raise ValueError(f"Grid density must be positive, got {self.density}")
        if self.cells is not None and len(self.cells) != 3:
            raise ValueError(f"Grid cells must have three entries, got {self.cells}")


@dataclass
class GridInfo:
    """Host-side description of a built grid.

    Attributes:
        bounding_min: Minimum corner of the (padded) grid box.
        bounding_max: Maximum corner of the (padded) grid box.
        resolution: Cell counts (nx, ny, nz).
        cell_size: Size of one cell along each axis.
        cell_start: First entry of each cell in cell_items.
        cell_count: Number of shapes listed in each cell.
        cell_items: Shape ids, grouped by cell.
    """

    bounding_min: tuple[float, float, float]
    bounding_max: tuple[float, float, float]
    resolution: tuple[int, int, int]
    cell_size: tuple[float, float, float]
    cell_start: npt.NDArray[np.int32]
    cell_count: npt.NDArray[np.int32]
    cell_items: npt.NDArray[np.int32]

    @property
    def entry_count(self) -> int:
        """Total number of (cell, shape) entries."""
        return int(self.cell_items.shape[0])

    def shapes_in_cell(self, ix: int, iy: int, iz: int) -> list[int]:
        """List the shape ids registered in one cell."""
        nx, ny, _ = self.resolution
        flat = (iz * ny + iy) * nx + ix
        start = int(self.cell_start[flat])
        return [int(s) for s in self.cell_items[start : start + int(self.cell_count[flat])]]


def compute_resolution(
    extent: npt.NDArray[np.float64],
    num_shapes: int,
    config: GridConfig,
) -> tuple[int, int, int]:
    """Choose the cell counts for a grid.

    Explicit counts are clamped into [1, MAX_CELLS_PER_AXIS]. Derived counts
    target config.density shapes per cell: with N shapes in volume V every
    axis gets round(extent * cbrt(density * N / V)) cells.

    Args:
        extent: Size of the grid box along each axis (all positive).
        num_shapes: Number of shapes the grid will hold.
        config: The grid configuration.

    Returns:
        The cell counts (nx, ny, nz).
    """
    if config.cells is not None:
        requested = np.asarray(config.cells, dtype=np.int64)
        if np.any(requested < 1):
            logger.warning("Grid cell counts %s clamped to at least 1", tuple(config.cells))
        counts = requested
    else:
        volume = float(np.prod(extent))
        factor = (config.density * max(num_shapes, 1) / volume) ** (1.0 / 3.0)
        counts = np.rint(extent * factor).astype(np.int64)

    counts = np.clip(counts, 1, MAX_CELLS_PER_AXIS)
    return int(counts[0]), int(counts[1]), int(counts[2])


def build_grid(
    bounds_min: npt.ArrayLike,
    bounds_max: npt.ArrayLike,
    config: GridConfig | None = None,
) -> GridInfo:
    """Build the cell lists of a grid from shape bounding boxes.

    Shape i is the i-th row of bounds_min/bounds_max and is stored under
    shape id i. The result is host-side only; see upload_grid.

    Args:
        bounds_min: Array of shape (N, 3), minimum corners.
        bounds_max: Array of shape (N, 3), maximum corners.
        config: Grid resolution settings. Defaults to GridConfig().

    Returns:
        The built grid.

    Raises:
        RuntimeError: If the number of cell entries exceeds capacity.
    """
    if config is None:
        config = GridConfig()

    bmin = np.asarray(bounds_min, dtype=np.float64).reshape(-1, 3)
    bmax = np.asarray(bounds_max, dtype=np.float64).reshape(-1, 3)
    num_shapes = bmin.shape[0]

    if num_shapes == 0:
        lo = np.zeros(3)
        hi = np.zeros(3)
    else:
        lo = bmin.min(axis=0)
        hi = bmax.max(axis=0)
    lo = lo - GRID_PADDING
    hi = hi + GRID_PADDING
    extent = hi - lo

    resolution = compute_resolution(extent, num_shapes, config)
    res = np.asarray(resolution, dtype=np.int64)
    cell_size = extent / res
    total_cells = int(np.prod(res))

    cells_per_shape = []
    for s in range(num_shapes):
        first = np.floor((bmin[s] - lo) / cell_size - CELL_EPSILON).astype(np.int64)
        last = np.floor((bmax[s] - lo) / cell_size + CELL_EPSILON).astype(np.int64)
        first = np.clip(first, 0, res - 1)
        last = np.clip(last, 0, res - 1)
        xs = np.arange(first[0], last[0] + 1)
        ys = np.arange(first[1], last[1] + 1)
        zs = np.arange(first[2], last[2] + 1)
        flat = (zs[:, None, None] * res[1] + ys[None, :, None]) * res[0] + xs[None, None, :]
        cells_per_shape.append(flat.ravel())

    if cells_per_shape:
        all_cells = np.concatenate(cells_per_shape)
        all_shapes = np.concatenate(
            [np.full(c.shape[0], s, dtype=np.int64) for s, c in enumerate(cells_per_shape)]
        )
    else:
        all_cells = np.zeros(0, dtype=np.int64)
        all_shapes = np.zeros(0, dtype=np.int64)

    if all_cells.shape[0] > MAX_CELL_ENTRIES:
        raise RuntimeError(
            f"Grid needs {all_cells.shape[0]} cell entries, more than the "
            f"maximum ({MAX_CELL_ENTRIES}); lower the resolution"
        )

    # Stable sort keeps shapes in id order inside each cell.
    order = np.argsort(all_cells, kind="stable")
    items = all_shapes[order].astype(np.int32)
    counts = np.bincount(all_cells, minlength=total_cells).astype(np.int32)
    starts = (np.cumsum(counts) - counts).astype(np.int32)

    logger.debug(
        "Built %dx%dx%d grid over %d shapes (%d entries)",
        resolution[0],
        resolution[1],
        resolution[2],
        num_shapes,
        items.shape[0],
    )

    return GridInfo(
        bounding_min=(float(lo[0]), float(lo[1]), float(lo[2])),
        bounding_max=(float(hi[0]), float(hi[1]), float(hi[2])),
        resolution=resolution,
        cell_size=(float(cell_size[0]), float(cell_size[1]), float(cell_size[2])),
        cell_start=starts,
        cell_count=counts,
        cell_items=items,
    )


@ti.kernel
def _upload_cells(
    total_cells: ti.i32,
    total_items: ti.i32,
    starts: ti.types.ndarray(),
    counts: ti.types.ndarray(),
    items: ti.types.ndarray(),
):
    for c in range(total_cells):
        cell_start[c] = starts[c]
        cell_count[c] = counts[c]
    for i in range(total_items):
        cell_items[i] = items[i]


def upload_grid(info: GridInfo) -> None:
    """Copy a built grid into the Taichi fields used by traversal."""
    grid_min[None] = info.bounding_min
    grid_max[None] = info.bounding_max
    grid_cell_size[None] = info.cell_size
    grid_resolution[None] = info.resolution

    total_cells = int(info.cell_count.shape[0])
    total_items = info.entry_count
    # Zero-length ndarrays are not accepted as kernel arguments.
    items = info.cell_items if total_items > 0 else np.zeros(1, dtype=np.int32)
    _upload_cells(
        total_cells,
        total_items,
        np.ascontiguousarray(info.cell_start),
        np.ascontiguousarray(info.cell_count),
        np.ascontiguousarray(items),
    )
    grid_ready[None] = 1


def clear_grid() -> None:
    """Mark the grid as not built. Queries fall back to a linear scan."""
    grid_ready[None] = 0


def is_grid_ready() -> bool:
    """Check whether a grid has been uploaded."""
    return bool(grid_ready[None])


# =============================================================================
# Traversal (Taichi functions)
# =============================================================================


@ti.func
def _test_cell(ray: Ray, flat: ti.i32, best: IntersectionRecord) -> IntersectionRecord:
    closest = best
    start = cell_start[flat]
    for n in range(cell_count[flat]):
        rec = intersect_shape(ray, cell_items[start + n])
        if rec.hit == 1 and rec.t < closest.t:
            closest = rec
    return closest


@ti.func
def intersect_grid(ray: Ray) -> IntersectionRecord:
    """Nearest hit of a ray through the grid.

    Args:
        ray: The ray to trace.

    Returns:
        The nearest hit with t >= 0, or a miss record when the ray misses
        the grid box or every shape along its path.
    """
    best = make_miss_record()
    box_hit, t_enter, _ = intersect_box(ray, grid_min[None], grid_max[None])

    if box_hit == 1:
        res = grid_resolution[None]
        gmin = grid_min[None]
        size = grid_cell_size[None]
        t_start = ti.max(t_enter, 0.0)
        entry = ray.origin + t_start * ray.direction

        cell = ti.Vector([0, 0, 0])
        step = ti.Vector([0, 0, 0])
        exit_index = ti.Vector([-1, -1, -1])
        next_t = vec3(T_FAR, T_FAR, T_FAR)
        delta_t = vec3(T_FAR, T_FAR, T_FAR)

        for k in ti.static(range(3)):
            c = ti.cast(ti.floor((entry[k] - gmin[k]) / size[k]), ti.i32)
            cell[k] = ti.max(0, ti.min(res[k] - 1, c))
            d = ray.direction[k]
            if d > 0.0:
                step[k] = 1
                exit_index[k] = res[k]
                boundary = gmin[k] + ti.cast(cell[k] + 1, ti.f32) * size[k]
                next_t[k] = (boundary - ray.origin[k]) / d
                delta_t[k] = size[k] / d
            elif d < 0.0:
                step[k] = -1
                exit_index[k] = -1
                boundary = gmin[k] + ti.cast(cell[k], ti.f32) * size[k]
                next_t[k] = (boundary - ray.origin[k]) / d
                delta_t[k] = -size[k] / d

        # A ray crosses at most nx + ny + nz cells.
        max_steps = res[0] + res[1] + res[2] + 1
        steps = 0
        active = 1
        while active == 1:
            flat = (cell[2] * res[1] + cell[1]) * res[0] + cell[0]
            best = _test_cell(ray, flat, best)
            steps += 1

            axis = 2
            if next_t[0] < next_t[1]:
                if next_t[0] < next_t[2]:
                    axis = 0
            elif next_t[1] < next_t[2]:
                axis = 1

            for k in ti.static(range(3)):
                if axis == k:
                    if best.hit == 1 and best.t < next_t[k]:
                        active = 0
                    elif step[k] == 0 or steps >= max_steps:
                        active = 0
                    else:
                        cell[k] += step[k]
                        if cell[k] == exit_index[k]:
                            active = 0
                        else:
                            next_t[k] += delta_t[k]

    return best


@ti.func
def intersect_scene(ray: Ray) -> IntersectionRecord:
    """Nearest hit through the grid, or a linear scan if no grid is built."""
    result = make_miss_record()
    if grid_ready[None] == 1:
        result = intersect_grid(ray)
    else:
        result = intersect_objects(ray)
    return result


def get_grid_info() -> dict[str, tuple]:
    """Get the uploaded grid parameters for debugging."""
    lo = grid_min[None]
    hi = grid_max[None]
    size = grid_cell_size[None]
    res = grid_resolution[None]
    return {
        "bounding_min": (float(lo[0]), float(lo[1]), float(lo[2])),
        "bounding_max": (float(hi[0]), float(hi[1]), float(hi[2])),
        "cell_size": (float(size[0]), float(size[1]), float(size[2])),
        "resolution": (int(res[0]), int(res[1]), int(res[2])),
    }
