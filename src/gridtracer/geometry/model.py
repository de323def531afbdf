"""Triangle-mesh models built from in-memory vertex and face arrays.

A model is an aggregate shape: one intersection surface over many triangles
with a precomputed bounding box used to reject rays before any triangle is
tested. Parsing mesh files is left to the caller; this module takes the
already-parsed arrays, applies a uniform scale and a translation to every
vertex, and accumulates the aggregate box from the transformed vertices.

Example:
    >>> import numpy as np
    >>> from src.gridtracer.geometry.model import build_model_mesh
    >>> verts = np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0]], dtype=float)
    >>> faces = np.array([[0, 1, 2]])
    >>> mesh = build_model_mesh(verts, faces, scale=2.0, location=(0, 0, -5))
    >>> mesh.triangles.shape
    (1, 3, 3)
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import numpy.typing as npt


@dataclass
class ModelMesh:
    """Transformed triangles of a model and their aggregate bounding box.

    Attributes:
        triangles: Array of shape (N, 3, 3): N triangles, three vertices each.
        bounding_min: Per-axis minimum over the referenced vertices.
        bounding_max: Per-axis maximum over the referenced vertices.
    """

    triangles: npt.NDArray[np.float64]
    bounding_min: tuple[float, float, float]
    bounding_max: tuple[float, float, float]

    @property
    def triangle_count(self) -> int:
        """Number of triangles in the mesh."""
        return int(self.triangles.shape[0])


def build_model_mesh(
    vertices: npt.ArrayLike,
    faces: npt.ArrayLike,
    scale: float = 1.0,
    location: tuple[float, float, float] = (0.0, 0.0, 0.0),
) -> ModelMesh:
    """Assemble a model from vertex positions and triangle indices.

    Every vertex is transformed as ``v * scale + location``. Face indices are
    zero-based.

    Args:
        vertices: Array-like of shape (V, 3).
        faces: Integer array-like of shape (F, 3).
        scale: Uniform scale applied to every vertex.
        location: Translation applied after scaling.

    Returns:
        The transformed triangles and their aggregate bounding box.

    Raises:
        ValueError: If the arrays have the wrong shape, the mesh has no
            faces, or a face references a missing vertex.
    """
    verts = np.asarray(vertices, dtype=np.float64)
    face_idx = np.asarray(faces)

    if verts.ndim != 2 or verts.shape[1] != 3:
        raise ValueError(f"vertices must have shape (V, 3), got {verts.shape}")
    if face_idx.ndim != 2 or face_idx.shape[1] != 3:
        raise ValueError(f"faces must have shape (F, 3), got {face_idx.shape}")
    if face_idx.shape[0] == 0:
        raise ValueError("A model needs at least one face")
    if not np.issubdtype(face_idx.dtype, np.integer):
        raise ValueError(f"faces must be integer indices, got dtype {face_idx.dtype}")
    if face_idx.min() < 0 or face_idx.max() >= verts.shape[0]:
        raise ValueError(
            f"Face index out of range [0, {verts.shape[0] - 1}]: "
            f"min={face_idx.min()}, max={face_idx.max()}"
        )

    transformed = verts * float(scale) + np.asarray(location, dtype=np.float64)
    triangles = transformed[face_idx]

    # Box over the vertices the faces actually use.
    used = triangles.reshape(-1, 3)
    bmin = used.min(axis=0)
    bmax = used.max(axis=0)

    return ModelMesh(
        triangles=triangles,
        bounding_min=(float(bmin[0]), float(bmin[1]), float(bmin[2])),
        bounding_max=(float(bmax[0]), float(bmax[1]), float(bmax[2])),
    )
