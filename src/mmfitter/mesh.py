from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import Optional

import numpy as np
import scipy.sparse


@dataclass
class Mesh:
    """
    Triangle mesh with optional per-vertex normals.

    Parameters:
        vertices: Vertex positions, shape (num_vertices, 3).
        faces: Triangle vertex indices, shape (num_faces, 3). May be empty for point clouds.
        vertex_normals: Per-vertex normals, shape (num_vertices, 3), or None if not available.
    """

    vertices: np.ndarray
    faces: np.ndarray
    vertex_normals: Optional[np.ndarray] = None

    def __post_init__(self):
        self.vertices = np.asarray(self.vertices, dtype=np.float64)
        self.faces = np.asarray(self.faces, dtype=np.int64).reshape(-1, 3)
        if self.vertices.ndim != 2 or self.vertices.shape[1] != 3:
            raise ValueError(
                f'vertices must have shape (num_vertices, 3), got {self.vertices.shape}'
            )
        if self.vertex_normals is not None:
            self.set_vertex_normals(self.vertex_normals)

    @property
    def num_vertices(self) -> int:
        return self.vertices.shape[0]

    def has_normals(self) -> bool:
        return self.vertex_normals is not None

    def set_vertex_normals(self, normals: np.ndarray):
        normals = np.asarray(normals, dtype=np.float64)
        if normals.shape != self.vertices.shape:
            raise ValueError(
                f'vertex_normals must have shape {self.vertices.shape}, got {normals.shape}'
            )
        self.vertex_normals = normals


def estimate_vertex_normals(vertices: np.ndarray, faces: np.ndarray) -> np.ndarray:
    """
    Estimates unit vertex normals as the area-weighted average of adjacent face normals.

    Vertices without any non-degenerate adjacent face receive a zero normal and a warning is
    emitted.

    Parameters:
        vertices: Vertex positions, shape (num_vertices, 3).
        faces: Triangle vertex indices, shape (num_faces, 3).

    Returns:
        Normals, shape (num_vertices, 3).
    """
    vertices = np.asarray(vertices, dtype=np.float64)
    faces = np.asarray(faces, dtype=np.int64).reshape(-1, 3)
    num_vertices = vertices.shape[0]
    if len(faces) == 0:
        raise ValueError('Cannot estimate vertex normals of a mesh without faces')

    v0, v1, v2 = (vertices[faces[:, i]] for i in range(3))
    # Cross product length is twice the face area, which gives the area weighting
    face_normals = np.cross(v1 - v0, v2 - v0)

    num_faces = faces.shape[0]
    incidence = scipy.sparse.csr_matrix(
        (np.ones(3 * num_faces), (faces.reshape(-1), np.repeat(np.arange(num_faces), 3))),
        shape=(num_vertices, num_faces),
    )
    normals = incidence @ face_normals

    lengths = np.linalg.norm(normals, axis=1, keepdims=True)
    degenerate = lengths[:, 0] < 1e-12
    if np.any(degenerate):
        warnings.warn(
            f'{np.count_nonzero(degenerate)} vertices have no non-degenerate adjacent face, '
            f'their normals are set to zero',
            RuntimeWarning,
            stacklevel=2,
        )
    lengths[degenerate] = 1.0
    normals = normals / lengths
    normals[degenerate] = 0.0
    return normals


def estimate_mesh_normals(mesh: Mesh) -> np.ndarray:
    return estimate_vertex_normals(mesh.vertices, mesh.faces)
