"""Precompile all Numba functions to avoid JIT overhead on first call.

Run with: python -m mmfitter.precompile
"""

from __future__ import annotations

import numpy as np


def precompile():
    """Precompile all Numba functions to avoid JIT overhead on first call."""
    from . import linearize, projection

    print('Precompiling mmfitter Numba functions...')

    num_vertices = 8
    vertices = np.random.randn(num_vertices, 3)
    normals = np.random.randn(num_vertices, 3)
    normals /= np.linalg.norm(normals, axis=1, keepdims=True)
    indices = np.array([1, 3, 3], dtype=np.int64)

    projection.project_to_normal_plane(vertices[0], vertices[1], normals[1])

    linearize.linearize_vertices(vertices, indices)
    linearize.linearize_points(vertices[: len(indices)], indices, num_vertices)

    # Both projection branches, and the empty normals passed when projection is off
    linearize.linearize_correspondences(vertices, vertices, normals, indices, indices, True)
    linearize.linearize_correspondences(
        vertices, vertices, np.zeros((0, 3)), indices, indices, False
    )

    print('Precompilation complete.')


if __name__ == '__main__':
    precompile()
