"""Kernels that write a sparse set of active points into dense coordinate vectors.

A dense vector has length ``3 * num_vertices`` and holds the x, y, z coordinates of vertex
``i`` at offsets ``3 * i``, ``3 * i + 1`` and ``3 * i + 2``. Entries of vertices that are not
active are zero. When an index occurs several times, the occurrence that comes last in the
index sequence determines the stored point.

The kernels loop in index sequence order. Numpy fancy-index assignment does not define which
of several repeated indices wins, so it is not used for these writes.

The kernels do not check bounds. Callers pass indices already validated to lie in
``[0, num_vertices)``, see :func:`mmfitter.update.check_indices`.
"""

from __future__ import annotations

import numpy as np
import numba

from .projection import project_to_normal_plane


@numba.njit(error_model='numpy', cache=True)
def linearize_vertices(vertices, indices):
    # vertices: (num_vertices, 3), indices: (k,)
    # Output: (3 * num_vertices,)
    result = np.zeros(3 * vertices.shape[0], dtype=np.float64)
    for i in range(indices.shape[0]):
        index = indices[i]
        for j in range(3):
            result[3 * index + j] = vertices[index, j]
    return result


@numba.njit(error_model='numpy', cache=True)
def linearize_points(points, indices, num_vertices):
    # points: (k, 3), indices: (k,)
    # Output: (3 * num_vertices,)
    result = np.zeros(3 * num_vertices, dtype=np.float64)
    for i in range(indices.shape[0]):
        index = indices[i]
        for j in range(3):
            result[3 * index + j] = points[i, j]
    return result


@numba.njit(error_model='numpy', cache=True)
def linearize_correspondences(
    source_vertices, target_vertices, target_normals, source_indices, target_indices,
    use_projection
):
    # source_vertices: (num_vertices, 3), target_vertices: (num_target_vertices, 3)
    # target_normals: (num_target_vertices, 3), only read if use_projection
    # source_indices, target_indices: (k,)
    # Output: two (3 * num_vertices,) vectors, both indexed by the source index
    num_vertices = source_vertices.shape[0]
    linearized_source = np.zeros(3 * num_vertices, dtype=np.float64)
    linearized_target = np.zeros(3 * num_vertices, dtype=np.float64)

    for i in range(source_indices.shape[0]):
        source_index = source_indices[i]
        target_index = target_indices[i]
        source_point = source_vertices[source_index]
        if use_projection:
            target_point = project_to_normal_plane(
                source_point, target_vertices[target_index], target_normals[target_index]
            )
        else:
            target_point = target_vertices[target_index]

        for j in range(3):
            linearized_source[3 * source_index + j] = source_point[j]
            linearized_target[3 * source_index + j] = target_point[j]

    return linearized_source, linearized_target


def landmark_indicators(indices, num_vertices):
    """Returns a boolean array of length `num_vertices` that is True exactly at `indices`."""
    result = np.zeros(num_vertices, dtype=bool)
    result[np.asarray(indices, dtype=np.int64)] = True
    return result
