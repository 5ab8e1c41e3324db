from __future__ import annotations

import numpy as np
import numba


@numba.njit(error_model='numpy', cache=True)
def project_to_normal_plane(source_point, target_point, normal):
    # Point-to-plane: moves the source along the normal onto the plane through the target
    # source_point, target_point, normal: (3,)
    # Output: (3,)
    distance = 0.0
    for j in range(3):
        distance += (target_point[j] - source_point[j]) * normal[j]

    result = np.empty(3, dtype=np.float64)
    for j in range(3):
        result[j] = source_point[j] + distance * normal[j]
    return result
