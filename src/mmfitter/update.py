from __future__ import annotations

import enum
from typing import Callable

import numpy as np

from .energy import (
    DATA_TERM,
    LANDMARK_TERM,
    EnergyData,
    EnergyDerivedData,
    EnergySettings,
    normalize_weight,
)
from .linearize import (
    landmark_indicators,
    linearize_correspondences,
    linearize_points,
    linearize_vertices,
)
from .mesh import Mesh, estimate_mesh_normals


class Change(enum.Enum):
    """Kinds of input changes, each selecting one refresh of the derived data."""

    SOURCE_NORMALS = 'source_normals'
    PARAMETERS = 'parameters'
    CORRESPONDENCES = 'correspondences'
    LANDMARKS = 'landmarks'


class EnergyDerivedDataUpdate:
    """
    Recomputes the parts of :class:`mmfitter.energy.EnergyDerivedData` that depend on a changed
    input.

    Each refresh reads the inputs, writes only the derived fields it is documented to write and
    leaves the rest untouched. All inputs are validated before anything is written, so a
    refresh that raises leaves the derived data as it was.

    The three aggregates are borrowed, not copied: the optimizer changes `energy_data` and
    `settings` in place and then calls the refresh that matches the change.

    Parameters:
        energy_data: Inputs of the energy.
        derived_data: Derived data to keep up to date.
        settings: Term weights and the projection switch.
        normal_estimator: Function computing vertex normals of a mesh.
    """

    def __init__(
        self,
        energy_data: EnergyData,
        derived_data: EnergyDerivedData,
        settings: EnergySettings,
        normal_estimator: Callable[[Mesh], np.ndarray] = estimate_mesh_normals,
    ):
        self.energy_data = energy_data
        self.derived_data = derived_data
        self.settings = settings
        self.normal_estimator = normal_estimator
        self._refreshers = {
            Change.SOURCE_NORMALS: self.refresh_source_normals,
            Change.PARAMETERS: self.refresh_for_parameter_change,
            Change.CORRESPONDENCES: self.refresh_for_correspondence_change,
            Change.LANDMARKS: self.refresh_for_landmark_change,
        }

    def update(self, *changes: Change):
        """Runs the refresh of each given change, in the given order."""
        for change in changes:
            self._refreshers[Change(change)]()

    def initialize(self):
        """Computes all derived data, for the first iteration of a fitting session."""
        self.update(
            Change.PARAMETERS, Change.SOURCE_NORMALS, Change.CORRESPONDENCES, Change.LANDMARKS
        )

    def refresh_source_normals(self):
        """Recomputes the vertex normals of the source mesh from its current vertices."""
        source = self._require_source()
        source.set_vertex_normals(self.normal_estimator(source))

    def refresh_for_parameter_change(self):
        """
        Rebuilds the source mesh from the current model weights and re-linearizes the source
        points of the current correspondences and landmarks against the new vertices.

        The new mesh has no normals; call :meth:`refresh_source_normals` if they are needed.
        """
        data = self.energy_data
        source = data.model.reconstruct(data.speaker_weights, data.phoneme_weights)
        num_vertices = source.num_vertices
        source_indices = check_indices(data.source_indices, num_vertices, 'source_indices')
        landmark_indices, _ = landmark_arrays(data.landmarks, num_vertices)

        vertices = np.ascontiguousarray(source.vertices)
        linearized_source = linearize_vertices(vertices, source_indices)
        linearized_landmark_source = linearize_vertices(vertices, landmark_indices)

        self.derived_data.source = source
        self.derived_data.linearized_source = linearized_source
        self.derived_data.linearized_landmark_source = linearized_landmark_source

    def refresh_for_correspondence_change(self):
        """
        Re-linearizes source and target points of the current correspondences and normalizes
        the data term weight by the number of correspondences.

        If projection is enabled and the target mesh has normals, each target point is replaced
        by the projection of the source point onto the normal plane of the target vertex.
        """
        data = self.energy_data
        source = self._require_source()
        target = data.target
        if len(data.source_indices) != len(data.target_indices):
            raise ValueError(
                f'Got {len(data.source_indices)} source indices but '
                f'{len(data.target_indices)} target indices'
            )
        source_indices = check_indices(data.source_indices, source.num_vertices, 'source_indices')
        target_indices = check_indices(
            data.target_indices, len(target.vertices), 'target_indices'
        )
        weight = normalize_weight(self.settings.weight(DATA_TERM), len(source_indices))

        use_projection = bool(self.settings.use_projection and target.has_normals())
        if use_projection:
            target_normals = np.ascontiguousarray(target.vertex_normals, dtype=np.float64)
        else:
            target_normals = np.zeros((0, 3), np.float64)

        linearized_source, linearized_target = linearize_correspondences(
            np.ascontiguousarray(source.vertices),
            np.ascontiguousarray(target.vertices, dtype=np.float64),
            target_normals,
            source_indices,
            target_indices,
            use_projection,
        )

        self.derived_data.linearized_source = linearized_source
        self.derived_data.linearized_target = linearized_target
        self.derived_data.weights[DATA_TERM] = weight

    def refresh_for_landmark_change(self):
        """
        Rebuilds the landmark indicators, re-linearizes source points and target positions of
        the current landmarks and normalizes the landmark term weight by the number of
        landmarks.
        """
        data = self.energy_data
        source = self._require_source()
        num_vertices = source.num_vertices
        landmark_indices, target_positions = landmark_arrays(data.landmarks, num_vertices)
        weight = normalize_weight(self.settings.weight(LANDMARK_TERM), len(data.landmarks))

        is_landmark = landmark_indicators(landmark_indices, num_vertices)
        linearized_landmark_source = linearize_vertices(
            np.ascontiguousarray(source.vertices), landmark_indices
        )
        linearized_landmark_target = linearize_points(
            target_positions, landmark_indices, num_vertices
        )

        self.derived_data.is_landmark = is_landmark
        self.derived_data.linearized_landmark_source = linearized_landmark_source
        self.derived_data.linearized_landmark_target = linearized_landmark_target
        self.derived_data.weights[LANDMARK_TERM] = weight

    def _require_source(self) -> Mesh:
        if self.derived_data.source is None:
            raise RuntimeError(
                'The source mesh has not been built yet, refresh for the model parameters first.'
            )
        return self.derived_data.source


def check_indices(indices, num_vertices, name):
    """Returns `indices` as an int64 array after checking that all lie in [0, num_vertices)."""
    indices = np.asarray(indices)
    if indices.size == 0:
        return np.zeros(0, np.int64)
    if indices.ndim != 1 or not np.issubdtype(indices.dtype, np.integer):
        raise ValueError(f'{name} must be a flat sequence of integers, got {indices.dtype}')

    out_of_range = (indices < 0) | (indices >= num_vertices)
    if np.any(out_of_range):
        raise IndexError(
            f'{name} contains {indices[out_of_range][0]}, '
            f'which is outside the valid range [0, {num_vertices})'
        )
    return indices.astype(np.int64)


def landmark_arrays(landmarks, num_vertices):
    """Returns the checked source indices, shape (k,), and target positions, shape (k, 3)."""
    indices = check_indices(
        [landmark.source_index for landmark in landmarks], num_vertices, 'landmark source index'
    )
    if len(landmarks) == 0:
        positions = np.zeros((0, 3), np.float64)
    else:
        positions = np.stack(
            [np.asarray(landmark.target_position, np.float64) for landmark in landmarks]
        )
    if positions.shape != (len(landmarks), 3):
        raise ValueError(f'Landmark target positions must be 3D points, got {positions.shape}')
    return indices, positions
