from __future__ import annotations

import math
import numbers
from dataclasses import dataclass, field
from typing import Any, Optional

import numpy as np

from .mesh import Mesh

DATA_TERM = 'data_term'
LANDMARK_TERM = 'landmark_term'
SPEAKER_SMOOTHNESS_TERM = 'speaker_smoothness_term'
PHONEME_SMOOTHNESS_TERM = 'phoneme_smoothness_term'

REQUIRED_TERMS = (DATA_TERM, LANDMARK_TERM)
TERM_NAMES = REQUIRED_TERMS + (SPEAKER_SMOOTHNESS_TERM, PHONEME_SMOOTHNESS_TERM)


@dataclass
class Landmark:
    """A source vertex that is constrained to a fixed target position."""

    source_index: int
    target_position: np.ndarray

    def __post_init__(self):
        if not isinstance(self.source_index, numbers.Integral) or isinstance(
            self.source_index, (bool, np.bool_)
        ):
            raise ValueError(
                f'Landmark source index must be an integer, got {self.source_index!r}'
            )
        self.source_index = int(self.source_index)
        self.target_position = np.asarray(self.target_position, dtype=np.float64)
        if self.target_position.shape != (3,):
            raise ValueError(
                f'Landmark target position must have shape (3,), '
                f'got {self.target_position.shape}'
            )


@dataclass
class EnergyData:
    """
    Inputs of the fitting energy. These are owned and changed by the optimizer.

    Parameters:
        model: Model with a ``reconstruct(speaker_weights, phoneme_weights)`` method returning
            a :class:`mmfitter.mesh.Mesh`.
        target: The target mesh to register to.
        speaker_weights: Current speaker mode weights.
        phoneme_weights: Current phoneme mode weights.
        source_indices: Source vertex indices of the correspondences.
        target_indices: Target vertex indices of the correspondences, paired by position with
            `source_indices`.
        landmarks: Landmark constraints.
    """

    model: Any
    target: Mesh
    speaker_weights: np.ndarray
    phoneme_weights: np.ndarray
    source_indices: list = field(default_factory=list)
    target_indices: list = field(default_factory=list)
    landmarks: list[Landmark] = field(default_factory=list)


@dataclass
class EnergySettings:
    """
    Weights of the energy terms and the correspondence projection switch.

    The weight names are checked on construction: every name must be one of
    :data:`TERM_NAMES`, the data and landmark term weights must be present and all weights must
    be finite and non-negative.

    Parameters:
        weights: Mapping from term name to weight.
        use_projection: Whether correspondence targets are projected onto the normal plane of
            the target vertex, if the target mesh has normals.

    Weights of terms that are not normalized by an active set size are copied into
    :class:`EnergyDerivedData` once, by :meth:`EnergyDerivedData.for_settings`. Later changes of
    these weights are not picked up by any refresh; create new derived data to apply them.
    """

    weights: dict[str, float]
    use_projection: bool = False

    def __post_init__(self):
        self.weights = dict(self.weights)
        unknown = sorted(set(self.weights) - set(TERM_NAMES))
        if unknown:
            raise ValueError(f'Unknown energy terms {unknown}, expected names among {TERM_NAMES}')

        missing = [name for name in REQUIRED_TERMS if name not in self.weights]
        if missing:
            raise ValueError(f'Missing weights for the energy terms {missing}')

        for name, weight in self.weights.items():
            weight = float(weight)
            if not math.isfinite(weight) or weight < 0:
                raise ValueError(f'Weight of {name} must be finite and non-negative, got {weight}')
            self.weights[name] = weight

    def weight(self, term: str) -> float:
        try:
            return self.weights[term]
        except KeyError:
            raise KeyError(f'No weight configured for the energy term {term!r}') from None


@dataclass
class EnergyDerivedData:
    """
    Quantities derived from :class:`EnergyData` that the energy is assembled from.

    The dense vectors have length ``3 * num_vertices`` of the source mesh and are zero
    everywhere except at the coordinates of active vertices.
    """

    source: Optional[Mesh] = None
    """Current reconstruction of the model."""

    linearized_source: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """Source points of the correspondences."""

    linearized_target: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """Target points of the correspondences, projected if enabled."""

    linearized_landmark_source: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """Source points of the landmarks."""

    linearized_landmark_target: np.ndarray = field(default_factory=lambda: np.zeros(0))
    """Fixed target positions of the landmarks."""

    is_landmark: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=bool))
    """Per source vertex flag telling whether the vertex is a landmark."""

    weights: dict[str, float] = field(default_factory=dict)
    """Term weights, with the data and landmark terms normalized by their active set size."""

    @classmethod
    def for_settings(cls, settings: EnergySettings) -> EnergyDerivedData:
        """Creates empty derived data whose term weights start as a copy of `settings`."""
        return cls(weights=dict(settings.weights))


def normalize_weight(weight: float, count: int) -> float:
    """Divides `weight` by the size of the active set, treating an empty set as size one."""
    return weight / max(count, 1)
