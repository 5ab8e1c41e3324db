from __future__ import annotations

import numpy as np

from . import common as mmfitter_common
from .mesh import Mesh


class MultilinearModel:
    """
    Represents a multilinear shape model with a speaker mode and a phoneme mode.

    The vertex positions for a speaker weight vector ``s`` and a phoneme weight vector ``p``
    are given by the mode products ``mean + core x_2 s x_3 p``. The vertex axis and the
    coordinate axis of the core tensor together form mode 1.

    Parameters:
        data: The model arrays, see :class:`mmfitter.common.ModelData`.
    """

    def __init__(self, data: mmfitter_common.ModelData):
        self.mean = data.mean
        self.core = data.core
        self.faces = data.faces
        self.num_vertices = data.num_vertices
        self.num_speaker_weights = data.num_speaker_weights
        self.num_phoneme_weights = data.num_phoneme_weights

    @classmethod
    def load(cls, model_name='tongue', model_root=None):
        """
        Loads a model from ``{model_root}/{model_name}.npz``.

        Parameters:
            model_name: Name of the model file without extension.
            model_root: Directory containing the model files. By default, the
                MMFITTER_MODELS environment variable is used, or ``{DATA_ROOT}/models`` if it
                is not set.
        """
        return cls(mmfitter_common.initialize(model_name, model_root))

    def reconstruct(self, speaker_weights, phoneme_weights) -> Mesh:
        """
        Reconstructs the mesh for the given mode weights.

        Parameters:
            speaker_weights: Speaker mode weights, shape (num_speaker_weights,).
            phoneme_weights: Phoneme mode weights, shape (num_phoneme_weights,).

        Returns:
            A new mesh with the reconstructed vertices and the model faces, without normals.
        """
        speaker_weights = np.asarray(speaker_weights, np.float64)
        phoneme_weights = np.asarray(phoneme_weights, np.float64)
        if speaker_weights.shape != (self.num_speaker_weights,):
            raise ValueError(
                f'speaker_weights must have shape ({self.num_speaker_weights},), '
                f'got {speaker_weights.shape}'
            )
        if phoneme_weights.shape != (self.num_phoneme_weights,):
            raise ValueError(
                f'phoneme_weights must have shape ({self.num_phoneme_weights},), '
                f'got {phoneme_weights.shape}'
            )

        vertices = self.mean + np.einsum(
            'vcsp,s,p->vc', self.core, speaker_weights, phoneme_weights
        )
        return Mesh(vertices=vertices, faces=self.faces.copy())
