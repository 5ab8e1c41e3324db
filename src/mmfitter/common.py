from __future__ import annotations

import os
import os.path as osp
from dataclasses import dataclass

import numpy as np


@dataclass
class ModelData:
    """Data loaded from a multilinear model file.

    The model maps a speaker weight vector and a phoneme weight vector to mesh vertex
    positions via mode products with the core tensor.
    """

    mean: np.ndarray
    """Mean vertex positions, shape (num_vertices, 3)."""

    core: np.ndarray
    """Core tensor, shape (num_vertices, 3, num_speaker_weights, num_phoneme_weights)."""

    faces: np.ndarray
    """Face indices, shape (num_faces, 3)."""

    num_vertices: int
    """Number of vertices of the reconstructed mesh."""

    num_speaker_weights: int
    """Dimension of the speaker mode."""

    num_phoneme_weights: int
    """Dimension of the phoneme mode."""


def initialize(model_name, model_root=None):
    if model_root is None:
        models_dir = os.getenv('MMFITTER_MODELS')
        if models_dir is None:
            data_root = os.getenv('DATA_ROOT', '.')
            models_dir = f'{data_root}/models'
        model_root = models_dir

    filepath = osp.join(model_root, f'{model_name}.npz')
    try:
        model_file = np.load(filepath)
    except FileNotFoundError:
        raise FileNotFoundError(
            f'Model file not found: {filepath}\n\n'
            f'Set the model location using one of:\n'
            f"  1. MultilinearModel.load('{model_name}', model_root='/your/path/models')\n"
            f'  2. export MMFITTER_MODELS=/your/path/models\n'
            f'  3. export DATA_ROOT=/your/path   '
            f'(looks for $DATA_ROOT/models/)'
        ) from None

    with model_file:
        missing = [key for key in ('mean', 'core', 'faces') if key not in model_file]
        if missing:
            raise ValueError(f'Model file {filepath} lacks the arrays {missing}')
        mean = np.array(model_file['mean'], dtype=np.float64)
        core = np.array(model_file['core'], dtype=np.float64)
        faces = np.array(model_file['faces'], dtype=np.int64)

    return make_model_data(mean, core, faces)


def make_model_data(mean, core, faces):
    mean = np.asarray(mean, dtype=np.float64)
    core = np.asarray(core, dtype=np.float64)
    faces = np.asarray(faces, dtype=np.int64)

    if mean.ndim != 2 or mean.shape[1] != 3:
        raise ValueError(f'mean must have shape (num_vertices, 3), got {mean.shape}')
    if core.ndim != 4 or core.shape[:2] != mean.shape:
        raise ValueError(
            f'core must have shape ({mean.shape[0]}, 3, num_speaker_weights, '
            f'num_phoneme_weights), got {core.shape}'
        )
    if faces.ndim != 2 or faces.shape[1] != 3:
        raise ValueError(f'faces must have shape (num_faces, 3), got {faces.shape}')

    return ModelData(
        mean=mean,
        core=core,
        faces=faces,
        num_vertices=mean.shape[0],
        num_speaker_weights=core.shape[2],
        num_phoneme_weights=core.shape[3],
    )
