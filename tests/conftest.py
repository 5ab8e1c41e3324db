"""Shared pytest fixtures for mmfitter tests."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pytest

from mmfitter import (
    EnergyData,
    EnergyDerivedData,
    EnergyDerivedDataUpdate,
    EnergySettings,
    Mesh,
    MultilinearModel,
)
from mmfitter.common import make_model_data

TETRAHEDRON_VERTICES = np.array(
    [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]]
)
TETRAHEDRON_FACES = np.array([[0, 2, 1], [0, 1, 3], [0, 3, 2], [1, 2, 3]])
TARGET_VERTICES = np.array(
    [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0], [1.0, 1.0, 1.0]]
)
BASE_WEIGHTS = {'data_term': 3.0, 'landmark_term': 2.0, 'speaker_smoothness_term': 0.5}


@dataclass
class Session:
    """The aggregates of one fitting session, wired to an updater."""

    data: EnergyData
    derived: EnergyDerivedData
    settings: EnergySettings
    updater: EnergyDerivedDataUpdate


def make_model(num_speaker_weights=2, num_phoneme_weights=3, seed=0):
    rng = np.random.default_rng(seed)
    core = 0.1 * rng.standard_normal((4, 3, num_speaker_weights, num_phoneme_weights))
    return MultilinearModel(make_model_data(TETRAHEDRON_VERTICES, core, TETRAHEDRON_FACES))


@pytest.fixture
def model():
    return make_model()


@pytest.fixture
def target():
    return Mesh(vertices=TARGET_VERTICES, faces=np.zeros((0, 3), np.int64))


@pytest.fixture
def session(model, target) -> Session:
    """A session with two correspondences, no landmarks and projection disabled."""
    data = EnergyData(
        model=model,
        target=target,
        speaker_weights=np.array([0.5, -0.2]),
        phoneme_weights=np.array([1.0, 0.3, -0.7]),
        source_indices=[1, 3],
        target_indices=[0, 2],
    )
    settings = EnergySettings(weights=BASE_WEIGHTS)
    derived = EnergyDerivedData.for_settings(settings)
    updater = EnergyDerivedDataUpdate(data, derived, settings)
    updater.refresh_for_parameter_change()
    return Session(data=data, derived=derived, settings=settings, updater=updater)
