"""Mesh normals, multilinear reconstruction and model loading."""

from __future__ import annotations

import numpy as np
import pytest

from mmfitter import Mesh, MultilinearModel, estimate_vertex_normals, initialize
from mmfitter.common import make_model_data

from conftest import TETRAHEDRON_FACES, TETRAHEDRON_VERTICES, make_model


class TestNormals:
    def test_flat_square_normals(self):
        vertices = np.array([[0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0]], dtype=np.float64)
        faces = np.array([[0, 1, 2], [0, 2, 3]])
        normals = estimate_vertex_normals(vertices, faces)
        np.testing.assert_allclose(normals, np.tile([0.0, 0.0, 1.0], (4, 1)), atol=1e-12)

    def test_tetrahedron_normals_point_outwards(self):
        normals = estimate_vertex_normals(TETRAHEDRON_VERTICES, TETRAHEDRON_FACES)
        np.testing.assert_allclose(np.linalg.norm(normals, axis=1), 1.0)
        centroid = TETRAHEDRON_VERTICES.mean(axis=0)
        outward = np.sum((TETRAHEDRON_VERTICES - centroid) * normals, axis=1)
        assert np.all(outward > 0)

    def test_unreferenced_vertex_warns(self):
        vertices = np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0], [5, 5, 5]], dtype=np.float64)
        with pytest.warns(RuntimeWarning, match='1 vertices'):
            normals = estimate_vertex_normals(vertices, np.array([[0, 1, 2]]))
        np.testing.assert_array_equal(normals[3], 0.0)
        np.testing.assert_allclose(normals[0], [0.0, 0.0, 1.0])

    def test_no_faces(self):
        with pytest.raises(ValueError, match='without faces'):
            estimate_vertex_normals(TETRAHEDRON_VERTICES, np.zeros((0, 3), np.int64))


class TestMesh:
    def test_normals_shape_checked(self):
        mesh = Mesh(vertices=TETRAHEDRON_VERTICES, faces=TETRAHEDRON_FACES)
        assert not mesh.has_normals()
        assert mesh.num_vertices == 4
        with pytest.raises(ValueError, match='vertex_normals'):
            mesh.set_vertex_normals(np.zeros((3, 3)))
        assert not mesh.has_normals()

    def test_vertices_shape_checked(self):
        with pytest.raises(ValueError, match='vertices'):
            Mesh(vertices=np.zeros((4, 2)), faces=np.zeros((0, 3)))


class TestMultilinearModel:
    def test_zero_weights_give_mean(self):
        model = make_model()
        mesh = model.reconstruct(np.zeros(2), np.zeros(3))
        np.testing.assert_array_equal(mesh.vertices, TETRAHEDRON_VERTICES)
        np.testing.assert_array_equal(mesh.faces, TETRAHEDRON_FACES)
        assert not mesh.has_normals()

    def test_mode_products(self):
        model = make_model()
        speaker = np.array([0.3, -1.0])
        phoneme = np.array([2.0, 0.0, 0.5])
        expected = TETRAHEDRON_VERTICES.copy()
        for s in range(2):
            for p in range(3):
                expected += model.core[:, :, s, p] * speaker[s] * phoneme[p]
        mesh = model.reconstruct(speaker, phoneme)
        np.testing.assert_allclose(mesh.vertices, expected, atol=1e-12)

    def test_reconstruction_is_deterministic_and_fresh(self):
        model = make_model()
        first = model.reconstruct([1.0, 1.0], [1.0, 1.0, 1.0])
        second = model.reconstruct([1.0, 1.0], [1.0, 1.0, 1.0])
        assert first is not second
        np.testing.assert_array_equal(first.vertices, second.vertices)

    def test_wrong_weight_shapes(self):
        model = make_model()
        with pytest.raises(ValueError, match='speaker_weights'):
            model.reconstruct(np.zeros(3), np.zeros(3))
        with pytest.raises(ValueError, match='phoneme_weights'):
            model.reconstruct(np.zeros(2), np.zeros((3, 1)))


class TestModelLoading:
    def _save(self, path, **overrides):
        arrays = dict(
            mean=TETRAHEDRON_VERTICES,
            core=np.ones((4, 3, 2, 5)),
            faces=TETRAHEDRON_FACES,
        )
        arrays.update(overrides)
        np.savez(path, **arrays)

    def test_load_from_model_root(self, tmp_path):
        self._save(tmp_path / 'tongue.npz')
        model = MultilinearModel.load('tongue', model_root=str(tmp_path))
        assert model.num_vertices == 4
        assert model.num_speaker_weights == 2
        assert model.num_phoneme_weights == 5

    def test_env_variable(self, tmp_path, monkeypatch):
        self._save(tmp_path / 'palate.npz')
        monkeypatch.setenv('MMFITTER_MODELS', str(tmp_path))
        data = initialize('palate')
        assert data.core.shape == (4, 3, 2, 5)
        assert data.faces.dtype == np.int64

    def test_data_root_fallback(self, tmp_path, monkeypatch):
        (tmp_path / 'models').mkdir()
        self._save(tmp_path / 'models' / 'tongue.npz')
        monkeypatch.delenv('MMFITTER_MODELS', raising=False)
        monkeypatch.setenv('DATA_ROOT', str(tmp_path))
        assert initialize('tongue').num_vertices == 4

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match='MMFITTER_MODELS'):
            initialize('tongue', model_root=str(tmp_path))

    def test_missing_array(self, tmp_path):
        np.savez(tmp_path / 'tongue.npz', mean=TETRAHEDRON_VERTICES, faces=TETRAHEDRON_FACES)
        with pytest.raises(ValueError, match='core'):
            initialize('tongue', model_root=str(tmp_path))

    def test_inconsistent_core(self):
        with pytest.raises(ValueError, match='core'):
            make_model_data(TETRAHEDRON_VERTICES, np.ones((5, 3, 2, 2)), TETRAHEDRON_FACES)
