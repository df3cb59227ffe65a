"""
Tests for the PCA module.
"""

import pytest
import numpy as np
import sys
import os

# Add the parent directory to the path to import the module
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from sklearn.decomposition import PCA

from mdamath.components.config import Config
from mdamath.exceptions import DimensionMismatch, NotCalibratedError, ParameterError
from mdamath.math.crossval import Crossval
from mdamath.math.dataset import Dataset
from mdamath.math.pca import (
    MAX_COMPONENTS, PCAModel, component_names, nipals, normalize_vector, score_norm
)
from mdamath.math.preprocessing import Autoscale, autoscale
from mdamath.math.results import Model, PCAResult, ResultKind


class TestPCAUtils:
    """Tests for the PCA utility functions."""

    def test_normalize_vector(self):
        """Test normalizing a vector to unit length."""
        v = np.array([3.0, 4.0])
        normalized = normalize_vector(v)

        assert np.isclose(np.linalg.norm(normalized), 1.0)
        assert np.isclose(normalized[0] / normalized[1], v[0] / v[1])

        # A zero vector has no direction
        assert np.all(np.isnan(normalize_vector(np.zeros(3))))

    def test_component_names(self):
        assert component_names(3) == ['Comp 1', 'Comp 2', 'Comp 3']

    def test_score_norm(self):
        scores = np.array([[1.0, -1.0, 2.0, -2.0]])
        assert np.allclose(score_norm(scores), [np.sqrt(10 / 3)])


class TestNipals:
    """Tests for the NIPALS algorithm."""

    def test_loadings_orthonormal(self, random_data):
        """Loadings have unit length and are orthogonal."""
        values = autoscale(random_data, True, True)
        P, convergence = nipals(values, 2)

        assert P.shape == (2, 6)
        assert np.allclose(P @ P.T, np.eye(2), atol=1e-4)
        assert len(convergence) == 2
        assert all(converged for _, converged in convergence)

    def test_matches_svd(self, random_data):
        """The first loading matches the leading right singular vector."""
        values = autoscale(random_data, True, True)
        P, _ = nipals(values, 2)

        u, _, _ = np.linalg.svd(values, full_matrices=False)
        assert abs(np.dot(P[0], u[:, 0])) > 0.999

    def test_not_converged(self, random_data, caplog):
        """Components that did not converge are kept and reported."""
        values = autoscale(random_data, True, True)
        P, convergence = nipals(values, 2, tolerance=0.0, max_iter=2)

        assert P.shape == (2, 6)
        assert convergence == [(2, False), (2, False)]
        assert "did not converge" in caplog.text


class TestPCAModel:
    """Tests for calibrating and applying PCA models."""

    def test_calibrate(self, people):
        """Calibration produces named loadings and results."""
        model = PCAModel(ncomp=3).calibrate(people)

        assert model.ncomp == 3
        assert model.loadings.shape == (3, 12)
        assert model.loadings.var_names == ['Comp 1', 'Comp 2', 'Comp 3']
        assert model.loadings.obj_names == people.var_names
        assert model.loadings.name == 'Loadings'
        assert len(model.center_values) == 12
        assert len(model.scale_values) == 12
        assert len(model.tnorm) == 3
        assert len(model.convergence) == 3
        assert model.cvres is None

        res = model.calres
        assert isinstance(res, PCAResult)
        assert res.kind == ResultKind.PCA
        assert res.ncomp == 3
        assert res.info == 'Calibration results'
        assert res.scores.shape == (3, 32)
        assert res.scores.obj_names == people.obj_names
        assert res.t2.shape == (3, 32)
        assert res.q.shape == (3, 32)
        assert res.variance.var_names == ['Individual', 'Cumulative']
        assert res.variance.obj_names == ['Comp 1', 'Comp 2', 'Comp 3']

    def test_returns_self(self, people):
        model = PCAModel(ncomp=2)
        assert model.calibrate(people) is model

    def test_variance_properties(self, people):
        """Explained variance grows, residuals shrink with components."""
        res = PCAModel(ncomp=6).calibrate(people).calres

        assert np.all(np.diff(res.cumexpvar) >= 0)
        assert res.cumexpvar[-1] <= 100.0
        assert np.all(res.expvar >= 0)

        # Individual values are rounded separately from cumulative ones
        assert np.isclose(np.sum(res.expvar), res.cumexpvar[-1], atol=0.01 * len(res.expvar))

        total_q = res.q.values.sum(axis=1)
        assert np.all(np.diff(total_q) <= 1e-8)

        assert np.all(res.t2.values >= 0)
        assert np.all(np.diff(res.t2.values, axis=0) >= -1e-12)

    def test_rounding(self, people):
        """Reported explained variance has two decimals."""
        res = PCAModel(ncomp=4).calibrate(people).calres
        assert np.allclose(res.variance.values * 100, np.round(res.variance.values * 100))

    def test_correlated_variables(self, correlated):
        """One component captures two perfectly correlated variables."""
        model = PCAModel(ncomp=1).calibrate(correlated)
        res = model.calres

        assert np.allclose(res.q.values[0], 0, atol=1e-10)
        assert np.isclose(res.expvar[0], 100.0)
        assert np.isclose(res.cumexpvar[0], 100.0)

    def test_matches_sklearn(self, people):
        """Explained variance agrees with scikit-learn on standardized data."""
        model = PCAModel(ncomp=3).calibrate(people)

        X = autoscale(people, True, True).T
        reference = PCA(n_components=3).fit(X)
        expected = np.cumsum(reference.explained_variance_ratio_) * 100

        assert np.allclose(model.calres.cumexpvar, expected, atol=0.05)
        assert abs(np.dot(model.loadings.values[0], reference.components_[0])) > 0.999

    def test_t2_mean(self, people):
        """Mean T2 on the calibration set is ncomp * (n - 1) / n."""
        model = PCAModel(ncomp=3).calibrate(people)
        n = people.n_obj

        expected = np.arange(1, 4) * (n - 1) / n
        assert np.allclose(model.calres.t2.values.mean(axis=1), expected)

    def test_scores_centered(self, people):
        """Scores of the calibration set average to zero."""
        res = PCAModel(ncomp=2).calibrate(people).calres
        assert np.allclose(res.scores.values.mean(axis=1), 0, atol=1e-8)

    def test_no_autoscale(self, small):
        model = PCAModel(ncomp=2, autoscale=Autoscale.NONE).calibrate(small)

        assert model.center_values is None
        assert model.scale_values is None
        assert model.calres.cumexpvar[-1] <= 100.0

    def test_ncomp_clamped(self, people, small):
        """The number of components is limited by the data size."""
        assert PCAModel(ncomp=30).calibrate(people).ncomp == 12
        assert PCAModel(ncomp=10).calibrate(small).ncomp == 3
        assert PCAModel(ncomp=5).calibrate(people.subset(None, [0, 1, 2])).ncomp == 2
        assert PCAModel().calibrate(people, ncomp=4).ncomp == 4

    def test_max_components(self):
        """No more than MAX_COMPONENTS components are computed."""
        rng = np.random.default_rng(0)
        data = Dataset(rng.normal(size=(25, 40)))

        model = PCAModel(ncomp=30).calibrate(data)
        assert model.ncomp == MAX_COMPONENTS

    def test_invalid_ncomp(self, people):
        with pytest.raises(ParameterError):
            PCAModel(ncomp=0).calibrate(people)

        with pytest.raises(ParameterError):
            PCAModel(ncomp=2).calibrate(people.subset(None, [0]))

    def test_failed_calibration_keeps_state(self, people):
        """A failed calibration leaves the previous model intact."""
        model = PCAModel(ncomp=2).calibrate(people)
        loadings = model.loadings.values.copy()
        calres = model.calres

        with pytest.raises(ParameterError):
            model.calibrate(people.subset(None, [0]))

        assert np.array_equal(model.loadings.values, loadings)
        assert model.calres is calres
        assert model.ncomp == 2

    def test_from_config(self):
        config = Config({'model': {'ncomp': 4, 'autoscale': 'center'},
                         'nipals': {'tolerance': 1e-8, 'max-iter': 500}})
        model = PCAModel.from_config(config)

        assert model.ncomp == 4
        assert model.autoscale == Autoscale.CENTER
        assert model.tolerance == 1e-8
        assert model.max_iter == 500
        assert model.crossval.is_none


class TestPCAPredict:
    """Tests for applying a model to new data."""

    def test_not_calibrated(self, people):
        with pytest.raises(NotCalibratedError):
            PCAModel().predict(people)

    def test_predict_calibration_set(self, people):
        """Predicting the calibration set reproduces the calibration results."""
        model = PCAModel(ncomp=3).calibrate(people)
        res = model.predict(people)

        assert res.info == 'Prediction results'
        assert np.allclose(res.scores.values, model.calres.scores.values)
        assert np.allclose(res.t2.values, model.calres.t2.values)
        assert np.allclose(res.q.values, model.calres.q.values)

    def test_frozen_preprocessing(self, people):
        """New data is preprocessed and normalized with calibration values."""
        cal = people.subset(None, list(range(20)))
        new = people.subset(None, list(range(20, 32)))

        model = PCAModel(ncomp=2).calibrate(cal)
        tnorm = model.tnorm.copy()
        res = model.predict(new)

        values = autoscale(new, model.center_values, model.scale_values)
        scores = model.loadings.values @ values
        t2 = np.cumsum((scores / tnorm.reshape(-1, 1)) ** 2, axis=0)

        assert np.allclose(res.scores.values, scores)
        assert np.allclose(res.t2.values, t2)
        assert np.array_equal(model.tnorm, tnorm)
        assert res.scores.obj_names == new.obj_names

    def test_single_object(self, people):
        model = PCAModel(ncomp=2).calibrate(people)
        res = model.predict(people.subset(None, ['Lars']))
        assert res.scores.shape == (2, 1)

    def test_wrong_variables(self, people):
        model = PCAModel(ncomp=2).calibrate(people)
        with pytest.raises(DimensionMismatch):
            model.predict(people.subset([0, 1, 2]))


class TestPCACrossValidation:
    """Tests for cross-validated PCA."""

    def test_full(self, people):
        """Leave-one-out gives distances for every object."""
        model = PCAModel(ncomp=3, crossval=Crossval('full')).calibrate(people)
        res = model.cvres

        assert res is not None
        assert res.kind == ResultKind.PCA
        assert res.info == 'Cross-validation results'
        assert res.scores is None
        assert res.t2.shape == (3, 32)
        assert res.q.shape == (3, 32)
        assert np.all(np.isfinite(res.q.values))
        assert np.all(np.diff(res.cumexpvar) >= 0)
        assert res.cumexpvar[-1] <= 100.0

    def test_random_seeded(self, people):
        """The same seed gives the same cross-validation results."""
        a = PCAModel(ncomp=2, crossval=Crossval('random', nseg=4, nrep=2, seed=3)).calibrate(people)
        b = PCAModel(ncomp=2, crossval=Crossval('random', nseg=4, nrep=2, seed=3)).calibrate(people)

        assert np.allclose(a.cvres.q.values, b.cvres.q.values)
        assert np.allclose(a.cvres.cumexpvar, b.cvres.cumexpvar)

    def test_venetian_with_reference(self, people):
        """Venetian blinds use the optional reference values."""
        model = PCAModel(ncomp=2, crossval=Crossval('venetian', nseg=4))
        model.calibrate(people, y=people.subset('Weight'))

        assert model.cvres.q.shape == (2, 32)

    def test_crossvalidate_directly(self, people):
        model = PCAModel(ncomp=2, crossval=Crossval('full'))
        res = model.crossvalidate(people.subset(None, list(range(10))))

        assert res.t2.shape == (2, 10)
        assert model.loadings is None

    def test_disabled(self, people):
        assert PCAModel(ncomp=2).crossvalidate(people) is None

    def test_held_out_object(self, people):
        """Leave-one-out distances match a model calibrated without the object."""
        data = people.subset(None, list(range(10)))
        model = PCAModel(ncomp=2, crossval=Crossval('full')).calibrate(data)

        fold = PCAModel(ncomp=2).calibrate(data.subset(None, list(range(1, 10))))
        res = fold.predict(data.subset(None, [0]))

        assert np.allclose(model.cvres.q.values[:, 0], res.q.values[:, 0])
        assert np.allclose(model.cvres.t2.values[:, 0], res.t2.values[:, 0])

    def test_held_out_variance(self, people):
        """Cross-validated variance pools the residuals of every left-out object."""
        data = people.subset(None, list(range(10)))
        model = PCAModel(ncomp=2, crossval=Crossval('full')).calibrate(data)

        residual_ss = np.zeros(2)
        total_ss = 0.0
        for i in range(10):
            rest = [j for j in range(10) if j != i]
            fold = PCAModel(ncomp=2).calibrate(data.subset(None, rest))
            left_out = data.subset(None, [i])
            residual_ss += fold.predict(left_out).q.values[:, 0]
            total_ss += np.sum(autoscale(left_out, fold.center_values, fold.scale_values) ** 2)

        expected = 100 * (1 - residual_ss / total_ss)
        assert np.allclose(model.cvres.cumexpvar, expected, atol=0.01)

    def test_folds_with_fewer_components(self, people):
        """Components a fold cannot fit are left undefined."""
        data = people.subset(None, [0, 1, 2, 3])
        model = PCAModel(ncomp=3, crossval=Crossval('full')).calibrate(data)

        # Three calibration objects per fold allow two components
        assert model.ncomp == 3
        assert np.all(np.isfinite(model.cvres.q.values[:2]))
        assert np.all(np.isfinite(model.cvres.t2.values[:2]))
        assert np.all(np.isnan(model.cvres.q.values[2]))
        assert np.all(np.isnan(model.cvres.t2.values[2]))
        assert np.isnan(model.cvres.cumexpvar[2])
        assert np.all(np.isfinite(model.cvres.cumexpvar[:2]))

    def test_single_object_folds(self, caplog):
        """Folds with one calibration object are skipped instead of failing."""
        data = Dataset([[1.0, 2.0], [3.0, 5.0]])
        model = PCAModel(ncomp=1, crossval=Crossval('full')).calibrate(data)

        assert model.calres is not None
        assert np.all(np.isfinite(model.calres.q.values))
        assert model.cvres.q.shape == (1, 2)
        assert np.all(np.isnan(model.cvres.q.values))
        assert np.all(np.isnan(model.cvres.t2.values))
        assert np.isnan(model.cvres.cumexpvar[0])
        assert "fewer than two calibration objects" in caplog.text


class TestPCAInterface:
    """Tests for the shared model interface."""

    def test_is_model(self):
        assert isinstance(PCAModel(), Model)

    def test_from_config_is_uncalibrated(self):
        model = PCAModel.from_config(Config({'model': {'ncomp': 3}}))
        assert isinstance(model, Model)
        assert model.calres is None
        assert model.ncomp == 3
