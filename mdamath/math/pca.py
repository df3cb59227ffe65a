"""
PCA (Principal Component Analysis) implementation for mdamath.

Components are extracted one at a time with the NIPALS algorithm: a power
iteration on the current residual matrix followed by deflation. Besides
scores, applying a model gives the score distance (T2), the squared
orthogonal distance (Q) and the explained variance for every number of
components.
"""

import logging
import numpy as np
from typing import List, Optional, Tuple

from mdamath.exceptions import DimensionMismatch, NotCalibratedError, ParameterError
from mdamath.math.crossval import Crossval
from mdamath.math.dataset import Dataset, seq
from mdamath.math.preprocessing import Autoscale, autoscale, row_sd, scaling_values
from mdamath.math.results import PCAResult
from mdamath.math.stats import (
    cumulative_explained_variance, explained_variance, round_half_up
)

logger = logging.getLogger(__name__)

MAX_COMPONENTS = 20


def normalize_vector(v: np.ndarray) -> np.ndarray:
    """
    Normalize a vector to unit length.

    A zero vector gives NaN values.

    Args:
        v: Vector to normalize

    Returns:
        Normalized vector
    """
    with np.errstate(divide='ignore', invalid='ignore'):
        return v / np.sqrt(np.dot(v, v))


def component_names(ncomp: int) -> List[str]:
    return [f'Comp {i}' for i in seq(1, ncomp)]


def nipals(values: np.ndarray,
           ncomp: int,
           tolerance: float = 1e-5,
           max_iter: int = 100) -> Tuple[np.ndarray, List[Tuple[int, bool]]]:
    """
    Compute PCA loadings with the NIPALS algorithm.

    For every component the iterations start from the variable with the
    largest standard deviation and stop when the squared norm of the scores
    changes less than ``tolerance``, or after ``max_iter`` iterations. A
    component that did not converge is kept; this is reported in the
    returned diagnostics only.

    Args:
        values: Preprocessed data (variables x objects)
        ncomp: Number of components to extract
        tolerance: Convergence threshold for the squared score norm
        max_iter: Maximum number of iterations per component

    Returns:
        Tuple of loadings (ncomp x variables) and a list with
        (number of iterations, converged) for every component
    """
    E = np.array(values, dtype=float)
    loadings = np.zeros((ncomp, E.shape[0]))
    convergence = []

    for i in range(ncomp):
        t = E[int(np.argmax(row_sd(E)))].copy()
        p = None
        tau = np.inf
        n_iter = 0
        converged = False

        while n_iter < max_iter:
            with np.errstate(divide='ignore', invalid='ignore'):
                p = normalize_vector(E @ t / np.dot(t, t))
                t = p @ E / np.dot(p, p)

            tau_new = np.dot(t, t)
            n_iter += 1
            converged = bool(abs(tau - tau_new) < tolerance)
            tau = tau_new
            if converged:
                break

        if not converged:
            logger.warning(f"NIPALS did not converge for component {i + 1} "
                           f"after {n_iter} iterations")
        else:
            logger.debug(f"Component {i + 1} converged after {n_iter} iterations")

        E = E - np.outer(p, t)
        loadings[i] = p
        convergence.append((n_iter, converged))

    return loadings, convergence


def score_norm(scores: np.ndarray) -> np.ndarray:
    """Standard deviation of the scores of every component (around zero)."""
    scores = np.atleast_2d(scores)
    return np.sqrt(np.sum(scores ** 2, axis=1) / (scores.shape[1] - 1))


def _variance_dataset(expvar: np.ndarray, cumexpvar: np.ndarray, comp_names: List[str]) -> Dataset:
    ncomp = len(comp_names)
    return Dataset(
        [round_half_up(expvar), round_half_up(cumexpvar)],
        ['Individual', 'Cumulative'],
        comp_names,
        'Explained variance',
        '',
        None,
        None,
        'Components',
        seq(1, ncomp)
    )


def _distance_dataset(values: np.ndarray, name: str, comp_names: List[str], data: Dataset) -> Dataset:
    return Dataset(
        values,
        comp_names,
        data.obj_names,
        name,
        '',
        'Components',
        seq(1, len(comp_names)),
        data.obj_axis_name,
        data.obj_axis_values
    )


def pca_project(data: Dataset,
                loadings: Dataset,
                center_values: Optional[np.ndarray],
                scale_values: Optional[np.ndarray],
                tnorm: np.ndarray,
                info: str = '') -> PCAResult:
    """
    Project data onto PCA loadings and compute residual distances.

    For every number of components i = 1..k the reconstruction uses the
    first i loadings; Q and T2 are cumulative in i.

    Args:
        data: Dataset with the same variables as the calibration set
        loadings: Loadings dataset (components x variables)
        center_values: Frozen centering vector, or None
        scale_values: Frozen scaling vector, or None
        tnorm: Frozen score normalization vector
        info: Description stored in the result

    Returns:
        PCAResult with scores, T2, Q and explained variance
    """
    if data.n_var != loadings.n_obj:
        raise DimensionMismatch(
            "Number of variables does not match the model",
            context={'model': loadings.n_obj, 'data': data.n_var}
        )

    values = autoscale(data, center_values, scale_values)
    P = loadings.values
    ncomp = P.shape[0]

    scores = P @ values
    with np.errstate(divide='ignore', invalid='ignore'):
        scores_norm = scores / np.asarray(tnorm).reshape(-1, 1)

    full_var = np.sum(values ** 2)
    T2 = np.zeros((ncomp, data.n_obj))
    Q = np.zeros((ncomp, data.n_obj))
    cumexpvar = np.zeros(ncomp)

    for i in range(1, ncomp + 1):
        TPT = P[:i].T @ scores[:i]
        E = values - TPT
        Q[i - 1] = np.sum(E ** 2, axis=0)
        T2[i - 1] = np.sum(scores_norm[:i] ** 2, axis=0)
        with np.errstate(divide='ignore', invalid='ignore'):
            cumexpvar[i - 1] = np.sum(TPT ** 2) / full_var * 100

    comp_names = loadings.var_names
    scores = Dataset(
        scores,
        comp_names,
        data.obj_names,
        'Scores',
        '',
        'Components',
        seq(1, ncomp),
        data.obj_axis_name,
        data.obj_axis_values
    )

    return PCAResult(
        scores,
        _distance_dataset(T2, 'Hotelling T2 residuals', comp_names, data),
        _distance_dataset(Q, 'Squared orthogonal distance', comp_names, data),
        _variance_dataset(explained_variance(cumexpvar), cumexpvar, comp_names),
        info
    )


class PCAModel:
    """
    PCA model calibrated with NIPALS.

    Attributes:
        ncomp: Number of components (clamped at calibration)
        autoscale: Preprocessing option
        crossval: Cross-validation plan, or None
        loadings: Loadings dataset (components x variables)
        center_values: Centering vector frozen at calibration
        scale_values: Scaling vector frozen at calibration
        tnorm: Score normalization vector frozen at calibration
        convergence: (iterations, converged) for every component
        calres: Calibration results
        cvres: Cross-validation results, or None
    """

    def __init__(self,
                 ncomp: int = 1,
                 autoscale: Autoscale = Autoscale.CENTER_SCALE,
                 crossval: Optional[Crossval] = None,
                 tolerance: float = 1e-5,
                 max_iter: int = 100):
        self.ncomp = ncomp
        self.autoscale = Autoscale.parse(autoscale)
        self.crossval = crossval
        self.tolerance = tolerance
        self.max_iter = max_iter

        self.loadings: Optional[Dataset] = None
        self.center_values: Optional[np.ndarray] = None
        self.scale_values: Optional[np.ndarray] = None
        self.tnorm: Optional[np.ndarray] = None
        self.convergence: List[Tuple[int, bool]] = []
        self.calres: Optional[PCAResult] = None
        self.cvres: Optional[PCAResult] = None

    @classmethod
    def from_config(cls, config) -> 'PCAModel':
        """
        Create a model from configuration values.

        Args:
            config: Config instance

        Returns:
            Uncalibrated PCAModel
        """
        return cls(
            ncomp=config.get('model.ncomp', 1),
            autoscale=config.get('model.autoscale', Autoscale.CENTER_SCALE),
            crossval=Crossval.from_config(config),
            tolerance=config.get('nipals.tolerance', 1e-5),
            max_iter=config.get('nipals.max-iter', 100)
        )

    def _fresh_copy(self, ncomp: int) -> 'PCAModel':
        return PCAModel(ncomp, self.autoscale, None, self.tolerance, self.max_iter)

    def _clamp_ncomp(self, data: Dataset, requested: int) -> int:
        if requested is None or requested < 1:
            raise ParameterError("Number of components must be positive",
                                 context={'ncomp': requested})

        ncomp = min(data.n_obj - 1, data.n_var, MAX_COMPONENTS, int(requested))
        if ncomp < 1:
            raise ParameterError("PCA needs at least two objects",
                                 context={'n_obj': data.n_obj, 'n_var': data.n_var})
        if ncomp < requested:
            logger.warning(f"Number of components reduced from {requested} to {ncomp}")
        return ncomp

    def calibrate(self, data: Dataset, ncomp: Optional[int] = None, y=None) -> 'PCAModel':
        """
        Calibrate the model and compute calibration (and cross-validation) results.

        The model state is replaced only after every step succeeded.

        Args:
            data: Calibration set
            ncomp: Number of components (defaults to the model's ncomp)
            y: Optional reference values, used to stratify venetian blinds
                cross-validation

        Returns:
            The calibrated model
        """
        ncomp = self._clamp_ncomp(data, self.ncomp if ncomp is None else ncomp)

        center_values, scale_values = scaling_values(data, self.autoscale)
        values = autoscale(data, center_values, scale_values)

        P, convergence = nipals(values, ncomp, self.tolerance, self.max_iter)
        loadings = Dataset(
            P,
            component_names(ncomp),
            data.var_names,
            'Loadings',
            '',
            'Components',
            seq(1, ncomp),
            data.var_axis_name,
            data.var_axis_values
        )

        tnorm = score_norm(P @ values)
        calres = pca_project(data, loadings, center_values, scale_values, tnorm,
                             'Calibration results')
        cvres = self._crossvalidate(data, ncomp, y)

        self.ncomp = ncomp
        self.loadings = loadings
        self.center_values = center_values
        self.scale_values = scale_values
        self.tnorm = tnorm
        self.convergence = convergence
        self.calres = calres
        self.cvres = cvres

        logger.info(f"PCA model calibrated: {ncomp} components, "
                    f"{calres.cumexpvar[-1]:.2f}% explained variance")
        return self

    def predict(self, new_data: Dataset) -> PCAResult:
        """
        Apply the model to a new dataset.

        Preprocessing and score normalization use the values frozen at
        calibration; nothing is recomputed from the new data.

        Args:
            new_data: Dataset with the calibration variables

        Returns:
            PCAResult for the new objects
        """
        if self.loadings is None:
            raise NotCalibratedError("PCA model is not calibrated")

        return pca_project(new_data, self.loadings, self.center_values,
                           self.scale_values, self.tnorm, 'Prediction results')

    def crossvalidate(self, data: Dataset, y=None) -> Optional[PCAResult]:
        """
        Cross-validate the model settings on a dataset.

        Args:
            data: Dataset to split into calibration/validation segments
            y: Optional reference values for venetian blinds

        Returns:
            PCAResult without scores, or None if cross-validation is disabled
        """
        return self._crossvalidate(data, self._clamp_ncomp(data, self.ncomp), y)

    def _crossvalidate(self, data: Dataset, ncomp: int, y=None) -> Optional[PCAResult]:
        plan = self.crossval
        if plan is None or plan.is_none:
            return None

        plan.compute_indices(data.n_obj, y)

        T2 = np.full((plan.nrep, ncomp, data.n_obj), np.nan)
        Q = np.full((plan.nrep, ncomp, data.n_obj), np.nan)
        total_ss = 0.0
        residual_ss = np.zeros(ncomp)

        for rep, seg, segment in plan.segments():
            if not segment.val:
                continue
            if len(segment.cal) < 2:
                logger.warning(f"PCA cross-validation: segment {seg + 1} leaves fewer than "
                               f"two calibration objects, its distances are not computed")
                continue

            val = list(segment.val)
            fold = self._fresh_copy(ncomp).calibrate(data.subset(None, list(segment.cal)))
            val_data = data.subset(None, val)
            res = fold.predict(val_data)
            k = res.ncomp

            T2[rep][:k, val] = res.t2.values
            Q[rep][:k, val] = res.q.values

            fold_ss = np.full(ncomp, np.nan)
            fold_ss[:k] = res.q.values.sum(axis=1)
            residual_ss += fold_ss
            total_ss += np.sum(autoscale(val_data, fold.center_values, fold.scale_values) ** 2)

            logger.debug(f"PCA cross-validation: repetition {rep + 1}, segment {seg + 1} done")

        cumexpvar = cumulative_explained_variance(residual_ss, total_ss)
        comp_names = component_names(ncomp)

        logger.info(f"PCA cross-validation finished ({plan.method.value}, "
                    f"{plan.nseg} segments, {plan.nrep} repetition(s))")

        return PCAResult(
            None,
            _distance_dataset(T2.mean(axis=0), 'Hotelling T2 residuals', comp_names, data),
            _distance_dataset(Q.mean(axis=0), 'Squared orthogonal distance', comp_names, data),
            _variance_dataset(explained_variance(cumexpvar), cumexpvar, comp_names),
            'Cross-validation results'
        )
