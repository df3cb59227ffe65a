"""
Multiple Linear Regression for mdamath.

Coefficients are obtained from the normal equations on autoscaled data.
The model keeps the centering/scaling vectors of both predictors and
response, so predictions come back in the original response units.
"""

import logging
import numpy as np
from scipy import linalg
from typing import Optional

from mdamath.exceptions import DimensionMismatch, NotCalibratedError
from mdamath.math.crossval import Crossval, Segment
from mdamath.math.dataset import Dataset
from mdamath.math.preprocessing import Autoscale, autoscale, scaling_values, unscale
from mdamath.math.results import RegressionResult

logger = logging.getLogger(__name__)


def regression_coefficients(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    """
    Ordinary least squares coefficients from the normal equations.

    There is no check for a singular X X^T; scipy raises LinAlgError for an
    exactly singular matrix and nearly singular ones give unstable values.

    Args:
        x: Predictors (variables x objects)
        y: Responses (responses x objects)

    Returns:
        Coefficients (responses x variables)
    """
    return (linalg.inv(x @ x.T) @ (x @ y.T)).T


class MLRModel:
    """
    Multiple Linear Regression model.

    MLR has no latent components, so ``ncomp`` is always 1 and predictions
    have a single variable named 'Comp 1'.

    Attributes:
        autoscale: Preprocessing option for both X and Y
        crossval: Cross-validation plan, or None
        coeffs: Regression coefficients (1 x variables)
        x_center_values, x_scale_values: Predictor preprocessing vectors
        y_center_values, y_scale_values: Response preprocessing vectors
        calres: Calibration results
        cvres: Cross-validation results, or None
    """

    ncomp = 1

    def __init__(self,
                 autoscale: Autoscale = Autoscale.CENTER,
                 crossval: Optional[Crossval] = None):
        self.autoscale = Autoscale.parse(autoscale)
        self.crossval = crossval

        self.coeffs: Optional[Dataset] = None
        self.x_center_values: Optional[np.ndarray] = None
        self.x_scale_values: Optional[np.ndarray] = None
        self.y_center_values: Optional[np.ndarray] = None
        self.y_scale_values: Optional[np.ndarray] = None
        self.response_name: Optional[str] = None
        self.calres: Optional[RegressionResult] = None
        self.cvres: Optional[RegressionResult] = None

    @classmethod
    def from_config(cls, config) -> 'MLRModel':
        """
        Create a model from configuration values.

        Args:
            config: Config instance

        Returns:
            Uncalibrated MLRModel
        """
        return cls(
            autoscale=config.get('model.autoscale', Autoscale.CENTER),
            crossval=Crossval.from_config(config)
        )

    @staticmethod
    def _check_xy(x: Dataset, y: Dataset) -> None:
        if y.n_var != 1:
            raise DimensionMismatch("MLR supports a single response variable",
                                    context={'responses': y.n_var})
        if x.n_obj != y.n_obj:
            raise DimensionMismatch("Predictors and response have different number of objects",
                                    context={'x': x.n_obj, 'y': y.n_obj})

    def calibrate(self, x: Dataset, y: Dataset) -> 'MLRModel':
        """
        Fit the coefficients and compute calibration (and cross-validation) results.

        The model state is replaced only after every step succeeded.

        Args:
            x: Predictors (variables x objects)
            y: Response (1 x objects)

        Returns:
            The calibrated model
        """
        self._check_xy(x, y)

        x_center, x_scale = scaling_values(x, self.autoscale)
        y_center, y_scale = scaling_values(y, self.autoscale)

        coeffs = Dataset(
            regression_coefficients(autoscale(x, x_center, x_scale),
                                    autoscale(y, y_center, y_scale)),
            ['Coefficients'],
            x.var_names,
            'Regression coefficients',
            '',
            'Components',
            None,
            x.var_axis_name,
            x.var_axis_values
        )

        calibrated = MLRModel(self.autoscale, self.crossval)
        calibrated.coeffs = coeffs
        calibrated.x_center_values, calibrated.x_scale_values = x_center, x_scale
        calibrated.y_center_values, calibrated.y_scale_values = y_center, y_scale
        calibrated.response_name = y.var_names[0]

        calres = calibrated.predict(x, y)
        cvres = self.crossvalidate(x, y)

        self.coeffs = coeffs
        self.x_center_values, self.x_scale_values = x_center, x_scale
        self.y_center_values, self.y_scale_values = y_center, y_scale
        self.response_name = calibrated.response_name
        self.calres = calres
        self.cvres = cvres

        logger.info(f"MLR model calibrated on {x.n_obj} objects and {x.n_var} predictors, "
                    f"R2 = {calres.stat.values[1][0]:.4f}")
        return self

    def predict_values(self, x: Dataset) -> np.ndarray:
        """
        Predict response values for a set of predictors.

        Args:
            x: Predictors (variables x objects)

        Returns:
            Predicted values in response units (1 x objects)
        """
        if self.coeffs is None:
            raise NotCalibratedError("MLR model is not calibrated")
        if x.n_var != self.coeffs.n_obj:
            raise DimensionMismatch(
                "Number of predictors does not match the model",
                context={'model': self.coeffs.n_obj, 'data': x.n_var}
            )

        yp = self.coeffs.values @ autoscale(x, self.x_center_values, self.x_scale_values)
        return unscale(yp, self.y_center_values, self.y_scale_values)

    def predict(self, x: Dataset, y: Optional[Dataset] = None) -> RegressionResult:
        """
        Apply the model to new predictors.

        Args:
            x: Predictors (variables x objects)
            y: Optional reference response values

        Returns:
            RegressionResult, with statistics if y is given
        """
        if y is not None:
            self._check_xy(x, y)

        source = y if y is not None else x
        yp = Dataset(
            self.predict_values(x),
            ['Comp 1'],
            source.obj_names,
            y.var_names[0] if y is not None else self.response_name,
            '',
            y.var_axis_name if y is not None else 'Components',
            y.var_axis_values if y is not None else None,
            source.obj_axis_name,
            source.obj_axis_values
        )

        return RegressionResult(yp, y)

    def predict_fold(self, x: Dataset, y: Dataset, segment: Segment) -> np.ndarray:
        """
        Fit a fresh model on the calibration part of a fold and predict the rest.

        Args:
            x: All predictors
            y: All response values
            segment: Fold with calibration and validation indices

        Returns:
            Predictions for the validation objects, in segment.val order
        """
        fold = MLRModel(self.autoscale)
        fold.calibrate(x.subset(None, list(segment.cal)), y.subset(None, list(segment.cal)))
        return fold.predict_values(x.subset(None, list(segment.val)))[0]

    def crossvalidate(self, x: Dataset, y: Dataset) -> Optional[RegressionResult]:
        """
        Cross-validate the model settings with the attached plan.

        Out-of-fold predictions are collected for every repetition and
        averaged over repetitions.

        Args:
            x: Predictors
            y: Response

        Returns:
            RegressionResult named 'CV', or None if cross-validation is disabled
        """
        plan = self.crossval
        if plan is None or plan.is_none:
            return None

        self._check_xy(x, y)
        plan.compute_indices(y.n_obj, y)

        yp_rep = np.full((plan.nrep, y.n_obj), np.nan)
        for rep, seg, segment in plan.segments():
            if not segment.val:
                continue
            yp_rep[rep, list(segment.val)] = self.predict_fold(x, y, segment)
            logger.debug(f"MLR cross-validation: repetition {rep + 1}, segment {seg + 1} done")

        yp = Dataset(
            yp_rep.mean(axis=0),
            ['Comp 1'],
            y.obj_names,
            y.var_names[0],
            '',
            y.var_axis_name,
            y.var_axis_values,
            y.obj_axis_name,
            y.obj_axis_values
        )

        logger.info(f"MLR cross-validation finished ({plan.method.value}, "
                    f"{plan.nseg} segments, {plan.nrep} repetition(s))")
        return RegressionResult(yp, y, 'CV')

    def summary(self) -> Dataset:
        """
        Performance statistics of all available results.

        Returns:
            Dataset with variables Bias, R2, RMSE and objects 'Cal' (and 'CV')
        """
        if self.calres is None:
            raise NotCalibratedError("MLR model is not calibrated")

        out = self.calres.stat.subset()
        names = ['Cal']
        if self.cvres is not None:
            out = out.rbind(self.cvres.stat)
            names.append('CV')

        out.obj_names = names
        out.obj_axis_values = list(range(1, len(names) + 1))
        out.name = 'Performance summary'
        return out
