"""
Performance statistics shared by regression and decomposition results.
"""

import numpy as np
from typing import Dict, Optional

from mdamath.exceptions import DimensionMismatch
from mdamath.math.dataset import Dataset

STAT_NAMES = ['Bias', 'R2', 'RMSE']


def round_half_up(x: np.ndarray, digits: int = 2) -> np.ndarray:
    """
    Round to a number of decimals with halves rounded up.

    Python's round() and numpy.round() round halves to even, which differs
    from the rounding used in reports (e.g. 0.125 -> 0.13).

    Args:
        x: Values to round
        digits: Number of decimal digits to keep

    Returns:
        Rounded values
    """
    factor = 10 ** digits
    return np.floor(np.asarray(x, dtype=float) * factor + 0.5) / factor


def regression_stat(yp: np.ndarray, y: np.ndarray) -> Dict[str, np.ndarray]:
    """
    Compute bias, R2 and RMSE of predictions against reference values.

    A constant reference gives a zero total variance and therefore an
    infinite or undefined R2; this is propagated, not trapped.

    Args:
        yp: Predicted values, one row per number of components (ncomp x n_obj)
        y: Reference values (n_obj,)

    Returns:
        Dictionary with 'bias', 'r2' and 'rmse', one value per row of yp
    """
    yp = np.atleast_2d(np.asarray(yp, dtype=float))
    y = np.asarray(y, dtype=float).reshape(-1)
    n_obj = len(y)

    if yp.shape[1] != n_obj:
        raise DimensionMismatch(
            "Predicted and reference values have different number of objects",
            context={'predicted': yp.shape[1], 'reference': n_obj}
        )

    with np.errstate(divide='ignore', invalid='ignore'):
        full_var = np.var(y, ddof=1) * (n_obj - 1)
        y_err = y - yp
        res_var = np.sum(y_err ** 2, axis=1)

        return {
            'bias': y_err.mean(axis=1),
            'r2': 1 - res_var / full_var,
            'rmse': np.sqrt(res_var / n_obj),
        }


def get_stat(yp: Dataset, y: Optional[Dataset]) -> Optional[Dataset]:
    """
    Build the performance statistics dataset for regression predictions.

    Args:
        yp: Dataset with predicted values (components x objects)
        y: Dataset with reference values (first variable is used), or None

    Returns:
        Dataset with variables Bias, R2 and RMSE and one object per
        component, or None if there are no reference values
    """
    if y is None:
        return None

    stat = regression_stat(yp.values, y.values[0])

    return Dataset(
        [stat['bias'], stat['r2'], stat['rmse']],
        STAT_NAMES,
        yp.var_names,
        'Performance statistics',
        ''
    )


def explained_variance(cumulative: np.ndarray) -> np.ndarray:
    """
    Individual explained variance from cumulative values.

    Args:
        cumulative: Cumulative explained variance for 1..k components

    Returns:
        Variance explained by each component separately
    """
    cumulative = np.asarray(cumulative, dtype=float)
    return np.diff(cumulative, prepend=0.0)


def cumulative_explained_variance(residual_ss: np.ndarray, total_ss: float) -> np.ndarray:
    """
    Cumulative explained variance (in percent) from residual sums of squares.

    Args:
        residual_ss: Residual sum of squares for 1..k components
        total_ss: Total sum of squares of the (preprocessed) data

    Returns:
        100 * (1 - residual_ss / total_ss)
    """
    with np.errstate(divide='ignore', invalid='ignore'):
        return 100 * (1 - np.asarray(residual_ss, dtype=float) / total_ss)
