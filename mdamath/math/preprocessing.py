"""
Preprocessing (autoscaling) for the mdamath engine.

Centering and scaling vectors are computed once from a calibration set and
then replayed verbatim on any later data, so a model never re-derives its
preprocessing from the data it is applied to.
"""

from enum import Enum
import numpy as np
from typing import Any, Optional, Tuple, Union

from mdamath.exceptions import ConfigError, DimensionMismatch
from mdamath.math.dataset import Dataset

Scaling = Optional[Union[bool, np.ndarray, list]]


class Autoscale(Enum):
    """Autoscaling options; the values match the codes used by the UI."""
    NONE = 0
    CENTER = 1
    SCALE = 2
    CENTER_SCALE = 3

    @property
    def center(self) -> bool:
        return self in (Autoscale.CENTER, Autoscale.CENTER_SCALE)

    @property
    def scale(self) -> bool:
        return self in (Autoscale.SCALE, Autoscale.CENTER_SCALE)

    @classmethod
    def parse(cls, value: Any) -> 'Autoscale':
        """
        Convert a code, a name or an Autoscale member to an Autoscale member.

        Accepted names are 'none', 'center', 'center only', 'scale',
        'scale only', 'center+scale' and 'center + scale'.

        Args:
            value: Value to convert

        Returns:
            Autoscale member
        """
        if isinstance(value, cls):
            return value

        if isinstance(value, str):
            key = value.strip().lower().replace(' ', '')
            aliases = {
                'none': cls.NONE,
                'center': cls.CENTER,
                'centeronly': cls.CENTER,
                'scale': cls.SCALE,
                'scaleonly': cls.SCALE,
                'center+scale': cls.CENTER_SCALE,
                'both': cls.CENTER_SCALE,
            }
            if key in aliases:
                return aliases[key]
            if key.isdigit():
                value = int(key)

        try:
            return cls(int(value))
        except (TypeError, ValueError):
            raise ConfigError("Unknown autoscale option", context={'value': value}) from None


def row_mean(values: np.ndarray) -> np.ndarray:
    """Mean of every row of a 2D array."""
    return np.asarray(values, dtype=float).mean(axis=1)


def row_sd(values: np.ndarray) -> np.ndarray:
    """Sample standard deviation (ddof=1) of every row of a 2D array."""
    return np.asarray(values, dtype=float).std(axis=1, ddof=1)


def _as_values(matrix: Union[Dataset, np.ndarray]) -> np.ndarray:
    if isinstance(matrix, Dataset):
        return matrix.values
    values = np.asarray(matrix, dtype=float)
    if values.ndim == 1:
        values = values.reshape(1, -1)
    return values


def _broadcast(vector: Any, n_var: int, what: str) -> np.ndarray:
    vector = np.asarray(vector, dtype=float).reshape(-1)
    if len(vector) != n_var:
        raise DimensionMismatch(
            f"{what} vector must have one value per variable",
            context={'expected': n_var, 'actual': len(vector)}
        )
    return vector.reshape(-1, 1)


def autoscale(matrix: Union[Dataset, np.ndarray],
              center: Scaling = False,
              scale: Scaling = False) -> np.ndarray:
    """
    Center and/or scale every variable (row) of a matrix.

    ``center`` and ``scale`` are each either False/None (no-op), True
    (compute the row mean / row sample standard deviation from this matrix)
    or an explicit per-variable vector, e.g. values frozen at calibration.

    A zero scale value gives Inf/NaN in the output; this is not trapped.

    Args:
        matrix: Dataset or 2D array (variables x objects)
        center: Centering option
        scale: Scaling option

    Returns:
        New array with (X - center) / scale
    """
    values = _as_values(matrix)
    n_var = values.shape[0]

    if center is None or isinstance(center, (bool, np.bool_)):
        m = row_mean(values).reshape(-1, 1) if center else np.zeros((n_var, 1))
    else:
        m = _broadcast(center, n_var, 'Center')

    if scale is None or isinstance(scale, (bool, np.bool_)):
        s = row_sd(values).reshape(-1, 1) if scale else np.ones((n_var, 1))
    else:
        s = _broadcast(scale, n_var, 'Scale')

    with np.errstate(divide='ignore', invalid='ignore'):
        return (values - m) / s


def unscale(values: np.ndarray,
            center: Optional[np.ndarray] = None,
            scale: Optional[np.ndarray] = None) -> np.ndarray:
    """
    Invert :func:`autoscale` for previously frozen vectors.

    Args:
        values: Scaled 2D array (variables x objects)
        center: Centering vector used for scaling, or None
        scale: Scaling vector used for scaling, or None

    Returns:
        New array with values * scale + center
    """
    out = np.array(values, dtype=float)
    if scale is not None:
        out = out * np.asarray(scale, dtype=float).reshape(-1, 1)
    if center is not None:
        out = out + np.asarray(center, dtype=float).reshape(-1, 1)
    return out


def scaling_values(matrix: Union[Dataset, np.ndarray],
                   mode: Autoscale) -> Tuple[Optional[np.ndarray], Optional[np.ndarray]]:
    """
    Compute the centering and scaling vectors for an autoscale mode.

    Args:
        matrix: Calibration data (variables x objects)
        mode: Autoscale option

    Returns:
        Tuple (center_values, scale_values); an entry is None when that
        step is disabled by the mode
    """
    values = _as_values(matrix)
    center_values = row_mean(values) if mode.center else None
    scale_values = row_sd(values) if mode.scale else None
    return center_values, scale_values
