"""
Result types returned by the mdamath models.

Results are a tagged variant: every result has a ``kind`` telling which of
the fields below it carries. Models producing them share the calibrate /
predict / crossvalidate interface described by :class:`Model`.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Protocol, Union, runtime_checkable

from mdamath.math.dataset import Dataset
from mdamath.math.stats import get_stat


class ResultKind(Enum):
    PCA = 'pca'
    REGRESSION = 'regression'


@dataclass
class PCAResult:
    """
    Outcome of applying a PCA model to a dataset.

    Attributes:
        scores: Components x objects (None for cross-validation results)
        t2: Score distance for 1..k components (components x objects)
        q: Squared orthogonal distance for 1..k components (components x objects)
        variance: Two variables, 'Individual' and 'Cumulative', one object
            per component, in percent
        info: Short description, e.g. 'Calibration results'
    """
    scores: Optional[Dataset]
    t2: Dataset
    q: Dataset
    variance: Dataset
    info: str = ''
    kind: ResultKind = field(default=ResultKind.PCA, init=False)

    @property
    def ncomp(self) -> int:
        return self.t2.n_var

    @property
    def expvar(self):
        """Individual explained variance per component."""
        return self.variance.values[0]

    @property
    def cumexpvar(self):
        """Cumulative explained variance per number of components."""
        return self.variance.values[1]


@dataclass
class RegressionResult:
    """
    Predictions of a regression model, with statistics if a reference is known.

    Attributes:
        yp: Predicted values, one variable per number of components
        y: Reference values, or None
        name: Short label, e.g. 'CV'
        stat: Bias/R2/RMSE dataset computed from yp and y (None without y)
    """
    yp: Dataset
    y: Optional[Dataset] = None
    name: Optional[str] = None
    stat: Optional[Dataset] = field(default=None, init=False)
    kind: ResultKind = field(default=ResultKind.REGRESSION, init=False)

    def __post_init__(self):
        self.stat = get_stat(self.yp, self.y)

    @property
    def ncomp(self) -> int:
        return self.yp.n_var


Result = Union[PCAResult, RegressionResult]


@runtime_checkable
class Model(Protocol):
    """Interface shared by the PCA and regression models."""

    calres: Optional[Result]
    cvres: Optional[Result]

    @classmethod
    def from_config(cls, config: Any) -> 'Model':
        ...

    def calibrate(self, *args: Any, **kwargs: Any) -> Any:
        ...

    def predict(self, *args: Any, **kwargs: Any) -> Result:
        ...

    def crossvalidate(self, *args: Any, **kwargs: Any) -> Optional[Result]:
        ...
