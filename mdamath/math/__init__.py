"""
Numerical engine of mdamath.
"""

from mdamath.math.dataset import Dataset, IndexHash
from mdamath.math.preprocessing import Autoscale, autoscale
from mdamath.math.crossval import Crossval, CVMethod, Segment
from mdamath.math.results import PCAResult, RegressionResult, ResultKind
from mdamath.math.pca import PCAModel, nipals
from mdamath.math.mlr import MLRModel
