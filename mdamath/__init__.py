"""
mdamath package for multivariate data analysis.

Provides a dataset abstraction with named variables and objects,
autoscaling, PCA (NIPALS), Multiple Linear Regression and
cross-validation.
"""

__version__ = '0.1.0'

from mdamath.math.dataset import Dataset
from mdamath.math.crossval import Crossval
from mdamath.math.pca import PCAModel
from mdamath.math.mlr import MLRModel
from mdamath.components.config import Config, ConfigManager
