"""
Exception classes for the mdamath package.

Structural problems (shapes that do not line up, unknown names, invalid
cross-validation settings) are raised as subclasses of MDAError. Numerical
degeneracies such as zero variance or singular matrices are not trapped here;
they propagate as NaN/Inf or as the linear algebra library's own error.
"""

from typing import Any, Dict, Optional


class MDAError(Exception):
    """
    Base class for all mdamath errors.

    Attributes:
        message: The primary error message
        details: Additional free-text details
        context: Values that help locating the problem (names, shapes, ...)
    """

    def __init__(self,
                 message: str,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details
        self.context = context or {}

        full_message = message
        if details:
            full_message += f" ({details})"
        if self.context:
            context_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            full_message += f" [{context_str}]"

        super().__init__(full_message)

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.args[0] if self.args else self.message


class NotFoundError(MDAError, KeyError):
    """Raised when a variable or object name/index cannot be resolved."""


class DimensionMismatch(MDAError, ValueError):
    """Raised when the shapes of two datasets or vectors are not consistent."""


class ParameterError(MDAError, ValueError):
    """Raised when a model parameter is outside of its valid range."""


class NotCalibratedError(MDAError, RuntimeError):
    """Raised when a model is applied before it was calibrated."""


class CrossValidationError(MDAError, ValueError):
    """Base class for cross-validation planning errors."""


class InvalidMethodError(CrossValidationError):
    """Raised for an unknown cross-validation method name."""


class MissingReferenceError(CrossValidationError):
    """Raised when a method needs reference (response) values but none were given."""


class ConfigError(MDAError, ValueError):
    """Raised for unsupported configuration files or values."""
