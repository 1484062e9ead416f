"""
Exceptions and warnings raised by the inversion pipeline.
"""


class InversionError(Exception):
    """Base class for all inverse-seabed errors."""


class InvalidParameter(InversionError, ValueError):
    """A physical parameter is outside its valid domain."""


class ShapeMismatch(InversionError, ValueError):
    """Depth, frequency and measurement arrays differ in length."""


class EmptyDataset(InversionError, ValueError):
    """The measurement table has no records."""


class SolverFailure(InversionError, RuntimeError):
    """The propagation solver could not produce a transmission loss."""


class InferenceFailure(InversionError, RuntimeError):
    """The inference engine produced no usable posterior."""


class InferenceNonconvergence(UserWarning):
    """Inference finished but the result may not have converged."""
