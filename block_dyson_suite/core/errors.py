"""
Error and warning types for block generating-function computations.

Structural problems with the inputs (operator shapes, block topologies) are
fatal and raised immediately. Numerical concerns are issued as warnings so
the caller still receives the attempted result and can decide whether to
rescale, refine or switch precision.
"""


class DimensionMismatch(ValueError):
    """Operators with inconsistent or non-square shapes were combined."""


class InvalidTopology(ValueError):
    """A block topology is not strictly block upper-triangular or references
    a perturbation that was not supplied."""


class NumericalInstability(RuntimeWarning):
    """
    The exponential evaluator could not guarantee its error tolerance.

    Parameters
    ----------
    message : str
        Description of the failed check
    result : np.ndarray, optional
        The attempted exponential, so the caller can inspect it
    """

    def __init__(self, message, result=None):
        super().__init__(message)
        self.result = result


class ConvergenceWarning(RuntimeWarning):
    """
    A reference computation did not stabilize between successive refinements.

    Parameters
    ----------
    message : str
        Description of the refinement that failed
    deviation : float, optional
        Maximum deviation between the two refinement levels
    """

    def __init__(self, message, deviation=None):
        super().__init__(message)
        self.deviation = deviation
