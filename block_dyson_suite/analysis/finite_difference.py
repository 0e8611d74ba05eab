"""
Finite-difference reference for Fréchet derivatives of the matrix exponential,
and closed-form scalar results.

For directions E_1, ..., E_m the mixed derivative

    d^m / (d eps_1 ... d eps_m) exp(H + sum_i eps_i E_i) |_{eps=0}

equals the sum over all m! insertion orders of the ordered simplex
integrals, i.e. the symmetric m-th order block. It is approximated by the
central difference over all 2^m sign patterns,

    D_h = (2h)^{-m} sum_{s in {+1,-1}^m} (prod_i s_i) exp(H + h sum_i s_i E_i)

which has error O(h^2). Richardson extrapolation (4 D_{h/2} - D_h) / 3
removes the leading term.
"""

import itertools
import logging
import warnings
from typing import Sequence

import numpy as np
from scipy.linalg import expm

from ..core.errors import ConvergenceWarning
from ..core.operators import as_operator, check_dimensions
from .quadrature import ReferenceResult

log = logging.getLogger(__name__)


def central_difference(H: np.ndarray, directions: Sequence[np.ndarray], step: float) -> np.ndarray:
    """Mixed central difference of exp at H over all 2^m sign patterns."""
    m = len(directions)
    dtype = np.result_type(H, *directions, float)
    total = np.zeros(H.shape, dtype=dtype)
    for signs in itertools.product((1.0, -1.0), repeat=m):
        shift = sum(s * E for s, E in zip(signs, directions))
        total = total + np.prod(signs) * expm(H + step * shift)
    return total / (2.0 * step) ** m


def finite_difference_reference(H, directions: Sequence, step: float = 1e-3,
                                richardson: bool = True,
                                threshold: float = 1e-4) -> ReferenceResult:
    """
    Approximate the m-th mixed Fréchet derivative of exp by finite differences.

    Parameters
    ----------
    H : array_like, shape (n, n)
        Base operator
    directions : sequence of array_like
        Perturbation directions E_1, ..., E_m (m >= 1). m = 1 gives the
        first-order term; m = 2 gives the symmetric second-order term.
    step : float
        Step size h
    richardson : bool
        Combine steps h and h/2 to cancel the O(h^2) error
    threshold : float
        Maximum tolerated deviation between the two step levels before a
        ConvergenceWarning is issued

    Returns
    -------
    ReferenceResult
        value, error_estimate, converged flag, method name and parameters

    Notes
    -----
    Roundoff grows like eps_machine / h^m, so higher orders need larger
    steps. The causal (single ordering) terms are not derivatives of exp
    and have no finite-difference reference.
    """
    if step <= 0:
        raise ValueError(f"step must be positive, got {step}")
    H = as_operator(H, name="base operator")
    ops = check_dimensions(H, directions)
    if not ops:
        raise ValueError("At least one direction is required")

    coarse = central_difference(H, ops, step)
    fine = central_difference(H, ops, step / 2)

    if richardson:
        value = (4.0 * fine - coarse) / 3.0
        # Level difference bounds the extrapolated error from above
        error = float(np.max(np.abs(fine - coarse))) / 3.0
    else:
        value = fine
        error = float(np.max(np.abs(fine - coarse)))

    converged = error <= threshold
    parameters = {'step': step, 'order': len(ops), 'richardson': richardson}
    log.debug("finite difference order %d, h=%.1e: level deviation %.3e",
              len(ops), step, error)

    if not converged:
        warnings.warn(ConvergenceWarning(
            f"central differences with h={step:.1e} and h/2 differ by {error:.3e} "
            f"(threshold {threshold:.3e}); adjust the step size",
            deviation=error,
        ), stacklevel=2)

    return ReferenceResult(value, error, converged, 'finite-difference', parameters)


def scalar_divided_difference(h1: complex, h2: complex, rtol: float = 1e-8) -> complex:
    """
    Divided difference (e^{h1} - e^{h2}) / (h1 - h2) of the exponential.

    This is the (0, 1) entry of exp([[h1, 1], [0, h2]]). For h1 close to h2
    the form e^{h2} (e^{d} - 1) / d with d = h1 - h2 is used, which tends
    to e^{h} at h1 = h2 without cancellation.
    """
    d = h1 - h2
    if abs(d) <= rtol * max(1.0, abs(h1), abs(h2)):
        # Taylor series of (e^d - 1)/d = 1 + d/2 + d^2/6 + ...
        return np.exp(h2) * (1.0 + d / 2.0 + d * d / 6.0)
    return np.exp(h2) * np.expm1(d) / d


def scalar_first_order(h: complex, v: complex) -> complex:
    """Closed-form first-order term for n = 1: L(h, v) = v e^h."""
    return v * scalar_divided_difference(h, h)
