"""
Log-partition derivatives and the Fisher information matrix.

For an exponential family of density operators

    rho(theta) = exp(H + sum_a theta_a G_a) / Z(theta),
    Z(theta) = Tr exp(H + sum_a theta_a G_a)

the derivatives of log Z at theta = 0 follow from Fréchet derivatives of
exp:

    d_a Z      = Tr L(H, G_a)              (first-order block)
    d_a d_b Z  = Tr D^2 exp(H)[G_a, G_b]   (symmetric second-order block)

    d_a log Z         = d_a Z / Z
    F_ab = d_a d_b log Z = d_a d_b Z / Z - d_a Z d_b Z / Z^2

F is the Fisher information matrix of the family.
"""

from typing import Optional, Sequence
import numpy as np
from scipy.linalg import expm

from ..core.extractor import first_order, symmetric_second_order
from ..core.operators import as_operator, check_dimensions


def log_partition(H, generators: Sequence, theta: Optional[Sequence[float]] = None) -> float:
    """log Tr exp(H + sum_a theta_a G_a)."""
    H = as_operator(H, name="base operator")
    gens = check_dimensions(H, generators)
    if theta is None:
        theta = np.zeros(len(gens))
    if len(theta) != len(gens):
        raise ValueError(f"Expected {len(gens)} parameters, got {len(theta)}")
    X = H + sum(th * G for th, G in zip(theta, gens))
    return float(np.log(np.real(np.trace(expm(X)))))


def log_partition_gradient(H, generators: Sequence, **kwargs) -> np.ndarray:
    """Gradient of log Z at theta = 0 (the expectations Tr(rho G_a))."""
    H = as_operator(H, name="base operator")
    gens = check_dimensions(H, generators)
    Z = np.trace(expm(H))
    grad = np.array([np.trace(first_order(H, G, **kwargs)) for G in gens]) / Z
    return np.real_if_close(grad, tol=1000)


def fisher_information(H, generators: Sequence, **kwargs) -> np.ndarray:
    """
    Fisher information matrix F_ab = d_a d_b log Z at theta = 0.

    Parameters
    ----------
    H : array_like, shape (n, n)
        Base operator (e.g. -beta times a Hamiltonian)
    generators : sequence of array_like
        Parameter directions G_a
    **kwargs
        Passed to the block generating functions (config, strict)

    Returns
    -------
    np.ndarray
        Symmetric matrix of shape (len(generators), len(generators)); real
        for Hermitian inputs
    """
    H = as_operator(H, name="base operator")
    gens = check_dimensions(H, generators)
    p = len(gens)

    Z = np.trace(expm(H))
    dZ = np.array([np.trace(first_order(H, G, **kwargs)) for G in gens])

    d2Z = np.zeros((p, p), dtype=complex)
    for a in range(p):
        for b in range(a, p):
            d2Z[a, b] = np.trace(symmetric_second_order(H, gens[a], gens[b], **kwargs))
            d2Z[b, a] = d2Z[a, b]

    F = d2Z / Z - np.outer(dZ, dZ) / Z ** 2
    return np.real_if_close(F, tol=1000)
