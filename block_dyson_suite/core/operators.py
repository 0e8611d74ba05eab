"""
Operators used as generators and perturbations of block exponentials.

This module provides:
- Validation of user-supplied operators (square, matching dimension)
- Commutators, used to decide when causal orderings coincide
- Pauli and generalized Gell-Mann bases for structured test operators
- Random Hermitian sampling with a bounded spectral norm

References
----------
- Bertlmann & Krammer, "Bloch vectors for qudits", J. Phys. A 41, 235303 (2008)
"""

from typing import List, Optional, Sequence
import numpy as np

from .errors import DimensionMismatch


# =============================================================================
# Validation
# =============================================================================

def as_operator(A, name: str = "operator") -> np.ndarray:
    """
    Return a copy of A as a square 2D array.

    Integer and boolean inputs are promoted to float so the exponential is
    computed in floating point.

    Raises
    ------
    DimensionMismatch
        If A is not a non-empty square matrix
    """
    op = np.array(A, copy=True)
    if op.ndim == 0:
        op = op.reshape(1, 1)
    if op.ndim != 2 or op.shape[0] != op.shape[1]:
        raise DimensionMismatch(f"{name} must be a square matrix, got shape {op.shape}")
    if op.shape[0] == 0:
        raise DimensionMismatch(f"{name} must have dimension at least 1, got shape {op.shape}")
    if not np.issubdtype(op.dtype, np.inexact):
        op = op.astype(float)
    return op


def check_dimensions(H: np.ndarray, perturbations: Sequence) -> List[np.ndarray]:
    """
    Validate perturbations against the base operator H.

    Parameters
    ----------
    H : np.ndarray
        Validated base operator, shape (n, n)
    perturbations : sequence of array_like
        Perturbation operators

    Returns
    -------
    list of np.ndarray
        Validated copies of the perturbations

    Raises
    ------
    DimensionMismatch
        If any perturbation's shape differs from H's
    """
    ops = []
    for idx, V in enumerate(perturbations):
        op = as_operator(V, name=f"perturbation {idx}")
        if op.shape != H.shape:
            raise DimensionMismatch(
                f"perturbation {idx} has shape {op.shape}, "
                f"base operator has shape {H.shape}"
            )
        ops.append(op)
    return ops


def commutator(A: np.ndarray, B: np.ndarray) -> np.ndarray:
    """Compute the commutator [A, B] = AB - BA."""
    return A @ B - B @ A


def commutes(A: np.ndarray, B: np.ndarray, atol: float = 1e-12) -> bool:
    """True if [A, B] vanishes to within atol (max-abs entry)."""
    return bool(np.max(np.abs(commutator(A, B)), initial=0.0) <= atol)


# =============================================================================
# Bases
# =============================================================================

SIGMA_X = np.array([[0, 1], [1, 0]], dtype=complex)
SIGMA_Y = np.array([[0, -1j], [1j, 0]], dtype=complex)
SIGMA_Z = np.array([[1, 0], [0, -1]], dtype=complex)

PAULI_MATRICES = [SIGMA_X, SIGMA_Y, SIGMA_Z]


def pauli_matrices() -> List[np.ndarray]:
    """Return the three Pauli matrices [sigma_x, sigma_y, sigma_z]."""
    return [m.copy() for m in PAULI_MATRICES]


def generalized_gell_mann_matrices(d: int) -> List[np.ndarray]:
    """
    Return the d^2 - 1 generalized Gell-Mann matrices for SU(d).

    The generators consist of:
    - d(d-1)/2 symmetric matrices (generalized sigma_x)
    - d(d-1)/2 antisymmetric matrices (generalized sigma_y)
    - d-1 diagonal matrices (generalized sigma_z)

    Normalized such that Tr(T_a T_b) = 2 delta_ab.

    Parameters
    ----------
    d : int
        Dimension

    Returns
    -------
    list of np.ndarray
        d^2 - 1 traceless Hermitian matrices
    """
    if d < 2:
        raise ValueError("Dimension must be at least 2")

    if d == 2:
        return pauli_matrices()

    matrices = []

    for j in range(d):
        for k in range(j + 1, d):
            mat = np.zeros((d, d), dtype=complex)
            mat[j, k] = 1
            mat[k, j] = 1
            matrices.append(mat)

    for j in range(d):
        for k in range(j + 1, d):
            mat = np.zeros((d, d), dtype=complex)
            mat[j, k] = -1j
            mat[k, j] = 1j
            matrices.append(mat)

    # sqrt(2/(l(l+1))) * diag(1, ..., 1, -l, 0, ..., 0)
    for l in range(1, d):
        mat = np.zeros((d, d), dtype=complex)
        norm = np.sqrt(2 / (l * (l + 1)))
        for j in range(l):
            mat[j, j] = norm
        mat[l, l] = -l * norm
        matrices.append(mat)

    return matrices


# =============================================================================
# Random sampling
# =============================================================================

def random_hermitian(n: int, rng: Optional[np.random.Generator] = None,
                     norm: float = 1.0, real: bool = False) -> np.ndarray:
    """
    Draw a random Hermitian matrix with spectral norm equal to `norm`.

    Entries are Gaussian (GUE-like); with real=True the result is real
    symmetric (GOE-like).

    Parameters
    ----------
    n : int
        Dimension
    rng : np.random.Generator, optional
        Random generator; a fresh default_rng() if None
    norm : float
        Target spectral norm (0 gives the zero matrix)
    real : bool
        Draw a real symmetric matrix instead

    Returns
    -------
    np.ndarray
        n x n Hermitian matrix
    """
    if n < 1:
        raise ValueError(f"Dimension must be at least 1, got {n}")
    if rng is None:
        rng = np.random.default_rng()

    A = rng.standard_normal((n, n))
    if not real:
        A = A + 1j * rng.standard_normal((n, n))
    H = (A + A.conj().T) / 2

    scale = np.linalg.norm(H, 2)
    if scale == 0:
        return H
    return H * (norm / scale)


def random_perturbations(n: int, count: int, rng: Optional[np.random.Generator] = None,
                         norm: float = 1.0, real: bool = False) -> List[np.ndarray]:
    """Draw `count` independent random Hermitian perturbations of dimension n."""
    if rng is None:
        rng = np.random.default_rng()
    return [random_hermitian(n, rng, norm=norm, real=real) for _ in range(count)]
