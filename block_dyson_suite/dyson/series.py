"""
Dyson series of a time-evolution operator via block exponentials.

For U(t) = exp(-i (H + V) t) the k-th Dyson term is the time-ordered
integral

    U_k(t) = (-i)^k int_{0 <= t_1 <= ... <= t_k <= t}
             e^{-iH(t - t_k)} V e^{-iH(t_k - t_{k-1})} V ... V e^{-iH t_1}

which is the causal k-th order block generating function with base
A = -iHt and every perturbation equal to B = -iVt. A single exponential
of the (K+1)-block causal chain yields all terms up to order K at once:
block (0, k) of exp(M) is U_k(t).
"""

from typing import List
import numpy as np

from ..core.assembler import assemble_block_matrix
from ..core.evaluator import evaluate_exponential
from ..core.extractor import extract_block
from ..core.operators import as_operator, check_dimensions
from ..core.topology import kth_order_topology


def dyson_terms(H, V, max_order: int, t: float = 1.0, **kwargs) -> List[np.ndarray]:
    """
    Dyson terms U_0(t), ..., U_K(t) of exp(-i (H + V) t).

    Parameters
    ----------
    H : array_like, shape (n, n)
        Unperturbed Hamiltonian
    V : array_like, shape (n, n)
        Perturbation
    max_order : int
        Highest order K (0 returns only exp(-iHt))
    t : float
        Evolution time
    **kwargs
        Passed to evaluate_exponential (config, strict)

    Returns
    -------
    list of np.ndarray
        K + 1 matrices, U_k(t) at index k
    """
    if max_order < 0:
        raise ValueError(f"max_order must be non-negative, got {max_order}")

    H = as_operator(H, name="Hamiltonian")
    (V,) = check_dimensions(H, [V])
    n = H.shape[0]
    A = -1j * t * H
    B = -1j * t * V

    if max_order == 0:
        return [evaluate_exponential(A, **kwargs)]

    topo = kth_order_topology(max_order, 'causal')
    M = assemble_block_matrix(A, [B] * max_order, topo)
    expM = evaluate_exponential(M, block_size=n, H=A, **kwargs)
    return [extract_block(expM, n, k) for k in range(max_order + 1)]


def dyson_term(H, V, order: int, t: float = 1.0, **kwargs) -> np.ndarray:
    """Single Dyson term U_order(t) of exp(-i (H + V) t)."""
    return dyson_terms(H, V, order, t, **kwargs)[order]


def dyson_series(H, V, max_order: int, t: float = 1.0, **kwargs) -> np.ndarray:
    """
    Truncated Dyson series sum_{k <= K} U_k(t).

    Converges to exp(-i (H + V) t) as K grows; the truncation error is
    bounded by (||V|| t)^{K+1} / (K+1)! for Hermitian H.
    """
    return sum(dyson_terms(H, V, max_order, t, **kwargs))
