"""
Block extraction and the generating-function driver.

The driver chains assembler -> evaluator -> extractor:

    M = assemble_block_matrix(H, perturbations, topology)
    E = evaluate_exponential(M)
    L = E[block 0, block k]

Every call is a pure function of its inputs.
"""

from typing import Optional, Sequence
import numpy as np

from ..config import EvaluatorConfig
from .assembler import assemble_block_matrix, block_view
from .evaluator import evaluate_exponential
from .operators import as_operator
from .topology import get_topology, kth_order_topology


def extract_block(expM: np.ndarray, n: int, k: int, row: int = 0) -> np.ndarray:
    """
    Return the n x n block at (row, k) of an exponentiated block matrix.

    Parameters
    ----------
    expM : np.ndarray
        (N n) x (N n) matrix
    n : int
        Block size
    k : int
        Block column (the order of the generating-function term)
    row : int
        Block row, 0 for the generating-function value

    Returns
    -------
    np.ndarray
        Copy of the requested block

    Raises
    ------
    IndexError
        If n does not divide the matrix or (row, k) is out of range
    """
    blocks = block_view(np.asarray(expM), n)
    N = blocks.shape[0]
    if not (0 <= k < N and 0 <= row < N):
        raise IndexError(f"Block ({row}, {k}) out of range for a {N}-block matrix")
    return blocks[row, k].copy()


def block_generating_function(H, perturbations: Sequence, topology='first-order',
                              config: Optional[EvaluatorConfig] = None,
                              strict: bool = False) -> np.ndarray:
    """
    Compute a generating-function value exp(M)[0, k] for a topology.

    Parameters
    ----------
    H : array_like, shape (n, n)
        Base operator
    perturbations : sequence of array_like
        Perturbation operators referenced by the topology
    topology : str, mapping or BlockTopology
        'first-order', 'symmetric-second-order', 'causal-second-order', an
        explicit {(i, j): index} mapping, or a BlockTopology
    config : EvaluatorConfig, optional
        Evaluator tolerances
    strict : bool
        Raise NumericalInstability instead of warning

    Returns
    -------
    np.ndarray
        n x n block at (0, topology.target)
    """
    H = as_operator(H, name="base operator")
    topo = get_topology(topology)
    M = assemble_block_matrix(H, perturbations, topo)
    n = H.shape[0]
    expM = evaluate_exponential(M, block_size=n, config=config, strict=strict, H=H)
    return extract_block(expM, n, topo.target)


def first_order(H, V, **kwargs) -> np.ndarray:
    """
    First-order term int_0^1 e^{(1-s)H} V e^{sH} ds = L(H, V).

    This is the Fréchet derivative of exp at H in direction V.
    """
    return block_generating_function(H, [V], 'first-order', **kwargs)


def symmetric_second_order(H, E1, E2, **kwargs) -> np.ndarray:
    """Second Fréchet derivative D^2 exp(H)[E1, E2], symmetric in E1, E2."""
    return block_generating_function(H, [E1, E2], 'symmetric-second-order', **kwargs)


def causal_second_order(H, E1, E2, **kwargs) -> np.ndarray:
    """Time-ordered second-order term with E1 inserted before E2."""
    return block_generating_function(H, [E1, E2], 'causal-second-order', **kwargs)


def kth_order(H, perturbations: Sequence, ordering: str = 'causal', **kwargs) -> np.ndarray:
    """
    General k-th order term for k = len(perturbations).

    With ordering='causal' the perturbations are inserted in the given order;
    with ordering='symmetric' all k! orderings are summed, giving the k-th
    mixed Fréchet derivative of exp at H.
    """
    topo = kth_order_topology(len(perturbations), ordering)
    return block_generating_function(H, perturbations, topo, **kwargs)
