"""
Assembly of block upper-triangular generating-function matrices.
"""

from typing import Sequence
import numpy as np

from .operators import as_operator, check_dimensions
from .topology import BlockTopology, get_topology


def assemble_block_matrix(H, perturbations: Sequence, topology='first-order') -> np.ndarray:
    """
    Build the dense (k+1)n x (k+1)n block matrix for a topology.

    Every diagonal block is H; block (i, j) of the topology holds the sum of
    the referenced perturbations; all other blocks are zero.

    Parameters
    ----------
    H : array_like, shape (n, n)
        Base operator
    perturbations : sequence of array_like
        Perturbation operators, each (n, n), indexed by the topology
    topology : str, mapping or BlockTopology
        Block layout (see core.topology)

    Returns
    -------
    np.ndarray
        Assembled matrix, dtype the common type of H and the perturbations

    Raises
    ------
    DimensionMismatch
        If H is not square or a perturbation's shape differs from H's
    InvalidTopology
        If the topology is malformed or references a missing perturbation

    Examples
    --------
    >>> M = assemble_block_matrix(H, [E1, E2], 'causal-second-order')
    >>> M.shape == (3 * H.shape[0], 3 * H.shape[0])
    True
    """
    H = as_operator(H, name="base operator")
    ops = check_dimensions(H, perturbations)
    topo: BlockTopology = get_topology(topology)
    topo.validate(len(ops))

    n = H.shape[0]
    N = topo.n_blocks
    dtype = np.result_type(H, *ops)
    M = np.zeros((N * n, N * n), dtype=dtype)

    for b in range(N):
        M[b * n:(b + 1) * n, b * n:(b + 1) * n] = H

    for (i, j), indices in topo.entries.items():
        block = M[i * n:(i + 1) * n, j * n:(j + 1) * n]
        for idx in indices:
            block += ops[idx]

    return M


def block_view(M: np.ndarray, n: int) -> np.ndarray:
    """
    View an (N n) x (N n) matrix as an (N, N, n, n) array of blocks.

    Raises
    ------
    IndexError
        If M is not square or its size is not a multiple of n
    """
    if M.ndim != 2 or M.shape[0] != M.shape[1]:
        raise IndexError(f"Expected a square matrix, got shape {M.shape}")
    if n < 1 or M.shape[0] % n != 0:
        raise IndexError(f"Matrix of size {M.shape[0]} does not split into blocks of size {n}")
    N = M.shape[0] // n
    return M.reshape(N, n, N, n).swapaxes(1, 2)
