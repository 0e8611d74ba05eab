"""
Core module for block generating functions.

This module exports the block topologies, the assembler, the exponential
evaluator, the block extractor and the error types.
"""

from .errors import (
    DimensionMismatch,
    InvalidTopology,
    NumericalInstability,
    ConvergenceWarning,
)

from .operators import (
    SIGMA_X,
    SIGMA_Y,
    SIGMA_Z,
    as_operator,
    check_dimensions,
    commutator,
    commutes,
    pauli_matrices,
    generalized_gell_mann_matrices,
    random_hermitian,
    random_perturbations,
)

from .topology import (
    BlockTopology,
    first_order_topology,
    symmetric_second_order_topology,
    causal_second_order_topology,
    kth_order_topology,
    get_topology,
    is_symmetric_order,
    NAMED_TOPOLOGIES,
)

from .assembler import (
    assemble_block_matrix,
    block_view,
)

from .evaluator import (
    evaluate_exponential,
    check_block_structure,
)

from .extractor import (
    extract_block,
    block_generating_function,
    first_order,
    symmetric_second_order,
    causal_second_order,
    kth_order,
)

__all__ = [
    # Errors
    'DimensionMismatch',
    'InvalidTopology',
    'NumericalInstability',
    'ConvergenceWarning',
    # Operators
    'SIGMA_X',
    'SIGMA_Y',
    'SIGMA_Z',
    'as_operator',
    'check_dimensions',
    'commutator',
    'commutes',
    'pauli_matrices',
    'generalized_gell_mann_matrices',
    'random_hermitian',
    'random_perturbations',
    # Topologies
    'BlockTopology',
    'first_order_topology',
    'symmetric_second_order_topology',
    'causal_second_order_topology',
    'kth_order_topology',
    'get_topology',
    'is_symmetric_order',
    'NAMED_TOPOLOGIES',
    # Assembly and evaluation
    'assemble_block_matrix',
    'block_view',
    'evaluate_exponential',
    'check_block_structure',
    # Generating functions
    'extract_block',
    'block_generating_function',
    'first_order',
    'symmetric_second_order',
    'causal_second_order',
    'kth_order',
]
