"""
Block Dyson Suite - time-ordered integrals from block matrix exponentials.

This package computes time-ordered perturbation integrals (Dyson terms and
Fréchet derivatives of the matrix exponential) as off-diagonal blocks of the
exponential of a block upper-triangular matrix, and validates them against
independent quadrature and finite-difference references.

Main Features
-------------
- Named block topologies: first-order, symmetric and causal second-order
- General k-th order topologies with causal or symmetric ordering
- Matrix exponential with an explicit, checked precision contract
- Gauss-Legendre and finite-difference reference computations
- Accuracy / timing comparison and a benchmark harness
- Dyson series and Fisher information from block exponentials

Quick Start
-----------
>>> import numpy as np
>>> from block_dyson_suite import first_order, causal_second_order, symmetric_second_order
>>> from block_dyson_suite import random_hermitian
>>> rng = np.random.default_rng(0)
>>> H, E1, E2 = (random_hermitian(4, rng) for _ in range(3))

# First-order term int_0^1 e^{(1-s)H} V e^{sH} ds
>>> L = first_order(H, E1)

# Causal orderings sum to the symmetric second-order term
>>> C12 = causal_second_order(H, E1, E2)
>>> C21 = causal_second_order(H, E2, E1)
>>> np.allclose(C12 + C21, symmetric_second_order(H, E1, E2))
True

Examples
--------
Explicit topologies:

>>> from block_dyson_suite import block_generating_function
>>> block_generating_function(H, [E1, E2], {(0, 1): 0, (1, 2): 1})

Validation against quadrature:

>>> from block_dyson_suite.analysis import compare_methods
>>> report = compare_methods(H, [E1], 'first-order')
>>> [(m.method, m.max_abs_deviation) for m in report.methods]

Benchmarking:

>>> from block_dyson_suite import BenchmarkConfig
>>> from block_dyson_suite.analysis import run_benchmark, summarize, format_table
>>> records = run_benchmark('causal-second-order', BenchmarkConfig(sizes=(4, 8)))
>>> print(format_table(summarize(records)))
"""

__version__ = "0.1.0"

from .config import (
    EvaluatorConfig,
    QuadratureConfig,
    FiniteDifferenceConfig,
    BenchmarkConfig,
)

from .core import (
    # Errors
    DimensionMismatch,
    InvalidTopology,
    NumericalInstability,
    ConvergenceWarning,
    # Operators
    commutator,
    commutes,
    pauli_matrices,
    generalized_gell_mann_matrices,
    random_hermitian,
    # Topologies
    BlockTopology,
    first_order_topology,
    symmetric_second_order_topology,
    causal_second_order_topology,
    kth_order_topology,
    get_topology,
    # Assembly and evaluation
    assemble_block_matrix,
    evaluate_exponential,
    extract_block,
    # Generating functions
    block_generating_function,
    first_order,
    symmetric_second_order,
    causal_second_order,
    kth_order,
)

from .dyson import (
    dyson_term,
    dyson_series,
    fisher_information,
)

__all__ = [
    # Version
    '__version__',
    # Configuration
    'EvaluatorConfig',
    'QuadratureConfig',
    'FiniteDifferenceConfig',
    'BenchmarkConfig',
    # Errors
    'DimensionMismatch',
    'InvalidTopology',
    'NumericalInstability',
    'ConvergenceWarning',
    # Operators
    'commutator',
    'commutes',
    'pauli_matrices',
    'generalized_gell_mann_matrices',
    'random_hermitian',
    # Topologies
    'BlockTopology',
    'first_order_topology',
    'symmetric_second_order_topology',
    'causal_second_order_topology',
    'kth_order_topology',
    'get_topology',
    # Assembly and evaluation
    'assemble_block_matrix',
    'evaluate_exponential',
    'extract_block',
    # Generating functions
    'block_generating_function',
    'first_order',
    'symmetric_second_order',
    'causal_second_order',
    'kth_order',
    # Dyson series
    'dyson_term',
    'dyson_series',
    'fisher_information',
]
