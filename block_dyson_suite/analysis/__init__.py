"""
Analysis module for block generating functions.

This module exports the independent reference computations (quadrature and
finite differences), the method comparator and the benchmark harness.
"""

from .quadrature import (
    ReferenceResult,
    gauss_legendre_nodes,
    quadrature_reference,
    quadrature_convergence,
)

from .finite_difference import (
    central_difference,
    finite_difference_reference,
    scalar_divided_difference,
    scalar_first_order,
)

from .comparator import (
    MethodReport,
    ComparisonReport,
    deviation,
    stability_check,
    compare_methods,
)

from .benchmark import (
    BenchmarkRecord,
    SummaryRow,
    random_sample,
    run_benchmark,
    summarize,
    format_table,
)

from .visualization import (
    plot_benchmark,
    plot_convergence,
)

__all__ = [
    # References
    'ReferenceResult',
    'gauss_legendre_nodes',
    'quadrature_reference',
    'quadrature_convergence',
    'central_difference',
    'finite_difference_reference',
    'scalar_divided_difference',
    'scalar_first_order',
    # Comparison
    'MethodReport',
    'ComparisonReport',
    'deviation',
    'stability_check',
    'compare_methods',
    # Benchmarking
    'BenchmarkRecord',
    'SummaryRow',
    'random_sample',
    'run_benchmark',
    'summarize',
    'format_table',
    'plot_benchmark',
    'plot_convergence',
]
