"""
Plotting utilities for benchmark and convergence results.
"""

from typing import Optional, Sequence
import numpy as np

# Optional matplotlib import
try:
    import matplotlib.pyplot as plt
    HAS_MATPLOTLIB = True
except ImportError:
    HAS_MATPLOTLIB = False


def _check_matplotlib():
    """Check if matplotlib is available."""
    if not HAS_MATPLOTLIB:
        raise ImportError("matplotlib is required for visualization. "
                          "Install with: pip install matplotlib")


def plot_benchmark(
    rows: Sequence,
    ax: Optional['plt.Axes'] = None,
    quantity: str = 'median_time',
    label_prefix: str = ''
    ) -> 'plt.Axes':
    """
    Plot a summary quantity against matrix size, one line per method.

    Parameters
    ----------
    rows : sequence of SummaryRow
        Output of analysis.benchmark.summarize
    ax : plt.Axes, optional
        Matplotlib axes to plot on. If None, creates new figure.
    quantity : str
        SummaryRow field to plot, e.g. 'median_time' or 'max_abs_deviation'
    label_prefix : str
        Prepended to each legend entry

    Returns
    -------
    plt.Axes
        The matplotlib axes object
    """
    _check_matplotlib()

    if ax is None:
        fig, ax = plt.subplots()

    methods = sorted({r.method for r in rows})
    for method in methods:
        sel = sorted((r for r in rows if r.method == method), key=lambda r: r.n)
        sizes = [r.n for r in sel]
        values = [getattr(r, quantity) for r in sel]
        ax.semilogy(sizes, np.abs(values), 'o-', label=f'{label_prefix}{method}')

    ax.set_xlabel('Operator dimension n')
    ax.set_ylabel(quantity.replace('_', ' '))
    ax.legend()
    ax.grid(True, alpha=0.3)

    return ax


def plot_convergence(
    point_counts: Sequence[int],
    deviations: np.ndarray,
    ax: Optional['plt.Axes'] = None,
    label: Optional[str] = None
    ) -> 'plt.Axes':
    """
    Plot quadrature deviation from the block result against point count.

    Parameters
    ----------
    point_counts : sequence of int
        Gauss-Legendre point counts
    deviations : np.ndarray
        Output of analysis.quadrature.quadrature_convergence

    Returns
    -------
    plt.Axes
        The matplotlib axes object
    """
    _check_matplotlib()

    if ax is None:
        fig, ax = plt.subplots()

    # Exact zeros cannot be shown on a log axis
    floor = np.finfo(float).eps
    ax.semilogy(point_counts, np.maximum(deviations, floor), 's-', label=label or 'quadrature')

    ax.set_xlabel('Gauss-Legendre points per level')
    ax.set_ylabel('max |quadrature - block|')
    ax.legend()
    ax.grid(True, alpha=0.3)

    return ax
