"""
Benchmark block-exponential generating functions against references.

For each topology in TOPOLOGIES this script draws random Hermitian operators
at every size in SIZES, evaluates the block-exponential generating function,
and compares it with the Gauss-Legendre quadrature reference (and, for the
symmetric topologies, the finite-difference reference). A summary table is
printed for every topology and two figures are written:
- median wall time against n, one line per method
- quadrature convergence for a single first-order sample

Usage:
    python scripts/benchmark_block_exponential.py
"""

import logging

import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
from matplotlib import rcParams

# Add parent directory to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from block_dyson_suite import BenchmarkConfig, QuadratureConfig
from block_dyson_suite.analysis import (
    format_table,
    plot_benchmark,
    plot_convergence,
    quadrature_convergence,
    random_sample,
    run_benchmark,
    summarize,
)

# =============================================================================
# Benchmark Configuration - EDIT THESE PARAMETERS
# =============================================================================

TOPOLOGIES = [
    'first-order',
    'causal-second-order',
    'symmetric-second-order',
]

SIZES = (4, 8, 16, 32)
N_TRIALS = 10
OPERATOR_NORM = 1.0
SEED = 42
TIME_BUDGET = None       # Seconds per sample, None for no budget
MAX_WORKERS = 1          # >1 runs samples in a process pool

# Quadrature reference
QUAD_POINTS = 16

# Convergence study
CONVERGENCE_SIZE = 8
CONVERGENCE_POINTS = [2, 3, 4, 6, 8, 12, 16]

# Plot styling
FIGURE_SIZE = (12, 5)
DPI = 150
FONT_SIZE = 12

# Output
SAVE_FIGURE = True
OUTPUT_PATH = 'figures/block_exponential_benchmark.pdf'


# =============================================================================
# Main
# =============================================================================

def main():
    logging.basicConfig(level=logging.INFO,
                        format='%(asctime)s %(name)s %(levelname)s: %(message)s')

    rcParams['font.size'] = FONT_SIZE

    config = BenchmarkConfig(
        sizes=SIZES,
        n_trials=N_TRIALS,
        norm=OPERATOR_NORM,
        seed=SEED,
        time_budget=TIME_BUDGET,
        max_workers=MAX_WORKERS,
        quadrature=QuadratureConfig(n_points=QUAD_POINTS),
    )

    fig, (ax_time, ax_conv) = plt.subplots(1, 2, figsize=FIGURE_SIZE)

    for topology in TOPOLOGIES:
        print(f"\n=== {topology} ===")
        records = run_benchmark(topology, config)
        rows = summarize(records)
        print(format_table(rows))

        unstable = sum(1 for r in records if not r.stable)
        if unstable:
            print(f"  {unstable} sample(s) failed the stability check")

        # Time of the block exponential only; references are far slower
        block_rows = [r for r in rows if r.method == 'block-exponential']
        plot_benchmark(block_rows, ax=ax_time, label_prefix=f'{topology}: ')

    ax_time.set_title('Block exponential wall time')

    rng = np.random.default_rng(SEED)
    H, perturbations = random_sample(CONVERGENCE_SIZE, 1, rng, OPERATOR_NORM)
    deviations = quadrature_convergence(H, perturbations, 'first-order', CONVERGENCE_POINTS)
    plot_convergence(CONVERGENCE_POINTS, deviations, ax=ax_conv,
                     label=f'first-order, n={CONVERGENCE_SIZE}')
    ax_conv.set_title('Quadrature convergence')

    plt.tight_layout()

    if SAVE_FIGURE:
        output_dir = Path(__file__).parent.parent / 'figures'
        output_dir.mkdir(exist_ok=True)
        output_path = Path(__file__).parent.parent / OUTPUT_PATH
        fig.savefig(output_path, dpi=DPI, bbox_inches='tight')
        print(f"\nFigure saved to: {output_path}")


if __name__ == '__main__':
    main()
