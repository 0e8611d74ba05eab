"""
Comparison of the block-exponential method against independent references.

For one (H, perturbations, topology) sample this module computes the block
result and each applicable reference, and reports per method:

- max absolute and relative deviation from the block result
- the reference's own error estimate and convergence flag
- wall-clock time
- warnings raised during the computation (ConvergenceWarning,
  NumericalInstability), recorded rather than propagated

A stability flag records whether repeated block evaluations at slightly
jittered inputs agree within tolerance.
"""

import logging
import time
import warnings
from collections import namedtuple
from typing import Optional, Sequence

import numpy as np

from ..config import BenchmarkConfig
from ..core.extractor import block_generating_function
from ..core.operators import as_operator, random_hermitian
from ..core.topology import get_topology, is_symmetric_order
from .finite_difference import finite_difference_reference
from .quadrature import quadrature_reference

log = logging.getLogger(__name__)


MethodReport = namedtuple(
    'MethodReport',
    ['method', 'value', 'max_abs_deviation', 'max_rel_deviation',
     'error_estimate', 'converged', 'wall_time', 'warnings'],
)

ComparisonReport = namedtuple(
    'ComparisonReport',
    ['topology', 'n', 'block', 'methods', 'stable'],
)


def deviation(value: np.ndarray, reference: np.ndarray):
    """
    Elementwise max absolute and relative deviation of value from reference.

    The relative deviation is normalized by the largest reference entry, so
    it stays finite when individual entries vanish.
    """
    diff = float(np.max(np.abs(value - reference), initial=0.0))
    scale = float(np.max(np.abs(reference), initial=0.0))
    rel = diff / scale if scale > 0 else (0.0 if diff == 0 else float('inf'))
    return diff, rel


def _timed(func, *args, **kwargs):
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter('always')
        start = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = time.perf_counter() - start
    messages = [f"{w.category.__name__}: {w.message}" for w in caught]
    return result, elapsed, messages


def stability_check(H, perturbations: Sequence, topology, jitter: float = 1e-10,
                    repeats: int = 3, tolerance: float = 1e-6,
                    rng: Optional[np.random.Generator] = None,
                    baseline: Optional[np.ndarray] = None) -> bool:
    """
    Check that the block result is insensitive to tiny input perturbations.

    H is jittered by random Hermitian matrices of relative size `jitter`;
    the block result of every repeat must agree with the unjittered one to
    within `tolerance` (relative to the result's largest entry).
    """
    if rng is None:
        rng = np.random.default_rng()
    H = as_operator(H, name="base operator")
    if baseline is None:
        baseline = block_generating_function(H, perturbations, topology)

    size = jitter * max(1.0, float(np.linalg.norm(H, 2)))
    real = not np.iscomplexobj(H)
    for _ in range(repeats):
        noise = random_hermitian(H.shape[0], rng, norm=size, real=real)
        with warnings.catch_warnings():
            warnings.simplefilter('ignore')
            value = block_generating_function(H + noise, perturbations, topology)
        _, rel = deviation(value, baseline)
        if not np.isfinite(rel) or rel > tolerance:
            log.info("unstable: relative change %.3e at jitter %.1e", rel, jitter)
            return False
    return True


def compare_methods(H, perturbations: Sequence, topology='first-order',
                    config: Optional[BenchmarkConfig] = None,
                    rng: Optional[np.random.Generator] = None,
                    include_finite_difference: Optional[bool] = None) -> ComparisonReport:
    """
    Compare the block-exponential result with the quadrature and
    finite-difference references.

    Parameters
    ----------
    H : array_like, shape (n, n)
        Base operator
    perturbations : sequence of array_like
        Perturbation operators
    topology : str, mapping or BlockTopology
        Block layout
    config : BenchmarkConfig, optional
        Evaluator, quadrature, finite-difference and stability settings
    rng : np.random.Generator, optional
        Source of the stability jitter
    include_finite_difference : bool, optional
        Force the finite-difference reference on or off. By default it runs
        only for topologies whose target block is a Fréchet derivative.

    Returns
    -------
    ComparisonReport
        block result, a MethodReport per method (the block method first,
        with zero deviation) and the stability flag
    """
    if config is None:
        config = BenchmarkConfig()
    topo = get_topology(topology)
    H = as_operator(H, name="base operator")

    block, block_time, block_warnings = _timed(
        block_generating_function, H, perturbations, topo, config=config.evaluator
    )
    methods = [MethodReport('block-exponential', block, 0.0, 0.0, 0.0, True,
                            block_time, block_warnings)]

    qc = config.quadrature
    ref, elapsed, caught = _timed(
        quadrature_reference, H, perturbations, topo,
        n_points=qc.n_points, refine=qc.refine, threshold=qc.threshold,
    )
    abs_dev, rel_dev = deviation(block, ref.value)
    methods.append(MethodReport('quadrature', ref.value, abs_dev, rel_dev,
                                ref.error_estimate, ref.converged, elapsed, caught))

    if include_finite_difference is None:
        include_finite_difference = is_symmetric_order(topo)
    if include_finite_difference:
        directions = [perturbations[i] for i in range(topo.n_perturbations)]
        fc = config.finite_difference
        ref, elapsed, caught = _timed(
            finite_difference_reference, H, directions,
            step=fc.step, richardson=fc.richardson, threshold=fc.threshold,
        )
        abs_dev, rel_dev = deviation(block, ref.value)
        methods.append(MethodReport('finite-difference', ref.value, abs_dev, rel_dev,
                                    ref.error_estimate, ref.converged, elapsed, caught))

    stable = stability_check(
        H, perturbations, topo,
        jitter=config.stability_jitter, repeats=config.stability_repeats,
        tolerance=config.stability_tolerance, rng=rng, baseline=block,
    )

    for report in methods[1:]:
        log.debug("%s vs block (%s, n=%d): abs %.2e rel %.2e in %.2e s",
                  report.method, topo.name, H.shape[0],
                  report.max_abs_deviation, report.max_rel_deviation, report.wall_time)

    return ComparisonReport(topo.name, H.shape[0], block, methods, stable)
