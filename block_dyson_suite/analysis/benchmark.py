"""
Benchmark harness for the block-exponential method.

Draws random Hermitian samples for each matrix size, runs compare_methods
on each, and aggregates accuracy and timing per (size, method). Samples are
independent, so they may be distributed over worker processes; the
per-sample wall-clock budget is enforced here rather than in the numerical
kernel.

Examples
--------
>>> config = BenchmarkConfig(sizes=(4, 8), n_trials=20)
>>> records = run_benchmark('first-order', config)
>>> print(format_table(summarize(records)))
"""

import concurrent.futures
import logging
import multiprocessing
import multiprocessing.connection
import time
import traceback
from collections import deque, namedtuple
from typing import List, Optional, Sequence

import numpy as np

from ..config import BenchmarkConfig
from ..core.operators import random_hermitian, random_perturbations
from ..core.topology import get_topology, is_symmetric_order
from .comparator import compare_methods

log = logging.getLogger(__name__)


BenchmarkRecord = namedtuple(
    'BenchmarkRecord',
    ['n', 'trial', 'topology', 'method', 'max_abs_deviation', 'max_rel_deviation',
     'error_estimate', 'converged', 'wall_time', 'stable', 'timed_out', 'warnings'],
)

SummaryRow = namedtuple(
    'SummaryRow',
    ['n', 'method', 'count', 'mean_abs_deviation', 'max_abs_deviation',
     'max_rel_deviation', 'median_time', 'converged_fraction', 'stable_fraction',
     'timed_out'],
)


def random_sample(n: int, n_perturbations: int, rng: np.random.Generator,
                  norm: float = 1.0):
    """Random Hermitian H and perturbations, each with spectral norm `norm`."""
    H = random_hermitian(n, rng, norm=norm)
    return H, random_perturbations(n, n_perturbations, rng, norm=norm)


def _run_sample(n: int, trial: int, topology, config: BenchmarkConfig,
                seed: np.random.SeedSequence) -> List[BenchmarkRecord]:
    rng = np.random.default_rng(seed)
    topo = get_topology(topology)
    H, perturbations = random_sample(n, topo.n_perturbations, rng, norm=config.norm)

    start = time.perf_counter()
    report = compare_methods(H, perturbations, topo, config=config, rng=rng)
    elapsed = time.perf_counter() - start
    over_budget = config.time_budget is not None and elapsed > config.time_budget

    return [
        BenchmarkRecord(n, trial, topo.name, m.method, m.max_abs_deviation,
                        m.max_rel_deviation, m.error_estimate, m.converged,
                        m.wall_time, report.stable, over_budget, tuple(m.warnings))
        for m in report.methods
    ]


def _expected_methods(topology) -> List[str]:
    methods = ['block-exponential', 'quadrature']
    if is_symmetric_order(get_topology(topology)):
        methods.append('finite-difference')
    return methods


def _timed_out_records(n: int, trial: int, topology) -> List[BenchmarkRecord]:
    """One NaN record per method compare_methods would have reported."""
    nan = float('nan')
    name = get_topology(topology).name
    return [BenchmarkRecord(n, trial, name, method, nan, nan, nan, False, nan, False, True, ())
            for method in _expected_methods(topology)]


def _sample_process(conn, n: int, trial: int, topology, config: BenchmarkConfig,
                    seed: np.random.SeedSequence) -> None:
    # Messages: ('start', None), then ('done', records) or ('error', traceback)
    conn.send(('start', None))
    try:
        records = _run_sample(n, trial, topology, config, seed)
    except Exception:
        conn.send(('error', traceback.format_exc()))
    else:
        conn.send(('done', records))
    finally:
        conn.close()


class _SampleJob:
    """A sample running in its own worker process."""

    __slots__ = ('process', 'n', 'trial', 'started')

    def __init__(self, process, n: int, trial: int):
        self.process = process
        self.n = n
        self.trial = trial
        self.started: Optional[float] = None


def _stop(conn, job: _SampleJob) -> None:
    if job.process.is_alive():
        job.process.kill()
    job.process.join()
    conn.close()


def _run_supervised(tasks, seeds, topology, config: BenchmarkConfig) -> List[BenchmarkRecord]:
    """
    Run each sample in its own process and kill it once it exceeds the budget.

    The budget of a sample is counted from the moment its worker reports
    that it has started, so process start-up and imports are not charged.
    At most config.max_workers samples run at a time.
    """
    ctx = multiprocessing.get_context()
    budget = config.time_budget
    queue = deque(zip(tasks, seeds))
    running = {}
    records: List[BenchmarkRecord] = []

    try:
        while queue or running:
            while queue and len(running) < config.max_workers:
                (n, trial), seed = queue.popleft()
                recv_conn, send_conn = ctx.Pipe(duplex=False)
                process = ctx.Process(target=_sample_process,
                                      args=(send_conn, n, trial, topology, config, seed),
                                      daemon=True)
                process.start()
                send_conn.close()
                running[recv_conn] = _SampleJob(process, n, trial)

            started = [job.started for job in running.values() if job.started is not None]
            timeout = None
            if started:
                timeout = max(0.0, min(started) + budget - time.monotonic())

            for conn in multiprocessing.connection.wait(list(running), timeout=timeout):
                job = running[conn]
                try:
                    kind, payload = conn.recv()
                except EOFError:
                    del running[conn]
                    _stop(conn, job)
                    raise RuntimeError(
                        f"worker for sample n={job.n} trial={job.trial} exited "
                        f"with code {job.process.exitcode}"
                    ) from None
                if kind == 'start':
                    job.started = time.monotonic()
                    continue
                del running[conn]
                job.process.join()
                conn.close()
                if kind == 'error':
                    raise RuntimeError(
                        f"sample n={job.n} trial={job.trial} failed:\n{payload}"
                    )
                records.extend(payload)

            now = time.monotonic()
            for conn, job in list(running.items()):
                if job.started is not None and now - job.started > budget:
                    del running[conn]
                    _stop(conn, job)
                    log.info("sample n=%d trial=%d exceeded the time budget of %.3g s",
                             job.n, job.trial, budget)
                    records.extend(_timed_out_records(job.n, job.trial, topology))
    finally:
        for conn, job in running.items():
            _stop(conn, job)

    return records


def run_benchmark(topology='first-order', config: Optional[BenchmarkConfig] = None) -> List[BenchmarkRecord]:
    """
    Run compare_methods on config.n_trials random samples per size.

    Parameters
    ----------
    topology : str, mapping or BlockTopology
        Block layout to benchmark
    config : BenchmarkConfig, optional
        Sizes, trial count, seed, tolerances, time budget and worker count

    Returns
    -------
    list of BenchmarkRecord
        One record per (sample, method), ordered by size then trial.

    Notes
    -----
    Without a time budget samples run in this process (max_workers == 1)
    or in a ProcessPoolExecutor. With a budget every sample runs in its own
    worker process, at most max_workers at a time, and is killed once it
    has run longer than the budget; it is then recorded with NaN metrics
    and timed_out=True for every method it would have reported. Samples
    that finish but took longer than the budget are also flagged.
    """
    if config is None:
        config = BenchmarkConfig()
    topo = get_topology(topology)

    tasks = [(n, trial) for n in config.sizes for trial in range(config.n_trials)]
    seeds = np.random.SeedSequence(config.seed).spawn(len(tasks))
    log.info("benchmarking %s: %d samples over sizes %s with %d worker(s)",
             topo.name, len(tasks), list(config.sizes), config.max_workers)

    if config.time_budget is not None:
        records = _run_supervised(tasks, seeds, topo, config)
    elif config.max_workers == 1:
        records = []
        for (n, trial), seed in zip(tasks, seeds):
            records.extend(_run_sample(n, trial, topo, config, seed))
    else:
        records = []
        with concurrent.futures.ProcessPoolExecutor(max_workers=config.max_workers) as executor:
            futures = [executor.submit(_run_sample, n, trial, topo, config, seed)
                       for (n, trial), seed in zip(tasks, seeds)]
            for fut in futures:
                records.extend(fut.result())

    records.sort(key=lambda r: (r.n, r.trial))
    return records




def summarize(records: Sequence[BenchmarkRecord]) -> List[SummaryRow]:
    """Aggregate records by (n, method), ordered by size then method."""
    groups = {}
    for rec in records:
        groups.setdefault((rec.n, rec.method), []).append(rec)

    rows = []
    for (n, method), group in sorted(groups.items()):
        finished = [r for r in group if not np.isnan(r.wall_time)]
        abs_dev = np.array([r.max_abs_deviation for r in finished])
        rel_dev = np.array([r.max_rel_deviation for r in finished])
        times = np.array([r.wall_time for r in finished])
        nan = float('nan')
        rows.append(SummaryRow(
            n=n,
            method=method,
            count=len(finished),
            mean_abs_deviation=float(np.mean(abs_dev)) if finished else nan,
            max_abs_deviation=float(np.max(abs_dev)) if finished else nan,
            max_rel_deviation=float(np.max(rel_dev)) if finished else nan,
            median_time=float(np.median(times)) if finished else nan,
            converged_fraction=float(np.mean([r.converged for r in finished])) if finished else nan,
            stable_fraction=float(np.mean([r.stable for r in finished])) if finished else nan,
            timed_out=sum(r.timed_out for r in group),
        ))
    return rows


def format_table(rows: Sequence[SummaryRow]) -> str:
    """Render summary rows as a fixed-width text table."""
    header = (f"{'n':>4}  {'method':<18}  {'count':>5}  {'mean |dev|':>10}  "
              f"{'max |dev|':>10}  {'max rel':>10}  {'median t [s]':>12}  "
              f"{'conv':>5}  {'stable':>6}  {'timeout':>7}")
    lines = [header, '-' * len(header)]
    for r in rows:
        lines.append(
            f"{r.n:>4}  {r.method:<18}  {r.count:>5}  {r.mean_abs_deviation:>10.2e}  "
            f"{r.max_abs_deviation:>10.2e}  {r.max_rel_deviation:>10.2e}  "
            f"{r.median_time:>12.3e}  {r.converged_fraction:>5.2f}  "
            f"{r.stable_fraction:>6.2f}  {r.timed_out:>7d}"
        )
    return '\n'.join(lines)
