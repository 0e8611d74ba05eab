"""
Unit tests for the method comparator, the benchmark harness and the
configuration dataclasses.
"""

import dataclasses
import multiprocessing
import time
import unittest
import numpy as np
from dacite import UnexpectedDataError

from block_dyson_suite import (
    BenchmarkConfig,
    EvaluatorConfig,
    QuadratureConfig,
    random_hermitian,
)
from block_dyson_suite.analysis import (
    compare_methods,
    deviation,
    format_table,
    random_sample,
    run_benchmark,
    stability_check,
    summarize,
)
from block_dyson_suite.config import (
    config_from_dict,
    config_from_json,
    config_to_dict,
    config_to_json,
)


class TestCompareMethods(unittest.TestCase):

    def setUp(self):
        rng = np.random.default_rng(17)
        self.H, self.E1, self.E2 = (random_hermitian(4, rng) for _ in range(3))

    def test_first_order_report(self):
        report = compare_methods(self.H, [self.E1], 'first-order',
                                 rng=np.random.default_rng(0))
        self.assertEqual(report.topology, 'first-order')
        self.assertEqual(report.n, 4)
        self.assertTrue(report.stable)
        methods = [m.method for m in report.methods]
        self.assertEqual(methods, ['block-exponential', 'quadrature', 'finite-difference'])
        for m in report.methods:
            self.assertLess(m.max_abs_deviation, 1e-8, msg=m.method)
            self.assertGreaterEqual(m.wall_time, 0.0)
            self.assertTrue(m.converged, msg=m.method)
            self.assertEqual(m.warnings, [])

    def test_causal_report_has_no_finite_difference(self):
        report = compare_methods(self.H, [self.E1, self.E2], 'causal-second-order')
        self.assertEqual([m.method for m in report.methods],
                         ['block-exponential', 'quadrature'])
        self.assertLess(report.methods[1].max_rel_deviation, 1e-8)

    def test_symmetric_report(self):
        report = compare_methods(self.H, [self.E1, self.E2], 'symmetric-second-order')
        self.assertEqual(len(report.methods), 3)
        fd = report.methods[2]
        self.assertEqual(fd.method, 'finite-difference')
        self.assertLess(fd.max_abs_deviation, 1e-5)

    def test_convergence_warning_is_recorded(self):
        """A non-converging reference is reported, not raised."""
        config = BenchmarkConfig(quadrature=QuadratureConfig(n_points=1, threshold=1e-14))
        report = compare_methods(self.H, [self.E1], 'first-order', config=config)
        quad = report.methods[1]
        self.assertFalse(quad.converged)
        self.assertEqual(len(quad.warnings), 1)
        self.assertIn('ConvergenceWarning', quad.warnings[0])
        # The block result itself is unaffected
        self.assertEqual(report.methods[0].warnings, [])

    def test_deviation(self):
        ref = np.array([[2.0, 0.0], [0.0, -4.0]])
        val = ref + np.array([[0.0, 0.1], [0.0, 0.0]])
        abs_dev, rel_dev = deviation(val, ref)
        self.assertAlmostEqual(abs_dev, 0.1)
        self.assertAlmostEqual(rel_dev, 0.025)
        self.assertEqual(deviation(ref, ref), (0.0, 0.0))
        self.assertEqual(deviation(np.ones(2), np.zeros(2))[1], float('inf'))

    def test_stability_check(self):
        self.assertTrue(stability_check(self.H, [self.E1], 'first-order',
                                        rng=np.random.default_rng(1)))
        # A jitter as large as H itself cannot stay within 1e-6
        self.assertFalse(stability_check(self.H, [self.E1], 'first-order', jitter=0.5,
                                         rng=np.random.default_rng(1)))


class TestBenchmarkHarness(unittest.TestCase):

    def test_random_sample(self):
        H, perts = random_sample(5, 2, np.random.default_rng(0), norm=0.5)
        self.assertEqual(H.shape, (5, 5))
        self.assertEqual(len(perts), 2)
        np.testing.assert_allclose(H, H.conj().T)
        self.assertAlmostEqual(np.linalg.norm(H, 2), 0.5, places=12)

    def test_serial_benchmark(self):
        config = BenchmarkConfig(sizes=(2, 3), n_trials=2)
        records = run_benchmark('first-order', config)
        self.assertEqual(len(records), 2 * 2 * 3)
        self.assertEqual({r.n for r in records}, {2, 3})
        for r in records:
            self.assertLess(r.max_abs_deviation, 1e-8)
            self.assertTrue(r.stable)
            self.assertFalse(r.timed_out)

        rows = summarize(records)
        self.assertEqual(len(rows), 2 * 3)
        self.assertTrue(all(row.count == 2 for row in rows))

        table = format_table(rows)
        self.assertIn('block-exponential', table)
        self.assertIn('quadrature', table)
        self.assertEqual(len(table.splitlines()), 2 + len(rows))

    def test_benchmark_is_reproducible(self):
        config = BenchmarkConfig(sizes=(3,), n_trials=2, seed=5)
        a = run_benchmark('causal-second-order', config)
        b = run_benchmark('causal-second-order', config)
        self.assertEqual([r.max_abs_deviation for r in a], [r.max_abs_deviation for r in b])

    def test_time_budget_flags_samples(self):
        config = BenchmarkConfig(sizes=(2,), n_trials=1, time_budget=0.0)
        records = run_benchmark('first-order', config)
        self.assertTrue(all(r.timed_out for r in records))
        self.assertEqual(summarize(records)[0].timed_out, 1)

    def _slow_config(self, **kwargs):
        # Quadrature at n = 60 with 48 points per level runs for many seconds
        return BenchmarkConfig(sizes=(60,), quadrature=QuadratureConfig(n_points=48),
                               time_budget=0.5, **kwargs)

    def test_time_budget_stops_running_samples(self):
        config = self._slow_config(n_trials=2, max_workers=2)
        start = time.monotonic()
        records = run_benchmark('symmetric-second-order', config)
        elapsed = time.monotonic() - start

        self.assertLess(elapsed, 20.0)
        self.assertEqual(multiprocessing.active_children(), [])
        self.assertEqual(len(records), 2 * 3)
        self.assertEqual({r.method for r in records},
                         {'block-exponential', 'quadrature', 'finite-difference'})
        for r in records:
            self.assertTrue(r.timed_out)
            self.assertTrue(np.isnan(r.wall_time))

        rows = summarize(records)
        self.assertEqual(len(rows), 3)
        self.assertTrue(all(row.timed_out == 2 and row.count == 0 for row in rows))

    def test_time_budget_stops_serial_sample(self):
        config = self._slow_config(n_trials=1, max_workers=1)
        start = time.monotonic()
        records = run_benchmark('causal-second-order', config)
        self.assertLess(time.monotonic() - start, 20.0)
        self.assertEqual(multiprocessing.active_children(), [])
        self.assertEqual([r.method for r in records], ['block-exponential', 'quadrature'])
        self.assertTrue(all(r.timed_out for r in records))

    def test_generous_budget_keeps_results(self):
        config = BenchmarkConfig(sizes=(2, 3), n_trials=2, max_workers=2, time_budget=60.0)
        records = run_benchmark('first-order', config)
        self.assertEqual(len(records), 2 * 2 * 3)
        self.assertFalse(any(r.timed_out for r in records))
        self.assertEqual([(r.n, r.trial) for r in records],
                         sorted((r.n, r.trial) for r in records))
        self.assertEqual(multiprocessing.active_children(), [])

    def test_parallel_benchmark(self):
        config = BenchmarkConfig(sizes=(2, 3), n_trials=2, max_workers=2)
        records = run_benchmark('first-order', config)
        self.assertEqual(len(records), 2 * 2 * 3)
        self.assertEqual([(r.n, r.trial) for r in records],
                         sorted((r.n, r.trial) for r in records))
        serial = run_benchmark('first-order', dataclasses.replace(config, max_workers=1))
        np.testing.assert_allclose([r.max_abs_deviation for r in records],
                                   [r.max_abs_deviation for r in serial], atol=1e-15)


class TestConfig(unittest.TestCase):

    def test_json_round_trip(self):
        config = BenchmarkConfig(sizes=(4, 6), time_budget=2.5,
                                 evaluator=EvaluatorConfig(max_norm=50.0))
        restored = config_from_json(BenchmarkConfig, config_to_json(config))
        self.assertEqual(restored, config)
        self.assertIsInstance(restored.sizes, tuple)

    def test_dict_round_trip(self):
        config = BenchmarkConfig(sizes=(3,), quadrature=QuadratureConfig(n_points=8))
        d = config_to_dict(config)
        self.assertEqual(d['quadrature'], {'n_points': 8, 'refine': True, 'threshold': 1e-8})
        self.assertIsNone(d['time_budget'])
        self.assertEqual(config_from_dict(BenchmarkConfig, d), config)

    def test_unknown_keys_rejected(self):
        with self.assertRaises(UnexpectedDataError):
            config_from_dict(QuadratureConfig, {'n_points': 8, 'order': 3})

    def test_validation(self):
        with self.assertRaises(ValueError):
            EvaluatorConfig(max_norm=0.0)
        with self.assertRaises(ValueError):
            QuadratureConfig(n_points=0)
        with self.assertRaises(ValueError):
            BenchmarkConfig(n_trials=0)
        with self.assertRaises(ValueError):
            BenchmarkConfig(time_budget=-1.0)

    def test_frozen(self):
        config = QuadratureConfig()
        with self.assertRaises(dataclasses.FrozenInstanceError):
            config.n_points = 4


if __name__ == '__main__':
    unittest.main()
