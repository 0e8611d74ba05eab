"""
Unit tests for the quadrature and finite-difference references.

The block-exponential results are validated against direct Gauss-Legendre
integration over the ordered simplex for many random Hermitian samples, and
against central differences of exp for the derivative-type topologies.
"""

import unittest
import numpy as np

from block_dyson_suite import (
    ConvergenceWarning,
    block_generating_function,
    first_order,
    kth_order,
    random_hermitian,
    symmetric_second_order,
)
from block_dyson_suite.analysis import (
    finite_difference_reference,
    gauss_legendre_nodes,
    quadrature_convergence,
    quadrature_reference,
)


class TestGaussLegendre(unittest.TestCase):

    def test_nodes_on_interval(self):
        x, w = gauss_legendre_nodes(8, 0.0, 2.0)
        self.assertTrue(np.all((x > 0) & (x < 2)))
        self.assertAlmostEqual(np.sum(w), 2.0, places=14)
        # Exact for polynomials of degree 2m - 1
        self.assertAlmostEqual(np.sum(w * x ** 15), 2.0 ** 16 / 16, places=9)


class TestQuadratureReference(unittest.TestCase):
    """Block exponential vs direct simplex quadrature."""

    def test_first_order_random_trials(self):
        """100 random Hermitian samples with n = 4..10 agree to 1e-6."""
        rng = np.random.default_rng(2024)
        for trial in range(100):
            n = 4 + trial % 7
            H = random_hermitian(n, rng, norm=rng.uniform(0.1, 2.0))
            V = random_hermitian(n, rng, norm=rng.uniform(0.1, 2.0))
            ref = quadrature_reference(H, [V], 'first-order', n_points=16, refine=False)
            np.testing.assert_allclose(first_order(H, V), ref.value, atol=1e-6,
                                       err_msg=f"trial {trial}, n={n}")

    def test_second_order_random_trials(self):
        """100 random samples with n = 4..10 for both second-order forms."""
        rng = np.random.default_rng(99)
        for trial in range(100):
            n = 4 + trial % 7
            H, E1, E2 = (random_hermitian(n, rng) for _ in range(3))
            for name in ['causal-second-order', 'symmetric-second-order']:
                ref = quadrature_reference(H, [E1, E2], name, n_points=12, refine=False)
                block = block_generating_function(H, [E1, E2], name)
                np.testing.assert_allclose(block, ref.value, atol=1e-6,
                                           err_msg=f"{name}, trial {trial}, n={n}")

    def test_explicit_topology_with_shortcut(self):
        """A direct (0, 2) block adds a first-order path to the causal chain."""
        rng = np.random.default_rng(5)
        H, E1, E2, W = (random_hermitian(3, rng) for _ in range(4))
        topo = {(0, 1): 0, (1, 2): 1, (0, 2): 2}
        ref = quadrature_reference(H, [E1, E2, W], topo, n_points=12, refine=False)
        block = block_generating_function(H, [E1, E2, W], topo)
        np.testing.assert_allclose(block, ref.value, atol=1e-10)

    def test_third_order_causal(self):
        rng = np.random.default_rng(8)
        H, V1, V2, V3 = (random_hermitian(3, rng) for _ in range(4))
        ref = quadrature_reference(H, [V1, V2, V3], {(0, 1): 0, (1, 2): 1, (2, 3): 2},
                                   n_points=8, refine=False)
        np.testing.assert_allclose(kth_order(H, [V1, V2, V3], 'causal'), ref.value, atol=1e-8)

    def test_refinement_error_estimate(self):
        rng = np.random.default_rng(3)
        H, V = random_hermitian(4, rng), random_hermitian(4, rng)
        ref = quadrature_reference(H, [V], 'first-order', n_points=12)
        self.assertTrue(ref.converged)
        self.assertLess(ref.error_estimate, 1e-10)
        self.assertEqual(ref.method, 'quadrature')
        self.assertEqual(ref.parameters['n_points_refined'], 24)

    def test_convergence_warning(self):
        rng = np.random.default_rng(4)
        H, V = random_hermitian(4, rng), random_hermitian(4, rng)
        with self.assertWarns(ConvergenceWarning):
            ref = quadrature_reference(H, [V], 'first-order', n_points=1, threshold=1e-14)
        self.assertFalse(ref.converged)
        self.assertGreater(ref.error_estimate, 1e-14)

    def test_deviation_decreases_with_points(self):
        """Deviation from the block result is non-increasing in the point count."""
        rng = np.random.default_rng(6)
        H, V = random_hermitian(5, rng, norm=2.0), random_hermitian(5, rng)
        counts = [1, 2, 3, 4, 6, 8, 12, 16]
        dev = quadrature_convergence(H, [V], 'first-order', counts)
        self.assertEqual(len(dev), len(counts))
        for i in range(1, len(counts)):
            self.assertLessEqual(dev[i], dev[i - 1] + 1e-13,
                                 msg=f"{counts[i]} points: {dev[i]:.3e} > {dev[i - 1]:.3e}")
        self.assertLess(dev[-1], 1e-12)

    def test_invalid_point_count(self):
        with self.assertRaises(ValueError):
            quadrature_reference(np.eye(2), [np.eye(2)], n_points=0)


class TestFiniteDifferenceReference(unittest.TestCase):
    """Central differences of exp(H + sum eps_i E_i)."""

    def setUp(self):
        rng = np.random.default_rng(12)
        self.H, self.E1, self.E2 = (random_hermitian(5, rng) for _ in range(3))

    def test_first_order(self):
        ref = finite_difference_reference(self.H, [self.E1])
        self.assertTrue(ref.converged)
        np.testing.assert_allclose(first_order(self.H, self.E1), ref.value, atol=1e-8)

    def test_symmetric_second_order(self):
        ref = finite_difference_reference(self.H, [self.E1, self.E2], step=1e-2)
        np.testing.assert_allclose(symmetric_second_order(self.H, self.E1, self.E2),
                                   ref.value, atol=1e-6)

    def test_richardson_improves_accuracy(self):
        exact = first_order(self.H, self.E1)
        plain = finite_difference_reference(self.H, [self.E1], step=1e-1, richardson=False)
        extrap = finite_difference_reference(self.H, [self.E1], step=1e-1, richardson=True)
        self.assertLess(np.max(np.abs(extrap.value - exact)),
                        np.max(np.abs(plain.value - exact)))

    def test_convergence_warning(self):
        with self.assertWarns(ConvergenceWarning):
            ref = finite_difference_reference(self.H, [self.E1], step=0.5, threshold=1e-12)
        self.assertFalse(ref.converged)

    def test_requires_direction(self):
        with self.assertRaises(ValueError):
            finite_difference_reference(self.H, [])
        with self.assertRaises(ValueError):
            finite_difference_reference(self.H, [self.E1], step=0.0)


if __name__ == '__main__':
    unittest.main()
