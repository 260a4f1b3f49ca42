"""
Unit tests for the GP-UCB Bayesian optimizer
"""

import pytest
import numpy as np

from paramsearch.core.exceptions import OptimizerError
from paramsearch.optimization.bayesian_optimizer import (
    BayesianOptimizer, compute_length_scale, standardize
)
from paramsearch.optimization.gaussian_process import GaussianProcessModel


class TestBayesianOptimizer:
    """Test the surrogate-driven search loop"""

    def test_respects_budget(self, quadratic_ranges, make_params, counting_objective, rng):
        """Test the run never exceeds max_evaluations"""
        result = BayesianOptimizer(rng=rng).optimize(
            make_params(quadratic_ranges, counting_objective, max_evaluations=12)
        )

        assert result.total_evaluations == 12
        assert len(counting_objective.calls) == 12
        assert result.method == 'bayesian'

    def test_converges_on_quadratic(self, quadratic_params):
        """Test 60 evaluations find x near 3 for most seeds"""
        hits = 0
        for seed in range(5):
            result = BayesianOptimizer(rng=np.random.default_rng(seed)).optimize(quadratic_params)
            if abs(result.best_params['x'] - 3.0) < 0.5:
                hits += 1

        assert hits >= 4

    def test_seeded_runs_identical(self, quadratic_ranges, make_params):
        """Test equal generators reproduce the same evaluation sequence"""
        params = make_params(quadratic_ranges, max_evaluations=15)
        first = BayesianOptimizer(rng=np.random.default_rng(11)).optimize(params)
        second = BayesianOptimizer(rng=np.random.default_rng(11)).optimize(params)

        assert [p.params for p in first.evaluations] == [p.params for p in second.evaluations]

    def test_fit_failure_falls_back_to_random(self, quadratic_ranges, make_params, rng, monkeypatch):
        """Test every post-initial iteration samples at random when fitting fails"""
        monkeypatch.setattr(GaussianProcessModel, 'fit', lambda self, X, y: False)
        optimizer = BayesianOptimizer(rng=rng)

        result = optimizer.optimize(make_params(quadratic_ranges, max_evaluations=20))

        # min(max(2 * 1, 5), 20 // 3) = 5 initial points
        assert optimizer.fallback_count == 15
        assert result.total_evaluations == 20
        for point in result.evaluations:
            assert -10.0 <= point.params['x'] <= 10.0

    def test_tiny_budget_without_initial_points(self, quadratic_ranges, make_params, rng):
        """Test a budget below three skips initialization and still completes"""
        optimizer = BayesianOptimizer(rng=rng)
        result = optimizer.optimize(make_params(quadratic_ranges, max_evaluations=2))

        assert result.total_evaluations == 2
        assert optimizer.fallback_count >= 1

    def test_non_finite_values_trigger_fallback(self, quadratic_ranges, make_params, rng):
        """Test NaN observations do not break the surrogate loop"""
        optimizer = BayesianOptimizer(rng=rng)
        result = optimizer.optimize(make_params(quadratic_ranges, lambda p: float('nan'), max_evaluations=10))

        assert result.total_evaluations == 10
        assert optimizer.fallback_count == 10 - 3
        assert result.best_params == {}

    def test_per_call_prediction_path(self, quadratic_ranges, make_params, rng):
        """Test the uncached prediction path completes within bounds"""
        optimizer = BayesianOptimizer(rng=rng, reuse_factor=False, n_candidates_min=20)
        result = optimizer.optimize(make_params(quadratic_ranges, max_evaluations=10))

        assert result.total_evaluations == 10
        assert all(-10.0 <= p.params['x'] <= 10.0 for p in result.evaluations)

    def test_stepped_parameters_on_lattice(self, two_dim_ranges, make_params, rng):
        """Test suggestions are snapped to parameter steps"""
        objective = lambda p: -(p['fast_period'] - 15) ** 2 - (p['threshold'] - 0.3) ** 2
        result = BayesianOptimizer(rng=rng).optimize(make_params(two_dim_ranges, objective, max_evaluations=20))

        assert all(p.params['fast_period'] in (5, 10, 15, 20) for p in result.evaluations)

    def test_unlimited_budget_rejected(self, quadratic_ranges, make_params, monkeypatch):
        """Test a finite budget is required"""
        monkeypatch.setattr(BayesianOptimizer, 'default_max_evaluations', lambda self: None)

        with pytest.raises(OptimizerError):
            BayesianOptimizer().optimize(make_params(quadratic_ranges))

    def test_candidate_count(self):
        """Test candidate count is max(100, 20 * dim)"""
        optimizer = BayesianOptimizer()
        assert optimizer._n_candidates(1) == 100
        assert optimizer._n_candidates(8) == 160


class TestSurrogateHelpers:
    """Test length-scale heuristic and target standardization"""

    def test_length_scale_median_distance(self):
        """Test median pairwise distance"""
        X = [np.array([0.0]), np.array([0.4]), np.array([1.0])]
        # Distances 0.4, 0.6, 1.0
        assert compute_length_scale(X) == pytest.approx(0.6)

    def test_length_scale_defaults(self):
        """Test fewer than two points or zero median give 0.5"""
        assert compute_length_scale([]) == 0.5
        assert compute_length_scale([np.array([0.2])]) == 0.5
        assert compute_length_scale([np.array([0.2])] * 3) == 0.5

    def test_length_scale_floor(self):
        """Test tightly clustered points are floored at 0.1"""
        X = [np.array([0.0]), np.array([0.01]), np.array([0.02])]
        assert compute_length_scale(X) == 0.1

    def test_standardize(self):
        """Test zero mean and unit population std"""
        z = standardize([1.0, 2.0, 3.0])
        assert z.mean() == pytest.approx(0.0)
        assert z.std() == pytest.approx(1.0)

    def test_standardize_constant_values(self):
        """Test a zero spread leaves centered values"""
        np.testing.assert_array_equal(standardize([4.0, 4.0]), [0.0, 0.0])
