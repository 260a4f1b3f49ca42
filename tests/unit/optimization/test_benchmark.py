"""
Unit tests for optimizer comparison utilities
"""

import pytest

from paramsearch.optimization.benchmark import (
    compare_optimizers, make_test_problem, summarize_comparison,
    quadratic, rastrigin, rosenbrock
)


class TestTestProblems:
    """Test the built-in objective functions"""

    def test_optima(self):
        """Test each problem reaches 0 at its optimum"""
        assert quadratic({'x0': 3.0, 'x1': 3.0}) == 0.0
        assert rastrigin({'x0': 0.0, 'x1': 0.0}) == pytest.approx(0.0)
        assert rosenbrock({'x0': 1.0, 'x1': 1.0}) == 0.0

    def test_values_below_optimum(self):
        """Test points away from the optimum score lower"""
        assert quadratic({'x0': 1.0}) == -4.0
        assert rastrigin({'x0': 0.5}) < 0
        assert rosenbrock({'x0': 0.0, 'x1': 0.0}) == -1.0

    def test_make_test_problem(self):
        """Test ranges are built per dimension"""
        params = make_test_problem('rastrigin', dimensions=3, max_evaluations=40)

        assert [r['name'] for r in params.ranges] == ['x0', 'x1', 'x2']
        assert params.ranges[0]['min'] == -5.12
        assert params.max_evaluations == 40
        assert params.objective is rastrigin

    def test_make_test_problem_errors(self):
        """Test unknown problems and a one-dimensional Rosenbrock"""
        with pytest.raises(ValueError):
            make_test_problem('sphere')
        with pytest.raises(ValueError):
            make_test_problem('rosenbrock', dimensions=1)


class TestCompareOptimizers:
    """Test repeated seeded comparisons"""

    def test_one_row_per_trial_and_method(self):
        """Test output shape and columns"""
        params = make_test_problem('quadratic', max_evaluations=20)
        results = compare_optimizers(params, methods=['random', 'de'], trials=2, seed=1)

        assert len(results) == 4
        assert set(results['method']) == {'random', 'differential_evolution'}
        assert {'trial', 'best_value', 'total_evaluations', 'elapsed_seconds', 'param_x0'} <= set(results.columns)
        assert (results['total_evaluations'] == 20).all()

    def test_reproducible_with_seed(self):
        """Test equal seeds give equal comparisons"""
        params = make_test_problem('quadratic', max_evaluations=15)

        first = compare_optimizers(params, methods=['random'], trials=2, seed=5)
        second = compare_optimizers(params, methods=['random'], trials=2, seed=5)

        assert first['best_value'].tolist() == second['best_value'].tolist()

    def test_invalid_trials(self):
        """Test at least one trial is required"""
        with pytest.raises(ValueError):
            compare_optimizers(make_test_problem('quadratic', max_evaluations=5), trials=0)

    def test_summary_sorted_by_mean(self):
        """Test summary has one row per method, best mean first"""
        params = make_test_problem('quadratic', max_evaluations=20)
        summary = summarize_comparison(compare_optimizers(params, methods=['random', 'grid'], trials=2, seed=0))

        assert set(summary.index) == {'random', 'grid'}
        assert list(summary.columns) == ['mean', 'std', 'min', 'max', 'mean_evaluations']
        assert summary['mean'].is_monotonic_decreasing

    @pytest.mark.slow
    def test_bayesian_beats_random_on_average(self):
        """Test Bayesian optimization averages at least as well as random search"""
        params = make_test_problem('quadratic', max_evaluations=60)
        summary = summarize_comparison(
            compare_optimizers(params, methods=['random', 'bayesian'], trials=10, seed=2024)
        )

        assert summary.loc['bayesian', 'mean'] >= summary.loc['random', 'mean']

    @pytest.mark.slow
    def test_differential_evolution_beats_random_on_average(self):
        """Test DE averages at least as well as random search once it has generations to run"""
        params = make_test_problem('quadratic', max_evaluations=200)
        summary = summarize_comparison(
            compare_optimizers(params, methods=['random', 'differential_evolution'], trials=10, seed=2024)
        )

        assert summary.loc['differential_evolution', 'mean'] >= summary.loc['random', 'mean']
