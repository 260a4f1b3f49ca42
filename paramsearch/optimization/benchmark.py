"""
Optimizer Comparison

Runs several optimizers on the same problem over repeated seeded trials so that
the model-based and evolutionary searches can be judged against the random
search control.
"""

from typing import Dict, List, Any, Optional, Sequence, Callable
import math
import numpy as np
import pandas as pd
import structlog

from .base_optimizer import OptimizerParams
from .registry import create_optimizer, resolve_method

logger = structlog.get_logger()

DEFAULT_METHODS = ('random', 'bayesian', 'differential_evolution')

def compare_optimizers(
    params: OptimizerParams,
    methods: Sequence[str] = DEFAULT_METHODS,
    trials: int = 5,
    seed: Optional[int] = None
) -> pd.DataFrame:
    """
    Run each method ``trials`` times on the same problem.

    Every (trial, method) pair gets its own generator spawned from ``seed``,
    so the whole comparison is reproducible.

    Returns:
        DataFrame with one row per run: trial, method, best_value,
        total_evaluations, elapsed_seconds and the best parameters
    """
    if trials < 1:
        raise ValueError("trials must be >= 1")

    canonical = [resolve_method(m) for m in methods]
    seeds = np.random.SeedSequence(seed).spawn(trials * len(canonical))

    rows: List[Dict[str, Any]] = []
    for trial in range(trials):
        for k, method in enumerate(canonical):
            rng = np.random.default_rng(seeds[trial * len(canonical) + k])
            result = create_optimizer(method, rng=rng).optimize(params)

            rows.append({
                'trial': trial,
                'method': method,
                'best_value': result.best_value,
                'total_evaluations': result.total_evaluations,
                'elapsed_seconds': result.elapsed_seconds,
                **{f'param_{name}': value for name, value in result.best_params.items()}
            })

        logger.debug("Comparison trial complete", trial=trial + 1, trials=trials)

    return pd.DataFrame(rows)

def summarize_comparison(results: pd.DataFrame) -> pd.DataFrame:
    """Mean, std, min and max best value per method, best mean first"""
    summary = results.groupby('method')['best_value'].agg(['mean', 'std', 'min', 'max'])
    summary['mean_evaluations'] = results.groupby('method')['total_evaluations'].mean()
    return summary.sort_values('mean', ascending=False)

# Test problems, written as maximization targets

def quadratic(params: Dict[str, float]) -> float:
    """-(x - 3)^2 summed over every parameter; maximum 0 at x = 3"""
    return -sum((value - 3.0) ** 2 for value in params.values())

def rastrigin(params: Dict[str, float]) -> float:
    """Negated Rastrigin function; maximum 0 at the origin"""
    values = list(params.values())
    return -(10 * len(values) + sum(v * v - 10 * math.cos(2 * math.pi * v) for v in values))

def rosenbrock(params: Dict[str, float]) -> float:
    """Negated Rosenbrock function; maximum 0 at (1, ..., 1)"""
    values = list(params.values())
    return -sum(
        100 * (values[i + 1] - values[i] ** 2) ** 2 + (1 - values[i]) ** 2
        for i in range(len(values) - 1)
    )

TEST_PROBLEMS: Dict[str, Dict[str, Any]] = {
    'quadratic': {'objective': quadratic, 'min': -10.0, 'max': 10.0},
    'rastrigin': {'objective': rastrigin, 'min': -5.12, 'max': 5.12},
    'rosenbrock': {'objective': rosenbrock, 'min': -2.0, 'max': 2.0},
}

def make_test_problem(name: str, dimensions: int = 1, max_evaluations: Optional[int] = None) -> OptimizerParams:
    """Build OptimizerParams for one of the built-in test problems"""
    if name not in TEST_PROBLEMS:
        raise ValueError(f"Unknown test problem '{name}'. Available: {sorted(TEST_PROBLEMS)}")
    if name == 'rosenbrock' and dimensions < 2:
        raise ValueError("rosenbrock needs at least 2 dimensions")

    problem = TEST_PROBLEMS[name]
    objective: Callable[[Dict[str, float]], float] = problem['objective']
    ranges = [
        {'name': f'x{i}', 'min': problem['min'], 'max': problem['max']}
        for i in range(dimensions)
    ]
    return OptimizerParams(ranges=ranges, objective=objective, max_evaluations=max_evaluations)
