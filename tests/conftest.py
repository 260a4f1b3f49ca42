"""
Pytest configuration and shared fixtures
"""

import pytest
import numpy as np
from typing import Dict, List

from paramsearch.optimization.base_optimizer import OptimizerParams


def quadratic_objective(params: Dict[str, float]) -> float:
    """Unimodal test objective with its maximum (0) at x = 3"""
    return -(params['x'] - 3.0) ** 2


class CountingObjective:
    """Objective wrapper that records every call"""

    def __init__(self, func=quadratic_objective):
        self.func = func
        self.calls: List[Dict[str, float]] = []

    def __call__(self, params: Dict[str, float]) -> float:
        self.calls.append(dict(params))
        return self.func(params)


@pytest.fixture
def rng():
    """Seeded random generator"""
    return np.random.default_rng(42)


@pytest.fixture
def quadratic_ranges():
    """Single continuous parameter on [-10, 10]"""
    return [{'name': 'x', 'min': -10.0, 'max': 10.0}]


@pytest.fixture
def quadratic_params(quadratic_ranges):
    """The -(x - 3)^2 problem with a 60 evaluation budget"""
    return OptimizerParams(ranges=quadratic_ranges, objective=quadratic_objective, max_evaluations=60)


@pytest.fixture
def two_dim_ranges():
    """One continuous and one stepped parameter"""
    return [
        {'name': 'fast_period', 'min': 5, 'max': 20, 'step': 5},
        {'name': 'threshold', 'min': 0.0, 'max': 1.0},
    ]


@pytest.fixture
def counting_objective():
    """Quadratic objective that records its calls"""
    return CountingObjective()


@pytest.fixture
def make_params():
    """Factory for OptimizerParams"""
    def _make(ranges, objective=quadratic_objective, max_evaluations=None):
        return OptimizerParams(ranges=ranges, objective=objective, max_evaluations=max_evaluations)
    return _make
