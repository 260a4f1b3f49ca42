"""
Grid Search Optimizer

Exhaustive, deterministic evaluation of the parameter lattice.
"""

from typing import Optional
import itertools
import numpy as np
import structlog

from .base_optimizer import BaseOptimizer, SearchGenerator
from .parameter_space import ParameterSpace

logger = structlog.get_logger()

class GridSearchOptimizer(BaseOptimizer):
    """
    Grid search optimizer.

    Evaluates grid points in generation order (first parameter varies
    slowest) until the grid or the evaluation budget runs out. Uses no
    randomness, which makes it a reproducible baseline for small spaces.
    """

    name = 'grid'

    def _search(
        self,
        space: ParameterSpace,
        max_evaluations: Optional[int],
        rng: np.random.Generator
    ) -> SearchGenerator:
        total = space.grid_size()

        limit = total if max_evaluations is None else min(total, max_evaluations)
        if limit < total:
            logger.warning("Grid larger than evaluation budget, truncating",
                          total_combinations=total,
                          max_evaluations=max_evaluations)

        logger.info("Starting grid search optimization",
                   total_combinations=total,
                   evaluations_planned=limit)

        # Combinations past the budget are never built
        for params in itertools.islice(space.iter_grid(), limit):
            yield params
