"""Random search optimizer - uniform sampling of the parameter space."""

from typing import Optional
import numpy as np
import structlog

from ..core.exceptions import OptimizerError
from .base_optimizer import BaseOptimizer, SearchGenerator
from .parameter_space import ParameterSpace

logger = structlog.get_logger()

class RandomSearchOptimizer(BaseOptimizer):
    """
    Random search optimizer.

    Samples every parameter independently and uniformly within its bounds,
    snapping to the step lattice where one is defined. Serves as the
    statistical control the other optimizers are compared against.
    """

    name = 'random'

    def _search(
        self,
        space: ParameterSpace,
        max_evaluations: Optional[int],
        rng: np.random.Generator
    ) -> SearchGenerator:
        if max_evaluations is None:
            raise OptimizerError("Random search requires a finite evaluation budget")

        logger.info("Starting random search optimization", samples=max_evaluations)

        for _ in range(max_evaluations):
            yield space.sample(rng)
