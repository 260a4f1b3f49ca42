"""
Differential Evolution Optimizer

Population-based evolutionary search in the normalized unit hypercube:

- Mutation (DE/rand/1): v = x_r1 + F * (x_r2 - x_r3)
- Out-of-bounds coordinates bounce back between the parent and the violated bound
- Binomial crossover with one coordinate always taken from the mutant
- Greedy selection: the trial replaces its parent when at least as good
"""

from typing import Optional, Tuple
import numpy as np
import structlog

from ..core.exceptions import OptimizerError
from .base_optimizer import BaseOptimizer, OptimizationConfig, SearchGenerator
from .parameter_space import ParameterSpace

logger = structlog.get_logger()

# DE/rand/1 needs the target plus three distinct donors
MIN_DE_POPULATION = 4

class DifferentialEvolutionOptimizer(BaseOptimizer):
    """
    Differential evolution optimizer (DE/rand/1/bin).

    The population size is ``max(4 * dim, min_population_size)`` and the
    number of generations is derived from the evaluation budget, so a run may
    finish slightly under budget but never over it.
    """

    name = 'differential_evolution'

    def __init__(
        self,
        config: OptimizationConfig = None,
        rng: Optional[np.random.Generator] = None,
        mutation_factor: float = 0.8,
        crossover_rate: float = 0.9,
        min_population_size: int = 15
    ):
        """
        Initialize differential evolution optimizer.

        Args:
            config: Optimization configuration
            rng: Random generator; derived from config.random_seed when omitted
            mutation_factor: Differential weight F
            crossover_rate: Binomial crossover probability CR
            min_population_size: Lower bound on the population size
        """
        super().__init__(config, rng)
        if not 0 <= crossover_rate <= 1:
            raise ValueError("crossover_rate must be within [0, 1]")
        self.mutation_factor = mutation_factor
        self.crossover_rate = crossover_rate
        self.min_population_size = min_population_size

        # Evolution statistics
        self.generation = 0
        self.best_fitness_history = []

    def population_size(self, dim: int) -> int:
        return max(4 * dim, self.min_population_size)

    def _search(
        self,
        space: ParameterSpace,
        max_evaluations: Optional[int],
        rng: np.random.Generator
    ) -> SearchGenerator:
        if max_evaluations is None:
            raise OptimizerError("Differential evolution requires a finite evaluation budget")

        dim = space.dimension
        pop_size = self.population_size(dim)
        if max_evaluations < pop_size:
            logger.warning("Evaluation budget below population size, shrinking population",
                          population_size=pop_size,
                          max_evaluations=max_evaluations)
            pop_size = max_evaluations

        max_generations = max(1, (max_evaluations - pop_size) // pop_size) if pop_size else 0

        self.generation = 0
        self.best_fitness_history = []

        logger.info("Starting differential evolution optimization",
                   population_size=pop_size,
                   generations=max_generations,
                   mutation_factor=self.mutation_factor,
                   crossover_rate=self.crossover_rate)

        population = np.empty((pop_size, dim))
        fitness = np.empty(pop_size)

        # Initialize population
        for i in range(pop_size):
            population[i] = space.random_point(rng)
            fitness[i] = yield space.denormalize(population[i])
        evaluations = pop_size

        if pop_size < MIN_DE_POPULATION:
            logger.warning("Population too small to evolve", population_size=pop_size)
            return

        # Evolution loop
        for generation in range(max_generations):
            self.generation = generation + 1

            for i in range(pop_size):
                if evaluations >= max_evaluations:
                    return

                r1, r2, r3 = self._select_donors(i, pop_size, rng)
                mutant = self._mutate(population, i, r1, r2, r3, rng)
                trial = self._crossover(population[i], mutant, rng)

                value = yield space.denormalize(trial)
                evaluations += 1

                # Greedy selection, ties favor the trial
                if value >= fitness[i]:
                    population[i] = trial
                    fitness[i] = value

            self.best_fitness_history.append(float(np.max(fitness)))
            logger.debug("Generation complete",
                        generation=self.generation,
                        best_fitness=self.best_fitness_history[-1],
                        avg_fitness=float(np.mean(fitness)))

    def _select_donors(self, i: int, pop_size: int, rng: np.random.Generator) -> Tuple[int, int, int]:
        """Three distinct indices, all different from ``i``"""
        others = [k for k in range(pop_size) if k != i]
        r1, r2, r3 = rng.choice(others, size=3, replace=False)
        return int(r1), int(r2), int(r3)

    def _mutate(
        self,
        population: np.ndarray,
        i: int,
        r1: int,
        r2: int,
        r3: int,
        rng: np.random.Generator
    ) -> np.ndarray:
        """DE/rand/1 mutant with bounce-back bounds handling"""
        parent = population[i]
        mutant = population[r1] + self.mutation_factor * (population[r2] - population[r3])

        for j in range(len(mutant)):
            if mutant[j] < 0:
                mutant[j] = rng.random() * parent[j]
            elif mutant[j] > 1:
                mutant[j] = parent[j] + rng.random() * (1 - parent[j])

        return np.clip(mutant, 0.0, 1.0)

    def _crossover(self, parent: np.ndarray, mutant: np.ndarray, rng: np.random.Generator) -> np.ndarray:
        """Binomial crossover; coordinate ``j_rand`` always comes from the mutant"""
        dim = len(parent)
        j_rand = int(rng.integers(dim))
        mask = rng.random(dim) < self.crossover_rate
        mask[j_rand] = True
        return np.where(mask, mutant, parent)
