"""
Bayesian Optimizer

Gaussian-process surrogate with an Upper Confidence Bound acquisition:

    UCB(x) = mu(x) + kappa * sigma(x)

The run starts with a handful of uniform random evaluations, then repeatedly
fits the surrogate to the standardized observations, scores a batch of random
candidates with UCB and evaluates the best one. If the kernel matrix cannot be
factored the iteration falls back to a single random sample.
"""

from typing import List, Optional
import numpy as np
import structlog

from ..core.exceptions import OptimizerError
from .base_optimizer import BaseOptimizer, OptimizationConfig, SearchGenerator
from .gaussian_process import GaussianProcessModel, predict
from .parameter_space import ParameterSpace

logger = structlog.get_logger()

# Length-scale bounds for the median-distance heuristic
DEFAULT_LENGTH_SCALE = 0.5
MIN_LENGTH_SCALE = 0.1

class BayesianOptimizer(BaseOptimizer):
    """
    GP-UCB Bayesian optimizer working in the normalized unit hypercube.

    The acquisition function is maximized by random search over candidate
    points, which is adequate for the low-dimensional spaces (a handful of
    parameters) this is meant for.
    """

    name = 'bayesian'

    def __init__(
        self,
        config: OptimizationConfig = None,
        rng: Optional[np.random.Generator] = None,
        kappa: float = 2.576,
        noise: float = 1e-4,
        kernel_variance: float = 1.0,
        n_candidates_min: int = 100,
        n_candidates_per_dim: int = 20,
        reuse_factor: bool = True
    ):
        """
        Initialize Bayesian optimizer.

        Args:
            config: Optimization configuration
            rng: Random generator; derived from config.random_seed when omitted
            kappa: UCB exploration weight (2.576 ~ one-sided 99% band)
            noise: Observation noise added to the kernel diagonal
            kernel_variance: RBF amplitude
            n_candidates_min: Minimum number of acquisition candidates
            n_candidates_per_dim: Acquisition candidates per dimension
            reuse_factor: Factor the kernel matrix once per iteration instead
                of once per candidate prediction
        """
        super().__init__(config, rng)
        self.kappa = kappa
        self.noise = noise
        self.kernel_variance = kernel_variance
        self.n_candidates_min = n_candidates_min
        self.n_candidates_per_dim = n_candidates_per_dim
        self.reuse_factor = reuse_factor

        self.fallback_count = 0

    def _search(
        self,
        space: ParameterSpace,
        max_evaluations: Optional[int],
        rng: np.random.Generator
    ) -> SearchGenerator:
        if max_evaluations is None:
            raise OptimizerError("Bayesian optimization requires a finite evaluation budget")

        dim = space.dimension
        n_initial = min(max(2 * dim, 5), max_evaluations // 3)
        self.fallback_count = 0

        logger.info("Starting Bayesian optimization",
                   initial_points=n_initial,
                   kappa=self.kappa,
                   candidates=self._n_candidates(dim))

        X: List[np.ndarray] = []
        y: List[float] = []

        # Random initialization
        for _ in range(n_initial):
            x = space.random_point(rng)
            value = yield space.denormalize(x)
            X.append(x)
            y.append(value)

        while len(X) < max_evaluations:
            x = self._next_candidate(space, X, y, rng)
            value = yield space.denormalize(x)
            X.append(x)
            y.append(value)

        if self.fallback_count:
            logger.info("Surrogate fallbacks during run", fallbacks=self.fallback_count)

    def _n_candidates(self, dim: int) -> int:
        return max(self.n_candidates_min, self.n_candidates_per_dim * dim)

    def _next_candidate(
        self,
        space: ParameterSpace,
        X: List[np.ndarray],
        y: List[float],
        rng: np.random.Generator
    ) -> np.ndarray:
        """Pick the next point to evaluate by maximizing UCB"""
        length_scale = compute_length_scale(X)
        y_norm = standardize(y)

        model = GaussianProcessModel(length_scale, self.kernel_variance, self.noise)
        if not model.fit(X, y_norm):
            self.fallback_count += 1
            logger.debug("Surrogate fit failed, sampling at random",
                        observations=len(X), length_scale=length_scale)
            return space.random_point(rng)

        candidates = rng.random((self._n_candidates(space.dimension), space.dimension))

        if self.reuse_factor:
            means, variances = model.predict_batch(candidates)
        else:
            predictions = [
                predict(c, model.X, model.alpha, length_scale, self.kernel_variance, self.noise)
                for c in candidates
            ]
            means = np.array([p.mean for p in predictions])
            variances = np.array([p.variance for p in predictions])

        ucb = means + self.kappa * np.sqrt(variances)
        # argmax keeps the first candidate on ties
        return candidates[int(np.argmax(ucb))]

def compute_length_scale(X: List[np.ndarray]) -> float:
    """Median pairwise distance between observed points, floored at 0.1"""
    if len(X) < 2:
        return DEFAULT_LENGTH_SCALE

    points = np.asarray(X, dtype=float)
    diff = points[:, None, :] - points[None, :, :]
    dist = np.sqrt(np.sum(diff * diff, axis=-1))
    upper = np.sort(dist[np.triu_indices(len(points), k=1)])

    median = float(upper[len(upper) // 2])
    if median == 0:
        median = DEFAULT_LENGTH_SCALE
    return max(median, MIN_LENGTH_SCALE)

def standardize(y: List[float]) -> np.ndarray:
    """Zero-mean, unit-std targets; a zero std is replaced by 1"""
    values = np.asarray(y, dtype=float)
    if values.size == 0:
        return values

    mean = values.mean()
    std = np.sqrt(np.mean((values - mean) ** 2))
    if not std > 1e-12:
        std = 1.0
    return (values - mean) / std
