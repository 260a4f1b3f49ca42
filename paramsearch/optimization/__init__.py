"""
Parameter Optimization Framework

Black-box maximization of a caller-supplied objective over a box-bounded,
optionally discretized parameter space, with interchangeable search engines.
"""

from .parameter_space import ParameterRange, ParameterSpace, normalize, denormalize, generate_grid
from .base_optimizer import (
    BaseOptimizer,
    OptimizationConfig,
    OptimizerParams,
    OptimizerResult,
    EvaluatedPoint,
    build_optimization_config,
)
from .gaussian_process import GaussianProcessModel, Prediction, rbf_kernel, kernel_matrix, cholesky_solve, predict
from .grid_search_optimizer import GridSearchOptimizer
from .random_search_optimizer import RandomSearchOptimizer
from .bayesian_optimizer import BayesianOptimizer
from .differential_evolution_optimizer import DifferentialEvolutionOptimizer
from .registry import (
    OPTIMIZER_REGISTRY,
    get_optimizer_class,
    create_optimizer,
    create_optimizer_from_config,
    register_optimizer,
    get_available_optimizers,
    optimize,
    optimize_async,
    grid_search,
    random_search,
    bayesian_optimize,
    differential_evolution,
)
from .benchmark import compare_optimizers, summarize_comparison

__all__ = [
    # Parameter space
    'ParameterRange',
    'ParameterSpace',
    'normalize',
    'denormalize',
    'generate_grid',

    # Core optimization
    'BaseOptimizer',
    'OptimizationConfig',
    'OptimizerParams',
    'OptimizerResult',
    'EvaluatedPoint',
    'build_optimization_config',

    # Surrogate model
    'GaussianProcessModel',
    'Prediction',
    'rbf_kernel',
    'kernel_matrix',
    'cholesky_solve',
    'predict',

    # Optimizers
    'GridSearchOptimizer',
    'RandomSearchOptimizer',
    'BayesianOptimizer',
    'DifferentialEvolutionOptimizer',

    # Selection by name
    'OPTIMIZER_REGISTRY',
    'get_optimizer_class',
    'create_optimizer',
    'create_optimizer_from_config',
    'register_optimizer',
    'get_available_optimizers',
    'optimize',
    'optimize_async',
    'grid_search',
    'random_search',
    'bayesian_optimize',
    'differential_evolution',

    # Comparison
    'compare_optimizers',
    'summarize_comparison',
]
