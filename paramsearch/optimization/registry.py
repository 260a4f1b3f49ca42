from typing import Dict, Type, Any, Optional, Mapping
import numpy as np
import structlog

from ..core.exceptions import UnknownOptimizerError, OptimizerError
from .base_optimizer import (
    BaseOptimizer, OptimizationConfig, OptimizerParams, OptimizerResult,
    build_optimization_config, engine_hyperparameters
)
from .grid_search_optimizer import GridSearchOptimizer
from .random_search_optimizer import RandomSearchOptimizer
from .bayesian_optimizer import BayesianOptimizer
from .differential_evolution_optimizer import DifferentialEvolutionOptimizer

logger = structlog.get_logger()

OPTIMIZER_REGISTRY: Dict[str, Type[BaseOptimizer]] = {
    'grid': GridSearchOptimizer,
    'random': RandomSearchOptimizer,
    'bayesian': BayesianOptimizer,
    'differential_evolution': DifferentialEvolutionOptimizer,
}

OPTIMIZER_ALIASES: Dict[str, str] = {
    'grid_search': 'grid',
    'random_search': 'random',
    'bayes': 'bayesian',
    'bayesian_optimization': 'bayesian',
    'de': 'differential_evolution',
}

def _normalize_name(name: str) -> str:
    return name.strip().lower().replace('-', '_')

def resolve_method(method: str) -> str:
    """Canonical registry name for a method name or alias"""
    key = _normalize_name(method)
    return OPTIMIZER_ALIASES.get(key, key)

def get_optimizer_class(method: str) -> Type[BaseOptimizer]:
    """Get optimizer class by name"""
    key = resolve_method(method)
    if key not in OPTIMIZER_REGISTRY:
        available = sorted(OPTIMIZER_REGISTRY) + sorted(OPTIMIZER_ALIASES)
        raise UnknownOptimizerError(f"Unknown optimizer '{method}'. Available optimizers: {available}")

    return OPTIMIZER_REGISTRY[key]

def create_optimizer(
    method: str,
    config: OptimizationConfig = None,
    rng: Optional[np.random.Generator] = None,
    **hyperparameters: Any
) -> BaseOptimizer:
    """
    Create an optimizer instance.

    Args:
        method: Registered name or alias
        config: Run configuration
        rng: Random generator shared with the caller
        **hyperparameters: Engine-specific constructor arguments

    Raises:
        UnknownOptimizerError: If the method is unknown
        OptimizerError: If a hyperparameter is not accepted by the engine
    """
    optimizer_class = get_optimizer_class(method)

    try:
        return optimizer_class(config=config, rng=rng, **hyperparameters)
    except TypeError as e:
        logger.error("Invalid optimizer hyperparameters",
                    method=method, hyperparameters=hyperparameters, error=str(e))
        raise OptimizerError(f"Invalid hyperparameters for '{method}': {e}") from e

def create_optimizer_from_config(
    method: str,
    section: Optional[Mapping[str, Any]] = None,
    rng: Optional[np.random.Generator] = None
) -> BaseOptimizer:
    """Create an optimizer from one section of a YAML optimizer config"""
    return create_optimizer(
        method,
        config=build_optimization_config(section),
        rng=rng,
        **engine_hyperparameters(section)
    )

def get_available_optimizers() -> Dict[str, Type[BaseOptimizer]]:
    """Get all available optimizers"""
    return OPTIMIZER_REGISTRY.copy()

def register_optimizer(name: str, optimizer_class: Type[BaseOptimizer]) -> None:
    """Register a new optimizer class"""
    if not issubclass(optimizer_class, BaseOptimizer):
        raise TypeError(f"{optimizer_class!r} is not a BaseOptimizer subclass")
    key = _normalize_name(name)
    OPTIMIZER_REGISTRY[key] = optimizer_class
    logger.info("Optimizer registered", optimizer=key)

def _build(method, seed, rng, config, hyperparameters) -> BaseOptimizer:
    if seed is not None:
        if rng is not None:
            raise OptimizerError("Pass either seed or rng, not both")
        rng = np.random.default_rng(seed)
    return create_optimizer(method, config=config, rng=rng, **hyperparameters)

def optimize(
    method: str,
    params: OptimizerParams,
    *,
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
    config: OptimizationConfig = None,
    **hyperparameters: Any
) -> OptimizerResult:
    """Run the named optimizer synchronously"""
    return _build(method, seed, rng, config, hyperparameters).optimize(params)

async def optimize_async(
    method: str,
    params: OptimizerParams,
    *,
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
    config: OptimizationConfig = None,
    **hyperparameters: Any
) -> OptimizerResult:
    """Run the named optimizer, awaiting an asynchronous objective"""
    return await _build(method, seed, rng, config, hyperparameters).optimize_async(params)

def grid_search(params: OptimizerParams, **kwargs: Any) -> OptimizerResult:
    """Exhaustive search over the parameter grid"""
    return optimize('grid', params, **kwargs)

def random_search(params: OptimizerParams, **kwargs: Any) -> OptimizerResult:
    """Uniform random sampling baseline"""
    return optimize('random', params, **kwargs)

def bayesian_optimize(params: OptimizerParams, **kwargs: Any) -> OptimizerResult:
    """GP-UCB Bayesian optimization"""
    return optimize('bayesian', params, **kwargs)

def differential_evolution(params: OptimizerParams, **kwargs: Any) -> OptimizerResult:
    """DE/rand/1/bin differential evolution"""
    return optimize('differential_evolution', params, **kwargs)
