"""
Base Optimizer - Abstract base class for all parameter optimization algorithms
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Any, Optional, Callable, Union, Sequence, Mapping, Generator, Awaitable
from dataclasses import dataclass, field, fields, asdict
from datetime import datetime, timedelta
import inspect
import math
import time
import structlog
import numpy as np
import pandas as pd

from ..core.config import settings
from ..core.exceptions import OptimizerError
from .parameter_space import ParameterSpace, RangeLike

logger = structlog.get_logger()

Params = Dict[str, float]
Objective = Callable[[Params], Union[float, Awaitable[float]]]

# Candidate generator protocol: yields parameter dicts, receives objective values
SearchGenerator = Generator[Params, float, None]

@dataclass
class OptimizerParams:
    """Inputs of a single optimization run"""
    ranges: Sequence[RangeLike]
    objective: Objective
    max_evaluations: Optional[int] = None

@dataclass
class OptimizationConfig:
    """Configuration for optimization runs"""
    # Budget; OptimizerParams.max_evaluations takes precedence when set
    max_evaluations: Optional[int] = None
    max_time_seconds: Optional[float] = None

    # Reproducibility
    random_seed: Optional[int] = None

    # Objective failures propagate unless this is enabled
    catch_objective_errors: bool = False
    failure_value: float = -1e6

    # Logging
    log_progress_interval: int = 10

def build_optimization_config(section: Optional[Mapping[str, Any]]) -> OptimizationConfig:
    """Build an OptimizationConfig from the run-level keys of a config section"""
    section = section or {}
    known = {f.name for f in fields(OptimizationConfig)}
    return OptimizationConfig(**{k: v for k, v in section.items() if k in known})

def engine_hyperparameters(section: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Keys of a config section that are not OptimizationConfig fields"""
    section = section or {}
    known = {f.name for f in fields(OptimizationConfig)}
    return {k: v for k, v in section.items() if k not in known}

@dataclass
class EvaluatedPoint:
    """A parameter set and the objective value it produced"""
    params: Params
    value: float

@dataclass
class OptimizerResult:
    """Outcome of an optimization run"""
    best_params: Params
    best_value: float
    evaluations: List[EvaluatedPoint]
    total_evaluations: int
    method: str = ''
    elapsed_seconds: float = 0.0
    stopped_early: bool = False
    stop_reason: Optional[str] = None

    def top_n(self, n: int = 10) -> List[EvaluatedPoint]:
        """Best ``n`` evaluations by value; ties keep evaluation order"""
        return sorted(self.evaluations, key=lambda p: p.value, reverse=True)[:n]

    def convergence_history(self) -> List[float]:
        """Running best value after each evaluation"""
        history = []
        best = float('-inf')
        for point in self.evaluations:
            if point.value > best:
                best = point.value
            history.append(best)
        return history

    def summary(self) -> Dict[str, Any]:
        """Summary statistics over all evaluated values"""
        if not self.evaluations:
            return {'message': 'No results available'}

        values = np.array([p.value for p in self.evaluations], dtype=float)
        finite = values[np.isfinite(values)]

        return {
            'method': self.method,
            'total_evaluations': self.total_evaluations,
            'finite_evaluations': int(finite.size),
            'best_value': self.best_value,
            'worst_value': float(finite.min()) if finite.size else None,
            'mean_value': float(finite.mean()) if finite.size else None,
            'std_value': float(finite.std()) if finite.size else None,
            'best_params': dict(self.best_params),
            'elapsed_seconds': self.elapsed_seconds,
            'stopped_early': self.stopped_early
        }

    def to_dict(self, top_n: Optional[int] = None) -> Dict[str, Any]:
        """Serializable form, optionally truncated to the top-N evaluations"""
        points = self.top_n(top_n) if top_n is not None else self.evaluations
        data = asdict(self)
        data['evaluations'] = [asdict(p) for p in points]
        return data

    def to_dataframe(self) -> pd.DataFrame:
        """One row per evaluation, one column per parameter plus ``value``"""
        rows = [{**p.params, 'value': p.value} for p in self.evaluations]
        df = pd.DataFrame(rows)
        df.index.name = 'evaluation'
        return df

@dataclass
class OptimizationState:
    """Tracks the state of an optimization run"""
    evaluations: List[EvaluatedPoint] = field(default_factory=list)
    best_index: Optional[int] = None
    max_evaluations: Optional[int] = None
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None
    is_running: bool = False
    is_cancelled: bool = False
    stop_reason: Optional[str] = None

    @property
    def elapsed_time(self) -> timedelta:
        end = self.end_time or datetime.now()
        return end - self.start_time

    @property
    def best_point(self) -> Optional[EvaluatedPoint]:
        if self.best_index is None:
            return None
        return self.evaluations[self.best_index]

    @property
    def budget_exhausted(self) -> bool:
        return self.max_evaluations is not None and len(self.evaluations) >= self.max_evaluations

class BaseOptimizer(ABC):
    """
    Abstract base class for all parameter optimization algorithms.

    Subclasses implement ``_search`` as a generator that yields one parameter
    dict at a time and receives the objective value back through ``send``.
    The base class owns everything around it:
    - budget resolution and validation
    - sequential evaluation (sync or awaited)
    - running-best tracking and result assembly
    - deadline and cancellation checks
    - progress logging and callbacks
    """

    name: str = 'base'

    def __init__(
        self,
        config: OptimizationConfig = None,
        rng: Optional[np.random.Generator] = None
    ):
        self.config = config or OptimizationConfig()
        self.state = OptimizationState()
        self.rng = rng

        # Callbacks
        self.progress_callback: Optional[Callable[[Dict[str, Any]], Any]] = None
        self._deadline: Optional[float] = None

    @abstractmethod
    def _search(
        self,
        space: ParameterSpace,
        max_evaluations: Optional[int],
        rng: np.random.Generator
    ) -> SearchGenerator:
        """
        Implementation-specific candidate generation.
        Must be implemented by subclasses.
        """
        pass

    def default_max_evaluations(self) -> Optional[int]:
        """Budget used when neither the params nor the config set one"""
        return getattr(settings.default_budgets, self.name, None)

    def optimize(self, params: OptimizerParams) -> OptimizerResult:
        """
        Run the optimization synchronously.

        Args:
            params: Ranges, objective and evaluation budget

        Returns:
            Result with the best parameters and every evaluation
        """
        if inspect.iscoroutinefunction(params.objective):
            raise OptimizerError("Objective is a coroutine function; use optimize_async()")

        space, search = self._begin_run(params)
        try:
            candidate = self._advance(search)
            while candidate is not None and not self._should_stop():
                value = self._evaluate(params.objective, candidate)
                self._record(candidate, value)
                candidate = self._advance(search, value)
        except Exception as e:
            logger.error("Optimization failed", algorithm=self.name, error=str(e))
            raise
        finally:
            search.close()
            self._end_run()

        return self._build_result()

    async def optimize_async(self, params: OptimizerParams) -> OptimizerResult:
        """
        Run the optimization, awaiting each evaluation when the objective is
        asynchronous. Evaluations are still strictly sequential.
        """
        space, search = self._begin_run(params)
        try:
            candidate = self._advance(search)
            while candidate is not None and not self._should_stop():
                value = await self._evaluate_async(params.objective, candidate)
                self._record(candidate, value)
                candidate = self._advance(search, value)
        except Exception as e:
            logger.error("Optimization failed", algorithm=self.name, error=str(e))
            raise
        finally:
            search.close()
            self._end_run()

        return self._build_result()

    run = optimize

    def set_progress_callback(self, callback: Callable[[Dict[str, Any]], Any]):
        """Set progress callback function"""
        self.progress_callback = callback
        logger.debug("Progress callback set")

    def cancel(self):
        """Cancel the optimization run at the next evaluation boundary"""
        self.state.is_cancelled = True
        logger.info("Optimization cancelled by user", algorithm=self.name)

    def get_progress(self) -> Dict[str, Any]:
        """Get current optimization progress"""
        completed = len(self.state.evaluations)
        budget = self.state.max_evaluations
        best = self.state.best_point
        return {
            'algorithm': self.name,
            'evaluations_completed': completed,
            'max_evaluations': budget,
            'progress_pct': (completed / budget) * 100 if budget else None,
            'elapsed_time': self.state.elapsed_time.total_seconds(),
            'is_running': self.state.is_running,
            'is_cancelled': self.state.is_cancelled,
            'best_value': best.value if best else None,
            'best_params': dict(best.params) if best else None
        }

    def _resolve_budget(self, params: OptimizerParams) -> Optional[int]:
        budget = params.max_evaluations
        if budget is None:
            budget = self.config.max_evaluations
        if budget is None:
            budget = self.default_max_evaluations()

        if budget is not None:
            if isinstance(budget, bool) or not isinstance(budget, (int, np.integer)):
                raise OptimizerError(f"max_evaluations must be an integer, got {budget!r}")
            if budget < 0:
                raise OptimizerError(f"max_evaluations must be >= 0, got {budget}")
            budget = int(budget)

        ceiling = settings.max_evaluations_ceiling
        if ceiling is not None and (budget is None or budget > ceiling):
            logger.warning("Evaluation budget clipped to ceiling",
                          algorithm=self.name, requested=budget, ceiling=ceiling)
            budget = ceiling

        return budget

    def _begin_run(self, params: OptimizerParams):
        if self.state.is_running:
            raise OptimizerError(f"{type(self).__name__} is already running")

        space = ParameterSpace(params.ranges)
        budget = self._resolve_budget(params)
        rng = self.rng if self.rng is not None else np.random.default_rng(self.config.random_seed)

        self.state = OptimizationState(max_evaluations=budget, is_running=True)
        self._deadline = (
            time.monotonic() + self.config.max_time_seconds
            if self.config.max_time_seconds is not None else None
        )

        logger.info("Starting optimization",
                   algorithm=self.name,
                   parameter_count=space.dimension,
                   max_evaluations=budget)

        return space, self._search(space, budget, rng)

    @staticmethod
    def _advance(search: SearchGenerator, value: Optional[float] = None) -> Optional[Params]:
        """
        Send the latest value into the search and return its next candidate.

        The final value of a run is sent as well so the engine can finish its
        own bookkeeping; None means the search is exhausted.
        """
        try:
            return search.send(value)
        except StopIteration:
            return None

    def _end_run(self):
        self.state.is_running = False
        self.state.end_time = datetime.now()

    def _should_stop(self) -> bool:
        """Cooperative stop check, run before every evaluation"""
        reason = None
        if self.state.budget_exhausted:
            return True
        if self.state.is_cancelled:
            reason = 'cancelled'
        elif self._deadline is not None and time.monotonic() >= self._deadline:
            reason = 'deadline'

        if reason is not None:
            self.state.stop_reason = reason
            logger.warning("Optimization stopped early",
                          algorithm=self.name,
                          reason=reason,
                          total_evaluations=len(self.state.evaluations))
            return True
        return False

    def _evaluate(self, objective: Objective, candidate: Params) -> float:
        try:
            value = objective(dict(candidate))
            if inspect.isawaitable(value):
                if inspect.iscoroutine(value):
                    value.close()
                raise OptimizerError("Objective returned an awaitable; use optimize_async()")
            return float(value)
        except OptimizerError:
            raise
        except Exception as e:
            return self._handle_objective_error(candidate, e)

    async def _evaluate_async(self, objective: Objective, candidate: Params) -> float:
        try:
            value = objective(dict(candidate))
            if inspect.isawaitable(value):
                value = await value
            return float(value)
        except Exception as e:
            return self._handle_objective_error(candidate, e)

    def _handle_objective_error(self, candidate: Params, error: Exception) -> float:
        if not self.config.catch_objective_errors:
            raise error
        logger.warning("Parameter evaluation failed",
                      algorithm=self.name,
                      parameters=candidate,
                      error=str(error),
                      failure_value=self.config.failure_value)
        return self.config.failure_value

    def _record(self, candidate: Params, value: float):
        """Append an evaluation and update the running best"""
        point = EvaluatedPoint(params=dict(candidate), value=value)
        self.state.evaluations.append(point)
        index = len(self.state.evaluations) - 1

        best = self.state.best_point
        if not math.isnan(value) and (best is None or value > best.value):
            self.state.best_index = index
            logger.debug("New best parameters",
                        algorithm=self.name,
                        evaluation=index + 1,
                        best_value=value,
                        params=point.params)

        self._update_progress()

    def _update_progress(self):
        completed = len(self.state.evaluations)
        interval = self.config.log_progress_interval
        if interval <= 0 or completed % interval != 0:
            return

        progress = self.get_progress()
        logger.debug("Optimization progress",
                    algorithm=self.name,
                    evaluation=completed,
                    max_evaluations=self.state.max_evaluations,
                    best_value=progress['best_value'])

        if self.progress_callback:
            try:
                self.progress_callback(progress)
            except Exception as e:
                logger.warning("Progress callback failed", error=str(e))

    def _build_result(self) -> OptimizerResult:
        best = self.state.best_point
        evaluations = list(self.state.evaluations)
        elapsed = self.state.elapsed_time.total_seconds()

        result = OptimizerResult(
            best_params=dict(best.params) if best else {},
            best_value=best.value if best else float('-inf'),
            evaluations=evaluations,
            total_evaluations=len(evaluations),
            method=self.name,
            elapsed_seconds=elapsed,
            stopped_early=self.state.stop_reason is not None,
            stop_reason=self.state.stop_reason
        )

        logger.info("Optimization completed",
                   algorithm=self.name,
                   total_evaluations=result.total_evaluations,
                   best_value=result.best_value,
                   elapsed_time=elapsed)
        return result
