"""
Parameter Space Definition System

Defines the box-bounded search space for optimization: per-parameter ranges with
an optional step lattice, and the mappings between parameter dictionaries and
the normalized unit hypercube the stochastic optimizers work in.
"""

from typing import Dict, List, Any, Iterator, Optional, Sequence, Union, Mapping
from dataclasses import dataclass
import itertools
import math
import numpy as np
import structlog

from ..core.exceptions import InvalidParameterRangeError

logger = structlog.get_logger()

# Decimal places kept when generating grid values
GRID_PRECISION = 10

# Fraction of a step by which the last lattice point may overshoot max
LATTICE_TOLERANCE = 0.001

@dataclass(frozen=True)
class ParameterRange:
    """
    A single bounded parameter.

    Without ``step`` the parameter is continuous on ``[min, max]``. With ``step``
    it is the lattice ``{min, min + step, ...}`` capped at ``max``.
    """
    name: str
    min: float
    max: float
    step: Optional[float] = None

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name:
            raise InvalidParameterRangeError("Parameter name must be a non-empty string")

        for label, bound in (('min', self.min), ('max', self.max)):
            if not isinstance(bound, (int, float, np.number)) or not math.isfinite(bound):
                raise InvalidParameterRangeError(
                    f"Parameter '{self.name}' has non-finite {label}: {bound!r}"
                )

        if self.min >= self.max:
            raise InvalidParameterRangeError(
                f"Parameter '{self.name}' requires min < max (got min={self.min}, max={self.max})"
            )

        if self.step is not None:
            if not isinstance(self.step, (int, float, np.number)) or not math.isfinite(self.step) \
                    or self.step <= 0:
                raise InvalidParameterRangeError(
                    f"Parameter '{self.name}' requires step > 0 (got step={self.step!r})"
                )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ParameterRange':
        """Build a range from a ``{name, min, max, step?}`` mapping"""
        missing = [key for key in ('name', 'min', 'max') if key not in data]
        if missing:
            raise InvalidParameterRangeError(f"Parameter range {dict(data)} is missing {missing}")
        return cls(data['name'], data['min'], data['max'], data.get('step'))

    @property
    def span(self) -> float:
        return self.max - self.min

    @property
    def is_discrete(self) -> bool:
        return self.step is not None

    @property
    def last_lattice_value(self) -> float:
        """Largest lattice point within bounds; max itself without a step"""
        if self.step is None:
            return self.max
        k = math.floor(self.span / self.step + LATTICE_TOLERANCE)
        return min(self.min + k * self.step, self.max)

    def snap(self, value: float) -> float:
        """Snap value onto the step lattice, halves rounding up, within bounds"""
        if self.step is None:
            return value
        k = math.floor((value - self.min) / self.step + 0.5)
        value = self.min + k * self.step
        return max(self.min, min(self.last_lattice_value, value))

    def grid_values(self) -> List[float]:
        """Candidate values for grid search, deduplicated after rounding"""
        step = self.step if self.step is not None else self.span / 10

        values = []
        current = self.min
        # Tolerance on the upper bound absorbs drift from repeated addition
        while current <= self.max + step * LATTICE_TOLERANCE:
            values.append(min(current, self.max))
            current += step

        unique = []
        for value in values:
            rounded = round(value, GRID_PRECISION)
            if not unique or rounded != unique[-1]:
                unique.append(rounded)
        return unique

    def validate(self, value: Any) -> bool:
        """Check that value lies within bounds"""
        if not isinstance(value, (int, float, np.number)):
            return False
        return self.min <= value <= self.max

    def to_dict(self) -> Dict[str, Any]:
        data = {'name': self.name, 'min': self.min, 'max': self.max}
        if self.step is not None:
            data['step'] = self.step
        return data

RangeLike = Union[ParameterRange, Mapping[str, Any]]

class ParameterSpace:
    """
    Ordered collection of parameter ranges.

    Dimension order is the order the ranges were supplied in; it fixes the
    layout of normalized vectors and the nesting of the grid (first range
    varies slowest).
    """

    def __init__(self, ranges: Sequence[RangeLike]):
        if isinstance(ranges, ParameterSpace):
            ranges = ranges.ranges

        self.ranges: List[ParameterRange] = [self._coerce(r) for r in ranges]

        if not self.ranges:
            raise InvalidParameterRangeError("Parameter space requires at least one range")

        names = [r.name for r in self.ranges]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise InvalidParameterRangeError(f"Duplicate parameter names: {duplicates}")

        self.parameters: Dict[str, ParameterRange] = {r.name: r for r in self.ranges}

    @staticmethod
    def _coerce(range_like: RangeLike) -> ParameterRange:
        if isinstance(range_like, ParameterRange):
            return range_like
        if isinstance(range_like, Mapping):
            return ParameterRange.from_dict(range_like)
        raise InvalidParameterRangeError(
            f"Parameter range must be a ParameterRange or mapping, got {type(range_like).__name__}"
        )

    @property
    def dimension(self) -> int:
        return len(self.ranges)

    @property
    def names(self) -> List[str]:
        return [r.name for r in self.ranges]

    def __len__(self) -> int:
        return len(self.ranges)

    def __iter__(self):
        return iter(self.ranges)

    def normalize(self, params: Mapping[str, float]) -> np.ndarray:
        """Map a parameter dict into the unit hypercube"""
        vector = np.zeros(self.dimension)
        for i, r in enumerate(self.ranges):
            span = r.max - r.min
            vector[i] = (params[r.name] - r.min) / span if span > 0 else 0.0
        return vector

    def denormalize(self, vector: Sequence[float]) -> Dict[str, float]:
        """Map a unit-hypercube vector back to parameter values, snapping to steps"""
        if len(vector) != self.dimension:
            raise ValueError(
                f"Expected vector of length {self.dimension}, got {len(vector)}"
            )

        params = {}
        for x, r in zip(vector, self.ranges):
            params[r.name] = r.snap(r.min + float(x) * r.span)
        return params

    def generate_grid(self) -> List[Dict[str, float]]:
        """
        Generate the cartesian product of every range's grid values.

        Returns:
            List of parameter combinations, first range varying slowest
        """
        combinations = list(self.iter_grid())

        logger.debug("Generated parameter grid",
                    total_combinations=len(combinations),
                    parameters=self.names)
        return combinations

    def iter_grid(self) -> Iterator[Dict[str, float]]:
        """Lazily yield grid combinations in the same order as generate_grid"""
        names = self.names
        for values in itertools.product(*(r.grid_values() for r in self.ranges)):
            yield dict(zip(names, values))

    def grid_size(self) -> int:
        """Number of grid combinations without building them"""
        total = 1
        for r in self.ranges:
            total *= len(r.grid_values())
        return total

    def random_point(self, rng: np.random.Generator) -> np.ndarray:
        """Uniform point in the unit hypercube"""
        return rng.random(self.dimension)

    def sample(self, rng: np.random.Generator) -> Dict[str, float]:
        """Sample each parameter uniformly within bounds, snapped to its step"""
        params = {}
        for r in self.ranges:
            params[r.name] = r.snap(r.min + rng.random() * r.span)
        return params

    def validate_parameters(self, params: Mapping[str, float]) -> bool:
        """Validate parameter values against ranges"""
        for name, value in params.items():
            if name not in self.parameters:
                logger.warning("Unknown parameter", name=name)
                return False
            if not self.parameters[name].validate(value):
                logger.warning("Parameter out of range", name=name, value=value)
                return False
        return len(params) == self.dimension

    def get_bounds(self) -> Dict[str, tuple]:
        """Get parameter bounds"""
        return {r.name: (r.min, r.max) for r in self.ranges}

    def to_list(self) -> List[Dict[str, Any]]:
        return [r.to_dict() for r in self.ranges]

    def __repr__(self):
        return f"ParameterSpace({self.names})"

# Functional helpers mirroring the space methods

def normalize(params: Mapping[str, float], ranges: Sequence[RangeLike]) -> np.ndarray:
    return ParameterSpace(ranges).normalize(params)

def denormalize(vector: Sequence[float], ranges: Sequence[RangeLike]) -> Dict[str, float]:
    return ParameterSpace(ranges).denormalize(vector)

def generate_grid(ranges: Sequence[RangeLike]) -> List[Dict[str, float]]:
    """Grid over the ranges; an empty range list yields a single empty combination"""
    if not ranges:
        return [{}]
    return ParameterSpace(ranges).generate_grid()
