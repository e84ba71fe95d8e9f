"""
Search configuration.

SearchOptions is the immutable options structure every search receives;
WindowParameters is what the engine derives from it for one input magnitude.
"""
import dataclasses
import logging
import math
import sys
from dataclasses import dataclass
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_C1: float = 1.6
DEFAULT_C2: float = 2.0
DEFAULT_RING_LIMIT: int = 40
BOUNDED_CORRECTION: int = 3
SAFETY_CEILING: int = 100_000
YIELD_EVERY: int = 5000

# Floors applied to derived and overridden parameters
MIN_DERIVED_CUTOFF: int = 5
MIN_DERIVED_RADIUS: int = 8
MIN_OVERRIDE_CUTOFF: int = 3
MIN_OVERRIDE_RADIUS: int = 2

# Non-finite P or T estimates clamp to the largest integral float
MAX_DERIVED_VALUE: int = int(sys.float_info.max)


@dataclass(frozen=True)
class SearchOptions:
    """Scaling constants, overrides and budgets for one query."""
    c1: float = DEFAULT_C1
    c2: float = DEFAULT_C2
    prime_cutoff: Optional[int] = None
    window_radius: Optional[int] = None
    rounds: int = 12
    ring_limit: int = DEFAULT_RING_LIMIT
    prefilter: bool = True
    sweep_bound: int = 0
    bounded_correction: int = BOUNDED_CORRECTION
    safety_ceiling: int = SAFETY_CEILING
    yield_every: int = YIELD_EVERY
    fermat_max_iterations: int = 2_000_000

    def __post_init__(self):
        if not (self.c1 > 0 and self.c2 > 0):
            raise ValueError(f"Scaling constants must be positive (c1={self.c1}, c2={self.c2})")
        if self.prime_cutoff is not None and self.prime_cutoff < 1:
            raise ValueError(f"prime_cutoff must be >= 1, got {self.prime_cutoff}")
        if self.window_radius is not None and self.window_radius < 0:
            raise ValueError(f"window_radius must be >= 0, got {self.window_radius}")
        for name in ("rounds", "bounded_correction", "yield_every"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1, got {getattr(self, name)}")
        for name in ("ring_limit", "sweep_bound", "safety_ceiling", "fermat_max_iterations"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")

    @classmethod
    def from_mapping(cls, raw: Dict[str, Any]) -> "SearchOptions":
        """Build options from a plain dict, rejecting unknown keys."""
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = set(raw) - known
        if unknown:
            raise ValueError(f"Unknown search options: {', '.join(sorted(unknown))}")
        return cls(**raw)

    def replace(self, **changes: Any) -> "SearchOptions":
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


@dataclass(frozen=True)
class WindowParameters:
    """Small-prime cutoff P and window radius T for one input."""
    prime_cutoff: int
    window_radius: int
    ln_estimate: float
    radius_overridden: bool

    def exceeds_safety(self, ceiling: int) -> bool:
        """Only a derived radius can trip the ceiling; overrides are trusted."""
        return not self.radius_overridden and self.window_radius > ceiling


def _scaled_floor(x: float) -> int:
    if not math.isfinite(x):
        return MAX_DERIVED_VALUE
    return math.floor(x)


def derive_parameters(ln_n: float, options: SearchOptions) -> WindowParameters:
    """
    P = c1 * ln N and T = c2 * (ln N)^2, unless explicitly overridden.

    Args:
        ln_n: Natural-log estimate of the input magnitude
        options: Search options carrying c1, c2 and the overrides

    Returns:
        WindowParameters with the floors applied
    """
    if options.prime_cutoff is not None:
        p = max(MIN_OVERRIDE_CUTOFF, options.prime_cutoff)
    else:
        p = max(MIN_DERIVED_CUTOFF, _scaled_floor(options.c1 * ln_n))

    if options.window_radius is not None:
        t = max(MIN_OVERRIDE_RADIUS, options.window_radius)
    else:
        t = max(MIN_DERIVED_RADIUS, _scaled_floor(options.c2 * ln_n * ln_n))

    params = WindowParameters(
        prime_cutoff=p,
        window_radius=t,
        ln_estimate=ln_n,
        radius_overridden=options.window_radius is not None,
    )
    logger.debug(f"ln N = {ln_n:.6g} -> P = {p}, T = {t}")
    return params
