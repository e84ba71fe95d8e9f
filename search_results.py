"""
Structured result records returned by every search.

Each record is a frozen dataclass with a ``status`` tag. ``raise_for_status()``
turns a non-success record back into the matching search_errors exception
for callers that prefer exceptions over inspecting records.
"""
import enum
from dataclasses import dataclass, field
from typing import Optional

from search_errors import (
    BoundedCorrectionExhausted,
    InputFormatError,
    MagnitudeTooLarge,
    SafetyCeilingExceeded,
    SearchAborted,
    SearchError,
    SearchExhausted,
)


class SearchState(enum.Enum):
    SCANNING = "scanning"
    FOUND = "found"
    BOUNDED_CORRECTION_EXHAUSTED = "bounded_correction_exhausted"
    SEARCH_EXHAUSTED = "search_exhausted"
    SAFETY_ABORTED = "safety_aborted"
    MAGNITUDE_PREVIEW = "magnitude_preview"
    PREVIEW = "preview"
    ABORTED = "aborted"


@dataclass(frozen=True)
class SearchResult:
    status: str = field(init=False, default="result")

    @property
    def found(self) -> bool:
        return False

    def raise_for_status(self) -> None:
        """Raise the matching SearchError unless this record is a success."""


@dataclass(frozen=True)
class PrimeFound(SearchResult):
    value: int
    offset: int
    admissibles_tested: int
    elapsed_ms: float
    prime_cutoff: int = 0
    window_radius: int = 0
    status: str = field(init=False, default="prime_found")

    @property
    def found(self) -> bool:
        return True

    @property
    def delta_step(self) -> int:
        return self.admissibles_tested - 1


@dataclass(frozen=True)
class GoldbachFound(SearchResult):
    pair_low: int
    pair_high: int
    offset: int
    admissibles_tested: int
    elapsed_ms: float
    prime_cutoff: int = 0
    window_radius: int = 0
    status: str = field(init=False, default="goldbach_found")

    @property
    def found(self) -> bool:
        return True

    @property
    def delta_step(self) -> int:
        return self.admissibles_tested - 1


@dataclass(frozen=True)
class FactorFound(SearchResult):
    factor: int
    cofactor: int
    phase: str
    elapsed_ms: float
    offset: Optional[int] = None
    ring: Optional[int] = None
    admissibles_tested: int = 0
    status: str = field(init=False, default="factor_found")

    @property
    def found(self) -> bool:
        return True


@dataclass(frozen=True)
class Factorization(SearchResult):
    value: int
    factors: tuple[int, ...]
    elapsed_ms: float
    status: str = field(init=False, default="factorization")

    @property
    def found(self) -> bool:
        return True


@dataclass(frozen=True)
class NotFound(SearchResult):
    reason: SearchState
    admissibles_tested: int
    elapsed_ms: float
    message: str = ""
    status: str = field(init=False, default="not_found")

    def raise_for_status(self) -> None:
        if self.reason is SearchState.BOUNDED_CORRECTION_EXHAUSTED:
            raise BoundedCorrectionExhausted(self.message)
        raise SearchExhausted(self.message)


@dataclass(frozen=True)
class Preview(SearchResult):
    estimated_p: int
    estimated_t: int
    approx_log10: float
    ln_estimate: float
    reason: SearchState = SearchState.MAGNITUDE_PREVIEW
    message: str = ""
    status: str = field(init=False, default="preview")

    def raise_for_status(self) -> None:
        if self.reason is SearchState.PREVIEW:
            return
        if self.reason is SearchState.SAFETY_ABORTED:
            raise SafetyCeilingExceeded(self.message)
        raise MagnitudeTooLarge(self.message)


@dataclass(frozen=True)
class Aborted(SearchResult):
    admissibles_tested: int = 0
    elapsed_ms: float = 0.0
    status: str = field(init=False, default="aborted")

    def raise_for_status(self) -> None:
        raise SearchAborted("Search aborted by caller")


@dataclass(frozen=True)
class ParseError(SearchResult):
    message: str
    error: type[SearchError] = InputFormatError
    status: str = field(init=False, default="parse_error")

    def raise_for_status(self) -> None:
        raise self.error(self.message)
