"""
In-process contract for callers: raw text plus options in, result record out.

Recoverable conditions (bad input, odd Goldbach target, log-only magnitude,
safety ceiling, bounded correction, exhausted windows, aborts) never raise
here. They come back as records from search_results. Arithmetic precondition
violations are programming errors and still propagate.
"""
import logging
import random
from typing import Callable, Optional

from bigvalue import LogOnlyPreview, ParsedInput, parse_big_value
from search_config import SearchOptions, derive_parameters
from search_errors import SearchError
from search_results import ParseError, SearchResult, SearchState
from window_search import (
    SearchTask,
    factor_search,
    factor_task,
    goldbach_search,
    preview_result,
    prime_search,
)

logger = logging.getLogger(__name__)


def _log_only_preview(parsed: ParsedInput, options: SearchOptions, hint: str) -> SearchResult:
    params = derive_parameters(parsed.natural_log(), options)
    return preview_result(
        params,
        parsed.approx_log10,
        SearchState.MAGNITUDE_PREVIEW,
        f"10^{parsed.approx_log10} is too large to materialize exactly. {hint}",
    )


def _run(raw: str, options: Optional[SearchOptions],
         build: Callable[[int, SearchOptions, float], SearchTask], hint: str) -> SearchResult:
    options = options or SearchOptions()
    try:
        parsed = parse_big_value(raw)
        if isinstance(parsed, LogOnlyPreview):
            return _log_only_preview(parsed, options, hint)
        task = build(parsed.exact(), options, parsed.natural_log())
        return task.run()
    except SearchError as e:
        logger.info(f"Rejected input {raw!r}: {e}")
        return ParseError(message=str(e), error=type(e))


def find_prime_near(raw: str, options: Optional[SearchOptions] = None,
                    abort=None) -> SearchResult:
    """Prime nearest the parsed value in symmetric offset order."""
    return _run(
        raw, options,
        lambda value, opts, ln: prime_search(value, opts, abort=abort, ln_n=ln),
        "Use an external verifier for primality at this scale.",
    )


def find_goldbach_pair(raw: str, options: Optional[SearchOptions] = None,
                       abort=None) -> SearchResult:
    """Symmetric prime pair summing to the parsed even value."""
    return _run(
        raw, options,
        lambda value, opts, ln: goldbach_search(value, opts, abort=abort, ln_n=ln),
        "Use an external verifier for primality at this scale.",
    )


def find_factor_near_sqrt(raw: str, options: Optional[SearchOptions] = None,
                          abort=None) -> SearchResult:
    """Divisor of the parsed value near its square root (ring search)."""
    return _run(
        raw, options,
        lambda value, opts, ln: factor_search(value, opts, abort=abort, ln_n=ln),
        "If wide factor gaps are suspected use a sieve-based method offline.",
    )


def factorize(raw: str, options: Optional[SearchOptions] = None, abort=None,
              rng: Optional[random.Random] = None) -> SearchResult:
    """Complete prime factorization of the parsed value."""
    return _run(
        raw, options,
        lambda value, opts, ln: factor_task(value, opts, abort=abort, rng=rng),
        "Full factorization needs the exact value.",
    )


def preview(raw: str, options: Optional[SearchOptions] = None) -> SearchResult:
    """P and T that a search on the parsed value would use, without scanning."""
    options = options or SearchOptions()
    try:
        parsed = parse_big_value(raw)
    except SearchError as e:
        return ParseError(message=str(e), error=type(e))
    params = derive_parameters(parsed.natural_log(), options)
    return preview_result(params, parsed.approx_log10, SearchState.PREVIEW,
                          f"Parameter preview for {raw.strip()}")
