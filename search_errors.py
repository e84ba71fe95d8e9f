"""
Error taxonomy for the prime-window engine.

Everything derived from SearchError is a recoverable condition: the
search_api layer turns it into a structured result record. Arithmetic
precondition failures are programming errors and propagate unchanged.
"""


class SearchError(Exception):
    """Base class for recoverable search conditions."""


class InputFormatError(SearchError, ValueError):
    """Raw input is not decimal digits or 10^k[+/-c]."""


class EvennessViolation(SearchError, ValueError):
    """A Goldbach query was given an odd target."""


class MagnitudeTooLarge(SearchError):
    """Exact value requested from an input parsed in log-only mode."""


class SafetyCeilingExceeded(SearchError):
    """Derived window radius exceeds the safety ceiling; nothing was scanned."""


class BoundedCorrectionExhausted(SearchError):
    """
    Heuristic cap on admissibles tested was reached.

    This is NOT a proof that no prime/pair/factor exists inside the window.
    Widen the window, raise the cap, or fall back to full factorization.
    """


class SearchExhausted(SearchError):
    """Offset window, ring limit or retry budget ran out without a result."""


class SearchAborted(SearchError):
    """The caller's abort flag was set."""


class ArithmeticPrecondition(ValueError):
    """Contract violation in the arithmetic layer (fatal)."""


class NegativeInput(ArithmeticPrecondition):
    """Square root requested for a negative integer."""
