"""
Parsing of large integer inputs.

Accepted forms (whitespace is ignored):
    5184286          plain decimal digits
    10^k             exact power of ten
    10^k+c / 10^k-c  power of ten with an additive adjustment

Exponents above LOG_ONLY_EXPONENT, and decimal strings of more than
LOG_ONLY_EXPONENT + 1 digits, are not materialized. The parser returns
a LogOnlyPreview carrying only the magnitude, which is enough to preview
search parameters but never enough to run a search.
"""
import logging
import math
import re
from dataclasses import dataclass

from modular_arithmetic import binary_power
from search_errors import InputFormatError, MagnitudeTooLarge

logger = logging.getLogger(__name__)

# Largest exponent k for which 10^k is built exactly
LOG_ONLY_EXPONENT: int = 2000

# Longest exponent text whose log estimate is still a finite float
MAX_EXPONENT_DIGITS: int = 300

_LN10: float = math.log(10)
_DIGITS = re.compile(r"^[0-9]+$")
_POWER_OF_TEN = re.compile(r"^10\^([0-9]+)(?:([+\-])([0-9]+))?$")


@dataclass(frozen=True)
class Adjustment:
    """Signed additive correction applied to 10^k."""
    sign: str = "+"
    amount: int = 0

    def apply(self, value: int) -> int:
        return value - self.amount if self.sign == "-" else value + self.amount

    def __str__(self) -> str:
        return f"{self.sign}{self.amount}" if self.amount else ""


@dataclass(frozen=True)
class ParsedInput:
    """Common base for the three parse outcomes."""
    approx_log10: int

    def natural_log(self) -> float:
        raise NotImplementedError

    def exact(self) -> int:
        raise NotImplementedError

    @property
    def is_exact(self) -> bool:
        return True


@dataclass(frozen=True)
class DecimalValue(ParsedInput):
    value: int = 0

    def natural_log(self) -> float:
        return natural_log_of(self.value)

    def exact(self) -> int:
        return self.value


@dataclass(frozen=True)
class PowerOfTen(ParsedInput):
    value: int = 0
    exponent: int = 0
    adjustment: Adjustment = Adjustment()

    def natural_log(self) -> float:
        return natural_log_of(self.value)

    def exact(self) -> int:
        return self.value


@dataclass(frozen=True)
class LogOnlyPreview(ParsedInput):
    adjustment: Adjustment = Adjustment()

    def natural_log(self) -> float:
        # the adjustment is negligible at this magnitude
        return self.approx_log10 * _LN10

    def exact(self) -> int:
        raise MagnitudeTooLarge(
            f"10^{self.approx_log10}{self.adjustment} exceeds the exact-value "
            f"ceiling 10^{LOG_ONLY_EXPONENT}; only a parameter preview is available"
        )

    @property
    def is_exact(self) -> bool:
        return False


def natural_log_of(value: int) -> float:
    """ln(value) for arbitrarily large positive ints; 0.0 for value <= 0."""
    if value <= 0:
        return 0.0
    return math.log(value)


def parse_big_value(raw: str) -> ParsedInput:
    """
    Parse raw text into a ParsedInput variant.

    Decimal strings longer than LOG_ONLY_EXPONENT + 1 digits and exponents
    above LOG_ONLY_EXPONENT come back as LogOnlyPreview.

    Raises:
        InputFormatError: If the text matches neither accepted form, or an
            exponent / adjustment is too long to estimate
    """
    s = re.sub(r"\s+", "", raw or "")
    if _DIGITS.match(s):
        digits = s.lstrip("0") or "0"
        if len(digits) > LOG_ONLY_EXPONENT + 1:
            logger.debug(f"{len(digits)}-digit input: log-only preview")
            return LogOnlyPreview(approx_log10=len(digits) - 1)
        return DecimalValue(approx_log10=len(digits) - 1, value=int(digits))

    m = _POWER_OF_TEN.match(s)
    if m is None:
        raise InputFormatError(
            f"Unsupported input {raw!r}. Use decimal digits or 10^k (+/- c)."
        )

    k_digits = m.group(1).lstrip("0") or "0"
    if len(k_digits) > MAX_EXPONENT_DIGITS:
        raise InputFormatError(
            f"Exponent has {len(k_digits)} digits; at most {MAX_EXPONENT_DIGITS} are supported"
        )
    c_digits = (m.group(3) or "0").lstrip("0") or "0"
    if len(c_digits) > LOG_ONLY_EXPONENT + 1:
        raise InputFormatError(
            f"Adjustment has {len(c_digits)} digits; at most {LOG_ONLY_EXPONENT + 1} are supported"
        )

    k = int(k_digits)
    adjustment = Adjustment(sign=m.group(2) or "+", amount=int(c_digits))
    if k > LOG_ONLY_EXPONENT:
        logger.debug(f"Exponent {k} above {LOG_ONLY_EXPONENT}: log-only preview")
        return LogOnlyPreview(approx_log10=k, adjustment=adjustment)

    value = adjustment.apply(binary_power(10, k))
    return PowerOfTen(approx_log10=k, value=value, exponent=k, adjustment=adjustment)
