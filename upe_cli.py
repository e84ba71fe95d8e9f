#!/usr/bin/env python3
"""
Command-line front end for the prime-window searches.

Usage:
    python3 upe_cli.py prime 5184286
    python3 upe_cli.py goldbach 12228 --prime-cutoff 80
    python3 upe_cli.py factor 1000036000099 --rings 60
    python3 upe_cli.py factorize 123456789101112
    python3 upe_cli.py preview "10^5000"
"""
import argparse
import logging
import sys
from typing import List, Optional

import search_api
from search_config import (
    BOUNDED_CORRECTION,
    DEFAULT_C1,
    DEFAULT_C2,
    DEFAULT_RING_LIMIT,
    SearchOptions,
)
from search_results import (
    Aborted,
    FactorFound,
    Factorization,
    GoldbachFound,
    NotFound,
    ParseError,
    Preview,
    PrimeFound,
    SearchResult,
    SearchState,
)

logger = logging.getLogger(__name__)

_COMMANDS = {
    "prime": search_api.find_prime_near,
    "goldbach": search_api.find_goldbach_pair,
    "factor": search_api.find_factor_near_sqrt,
    "factorize": search_api.factorize,
}


def setup_logging(level: str = "WARNING") -> None:
    """Set up logging configuration."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(levelname)s - %(message)s',
    )


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Prime / Goldbach / factor window search')
    parser.add_argument('command', choices=sorted(list(_COMMANDS) + ['preview']),
                        help='Search to run')
    parser.add_argument('value', help='Decimal digits or 10^k[+/-c]')
    parser.add_argument('--c1', type=float, default=DEFAULT_C1,
                        help='Scale for small-prime cutoff P = c1 * ln N')
    parser.add_argument('--c2', type=float, default=DEFAULT_C2,
                        help='Scale for window radius T = c2 * (ln N)^2')
    parser.add_argument('--prime-cutoff', '-P', type=int, help='Explicit P override')
    parser.add_argument('--window-radius', '-T', type=int, help='Explicit T override')
    parser.add_argument('--rounds', type=int, default=12, help='Miller-Rabin rounds')
    parser.add_argument('--rings', '-K', type=int, default=DEFAULT_RING_LIMIT,
                        help='Ring limit K for the factor search')
    parser.add_argument('--no-prefilter', action='store_true',
                        help='Test every factor candidate, not only admissible ones')
    parser.add_argument('--sweep-bound', '-B', type=int, default=0,
                        help='Trial-divide by primes <= B before the ring search')
    parser.add_argument('--bounded-correction', type=int, default=BOUNDED_CORRECTION,
                        help='Admissibles tested before giving up')
    parser.add_argument('--log-level', default='WARNING',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])
    return parser


def options_from_args(args: argparse.Namespace) -> SearchOptions:
    return SearchOptions(
        c1=args.c1,
        c2=args.c2,
        prime_cutoff=args.prime_cutoff,
        window_radius=args.window_radius,
        rounds=args.rounds,
        ring_limit=args.rings,
        prefilter=not args.no_prefilter,
        sweep_bound=args.sweep_bound,
        bounded_correction=args.bounded_correction,
    )


def format_result(result: SearchResult) -> str:
    """One plain-text summary per result record."""
    if isinstance(result, PrimeFound):
        return (f"Prime {result.value} at u = {result.offset} "
                f"(P = {result.prime_cutoff}, T = {result.window_radius}, "
                f"admissibles tested = {result.admissibles_tested}, "
                f"delta_step = {result.delta_step}, {result.elapsed_ms:.2f} ms)")
    if isinstance(result, GoldbachFound):
        return (f"Goldbach pair ({result.pair_low}, {result.pair_high}) at t = {result.offset} "
                f"(admissibles tested = {result.admissibles_tested}, "
                f"delta_step = {result.delta_step}, {result.elapsed_ms:.2f} ms)")
    if isinstance(result, FactorFound):
        where = f" at u = {result.offset}, ring {result.ring}" if result.offset is not None else ""
        return (f"Factor {result.factor} x {result.cofactor} via {result.phase}{where} "
                f"({result.elapsed_ms:.2f} ms)")
    if isinstance(result, Factorization):
        return f"{result.value} = {' * '.join(str(f) for f in result.factors)}"
    if isinstance(result, Preview):
        return (f"Preview: log10 N ~ {result.approx_log10:g}, ln N ~ {result.ln_estimate:.6f}, "
                f"P ~ {result.estimated_p}, T ~ {result.estimated_t}. {result.message}")
    if isinstance(result, NotFound):
        return (f"Not found ({result.reason.value}): {result.message} "
                f"Checked = {result.admissibles_tested}")
    if isinstance(result, Aborted):
        return "Aborted"
    if isinstance(result, ParseError):
        return f"Error: {result.message}"
    return repr(result)


def exit_code(result: SearchResult) -> int:
    if isinstance(result, ParseError):
        return 2
    if result.found:
        return 0
    if isinstance(result, Preview) and result.reason is not SearchState.SAFETY_ABORTED:
        return 0
    return 1


def main(argv: Optional[List[str]] = None) -> int:
    args = create_parser().parse_args(argv)
    setup_logging(args.log_level)
    try:
        options = options_from_args(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    logger.debug(f"{args.command} {args.value!r} with {options}")

    if args.command == 'preview':
        result = search_api.preview(args.value, options)
    else:
        try:
            result = _COMMANDS[args.command](args.value, options)
        except KeyboardInterrupt:
            result = Aborted()
    print(format_result(result))
    return exit_code(result)


if __name__ == "__main__":
    sys.exit(main())
