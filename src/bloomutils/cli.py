"""bloomutils CLI.

Usage:
    gen-bloom-filter --num-items 100000 --fp-rate 0.1% < words.txt > words.bloom
    check-with-bloom-filter foo bar < words.bloom
    bloom-filter-calculator 100000 --fp-rate 0.1%
    bloomutils {gen,check,calc} ...
"""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Callable, Optional, Sequence

from tabulate import tabulate

from bloomutils.bloom.bloom_params import CalculatorResult, calculate
from bloomutils.bloom.hashing import scheme_names
from bloomutils.config import DEFAULTS
from bloomutils.errors import BloomUtilsError, ExitStatus
from bloomutils.logging_setup import setup_logging
from bloomutils.pipeline.stream_pipelines import build_filter, check_items

logger = logging.getLogger(__name__)

RULES_OF_THUMB = """\
Rules of thumb:

* One byte per item in the input set gives about a 2% false positive rate.
  For other rates: 10% - 4.8 bits per item, 1% - 9.6, 0.1% - 14.4,
  0.01% - 19.2.
* The optimal number of hash functions is 0.7 times the number of bits per
  item. The number of hashes dominates performance; pick fewer for speed.
* num_bits is rounded up to a power-of-two number of bytes, so two different
  false positive rates can give the same filter. Use bloom-filter-calculator
  to see actual_m and actual_p.
"""

_CALC_ROWS = (
    ("num_items (n)", "num_items"),
    ("num_bits (m)", "num_bits"),
    ("num_hashes (k)", "num_hashes"),
    ("fp_rate (p)", "fp_rate"),
    ("num_bits_per_item (m/n)", "num_bits_per_item"),
    ("num_hashes_to_bits_per_item_ratio", "num_hashes_to_bits_per_item_ratio"),
    ("actual_num_bits (actual_m)", "actual_num_bits"),
    ("actual_num_hashes (actual_k)", "actual_num_hashes"),
    ("actual_fp_rate (actual_p)", "actual_fp_rate"),
    ("actual_bloom_size (bytes)", "actual_bloom_size"),
)


def _posint(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {text!r}") from None
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return value


def _posnum(text: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {text!r}") from None
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {text}")
    return value


def _fp_rate(text: str) -> float:
    """Nhận cả dạng phần trăm: "0.1%" -> 0.001."""
    raw = text.strip()
    divisor = 1.0
    if raw.endswith("%"):
        raw, divisor = raw[:-1], 100.0
    try:
        value = float(raw) / divisor
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid rate: {text!r}") from None
    if not 0 < value <= 0.5:
        raise argparse.ArgumentTypeError(f"must be in (0, 0.5], got {text}")
    return value


def _common_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(add_help=False)
    p.add_argument(
        "--log-level", default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level for messages on stderr (default: INFO)",
    )
    p.add_argument("--log-file", help="Also write detailed logs to this file.")
    return p


def _add_fp_rate_arg(p: argparse.ArgumentParser, default: Optional[float]) -> None:
    p.add_argument(
        "-p", "--fp-rate", "--false-positive-rate", dest="false_positive_rate",
        type=_fp_rate, default=default,
        help="Target false positive rate, e.g. 0.01 or 1%% (max 0.5)",
    )


def _add_gen_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "-m", "--num-bits", type=_posint,
        help=f"Number of bits (default: {DEFAULTS.num_bits}, ~16KB filter)",
    )
    p.add_argument(
        "-k", "--num-hashes", type=_posint,
        help=f"Number of hash functions (default: {DEFAULTS.num_hashes})",
    )
    p.add_argument(
        "-n", "--num-items", type=_posint,
        help="Expected number of items; sizes the filter with the calculator.",
    )
    _add_fp_rate_arg(p, default=None)
    p.add_argument(
        "--hash-scheme", choices=scheme_names(), default=None,
        help=f"Hash function recorded in the filter (default: {DEFAULTS.hash_scheme})",
    )


def _add_check_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("items", nargs="+", help="Items to check")


def _add_calc_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("num_items", type=_posint, help="Expected number of items to add")
    p.add_argument("-m", "--num-bits", type=_posint, help="Number of bits for the filter")
    _add_fp_rate_arg(p, default=DEFAULTS.false_positive_rate)
    group = p.add_mutually_exclusive_group()
    group.add_argument("-k", "--num-hashes", type=_posint, help="Number of hash functions")
    group.add_argument(
        "--num-hashes-to-bits-per-item-ratio", type=_posnum,
        help=f"{DEFAULTS.hash_to_bits_ratio} (the default) is optimal",
    )
    p.add_argument("--json", action="store_true", help="Print the result as JSON.")


def _run_gen(args: argparse.Namespace) -> ExitStatus:
    report = build_filter(
        sys.stdin.buffer,
        sys.stdout.buffer,
        num_items=args.num_items,
        false_positive_rate=args.false_positive_rate,
        num_bits=args.num_bits,
        num_hashes=args.num_hashes,
        hash_scheme=args.hash_scheme,
    )
    sys.stdout.buffer.flush()
    logger.debug("gen finished: %s", report.metrics)
    return ExitStatus.OK


def _run_check(args: argparse.Namespace) -> ExitStatus:
    items = [os.fsencode(item) for item in args.items]
    check_items(sys.stdin.buffer, items, sys.stdout)
    return ExitStatus.OK


def _run_calc(args: argparse.Namespace) -> ExitStatus:
    result = calculate(
        args.num_items,
        false_positive_rate=args.false_positive_rate,
        num_bits=args.num_bits,
        num_hashes=args.num_hashes,
        num_hashes_to_bits_per_item_ratio=args.num_hashes_to_bits_per_item_ratio,
    )
    print(format_result(result, as_json=args.json))
    return ExitStatus.OK


def format_result(result: CalculatorResult, as_json: bool = False) -> str:
    data = result.as_dict()
    if as_json:
        return json.dumps(data, indent=2)
    rows = [[label, _format_value(data[key])] for label, key in _CALC_ROWS]
    return tabulate(rows, headers=["Parameter", "Value"], tablefmt="github", disable_numparse=True)


def _format_value(value: float) -> str:
    if isinstance(value, int):
        return str(value)
    return f"{value:.10g}"


_COMMANDS: dict[str, tuple[str, str, Callable, Callable]] = {
    "gen": (
        "gen-bloom-filter",
        "Generate a bloom filter from lines on stdin; the filter is written to stdout.",
        _add_gen_args, _run_gen,
    ),
    "check": (
        "check-with-bloom-filter",
        "Read a bloom filter from stdin and print 1 (probably in set) or 0 "
        "(definitely not in set) for each item.",
        _add_check_args, _run_check,
    ),
    "calc": (
        "bloom-filter-calculator",
        "Help calculate num_bits (m) and num_hashes (k).",
        _add_calc_args, _run_calc,
    ),
}


def _dispatch(args: argparse.Namespace, runner: Callable[[argparse.Namespace], ExitStatus]) -> int:
    setup_logging(args.log_level, args.log_file)
    try:
        return int(runner(args))
    except BloomUtilsError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return int(ExitStatus.CLIENT_ERROR)


def _run_single(command: str, argv: Optional[Sequence[str]]) -> int:
    prog, description, add_args, runner = _COMMANDS[command]
    parser = argparse.ArgumentParser(
        prog=prog,
        description=description,
        epilog=RULES_OF_THUMB if command != "check" else None,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        parents=[_common_parser()],
    )
    add_args(parser)
    return _dispatch(parser.parse_args(argv), runner)


def gen_bloom_filter_main(argv: Optional[Sequence[str]] = None) -> int:
    return _run_single("gen", argv)


def check_with_bloom_filter_main(argv: Optional[Sequence[str]] = None) -> int:
    return _run_single("check", argv)


def bloom_filter_calculator_main(argv: Optional[Sequence[str]] = None) -> int:
    return _run_single("calc", argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="bloomutils",
        description="Utilities related to bloom filters.",
    )
    subparsers = parser.add_subparsers(dest="command")
    common = _common_parser()
    for name, (_, description, add_args, runner) in _COMMANDS.items():
        sub = subparsers.add_parser(
            name,
            help=description,
            description=description,
            epilog=RULES_OF_THUMB if name != "check" else None,
            formatter_class=argparse.RawDescriptionHelpFormatter,
            parents=[common],
        )
        add_args(sub)
        sub.set_defaults(runner=runner)

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return int(ExitStatus.OK)
    return _dispatch(args, args.runner)


if __name__ == "__main__":
    sys.exit(main())
