"""pbrain entry point and CLI wiring."""

from __future__ import annotations
import argparse
import sys
from typing import List, Optional

from config import (
    CELL_DTYPES,
    DEFAULT_RECURSION_LIMIT,
    DEFAULT_TAPE_SIZE,
    REDEFINE_FIRST,
    REDEFINE_LAST,
    UNIT_BYTE,
    UNIT_WIDE,
    InterpreterConfig,
)
from faults import ConfigError, FaultCode, PBrainFault, format_diagnostic
from interpreter import Interpreter, TracebackFormatter


def _source_encoding(unit: str) -> str:
    # Byte builds see one instruction per byte; wide builds read UTF-8 text.
    return "latin-1" if unit == UNIT_BYTE else "utf-8"


def _build_config(args: argparse.Namespace) -> InterpreterConfig:
    config = InterpreterConfig(
        cell_bits=args.cell_bits,
        unit=args.unit,
        tape_size=args.tape_size,
        growable=not args.fixed_tape,
        max_cells=args.max_cells,
        redefine=args.redefine,
        recursion_limit=args.recursion_limit,
    )
    return config.validate()


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="pbrain (procedural Brainf**k) interpreter")
    parser.add_argument("program", nargs="?", help="Source file path, or literal source with -source; stdin when omitted")
    parser.add_argument("-source", "--source", dest="source_mode", action="store_true", help="Treat program argument as literal source text")
    parser.add_argument("--unit", choices=[UNIT_BYTE, UNIT_WIDE], default=UNIT_WIDE, help="I/O unit width for ',' and '.'")
    parser.add_argument("--cell-bits", type=int, choices=sorted(CELL_DTYPES), default=32, help="Cell integer width in bits")
    parser.add_argument("--tape-size", type=int, default=DEFAULT_TAPE_SIZE, help="Initial number of tape cells")
    parser.add_argument("--fixed-tape", action="store_true", help="Fault instead of growing when the tape bound is reached")
    parser.add_argument("--max-cells", type=int, default=None, help="Upper bound on tape growth")
    parser.add_argument("--redefine", choices=[REDEFINE_FIRST, REDEFINE_LAST], default=REDEFINE_FIRST, help="Which definition wins for a duplicate procedure key")
    parser.add_argument("--recursion-limit", type=int, default=DEFAULT_RECURSION_LIMIT, help="Maximum nesting of loops and procedure calls")
    parser.add_argument("-verbose", "--verbose", dest="verbose", action="store_true", help="Record run events and print a traceback on faults")
    parser.add_argument("--traceback-json", action="store_true", help="Also emit JSON traceback on faults")
    return parser


def run_cli(argv: Optional[List[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    try:
        config = _build_config(args)
    except ConfigError as exc:
        parser.error(str(exc))

    encoding = _source_encoding(config.unit)
    if args.source_mode:
        if args.program is None:
            print("-source requires a program string", file=sys.stderr)
            return int(FaultCode.UNKNOWN)
        source_text = args.program
        filename = "<string>"
    elif args.program is None:
        source_text = sys.stdin.buffer.read().decode(encoding, errors="replace")
        filename = "<stdin>"
    else:
        filename = args.program
        try:
            with open(filename, "r", encoding=encoding, errors="replace") as handle:
                source_text = handle.read()
        except OSError as exc:
            print(f"Failed to read {filename}: {exc}", file=sys.stderr)
            return int(FaultCode.UNKNOWN)

    previous_limit = sys.getrecursionlimit()
    if previous_limit < config.recursion_limit:
        sys.setrecursionlimit(config.recursion_limit)

    interpreter = Interpreter(source=source_text, filename=filename, config=config, verbose=args.verbose)
    try:
        interpreter.run()
    except PBrainFault as fault:
        print(format_diagnostic(fault), file=sys.stderr)
        formatter = TracebackFormatter(interpreter)
        if args.verbose:
            print(formatter.format_text(fault, verbose=args.verbose), file=sys.stderr)
        if args.traceback_json:
            print(formatter.to_json(fault), file=sys.stderr)
        return int(fault.code)
    finally:
        sys.setrecursionlimit(previous_limit)
    return 0


if __name__ == "__main__":
    raise SystemExit(run_cli())
