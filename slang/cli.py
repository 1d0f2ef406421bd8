#!/usr/bin/env python3
"""
slang - S-Language Compiler and Machine
=======================================

Compile an S program (with the built-in macro prologue) and run it.

Usage:
    python -m slang <file.s> [x1 x2 ...]          # Run, print Y = n
    python -m slang -l <file.s>                   # Print expanded listing
    python -m slang -p <file.s>                   # Print program number exponents
    python -m slang --max-steps 10000 <file.s> 3  # Stop after 10000 steps
    python -m slang -t -vv <file.s> 2 5           # Trace every step
"""

import argparse
import logging
import sys
from pathlib import Path

from .compiler import CompilerConfig, compile_file
from .encoding import encode_program, format_exponents
from .errors import CompileError
from .expander import DEFAULT_MAX_DEPTH
from .vm import run_program

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_STEP_LIMIT = 3

RED = "\033[31;1m"
RESET = "\033[0m"


def natural(text: str) -> int:
    """argparse type for natural-number arguments."""
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a natural number: {text!r}")
    if value < 0:
        raise argparse.ArgumentTypeError(f"not a natural number: {text!r}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='slang',
        description='S-Language Compiler and Machine',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument('file', help='S source file')
    parser.add_argument('inputs', nargs='*', type=natural, metavar='INPUT',
                        help='Initial values of x1, x2, ...')
    parser.add_argument('-p', '--program-number', action='store_true',
                        help='Print the program number as its exponent list')
    parser.add_argument('-l', '--listing', action='store_true',
                        help='Print the fully expanded program')
    parser.add_argument('--no-prologue', action='store_true',
                        help='Compile without the built-in macros')
    parser.add_argument('--max-steps', type=natural, metavar='N',
                        help='Stop after N steps')
    parser.add_argument('--max-depth', type=natural, metavar='N',
                        default=DEFAULT_MAX_DEPTH,
                        help=f'Macro nesting limit (default {DEFAULT_MAX_DEPTH})')
    parser.add_argument('-t', '--trace', action='store_true',
                        help='Log every executed instruction (with -vv)')
    parser.add_argument('-v', '--verbose', action='count', default=0,
                        help='More logging (-v info, -vv debug)')
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format='%(levelname)s %(name)s: %(message)s')

    config = CompilerConfig(
        max_expansion_depth=args.max_depth,
        include_prologue=not args.no_prologue,
    )

    try:
        program = compile_file(Path(args.file), config)
    except CompileError as e:
        print(f"{RED}{e}{RESET}", file=sys.stderr)
        return EXIT_ERROR
    except OSError as e:
        print(f"{RED}Cannot read {args.file}: {e.strerror}{RESET}", file=sys.stderr)
        return EXIT_ERROR
    except UnicodeDecodeError as e:
        print(f"{RED}Cannot read {args.file}: not UTF-8 text ({e.reason}){RESET}", file=sys.stderr)
        return EXIT_ERROR

    if args.listing:
        print(program.listing())
        return EXIT_OK

    if args.program_number:
        print(format_exponents(encode_program(program)))
        return EXIT_OK

    result = run_program(program, args.inputs, max_steps=args.max_steps, trace=args.trace)
    if not result.halted:
        logger.warning("no halt within %d steps", result.steps)
        print(f"Y = {result.y} (stopped after {result.steps} steps)")
        return EXIT_STEP_LIMIT

    print(f"Y = {result.y}")
    return EXIT_OK


if __name__ == '__main__':
    sys.exit(main())
