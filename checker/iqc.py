#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import argparse
from pathlib import Path
from typing import Dict

from iq_analysis import InferenceResult
from iq_context import CheckerContext, LogLevel
from iq_driver import QualifierDriver
from iq_internal_error import InternalCheckerError
from iq_loader import UnitFormatError, load_unit
from iq_logger import log_error, log_info
from iq_printer import format_qualified_unit, format_unit
from iq_qualifiers import AliasConflictError


def print_diagnostics(result: InferenceResult, context: CheckerContext) -> None:
    for diag in result.diagnostics:
        log_error(context, diag.format())


def parse_alias_args(values) -> Dict[str, str]:
    """Parse repeated `SPELLING=QUALIFIER` options into a mapping."""
    aliases: Dict[str, str] = {}
    for value in values:
        spelling, sep, qualifier = value.partition("=")
        if not sep or not spelling.strip() or not qualifier.strip():
            raise argparse.ArgumentTypeError(f"invalid alias '{value}' (expected SPELLING=QUALIFIER)")
        aliases[spelling.strip()] = qualifier.strip()
    return aliases


def build_checker_context(args: argparse.Namespace) -> CheckerContext:
    """Build a CheckerContext from command-line arguments."""
    verbosity = getattr(args, 'verbosity', 0)
    if verbosity >= 3:
        log_level = LogLevel.DEBUG
    elif verbosity >= 1:
        log_level = LogLevel.INFO
    else:
        log_level = LogLevel.ERROR

    return CheckerContext(
        log_rich_format=getattr(args, 'log', False),
        log_level=log_level,
        extra_aliases=parse_alias_args(getattr(args, 'alias', [])),
    )


def cmd_infer(args: argparse.Namespace) -> int:
    """Infer qualifiers for a unit and print every declaration and expression type."""
    context = build_checker_context(args)
    driver = QualifierDriver(context)
    try:
        driver.make_checker()
    except (AliasConflictError, ValueError) as e:
        log_error(context, f"error: [CFG-0010] {e}")
        return 1

    try:
        result = driver.analyze_file(Path(args.unit))
    except InternalCheckerError as e:
        log_error(context, e.format())
        return 1

    print_diagnostics(result, context)
    if result.unit is None or result.has_errors():
        return 1
    print(format_qualified_unit(result))
    log_info(context, f"Checked unit '{result.unit.name}'")
    return 0


def cmd_ast(args: argparse.Namespace) -> int:
    """Pretty-print the loaded AST."""
    context = build_checker_context(args)
    try:
        unit = load_unit(Path(args.unit))
    except OSError as e:
        log_error(context, f"error: [DRV-0010] {e}")
        return 1
    except UnitFormatError as e:
        log_error(context, f"error: [DRV-0020] {e}")
        return 1
    print(format_unit(unit))
    return 0


def _add_unit_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("unit", help="Path to a compilation unit in JSON form")


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(prog="iqc", description="Interning qualifier inference")
    subparsers = parser.add_subparsers(dest="command", required=True, help="Command to run")

    parser.add_argument("-v", "--verbose",
                        action='count',
                        default=0,
                        dest='verbosity',
                        help="Increase verbosity: -v=INFO, -vvv=DEBUG")
    parser.add_argument("-l", "--log",
                        action='store_true',
                        default=False,
                        help="Enable rich log formatting (timestamps, levels)")
    parser.add_argument(
        "-A", "--alias",
        action="append",
        default=[],
        metavar="SPELLING=QUALIFIER",
        help="Treat an annotation spelling as a qualifier (can be passed multiple times)",
    )

    p_infer = subparsers.add_parser("infer", help="Infer and print qualifiers", aliases=["check"])
    _add_unit_arg(p_infer)
    p_infer.set_defaults(func=cmd_infer)

    p_ast = subparsers.add_parser("ast", help="Pretty-print the loaded AST")
    _add_unit_arg(p_ast)
    p_ast.set_defaults(func=cmd_ast)

    args = parser.parse_args(argv)

    try:
        rc = args.func(args)
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))
    raise SystemExit(rc)


if __name__ == "__main__":
    main()
