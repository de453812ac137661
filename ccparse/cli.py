from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Sequence

from ccparse.builtin_info import GccBuiltInInfoSource
from ccparse.database import InfoDatabase
from ccparse.dispatcher import Dispatcher
from ccparse.gcc import GccEngine
from ccparse.properties import Configuration, MergeMode, PropertiesFile
from ccparse.trigger import Pattern, Trigger, TriggerPatternError


def get_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ccparse",
        description="Extract includes, defines and flags of a g++ invocation "
        "from a build log.",
    )
    parser.add_argument(
        "log",
        type=Path,
        help="The build log, one command per line. '-' reads stdin.",
    )
    parser.add_argument(
        "--match",
        action="append",
        default=[],
        help="Text a command line must contain (repeatable).",
    )
    parser.add_argument(
        "--match-regex",
        action="append",
        default=[],
        help="Regular expression a command line must match (repeatable).",
    )
    parser.add_argument(
        "--dont-match",
        action="append",
        default=[],
        help="Text a command line must not contain (repeatable).",
    )
    parser.add_argument(
        "--dont-match-regex",
        action="append",
        default=[],
        help="Regular expression a command line must not match (repeatable).",
    )
    parser.add_argument(
        "--source",
        help="Only parse the command compiling SOURCE.cpp.o "
        "(default trigger only).",
    )
    parser.add_argument(
        "--no-builtin-info",
        action="store_true",
        help="Don't query the compiler for its built-in includes and defines.",
    )
    parser.add_argument(
        "--info-db",
        help="SQLAlchemy URL of a database caching compiler built-in info, "
        "e.g. sqlite:///compilers.db",
    )
    parser.add_argument(
        "--compiler-timeout",
        type=int,
        default=10,
        help="Seconds to wait for the compiler when querying built-in info.",
    )
    parser.add_argument(
        "--properties",
        type=Path,
        help="Merge the result into this c_cpp_properties.json instead of "
        "printing it.",
    )
    parser.add_argument(
        "--configuration",
        default="ccparse",
        help="Name of the configuration in the properties file.",
    )
    parser.add_argument(
        "--merge-mode",
        choices=[m.value for m in MergeMode],
        default=MergeMode.REPLACE.value,
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def make_trigger(
    args: argparse.Namespace, parser: argparse.ArgumentParser
) -> Trigger:
    if not (args.match or args.match_regex or args.dont_match or args.dont_match_regex):
        return GccEngine.default_trigger(args.source)
    if args.source:
        parser.error("--source can only be used with the default trigger")

    try:
        match: list[Pattern] = list(args.match) + [
            Trigger.regex(r) for r in args.match_regex
        ]
        dontmatch: list[Pattern] = list(args.dont_match) + [
            Trigger.regex(r) for r in args.dont_match_regex
        ]
    except TriggerPatternError as e:
        parser.error(str(e))
    return Trigger(match, dontmatch)


def main(argv: Sequence[str] | None = None) -> int:
    parser = get_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    info_source = GccBuiltInInfoSource(
        database=InfoDatabase(args.info_db) if args.info_db else None,
        timeout=args.compiler_timeout,
    )
    info_source.enabled = not args.no_builtin_info

    engine = GccEngine(make_trigger(args, parser), info_source=info_source)
    dispatcher = Dispatcher([engine])

    if str(args.log) == "-":
        result = dispatcher.scan(sys.stdin)
    else:
        try:
            with open(args.log, "r", encoding="utf-8", errors="replace") as f:
                result = dispatcher.scan(f)
        except OSError as e:
            parser.error(f"could not read {args.log}: {e.strerror}")

    if result is None:
        logging.warning("No compiler command line found")
        return 1

    if args.properties is None:
        print(json.dumps(result.to_json_dict(), indent=4))
        return 0

    try:
        props = PropertiesFile.read(args.properties) or PropertiesFile()
    except (OSError, ValueError) as e:
        parser.error(f"could not read {args.properties}: {e}")
    configuration = Configuration.from_result(result, args.configuration)
    if props.merge(configuration, MergeMode(args.merge_mode)):
        props.write(args.properties)
    else:
        logging.info(f"{args.properties} is up to date")
    return 0
