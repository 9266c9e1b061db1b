import argparse
import asyncio
import sys
import uuid
from typing import Optional, List

from dump_anon import DumpAnonApp
from dump_anon.common.constants import DEFAULT_HASH_COST, MIN_HASH_COST, MAX_HASH_COST, DEFAULT_PROCESSES, \
    DEFAULT_QUEUE_SIZE, MAX_LINE_SIZE, DEFAULT_SQL_DIALECT
from dump_anon.common.dto import DumpAnonResult, RunOptions
from dump_anon.common.enums import ProcessingMode, ResultCode, VerboseOptions
from dump_anon.common.sql_utils import validate_dialect
from dump_anon.version import __version__


def parse_cost(value: str) -> int:
    try:
        cost = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}")

    if not MIN_HASH_COST <= cost <= MAX_HASH_COST:
        raise argparse.ArgumentTypeError(f"must be between {MIN_HASH_COST} and {MAX_HASH_COST}, got {cost}")
    return cost


def parse_positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}")

    if number < 1:
        raise argparse.ArgumentTypeError(f"must be positive, got {number}")
    return number


def parse_dialect(value: str) -> str:
    try:
        return validate_dialect(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc))


def get_arg_parser():
    parser = argparse.ArgumentParser(
        prog="dump_anon",
        description="Masks column values of INSERT statements in a SQL dump. "
                    "Reads the dump from stdin and writes the masked dump to stdout.",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=str,
        required=True,
        help="""Path to YAML masking rules file: table -> column -> template""",
    )
    parser.add_argument(
        "--cost",
        type=parse_cost,
        default=DEFAULT_HASH_COST,
        help=f"""bcrypt cost for value.hashed(). Min: {MIN_HASH_COST}, Max: {MAX_HASH_COST} (default: %(default)s)""",
    )
    parser.add_argument(
        "--processing-mode",
        choices=list(v.value for v in ProcessingMode),
        default=ProcessingMode.SEQUENTIAL.value,
        help="""In "sequential" mode output lines keep the input order. In "parallel" mode lines are masked by """
             """several processes and the output order is NOT guaranteed. (default: %(default)s)""",
    )
    parser.add_argument(
        "--processes",
        type=parse_positive_int,
        default=DEFAULT_PROCESSES,
        help="""Number of worker processes in parallel mode. (default: %(default)s)""",
    )
    parser.add_argument(
        "--queue-size",
        type=parse_positive_int,
        default=DEFAULT_QUEUE_SIZE,
        help="""Lines queued per worker process in parallel mode. (default: %(default)s)""",
    )
    parser.add_argument(
        "--max-line-size",
        type=parse_positive_int,
        default=MAX_LINE_SIZE,
        help="""Maximum length of an input line in bytes. (default: %(default)s)""",
    )
    parser.add_argument(
        "--dialect",
        type=parse_dialect,
        default=DEFAULT_SQL_DIALECT,
        help="""SQL dialect of the dump, e.g. "mysql" or "postgres". (default: %(default)s)""",
    )
    parser.add_argument(
        "--validate-rules",
        action="store_true",
        help="""Compile masking rules and exit without reading the dump.""",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="""Also write logs to this file (rotated).""",
    )
    parser.add_argument(
        "--verbose",
        dest="verbose",
        choices=list(v.value for v in VerboseOptions),
        default=VerboseOptions.INFO.value,
        help="""Sets the log verbosity level: "info", "debug", "error". (default: %(default)s)""",
    )
    parser.add_argument(
        "--debug",
        help="""Enables debug mode (equivalent to "--verbose=debug") and adds extra debug logs.""",
        action="store_true",
    )
    parser.add_argument(
        "--version",
        help="""Show the version number and exit""",
        action="store_true",
    )
    return parser


def build_run_options(cli_run_params: Optional[List[str]] = None) -> RunOptions:
    if cli_run_params is None:
        cli_run_params = sys.argv[1:]

    # Handle --version before required arguments are checked
    if "--version" in cli_run_params:
        print("Version %s" % __version__)
        sys.exit(0)

    parser = get_arg_parser()
    args_parsed = parser.parse_args(cli_run_params)
    args_dict = vars(args_parsed)

    if args_dict.get("debug") or args_dict.get("verbose") == VerboseOptions.DEBUG.value:
        args_dict["debug"] = True
        args_dict["verbose"] = VerboseOptions.DEBUG.value

    args_dict.update({
        'dump_anon_version': __version__,
        'internal_operation_id': str(uuid.uuid4()),
        'verbose': VerboseOptions(args_dict['verbose']),
        'processing_mode': ProcessingMode(args_dict['processing_mode']),
    })
    return RunOptions(**args_dict)


async def run_dump_anon(cli_run_params: Optional[List[str]] = None) -> DumpAnonResult:
    """
    Run dump_anon over stdin/stdout
    :param cli_run_params: list of params in command line format
    :return: result of dump_anon
    """
    options = build_run_options(cli_run_params)
    return await DumpAnonApp(options).run()


def main(argv=None):
    result = asyncio.run(run_dump_anon(argv))
    if result.result_code == ResultCode.FAIL:
        sys.exit(1)
