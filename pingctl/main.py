# mcpeek/pingctl/main.py
import argparse
import asyncio
import os
import sys

import colorama

from pinglib import address
from pinglib.config import QUERY_TIMEOUT, VERSION
from pinglib.errors import Cancelled, QueryError
from pinglib.logger import get_logger
from pingctl.interrupt import has_pending_blocking, run_blocking, run_interruptible
from pingctl.query import format_report, query_status, resolve_target
from pingctl.spinner import Spinner, show_cursor, spin

log = get_logger("mcpeek.main")


def build_parser():
    parser = argparse.ArgumentParser(
        prog="mcpeek",
        description="Query the player count of a Minecraft Java Edition server.",
    )
    choice = parser.add_mutually_exclusive_group()
    choice.add_argument("-i", "--instance", metavar="DIR",
                        help="path to the folder of your minecraft instance "
                             "[default: the standard .minecraft folder]")
    choice.add_argument("-s", "--server", metavar="HOST[:PORT]",
                        help="IP/domain of the minecraft server to query")
    choice.add_argument("-f", "--servers-file", metavar="FILE",
                        help="path to the servers.dat file you want to choose a server from")
    parser.add_argument("-t", "--timeout", type=float, default=QUERY_TIMEOUT,
                        help=f"connection timeout in seconds (default: {QUERY_TIMEOUT})")
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {VERSION}")
    return parser


async def _app(args):
    if args.server is not None:
        target = address.parse(args.server)
    else:
        target = await run_blocking(resolve_target, None, args.instance, args.servers_file)

    spinner = Spinner()
    return await spin(query_status(target, args.timeout, on_phase=spinner.set_message), spinner)


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.timeout <= 0:
        parser.error("--timeout must be positive")

    try:
        result = asyncio.run(run_interruptible(_app(args)))
    except Cancelled:
        show_cursor()
        if has_pending_blocking():
            # A prompt thread is still parked on stdin; don't wait on it at shutdown
            sys.stdout.flush()
            sys.stderr.flush()
            os._exit(1)
        return 1
    except QueryError as e:
        log.debug(f"Query failed: {e!r}")
        print(f"error: {e}", file=sys.stderr)
        return 1

    for line in format_report(result.status):
        print(line)
    return 0


def run():
    colorama.init()
    sys.exit(main())


if __name__ == "__main__":
    run()
