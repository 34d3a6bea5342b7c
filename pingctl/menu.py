# mcpeek/pingctl/menu.py
import sys

from colorama import Fore, Style

from pinglib.errors import Cancelled, QueryError


def _read_line():
    line = sys.stdin.readline()
    if not line:
        raise EOFError
    return line


def choose(labels, prompt="Which server?", default=0, stream=None, read=_read_line):
    """Show a numbered menu and return the zero-based index picked.

    The menu goes to stderr so stdout only ever carries the report.
    Ctrl-C or end of input raise Cancelled.
    """
    stream = stream or sys.stderr
    if not labels:
        raise QueryError("the servers file lists no servers")

    for i, label in enumerate(labels):
        marker = f"{Fore.CYAN}>{Style.RESET_ALL}" if i == default else " "
        stream.write(f"{marker} {Fore.CYAN}{i:>2}{Style.RESET_ALL}) {label}\n")

    while True:
        stream.write(f"{Fore.GREEN}?{Style.RESET_ALL} {Style.BRIGHT}{prompt}{Style.RESET_ALL} [{default}]: ")
        stream.flush()
        try:
            answer = read().strip()
        except (KeyboardInterrupt, EOFError):
            stream.write("\n")
            raise Cancelled("selection aborted") from None
        if not answer:
            return default
        if answer.isdigit() and int(answer) < len(labels):
            return int(answer)
        stream.write(f"{Fore.RED}Please enter a number from 0 to {len(labels) - 1}.{Style.RESET_ALL}\n")
