# mcpeek/pingctl/query.py
import asyncio
import textwrap
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from pinglib import address, nbt
from pinglib.config import PING_PAYLOAD, QUERY_TIMEOUT, SERVERS_FILE_NAME, WRAP_INDENT, WRAP_WIDTH
from pinglib.dirs import find_minecraft_dir
from pinglib.errors import ProtocolError, QueryError, QueryTimeout
from pinglib.logger import get_logger
from pinglib.protocol import SLPClient, StatusResponse
from pingctl.menu import choose

log = get_logger("mcpeek.query")


@dataclass
class QueryResult:
    status: StatusResponse
    latency_ms: Optional[float] = None
    ping_error: Optional[QueryError] = None

    @property
    def ping_ok(self):
        return self.ping_error is None


def servers_file_path(instance=None, servers_file=None):
    if servers_file is not None:
        return Path(servers_file)
    base = Path(instance) if instance is not None else find_minecraft_dir()
    return base / SERVERS_FILE_NAME


def resolve_target(server=None, instance=None, servers_file=None, select=choose):
    """Target from a direct address, or picked from a servers.dat file.

    Blocks on the filesystem and on `select`; run it off the event loop.
    """
    if server is not None:
        return address.parse(server)
    path = servers_file_path(instance, servers_file)
    log.debug(f"Loading server list from {path}")
    servers = nbt.load(path)
    index = select([entry.label for entry in servers])
    return address.parse(servers[index].address)


class _Session:
    """Network phase for one target; keeps the status if the ping never finishes."""

    def __init__(self, target, on_phase=None):
        self.target = target
        self.on_phase = on_phase or (lambda message: None)
        self.status = None

    async def run(self, ping_payload):
        client = SLPClient(self.target)
        self.on_phase("Connecting...")
        await client.connect()
        try:
            self.on_phase("Fetching status...")
            self.status = await client.status()
            self.on_phase("Pinging...")
            try:
                latency = await client.ping(ping_payload)
            except ProtocolError as e:
                log.warning(f"Ping to {self.target} failed after status was received: {e}")
                return QueryResult(self.status, ping_error=e)
            return QueryResult(self.status, latency_ms=latency)
        finally:
            client.close()


async def query_status(target, timeout=QUERY_TIMEOUT, on_phase=None, ping_payload=PING_PAYLOAD):
    """Connect, fetch the status and ping `target`, all within `timeout` seconds."""
    session = _Session(target, on_phase)
    try:
        return await asyncio.wait_for(session.run(ping_payload), timeout)
    except asyncio.TimeoutError:
        if session.status is not None:
            error = QueryTimeout(f"ping timed out after {timeout}s")
            log.warning(f"Ping to {target} failed after status was received: {error}")
            return QueryResult(session.status, ping_error=error)
        raise QueryTimeout(f"timed out after {timeout}s waiting for {target}") from None


def format_report(status: StatusResponse) -> List[str]:
    names = " ".join(status.sampled_names)
    lines = [f"{status.players_online}/{status.players_max} online{':' if names else ''}"]
    if names:
        lines += textwrap.wrap(names, width=WRAP_WIDTH,
                               initial_indent=WRAP_INDENT, subsequent_indent=WRAP_INDENT)
    return lines
