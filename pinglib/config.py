# mcpeek/pinglib/config.py
import os
from dotenv import load_dotenv

load_dotenv()

# Network config
DEFAULT_PORT = int(os.getenv("MC_DEFAULT_PORT", "25565")) # Ensure int
QUERY_TIMEOUT = float(os.getenv("MC_QUERY_TIMEOUT", "2.0")) # Whole connect+handshake+status+ping

# Protocol config
# -1 is the "any version" value; servers don't validate it for status requests
PROTOCOL_VERSION = int(os.getenv("MC_PROTOCOL_VERSION", "-1"))
PING_PAYLOAD = int(os.getenv("MC_PING_PAYLOAD", str(0x8008135)), 0)
MAX_PACKET_LENGTH = 2 * 1024 * 1024 # 2 MiB sanity cap on inbound frames

# CLI config
VERSION = "0.1.0"
SPINNER_INTERVAL = float(os.getenv("MC_SPINNER_INTERVAL", "0.1"))
WRAP_WIDTH = 60
WRAP_INDENT = "    "
SERVERS_FILE_NAME = "servers.dat"

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING").upper()
