"""Centralized wire constants for the LED server.

Every channel name, status word and size limit shared by the server and
its clients is defined here. The names are part of the contract: any
client that wants to talk to the server has to use the same templates.

Wire format (flat ASCII lines, no length prefixes):
  - rendezvous:  "<pid>\\n" written by the client to RENDEZVOUS_NAME
  - request:     "<verb>[ <arg>]*\\n" on the per-client inbound channel
  - response:    "OK[ <output>]\\n" or "FAILED\\n" on the outbound channel
"""

import select
from typing import Optional, Tuple

# --- Channel names ---

RENDEZVOUS_NAME = "/tmp/ledsrv"
INBOUND_TEMPLATE = "/tmp/ledsrv.in.{pid}"
OUTBOUND_TEMPLATE = "/tmp/ledsrv.out.{pid}"

# --- Response status words ---

STATUS_OK = "OK"
STATUS_FAILED = "FAILED"

# --- Framing ---

DELIMITER = "\n"
ENCODING = "ascii"

# Writes up to PIPE_BUF bytes are atomic on a pipe, so a client batch that
# fits in one write arrives in one read.
PIPE_BUF = getattr(select, "PIPE_BUF", 512)


def format_response(ok: bool, output: str = "") -> str:
    """Build the response line for one request."""
    if not ok:
        return f"{STATUS_FAILED}{DELIMITER}"
    if output:
        return f"{STATUS_OK} {output}{DELIMITER}"
    return f"{STATUS_OK}{DELIMITER}"


def parse_response(line: str) -> Tuple[bool, str]:
    """Split a response line into (ok, output).

    Returns:
        (True, output) for "OK ..." lines, (False, "") otherwise.
    """
    line = line.rstrip(DELIMITER)
    if line == STATUS_OK:
        return True, ""
    if line.startswith(STATUS_OK + " "):
        return True, line[len(STATUS_OK) + 1:]
    return False, ""


def parse_identity(text: str) -> Optional[int]:
    """Parse a client identity line, or None if it is not a decimal pid."""
    text = text.strip()
    if not (text.isascii() and text.isdigit()):
        return None
    return int(text)
