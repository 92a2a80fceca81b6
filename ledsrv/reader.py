"""Request reader: one blocking read, split into request lines.

A read returns at most one client batch. Requests that straddle two reads
are not reassembled; clients keep each batch within PIPE_BUF so a single
write (and therefore a single read) carries it whole.
"""

from typing import List

from ledsrv.channel import Channel
from ledsrv.protocol import DELIMITER, ENCODING, PIPE_BUF


def split_lines(data: bytes) -> List[str]:
    """Decode a batch and split it into lines.

    Consecutive newlines collapse, so no empty entries are produced, and a
    trailing newline does not yield an empty final request.
    """
    text = data.decode(ENCODING, errors="replace")
    return [line for line in text.split(DELIMITER) if line]


def read_requests(channel: Channel, max_bytes: int = PIPE_BUF) -> List[str]:
    """Read one batch of requests from channel.

    Returns an empty list on EOF. Read errors propagate as OSError.
    """
    return split_lines(channel.read(max_bytes))
