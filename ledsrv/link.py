"""Per-client duplex link: one inbound and one outbound channel.

Both channel names are derived from the client's pid, so the client can
create its FIFOs before announcing itself on the rendezvous channel. The
client owns those FIFOs; the server only opens them.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ledsrv.channel import Channel, Direction
from ledsrv.protocol import INBOUND_TEMPLATE, OUTBOUND_TEMPLATE, RENDEZVOUS_NAME

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChannelNames:
    """Naming scheme shared by the server and its clients."""

    rendezvous: str = RENDEZVOUS_NAME
    inbound: str = INBOUND_TEMPLATE
    outbound: str = OUTBOUND_TEMPLATE

    def inbound_for(self, pid: int) -> str:
        """Client -> server channel name for pid."""
        return self.inbound.format(pid=pid)

    def outbound_for(self, pid: int) -> str:
        """Server -> client channel name for pid."""
        return self.outbound.format(pid=pid)


class DuplexLink:
    """Server side of one client session."""

    def __init__(self, pid: int, inbound: Channel, outbound: Channel):
        self.pid = pid
        self.inbound = inbound
        self.outbound = outbound

    @classmethod
    def open(cls, pid: int, names: ChannelNames) -> "DuplexLink":
        """Open the client's channels: inbound for reading, then outbound.

        Each open blocks until the client opens the other end. Raises
        ChannelError if either channel cannot be opened (typically ENOENT
        when the client never created it); nothing stays open on failure.
        """
        inbound = Channel.open(names.inbound_for(pid), Direction.READ)
        outbound: Optional[Channel] = None
        try:
            outbound = Channel.open(names.outbound_for(pid), Direction.WRITE)
        finally:
            if outbound is None:
                inbound.close()
        logger.debug("Link open for pid %d", pid)
        return cls(pid, inbound, outbound)

    def close(self) -> None:
        try:
            self.inbound.close()
        finally:
            self.outbound.close()

    def __enter__(self) -> "DuplexLink":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
