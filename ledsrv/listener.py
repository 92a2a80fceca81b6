"""Rendezvous listener and per-client sessions.

Clients announce themselves by writing their pid to the well-known
rendezvous channel. For each pid, in arrival order, the listener opens the
client's duplex link, serves one batch of requests, and closes the link
before looking at the next pid. Nothing is serviced concurrently.

A client that breaks its session (never creates its FIFOs, hangs up early)
only loses its own session. A failure reading the rendezvous channel
itself is fatal and propagates to the caller.
"""

import errno
from typing import Callable, List, Optional

from ledsrv.channel import DEFAULT_MODE, Channel, ChannelError, Direction
from ledsrv.dispatcher import Dispatcher
from ledsrv.link import ChannelNames, DuplexLink
from ledsrv.protocol import ENCODING, PIPE_BUF, format_response, parse_identity
from ledsrv.reader import read_requests, split_lines
from ledsrv.run_log import log

LinkFactory = Callable[[int, ChannelNames], DuplexLink]


def serve_link(link: DuplexLink, dispatcher: Dispatcher, read_size: int = PIPE_BUF) -> int:
    """Read one request batch from link and answer every request in order.

    Returns the number of requests served. Transport errors propagate.
    """
    requests = read_requests(link.inbound, read_size)
    for request in requests:
        ok, output = dispatcher.dispatch(request)
        link.outbound.write(format_response(ok, output).encode(ENCODING))
    return len(requests)


class RendezvousListener:
    """Owns the rendezvous channel and services clients one at a time.

    Args:
        names: Rendezvous name and per-client name templates.
        dispatcher: Applies requests to the LED state.
        read_size: Bytes per read, for both identities and requests.
        mode: Permission bits of the rendezvous FIFO.
        link_factory: Opens a client's link; DuplexLink.open by default.
    """

    def __init__(self, names: ChannelNames, dispatcher: Dispatcher,
                 read_size: int = PIPE_BUF, mode: int = DEFAULT_MODE,
                 link_factory: Optional[LinkFactory] = None):
        self.names = names
        self.dispatcher = dispatcher
        self.read_size = read_size
        self.mode = mode
        self._link_factory = link_factory or DuplexLink.open
        self._channel: Optional[Channel] = None
        self._keepalive: Optional[Channel] = None

    # -- lifecycle ---------------------------------------------------------

    def open(self) -> None:
        """Create the rendezvous FIFO and wait for the first client.

        The listener then keeps a write handle of its own on the FIFO, so
        reads never hit EOF between clients and a pid written while no
        client holds the FIFO open is never dropped.
        """
        log("init", f"Waiting for clients on {self.names.rendezvous}")
        self._channel = Channel.create(self.names.rendezvous, Direction.READ, self.mode)
        try:
            self._keepalive = Channel.open(self.names.rendezvous, Direction.WRITE)
        except BaseException:
            self.close()
            raise

    def close(self) -> None:
        """Close and remove the rendezvous FIFO. Idempotent."""
        keepalive, self._keepalive = self._keepalive, None
        channel, self._channel = self._channel, None
        try:
            if keepalive is not None:
                keepalive.close()
        finally:
            if channel is not None:
                channel.close()

    def __enter__(self) -> "RendezvousListener":
        self.open()
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # -- serving -----------------------------------------------------------

    def read_identities(self) -> List[int]:
        """Read one batch of client pids. Malformed lines are skipped.

        Raises:
            ChannelError: the rendezvous FIFO hit EOF, which only happens
                if the listener's own write handle is gone.
        """
        if self._channel is None:
            raise RuntimeError("listener is not open")

        data = self._channel.read(self.read_size)
        if not data:
            raise ChannelError(errno.EPIPE, "rendezvous channel hung up", self.names.rendezvous)

        pids = []
        for line in split_lines(data):
            pid = parse_identity(line)
            if pid is None:
                log("warning", f"Ignoring malformed client identity {line!r}")
                continue
            pids.append(pid)
        return pids

    def serve_client(self, pid: int) -> bool:
        """Run one complete session for pid. Returns False if it failed."""
        try:
            link = self._link_factory(pid, self.names)
        except OSError as e:
            log("error", f"Client {pid}: cannot open link: {e}")
            return False

        with link:
            try:
                served = serve_link(link, self.dispatcher, self.read_size)
            except OSError as e:
                log("error", f"Client {pid}: session aborted: {e}")
                return False

        log("client", f"Client {pid}: served {served} request(s)")
        return True

    def serve_once(self) -> int:
        """Serve every client of one rendezvous batch, strictly in order.

        Returns the number of clients whose session completed.
        """
        pids = self.read_identities()
        if not pids:
            return 0

        completed = 0
        for pid in pids:
            log("rendezvous", f"Client {pid} connected")
            if self.serve_client(pid):
                completed += 1
        return completed

    def serve_forever(self) -> None:
        """Serve clients until a rendezvous read fails."""
        while True:
            self.serve_once()
