#!/usr/bin/env python3
"""
LED server: client

Client side of the rendezvous protocol:
1. create /tmp/ledsrv.in.<pid> and /tmp/ledsrv.out.<pid> (the client owns them)
2. write "<pid>\\n" to the rendezvous FIFO
3. open the request FIFO for writing, then the response FIFO for reading
   (the same order in which the server opens them)
4. write the whole batch in one write, read response lines until EOF

One connection carries exactly one batch: the server closes the link
after answering it.

Usage from shell:
    ledcli set-led-color blue
    ledcli get-led-rate
    ledcli --status

Usage from Python:
    with LedClient() as client:
        responses = client.send(["set-led-state on", "get-led-state"])
"""

import argparse
import errno
import os
import sys
import time
from pathlib import Path
from typing import List, Optional, Sequence

from ledsrv.channel import DEFAULT_MODE, Channel, ChannelError, Direction, ensure_fifo
from ledsrv.commands import COMMANDS
from ledsrv.config import get_channel_names, get_fifo_mode, get_pidfile, get_read_size
from ledsrv.link import ChannelNames
from ledsrv.pid_manager import check_pidfile
from ledsrv.protocol import DELIMITER, ENCODING, PIPE_BUF, parse_response
from ledsrv.reader import split_lines
from ledsrv.utils import CONFIG_ENV

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2

CONNECT_TIMEOUT = 1.0
CONNECT_POLL_INTERVAL = 0.05


class LedClient:
    """One client session with the LED server.

    Args:
        names: Naming scheme; must match the server's.
        pid: Identity announced to the server; defaults to our own pid.
        mode: Permission bits for the client's FIFOs.
        max_batch: Largest batch, in bytes, the server reads in one go;
            must not exceed the server's read_size.
        connect_timeout: Seconds to keep retrying while the rendezvous FIFO
            exists but has no reader yet.
    """

    def __init__(self, names: Optional[ChannelNames] = None, pid: Optional[int] = None,
                 mode: int = DEFAULT_MODE, max_batch: int = PIPE_BUF,
                 connect_timeout: float = CONNECT_TIMEOUT):
        self.names = names or ChannelNames()
        self.pid = pid if pid is not None else os.getpid()
        self.mode = mode
        self.max_batch = min(max_batch, PIPE_BUF)
        self.connect_timeout = connect_timeout
        self._request_path = Path(self.names.inbound_for(self.pid))
        self._response_path = Path(self.names.outbound_for(self.pid))
        self._requests: Optional[Channel] = None
        self._responses: Optional[Channel] = None
        self._created: List[Path] = []

    def connect(self) -> None:
        """Create our FIFOs, announce ourselves and open the link.

        Raises:
            ChannelError: the rendezvous FIFO is missing (server not running)
                or a FIFO could not be created or opened.
        """
        try:
            for path in (self._request_path, self._response_path):
                ensure_fifo(path, self.mode)
                self._created.append(path)
            self._announce()
            self._requests = Channel.open(self._request_path, Direction.WRITE, delete_on_close=True)
            self._responses = Channel.open(self._response_path, Direction.READ, delete_on_close=True)
        except BaseException:
            self.close()
            raise

    def _open_rendezvous(self) -> Channel:
        """Open the rendezvous FIFO for writing without hanging.

        A FIFO left behind by a killed server has no reader, so a blocking
        open would wait forever. ENXIO is retried until connect_timeout to
        cover a server that is still starting up.
        """
        deadline = time.monotonic() + self.connect_timeout
        while True:
            try:
                return Channel.open(self.names.rendezvous, Direction.WRITE, nonblocking=True)
            except ChannelError as e:
                if e.errno not in (errno.ENOENT, errno.ENXIO):
                    raise
                if e.errno == errno.ENOENT or time.monotonic() >= deadline:
                    raise ChannelError(e.errno, "server not running", self.names.rendezvous) from e
            time.sleep(CONNECT_POLL_INTERVAL)

    def _announce(self) -> None:
        rendezvous = self._open_rendezvous()
        with rendezvous:
            rendezvous.write(f"{self.pid}{DELIMITER}".encode(ENCODING))

    def send(self, requests: Sequence[str]) -> List[str]:
        """Send one batch and return the response lines, in request order.

        Raises:
            ValueError: a request contains a newline, or the batch does not
                fit in a single atomic write.
            RuntimeError: not connected.
        """
        if self._requests is None or self._responses is None:
            raise RuntimeError("client is not connected")

        for request in requests:
            if DELIMITER in request:
                raise ValueError(f"request contains a newline: {request!r}")
        payload = "".join(f"{r}{DELIMITER}" for r in requests).encode(ENCODING)
        if len(payload) > self.max_batch:
            raise ValueError(f"batch is {len(payload)} bytes, limit is {self.max_batch}")

        if payload:
            self._requests.write(payload)
        # Hanging up tells the server the batch is complete, even when empty.
        self._requests.close()

        data = b""
        while True:
            chunk = self._responses.read(PIPE_BUF)
            if not chunk:
                break
            data += chunk
        return split_lines(data)

    def close(self) -> None:
        """Close the link and remove our FIFOs. Idempotent."""
        for channel in (self._requests, self._responses):
            if channel is not None:
                channel.close()
        self._requests = self._responses = None
        for path in self._created:
            path.unlink(missing_ok=True)
        self._created = []

    def __enter__(self) -> "LedClient":
        self.connect()
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def usage_text() -> str:
    """Command summary, one usage line per command."""
    return "\n".join(f" {c.usage}" for c in COMMANDS)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Send one request to the LED server",
        epilog="commands:\n" + usage_text(),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("request", nargs="*", help="Verb followed by its arguments")
    parser.add_argument("--config", default="", help="YAML config file (overrides $LEDSRV_CONFIG)")
    parser.add_argument("--status", action="store_true", help="Report whether the server is running")
    args = parser.parse_args(argv)

    if args.config:
        os.environ[CONFIG_ENV] = args.config

    if args.status:
        pid = check_pidfile(Path(get_pidfile()))
        if pid is None:
            print("ledsrv: not running")
            return EXIT_FAILED
        print(f"ledsrv: running (PID {pid})")
        return EXIT_OK

    if not args.request:
        print(f"{parser.prog}:")
        print(usage_text())
        return EXIT_OK

    try:
        with LedClient(get_channel_names(), mode=get_fifo_mode(),
                       max_batch=get_read_size()) as client:
            responses = client.send([" ".join(args.request)])
    except (OSError, ValueError) as e:
        print(f"{parser.prog}: {e}", file=sys.stderr)
        return EXIT_USAGE

    if not responses:
        print(f"{parser.prog}: no response from server", file=sys.stderr)
        return EXIT_USAGE

    print(responses[0])
    ok, _ = parse_response(responses[0])
    return EXIT_OK if ok else EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
