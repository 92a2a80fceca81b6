"""Named unidirectional byte channels backed by FIFOs.

A Channel owns one end of a named pipe: the file descriptor and, when it
created the pipe itself, the filesystem entry. Opening either end blocks
until the peer opens the matching end, which is how the server and its
clients synchronize.

Usage:
    with Channel.create("/tmp/ledsrv", Direction.READ) as ch:
        data = ch.read(PIPE_BUF)

Closing is idempotent and removes the FIFO when the channel was created
(or opened) with delete_on_close, so the named artifact never outlives the
scope that owns it.
"""

import enum
import errno
import logging
import os
import stat
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_MODE = 0o644


class ChannelError(OSError):
    """Transport-level failure on a named channel."""


class Direction(enum.Enum):
    READ = os.O_RDONLY
    WRITE = os.O_WRONLY


def ensure_fifo(path: Path, mode: int = DEFAULT_MODE) -> None:
    """Make sure a fresh FIFO exists at path.

    A stale FIFO left behind by a crashed run is removed and recreated.
    Any other kind of file at that name is left alone and reported, since
    deleting it could destroy unrelated data.
    """
    try:
        st = os.lstat(path)
    except FileNotFoundError:
        st = None

    if st is not None:
        if not stat.S_ISFIFO(st.st_mode):
            raise ChannelError(errno.EEXIST, "name is taken by a non-fifo file", str(path))
        logger.debug("Removing stale fifo %s", path)
        os.unlink(path)

    os.mkfifo(path, mode)


class Channel:
    """One open end of a named pipe."""

    def __init__(self, path: Union[str, Path], direction: Direction, fd: int,
                 delete_on_close: bool = False):
        self.path = Path(path)
        self.direction = direction
        self._fd: Optional[int] = fd
        self._delete_on_close = delete_on_close

    @classmethod
    def create(cls, path: Union[str, Path], direction: Direction,
               mode: int = DEFAULT_MODE) -> "Channel":
        """Create the FIFO at path (replacing a stale one) and open it.

        Blocks until a peer opens the other end. The FIFO is removed again
        if the open fails or is interrupted, and on close().
        """
        path = Path(path)
        ensure_fifo(path, mode)
        try:
            return cls.open(path, direction, delete_on_close=True)
        except BaseException:
            path.unlink(missing_ok=True)
            raise

    @classmethod
    def open(cls, path: Union[str, Path], direction: Direction,
             delete_on_close: bool = False, nonblocking: bool = False) -> "Channel":
        """Open an existing FIFO, blocking until the peer opens its end.

        With nonblocking=True the open itself never waits: a write end with
        no reader fails at once with ENXIO. The descriptor is switched back
        to blocking mode before it is returned.
        """
        path = Path(path)
        logger.debug("Opening %s for %s", path, direction.name.lower())
        flags = direction.value | (os.O_NONBLOCK if nonblocking else 0)
        try:
            fd = os.open(path, flags)
        except OSError as e:
            raise ChannelError(e.errno, e.strerror, str(path)) from e
        if nonblocking:
            os.set_blocking(fd, True)
        return cls(path, direction, fd, delete_on_close=delete_on_close)

    @property
    def closed(self) -> bool:
        return self._fd is None

    def fileno(self) -> int:
        if self._fd is None:
            raise ChannelError(errno.EBADF, "channel is closed", str(self.path))
        return self._fd

    def read(self, max_bytes: int) -> bytes:
        """One blocking read of at most max_bytes. Empty bytes means EOF."""
        if self.direction is not Direction.READ:
            raise ChannelError(errno.EBADF, "channel is not readable", str(self.path))
        return os.read(self.fileno(), max_bytes)

    def write(self, data: bytes) -> int:
        """One blocking write. Returns the number of bytes written."""
        if self.direction is not Direction.WRITE:
            raise ChannelError(errno.EBADF, "channel is not writable", str(self.path))
        return os.write(self.fileno(), data)

    def close(self) -> None:
        """Release the descriptor and remove the FIFO if owned. Idempotent."""
        fd, self._fd = self._fd, None
        try:
            if fd is not None:
                logger.debug("Closing %s", self.path)
                os.close(fd)
        finally:
            if self._delete_on_close:
                self._delete_on_close = False
                self.path.unlink(missing_ok=True)

    def __enter__(self) -> "Channel":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"Channel({str(self.path)!r}, {self.direction.name}, {state})"
