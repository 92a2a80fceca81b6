"""Exclusive PID file for the LED server.

Only one server may own the rendezvous channel at a time: a second one
would delete and recreate the FIFO under the first. The PID file is
locked with fcntl.flock(), so the OS releases the lock on crash and a
stale file never blocks a restart.

Usage:
    lock = acquire_pidfile(Path("/tmp/ledsrv.pid"))
    # ... serve ...
    release_pidfile(lock, Path("/tmp/ledsrv.pid"))
"""

import fcntl
import os
import sys
from pathlib import Path
from typing import IO, Optional


def _read_pid(pidfile: Path) -> Optional[int]:
    """Read the PID from a PID file, or None if unreadable."""
    try:
        text = pidfile.read_text().strip()
        return int(text) if text else None
    except (ValueError, OSError):
        return None


def acquire_pidfile(pidfile: Path) -> IO:
    """Acquire an exclusive flock on the PID file.

    If another server holds the lock, prints an error with the running
    PID and exits with code 1.

    Returns the open file handle; the caller must keep it alive for the
    duration of the process (closing it releases the lock).
    """
    fh = open(pidfile, "a+")

    try:
        fcntl.flock(fh.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
    except OSError:
        # Lock held by another process
        fh.seek(0)
        existing_pid = None
        try:
            text = fh.read().strip()
            existing_pid = int(text) if text else None
        except ValueError:
            pass
        fh.close()

        msg = "Error: ledsrv already running"
        if existing_pid:
            msg += f" (PID {existing_pid})"
        msg += ". Aborting."
        print(msg, file=sys.stderr)
        sys.exit(1)

    # Lock acquired, write our PID
    fh.seek(0)
    fh.truncate()
    fh.write(str(os.getpid()))
    fh.flush()

    return fh


def release_pidfile(fh: IO, pidfile: Path) -> None:
    """Release the PID file lock and remove the file."""
    try:
        fcntl.flock(fh.fileno(), fcntl.LOCK_UN)
        fh.close()
    except (OSError, ValueError):
        # ValueError: file already closed (idempotent release)
        pass

    pidfile.unlink(missing_ok=True)


def check_pidfile(pidfile: Path) -> Optional[int]:
    """Return the PID of the running server, or None if none holds the lock."""
    if not pidfile.exists():
        return None

    try:
        with open(pidfile, "r") as fh:
            try:
                fcntl.flock(fh.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
            except OSError:
                # Lock held, server is running
                return _read_pid(pidfile)
            fcntl.flock(fh.fileno(), fcntl.LOCK_UN)
    except OSError:
        pass

    return None
