#!/usr/bin/env python3
"""
LED server: entry point

Owns the LED state and serves clients over named pipes:
- Creates the rendezvous FIFO (default /tmp/ledsrv) and waits for pids
- Opens /tmp/ledsrv.in.<pid> and /tmp/ledsrv.out.<pid> for each client
- Answers one request batch per client, then moves on to the next pid
- Publishes every committed state change to the configured view

Shutdown: CTRL-C, SIGTERM and SIGHUP all unwind through the listener's
context manager, so the rendezvous FIFO and the PID file are removed on
every exit path.

Usage:
    ledsrv [--config /etc/ledsrv.yaml]
"""

import argparse
import logging
import os
import signal
import sys
from pathlib import Path
from typing import List, Optional

from ledsrv.config import (
    get_channel_names,
    get_debug_enabled,
    get_fifo_mode,
    get_pidfile,
    get_read_size,
    get_status_file,
    get_view_name,
)
from ledsrv.dispatcher import Dispatcher
from ledsrv.listener import RendezvousListener
from ledsrv.pid_manager import acquire_pidfile, release_pidfile
from ledsrv.run_log import _reset_terminal, log
from ledsrv.utils import CONFIG_ENV
from ledsrv.view import create_view

EXIT_OK = 0
EXIT_FAILURE = 1

_TERMINATION_SIGNALS = (signal.SIGTERM, signal.SIGHUP)


def _on_terminate(signum, frame):
    """Turn a termination request into the same unwind path as CTRL-C."""
    raise KeyboardInterrupt


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="LED control server over named pipes")
    parser.add_argument("--config", default="", help=f"YAML config file (overrides ${CONFIG_ENV})")
    return parser.parse_args(argv)


def build_listener() -> RendezvousListener:
    """Wire the view, dispatcher and listener from the current config.

    Raises:
        ValueError: the view is misconfigured or cannot publish the
            initial state.
    """
    view_name = get_view_name()
    view = create_view(view_name, status_file=get_status_file())
    dispatcher = Dispatcher(view)
    try:
        view.update(dispatcher.state)
    except OSError as e:
        raise ValueError(f"view {view_name!r} cannot publish: {e}") from e
    return RendezvousListener(
        get_channel_names(),
        dispatcher,
        read_size=get_read_size(),
        mode=get_fifo_mode(),
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    if args.config:
        os.environ[CONFIG_ENV] = args.config

    _configure_logging(get_debug_enabled())

    pidfile = Path(get_pidfile())
    pidfile_lock = acquire_pidfile(pidfile)

    for sig in _TERMINATION_SIGNALS:
        signal.signal(sig, _on_terminate)

    exit_code = EXIT_OK
    try:
        listener = build_listener()
        with listener:
            listener.serve_forever()
    except KeyboardInterrupt:
        log("init", "Shutting down.")
    except ValueError as e:
        log("error", f"Invalid configuration: {e}")
        exit_code = EXIT_FAILURE
    except OSError as e:
        log("error", f"Rendezvous channel failed: {e}")
        exit_code = EXIT_FAILURE
    finally:
        release_pidfile(pidfile_lock, pidfile)
        _reset_terminal()

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
