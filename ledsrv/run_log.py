"""Colored console logging for the LED server.

Log lines go to stderr so that stdout stays reserved for the stdout view.
Colors are used when stderr is a terminal or LEDSRV_FORCE_COLOR is set.

Categories:
  init        (blue)        startup and shutdown
  rendezvous  (cyan)        identities arriving on the rendezvous channel
  client      (green)       per-client sessions
  error       (bold+red)    errors
  warning     (yellow)      skipped input

Usage:
    from ledsrv.run_log import log
    log("init", "Listening on /tmp/ledsrv")
"""

import os
import sys


# ---------------------------------------------------------------------------
# Color state
# ---------------------------------------------------------------------------

_ANSI = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "red": "\033[31m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "blue": "\033[34m",
    "cyan": "\033[36m",
    "white": "\033[37m",
}

_CATEGORY_COLORS = {
    "init": "blue",
    "rendezvous": "cyan",
    "client": "green",
    "error": "bold+red",
    "warning": "yellow",
}

_COLORS = {}


def _colors() -> dict:
    """Color table for this process, resolved on first use."""
    global _COLORS
    if not _COLORS:
        enabled = bool(os.environ.get("LEDSRV_FORCE_COLOR", "")) or sys.stderr.isatty()
        _COLORS = dict(_ANSI) if enabled else {name: "" for name in _ANSI}
    return _COLORS


def _reset_terminal():
    """Write an ANSI reset to stderr so the terminal isn't left colored."""
    if not _COLORS.get("reset"):
        return
    try:
        sys.stderr.write(_ANSI["reset"])
        sys.stderr.flush()
    except OSError:
        pass  # Terminal may be gone during shutdown


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def log(category: str, message: str):
    """Print one category-tagged line to stderr."""
    colors = _colors()
    spec = _CATEGORY_COLORS.get(category, "white")
    prefix = "".join(colors[name] for name in spec.split("+"))
    print(f"{prefix}[{category}]{colors['reset']} {message}", file=sys.stderr, flush=True)


def reset_colors():
    """Forget cached color state (for tests)."""
    global _COLORS
    _COLORS = {}
