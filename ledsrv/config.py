"""Configuration access for the LED server.

Handles:
- Channel naming (rendezvous name, per-client templates, fifo mode)
- Read size for request batches
- View selection
- PID file location and debug flag

Every getter re-reads the YAML file through utils.load_config() so that
tests can patch a single function.
"""

import sys

from ledsrv.channel import DEFAULT_MODE
from ledsrv.link import ChannelNames
from ledsrv.protocol import (
    INBOUND_TEMPLATE,
    OUTBOUND_TEMPLATE,
    PIPE_BUF,
    RENDEZVOUS_NAME,
)

DEFAULT_VIEW = "stdout"
DEFAULT_STATUS_FILE = "/tmp/ledsrv.status"
DEFAULT_PIDFILE = "/tmp/ledsrv.pid"


def _load_config() -> dict:
    """Import and call load_config from utils so mock patches propagate."""
    from ledsrv.utils import load_config
    return load_config()


def _safe_int(value, default: int) -> int:
    """Safely convert a config value to int, returning default on failure."""
    try:
        return int(value)
    except (ValueError, TypeError):
        return default


def _channels_section() -> dict:
    section = _load_config().get("channels") or {}
    return section if isinstance(section, dict) else {}


def _template(value, default: str, key: str) -> str:
    """Validate a per-client name template; it must contain {pid}."""
    if not isinstance(value, str) or not value:
        return default
    if "{pid}" not in value:
        print(f"[config] channels.{key} lacks a {{pid}} placeholder, using {default}", file=sys.stderr)
        return default
    return value


def get_channel_names() -> ChannelNames:
    """Get the rendezvous name and per-client templates.

    Config keys: channels.rendezvous, channels.inbound, channels.outbound
    Defaults: /tmp/ledsrv, /tmp/ledsrv.in.{pid}, /tmp/ledsrv.out.{pid}
    """
    section = _channels_section()
    rendezvous = section.get("rendezvous") or RENDEZVOUS_NAME
    return ChannelNames(
        rendezvous=str(rendezvous),
        inbound=_template(section.get("inbound"), INBOUND_TEMPLATE, "inbound"),
        outbound=_template(section.get("outbound"), OUTBOUND_TEMPLATE, "outbound"),
    )


def get_fifo_mode() -> int:
    """Permission bits for fifos created by the server (default 0644).

    Accepts a YAML octal literal (0644) or an octal string ("0644").
    """
    value = _channels_section().get("mode", DEFAULT_MODE)
    if isinstance(value, str):
        try:
            value = int(value, 8)
        except ValueError:
            return DEFAULT_MODE
    mode = _safe_int(value, DEFAULT_MODE)
    return mode & 0o777


def get_read_size() -> int:
    """Bytes requested per read; clamped to [1, PIPE_BUF] so a batch stays atomic."""
    size = _safe_int(_load_config().get("read_size", PIPE_BUF), PIPE_BUF)
    return max(1, min(size, PIPE_BUF))


def get_view_name() -> str:
    """Config key: view (stdout | status-file | none)."""
    return str(_load_config().get("view", DEFAULT_VIEW))


def get_status_file() -> str:
    return str(_load_config().get("status_file") or DEFAULT_STATUS_FILE)


def get_pidfile() -> str:
    return str(_load_config().get("pidfile") or DEFAULT_PIDFILE)


def get_debug_enabled() -> bool:
    """Check if debug mode is enabled.

    When True, channel and dispatch internals are logged at DEBUG level.
    """
    return bool(_load_config().get("debug", False))
