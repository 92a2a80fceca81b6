"""Shared helpers for the LED server.

Contents:
- load_config: YAML configuration loading
- atomic_write: crash-safe file replacement
"""

import fcntl
import os
import sys
import tempfile
from pathlib import Path

import yaml

CONFIG_ENV = "LEDSRV_CONFIG"


def load_config() -> dict:
    """Load configuration from the YAML file named by $LEDSRV_CONFIG.

    Returns the full config dict, or empty dict if the variable is unset
    or the file doesn't exist.
    """
    config_path = os.environ.get(CONFIG_ENV, "")
    if not config_path or not os.path.exists(config_path):
        return {}
    try:
        with open(config_path, "r") as f:
            config = yaml.safe_load(f) or {}
    except (yaml.YAMLError, OSError) as e:
        print(f"[utils] Error loading config: {e}", file=sys.stderr)
        return {}
    if not isinstance(config, dict):
        print(f"[utils] Ignoring config {config_path}: top level is not a mapping", file=sys.stderr)
        return {}
    return config


def atomic_write(path: Path, content: str):
    """Write content to a file atomically using write-to-temp + rename.

    Readers never observe a half-written file. Uses an exclusive lock on
    the temp file to serialize concurrent writers.
    """
    dir_path = path.parent
    fd, tmp = tempfile.mkstemp(dir=str(dir_path), prefix=".ledsrv-")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            fcntl.flock(f, fcntl.LOCK_EX)
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, str(path))
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise
