"""LED views: sinks for committed state changes.

The dispatcher calls update() synchronously, once per committed change,
on the request path. Views must return promptly.

Available views (selected by the `view:` config key):
  stdout       prints "{ on, blue, 3 }" per change
  status-file  atomically rewrites a file with the same line
  none         discards updates
"""

import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, TextIO, Union

from ledsrv.state import LedState
from ledsrv.utils import atomic_write


class LedView(ABC):
    """Abstract LED display."""

    @abstractmethod
    def update(self, state: LedState) -> None:
        """Render a newly committed state."""


class StdoutView(LedView):
    """Simplest possible view: dump the state to a text stream."""

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream

    def update(self, state: LedState) -> None:
        print(state.describe(), file=self._stream or sys.stdout, flush=True)


class StatusFileView(LedView):
    """Keep the current state readable from a file, for tools that don't
    speak the protocol (e.g. `cat /tmp/ledsrv.status`)."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def update(self, state: LedState) -> None:
        atomic_write(self.path, state.describe() + "\n")


class NullView(LedView):
    def update(self, state: LedState) -> None:
        pass


VIEW_NAMES = ("stdout", "status-file", "none")


def create_view(name: str, status_file: Optional[Union[str, Path]] = None) -> LedView:
    """Build the view configured under `name`.

    Raises:
        ValueError: unknown view name, or status-file without a path.
    """
    if name == "stdout":
        return StdoutView()
    if name == "status-file":
        if not status_file:
            raise ValueError("status-file view needs a status_file path")
        return StatusFileView(status_file)
    if name == "none":
        return NullView()
    raise ValueError(f"Unknown view {name!r} (expected one of: {', '.join(VIEW_NAMES)})")
