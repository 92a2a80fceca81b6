"""Request dispatch against the command table.

The Dispatcher is the only owner of the committed LED state. For every
request it looks up the command, lets the handler compute a new snapshot,
and commits + publishes that snapshot only when it differs from the
current one. Queries therefore never reach the view.
"""

import logging
from typing import NamedTuple, Optional

from ledsrv.commands import CommandTable
from ledsrv.run_log import log
from ledsrv.state import DEFAULT_STATE, LedState
from ledsrv.view import LedView

logger = logging.getLogger(__name__)


class Response(NamedTuple):
    ok: bool
    output: str = ""


FAILED = Response(False)


class Dispatcher:
    """Parses request lines and applies them to the LED state.

    Args:
        view: Sink notified once per committed state change.
        commands: Command table; defaults to the built-in LED commands.
        state: Initial state; defaults to off/red/1.
    """

    def __init__(self, view: LedView, commands: Optional[CommandTable] = None,
                 state: LedState = DEFAULT_STATE):
        self._view = view
        self._commands = commands if commands is not None else CommandTable()
        self._state = state

    @property
    def state(self) -> LedState:
        return self._state

    @property
    def commands(self) -> CommandTable:
        return self._commands

    def dispatch(self, request: str) -> Response:
        """Run one request line. Never raises for bad input."""
        argv = request.split()
        if not argv:
            return FAILED

        verb, args = argv[0], argv[1:]
        logger.debug("Request: %s", verb)

        command = self._commands.find(verb, len(args))
        if command is None:
            return FAILED

        result = command.handler(args, self._state)
        if not result.ok:
            return FAILED

        if result.state != self._state:
            self._state = result.state
            self._publish(result.state)

        return Response(True, result.output)

    def _publish(self, state: LedState) -> None:
        # Already committed: the client gets its response either way.
        try:
            self._view.update(state)
        except OSError as e:
            log("error", f"View update failed for {state.describe()}: {e}")
