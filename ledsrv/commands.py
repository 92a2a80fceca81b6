"""Command table for the LED server.

Each command is a verb, the exact number of arguments it takes, and a
handler. Handlers never touch the committed state: they receive the
current snapshot and return a HandlerResult carrying the state they want
committed, which the dispatcher compares against the current one.

Table:
    set-led-state <on|off>             get-led-state
    set-led-color <red|green|blue>     get-led-color
    set-led-rate <1..5>                get-led-rate

Argument values match case-insensitively; verbs do not.
"""

from dataclasses import dataclass, replace
from typing import Any, Callable, List, NamedTuple, Optional, Sequence

from ledsrv.state import MAX_RATE, MIN_RATE, LedColor, LedState


class HandlerResult(NamedTuple):
    ok: bool
    output: str
    state: LedState


Handler = Callable[[Sequence[str], LedState], HandlerResult]


@dataclass(frozen=True)
class Command:
    """A single entry of the command table."""

    verb: str
    arity: int
    handler: Handler
    usage: str = ""


# ---------------------------------------------------------------------------
# Argument parsers: raise ValueError on anything outside the domain
# ---------------------------------------------------------------------------

_SWITCH_VALUES = {"on": True, "off": False}


def parse_switch(text: str) -> bool:
    try:
        return _SWITCH_VALUES[text.lower()]
    except KeyError:
        raise ValueError(f"expected on/off, got {text!r}") from None


def parse_color(text: str) -> LedColor:
    try:
        return LedColor(text.lower())
    except ValueError:
        raise ValueError(f"unknown color {text!r}") from None


def parse_rate(text: str) -> int:
    rate = int(text)
    if not MIN_RATE <= rate <= MAX_RATE:
        raise ValueError(f"rate {rate} out of range [{MIN_RATE}, {MAX_RATE}]")
    return rate


# ---------------------------------------------------------------------------
# Handler builders
# ---------------------------------------------------------------------------

def _setter(field: str, parse: Callable[[str], Any]) -> Handler:
    """Handler that parses its single argument and stores it in field."""

    def handle(args: Sequence[str], state: LedState) -> HandlerResult:
        try:
            value = parse(args[0])
        except ValueError:
            return HandlerResult(False, "", state)
        return HandlerResult(True, "", replace(state, **{field: value}))

    return handle


def _getter(render: Callable[[LedState], str]) -> Handler:
    """Handler that reports a value and leaves the state alone."""

    def handle(args: Sequence[str], state: LedState) -> HandlerResult:
        return HandlerResult(True, render(state), state)

    return handle


COMMANDS = (
    Command("set-led-state", 1, _setter("active", parse_switch),
            "set-led-state <on|off>"),
    Command("get-led-state", 0, _getter(lambda s: "on" if s.active else "off"),
            "get-led-state"),
    Command("set-led-color", 1, _setter("color", parse_color),
            "set-led-color <red|green|blue>"),
    Command("get-led-color", 0, _getter(lambda s: s.color.value),
            "get-led-color"),
    Command("set-led-rate", 1, _setter("rate", parse_rate),
            f"set-led-rate <{MIN_RATE}..{MAX_RATE}>"),
    Command("get-led-rate", 0, _getter(lambda s: str(s.rate)),
            "get-led-rate"),
)


class CommandTable:
    """Ordered, read-only collection of commands."""

    def __init__(self, commands: Sequence[Command] = COMMANDS):
        self._commands = tuple(commands)

    def find(self, verb: str, nargs: int) -> Optional[Command]:
        """First command whose verb matches exactly and whose arity is nargs."""
        for command in self._commands:
            if command.verb == verb and command.arity == nargs:
                return command
        return None

    def verbs(self) -> List[str]:
        return [c.verb for c in self._commands]

    def __iter__(self):
        return iter(self._commands)

    def __len__(self) -> int:
        return len(self._commands)
