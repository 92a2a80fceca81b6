"""LED state record."""

import enum
from dataclasses import dataclass

MIN_RATE = 1
MAX_RATE = 5


class LedColor(enum.Enum):
    RED = "red"
    GREEN = "green"
    BLUE = "blue"


@dataclass(frozen=True)
class LedState:
    """Immutable snapshot of the LED.

    Mutations go through dataclasses.replace(); equality is field-wise,
    which is what the dispatcher uses to decide whether to commit.
    """

    active: bool = False
    color: LedColor = LedColor.RED
    rate: int = MIN_RATE

    def __post_init__(self):
        if not MIN_RATE <= self.rate <= MAX_RATE:
            raise ValueError(f"rate must be in [{MIN_RATE}, {MAX_RATE}], got {self.rate}")

    def describe(self) -> str:
        """One-line rendering used by the views, e.g. "{ off, red, 1 }"."""
        return f"{{ {'on' if self.active else 'off'}, {self.color.value}, {self.rate} }}"


DEFAULT_STATE = LedState()
