"""
Step history for an equation derivation.

This module exposes StepHistory, the ordered log of (equation, command)
pairs that makes up a derivation. The history only ever grows at the end,
shrinks from the end, or has a single equation edited in place:

  [
    {"equation": "x^2+y^2=r^2", "command": "x squared plus y squared ..."},
    {"equation": "x^2 = r^2 - y^2", "command": "subtract y squared ..."},
  ]

Note: We do NOT check that a step follows from the previous one. Whatever
the model (or the user) writes is recorded as-is.
"""

import enum
from dataclasses import asdict, dataclass
from typing import Dict, Iterator, List

from ..errors import HistoryContractError
from .normalize import normalize


class Mode(enum.Enum):
    """Whether a derivation has been started. Always derived from length."""

    EMPTY = "empty"
    EDITING = "editing"


@dataclass
class Step:
    equation: str
    command: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


class StepHistory:
    """Append/truncate-only log of steps with linear undo and in-place edit."""

    def __init__(self) -> None:
        self._steps: List[Step] = []

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self) -> Iterator[Step]:
        return iter(self._steps)

    def __getitem__(self, index: int) -> Step:
        return self._steps[index]

    @property
    def mode(self) -> Mode:
        return Mode.EDITING if self._steps else Mode.EMPTY

    @property
    def last(self) -> Step:
        self._require_started("last")
        return self._steps[-1]

    def _require_empty(self, operation: str) -> None:
        if self._steps:
            raise HistoryContractError(
                f"{operation}() requires an empty history (has {len(self._steps)} steps)"
            )

    def _require_started(self, operation: str) -> None:
        if not self._steps:
            raise HistoryContractError(f"{operation}() requires a started history")

    def start(self, initial_equation_raw: str, user_sentence: str) -> None:
        """Begin a derivation from the model's rendering of the user's sentence."""
        self._require_empty("start")
        self._steps.append(Step(normalize(initial_equation_raw), user_sentence))

    def start_failure(self, placeholder: str, user_sentence: str) -> None:
        """Begin a derivation whose first equation could not be produced."""
        self._require_empty("start_failure")
        self._steps.append(Step(placeholder, user_sentence))

    def append(self, new_equation_raw: str, command: str) -> None:
        self._require_started("append")
        self._steps.append(Step(normalize(new_equation_raw), command))

    def append_failure(self, placeholder: str, command: str) -> None:
        """Record a failed transformation as a step the user can retype."""
        self._require_started("append_failure")
        self._steps.append(Step(placeholder, command))

    def undo(self) -> bool:
        """
        Drop the most recent step.

        The first step is the root of the derivation and is never removed
        here; only reset() clears it. Returns True if a step was removed.
        """
        self._require_started("undo")
        if len(self._steps) > 1:
            self._steps.pop()
            return True
        return False

    def edit_equation(self, index: int, text: str) -> None:
        # User edits are stored verbatim, never normalized.
        if not 0 <= index < len(self._steps):
            raise HistoryContractError(
                f"edit_equation() index {index} out of range for {len(self._steps)} steps"
            )
        self._steps[index].equation = text

    def reset(self) -> None:
        self._steps.clear()

    def to_list(self) -> List[Dict[str, str]]:
        return [step.to_dict() for step in self._steps]
