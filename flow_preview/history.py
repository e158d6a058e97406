"""Undo/redo history for flow simulations."""

import copy
import datetime
from collections import deque
from dataclasses import dataclass
from dataclasses import field
from dataclasses import replace
from typing import Any
from typing import Literal

MAX_HISTORY_SIZE = 50


@dataclass
class SimulationMessage:
    """A chat message produced during simulation."""

    role: Literal["bot", "user", "system"]
    content: str
    step_name: str | None = None


@dataclass
class SimulationSnapshot:
    """State of a simulation after a step."""

    step_index: int
    step_name: str
    variables: dict[str, Any]
    messages: list[SimulationMessage]
    retry_count: int = 0
    timestamp: datetime.datetime = field(default_factory=datetime.datetime.now)


class FlowHistory:
    """Bounded linear history with a cursor.

    Saving while the cursor is behind the newest entry discards the redo tail.
    Once full, the oldest snapshot is dropped.
    """

    def __init__(self, max_size: int = MAX_HISTORY_SIZE):
        if max_size < 1:
            raise ValueError(f"max_size must be positive, got {max_size}")
        self.max_size = max_size
        self.history: deque[SimulationSnapshot] = deque(maxlen=max_size)
        self.history_index = -1

    @property
    def can_undo(self) -> bool:
        return self.history_index > 0

    @property
    def can_redo(self) -> bool:
        return self.history_index < len(self.history) - 1

    @property
    def current_snapshot(self) -> SimulationSnapshot | None:
        if 0 <= self.history_index < len(self.history):
            return self.history[self.history_index]
        return None

    def save_snapshot(
        self,
        step_index: int,
        step_name: str,
        variables: dict[str, Any],
        messages: list[SimulationMessage],
        retry_count: int = 0,
    ) -> SimulationSnapshot:
        """Record a copy of the current state and make it current."""
        snapshot = SimulationSnapshot(
            step_index=step_index,
            step_name=step_name,
            variables=copy.deepcopy(variables),
            messages=[replace(m) for m in messages],
            retry_count=retry_count,
        )

        # Drop redo tail
        while len(self.history) > self.history_index + 1:
            self.history.pop()

        # deque(maxlen) evicts the oldest entry
        self.history.append(snapshot)
        self.history_index = len(self.history) - 1
        return snapshot

    def undo(self) -> SimulationSnapshot | None:
        """Step back one snapshot."""
        if not self.can_undo:
            return None
        self.history_index -= 1
        return self.current_snapshot

    def redo(self) -> SimulationSnapshot | None:
        """Step forward one snapshot."""
        if not self.can_redo:
            return None
        self.history_index += 1
        return self.current_snapshot

    def go_to_snapshot(self, index: int) -> SimulationSnapshot | None:
        """Jump to a specific point in history."""
        if index < 0 or index >= len(self.history):
            return None
        self.history_index = index
        return self.current_snapshot

    def clear_history(self) -> None:
        self.history.clear()
        self.history_index = -1

    def get_history_entries(self) -> list[dict[str, Any]]:
        """Summaries of every snapshot for timeline display."""
        return [
            {
                "index": index,
                "step_name": snapshot.step_name,
                "timestamp": snapshot.timestamp,
                "is_current": index == self.history_index,
            }
            for index, snapshot in enumerate(self.history)
        ]
