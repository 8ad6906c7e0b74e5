"""Operation tokens used to discard results of superseded screener runs."""

from __future__ import annotations

from dataclasses import dataclass, field


class OperationCounter:
    """Generation counter; exactly one token value is current at a time."""

    def __init__(self) -> None:
        self._current = 0

    @property
    def current(self) -> int:
        return self._current

    def advance(self) -> "OperationToken":
        """Invalidate every outstanding token and issue the next one."""
        self._current += 1
        return OperationToken(value=self._current, counter=self)


@dataclass(frozen=True)
class OperationToken:
    """Identifies one run; stale once its counter has advanced past it."""

    value: int
    counter: OperationCounter = field(repr=False, compare=False)

    def is_current(self) -> bool:
        return self.counter.current == self.value
