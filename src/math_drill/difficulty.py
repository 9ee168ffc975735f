"""Per-operation number ranges and the unlock cascade."""
from dataclasses import dataclass
from typing import Iterable, Optional

from loguru import logger

from math_drill.models import Operation

STARTING_CEILING = 5
EXPANSION_STEP = 5
MIN_ATTEMPTS_TO_EXPAND = 10
ACCURACY_TO_EXPAND = 90.0
CEILING_TO_UNLOCK_NEXT = 25

MAX_CEILING = {
    Operation.ADDITION: 50,
    Operation.SUBTRACTION: 50,
    Operation.MULTIPLICATION: 10,
    Operation.DIVISION: 10,
}


@dataclass
class OperationProgress:
    """Range and accuracy tracking for a single operation.

    The attempt counters only cover the current ceiling and are reset
    whenever the ceiling changes.
    """

    operation: Operation
    ceiling: int = STARTING_CEILING
    unlocked: bool = False
    manually_unlocked: bool = False
    attempts_at_ceiling: int = 0
    correct_at_ceiling: int = 0

    @classmethod
    def default(cls, operation: Operation) -> "OperationProgress":
        return cls(operation=operation, unlocked=operation is Operation.ADDITION)

    @property
    def max_ceiling(self) -> int:
        return MAX_CEILING[self.operation]

    def accuracy_at_ceiling(self) -> float:
        if self.attempts_at_ceiling == 0:
            return 0.0
        return self.correct_at_ceiling * 100.0 / self.attempts_at_ceiling

    def record_attempt(self, correct: bool) -> None:
        self.attempts_at_ceiling += 1
        if correct:
            self.correct_at_ceiling += 1

    def should_expand(self) -> bool:
        if self.ceiling >= self.max_ceiling:
            return False
        if self.attempts_at_ceiling < MIN_ATTEMPTS_TO_EXPAND:
            return False
        return self.accuracy_at_ceiling() >= ACCURACY_TO_EXPAND

    def expand(self, step: int = EXPANSION_STEP) -> None:
        self.ceiling = min(self.max_ceiling, self.ceiling + step)
        self.attempts_at_ceiling = 0
        self.correct_at_ceiling = 0

    def unlock(self) -> None:
        self.unlocked = True

    def manual_unlock(self) -> None:
        self.unlocked = True
        self.manually_unlocked = True


class DifficultyManager:
    """Owns one OperationProgress per operation, never a partial mapping."""

    def __init__(self, progress: Optional[dict] = None):
        progress = progress or {}
        self._progress = {
            op: progress.get(op) or OperationProgress.default(op)
            for op in Operation.unlock_order()
        }

    @classmethod
    def from_progress(cls, rows: Iterable[OperationProgress]) -> "DifficultyManager":
        """Build from stored rows, filling in defaults for missing operations."""
        return cls({p.operation: p for p in rows})

    def progress(self, operation: Operation) -> OperationProgress:
        return self._progress[operation]

    def all_progress(self) -> list[OperationProgress]:
        return [self._progress[op] for op in Operation.unlock_order()]

    def unlocked_operations(self) -> list[Operation]:
        return [op for op in Operation.unlock_order() if self._progress[op].unlocked]

    def is_unlocked(self, operation: Operation) -> bool:
        return self._progress[operation].unlocked

    def ceiling(self, operation: Operation) -> int:
        return self._progress[operation].ceiling

    def get_range(self, operation: Operation) -> tuple[int, int]:
        return 1, self._progress[operation].ceiling

    def record_attempt(self, operation: Operation, correct: bool) -> bool:
        """Record an attempt; True if the range expanded or an operation unlocked."""
        progress = self._progress[operation]
        progress.record_attempt(correct)
        if not progress.should_expand():
            return False

        progress.expand()
        logger.info("{} range expanded to {}", operation.name, progress.ceiling)
        if progress.ceiling >= CEILING_TO_UNLOCK_NEXT:
            next_op = operation.next_operation()
            if next_op is not None and not self._progress[next_op].unlocked:
                self._progress[next_op].unlock()
                logger.info("{} unlocked by {} progress", next_op.name, operation.name)
        return True

    def unlock_operation(self, operation: Operation) -> bool:
        """Manually unlock; False if the operation was already unlocked."""
        progress = self._progress[operation]
        if progress.unlocked:
            return False
        progress.manual_unlock()
        return True
