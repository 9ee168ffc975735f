"""Data classes for the drill domain model."""
import enum
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional


class Operation(enum.Enum):
    """Arithmetic operations, declared in the order they unlock."""

    ADDITION = "+"
    SUBTRACTION = "-"
    MULTIPLICATION = "×"
    DIVISION = "÷"

    @property
    def symbol(self) -> str:
        return self.value

    @classmethod
    def unlock_order(cls) -> tuple["Operation", ...]:
        return tuple(cls)

    def next_operation(self) -> Optional["Operation"]:
        order = Operation.unlock_order()
        idx = order.index(self)
        return order[idx + 1] if idx + 1 < len(order) else None

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Problem:
    operand1: int
    operand2: int
    operation: Operation

    def answer(self) -> int:
        if self.operation is Operation.ADDITION:
            return self.operand1 + self.operand2
        elif self.operation is Operation.SUBTRACTION:
            return self.operand1 - self.operand2
        elif self.operation is Operation.MULTIPLICATION:
            return self.operand1 * self.operand2
        # Division problems are always built with exact divisors.
        return self.operand1 // self.operand2

    def check(self, response: int) -> bool:
        return response == self.answer()

    def __str__(self) -> str:
        return f"{self.operand1} {self.operation.symbol} {self.operand2}"


DEFAULT_EASE = 2.5


@dataclass(frozen=True)
class ProblemStats:
    """Spaced repetition state for one (operation, operand1, operand2) triple.

    ``next_review`` of ``None`` means the problem was never attempted and is
    due immediately. Updates never mutate; see ``math_drill.sm2``.
    """

    operation: Operation
    operand1: int
    operand2: int
    ease_factor: float = DEFAULT_EASE
    interval_days: float = 0.0
    next_review: Optional[datetime] = None
    repetitions: int = 0
    total_attempts: int = 0
    total_correct: int = 0

    @classmethod
    def new(cls, operation: Operation, operand1: int, operand2: int) -> "ProblemStats":
        return cls(operation=operation, operand1=operand1, operand2=operand2)

    @classmethod
    def for_problem(cls, problem: Problem) -> "ProblemStats":
        return cls.new(problem.operation, problem.operand1, problem.operand2)

    def to_problem(self) -> Problem:
        return Problem(self.operand1, self.operand2, self.operation)

    def accuracy(self) -> float:
        if self.total_attempts == 0:
            return 0.0
        return self.total_correct * 100.0 / self.total_attempts

    def is_due(self, now: datetime) -> bool:
        if self.next_review is None:
            return True
        return now >= self.next_review

    def priority(self, now: datetime) -> float:
        """Lower values are served first.

        Never-reviewed problems get 1.0. Otherwise the value is minus the
        hours elapsed since the review time, so the most overdue problem sorts
        first and problems not yet due get a positive value.
        """
        if self.next_review is None:
            return 1.0
        hours_overdue = (now - self.next_review).total_seconds() / 3600.0
        return -hours_overdue

    def evolve(self, **changes) -> "ProblemStats":
        return replace(self, **changes)


@dataclass(frozen=True)
class User:
    id: int
    name: str
    created_at: datetime


@dataclass(frozen=True)
class AnswerResult:
    correct: bool
    correct_answer: int
    streak: int
    new_stars: int
    range_expanded: bool
    new_operation_unlocked: Optional[Operation] = None
