"""Daily and per-run counters: streaks, accuracy and stars."""
from dataclasses import dataclass
from datetime import date

PROBLEMS_PER_STAR = 10
MAX_STARS_PER_DAY = 10


def stars_for(correct: int) -> int:
    return min(correct // PROBLEMS_PER_STAR, MAX_STARS_PER_DAY)


def calculate_new_stars(previous_correct: int, new_correct: int) -> int:
    """Stars earned moving from previous_correct to new_correct answers in a day."""
    return stars_for(new_correct) - stars_for(previous_correct)


@dataclass
class DailyStats:
    day: date
    problems_solved: int = 0
    problems_correct: int = 0
    stars_earned: int = 0
    best_streak: int = 0
    current_streak: int = 0

    def accuracy(self) -> float:
        if self.problems_solved == 0:
            return 0.0
        return self.problems_correct * 100.0 / self.problems_solved

    def calculate_stars(self) -> int:
        return stars_for(self.problems_correct)

    def record_answer(self, correct: bool) -> None:
        self.problems_solved += 1
        if correct:
            self.problems_correct += 1
            self.current_streak += 1
            self.best_streak = max(self.best_streak, self.current_streak)
        else:
            self.current_streak = 0
        self.stars_earned = self.calculate_stars()


@dataclass
class SessionStats:
    """Counters for one quiz run; not persisted."""

    current_streak: int = 0
    best_streak: int = 0
    problems_solved: int = 0
    problems_correct: int = 0

    @classmethod
    def from_daily(cls, daily: DailyStats) -> "SessionStats":
        # Carry today's streak over a restart.
        return cls(current_streak=daily.current_streak, best_streak=daily.best_streak)

    def accuracy(self) -> float:
        if self.problems_solved == 0:
            return 0.0
        return self.problems_correct * 100.0 / self.problems_solved

    def record_answer(self, correct: bool) -> None:
        self.problems_solved += 1
        if correct:
            self.problems_correct += 1
            self.current_streak += 1
            self.best_streak = max(self.best_streak, self.current_streak)
        else:
            self.current_streak = 0
