"""Quiz engine: pick the next problem, grade answers, evolve progress."""
import random
from datetime import datetime, timezone
from typing import Callable, Optional

from loguru import logger

from math_drill.difficulty import DifficultyManager
from math_drill.errors import NoActiveProblemError
from math_drill.models import AnswerResult, Operation, Problem, ProblemStats
from math_drill.pool import random_problem
from math_drill.sm2 import update_stats
from math_drill.stats import MAX_STARS_PER_DAY, DailyStats, SessionStats, calculate_new_stars
from math_drill.storage import Repository

DUE_REVIEW_LIMIT = 10

Clock = Callable[[], datetime]


def system_clock() -> datetime:
    return datetime.now(timezone.utc)


class QuizService:
    """Drill session for one learner.

    Not thread-safe: callers must serialise requests for the same learner.
    """

    def __init__(
        self,
        repository: Repository,
        user_id: int,
        clock: Clock,
        rng: Optional[random.Random] = None,
    ):
        self.repository = repository
        self.user_id = user_id
        self.clock = clock
        self.rng = rng if rng is not None else random.Random()

        self.difficulty: DifficultyManager = repository.get_difficulty(user_id)
        self.daily_stats: DailyStats = self._load_daily_stats(clock().date())
        self.session_stats = SessionStats.from_daily(self.daily_stats)
        self.current_problem: Optional[Problem] = None

    def _load_daily_stats(self, day) -> DailyStats:
        stats = self.repository.get_daily_stats(self.user_id, day)
        return stats if stats is not None else DailyStats(day=day)

    def unlocked_operations(self) -> list[Operation]:
        return self.difficulty.unlocked_operations()

    def unlock_operation(self, operation: Operation) -> bool:
        """Manually unlock an operation. Returns True if anything changed."""
        changed = self.difficulty.unlock_operation(operation)
        if changed:
            logger.info("User {} manually unlocked {}", self.user_id, operation.name)
            self.repository.save_difficulty(self.user_id, self.difficulty)
        return changed

    def total_stars(self) -> int:
        return self.repository.get_total_stars(self.user_id)

    def next_problem(self, operation: Optional[Operation] = None) -> Problem:
        """Return the next problem to present.

        Problems due for review always win over new ones, whatever operation
        was asked for. Otherwise a fresh problem is drawn from ``operation``
        (or a random unlocked one) at its current ceiling.
        """
        unlocked = set(self.unlocked_operations())
        due = [
            s for s in self.repository.get_due_problems(self.user_id, self.clock(), DUE_REVIEW_LIMIT)
            if s.operation in unlocked
        ]
        if due:
            self.current_problem = due[0].to_problem()
            logger.debug("User {} reviewing due problem {}", self.user_id, self.current_problem)
            return self.current_problem

        if operation is None:
            choices = self.unlocked_operations()
            operation = self.rng.choice(choices) if choices else Operation.ADDITION

        ceiling = self.difficulty.ceiling(operation)
        self.current_problem = random_problem(operation, ceiling, self.rng)
        logger.debug("User {} got new problem {} (ceiling {})", self.user_id, self.current_problem, ceiling)
        return self.current_problem

    def submit_answer(self, response: int) -> AnswerResult:
        if self.current_problem is None:
            raise NoActiveProblemError("No current problem - call next_problem first")

        problem = self.current_problem
        now = self.clock()
        correct = problem.check(response)

        self.session_stats.record_answer(correct)

        # Spaced repetition
        existing = self.repository.get_problem_stats(
            self.user_id, problem.operation, problem.operand1, problem.operand2,
        )
        if existing is None:
            existing = ProblemStats.for_problem(problem)
        self.repository.save_problem_stats(self.user_id, update_stats(existing, correct, now))

        # Difficulty; diff the unlocked set before saving
        before = set(self.unlocked_operations())
        range_expanded = self.difficulty.record_attempt(problem.operation, correct)
        newly_unlocked = [op for op in self.unlocked_operations() if op not in before]
        self.repository.save_difficulty(self.user_id, self.difficulty)

        # Daily stats
        if self.daily_stats.day != now.date():
            logger.debug("User {} rolled over to {}", self.user_id, now.date())
            self.daily_stats = self._load_daily_stats(now.date())
        previous_correct = self.daily_stats.problems_correct
        self.daily_stats.record_answer(correct)
        new_stars = min(
            calculate_new_stars(previous_correct, self.daily_stats.problems_correct),
            MAX_STARS_PER_DAY,
        )
        self.repository.save_daily_stats(self.user_id, self.daily_stats)

        self.repository.record_attempt(
            self.user_id, problem.operation, problem.operand1, problem.operand2, correct, now,
        )

        self.current_problem = None

        return AnswerResult(
            correct=correct,
            correct_answer=problem.answer(),
            streak=self.session_stats.current_streak,
            new_stars=new_stars,
            range_expanded=range_expanded,
            new_operation_unlocked=newly_unlocked[0] if newly_unlocked else None,
        )
