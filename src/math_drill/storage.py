"""Persistence for players, problem stats, difficulty and daily stats."""
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Optional, Protocol

from loguru import logger

from math_drill.db import get_connection
from math_drill.difficulty import DifficultyManager, OperationProgress
from math_drill.errors import UnknownUserError
from math_drill.models import Operation, ProblemStats, User
from math_drill.stats import DailyStats


class Repository(Protocol):
    """What the quiz engine needs from storage. Failures propagate to the caller."""

    def get_problem_stats(
        self, user_id: int, operation: Operation, operand1: int, operand2: int,
    ) -> Optional[ProblemStats]: ...

    def get_due_problems(self, user_id: int, now: datetime, limit: int) -> list[ProblemStats]: ...

    def save_problem_stats(self, user_id: int, stats: ProblemStats) -> None: ...

    def get_difficulty(self, user_id: int) -> DifficultyManager: ...

    def save_difficulty(self, user_id: int, difficulty: DifficultyManager) -> None: ...

    def get_daily_stats(self, user_id: int, day: date) -> Optional[DailyStats]: ...

    def save_daily_stats(self, user_id: int, stats: DailyStats) -> None: ...

    def get_total_stars(self, user_id: int) -> int: ...

    def record_attempt(
        self, user_id: int, operation: Operation, operand1: int, operand2: int,
        correct: bool, timestamp: datetime,
    ) -> None: ...


def _to_ts(moment: Optional[datetime]) -> Optional[float]:
    return moment.timestamp() if moment is not None else None


def _from_ts(ts: Optional[float]) -> Optional[datetime]:
    return datetime.fromtimestamp(ts, tz=timezone.utc) if ts is not None else None


def _row_to_stats(row) -> ProblemStats:
    return ProblemStats(
        operation=Operation[row["operation"]],
        operand1=row["operand1"],
        operand2=row["operand2"],
        ease_factor=row["ease_factor"],
        interval_days=row["interval_days"],
        next_review=_from_ts(row["next_review_ts"]),
        repetitions=row["repetitions"],
        total_attempts=row["total_attempts"],
        total_correct=row["total_correct"],
    )


def _row_to_user(row) -> User:
    return User(id=row["id"], name=row["name"], created_at=datetime.fromisoformat(row["created_at"]))


STATS_COLUMNS = """operation, operand1, operand2, ease_factor, interval_days,
    next_review_ts, repetitions, total_attempts, total_correct"""


class SqliteRepository:
    """Repository backed by a SQLite file; one short-lived connection per call."""

    def __init__(self, db_path: str):
        self.db_path = db_path

    @contextmanager
    def _connect(self):
        conn = get_connection(self.db_path)
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    # --- Players ---

    def create_user(self, name: str, created_at: datetime) -> User:
        with self._connect() as conn:
            cursor = conn.execute(
                "INSERT INTO users (name, created_at) VALUES (?, ?)",
                (name, created_at.isoformat()),
            )
            user = User(id=cursor.lastrowid, name=name, created_at=created_at)
        logger.info("Created player {!r} with id {}", name, user.id)
        return user

    def get_user(self, user_id: int) -> User:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT id, name, created_at FROM users WHERE id = ?", (user_id,)
            ).fetchone()
        if row is None:
            raise UnknownUserError(f"No player with id {user_id}")
        return _row_to_user(row)

    def get_users(self) -> list[User]:
        with self._connect() as conn:
            rows = conn.execute("SELECT id, name, created_at FROM users ORDER BY name").fetchall()
        return [_row_to_user(r) for r in rows]

    # --- Problem stats ---

    def get_problem_stats(
        self, user_id: int, operation: Operation, operand1: int, operand2: int,
    ) -> Optional[ProblemStats]:
        with self._connect() as conn:
            row = conn.execute(
                f"""SELECT {STATS_COLUMNS} FROM problem_stats
                WHERE user_id = ? AND operation = ? AND operand1 = ? AND operand2 = ?""",
                (user_id, operation.name, operand1, operand2),
            ).fetchone()
        return _row_to_stats(row) if row else None

    def get_all_problem_stats(self, user_id: int) -> list[ProblemStats]:
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {STATS_COLUMNS} FROM problem_stats WHERE user_id = ?", (user_id,)
            ).fetchall()
        return [_row_to_stats(r) for r in rows]

    def get_due_problems(self, user_id: int, now: datetime, limit: int) -> list[ProblemStats]:
        """Due problems, never-reviewed first, then oldest review time first."""
        with self._connect() as conn:
            rows = conn.execute(
                f"""SELECT {STATS_COLUMNS} FROM problem_stats
                WHERE user_id = ? AND (next_review_ts IS NULL OR next_review_ts <= ?)
                ORDER BY next_review_ts ASC NULLS FIRST
                LIMIT ?""",
                (user_id, _to_ts(now), limit),
            ).fetchall()
        return [_row_to_stats(r) for r in rows]

    def save_problem_stats(self, user_id: int, stats: ProblemStats) -> None:
        with self._connect() as conn:
            conn.execute(
                f"""INSERT INTO problem_stats (user_id, {STATS_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id, operation, operand1, operand2) DO UPDATE SET
                    ease_factor = excluded.ease_factor,
                    interval_days = excluded.interval_days,
                    next_review_ts = excluded.next_review_ts,
                    repetitions = excluded.repetitions,
                    total_attempts = excluded.total_attempts,
                    total_correct = excluded.total_correct""",
                (
                    user_id, stats.operation.name, stats.operand1, stats.operand2,
                    stats.ease_factor, stats.interval_days, _to_ts(stats.next_review),
                    stats.repetitions, stats.total_attempts, stats.total_correct,
                ),
            )

    # --- Difficulty ---

    def get_difficulty(self, user_id: int) -> DifficultyManager:
        with self._connect() as conn:
            rows = conn.execute(
                """SELECT operation, ceiling, unlocked, manually_unlocked,
                    attempts_at_ceiling, correct_at_ceiling
                FROM operation_progress WHERE user_id = ?""",
                (user_id,),
            ).fetchall()
        return DifficultyManager.from_progress(
            OperationProgress(
                operation=Operation[r["operation"]],
                ceiling=r["ceiling"],
                unlocked=bool(r["unlocked"]),
                manually_unlocked=bool(r["manually_unlocked"]),
                attempts_at_ceiling=r["attempts_at_ceiling"],
                correct_at_ceiling=r["correct_at_ceiling"],
            )
            for r in rows
        )

    def save_difficulty(self, user_id: int, difficulty: DifficultyManager) -> None:
        with self._connect() as conn:
            conn.executemany(
                """INSERT INTO operation_progress (user_id, operation, ceiling, unlocked,
                    manually_unlocked, attempts_at_ceiling, correct_at_ceiling)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id, operation) DO UPDATE SET
                    ceiling = excluded.ceiling,
                    unlocked = excluded.unlocked,
                    manually_unlocked = excluded.manually_unlocked,
                    attempts_at_ceiling = excluded.attempts_at_ceiling,
                    correct_at_ceiling = excluded.correct_at_ceiling""",
                [
                    (
                        user_id, p.operation.name, p.ceiling, int(p.unlocked),
                        int(p.manually_unlocked), p.attempts_at_ceiling, p.correct_at_ceiling,
                    )
                    for p in difficulty.all_progress()
                ],
            )

    # --- Daily stats ---

    def get_daily_stats(self, user_id: int, day: date) -> Optional[DailyStats]:
        with self._connect() as conn:
            row = conn.execute(
                """SELECT day, problems_solved, problems_correct, stars_earned,
                    best_streak, current_streak
                FROM daily_stats WHERE user_id = ? AND day = ?""",
                (user_id, day.isoformat()),
            ).fetchone()
        if row is None:
            return None
        return DailyStats(
            day=date.fromisoformat(row["day"]),
            problems_solved=row["problems_solved"],
            problems_correct=row["problems_correct"],
            stars_earned=row["stars_earned"],
            best_streak=row["best_streak"],
            current_streak=row["current_streak"],
        )

    def save_daily_stats(self, user_id: int, stats: DailyStats) -> None:
        with self._connect() as conn:
            conn.execute(
                """INSERT INTO daily_stats (user_id, day, problems_solved, problems_correct,
                    stars_earned, best_streak, current_streak)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id, day) DO UPDATE SET
                    problems_solved = excluded.problems_solved,
                    problems_correct = excluded.problems_correct,
                    stars_earned = excluded.stars_earned,
                    best_streak = excluded.best_streak,
                    current_streak = excluded.current_streak""",
                (
                    user_id, stats.day.isoformat(), stats.problems_solved,
                    stats.problems_correct, stats.stars_earned,
                    stats.best_streak, stats.current_streak,
                ),
            )

    def get_total_stars(self, user_id: int) -> int:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT COALESCE(SUM(stars_earned), 0) AS total FROM daily_stats WHERE user_id = ?",
                (user_id,),
            ).fetchone()
        return row["total"]

    # --- History ---

    def record_attempt(
        self, user_id: int, operation: Operation, operand1: int, operand2: int,
        correct: bool, timestamp: datetime,
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                """INSERT INTO attempts (user_id, ts, operation, operand1, operand2, correct)
                VALUES (?, ?, ?, ?, ?, ?)""",
                (user_id, _to_ts(timestamp), operation.name, operand1, operand2, int(correct)),
            )
