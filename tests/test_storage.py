"""Tests for the SQLite repository."""
import sqlite3
from datetime import date, timedelta

import pytest

from math_drill.difficulty import DifficultyManager
from math_drill.errors import UnknownUserError
from math_drill.models import Operation, ProblemStats
from math_drill.sm2 import update_stats
from math_drill.stats import DailyStats
from math_drill.storage import SqliteRepository
from conftest import START


# --- Players ---


def test_create_and_get_user(repo):
    user = repo.create_user("Mia", START)
    assert user.id > 0
    loaded = repo.get_user(user.id)
    assert loaded == user


def test_get_users_ordered_by_name(repo):
    repo.create_user("Zoe", START)
    repo.create_user("Adam", START)
    assert [u.name for u in repo.get_users()] == ["Adam", "Zoe"]


def test_get_unknown_user_raises(repo):
    with pytest.raises(UnknownUserError):
        repo.get_user(999)


# --- Problem stats ---


def test_problem_stats_missing_returns_none(repo, user_id):
    assert repo.get_problem_stats(user_id, Operation.ADDITION, 1, 2) is None


def test_save_and_load_problem_stats(repo, user_id):
    stats = update_stats(ProblemStats.new(Operation.DIVISION, 12, 3), True, START)
    repo.save_problem_stats(user_id, stats)
    loaded = repo.get_problem_stats(user_id, Operation.DIVISION, 12, 3)
    assert loaded == stats
    assert loaded.next_review == START + timedelta(hours=1)


def test_save_problem_stats_upserts(repo, user_id):
    stats = update_stats(ProblemStats.new(Operation.ADDITION, 1, 2), True, START)
    repo.save_problem_stats(user_id, stats)
    stats = update_stats(stats, False, START)
    repo.save_problem_stats(user_id, stats)
    all_stats = repo.get_all_problem_stats(user_id)
    assert len(all_stats) == 1
    assert all_stats[0].total_attempts == 2
    assert all_stats[0].repetitions == 0


def test_never_reviewed_stats_round_trip(repo, user_id):
    repo.save_problem_stats(user_id, ProblemStats.new(Operation.ADDITION, 1, 1))
    assert repo.get_problem_stats(user_id, Operation.ADDITION, 1, 1).next_review is None


def test_get_due_problems_ordering_and_filtering(repo, user_id):
    base = ProblemStats.new(Operation.ADDITION, 1, 1)
    repo.save_problem_stats(user_id, base.evolve(operand2=2, next_review=START - timedelta(hours=1)))
    repo.save_problem_stats(user_id, base.evolve(operand2=3, next_review=START - timedelta(hours=5)))
    repo.save_problem_stats(user_id, base.evolve(operand2=4, next_review=START + timedelta(hours=1)))
    repo.save_problem_stats(user_id, base.evolve(operand2=5))
    repo.save_problem_stats(user_id, base.evolve(operand2=6, next_review=START))

    due = repo.get_due_problems(user_id, START, 10)
    assert [s.operand2 for s in due] == [5, 3, 2, 6]


def test_get_due_problems_limit(repo, user_id):
    for b in range(1, 6):
        repo.save_problem_stats(
            user_id, ProblemStats.new(Operation.ADDITION, 1, b).evolve(next_review=START - timedelta(minutes=b)),
        )
    due = repo.get_due_problems(user_id, START, 2)
    assert [s.operand2 for s in due] == [5, 4]


def test_get_due_problems_scoped_to_user(repo, user_id):
    other = repo.create_user("Other", START).id
    repo.save_problem_stats(other, ProblemStats.new(Operation.ADDITION, 1, 1))
    assert repo.get_due_problems(user_id, START, 10) == []


# --- Difficulty ---


def test_get_difficulty_defaults_for_new_user(repo, user_id):
    dm = repo.get_difficulty(user_id)
    assert dm.unlocked_operations() == [Operation.ADDITION]
    assert len(dm.all_progress()) == 4


def test_save_and_load_difficulty(repo, user_id):
    dm = DifficultyManager()
    for _ in range(10):
        dm.record_attempt(Operation.ADDITION, True)
    dm.record_attempt(Operation.ADDITION, False)
    dm.unlock_operation(Operation.MULTIPLICATION)
    repo.save_difficulty(user_id, dm)

    loaded = repo.get_difficulty(user_id)
    add = loaded.progress(Operation.ADDITION)
    assert add.ceiling == 10
    assert add.attempts_at_ceiling == 1
    assert add.correct_at_ceiling == 0
    mul = loaded.progress(Operation.MULTIPLICATION)
    assert mul.unlocked and mul.manually_unlocked
    assert loaded.unlocked_operations() == [Operation.ADDITION, Operation.MULTIPLICATION]


def test_get_difficulty_synthesizes_missing_rows(repo, user_id, tmp_db):
    repo.save_difficulty(user_id, DifficultyManager())
    conn = sqlite3.connect(tmp_db)
    conn.execute("DELETE FROM operation_progress WHERE operation IN ('ADDITION', 'DIVISION')")
    conn.commit()
    conn.close()
    dm = repo.get_difficulty(user_id)
    assert dm.is_unlocked(Operation.ADDITION)
    assert not dm.is_unlocked(Operation.DIVISION)
    assert dm.ceiling(Operation.DIVISION) == 5


# --- Daily stats ---


def test_daily_stats_missing_returns_none(repo, user_id):
    assert repo.get_daily_stats(user_id, date(2024, 6, 15)) is None


def test_save_and_load_daily_stats(repo, user_id):
    stats = DailyStats(date(2024, 6, 15), 30, 25, 2, 9, 4)
    repo.save_daily_stats(user_id, stats)
    assert repo.get_daily_stats(user_id, date(2024, 6, 15)) == stats
    stats.record_answer(True)
    repo.save_daily_stats(user_id, stats)
    assert repo.get_daily_stats(user_id, date(2024, 6, 15)).problems_solved == 31


def test_total_stars_sums_days(repo, user_id):
    assert repo.get_total_stars(user_id) == 0
    repo.save_daily_stats(user_id, DailyStats(date(2024, 6, 14), 30, 30, 3, 5, 5))
    repo.save_daily_stats(user_id, DailyStats(date(2024, 6, 13), 20, 20, 2, 3, 3))
    assert repo.get_total_stars(user_id) == 5


# --- History ---


def test_record_attempt_appends(repo, user_id, tmp_db):
    repo.record_attempt(user_id, Operation.ADDITION, 2, 3, True, START)
    repo.record_attempt(user_id, Operation.ADDITION, 2, 3, False, START)
    conn = sqlite3.connect(tmp_db)
    rows = conn.execute("SELECT operation, correct FROM attempts WHERE user_id = ?", (user_id,)).fetchall()
    conn.close()
    assert rows == [("ADDITION", 1), ("ADDITION", 0)]


def test_storage_errors_propagate(tmp_db):
    repo = SqliteRepository(tmp_db)  # schema never initialised
    with pytest.raises(sqlite3.OperationalError):
        repo.get_total_stars(1)
