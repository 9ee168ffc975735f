"""Database initialization and connection management."""
import sqlite3
from pathlib import Path

from loguru import logger

DEFAULT_DB_PATH = str(Path.home() / ".math_drill" / "drill.db")

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS problem_stats (
    user_id INTEGER NOT NULL REFERENCES users(id),
    operation TEXT NOT NULL,
    operand1 INTEGER NOT NULL,
    operand2 INTEGER NOT NULL,
    ease_factor REAL NOT NULL DEFAULT 2.5,
    interval_days REAL NOT NULL DEFAULT 0,
    next_review_ts REAL,
    repetitions INTEGER NOT NULL DEFAULT 0,
    total_attempts INTEGER NOT NULL DEFAULT 0,
    total_correct INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (user_id, operation, operand1, operand2)
);

CREATE INDEX IF NOT EXISTS idx_problem_stats_due
    ON problem_stats (user_id, next_review_ts);

CREATE TABLE IF NOT EXISTS operation_progress (
    user_id INTEGER NOT NULL REFERENCES users(id),
    operation TEXT NOT NULL,
    ceiling INTEGER NOT NULL,
    unlocked INTEGER NOT NULL DEFAULT 0,
    manually_unlocked INTEGER NOT NULL DEFAULT 0,
    attempts_at_ceiling INTEGER NOT NULL DEFAULT 0,
    correct_at_ceiling INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (user_id, operation)
);

CREATE TABLE IF NOT EXISTS daily_stats (
    user_id INTEGER NOT NULL REFERENCES users(id),
    day TEXT NOT NULL,
    problems_solved INTEGER NOT NULL DEFAULT 0,
    problems_correct INTEGER NOT NULL DEFAULT 0,
    stars_earned INTEGER NOT NULL DEFAULT 0,
    best_streak INTEGER NOT NULL DEFAULT 0,
    current_streak INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (user_id, day)
);

CREATE TABLE IF NOT EXISTS attempts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL REFERENCES users(id),
    ts REAL NOT NULL,
    operation TEXT NOT NULL,
    operand1 INTEGER NOT NULL,
    operand2 INTEGER NOT NULL,
    correct INTEGER NOT NULL
);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory and foreign keys enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()
    logger.debug("Database schema ready at {}", db_path)
