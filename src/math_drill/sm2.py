"""SM-2 spaced repetition algorithm."""
from datetime import datetime, timedelta

from math_drill.models import ProblemStats

MIN_EASE = 1.3
ASSUMED_QUALITY = 4
RETRY_DELAY = timedelta(minutes=1)

# Intervals in days for the first three consecutive correct answers.
LEARNING_STEPS = (1.0 / 24, 1.0 / 6, 1.0)


def ease_adjustment(quality: int) -> float:
    """SM-2 ease delta for a 0-5 quality rating (zero at quality 4)."""
    return 0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02)


def update_stats(stats: ProblemStats, correct: bool, now: datetime) -> ProblemStats:
    """Calculate the next review state after an answer.

    Args:
        stats: Current stats for the problem
        correct: Whether the answer was correct
        now: Time of the answer

    Returns:
        New ProblemStats; the input is left untouched.
    """
    total_attempts = stats.total_attempts + 1
    total_correct = stats.total_correct + (1 if correct else 0)

    if not correct:
        # Reset and retry shortly
        return stats.evolve(
            ease_factor=max(MIN_EASE, stats.ease_factor - 0.2),
            interval_days=0.0,
            next_review=now + RETRY_DELAY,
            repetitions=0,
            total_attempts=total_attempts,
            total_correct=total_correct,
        )

    repetitions = stats.repetitions + 1
    if repetitions <= len(LEARNING_STEPS):
        interval = LEARNING_STEPS[repetitions - 1]
    else:
        interval = stats.interval_days * stats.ease_factor

    new_ef = max(MIN_EASE, stats.ease_factor + ease_adjustment(ASSUMED_QUALITY))

    return stats.evolve(
        ease_factor=new_ef,
        interval_days=interval,
        next_review=now + timedelta(days=interval),
        repetitions=repetitions,
        total_attempts=total_attempts,
        total_correct=total_correct,
    )
