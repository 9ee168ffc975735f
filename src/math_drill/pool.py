"""Enumerate every valid problem for an operation and ceiling."""
import random

from loguru import logger

from math_drill.errors import EmptyPoolError
from math_drill.models import Operation, Problem

# Smallest ceiling that yields a non-empty pool.
MIN_CEILING = {
    Operation.ADDITION: 2,
    Operation.SUBTRACTION: 2,
    Operation.MULTIPLICATION: 1,
    Operation.DIVISION: 1,
}


def addition_pool(max_sum: int) -> tuple[Problem, ...]:
    """All a + b with a, b >= 1 and a + b <= max_sum."""
    return tuple(
        Problem(a, b, Operation.ADDITION)
        for a in range(1, max_sum)
        for b in range(1, max_sum - a + 1)
    )


def subtraction_pool(max_minuend: int) -> tuple[Problem, ...]:
    """All a - b with 2 <= a <= max_minuend and 1 <= b < a."""
    return tuple(
        Problem(a, b, Operation.SUBTRACTION)
        for a in range(2, max_minuend + 1)
        for b in range(1, a)
    )


def multiplication_pool(max_factor: int) -> tuple[Problem, ...]:
    return tuple(
        Problem(a, b, Operation.MULTIPLICATION)
        for a in range(1, max_factor + 1)
        for b in range(1, max_factor + 1)
    )


def division_pool(max_factor: int) -> tuple[Problem, ...]:
    """Divisor and quotient both in [1, max_factor], so every division is exact."""
    return tuple(
        Problem(divisor * quotient, divisor, Operation.DIVISION)
        for divisor in range(1, max_factor + 1)
        for quotient in range(1, max_factor + 1)
    )


_GENERATORS = {
    Operation.ADDITION: addition_pool,
    Operation.SUBTRACTION: subtraction_pool,
    Operation.MULTIPLICATION: multiplication_pool,
    Operation.DIVISION: division_pool,
}


def generate(operation: Operation, ceiling: int) -> tuple[Problem, ...]:
    return _GENERATORS[operation](ceiling)


def pick_uniform(pool, rng: random.Random) -> Problem:
    """Pick one problem, uniform over the enumerated pool."""
    if not pool:
        logger.error("Cannot pick from an empty problem pool")
        raise EmptyPoolError("Cannot pick from empty pool")
    return pool[rng.randrange(len(pool))]


def random_problem(operation: Operation, ceiling: int, rng: random.Random) -> Problem:
    pool = generate(operation, ceiling)
    if not pool:
        logger.error(
            "Empty {} pool at ceiling {} (minimum is {})",
            operation.name, ceiling, MIN_CEILING[operation],
        )
        raise EmptyPoolError(f"No {operation.name.lower()} problems with ceiling {ceiling}")
    return pick_uniform(pool, rng)
