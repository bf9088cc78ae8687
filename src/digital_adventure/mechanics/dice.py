"""Dice rolling engine — d6 pools, pure math, no I/O."""
from __future__ import annotations

import random
import re
from dataclasses import dataclass, field

SUCCESS_FACE = 5

# Pattern: NdM with optional +/-X, e.g. "3d6+2"
_DICE_RE = re.compile(r"^(\d+)d(\d+)([+-]\d+)?$", re.IGNORECASE)


@dataclass
class DiceResult:
    expression: str
    individual_rolls: list[int] = field(default_factory=list)
    modifier: int = 0
    total: int = 0
    successes: int = 0


def count_successes(rolls: list[int]) -> int:
    """A success is any die showing 5 or 6."""
    return sum(1 for r in rolls if r >= SUCCESS_FACE)


def roll(expression: str) -> DiceResult:
    """Roll dice from an expression like '3d6' or '3d6+2'."""
    expr = expression.replace(" ", "")
    m = _DICE_RE.match(expr)
    if not m:
        raise ValueError(f"Invalid dice expression: {expression}")

    num_dice = int(m.group(1))
    die_size = int(m.group(2))
    modifier = int(m.group(3)) if m.group(3) else 0

    rolls = [random.randint(1, die_size) for _ in range(num_dice)]
    return DiceResult(
        expression=expression,
        individual_rolls=rolls,
        modifier=modifier,
        total=sum(rolls) + modifier,
        successes=count_successes(rolls) if die_size == 6 else 0,
    )


def roll_pool(size: int) -> DiceResult:
    """Roll a pool of d6 and count successes. Pools below 0 roll nothing."""
    size = max(0, size)
    rolls = [random.randint(1, 6) for _ in range(size)]
    return DiceResult(
        expression=f"{size}d6",
        individual_rolls=rolls,
        total=sum(rolls),
        successes=count_successes(rolls),
    )


def initiative_roll(agility: int) -> DiceResult:
    """Initiative is 3d6 + agility."""
    r = roll("3d6")
    r.modifier = agility
    r.total = sum(r.individual_rolls) + agility
    return r
