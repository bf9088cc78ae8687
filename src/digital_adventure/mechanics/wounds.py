"""Wound box mechanics — pure calculations, no I/O.

Wounds count up from 0 toward a participant's max. A participant whose
wounds reach max is knocked out.
"""
from __future__ import annotations


def apply_damage(current: int, damage: int, max_wounds: int) -> int:
    """Add damage, clamped to [0, max_wounds]."""
    return max(0, min(max_wounds, current + max(0, damage)))


def heal(current: int, amount: int, max_wounds: int) -> int:
    """Remove wounds, clamped to [0, max_wounds]."""
    return max(0, min(max_wounds, current - max(0, amount)))


def is_knocked_out(current: int, max_wounds: int) -> bool:
    return max_wounds > 0 and current >= max_wounds


def accumulate_combat_monster(bonus: int, damage_taken: int, health_stat: int) -> int:
    """Combat Monster banks damage taken, capped at the bearer's health stat."""
    return max(0, min(health_stat, bonus + damage_taken))


def tamer_wound_boxes(body: int, endurance: int) -> int:
    """Tamers always have at least 2 wound boxes."""
    return max(2, body + endurance)
