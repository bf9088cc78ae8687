"""Battle log entry builders. Entries are appended in the same command that caused them."""
from __future__ import annotations

from typing import Any

from digital_adventure.mechanics.combat_math import DamageBreakdown
from digital_adventure.models.encounter import BattleLogEntry, Encounter


def append_log(
    encounter: Encounter,
    *,
    actor_id: str | None,
    actor_name: str,
    action: str,
    result: str = "",
    target: str | None = None,
    damage: int | None = None,
    effects: list[str] | None = None,
    breakdown: DamageBreakdown | None = None,
) -> BattleLogEntry:
    fields: dict[str, Any] = {}
    if breakdown is not None:
        fields = {
            "base_damage": breakdown.base_damage,
            "net_successes": breakdown.net_successes,
            "target_armor": breakdown.target_armor,
            "armor_piercing": breakdown.armor_piercing,
            "effective_armor": breakdown.effective_armor if breakdown.hit else None,
            "final_damage": breakdown.final_damage,
            "hit": breakdown.hit,
        }
    entry = BattleLogEntry(
        round=encounter.round,
        actor_id=actor_id,
        actor_name=actor_name,
        action=action,
        target=target,
        result=result,
        damage=damage,
        effects=list(effects or []),
        **fields,
    )
    encounter.battle_log.append(entry)
    return entry


def describe_dice(dice: list[int], successes: int) -> str:
    faces = ",".join(str(d) for d in dice)
    return f"{len(dice)}d6 => [{faces}] = {successes} successes"
