"""Stat resolver — turns stat-store records into combat numbers. No encounter state."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from digital_adventure.engine.errors import NotFound
from digital_adventure.mechanics.evolution import wound_bonus
from digital_adventure.mechanics.wounds import tamer_wound_boxes
from digital_adventure.models.entity import Attack, Digimon, EvolutionLine, Tamer

COMBAT_MONSTER = "combat-monster"
DATA_OPTIMIZATION = "data-optimization"
GUARDIAN_ARMOR_BONUS = 2


@dataclass
class CombatStats:
    entity_id: str
    name: str
    kind: str
    accuracy: int = 0
    damage: int = 0
    dodge: int = 0
    armor: int = 0
    health: int = 0
    agility: int = 0
    max_wounds: int = 0
    partner_id: str | None = None
    is_enemy: bool = False
    stage: str | None = None
    has_combat_monster: bool = False
    attacks: list[Attack] = field(default_factory=list)


def basic_strike(attack_id: str) -> Attack:
    """A tamer's untagged fallback attack."""
    return Attack(id=attack_id, name="Basic Strike", tags=[])


class StatResolver:
    """Read-only view over the digimon, tamer and evolution line repos."""

    def __init__(self, repos: dict[str, Any]) -> None:
        self.repos = repos

    def get_digimon(self, entity_id: str) -> Digimon:
        row = self.repos["digimon"].get(entity_id)
        if row is None:
            raise NotFound(f"Digimon {entity_id} not found")
        return Digimon.model_validate(row)

    def get_tamer(self, entity_id: str) -> Tamer:
        row = self.repos["tamer"].get(entity_id)
        if row is None:
            raise NotFound(f"Tamer {entity_id} not found")
        return Tamer.model_validate(row)

    def get_evolution_line(self, line_id: str) -> EvolutionLine:
        row = self.repos["evolution_line"].get(line_id)
        if row is None:
            raise NotFound(f"Evolution line {line_id} not found")
        return EvolutionLine.model_validate(row)

    def find_evolution_line_for(self, digimon_id: str) -> EvolutionLine | None:
        """The line whose chain contains this digimon, if any."""
        for row in self.repos["evolution_line"].list_all():
            line = EvolutionLine.model_validate(row)
            if any(stage.digimon_id == digimon_id for stage in line.chain):
                return line
        return None

    def resolve(self, participant_type: str, entity_id: str) -> CombatStats:
        if participant_type == "tamer":
            return self.tamer_stats(self.get_tamer(entity_id))
        return self.digimon_stats(self.get_digimon(entity_id))

    def digimon_stats(self, digimon: Digimon) -> CombatStats:
        base, bonus = digimon.base_stats, digimon.bonus_stats
        armor = base.armor + bonus.armor
        data_opt = digimon.quality(DATA_OPTIMIZATION)
        if data_opt is not None and data_opt.choice_id == "guardian":
            armor += GUARDIAN_ARMOR_BONUS
        health = base.health + bonus.health
        return CombatStats(
            entity_id=digimon.id,
            name=digimon.name,
            kind="digimon",
            accuracy=base.accuracy + bonus.accuracy,
            damage=base.damage + bonus.damage,
            dodge=base.dodge + bonus.dodge,
            armor=armor,
            health=health,
            agility=(base.accuracy + base.dodge) // 2,
            max_wounds=health + wound_bonus(digimon.stage),
            partner_id=digimon.partner_id,
            is_enemy=digimon.is_enemy,
            stage=digimon.stage,
            has_combat_monster=digimon.has_quality(COMBAT_MONSTER),
            attacks=list(digimon.attacks),
        )

    def tamer_stats(self, tamer: Tamer) -> CombatStats:
        attrs = tamer.attributes
        fight = tamer.skill("fight")
        endurance = tamer.skill("endurance")
        wounds = tamer_wound_boxes(attrs.body, endurance)
        return CombatStats(
            entity_id=tamer.id,
            name=tamer.name,
            kind="tamer",
            accuracy=attrs.agility + fight,
            damage=attrs.body + fight,
            dodge=attrs.agility + tamer.skill("dodge"),
            armor=attrs.body + endurance,
            health=wounds,
            agility=attrs.agility,
            max_wounds=wounds,
        )

    def attack_for(self, stats: CombatStats, attack_id: str) -> Attack:
        """Look up an attack; tamers fall back to a basic strike."""
        for attack in stats.attacks:
            if attack.id == attack_id:
                return attack
        if stats.kind == "tamer":
            return basic_strike(attack_id)
        raise NotFound(f"Attack {attack_id} not found on {stats.name}")
