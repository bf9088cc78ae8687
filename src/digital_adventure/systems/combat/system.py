"""Combat system — attack declaration, bolsters, and GM one-shot attacks."""
from __future__ import annotations

import logging
from typing import Any

from digital_adventure.engine.battle_log import append_log
from digital_adventure.engine.errors import Conflict, DomainRefusal, InvalidCommand
from digital_adventure.engine.stat_resolver import CombatStats
from digital_adventure.engine.validators import require_can_act, require_participant, require_phase, spend_actions
from digital_adventure.mechanics.combat_math import (
    BOLSTER_BIT_CPU_BONUS,
    BOLSTER_DAMAGE_BONUS,
    action_cost_for_attack,
    apply_stance_to_accuracy,
)
from digital_adventure.mechanics.dice import count_successes, roll_pool
from digital_adventure.mechanics.tags import TagKind
from digital_adventure.models.commands import DeclareAttack, NpcAttack
from digital_adventure.models.encounter import CombatParticipant, Encounter, ParticipantType, Phase
from digital_adventure.models.entity import Attack
from digital_adventure.models.requests import PendingAttack
from digital_adventure.systems.base import EncounterContext, EncounterSystem
from digital_adventure.systems.combat.defense import request_defense
from digital_adventure.systems.combat.npc_resolver import auto_resolve
from digital_adventure.systems.combat.resolution import consume_directed, log_accuracy, resolve_dodge
from digital_adventure.systems.intercede.system import eligible_protectors, open_intercede_group

logger = logging.getLogger(__name__)

MAX_DIGIMON_BOLSTERS = 2
SIGNATURE_MOVE_MIN_ROUND = 3
NPC_ATTACK_COST = 2


def check_attack_rules(encounter: Encounter, attacker: CombatParticipant, attack: Attack,
                       bolster_type: str | None) -> None:
    """Signature Move, bolster and Ammo gates. Raises before anything is spent."""
    signature = attack.has_tag(TagKind.SIGNATURE_MOVE)
    if bolster_type is not None:
        if signature:
            raise DomainRefusal("Signature Moves cannot be bolstered")
        if attacker.type == ParticipantType.DIGIMON and attacker.digimon_bolster_count >= MAX_DIGIMON_BOLSTERS:
            raise DomainRefusal(f"{attacker.name} has already bolstered {MAX_DIGIMON_BOLSTERS} times this battle")
        if bolster_type == "bit-cpu" and attacker.last_bit_cpu_bolster_round is not None:
            if encounter.round <= attacker.last_bit_cpu_bolster_round + 1:
                raise DomainRefusal("Bit/CPU bolster is on cooldown until round "
                                    f"{attacker.last_bit_cpu_bolster_round + 2}")
    if signature and encounter.round < SIGNATURE_MOVE_MIN_ROUND:
        raise DomainRefusal(f"Signature Moves cannot be used before round {SIGNATURE_MOVE_MIN_ROUND}")
    if attack.has_tag(TagKind.AMMO) and attack.id in attacker.used_attack_ids:
        raise Conflict(f"{attack.name} has already used its ammo this battle")


def build_pending(encounter: Encounter, attacker: CombatParticipant, target: CombatParticipant,
                  attack: Attack, dice: list[int], successes: int,
                  bolster_type: str | None = None) -> PendingAttack:
    return PendingAttack(
        attacker_id=attacker.id,
        attacker_name=encounter.display_name(attacker),
        target_id=target.id,
        target_name=encounter.display_name(target),
        attack_id=attack.id,
        attack_name=attack.name,
        accuracy_dice=list(dice),
        accuracy_successes=successes,
        bolster_type=bolster_type,
        bolster_damage_bonus=BOLSTER_DAMAGE_BONUS if bolster_type == "damage-accuracy" else 0,
        bolster_bit_cpu_bonus=BOLSTER_BIT_CPU_BONUS if bolster_type == "bit-cpu" else 0,
    )


def log_auto_miss(encounter: Encounter, attacker: CombatParticipant, target: CombatParticipant) -> None:
    target.dodge_penalty += 1
    append_log(
        encounter,
        actor_id=attacker.id,
        actor_name=encounter.display_name(attacker),
        action="Attack",
        target=encounter.display_name(target),
        result="AUTO MISS - 0 accuracy successes",
        damage=0,
        effects=["Miss"],
    )


class CombatSystem(EncounterSystem):
    @property
    def system_id(self) -> str:
        return "combat"

    @property
    def handled_commands(self) -> set[str]:
        return {"declare_attack", "npc_attack"}

    def resolve(self, encounter: Encounter, command: Any, context: EncounterContext) -> Encounter:
        require_phase(encounter, Phase.COMBAT)
        if command.command == "declare_attack":
            self._declare_attack(encounter, command, context)
        else:
            self._npc_attack(encounter, command, context)
        return encounter

    def _participants(self, encounter: Encounter, attacker_id: str,
                      target_id: str) -> tuple[CombatParticipant, CombatParticipant]:
        attacker = require_participant(encounter, attacker_id, "Attacker")
        target = require_participant(encounter, target_id, "Target")
        if attacker.id == target.id:
            raise InvalidCommand("A participant cannot target itself")
        require_can_act(encounter, attacker)
        return attacker, target

    def _declare_attack(self, encounter: Encounter, command: DeclareAttack, context: EncounterContext) -> None:
        attacker, target = self._participants(encounter, command.attacker_id, command.target_id)
        stats = context.stats.resolve(attacker.type.value, attacker.entity_id)
        attack = context.stats.attack_for(stats, command.attack_id)
        check_attack_rules(encounter, attacker, attack, command.bolster_type)

        successes = command.accuracy_successes
        if successes is None:
            successes = count_successes(command.accuracy_dice)

        spend_actions(attacker, action_cost_for_attack(command.bolster_type is not None))
        if attack.id not in attacker.used_attack_ids:
            attacker.used_attack_ids.append(attack.id)
        # Directed was already added to the accuracy pool the client rolled.
        consume_directed(attacker)
        if command.bolster_type is not None:
            attacker.digimon_bolster_count += 1
            if command.bolster_type == "bit-cpu":
                attacker.last_bit_cpu_bolster_round = encounter.round

        log_accuracy(encounter, attacker, target, attack.name, command.accuracy_dice, successes, command.bolster_type)

        if successes == 0:
            log_auto_miss(encounter, attacker, target)
            logger.debug(f"{attacker.name} auto-missed {target.name}")
            return

        pending = build_pending(encounter, attacker, target, attack, command.accuracy_dice,
                                successes, command.bolster_type)
        controllers = eligible_protectors(encounter, target.id)
        if controllers:
            open_intercede_group(encounter, pending, controllers)
            return
        request_defense(encounter, context, pending)

    def _npc_attack(self, encounter: Encounter, command: NpcAttack, context: EncounterContext) -> None:
        attacker, target = self._participants(encounter, command.attacker_id, command.target_id)
        stats = context.stats.resolve(attacker.type.value, attacker.entity_id)
        attack = context.stats.attack_for(stats, command.attack_id)
        check_attack_rules(encounter, attacker, attack, None)

        spend_actions(attacker, NPC_ATTACK_COST)
        if attack.id not in attacker.used_attack_ids:
            attacker.used_attack_ids.append(attack.id)

        dice, successes = self._accuracy(attacker, stats, command)
        log_accuracy(encounter, attacker, target, attack.name, dice, successes)

        if successes == 0:
            log_auto_miss(encounter, attacker, target)
            return

        pending = build_pending(encounter, attacker, target, attack, dice, successes)
        if command.dodge_dice is None and command.dodge_successes is None:
            auto_resolve(encounter, context, pending)
            return
        dodge_dice = command.dodge_dice or []
        dodge_successes = command.dodge_successes
        if dodge_successes is None:
            dodge_successes = count_successes(dodge_dice)
        resolve_dodge(encounter, context, pending, dodge_dice, dodge_successes)

    def _accuracy(self, attacker: CombatParticipant, stats: CombatStats, command: NpcAttack) -> tuple[list[int], int]:
        """Accuracy dice from the command, or rolled here when the GM left them out."""
        if command.accuracy_dice is not None or command.accuracy_successes is not None:
            consume_directed(attacker)
            dice = command.accuracy_dice or []
            successes = command.accuracy_successes
            return dice, successes if successes is not None else count_successes(dice)

        pool = apply_stance_to_accuracy(stats.accuracy, attacker.current_stance.value)
        pool += consume_directed(attacker)
        result = roll_pool(pool)
        logger.debug(f"Server accuracy for {attacker.name}: {result.individual_rolls}")
        return result.individual_rolls, result.successes
