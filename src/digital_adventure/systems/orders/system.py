"""Tamer orders — Direct and Special Orders."""
from __future__ import annotations

import logging
from typing import Any

from digital_adventure.engine.battle_log import append_log
from digital_adventure.engine.errors import Conflict, DomainRefusal, InvalidCommand
from digital_adventure.engine.validators import require_own_turn, require_participant, spend_actions
from digital_adventure.mechanics.special_orders import find_unlocked, order_action_cost, unlocked_orders
from digital_adventure.mechanics.wounds import heal
from digital_adventure.models.commands import Direct, IssueSpecialOrder
from digital_adventure.models.encounter import ActiveEffect, CombatParticipant, EffectKind, Encounter, ParticipantType
from digital_adventure.systems.base import EncounterContext, EncounterSystem
from digital_adventure.systems.combat.resolution import DIRECTED

logger = logging.getLogger(__name__)

DIRECTED_DURATION = 99
NON_PARTNER_DIRECT_PENALTY = 2
BOLSTERED_DIRECT_BONUS = 2

ENERGY_BURST_HEAL = 5
SWAGGER_ROUNDS = 3
ENEMY_SCAN_ROUNDS = 1


def directed_value(charisma: int, is_partner: bool, bolstered: bool) -> int:
    """Dice a Direct adds to the target's next accuracy or dodge pool."""
    value = charisma if is_partner else max(0, charisma - NON_PARTNER_DIRECT_PENALTY)
    if bolstered:
        value += BOLSTERED_DIRECT_BONUS
    return value


def _require_tamer(encounter: Encounter, participant_id: str) -> CombatParticipant:
    tamer = require_participant(encounter, participant_id, "Tamer")
    if tamer.type != ParticipantType.TAMER:
        raise InvalidCommand("Only tamers can give orders")
    return tamer


class OrderSystem(EncounterSystem):
    @property
    def system_id(self) -> str:
        return "orders"

    @property
    def handled_commands(self) -> set[str]:
        return {"direct", "special_order"}

    def resolve(self, encounter: Encounter, command: Any, context: EncounterContext) -> Encounter:
        if command.command == "direct":
            self._direct(encounter, command, context)
        else:
            self._special_order(encounter, command, context)
        return encounter

    def _direct(self, encounter: Encounter, command: Direct, context: EncounterContext) -> None:
        tamer = _require_tamer(encounter, command.tamer_id)
        require_own_turn(encounter, tamer)
        if tamer.has_directed_this_turn:
            raise Conflict(f"{tamer.name} has already used Direct this turn")
        target = require_participant(encounter, command.target_id, "Target")
        if target.type != ParticipantType.DIGIMON:
            raise InvalidCommand("Direct can only target a digimon")

        spend_actions(tamer, 2 if command.bolstered else 1)
        charisma = context.stats.get_tamer(tamer.entity_id).attributes.charisma
        value = directed_value(charisma, target.partner_tamer_id == tamer.id, command.bolstered)

        target.remove_effect(DIRECTED)
        target.active_effects.append(ActiveEffect(
            name=DIRECTED,
            kind=EffectKind.BUFF,
            duration=DIRECTED_DURATION,
            source=tamer.name,
            description="Bonus dice on the next accuracy or dodge roll",
            value=value,
        ))
        tamer.has_directed_this_turn = True
        append_log(
            encounter,
            actor_id=tamer.id,
            actor_name=encounter.display_name(tamer),
            action="Bolster Direct" if command.bolstered else "Direct",
            target=encounter.display_name(target),
            result=f"+{value} dice to the next accuracy or dodge pool",
            effects=[DIRECTED],
        )

    def _special_order(self, encounter: Encounter, command: IssueSpecialOrder, context: EncounterContext) -> None:
        participant = _require_tamer(encounter, command.participant_id)
        require_own_turn(encounter, participant)
        tamer = context.stats.get_tamer(participant.entity_id)

        unlocked = unlocked_orders(
            tamer.attributes.model_dump(),
            tamer.xp_bonuses.attributes.model_dump(),
            tamer.campaign_level,
        )
        order = find_unlocked(command.order_name, unlocked)
        if order is None:
            raise DomainRefusal(f"{tamer.name} has not unlocked {command.order_name}")
        if order.name in participant.used_special_orders:
            raise Conflict(f"{order.name} has already been used this battle")

        partners = encounter.partner_digimon(participant.id)
        partner = partners[0] if partners else None
        target = None
        if command.target_id is not None:
            target = require_participant(encounter, command.target_id, "Target")
        if order.name in ("Energy Burst", "Swagger", "Tough it Out!") and partner is None:
            raise InvalidCommand(f"{order.name} needs a partner digimon in the encounter")
        if order.name == "Enemy Scan" and target is None:
            raise InvalidCommand("Enemy Scan needs a target")

        spend_actions(participant, order_action_cost(order.type))
        participant.used_special_orders.append(order.name)
        result = self._apply_order(order.name, partner, target) or order.effect

        append_log(
            encounter,
            actor_id=participant.id,
            actor_name=encounter.display_name(participant),
            action=f"Special Order: {order.name}",
            target=encounter.display_name(target) if target else None,
            result=result,
            effects=["Special Order"],
        )
        logger.info(f"{tamer.name} issued {order.name} in encounter {encounter.id}")

    def _apply_order(self, name: str, partner: CombatParticipant | None,
                     target: CombatParticipant | None) -> str | None:
        """Orders with a direct mechanical effect. Others are left to the GM."""
        if name == "Energy Burst":
            before = partner.current_wounds
            partner.current_wounds = heal(partner.current_wounds, ENERGY_BURST_HEAL, partner.max_wounds)
            return f"{partner.name} recovers {before - partner.current_wounds} wound(s)"
        if name == "Swagger":
            partner.active_effects.append(ActiveEffect(
                name="Taunt", kind=EffectKind.BUFF, duration=SWAGGER_ROUNDS, source="Swagger",
            ))
            return f"{partner.name} gains Taunt for {SWAGGER_ROUNDS} rounds"
        if name == "Enemy Scan":
            target.active_effects.append(ActiveEffect(
                name="Debilitate", kind=EffectKind.DEBUFF, duration=ENEMY_SCAN_ROUNDS, source="Enemy Scan",
                description="-2 to all stats except health",
            ))
            return f"{target.name} is Debilitated for {ENEMY_SCAN_ROUNDS} round"
        if name == "Tough it Out!":
            for effect in partner.active_effects:
                if effect.kind in (EffectKind.DEBUFF, EffectKind.STATUS):
                    partner.active_effects = [e for e in partner.active_effects if e.id != effect.id]
                    return f"{partner.name} shrugs off {effect.name}"
            return f"{partner.name} has nothing to shrug off"
        return None
