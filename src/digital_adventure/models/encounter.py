from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from digital_adventure.models.requests import PendingRequest, RequestResponse


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Phase(str, Enum):
    SETUP = "setup"
    INITIATIVE = "initiative"
    COMBAT = "combat"
    ENDED = "ended"


class ParticipantType(str, Enum):
    TAMER = "tamer"
    DIGIMON = "digimon"


class Stance(str, Enum):
    NEUTRAL = "neutral"
    DEFENSIVE = "defensive"
    OFFENSIVE = "offensive"
    SNIPER = "sniper"
    BRAVE = "brave"


class EffectKind(str, Enum):
    BUFF = "buff"
    DEBUFF = "debuff"
    STATUS = "status"


class ActiveEffect(BaseModel):
    id: str = Field(default_factory=lambda: f"effect-{uuid.uuid4().hex[:12]}")
    name: str
    kind: EffectKind = EffectKind.STATUS
    duration: int = 1
    source: str = ""
    description: str = ""
    value: Optional[int] = None


class ActionsRemaining(BaseModel):
    simple: int = 2


class WoundsHistoryEntry(BaseModel):
    entity_id: str
    max_wounds: int
    wounds: int = 0
    stage_index: Optional[int] = None


class CombatParticipant(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=lambda: f"participant-{uuid.uuid4().hex[:12]}")
    type: ParticipantType
    entity_id: str
    name: str = ""
    is_enemy: bool = False
    partner_tamer_id: Optional[str] = None
    initiative: int = 0
    initiative_roll: int = 0
    actions_remaining: ActionsRemaining = Field(default_factory=ActionsRemaining)
    current_stance: Stance = Stance.NEUTRAL
    is_active: bool = False
    has_acted: bool = False
    active_effects: list[ActiveEffect] = Field(default_factory=list)
    current_wounds: int = 0
    max_wounds: int = 0
    dodge_penalty: int = 0
    used_attack_ids: list[str] = Field(default_factory=list)
    evolution_line_id: Optional[str] = None
    stage_index: Optional[int] = None
    wounds_history: list[WoundsHistoryEntry] = Field(default_factory=list)
    intercept_penalty: int = 0
    digimon_bolster_count: int = 0
    last_bit_cpu_bolster_round: Optional[int] = None
    combat_monster_bonus: int = 0
    intercede_opt_outs: list[str] = Field(default_factory=list)
    has_attempted_digivolve: bool = False
    has_directed_this_turn: bool = False
    used_special_orders: list[str] = Field(default_factory=list)

    def find_effect(self, name: str) -> ActiveEffect | None:
        for effect in self.active_effects:
            if effect.name == name:
                return effect
        return None

    def remove_effect(self, name: str) -> ActiveEffect | None:
        """Drop the first effect with this name and return it."""
        effect = self.find_effect(name)
        if effect is not None:
            self.active_effects = [e for e in self.active_effects if e.id != effect.id]
        return effect


class BattleLogEntry(BaseModel):
    id: str = Field(default_factory=lambda: f"log-{uuid.uuid4().hex[:12]}")
    timestamp: str = Field(default_factory=_now)
    round: int = 0
    actor_id: Optional[str] = None
    actor_name: str = ""
    action: str = ""
    target: Optional[str] = None
    result: str = ""
    damage: Optional[int] = None
    effects: list[str] = Field(default_factory=list)
    base_damage: Optional[int] = None
    net_successes: Optional[int] = None
    target_armor: Optional[int] = None
    armor_piercing: Optional[int] = None
    effective_armor: Optional[int] = None
    final_damage: Optional[int] = None
    hit: Optional[bool] = None


class Hazard(BaseModel):
    id: str = Field(default_factory=lambda: f"hazard-{uuid.uuid4().hex[:12]}")
    name: str
    description: str = ""
    effect: Optional[str] = None
    duration: Optional[int] = None
    affected_area: str = ""


class Encounter(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    description: str = ""
    round: int = 0
    phase: Phase = Phase.SETUP
    participants: list[CombatParticipant] = Field(default_factory=list)
    turn_order: list[str] = Field(default_factory=list)
    current_turn_index: int = 0
    battle_log: list[BattleLogEntry] = Field(default_factory=list)
    pending_requests: list[PendingRequest] = Field(default_factory=list)
    request_responses: list[RequestResponse] = Field(default_factory=list)
    closed_request_ids: list[str] = Field(default_factory=list)
    hazards: list[Hazard] = Field(default_factory=list)
    gm_intercede_opt_outs: list[str] = Field(default_factory=list)
    gm_character_opt_outs: dict[str, list[str]] = Field(default_factory=dict)
    version: int = 0
    created_at: str = Field(default_factory=_now)
    updated_at: str = Field(default_factory=_now)

    def get_participant(self, participant_id: str) -> CombatParticipant | None:
        for p in self.participants:
            if p.id == participant_id:
                return p
        return None

    def current_participant(self) -> CombatParticipant | None:
        if not self.turn_order or not 0 <= self.current_turn_index < len(self.turn_order):
            return None
        return self.get_participant(self.turn_order[self.current_turn_index])

    def get_request(self, request_id: str) -> PendingRequest | None:
        for r in self.pending_requests:
            if r.id == request_id:
                return r
        return None

    def display_name(self, participant: CombatParticipant) -> str:
        """Name with numbering for duplicate enemy digimon ("Goblimon 2")."""
        name = participant.name or ("Digimon" if participant.type == ParticipantType.DIGIMON else "Tamer")
        if participant.type == ParticipantType.DIGIMON and participant.is_enemy:
            twins = sorted(p.id for p in self.participants if p.entity_id == participant.entity_id)
            if len(twins) > 1:
                return f"{name} {twins.index(participant.id) + 1}"
        return name

    def name_of(self, participant_id: str) -> str:
        p = self.get_participant(participant_id)
        return self.display_name(p) if p else participant_id

    def partner_digimon(self, tamer_participant_id: str) -> list[CombatParticipant]:
        return [
            p for p in self.participants
            if p.type == ParticipantType.DIGIMON and p.partner_tamer_id == tamer_participant_id
        ]
