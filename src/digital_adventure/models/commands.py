"""Encounter commands — one model per operation, tagged on ``command``."""
from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from digital_adventure.models.encounter import Stance
from digital_adventure.models.requests import GM_ID, PendingRequest, RequestResponse

BolsterType = Literal["damage-accuracy", "bit-cpu"]


class DeclareAttack(BaseModel):
    command: Literal["declare_attack"] = "declare_attack"
    attacker_id: str
    target_id: str
    attack_id: str
    accuracy_dice: list[int] = Field(default_factory=list)
    accuracy_successes: Optional[int] = Field(default=None, ge=0)
    bolster_type: Optional[BolsterType] = None


class NpcAttack(BaseModel):
    """A GM attack resolved in one call. Missing dice are rolled server-side."""
    command: Literal["npc_attack"] = "npc_attack"
    attacker_id: str
    target_id: str
    attack_id: str
    accuracy_dice: Optional[list[int]] = None
    accuracy_successes: Optional[int] = Field(default=None, ge=0)
    dodge_dice: Optional[list[int]] = None
    dodge_successes: Optional[int] = Field(default=None, ge=0)


class ClaimIntercede(BaseModel):
    command: Literal["claim_intercede"] = "claim_intercede"
    request_id: str
    interceptor_id: str
    tamer_id: str = GM_ID


class SkipIntercede(BaseModel):
    command: Literal["skip_intercede"] = "skip_intercede"
    request_id: str
    tamer_id: str = GM_ID
    opt_out: bool = False
    character_opt_outs: Optional[list[str]] = None


class Respond(BaseModel):
    command: Literal["respond"] = "respond"
    request_id: str
    tamer_id: str
    response: RequestResponse


class NextTurn(BaseModel):
    command: Literal["next_turn"] = "next_turn"


class Digivolve(BaseModel):
    command: Literal["digivolve"] = "digivolve"
    participant_id: str
    target_stage_index: int


class DigivolveFail(BaseModel):
    command: Literal["digivolve_fail"] = "digivolve_fail"
    participant_id: str
    target_stage_index: int
    willpower_roll: int = 0
    dc: int = 0


class Direct(BaseModel):
    command: Literal["direct"] = "direct"
    tamer_id: str
    target_id: str
    bolstered: bool = False


class IssueSpecialOrder(BaseModel):
    command: Literal["special_order"] = "special_order"
    participant_id: str
    order_name: str
    target_id: Optional[str] = None


class AddParticipant(BaseModel):
    command: Literal["add_participant"] = "add_participant"
    participant_type: Literal["tamer", "digimon"]
    entity_id: str
    is_enemy: Optional[bool] = None
    initiative: Optional[int] = None
    initiative_roll: Optional[int] = None


class RemoveParticipant(BaseModel):
    command: Literal["remove_participant"] = "remove_participant"
    participant_id: str


class BeginInitiative(BaseModel):
    command: Literal["begin_initiative"] = "begin_initiative"


class SetInitiative(BaseModel):
    command: Literal["set_initiative"] = "set_initiative"
    participant_id: str
    initiative: int
    initiative_roll: int = 0


class StartCombat(BaseModel):
    command: Literal["start_combat"] = "start_combat"


class EndCombat(BaseModel):
    command: Literal["end_combat"] = "end_combat"


class SetStance(BaseModel):
    command: Literal["set_stance"] = "set_stance"
    participant_id: str
    stance: Stance


class AddHazard(BaseModel):
    command: Literal["add_hazard"] = "add_hazard"
    name: str
    description: str = ""
    effect: Optional[str] = None
    duration: Optional[int] = None
    affected_area: str = ""


class RemoveHazard(BaseModel):
    command: Literal["remove_hazard"] = "remove_hazard"
    hazard_id: str


class UpdateHazard(BaseModel):
    command: Literal["update_hazard"] = "update_hazard"
    hazard_id: str
    name: Optional[str] = None
    description: Optional[str] = None
    effect: Optional[str] = None
    duration: Optional[int] = None
    affected_area: Optional[str] = None


class ResetDodgePenalty(BaseModel):
    command: Literal["reset_dodge_penalty"] = "reset_dodge_penalty"
    participant_id: str


class CreateRequest(BaseModel):
    command: Literal["create_request"] = "create_request"
    request: PendingRequest


class DeleteRequest(BaseModel):
    command: Literal["delete_request"] = "delete_request"
    request_id: str


class DeleteResponse(BaseModel):
    command: Literal["delete_response"] = "delete_response"
    response_id: str


Command = Annotated[
    Union[
        DeclareAttack, NpcAttack, ClaimIntercede, SkipIntercede, Respond, NextTurn,
        Digivolve, DigivolveFail, Direct, IssueSpecialOrder,
        AddParticipant, RemoveParticipant, BeginInitiative, SetInitiative,
        StartCombat, EndCombat, SetStance, AddHazard, RemoveHazard, UpdateHazard,
        ResetDodgePenalty, CreateRequest, DeleteRequest, DeleteResponse,
    ],
    Field(discriminator="command"),
]
