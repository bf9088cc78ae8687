"""Pending requests and their responses, as tagged unions on ``type``."""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

GM_ID = "GM"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _request_id() -> str:
    return f"req-{uuid.uuid4().hex[:12]}"


class PendingAttack(BaseModel):
    """An attack suspended while waiting on a human (dodge or intercede)."""
    attacker_id: str
    attacker_name: str = ""
    target_id: str
    target_name: str = ""
    attack_id: str
    attack_name: str = ""
    accuracy_dice: list[int] = Field(default_factory=list)
    accuracy_successes: int = 0
    bolster_type: Optional[str] = None
    bolster_damage_bonus: int = 0
    bolster_bit_cpu_bonus: int = 0


class _RequestBase(BaseModel):
    id: str = Field(default_factory=_request_id)
    target_tamer_id: str
    target_participant_id: Optional[str] = None
    timestamp: str = Field(default_factory=_now)


class DigimonSelectionRequest(_RequestBase):
    type: Literal["digimon-selection"] = "digimon-selection"
    options: list[str] = Field(default_factory=list)


class InitiativeRollRequest(_RequestBase):
    type: Literal["initiative-roll"] = "initiative-roll"


class DodgeRollRequest(_RequestBase):
    type: Literal["dodge-roll"] = "dodge-roll"
    attack: PendingAttack


class IntercedeOfferRequest(_RequestBase):
    type: Literal["intercede-offer"] = "intercede-offer"
    intercede_group_id: str
    original_target_id: str
    attack: PendingAttack


PendingRequest = Annotated[
    Union[DigimonSelectionRequest, InitiativeRollRequest, DodgeRollRequest, IntercedeOfferRequest],
    Field(discriminator="type"),
]


class _ResponseBase(BaseModel):
    id: str = Field(default_factory=lambda: f"resp-{uuid.uuid4().hex[:12]}")
    # Filled in from the submitting command when left blank.
    request_id: str = ""
    tamer_id: str = ""
    participant_id: Optional[str] = None
    timestamp: str = Field(default_factory=_now)


class DigimonSelectedResponse(_ResponseBase):
    type: Literal["digimon-selected"] = "digimon-selected"
    digimon_id: Optional[str] = None


class InitiativeRolledResponse(_ResponseBase):
    type: Literal["initiative-rolled"] = "initiative-rolled"
    initiative: int
    initiative_roll: int


class DodgeRolledResponse(_ResponseBase):
    type: Literal["dodge-rolled"] = "dodge-rolled"
    dodge_dice_pool: int
    dodge_dice_results: list[int]
    dodge_successes: int = Field(ge=0)


RequestResponse = Annotated[
    Union[DigimonSelectedResponse, InitiativeRolledResponse, DodgeRolledResponse],
    Field(discriminator="type"),
]

# Which response type answers which request type.
RESPONSE_FOR_REQUEST: dict[str, str] = {
    "digimon-selection": "digimon-selected",
    "initiative-roll": "initiative-rolled",
    "dodge-roll": "dodge-rolled",
}
