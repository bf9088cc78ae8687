from __future__ import annotations

import uuid
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from digital_adventure.mechanics.effects import is_effect_valid_for_type
from digital_adventure.mechanics.tags import TagKind, parse_tag


class AttackType(str, Enum):
    DAMAGE = "damage"
    SUPPORT = "support"


class AttackRange(str, Enum):
    MELEE = "melee"
    RANGED = "ranged"


class AttackTag(BaseModel):
    kind: TagKind = TagKind.OTHER
    rank: int = 0
    label: str = ""


class Attack(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    type: AttackType = AttackType.DAMAGE
    range: AttackRange = AttackRange.MELEE
    tags: list[AttackTag] = Field(default_factory=list)
    effect: Optional[str] = None
    description: str = ""

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value: Any) -> Any:
        """Accept raw tag strings and parse them once, at load time."""
        if not isinstance(value, list):
            return value
        out = []
        for tag in value:
            if isinstance(tag, str):
                kind, rank = parse_tag(tag)
                out.append({"kind": kind, "rank": rank, "label": tag})
            else:
                out.append(tag)
        return out

    @model_validator(mode="after")
    def _effect_fits_type(self) -> "Attack":
        if self.effect and not is_effect_valid_for_type(self.effect, self.type.value):
            raise ValueError(f"{self.effect} cannot be applied by a {self.type.value} attack")
        return self

    def tag_rank(self, kind: TagKind) -> int:
        """Sum of ranks for a tag kind (0 when absent)."""
        return sum(t.rank for t in self.tags if t.kind == kind)

    def has_tag(self, kind: TagKind) -> bool:
        return any(t.kind == kind for t in self.tags)


class Quality(BaseModel):
    id: str
    name: str = ""
    ranks: int = 1
    choice_id: Optional[str] = None


class StatBlock(BaseModel):
    accuracy: int = 0
    damage: int = 0
    dodge: int = 0
    armor: int = 0
    health: int = 0


class Digimon(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    species: str = ""
    stage: str = "rookie"
    base_stats: StatBlock = Field(default_factory=StatBlock)
    bonus_stats: StatBlock = Field(default_factory=StatBlock)
    attacks: list[Attack] = Field(default_factory=list)
    qualities: list[Quality] = Field(default_factory=list)
    partner_id: Optional[str] = None
    is_enemy: bool = False
    notes: str = ""

    def has_quality(self, quality_id: str) -> bool:
        return any(q.id == quality_id for q in self.qualities)

    def quality(self, quality_id: str) -> Quality | None:
        for q in self.qualities:
            if q.id == quality_id:
                return q
        return None


class TamerAttributes(BaseModel):
    agility: int = 0
    body: int = 0
    charisma: int = 0
    intelligence: int = 0
    willpower: int = 0


class XpBonuses(BaseModel):
    attributes: TamerAttributes = Field(default_factory=TamerAttributes)
    skills: dict[str, int] = Field(default_factory=dict)


class Tamer(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    age: int = 0
    campaign_level: str = "standard"
    attributes: TamerAttributes = Field(default_factory=TamerAttributes)
    skills: dict[str, int] = Field(default_factory=dict)
    xp_bonuses: XpBonuses = Field(default_factory=XpBonuses)
    inspiration: int = 0
    notes: str = ""

    def skill(self, name: str) -> int:
        return self.skills.get(name, 0)


class EvolutionStage(BaseModel):
    stage: str
    species: str = ""
    digimon_id: Optional[str] = None
    is_unlocked: bool = False
    evolves_from_index: Optional[int] = None


class EvolutionLine(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    partner_id: Optional[str] = None
    current_stage_index: int = 0
    chain: list[EvolutionStage] = Field(default_factory=list)
