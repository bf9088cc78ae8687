"""Shared fixtures for the digital-adventure test suite."""
from __future__ import annotations

import random
from typing import Any

import pytest

from digital_adventure.models.encounter import CombatParticipant, Encounter
from digital_adventure.models.entity import (
    Attack,
    Digimon,
    EvolutionLine,
    EvolutionStage,
    Quality,
    StatBlock,
    Tamer,
    TamerAttributes,
)


class MemoryRepo:
    """Dict-backed stand-in for a stat-store repo (get / list_all / save / update_field)."""

    def __init__(self) -> None:
        self.rows: dict[str, dict] = {}

    def save(self, record: dict) -> None:
        self.rows[record["id"]] = dict(record)

    def get(self, record_id: str) -> dict | None:
        row = self.rows.get(record_id)
        return dict(row) if row is not None else None

    def list_all(self) -> list[dict]:
        return [dict(r) for r in self.rows.values()]

    def update_field(self, record_id: str, field: str, value: Any) -> None:
        self.rows[record_id][field] = value


class StatStore:
    """Builds digimon, tamers and evolution lines into whatever repos it is given."""

    def __init__(self, repos: dict[str, Any] | None = None) -> None:
        self.repos = repos or {
            "digimon": MemoryRepo(),
            "tamer": MemoryRepo(),
            "evolution_line": MemoryRepo(),
        }

    def digimon(
        self,
        digimon_id: str,
        *,
        name: str | None = None,
        stage: str = "rookie",
        accuracy: int = 3,
        damage: int = 3,
        dodge: int = 3,
        armor: int = 2,
        health: int = 5,
        attacks: list[Attack] | None = None,
        qualities: list[Quality] | None = None,
        partner_id: str | None = None,
        is_enemy: bool = False,
    ) -> Digimon:
        d = Digimon(
            id=digimon_id,
            name=name or digimon_id.title(),
            species=name or digimon_id.title(),
            stage=stage,
            base_stats=StatBlock(accuracy=accuracy, damage=damage, dodge=dodge, armor=armor, health=health),
            attacks=attacks if attacks is not None else [Attack(id="strike", name="Strike")],
            qualities=qualities or [],
            partner_id=partner_id,
            is_enemy=is_enemy,
        )
        self.repos["digimon"].save(d.model_dump(mode="json"))
        return d

    def tamer(
        self,
        tamer_id: str,
        *,
        name: str | None = None,
        agility: int = 3,
        body: int = 2,
        charisma: int = 3,
        intelligence: int = 2,
        willpower: int = 2,
        skills: dict[str, int] | None = None,
        xp_attributes: dict[str, int] | None = None,
        campaign_level: str = "standard",
    ) -> Tamer:
        t = Tamer(
            id=tamer_id,
            name=name or tamer_id.title(),
            campaign_level=campaign_level,
            attributes=TamerAttributes(
                agility=agility, body=body, charisma=charisma,
                intelligence=intelligence, willpower=willpower,
            ),
            skills=skills or {},
            xp_bonuses={"attributes": xp_attributes or {}},
        )
        self.repos["tamer"].save(t.model_dump(mode="json"))
        return t

    def line(self, line_id: str, chain: list[EvolutionStage], partner_id: str | None = None) -> EvolutionLine:
        line = EvolutionLine(id=line_id, name=line_id.title(), partner_id=partner_id, chain=chain)
        self.repos["evolution_line"].save(line.model_dump(mode="json"))
        return line


class Battle:
    """One encounter driven through the dispatcher's pure ``apply`` path."""

    def __init__(self, engine: Any) -> None:
        self.engine = engine
        self.encounter = Encounter(name="Test Battle")

    def do(self, command: str, **fields: Any) -> Encounter:
        self.encounter = self.engine.apply(self.encounter, {"command": command, **fields})
        return self.encounter

    def add(self, entity_id: str, participant_type: str = "digimon", **fields: Any) -> str:
        self.do("add_participant", participant_type=participant_type, entity_id=entity_id, **fields)
        return self.encounter.participants[-1].id

    def p(self, participant_id: str) -> CombatParticipant:
        participant = self.encounter.get_participant(participant_id)
        assert participant is not None, f"{participant_id} is not in the encounter"
        return participant

    def requests(self, request_type: str | None = None) -> list:
        return [r for r in self.encounter.pending_requests if request_type is None or r.type == request_type]

    def offers(self) -> dict[str, Any]:
        """Open intercede offers keyed by the controller they were sent to."""
        return {r.target_tamer_id: r for r in self.requests("intercede-offer")}

    def skip_offers(self) -> None:
        """Every controller passes on the open intercede offers."""
        for offer in self.requests("intercede-offer"):
            self.do("skip_intercede", request_id=offer.id, tamer_id=offer.target_tamer_id)

    def last_log(self):
        return self.encounter.battle_log[-1]


@pytest.fixture
def in_memory_db(tmp_path):
    from digital_adventure.storage.database import Database

    db = Database(str(tmp_path / "test.db"))
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def seeded_rng():
    state = random.getstate()
    random.seed(42)
    yield
    random.setstate(state)


@pytest.fixture
def scripted_dice(monkeypatch):
    """Queue of faces returned by server-side rolls, in order."""
    faces: list[int] = []

    def fake_randint(low: int, high: int) -> int:
        if not faces:
            raise AssertionError("Ran out of scripted dice")
        return faces.pop(0)

    monkeypatch.setattr(random, "randint", fake_randint)
    return faces


@pytest.fixture
def stat_store() -> StatStore:
    return StatStore()


@pytest.fixture
def engine(stat_store):
    from digital_adventure.engine.action_dispatcher import ActionDispatcher
    from digital_adventure.engine.system_registry import SystemRegistry

    registry = SystemRegistry()
    registry.register_defaults()
    return ActionDispatcher(registry, stat_store.repos)


@pytest.fixture
def context(engine):
    return engine.context()


@pytest.fixture
def battle(engine) -> Battle:
    return Battle(engine)


@pytest.fixture
def skirmish(stat_store, battle) -> dict[str, Any]:
    """Tai + partner Agumon against one Goblimon; Goblimon acts first.

    Goblimon hits with damage 5 into Agumon's armor 4.
    """
    stat_store.tamer("tai", name="Tai", body=2, charisma=4, skills={"endurance": 1})
    stat_store.digimon("agumon", name="Agumon", armor=4, health=5, partner_id="tai",
                       attacks=[Attack(id="claw", name="Claw")])
    stat_store.digimon("goblimon", name="Goblimon", damage=5, armor=2, health=4, is_enemy=True,
                       attacks=[Attack(id="club", name="Club")])
    ids = {
        "tai": battle.add("tai", "tamer", initiative=10),
        "agumon": battle.add("agumon", initiative=5),
        "goblimon": battle.add("goblimon", initiative=20),
    }
    battle.do("start_combat")
    return ids


@pytest.fixture
def sqlite_repos(in_memory_db) -> dict[str, Any]:
    from digital_adventure.storage.repos import build_repos

    return build_repos(in_memory_db)


@pytest.fixture
def sqlite_store(sqlite_repos) -> StatStore:
    return StatStore(sqlite_repos)
