"""Tests for src/digital_adventure/engine/action_dispatcher.py."""
from __future__ import annotations

import pytest

from digital_adventure.engine.action_dispatcher import ActionDispatcher, parse_command
from digital_adventure.engine.errors import Conflict, InvalidCommand, NotFound
from digital_adventure.engine.system_registry import SystemRegistry
from digital_adventure.models.commands import DeclareAttack
from digital_adventure.models.encounter import Phase
from digital_adventure.models.entity import EvolutionStage


@pytest.fixture
def repos(sqlite_repos):
    return sqlite_repos


@pytest.fixture
def store(sqlite_store):
    s = sqlite_store
    s.tamer("tai", name="Tai")
    s.digimon("agumon", name="Agumon", partner_id="tai")
    s.digimon("greymon", name="Greymon", stage="champion", health=7, partner_id="tai")
    s.line("line-agumon", [
        EvolutionStage(stage="rookie", species="Agumon", digimon_id="agumon", is_unlocked=True),
        EvolutionStage(stage="champion", species="Greymon", digimon_id="greymon",
                       is_unlocked=True, evolves_from_index=0),
    ], partner_id="tai")
    return s


@pytest.fixture
def dispatcher(repos, store) -> ActionDispatcher:
    registry = SystemRegistry()
    registry.register_defaults()
    return ActionDispatcher(registry, repos)


def _add(dispatcher, encounter_id, participant_type, entity_id, **fields):
    return dispatcher.dispatch(encounter_id, {
        "command": "add_participant",
        "participant_type": participant_type,
        "entity_id": entity_id,
        **fields,
    })


class TestParseCommand:
    def test_dict_to_model(self):
        cmd = parse_command({"command": "declare_attack", "attacker_id": "a", "target_id": "b", "attack_id": "c"})
        assert isinstance(cmd, DeclareAttack)

    @pytest.mark.parametrize("raw", [
        {"command": "summon_meteor"},
        {"command": "declare_attack", "attacker_id": "a"},
        {"command": "set_stance", "participant_id": "a", "stance": "sleepy"},
        {"command": "declare_attack", "attacker_id": "a", "target_id": "b", "attack_id": "c", "accuracy_successes": -1},
        {"command": "npc_attack", "attacker_id": "a", "target_id": "b", "attack_id": "c", "dodge_successes": -2},
    ])
    def test_malformed(self, raw):
        with pytest.raises(InvalidCommand):
            parse_command(raw)


class TestDispatch:
    def test_create_and_load(self, dispatcher):
        created = dispatcher.create_encounter("Forest Ambush", "Goblimon in the trees")
        loaded = dispatcher.load(created.id)
        assert loaded.name == "Forest Ambush"
        assert loaded.phase == Phase.SETUP
        assert loaded.version == 0

    def test_persists_and_bumps_version(self, dispatcher, repos):
        enc = dispatcher.create_encounter("Fight")
        updated = _add(dispatcher, enc.id, "tamer", "tai")
        assert updated.version == 1
        stored = dispatcher.load(enc.id)
        assert stored.version == 1
        assert [p.entity_id for p in stored.participants] == ["tai"]

    def test_unknown_encounter(self, dispatcher):
        with pytest.raises(NotFound):
            dispatcher.dispatch("missing", {"command": "start_combat"})

    def test_rejected_command_leaves_state(self, dispatcher):
        enc = dispatcher.create_encounter("Fight")
        with pytest.raises(InvalidCommand):
            dispatcher.dispatch(enc.id, {"command": "start_combat"})
        stored = dispatcher.load(enc.id)
        assert stored.version == 0
        assert stored.phase == Phase.SETUP

    def test_missing_entity_leaves_state(self, dispatcher):
        enc = dispatcher.create_encounter("Fight")
        with pytest.raises(NotFound):
            _add(dispatcher, enc.id, "digimon", "nobody")
        assert dispatcher.load(enc.id).participants == []

    def test_stale_write_conflicts(self, dispatcher, monkeypatch):
        enc = dispatcher.create_encounter("Fight")
        stale = dispatcher.load(enc.id)
        _add(dispatcher, enc.id, "tamer", "tai")
        monkeypatch.setattr(dispatcher, "load", lambda encounter_id: stale)
        with pytest.raises(Conflict):
            _add(dispatcher, enc.id, "digimon", "agumon")
        monkeypatch.undo()
        stored = dispatcher.load(enc.id)
        assert stored.version == 1
        assert len(stored.participants) == 1

    def test_ended_refuses_commands(self, dispatcher):
        enc = dispatcher.create_encounter("Fight")
        _add(dispatcher, enc.id, "tamer", "tai")
        dispatcher.dispatch(enc.id, {"command": "end_combat"})
        with pytest.raises(InvalidCommand):
            dispatcher.dispatch(enc.id, {"command": "next_turn"})

    def test_apply_does_not_mutate_input(self, dispatcher):
        enc = dispatcher.create_encounter("Fight")
        after = dispatcher.apply(enc, {"command": "add_participant", "participant_type": "tamer", "entity_id": "tai"})
        assert enc.participants == []
        assert enc.version == 0
        assert len(after.participants) == 1


class TestEvolutionLineSync:
    def test_digivolve_updates_line(self, dispatcher, repos):
        enc = dispatcher.create_encounter("Fight")
        _add(dispatcher, enc.id, "tamer", "tai", initiative=10)
        updated = _add(dispatcher, enc.id, "digimon", "agumon", initiative=5)
        agumon_id = updated.participants[-1].id
        dispatcher.dispatch(enc.id, {"command": "start_combat"})

        result = dispatcher.dispatch(enc.id, {
            "command": "digivolve", "participant_id": agumon_id, "target_stage_index": 1,
        })

        assert result.get_participant(agumon_id).entity_id == "greymon"
        assert repos["evolution_line"].get("line-agumon")["current_stage_index"] == 1

    def test_enemy_digimon_not_synced(self, dispatcher, repos):
        enc = dispatcher.create_encounter("Fight")
        _add(dispatcher, enc.id, "digimon", "greymon", is_enemy=True)
        assert repos["evolution_line"].get("line-agumon")["current_stage_index"] == 0
