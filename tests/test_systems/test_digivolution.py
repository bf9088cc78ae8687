"""Tests for src/digital_adventure/systems/evolution/system.py."""
from __future__ import annotations

import pytest

from digital_adventure.engine.errors import Conflict, DomainRefusal, InvalidCommand
from digital_adventure.models.entity import EvolutionStage


@pytest.fixture
def line(stat_store):
    stat_store.tamer("tai", name="Tai")
    stat_store.digimon("agumon", name="Agumon", partner_id="tai")
    stat_store.digimon("greymon", name="Greymon", stage="champion", health=7, partner_id="tai")
    stat_store.digimon("metalgreymon", name="MetalGreymon", stage="ultimate", health=9, partner_id="tai")
    stat_store.digimon("wargreymon", name="WarGreymon", stage="mega", health=10, partner_id="tai")
    stat_store.line("line-agumon", [
        EvolutionStage(stage="rookie", species="Agumon", digimon_id="agumon", is_unlocked=True),
        EvolutionStage(stage="champion", species="Greymon", digimon_id="greymon",
                       is_unlocked=True, evolves_from_index=0),
        EvolutionStage(stage="ultimate", species="MetalGreymon", digimon_id="metalgreymon",
                       is_unlocked=True, evolves_from_index=1),
        EvolutionStage(stage="mega", species="WarGreymon", digimon_id="wargreymon",
                       is_unlocked=False, evolves_from_index=2),
    ], partner_id="tai")
    return stat_store


def _start(battle, partner="agumon"):
    ids = {"tai": battle.add("tai", "tamer", initiative=10), "digimon": battle.add(partner, initiative=5)}
    battle.do("start_combat")
    return ids


class TestDigivolve:
    def test_evolve(self, battle, line):
        ids = _start(battle)
        battle.p(ids["digimon"]).current_wounds = 3
        battle.do("digivolve", participant_id=ids["digimon"], target_stage_index=1)

        greymon = battle.p(ids["digimon"])
        assert greymon.entity_id == "greymon"
        assert greymon.name == "Greymon"
        assert (greymon.current_wounds, greymon.max_wounds) == (0, 12)
        assert greymon.stage_index == 1
        assert len(greymon.wounds_history) == 1
        assert battle.p(ids["tai"]).actions_remaining.simple == 1
        entry = battle.last_log()
        assert entry.action == "digivolved to Greymon!"
        assert entry.actor_name == "Agumon"
        assert entry.effects == ["Digivolve"]

    def test_devolve_restores_wounds(self, battle, line):
        ids = _start(battle)
        battle.p(ids["digimon"]).current_wounds = 3
        battle.do("digivolve", participant_id=ids["digimon"], target_stage_index=1)
        battle.do("digivolve", participant_id=ids["digimon"], target_stage_index=0)

        agumon = battle.p(ids["digimon"])
        assert agumon.entity_id == "agumon"
        assert (agumon.current_wounds, agumon.max_wounds) == (3, 7)
        assert agumon.wounds_history == []
        assert battle.last_log().effects == ["Devolve"]
        assert battle.p(ids["tai"]).actions_remaining.simple == 0

    def test_devolve_without_history_uses_fresh_stats(self, battle, line):
        ids = _start(battle, partner="greymon")
        battle.p(ids["digimon"]).current_wounds = 10
        battle.do("digivolve", participant_id=ids["digimon"], target_stage_index=0)
        agumon = battle.p(ids["digimon"])
        assert agumon.entity_id == "agumon"
        assert (agumon.current_wounds, agumon.max_wounds) == (7, 7)

    def test_once_per_turn(self, battle, line):
        ids = _start(battle)
        battle.do("digivolve", participant_id=ids["digimon"], target_stage_index=1)
        with pytest.raises(Conflict):
            battle.do("digivolve", participant_id=ids["digimon"], target_stage_index=2)

    def test_skipping_a_stage(self, battle, line):
        ids = _start(battle)
        with pytest.raises(InvalidCommand):
            battle.do("digivolve", participant_id=ids["digimon"], target_stage_index=2)

    def test_locked_stage(self, battle, line):
        ids = _start(battle, partner="metalgreymon")
        with pytest.raises(DomainRefusal):
            battle.do("digivolve", participant_id=ids["digimon"], target_stage_index=3)

    def test_needs_a_line(self, battle, line, stat_store):
        stat_store.digimon("goblimon", name="Goblimon", is_enemy=True)
        _start(battle)
        goblimon = battle.add("goblimon")
        with pytest.raises(InvalidCommand):
            battle.do("digivolve", participant_id=goblimon, target_stage_index=1)


class TestDigivolveFail:
    def test_logged_and_blocks_retry(self, battle, line):
        ids = _start(battle)
        battle.do("digivolve_fail", participant_id=ids["digimon"], target_stage_index=1, willpower_roll=2, dc=4)
        entry = battle.last_log()
        assert entry.action == "failed to digivolve to Greymon"
        assert entry.result == "Willpower check failed (rolled 2 vs DC 4)"
        assert entry.effects == ["Digivolve Failed"]
        assert battle.p(ids["tai"]).actions_remaining.simple == 1
        with pytest.raises(Conflict):
            battle.do("digivolve", participant_id=ids["digimon"], target_stage_index=1)
