"""Tests for src/digital_adventure/systems/orders/system.py."""
from __future__ import annotations

import pytest

from digital_adventure.engine.errors import Conflict, DomainRefusal, InvalidCommand
from digital_adventure.models.encounter import ActiveEffect, EffectKind
from digital_adventure.systems.orders.system import directed_value


@pytest.fixture
def tai_turn(battle, skirmish):
    battle.do("next_turn")
    return skirmish


def _resave_tai(stat_store, **attrs):
    stat_store.tamer("tai", name="Tai", body=attrs.pop("body", 2), charisma=attrs.pop("charisma", 4),
                     skills={"endurance": 1}, **attrs)


@pytest.mark.parametrize("charisma, is_partner, bolstered, expected", [
    (4, True, False, 4),
    (4, False, False, 2),
    (1, False, False, 0),
    (3, True, True, 5),
])
def test_directed_value(charisma, is_partner, bolstered, expected):
    assert directed_value(charisma, is_partner, bolstered) == expected


class TestDirect:
    def test_direct_partner(self, battle, tai_turn):
        ids = tai_turn
        battle.do("direct", tamer_id=ids["tai"], target_id=ids["agumon"])
        directed = battle.p(ids["agumon"]).find_effect("Directed")
        assert directed.value == 4
        assert directed.kind == EffectKind.BUFF
        assert battle.p(ids["tai"]).actions_remaining.simple == 1
        assert battle.last_log().action == "Direct"

    def test_bolstered_direct(self, battle, tai_turn):
        ids = tai_turn
        battle.do("direct", tamer_id=ids["tai"], target_id=ids["agumon"], bolstered=True)
        assert battle.p(ids["agumon"]).find_effect("Directed").value == 6
        assert battle.p(ids["tai"]).actions_remaining.simple == 0
        assert battle.last_log().action == "Bolster Direct"

    def test_non_partner_penalty(self, battle, tai_turn):
        ids = tai_turn
        battle.do("direct", tamer_id=ids["tai"], target_id=ids["goblimon"])
        assert battle.p(ids["goblimon"]).find_effect("Directed").value == 2

    def test_once_per_turn(self, battle, tai_turn):
        ids = tai_turn
        battle.do("direct", tamer_id=ids["tai"], target_id=ids["agumon"])
        with pytest.raises(Conflict):
            battle.do("direct", tamer_id=ids["tai"], target_id=ids["agumon"])

    def test_target_must_be_digimon(self, battle, tai_turn):
        ids = tai_turn
        with pytest.raises(InvalidCommand):
            battle.do("direct", tamer_id=ids["tai"], target_id=ids["tai"])

    def test_own_turn_only(self, battle, skirmish):
        with pytest.raises(InvalidCommand):
            battle.do("direct", tamer_id=skirmish["tai"], target_id=skirmish["agumon"])

    def test_directed_feeds_dodge_pool(self, battle, tai_turn, scripted_dice):
        ids = tai_turn
        battle.do("direct", tamer_id=ids["tai"], target_id=ids["goblimon"])
        scripted_dice.extend([1, 1, 1, 1, 1])
        battle.do("declare_attack", attacker_id=ids["agumon"], target_id=ids["goblimon"],
                  attack_id="claw", accuracy_dice=[5])
        battle.skip_offers()
        assert scripted_dice == []
        assert battle.p(ids["goblimon"]).find_effect("Directed") is None


class TestSpecialOrders:
    def test_swagger(self, battle, tai_turn):
        ids = tai_turn
        battle.do("special_order", participant_id=ids["tai"], order_name="Swagger")
        taunt = battle.p(ids["agumon"]).find_effect("Taunt")
        assert taunt.duration == 3
        assert battle.p(ids["tai"]).actions_remaining.simple == 1
        assert battle.last_log().action == "Special Order: Swagger"

    def test_once_per_battle(self, battle, tai_turn):
        ids = tai_turn
        battle.do("special_order", participant_id=ids["tai"], order_name="Swagger")
        with pytest.raises(Conflict):
            battle.do("special_order", participant_id=ids["tai"], order_name="Swagger")

    def test_locked(self, battle, tai_turn):
        with pytest.raises(DomainRefusal):
            battle.do("special_order", participant_id=tai_turn["tai"], order_name="Energy Burst")

    def test_energy_burst_heals(self, battle, tai_turn, stat_store):
        ids = tai_turn
        _resave_tai(stat_store, body=3)
        battle.p(ids["agumon"]).current_wounds = 6
        battle.do("special_order", participant_id=ids["tai"], order_name="Energy Burst")
        assert battle.p(ids["agumon"]).current_wounds == 1
        assert battle.p(ids["tai"]).actions_remaining.simple == 0

    def test_enemy_scan_needs_target(self, battle, tai_turn, stat_store):
        ids = tai_turn
        _resave_tai(stat_store, intelligence=4)
        with pytest.raises(InvalidCommand):
            battle.do("special_order", participant_id=ids["tai"], order_name="Enemy Scan")
        battle.do("special_order", participant_id=ids["tai"], order_name="Enemy Scan", target_id=ids["goblimon"])
        debilitate = battle.p(ids["goblimon"]).find_effect("Debilitate")
        assert debilitate.kind == EffectKind.DEBUFF

    def test_tough_it_out_clears_negative_effect(self, battle, tai_turn, stat_store):
        ids = tai_turn
        _resave_tai(stat_store, willpower=3)
        agumon = battle.p(ids["agumon"])
        agumon.active_effects = [
            ActiveEffect(name="Vigor", kind=EffectKind.BUFF, duration=2),
            ActiveEffect(name="Poison", kind=EffectKind.DEBUFF, duration=2),
        ]
        battle.do("special_order", participant_id=ids["tai"], order_name="Tough it Out!")
        assert [e.name for e in battle.p(ids["agumon"]).active_effects] == ["Vigor"]

    def test_only_tamers(self, battle, tai_turn):
        with pytest.raises(InvalidCommand):
            battle.do("special_order", participant_id=tai_turn["agumon"], order_name="Swagger")
