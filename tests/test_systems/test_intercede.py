"""Tests for src/digital_adventure/systems/intercede/system.py."""
from __future__ import annotations

import pytest

from digital_adventure.engine.errors import Conflict, InvalidCommand
from digital_adventure.systems.intercede.system import eligible_protectors


def _goblimon_attacks(battle, ids, target, dice=(5, 6, 5)):
    battle.do("declare_attack", attacker_id=ids["goblimon"], target_id=ids[target],
              attack_id="club", accuracy_dice=list(dice))
    return battle.requests("intercede-offer")


@pytest.fixture
def two_goblimon(battle, skirmish):
    """Skirmish on Tai's turn with a second Goblimon guarding the first."""
    ids = dict(skirmish)
    ids["goblimon2"] = battle.add("goblimon", initiative=1)
    battle.do("next_turn")
    return ids


class TestEligibleProtectors:
    def test_partnered_tamer_and_gm(self, battle, skirmish):
        enc = battle.encounter
        assert eligible_protectors(enc, skirmish["agumon"]) == ["tai", "GM"]
        assert eligible_protectors(enc, skirmish["tai"]) == ["tai", "GM"]

    def test_enemy_target_offered_too(self, battle, skirmish):
        assert eligible_protectors(battle.encounter, skirmish["goblimon"]) == ["tai", "GM"]

    def test_tamer_without_partner_not_offered(self, battle, skirmish, stat_store):
        stat_store.tamer("sora", name="Sora")
        battle.add("sora", "tamer")
        assert eligible_protectors(battle.encounter, skirmish["agumon"]) == ["tai", "GM"]

    def test_gm_never_intercede(self, battle, skirmish):
        battle.encounter.gm_intercede_opt_outs.append(skirmish["agumon"])
        assert eligible_protectors(battle.encounter, skirmish["agumon"]) == ["tai"]
        assert eligible_protectors(battle.encounter, skirmish["goblimon"]) == ["tai", "GM"]

    def test_opt_outs_respected(self, battle, skirmish):
        battle.p(skirmish["tai"]).intercede_opt_outs.append(skirmish["agumon"])
        assert eligible_protectors(battle.encounter, skirmish["agumon"]) == ["GM"]
        battle.encounter.gm_intercede_opt_outs.append(skirmish["agumon"])
        assert eligible_protectors(battle.encounter, skirmish["agumon"]) == []

    def test_unknown_target(self, battle, skirmish):
        assert eligible_protectors(battle.encounter, "participant-missing") == []


class TestClaim:
    def test_claim_takes_the_hit(self, battle, skirmish):
        ids = skirmish
        offers = _goblimon_attacks(battle, ids, "tai")
        assert [o.target_tamer_id for o in offers] == ["tai", "GM"]
        assert {o.original_target_id for o in offers} == {ids["tai"]}
        assert len({o.intercede_group_id for o in offers}) == 1

        battle.do("claim_intercede", request_id=offers[0].id, interceptor_id=ids["agumon"], tamer_id="tai")

        agumon, tai = battle.p(ids["agumon"]), battle.p(ids["tai"])
        # 5 damage + 3 net - 4 armor, no dodge allowed
        assert agumon.current_wounds == 4
        assert agumon.actions_remaining.simple == 1
        assert agumon.dodge_penalty == 0
        assert tai.current_wounds == 0
        assert tai.dodge_penalty == 1
        assert battle.requests() == []
        entry = battle.last_log()
        assert entry.action == "Interceded for Tai!"
        assert entry.result == "Takes hit with 0 dodge - 4 damage dealt"
        assert entry.effects == ["Intercede"]

    def test_second_claim_conflicts(self, battle, skirmish):
        ids = skirmish
        offer = _goblimon_attacks(battle, ids, "tai")[0]
        battle.do("claim_intercede", request_id=offer.id, interceptor_id=ids["agumon"], tamer_id="tai")
        with pytest.raises(Conflict):
            battle.do("claim_intercede", request_id=offer.id, interceptor_id=ids["agumon"], tamer_id="tai")

    def test_after_own_turn_costs_next_round(self, battle, skirmish):
        ids = skirmish
        enc = battle.encounter
        enc.turn_order = [ids["tai"], ids["agumon"], ids["goblimon"]]
        enc.current_turn_index = 2
        offer = _goblimon_attacks(battle, ids, "tai")[0]
        battle.do("claim_intercede", request_id=offer.id, interceptor_id=ids["agumon"], tamer_id="tai")
        agumon = battle.p(ids["agumon"])
        assert agumon.actions_remaining.simple == 2
        assert agumon.intercept_penalty == 1

    def test_intercept_penalty_cap(self, battle, skirmish):
        ids = skirmish
        enc = battle.encounter
        enc.turn_order = [ids["tai"], ids["agumon"], ids["goblimon"]]
        enc.current_turn_index = 2
        battle.p(ids["agumon"]).intercept_penalty = 2
        offer = _goblimon_attacks(battle, ids, "tai")[0]
        with pytest.raises(InvalidCommand):
            battle.do("claim_intercede", request_id=offer.id, interceptor_id=ids["agumon"], tamer_id="tai")

    def test_interceptor_cannot_be_target(self, battle, skirmish):
        ids = skirmish
        offer = _goblimon_attacks(battle, ids, "agumon")[0]
        with pytest.raises(InvalidCommand):
            battle.do("claim_intercede", request_id=offer.id, interceptor_id=ids["agumon"], tamer_id="tai")

    def test_must_control_interceptor(self, battle, skirmish):
        ids = skirmish
        offer = _goblimon_attacks(battle, ids, "agumon")[0]
        with pytest.raises(InvalidCommand):
            battle.do("claim_intercede", request_id=offer.id, interceptor_id=ids["goblimon"], tamer_id="tai")

    def test_offer_for_someone_else(self, battle, skirmish):
        ids = skirmish
        offer = _goblimon_attacks(battle, ids, "tai")[0]
        with pytest.raises(InvalidCommand, match="not for you"):
            battle.do("claim_intercede", request_id=offer.id, interceptor_id=ids["agumon"], tamer_id="GM")

    def test_gm_claims_with_enemy(self, battle, two_goblimon):
        ids = two_goblimon
        battle.do("declare_attack", attacker_id=ids["agumon"], target_id=ids["goblimon"],
                  attack_id="claw", accuracy_dice=[5, 5, 5])
        offers = battle.offers()
        assert sorted(offers) == ["GM", "tai"]

        battle.do("claim_intercede", request_id=offers["GM"].id, interceptor_id=ids["goblimon2"], tamer_id="GM")
        # 3 damage + 3 net - 2 armor
        assert battle.p(ids["goblimon2"]).current_wounds == 4
        assert battle.p(ids["goblimon2"]).actions_remaining.simple == 1
        assert battle.p(ids["goblimon"]).current_wounds == 0


class TestSkip:
    def test_skip_collapses_to_dodge_request(self, battle, skirmish):
        ids = skirmish
        offers = {o.target_tamer_id: o for o in _goblimon_attacks(battle, ids, "agumon")}
        battle.do("skip_intercede", request_id=offers["tai"].id, tamer_id="tai")
        assert list(battle.offers()) == ["GM"]
        assert battle.requests("dodge-roll") == []

        battle.do("skip_intercede", request_id=offers["GM"].id, tamer_id="GM")
        assert battle.requests("intercede-offer") == []
        dodge = battle.requests("dodge-roll")
        assert len(dodge) == 1
        assert dodge[0].target_participant_id == ids["agumon"]
        assert dodge[0].target_tamer_id == "tai"

    def test_tamer_opt_out_persists(self, battle, skirmish):
        ids = skirmish
        offers = {o.target_tamer_id: o for o in _goblimon_attacks(battle, ids, "agumon", dice=(5,))}
        battle.do("skip_intercede", request_id=offers["tai"].id, tamer_id="tai", opt_out=True)
        assert battle.p(ids["tai"]).intercede_opt_outs == [ids["agumon"]]
        battle.do("skip_intercede", request_id=offers["GM"].id, tamer_id="GM")

        dodge = battle.requests("dodge-roll")[0]
        battle.do("respond", request_id=dodge.id, tamer_id="tai", response={
            "type": "dodge-rolled", "dodge_dice_pool": 3, "dodge_dice_results": [5, 5, 1], "dodge_successes": 2,
        })
        assert [o.target_tamer_id for o in _goblimon_attacks(battle, ids, "agumon")] == ["GM"]

    def test_gm_opt_out(self, battle, two_goblimon, scripted_dice):
        ids = two_goblimon
        battle.do("declare_attack", attacker_id=ids["agumon"], target_id=ids["goblimon"],
                  attack_id="claw", accuracy_dice=[5])
        offers = battle.offers()
        battle.do("skip_intercede", request_id=offers["GM"].id, tamer_id="GM", opt_out=True)
        assert battle.encounter.gm_intercede_opt_outs == [ids["goblimon"]]
        assert battle.p(ids["goblimon"]).current_wounds == 0

        scripted_dice.extend([1, 1, 1])
        battle.do("skip_intercede", request_id=offers["tai"].id, tamer_id="tai")
        # 3 damage + 1 net - 2 armor
        assert battle.p(ids["goblimon"]).current_wounds == 2

        battle.do("declare_attack", attacker_id=ids["agumon"], target_id=ids["goblimon"],
                  attack_id="claw", accuracy_dice=[5])
        assert list(battle.offers()) == ["tai"]
        scripted_dice.extend([1, 1])
        battle.skip_offers()
        assert battle.requests() == []
        assert scripted_dice == []

    def test_gm_character_opt_out_keeps_offer(self, battle, two_goblimon):
        ids = two_goblimon
        battle.do("declare_attack", attacker_id=ids["agumon"], target_id=ids["goblimon"],
                  attack_id="claw", accuracy_dice=[5])
        offer = battle.offers()["GM"]
        battle.do("skip_intercede", request_id=offer.id, tamer_id="GM", character_opt_outs=[ids["goblimon2"]])
        assert battle.encounter.get_request(offer.id) is not None
        assert battle.encounter.gm_character_opt_outs == {ids["goblimon"]: [ids["goblimon2"]]}
        with pytest.raises(InvalidCommand):
            battle.do("claim_intercede", request_id=offer.id, interceptor_id=ids["goblimon2"], tamer_id="GM")

    def test_only_gm_opts_out_characters(self, battle, skirmish):
        ids = skirmish
        offer = _goblimon_attacks(battle, ids, "agumon")[0]
        with pytest.raises(InvalidCommand):
            battle.do("skip_intercede", request_id=offer.id, tamer_id="tai", character_opt_outs=[ids["tai"]])

    def test_skip_after_claim_conflicts(self, battle, skirmish):
        ids = skirmish
        offer = _goblimon_attacks(battle, ids, "tai")[0]
        battle.do("claim_intercede", request_id=offer.id, interceptor_id=ids["agumon"], tamer_id="tai")
        with pytest.raises(Conflict):
            battle.do("skip_intercede", request_id=offer.id, tamer_id="tai")
