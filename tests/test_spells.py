"""Tests for summoner spell resolution and the jungle override."""
import pytest

from lockin.config import TOGGLE_AUTO_SPELLS
from lockin.core import SpellSelector, ChampSelectCoordinator
from lockin.state import SpellPair, IncompleteSpellSelection, SharedAutomationState
from tests.conftest import FakeLcuClient, make_session


@pytest.mark.parametrize("pair, expected", [
    (SpellPair("Flash", "Heal"), SpellPair("Flash", "Smite")),
    (SpellPair("Ghost", "Ignite"), SpellPair("Ghost", "Smite")),
    (SpellPair("Heal", "Flash"), SpellPair("Smite", "Flash")),
    (SpellPair("Heal", "Ghost"), SpellPair("Smite", "Ghost")),
    (SpellPair("Heal", "Ignite"), SpellPair("Smite", "Ignite")),
])
def test_jungle_override(pair, expected):
    assert SpellSelector.apply_role_policy(pair, "jungle") == expected


def test_jungle_with_smite_is_untouched():
    pair = SpellPair("Smite", "Flash")
    assert SpellSelector.apply_role_policy(pair, "JUNGLE") == pair


def test_other_roles_are_untouched():
    pair = SpellPair("Flash", "Heal")
    assert SpellSelector.apply_role_policy(pair, "bottom") == pair
    assert SpellSelector.apply_role_policy(pair, None) == pair


def test_resolve_returns_ids(state, catalog):
    selector = SpellSelector(state, catalog)
    adjusted, ids = selector.resolve(SpellPair("Flash", "Heal"), "jungle")
    assert adjusted == SpellPair("Flash", "Smite")
    assert ids == (4, 11)


def test_resolve_incomplete_raises(state, catalog):
    selector = SpellSelector(state, catalog)
    with pytest.raises(IncompleteSpellSelection, match="Both summoner spells need to be selected"):
        selector.resolve(SpellPair("Flash", None), "top")


def test_run_incomplete_makes_no_request(state, catalog):
    state.choose_spell(1, "Flash")
    client = FakeLcuClient()
    assert SpellSelector(state, catalog).run(client, "top") is False
    assert client.calls == []


def test_run_writes_adjusted_pair_back(state, catalog):
    state.set_spell_pair(SpellPair("Heal", "Flash"))
    client = FakeLcuClient()
    assert SpellSelector(state, catalog).run(client, "jungle") is True
    assert state.spell_pair() == SpellPair("Smite", "Flash")
    assert client.requests("PATCH", "my-selection") == [("PATCH", "my-selection", 11, 4)]


def test_champ_select_submits_spells_when_enabled(catalog):
    state = SharedAutomationState({TOGGLE_AUTO_SPELLS: True})
    state.set_spell_pair(SpellPair("Flash", "Ignite"))
    coordinator = ChampSelectCoordinator(state, SpellSelector(state, catalog), sleep=lambda s: None)
    client = FakeLcuClient(session=make_session(role="middle"))

    coordinator.run_cycle(client)

    assert client.requests("PATCH", "my-selection") == [("PATCH", "my-selection", 4, 14)]
    assert state.assigned_role == "middle"
    assert state.status == "Champion Selection"


def test_champ_select_skips_spells_when_disabled(state, catalog):
    state.set_spell_pair(SpellPair("Flash", "Ignite"))
    coordinator = ChampSelectCoordinator(state, SpellSelector(state, catalog), sleep=lambda s: None)
    client = FakeLcuClient(session=make_session())
    coordinator.run_cycle(client)
    assert client.requests("PATCH") == []


def test_run_top_lane_submits_pair_unchanged(state, catalog):
    state.set_spell_pair(SpellPair("Heal", "Ignite"))
    client = FakeLcuClient()
    assert SpellSelector(state, catalog).run(client, "top") is True
    assert state.spell_pair() == SpellPair("Heal", "Ignite")
    assert client.requests("PATCH", "my-selection") == [("PATCH", "my-selection", 7, 14)]
