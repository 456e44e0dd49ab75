"""Tests for the connection supervisor and the automation engine loop."""
from lockin.config import TOGGLE_AUTO_PICK_BAN
from lockin.core import AutomationEngine, ConnectionSupervisor
from lockin.lcu import ConnectionInfo, ConnectionStatus, ClientNotFound
from lockin.state import SharedAutomationState, ChampionChoice, SKIP_CHOICE
from tests.conftest import FakeLcuClient, make_session

INFO = ConnectionInfo.from_token(5000, "tok")


def _engine(state, catalog, clients):
    """Engine whose factory hands out the given fake clients in order."""
    built = []

    def factory(info):
        client = clients.pop(0)
        built.append((info, client))
        return client

    engine = AutomationEngine(
        state, catalog, client_factory=factory,
        warmup_delay=0, ban_delay=0, pick_delay=0
    )
    return engine, built


def test_supervisor_publishes_connected(state):
    supervisor = ConnectionSupervisor(state, discover=lambda: INFO)
    status = supervisor.check_once()
    assert status == ConnectionStatus.found(INFO)
    assert state.connection.text == "Connected to LeagueClient on https://127.0.0.1:5000"


def test_supervisor_publishes_not_found(state):
    def discover():
        raise ClientNotFound("no client")

    state.set_connection(ConnectionStatus.found(INFO))
    ConnectionSupervisor(state, discover=discover).check_once()
    assert not state.connection.connected
    assert state.connection.info is None


def test_engine_idles_without_connection(state, catalog):
    engine, built = _engine(state, catalog, [])
    assert engine.run_cycle() == engine.idle_tick
    assert built == []


def test_engine_end_to_end_scenario(catalog):
    """None -> Matchmaking -> ChampSelect with Ahri queued then a skip, no ban."""
    state = SharedAutomationState({TOGGLE_AUTO_PICK_BAN: True})
    state.queue_champion(ChampionChoice(103, "Ahri"))
    state.queue_champion(SKIP_CHOICE)
    state.set_assigned_role("top")
    state.set_connection(ConnectionStatus.found(INFO))

    client = FakeLcuClient(
        phases=["None", "Matchmaking", "ChampSelect"],
        session=make_session(ban_completed=True, pick_in_progress=True),
    )
    engine, _ = _engine(state, catalog, [client])

    engine.run_cycle()
    assert state.status == "Idling..."
    engine.run_cycle()
    assert state.status == "Looking for a match"
    assert state.assigned_role is None
    engine.run_cycle()
    engine.run_cycle()

    assert state.status == "Champion Selection with Auto-pick/ban ON"
    assert state.assigned_role == "middle"
    patches = client.requests("PATCH", "action")
    assert len(patches) == 1
    assert patches[0][3]["championId"] == 103
    assert patches[0][3]["type"] == "pick"


def test_engine_contains_network_failures(state, catalog):
    state.set_connection(ConnectionStatus.found(INFO))
    client = FakeLcuClient(phases=["Lobby"])
    client.fail_next = True
    engine, _ = _engine(state, catalog, [client])

    assert engine.run_cycle() == engine.error_delay
    engine.run_cycle()
    assert state.status == "In Lobby"


def test_engine_contains_malformed_session(state, catalog):
    state.set_connection(ConnectionStatus.found(INFO))
    engine, _ = _engine(state, catalog, [FakeLcuClient(phases=["ChampSelect"], session={})])
    assert engine.run_cycle() == engine.error_delay


def test_engine_rebuilds_client_on_new_endpoint(state, catalog):
    first, second = FakeLcuClient(phases=["Lobby"]), FakeLcuClient(phases=["Lobby"])
    engine, built = _engine(state, catalog, [first, second])

    state.set_connection(ConnectionStatus.found(INFO))
    engine.run_cycle()
    engine.run_cycle()
    assert len(built) == 1

    other = ConnectionInfo.from_token(6000, "new")
    state.set_connection(ConnectionStatus.found(other))
    engine.run_cycle()
    assert [info for info, _ in built] == [INFO, other]
    assert first.closed
    assert second.calls


def test_engine_drops_client_when_disconnected(state, catalog):
    client = FakeLcuClient(phases=["Lobby"])
    engine, _ = _engine(state, catalog, [client])
    state.set_connection(ConnectionStatus.found(INFO))
    engine.run_cycle()

    state.set_connection(ConnectionStatus.not_found())
    assert engine.run_cycle() == engine.idle_tick
    assert client.closed
    assert engine.client is None


def test_leaving_champ_select_resets_commits(catalog):
    state = SharedAutomationState({TOGGLE_AUTO_PICK_BAN: True})
    state.queue_champion(ChampionChoice(103, "Ahri"))
    state.set_connection(ConnectionStatus.found(INFO))
    client = FakeLcuClient(
        phases=["ChampSelect", "Lobby", "ChampSelect"],
        session=make_session(ban_completed=True, pick_in_progress=True),
    )
    engine, _ = _engine(state, catalog, [client])

    for _ in range(3):
        engine.run_cycle()
    assert len(client.requests("PATCH", "action")) == 2


def test_stop_ends_wait(state, catalog):
    engine, _ = _engine(state, catalog, [])
    engine.stop()
    engine._wait(30)
