"""Shared fixtures: a recording fake of the LCU client and a small catalog."""
import pytest

from lockin.catalog import Catalog
from lockin.state import SharedAutomationState
from lockin.lcu import LcuRequestError


class FakeLcuClient:
    """Stands in for LcuClient and records every request it receives."""

    def __init__(self, phases=None, session=None, unavailable=(), sessions=None, grid_errors=()):
        self.phases = list(phases or ["None"])
        self.session = session or {}
        # Payloads returned once each, in order, before falling back to `session`
        self.sessions = list(sessions or [])
        self.unavailable = set(unavailable)
        self.grid_errors = set(grid_errors)
        self.calls = []
        self.fail_next = False
        self.closed = False

    def _check_failure(self):
        if self.fail_next:
            self.fail_next = False
            raise LcuRequestError("connection refused")

    def gameflow_session(self):
        self._check_failure()
        self.calls.append(("GET", "gameflow"))
        phase = self.phases.pop(0) if len(self.phases) > 1 else self.phases[0]
        if phase is None:
            return {"errorCode": "RPC_ERROR", "httpStatus": 404}
        return {"phase": phase}

    def accept_ready_check(self):
        self.calls.append(("POST", "accept"))
        return True

    def champ_select_session(self):
        self._check_failure()
        self.calls.append(("GET", "session"))
        if self.sessions:
            return self.sessions.pop(0)
        return self.session

    def grid_champion(self, champion_id):
        self.calls.append(("GET", "grid", champion_id))
        if champion_id in self.grid_errors:
            raise LcuRequestError(f"GET grid {champion_id}: HTTP 500")
        return {"id": champion_id, "selectionStatus": {"pickedByOtherOrBanned": champion_id in self.unavailable}}

    def patch_action(self, action_id, body):
        self.calls.append(("PATCH", "action", action_id, body))
        return True

    def set_my_selection(self, spell1_id, spell2_id):
        self.calls.append(("PATCH", "my-selection", spell1_id, spell2_id))
        return True

    def close(self):
        self.closed = True

    def requests(self, *prefix):
        return [c for c in self.calls if c[:len(prefix)] == prefix]


def make_session(
    ban_in_progress=False, ban_completed=False,
    pick_in_progress=False, pick_completed=False,
    timer_phase="BAN_PICK", game_id=1, role="middle", local_cell=2, spells=(4, 14)
):
    """Champ-select session with one ban action (id 10) and one pick action (id 20) for the local player."""
    return {
        "gameId": game_id,
        "localPlayerCellId": local_cell,
        "myTeam": [
            {"cellId": 1, "assignedPosition": "top"},
            {"cellId": local_cell, "assignedPosition": role, "spell1Id": spells[0], "spell2Id": spells[1]},
        ],
        "actions": [
            [
                {"id": 9, "actorCellId": 1, "type": "ban", "isInProgress": False, "completed": True},
                {"id": 10, "actorCellId": local_cell, "type": "ban",
                 "isInProgress": ban_in_progress, "completed": ban_completed},
            ],
            [
                {"id": 20, "actorCellId": local_cell, "type": "pick",
                 "isInProgress": pick_in_progress, "completed": pick_completed},
            ],
        ],
        "timer": {"phase": timer_phase},
    }


@pytest.fixture
def catalog():
    return Catalog.from_tables({86: "Garen", 17: "Teemo", 22: "Ashe", 99: "Lux", 103: "Ahri", 62: "Wukong"})


@pytest.fixture
def state():
    return SharedAutomationState()
