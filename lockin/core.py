"""
LOCKIN - Module Core (Logique Métier)
-------------------------------------
Superviseur de connexion, boucle d'automatisation par phase, sélection
des sorts et coordination pick/ban en sélection des champions.
Ce module est agnostique de l'interface (pas d'import tkinter).
"""

import time
import logging
from enum import Enum, IntEnum
from dataclasses import dataclass
from threading import Thread, Event
from typing import Optional, Dict, Any, Callable, Tuple, Sequence

import psutil

from .config import (
    PHASE_STATUS_TEXT, PHASE_WAIT_SECONDS, PHASES_CLEARING_ROLE,
    STATUS_ACCEPTING, STATUS_CHAMP_SELECT, STATUS_CHAMP_SELECT_AUTO, STATUS_UNIMPLEMENTED,
    TIMER_PHASE_PLANNING, JUNGLE_SPELL,
    TOGGLE_AUTO_ACCEPT, TOGGLE_AUTO_PICK_BAN, TOGGLE_AUTO_SPELLS,
    DISCOVERY_INTERVAL, ENGINE_TICK, ERROR_RETRY_DELAY, CLIENT_WARMUP_DELAY,
    BAN_SETTLE_DELAY, PICK_SETTLE_DELAY
)
from .lcu import (
    LcuClient, ConnectionInfo, ConnectionStatus, LcuError, ClientNotFound,
    MalformedSession, discover_client
)
from .state import (
    SharedAutomationState, SpellPair, ChampionChoice, IncompleteSpellSelection
)
from .catalog import Catalog


# ───────────────────────────────────────────────────────────────────────────
# GAMEFLOW PHASES
# ───────────────────────────────────────────────────────────────────────────

class GameflowPhase(Enum):
    NONE = "None"
    MATCHMAKING = "Matchmaking"
    LOBBY = "Lobby"
    READY_CHECK = "ReadyCheck"
    CHAMP_SELECT = "ChampSelect"
    IN_PROGRESS = "InProgress"
    WAITING_FOR_STATS = "WaitingForStats"
    PRE_END_OF_GAME = "PreEndOfGame"
    END_OF_GAME = "EndOfGame"
    UNIMPLEMENTED = "Unimplemented"


@dataclass(frozen=True)
class PhaseReading:
    """Phase classée + nom brut renvoyé par le client."""
    phase: GameflowPhase
    name: str

    @classmethod
    def from_session(cls, session: Optional[Dict[str, Any]]) -> "PhaseReading":
        raw = session.get("phase") if isinstance(session, dict) else None
        if not raw:
            return cls(GameflowPhase.NONE, GameflowPhase.NONE.value)
        try:
            return cls(GameflowPhase(raw), raw)
        except ValueError:
            return cls(GameflowPhase.UNIMPLEMENTED, str(raw))


def status_sequence(reading: PhaseReading, auto_accept: bool = False) -> Tuple[str, ...]:
    """
    Textes de statut successifs pour une phase (fonction pure).
    Seule ReadyCheck dépend du toggle d'acceptation automatique.
    """
    if reading.phase is GameflowPhase.UNIMPLEMENTED:
        return (STATUS_UNIMPLEMENTED.format(name=reading.name),)
    final = PHASE_STATUS_TEXT[reading.phase.value]
    if reading.phase is GameflowPhase.READY_CHECK and auto_accept:
        return (STATUS_ACCEPTING, final)
    return (final,)


def status_text(reading: PhaseReading, auto_accept: bool = False) -> str:
    return status_sequence(reading, auto_accept)[-1]


def wait_seconds(reading: PhaseReading) -> float:
    return PHASE_WAIT_SECONDS.get(reading.phase.value, 0.0)


# ───────────────────────────────────────────────────────────────────────────
# SORTS D'INVOCATEUR
# ───────────────────────────────────────────────────────────────────────────

class SpellSelector:
    """Résout les deux sorts à soumettre selon le rôle assigné."""

    def __init__(self, state: SharedAutomationState, catalog: Catalog):
        self.state = state
        self.catalog = catalog

    @staticmethod
    def apply_role_policy(pair: SpellPair, role: Optional[str]) -> SpellPair:
        """
        En jungle sans Châtiment, force Smite en gardant Flash/Ghost s'il y en a un.
        Sinon la paire est renvoyée telle quelle.
        """
        if "jungle" not in (role or "").lower():
            return pair
        if JUNGLE_SPELL in (pair.first, pair.second):
            return pair
        if pair.first == "Flash":
            return SpellPair("Flash", JUNGLE_SPELL)
        if pair.first == "Ghost":
            return SpellPair("Ghost", JUNGLE_SPELL)
        if pair.second == "Flash":
            return SpellPair(JUNGLE_SPELL, "Flash")
        if pair.second == "Ghost":
            return SpellPair(JUNGLE_SPELL, "Ghost")
        return SpellPair(JUNGLE_SPELL, pair.second)

    def resolve(self, pair: SpellPair, role: Optional[str]) -> Tuple[SpellPair, Tuple[int, int]]:
        """
        Returns:
            (paire ajustée, (spell1Id, spell2Id))

        Raises:
            IncompleteSpellSelection: un des deux sorts n'est pas choisi
        """
        if not pair.is_complete:
            raise IncompleteSpellSelection("Both summoner spells need to be selected")
        adjusted = self.apply_role_policy(pair, role)
        return adjusted, (self.catalog.spell_id(adjusted.first), self.catalog.spell_id(adjusted.second))

    def run(self, client: LcuClient, role: Optional[str]) -> bool:
        """Soumet les deux sorts en un seul PATCH. Returns: True si soumis."""
        pair = self.state.spell_pair()
        try:
            adjusted, (spell1_id, spell2_id) = self.resolve(pair, role)
        except IncompleteSpellSelection:
            logging.debug("Sorts incomplets, aucune soumission.")
            return False

        # La préférence elle-même est modifiée, pas seulement l'envoi
        if adjusted != pair:
            self.state.set_spell_pair(adjusted)
            logging.info(f"Rôle jungle : sorts ajustés {pair.first}/{pair.second} -> {adjusted.first}/{adjusted.second}")

        client.set_my_selection(spell1_id, spell2_id)
        return True


# ───────────────────────────────────────────────────────────────────────────
# SUIVI DES ENGAGEMENTS (un ban et un pick par session)
# ───────────────────────────────────────────────────────────────────────────

class CommitStage(IntEnum):
    IDLE = 0
    BAN_PENDING = 1
    BAN_COMMITTED = 2
    PICK_PENDING = 3
    PICK_COMMITTED = 4


class CommitTracker:
    """
    Machine à états par session, qui n'avance jamais en arrière.
    Remise à zéro quand la phase quitte ChampSelect ou que la session change.
    """

    def __init__(self):
        self.stage: CommitStage = CommitStage.IDLE
        self.session_key: Optional[Any] = None

    def reset(self) -> None:
        self.stage = CommitStage.IDLE
        self.session_key = None

    def observe_session(self, key: Optional[Any]) -> None:
        """Une clé absente ne prouve pas un changement de session : ignorée."""
        if key is None:
            return
        if key != self.session_key:
            if self.session_key is not None:
                logging.info(f"Nouvelle session de sélection ({self.session_key} -> {key})")
            self.stage = CommitStage.IDLE
            self.session_key = key

    def advance(self, stage: CommitStage) -> None:
        if stage > self.stage:
            self.stage = stage

    @property
    def can_commit_ban(self) -> bool:
        return self.stage < CommitStage.BAN_PENDING

    @property
    def can_commit_pick(self) -> bool:
        return self.stage < CommitStage.PICK_PENDING


# ───────────────────────────────────────────────────────────────────────────
# SÉLECTION DES CHAMPIONS
# ───────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Action:
    id: int
    actor_cell_id: Optional[int]
    type: str
    in_progress: bool
    completed: bool

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Action":
        return cls(
            id=int(data.get("id") or 0),
            actor_cell_id=data.get("actorCellId"),
            type=data.get("type") or "",
            in_progress=bool(data.get("isInProgress")),
            completed=bool(data.get("completed")),
        )


NO_ACTION = Action(id=0, actor_cell_id=None, type="", in_progress=False, completed=False)


def local_actions(session: Dict[str, Any], local_cell: int) -> Tuple[Action, Action]:
    """
    Deux premières actions du joueur local dans l'ordre des files :
    la première est le ban, la seconde le pick.
    """
    mine = [
        Action.from_json(action)
        for group in session.get("actions") or []
        for action in group or []
        if isinstance(action, dict) and action.get("actorCellId") == local_cell
    ][:2]
    mine.extend([NO_ACTION] * (2 - len(mine)))
    return mine[0], mine[1]


class ChampSelectCoordinator:
    """Décide et soumet au plus un ban et un pick par session de sélection."""

    def __init__(
        self,
        state: SharedAutomationState,
        spells: SpellSelector,
        sleep: Callable[[float], Any] = time.sleep,
        ban_delay: float = BAN_SETTLE_DELAY,
        pick_delay: float = PICK_SETTLE_DELAY,
        on_pick_committed: Optional[Callable[[ChampionChoice], None]] = None
    ):
        self.state = state
        self.spells = spells
        self.tracker = CommitTracker()
        self._sleep = sleep
        self.ban_delay = ban_delay
        self.pick_delay = pick_delay
        # Emplacement réservé pour la page de runes (aucune logique)
        self.on_pick_committed = on_pick_committed

    def reset(self) -> None:
        self.tracker.reset()

    def _fetch_session(self, client: LcuClient) -> Tuple[Dict[str, Any], int]:
        """
        Session de sélection validée, clé de session transmise au tracker.

        Raises:
            MalformedSession: localPlayerCellId absent (corps d'erreur par exemple)
        """
        session = client.champ_select_session()
        local_cell = session.get("localPlayerCellId")
        if local_cell is None:
            raise MalformedSession("localPlayerCellId absent de la session")
        self.tracker.observe_session(session.get("gameId"))
        return session, local_cell

    def run_cycle(self, client: LcuClient) -> None:
        """Un passage de la boucle en phase ChampSelect."""
        session, local_cell = self._fetch_session(client)

        me = next((p for p in session.get("myTeam") or [] if p.get("cellId") == local_cell), None)
        if me is None:
            raise MalformedSession(f"Joueur local {local_cell} absent de myTeam")
        role = me.get("assignedPosition") or ""
        self.state.set_assigned_role(role)
        self.state.set_current_spell_ids(me.get("spell1Id"), me.get("spell2Id"))

        if self.state.is_enabled(TOGGLE_AUTO_SPELLS):
            self.spells.run(client, role)

        if not self.state.is_enabled(TOGGLE_AUTO_PICK_BAN):
            self.state.set_status(STATUS_CHAMP_SELECT)
            return

        self.state.set_status(STATUS_CHAMP_SELECT_AUTO)
        picks, ban = self.state.selection_snapshot()
        if not picks and ban is None:
            return

        # Les ids d'actions ne valent que pour la session en cours : relus à chaque cycle
        session, local_cell = self._fetch_session(client)
        ban_action, pick_action = local_actions(session, local_cell)
        timer_phase = (session.get("timer") or {}).get("phase")

        self._try_ban(client, local_cell, ban, ban_action, timer_phase)
        self._try_pick(client, local_cell, picks, ban_action, pick_action, timer_phase)

        self.state.clear_if_opted_out()

    @staticmethod
    def _action_body(local_cell: int, choice: ChampionChoice, action_id: int, kind: str) -> Dict[str, Any]:
        return {
            "actorCellId": local_cell,
            "championId": choice.champion_id,
            "completed": True,
            "id": action_id,
            "isAllyAction": True,
            "type": kind,
        }

    @staticmethod
    def _unavailable(client: LcuClient, champion_id: int) -> bool:
        """Champion déjà pris ou banni par quelqu'un d'autre."""
        grid = client.grid_champion(champion_id)
        return (grid.get("selectionStatus") or {}).get("pickedByOtherOrBanned") is True

    def _try_ban(
        self, client: LcuClient, local_cell: int, ban: Optional[ChampionChoice],
        ban_action: Action, timer_phase: Optional[str]
    ) -> bool:
        if ban is None or ban.is_skip:
            return False
        if not self.tracker.can_commit_ban:
            return False
        if not ban_action.in_progress or ban_action.completed:
            return False
        if timer_phase == TIMER_PHASE_PLANNING:
            return False
        if self._unavailable(client, ban.champion_id):
            logging.debug(f"Ban ignoré : {ban.name} déjà pris ou banni")
            return False

        self.tracker.advance(CommitStage.BAN_PENDING)
        client.patch_action(ban_action.id, self._action_body(local_cell, ban, ban_action.id, "ban"))
        self.tracker.advance(CommitStage.BAN_COMMITTED)
        logging.info(f"Ban soumis : {ban.name} (action {ban_action.id})")
        self._sleep(self.ban_delay)
        return True

    def _try_pick(
        self, client: LcuClient, local_cell: int, picks: Sequence[ChampionChoice],
        ban_action: Action, pick_action: Action, timer_phase: Optional[str]
    ) -> bool:
        if not self.tracker.can_commit_pick:
            return False
        if timer_phase == TIMER_PHASE_PLANNING:
            return False
        if not pick_action.in_progress or pick_action.completed:
            return False
        # Le pick ne peut pas être verrouillé avant la résolution du ban
        if ban_action.in_progress or not ban_action.completed:
            return False

        for choice in picks:
            if choice.is_skip:
                continue
            if self._unavailable(client, choice.champion_id):
                logging.debug(f"Pick ignoré : {choice.name} déjà pris ou banni")
                continue

            self.tracker.advance(CommitStage.PICK_PENDING)
            client.patch_action(pick_action.id, self._action_body(local_cell, choice, pick_action.id, "pick"))
            self.tracker.advance(CommitStage.PICK_COMMITTED)
            logging.info(f"Pick verrouillé : {choice.name} (action {pick_action.id})")
            if self.on_pick_committed:
                self.on_pick_committed(choice)
            self._sleep(self.pick_delay)
            return True
        return False


# ───────────────────────────────────────────────────────────────────────────
# PHASES
# ───────────────────────────────────────────────────────────────────────────

class PhasePoller:
    """Lit la phase gameflow et applique statut, effets et attente associés."""

    def __init__(self, state: SharedAutomationState, coordinator: ChampSelectCoordinator):
        self.state = state
        self.coordinator = coordinator
        self.last_reading: Optional[PhaseReading] = None
        self._accepted = False

    def fetch(self, client: LcuClient) -> PhaseReading:
        return PhaseReading.from_session(client.gameflow_session())

    def poll(self, client: LcuClient) -> float:
        """
        Un cycle : lecture de la phase puis traitement.

        Returns:
            Attente (secondes) avant le cycle suivant
        """
        reading = self.fetch(client)
        if self.last_reading is None or reading != self.last_reading:
            previous = self.last_reading.name if self.last_reading else "?"
            logging.info(f"Phase changée : {previous} -> {reading.name}")
        self.last_reading = reading

        if reading.phase is not GameflowPhase.READY_CHECK:
            self._accepted = False

        if reading.phase is GameflowPhase.CHAMP_SELECT:
            self.coordinator.run_cycle(client)
        else:
            self.coordinator.reset()
            self.apply(reading, client)
        return wait_seconds(reading)

    def apply(self, reading: PhaseReading, client: LcuClient) -> None:
        """Effets et statut d'une phase hors ChampSelect."""
        if reading.phase.value in PHASES_CLEARING_ROLE:
            self.state.set_assigned_role(None)
            self.state.set_current_spell_ids(None, None)

        auto_accept = (
            reading.phase is GameflowPhase.READY_CHECK
            and self.state.is_enabled(TOGGLE_AUTO_ACCEPT)
        )
        texts = status_sequence(reading, auto_accept)
        if auto_accept and not self._accepted:
            self.state.set_status(texts[0])
            client.accept_ready_check()
            self._accepted = True
            logging.info("Partie acceptée !")
        self.state.set_status(texts[-1])


# ───────────────────────────────────────────────────────────────────────────
# SUPERVISEUR DE CONNEXION
# ───────────────────────────────────────────────────────────────────────────

class ConnectionSupervisor:
    """Relance la découverte du client en boucle et publie l'état de connexion."""

    def __init__(
        self,
        state: SharedAutomationState,
        discover: Callable[[], ConnectionInfo] = discover_client,
        interval: float = DISCOVERY_INTERVAL
    ):
        self.state = state
        self._discover = discover
        self.interval = interval
        self._stop_event = Event()

    def check_once(self) -> ConnectionStatus:
        try:
            status = ConnectionStatus.found(self._discover())
        except ClientNotFound:
            status = ConnectionStatus.not_found()
        except (LcuError, psutil.Error, OSError) as e:
            logging.warning(f"[Supervisor] Découverte impossible : {e}")
            status = ConnectionStatus.not_found()

        # Anti-spam log
        if status != self.state.connection:
            logging.info(f"[Supervisor] {status.text}")
        self.state.set_connection(status)
        return status

    def start(self) -> None:
        Thread(target=self._loop, daemon=True, name="connection-supervisor").start()

    def stop(self) -> None:
        self._stop_event.set()

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            self.check_once()
            self._stop_event.wait(self.interval)


# ───────────────────────────────────────────────────────────────────────────
# MOTEUR D'AUTOMATISATION
# ───────────────────────────────────────────────────────────────────────────

class AutomationEngine:
    """
    Boucle unique : phases, sélection des champions et des sorts.
    Thread-safe : ne communique avec l'UI qu'à travers l'état partagé.
    """

    def __init__(
        self,
        state: SharedAutomationState,
        catalog: Catalog,
        client_factory: Callable[[ConnectionInfo], LcuClient] = LcuClient,
        warmup_delay: float = CLIENT_WARMUP_DELAY,
        idle_tick: float = ENGINE_TICK,
        error_delay: float = ERROR_RETRY_DELAY,
        ban_delay: float = BAN_SETTLE_DELAY,
        pick_delay: float = PICK_SETTLE_DELAY
    ):
        self.state = state
        self._client_factory = client_factory
        self.warmup_delay = warmup_delay
        self.idle_tick = idle_tick
        self.error_delay = error_delay
        self._stop_event = Event()

        self.client: Optional[LcuClient] = None
        self._client_info: Optional[ConnectionInfo] = None

        self.spells = SpellSelector(state, catalog)
        self.coordinator = ChampSelectCoordinator(
            state, self.spells, sleep=self._wait,
            ban_delay=ban_delay, pick_delay=pick_delay
        )
        self.poller = PhasePoller(state, self.coordinator)

    def _wait(self, seconds: float) -> None:
        if seconds > 0:
            self._stop_event.wait(seconds)

    def start(self) -> None:
        Thread(target=self._loop, daemon=True, name="automation-engine").start()

    def stop(self) -> None:
        self._stop_event.set()

    def _drop_client(self) -> None:
        if self.client:
            self.client.close()
        self.client = None
        self._client_info = None
        self.coordinator.reset()

    def current_client(self) -> Optional[LcuClient]:
        """Client HTTP du point d'accès publié, reconstruit s'il a changé."""
        status = self.state.connection
        if not status.connected or status.info is None:
            if self.client:
                logging.info("[Engine] Client perdu.")
                self._drop_client()
            return None

        if status.info != self._client_info:
            self._drop_client()
            self.client = self._client_factory(status.info)
            self._client_info = status.info
            logging.info(f"[Engine] Client HTTP prêt pour {status.info.base_url}")
            # Le client vient de démarrer, son API n'est pas encore prête
            self._wait(self.warmup_delay)
        return self.client

    def run_cycle(self) -> float:
        """
        Un passage de la boucle. Une erreur réseau n'interrompt que ce cycle.

        Returns:
            Attente (secondes) avant le passage suivant
        """
        client = self.current_client()
        if client is None:
            return self.idle_tick

        try:
            wait = self.poller.poll(client)
        except LcuError as e:
            logging.warning(f"[Engine] Cycle interrompu : {e}")
            return self.error_delay
        return max(wait, self.idle_tick)

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                wait = self.run_cycle()
            except Exception as e:
                logging.error(f"[Engine] Erreur inattendue : {e}", exc_info=True)
                wait = self.error_delay
            self._wait(wait)
