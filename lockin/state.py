"""
LOCKIN - Module État Partagé
----------------------------
État partagé entre le moteur d'automatisation et l'interface.
Chaque champ possède son propre verrou : aucune opération ne demande
un instantané atomique de plusieurs champs.
"""

import logging
from dataclasses import dataclass
from threading import Lock
from typing import Optional, Dict, List, Tuple

from .config import (
    DEFAULT_TOGGLES, MAX_QUEUED_PICKS,
    TOGGLE_AUTO_PICK_BAN, TOGGLE_AUTO_SPELLS
)
from .lcu import ConnectionStatus


# ───────────────────────────────────────────────────────────────────────────
# ERREURS DE SÉLECTION
# ───────────────────────────────────────────────────────────────────────────

class SelectionError(Exception):
    """Saisie opérateur refusée, jamais transmise au réseau."""


class DuplicateSelection(SelectionError):
    pass


class SelectionFull(SelectionError):
    pass


class UnknownChampion(SelectionError):
    pass


class IncompleteSpellSelection(SelectionError):
    pass


# ───────────────────────────────────────────────────────────────────────────
# TYPES DE VALEUR
# ───────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ChampionChoice:
    """Champion choisi par l'opérateur. Nom vide = emplacement volontairement ignoré."""
    champion_id: int
    name: str

    @property
    def is_skip(self) -> bool:
        return self.name == ""


SKIP_CHOICE = ChampionChoice(0, "")


@dataclass(frozen=True)
class SpellPair:
    """Les deux sorts d'invocateur choisis (l'ordre compte)."""
    first: Optional[str] = None
    second: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.first) and bool(self.second)

    def swap(self) -> "SpellPair":
        return SpellPair(self.second, self.first)

    def with_first(self, name: str) -> "SpellPair":
        """Choisir pour le slot 1 le sort du slot 2 échange les deux slots."""
        if name == self.second:
            return self.swap()
        return SpellPair(name, self.second)

    def with_second(self, name: str) -> "SpellPair":
        if name == self.first:
            return self.swap()
        return SpellPair(self.first, name)


# ───────────────────────────────────────────────────────────────────────────
# ÉTAT PARTAGÉ
# ───────────────────────────────────────────────────────────────────────────

class SharedAutomationState:
    """
    Stockage synchronisé des intentions de l'opérateur (toggles, picks, ban,
    sorts) et de ce que publie le moteur (statut, rôle, connexion).

    La file de picks et le ban forment un seul champ « sélection » : un
    effacement n'est jamais observé à moitié.
    """

    def __init__(self, toggles: Optional[Dict[str, bool]] = None):
        self._toggles: Dict[str, bool] = dict(DEFAULT_TOGGLES)
        if toggles:
            self._toggles.update(toggles)
        self._toggle_locks: Dict[str, Lock] = {key: Lock() for key in self._toggles}

        self._selection_lock = Lock()
        self._picks: List[ChampionChoice] = []
        self._ban: Optional[ChampionChoice] = None

        self._spells_lock = Lock()
        self._spells = SpellPair()

        self._status_lock = Lock()
        self._status: str = ""

        # Rôle et sorts équipés sont publiés ensemble
        self._role_lock = Lock()
        self._role: Optional[str] = None
        self._current_spell_ids: Tuple[Optional[int], Optional[int]] = (None, None)

        self._connection_lock = Lock()
        self._connection = ConnectionStatus.not_found()

    # Toggles

    def is_enabled(self, key: str) -> bool:
        with self._toggle_locks[key]:
            return self._toggles[key]

    def set_toggle(self, key: str, value: bool) -> None:
        with self._toggle_locks[key]:
            self._toggles[key] = bool(value)
        logging.info(f"Toggle {key} = {bool(value)}")

    def toggle(self, key: str) -> bool:
        with self._toggle_locks[key]:
            self._toggles[key] = not self._toggles[key]
            value = self._toggles[key]
        logging.info(f"Toggle {key} = {value}")
        return value

    # Sélection picks / ban

    def picks(self) -> List[ChampionChoice]:
        with self._selection_lock:
            return list(self._picks)

    def ban(self) -> Optional[ChampionChoice]:
        with self._selection_lock:
            return self._ban

    def selection_snapshot(self) -> Tuple[Tuple[ChampionChoice, ...], Optional[ChampionChoice]]:
        """Copie à l'instant t de la file de picks et du ban."""
        with self._selection_lock:
            return tuple(self._picks), self._ban

    def _is_queued(self, choice: ChampionChoice) -> bool:
        if choice.is_skip:
            return False
        queued = [p for p in self._picks if not p.is_skip]
        if self._ban and not self._ban.is_skip:
            queued.append(self._ban)
        return any(c.champion_id == choice.champion_id for c in queued)

    def queue_champion(self, choice: ChampionChoice) -> None:
        """
        Ajoute un champion (ou un emplacement ignoré) à la file de picks.

        Raises:
            SelectionFull: la file contient déjà 2 entrées
            DuplicateSelection: champion déjà sélectionné
        """
        with self._selection_lock:
            if len(self._picks) >= MAX_QUEUED_PICKS:
                raise SelectionFull(f"{MAX_QUEUED_PICKS} picks maximum.")
            if self._is_queued(choice):
                raise DuplicateSelection("Champion has already been selected.")
            self._picks.append(choice)
        logging.info(f"Pick ajouté : {choice.name or '(aucun)'}")

    def set_ban(self, choice: ChampionChoice) -> None:
        """
        Définit le ban (un seul à la fois, effacer pour le remplacer).

        Raises:
            SelectionFull: un ban est déjà défini
            DuplicateSelection: champion déjà sélectionné
        """
        with self._selection_lock:
            if self._ban is not None:
                raise SelectionFull("A ban is already set.")
            if self._is_queued(choice):
                raise DuplicateSelection("Champion has already been selected.")
            self._ban = choice
        logging.info(f"Ban défini : {choice.name or '(aucun)'}")

    def clear_selection(self) -> None:
        with self._selection_lock:
            self._picks.clear()
            self._ban = None
        logging.info("Picks et ban effacés.")

    def clear_if_opted_out(self) -> bool:
        """
        Deux picks ignorés + ban ignoré : tout effacer et couper l'auto pick/ban.

        Returns:
            True si la sélection a été effacée
        """
        with self._selection_lock:
            opted_out = (
                len(self._picks) == MAX_QUEUED_PICKS
                and all(p.is_skip for p in self._picks)
                and self._ban is not None
                and self._ban.is_skip
            )
            if opted_out:
                self._picks.clear()
                self._ban = None
        if opted_out:
            self.set_toggle(TOGGLE_AUTO_PICK_BAN, False)
            logging.info("Aucun pick ni ban souhaité : auto pick/ban désactivé.")
        return opted_out

    # Sorts d'invocateur

    def spell_pair(self) -> SpellPair:
        with self._spells_lock:
            return self._spells

    def set_spell_pair(self, pair: SpellPair) -> None:
        with self._spells_lock:
            self._spells = pair

    def choose_spell(self, slot: int, name: str) -> SpellPair:
        """Choisit un sort pour le slot 1 ou 2 (échange si déjà dans l'autre)."""
        with self._spells_lock:
            if slot == 1:
                self._spells = self._spells.with_first(name)
            else:
                self._spells = self._spells.with_second(name)
            return self._spells

    def spells_incomplete(self) -> bool:
        """Auto-sélection active mais un des deux sorts manque."""
        return self.is_enabled(TOGGLE_AUTO_SPELLS) and not self.spell_pair().is_complete

    # Publications du moteur

    @property
    def status(self) -> str:
        with self._status_lock:
            return self._status

    def set_status(self, text: str) -> None:
        with self._status_lock:
            changed = text != self._status
            self._status = text
        if changed:
            logging.info(f"Statut : {text}")

    @property
    def assigned_role(self) -> Optional[str]:
        with self._role_lock:
            return self._role

    def set_assigned_role(self, role: Optional[str]) -> None:
        with self._role_lock:
            self._role = role or None

    @property
    def current_spell_ids(self) -> Tuple[Optional[int], Optional[int]]:
        """Sorts actuellement équipés dans la session (ids), publiés avec le rôle."""
        with self._role_lock:
            return self._current_spell_ids

    def set_current_spell_ids(self, spell1_id: Optional[int], spell2_id: Optional[int]) -> None:
        with self._role_lock:
            self._current_spell_ids = (spell1_id or None, spell2_id or None)

    @property
    def connection(self) -> ConnectionStatus:
        with self._connection_lock:
            return self._connection

    def set_connection(self, status: ConnectionStatus) -> None:
        with self._connection_lock:
            self._connection = status
