"""
LOCKIN - Module LCU (Client Local)
----------------------------------
Découverte du client League of Legends local, informations de connexion
et client HTTP unique vers l'API REST du client (LCU).
"""

import os
import base64
import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any, List, Iterable, Tuple, Union

import psutil
import requests
import urllib3

from .config import (
    LCU_HOST, LCU_USERNAME, REQUEST_TIMEOUT, RIOT_CERT_PATH,
    CLIENT_PROCESS_NAMES, ARG_APP_PORT, ARG_AUTH_TOKEN,
    LOCKFILE_ENV, DEFAULT_LOCKFILE_PATHS,
    EP_GAMEFLOW_SESSION, EP_READY_CHECK_ACCEPT, EP_SESSION,
    EP_GRID_CHAMPION, EP_SESSION_ACTION, EP_MY_SELECTION
)


# ───────────────────────────────────────────────────────────────────────────
# ERREURS
# ───────────────────────────────────────────────────────────────────────────

class LcuError(Exception):
    """Erreur de base pour tout échange avec le client local."""


class ClientNotFound(LcuError):
    """Le client n'est pas lancé (ou ses identifiants sont illisibles)."""


class LcuRequestError(LcuError):
    """Échec réseau ou réponse JSON illisible."""


class MalformedSession(LcuError):
    """La session renvoyée ne contient pas les données attendues."""


# ───────────────────────────────────────────────────────────────────────────
# CONNEXION
# ───────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ConnectionInfo:
    """Point d'accès du client local + identifiant Basic (base64 de riot:<token>)."""
    port: int
    credential: str
    host: str = LCU_HOST

    @classmethod
    def from_token(cls, port: int, token: str) -> "ConnectionInfo":
        raw = f"{LCU_USERNAME}:{token}".encode("utf-8")
        return cls(port=int(port), credential=base64.b64encode(raw).decode("ascii"))

    @property
    def base_url(self) -> str:
        return f"https://{self.host}:{self.port}"

    @property
    def auth_header(self) -> str:
        return f"Basic {self.credential}"


@dataclass(frozen=True)
class ConnectionStatus:
    """Signal publié par le superviseur : Connected{endpoint} ou NotFound."""
    connected: bool
    info: Optional[ConnectionInfo] = None

    @classmethod
    def found(cls, info: ConnectionInfo) -> "ConnectionStatus":
        return cls(connected=True, info=info)

    @classmethod
    def not_found(cls) -> "ConnectionStatus":
        return cls(connected=False)

    @property
    def text(self) -> str:
        if self.connected and self.info:
            return f"Connected to LeagueClient on {self.info.base_url}"
        return "LeagueClient not found, may be closed."


# ───────────────────────────────────────────────────────────────────────────
# DÉCOUVERTE DU CLIENT
# ───────────────────────────────────────────────────────────────────────────

def parse_client_cmdline(args: Iterable[str]) -> Optional[Tuple[int, str]]:
    """
    Extrait (port, token) des arguments de LeagueClientUx.

    Returns:
        (port, token) ou None si l'un des deux manque
    """
    port, token = None, None
    for arg in args or []:
        if arg.startswith(ARG_APP_PORT):
            try:
                port = int(arg[len(ARG_APP_PORT):])
            except ValueError:
                return None
        elif arg.startswith(ARG_AUTH_TOKEN):
            token = arg[len(ARG_AUTH_TOKEN):]
    if port is None or not token:
        return None
    return port, token


def read_lockfile(path: str) -> ConnectionInfo:
    """Lit un lockfile au format name:pid:port:password:protocol."""
    with open(path, "r", encoding="utf-8") as f:
        raw = f.read().strip()
    parts = raw.split(":")
    if len(parts) < 5:
        raise ValueError(f"Format de lockfile invalide : {raw}")
    return ConnectionInfo.from_token(int(parts[2]), parts[3])


def guess_lockfile_paths() -> List[str]:
    """Chemins candidats du lockfile, variable d'environnement en premier."""
    candidates: List[str] = []
    env_path = os.getenv(LOCKFILE_ENV)
    if env_path:
        candidates.append(env_path)
    for p in DEFAULT_LOCKFILE_PATHS:
        if p not in candidates:
            candidates.append(p)
    return candidates


def _scan_processes() -> Optional[ConnectionInfo]:
    """Cherche le processus LeagueClientUx et lit ses arguments."""
    for proc in psutil.process_iter(['name', 'cmdline']):
        try:
            if proc.info.get('name') not in CLIENT_PROCESS_NAMES:
                continue
            parsed = parse_client_cmdline(proc.info.get('cmdline') or [])
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
        if parsed:
            return ConnectionInfo.from_token(*parsed)
    return None


def discover_client() -> ConnectionInfo:
    """
    Localise le client en cours d'exécution.

    Returns:
        ConnectionInfo du client

    Raises:
        ClientNotFound: si aucun client n'est détecté
    """
    info = _scan_processes()
    if info:
        return info

    for path in guess_lockfile_paths():
        if not os.path.exists(path):
            continue
        try:
            return read_lockfile(path)
        except (OSError, ValueError) as e:
            logging.debug(f"[LCU] Lockfile illisible {path}: {e}")

    raise ClientNotFound("LeagueClient introuvable")


# ───────────────────────────────────────────────────────────────────────────
# CLIENT HTTP
# ───────────────────────────────────────────────────────────────────────────

_insecure_warned = False


def resolve_verify() -> Union[str, bool]:
    """
    Certificat racine épinglé si présent, sinon vérification TLS désactivée
    (le client utilise un certificat auto-signé).
    """
    global _insecure_warned
    if os.path.exists(RIOT_CERT_PATH):
        return RIOT_CERT_PATH
    if not _insecure_warned:
        logging.warning(f"[LCU] Certificat {RIOT_CERT_PATH} absent, vérification TLS désactivée")
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
        _insecure_warned = True
    return False


class LcuClient:
    """
    Client HTTP vers un client LCU donné.
    Reconstruit entièrement quand le point d'accès change (jamais modifié).
    """

    def __init__(
        self,
        conn: ConnectionInfo,
        verify: Optional[Union[str, bool]] = None,
        timeout: Optional[float] = REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None
    ):
        self.conn = conn
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({
            "Authorization": conn.auth_header,
            "Accept": "application/json",
        })
        self._session.verify = resolve_verify() if verify is None else verify

    def close(self) -> None:
        self._session.close()

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> requests.Response:
        url = self.conn.base_url + path
        try:
            return self._session.request(method, url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise LcuRequestError(f"{method} {path}: {e}") from e

    def _get_json(self, path: str, allow_error_body: bool = False) -> Any:
        """
        Raises:
            LcuRequestError: statut HTTP >= 400 (sauf allow_error_body) ou JSON illisible
        """
        r = self._request("GET", path)
        if r.status_code >= 400 and not allow_error_body:
            raise LcuRequestError(f"GET {path}: HTTP {r.status_code}")
        try:
            return r.json() if r.text else None
        except ValueError as e:
            raise LcuRequestError(f"GET {path}: JSON invalide ({r.status_code})") from e

    def _get_object(self, path: str, allow_error_body: bool = False) -> Dict[str, Any]:
        data = self._get_json(path, allow_error_body)
        return data if isinstance(data, dict) else {}

    def _send(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> bool:
        r = self._request(method, path, payload)
        if r.status_code >= 400:
            logging.warning(f"[LCU] {method} {path} -> {r.status_code}: {r.text[:200]}")
            return False
        return True

    # Ressources consommées

    def gameflow_session(self) -> Dict[str, Any]:
        """Session gameflow (contient 'phase'). Corps d'erreur si aucune session."""
        return self._get_object(EP_GAMEFLOW_SESSION, allow_error_body=True)

    def accept_ready_check(self) -> bool:
        return self._send("POST", EP_READY_CHECK_ACCEPT)

    def champ_select_session(self) -> Dict[str, Any]:
        return self._get_object(EP_SESSION)

    def grid_champion(self, champion_id: int) -> Dict[str, Any]:
        return self._get_object(EP_GRID_CHAMPION.format(champion_id=champion_id))

    def patch_action(self, action_id: int, body: Dict[str, Any]) -> bool:
        return self._send("PATCH", EP_SESSION_ACTION.format(action_id=action_id), body)

    def set_my_selection(self, spell1_id: int, spell2_id: int) -> bool:
        return self._send("PATCH", EP_MY_SELECTION, {"spell1Id": spell1_id, "spell2Id": spell2_id})
