"""
LOCKIN - Module de Configuration
--------------------------------
Contient toutes les constantes, endpoints, tables de phases et la
configuration du logging.
"""

import os
import sys
import tempfile
import logging
from typing import Dict, Optional

# ───────────────────────────────────────────────────────────────────────────
# APPLICATION METADATA
# ───────────────────────────────────────────────────────────────────────────

APP_NAME: str = "LockIn"
CURRENT_VERSION: str = "1.0"

# Vide = vérification des mises à jour désactivée
RELEASES_API: str = os.getenv("LOCKIN_RELEASES_API", "")

# ───────────────────────────────────────────────────────────────────────────
# DATA DRAGON URLS
# ───────────────────────────────────────────────────────────────────────────

URL_DD_VERSIONS: str = "https://ddragon.leagueoflegends.com/api/versions.json"
URL_DD_CHAMPIONS: str = "https://ddragon.leagueoflegends.com/cdn/{version}/data/en_US/champion.json"
URL_DD_SUMMONERS: str = "https://ddragon.leagueoflegends.com/cdn/{version}/data/en_US/summoner.json"
URL_DD_IMG_SPELL: str = "https://ddragon.leagueoflegends.com/cdn/{version}/img/spell/{filename}"

# ───────────────────────────────────────────────────────────────────────────
# LCU API ENDPOINTS
# ───────────────────────────────────────────────────────────────────────────

LCU_HOST: str = "127.0.0.1"
LCU_USERNAME: str = "riot"

EP_GAMEFLOW_SESSION: str = "/lol-gameflow/v1/session"
EP_READY_CHECK_ACCEPT: str = "/lol-matchmaking/v1/ready-check/accept"
EP_SESSION: str = "/lol-champ-select/v1/session"
EP_GRID_CHAMPION: str = "/lol-champ-select/v1/grid-champions/{champion_id}"
EP_SESSION_ACTION: str = "/lol-champ-select/v1/session/actions/{action_id}"
EP_MY_SELECTION: str = "/lol-champ-select/v1/session/my-selection"

# Processus du client et arguments de ligne de commande
CLIENT_PROCESS_NAMES = ("LeagueClientUx.exe", "LeagueClientUx")
ARG_APP_PORT: str = "--app-port="
ARG_AUTH_TOKEN: str = "--remoting-auth-token="

LOCKFILE_ENV: str = "LOL_LOCKFILE"
DEFAULT_LOCKFILE_PATHS = (
    "C:/Riot Games/League of Legends/lockfile",
    "C:/Program Files/Riot Games/League of Legends/lockfile",
    "C:/Program Files (x86)/Riot Games/League of Legends/lockfile",
    "/Applications/League of Legends.app/Contents/LoL/lockfile",
)

# Pas de timeout par requête : un appel bloqué suspend la boucle
REQUEST_TIMEOUT: Optional[float] = None

# ───────────────────────────────────────────────────────────────────────────
# GAME DATA MAPPINGS
# ───────────────────────────────────────────────────────────────────────────

SUMMONER_SPELL_MAP: Dict[str, int] = {
    "Barrier": 21, "Cleanse": 1, "Exhaust": 3, "Flash": 4, "Ghost": 6,
    "Heal": 7, "Ignite": 14, "Smite": 11, "Teleport": 12
}

SUMMONER_SPELL_LIST: list = sorted(list(SUMMONER_SPELL_MAP.keys()))

JUNGLE_SPELL: str = "Smite"

# ───────────────────────────────────────────────────────────────────────────
# GAMEFLOW PHASES
# ───────────────────────────────────────────────────────────────────────────

STATUS_ACCEPTING: str = "Accepting match"
STATUS_CHAMP_SELECT: str = "Champion Selection"
STATUS_CHAMP_SELECT_AUTO: str = "Champion Selection with Auto-pick/ban ON"
STATUS_UNIMPLEMENTED: str = "Unimplemented Phase: {name}"

PHASE_STATUS_TEXT: Dict[str, str] = {
    "None": "Idling...",
    "Matchmaking": "Looking for a match",
    "Lobby": "In Lobby",
    "ReadyCheck": "Match Found",
    "ChampSelect": STATUS_CHAMP_SELECT,
    "InProgress": "Game in progress...",
    "WaitingForStats": "Waiting for Stats",
    "PreEndOfGame": "Game in progress...",
    "EndOfGame": "Game Ending...",
}

# Attente (secondes) après traitement d'une phase. Absent = pas d'attente.
PHASE_WAIT_SECONDS: Dict[str, float] = {
    "InProgress": 20.0,
    "WaitingForStats": 2.0,
    "PreEndOfGame": 10.0,
    "EndOfGame": 5.0,
    "Unimplemented": 10.0,
}

# Phases qui effacent le rôle assigné affiché
PHASES_CLEARING_ROLE = ("Matchmaking", "Lobby", "EndOfGame", "Unimplemented")

TIMER_PHASE_PLANNING: str = "PLANNING"

# ───────────────────────────────────────────────────────────────────────────
# DELAYS (secondes)
# ───────────────────────────────────────────────────────────────────────────

DISCOVERY_INTERVAL: float = 4.0
ENGINE_TICK: float = 0.5
ERROR_RETRY_DELAY: float = 2.0
CLIENT_WARMUP_DELAY: float = 10.0
BAN_SETTLE_DELAY: float = 10.0
PICK_SETTLE_DELAY: float = 1.0

# ───────────────────────────────────────────────────────────────────────────
# DEFAULT TOGGLES
# ───────────────────────────────────────────────────────────────────────────

TOGGLE_AUTO_ACCEPT: str = "auto_accept_enabled"
TOGGLE_AUTO_PICK_BAN: str = "auto_pick_ban_enabled"
TOGGLE_AUTO_SPELLS: str = "auto_spells_enabled"

DEFAULT_TOGGLES: Dict[str, bool] = {
    TOGGLE_AUTO_ACCEPT: False,
    TOGGLE_AUTO_PICK_BAN: False,
    TOGGLE_AUTO_SPELLS: False,
}

MAX_QUEUED_PICKS: int = 2

# ───────────────────────────────────────────────────────────────────────────
# PATH UTILITIES
# ───────────────────────────────────────────────────────────────────────────

def resource_path(relative_path: str) -> str:
    """
    Retourne le chemin absolu vers une ressource, compatible avec PyInstaller.

    Args:
        relative_path: Chemin relatif vers la ressource (depuis la racine du projet)

    Returns:
        Chemin absolu vers la ressource
    """
    if hasattr(sys, '_MEIPASS'):
        base_path = sys._MEIPASS
    else:
        # config.py est dans lockin/, on remonte d'un niveau
        current_dir = os.path.dirname(os.path.abspath(__file__))
        base_path = os.path.dirname(current_dir)

    if relative_path.startswith("./"):
        relative_path = relative_path[2:]
    elif relative_path.startswith(".\\"):
        relative_path = relative_path[2:]

    return os.path.join(base_path, relative_path)


def get_appdata_path(filename: str) -> str:
    """
    Retourne le chemin vers un fichier dans le dossier de données de l'application.

    Args:
        filename: Nom du fichier

    Returns:
        Chemin complet vers le fichier dans <AppData ou ~>/LockIn/
    """
    app_data_dir = os.getenv('APPDATA') or os.path.expanduser("~")
    app_folder = os.path.join(app_data_dir, APP_NAME)
    try:
        os.makedirs(app_folder, exist_ok=True)
    except OSError:
        app_folder = tempfile.gettempdir()

    return os.path.join(app_folder, filename)


# ───────────────────────────────────────────────────────────────────────────
# FILE PATHS
# ───────────────────────────────────────────────────────────────────────────

RIOT_CERT_PATH: str = resource_path("config/riotgames.pem")
LOCKFILE_PATH: str = os.path.join(tempfile.gettempdir(), 'lockin.lock')
DDRAGON_CACHE_FILE: str = os.path.join(tempfile.gettempdir(), "lockin_ddragon_champions.json")
SPELLS_CACHE_DIR: str = os.path.join(tempfile.gettempdir(), "lockin_spells")


def get_cache_dirs() -> None:
    """Crée les dossiers de cache s'ils n'existent pas."""
    os.makedirs(SPELLS_CACHE_DIR, exist_ok=True)


# ───────────────────────────────────────────────────────────────────────────
# LOGGING CONFIGURATION
# ───────────────────────────────────────────────────────────────────────────

def setup_logging() -> str:
    """
    Configure le logging vers <AppData>/LockIn/app_debug.log.

    Le niveau est lu dans LOCKIN_LOG_LEVEL (INFO par défaut).

    Returns:
        Chemin absolu du fichier de log
    """
    log_path = get_appdata_path("app_debug.log")
    level_name = os.getenv("LOCKIN_LOG_LEVEL", "INFO").upper()

    logging.basicConfig(
        filename=log_path,
        level=getattr(logging, level_name, logging.INFO),
        format='%(asctime)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s',
        encoding='utf-8'
    )

    return log_path
