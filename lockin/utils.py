"""
LOCKIN - Module Utilitaires
---------------------------
Instance unique, vérification de mise à jour, DPI.
"""

import os
import logging
from typing import Optional

import psutil
import requests

from .config import LOCKFILE_PATH, RELEASES_API, CURRENT_VERSION, APP_NAME


# ───────────────────────────────────────────────────────────────────────────
# HIGH DPI AWARENESS (Windows)
# ───────────────────────────────────────────────────────────────────────────

def enable_high_dpi() -> None:
    """Active la gestion du High DPI sous Windows (sans effet ailleurs)."""
    try:
        from ctypes import windll
        windll.shcore.SetProcessDpiAwareness(1)
    except (ImportError, AttributeError, OSError):
        pass


# ───────────────────────────────────────────────────────────────────────────
# SINGLE INSTANCE (LOCKFILE)
# ───────────────────────────────────────────────────────────────────────────

def check_single_instance(path: str = LOCKFILE_PATH) -> bool:
    """
    Vérifie qu'une seule instance de l'application est en cours.

    Returns:
        True si cette instance peut continuer, False si une autre existe déjà
    """
    if os.path.exists(path):
        try:
            with open(path, 'r') as f:
                pid = int(f.read())
            if pid != os.getpid() and psutil.pid_exists(pid):
                logging.info(f"Instance existante détectée (PID: {pid})")
                return False
        except (ValueError, OSError):
            pass

    try:
        with open(path, 'w') as f:
            f.write(str(os.getpid()))
    except OSError as e:
        logging.warning(f"Lockfile non écrit : {e}")

    return True


def remove_lockfile(path: str = LOCKFILE_PATH) -> None:
    """Supprime le lockfile lors de la fermeture."""
    try:
        if os.path.exists(path):
            os.remove(path)
    except OSError:
        pass


# ───────────────────────────────────────────────────────────────────────────
# UPDATE CHECKING (Releases API)
# ───────────────────────────────────────────────────────────────────────────

def compare_versions(current: str, remote: str) -> bool:
    """
    Compare deux versions sémantiques.

    Args:
        current: Version actuelle (ex: "1.0")
        remote: Version distante (ex: "1.1")

    Returns:
        True si remote > current
    """
    try:
        current_parts = [int(x) for x in current.split(".")]
        remote_parts = [int(x) for x in remote.split(".")]

        max_len = max(len(current_parts), len(remote_parts))
        current_parts.extend([0] * (max_len - len(current_parts)))
        remote_parts.extend([0] * (max_len - len(remote_parts)))

        return remote_parts > current_parts
    except (ValueError, AttributeError):
        return remote != current


def check_for_updates(api_url: str = RELEASES_API, current: str = CURRENT_VERSION) -> Optional[str]:
    """
    Interroge l'API de releases (format GitHub, champ tag_name).

    Returns:
        Nouvelle version disponible (str) ou None si à jour / désactivé
    """
    if not api_url:
        logging.info("[Update] Aucune URL de releases configurée, vérification ignorée")
        return None

    try:
        logging.info("[Update] Vérification des releases...")
        headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": f"{APP_NAME}-UpdateChecker"
        }
        resp = requests.get(api_url, headers=headers, timeout=10)

        if resp.status_code == 200:
            remote_version = str(resp.json().get("tag_name", "")).lstrip("v").strip()
            logging.info(f"[Update] Version en ligne: {remote_version}, locale: {current}")
            if remote_version and compare_versions(current, remote_version):
                return remote_version
        elif resp.status_code == 404:
            logging.warning("[Update] Aucune release trouvée")
        else:
            logging.warning(f"[Update] Réponse API: {resp.status_code}")

    except requests.RequestException as e:
        logging.warning(f"[Update] Erreur réseau: {e}")
    except ValueError as e:
        logging.warning(f"[Update] Réponse illisible: {e}")

    return None
