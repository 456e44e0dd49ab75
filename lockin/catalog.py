"""
LOCKIN - Module Catalogue
-------------------------
Tables statiques champions (nom <-> id) et sorts d'invocateur (nom <-> id),
chargées une fois depuis Data Dragon puis traitées comme immuables.
"""

import os
import re
import json
import logging
import unicodedata
from io import BytesIO
from threading import Lock
from typing import Optional, Dict, Any, List

import requests
from PIL import Image

from .config import (
    URL_DD_VERSIONS, URL_DD_CHAMPIONS, URL_DD_SUMMONERS, URL_DD_IMG_SPELL,
    DDRAGON_CACHE_FILE, SPELLS_CACHE_DIR, SUMMONER_SPELL_MAP,
    get_cache_dirs
)
from .state import ChampionChoice, SKIP_CHOICE, UnknownChampion, SelectionError


class Catalog:
    """
    Catalogue Data Dragon (champions, sorts d'invocateur).
    Gère le cache local des champions et des icônes de sorts.
    """

    def __init__(self):
        self.loaded: bool = False
        self.version: Optional[str] = None
        self.by_norm_name: Dict[str, int] = {}
        self.name_by_id: Dict[int, str] = {}
        self.all_names: List[str] = []
        self.spell_ids: Dict[str, int] = dict(SUMMONER_SPELL_MAP)
        self.spell_images: Dict[str, str] = {}
        self.summoner_loaded: bool = False
        self._image_cache: Dict[str, Image.Image] = {}
        self._cache_lock = Lock()

    @classmethod
    def from_tables(cls, champions: Dict[int, str], spells: Optional[Dict[str, int]] = None) -> "Catalog":
        """Catalogue déjà chargé à partir de tables fournies (sans réseau)."""
        catalog = cls()
        catalog._index_champions(champions)
        if spells is not None:
            catalog.spell_ids = dict(spells)
        catalog.version = "static"
        catalog.loaded = True
        return catalog

    @staticmethod
    def _normalize(s: str) -> str:
        """Normalise un nom pour la recherche (minuscules, sans accents, sans espaces)."""
        s = s.strip().lower()
        s = unicodedata.normalize('NFD', s)
        s = ''.join(c for c in s if unicodedata.category(c) != 'Mn')
        s = re.sub(r"[^a-z0-9]+", "", s)
        return s

    def _index_champions(self, champions: Dict[int, str]) -> None:
        self.name_by_id = {int(cid): name for cid, name in champions.items()}
        self.by_norm_name = {self._normalize(name): cid for cid, name in self.name_by_id.items()}
        self.all_names = sorted(self.name_by_id.values())

    def _load_from_cache(self, target_version: Optional[str] = None) -> bool:
        """Charge les champions depuis le cache local."""
        try:
            if os.path.exists(DDRAGON_CACHE_FILE):
                with open(DDRAGON_CACHE_FILE, "r", encoding="utf-8") as f:
                    payload = json.load(f)
                cached_version = payload.get("version")
                if target_version and cached_version != target_version:
                    return False
                self.version = cached_version
                self._index_champions({int(k): v for k, v in payload.get("name_by_id", {}).items()})
                self.by_norm_name.update({k: int(v) for k, v in payload.get("aliases", {}).items()})
                self.loaded = True
                return True
        except (OSError, ValueError) as e:
            logging.warning(f"Catalogue: Erreur cache - {e}")
        return False

    def _save_cache(self, aliases: Dict[str, int]) -> None:
        try:
            with open(DDRAGON_CACHE_FILE, "w", encoding="utf-8") as f:
                json.dump({
                    "version": self.version,
                    "name_by_id": self.name_by_id,
                    "aliases": aliases,
                }, f)
        except OSError as e:
            logging.warning(f"Catalogue: Erreur sauvegarde cache - {e}")

    def load(self) -> None:
        """Charge la table des champions depuis Data Dragon (cache sinon)."""
        if self.loaded:
            return

        get_cache_dirs()

        online_version = None
        try:
            versions = requests.get(URL_DD_VERSIONS, timeout=5).json()
            online_version = versions[0]
        except (requests.RequestException, ValueError, IndexError) as e:
            logging.warning(f"Catalogue: Versions indisponibles - {e}")

        if self._load_from_cache(target_version=online_version):
            return

        try:
            if not online_version:
                raise ValueError("aucune version en ligne")

            url_champs = URL_DD_CHAMPIONS.format(version=online_version)
            data = requests.get(url_champs, timeout=10).json()
            champs = data.get("data", {})

            names: Dict[int, str] = {}
            aliases: Dict[str, int] = {}
            for champ_slug, info in champs.items():
                champ_id = int(info.get("key"))
                names[champ_id] = info.get("name") or champ_slug
                # Nom interne (ex: MonkeyKing pour Wukong)
                aliases[self._normalize(info.get("id", champ_slug))] = champ_id

            self._index_champions(names)
            for alias, champ_id in aliases.items():
                self.by_norm_name.setdefault(alias, champ_id)

            self.version = online_version
            self.loaded = True
            self._save_cache(aliases)

        except (requests.RequestException, ValueError, TypeError) as e:
            logging.error(f"Catalogue: Erreur chargement - {e}")
            # Fallback minimal
            self._index_champions({86: "Garen", 17: "Teemo", 22: "Ashe", 99: "Lux", 103: "Ahri"})
            self.version = "offline"
            self.loaded = True

    # Champions

    def resolve_champion(self, name: str) -> Optional[int]:
        """Résout un nom de champion vers son ID numérique."""
        self.load()
        if not name:
            return None
        return self.by_norm_name.get(self._normalize(name))

    def id_to_name(self, cid: int) -> Optional[str]:
        self.load()
        return self.name_by_id.get(cid)

    def suggestions(self, text: str, limit: int = 10) -> List[str]:
        """Noms de champions commençant par le texte saisi."""
        self.load()
        prefix = self._normalize(text or "")
        if not prefix:
            return []
        return [n for n in self.all_names if self._normalize(n).startswith(prefix)][:limit]

    def choice_from_entry(self, text: str) -> ChampionChoice:
        """
        Convertit une saisie opérateur en choix de champion.
        Une saisie vide donne l'emplacement « ignoré ».

        Raises:
            UnknownChampion: aucun champion ne correspond exactement
        """
        if not (text or "").strip():
            return SKIP_CHOICE
        cid = self.resolve_champion(text)
        if cid is None:
            raise UnknownChampion("No champion found with the given name.")
        return ChampionChoice(cid, self.name_by_id[cid])

    # Sorts d'invocateur

    def spell_id(self, name: str) -> int:
        """
        Raises:
            SelectionError: sort inconnu
        """
        try:
            return self.spell_ids[name]
        except KeyError:
            raise SelectionError(f"Unknown summoner spell: {name}") from None

    def spell_name(self, spell_id: Optional[int]) -> Optional[str]:
        return next((name for name, sid in self.spell_ids.items() if sid == spell_id), None)

    def load_summoners(self) -> None:
        """Charge les noms de fichiers d'icônes des sorts."""
        if self.summoner_loaded:
            return
        if not self.version or self.version in ("offline", "static"):
            return

        url = URL_DD_SUMMONERS.format(version=self.version)
        try:
            r = requests.get(url, timeout=5)
            if r.status_code == 200:
                data = r.json().get("data", {})
                for info in data.values():
                    name = info.get("name")
                    image_full = info.get("image", {}).get("full")
                    if name and image_full:
                        self.spell_images[name] = image_full
                self.summoner_loaded = True
        except (requests.RequestException, ValueError) as e:
            logging.warning(f"Catalogue: Erreur chargement sorts - {e}")

    def get_spell_icon(self, spell_name: str) -> Optional[Image.Image]:
        """
        Récupère l'icône d'un sort d'invocateur avec cache.

        Args:
            spell_name: Nom du sort

        Returns:
            Image PIL ou None si non trouvée
        """
        if not spell_name:
            return None

        cache_key = f"spell_{spell_name}"
        with self._cache_lock:
            if cache_key in self._image_cache:
                return self._image_cache[cache_key].copy()

        self.load_summoners()
        image_filename = self.spell_images.get(spell_name)
        if not image_filename:
            return None

        local_path = os.path.join(SPELLS_CACHE_DIR, image_filename)
        if os.path.exists(local_path):
            try:
                img = Image.open(local_path)
                with self._cache_lock:
                    self._image_cache[cache_key] = img.copy()
                return img
            except OSError as e:
                logging.debug(f"Catalogue: Icône en cache illisible {local_path}: {e}")

        url = URL_DD_IMG_SPELL.format(version=self.version, filename=image_filename)
        try:
            r = requests.get(url, timeout=5)
            if r.status_code == 200:
                img = Image.open(BytesIO(r.content))
                with open(local_path, "wb") as f:
                    f.write(r.content)
                with self._cache_lock:
                    self._image_cache[cache_key] = img.copy()
                return img
        except (requests.RequestException, OSError) as e:
            logging.warning(f"Catalogue: Erreur téléchargement icône sort - {e}")
        return None
