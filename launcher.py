"""
LOCKIN - Point d'Entrée
-----------------------
Initialise l'application, démarre les threads (superviseur, moteur)
et gère la fermeture propre.
"""

import sys
import logging
from threading import Thread

from lockin.config import setup_logging, get_cache_dirs, CURRENT_VERSION, APP_NAME
from lockin.utils import enable_high_dpi, check_single_instance, remove_lockfile, check_for_updates
from lockin.state import SharedAutomationState
from lockin.catalog import Catalog
from lockin.core import ConnectionSupervisor, AutomationEngine
from lockin.ui import LockInUI


class LockInApplication:
    """Classe principale gérant le cycle de vie de l'application."""

    def __init__(self):
        """
        Le catalogue est chargé en arrière-plan pour ne pas bloquer l'UI.
        """
        enable_high_dpi()

        if not check_single_instance():
            logging.info("Une autre instance est déjà en cours. Fermeture.")
            sys.exit(0)

        get_cache_dirs()

        self.state = SharedAutomationState()
        self.catalog = Catalog()

        logging.info("Création de l'interface...")
        self.ui = LockInUI(
            state=self.state,
            catalog=self.catalog,
            quit_callback=self.quit_app
        )

        self.supervisor = ConnectionSupervisor(self.state)
        self.engine = AutomationEngine(self.state, self.catalog)

        self._load_catalog_async()
        self._check_updates_async()

        self.supervisor.start()
        self.engine.start()

    def _load_catalog_async(self) -> None:
        """Charge le catalogue Data Dragon en arrière-plan."""
        def load_task():
            logging.info("Chargement du catalogue en arrière-plan...")
            self.catalog.load()
            logging.info(f"Catalogue chargé: {len(self.catalog.all_names)} champions (version {self.catalog.version})")

        Thread(target=load_task, daemon=True, name="catalog-loader").start()

    def _check_updates_async(self) -> None:
        """Vérifie les mises à jour en arrière-plan."""
        def check_task():
            new_version = check_for_updates()
            if new_version:
                logging.info(f"Nouvelle version disponible: {new_version}")
                self.ui.set_update_available(new_version)
            else:
                logging.info("Application à jour.")

        Thread(target=check_task, daemon=True, name="update-checker").start()

    def run(self) -> None:
        """Lance la boucle principale de l'application."""
        logging.info(f"{APP_NAME} v{CURRENT_VERSION} démarré.")
        try:
            self.ui.run()
        finally:
            self.cleanup()

    def quit_app(self) -> None:
        """Ferme l'application proprement."""
        logging.info("Fermeture de l'application...")
        self.supervisor.stop()
        self.engine.stop()
        self.ui.stop()

    def cleanup(self) -> None:
        """Nettoyage final avant fermeture."""
        self.supervisor.stop()
        self.engine.stop()
        remove_lockfile()
        logging.info("Nettoyage terminé.")


def main() -> None:
    """Point d'entrée principal."""
    setup_logging()
    try:
        app = LockInApplication()
        app.run()
    except KeyboardInterrupt:
        logging.info("Interruption clavier détectée.")
    except Exception as e:
        logging.critical(f"Erreur fatale: {e}", exc_info=True)
    finally:
        remove_lockfile()


if __name__ == "__main__":
    main()
