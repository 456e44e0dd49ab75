"""
LOCKIN - Module Interface Utilisateur
-------------------------------------
Fenêtre principale ttkbootstrap : onglet Settings (picks, ban, sorts,
toggles) et onglet Match State (statut, rôle).

L'interface ne parle au moteur qu'à travers SharedAutomationState et se
rafraîchit par polling (root.after).
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Callable

import tkinter as tk
import ttkbootstrap as ttk
from PIL import Image, ImageTk

from .config import (
    APP_NAME, CURRENT_VERSION, SUMMONER_SPELL_LIST,
    TOGGLE_AUTO_ACCEPT, TOGGLE_AUTO_PICK_BAN, TOGGLE_AUTO_SPELLS
)
from .state import SharedAutomationState, SelectionError, ChampionChoice
from .catalog import Catalog


# ───────────────────────────────────────────────────────────────────────────
# CONSTANTES
# ───────────────────────────────────────────────────────────────────────────

BOOTSTYLE_SUCCESS = "success"
BOOTSTYLE_SECONDARY = "secondary"
BOOTSTYLE_DANGER = "danger"
BOOTSTYLE_WARNING = "warning"

POLL_INTERVAL_MS = 500
ERROR_DISPLAY_MS = 1500
SPELLS_INCOMPLETE_TEXT = "Both summoner spells need to be selected"
CLEARED_TEXT = "Picks and bans cleared."


def choice_label(choice: Optional[ChampionChoice]) -> str:
    """Libellé affiché pour un choix (emplacement ignoré = None)."""
    if choice is None or choice.is_skip:
        return "None"
    return choice.name


# ───────────────────────────────────────────────────────────────────────────
# FENÊTRE PRINCIPALE
# ───────────────────────────────────────────────────────────────────────────

class LockInUI:
    """Interface graphique principale de LockIn."""

    MAX_WORKERS = 2

    def __init__(
        self,
        state: SharedAutomationState,
        catalog: Catalog,
        quit_callback: Callable[[], None],
        theme: str = "darkly"
    ):
        """
        Args:
            state: État partagé avec le moteur
            catalog: Catalogue champions / sorts
            quit_callback: Appelé à la fermeture de la fenêtre
        """
        self.state = state
        self.catalog = catalog
        self._quit_callback = quit_callback
        self.running = True
        self.update_text = ""

        self.executor = ThreadPoolExecutor(max_workers=self.MAX_WORKERS)

        self.root = ttk.Window(themename=theme)
        self.root.title(f"{APP_NAME} {CURRENT_VERSION}")
        self.root.geometry("420x520")
        self.root.resizable(False, False)

        self.pick_var = tk.StringVar()
        self.ban_var = tk.StringVar()
        self.toggle_vars = {
            key: tk.BooleanVar(value=state.is_enabled(key))
            for key in (TOGGLE_AUTO_ACCEPT, TOGGLE_AUTO_PICK_BAN, TOGGLE_AUTO_SPELLS)
        }

        self.create_ui()
        self.root.protocol("WM_DELETE_WINDOW", self._quit_callback)
        self.root.after(POLL_INTERVAL_MS, self._poll_state)

    # Construction

    def create_ui(self) -> None:
        """Crée tous les widgets de l'interface."""
        style = ttk.Style()
        style.configure(".", font=("Segoe UI", 10))

        notebook = ttk.Notebook(self.root)
        notebook.pack(fill="both", expand=True, padx=10, pady=(10, 0))

        settings_tab = ttk.Frame(notebook, padding=12)
        match_tab = ttk.Frame(notebook, padding=12)
        notebook.add(settings_tab, text="Settings")
        notebook.add(match_tab, text="Match State")

        self._create_settings_tab(settings_tab)
        self._create_match_tab(match_tab)
        self._create_footer()

    def _create_settings_tab(self, frame: ttk.Frame) -> None:
        frame.columnconfigure(1, weight=1)

        ttk.Button(
            frame, text="Clear picks and bans", bootstyle=f"{BOOTSTYLE_DANGER}-outline",
            command=self.on_clear
        ).grid(row=0, column=0, columnspan=2, sticky="we", pady=(0, 10))

        # Sorts d'invocateur
        spells_frame = ttk.Frame(frame)
        spells_frame.grid(row=1, column=0, columnspan=2, sticky="we", pady=5)
        self.btn_spell_1 = ttk.Button(
            spells_frame, text="Spell 1", bootstyle=f"{BOOTSTYLE_SECONDARY}-outline",
            command=lambda: self._open_spell_picker(1)
        )
        self.btn_spell_1.pack(side="left", expand=True, fill="x", padx=(0, 5))
        self.btn_spell_2 = ttk.Button(
            spells_frame, text="Spell 2", bootstyle=f"{BOOTSTYLE_SECONDARY}-outline",
            command=lambda: self._open_spell_picker(2)
        )
        self.btn_spell_2.pack(side="left", expand=True, fill="x", padx=(5, 0))

        ttk.Checkbutton(
            frame, text="Auto summoner spells", bootstyle="round-toggle",
            variable=self.toggle_vars[TOGGLE_AUTO_SPELLS],
            command=lambda: self._on_toggle(TOGGLE_AUTO_SPELLS)
        ).grid(row=2, column=0, columnspan=2, sticky="w", pady=3)
        ttk.Checkbutton(
            frame, text="Auto accept", bootstyle="round-toggle",
            variable=self.toggle_vars[TOGGLE_AUTO_ACCEPT],
            command=lambda: self._on_toggle(TOGGLE_AUTO_ACCEPT)
        ).grid(row=3, column=0, columnspan=2, sticky="w", pady=3)
        ttk.Checkbutton(
            frame, text="Auto pick/ban", bootstyle="round-toggle",
            variable=self.toggle_vars[TOGGLE_AUTO_PICK_BAN],
            command=lambda: self._on_toggle(TOGGLE_AUTO_PICK_BAN)
        ).grid(row=4, column=0, columnspan=2, sticky="w", pady=3)

        # Saisie des picks / ban
        ttk.Label(frame, text="Pick :").grid(row=5, column=0, sticky="e", padx=5, pady=(10, 3))
        self.pick_entry = ttk.Combobox(frame, textvariable=self.pick_var)
        self.pick_entry.grid(row=5, column=1, sticky="we", pady=(10, 3))
        self.pick_entry.bind("<KeyRelease>", lambda e: self._refresh_suggestions(e, self.pick_entry, self.pick_var))
        self.pick_entry.bind("<Return>", lambda e: self.on_submit_pick())

        ttk.Label(frame, text="Ban :").grid(row=6, column=0, sticky="e", padx=5, pady=3)
        self.ban_entry = ttk.Combobox(frame, textvariable=self.ban_var)
        self.ban_entry.grid(row=6, column=1, sticky="we", pady=3)
        self.ban_entry.bind("<KeyRelease>", lambda e: self._refresh_suggestions(e, self.ban_entry, self.ban_var))
        self.ban_entry.bind("<Return>", lambda e: self.on_submit_ban())

        self.message_label = ttk.Label(frame, text="", bootstyle=BOOTSTYLE_WARNING)
        self.message_label.grid(row=7, column=0, columnspan=2, sticky="w", pady=3)

        self.picks_label = ttk.Label(frame, text="Picks: -")
        self.picks_label.grid(row=8, column=0, columnspan=2, sticky="w", pady=3)
        self.ban_label = ttk.Label(frame, text="Ban: -")
        self.ban_label.grid(row=9, column=0, columnspan=2, sticky="w", pady=3)

    def _create_match_tab(self, frame: ttk.Frame) -> None:
        self.status_label = ttk.Label(frame, text="", font=("Segoe UI", 14, "bold"), wraplength=360)
        self.status_label.pack(anchor="w", pady=(10, 5))
        self.role_label = ttk.Label(frame, text="Role: -")
        self.role_label.pack(anchor="w")
        self.current_spells_label = ttk.Label(frame, text="Spells: -")
        self.current_spells_label.pack(anchor="w")

    def _create_footer(self) -> None:
        footer = ttk.Frame(self.root, padding=(10, 5))
        footer.pack(fill="x", side="bottom")
        self.update_label = ttk.Label(footer, text="", bootstyle=BOOTSTYLE_SUCCESS)
        self.update_label.pack(anchor="w")
        self.connection_label = ttk.Label(footer, text="")
        self.connection_label.pack(anchor="w")

    # Actions opérateur

    def _on_toggle(self, key: str) -> None:
        self.state.set_toggle(key, self.toggle_vars[key].get())

    def _refresh_suggestions(self, event, combobox: ttk.Combobox, var: tk.StringVar) -> None:
        if event.keysym in ("Return", "Up", "Down"):
            return
        combobox.configure(values=self.catalog.suggestions(var.get()))

    def _submit(self, var: tk.StringVar, commit: Callable[[ChampionChoice], None]) -> None:
        try:
            commit(self.catalog.choice_from_entry(var.get()))
        except SelectionError as e:
            self.show_message(str(e))
            return
        var.set("")
        self._refresh_selection()

    def on_submit_pick(self) -> None:
        self._submit(self.pick_var, self.state.queue_champion)

    def on_submit_ban(self) -> None:
        self._submit(self.ban_var, self.state.set_ban)

    def on_clear(self) -> None:
        self.state.clear_selection()
        self._refresh_selection()
        self.show_message(CLEARED_TEXT, bootstyle=BOOTSTYLE_SUCCESS)

    def show_message(self, message: str, bootstyle: str = BOOTSTYLE_WARNING) -> None:
        """Message en ligne effacé après ERROR_DISPLAY_MS."""
        self.message_label.configure(text=message, bootstyle=bootstyle)
        self.root.after(ERROR_DISPLAY_MS, lambda: self._clear_message(message))

    def _clear_message(self, message: str) -> None:
        if self.message_label.winfo_exists() and self.message_label.cget("text") == message:
            self.message_label.configure(text="")

    # Sorts d'invocateur

    def _open_spell_picker(self, slot: int) -> None:
        picker = ttk.Toplevel(self.root)
        picker.title(f"Spell {slot}")
        picker.resizable(False, False)
        container = ttk.Frame(picker, padding=10)
        container.pack(fill="both", expand=True)

        def on_pick(spell_name: str) -> None:
            self.state.choose_spell(slot, spell_name)
            self._refresh_spell_buttons()
            picker.destroy()

        for i, spell in enumerate(SUMMONER_SPELL_LIST):
            btn = ttk.Button(container, text=spell, bootstyle="link", command=lambda s=spell: on_pick(s))
            btn.grid(row=i // 3, column=i % 3, padx=5, pady=5)
            self._load_icon_into_btn(btn, spell, size=(40, 40), show_text=False)

    def _refresh_spell_buttons(self) -> None:
        pair = self.state.spell_pair()
        for btn, name, default in ((self.btn_spell_1, pair.first, "Spell 1"), (self.btn_spell_2, pair.second, "Spell 2")):
            if getattr(btn, "spell_name", None) == name:
                continue
            btn.spell_name = name
            if name:
                self._load_icon_into_btn(btn, name, size=(30, 30), show_text=True)
            else:
                btn.configure(image="", text=default)

    def _load_icon_into_btn(self, btn_widget: ttk.Button, name: str, size=(30, 30), show_text: bool = True) -> None:
        """Charge l'icône d'un sort dans un bouton (thread-safe via ThreadPoolExecutor)."""
        def task():
            try:
                img = self.catalog.get_spell_icon(name)
            except OSError as e:
                logging.debug(f"Erreur chargement icône pour {name}: {e}")
                img = None

            def update_ui():
                if not btn_widget.winfo_exists():
                    return
                if img is None:
                    btn_widget.configure(image="", text=name)
                    return
                photo = ImageTk.PhotoImage(img.resize(size, Image.LANCZOS))
                btn_widget.configure(image=photo, text=f"  {name}" if show_text else "", compound="left")
                btn_widget.image = photo

            btn_widget.after(0, update_ui)

        self.executor.submit(task)

    # Rafraîchissement

    def _refresh_selection(self) -> None:
        picks, ban = self.state.selection_snapshot()
        picks_text = ", ".join(choice_label(p) for p in picks) if picks else "-"
        self.picks_label.configure(text=f"Picks: {picks_text}")
        self.ban_label.configure(text=f"Ban: {choice_label(ban) if ban else '-'}")

    def _poll_state(self) -> None:
        """Relit l'état partagé toutes les POLL_INTERVAL_MS."""
        if not self.running:
            return

        self.status_label.configure(text=self.state.status)
        role = self.state.assigned_role
        self.role_label.configure(text=f"Role: {role or '-'}")
        names = [self.catalog.spell_name(sid) or "-" for sid in self.state.current_spell_ids]
        self.current_spells_label.configure(text=f"Spells: {names[0]} / {names[1]}")
        self.connection_label.configure(text=self.state.connection.text)
        self.update_label.configure(text=self.update_text)

        # Le moteur peut modifier toggles, sorts et sélection
        for key, var in self.toggle_vars.items():
            value = self.state.is_enabled(key)
            if var.get() != value:
                var.set(value)
        self._refresh_selection()
        self._refresh_spell_buttons()

        if self.state.spells_incomplete() and not self.message_label.cget("text"):
            self.show_message(SPELLS_INCOMPLETE_TEXT)

        self.root.after(POLL_INTERVAL_MS, self._poll_state)

    def set_update_available(self, new_version: str) -> None:
        """Affiche la nouvelle version (thread-safe)."""
        def apply():
            self.update_text = f"Update available: {new_version} (current {CURRENT_VERSION})"
        self.root.after(0, apply)

    def run(self) -> None:
        """Lance la boucle principale Tkinter."""
        self.root.mainloop()

    def stop(self) -> None:
        """Arrête l'interface."""
        self.running = False
        self.executor.shutdown(wait=False)
        self.root.quit()
