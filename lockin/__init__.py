"""
LOCKIN - Automatisation du client League of Legends
(acceptation de partie, pick/ban, sorts d'invocateur).
"""
