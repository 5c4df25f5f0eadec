"""API route modules, mounted under ``/api`` by ``tournoi.main``."""
