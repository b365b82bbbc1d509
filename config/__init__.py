"""Settings and logging wiring"""
from .settings import settings, get_settings, reload_settings, AppSettings, ROOT_DIR, LOGS_DIR

__all__ = [
    "settings",
    "get_settings",
    "reload_settings",
    "AppSettings",
    "ROOT_DIR",
    "LOGS_DIR",
]
