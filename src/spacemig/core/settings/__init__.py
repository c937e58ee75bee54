"""
Local settings persistence.
"""

from spacemig.core.settings.store import SettingsStore, get_default_settings_path

__all__ = ["SettingsStore", "get_default_settings_path"]
