from .manager import SettingsManager, default_settings_path

__all__ = ["SettingsManager", "default_settings_path"]
