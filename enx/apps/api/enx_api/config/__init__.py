"""Configuration loaders."""

from enx_api.config.env import DirectorySettings, get_directory_settings, load_directory_settings

__all__ = ["DirectorySettings", "get_directory_settings", "load_directory_settings"]
