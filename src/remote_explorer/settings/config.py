# remote_explorer/settings/config.py

import os
from pathlib import Path
from typing import Any, Dict


class AppConstants:
    """Package metadata and identification constants."""

    APP_ID = "remote-explorer"
    APP_TITLE = "Remote Explorer"
    APP_VERSION = "0.4.0"


class ExplorerConstants:
    """Fixed values of the explorer core."""

    ROOT_PATH = "/"
    # Sentinels for "the session's current directory" before it is resolved
    CURRENT_DIR_MARKERS = ("", ".")
    HOME_PATH = "."
    PARENT_ENTRY_NAME = ".."
    PARENT_ENTRY_MODE = "drwxr-xr-x"

    MAX_FILE_HISTORY = 100

    PERMISSION_ERROR_MARKERS = (
        "permission",
        "denied",
        "access",
        "not permitted",
        "operation not allowed",
        "read-only",
        "cannot create",
        "cannot open",
        "failed to create",
    )

    # Phrase the transport uses when a directory read fails outright
    READ_DIRECTORY_MARKER = "read directory"

    PROFILE_HISTORY_KEY = "fileHistory"


class ConfigPaths:
    """XDG-aware configuration paths."""

    def __init__(self, base_dir: Path = None):
        self.CONFIG_DIR = Path(base_dir) if base_dir else self._get_config_dir()
        self.SETTINGS_FILE = self.CONFIG_DIR / "settings.json"
        self.PROFILES_FILE = self.CONFIG_DIR / "profiles.json"

    def _get_config_dir(self) -> Path:
        if xdg_config := os.environ.get("XDG_CONFIG_HOME"):
            return Path(xdg_config) / AppConstants.APP_ID
        return Path.home() / ".config" / AppConstants.APP_ID


class DefaultSettings:
    """Default explorer settings."""

    @staticmethod
    def get_defaults() -> Dict[str, Any]:
        return {
            "console_log_level": "WARNING",
            "log_to_file": False,
            "file_history_limit": ExplorerConstants.MAX_FILE_HISTORY,
            "fallback_to_working_directory": True,
            "elevation_command": "sudo -n",
            "command_timeout": 8,
        }


_config_paths: ConfigPaths = None


def get_config_paths() -> ConfigPaths:
    global _config_paths
    if _config_paths is None:
        _config_paths = ConfigPaths()
    return _config_paths
