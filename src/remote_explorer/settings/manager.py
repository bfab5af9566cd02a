# remote_explorer/settings/manager.py
"""
Persistent explorer settings.

The file holds ``{"metadata": {...}, "settings": {...}}``; a bare settings
object from older releases is still read and rewritten in the wrapped form
on the next save.
"""

import hashlib
import json
import os
import threading
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from ..utils import logger as log_config
from ..utils.exceptions import ConfigValidationError
from ..utils.logger import get_logger, log_error_with_context
from .config import AppConstants, DefaultSettings, get_config_paths

ChangeListener = Callable[[str, Any, Any], None]


@dataclass(slots=True)
class SettingsMetadata:
    version: str
    created_at: float
    modified_at: float
    checksum: Optional[str] = None


def _digest(settings: Mapping[str, Any]) -> str:
    canonical = json.dumps(settings, sort_keys=True, separators=(",", ":"))
    return hashlib.md5(canonical.encode("utf-8")).hexdigest()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class SettingsValidator:
    """Per-key value checks; unknown keys are accepted as-is."""

    LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

    # key -> (predicate, human description of what is accepted)
    SCHEMA: Dict[str, Tuple[Callable[[Any], bool], str]] = {
        "console_log_level": (
            lambda v: isinstance(v, str) and v.upper() in SettingsValidator.LOG_LEVELS,
            "one of DEBUG, INFO, WARNING, ERROR, CRITICAL",
        ),
        "log_to_file": (lambda v: isinstance(v, bool), "a boolean"),
        "file_history_limit": (
            lambda v: isinstance(v, int) and not isinstance(v, bool) and 1 <= v <= 1000,
            "an integer between 1 and 1000",
        ),
        "fallback_to_working_directory": (lambda v: isinstance(v, bool), "a boolean"),
        "elevation_command": (
            lambda v: isinstance(v, str) and bool(v.split()),
            "a non-empty command such as 'sudo -n'",
        ),
        "command_timeout": (lambda v: _is_number(v) and v > 0, "a positive number of seconds"),
    }

    def is_valid(self, key: str, value: Any) -> bool:
        rule = self.SCHEMA.get(key)
        return rule is None or rule[0](value)

    def describe(self, key: str) -> str:
        rule = self.SCHEMA.get(key)
        return rule[1] if rule else "any value"

    def invalid_keys(self, settings: Mapping[str, Any]) -> List[str]:
        return [key for key, value in settings.items() if not self.is_valid(key, value)]


class SettingsManager:
    """JSON-backed explorer settings with defaults, validation and listeners."""

    def __init__(self, settings_file: Optional[Path] = None):
        self.logger = get_logger("remote_explorer.settings.manager")
        self.validator = SettingsValidator()
        self.settings_file = Path(settings_file or get_config_paths().SETTINGS_FILE)
        self._defaults = DefaultSettings.get_defaults()
        self._settings: Dict[str, Any] = {}
        self._metadata: Optional[SettingsMetadata] = None
        self._dirty = False
        self._lock = threading.RLock()
        self._listeners: List[ChangeListener] = []

        with self._lock:
            self._settings = self._read_file()
            self._repair()
            self._apply_log_settings()

    # --- Loading ---

    def _unwrap(self, data: Any) -> Dict[str, Any]:
        if not isinstance(data, dict):
            raise ValueError("root element is not an object")
        if "settings" not in data or "metadata" not in data:
            self.logger.info("Found settings without metadata, will rewrite on save")
            self._dirty = True
            return data

        settings, metadata = data["settings"], data["metadata"]
        if not isinstance(settings, dict):
            raise ValueError("'settings' is not an object")
        if isinstance(metadata, dict):
            self._metadata = SettingsMetadata(**metadata)
            if self._metadata.checksum and self._metadata.checksum != _digest(settings):
                self.logger.warning("Settings checksum mismatch, the file was edited by hand")
        return settings

    def _read_file(self) -> Dict[str, Any]:
        if not self.settings_file.exists():
            self.logger.info(f"No settings at {self.settings_file}, using defaults")
            return dict(self._defaults)
        try:
            with open(self.settings_file, "r", encoding="utf-8") as f:
                return self._unwrap(json.load(f))
        except json.JSONDecodeError as e:
            self.logger.error(f"Settings file is not valid JSON: {e}")
        except (TypeError, ValueError) as e:
            self.logger.error(f"Ignoring malformed settings file: {e}")
        except OSError as e:
            log_error_with_context(e, "settings loading", "remote_explorer.settings")
        return dict(self._defaults)

    def _repair(self) -> None:
        """Replace invalid stored values and fill in missing keys from the defaults."""
        bad = self.validator.invalid_keys(self._settings)
        if bad:
            self.logger.warning(f"Resetting invalid settings to defaults: {', '.join(bad)}")
        for key in bad:
            if key in self._defaults:
                self._settings[key] = self._defaults[key]
                self._dirty = True
        for key, value in self._defaults.items():
            if key not in self._settings:
                self._settings[key] = value
                self._dirty = True

    def _apply_log_settings(self) -> None:
        log_config.set_log_to_file_enabled(self.get("log_to_file", False))
        log_config.set_console_log_level(self.get("console_log_level", "WARNING"))

    # --- Access ---

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._settings.get(key, default)

    def as_dict(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._settings)

    def set(self, key: str, value: Any, save_immediately: bool = True) -> None:
        """Validate and store one value.

        Raises:
            ConfigValidationError: ``value`` is not acceptable for ``key``.
        """
        self.update({key: value}, save_immediately)

    def update(self, values: Mapping[str, Any], save_immediately: bool = True) -> None:
        """Store several values at once; nothing is stored if any is invalid."""
        with self._lock:
            for key, value in values.items():
                if not self.validator.is_valid(key, value):
                    raise ConfigValidationError(
                        key, value, f"{key} must be {self.validator.describe(key)}"
                    )
            changes = []
            for key, value in values.items():
                old_value = self._settings.get(key)
                if old_value == value and key in self._settings:
                    continue
                self._settings[key] = value
                changes.append((key, old_value, value))
            if not changes:
                return
            self._dirty = True
            if any(key in ("console_log_level", "log_to_file") for key, _, _ in changes):
                self._apply_log_settings()

        for key, old_value, value in changes:
            self._notify(key, old_value, value)
        if save_immediately:
            self.save_settings()

    def reset_to_defaults(self, keys: Optional[Iterable[str]] = None) -> None:
        keys = self._defaults if keys is None else keys
        self.update({key: self._defaults[key] for key in keys if key in self._defaults})
        self.save_settings()

    # --- Saving ---

    def save_settings(self, force: bool = False) -> None:
        """Write the file atomically with owner-only permissions.

        Save failures are logged; the in-memory settings stay authoritative.
        """
        with self._lock:
            if not (self._dirty or force):
                return
            snapshot = dict(self._settings)
            now = time.time()
            if self._metadata is None:
                self._metadata = SettingsMetadata(AppConstants.APP_VERSION, now, now)
            self._metadata.modified_at = now
            self._metadata.checksum = _digest(snapshot)
            document = {"metadata": asdict(self._metadata), "settings": snapshot}

            temp_file = self.settings_file.with_suffix(".tmp")
            try:
                self.settings_file.parent.mkdir(parents=True, exist_ok=True)
                with open(temp_file, "w", encoding="utf-8") as f:
                    json.dump(document, f, indent=2, ensure_ascii=False)
                temp_file.replace(self.settings_file)
                os.chmod(self.settings_file, 0o600)
            except OSError as e:
                self.logger.error(f"Failed to save settings to {self.settings_file}: {e}")
                return
            self._dirty = False
            self.logger.debug(f"Saved {len(snapshot)} settings")

    # --- Listeners ---

    def _notify(self, key: str, old_value: Any, new_value: Any) -> None:
        for listener in list(self._listeners):
            try:
                listener(key, old_value, new_value)
            except Exception as e:
                self.logger.error(f"Settings listener failed for '{key}': {e}")

    def add_change_listener(self, listener: ChangeListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_change_listener(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)
