# remote_explorer/data/profile_store.py

"""Connection profile persistence using a single JSON document."""

from __future__ import annotations

import copy
import json
import os
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..settings.config import get_config_paths
from ..utils.exceptions import StorageWriteError
from ..utils.logger import get_logger


class JsonProfileStore:
    """Profiles keyed by id, stored as ``{"profiles": {id: profile}}``."""

    def __init__(self, profiles_file: Optional[Path] = None):
        self.logger = get_logger("remote_explorer.data.profile_store")
        self._profiles_file = Path(profiles_file or get_config_paths().PROFILES_FILE)
        self._profiles: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.RLock()
        self._load_profiles()

    def _load_profiles(self) -> None:
        """Load profiles from the JSON file; a corrupted file counts as empty."""
        try:
            if self._profiles_file.exists():
                with open(self._profiles_file, "r", encoding="utf-8") as f:
                    data = json.load(f)
                profiles = data.get("profiles", {}) if isinstance(data, dict) else None
                if not isinstance(profiles, dict):
                    raise ValueError("'profiles' must be an object")
                self._profiles = {
                    str(key): value for key, value in profiles.items() if isinstance(value, dict)
                }
                self.logger.info(f"Loaded {len(self._profiles)} profiles")
            else:
                self._profiles = {}
                self.logger.info("No profiles file found, starting fresh")
        except json.JSONDecodeError as e:
            self.logger.error(f"Failed to parse profiles JSON: {e}")
            self._profiles = {}
        except (OSError, ValueError) as e:
            self.logger.error(f"Failed to load profiles: {e}")
            self._profiles = {}

    def _save_profiles(self) -> None:
        try:
            self._profiles_file.parent.mkdir(parents=True, exist_ok=True)

            # Write atomically using a temp file
            temp_file = self._profiles_file.with_suffix(".json.tmp")
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump({"profiles": self._profiles}, f, ensure_ascii=False, indent=2)
            temp_file.replace(self._profiles_file)

            # Set secure permissions
            os.chmod(self._profiles_file, 0o600)
            self.logger.debug(f"Saved {len(self._profiles)} profiles")
        except (OSError, TypeError, ValueError) as e:
            self.logger.error(f"Failed to save profiles: {e}")
            raise StorageWriteError(str(self._profiles_file), str(e)) from e

    def get_profile(self, profile_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            profile = self._profiles.get(profile_id)
            return copy.deepcopy(profile) if profile is not None else None

    def save_profile(self, profile_id: str, profile: Dict[str, Any]) -> None:
        with self._lock:
            self._profiles[profile_id] = copy.deepcopy(profile)
            self._save_profiles()

    def delete_profile(self, profile_id: str) -> bool:
        with self._lock:
            if self._profiles.pop(profile_id, None) is None:
                return False
            self._save_profiles()
            return True

    def list_profile_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._profiles)
