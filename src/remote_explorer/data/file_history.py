# remote_explorer/data/file_history.py

"""Per-profile record of remote files the user opened."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from ..settings.config import ExplorerConstants
from ..utils.exceptions import StorageReadError
from ..utils.logger import get_logger


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_time(value: Any) -> datetime:
    if isinstance(value, str) and value:
        text = value[:-1] + "+00:00" if value.endswith("Z") else value
        value = datetime.fromisoformat(text)
    if not isinstance(value, datetime):
        raise ValueError(f"invalid timestamp {value!r}")
    # Naive and aware timestamps cannot be compared when sorting
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


@dataclass
class HistoryEntry:
    path: str
    display_name: str
    access_count: int = 1
    first_accessed: Optional[datetime] = None
    last_accessed: Optional[datetime] = None

    def __post_init__(self):
        now = _now()
        if self.first_accessed is None:
            self.first_accessed = now
        if self.last_accessed is None:
            self.last_accessed = self.first_accessed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "fileName": self.display_name,
            "accessCount": self.access_count,
            "firstAccessed": self.first_accessed.isoformat(),
            "lastAccessed": self.last_accessed.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryEntry":
        return cls(
            path=data["path"],
            display_name=data.get("fileName") or data["path"].rsplit("/", 1)[-1],
            access_count=max(int(data.get("accessCount", 1)), 1),
            first_accessed=_parse_time(data.get("firstAccessed")),
            last_accessed=_parse_time(data.get("lastAccessed") or data.get("firstAccessed")),
        )


class FileHistoryStore:
    """
    Ordered, capped history of opened files.

    The internal list is kept in recency order (most recent first); the
    cap trims its tail, so overflow drops the least recently used entry
    regardless of how often it was opened.
    """

    def __init__(self, max_entries: int = ExplorerConstants.MAX_FILE_HISTORY):
        self.logger = get_logger("remote_explorer.data.file_history")
        self.max_entries = max_entries
        self._entries: List[HistoryEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    def record(self, path: str, display_name: str = "") -> HistoryEntry:
        """Register one open of ``path`` and move it to the front."""
        display_name = display_name or path.rsplit("/", 1)[-1]
        now = _now()
        for index, entry in enumerate(self._entries):
            if entry.path == path:
                del self._entries[index]
                entry.access_count += 1
                entry.last_accessed = now
                entry.display_name = display_name
                break
        else:
            entry = HistoryEntry(path=path, display_name=display_name, first_accessed=now)

        self._entries.insert(0, entry)
        if len(self._entries) > self.max_entries:
            dropped = self._entries[self.max_entries:]
            del self._entries[self.max_entries:]
            self.logger.debug(f"Trimmed {len(dropped)} file history entries")
        return entry

    def list(self) -> List[HistoryEntry]:
        """Most opened first; ties go to the most recently opened."""
        return sorted(
            self._entries,
            key=lambda entry: (entry.access_count, entry.last_accessed),
            reverse=True,
        )

    def recent(self, count: Optional[int] = None) -> List[HistoryEntry]:
        entries = list(self._entries)
        return entries[:count] if count is not None else entries

    def remove(self, path: str) -> bool:
        for index, entry in enumerate(self._entries):
            if entry.path == path:
                del self._entries[index]
                return True
        return False

    def clear(self) -> None:
        self._entries.clear()

    def to_dicts(self) -> List[Dict[str, Any]]:
        return [entry.to_dict() for entry in self._entries]

    def from_dicts(self, items: Iterable[Dict[str, Any]]) -> None:
        """Replace the contents with persisted entries, skipping malformed ones."""
        entries = []
        for item in items or []:
            try:
                entries.append(HistoryEntry.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                self.logger.warning(f"Skipping invalid file history entry {item!r}: {e}")
        entries.sort(key=lambda entry: entry.last_accessed, reverse=True)
        self._entries = entries[: self.max_entries]

    def load_from_profile(self, profile_store, profile_id: str) -> None:
        profile = profile_store.get_profile(profile_id)
        if profile is None:
            self.logger.info(f"Profile {profile_id} not found, starting with empty file history")
            self._entries = []
            return
        history = profile.get(ExplorerConstants.PROFILE_HISTORY_KEY) or []
        if not isinstance(history, list):
            raise StorageReadError(profile_id, "file history is not a list")
        self.from_dicts(history)
        self.logger.info(f"Loaded {len(self._entries)} file history entries for profile {profile_id}")

    def save_to_profile(self, profile_store, profile_id: str) -> None:
        profile = dict(profile_store.get_profile(profile_id) or {})
        profile[ExplorerConstants.PROFILE_HISTORY_KEY] = self.to_dicts()
        profile_store.save_profile(profile_id, profile)
        self.logger.debug(f"Saved {len(self._entries)} file history entries for profile {profile_id}")
