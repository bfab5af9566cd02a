# remote_explorer/explorer/cache.py
from typing import Dict, Iterable, Optional, Tuple

from ..utils.logger import get_logger
from .models import DirectoryEntry

CacheKey = Tuple[str, str]


class DirectoryCache:
    """Listing snapshots keyed by ``(session_id, path)``.

    Paths are matched exactly and case-sensitively. Entries never expire on
    their own; callers invalidate them on mutation, refresh or teardown.
    """

    def __init__(self):
        self.logger = get_logger("remote_explorer.explorer.cache")
        self._entries: Dict[CacheKey, Tuple[DirectoryEntry, ...]] = {}

    def get(self, session_id: str, path: str) -> Optional[Tuple[DirectoryEntry, ...]]:
        return self._entries.get((session_id, path))

    def put(self, session_id: str, path: str, entries: Iterable[DirectoryEntry]) -> None:
        # The synthesized parent row is display-only.
        snapshot = tuple(entry for entry in entries if not entry.is_parent)
        self._entries[(session_id, path)] = snapshot
        self.logger.debug(f"Cached {len(snapshot)} entries for {session_id}:{path}")

    def invalidate(self, session_id: str, path: str) -> bool:
        removed = self._entries.pop((session_id, path), None) is not None
        if removed:
            self.logger.debug(f"Invalidated cache for {session_id}:{path}")
        return removed

    def clear(self, session_id: str) -> int:
        keys = [key for key in self._entries if key[0] == session_id]
        for key in keys:
            del self._entries[key]
        if keys:
            self.logger.debug(f"Cleared {len(keys)} cached listings for session {session_id}")
        return len(keys)

    def clear_all(self) -> None:
        self._entries.clear()

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
