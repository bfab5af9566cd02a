# remote_explorer/explorer/models.py
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from ..settings.config import ExplorerConstants
from . import paths


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value)
    if isinstance(value, str) and value:
        # The API sends RFC 3339; fromisoformat does not accept a bare "Z"
        text = value[:-1] + "+00:00" if value.endswith("Z") else value
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            pass
    return datetime.fromtimestamp(0)


@dataclass(frozen=True)
class DirectoryEntry:
    """One file, directory or symlink in a remote listing."""

    name: str
    path: str
    is_directory: bool
    is_symlink: bool = False
    size: int = 0
    mode: str = ""
    modified: datetime = field(default_factory=lambda: datetime.fromtimestamp(0))
    symlink_target: str = ""
    is_parent: bool = False

    # Lazily compiled fallback pattern for `ls -la --time-style=long-iso` lines
    _LS_RE = None

    @property
    def sort_key(self):
        """Parent entry first, then directories, then case-sensitive name."""
        return (not self.is_parent, not self.is_directory, self.name)

    @classmethod
    def parent_entry(cls, directory: str) -> "DirectoryEntry":
        """Synthesize the ``..`` row for ``directory``. Never cached."""
        return cls(
            name=ExplorerConstants.PARENT_ENTRY_NAME,
            path=paths.parent_of(directory),
            is_directory=True,
            mode=ExplorerConstants.PARENT_ENTRY_MODE,
            modified=datetime.fromtimestamp(0),
            is_parent=True,
        )

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "DirectoryEntry":
        """Build an entry from the remote API's JSON shape."""
        return cls(
            name=data["name"],
            path=data["path"],
            is_directory=bool(data.get("isDir", False)),
            is_symlink=bool(data.get("isSymlink", False)),
            size=int(data.get("size") or 0),
            mode=data.get("mode", ""),
            modified=_parse_timestamp(data.get("modifiedTime")),
            symlink_target=data.get("symlinkTarget", "") or "",
        )

    @classmethod
    def _get_ls_regex(cls):
        if cls._LS_RE is None:
            cls._LS_RE = re.compile(
                r"^(?P<perms>[-dlpscb?][rwxSsTt-]{9})(?:[.+@])?\s+"
                r"(?P<links>\d+)\s+"
                r"(?P<owner>\S+)\s+"
                r"(?P<group>\S+)\s+"
                r"(?P<size>\d+)\s+"
                r"(?P<date>\d{4}-\d{2}-\d{2})\s+(?P<time>\d{2}:\d{2}(?::\d{2})?)\s+"
                r"(?P<name>.+?)(?: -> (?P<link_target>.+))?$"
            )
        return cls._LS_RE

    @classmethod
    def from_ls_line(cls, line: str, base_dir: str) -> Optional["DirectoryEntry"]:
        """Parse one ``ls -la --time-style=long-iso`` line.

        Returns None for the ``total`` header and anything unparseable.
        """
        match = cls._get_ls_regex().match(line.rstrip("\n"))
        if not match:
            return None
        data = match.groupdict()
        time_part = data["time"] if data["time"].count(":") == 2 else f"{data['time']}:00"
        try:
            modified = datetime.fromisoformat(f"{data['date']}T{time_part}")
        except ValueError:
            modified = datetime.fromtimestamp(0)

        perms = data["perms"]
        link_target = data.get("link_target") or ""
        is_symlink = perms.startswith("l")
        return cls(
            name=data["name"],
            path=paths.join_path(base_dir, data["name"]),
            is_directory=perms.startswith("d") or (is_symlink and link_target.endswith("/")),
            is_symlink=is_symlink,
            size=int(data["size"]),
            mode=perms,
            modified=modified,
            symlink_target=link_target,
        )


def sort_entries(entries: Iterable[DirectoryEntry]) -> List[DirectoryEntry]:
    return sorted(entries, key=lambda entry: entry.sort_key)


def build_display_listing(directory: str, entries: Iterable[DirectoryEntry]) -> List[DirectoryEntry]:
    """Add the synthesized parent row (except at ``/``) and sort."""
    rows = [entry for entry in entries if not entry.is_parent]
    if directory != paths.ROOT:
        rows.append(DirectoryEntry.parent_entry(directory))
    return sort_entries(rows)
