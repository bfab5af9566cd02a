# remote_explorer/explorer/state.py
"""Business state of the explorer, independent of any rendering surface."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from . import paths
from .models import DirectoryEntry


class SessionState(Enum):
    NO_SESSION = "no-session"
    FOREGROUND_ACTIVE = "foreground-active"
    FOREGROUND_WITH_BACKGROUND = "foreground-with-background"
    # Panel hidden with only a parked session
    PARKED = "parked"
    SWITCHING = "switching"


@dataclass(frozen=True)
class TabInfo:
    """What the tab provider reports about one shell tab."""

    tab_id: str
    session_id: str = ""
    connection_type: str = "local"
    status: str = "disconnected"
    title: str = ""

    @property
    def is_remote_capable(self) -> bool:
        return (
            self.connection_type == "ssh"
            and self.status == "connected"
            and bool(self.session_id)
        )


@dataclass
class Session:
    """A live remote file-access context bound to one shell tab."""

    session_id: str
    tab_id: str
    title: str = ""
    working_directory: str = "."
    current_path: str = ""

    @classmethod
    def for_tab(cls, tab: TabInfo) -> "Session":
        return cls(session_id=tab.session_id, tab_id=tab.tab_id, title=tab.title)


@dataclass
class NavigationState:
    """Path and rows currently displayed for the foreground session."""

    current_path: str = ""
    entries: List[DirectoryEntry] = field(default_factory=list)

    @property
    def breadcrumbs(self) -> Tuple[paths.Breadcrumb, ...]:
        # Always derived, so it cannot drift from current_path.
        if not self.current_path:
            return ()
        return tuple(paths.breadcrumbs_of(self.current_path))

    def reset(self) -> None:
        self.current_path = ""
        self.entries = []


@dataclass
class EditableContent:
    """A remote file loaded for preview or editing."""

    session_id: str
    path: str
    display_name: str
    content: str
    requires_elevation: bool = False
    saved_content: Optional[str] = None
    language: str = "text"

    @property
    def is_modified(self) -> bool:
        return self.saved_content is not None and self.saved_content != self.content
