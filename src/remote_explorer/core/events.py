# remote_explorer/core/events.py
"""
Typed payloads for the explorer signal bus.

Each payload class owns exactly one topic name, so a producer and a consumer
of a topic always agree on the shape of what travels over it.
"""

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Dict, Optional, Tuple, Type, Union

from ..explorer.models import DirectoryEntry
from ..explorer.paths import Breadcrumb
from ..explorer.state import EditableContent, SessionState
from ..transfers.models import AggregateProgress


class NoticeLevel(Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class DirectoryLoading:
    TOPIC: ClassVar[str] = "directory-loading"

    session_id: str
    path: str


@dataclass(frozen=True)
class DirectoryListingReady:
    TOPIC: ClassVar[str] = "directory-listing-ready"

    session_id: str
    path: str
    entries: Tuple[DirectoryEntry, ...]
    breadcrumbs: Tuple[Breadcrumb, ...]
    from_cache: bool = False


@dataclass(frozen=True)
class NavigationError:
    TOPIC: ClassVar[str] = "navigation-error"

    session_id: str
    path: str
    message: str
    retryable: bool = True
    retryable_with_elevation: bool = False


@dataclass(frozen=True)
class TransferProgressChanged:
    TOPIC: ClassVar[str] = "transfer-progress-changed"

    progress: AggregateProgress


@dataclass(frozen=True)
class SessionStateChanged:
    """Either a ready session or a placeholder the view should show instead."""

    TOPIC: ClassVar[str] = "session-state-changed"

    state: SessionState
    session_id: str = ""
    placeholder: Optional[str] = None
    message: str = ""

    @property
    def is_ready(self) -> bool:
        return self.placeholder is None and bool(self.session_id)


@dataclass(frozen=True)
class EditableContentLoaded:
    TOPIC: ClassVar[str] = "editable-content-loaded"

    content: EditableContent


@dataclass(frozen=True)
class OperationNotice:
    TOPIC: ClassVar[str] = "operation-notice"

    message: str
    level: NoticeLevel = NoticeLevel.INFO


ExplorerEvent = Union[
    DirectoryLoading,
    DirectoryListingReady,
    NavigationError,
    TransferProgressChanged,
    SessionStateChanged,
    EditableContentLoaded,
    OperationNotice,
]

EVENT_TYPES: Dict[str, Type] = {
    event_type.TOPIC: event_type
    for event_type in (
        DirectoryLoading,
        DirectoryListingReady,
        NavigationError,
        TransferProgressChanged,
        SessionStateChanged,
        EditableContentLoaded,
        OperationNotice,
    )
}
