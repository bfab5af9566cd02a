# remote_explorer/core/__init__.py
"""Signal bus and typed event payloads shared by the explorer components."""

from .events import (
    DirectoryListingReady,
    DirectoryLoading,
    EditableContentLoaded,
    NavigationError,
    NoticeLevel,
    OperationNotice,
    SessionStateChanged,
    TransferProgressChanged,
)
from .signals import ExplorerSignals

__all__ = [
    "DirectoryListingReady",
    "DirectoryLoading",
    "EditableContentLoaded",
    "ExplorerSignals",
    "NavigationError",
    "NoticeLevel",
    "OperationNotice",
    "SessionStateChanged",
    "TransferProgressChanged",
]
