# remote_explorer/transfers/models.py
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ..utils.translation_utils import ngettext


class TransferDirection(Enum):
    DOWNLOAD = "download"
    UPLOAD = "upload"


class TransferPhase(Enum):
    BATCH_START = "batch-start"
    START = "start"
    PROGRESS = "progress"
    COMPLETE = "complete"
    ERROR = "error"
    BATCH_COMPLETE = "batch-complete"


class TransferState(Enum):
    IDLE = "idle"
    ACTIVE = "active"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


def _as_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class TransferEvent:
    """One phase-tagged event from the transfer event stream."""

    phase: TransferPhase
    direction: TransferDirection
    session_id: str = ""
    file_index: Optional[int] = None
    total_files: Optional[int] = None
    file_name: str = ""
    percent: float = 0.0
    throughput: float = 0.0
    message: str = ""

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "TransferEvent":
        """Parse the camelCase payload emitted alongside remote transfers.

        Raises ValueError for an unknown phase or direction.
        """
        return cls(
            phase=TransferPhase(payload["phase"]),
            direction=TransferDirection(payload.get("direction", "upload")),
            session_id=str(payload.get("sessionId", "") or ""),
            file_index=_as_int(payload.get("fileIndex")),
            total_files=_as_int(payload.get("totalFiles")),
            file_name=payload.get("fileName", "") or "",
            percent=_as_float(payload.get("percent")),
            throughput=_as_float(payload.get("bytesPerSec", payload.get("throughput"))),
            message=payload.get("message", payload.get("error", "")) or "",
        )


def format_file_size(size_bytes: float) -> str:
    if not isinstance(size_bytes, (int, float)) or size_bytes < 0:
        return "0 B"
    if size_bytes < 1024:
        return f"{int(size_bytes)} B"
    if size_bytes < 1024**2:
        return f"{size_bytes / 1024:.1f} KB"
    if size_bytes < 1024**3:
        return f"{size_bytes / 1024**2:.1f} MB"
    return f"{size_bytes / 1024**3:.1f} GB"


def format_speed(bytes_per_second: float) -> str:
    if not isinstance(bytes_per_second, (int, float)) or bytes_per_second <= 0:
        return "0 B/s"
    return f"{format_file_size(bytes_per_second)}/s"


def format_duration(seconds: float) -> str:
    if not isinstance(seconds, (int, float)) or seconds < 1:
        return "<1s"
    seconds = int(seconds)
    if seconds < 60:
        return f"{seconds}s"
    minutes, seconds = divmod(seconds, 60)
    if minutes < 60:
        return f"{minutes}m {seconds:02d}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes:02d}m"


@dataclass(frozen=True)
class AggregateProgress:
    """What the progress bar shows for the batch in flight."""

    state: TransferState
    direction: Optional[TransferDirection] = None
    session_id: str = ""
    total_files: int = 0
    completed_files: int = 0
    percent: float = 0.0
    throughput: float = 0.0
    message: str = ""
    elapsed: float = 0.0
    # Set on a successful upload batch: the target listing changed
    refresh_needed: bool = False

    @property
    def is_active(self) -> bool:
        return self.state == TransferState.ACTIVE

    @property
    def summary(self) -> str:
        if self.state != TransferState.ACTIVE:
            return self.message
        parts = [
            ngettext(
                "Transferring {count} file", "Transferring {count} files", self.total_files
            ).format(count=self.total_files),
            f"{self.percent:.1f}%",
        ]
        if self.throughput > 0:
            parts.append(format_speed(self.throughput))
        if self.elapsed >= 1:
            parts.append(format_duration(self.elapsed))
        return " • ".join(parts)
