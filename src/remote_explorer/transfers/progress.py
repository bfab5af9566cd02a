# remote_explorer/transfers/progress.py
import time
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from ..core.events import NoticeLevel, OperationNotice, TransferProgressChanged
from ..core.signals import ExplorerSignals
from ..utils.exceptions import RemoteOperationError
from ..utils.logger import get_logger, log_transfer_event
from ..utils.translation_utils import _, ngettext
from .models import (
    AggregateProgress,
    TransferDirection,
    TransferEvent,
    TransferPhase,
    TransferState,
    format_duration,
)


@dataclass
class FileProgress:
    percent: float = 0.0
    throughput: float = 0.0


@dataclass
class BatchProgress:
    """Reduction state of one upload or download batch."""

    direction: TransferDirection
    session_id: str
    total_files: int = 1
    # False when the batch was started lazily by a per-file event
    announced: bool = True
    files: Dict[int, FileProgress] = field(default_factory=dict)
    completed: Set[int] = field(default_factory=set)
    cancelled: bool = False
    started_at: float = field(default_factory=time.monotonic)

    @property
    def completed_files(self) -> int:
        return min(len(self.completed), self.total_files)

    @property
    def percent(self) -> float:
        if self.total_files <= 0:
            return 0.0
        total = sum(
            100.0 if index in self.completed else progress.percent
            for index, progress in self.files.items()
        )
        return max(0.0, min(100.0, total / self.total_files))

    @property
    def throughput(self) -> float:
        return sum(
            progress.throughput
            for index, progress in self.files.items()
            if index not in self.completed
        )

    def grow_to(self, file_count: Optional[int]) -> None:
        if file_count and file_count > self.total_files:
            self.total_files = file_count

    def file(self, index: int) -> FileProgress:
        self.grow_to(index + 1)
        return self.files.setdefault(index, FileProgress())


class TransferProgressAggregator:
    """
    Reduces the per-file transfer event stream to one aggregate signal.

    File indices may arrive in any order. A cancelled batch swallows its
    remaining events until its terminal event or the next batch-start.
    """

    def __init__(
        self,
        signals: ExplorerSignals,
        cancel_transport: Optional[Callable[[str], Awaitable[None]]] = None,
    ):
        self.logger = get_logger("remote_explorer.transfers.progress")
        self.signals = signals
        self._cancel_transport = cancel_transport
        self._batch: Optional[BatchProgress] = None
        self._ignored_session: Optional[str] = None
        self._last: AggregateProgress = AggregateProgress(state=TransferState.IDLE)

    @property
    def batch(self) -> Optional[BatchProgress]:
        return self._batch

    @property
    def is_active(self) -> bool:
        return self._batch is not None

    @property
    def progress(self) -> AggregateProgress:
        return self._last

    def handle_payload(self, session_id: str, payload: Dict[str, Any]) -> Optional[AggregateProgress]:
        """Parse a raw transfer payload and feed it in; malformed payloads are dropped."""
        try:
            event = TransferEvent.from_payload(payload)
        except (KeyError, ValueError) as e:
            self.logger.warning(f"Ignoring malformed transfer event {payload!r}: {e}")
            return None
        if not event.session_id and session_id:
            event = replace(event, session_id=session_id)
        return self.handle_event(event)

    def handle_event(self, event: TransferEvent) -> Optional[AggregateProgress]:
        """Apply one event; returns the published snapshot, or None if ignored."""
        # Only the cancelled session's trailing events are dropped
        if self._ignored_session is not None and event.session_id in ("", self._ignored_session):
            if event.phase in (TransferPhase.ERROR, TransferPhase.BATCH_COMPLETE):
                self._ignored_session = None
                return None
            if event.phase != TransferPhase.BATCH_START:
                return None
            self._ignored_session = None

        batch = self._batch
        if batch is not None and event.session_id and event.session_id != batch.session_id:
            self.logger.debug(f"Ignoring {event.phase.value} from session {event.session_id}")
            return None

        if event.phase == TransferPhase.BATCH_START:
            if batch is not None:
                self.logger.warning("New batch started before the previous one finished")
            self._batch = BatchProgress(
                direction=event.direction,
                session_id=event.session_id,
                total_files=max(event.total_files or 1, 1),
            )
            log_transfer_event("started", event.direction.value, f"{self._batch.total_files} file(s)")
            return self._publish_active()

        if event.phase == TransferPhase.ERROR:
            if batch is None:
                return None
            return self._finish(TransferState.FAILED, event.message or _("Transfer failed"))

        if event.phase == TransferPhase.BATCH_COMPLETE:
            if batch is None:
                return None
            return self._finish(TransferState.SUCCEEDED)

        if batch is None:
            batch = self._batch = BatchProgress(
                direction=event.direction,
                session_id=event.session_id,
                total_files=max(event.total_files or 1, 1),
                announced=False,
            )
        batch.grow_to(event.total_files)
        index = event.file_index if event.file_index is not None and event.file_index >= 0 else 0
        progress = batch.file(index)

        if event.phase == TransferPhase.COMPLETE:
            batch.completed.add(index)
            progress.percent = 100.0
            progress.throughput = 0.0
            if not batch.announced and batch.completed_files >= batch.total_files:
                return self._finish(TransferState.SUCCEEDED)
        else:
            if index not in batch.completed:
                progress.percent = max(0.0, min(100.0, event.percent))
                progress.throughput = max(0.0, event.throughput)
        return self._publish_active()

    async def cancel(self) -> Optional[AggregateProgress]:
        """Mark the batch cancelled and ask the transport to abort it."""
        batch = self._batch
        if batch is None:
            return None
        batch.cancelled = True
        self._ignored_session = batch.session_id
        snapshot = self._finish(TransferState.CANCELLED, _("Transfer cancelled"))
        if self._cancel_transport is not None:
            try:
                await self._cancel_transport(batch.session_id)
            except RemoteOperationError as e:
                self.logger.error(f"Transport did not acknowledge cancel for {batch.session_id}: {e}")
                self.signals.publish(
                    OperationNotice(message=e.user_message, level=NoticeLevel.WARNING)
                )
        return snapshot

    def transport_finished(self, session_id: str) -> None:
        """The transfer call returned, so no more events of a cancelled batch can follow."""
        if self._ignored_session == session_id:
            self._ignored_session = None

    def reset(self) -> None:
        self._batch = None
        self._ignored_session = None
        self._last = AggregateProgress(state=TransferState.IDLE)

    def _snapshot(self, state: TransferState, message: str = "") -> AggregateProgress:
        batch = self._batch
        return AggregateProgress(
            state=state,
            direction=batch.direction,
            session_id=batch.session_id,
            total_files=batch.total_files,
            completed_files=batch.completed_files,
            percent=batch.percent,
            throughput=batch.throughput,
            message=message,
            elapsed=time.monotonic() - batch.started_at,
        )

    def _publish(self, snapshot: AggregateProgress) -> AggregateProgress:
        self._last = snapshot
        self.signals.publish(TransferProgressChanged(progress=snapshot))
        return snapshot

    def _publish_active(self) -> AggregateProgress:
        return self._publish(self._snapshot(TransferState.ACTIVE))

    def _finish(self, state: TransferState, message: str = "") -> AggregateProgress:
        batch = self._batch
        snapshot = self._snapshot(state, message)
        if state == TransferState.SUCCEEDED:
            done = ngettext(
                "{direction} of {count} file complete in {duration}",
                "{direction} of {count} files complete in {duration}",
                batch.total_files,
            ).format(
                direction=_("Upload") if batch.direction == TransferDirection.UPLOAD else _("Download"),
                count=batch.total_files,
                duration=format_duration(snapshot.elapsed),
            )
            snapshot = replace(
                snapshot,
                completed_files=batch.total_files,
                percent=100.0,
                throughput=0.0,
                message=done,
                refresh_needed=batch.direction == TransferDirection.UPLOAD,
            )
        log_transfer_event(state.value, batch.direction.value, snapshot.message)
        self._batch = None
        return self._publish(snapshot)
