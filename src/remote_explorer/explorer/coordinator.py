# remote_explorer/explorer/coordinator.py
import asyncio
from typing import Any, Dict, Iterator, Optional, Set

from ..core.events import (
    DirectoryListingReady,
    DirectoryLoading,
    NavigationError,
    SessionStateChanged,
)
from ..core.signals import ExplorerSignals
from ..remote.api import RemoteFileApi, TabProvider
from ..transfers.models import AggregateProgress
from ..transfers.progress import TransferProgressAggregator
from ..utils.exceptions import (
    ElevatedOperationError,
    InvalidPathError,
    RemoteOperationError,
    SessionUnavailableError,
)
from ..utils.logger import get_logger, log_error_with_context, log_session_event
from ..utils.translation_utils import _
from . import paths
from .cache import DirectoryCache
from .elevation import PermissionElevationPolicy
from .models import DirectoryEntry, build_display_listing
from .state import NavigationState, Session, SessionState, TabInfo


class SessionCoordinator:
    """
    Owns the foreground session, at most one parked background session, and
    the listing shown for the foreground one.

    Lifecycle signals and navigation are serialized on a single lock, so
    they apply in arrival order. A listing that resolves after the
    foreground session changed is discarded.
    """

    def __init__(
        self,
        api: RemoteFileApi,
        tab_provider: TabProvider,
        signals: ExplorerSignals,
        cache: Optional[DirectoryCache] = None,
        elevation: Optional[PermissionElevationPolicy] = None,
        transfers: Optional[TransferProgressAggregator] = None,
        settings=None,
    ):
        self.logger = get_logger("remote_explorer.explorer.coordinator")
        self.api = api
        self.tab_provider = tab_provider
        self.signals = signals
        self.cache = cache if cache is not None else DirectoryCache()
        self.elevation = elevation if elevation is not None else PermissionElevationPolicy()
        self.transfers = (
            transfers
            if transfers is not None
            else TransferProgressAggregator(signals, api.cancel_transfer)
        )
        self.settings = settings
        self.navigation = NavigationState()
        self.foreground: Optional[Session] = None
        self.background: Optional[Session] = None
        self.panel_visible = False
        self._switching = False
        self._lock = asyncio.Lock()
        # Last listing failure as (path, elevation offered)
        self._failed: Optional[tuple] = None
        self._tasks: Set[asyncio.Task] = set()

    # --- State ---

    @property
    def state(self) -> SessionState:
        if self._switching:
            return SessionState.SWITCHING
        if self.foreground and self.background:
            return SessionState.FOREGROUND_WITH_BACKGROUND
        if self.foreground:
            return SessionState.FOREGROUND_ACTIVE
        if self.background:
            return SessionState.PARKED
        return SessionState.NO_SESSION

    @property
    def current_path(self) -> str:
        return self.navigation.current_path

    @property
    def current_directory(self) -> str:
        """Displayed directory, or the working directory before the first listing."""
        if self.navigation.current_path:
            return self.navigation.current_path
        if self.foreground:
            return self.foreground.working_directory
        return ""

    def sessions(self) -> Iterator[Session]:
        for session in (self.foreground, self.background):
            if session is not None:
                yield session

    def require_session(self, operation: str) -> Session:
        if self.foreground is None:
            raise SessionUnavailableError(operation)
        return self.foreground

    def _setting(self, key: str, default: Any) -> Any:
        if self.settings is None:
            return default
        return self.settings.get(key, default)

    def _publish_state(self, placeholder: Optional[str] = None, message: str = "") -> None:
        session = self.foreground
        self.signals.publish(
            SessionStateChanged(
                state=self.state,
                session_id=session.session_id if session else "",
                placeholder=placeholder,
                message=message,
            )
        )

    def _publish_placeholder(self, message: str = "") -> None:
        self._publish_state(
            placeholder=_("Select a connected session to browse remote files"),
            message=message,
        )

    # --- Lifecycle signals ---

    async def panel_became_visible(self) -> None:
        async with self._lock:
            self.panel_visible = True
            # Tab changes are not tracked while hidden, so ask for the current one.
            await self._sync_to_tab(self.tab_provider.get_active_tab())

    async def panel_became_hidden(self) -> None:
        async with self._lock:
            self.panel_visible = False
            session = self.foreground
            if session is None:
                return
            if self.background is not None:
                await self._teardown(self.background)
            self.background = session
            self.foreground = None
            self.navigation.reset()
            self._failed = None
            log_session_event("parked", session.session_id, session.current_path)
            self._publish_state()

    async def active_tab_changed(self, tab: Optional[TabInfo]) -> None:
        async with self._lock:
            if not self.panel_visible:
                self.logger.debug("Panel hidden, tab change will be reconciled on show")
                return
            await self._sync_to_tab(tab)

    async def tab_disconnected(self, tab: TabInfo) -> None:
        async with self._lock:
            owned = [
                session
                for session in self.sessions()
                if session.tab_id == tab.tab_id
                or (tab.session_id and session.session_id == tab.session_id)
            ]
            for session in owned:
                await self._teardown(session)
                if session is self.foreground:
                    self.foreground = None
                    self.navigation.reset()
                    self._failed = None
                else:
                    self.background = None
            if owned and self.foreground is None and self.panel_visible:
                self._publish_placeholder()

    async def force_cleanup(self) -> None:
        async with self._lock:
            await self._teardown_all()
            self.cache.clear_all()
            self.transfers.reset()
            for task in list(self._tasks):
                task.cancel()
            self._publish_placeholder()

    async def _sync_to_tab(self, tab: Optional[TabInfo]) -> None:
        if tab is None or not tab.is_remote_capable:
            await self._teardown_all()
            self._publish_placeholder()
            return

        if self.foreground is not None and self.foreground.session_id == tab.session_id:
            return

        self._switching = True
        self._publish_state()
        try:
            target = None
            if self.background is not None and self.background.session_id == tab.session_id:
                target = self.background
                self.background = None
            if self.foreground is not None:
                if self.background is not None:
                    await self._teardown(self.background)
                log_session_event("parked", self.foreground.session_id, self.foreground.current_path)
                self.background = self.foreground
                self.foreground = None
            self.navigation.reset()
            self._failed = None

            self._switching = False
            if target is not None:
                self.foreground = target
                await self._restore(target)
            else:
                await self._open(tab)
        finally:
            self._switching = False

    async def _open(self, tab: TabInfo) -> None:
        session = Session.for_tab(tab)
        try:
            await self.api.open_session(session.session_id)
        except RemoteOperationError as e:
            self.logger.error(f"Failed to open session {session.session_id}: {e}")
            self._publish_placeholder(e.user_message)
            return

        session.working_directory = await self._resolve_working_directory(session.session_id)
        self.foreground = session
        log_session_event("opened", session.session_id, session.working_directory)
        self._publish_state()
        await self._list(session, session.working_directory)

    async def _resolve_working_directory(self, session_id: str) -> str:
        try:
            working_directory = await self.api.resolve_working_directory(session_id)
        except RemoteOperationError as e:
            self.logger.warning(f"Could not resolve working directory for {session_id}: {e.reason}")
            return "."
        working_directory = (working_directory or "").strip()
        return paths.normalize_path(working_directory) if working_directory else "."

    async def _restore(self, session: Session) -> None:
        """Show a parked session again: cached listing if present, else list fresh."""
        log_session_event("restored", session.session_id, session.current_path)
        self._publish_state()
        path = session.current_path or session.working_directory
        cached = self.cache.get(session.session_id, path)
        if cached is not None:
            self._apply_listing(session, path, cached, from_cache=True)
        else:
            await self._list(session, path)

    async def _teardown(self, session: Session) -> None:
        self.cache.clear(session.session_id)
        try:
            await self.api.close_session(session.session_id)
        except RemoteOperationError as e:
            self.logger.warning(f"Failed to close session {session.session_id}: {e.reason}")
        log_session_event("closed", session.session_id)

    async def _teardown_all(self) -> None:
        for session in list(self.sessions()):
            await self._teardown(session)
        self.foreground = None
        self.background = None
        self.navigation.reset()
        self._failed = None

    # --- Navigation ---

    async def navigate(self, path: str) -> None:
        """Show ``path`` for the foreground session, always listing it fresh.

        Raises:
            InvalidPathError: ``path`` is empty or not a string.
            SessionUnavailableError: no foreground session.
        """
        if not isinstance(path, str) or not path.strip():
            raise InvalidPathError(path, _("path must be a non-empty string"))
        async with self._lock:
            session = self.require_session(_("navigate"))
            path = paths.normalize_path(path)
            if path == self.navigation.current_path:
                return
            await self._list(session, path)

    async def navigate_up(self) -> None:
        session = self.require_session(_("navigate"))
        current = self.navigation.current_path or session.working_directory
        await self.navigate(paths.parent_of(current))

    async def refresh(self) -> None:
        async with self._lock:
            session = self.require_session(_("refresh"))
            await self._list(session, self.current_directory)

    async def retry(self) -> bool:
        """List the path of the last failure again, or the current path."""
        async with self._lock:
            session = self.require_session(_("retry"))
            path = self._failed[0] if self._failed else self.current_directory
            return await self._list(session, path)

    async def retry_elevated(self) -> bool:
        """List the last permission-denied path through the privileged variant.

        Activating the elevation control is the user's confirmation, so no
        further prompt is shown.
        """
        async with self._lock:
            session = self.require_session(_("retry with elevated privileges"))
            if not self._failed or not self._failed[1]:
                self.logger.warning("No permission failure to retry with elevated privileges")
                return False
            return await self._list(session, self._failed[0], elevated=True)

    async def reload_if_displayed(self, session_id: str, directory: str) -> bool:
        """Drop the cached listing of ``directory`` and relist it if it is on screen."""
        self.cache.invalidate(session_id, directory)
        async with self._lock:
            session = self.foreground
            if session is None or session.session_id != session_id:
                return False
            if directory != self.current_directory:
                return False
            return await self._list(session, directory)

    async def _fetch(self, session: Session, path: str, elevated: bool):
        if not elevated:
            return await self.api.list_directory(session.session_id, path)
        return await self.elevation.run_elevated(
            _("read directory"),
            path,
            lambda: self.api.list_directory_elevated(session.session_id, path),
        )

    async def _list(
        self, session: Session, path: str, elevated: bool = False, allow_fallback: bool = True
    ) -> bool:
        self.cache.invalidate(session.session_id, path)
        self.signals.publish(DirectoryLoading(session_id=session.session_id, path=path))
        try:
            entries = await self._fetch(session, path, elevated)
        except RemoteOperationError as e:
            if self.foreground is not session:
                self.logger.info(f"Discarding stale listing failure for '{path}'")
                return False
            return await self._listing_failed(session, path, e, allow_fallback)

        if self.foreground is not session:
            self.logger.info(f"Discarding stale file list for '{path}'")
            return False
        self.cache.put(session.session_id, path, entries)
        self._apply_listing(session, path, entries, from_cache=False)
        return True

    async def _listing_failed(
        self, session: Session, path: str, error: RemoteOperationError, allow_fallback: bool
    ) -> bool:
        if isinstance(error, ElevatedOperationError):
            self._failed = (path, False)
            self._publish_error(session, path, error.user_message, elevation=False)
            return False

        if self.elevation.is_permission_error(error.reason):
            self.logger.warning(f"Permission denied listing '{path}': {error.reason}")
            self._failed = (path, True)
            self._publish_error(
                session,
                path,
                _("Permission denied: {}").format(error.reason),
                elevation=True,
            )
            return False

        working_directory = session.working_directory
        if (
            allow_fallback
            and path != working_directory
            and self._setting("fallback_to_working_directory", True)
        ):
            self.logger.info(
                f"Failed to list '{path}': {error.reason}. Falling back to '{working_directory}'."
            )
            await self._list(session, working_directory, allow_fallback=False)
            return False

        self.logger.error(f"Failed to list '{path}': {error.reason}")
        self._failed = (path, False)
        self._publish_error(session, path, error.user_message, elevation=False)
        return False

    def _publish_error(self, session: Session, path: str, message: str, elevation: bool) -> None:
        self.signals.publish(
            NavigationError(
                session_id=session.session_id,
                path=path,
                message=message,
                retryable=True,
                retryable_with_elevation=elevation,
            )
        )

    def _apply_listing(self, session: Session, path: str, entries, from_cache: bool) -> None:
        rows = build_display_listing(path, entries)
        session.current_path = path
        self.navigation.current_path = path
        self.navigation.entries = rows
        self._failed = None
        self.signals.publish(
            DirectoryListingReady(
                session_id=session.session_id,
                path=path,
                entries=tuple(rows),
                breadcrumbs=self.navigation.breadcrumbs,
                from_cache=from_cache,
            )
        )

    def entry_at(self, path: str) -> Optional[DirectoryEntry]:
        for entry in self.navigation.entries:
            if entry.path == path and not entry.is_parent:
                return entry
        return None

    # --- Transfer events ---

    async def handle_transfer_event(
        self, session_id: str, payload: Dict[str, Any]
    ) -> Optional[AggregateProgress]:
        progress = self.transfers.handle_payload(session_id, payload)
        if progress is not None and progress.refresh_needed:
            await self._refresh_after_upload(progress.session_id)
        return progress

    def dispatch_transfer_event(self, session_id: str, payload: Dict[str, Any]) -> None:
        """Synchronous entry point for transports that call back from their own code."""
        progress = self.transfers.handle_payload(session_id, payload)
        if progress is not None and progress.refresh_needed:
            self._spawn(self._refresh_after_upload(progress.session_id))

    async def _refresh_after_upload(self, session_id: str) -> None:
        async with self._lock:
            session = self.foreground
            if session is None or session.session_id != session_id:
                return
            await self._list(session, self.current_directory)

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            log_error_with_context(error, "background refresh", "remote_explorer.explorer.coordinator")

    async def wait_for_background_tasks(self) -> None:
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
