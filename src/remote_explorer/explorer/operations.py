# remote_explorer/explorer/operations.py
from typing import Any, Awaitable, Callable, Optional, Sequence

from ..core.events import EditableContentLoaded, NoticeLevel, OperationNotice
from ..data.file_history import FileHistoryStore
from ..utils.exceptions import (
    ElevationDeclinedError,
    ExplorerError,
    InvalidNameError,
    InvalidPathError,
    RemoteOperationError,
    StorageError,
    TransferCancelledError,
    TransferError,
)
from ..utils.logger import get_logger
from ..utils.translation_utils import _
from . import paths
from .coordinator import SessionCoordinator
from .state import EditableContent
from .syntax import detect_language


class FileOperations:
    """
    Mutating and transfer operations on the foreground session.

    Every mutation goes through the elevation policy, invalidates the cached
    listing of the containing directory and relists it when it is on screen.
    Failures are published as notices and re-raised to the caller.
    """

    def __init__(
        self,
        coordinator: SessionCoordinator,
        history: Optional[FileHistoryStore] = None,
        profile_store=None,
        profile_id: Optional[str] = None,
    ):
        self.logger = get_logger("remote_explorer.explorer.operations")
        self.coordinator = coordinator
        self.api = coordinator.api
        self.signals = coordinator.signals
        self.cache = coordinator.cache
        self.elevation = coordinator.elevation
        self.transfers = coordinator.transfers
        self.history = history if history is not None else FileHistoryStore()
        self.profile_store = profile_store
        self.profile_id = profile_id

    # --- Helpers ---

    @staticmethod
    def validate_name(name: Any) -> str:
        if not isinstance(name, str) or not name.strip():
            raise InvalidNameError(name, _("name cannot be empty"))
        name = name.strip()
        if "/" in name or "\0" in name:
            raise InvalidNameError(name, _("name cannot contain '/'"))
        if name in (".", ".."):
            raise InvalidNameError(name, _("'.' and '..' are reserved"))
        return name

    @staticmethod
    def _validate_path(path: Any) -> str:
        if not isinstance(path, str) or not path.strip():
            raise InvalidPathError(path, _("path must be a non-empty string"))
        return paths.normalize_path(path)

    def _notify(self, message: str, level: NoticeLevel = NoticeLevel.INFO) -> None:
        self.signals.publish(OperationNotice(message=message, level=level))

    def _guarded(
        self,
        description: str,
        label: str,
        operation: Callable[[], Awaitable[Any]],
        elevated_operation: Callable[[], Awaitable[Any]],
    ) -> Callable[[], Awaitable[Any]]:
        return lambda: self.elevation.run(description, label, operation, elevated_operation)

    async def _mutate(
        self,
        description: str,
        label: str,
        session_id: str,
        directory: str,
        action: Callable[[], Awaitable[Any]],
    ) -> Any:
        try:
            result = await action()
        except ElevationDeclinedError as e:
            self._notify(e.user_message, NoticeLevel.WARNING)
            raise
        except ExplorerError as e:
            self.logger.error(f"Failed to {description} '{label}': {e}")
            self._notify(e.user_message, NoticeLevel.ERROR)
            raise
        finally:
            self.cache.invalidate(session_id, directory)
        await self.coordinator.reload_if_displayed(session_id, directory)
        return result

    # --- Create, rename, delete ---

    async def create_folder(self, name: str, parent: Optional[str] = None) -> str:
        name = self.validate_name(name)
        session = self.coordinator.require_session(_("create folder"))
        sid = session.session_id
        directory = parent or self.coordinator.current_directory
        path = paths.join_path(directory, name)
        await self._mutate(
            _("create folder"),
            name,
            sid,
            directory,
            self._guarded(
                _("create folder"),
                name,
                lambda: self.api.create_directory(sid, path),
                lambda: self.api.create_directory_elevated(sid, path),
            ),
        )
        self._notify(_("Folder '{}' created").format(name), NoticeLevel.SUCCESS)
        return path

    async def create_file(self, name: str, parent: Optional[str] = None) -> str:
        name = self.validate_name(name)
        session = self.coordinator.require_session(_("create file"))
        sid = session.session_id
        directory = parent or self.coordinator.current_directory
        path = paths.join_path(directory, name)
        await self._mutate(
            _("create file"),
            name,
            sid,
            directory,
            self._guarded(
                _("create file"),
                name,
                lambda: self.api.write_file_content(sid, path, ""),
                lambda: self.api.write_file_content_elevated(sid, path, ""),
            ),
        )
        self._notify(_("File '{}' created").format(name), NoticeLevel.SUCCESS)
        return path

    async def rename(self, path: str, new_name: str) -> str:
        path = self._validate_path(path)
        new_name = self.validate_name(new_name)
        session = self.coordinator.require_session(_("rename"))
        sid = session.session_id
        directory = paths.parent_of(path)
        new_path = paths.join_path(directory, new_name)
        if new_path == path:
            return path

        old_name = paths.base_name(path)
        # A renamed directory's own listing is keyed by its old path.
        self.cache.invalidate(sid, path)
        await self._mutate(
            _("rename"),
            old_name,
            sid,
            directory,
            self._guarded(
                _("rename"),
                old_name,
                lambda: self.api.rename_path(sid, path, new_path),
                lambda: self.api.rename_path_elevated(sid, path, new_path),
            ),
        )
        self._notify(_("Renamed '{}' to '{}'").format(old_name, new_name), NoticeLevel.SUCCESS)
        return new_path

    async def delete(self, path: str, is_directory: bool = False) -> None:
        path = self._validate_path(path)
        if path == paths.ROOT:
            raise InvalidPathError(path, _("the root directory cannot be deleted"))
        session = self.coordinator.require_session(_("delete"))
        sid = session.session_id
        name = paths.base_name(path)
        self.cache.invalidate(sid, path)
        await self._mutate(
            _("delete"),
            name,
            sid,
            paths.parent_of(path),
            self._guarded(
                _("delete"),
                name,
                lambda: self.api.delete_path(sid, path, is_directory),
                lambda: self.api.delete_path_elevated(sid, path, is_directory),
            ),
        )
        self._notify(_("'{}' deleted").format(name), NoticeLevel.SUCCESS)

    # --- Transfers ---

    async def upload(self, local_paths: Sequence[str], target_dir: Optional[str] = None) -> bool:
        """Upload files into ``target_dir`` (default: the displayed directory).

        Returns False when the user cancelled the batch.
        """
        local_paths = [p for p in (local_paths or []) if isinstance(p, str) and p]
        if not local_paths:
            raise InvalidPathError(local_paths, _("no files selected for upload"))
        session = self.coordinator.require_session(_("upload"))
        sid = session.session_id
        target = self._validate_path(target_dir) if target_dir else self.coordinator.current_directory
        label = paths.base_name(local_paths[0]) if len(local_paths) == 1 else target

        try:
            await self._upload_batch(sid, local_paths, target)
        except TransferCancelledError:
            self._notify(_("Upload cancelled"))
            await self.coordinator.reload_if_displayed(sid, target)
            return False
        except (RemoteOperationError, TransferError) as e:
            if not self.elevation.is_permission_error(e.reason):
                self.logger.error(f"Upload to '{target}' failed: {e}")
                self._notify(e.user_message, NoticeLevel.ERROR)
                await self.coordinator.reload_if_displayed(sid, target)
                raise
            # The privileged variant reports no progress, so refresh here.
            await self._mutate(
                _("upload"),
                label,
                sid,
                target,
                lambda: self.elevation.attempt_elevated(
                    _("upload"),
                    label,
                    lambda: self.api.upload_files_elevated(sid, local_paths, target),
                    e.reason,
                ),
            )
            self._notify(_("Upload complete"), NoticeLevel.SUCCESS)
            return True

        # The upload batch-complete event triggers the relist.
        return True

    async def _upload_batch(self, sid: str, local_paths: Sequence[str], target: str) -> None:
        try:
            await self.api.upload_files(sid, local_paths, target)
        finally:
            # Files sent before a cancel or failure are already in ``target``.
            self.cache.invalidate(sid, target)
            self.transfers.transport_finished(sid)

    async def download(self, remote_path: str, local_path: str, is_directory: bool = False) -> bool:
        remote_path = self._validate_path(remote_path)
        if not isinstance(local_path, str) or not local_path:
            raise InvalidPathError(local_path, _("no local destination selected"))
        session = self.coordinator.require_session(_("download"))
        sid = session.session_id
        try:
            if is_directory:
                await self.api.download_directory(sid, remote_path, local_path)
            else:
                await self.api.download_file(sid, remote_path, local_path)
        except TransferCancelledError:
            self._notify(_("Download cancelled"))
            return False
        except (RemoteOperationError, TransferError) as e:
            self.logger.error(f"Download of '{remote_path}' failed: {e}")
            self._notify(e.user_message, NoticeLevel.ERROR)
            raise
        finally:
            self.transfers.transport_finished(sid)
        return True

    async def cancel_transfer(self) -> bool:
        snapshot = await self.transfers.cancel()
        if snapshot is None:
            return False
        self._notify(snapshot.message)
        return True

    # --- Editing ---

    async def open_file(self, path: str, display_name: Optional[str] = None) -> EditableContent:
        """Read ``path`` for preview or editing and record it in the file history."""
        path = self._validate_path(path)
        session = self.coordinator.require_session(_("open file"))
        sid = session.session_id
        name = display_name or paths.base_name(path)
        elevated = False

        async def read_elevated() -> str:
            nonlocal elevated
            text = await self.api.read_file_content_elevated(sid, path)
            elevated = True
            return text

        try:
            text = await self.elevation.run(
                _("open file"), name, lambda: self.api.read_file_content(sid, path), read_elevated
            )
        except ExplorerError as e:
            self._notify(e.user_message, NoticeLevel.ERROR)
            raise

        content = EditableContent(
            session_id=sid,
            path=path,
            display_name=name,
            content=text,
            requires_elevation=elevated,
            saved_content=text,
            language=detect_language(name, text),
        )
        self.history.record(path, name)
        self._persist_history()
        self.signals.publish(EditableContentLoaded(content=content))
        return content

    async def save_file(self, content: EditableContent, new_text: str) -> EditableContent:
        """Write ``new_text`` back; content read with elevation is saved the same way."""
        sid = content.session_id
        path = content.path
        directory = paths.parent_of(path)

        async def write_elevated():
            await self.api.write_file_content_elevated(sid, path, new_text)
            content.requires_elevation = True

        if content.requires_elevation:
            await self._mutate(
                _("save file"),
                content.display_name,
                sid,
                directory,
                lambda: self.elevation.run_elevated(
                    _("save file"), content.display_name, write_elevated
                ),
            )
        else:
            await self._mutate(
                _("save file"),
                content.display_name,
                sid,
                directory,
                self._guarded(
                    _("save file"),
                    content.display_name,
                    lambda: self.api.write_file_content(sid, path, new_text),
                    write_elevated,
                ),
            )
        content.content = new_text
        content.saved_content = new_text
        self._notify(_("'{}' saved").format(content.display_name), NoticeLevel.SUCCESS)
        return content

    # --- History ---

    def load_history(self) -> None:
        if self.profile_store is None or not self.profile_id:
            return
        self.history.load_from_profile(self.profile_store, self.profile_id)

    def history_entries(self):
        return self.history.list()

    def forget_history_entry(self, path: str) -> bool:
        removed = self.history.remove(path)
        if removed:
            self._persist_history()
        return removed

    def _persist_history(self) -> None:
        if self.profile_store is None or not self.profile_id:
            return
        try:
            self.history.save_to_profile(self.profile_store, self.profile_id)
        except StorageError as e:
            self.logger.error(f"Failed to save file history: {e}")
            self._notify(e.user_message, NoticeLevel.WARNING)
