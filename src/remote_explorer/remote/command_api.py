# remote_explorer/remote/command_api.py
import asyncio
import base64
import io
import shlex
import tarfile
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Set

from ..explorer import paths
from ..explorer.models import DirectoryEntry
from ..utils.exceptions import (
    DirectoryListingError,
    RemoteOperationError,
    TransferCancelledError,
    TransferError,
)
from ..utils.logger import get_logger
from ..utils.translation_utils import _
from .api import CommandRunner, ProgressCallback


class CommandFileApi:
    """
    Remote file API implemented with plain shell commands.

    Every call goes through ``runner``, the shell channel the host already
    keeps open for the tab. Elevated variants prefix ``elevation_command``
    (non-interactive, so a missing credential fails instead of hanging).
    Transfers move file bodies as base64 over stdin/stdout and report their
    progress through ``progress_callback``.
    """

    def __init__(
        self,
        runner: CommandRunner,
        elevation_command: str = "sudo -n",
        timeout: float = 8,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        self.logger = get_logger("remote_explorer.remote.command_api")
        self._runner = runner
        self._elevation_prefix = shlex.split(elevation_command)
        self._timeout = timeout
        self.progress_callback = progress_callback
        self._cancelled: Set[str] = set()

    # --- Command execution ---

    async def _run(
        self,
        session_id: str,
        command: List[str],
        stdin: Optional[str] = None,
        elevated: bool = False,
        timeout: Optional[float] = None,
    ):
        if elevated:
            command = self._elevation_prefix + command
        self.logger.debug(f"[{session_id}] {' '.join(command)}")
        try:
            return await asyncio.wait_for(
                self._runner(session_id, command, stdin), timeout or self._timeout
            )
        except asyncio.TimeoutError:
            self.logger.error(f"Command timed out after {timeout or self._timeout}s: {' '.join(command)}")
            return False, _("Command timed out. Connection may be lost.")

    async def _check(
        self,
        operation: str,
        target: str,
        session_id: str,
        command: List[str],
        stdin: Optional[str] = None,
        elevated: bool = False,
    ) -> str:
        success, output = await self._run(session_id, command, stdin, elevated)
        if not success:
            raise RemoteOperationError(operation, target, output.strip() or _("unknown error"))
        return output

    def _emit(self, session_id: str, payload: Dict[str, Any]) -> None:
        if self.progress_callback is None:
            return
        payload["sessionId"] = session_id
        self.progress_callback(session_id, payload)

    # --- Session lifecycle ---

    async def open_session(self, session_id: str) -> None:
        await self._check(_("open session"), session_id, session_id, ["true"])

    async def close_session(self, session_id: str) -> None:
        self._cancelled.discard(session_id)

    async def resolve_working_directory(self, session_id: str) -> str:
        output = await self._check(_("resolve working directory"), ".", session_id, ["pwd"])
        return output.strip()

    # --- Listing ---

    async def _list(self, session_id: str, path: str, elevated: bool) -> List[DirectoryEntry]:
        success, output = await self._run(
            session_id, ["ls", "-la", "--time-style=long-iso", "--", path], elevated=elevated
        )
        if not success:
            raise DirectoryListingError(path, output.strip() or _("unknown error"))

        entries = []
        for line in output.splitlines():
            entry = DirectoryEntry.from_ls_line(line, path)
            if entry is None or entry.name in (".", ".."):
                continue
            entries.append(entry)
        return entries

    async def list_directory(self, session_id: str, path: str) -> List[DirectoryEntry]:
        return await self._list(session_id, path, elevated=False)

    async def list_directory_elevated(self, session_id: str, path: str) -> List[DirectoryEntry]:
        return await self._list(session_id, path, elevated=True)

    # --- Mutations ---

    async def create_directory(self, session_id: str, path: str) -> None:
        await self._check(_("create folder"), path, session_id, ["mkdir", "-p", "--", path])

    async def create_directory_elevated(self, session_id: str, path: str) -> None:
        await self._check(
            _("create folder"), path, session_id, ["mkdir", "-p", "--", path], elevated=True
        )

    async def write_file_content(self, session_id: str, path: str, content: str) -> None:
        await self._check(
            _("write file"), path, session_id, ["tee", "--", path], stdin=content
        )

    async def write_file_content_elevated(self, session_id: str, path: str, content: str) -> None:
        await self._check(
            _("write file"), path, session_id, ["tee", "--", path], stdin=content, elevated=True
        )

    async def read_file_content(self, session_id: str, path: str) -> str:
        return await self._check(_("read file"), path, session_id, ["cat", "--", path])

    async def read_file_content_elevated(self, session_id: str, path: str) -> str:
        return await self._check(
            _("read file"), path, session_id, ["cat", "--", path], elevated=True
        )

    async def rename_path(self, session_id: str, old_path: str, new_path: str) -> None:
        await self._check(_("rename"), old_path, session_id, ["mv", "--", old_path, new_path])

    async def rename_path_elevated(self, session_id: str, old_path: str, new_path: str) -> None:
        await self._check(
            _("rename"), old_path, session_id, ["mv", "--", old_path, new_path], elevated=True
        )

    def _delete_command(self, path: str, is_directory: bool) -> List[str]:
        return ["rm", "-rf", "--", path] if is_directory else ["rm", "-f", "--", path]

    async def delete_path(self, session_id: str, path: str, is_directory: bool) -> None:
        await self._check(_("delete"), path, session_id, self._delete_command(path, is_directory))

    async def delete_path_elevated(self, session_id: str, path: str, is_directory: bool) -> None:
        await self._check(
            _("delete"), path, session_id, self._delete_command(path, is_directory), elevated=True
        )

    # --- Transfers ---

    def _raise_if_cancelled(self, session_id: str, direction: str) -> None:
        if session_id in self._cancelled:
            self._cancelled.discard(session_id)
            raise TransferCancelledError(direction)

    async def _upload(
        self,
        session_id: str,
        local_paths: Sequence[str],
        remote_dir: str,
        elevated: bool,
    ) -> None:
        # Elevated uploads run without a progress stream.
        report = not elevated
        total = len(local_paths)
        self._cancelled.discard(session_id)
        if report:
            self._emit(session_id, {"phase": "batch-start", "direction": "upload", "totalFiles": total})

        for index, local_path in enumerate(local_paths):
            self._raise_if_cancelled(session_id, "upload")
            name = Path(local_path).name
            remote_path = paths.join_path(remote_dir, name)
            if report:
                self._emit(
                    session_id,
                    {"phase": "start", "direction": "upload", "fileIndex": index,
                     "totalFiles": total, "fileName": name, "percent": 0},
                )
            started = time.monotonic()
            try:
                data = await asyncio.to_thread(Path(local_path).read_bytes)
            except OSError as e:
                self._fail(session_id, "upload", str(e), report)
            encoded = base64.b64encode(data).decode("ascii")
            command = ["sh", "-c", f"base64 -d > {shlex.quote(remote_path)}"]
            success, output = await self._run(
                session_id, command, stdin=encoded, elevated=elevated,
                timeout=max(self._timeout, len(data) / (256 * 1024)),
            )
            if not success:
                self._fail(session_id, "upload", output.strip(), report)
            if report:
                elapsed = max(time.monotonic() - started, 1e-6)
                self._emit(
                    session_id,
                    {"phase": "progress", "direction": "upload", "fileIndex": index,
                     "totalFiles": total, "fileName": name, "percent": 100,
                     "bytesPerSec": len(data) / elapsed},
                )
                self._emit(
                    session_id,
                    {"phase": "complete", "direction": "upload", "fileIndex": index,
                     "totalFiles": total, "fileName": name},
                )

        if report:
            self._emit(session_id, {"phase": "batch-complete", "direction": "upload"})

    def _fail(self, session_id: str, direction: str, reason: str, report: bool = True):
        reason = reason or _("An unknown transfer error occurred.")
        if report:
            self._emit(session_id, {"phase": "error", "direction": direction, "message": reason})
        raise TransferError(direction, reason)

    async def upload_files(self, session_id: str, local_paths: Sequence[str], remote_dir: str) -> None:
        await self._upload(session_id, local_paths, remote_dir, elevated=False)

    async def upload_files_elevated(
        self, session_id: str, local_paths: Sequence[str], remote_dir: str
    ) -> None:
        await self._upload(session_id, local_paths, remote_dir, elevated=True)

    async def _download(self, session_id: str, command: List[str], name: str, write_local) -> None:
        self._cancelled.discard(session_id)
        self._emit(
            session_id,
            {"phase": "start", "direction": "download", "fileIndex": 0,
             "totalFiles": 1, "fileName": name, "percent": 0},
        )
        started = time.monotonic()
        success, output = await self._run(session_id, command, timeout=max(self._timeout, 120))
        if not success:
            self._fail(session_id, "download", output.strip())
        self._raise_if_cancelled(session_id, "download")
        try:
            data = base64.b64decode(output)
            await asyncio.to_thread(write_local, data)
        except (ValueError, OSError, tarfile.TarError) as e:
            self._fail(session_id, "download", str(e))

        elapsed = max(time.monotonic() - started, 1e-6)
        self._emit(
            session_id,
            {"phase": "progress", "direction": "download", "fileIndex": 0, "totalFiles": 1,
             "fileName": name, "percent": 100, "bytesPerSec": len(data) / elapsed},
        )
        self._emit(session_id, {"phase": "complete", "direction": "download", "fileIndex": 0, "totalFiles": 1})
        self._emit(session_id, {"phase": "batch-complete", "direction": "download"})

    async def download_file(self, session_id: str, remote_path: str, local_path: str) -> None:
        await self._download(
            session_id,
            ["base64", "--", remote_path],
            paths.base_name(remote_path),
            Path(local_path).write_bytes,
        )

    async def download_directory(self, session_id: str, remote_path: str, local_path: str) -> None:
        parent = paths.parent_of(remote_path)
        name = paths.base_name(remote_path)
        script = f"tar -C {shlex.quote(parent)} -cf - {shlex.quote(name)} | base64"

        def extract(data: bytes) -> None:
            target = Path(local_path)
            target.mkdir(parents=True, exist_ok=True)
            with tarfile.open(fileobj=io.BytesIO(data)) as archive:
                archive.extractall(target, filter="data")

        await self._download(session_id, ["sh", "-c", script], name, extract)

    async def cancel_transfer(self, session_id: str) -> None:
        self.logger.info(f"Cancelling transfer for session {session_id}")
        self._cancelled.add(session_id)
