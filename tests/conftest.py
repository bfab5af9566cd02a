"""Shared fakes and fixtures for the explorer tests.

- FakeRemoteFileApi: in-memory remote filesystem with call recording and
  scripted failures
- FakeTabProvider, FakeProfileStore, FakeCommandRunner
- EventRecorder: collects everything published on an ExplorerSignals bus
"""

import asyncio
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest

from remote_explorer.core.events import EVENT_TYPES
from remote_explorer.core.signals import ExplorerSignals
from remote_explorer.explorer import paths
from remote_explorer.explorer.models import DirectoryEntry
from remote_explorer.explorer.state import TabInfo
from remote_explorer.utils.exceptions import (
    DirectoryListingError,
    RemoteOperationError,
    TransferCancelledError,
)


class FakeRemoteFileApi:
    """Remote filesystem kept in two dicts: directories and file contents."""

    def __init__(self):
        self.dirs: Dict[str, Dict[str, bool]] = {"/": {}}
        self.files: Dict[str, str] = {}
        self.working_directories: Dict[str, str] = {}
        # (method, path) -> error message; consumed on every matching call
        self.failures: Dict[Tuple[str, str], str] = {}
        self.calls: List[Tuple[Any, ...]] = []
        self.progress_callback = None
        self.cancel_next_upload = False

    # --- Test helpers ---

    def add_dir(self, path: str) -> None:
        if path in self.dirs:
            return
        parent = paths.parent_of(path)
        self.add_dir(parent)
        self.dirs[path] = {}
        self.dirs[parent][paths.base_name(path)] = True

    def add_file(self, path: str, content: str = "") -> None:
        parent = paths.parent_of(path)
        self.add_dir(parent)
        self.dirs[parent][paths.base_name(path)] = False
        self.files[path] = content

    def fail(self, method: str, path: str, message: str) -> None:
        self.failures[(method, path)] = message

    def count(self, method: str, path: Optional[str] = None) -> int:
        return sum(
            1 for call in self.calls if call[0] == method and (path is None or call[2] == path)
        )

    def _check(self, method: str, session_id: str, path: str, *extra) -> None:
        self.calls.append((method, session_id, path, *extra))
        message = self.failures.get((method, path))
        if message is not None:
            if method.startswith("list_directory"):
                raise DirectoryListingError(path, message)
            raise RemoteOperationError(method, path, message)

    # --- RemoteFileApi ---

    async def open_session(self, session_id: str) -> None:
        self._check("open_session", session_id, "")

    async def close_session(self, session_id: str) -> None:
        self.calls.append(("close_session", session_id, ""))

    async def resolve_working_directory(self, session_id: str) -> str:
        self._check("resolve_working_directory", session_id, "")
        return self.working_directories.get(session_id, "/")

    async def _list(self, method: str, session_id: str, path: str) -> List[DirectoryEntry]:
        self._check(method, session_id, path)
        if path not in self.dirs:
            raise DirectoryListingError(path, "No such file or directory")
        return [
            DirectoryEntry(name=name, path=paths.join_path(path, name), is_directory=is_dir)
            for name, is_dir in self.dirs[path].items()
        ]

    async def list_directory(self, session_id: str, path: str) -> List[DirectoryEntry]:
        return await self._list("list_directory", session_id, path)

    async def list_directory_elevated(self, session_id: str, path: str) -> List[DirectoryEntry]:
        return await self._list("list_directory_elevated", session_id, path)

    async def create_directory(self, session_id: str, path: str) -> None:
        self._check("create_directory", session_id, path)
        self.add_dir(path)

    async def create_directory_elevated(self, session_id: str, path: str) -> None:
        self._check("create_directory_elevated", session_id, path)
        self.add_dir(path)

    async def write_file_content(self, session_id: str, path: str, content: str) -> None:
        self._check("write_file_content", session_id, path, content)
        self.add_file(path, content)

    async def write_file_content_elevated(self, session_id: str, path: str, content: str) -> None:
        self._check("write_file_content_elevated", session_id, path, content)
        self.add_file(path, content)

    async def read_file_content(self, session_id: str, path: str) -> str:
        self._check("read_file_content", session_id, path)
        return self.files[path]

    async def read_file_content_elevated(self, session_id: str, path: str) -> str:
        self._check("read_file_content_elevated", session_id, path)
        return self.files[path]

    def _move(self, old_path: str, new_path: str) -> None:
        parent = paths.parent_of(old_path)
        is_dir = self.dirs[parent].pop(paths.base_name(old_path))
        self.dirs[paths.parent_of(new_path)][paths.base_name(new_path)] = is_dir
        if old_path in self.files:
            self.files[new_path] = self.files.pop(old_path)
        if old_path in self.dirs:
            self.dirs[new_path] = self.dirs.pop(old_path)

    async def rename_path(self, session_id: str, old_path: str, new_path: str) -> None:
        self._check("rename_path", session_id, old_path, new_path)
        self._move(old_path, new_path)

    async def rename_path_elevated(self, session_id: str, old_path: str, new_path: str) -> None:
        self._check("rename_path_elevated", session_id, old_path, new_path)
        self._move(old_path, new_path)

    def _remove(self, path: str) -> None:
        self.dirs[paths.parent_of(path)].pop(paths.base_name(path), None)
        self.files.pop(path, None)
        self.dirs.pop(path, None)

    async def delete_path(self, session_id: str, path: str, is_directory: bool) -> None:
        self._check("delete_path", session_id, path, is_directory)
        self._remove(path)

    async def delete_path_elevated(self, session_id: str, path: str, is_directory: bool) -> None:
        self._check("delete_path_elevated", session_id, path, is_directory)
        self._remove(path)

    def _emit(self, session_id: str, payload: Dict[str, Any]) -> None:
        if self.progress_callback is not None:
            self.progress_callback(session_id, {"sessionId": session_id, **payload})

    async def upload_files(self, session_id: str, local_paths: Sequence[str], remote_dir: str) -> None:
        self._check("upload_files", session_id, remote_dir, tuple(local_paths))
        total = len(local_paths)
        self._emit(session_id, {"phase": "batch-start", "direction": "upload", "totalFiles": total})
        if self.cancel_next_upload:
            self.cancel_next_upload = False
            raise TransferCancelledError("upload")
        for index, local_path in enumerate(local_paths):
            self.add_file(paths.join_path(remote_dir, paths.base_name(local_path)), "")
            self._emit(
                session_id,
                {"phase": "complete", "direction": "upload", "fileIndex": index, "totalFiles": total},
            )
        self._emit(session_id, {"phase": "batch-complete", "direction": "upload"})

    async def upload_files_elevated(
        self, session_id: str, local_paths: Sequence[str], remote_dir: str
    ) -> None:
        self._check("upload_files_elevated", session_id, remote_dir, tuple(local_paths))
        for local_path in local_paths:
            self.add_file(paths.join_path(remote_dir, paths.base_name(local_path)), "")

    async def download_file(self, session_id: str, remote_path: str, local_path: str) -> None:
        self._check("download_file", session_id, remote_path, local_path)

    async def download_directory(self, session_id: str, remote_path: str, local_path: str) -> None:
        self._check("download_directory", session_id, remote_path, local_path)

    async def cancel_transfer(self, session_id: str) -> None:
        self.calls.append(("cancel_transfer", session_id, ""))


class FakeTabProvider:
    def __init__(self, tab: Optional[TabInfo] = None):
        self.active = tab

    def get_active_tab(self) -> Optional[TabInfo]:
        return self.active


class FakeProfileStore:
    def __init__(self):
        self.profiles: Dict[str, Dict[str, Any]] = {}
        self.saves = 0

    def get_profile(self, profile_id: str) -> Optional[Dict[str, Any]]:
        profile = self.profiles.get(profile_id)
        return dict(profile) if profile is not None else None

    def save_profile(self, profile_id: str, profile: Dict[str, Any]) -> None:
        self.saves += 1
        self.profiles[profile_id] = dict(profile)


class FakeCommandRunner:
    """Answers commands from a list of (predicate, (success, output)) rules."""

    def __init__(self):
        self.commands: List[Tuple[str, List[str], Optional[str]]] = []
        self.rules: List[Tuple[Any, Tuple[bool, str]]] = []
        self.delay = 0.0

    def when(self, predicate, success: bool, output: str) -> None:
        self.rules.append((predicate, (success, output)))

    async def __call__(self, session_id: str, command: List[str], stdin: Optional[str] = None):
        self.commands.append((session_id, list(command), stdin))
        if self.delay:
            await asyncio.sleep(self.delay)
        for predicate, response in self.rules:
            if predicate(command):
                return response
        return True, ""


class EventRecorder:
    def __init__(self, signals: ExplorerSignals):
        self.events: List[Any] = []
        for event_type in EVENT_TYPES.values():
            signals.subscribe(event_type, self.events.append)

    def of_type(self, event_type) -> List[Any]:
        return [event for event in self.events if isinstance(event, event_type)]

    def last(self, event_type):
        found = self.of_type(event_type)
        return found[-1] if found else None

    def clear(self) -> None:
        self.events.clear()


def ssh_tab(tab_id: str = "tab-1", session_id: str = "s1", status: str = "connected") -> TabInfo:
    return TabInfo(
        tab_id=tab_id, session_id=session_id, connection_type="ssh", status=status, title=tab_id
    )


@pytest.fixture
def api() -> FakeRemoteFileApi:
    fake = FakeRemoteFileApi()
    fake.add_dir("/home/user")
    fake.working_directories = {"s1": "/home/user", "s2": "/srv", "s3": "/opt"}
    fake.add_dir("/srv")
    fake.add_dir("/opt")
    return fake


@pytest.fixture
def tabs() -> FakeTabProvider:
    return FakeTabProvider(ssh_tab())


@pytest.fixture
def signals() -> ExplorerSignals:
    return ExplorerSignals()


@pytest.fixture
def recorder(signals) -> EventRecorder:
    return EventRecorder(signals)


@pytest.fixture
def profile_store() -> FakeProfileStore:
    return FakeProfileStore()


@pytest.fixture
def runner() -> FakeCommandRunner:
    return FakeCommandRunner()
