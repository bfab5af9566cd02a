# remote_explorer/remote/api.py
"""
Capabilities the explorer consumes from its host application.

These are structural interfaces: any object with matching methods can be
injected, so tests pass simple fakes and an application passes its own
bindings. Remote calls are coroutines; failures are raised as
``RemoteOperationError`` (or subclasses) carrying the transport's message.
"""

from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from ..explorer.models import DirectoryEntry
from ..explorer.state import TabInfo

# Receives (session_id, payload) for every camelCase transfer event.
ProgressCallback = Callable[[str, Dict[str, Any]], None]


class RemoteFileApi(Protocol):
    async def open_session(self, session_id: str) -> None: ...

    async def close_session(self, session_id: str) -> None: ...

    async def resolve_working_directory(self, session_id: str) -> str: ...

    async def list_directory(self, session_id: str, path: str) -> List[DirectoryEntry]: ...

    async def list_directory_elevated(
        self, session_id: str, path: str
    ) -> List[DirectoryEntry]: ...

    async def create_directory(self, session_id: str, path: str) -> None: ...

    async def create_directory_elevated(self, session_id: str, path: str) -> None: ...

    async def write_file_content(self, session_id: str, path: str, content: str) -> None: ...

    async def write_file_content_elevated(
        self, session_id: str, path: str, content: str
    ) -> None: ...

    async def read_file_content(self, session_id: str, path: str) -> str: ...

    async def read_file_content_elevated(self, session_id: str, path: str) -> str: ...

    async def rename_path(self, session_id: str, old_path: str, new_path: str) -> None: ...

    async def rename_path_elevated(
        self, session_id: str, old_path: str, new_path: str
    ) -> None: ...

    async def delete_path(self, session_id: str, path: str, is_directory: bool) -> None: ...

    async def delete_path_elevated(
        self, session_id: str, path: str, is_directory: bool
    ) -> None: ...

    async def upload_files(
        self, session_id: str, local_paths: Sequence[str], remote_dir: str
    ) -> None: ...

    async def upload_files_elevated(
        self, session_id: str, local_paths: Sequence[str], remote_dir: str
    ) -> None: ...

    async def download_file(self, session_id: str, remote_path: str, local_path: str) -> None: ...

    async def download_directory(
        self, session_id: str, remote_path: str, local_path: str
    ) -> None: ...

    async def cancel_transfer(self, session_id: str) -> None: ...


class TabProvider(Protocol):
    def get_active_tab(self) -> Optional[TabInfo]: ...


class ProfileStore(Protocol):
    def get_profile(self, profile_id: str) -> Optional[Dict[str, Any]]: ...

    def save_profile(self, profile_id: str, profile: Dict[str, Any]) -> None: ...


class CommandRunner(Protocol):
    """An already-open shell channel able to run one argv command at a time.

    Returns ``(success, output)``; on failure ``output`` holds stderr.
    """

    def __call__(
        self, session_id: str, command: List[str], stdin: Optional[str] = None
    ) -> Awaitable[Tuple[bool, str]]: ...
