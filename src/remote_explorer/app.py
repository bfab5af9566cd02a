# remote_explorer/app.py

from dataclasses import dataclass
from typing import Optional

from .core.signals import ExplorerSignals
from .data.file_history import FileHistoryStore
from .explorer.cache import DirectoryCache
from .explorer.coordinator import SessionCoordinator
from .explorer.elevation import ConfirmCallback, PermissionElevationPolicy
from .explorer.operations import FileOperations
from .remote.api import CommandRunner, ProfileStore, RemoteFileApi, TabProvider
from .remote.command_api import CommandFileApi
from .settings.config import AppConstants, DefaultSettings
from .settings.manager import SettingsManager
from .transfers.progress import TransferProgressAggregator
from .utils.exceptions import StorageError, handle_exception
from .utils.logger import get_logger


@dataclass
class RemoteExplorer:
    """The wired explorer core handed to a view layer."""

    signals: ExplorerSignals
    coordinator: SessionCoordinator
    operations: FileOperations
    settings: Optional[SettingsManager] = None

    @property
    def transfers(self) -> TransferProgressAggregator:
        return self.coordinator.transfers

    @property
    def history(self) -> FileHistoryStore:
        return self.operations.history

    async def shutdown(self) -> None:
        await self.coordinator.force_cleanup()
        if self.settings is not None:
            self.settings.save_settings()


def _setting(settings: Optional[SettingsManager], key: str):
    if settings is None:
        return DefaultSettings.get_defaults()[key]
    return settings.get(key, DefaultSettings.get_defaults()[key])


def create_explorer(
    api: RemoteFileApi,
    tab_provider: TabProvider,
    confirm: Optional[ConfirmCallback] = None,
    profile_store: Optional[ProfileStore] = None,
    profile_id: Optional[str] = None,
    settings: Optional[SettingsManager] = None,
    signals: Optional[ExplorerSignals] = None,
) -> RemoteExplorer:
    """Build the explorer core from its injected capabilities."""
    logger = get_logger("remote_explorer.app")
    logger.info(f"Initializing {AppConstants.APP_TITLE} v{AppConstants.APP_VERSION}")

    signals = signals if signals is not None else ExplorerSignals()
    coordinator = SessionCoordinator(
        api,
        tab_provider,
        signals,
        cache=DirectoryCache(),
        elevation=PermissionElevationPolicy(confirm),
        transfers=TransferProgressAggregator(signals, api.cancel_transfer),
        settings=settings,
    )
    history = FileHistoryStore(max_entries=_setting(settings, "file_history_limit"))
    operations = FileOperations(coordinator, history, profile_store, profile_id)

    try:
        operations.load_history()
    except StorageError as e:
        handle_exception(e, "file history loading", "remote_explorer.app")

    # Transports that report progress through a callback feed the aggregator.
    if getattr(api, "progress_callback", False) is None:
        api.progress_callback = coordinator.dispatch_transfer_event

    return RemoteExplorer(signals, coordinator, operations, settings)


def create_command_explorer(
    runner: CommandRunner,
    tab_provider: TabProvider,
    confirm: Optional[ConfirmCallback] = None,
    profile_store: Optional[ProfileStore] = None,
    profile_id: Optional[str] = None,
    settings: Optional[SettingsManager] = None,
) -> RemoteExplorer:
    """Explorer backed by shell commands sent over the tab's own channel."""
    api = CommandFileApi(
        runner,
        elevation_command=_setting(settings, "elevation_command"),
        timeout=_setting(settings, "command_timeout"),
    )
    return create_explorer(api, tab_provider, confirm, profile_store, profile_id, settings)
