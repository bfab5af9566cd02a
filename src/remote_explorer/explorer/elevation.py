# remote_explorer/explorer/elevation.py
import inspect
from typing import Any, Awaitable, Callable, Optional, Union

from ..settings.config import ExplorerConstants
from ..utils.exceptions import (
    ElevatedOperationError,
    ElevationDeclinedError,
    RemoteOperationError,
    TransferError,
)
from ..utils.logger import get_logger

# Receives (operation_description, item_label) and answers whether to elevate.
ConfirmCallback = Callable[[str, str], Union[bool, Awaitable[bool]]]


class PermissionElevationPolicy:
    """
    Detects permission failures and replays them through a privileged variant.

    Elevation always needs an explicit yes from ``confirm``; without a
    callback every request is declined. The privileged attempt is final.
    """

    def __init__(self, confirm: Optional[ConfirmCallback] = None):
        self.logger = get_logger("remote_explorer.explorer.elevation")
        self._confirm = confirm

    @staticmethod
    def is_permission_error(message: Any) -> bool:
        text = str(message or "").lower()
        return any(marker in text for marker in ExplorerConstants.PERMISSION_ERROR_MARKERS)

    async def confirm(self, operation_description: str, item_label: str) -> bool:
        if self._confirm is None:
            return False
        answer = self._confirm(operation_description, item_label)
        if inspect.isawaitable(answer):
            answer = await answer
        return bool(answer)

    async def attempt_elevated(
        self,
        operation_description: str,
        item_label: str,
        retry_fn: Callable[[], Awaitable[Any]],
        reason: str = "",
    ) -> Any:
        """Ask for confirmation, then run ``retry_fn`` once.

        Raises:
            ElevationDeclinedError: the user did not confirm.
            ElevatedOperationError: the privileged attempt failed.
        """
        if not await self.confirm(operation_description, item_label):
            self.logger.info(f"Elevation declined for {operation_description} on {item_label}")
            raise ElevationDeclinedError(operation_description, item_label, reason)

        self.logger.info(f"Retrying {operation_description} on {item_label} with elevated privileges")
        return await self.run_elevated(operation_description, item_label, retry_fn)

    async def run_elevated(
        self,
        operation_description: str,
        item_label: str,
        elevated_operation: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Run a privileged variant the user already approved. Never retried."""
        try:
            return await elevated_operation()
        except ElevatedOperationError:
            raise
        except (RemoteOperationError, TransferError) as e:
            self.logger.error(f"Elevated {operation_description} failed on {item_label}: {e.reason}")
            raise ElevatedOperationError(operation_description, item_label, e.reason) from e

    async def run(
        self,
        operation_description: str,
        item_label: str,
        operation: Callable[[], Awaitable[Any]],
        elevated_operation: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Run ``operation``, detouring through elevation on permission failures only."""
        try:
            return await operation()
        except (RemoteOperationError, TransferError) as e:
            if not self.is_permission_error(e.reason):
                raise
            self.logger.warning(f"Permission denied for {operation_description} on {item_label}")
            return await self.attempt_elevated(
                operation_description, item_label, elevated_operation, e.reason
            )
