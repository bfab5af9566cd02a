# remote_explorer/utils/exceptions.py

from enum import Enum
from typing import Any, Dict, Optional

from .translation_utils import _


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for classification."""

    SESSION = "session"
    NETWORK = "network"
    PERMISSION = "permission"
    VALIDATION = "validation"
    TRANSFER = "transfer"
    STORAGE = "storage"
    CONFIG = "config"
    SYSTEM = "system"


class ExplorerError(Exception):
    """Base exception class for all remote explorer errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        details: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.details = details or {}
        self.user_message = user_message or self._generate_user_message()

    def _generate_user_message(self) -> str:
        category_messages = {
            ErrorCategory.SESSION: _("No connected session is available"),
            ErrorCategory.NETWORK: _("A network error occurred"),
            ErrorCategory.PERMISSION: _("A permission error occurred"),
            ErrorCategory.VALIDATION: _("The request was not valid"),
            ErrorCategory.TRANSFER: _("A file transfer error occurred"),
            ErrorCategory.STORAGE: _("A data storage error occurred"),
            ErrorCategory.CONFIG: _("A configuration error occurred"),
            ErrorCategory.SYSTEM: _("A system error occurred"),
        }
        return category_messages.get(self.category, _("An unexpected error occurred"))

    def __str__(self) -> str:
        return f"[{self.category.value.upper()}:{self.severity.value.upper()}] {self.message}"


# --- Invalid input: rejected before any remote call ---


class ExplorerValidationError(ExplorerError):
    """Base class for input rejected before reaching the remote API."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("category", ErrorCategory.VALIDATION)
        kwargs.setdefault("severity", ErrorSeverity.LOW)
        super().__init__(message, **kwargs)


class InvalidPathError(ExplorerValidationError):
    """Raised when a navigation target is empty or not a string."""

    def __init__(self, path: Any, reason: str, **kwargs):
        message = _("Invalid path '{}': {}").format(path, reason)
        kwargs.setdefault("details", {"path": path, "reason": reason})
        kwargs.setdefault("user_message", _("Invalid path: {}").format(reason))
        super().__init__(message, **kwargs)


class InvalidNameError(ExplorerValidationError):
    """Raised when a new file or folder name cannot be used."""

    def __init__(self, name: Any, reason: str, **kwargs):
        message = _("Invalid name '{}': {}").format(name, reason)
        kwargs.setdefault("details", {"name": name, "reason": reason})
        kwargs.setdefault("user_message", _("Invalid name: {}").format(reason))
        super().__init__(message, **kwargs)


class SessionUnavailableError(ExplorerError):
    """Raised when an operation needs a foreground session and none exists."""

    def __init__(self, operation: str, **kwargs):
        message = _("Cannot {}: no active remote session").format(operation)
        kwargs.setdefault("category", ErrorCategory.SESSION)
        kwargs.setdefault("severity", ErrorSeverity.LOW)
        kwargs.setdefault("details", {"operation": operation})
        kwargs.setdefault("user_message", _("Select a connected session first"))
        super().__init__(message, **kwargs)


# --- Remote failures ---


class RemoteOperationError(ExplorerError):
    """Raised when a remote file API call fails."""

    def __init__(self, operation: str, target: str, reason: str, **kwargs):
        message = _("Failed to {} '{}': {}").format(operation, target, reason)
        kwargs.setdefault("category", ErrorCategory.NETWORK)
        kwargs.setdefault("details", {"operation": operation, "target": target, "reason": reason})
        kwargs.setdefault("user_message", _("Failed to {}: {}").format(operation, reason))
        super().__init__(message, **kwargs)
        self.operation = operation
        self.target = target
        self.reason = reason


class DirectoryListingError(RemoteOperationError):
    """Raised when a directory cannot be read."""

    def __init__(self, path: str, reason: str, **kwargs):
        kwargs.setdefault(
            "user_message", _("Failed to read directory {}: {}").format(path, reason)
        )
        super().__init__(_("read directory"), path, reason, **kwargs)


class PermissionDeniedError(RemoteOperationError):
    """Raised when a remote operation failed for lack of privileges."""

    def __init__(self, operation: str, target: str, reason: str, **kwargs):
        kwargs.setdefault("category", ErrorCategory.PERMISSION)
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        super().__init__(operation, target, reason, **kwargs)


class ElevationDeclinedError(PermissionDeniedError):
    """Raised when the user declines to retry with elevated privileges."""

    def __init__(self, operation: str, target: str, reason: str = "", **kwargs):
        kwargs.setdefault("severity", ErrorSeverity.LOW)
        kwargs.setdefault(
            "user_message", _("{} was not retried with elevated privileges").format(target)
        )
        super().__init__(operation, target, reason or _("elevation declined"), **kwargs)


class ElevatedOperationError(PermissionDeniedError):
    """Raised when the privileged retry failed too. Never retried again."""

    def __init__(self, operation: str, target: str, reason: str, **kwargs):
        kwargs.setdefault(
            "user_message",
            _("Failed to {} even with elevated privileges: {}").format(operation, reason),
        )
        super().__init__(operation, target, reason, **kwargs)


# --- Transfers ---


class TransferError(ExplorerError):
    """Raised when an upload or download batch fails."""

    def __init__(self, direction: str, reason: str, **kwargs):
        message = _("{} failed: {}").format(direction.capitalize(), reason)
        kwargs.setdefault("category", ErrorCategory.TRANSFER)
        kwargs.setdefault("details", {"direction": direction, "reason": reason})
        super().__init__(message, **kwargs)
        self.direction = direction
        self.reason = reason


class TransferCancelledError(ExplorerError):
    """Signals a transfer stopped at the user's request. Not a failure."""

    def __init__(self, direction: str, **kwargs):
        message = _("{} cancelled by user").format(direction.capitalize())
        kwargs.setdefault("category", ErrorCategory.TRANSFER)
        kwargs.setdefault("severity", ErrorSeverity.LOW)
        super().__init__(message, **kwargs)


# --- Storage and configuration ---


class StorageError(ExplorerError):
    """Base class for storage-related errors."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("category", ErrorCategory.STORAGE)
        super().__init__(message, **kwargs)


class StorageReadError(StorageError):
    """Raised when reading from storage fails."""

    def __init__(self, file_path: str, reason: str, **kwargs):
        message = _("Failed to read from '{}': {}").format(file_path, reason)
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        kwargs.setdefault("details", {"file_path": file_path, "reason": reason})
        kwargs.setdefault("user_message", _("Could not load saved data"))
        super().__init__(message, **kwargs)


class StorageWriteError(StorageError):
    """Raised when writing to storage fails."""

    def __init__(self, file_path: str, reason: str, **kwargs):
        message = _("Failed to write to '{}': {}").format(file_path, reason)
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        kwargs.setdefault("details", {"file_path": file_path, "reason": reason})
        kwargs.setdefault("user_message", _("Could not save data"))
        super().__init__(message, **kwargs)


class ConfigValidationError(ExplorerError):
    """Raised when a setting value is rejected."""

    def __init__(self, config_key: str, value: Any, reason: str, **kwargs):
        message = _("Invalid configuration for '{}' (value: {}): {}").format(
            config_key, value, reason
        )
        kwargs.setdefault("category", ErrorCategory.CONFIG)
        kwargs.setdefault(
            "details", {"config_key": config_key, "value": value, "reason": reason}
        )
        kwargs.setdefault("user_message", _("Configuration error: {}").format(reason))
        super().__init__(message, **kwargs)


def handle_exception(
    exception: Exception,
    context: str = "",
    logger_name: str = None,
    reraise: bool = False,
) -> Optional[ExplorerError]:
    """Log an exception and convert it to an ExplorerError."""
    from .logger import log_error_with_context

    log_error_with_context(exception, context, logger_name)
    converted_exception = (
        exception
        if isinstance(exception, ExplorerError)
        else ExplorerError(
            message=str(exception),
            details={"original_type": type(exception).__name__, "context": context},
        )
    )
    if reraise:
        raise converted_exception
    return converted_exception
