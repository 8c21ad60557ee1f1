"""Error types and centralized error handling."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any, Callable, Sequence

from logging_config import get_logger

logger = get_logger(__name__)


class GitDiffError(Exception):
    """Base class for errors raised by the sidebar core."""


class ToolUnavailableError(GitDiffError):
    """An external executable could not be found."""

    def __init__(self, executable: str):
        super().__init__(f"Executable not found: {executable}")
        self.executable = executable


class CommandFailedError(GitDiffError):
    """An external executable ran but did not succeed."""

    def __init__(self, args: Sequence[str], returncode: int | None, stderr: str = ""):
        detail = stderr.strip() or ("timed out" if returncode is None else f"exit code {returncode}")
        super().__init__(f"{' '.join(args)}: {detail}")
        self.args_list = list(args)
        self.returncode = returncode
        self.stderr = stderr


class StackParseError(GitDiffError, ValueError):
    """Stacked-branch tool output could not be understood."""


class NotARepositoryError(GitDiffError):
    """The workspace is not inside a git repository."""

    def __init__(self, path: Path):
        super().__init__(f"Not a git repository: {path}")
        self.path = path


class NoWorkspaceError(GitDiffError):
    """No workspace folder has been opened."""


class ErrorSeverity(Enum):
    """How loudly an error is reported."""
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


class ErrorCategory(Enum):
    """Where an error came from."""
    GIT_OPERATION = "git_operation"
    STACK_TOOL = "stack_tool"
    CONFIGURATION = "configuration"
    WORKSPACE = "workspace"
    UI_OPERATION = "ui_operation"
    STARTUP = "startup"
    UNKNOWN = "unknown"


CATEGORY_MESSAGES = {
    ErrorCategory.GIT_OPERATION: "Git operation failed: {}",
    ErrorCategory.STACK_TOOL: "git-spice failed: {}",
    ErrorCategory.CONFIGURATION: "Configuration error: {}",
    ErrorCategory.WORKSPACE: "{}",
    ErrorCategory.UI_OPERATION: "Interface error: {}",
    ErrorCategory.STARTUP: "Application startup error: {}",
    ErrorCategory.UNKNOWN: "An unexpected error occurred: {}",
}


@dataclass
class ErrorInfo:
    """A handled error, as logged and as shown to the user."""
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    user_message: str
    context: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[Exception] = None

    @property
    def notifies_user(self) -> bool:
        return self.severity.value >= logging.ERROR


def git_user_message(exception: Exception, operation: str) -> str:
    """Short explanation of a failed git query for the status bar."""
    if isinstance(exception, ToolUnavailableError):
        return "Git was not found on PATH."
    detail = str(exception).lower()
    if "not a git repository" in detail:
        return "The selected directory is not a Git repository."
    if "unknown revision" in detail or "bad revision" in detail:
        return f"The base reference used for '{operation}' does not exist."
    if "permission denied" in detail:
        return f"Permission denied while running '{operation}'."
    return f"Git operation '{operation}' failed: {exception}"


class ErrorHandler:
    """Logs errors and forwards the serious ones to the UI."""

    def __init__(self):
        self.notification_callback: Optional[Callable[[ErrorInfo], None]] = None

    def set_notification_callback(self, callback: Optional[Callable[[ErrorInfo], None]]):
        """Register the UI callback, or None to detach it."""
        self.notification_callback = callback

    def handle_error(
        self,
        exception: Exception,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        user_message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ) -> ErrorInfo:
        """Log an error and, for ERROR and above, notify the UI."""
        error_info = ErrorInfo(
            category=category,
            severity=severity,
            message=str(exception),
            user_message=user_message or CATEGORY_MESSAGES[category].format(exception),
            context=context or {},
            exception=exception,
        )
        self._log_error(error_info)

        if error_info.notifies_user and self.notification_callback:
            try:
                self.notification_callback(error_info)
            except Exception as e:
                logger.error(f"Error in notification callback: {e}")

        return error_info

    def handle_git_error(
        self,
        exception: Exception,
        operation: str,
        repo_path: Optional[Path] = None,
        severity: ErrorSeverity = ErrorSeverity.WARNING
    ) -> ErrorInfo:
        """Handle a failed git query. Callers fall back to an empty result."""
        return self.handle_error(
            exception,
            ErrorCategory.GIT_OPERATION,
            severity,
            git_user_message(exception, operation),
            {"operation": operation, "repo_path": str(repo_path) if repo_path else None},
        )

    def handle_stack_tool_error(
        self,
        exception: Exception,
        executable: str,
        repo_path: Optional[Path] = None
    ) -> ErrorInfo:
        """Handle git-spice being missing or failing. Never shown to the user."""
        if isinstance(exception, ToolUnavailableError):
            severity, user_message = ErrorSeverity.INFO, f"git-spice not found: {executable}"
        else:
            severity, user_message = ErrorSeverity.WARNING, f"git-spice error: {exception}"
        return self.handle_error(
            exception,
            ErrorCategory.STACK_TOOL,
            severity,
            user_message,
            {"executable": executable, "repo_path": str(repo_path) if repo_path else None},
        )

    def handle_configuration_error(
        self,
        exception: Exception,
        config_key: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.WARNING
    ) -> ErrorInfo:
        """Handle a settings file that could not be read or written."""
        key_info = f" for setting '{config_key}'" if config_key else ""
        return self.handle_error(
            exception,
            ErrorCategory.CONFIGURATION,
            severity,
            f"Configuration error{key_info}: {exception}",
            {"config_key": config_key},
        )

    def _log_error(self, error_info: ErrorInfo):
        log_message = f"[{error_info.category.value}] {error_info.message}"
        if error_info.context:
            log_message += f" | Context: {error_info.context}"
        # tracebacks only where something is actually broken
        exc_info = error_info.exception if error_info.notifies_user else None
        logger.log(error_info.severity.value, log_message, exc_info=exc_info)


# Global error handler instance
_error_handler = ErrorHandler()


def get_error_handler() -> ErrorHandler:
    """Get the global error handler instance."""
    return _error_handler


def handle_error(
    exception: Exception,
    category: ErrorCategory = ErrorCategory.UNKNOWN,
    severity: ErrorSeverity = ErrorSeverity.ERROR,
    user_message: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> ErrorInfo:
    """Convenience function to handle errors using the global handler."""
    return _error_handler.handle_error(exception, category, severity, user_message, context)


def handle_git_error(
    exception: Exception,
    operation: str,
    repo_path: Optional[Path] = None,
    severity: ErrorSeverity = ErrorSeverity.WARNING
) -> ErrorInfo:
    """Convenience function to handle Git errors."""
    return _error_handler.handle_git_error(exception, operation, repo_path, severity)


def handle_stack_tool_error(
    exception: Exception,
    executable: str,
    repo_path: Optional[Path] = None
) -> ErrorInfo:
    """Convenience function to handle git-spice errors."""
    return _error_handler.handle_stack_tool_error(exception, executable, repo_path)


def handle_configuration_error(
    exception: Exception,
    config_key: Optional[str] = None,
    severity: ErrorSeverity = ErrorSeverity.WARNING
) -> ErrorInfo:
    """Convenience function to handle configuration errors."""
    return _error_handler.handle_configuration_error(exception, config_key, severity)
