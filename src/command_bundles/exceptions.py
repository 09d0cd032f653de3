"""Command-specific exceptions.

Every error carries a human-readable message plus a context dict with the
command, repository or path involved so the app layer can render an
actionable message.
"""

from typing import Any


class CommandError(Exception):
    """Base exception for command operations."""

    def __init__(self, message: str, context: dict | None = None):
        """Initialize with message and optional context.

        Args:
            message: Human-readable error message
            context: Optional dict with additional context (paths, repository, state)
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class InvalidInputError(CommandError):
    """Missing or invalid repository, command name or option combination."""


class CommandNotFoundError(CommandError):
    """Command or repository is not installed."""


class CommandExistsError(CommandError):
    """Command is already installed (retry with force)."""


class RemoteError(CommandError):
    """Clone or query against the remote repository failed."""


class StructureError(CommandError):
    """Cloned repository lacks a valid metadata file or entry document."""


class CommandIOError(CommandError):
    """Local filesystem operation failed while installing or removing."""


class LockFileError(CommandIOError):
    """Lock file could not be read, parsed or written."""


class ConfigFileError(CommandError):
    """Desired-state file could not be read, parsed or written."""


class GitError(Exception):
    """A git subprocess failed.

    Raised by the git client; the installer wraps it into RemoteError.
    """

    def __init__(self, message: str, output: str = ""):
        super().__init__(message)
        self.output = output


class BatchOperationError(CommandError):
    """One or more items of a bulk operation failed.

    The operation still processed every item; ``result`` holds the per-item
    outcome (an InstallFromConfigResult, UpdateResult or SyncResult).
    """

    def __init__(self, operation: str, failed: int, total: int, result: Any = None):
        super().__init__(
            f"{operation}: {failed} of {total} failed",
            context={"operation": operation, "failed": failed, "total": total},
        )
        self.operation = operation
        self.failed = failed
        self.total = total
        self.result = result
