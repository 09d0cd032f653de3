"""command-bundles - Install, update, remove and sync command bundles from git repositories.

Public API exports. This is library mechanism: apps inject policy (project
layout, git client) and render the returned data themselves.
"""

from .config import DesiredState
from .discovery import CommandDetail
from .discovery import ContentPreview
from .discovery import StructureInfo
from .discovery import get_command_info
from .discovery import inspect_command
from .discovery import list_commands
from .discovery import read_content_preview
from .discovery import search_commands
from .exceptions import BatchOperationError
from .exceptions import CommandError
from .exceptions import CommandExistsError
from .exceptions import CommandIOError
from .exceptions import CommandNotFoundError
from .exceptions import ConfigFileError
from .exceptions import GitError
from .exceptions import InvalidInputError
from .exceptions import LockFileError
from .exceptions import RemoteError
from .exceptions import StructureError
from .git import GitClient
from .installer import InstallFromConfigResult
from .installer import Installer
from .installer import InstallOptions
from .installer import InstallState
from .installer import ItemFailure
from .installer import RemoveOptions
from .installer import remove_command
from .lock import CommandLock
from .lock import CommandLockEntry
from .project import ProjectLayout
from .protocols import GitClientProtocol
from .resolver import CommandResolver
from .schema import CommandMetadata
from .spec import CommandSpec
from .spec import extract_repo_path
from .spec import normalize_repository_url
from .spec import parse_repository_spec
from .sync import SyncAnalysis
from .sync import SyncOptions
from .sync import SyncResult
from .sync import analyze_sync
from .sync import sync
from .update import UpdateOptions
from .update import UpdateReason
from .update import UpdateResult
from .update import Updater
from .versioning import is_commit_hash
from .versioning import resolve_version

__all__ = [
    # Specs and versions
    "CommandSpec",
    "parse_repository_spec",
    "normalize_repository_url",
    "extract_repo_path",
    "is_commit_hash",
    "resolve_version",
    # Project state
    "ProjectLayout",
    "DesiredState",
    "CommandLock",
    "CommandLockEntry",
    "CommandMetadata",
    "CommandResolver",
    # Git
    "GitClient",
    "GitClientProtocol",
    # Installation
    "Installer",
    "InstallOptions",
    "InstallState",
    "InstallFromConfigResult",
    "ItemFailure",
    "RemoveOptions",
    "remove_command",
    # Update
    "Updater",
    "UpdateOptions",
    "UpdateReason",
    "UpdateResult",
    # Sync
    "SyncAnalysis",
    "SyncOptions",
    "SyncResult",
    "analyze_sync",
    "sync",
    # Discovery
    "CommandDetail",
    "ContentPreview",
    "StructureInfo",
    "list_commands",
    "get_command_info",
    "inspect_command",
    "read_content_preview",
    "search_commands",
    # Exceptions
    "CommandError",
    "InvalidInputError",
    "CommandNotFoundError",
    "CommandExistsError",
    "RemoteError",
    "StructureError",
    "CommandIOError",
    "LockFileError",
    "ConfigFileError",
    "GitError",
    "BatchOperationError",
]

__version__ = "0.1.0"
