"""Update installed commands.

Single-command and bulk updates share one decision, applied in order:

1. force: always update
2. no tracked version: always update (the command tracks latest)
3. tracked version is a commit hash: never update (pinned)
4. otherwise compare the commit recorded in the lock with the remote commit
   of the same ref; mismatch or failed lookup means update
"""

import logging
from dataclasses import dataclass
from dataclasses import field
from enum import Enum

from .config import DesiredState
from .exceptions import BatchOperationError
from .exceptions import CommandError
from .exceptions import CommandNotFoundError
from .exceptions import GitError
from .exceptions import InvalidInputError
from .installer import InstallOptions
from .installer import Installer
from .installer import ItemFailure
from .lock import CommandLock
from .lock import CommandLockEntry
from .project import ProjectLayout
from .protocols import GitClientProtocol
from .spec import parse_repository_spec
from .versioning import UNKNOWN_COMMIT
from .versioning import is_commit_hash

logger = logging.getLogger(__name__)


class UpdateReason(str, Enum):
    FORCED = "forced update"
    TRACKS_LATEST = "tracks latest version"
    PINNED = "pinned to commit"
    UP_TO_DATE = "already up to date"
    UPDATE_AVAILABLE = "update available"
    CHECK_FAILED = "check failed"


@dataclass
class UpdateOptions:
    name: str = ""
    all: bool = False
    check_only: bool = False
    force: bool = False


@dataclass
class UpdateCheck:
    """Outcome of the update decision for one command."""

    name: str
    tracked_version: str
    needs_update: bool
    reason: UpdateReason

    @property
    def pinned(self) -> bool:
        return self.reason is UpdateReason.PINNED


@dataclass
class UpdateResult:
    checks: list[UpdateCheck] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    failed: list[ItemFailure] = field(default_factory=list)
    # old name -> new name, for commands whose name changed on update
    renamed: dict[str, str] = field(default_factory=dict)
    check_only: bool = False

    @property
    def checked_count(self) -> int:
        return len(self.checks)

    @property
    def updated_count(self) -> int:
        return len(self.updated)

    @property
    def failed_count(self) -> int:
        return len(self.failed)


class Updater:
    """
    Check and apply updates for installed commands.

    Example:
        >>> updater = Updater(ProjectLayout(Path(".")), GitClient())
        >>> result = updater.update(UpdateOptions(all=True, check_only=True))
        >>> [(check.name, check.reason.value) for check in result.checks]
        [('hello', 'update available'), ('world', 'pinned to commit')]
    """

    def __init__(self, layout: ProjectLayout, git: GitClientProtocol):
        self.layout = layout
        self.git = git
        self.installer = Installer(layout, git)

    def tracked_version(self, entry: CommandLockEntry, desired: DesiredState) -> str:
        """
        Version a command follows.

        The version written in commands.yaml for the repository when it is
        listed there ("" means latest), otherwise the ref recorded in the lock.
        """
        spec = desired.find(entry.repo_path)
        if spec is not None:
            return spec.version
        _, version = parse_repository_spec(entry.resolved)
        return version

    def should_update(self, name: str, tracked_version: str, force: bool) -> tuple[bool, UpdateReason]:
        """Decide whether ``name`` needs updating, and why."""
        if force:
            return True, UpdateReason.FORCED

        if not tracked_version:
            return True, UpdateReason.TRACKS_LATEST

        if is_commit_hash(tracked_version):
            return False, UpdateReason.PINNED

        entry = CommandLock(self.layout.lock_path).get_entry(name)
        if entry is None or entry.commit in ("", UNKNOWN_COMMIT):
            logger.warning(f"No recorded commit for {name!r}, assuming an update is needed")
            return True, UpdateReason.CHECK_FAILED

        try:
            remote_commit = self.git.remote_ref_commit(entry.source, tracked_version)
        except GitError as e:
            logger.warning(f"Could not check {name!r} for updates: {e}")
            return True, UpdateReason.CHECK_FAILED

        if remote_commit == entry.commit:
            return False, UpdateReason.UP_TO_DATE
        return True, UpdateReason.UPDATE_AVAILABLE

    def update(self, options: UpdateOptions) -> UpdateResult:
        """
        Update one command (``name``) or every installed command (``all``).

        Raises:
            InvalidInputError: If both or neither of ``name`` and ``all`` are given
            CommandNotFoundError: If ``name`` is not installed
            CommandError: First fatal error of a single-command update
            BatchOperationError: If any command of an ``all`` update failed
        """
        if options.all and options.name:
            raise InvalidInputError("cannot specify a command name together with --all")
        if not options.all and not options.name:
            raise InvalidInputError("command name required (or use --all)")

        lock = CommandLock(self.layout.lock_path)
        desired = DesiredState(self.layout.config_path)
        result = UpdateResult(check_only=options.check_only)

        if options.name:
            entry = lock.get_entry(options.name)
            if entry is None:
                raise CommandNotFoundError(f"command {options.name!r} is not installed", context={"name": options.name})
            self._update_one(entry, desired, options, result)
            return result

        entries = lock.list_entries()
        if not entries:
            logger.info("No commands installed")
            return result

        logger.info(f"Checking {len(entries)} commands for updates")
        for entry in entries:
            try:
                self._update_one(entry, desired, options, result)
            except CommandError as e:
                logger.error(f"Failed to update {entry.name}: {e}")
                result.failed.append(ItemFailure(item=entry.name, operation="update", error=e))

        logger.info(f"Update finished: {result.updated_count} updated, {result.failed_count} failed")
        if result.failed:
            raise BatchOperationError("update", result.failed_count, result.checked_count, result)
        return result

    def _update_one(
        self,
        entry: CommandLockEntry,
        desired: DesiredState,
        options: UpdateOptions,
        result: UpdateResult,
    ) -> None:
        version = self.tracked_version(entry, desired)
        needs_update, reason = self.should_update(entry.name, version, options.force)
        result.checks.append(UpdateCheck(entry.name, version, needs_update, reason))
        logger.debug(f"{entry.name}: {reason.value}")

        if options.check_only or not needs_update:
            return

        if options.force and is_commit_hash(version):
            logger.warning(f"Force updating {entry.name!r}, installed with commit {version[:7]}")

        # No explicit name: the command may have been renamed upstream
        new_name = self.installer.install(InstallOptions(repository=entry.source, version=version, force=True))
        result.updated.append(new_name)
        if new_name != entry.name:
            result.renamed[entry.name] = new_name
            logger.info(f"Command {entry.name!r} updated to {new_name!r}")
        else:
            logger.info(f"Command {entry.name!r} updated")
