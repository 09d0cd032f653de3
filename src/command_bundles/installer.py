"""Command installation and removal.

An install runs as a fixed sequence of states:

    VALIDATING -> CLONED -> STRUCTURE_CHECKED -> IDENTITY_RESOLVED
    -> FILES_COPIED -> DOC_WRITTEN -> METADATA_UPDATED -> LOCK_UPDATED
    -> CONFIG_UPDATED -> DONE

with FAILED reachable from any of them. Failures between IDENTITY_RESOLVED
and LOCK_UPDATED roll back the files written for the command, so a command
never exists on disk without a lock entry. Deleting a previous installation
under ``force`` is not rolled back. The desired-state update is best-effort:
its failure is logged and the install still succeeds.
"""

import logging
import shutil
import tempfile
from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from pathlib import Path

from .config import DesiredState
from .exceptions import BatchOperationError
from .exceptions import CommandError
from .exceptions import CommandExistsError
from .exceptions import CommandIOError
from .exceptions import CommandNotFoundError
from .exceptions import GitError
from .exceptions import InvalidInputError
from .exceptions import LockFileError
from .exceptions import RemoteError
from .exceptions import StructureError
from .lock import CommandLock
from .lock import CommandLockEntry
from .project import ProjectLayout
from .protocols import GitClientProtocol
from .resolver import CommandResolver
from .schema import METADATA_FILENAME
from .schema import CommandMetadata
from .spec import derive_command_name
from .spec import extract_repo_path
from .spec import normalize_repository_url
from .spec import parse_repository_spec
from .spec import validate_command_name
from .utils import copy_command_tree
from .utils import remove_command_files
from .utils import render_standalone_doc
from .versioning import UNKNOWN_COMMIT
from .versioning import is_commit_hash
from .versioning import resolve_version

logger = logging.getLogger(__name__)


class InstallState(str, Enum):
    VALIDATING = "validating"
    CLONED = "cloned"
    STRUCTURE_CHECKED = "structure_checked"
    IDENTITY_RESOLVED = "identity_resolved"
    FILES_COPIED = "files_copied"
    DOC_WRITTEN = "doc_written"
    METADATA_UPDATED = "metadata_updated"
    LOCK_UPDATED = "lock_updated"
    CONFIG_UPDATED = "config_updated"
    DONE = "done"
    FAILED = "failed"


@dataclass
class InstallOptions:
    """Options for installing one command."""

    repository: str
    version: str = ""
    # Commit to check out instead of ``version`` (lock pin); ``version`` still
    # goes to the desired-state file
    commit: str = ""
    name: str = ""
    force: bool = False


@dataclass
class RemoveOptions:
    """Options for removing one command."""

    name: str
    update_config: bool = False


@dataclass
class ItemFailure:
    """One failed item of a bulk operation."""

    item: str
    operation: str
    error: CommandError


@dataclass
class InstallFromConfigResult:
    installed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[ItemFailure] = field(default_factory=list)


@dataclass
class _ClonedCommand:
    url: str
    clone_dir: Path
    metadata: CommandMetadata
    entry_path: Path
    effective_version: str
    commit: str


class Installer:
    """
    Install commands from git repositories into a project.

    Example:
        >>> installer = Installer(ProjectLayout(Path(".")), GitClient())
        >>> installer.install(InstallOptions(repository="org/hello@v1.0.0"))
        'hello'
    """

    def __init__(self, layout: ProjectLayout, git: GitClientProtocol):
        """Initialize installer.

        Args:
            layout: Project paths (app policy)
            git: Git client used for clones and version queries
        """
        self.layout = layout
        self.git = git
        self.resolver = CommandResolver(layout.commands_dir)
        self.state = InstallState.VALIDATING

    def _advance(self, state: InstallState) -> None:
        logger.debug(f"Install state: {self.state.value} -> {state.value}")
        self.state = state

    def install(self, options: InstallOptions) -> str:
        """
        Install a single command.

        Args:
            options: What to install

        Returns:
            Final command name

        Raises:
            InvalidInputError: Missing repository or invalid command name
            RemoteError: Clone failed
            StructureError: Repository lacks valid command.yaml or entry document
            CommandExistsError: Repository (or name) already installed and not forced
            CommandIOError: Copying files or writing the lock file failed (rolled back)
        """
        self.state = InstallState.VALIDATING
        try:
            return self._install(options)
        except CommandError as e:
            e.context.setdefault("state", self.state.value)
            self._advance(InstallState.FAILED)
            raise

    def _install(self, options: InstallOptions) -> str:
        if not options.repository.strip():
            raise InvalidInputError("repository URL is required")
        if options.name:
            validate_command_name(options.name)

        repository, embedded_version = parse_repository_spec(options.repository.strip())
        if not repository:
            raise InvalidInputError(f"no repository in {options.repository!r}", context={"spec": options.repository})
        requested_version = options.version or embedded_version
        url = normalize_repository_url(repository)
        clone_ref = options.commit or requested_version

        with tempfile.TemporaryDirectory(prefix="command-bundles-") as tmpdir:
            cloned = self._clone(url, Path(tmpdir) / "repo", clone_ref, requested_version)

            name = options.name or cloned.metadata.name or derive_command_name(url)
            validate_command_name(name)
            previous_name = self._resolve_identity(name, extract_repo_path(url), options.force)
            self._advance(InstallState.IDENTITY_RESOLVED)

            metadata = cloned.metadata.model_copy(update={"name": name, "repository": url})
            self._place_files(cloned, metadata)
            self._record_lock(cloned, metadata)

        self._update_desired_state(repository, requested_version)
        self._advance(InstallState.DONE)

        if previous_name and previous_name != name:
            logger.info(f"Installed command {previous_name!r} renamed to {name!r}")
        else:
            logger.info(f"Command {name!r} installed from {url}")
        return name

    def _clone(self, url: str, clone_dir: Path, ref: str, requested_version: str) -> _ClonedCommand:
        """Clone at ``ref`` (a lock pin or the requested version); the version recorded is ``requested_version``."""
        logger.info(f"Cloning {url}" + (f" at {ref}" if ref else ""))
        try:
            self.git.clone(url, clone_dir, ref)
        except GitError as e:
            raise RemoteError(
                f"Failed to clone {url}" + (f" at {ref}" if ref else "") + f": {e}",
                context={"repository": url, "ref": ref},
            ) from e
        self._advance(InstallState.CLONED)

        try:
            metadata = CommandMetadata.from_file(clone_dir / METADATA_FILENAME)
        except StructureError as e:
            raise StructureError(
                f"{url} is not a valid command repository: {e.message}",
                context={**e.context, "repository": url},
            ) from e

        entry_path = clone_dir / metadata.entry
        if not entry_path.is_file():
            raise StructureError(
                f"{url} is not a valid command repository: entry document {metadata.entry!r} not found",
                context={"repository": url, "entry": metadata.entry},
            )
        self._advance(InstallState.STRUCTURE_CHECKED)

        return _ClonedCommand(
            url=url,
            clone_dir=clone_dir,
            metadata=metadata,
            entry_path=entry_path,
            effective_version=resolve_version(requested_version, clone_dir, self.git),
            commit=self._read_commit(clone_dir, ref),
        )

    def _read_commit(self, clone_dir: Path, ref: str) -> str:
        try:
            if ref and not is_commit_hash(ref):
                return self.git.ref_commit(clone_dir, ref)
            return self.git.current_commit(clone_dir)
        except GitError as e:
            logger.warning(f"Could not read commit of {clone_dir}: {e}")
            return UNKNOWN_COMMIT

    def _resolve_identity(self, name: str, repo_path: str, force: bool) -> str | None:
        """
        Check ``name`` against what is installed and clear the way under force.

        Returns:
            Name the repository was previously installed under, if any
        """
        locked = CommandLock(self.layout.lock_path).get_entry(name)
        if locked is not None and locked.repo_path != repo_path:
            # A broken command (files gone, lock entry kept) still owns its name
            raise CommandExistsError(
                f"command {name!r} already exists (installed from {locked.repo_path}); "
                f"remove it first or install {repo_path} under a different name",
                context={"name": name, "repository": repo_path, "installed_repository": locked.repo_path},
            )

        existing = self.resolver.find_existing_by_repository(repo_path)

        command_dir = self.layout.command_dir(name)
        if command_dir.exists() and existing != name:
            owner = self.resolver.repository_of(name)
            if owner is not None or not force:
                raise CommandExistsError(
                    f"command {name!r} already exists (installed from {owner or 'an unknown source'}); "
                    f"remove it first or install {repo_path} under a different name",
                    context={"name": name, "repository": repo_path, "installed_repository": owner},
                )
            logger.warning(f"Replacing unreadable command directory {command_dir}")
            remove_command_files(command_dir, self.layout.standalone_doc(name))

        if existing is None:
            return None

        if not force:
            raise CommandExistsError(
                f"repository {repo_path} already installed as command {existing!r}, use --force to reinstall",
                context={"name": existing, "repository": repo_path},
            )

        logger.info(f"Removing previous installation {existing!r}")
        remove_command_files(self.layout.command_dir(existing), self.layout.standalone_doc(existing))
        return existing

    def _place_files(self, cloned: _ClonedCommand, metadata: CommandMetadata) -> None:
        command_dir = self.layout.command_dir(metadata.name)
        standalone_doc = self.layout.standalone_doc(metadata.name)

        try:
            self.layout.commands_dir.mkdir(parents=True, exist_ok=True)
            copy_command_tree(cloned.clone_dir, command_dir)
            self._advance(InstallState.FILES_COPIED)

            entry_content = cloned.entry_path.read_text(encoding="utf-8")
            standalone_doc.write_text(render_standalone_doc(metadata, entry_content), encoding="utf-8")
            self._advance(InstallState.DOC_WRITTEN)

            metadata.write(command_dir / METADATA_FILENAME)
            self._advance(InstallState.METADATA_UPDATED)
        except (OSError, UnicodeDecodeError) as e:
            self._rollback(metadata.name)
            raise CommandIOError(
                f"Failed to install files for {metadata.name!r}: {e}",
                context={"name": metadata.name, "path": str(command_dir)},
            ) from e

    def _record_lock(self, cloned: _ClonedCommand, metadata: CommandMetadata) -> None:
        resolved = cloned.url
        if cloned.effective_version:
            resolved = f"{cloned.url}@{cloned.effective_version}"

        try:
            lock = CommandLock(self.layout.lock_path)
            lock.record_install(
                name=metadata.name,
                version=cloned.metadata.version,
                source=cloned.url,
                resolved=resolved,
                commit=cloned.commit,
            )
        except LockFileError:
            self._rollback(metadata.name)
            raise
        self._advance(InstallState.LOCK_UPDATED)

    def _update_desired_state(self, repository: str, version: str) -> None:
        try:
            DesiredState(self.layout.config_path).add(repository, version)
        except CommandError as e:
            logger.warning(f"Failed to update {self.layout.config_path}: {e}")
            return
        self._advance(InstallState.CONFIG_UPDATED)

    def _rollback(self, name: str) -> None:
        logger.debug(f"Rolling back files of {name!r} (state {self.state.value})")
        command_dir = self.layout.command_dir(name)
        standalone_doc = self.layout.standalone_doc(name)

        shutil.rmtree(command_dir, ignore_errors=True)
        try:
            standalone_doc.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Rollback could not remove {standalone_doc}: {e}")

    def install_from_config(self, force: bool = False) -> InstallFromConfigResult:
        """
        Install every command listed in the desired-state file.

        Clones are pinned to the commit the lock file records for the same
        repository. Repositories already installed are skipped unless ``force``.

        Raises:
            BatchOperationError: If any command failed (after trying all of them)
        """
        result = InstallFromConfigResult()
        specs = DesiredState(self.layout.config_path).specs()
        if not specs:
            logger.info(f"No commands found in {self.layout.config_path}")
            return result

        try:
            lock = CommandLock(self.layout.lock_path)
        except LockFileError as e:
            logger.warning(f"Ignoring unreadable lock file, installing without commit pins: {e}")
            lock = None

        for spec in specs:
            if not force and self.resolver.find_existing_by_repository(spec.repo_path) is not None:
                logger.info(f"{spec} already installed, skipping")
                result.skipped.append(str(spec))
                continue

            pinned = ""
            entry = lock.find_by_repository(spec.repo_path) if lock is not None else None
            if entry is not None and entry.commit != UNKNOWN_COMMIT:
                pinned = entry.commit

            logger.info(f"Installing {spec}")
            try:
                name = self.install(
                    InstallOptions(repository=spec.repository, version=spec.version, commit=pinned, force=force)
                )
            except CommandError as e:
                logger.error(f"Failed to install {spec}: {e}")
                result.failed.append(ItemFailure(item=str(spec), operation="install", error=e))
            else:
                result.installed.append(name)

        if result.failed:
            raise BatchOperationError("install", len(result.failed), len(specs), result)
        return result


def remove_command(layout: ProjectLayout, options: RemoveOptions) -> CommandLockEntry:
    """
    Remove an installed command (files + lock entry).

    Args:
        layout: Project paths
        options: Command to remove; ``update_config`` also drops it from commands.yaml

    Returns:
        The lock entry that was removed

    Raises:
        InvalidInputError: If no name was given
        CommandNotFoundError: If the command is not in the lock file
        CommandIOError: If the command directory or lock file could not be updated
    """
    if not options.name:
        raise InvalidInputError("command name is required")

    if not layout.lock_path.exists():
        raise CommandNotFoundError(
            f"no commands installed ({layout.lock_path.name} not found)",
            context={"name": options.name, "path": str(layout.lock_path)},
        )

    lock = CommandLock(layout.lock_path)
    entry = lock.get_entry(options.name)
    if entry is None:
        raise CommandNotFoundError(f"command {options.name!r} is not installed", context={"name": options.name})

    logger.info(f"Removing command {options.name!r} ({entry.source})")
    remove_command_files(layout.command_dir(options.name), layout.standalone_doc(options.name))
    lock.remove_entry(options.name)

    if options.update_config:
        try:
            if DesiredState(layout.config_path).remove(options.name, entry.source):
                logger.info(f"Removed {options.name!r} from {layout.config_path.name}")
        except CommandError as e:
            logger.warning(f"Failed to update {layout.config_path}: {e}")

    logger.info(f"Command {options.name!r} removed")
    return entry
