"""Reconcile installed commands with the desired-state file.

Commands are matched by name: a desired entry's name is derived from its
repository path (or is the name that repository is already installed under),
an installed command's name is its lock key. Desired names
that are not installed get installed; installed names that are not desired
get removed (without rewriting commands.yaml, which is the source of truth
here).
"""

import logging
from dataclasses import dataclass
from dataclasses import field

from .config import DesiredState
from .discovery import list_commands
from .exceptions import BatchOperationError
from .exceptions import CommandError
from .installer import InstallOptions
from .installer import Installer
from .installer import ItemFailure
from .installer import RemoveOptions
from .installer import remove_command
from .project import ProjectLayout
from .protocols import GitClientProtocol
from .spec import CommandSpec
from .spec import extract_repo_path

logger = logging.getLogger(__name__)


@dataclass
class SyncAnalysis:
    """What a sync would install and remove."""

    to_install: list[CommandSpec] = field(default_factory=list)
    to_remove: list[str] = field(default_factory=list)

    @property
    def in_sync(self) -> bool:
        return not self.to_install and not self.to_remove


@dataclass
class SyncOptions:
    dry_run: bool = False


@dataclass
class SyncResult:
    analysis: SyncAnalysis
    installed: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    failed: list[ItemFailure] = field(default_factory=list)
    dry_run: bool = False


def analyze(
    desired: list[CommandSpec],
    installed: list[str],
    installed_by_repo: dict[str, str] | None = None,
) -> SyncAnalysis:
    """
    Compute the install/remove actions that bring ``installed`` in line with ``desired``.

    Pure function; order of both inputs is preserved in the output.

    Args:
        desired: Desired entries
        installed: Installed command names
        installed_by_repo: ``owner/repo`` -> installed name, so a repository
            installed under a name other than its derived one still counts as installed

    Example:
        >>> analysis = analyze([CommandSpec.parse("user/a")], ["a", "b"])
        >>> analysis.to_remove
        ['b']
    """
    desired_by_name: dict[str, CommandSpec] = {}
    installed_by_repo = installed_by_repo or {}
    for spec in desired:
        desired_by_name.setdefault(installed_by_repo.get(spec.repo_path, spec.name), spec)
    installed_names = set(installed)

    return SyncAnalysis(
        to_install=[spec for name, spec in desired_by_name.items() if name not in installed_names],
        to_remove=[name for name in dict.fromkeys(installed) if name not in desired_by_name],
    )


def analyze_sync(layout: ProjectLayout) -> SyncAnalysis:
    """Compare the project's commands.yaml against its lock file."""
    desired = DesiredState(layout.config_path).specs()
    commands = list_commands(layout)
    installed = [command.name for command in commands]
    installed_by_repo = {extract_repo_path(command.repository): command.name for command in commands}
    return analyze(desired, installed, installed_by_repo)


def sync(layout: ProjectLayout, git: GitClientProtocol, options: SyncOptions | None = None) -> SyncResult:
    """
    Install missing and remove extra commands.

    Every item is attempted; failures are collected rather than aborting.

    Returns:
        SyncResult (with nothing applied when in sync or ``dry_run``)

    Raises:
        BatchOperationError: If any item failed; ``result`` holds the SyncResult
    """
    options = options or SyncOptions()
    analysis = analyze_sync(layout)
    result = SyncResult(analysis=analysis, dry_run=options.dry_run)

    if analysis.in_sync:
        logger.info("Commands are in sync")
        return result

    if options.dry_run:
        logger.info(
            f"Dry run: would install {len(analysis.to_install)} and remove {len(analysis.to_remove)} command(s)"
        )
        return result

    installer = Installer(layout, git)
    for spec in analysis.to_install:
        try:
            installer.install(InstallOptions(repository=spec.repository, version=spec.version))
        except CommandError as e:
            logger.error(f"Failed to install {spec}: {e}")
            result.failed.append(ItemFailure(item=str(spec), operation="install", error=e))
        else:
            result.installed.append(str(spec))

    for name in analysis.to_remove:
        try:
            remove_command(layout, RemoveOptions(name=name, update_config=False))
        except CommandError as e:
            logger.error(f"Failed to remove {name}: {e}")
            result.failed.append(ItemFailure(item=name, operation="remove", error=e))
        else:
            result.removed.append(name)

    total = len(analysis.to_install) + len(analysis.to_remove)
    logger.info(
        f"Sync finished: {len(result.installed)} installed, {len(result.removed)} removed, {len(result.failed)} failed"
    )
    if result.failed:
        raise BatchOperationError("sync", len(result.failed), total, result)
    return result
