"""Command identity resolution - map repositories to installed command names.

A command's on-disk name may change between installs (the repository renamed
its command, or the user passed an explicit name) while its source
repository stays the same. Identity is therefore established by reading the
``repository`` recorded in each installed command's metadata, never by
directory name alone.
"""

import logging
from pathlib import Path

from .exceptions import StructureError
from .schema import METADATA_FILENAME
from .schema import CommandMetadata
from .spec import extract_repo_path

logger = logging.getLogger(__name__)


class CommandResolver:
    """
    Resolve installed commands by repository (with injected commands directory).

    Philosophy:
    - Simple, direct filesystem checks
    - No caching (every install reads fresh state)
    """

    def __init__(self, commands_dir: Path):
        """Initialize resolver with app-provided commands directory.

        Args:
            commands_dir: Directory holding one subdirectory per installed command

        Example:
            >>> resolver = CommandResolver(Path(".claude/commands"))
        """
        self.commands_dir = commands_dir

    def installed_repositories(self) -> dict[str, str]:
        """
        Map each installed command name to the ``owner/repo`` its metadata records.

        Directories without readable metadata are skipped.

        Returns:
            Dict of command name -> repository path, in name order
        """
        installed: dict[str, str] = {}
        if not self.commands_dir.is_dir():
            return installed

        for command_dir in sorted(self.commands_dir.iterdir()):
            if not command_dir.is_dir() or command_dir.name.startswith("."):
                continue

            try:
                metadata = CommandMetadata.from_file(command_dir / METADATA_FILENAME)
            except StructureError as e:
                logger.debug(f"Could not read metadata from {command_dir}: {e}")
                continue

            installed[command_dir.name] = extract_repo_path(metadata.repository)

        return installed

    def find_existing_by_repository(self, repo_path: str) -> str | None:
        """
        Return the name the repository ``repo_path`` is installed under, if any.

        Args:
            repo_path: Normalized ``owner/repo`` path

        Returns:
            Installed command name, or None

        Example:
            >>> resolver.find_existing_by_repository("org/hello")
            'hello-world'
        """
        for name, installed_repo in self.installed_repositories().items():
            if installed_repo == repo_path:
                return name
        return None

    def repository_of(self, name: str) -> str | None:
        """``owner/repo`` recorded for the command installed as ``name``."""
        try:
            metadata = CommandMetadata.from_file(self.commands_dir / name / METADATA_FILENAME)
        except StructureError:
            return None
        return extract_repo_path(metadata.repository)
