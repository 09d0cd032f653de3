"""Desired-state file (commands.yaml) management.

The desired-state file is user-edited: a top-level ``commands`` list of
``owner/repo[@version]`` strings. Entry order and any other top-level keys
are preserved when the file is rewritten. Lookups are by normalized
``owner/repo`` path, never by position.
"""

import logging
from pathlib import Path

import yaml

from .exceptions import ConfigFileError
from .spec import CommandSpec
from .spec import derive_command_name
from .spec import extract_repo_path
from .spec import is_ssh_url
from .versioning import is_commit_hash
from .versioning import short_commit

logger = logging.getLogger(__name__)


def config_entry(repository: str, version: str = "") -> str:
    """Build the desired-state line for a repository and requested version.

    Full HTTPS/SSH URLs are reduced to ``owner/repo`` and commit hashes are
    shortened.

    >>> config_entry("git@github.com:org/hello.git", "4f0c3b1d2e")
    'org/hello@4f0c3b1'
    """
    if "://" in repository or is_ssh_url(repository):
        repository = extract_repo_path(repository)

    if version and is_commit_hash(version):
        version = short_commit(version)

    return f"{repository}@{version}" if version else repository


class DesiredState:
    """
    Desired-state file manager (with injected config path).

    Example:
        >>> desired = DesiredState(Path("commands.yaml"))
        >>> [str(spec) for spec in desired.specs()]
        ['org/hello@v1.0.0', 'org/world']
    """

    def __init__(self, config_path: Path):
        """Load the desired-state file if it exists.

        Raises:
            ConfigFileError: If the file exists but is not a valid desired-state document
        """
        self.config_path = config_path
        self._document: dict = {}
        self._commands: list[str] = []
        self._load()

    def _load(self) -> None:
        if not self.config_path.exists():
            return

        try:
            document = yaml.safe_load(self.config_path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as e:
            raise ConfigFileError(
                f"Failed to read {self.config_path}: {e}", context={"path": str(self.config_path)}
            ) from e

        if document is None:
            document = {}
        if not isinstance(document, dict):
            raise ConfigFileError(f"{self.config_path} must be a mapping", context={"path": str(self.config_path)})

        commands = document.get("commands") or []
        if not isinstance(commands, list):
            raise ConfigFileError(
                f"'commands' in {self.config_path} must be a list of strings",
                context={"path": str(self.config_path)},
            )

        for index, item in enumerate(commands):
            if not isinstance(item, str):
                raise ConfigFileError(
                    f"command {index} in {self.config_path} must be a string (e.g. \"owner/repo@version\")",
                    context={"path": str(self.config_path), "index": index},
                )

        self._document = document
        self._commands = list(commands)
        logger.debug(f"Loaded {len(self._commands)} desired commands from {self.config_path}")

    def exists(self) -> bool:
        return self.config_path.exists()

    @property
    def entries(self) -> list[str]:
        return list(self._commands)

    def specs(self) -> list[CommandSpec]:
        return [CommandSpec.parse(entry) for entry in self._commands]

    def find(self, repo_path: str) -> CommandSpec | None:
        """Desired entry for the repository with ``owner/repo`` path ``repo_path``."""
        for spec in self.specs():
            if spec.repo_path == repo_path:
                return spec
        return None

    def save(self) -> None:
        document = dict(self._document)
        document["commands"] = list(self._commands)
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            self.config_path.write_text(
                yaml.safe_dump(document, sort_keys=False, default_flow_style=False, allow_unicode=True),
                encoding="utf-8",
            )
        except OSError as e:
            raise ConfigFileError(
                f"Failed to write {self.config_path}: {e}", context={"path": str(self.config_path)}
            ) from e
        self._document = document
        logger.debug(f"Saved {len(self._commands)} desired commands to {self.config_path}")

    def add(self, repository: str, version: str = "") -> str:
        """
        Add or replace the entry for ``repository`` and save.

        An entry for the same repository is replaced in place, otherwise the
        entry is appended.

        Returns:
            The line written
        """
        line = config_entry(repository, version)
        repo_path = extract_repo_path(repository)
        for index, existing in enumerate(self._commands):
            if CommandSpec.parse(existing).repo_path == repo_path:
                self._commands[index] = line
                self.save()
                return line

        self._commands.append(line)
        self.save()
        return line

    def remove(self, name: str, source: str) -> bool:
        """
        Remove entries for the repository ``source`` or whose derived name is ``name``.

        Returns:
            True if anything was removed (and the file rewritten)
        """
        repo_path = extract_repo_path(source)
        kept = []
        for existing in self._commands:
            spec = CommandSpec.parse(existing)
            if spec.repo_path == repo_path or derive_command_name(spec.repository) == name:
                continue
            kept.append(existing)

        if len(kept) == len(self._commands):
            return False

        self._commands = kept
        self.save()
        return True
