"""Project layout - where desired state, lock file and commands live.

Apps construct a ProjectLayout for an explicit root, or let discover() find
one from the working directory.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "commands.yaml"
LOCK_FILENAME = "commands-lock.yaml"
COMMANDS_DIRNAME = Path(".claude") / "commands"

PROJECT_ROOT_ENV = "COMMAND_BUNDLES_PROJECT_ROOT"


def find_project_root(start: Path) -> Path:
    """Walk up from ``start`` to the nearest directory holding commands.yaml.

    Falls back to ``start`` itself when no ancestor has one.
    """
    start = start.resolve()
    for directory in (start, *start.parents):
        if (directory / CONFIG_FILENAME).exists():
            return directory
    return start


@dataclass(frozen=True)
class ProjectLayout:
    """Paths of a project's desired-state file, lock file and commands."""

    root: Path

    @classmethod
    def discover(cls, start: Path | None = None) -> "ProjectLayout":
        """Locate the project root.

        ``COMMAND_BUNDLES_PROJECT_ROOT`` wins when set; otherwise the nearest
        ancestor of ``start`` (default: cwd) with a commands.yaml.
        """
        override = os.environ.get(PROJECT_ROOT_ENV)
        if override:
            logger.debug(f"Using project root from {PROJECT_ROOT_ENV}: {override}")
            return cls(root=Path(override).expanduser().resolve())

        return cls(root=find_project_root(start or Path.cwd()))

    @property
    def config_path(self) -> Path:
        return self.root / CONFIG_FILENAME

    @property
    def lock_path(self) -> Path:
        return self.root / LOCK_FILENAME

    @property
    def commands_dir(self) -> Path:
        return self.root / COMMANDS_DIRNAME

    def command_dir(self, name: str) -> Path:
        return self.commands_dir / name

    def standalone_doc(self, name: str) -> Path:
        return self.commands_dir / f"{name}.md"
