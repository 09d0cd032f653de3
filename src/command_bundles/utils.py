"""Filesystem helpers for installed commands."""

import logging
import shutil
from pathlib import Path

from .exceptions import CommandIOError
from .schema import CommandMetadata

logger = logging.getLogger(__name__)

VCS_DIRS = (".git", ".hg", ".svn")


def copy_command_tree(source: Path, destination: Path) -> None:
    """Copy a cloned command into place, leaving out version-control internals."""
    shutil.copytree(source, destination, ignore=shutil.ignore_patterns(*VCS_DIRS))


def render_standalone_doc(metadata: CommandMetadata, entry_content: str) -> str:
    """Standalone <name>.md: a header block followed by the entry document."""
    return (
        f"# {metadata.name}\n"
        f"\n"
        f"**Version:** {metadata.version}\n"
        f"**Author:** {metadata.author}\n"
        f"**Repository:** {metadata.repository}\n"
        f"\n"
        f"{entry_content}\n"
    )


def remove_command_files(command_dir: Path, standalone_doc: Path) -> None:
    """
    Delete a command's directory and standalone document.

    Missing files are ignored. Failure to remove the directory is fatal;
    failure to remove the standalone document is only logged.

    Raises:
        CommandIOError: If the command directory could not be removed
    """
    if command_dir.is_dir():
        logger.debug(f"Removing command directory {command_dir}")
        try:
            shutil.rmtree(command_dir)
        except OSError as e:
            raise CommandIOError(
                f"Failed to remove command directory {command_dir}: {e}",
                context={"path": str(command_dir)},
            ) from e

    if standalone_doc.exists():
        logger.debug(f"Removing standalone document {standalone_doc}")
        try:
            standalone_doc.unlink()
        except OSError as e:
            logger.warning(f"Failed to remove {standalone_doc}: {e}")
