"""Installed command discovery - list, inspect and search installed commands.

The lock file drives listing: every lock entry is reported, and a command
whose files are missing or whose metadata is malformed is reported as broken
rather than left out.
"""

import logging
from datetime import datetime

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from .exceptions import CommandNotFoundError
from .exceptions import StructureError
from .lock import CommandLock
from .lock import CommandLockEntry
from .project import ProjectLayout
from .schema import METADATA_FILENAME
from .schema import CommandMetadata

logger = logging.getLogger(__name__)

MISSING_DIRECTORY = "command directory not found"
MISSING_STANDALONE_DOC = "standalone .md file not found"
INVALID_METADATA = "invalid command.yaml"

PREVIEW_LINES = 10


class CommandDetail(BaseModel):
    """An installed command as recorded in the lock file, enriched from its metadata."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    repository: str
    resolved: str
    commit: str
    installed_at: datetime
    updated_at: datetime

    description: str = ""
    author: str = ""
    entry: str = ""
    tags: list[str] = Field(default_factory=list)
    license: str | None = None
    homepage: str | None = None

    broken_structure: bool = False
    structure_error: str | None = None


class StructureInfo(BaseModel):
    """Integrity report for one installed command."""

    model_config = ConfigDict(frozen=True)

    directory_exists: bool
    standalone_doc_exists: bool
    has_metadata: bool
    has_entry_doc: bool
    issues: list[str] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.directory_exists and self.standalone_doc_exists and self.has_metadata


def _describe(layout: ProjectLayout, entry: CommandLockEntry) -> CommandDetail:
    command_dir = layout.command_dir(entry.name)

    structure_error = None
    if not command_dir.is_dir():
        structure_error = MISSING_DIRECTORY
    elif not layout.standalone_doc(entry.name).is_file():
        structure_error = MISSING_STANDALONE_DOC

    metadata = None
    if command_dir.is_dir():
        try:
            metadata = CommandMetadata.from_file(command_dir / METADATA_FILENAME)
        except StructureError as e:
            logger.debug(f"Could not read metadata of {entry.name}: {e}")
            structure_error = structure_error or INVALID_METADATA

    fields: dict = {}
    if metadata is not None:
        fields = {
            "description": metadata.description,
            "author": metadata.author,
            "entry": metadata.entry,
            "tags": metadata.tags,
            "license": metadata.license,
            "homepage": metadata.homepage,
        }

    return CommandDetail(
        name=entry.name,
        version=entry.version or (metadata.version if metadata else ""),
        repository=entry.source,
        resolved=entry.resolved,
        commit=entry.commit,
        installed_at=entry.installed_at,
        updated_at=entry.updated_at,
        broken_structure=structure_error is not None,
        structure_error=structure_error,
        **fields,
    )


def list_commands(layout: ProjectLayout) -> list[CommandDetail]:
    """
    List every installed command, sorted by name.

    Args:
        layout: Project paths

    Returns:
        One CommandDetail per lock entry; broken ones have ``broken_structure`` set

    Example:
        >>> for command in list_commands(ProjectLayout(Path("."))):
        ...     print(command.name, command.structure_error or "ok")
        hello ok
        world standalone .md file not found
    """
    if not layout.lock_path.exists():
        return []

    lock = CommandLock(layout.lock_path)
    return [_describe(layout, entry) for entry in lock.list_entries()]


def get_command_info(layout: ProjectLayout, name: str) -> CommandDetail:
    """
    Details of one installed command.

    Raises:
        CommandNotFoundError: If ``name`` is not in the lock file
    """
    for command in list_commands(layout):
        if command.name == name:
            return command
    raise CommandNotFoundError(f"command {name!r} is not installed", context={"name": name})


def inspect_command(layout: ProjectLayout, name: str) -> tuple[CommandDetail, StructureInfo]:
    """
    Details of one installed command plus a report of which of its files exist.

    Raises:
        CommandNotFoundError: If ``name`` is not in the lock file
    """
    detail = get_command_info(layout, name)

    command_dir = layout.command_dir(name)
    directory_exists = command_dir.is_dir()
    standalone_doc_exists = layout.standalone_doc(name).is_file()

    issues = []
    if not directory_exists:
        issues.append("Command directory is missing")
    if not standalone_doc_exists:
        issues.append("Standalone markdown file is missing")

    has_metadata = False
    has_entry_doc = False
    if directory_exists:
        metadata_path = command_dir / METADATA_FILENAME
        if not metadata_path.exists():
            issues.append(f"{METADATA_FILENAME} is missing")
        else:
            try:
                metadata = CommandMetadata.from_file(metadata_path)
                has_metadata = True
                has_entry_doc = (command_dir / metadata.entry).is_file()
                if not has_entry_doc:
                    issues.append(f"Entry document {metadata.entry} is missing")
            except StructureError:
                issues.append(f"{METADATA_FILENAME} is malformed")

    structure = StructureInfo(
        directory_exists=directory_exists,
        standalone_doc_exists=standalone_doc_exists,
        has_metadata=has_metadata,
        has_entry_doc=has_entry_doc,
        issues=issues,
    )
    return detail, structure


class ContentPreview(BaseModel):
    """Leading lines of a command's entry document."""

    model_config = ConfigDict(frozen=True)

    text: str
    shown_lines: int
    total_lines: int

    @property
    def truncated(self) -> bool:
        return self.shown_lines < self.total_lines


def read_content_preview(layout: ProjectLayout, name: str, lines: int = PREVIEW_LINES) -> ContentPreview:
    """
    First ``lines`` lines of the entry document of installed command ``name``.

    Raises:
        CommandNotFoundError: If ``name`` is not in the lock file
        StructureError: If the metadata or entry document cannot be read
    """
    detail = get_command_info(layout, name)
    if not detail.entry:
        raise StructureError(
            f"cannot locate the entry document of {name!r}: {detail.structure_error or INVALID_METADATA}",
            context={"name": name},
        )

    entry_path = layout.command_dir(name) / detail.entry
    try:
        content = entry_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise StructureError(f"Failed to read {entry_path}: {e}", context={"name": name, "path": str(entry_path)}) from e

    all_lines = content.splitlines()
    shown = all_lines[: max(lines, 0)]
    return ContentPreview(
        text="".join(f"{line}\n" for line in shown),
        shown_lines=len(shown),
        total_lines=len(all_lines),
    )


def search_commands(
    layout: ProjectLayout,
    keyword: str = "",
    tags: list[str] | None = None,
    author: str = "",
    show_all: bool = False,
) -> list[CommandDetail]:
    """
    Search installed commands.

    All given filters must match:
    - keyword: case-insensitive substring of name, repository or description
    - tags: every tag must be present (case-insensitive)
    - author: case-insensitive substring of the author

    With no filters, nothing matches unless ``show_all`` is set.
    """
    tags = tags or []
    if not keyword and not tags and not author:
        return list_commands(layout) if show_all else []

    return [command for command in list_commands(layout) if _matches(command, keyword, tags, author)]


def _matches(command: CommandDetail, keyword: str, tags: list[str], author: str) -> bool:
    if keyword:
        needle = keyword.lower()
        haystacks = (command.name, command.repository, command.description)
        if not any(needle in text.lower() for text in haystacks):
            return False

    if author and author.lower() not in command.author.lower():
        return False

    command_tags = {tag.lower() for tag in command.tags}
    return all(tag.lower() in command_tags for tag in tags)
