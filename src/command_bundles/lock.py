"""Command lock file management.

The lock file is the authoritative record of what is installed: one entry per
on-disk command name, with the source repository, the ref actually checked
out and its commit.

Lock format (YAML):

    version: "1.0"
    lockfileVersion: 1
    commands:
      hello:
        name: hello
        version: 1.2.0
        source: https://github.com/org/hello.git
        resolved: https://github.com/org/hello.git@v1.2.0
        commit: 4f0c3b1...
        installed_at: "2025-10-26T12:00:00+00:00"
        updated_at: "2025-10-27T08:30:00+00:00"
"""

import logging
from dataclasses import dataclass
from datetime import UTC
from datetime import datetime
from pathlib import Path

import yaml

from .exceptions import LockFileError
from .spec import extract_repo_path

logger = logging.getLogger(__name__)

_SORT_KEYS = {
    "name": (lambda entry: entry.name, False),
    "installed": (lambda entry: entry.installed_at, True),
    "updated": (lambda entry: entry.updated_at, True),
}


def utc_now() -> datetime:
    """Current time, truncated to the second precision the lock file keeps."""
    return datetime.now(UTC).replace(microsecond=0)


def _parse_timestamp(value: object) -> datetime:
    # safe_load already yields datetime for unquoted timestamps
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.replace(microsecond=0)


@dataclass
class CommandLockEntry:
    """Entry in the commands lock file."""

    name: str
    version: str
    source: str
    resolved: str
    commit: str
    installed_at: datetime
    updated_at: datetime

    def to_dict(self) -> dict:
        """Convert to dictionary for YAML serialization."""
        return {
            "name": self.name,
            "version": self.version,
            "source": self.source,
            "resolved": self.resolved,
            "commit": self.commit,
            "installed_at": self.installed_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CommandLockEntry":
        """Create from dictionary."""
        return cls(
            name=str(data["name"]),
            version=str(data.get("version") or ""),
            source=str(data["source"]),
            resolved=str(data.get("resolved") or ""),
            commit=str(data.get("commit") or ""),
            installed_at=_parse_timestamp(data["installed_at"]),
            updated_at=_parse_timestamp(data["updated_at"]),
        )

    @property
    def repo_path(self) -> str:
        return extract_repo_path(self.source)


def dump_lock(entries: dict[str, CommandLockEntry]) -> str:
    """Serialize lock entries to lock-file YAML.

    ``commands`` is always written as a mapping, ``{}`` when empty.
    """
    data = {
        "version": CommandLock.VERSION,
        "lockfileVersion": CommandLock.LOCKFILE_VERSION,
        "commands": {name: entry.to_dict() for name, entry in entries.items()},
    }
    return yaml.safe_dump(data, sort_keys=False, default_flow_style=False, allow_unicode=True)


def load_lock(text: str, source: str = "<string>") -> dict[str, CommandLockEntry]:
    """Parse lock-file YAML into entries keyed by command name.

    Raises:
        LockFileError: If the document is not a valid lock file
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise LockFileError(f"Failed to parse lock file {source}: {e}", context={"path": source}) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise LockFileError(f"Lock file {source} must be a mapping", context={"path": source})

    if str(data.get("version")) != CommandLock.VERSION:
        logger.warning(f"Lock file version mismatch: expected {CommandLock.VERSION}, got {data.get('version')}")

    commands = data.get("commands") or {}
    if not isinstance(commands, dict):
        raise LockFileError(f"'commands' in {source} must be a mapping", context={"path": source})

    entries: dict[str, CommandLockEntry] = {}
    for name, raw in commands.items():
        try:
            entries[str(name)] = CommandLockEntry.from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            raise LockFileError(
                f"Invalid lock entry {name!r} in {source}: {e}", context={"path": source, "name": name}
            ) from e

    return entries


class CommandLock:
    """
    Commands lock file manager (with injected lock path).

    Every mutating call rewrites the lock file.
    """

    VERSION = "1.0"
    LOCKFILE_VERSION = 1

    def __init__(self, lock_path: Path):
        """Initialize lock manager with app-provided lock path.

        Args:
            lock_path: Path to lock file (app determines location)

        Raises:
            LockFileError: If an existing lock file cannot be parsed

        Example:
            >>> lock = CommandLock(lock_path=Path("commands-lock.yaml"))
        """
        self.lock_path = lock_path
        self._data: dict[str, CommandLockEntry] = {}
        self._load()

    def _load(self) -> None:
        """Load lock file if it exists."""
        if not self.lock_path.exists():
            self._data = {}
            return

        try:
            text = self.lock_path.read_text(encoding="utf-8")
        except OSError as e:
            raise LockFileError(f"Failed to read lock file: {e}", context={"path": str(self.lock_path)}) from e

        self._data = load_lock(text, source=str(self.lock_path))
        logger.debug(f"Loaded {len(self._data)} commands from lock file")

    def save(self) -> None:
        """Write the lock file."""
        try:
            self.lock_path.parent.mkdir(parents=True, exist_ok=True)
            self.lock_path.write_text(dump_lock(self._data), encoding="utf-8")
        except OSError as e:
            raise LockFileError(f"Failed to save lock file: {e}", context={"path": str(self.lock_path)}) from e
        logger.debug(f"Saved lock file with {len(self._data)} commands")

    def record_install(
        self,
        name: str,
        version: str,
        source: str,
        resolved: str,
        commit: str,
        now: datetime | None = None,
    ) -> CommandLockEntry:
        """
        Record a successful install or update of ``source`` under ``name``.

        The existing entry for the same repository (matched by owner/repo, not
        by name) keeps its ``installed_at``. If it was stored under a
        different name, the old key is deleted before the new key is written.

        Args:
            name: Command name on disk
            version: Version declared in the command's metadata
            source: Repository URL
            resolved: ``source@effective-version``
            commit: Commit checked out
            now: Timestamp to record (defaults to current time)

        Returns:
            The stored entry
        """
        now = now or utc_now()

        installed_at = now
        previous = self.find_by_repository(extract_repo_path(source))
        if previous is not None:
            installed_at = previous.installed_at
            if previous.name != name:
                del self._data[previous.name]
                logger.debug(f"Lock entry renamed: {previous.name} -> {name}")

        entry = CommandLockEntry(
            name=name,
            version=version,
            source=source,
            resolved=resolved,
            commit=commit,
            installed_at=installed_at,
            updated_at=now,
        )
        self._data[name] = entry
        self.save()

        logger.debug(f"Recorded {name} ({resolved}) in lock file")
        return entry

    def remove_entry(self, name: str) -> None:
        """
        Remove command from lock file.

        Args:
            name: Command name
        """
        if name in self._data:
            del self._data[name]
            self.save()
            logger.debug(f"Removed {name} from lock file")

    def get_entry(self, name: str) -> CommandLockEntry | None:
        return self._data.get(name)

    def find_by_repository(self, repo_path: str) -> CommandLockEntry | None:
        """Find the entry whose source normalizes to ``owner/repo`` path ``repo_path``."""
        for entry in self._data.values():
            if entry.repo_path == repo_path:
                return entry
        return None

    def list_entries(self, sort_by: str = "name") -> list[CommandLockEntry]:
        """
        List all installed commands.

        Args:
            sort_by: "name" (ascending), "installed" or "updated" (newest first)

        Returns:
            List of lock entries
        """
        key, reverse = _SORT_KEYS.get(sort_by.lower(), _SORT_KEYS["name"])
        return sorted(self._data.values(), key=key, reverse=reverse)

    def is_installed(self, name: str) -> bool:
        return name in self._data
