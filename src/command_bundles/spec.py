"""Repository specification parsing.

Turns the free-form repository strings users type (GitHub shorthand, HTTPS
URLs, SSH URLs, each optionally suffixed with ``@<version>``) into an
unambiguous (repository, version) pair, and provides the URL helpers the
rest of the package uses to compare repositories by their ``owner/repo``
path.
"""

import re
from dataclasses import dataclass

from .exceptions import InvalidInputError

# <user>@<host>: prefix of scp-like SSH URLs (git@github.com:owner/repo)
_SSH_PREFIX = re.compile(r"^[A-Za-z0-9_.-]+@[^/:@]+:")

_INVALID_NAME_CHARS = set('/\\:*?"<>|')


@dataclass(frozen=True)
class CommandSpec:
    """Parsed reference to a remote command.

    An empty ``version`` means "resolve to latest".
    """

    repository: str
    version: str = ""

    @classmethod
    def parse(cls, spec: str) -> "CommandSpec":
        repository, version = parse_repository_spec(spec)
        return cls(repository=repository, version=version)

    @property
    def repo_path(self) -> str:
        return extract_repo_path(self.repository)

    @property
    def name(self) -> str:
        return derive_command_name(self.repository)

    def __str__(self) -> str:
        if self.version:
            return f"{self.repository}@{self.version}"
        return self.repository


def is_ssh_url(spec: str) -> bool:
    """Check for an scp-like SSH URL (``user@host:path``)."""
    return bool(_SSH_PREFIX.match(spec))


def parse_repository_spec(spec: str) -> tuple[str, str]:
    """Split a repository spec into (repository, version).

    Never raises: input that cannot be split is returned whole as the
    repository with an empty version.

    Examples:
        >>> parse_repository_spec("owner/repo@v1.0.0")
        ('owner/repo', 'v1.0.0')
        >>> parse_repository_spec("git@github.com:owner/repo.git@main")
        ('git@github.com:owner/repo.git', 'main')
        >>> parse_repository_spec("git@host:user@company/repo.git@branch")
        ('git@host:user@company/repo.git', 'branch')
    """
    if "@" not in spec:
        return spec, ""

    if is_ssh_url(spec):
        return _parse_ssh_spec(spec)

    repository, _, version = spec.rpartition("@")
    return repository, version


def _parse_ssh_spec(spec: str) -> tuple[str, str]:
    git_index = spec.rfind(".git@")
    if git_index > -1:
        return spec[: git_index + len(".git")], spec[git_index + len(".git@") :]

    colon_index = spec.find(":")
    if colon_index == -1:
        return spec, ""

    path_start = colon_index + 1
    path = spec[path_start:]
    first_at = path.find("@")
    if first_at == -1:
        return spec, ""

    if "/" in path[:first_at]:
        split_at = path_start + first_at
        return spec[:split_at], spec[split_at + 1 :]

    # First "@" in the path belongs to an embedded user token (user@company/repo)
    next_at = path.find("@", first_at + 1)
    if next_at == -1:
        return spec, ""

    split_at = path_start + next_at
    return spec[:split_at], spec[split_at + 1 :]


def normalize_repository_url(url: str) -> str:
    """Expand GitHub shorthand and add the ``.git`` suffix to GitHub URLs.

    >>> normalize_repository_url("owner/repo")
    'https://github.com/owner/repo.git'
    """
    if "://" not in url and not is_ssh_url(url) and url.count("/") == 1:
        return f"https://github.com/{url}.git"

    if not url.endswith(".git") and "github.com" in url:
        url += ".git"

    return url


def extract_repo_path(git_url: str) -> str:
    """Extract the ``owner/repo`` path from any repository URL form.

    >>> extract_repo_path("git@github.com:owner/repo.git")
    'owner/repo'
    >>> extract_repo_path("https://github.com/owner/repo")
    'owner/repo'
    """
    url = git_url
    if "://" in url:
        url = url.split("://", 1)[1]

    if url.startswith("git@"):
        url = url[len("git@") :]

    url = url.replace(":", "/", 1)
    url = url.removesuffix(".git")

    parts = url.split("/")
    if len(parts) >= 3:
        return "/".join(parts[-2:])

    return url


def derive_command_name(repository: str) -> str:
    """Default command name: the last segment of the repository path."""
    return extract_repo_path(repository).split("/")[-1]


def validate_command_name(name: str) -> None:
    """Reject empty names and names that cannot be used as a directory.

    Raises:
        InvalidInputError: If the name is empty or contains a reserved character
    """
    if not name:
        raise InvalidInputError("command name cannot be empty")

    invalid = sorted(_INVALID_NAME_CHARS.intersection(name))
    if invalid:
        raise InvalidInputError(
            f"command name {name!r} contains invalid characters: {' '.join(invalid)}",
            context={"name": name},
        )
