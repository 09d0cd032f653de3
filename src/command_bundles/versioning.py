"""Version resolution.

Decides which concrete ref an install materializes:

1. the version explicitly requested for this invocation,
2. otherwise the latest tag reachable in the clone,
3. otherwise the clone's current commit, shortened to 7 characters.
"""

import logging
import re
from pathlib import Path

from .exceptions import GitError
from .protocols import GitClientProtocol

logger = logging.getLogger(__name__)

SHORT_COMMIT_LENGTH = 7

# Lock entries use this when the commit of an install could not be read
UNKNOWN_COMMIT = "unknown"

_COMMIT_HASH = re.compile(r"^[a-f0-9]{7,40}$")


def is_commit_hash(value: str) -> bool:
    """Check whether a version string is an (immutable) commit hash.

    Only 7-40 lowercase hex characters qualify. Branch names, tags and
    anything with ``/`` or uppercase characters never do.

    >>> is_commit_hash("a76c963")
    True
    >>> is_commit_hash("A76C963")
    False
    """
    return bool(_COMMIT_HASH.fullmatch(value))


def short_commit(commit: str) -> str:
    return commit[:SHORT_COMMIT_LENGTH]


def resolve_version(explicit_version: str, repo_path: Path, git: GitClientProtocol) -> str:
    """Return the effective version for a freshly cloned repository.

    Args:
        explicit_version: Version/tag/commit requested by the caller ("" for latest)
        repo_path: Path to the clone
        git: Git client used to query tags and commits

    Returns:
        The effective version, or "" when the clone has neither tags nor a
        readable commit.
    """
    if explicit_version:
        return explicit_version

    try:
        tag = git.latest_tag(repo_path)
        if tag:
            logger.debug(f"Resolved latest tag {tag} in {repo_path}")
            return tag
    except GitError as e:
        logger.debug(f"No tags in {repo_path}: {e}")

    try:
        commit = git.current_commit(repo_path)
    except GitError as e:
        logger.warning(f"Could not read current commit in {repo_path}: {e}")
        return ""

    logger.debug(f"No tags found, resolved to commit {short_commit(commit)}")
    return short_commit(commit)
