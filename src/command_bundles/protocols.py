"""Protocols for the collaborators the engine drives.

The engine never shells out to git itself; apps (and tests) inject any
object satisfying GitClientProtocol.
"""

from pathlib import Path
from typing import Protocol


class GitClientProtocol(Protocol):
    """Protocol for git operations used by install, update and version resolution.

    Implementations raise GitError on failure.

    Example implementations:
    - GitClient: subprocess-backed client (command_bundles.git)
    - FakeGitClient: fixture directories for tests
    """

    def clone(self, url: str, target_dir: Path, ref: str = "") -> None:
        """Clone ``url`` into ``target_dir``, checking out ``ref`` when given.

        Args:
            url: Repository URL
            target_dir: Directory to clone into (must not exist)
            ref: Tag, branch or commit hash ("" for the default branch)
        """
        ...

    def latest_tag(self, repo_path: Path) -> str:
        """Most recent tag reachable from HEAD."""
        ...

    def current_commit(self, repo_path: Path) -> str:
        """Full hash of HEAD."""
        ...

    def ref_commit(self, repo_path: Path, ref: str) -> str:
        """Commit a local ref points at (tags are peeled)."""
        ...

    def remote_ref_commit(self, repository: str, ref: str) -> str:
        """Commit a tag or branch points at on the remote.

        Args:
            repository: Remote URL or path of a clone whose origin is queried
            ref: Tag or branch name
        """
        ...
