"""Subprocess-backed git client.

The git executable is located once per client instance and must live in a
trusted system directory; a different executable can be injected explicitly.
"""

import logging
import shutil
import subprocess
from pathlib import Path

from .exceptions import GitError
from .versioning import is_commit_hash

logger = logging.getLogger(__name__)

TRUSTED_GIT_DIRS = (
    "/usr/bin/",
    "/usr/local/bin/",
    "/opt/homebrew/bin/",
    "/opt/local/bin/",
    "C:\\Program Files\\Git\\",
    "C:\\Program Files (x86)\\Git\\",
)


class GitClient:
    """Run git operations through the git command line.

    Implements GitClientProtocol.

    Example:
        >>> git = GitClient()
        >>> git.clone("https://github.com/org/cmd.git", Path("/tmp/cmd"), "v1.0.0")
        >>> git.current_commit(Path("/tmp/cmd"))
    """

    def __init__(self, git_path: str | None = None, timeout: float | None = 300):
        """Initialize client.

        Args:
            git_path: Explicit git executable (skips PATH lookup and trust check)
            timeout: Seconds before a git subprocess is abandoned
        """
        self._git_path = git_path
        self.timeout = timeout

    @property
    def git_path(self) -> str:
        if self._git_path is None:
            self._git_path = _find_trusted_git()
        return self._git_path

    def _run(self, *args: str, cwd: Path | None = None) -> str:
        cmd = [self.git_path, *args]
        if cwd is not None:
            cmd = [self.git_path, "-C", str(cwd), *args]

        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            completed = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise GitError(f"git {args[0]} failed: {e}") from e

        if completed.returncode != 0:
            output = (completed.stderr or completed.stdout).strip()
            raise GitError(f"git {args[0]} failed (exit {completed.returncode}): {output}", output=output)

        return completed.stdout.strip()

    def clone(self, url: str, target_dir: Path, ref: str = "") -> None:
        if ref and is_commit_hash(ref):
            # Commits are not addressable with --branch, so clone full history
            self._run("clone", url, str(target_dir))
            self._run("checkout", ref, cwd=target_dir)
            return

        args = ["clone", "--depth", "1"]
        if ref:
            args += ["--branch", ref]
        self._run(*args, url, str(target_dir))

    def latest_tag(self, repo_path: Path) -> str:
        return self._run("describe", "--tags", "--abbrev=0", cwd=repo_path)

    def current_commit(self, repo_path: Path) -> str:
        return self._run("rev-parse", "HEAD", cwd=repo_path)

    def ref_commit(self, repo_path: Path, ref: str) -> str:
        return self._run("rev-list", "-n", "1", ref, cwd=repo_path)

    def remote_ref_commit(self, repository: str, ref: str) -> str:
        output = self._run("ls-remote", repository, f"refs/tags/{ref}", f"refs/tags/{ref}^{{}}")
        tag_commit = _pick_ls_remote_commit(output)
        if tag_commit:
            return tag_commit

        output = self._run("ls-remote", repository, f"refs/heads/{ref}")
        branch_commit = _pick_ls_remote_commit(output)
        if branch_commit:
            return branch_commit

        raise GitError(f"ref {ref} not found in remote {repository}")


def _pick_ls_remote_commit(output: str) -> str:
    """First commit in ls-remote output, preferring a peeled (^{}) tag line."""
    lines = [line.split() for line in output.splitlines() if line.strip()]
    for parts in lines:
        if len(parts) == 2 and parts[1].endswith("^{}"):
            return parts[0]
    return lines[0][0] if lines else ""


def _find_trusted_git() -> str:
    path = shutil.which("git")
    if path is None:
        raise GitError("git not found in PATH")

    if not path.startswith(TRUSTED_GIT_DIRS):
        raise GitError(f"git found in untrusted location: {path}")

    return path
