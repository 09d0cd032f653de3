"""Shared fixtures: a project layout and an in-memory git client."""

from dataclasses import dataclass
from dataclasses import field
from pathlib import Path

import pytest
import yaml
from command_bundles import GitError
from command_bundles import ProjectLayout
from command_bundles import normalize_repository_url


@dataclass
class FakeRepo:
    """A remote repository served by FakeGitClient."""

    files: dict[str, str]
    commit: str = "0123456789abcdef0123456789abcdef01234567"
    tags: list[str] = field(default_factory=list)
    # ref -> commit in a clone
    ref_commits: dict[str, str] = field(default_factory=dict)
    # ref -> commit on the remote
    remote_refs: dict[str, str] = field(default_factory=dict)


class FakeGitClient:
    """Git client that "clones" by writing a FakeRepo's files to disk."""

    def __init__(self):
        self.repos: dict[str, FakeRepo] = {}
        self.clones: list[tuple[str, str]] = []
        self._cloned_paths: dict[Path, FakeRepo] = {}

    def add_repo(self, repository: str, repo: FakeRepo) -> FakeRepo:
        self.repos[normalize_repository_url(repository)] = repo
        return repo

    def _repo_at(self, path: Path) -> FakeRepo:
        try:
            return self._cloned_paths[path]
        except KeyError:
            raise GitError(f"not a git repository: {path}") from None

    def clone(self, url: str, target_dir: Path, ref: str = "") -> None:
        self.clones.append((url, ref))
        repo = self.repos.get(url)
        if repo is None:
            raise GitError(f"repository not found: {url}")

        target_dir.mkdir(parents=True)
        for relative, content in repo.files.items():
            path = target_dir / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        (target_dir / ".git").mkdir()
        (target_dir / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
        self._cloned_paths[target_dir] = repo

    def latest_tag(self, repo_path: Path) -> str:
        repo = self._repo_at(repo_path)
        if not repo.tags:
            raise GitError("No names found, cannot describe anything.")
        return repo.tags[-1]

    def current_commit(self, repo_path: Path) -> str:
        return self._repo_at(repo_path).commit

    def ref_commit(self, repo_path: Path, ref: str) -> str:
        repo = self._repo_at(repo_path)
        return repo.ref_commits.get(ref, repo.commit)

    def remote_ref_commit(self, repository: str, ref: str) -> str:
        repo = self.repos.get(repository)
        if repo is None or ref not in repo.remote_refs:
            raise GitError(f"ref {ref} not found in remote {repository}")
        return repo.remote_refs[ref]


def command_files(
    name: str = "hello",
    version: str = "1.0.0",
    repository: str = "https://github.com/org/hello.git",
    entry: str = "index.md",
    body: str = "Say hello.",
    **extra: object,
) -> dict[str, str]:
    """Files of a valid command repository."""
    metadata = {
        "name": name,
        "version": version,
        "description": f"The {name} command",
        "author": "Test Author",
        "repository": repository,
        "entry": entry,
        **extra,
    }
    return {
        "command.yaml": yaml.safe_dump(metadata, sort_keys=False),
        entry: f"{body}\n",
    }


@pytest.fixture
def layout(tmp_path: Path) -> ProjectLayout:
    root = tmp_path / "project"
    root.mkdir()
    return ProjectLayout(root)


@pytest.fixture
def git() -> FakeGitClient:
    return FakeGitClient()
