"""Tests for repository spec parsing and URL helpers."""

import pytest
from command_bundles import CommandSpec
from command_bundles import InvalidInputError
from command_bundles import extract_repo_path
from command_bundles import normalize_repository_url
from command_bundles import parse_repository_spec
from command_bundles.spec import derive_command_name
from command_bundles.spec import validate_command_name


@pytest.mark.parametrize(
    ("spec", "expected"),
    [
        ("owner/repo", ("owner/repo", "")),
        ("owner/repo@v1.0.0", ("owner/repo", "v1.0.0")),
        ("https://github.com/owner/repo.git", ("https://github.com/owner/repo.git", "")),
        ("https://github.com/owner/repo.git@main", ("https://github.com/owner/repo.git", "main")),
        ("https://gitlab.com/owner/repo@feature/login", ("https://gitlab.com/owner/repo", "feature/login")),
        ("git@github.com:owner/repo.git", ("git@github.com:owner/repo.git", "")),
        ("git@github.com:owner/repo.git@v2.0.0", ("git@github.com:owner/repo.git", "v2.0.0")),
        ("git@github.com:owner/repo@v2.0.0", ("git@github.com:owner/repo", "v2.0.0")),
        ("git@github.com:owner/repo@feature/x", ("git@github.com:owner/repo", "feature/x")),
    ],
)
def test_parse_repository_spec(spec, expected):
    assert parse_repository_spec(spec) == expected


class TestSshPathWithEmbeddedAt:
    """SSH URLs whose path carries its own user token (user@company/repo)."""

    def test_git_suffix_splits_on_trailing_version(self):
        assert parse_repository_spec("git@host:user@company/repo.git@branch") == (
            "git@host:user@company/repo.git",
            "branch",
        )

    def test_without_git_suffix_skips_embedded_user(self):
        assert parse_repository_spec("git@host:user@company/repo@v1.0.0") == (
            "git@host:user@company/repo",
            "v1.0.0",
        )

    def test_without_git_suffix_keeps_slashes_in_version(self):
        assert parse_repository_spec("git@host:user@company/repo@feature/new-ui") == (
            "git@host:user@company/repo",
            "feature/new-ui",
        )

    def test_embedded_user_without_version(self):
        assert parse_repository_spec("git@host:user@company/repo") == ("git@host:user@company/repo", "")

    def test_other_ssh_user(self):
        assert parse_repository_spec("deploy@git.example.com:team/tool.git@v3") == (
            "deploy@git.example.com:team/tool.git",
            "v3",
        )


def test_parse_never_raises_on_malformed_input():
    assert parse_repository_spec("") == ("", "")
    assert parse_repository_spec("not a url") == ("not a url", "")
    assert parse_repository_spec("@") == ("", "")


def test_command_spec_parse_and_str():
    spec = CommandSpec.parse("org/hello@v1.0.0")

    assert spec.repository == "org/hello"
    assert spec.version == "v1.0.0"
    assert spec.repo_path == "org/hello"
    assert spec.name == "hello"
    assert str(spec) == "org/hello@v1.0.0"
    assert str(CommandSpec.parse("org/hello")) == "org/hello"


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("owner/repo", "https://github.com/owner/repo.git"),
        ("https://github.com/owner/repo", "https://github.com/owner/repo.git"),
        ("https://github.com/owner/repo.git", "https://github.com/owner/repo.git"),
        ("https://gitlab.com/owner/repo", "https://gitlab.com/owner/repo"),
        ("git@github.com:owner/repo", "git@github.com:owner/repo.git"),
        ("git@gitlab.com:owner/repo", "git@gitlab.com:owner/repo"),
    ],
)
def test_normalize_repository_url(url, expected):
    assert normalize_repository_url(url) == expected


@pytest.mark.parametrize(
    "url",
    [
        "owner/repo",
        "https://github.com/owner/repo.git",
        "https://github.com/owner/repo",
        "git@github.com:owner/repo.git",
        "ssh://git@github.com/owner/repo.git",
    ],
)
def test_extract_repo_path(url):
    assert extract_repo_path(url) == "owner/repo"


def test_derive_command_name():
    assert derive_command_name("https://github.com/org/hello-world.git") == "hello-world"
    assert derive_command_name("org/hello") == "hello"


def test_validate_command_name():
    validate_command_name("hello-world_2")

    with pytest.raises(InvalidInputError, match="cannot be empty"):
        validate_command_name("")

    for bad in ("a/b", "a\\b", "a:b", "what?", "a|b"):
        with pytest.raises(InvalidInputError, match="invalid characters"):
            validate_command_name(bad)
