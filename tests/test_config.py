"""Tests for the desired-state file and project layout."""

import pytest
import yaml
from command_bundles import ConfigFileError
from command_bundles import DesiredState
from command_bundles import ProjectLayout
from command_bundles.config import config_entry
from command_bundles.project import PROJECT_ROOT_ENV


@pytest.mark.parametrize(
    ("repository", "version", "expected"),
    [
        ("org/hello", "", "org/hello"),
        ("org/hello", "v1.0.0", "org/hello@v1.0.0"),
        ("https://github.com/org/hello.git", "main", "org/hello@main"),
        ("git@github.com:org/hello.git", "4f0c3b1d2e3f", "org/hello@4f0c3b1"),
    ],
)
def test_config_entry(repository, version, expected):
    assert config_entry(repository, version) == expected


def test_missing_file_is_empty(tmp_path):
    desired = DesiredState(tmp_path / "commands.yaml")

    assert not desired.exists()
    assert desired.entries == []
    assert desired.specs() == []


def test_load_specs(tmp_path):
    path = tmp_path / "commands.yaml"
    path.write_text("commands:\n  - org/hello@v1.0.0\n  - org/world\n")

    desired = DesiredState(path)

    assert [str(spec) for spec in desired.specs()] == ["org/hello@v1.0.0", "org/world"]
    assert desired.find("org/hello").version == "v1.0.0"
    assert desired.find("org/missing") is None


@pytest.mark.parametrize(
    "text",
    [
        "- org/hello\n",
        "commands: org/hello\n",
        "commands:\n  - name: hello\n",
        "commands: [unclosed\n",
    ],
)
def test_invalid_documents(tmp_path, text):
    path = tmp_path / "commands.yaml"
    path.write_text(text)

    with pytest.raises(ConfigFileError):
        DesiredState(path)


def test_add_appends_and_replaces_in_place(tmp_path):
    path = tmp_path / "commands.yaml"
    path.write_text("commands:\n  - org/hello@v1.0.0\n  - org/world\n")
    desired = DesiredState(path)

    desired.add("https://github.com/org/hello.git", "v2.0.0")
    desired.add("org/new")

    assert yaml.safe_load(path.read_text())["commands"] == ["org/hello@v2.0.0", "org/world", "org/new"]


def test_add_creates_file(tmp_path):
    path = tmp_path / "commands.yaml"

    line = DesiredState(path).add("org/hello")

    assert line == "org/hello"
    assert yaml.safe_load(path.read_text()) == {"commands": ["org/hello"]}


def test_other_keys_are_preserved(tmp_path):
    path = tmp_path / "commands.yaml"
    path.write_text("settings:\n  color: true\ncommands:\n  - org/hello\n")

    DesiredState(path).add("org/world")

    assert yaml.safe_load(path.read_text())["settings"] == {"color": True}


def test_remove_by_repository_or_name(tmp_path):
    path = tmp_path / "commands.yaml"
    path.write_text("commands:\n  - org/hello@v1.0.0\n  - other/world\n  - org/keep\n")
    desired = DesiredState(path)

    assert desired.remove("hello", "git@github.com:org/hello.git")
    assert desired.remove("world", "https://github.com/someone-else/renamed.git")
    assert not desired.remove("missing", "org/missing")

    assert yaml.safe_load(path.read_text())["commands"] == ["org/keep"]


def test_layout_paths(tmp_path):
    layout = ProjectLayout(tmp_path)

    assert layout.config_path == tmp_path / "commands.yaml"
    assert layout.lock_path == tmp_path / "commands-lock.yaml"
    assert layout.command_dir("hello") == tmp_path / ".claude" / "commands" / "hello"
    assert layout.standalone_doc("hello") == tmp_path / ".claude" / "commands" / "hello.md"


def test_discover_walks_up_to_config(tmp_path, monkeypatch):
    monkeypatch.delenv(PROJECT_ROOT_ENV, raising=False)
    (tmp_path / "commands.yaml").write_text("commands: []\n")
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)

    assert ProjectLayout.discover(nested).root == tmp_path.resolve()


def test_discover_env_override(tmp_path, monkeypatch):
    monkeypatch.setenv(PROJECT_ROOT_ENV, str(tmp_path))

    assert ProjectLayout.discover(tmp_path / "elsewhere").root == tmp_path.resolve()
