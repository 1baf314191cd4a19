"""Unit tests for :mod:`folio.environment` (branch detection and context)."""

from __future__ import annotations

from pathlib import Path

import pytest

from folio.environment import EnvironmentContext, detect_branch_name
from tests.fixtures.content_root import make_checkout

# pylint: disable=magic-value-comparison


@pytest.mark.parametrize(
    ("head", "expected"),
    [
        ("ref: refs/heads/main", "main"),
        ("ref: refs/heads/dev/alice", "dev/alice"),
        ("ref: refs/heads/feature/JIRA-12.fix", "feature/JIRA-12.fix"),
    ],
)
def test_branch_from_head_ref(tmp_path: Path, head: str, expected: str):
    make_checkout(tmp_path, head)

    assert detect_branch_name(tmp_path) == expected


def test_branch_found_from_nested_directory(tmp_path: Path):
    """The search walks up from the content root to the checkout root."""
    make_checkout(tmp_path, "ref: refs/heads/dev/alice")
    nested = tmp_path / "src" / "app"
    nested.mkdir(parents=True)

    assert detect_branch_name(nested) == "dev/alice"


def test_detached_head_has_no_branch(tmp_path: Path):
    make_checkout(tmp_path, "3f1c2a9b7d10e5a4c3b2a1f0e9d8c7b6a5f4e3d2")

    assert detect_branch_name(tmp_path) is None


def test_worktree_gitdir_file(tmp_path: Path):
    """A ``.git`` file pointing at the real git dir (worktrees, submodules)."""
    real = tmp_path / "repo.git" / "worktrees" / "wt"
    real.mkdir(parents=True)
    (real / "HEAD").write_text("ref: refs/heads/topic\n", encoding="utf-8")
    work = tmp_path / "wt"
    work.mkdir()
    (work / ".git").write_text(f"gitdir: {real}\n", encoding="utf-8")

    assert detect_branch_name(work) == "topic"


def test_relative_gitdir_file(tmp_path: Path):
    real = tmp_path / "modules" / "sub"
    real.mkdir(parents=True)
    (real / "HEAD").write_text("ref: refs/heads/sub-branch\n", encoding="utf-8")
    work = tmp_path / "sub"
    work.mkdir()
    (work / ".git").write_text("gitdir: ../modules/sub\n", encoding="utf-8")

    assert detect_branch_name(work) == "sub-branch"


def test_unreadable_head_is_treated_as_absent(tmp_path: Path):
    """A ``.git`` directory without HEAD yields no branch instead of an error."""
    (tmp_path / ".git").mkdir()

    assert detect_branch_name(tmp_path) is None


def test_undecodable_head_is_treated_as_absent(tmp_path: Path):
    (tmp_path / ".git").mkdir()
    (tmp_path / ".git" / "HEAD").write_bytes(b"ref: refs/heads/\xff\xfe\n")

    assert detect_branch_name(tmp_path) is None


def test_undecodable_gitdir_file_is_treated_as_absent(tmp_path: Path):
    (tmp_path / ".git").write_bytes(b"gitdir: \xff\xfe\n")

    assert detect_branch_name(tmp_path) is None


def test_no_checkout(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(Path, "exists", lambda self: False)

    assert detect_branch_name(tmp_path) is None


class TestEnvironmentContext:
    @staticmethod
    @pytest.mark.parametrize(
        ("name", "expected"),
        [("Development", True), ("development", True), ("Production", False), ("Staging", False)],
    )
    def test_is_development(tmp_path: Path, name: str, expected: bool):
        context = EnvironmentContext(name, tmp_path, tmp_path / "wwwroot")

        assert context.is_development is expected

    @staticmethod
    def test_from_content_root(tmp_path: Path):
        make_checkout(tmp_path, "ref: refs/heads/dev/alice")

        context = EnvironmentContext.from_content_root(tmp_path, "Development")

        assert context.environment_name == "Development"
        assert context.content_root_path == tmp_path.resolve()
        assert context.web_root_path == tmp_path.resolve() / "wwwroot"
        assert context.branch_name == "dev/alice"

    @staticmethod
    def test_is_immutable(tmp_path: Path):
        context = EnvironmentContext("Production", tmp_path, tmp_path)

        with pytest.raises(AttributeError):
            context.environment_name = "Development"  # type: ignore[misc]
