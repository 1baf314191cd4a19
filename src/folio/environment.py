"""Runtime environment description.

The :class:`EnvironmentContext` is created once at process start and shared by
reference. The source-control branch name is looked up from the deployed
content root as a side channel; it is never part of the settings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEVELOPMENT = "Development"
WEB_ROOT_DIRNAME = "wwwroot"
GIT_DIRNAME = ".git"
HEAD_REF_PREFIX = "ref: refs/heads/"
GITDIR_PREFIX = "gitdir:"


@dataclass(frozen=True, slots=True)
class AppInformation:
    """Process-wide application facts made available by injection."""

    branch_name: str | None = None


@dataclass(frozen=True, slots=True)
class EnvironmentContext:
    """Read-only description of the running environment."""

    environment_name: str
    content_root_path: Path
    web_root_path: Path
    branch_name: str | None = None

    @property
    def is_development(self) -> bool:
        return self.environment_name.casefold() == DEVELOPMENT.casefold()

    @classmethod
    def from_content_root(
        cls, content_root: Path | str, environment_name: str
    ) -> EnvironmentContext:
        """Build the context, detecting the branch from the content root."""
        root = Path(content_root).resolve()
        return cls(
            environment_name=environment_name,
            content_root_path=root,
            web_root_path=root / WEB_ROOT_DIRNAME,
            branch_name=detect_branch_name(root),
        )


def _resolve_git_dir(candidate: Path) -> Path | None:
    if candidate.is_dir():
        return candidate
    # worktrees and submodules use a file pointing at the real git dir
    text = candidate.read_text(encoding="utf-8").strip()
    if not text.startswith(GITDIR_PREFIX):
        return None
    target = Path(text[len(GITDIR_PREFIX) :].strip())
    if not target.is_absolute():
        target = candidate.parent / target
    return target if target.is_dir() else None


def detect_branch_name(start: Path | str) -> str | None:
    """Return the checked-out branch of the working tree containing ``start``.

    Walks from ``start`` up to the filesystem root looking for ``.git``.

    Args:
        start: Directory to begin the search from.

    Returns:
        The branch name (may contain ``/``), or ``None`` when ``start`` is not
        inside a checkout, HEAD is detached, or the files cannot be read.
    """
    try:
        here = Path(start).resolve()
        for directory in (here, *here.parents):
            candidate = directory / GIT_DIRNAME
            if not candidate.exists():
                continue
            git_dir = _resolve_git_dir(candidate)
            if git_dir is None:
                return None
            head = (git_dir / "HEAD").read_text(encoding="utf-8").strip()
            if head.startswith(HEAD_REF_PREFIX):
                return head[len(HEAD_REF_PREFIX) :] or None
            logger.debug("Detached HEAD in %s; no branch name", git_dir)
            return None
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("Branch detection unavailable for %s: %s", start, e)
        return None
    logger.debug("No source-control checkout found above %s", start)
    return None
