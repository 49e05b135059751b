"""Commit history and per-commit diffs of the local working copy."""

import logging
from pathlib import Path
from typing import Any

import git

from sandhi.history.exceptions import RevisionNotFoundError
from sandhi.history.models import CommitDiff, CommitInfo, FileChange, FileChangeStatus
from sandhi.vcs import GitManager

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 20

# git's well-known empty tree, the base for a root commit's diff
EMPTY_TREE_SHA = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"


def resolve_commit(repo: git.Repo, revision: str) -> git.Commit:
    """Resolve a SHA, branch, tag or expression like ``HEAD~2`` to a commit.

    Raises:
        RevisionNotFoundError: If the revision does not name a commit
    """
    try:
        return repo.commit(revision)
    except (git.BadName, git.BadObject, ValueError) as e:
        msg = f"Unknown revision: {revision}"
        raise RevisionNotFoundError(msg) from e


def get_commit_history(repo_path: str | Path, limit: int = DEFAULT_HISTORY_LIMIT) -> list[CommitInfo]:
    """List commits reachable from HEAD, newest first.

    Args:
        repo_path: Path to the working copy
        limit: Maximum number of commits

    Returns:
        Commits, empty for a repository without commits
    """
    repo = GitManager(repo_path).repo
    if not repo.head.is_valid():
        return []
    return [CommitInfo.from_commit(commit) for commit in repo.iter_commits("HEAD", max_count=limit)]


def get_commit_diff(repo_path: str | Path, commit_id: str) -> CommitDiff:
    """Get the changes a commit introduced over its first parent.

    A root commit is compared with the empty tree. Line counts come from
    ``commit.stats``, which does not detect renames, so a renamed file
    reports the lines of its new path as additions and those of its old path
    as deletions.

    Args:
        repo_path: Path to the working copy
        commit_id: Commit SHA (full or abbreviated) or any revision name

    Returns:
        Commit metadata, per-file changes and the patch text

    Raises:
        RevisionNotFoundError: If ``commit_id`` does not name a commit
    """
    repo = GitManager(repo_path).repo
    commit = resolve_commit(repo, commit_id)

    if commit.parents:
        parent = commit.parents[0]
        changes = parent.diff(commit)
        base = parent.hexsha
    else:
        changes = commit.diff(git.NULL_TREE)
        base = EMPTY_TREE_SHA

    counts = commit.stats.files
    file_changes = [_file_change(change, counts) for change in changes]
    logger.debug(f"Commit {commit.hexsha[:7]} changed {len(file_changes)} files")

    return CommitDiff(
        commit=CommitInfo.from_commit(commit),
        file_changes=file_changes,
        diff_content=repo.git.diff(base, commit.hexsha),
    )


def _file_change(change: git.Diff, counts: dict[str, Any]) -> FileChange:
    status = FileChangeStatus.from_change_type(change.change_type)
    path = change.b_path or change.a_path or ""
    old_path = change.a_path if status is FileChangeStatus.RENAMED else None
    return FileChange(
        path=path,
        status=status,
        old_path=old_path,
        additions=counts.get(path, {}).get("insertions", 0),
        deletions=counts.get(old_path or path, {}).get("deletions", 0),
    )
