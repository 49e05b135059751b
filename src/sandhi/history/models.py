"""Data models for commit history, diffs and repository statistics."""

from datetime import datetime
from enum import Enum

import git
from pydantic import BaseModel, Field


class CommitInfo(BaseModel):
    """One commit as shown in history listings."""

    id: str = Field(description="Full commit SHA")
    short_id: str = Field(description="First seven characters of the SHA")
    message: str
    author: str
    author_email: str
    date: datetime = Field(description="Author date")
    parents: list[str] = Field(default_factory=list, description="Parent SHAs, first parent first")

    @classmethod
    def from_commit(cls, commit: git.Commit) -> "CommitInfo":
        """Build from a GitPython commit object."""
        message = commit.message if isinstance(commit.message, str) else commit.message.decode("utf-8", "replace")
        return cls(
            id=commit.hexsha,
            short_id=commit.hexsha[:7],
            message=message,
            author=commit.author.name or "",
            author_email=commit.author.email or "",
            date=commit.authored_datetime,
            parents=[parent.hexsha for parent in commit.parents],
        )

    @property
    def summary(self) -> str:
        """First line of the commit message."""
        return self.message.strip().splitlines()[0] if self.message.strip() else ""


class FileChangeStatus(str, Enum):
    """How a commit touched one file."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"

    @classmethod
    def from_change_type(cls, change_type: str | None) -> "FileChangeStatus":
        """Map git's status letter; anything unusual counts as a modification."""
        return {"A": cls.ADDED, "D": cls.DELETED, "R": cls.RENAMED}.get(change_type or "", cls.MODIFIED)


class FileChange(BaseModel):
    """One file changed by a commit."""

    path: str
    status: FileChangeStatus
    old_path: str | None = Field(default=None, description="Previous path for renames")
    additions: int = 0
    deletions: int = 0


class DiffStats(BaseModel):
    """Size of a diff."""

    files_changed: int = 0
    insertions: int = 0
    deletions: int = 0

    @classmethod
    def from_numstat(cls, text: str) -> "DiffStats":
        """Parse ``git diff --numstat`` output.

        Binary files report ``-`` for both counts and add no lines.
        """
        stats = cls()
        for line in text.splitlines():
            parts = line.split("\t", 2)
            if len(parts) != 3:
                continue
            added, removed, _ = parts
            stats.files_changed += 1
            stats.insertions += int(added) if added.isdigit() else 0
            stats.deletions += int(removed) if removed.isdigit() else 0
        return stats

    @property
    def summary(self) -> str:
        """One-line summary in git's ``--shortstat`` wording."""
        return f"{self.files_changed} files changed, {self.insertions} insertions(+), {self.deletions} deletions(-)"


class CommitDiff(BaseModel):
    """A commit with the changes it introduced over its first parent."""

    commit: CommitInfo
    file_changes: list[FileChange] = Field(default_factory=list)
    diff_content: str = ""

    @property
    def stats(self) -> DiffStats:
        return DiffStats(
            files_changed=len(self.file_changes),
            insertions=sum(change.additions for change in self.file_changes),
            deletions=sum(change.deletions for change in self.file_changes),
        )


class RepositoryDiff(BaseModel):
    """Difference between two revisions, or between HEAD and the working tree."""

    name: str = Field(description="What was compared, e.g. a repository or 'a..b'")
    base: str = Field(description="Revision the diff starts from")
    target: str = Field(description="Revision (or 'working tree') the diff ends at")
    diff_content: str = ""
    stats: DiffStats = Field(default_factory=DiffStats)

    @property
    def is_identical(self) -> bool:
        return self.stats.files_changed == 0


class RepositoryStats(BaseModel):
    """Statistics for one line of history."""

    name: str
    revision: str | None = Field(default=None, description="Ref the statistics were read from; None if missing")
    total_commits: int = 0
    total_files: int = 0
    last_commit_date: datetime | None = None
    contributors: list[str] = Field(default_factory=list)
    branches: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


class GroupStats(BaseModel):
    """Statistics aggregated over a group's members."""

    name: str
    total_repositories: int = 0
    total_commits: int = 0
    avg_commits_per_repo: float = 0.0
    total_contributors: int = 0


class OverallStats(BaseModel):
    """Statistics for the working copy, every endpoint and every group."""

    local: RepositoryStats
    repository_stats: list[RepositoryStats] = Field(default_factory=list)
    group_stats: list[GroupStats] = Field(default_factory=list)
    total_repositories: int = 0
    total_groups: int = 0
    total_commits: int = 0
    total_contributors: int = 0
