"""Commit history, diffs and statistics for the working copy and its endpoints."""

from sandhi.history.commits import DEFAULT_HISTORY_LIMIT, get_commit_diff, get_commit_history, resolve_commit
from sandhi.history.comparison import compare_group_endpoints, diff_revisions, diff_working_directory
from sandhi.history.exceptions import HistoryError, RevisionNotFoundError
from sandhi.history.models import (
    CommitDiff,
    CommitInfo,
    DiffStats,
    FileChange,
    FileChangeStatus,
    GroupStats,
    OverallStats,
    RepositoryDiff,
    RepositoryStats,
)
from sandhi.history.stats import collect_overall_stats

__all__ = [
    "DEFAULT_HISTORY_LIMIT",
    "CommitDiff",
    "CommitInfo",
    "DiffStats",
    "FileChange",
    "FileChangeStatus",
    "GroupStats",
    "HistoryError",
    "OverallStats",
    "RepositoryDiff",
    "RepositoryStats",
    "RevisionNotFoundError",
    "collect_overall_stats",
    "compare_group_endpoints",
    "diff_revisions",
    "diff_working_directory",
    "get_commit_diff",
    "get_commit_history",
    "resolve_commit",
]
