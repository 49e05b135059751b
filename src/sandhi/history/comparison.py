"""Diffs between revisions, the working tree and the endpoints of a group."""

import logging
from itertools import combinations
from pathlib import Path

import git

from sandhi.history.commits import resolve_commit
from sandhi.history.exceptions import RevisionNotFoundError
from sandhi.history.models import DiffStats, RepositoryDiff
from sandhi.registry import EndpointRegistry
from sandhi.vcs import GitManager

logger = logging.getLogger(__name__)

WORKING_TREE = "working tree"


def _repository_diff(repo: git.Repo, name: str, base: str, target: str, *revisions: str) -> RepositoryDiff:
    return RepositoryDiff(
        name=name,
        base=base,
        target=target,
        diff_content=repo.git.diff(*revisions),
        stats=DiffStats.from_numstat(repo.git.diff(*revisions, numstat=True)),
    )


def _working_copy_name(repo: git.Repo) -> str:
    return Path(repo.working_tree_dir or ".").name


def diff_revisions(repo_path: str | Path, base: str, target: str) -> RepositoryDiff:
    """Diff two commits, branches or tags of the working copy.

    Raises:
        RevisionNotFoundError: If either revision does not name a commit
    """
    repo = GitManager(repo_path).repo
    base_commit = resolve_commit(repo, base)
    target_commit = resolve_commit(repo, target)
    return _repository_diff(repo, _working_copy_name(repo), base, target, base_commit.hexsha, target_commit.hexsha)


def diff_working_directory(repo_path: str | Path) -> RepositoryDiff:
    """Diff HEAD against the working tree, staged changes included.

    Untracked files are not part of the diff.

    Raises:
        RevisionNotFoundError: If the repository has no commits yet
    """
    repo = GitManager(repo_path).repo
    if not repo.head.is_valid():
        msg = "HEAD has no commits yet"
        raise RevisionNotFoundError(msg)
    return _repository_diff(repo, _working_copy_name(repo), "HEAD", WORKING_TREE, "HEAD")


def compare_group_endpoints(
    registry: EndpointRegistry,
    group_name: str,
    repo_path: str | Path,
    branch: str,
) -> list[RepositoryDiff]:
    """Compare one branch across every pair of a group's endpoints.

    Each member's branch is fetched with its own credentials, then the tips
    are diffed pairwise in registry order (``a..b``, ``a..c``, ``b..c``).

    Args:
        registry: Registry to resolve the group in
        group_name: Group whose members are compared
        repo_path: Working copy used to fetch into
        branch: Branch compared on every endpoint

    Returns:
        One diff per pair; empty when the group has fewer than two members

    Raises:
        EndpointOperationError: If fetching from a member fails
    """
    endpoints = registry.endpoints_in_group(group_name)
    if len(endpoints) < 2:
        return []

    manager = GitManager(repo_path)
    tips: dict[str, str] = {}
    for endpoint in endpoints:
        manager.fetch(endpoint, branch)
        tips[endpoint.name] = manager.repo.git.rev_parse("FETCH_HEAD")
        logger.debug(f"{endpoint.name}/{branch} is at {tips[endpoint.name][:7]}")

    return [
        _repository_diff(
            manager.repo,
            f"{first.name}..{second.name}",
            f"{first.name}/{branch}",
            f"{second.name}/{branch}",
            tips[first.name],
            tips[second.name],
        )
        for first, second in combinations(endpoints, 2)
    ]
