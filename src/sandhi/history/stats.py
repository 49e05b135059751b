"""Repository statistics for the working copy, its endpoints and groups."""

import logging
from pathlib import Path

import git

from sandhi.history.models import GroupStats, OverallStats, RepositoryStats
from sandhi.registry import EndpointGroup, EndpointRegistry, RepositoryEndpoint
from sandhi.vcs import GitManager

logger = logging.getLogger(__name__)

# Upper bound on commits walked per line of history
MAX_COMMITS = 1000


def collect_revision_stats(
    repo: git.Repo,
    name: str,
    revision: str,
    max_commits: int = MAX_COMMITS,
) -> RepositoryStats:
    """Collect commit, contributor and file counts for one revision.

    A revision that does not resolve yields empty statistics with
    ``revision`` set to None.
    """
    try:
        tip = repo.commit(revision)
    except (git.BadName, git.BadObject, ValueError):
        logger.debug(f"No commits at {revision} for {name}")
        return RepositoryStats(name=name)

    contributors: set[str] = set()
    total_commits = 0
    last_commit_date = None
    for commit in repo.iter_commits(tip, max_count=max_commits):
        total_commits += 1
        if commit.author.name:
            contributors.add(commit.author.name)
        if last_commit_date is None or commit.authored_datetime > last_commit_date:
            last_commit_date = commit.authored_datetime

    return RepositoryStats(
        name=name,
        revision=revision,
        total_commits=total_commits,
        total_files=sum(1 for item in tip.tree.traverse() if item.type == "blob"),
        last_commit_date=last_commit_date,
        contributors=sorted(contributors),
    )


def collect_working_copy_stats(repo: git.Repo, max_commits: int = MAX_COMMITS) -> RepositoryStats:
    """Statistics for HEAD, with the local branches and tags."""
    stats = collect_revision_stats(repo, Path(repo.working_tree_dir or ".").name, "HEAD", max_commits)
    stats.branches = sorted(head.name for head in repo.heads)
    stats.tags = sorted(tag.name for tag in repo.tags)
    return stats


def collect_endpoint_stats(
    repo: git.Repo,
    endpoint: RepositoryEndpoint,
    branch: str,
    max_commits: int = MAX_COMMITS,
) -> RepositoryStats:
    """Statistics for an endpoint's remote-tracking branch.

    Reads ``refs/remotes/<endpoint>/<branch>`` as left by the last push, pull
    or fetch; nothing is contacted over the network. git keeps no tags per
    remote, so ``tags`` stays empty.
    """
    stats = collect_revision_stats(repo, endpoint.name, f"refs/remotes/{endpoint.name}/{branch}", max_commits)
    stats.branches = sorted(
        ref.remote_head
        for ref in repo.refs
        if isinstance(ref, git.RemoteReference) and ref.remote_name == endpoint.name and ref.remote_head != "HEAD"
    )
    return stats


def collect_group_stats(group: EndpointGroup, by_name: dict[str, RepositoryStats]) -> GroupStats:
    """Aggregate member statistics; members without statistics are skipped."""
    members = [by_name[name] for name in group.member_names if name in by_name]
    total_commits = sum(stats.total_commits for stats in members)
    contributors = {person for stats in members for person in stats.contributors}
    return GroupStats(
        name=group.name,
        total_repositories=len(group.member_names),
        total_commits=total_commits,
        avg_commits_per_repo=total_commits / len(members) if members else 0.0,
        total_contributors=len(contributors),
    )


def collect_overall_stats(
    registry: EndpointRegistry,
    repo_path: str | Path,
    branch: str,
    max_commits: int = MAX_COMMITS,
) -> OverallStats:
    """Collect statistics for the working copy, every endpoint and every group.

    Args:
        registry: Endpoints and groups to report on
        repo_path: Working copy holding the remote-tracking branches
        branch: Branch read for every endpoint
        max_commits: Upper bound on commits walked per line of history

    Returns:
        Per-endpoint and per-group statistics with registry-wide totals
    """
    repo = GitManager(repo_path).repo
    repository_stats = [
        collect_endpoint_stats(repo, endpoint, branch, max_commits) for endpoint in registry.endpoints
    ]
    by_name = {stats.name: stats for stats in repository_stats}
    contributors = {person for stats in repository_stats for person in stats.contributors}

    return OverallStats(
        local=collect_working_copy_stats(repo, max_commits),
        repository_stats=repository_stats,
        group_stats=[collect_group_stats(group, by_name) for group in registry.groups],
        total_repositories=len(registry.endpoints),
        total_groups=len(registry.groups),
        total_commits=sum(stats.total_commits for stats in repository_stats),
        total_contributors=len(contributors),
    )
