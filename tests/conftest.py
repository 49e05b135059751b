"""Shared fixtures: real temporary repositories with bare remotes."""

from collections.abc import Callable
from pathlib import Path

import git
import pytest

from git_helpers import commit_file, configure_identity
from sandhi.registry import RepositoryEndpoint


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """Create a working copy on ``main`` with one commit.

    Args:
        tmp_path: Pytest temporary directory fixture

    Returns:
        Path to the working copy
    """
    work = tmp_path / "work"
    work.mkdir()
    repo = git.Repo.init(work)
    configure_identity(repo)
    commit_file(repo, "README.md", "hello\n", "Initial commit")
    repo.git.branch("-M", "main")
    return work


@pytest.fixture
def make_remote(tmp_path: Path) -> Callable[[str], RepositoryEndpoint]:
    """Factory for bare repositories exposed as endpoints.

    Returns:
        Callable taking an endpoint name and returning an endpoint whose URL
        is a fresh bare repository
    """

    def _make(name: str) -> RepositoryEndpoint:
        path = tmp_path / "remotes" / f"{name}.git"
        path.mkdir(parents=True)
        bare = git.Repo.init(path, bare=True)
        bare.git.symbolic_ref("HEAD", "refs/heads/main")
        return RepositoryEndpoint(name=name, url=str(path))

    return _make


@pytest.fixture
def make_clone(tmp_path: Path) -> Callable[[RepositoryEndpoint, str], git.Repo]:
    """Factory for a second working copy of an endpoint (another collaborator)."""

    def _make(endpoint: RepositoryEndpoint, name: str) -> git.Repo:
        repo = git.Repo.clone_from(endpoint.url, str(tmp_path / "clones" / name))
        configure_identity(repo)
        return repo

    return _make
