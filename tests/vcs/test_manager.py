"""Tests for Git manager."""

from collections.abc import Callable
from pathlib import Path

import git
import pytest

from git_helpers import commit_file, configure_identity
from sandhi.registry import RepositoryEndpoint
from sandhi.vcs import (
    EndpointOperationError,
    GitManager,
    MergeConflictError,
    NotARepositoryError,
)
from sandhi.vcs.manager import CLONING, PULLING, PUSHING, TAGGING, UNRESOLVED_CONFLICTS, describe_git_error

MakeRemote = Callable[[str], RepositoryEndpoint]
MakeClone = Callable[[RepositoryEndpoint, str], git.Repo]


@pytest.fixture
def manager(git_repo: Path) -> GitManager:
    """Manager for the test working copy."""
    return GitManager(git_repo)


@pytest.fixture
def seeded_remote(manager: GitManager, make_remote: MakeRemote) -> RepositoryEndpoint:
    """Bare remote that already has ``main`` pushed to it."""
    endpoint = make_remote("origin-a")
    manager.push(endpoint, "main")
    return endpoint


class TestGitManagerInit:
    """Tests for GitManager initialization."""

    def test_init_with_git_repo(self, git_repo: Path) -> None:
        """Test initialization in a Git repository."""
        manager = GitManager(git_repo)

        assert manager.repo_path == git_repo
        assert manager.get_current_branch() == "main"

    def test_init_with_current_directory(self, git_repo: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test initialization with current directory."""
        monkeypatch.chdir(git_repo)

        manager = GitManager()

        assert manager.is_clean()

    def test_init_with_non_git_directory(self, tmp_path: Path) -> None:
        """Test initialization fails for non-Git directory."""
        non_git_dir = tmp_path / "not_a_repo"
        non_git_dir.mkdir()

        with pytest.raises(NotARepositoryError, match="Not a Git repository"):
            GitManager(non_git_dir)

    def test_init_with_missing_directory(self, tmp_path: Path) -> None:
        """Test initialization fails for a path that does not exist."""
        with pytest.raises(NotARepositoryError):
            GitManager(tmp_path / "missing")


class TestLocalOperations:
    """Tests for staging, committing and status checks."""

    def test_is_clean_detects_untracked(self, manager: GitManager, git_repo: Path) -> None:
        """Test untracked files make the working copy dirty."""
        assert manager.is_clean()

        (git_repo / "new.txt").write_text("new")

        assert not manager.is_clean()

    def test_stage_all_and_commit(self, manager: GitManager, git_repo: Path) -> None:
        """Test new and modified files land in one commit."""
        parent = manager.repo.head.commit
        (git_repo / "new.txt").write_text("new")
        (git_repo / "README.md").write_text("changed\n")

        manager.stage_all()
        sha = manager.commit("Sync")

        head = manager.repo.head.commit
        assert head.hexsha == sha
        assert head.parents == (parent,)
        assert head.message == "Sync"
        assert manager.is_clean()

    def test_commit_on_unborn_branch_is_root(self, tmp_path: Path) -> None:
        """Test the first commit of an empty repository has no parents."""
        repo = git.Repo.init(tmp_path / "empty")
        configure_identity(repo)
        (tmp_path / "empty" / "a.txt").write_text("a")
        manager = GitManager(tmp_path / "empty")

        manager.stage_all()
        sha = manager.commit("Root")

        assert manager.repo.commit(sha).parents == ()

    def test_has_conflicts_false_on_clean_repo(self, manager: GitManager) -> None:
        """Test a clean index reports no conflicts."""
        assert manager.has_conflicts() is False
        assert manager.conflicted_paths() == []


class TestPush:
    """Tests for pushing to endpoints."""

    def test_push_updates_remote_branch(self, manager: GitManager, make_remote: MakeRemote) -> None:
        """Test the branch tip arrives on the endpoint."""
        endpoint = make_remote("origin-a")

        manager.push(endpoint, "main")

        bare = git.Repo(endpoint.url)
        assert bare.heads.main.commit.hexsha == manager.repo.head.commit.hexsha

    def test_push_registers_remote_under_endpoint_name(self, manager: GitManager, make_remote: MakeRemote) -> None:
        """Test the endpoint name becomes a git remote."""
        endpoint = make_remote("mirror")

        manager.push(endpoint, "main")

        assert manager.repo.remote("mirror").url == endpoint.url

    def test_push_updates_changed_remote_url(self, manager: GitManager, make_remote: MakeRemote) -> None:
        """Test an existing remote is pointed at the endpoint's current URL."""
        old = make_remote("old")
        new = make_remote("new")
        manager.repo.create_remote("mirror", old.url)

        manager.push(RepositoryEndpoint(name="mirror", url=new.url), "main")

        assert manager.repo.remote("mirror").url == new.url
        assert git.Repo(new.url).heads.main.commit.hexsha == manager.repo.head.commit.hexsha

    def test_push_to_missing_remote_fails(self, manager: GitManager, tmp_path: Path) -> None:
        """Test an unreachable endpoint raises one wrapped error."""
        endpoint = RepositoryEndpoint(name="ghost", url=str(tmp_path / "nowhere.git"))

        with pytest.raises(EndpointOperationError) as exc_info:
            manager.push(endpoint, "main")

        assert exc_info.value.operation == PUSHING
        assert exc_info.value.endpoint_name == "ghost"
        assert exc_info.value.raw_message

    def test_push_missing_branch_fails(self, manager: GitManager, make_remote: MakeRemote) -> None:
        """Test pushing a branch that does not exist locally fails."""
        endpoint = make_remote("origin-a")

        with pytest.raises(EndpointOperationError):
            manager.push(endpoint, "does-not-exist")


class TestFetchAndPull:
    """Tests for fetching and pulling."""

    def test_fetch_does_not_merge(
        self,
        manager: GitManager,
        seeded_remote: RepositoryEndpoint,
        make_clone: MakeClone,
    ) -> None:
        """Test fetch records FETCH_HEAD but leaves the branch alone."""
        other = make_clone(seeded_remote, "other")
        remote_sha = commit_file(other, "other.txt", "from elsewhere")
        other.git.push("origin", "main")
        local_sha = manager.repo.head.commit.hexsha

        manager.fetch(seeded_remote, "main")

        assert manager.repo.head.commit.hexsha == local_sha
        assert manager.repo.commit("FETCH_HEAD").hexsha == remote_sha

    def test_pull_merges_remote_changes(
        self,
        manager: GitManager,
        git_repo: Path,
        seeded_remote: RepositoryEndpoint,
        make_clone: MakeClone,
    ) -> None:
        """Test pull brings remote commits into the working copy."""
        other = make_clone(seeded_remote, "other")
        commit_file(other, "other.txt", "from elsewhere")
        other.git.push("origin", "main")

        manager.pull(seeded_remote, "main")

        assert (git_repo / "other.txt").read_text() == "from elsewhere"
        assert not manager.has_conflicts()

    def test_pull_with_conflict_raises(
        self,
        manager: GitManager,
        git_repo: Path,
        seeded_remote: RepositoryEndpoint,
        make_clone: MakeClone,
    ) -> None:
        """Test a conflicting merge is reported as a merge conflict."""
        other = make_clone(seeded_remote, "other")
        commit_file(other, "README.md", "theirs\n")
        other.git.push("origin", "main")
        commit_file(manager.repo, "README.md", "ours\n")

        with pytest.raises(MergeConflictError) as exc_info:
            manager.pull(seeded_remote, "main")

        assert exc_info.value.operation == PULLING
        assert exc_info.value.conflicted_paths == ["README.md"]
        assert manager.has_conflicts()

    def test_pull_unknown_branch_fails(self, manager: GitManager, seeded_remote: RepositoryEndpoint) -> None:
        """Test fetching a branch the endpoint lacks is an endpoint error."""
        with pytest.raises(EndpointOperationError) as exc_info:
            manager.pull(seeded_remote, "no-such-branch")

        assert not isinstance(exc_info.value, MergeConflictError)
        assert exc_info.value.operation == PULLING

    def test_pull_refuses_while_conflicts_remain(
        self,
        manager: GitManager,
        seeded_remote: RepositoryEndpoint,
        make_remote: MakeRemote,
        make_clone: MakeClone,
    ) -> None:
        """Test a later pull fails plainly instead of reporting a new conflict."""
        clean = make_remote("origin-b")
        manager.push(clean, "main")
        other = make_clone(seeded_remote, "other")
        commit_file(other, "README.md", "theirs\n")
        other.git.push("origin", "main")
        commit_file(manager.repo, "README.md", "ours\n")
        with pytest.raises(MergeConflictError):
            manager.pull(seeded_remote, "main")

        with pytest.raises(EndpointOperationError) as exc_info:
            manager.pull(clean, "main")

        assert not isinstance(exc_info.value, MergeConflictError)
        assert exc_info.value.endpoint_name == "origin-b"
        assert exc_info.value.raw_message == UNRESOLVED_CONFLICTS


class TestTag:
    """Tests for tagging."""

    def test_tag_creates_and_pushes(self, manager: GitManager, seeded_remote: RepositoryEndpoint) -> None:
        """Test an annotated tag is created at the tip and pushed."""
        manager.tag(seeded_remote, "v1.0", "Release 1.0")

        local = manager.repo.tags["v1.0"]
        assert local.commit == manager.repo.head.commit
        assert local.tag is not None
        assert local.tag.message.strip() == "Release 1.0"
        assert "v1.0" in [tag.name for tag in git.Repo(seeded_remote.url).tags]

    def test_tag_reused_for_second_endpoint(self, manager: GitManager, make_remote: MakeRemote) -> None:
        """Test the same local tag can be pushed to several endpoints."""
        first = make_remote("first")
        second = make_remote("second")
        manager.push(first, "main")
        manager.push(second, "main")

        manager.tag(first, "v2", "Two")
        manager.tag(second, "v2", "Two")

        assert git.Repo(second.url).tags["v2"].commit.hexsha == manager.repo.head.commit.hexsha

    def test_tag_failure_is_wrapped(self, manager: GitManager, tmp_path: Path) -> None:
        """Test a failed tag push raises with the tagging verb."""
        endpoint = RepositoryEndpoint(name="ghost", url=str(tmp_path / "nowhere.git"))

        with pytest.raises(EndpointOperationError) as exc_info:
            manager.tag(endpoint, "v1", "One")

        assert exc_info.value.operation == TAGGING


class TestClone:
    """Tests for cloning endpoints."""

    def test_clone_registers_named_remote(self, seeded_remote: RepositoryEndpoint, tmp_path: Path) -> None:
        """Test a clone gets a remote named after the endpoint."""
        destination = tmp_path / "cloned"

        cloned = GitManager.clone(seeded_remote, destination)

        assert cloned.repo_path == destination
        assert (destination / "README.md").exists()
        assert cloned.repo.remote(seeded_remote.name).url == seeded_remote.url

    def test_clone_failure_is_wrapped(self, tmp_path: Path) -> None:
        """Test a failed clone raises with the cloning verb."""
        endpoint = RepositoryEndpoint(name="ghost", url=str(tmp_path / "nowhere.git"))

        with pytest.raises(EndpointOperationError) as exc_info:
            GitManager.clone(endpoint, tmp_path / "dest")

        assert exc_info.value.operation == CLONING
        assert exc_info.value.endpoint_name == "ghost"


class TestDescribeGitError:
    """Tests for extracting git error text."""

    def test_uses_stderr_without_command_line(self) -> None:
        """Test the command line is not part of the description."""
        error = git.GitCommandError(["git", "push", "secret-remote"], 128, stderr="fatal: Authentication failed")

        assert describe_git_error(error) == "fatal: Authentication failed"

    def test_falls_back_to_exit_status(self) -> None:
        """Test an error without output reports its exit status."""
        error = git.GitCommandError(["git", "fetch"], 1)

        assert describe_git_error(error) == "git exited with status 1"

    def test_other_exceptions_use_str(self) -> None:
        """Test non-command errors are stringified."""
        assert describe_git_error(ValueError("Remote named 'x' didn't exist")) == "Remote named 'x' didn't exist"
