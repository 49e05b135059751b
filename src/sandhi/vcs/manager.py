"""Git operations against the local working copy and its remote endpoints."""

import logging
import re
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import git

from sandhi.registry.models import RepositoryEndpoint
from sandhi.vcs.credentials import CredentialPurpose, resolve_strategy
from sandhi.vcs.exceptions import (
    EndpointOperationError,
    MergeConflictError,
    NotARepositoryError,
    VCSOperationError,
)
from sandhi.vcs.transport import environment_for

logger = logging.getLogger(__name__)

PUSHING = "pushing to"
PULLING = "pulling from"
FETCHING = "fetching from"
TAGGING = "tagging"
CLONING = "cloning"

UNRESOLVED_CONFLICTS = "unresolved conflicts from an earlier merge"

_STREAM_TEXT = re.compile(r"^\s*std(?:err|out): '(?P<text>.*)'\s*$", re.DOTALL)


def describe_git_error(error: Exception) -> str:
    """Extract the useful text from a git failure.

    For command errors this is git's own stderr (or stdout), without the
    command line, so remote names never leak into classification.

    Args:
        error: Exception raised by GitPython

    Returns:
        Human-readable error text
    """
    if isinstance(error, git.GitCommandError):
        for stream in (error.stderr, error.stdout):
            stream = stream or ""
            match = _STREAM_TEXT.match(stream)
            text = (match.group("text") if match else stream).strip()
            if text:
                return text
        return f"git exited with status {error.status}"
    return str(error)


class GitManager:
    """Runs git primitives for sandhi.

    Local operations (stage, commit, conflict checks) need no credentials.
    Every remote operation resolves the endpoint's credential strategy and
    raises ``EndpointOperationError`` on failure.
    """

    def __init__(self, repo_path: str | Path | None = None) -> None:
        """Open the local repository.

        Args:
            repo_path: Path to Git repository (default: current directory)

        Raises:
            NotARepositoryError: If path is not a Git repository
        """
        self.repo_path = Path(repo_path or Path.cwd())

        try:
            self.repo = git.Repo(self.repo_path, search_parent_directories=True)
        except (git.InvalidGitRepositoryError, git.NoSuchPathError) as e:
            msg = f"Not a Git repository: {self.repo_path}"
            raise NotARepositoryError(msg) from e
        except git.GitError as e:
            msg = f"Git error: {e}"
            raise VCSOperationError(msg) from e

    def is_clean(self) -> bool:
        """Check if working directory is clean (no uncommitted changes).

        Returns:
            True if working directory is clean
        """
        return not self.repo.is_dirty(untracked_files=True)

    def get_current_branch(self) -> str:
        """Get the name of the current branch.

        Returns:
            Current branch name

        Raises:
            VCSOperationError: If HEAD is detached
        """
        try:
            return self.repo.active_branch.name
        except TypeError as e:
            msg = f"Unable to get current branch: {e}"
            raise VCSOperationError(msg) from e

    def stage_all(self) -> None:
        """Stage every working-tree change, including deletions and new files.

        Raises:
            VCSOperationError: If staging fails
        """
        try:
            self.repo.git.add(A=True)
        except git.GitError as e:
            msg = describe_git_error(e)
            raise VCSOperationError(msg) from e

    def commit(self, message: str) -> str:
        """Commit the index on top of the current branch tip.

        An unborn branch gets a root commit.

        Args:
            message: Commit message

        Returns:
            Commit SHA

        Raises:
            VCSOperationError: If the commit cannot be written
        """
        try:
            parents = [self.repo.head.commit] if self.repo.head.is_valid() else []
            commit = self.repo.index.commit(message, parent_commits=parents, head=True)
        except (git.GitError, ValueError, OSError) as e:
            msg = describe_git_error(e)
            raise VCSOperationError(msg) from e

        logger.debug(f"Created commit {commit.hexsha[:7]}")
        return commit.hexsha

    def conflicted_paths(self) -> list[str]:
        """List paths that have unresolved conflict entries in the index."""
        return sorted(str(path) for path in self.repo.index.unmerged_blobs())

    def has_conflicts(self) -> bool:
        """Check the index for unresolved conflicts.

        Returns:
            True if any conflict entries exist; False also when the index
            cannot be read
        """
        try:
            return bool(self.conflicted_paths())
        except (git.GitError, OSError, ValueError) as e:
            logger.debug(f"Could not read index for conflict check: {e}")
            return False

    def push(self, endpoint: RepositoryEndpoint, branch: str) -> None:
        """Push ``refs/heads/<branch>`` to the same ref on the endpoint.

        Raises:
            EndpointOperationError: If the push fails
        """
        refspec = f"refs/heads/{branch}:refs/heads/{branch}"
        with self._endpoint_call(PUSHING, endpoint) as remote:
            self.repo.git.push(remote.name, refspec)

    def fetch(self, endpoint: RepositoryEndpoint, branch: str) -> None:
        """Fetch a branch from the endpoint without merging.

        Raises:
            EndpointOperationError: If the fetch fails
        """
        with self._endpoint_call(FETCHING, endpoint) as remote:
            self.repo.git.fetch(remote.name, branch)

    def pull(self, endpoint: RepositoryEndpoint, branch: str) -> None:
        """Fetch a branch and merge it into the current branch.

        Raises:
            MergeConflictError: If the merge leaves conflicts in the index
            EndpointOperationError: If fetching or merging fails otherwise,
                including when conflicts from an earlier merge are unresolved
        """
        if self.has_conflicts():
            raise EndpointOperationError(PULLING, endpoint.name, UNRESOLVED_CONFLICTS)

        with self._endpoint_call(PULLING, endpoint) as remote:
            self.repo.git.fetch(remote.name, branch)
            try:
                self.repo.git.merge("FETCH_HEAD")
            except git.GitCommandError:
                if self.has_conflicts():
                    raise MergeConflictError(PULLING, endpoint.name, self.conflicted_paths()) from None
                raise

        if self.has_conflicts():
            raise MergeConflictError(PULLING, endpoint.name, self.conflicted_paths())

    def tag(self, endpoint: RepositoryEndpoint, name: str, message: str) -> None:
        """Create an annotated tag at the branch tip and push it.

        A tag that already exists locally is pushed as-is, so one tag can be
        sent to several endpoints in turn.

        Raises:
            EndpointOperationError: If the tag cannot be created or pushed
        """
        refspec = f"refs/tags/{name}:refs/tags/{name}"
        with self._endpoint_call(TAGGING, endpoint) as remote:
            if not any(tag.name == name for tag in self.repo.tags):
                self.repo.create_tag(name, ref=self.repo.head.commit, message=message)
                logger.debug(f"Created tag {name}")
            self.repo.git.push(remote.name, refspec)

    @classmethod
    def clone(cls, endpoint: RepositoryEndpoint, destination: str | Path) -> "GitManager":
        """Clone an endpoint and register it as a remote under its own name.

        Args:
            endpoint: Endpoint to clone
            destination: New local path

        Returns:
            Manager for the cloned repository

        Raises:
            EndpointOperationError: If the clone fails
        """
        strategy = resolve_strategy(endpoint, CredentialPurpose.CLONE)
        logger.debug(f"Cloning {endpoint.name} into {destination}")
        try:
            repo = git.Repo.clone_from(endpoint.url, str(destination), env=environment_for(strategy, endpoint.url))
            if not any(remote.name == endpoint.name for remote in repo.remotes):
                repo.create_remote(endpoint.name, endpoint.url)
        except (git.GitError, OSError) as e:
            raise EndpointOperationError(CLONING, endpoint.name, describe_git_error(e)) from e

        return cls(destination)

    def _find_or_create_remote(self, endpoint: RepositoryEndpoint) -> git.Remote:
        try:
            remote = self.repo.remote(endpoint.name)
        except ValueError:
            logger.debug(f"Adding remote {endpoint.name} -> {endpoint.url}")
            return self.repo.create_remote(endpoint.name, endpoint.url)

        if remote.url != endpoint.url:
            logger.info(f"Updating URL of remote {endpoint.name} to {endpoint.url}")
            remote.set_url(endpoint.url)
        return remote

    @contextmanager
    def _endpoint_call(self, operation: str, endpoint: RepositoryEndpoint) -> Iterator[git.Remote]:
        """Run remote git commands with the endpoint's credentials.

        Raises:
            EndpointOperationError: Wrapping any git failure in the block
        """
        strategy = resolve_strategy(endpoint)
        logger.debug(f"{operation} {endpoint.name} ({endpoint.auth_mode.display_name} auth)")
        try:
            remote = self._find_or_create_remote(endpoint)
            with self.repo.git.custom_environment(**environment_for(strategy, endpoint.url)):
                yield remote
        except (git.GitError, ValueError, OSError) as e:
            logger.warning(f"Failed {operation} {endpoint.name}: {describe_git_error(e)}")
            raise EndpointOperationError(operation, endpoint.name, describe_git_error(e)) from e
