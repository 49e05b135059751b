"""Batch orchestration: one operation fanned out across many endpoints."""

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path
from typing import ClassVar

from pydantic import BaseModel

from sandhi.classifier import classify
from sandhi.models import EndpointResult, OperationOutcome
from sandhi.registry import EndpointRegistry, RepositoryEndpoint, SharedRegistry
from sandhi.vcs import EndpointOperationError, GitManager, MergeConflictError, VCSError, VCSOperationError
from sandhi.vcs.manager import CLONING, FETCHING, PULLING, PUSHING, TAGGING

logger = logging.getLogger(__name__)

NO_GROUP_MEMBERS = "No repositories found in group"
NO_ENDPOINTS = "No repositories configured"

_repository_locks: dict[Path, threading.Lock] = {}
_repository_locks_guard = threading.Lock()


def _repository_lock(repo_path: Path) -> threading.Lock:
    """Get the lock that serializes batches on one working copy."""
    with _repository_locks_guard:
        return _repository_locks.setdefault(repo_path.resolve(), threading.Lock())


class AllEndpoints(BaseModel):
    """Select every endpoint in registry order."""

    @property
    def label(self) -> str:
        return "All repositories"

    def resolve(self, registry: EndpointRegistry) -> list[RepositoryEndpoint]:
        return list(registry.endpoints)

    @property
    def empty_message(self) -> str:
        return NO_ENDPOINTS


class GroupSelector(BaseModel):
    """Select a group's members, in registry order."""

    name: str

    @property
    def label(self) -> str:
        return self.name

    def resolve(self, registry: EndpointRegistry) -> list[RepositoryEndpoint]:
        return registry.endpoints_in_group(self.name)

    @property
    def empty_message(self) -> str:
        return NO_GROUP_MEMBERS


Selector = AllEndpoints | GroupSelector


class BatchOperation(BaseModel, ABC):
    """One git primitive applied to each selected endpoint."""

    verb: ClassVar[str]
    needs_local_repository: ClassVar[bool] = False

    @property
    def commit_message(self) -> str | None:
        """Message for the one local commit made before the loop, if any."""
        return None

    @abstractmethod
    def execute(self, manager: GitManager | None, endpoint: RepositoryEndpoint) -> None:
        """Run the primitive against one endpoint.

        Raises:
            EndpointOperationError: If the endpoint operation fails
        """


class LocalRepositoryOperation(BatchOperation, ABC):
    """Operation that works through the opened local working copy."""

    needs_local_repository: ClassVar[bool] = True

    def execute(self, manager: GitManager | None, endpoint: RepositoryEndpoint) -> None:
        if manager is None:
            msg = f"{self.verb} '{endpoint.name}' needs an open local repository"
            raise VCSOperationError(msg)
        self.apply(manager, endpoint)

    @abstractmethod
    def apply(self, manager: GitManager, endpoint: RepositoryEndpoint) -> None:
        """Run the primitive with the local repository."""


class PushOperation(LocalRepositoryOperation):
    """Stage and commit once, then push the branch everywhere."""

    verb: ClassVar[str] = PUSHING

    message: str
    branch: str

    @property
    def commit_message(self) -> str | None:
        return self.message

    def apply(self, manager: GitManager, endpoint: RepositoryEndpoint) -> None:
        manager.push(endpoint, self.branch)


class PullOperation(LocalRepositoryOperation):
    verb: ClassVar[str] = PULLING

    branch: str

    def apply(self, manager: GitManager, endpoint: RepositoryEndpoint) -> None:
        manager.pull(endpoint, self.branch)


class FetchOperation(LocalRepositoryOperation):
    verb: ClassVar[str] = FETCHING

    branch: str

    def apply(self, manager: GitManager, endpoint: RepositoryEndpoint) -> None:
        manager.fetch(endpoint, self.branch)


class TagOperation(LocalRepositoryOperation):
    verb: ClassVar[str] = TAGGING

    name: str
    message: str

    def apply(self, manager: GitManager, endpoint: RepositoryEndpoint) -> None:
        manager.tag(endpoint, self.name, self.message)


class CloneOperation(BatchOperation):
    """Clone each endpoint into ``base_path/<endpoint name>``."""

    verb: ClassVar[str] = CLONING

    base_path: Path

    def execute(self, manager: GitManager | None, endpoint: RepositoryEndpoint) -> None:
        GitManager.clone(endpoint, self.base_path / endpoint.name)


class BatchOrchestrator:
    """Runs batch operations for one local working copy.

    Endpoints are processed one at a time, in order. A failure on one
    endpoint is recorded and the batch moves on; only a failure to prepare
    the local repository stops it.
    """

    def __init__(
        self,
        registry: SharedRegistry | EndpointRegistry,
        repo_path: str | Path | None = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            registry: Shared registry handle, or a registry to read from
            repo_path: Local working copy (default: current directory)
        """
        self.registry = registry
        self.repo_path = Path(repo_path or Path.cwd())

    def _snapshot(self) -> EndpointRegistry:
        if isinstance(self.registry, SharedRegistry):
            return self.registry.snapshot()
        return self.registry.model_copy(deep=True)

    def run(
        self,
        selector: Selector,
        operation: BatchOperation,
        on_result: Callable[[EndpointResult], None] | None = None,
    ) -> list[EndpointResult]:
        """Apply an operation to the selected endpoints.

        Args:
            selector: Which endpoints to target
            operation: Operation to apply
            on_result: Called with each endpoint result as soon as it is known

        Returns:
            One result per selected endpoint in selection order, or a single
            result when nothing was selected or local preparation failed
        """
        endpoints = selector.resolve(self._snapshot())
        if not endpoints:
            logger.info(f"No endpoints selected by {selector.label}")
            return [EndpointResult.empty(selector.label, selector.empty_message)]

        logger.info(f"{operation.verb.capitalize()} {len(endpoints)} repositories ({selector.label})")

        with _repository_lock(self.repo_path):
            manager: GitManager | None = None
            if operation.needs_local_repository:
                try:
                    manager = GitManager(self.repo_path)
                except VCSError as e:
                    return [EndpointResult.aborted(f"Failed to open repository: {e}")]

                commit_message = operation.commit_message
                if commit_message is not None:
                    aborted = self._commit_local_changes(manager, commit_message)
                    if aborted is not None:
                        return [aborted]

            results = []
            for endpoint in endpoints:
                result = self._run_one(manager, endpoint, operation)
                logger.info(f"{endpoint.name}: {result.message}")
                if on_result is not None:
                    on_result(result)
                results.append(result)
            return results

    def run_batch(self, selector: Selector, operation: BatchOperation) -> list[OperationOutcome]:
        """Apply an operation and return display pairs."""
        return [result.to_outcome() for result in self.run(selector, operation)]

    @staticmethod
    def _commit_local_changes(manager: GitManager, message: str) -> EndpointResult | None:
        """Stage everything and commit; return an aborted result on failure."""
        try:
            manager.stage_all()
        except VCSError as e:
            return EndpointResult.aborted(f"Failed to add changes: {e}")

        try:
            manager.commit(message)
        except VCSError as e:
            return EndpointResult.aborted(f"Failed to commit changes: {e}")

        return None

    @staticmethod
    def _run_one(
        manager: GitManager | None,
        endpoint: RepositoryEndpoint,
        operation: BatchOperation,
    ) -> EndpointResult:
        try:
            operation.execute(manager, endpoint)
        except MergeConflictError as e:
            return EndpointResult.conflicted(e.operation, endpoint.name)
        except EndpointOperationError as e:
            return EndpointResult.failed(classify(e.operation, endpoint, e.raw_message))
        except VCSError as e:
            return EndpointResult.failed(classify(operation.verb, endpoint, e))
        except Exception as e:
            logger.exception(f"Unexpected error while {operation.verb} {endpoint.name}")
            return EndpointResult.failed(classify(operation.verb, endpoint, e))
        return EndpointResult.succeeded(endpoint.name)


def run_batch(
    registry: SharedRegistry | EndpointRegistry,
    selector: Selector,
    operation: BatchOperation,
    repo_path: str | Path | None = None,
) -> list[OperationOutcome]:
    """Run one batch and return ``(endpoint_name, message)`` outcomes.

    Args:
        registry: Registry (or shared handle) to select endpoints from
        selector: ``AllEndpoints()`` or ``GroupSelector(name=...)``
        operation: Operation to apply
        repo_path: Local working copy (default: current directory)

    Returns:
        Outcomes in selection order
    """
    return BatchOrchestrator(registry, repo_path).run_batch(selector, operation)
