"""VCS exceptions for sandhi."""


class VCSError(Exception):
    """Base exception for all VCS-related errors."""


class NotARepositoryError(VCSError):
    """Raised when a directory is not a valid repository."""


class VCSOperationError(VCSError):
    """Raised when a local VCS operation fails."""


class EndpointOperationError(VCSOperationError):
    """Raised when an operation against one remote endpoint fails.

    Attributes:
        operation: Operation verb, e.g. "pushing to"
        endpoint_name: Name of the endpoint the operation targeted
        raw_message: Underlying engine/transport error text
    """

    def __init__(self, operation: str, endpoint_name: str, raw_message: str) -> None:
        """Initialize endpoint error.

        Args:
            operation: Operation verb
            endpoint_name: Endpoint name
            raw_message: Underlying error text
        """
        super().__init__(f"{operation} '{endpoint_name}' failed: {raw_message}")
        self.operation = operation
        self.endpoint_name = endpoint_name
        self.raw_message = raw_message


class MergeConflictError(EndpointOperationError):
    """Raised when merging fetched changes leaves unresolved conflicts."""

    def __init__(self, operation: str, endpoint_name: str, conflicted_paths: list[str]) -> None:
        """Initialize merge conflict error.

        Args:
            operation: Operation verb
            endpoint_name: Endpoint name
            conflicted_paths: Paths with unresolved conflict entries
        """
        super().__init__(operation, endpoint_name, "Merge conflicts detected")
        self.conflicted_paths = conflicted_paths
