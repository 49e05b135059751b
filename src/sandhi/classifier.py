"""Classify git/transport failures into user-facing error messages."""

from enum import Enum

from pydantic import BaseModel

from sandhi.registry.models import RepositoryEndpoint


class ErrorKind(str, Enum):
    """Closed set of failure categories."""

    AUTHENTICATION = "authentication"
    NETWORK = "network"
    REPOSITORY = "repository"
    PERMISSION = "permission"
    UNKNOWN = "unknown"


# Checked in this order; the first kind with a matching cue wins.
_CUES: list[tuple[ErrorKind, tuple[str, ...]]] = [
    (ErrorKind.AUTHENTICATION, ("authentication", "401", "403", "unauthorized")),
    (ErrorKind.NETWORK, ("network", "connection", "timeout")),
    (ErrorKind.PERMISSION, ("permission", "access denied")),
    (ErrorKind.REPOSITORY, ("repository", "not found", "corrupt")),
]

_TEMPLATES = {
    ErrorKind.AUTHENTICATION: "Authentication failed for repository '{name}'. Please check your credentials.",
    ErrorKind.NETWORK: "Network error while {op} repository '{name}'. Please check your connection.",
    ErrorKind.REPOSITORY: "Repository error while {op} '{name}'. The repository may be corrupted or inaccessible.",
    ErrorKind.PERMISSION: "Permission denied while {op} repository '{name}'. Check your access rights.",
    ErrorKind.UNKNOWN: "Error while {op} repository '{name}': {raw}.",
}

CONFLICT_TEMPLATE = "Merge conflicts detected while {op} repository '{name}'. Resolve them locally and retry."


class ClassifiedError(BaseModel):
    """A raw failure mapped onto an error kind."""

    kind: ErrorKind
    operation: str
    endpoint_name: str
    raw_message: str

    @property
    def user_message(self) -> str:
        """Rendered user-facing message."""
        return format_error(self)


def classify_message(raw_message: str) -> ErrorKind:
    """Pick the error kind for a raw message (case-insensitive).

    Args:
        raw_message: Error text from git or the transport

    Returns:
        First matching kind, or UNKNOWN
    """
    text = raw_message.lower()
    for kind, cues in _CUES:
        if any(cue in text for cue in cues):
            return kind
    return ErrorKind.UNKNOWN


def classify(
    operation: str,
    endpoint: RepositoryEndpoint | str,
    raw_error: BaseException | str,
) -> ClassifiedError:
    """Classify a failed operation against an endpoint.

    Args:
        operation: Operation verb, e.g. "pushing to"
        endpoint: Endpoint (or endpoint name) the operation targeted
        raw_error: Exception or message describing the failure

    Returns:
        Classified error
    """
    raw_message = str(raw_error)
    endpoint_name = endpoint if isinstance(endpoint, str) else endpoint.name
    return ClassifiedError(
        kind=classify_message(raw_message),
        operation=operation,
        endpoint_name=endpoint_name,
        raw_message=raw_message,
    )


def format_error(error: ClassifiedError) -> str:
    """Render the fixed user-facing message for a classified error."""
    return _TEMPLATES[error.kind].format(op=error.operation, name=error.endpoint_name, raw=error.raw_message)


def format_conflict(operation: str, endpoint_name: str) -> str:
    """Render the message for a merge that left conflicts."""
    return CONFLICT_TEMPLATE.format(op=operation, name=endpoint_name)
