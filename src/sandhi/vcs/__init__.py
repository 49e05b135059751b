"""Git access for sandhi: credentials, transport binding and operations."""

from sandhi.vcs.credentials import (
    Credential,
    CredentialPurpose,
    CredentialStrategy,
    DefaultCredential,
    DefaultStrategy,
    SshKeyCredential,
    SshKeyStrategy,
    TokenStrategy,
    UserPassCredential,
    resolve_strategy,
)
from sandhi.vcs.exceptions import (
    EndpointOperationError,
    MergeConflictError,
    NotARepositoryError,
    VCSError,
    VCSOperationError,
)
from sandhi.vcs.manager import GitManager

__all__ = [
    "Credential",
    "CredentialPurpose",
    "CredentialStrategy",
    "DefaultCredential",
    "DefaultStrategy",
    "EndpointOperationError",
    "GitManager",
    "MergeConflictError",
    "NotARepositoryError",
    "SshKeyCredential",
    "SshKeyStrategy",
    "TokenStrategy",
    "UserPassCredential",
    "VCSError",
    "VCSOperationError",
    "resolve_strategy",
]
