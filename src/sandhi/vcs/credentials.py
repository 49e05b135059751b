"""Credential strategies for network operations against remote endpoints.

Each endpoint's ``auth_mode`` selects one strategy. The strategy is asked for
a live credential every time git needs one, so it must stay cheap and must
never raise: any failure to authenticate surfaces from the git call itself.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field

from sandhi.registry.models import AuthMode, RepositoryEndpoint

logger = logging.getLogger(__name__)

DEFAULT_SSH_USERNAME = "git"
TOKEN_USERNAME = "token"
CLONE_TOKEN_PASSWORD = "x-oauth-basic"


class CredentialPurpose(str, Enum):
    """What the credential will be used for."""

    TRANSFER = "transfer"
    CLONE = "clone"


class SshKeyCredential(BaseModel):
    """Authenticate with a private key file."""

    model_config = ConfigDict(frozen=True)

    username: str
    private_key: Path


class UserPassCredential(BaseModel):
    """Authenticate with a username/password pair."""

    model_config = ConfigDict(frozen=True)

    username: str = Field(repr=False)
    password: str = Field(repr=False)


class DefaultCredential(BaseModel):
    """Defer to git's own credential helpers and SSH agent."""

    model_config = ConfigDict(frozen=True)


Credential = SshKeyCredential | UserPassCredential | DefaultCredential


def default_key_path() -> Path:
    """Get the conventional private key location (``~/.ssh/id_rsa``)."""
    return Path.home() / ".ssh" / "id_rsa"


def username_from_url(url: str) -> str | None:
    """Extract the user part of a remote URL, if any.

    Handles both ``scheme://user@host/path`` and the ``user@host:path`` SSH
    shorthand.

    Args:
        url: Remote URL

    Returns:
        Username embedded in the URL, or None
    """
    if "://" not in url:
        user, sep, _ = url.partition("@")
        return user if sep and user else None
    return urlsplit(url).username or None


class CredentialStrategy(ABC):
    """Supplies credentials to git for one endpoint."""

    auth_mode: AuthMode

    @abstractmethod
    def acquire(self, url: str, username_from_url: str | None = None) -> Credential:
        """Produce a credential for a network call.

        Args:
            url: URL git is connecting to
            username_from_url: Username git parsed from the URL, if any

        Returns:
            Credential to hand to the transport
        """

    def __call__(self, url: str, username_from_url: str | None = None) -> Credential:
        return self.acquire(url, username_from_url)


class SshKeyStrategy(CredentialStrategy):
    """Key file configured on the endpoint, no passphrase."""

    auth_mode = AuthMode.SSH_KEY

    def __init__(self, key_path: str | Path) -> None:
        self.key_path = Path(key_path).expanduser()

    def acquire(self, url: str, username_from_url: str | None = None) -> Credential:
        return SshKeyCredential(
            username=username_from_url or DEFAULT_SSH_USERNAME,
            private_key=self.key_path,
        )


class TokenStrategy(CredentialStrategy):
    """Access token sent as a password.

    Clones put the token in the username slot instead, which is what some
    hosts expect for HTTPS clones.
    """

    auth_mode = AuthMode.TOKEN

    def __init__(self, token: str, purpose: CredentialPurpose = CredentialPurpose.TRANSFER) -> None:
        self.token = token
        self.purpose = purpose

    def acquire(self, url: str, username_from_url: str | None = None) -> Credential:
        if self.purpose is CredentialPurpose.CLONE:
            return UserPassCredential(username=self.token, password=CLONE_TOKEN_PASSWORD)
        return UserPassCredential(username=TOKEN_USERNAME, password=self.token)


class DefaultStrategy(CredentialStrategy):
    """Try ``~/.ssh/id_rsa`` first, then git's platform credential helper."""

    auth_mode = AuthMode.DEFAULT

    def __init__(self, username: str | None = None, key_path: Path | None = None) -> None:
        self.username = username
        self.key_path = key_path

    def acquire(self, url: str, username_from_url: str | None = None) -> Credential:
        key_path = self.key_path or default_key_path()
        if key_path.is_file():
            return SshKeyCredential(
                username=username_from_url or self.username or DEFAULT_SSH_USERNAME,
                private_key=key_path,
            )
        logger.debug(f"No usable key at {key_path}, using default credential helper")
        return DefaultCredential()


def resolve_strategy(
    endpoint: RepositoryEndpoint,
    purpose: CredentialPurpose = CredentialPurpose.TRANSFER,
    username: str | None = None,
) -> CredentialStrategy:
    """Build the credential strategy for an endpoint.

    Only the auth field matching ``endpoint.auth_mode`` is read.

    Args:
        endpoint: Endpoint to authenticate against
        purpose: Transfer (push/pull/fetch/tag) or clone
        username: Caller-supplied username for default mode

    Returns:
        Strategy for the endpoint's auth mode
    """
    if endpoint.auth_mode is AuthMode.SSH_KEY:
        return SshKeyStrategy(endpoint.ssh_key_path)
    if endpoint.auth_mode is AuthMode.TOKEN:
        return TokenStrategy(endpoint.auth_token, purpose)
    return DefaultStrategy(username=username)
