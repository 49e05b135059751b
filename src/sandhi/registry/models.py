"""Endpoint, group and registry models."""

from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from sandhi.registry.exceptions import (
    DuplicateEndpointError,
    DuplicateGroupError,
    EndpointNotFoundError,
    GroupNotFoundError,
    InvalidEndpointError,
)

ACCEPTED_URL_PREFIXES = ("https://", "http://", "git@")


def validate_url(url: str) -> bool:
    """Check that a remote URL uses an accepted scheme.

    Accepts ``https://``, ``http://`` and the ``git@host:path`` SSH shorthand.

    Args:
        url: Remote URL

    Returns:
        True if the URL is accepted
    """
    return url.startswith(ACCEPTED_URL_PREFIXES)


class AuthMode(str, Enum):
    """How credentials are obtained for an endpoint."""

    DEFAULT = "default"
    SSH_KEY = "ssh"
    TOKEN = "token"

    @property
    def display_name(self) -> str:
        """Get human-readable display name.

        Returns:
            Display name for the mode
        """
        return {
            AuthMode.DEFAULT: "Default",
            AuthMode.SSH_KEY: "SSH key",
            AuthMode.TOKEN: "Token",
        }[self]


class RepositoryEndpoint(BaseModel):
    """A named remote with its own URL and authentication settings.

    Only the auth field matching ``auth_mode`` is read; the others are kept
    as-is so switching modes back and forth does not lose data.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = Field(min_length=1, description="Unique endpoint name, also used as the git remote name")
    url: str = Field(description="Remote URL")
    auth_mode: AuthMode = Field(
        default=AuthMode.DEFAULT,
        validation_alias=AliasChoices("auth_mode", "auth_type"),
        serialization_alias="auth_type",
        description="Authentication mode",
    )
    auth_token: str = Field(default="", description="Access token (token mode)")
    ssh_key_path: str = Field(default="", description="Private key path (ssh mode)")
    group: str = Field(default="", description="Primary group name, empty when ungrouped")

    @field_validator("auth_mode", mode="before")
    @classmethod
    def parse_auth_mode(cls, v: str | AuthMode | None) -> AuthMode:
        """Parse auth mode from a case-insensitive string token.

        Args:
            v: Auth mode value (string, enum, or None)

        Returns:
            Parsed AuthMode

        Raises:
            ValueError: If the token is not a known auth mode
        """
        if v is None:
            return AuthMode.DEFAULT
        if isinstance(v, AuthMode):
            return v
        try:
            return AuthMode(str(v).lower())
        except ValueError as e:
            valid_modes = [m.value for m in AuthMode]
            raise ValueError(f"Invalid auth mode: {v}. Valid options: {valid_modes}") from e

    @classmethod
    def with_auth(
        cls,
        name: str,
        url: str,
        auth_mode: AuthMode,
        auth_token: str = "",
        ssh_key_path: str = "",
    ) -> "RepositoryEndpoint":
        """Create an endpoint with explicit authentication settings."""
        return cls(name=name, url=url, auth_mode=auth_mode, auth_token=auth_token, ssh_key_path=ssh_key_path)


class EndpointGroup(BaseModel):
    """A named, ordered set of endpoint names."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = Field(min_length=1, description="Unique group name")
    description: str = Field(default="", description="Free-text description")
    member_names: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("member_names", "repository_names"),
        serialization_alias="repository_names",
        description="Endpoint names in insertion order",
    )

    @field_validator("member_names")
    @classmethod
    def dedupe_members(cls, v: list[str]) -> list[str]:
        """Drop repeated names, keeping the first occurrence."""
        return list(dict.fromkeys(v))

    def add_member(self, endpoint_name: str) -> None:
        """Add an endpoint name; adding an existing member is a no-op."""
        if endpoint_name not in self.member_names:
            self.member_names.append(endpoint_name)

    def remove_member(self, endpoint_name: str) -> None:
        """Remove an endpoint name if present."""
        self.member_names = [name for name in self.member_names if name != endpoint_name]

    def __contains__(self, endpoint_name: object) -> bool:
        return endpoint_name in self.member_names


class EndpointRegistry(BaseModel):
    """All configured endpoints and groups.

    Endpoint order is insertion order and drives both display and batch
    iteration order.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    config_name: str = Field(default="default", description="Name of this configuration")
    endpoints: list[RepositoryEndpoint] = Field(
        default_factory=list,
        validation_alias=AliasChoices("endpoints", "repositories"),
        serialization_alias="repositories",
    )
    groups: list[EndpointGroup] = Field(default_factory=list)

    def find_endpoint(self, name: str) -> RepositoryEndpoint | None:
        """Look up an endpoint by name."""
        return next((endpoint for endpoint in self.endpoints if endpoint.name == name), None)

    def get_group(self, name: str) -> EndpointGroup | None:
        """Look up a group by name."""
        return next((group for group in self.groups if group.name == name), None)

    def add_endpoint(self, endpoint: RepositoryEndpoint) -> None:
        """Register a new endpoint at the end of the list.

        Args:
            endpoint: Endpoint to add

        Raises:
            InvalidEndpointError: If the URL scheme is not accepted
            DuplicateEndpointError: If the name is already taken
        """
        if not validate_url(endpoint.url):
            msg = f"Invalid repository URL for '{endpoint.name}': {endpoint.url}"
            raise InvalidEndpointError(msg)
        if self.find_endpoint(endpoint.name) is not None:
            msg = f"Repository '{endpoint.name}' already exists"
            raise DuplicateEndpointError(msg)
        self.endpoints.append(endpoint)

    def remove_endpoint(self, index: int) -> RepositoryEndpoint | None:
        """Remove the endpoint at ``index`` and drop it from every group.

        An out-of-range index is ignored.

        Args:
            index: Position in the endpoint list

        Returns:
            The removed endpoint, or None if the index was out of range
        """
        if not 0 <= index < len(self.endpoints):
            return None
        removed = self.endpoints.pop(index)
        for group in self.groups:
            group.remove_member(removed.name)
        return removed

    def remove_endpoint_by_name(self, name: str) -> RepositoryEndpoint:
        """Remove an endpoint by name.

        Raises:
            EndpointNotFoundError: If no endpoint has that name
        """
        index = next((i for i, endpoint in enumerate(self.endpoints) if endpoint.name == name), None)
        if index is None:
            msg = f"Repository '{name}' not found"
            raise EndpointNotFoundError(msg)
        endpoint = self.endpoints[index]
        self.remove_endpoint(index)
        return endpoint

    def add_group(self, group: EndpointGroup) -> None:
        """Add a group.

        Raises:
            DuplicateGroupError: If a group with the same name exists
        """
        if self.get_group(group.name) is not None:
            msg = f"Group '{group.name}' already exists"
            raise DuplicateGroupError(msg)
        self.groups.append(group)

    def remove_group(self, name: str) -> None:
        """Delete a group. Its endpoints stay registered."""
        self.groups = [group for group in self.groups if group.name != name]
        for endpoint in self.endpoints:
            if endpoint.group == name:
                endpoint.group = ""

    def add_member(self, group_name: str, endpoint_name: str) -> None:
        """Add a registered endpoint to a group.

        The endpoint's ``group`` back-reference is set when it is still
        ungrouped.

        Raises:
            GroupNotFoundError: If the group does not exist
            EndpointNotFoundError: If the endpoint is not registered
        """
        group = self._require_group(group_name)
        endpoint = self.find_endpoint(endpoint_name)
        if endpoint is None:
            msg = f"Repository '{endpoint_name}' not found"
            raise EndpointNotFoundError(msg)
        group.add_member(endpoint_name)
        if not endpoint.group:
            endpoint.group = group_name

    def remove_member(self, group_name: str, endpoint_name: str) -> None:
        """Remove an endpoint from a group.

        Raises:
            GroupNotFoundError: If the group does not exist
        """
        group = self._require_group(group_name)
        group.remove_member(endpoint_name)
        endpoint = self.find_endpoint(endpoint_name)
        if endpoint is not None and endpoint.group == group_name:
            endpoint.group = ""

    def endpoints_in_group(self, group_name: str) -> list[RepositoryEndpoint]:
        """Get the group's endpoints in registry order.

        Args:
            group_name: Group to resolve

        Returns:
            Member endpoints, empty if the group does not exist
        """
        group = self.get_group(group_name)
        if group is None:
            return []
        return [endpoint for endpoint in self.endpoints if endpoint.name in group]

    def _require_group(self, name: str) -> EndpointGroup:
        group = self.get_group(name)
        if group is None:
            msg = f"Group '{name}' not found"
            raise GroupNotFoundError(msg)
        return group
