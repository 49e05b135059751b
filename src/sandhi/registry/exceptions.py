"""Registry-related exceptions."""


class RegistryError(Exception):
    """Base exception for registry errors."""


class InvalidEndpointError(RegistryError):
    """Endpoint definition is invalid."""


class DuplicateEndpointError(RegistryError):
    """An endpoint with the same name is already registered."""


class DuplicateGroupError(RegistryError):
    """A group with the same name already exists."""


class EndpointNotFoundError(RegistryError):
    """Referenced endpoint does not exist."""


class GroupNotFoundError(RegistryError):
    """Referenced group does not exist."""


class RegistryLoadError(RegistryError):
    """Persisted registry document could not be read or parsed."""
