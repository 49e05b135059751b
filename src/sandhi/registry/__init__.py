"""Endpoint registry for sandhi."""

from sandhi.registry.exceptions import (
    DuplicateEndpointError,
    DuplicateGroupError,
    EndpointNotFoundError,
    GroupNotFoundError,
    InvalidEndpointError,
    RegistryError,
    RegistryLoadError,
)
from sandhi.registry.models import (
    AuthMode,
    EndpointGroup,
    EndpointRegistry,
    RepositoryEndpoint,
    validate_url,
)
from sandhi.registry.store import SharedRegistry, load_registry, save_registry

__all__ = [
    "AuthMode",
    "DuplicateEndpointError",
    "DuplicateGroupError",
    "EndpointGroup",
    "EndpointNotFoundError",
    "EndpointRegistry",
    "GroupNotFoundError",
    "InvalidEndpointError",
    "RegistryError",
    "RegistryLoadError",
    "RepositoryEndpoint",
    "SharedRegistry",
    "load_registry",
    "save_registry",
    "validate_url",
]
