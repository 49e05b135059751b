"""Persistence and shared access for the endpoint registry."""

import json
import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from pydantic import ValidationError

from sandhi.registry.exceptions import RegistryLoadError
from sandhi.registry.models import EndpointRegistry

logger = logging.getLogger(__name__)


def load_registry(path: str | Path) -> EndpointRegistry:
    """Load a registry document from disk.

    A missing file yields an empty registry named ``default``. Unknown keys
    are ignored and missing optional keys take their defaults.

    Args:
        path: Path to the JSON document

    Returns:
        Loaded registry

    Raises:
        RegistryLoadError: If the file exists but cannot be parsed
    """
    config_path = Path(path)
    if not config_path.exists():
        logger.debug(f"No registry file at {config_path}, starting empty")
        return EndpointRegistry()

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
        return EndpointRegistry.model_validate(data)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        msg = f"Failed to load repository configuration from {config_path}: {e}"
        raise RegistryLoadError(msg) from e


def save_registry(registry: EndpointRegistry, path: str | Path) -> None:
    """Write a registry document to disk.

    Args:
        registry: Registry to persist
        path: Destination path
    """
    config_path = Path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    payload = registry.model_dump(mode="json", by_alias=True)
    config_path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    logger.debug(f"Saved {len(registry.endpoints)} repositories to {config_path}")


class SharedRegistry:
    """Lock-guarded owner of the one mutable registry.

    Readers take a deep-copy snapshot; writers mutate inside ``edit()``.
    Nothing outside this class keeps a reference to the live registry.
    """

    def __init__(self, registry: EndpointRegistry | None = None) -> None:
        self._registry = registry or EndpointRegistry()
        self._lock = threading.RLock()

    @classmethod
    def from_file(cls, path: str | Path) -> "SharedRegistry":
        """Create a shared registry from a persisted document."""
        return cls(load_registry(path))

    def snapshot(self) -> EndpointRegistry:
        """Get an independent copy of the current registry."""
        with self._lock:
            return self._registry.model_copy(deep=True)

    @contextmanager
    def edit(self) -> Iterator[EndpointRegistry]:
        """Mutate the registry while holding the lock."""
        with self._lock:
            yield self._registry

    def save(self, path: str | Path) -> None:
        """Persist the current registry state."""
        with self._lock:
            save_registry(self._registry, path)
