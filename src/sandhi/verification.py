"""Offline (and optionally online) checks of endpoint credentials."""

import logging
from collections.abc import Callable
from pathlib import Path

from sandhi.registry.models import AuthMode, RepositoryEndpoint
from sandhi.vcs.credentials import default_key_path

logger = logging.getLogger(__name__)

TokenProbe = Callable[[str], bool]


def verify_credentials(endpoint: RepositoryEndpoint, probe: TokenProbe | None = None) -> bool:
    """Check that an endpoint's credentials look usable.

    - SSH key: the configured key file exists (``~/.ssh/id_rsa`` when none is set)
    - Token: the token is non-empty and, when ``probe`` is given, accepted by it
    - Default: always true

    Args:
        endpoint: Endpoint to check
        probe: Optional live token check, e.g. a GitHub API call

    Returns:
        True if the credentials look usable
    """
    if endpoint.auth_mode is AuthMode.SSH_KEY:
        key_path = Path(endpoint.ssh_key_path).expanduser() if endpoint.ssh_key_path else default_key_path()
        return key_path.exists()

    if endpoint.auth_mode is AuthMode.TOKEN:
        if not endpoint.auth_token:
            return False
        if probe is None:
            return True
        logger.debug(f"Probing token for {endpoint.name}")
        return probe(endpoint.auth_token)

    return True
