"""Bind live credentials to the git command-line transport.

git reads credentials from its environment: ``GIT_SSH_COMMAND`` selects the
key for SSH remotes and ``GIT_ASKPASS`` names a program that answers the
username/password prompts for HTTP remotes. Explicit credentials also switch
off configured credential helpers; the default credential leaves them on.
"""

import logging
import os
import shlex
import stat
import tempfile
from functools import lru_cache
from pathlib import Path

from sandhi.vcs.credentials import (
    Credential,
    CredentialStrategy,
    SshKeyCredential,
    UserPassCredential,
    username_from_url,
)

logger = logging.getLogger(__name__)

USERNAME_VAR = "SANDHI_GIT_USERNAME"
PASSWORD_VAR = "SANDHI_GIT_PASSWORD"

_ASKPASS_SCRIPT = f"""#!/bin/sh
case "$1" in
    Username*) printf '%s\\n' "${USERNAME_VAR}" ;;
    *) printf '%s\\n' "${PASSWORD_VAR}" ;;
esac
"""


@lru_cache(maxsize=1)
def askpass_program() -> Path:
    """Write the askpass helper once per process and return its path."""
    directory = Path(tempfile.mkdtemp(prefix="sandhi-askpass-"))
    script = directory / "askpass.sh"
    script.write_text(_ASKPASS_SCRIPT, encoding="utf-8")
    script.chmod(stat.S_IRWXU)
    logger.debug(f"Created askpass helper at {script}")
    return script


def ssh_command(credential: SshKeyCredential) -> str:
    """Build the ssh invocation for a key credential."""
    return " ".join([
        "ssh",
        "-i",
        shlex.quote(str(credential.private_key)),
        "-o",
        "IdentitiesOnly=yes",
        "-o",
        "BatchMode=yes",
        "-l",
        shlex.quote(credential.username),
    ])


def disable_credential_helpers() -> dict[str, str]:
    """Reset ``credential.helper`` for one git process.

    git consults configured helpers before ``GIT_ASKPASS``, so a stored login
    for the same host would otherwise replace the endpoint's own credential.
    Entries already passed through ``GIT_CONFIG_COUNT`` are kept.
    """
    count = int(os.environ.get("GIT_CONFIG_COUNT", "0") or "0")
    return {
        "GIT_CONFIG_COUNT": str(count + 1),
        f"GIT_CONFIG_KEY_{count}": "credential.helper",
        f"GIT_CONFIG_VALUE_{count}": "",
    }


def transport_environment(credential: Credential) -> dict[str, str]:
    """Translate a credential into environment variables for git.

    Args:
        credential: Live credential from a strategy

    Returns:
        Environment overrides for the git process
    """
    env = {"GIT_TERMINAL_PROMPT": "0"}

    if isinstance(credential, SshKeyCredential):
        env["GIT_SSH_COMMAND"] = ssh_command(credential)
        env.update(disable_credential_helpers())
    elif isinstance(credential, UserPassCredential):
        env["GIT_ASKPASS"] = str(askpass_program())
        env[USERNAME_VAR] = credential.username
        env[PASSWORD_VAR] = credential.password
        env.update(disable_credential_helpers())

    return env


def environment_for(strategy: CredentialStrategy, url: str) -> dict[str, str]:
    """Acquire a credential for ``url`` and translate it for git.

    Args:
        strategy: Endpoint credential strategy
        url: Remote URL being contacted

    Returns:
        Environment overrides for the git process
    """
    credential = strategy.acquire(url, username_from_url(url))
    return transport_environment(credential)
