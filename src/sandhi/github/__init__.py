"""GitHub integration for sandhi: OAuth token exchange and token checks."""

from sandhi.github.client import GitHubClient
from sandhi.github.exceptions import GitHubAPIError, GitHubAuthError, GitHubError
from sandhi.github.models import AccessToken, GitHubUser

__all__ = [
    "AccessToken",
    "GitHubAPIError",
    "GitHubAuthError",
    "GitHubClient",
    "GitHubError",
    "GitHubUser",
]
