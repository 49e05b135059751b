"""GitHub API client for OAuth token exchange and token checks."""

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from sandhi import __version__
from sandhi.config import MissingConfigurationError, SandhiConfig
from sandhi.github.exceptions import GitHubAPIError, GitHubAuthError, GitHubError
from sandhi.github.models import AccessToken, GitHubUser

logger = logging.getLogger(__name__)

OAUTH_SCOPES = "repo,user"


class GitHubClient:
    """Client for the parts of GitHub that sandhi needs."""

    def __init__(self, config: SandhiConfig) -> None:
        """Initialize the GitHub client.

        Args:
            config: Application configuration
        """
        self.config = config
        self.api_url = config.github_api_url
        self.oauth_url = config.github_oauth_url
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "GitHubClient":
        """Async context manager entry.

        Returns:
            Self
        """
        self._client = httpx.AsyncClient(
            headers={"User-Agent": f"sandhi/{__version__}", "Accept": "application/json"},
            timeout=30.0,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Async context manager exit."""
        if self._client:
            await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> dict:
        """Make an HTTP request and decode the JSON body.

        Args:
            method: HTTP method
            url: Absolute URL
            **kwargs: Additional arguments for httpx

        Returns:
            JSON response as dict

        Raises:
            GitHubAuthError: Credentials were rejected
            GitHubAPIError: Request failed
        """
        if not self._client:
            raise RuntimeError("Client not initialized. Use async context manager.")

        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise GitHubAPIError(f"HTTP error: {e}") from e

        if response.status_code == 401:
            raise GitHubAuthError("Authentication failed. Check your token.")

        if response.status_code >= 400:
            raise GitHubAPIError(
                f"API request failed: {response.text}",
                status_code=response.status_code,
            )

        try:
            result: dict[Any, Any] = response.json()
        except ValueError as e:
            raise GitHubAPIError(f"Invalid JSON response: {response.text[:200]}") from e
        return result

    def _require_oauth_app(self) -> tuple[str, str]:
        if not self.config.github_client_id or not self.config.github_client_secret:
            msg = "Set SANDHI_GITHUB_CLIENT_ID and SANDHI_GITHUB_CLIENT_SECRET to use OAuth"
            raise MissingConfigurationError(msg)
        return self.config.github_client_id, self.config.github_client_secret

    def authorization_url(self) -> str:
        """Build the URL the user opens to authorize this app.

        Raises:
            MissingConfigurationError: If no OAuth app is configured
        """
        client_id, _ = self._require_oauth_app()
        url = httpx.URL(
            f"{self.oauth_url}/login/oauth/authorize",
            params={
                "client_id": client_id,
                "redirect_uri": self.config.github_redirect_uri,
                "scope": OAUTH_SCOPES,
            },
        )
        return str(url)

    async def exchange_code(self, code: str) -> AccessToken:
        """Exchange an authorization code for an access token.

        Args:
            code: Code received on the redirect URI

        Returns:
            Access token

        Raises:
            GitHubAuthError: If GitHub rejects the code
            GitHubAPIError: If the request fails
        """
        client_id, client_secret = self._require_oauth_app()
        data = await self._request(
            "POST",
            f"{self.oauth_url}/login/oauth/access_token",
            json={
                "client_id": client_id,
                "client_secret": client_secret,
                "code": code,
                "redirect_uri": self.config.github_redirect_uri,
            },
        )

        # GitHub reports a bad code with HTTP 200 and an "error" field
        if "error" in data:
            description = data.get("error_description") or data["error"]
            raise GitHubAuthError(f"Code exchange failed: {description}")

        logger.debug("Exchanged OAuth code for access token")
        return AccessToken(**data)

    async def get_user(self, token: str) -> GitHubUser:
        """Get the user that owns a token.

        Raises:
            GitHubAuthError: If the token is rejected
            GitHubAPIError: If the request fails
        """
        data = await self._request(
            "GET",
            f"{self.api_url}/user",
            headers={"Authorization": f"token {token}"},
        )
        try:
            return GitHubUser(**data)
        except ValidationError as e:
            raise GitHubAPIError(f"Unexpected user response: {e}") from e

    async def test_token(self, token: str) -> bool:
        """Check whether a token is accepted by GitHub.

        Returns:
            True if the token resolves to a user
        """
        try:
            user = await self.get_user(token)
        except GitHubError as e:
            logger.debug(f"Token check failed: {e}")
            return False
        logger.debug(f"Token belongs to {user.login}")
        return True
