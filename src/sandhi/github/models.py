"""Models for GitHub OAuth and user API responses."""

from pydantic import BaseModel, Field


class AccessToken(BaseModel):
    """Result of exchanging an OAuth authorization code."""

    model_config = {"extra": "ignore"}

    access_token: str = Field(repr=False)
    token_type: str = "bearer"
    scope: str = ""


class GitHubUser(BaseModel):
    """Authenticated GitHub user."""

    model_config = {"extra": "ignore"}

    login: str
    id: int
    email: str | None = None
    name: str | None = None
