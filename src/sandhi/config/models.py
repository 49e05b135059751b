"""Configuration models."""

from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    DotEnvSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from sandhi.config.exceptions import InvalidConfigurationError


class SandhiConfig(BaseSettings):
    """Configuration for the sandhi application."""

    # Registry and working copy
    config_file: Path = Field(
        default=Path("repos.json"),
        description="Path to the repository registry document",
    )
    repo_path: Path = Field(
        default=Path("."),
        description="Local working copy that batches operate on",
    )

    # Batch defaults
    default_branch: str = Field(default="main", description="Branch used when none is given")
    commit_message: str = Field(default="Auto commit", description="Commit message used when none is given")
    clone_base_path: Path = Field(
        default=Path("."),
        description="Directory that clones are created under",
    )

    # GitHub settings (token probe and OAuth token exchange)
    github_api_url: str = Field(default="https://api.github.com", description="GitHub REST API base URL")
    github_oauth_url: str = Field(default="https://github.com", description="GitHub OAuth base URL")
    github_client_id: str | None = Field(default=None, description="OAuth app client ID")
    github_client_secret: str | None = Field(default=None, description="OAuth app client secret")
    github_redirect_uri: str = Field(
        default="http://localhost:8080/callback",
        description="OAuth redirect URI registered for the app",
    )

    model_config = SettingsConfigDict(
        env_file=[".env.sandhi", ".env"],
        env_file_encoding="utf-8",
        env_prefix="SANDHI_",
        case_sensitive=False,
        extra="ignore",
    )

    def __init__(
        self,
        _env_file: str | Path | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize configuration.

        Args:
            _env_file: Optional path to custom env file (use env_file for public API)
            **kwargs: Additional configuration values

        Raises:
            InvalidConfigurationError: If the env file is specified but does not exist
        """
        env_file = kwargs.pop("env_file", _env_file)

        if env_file is not None:
            env_path = Path(env_file)
            if not env_path.exists():
                raise InvalidConfigurationError(f"Environment file not found: {env_file}")
            # Read back in settings_customise_sources
            kwargs["_custom_env_file"] = env_path

        super().__init__(**kwargs)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Use a custom env file instead of the default ones when one was given.

        Returns:
            Tuple of settings sources in priority order
        """
        init_kwargs = init_settings.init_kwargs  # type: ignore[attr-defined]
        custom_env_path = init_kwargs.get("_custom_env_file")

        if custom_env_path is not None:
            custom_dotenv = DotEnvSettingsSource(
                settings_cls,
                env_file=custom_env_path,
                env_file_encoding="utf-8",
            )
            return (init_settings, custom_dotenv, env_settings, file_secret_settings)

        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    @field_validator("github_api_url", "github_oauth_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Ensure URL doesn't have trailing slash.

        Args:
            v: URL value

        Returns:
            Normalized URL without trailing slash
        """
        return v.rstrip("/")

    @field_validator("default_branch")
    @classmethod
    def validate_branch(cls, v: str) -> str:
        """Reject an empty default branch.

        Raises:
            InvalidConfigurationError: If the branch name is blank
        """
        if not v.strip():
            raise InvalidConfigurationError("default_branch must not be empty")
        return v.strip()

    @property
    def has_oauth_app(self) -> bool:
        """Check if OAuth client credentials are configured.

        Returns:
            True if both client ID and secret are set
        """
        return bool(self.github_client_id and self.github_client_secret)
