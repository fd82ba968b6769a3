"""Application settings using Pydantic Settings."""

import tempfile
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from newsletter_archive.errors import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # GitHub configuration
    github_token: str | None = None
    github_owner: str = "remix-run"
    github_repo: str = "newsletter"
    github_repository: str | None = None  # "owner/repo", overrides owner/repo
    github_ref: str = "main"
    github_api_url: str = "https://api.github.com"

    # Cache configuration
    cache_ttl_ms: int = 60 * 60 * 1000  # 1 hour default
    stale_while_revalidate_seconds: int = 86400
    no_cache: bool = False

    # Persisted archive store
    archive_cache_dir: str = str(
        Path(tempfile.gettempdir()) / "newsletter-archive-cache"
    )
    archive_retention_seconds: int = 7 * 24 * 60 * 60
    redis_url: str | None = None

    # Server configuration
    server_host: str = "0.0.0.0"
    server_port: int = 8080
    dev: bool = False
    workers: int = 1

    # Static assets and build output
    public_dir: str = "public"
    dist_dir: str = "dist"

    @property
    def use_redis(self) -> bool:
        """Check if Redis should hold the persisted archives."""
        return bool(self.redis_url)

    @property
    def cache_ttl_seconds(self) -> int:
        return self.cache_ttl_ms // 1000

    @property
    def repository(self) -> tuple[str, str]:
        """Return (owner, repo), preferring the combined "owner/repo" form."""
        if self.github_repository is None:
            if not self.github_owner or not self.github_repo:
                raise ConfigurationError("GitHub owner and repository are required")
            return self.github_owner, self.github_repo

        parts = [part.strip() for part in self.github_repository.split("/")]
        if len(parts) != 2 or not all(parts):
            raise ConfigurationError(
                f"GITHUB_REPOSITORY must look like owner/repo, got {self.github_repository!r}"
            )
        return parts[0], parts[1]

    def require_token(self) -> str:
        if not self.github_token:
            raise ConfigurationError("GITHUB_TOKEN environment variable is required")
        return self.github_token

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


def get_settings() -> Settings:
    """Get application settings instance."""
    return Settings()
