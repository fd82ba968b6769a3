"""Main Litestar application."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from litestar import Litestar, MediaType, Request, Response
from litestar.config.compression import CompressionConfig
from litestar.datastructures import CacheControlHeader, State
from litestar.di import Provide
from litestar.static_files import create_static_files_router
from litestar.status_codes import HTTP_500_INTERNAL_SERVER_ERROR, HTTP_502_BAD_GATEWAY

from newsletter_archive.config.settings import Settings, get_settings
from newsletter_archive.controller.newsletter_controller import NO_STORE, NewsletterController
from newsletter_archive.errors import (
    ConfigurationError,
    CorruptArchiveError,
    UpstreamFetchError,
)
from newsletter_archive.repository.base_repository import ArchiveRepository
from newsletter_archive.repository.file_repository import FileRepository
from newsletter_archive.repository.github_repository import GitHubRepository
from newsletter_archive.repository.redis_repository import RedisRepository
from newsletter_archive.service.cache_service import RepositoryCache
from newsletter_archive.service.content_loader import ContentLoader
from newsletter_archive.service.newsletter_service import NewsletterService
from newsletter_archive.service.render import render_error_page

logger = logging.getLogger("newsletter_archive.main")

# 1 year for static assets
STATIC_CACHE_CONTROL = CacheControlHeader(max_age=31536000, public=True, immutable=True)


async def get_newsletter_service(state: State) -> NewsletterService:
    """Dependency: Get newsletter service instance from app state."""
    return state.newsletter_service


def upstream_error_handler(request: Request, exc: Exception) -> Response:
    """Handle GitHub and archive failures as a bad gateway."""
    logger.error(f"Upstream failure for {request.url.path}: {exc}")
    page = render_error_page([f"Error loading newsletter content: {exc}"])
    return Response(
        content=page,
        media_type=MediaType.HTML,
        status_code=HTTP_502_BAD_GATEWAY,
        headers=NO_STORE,
    )


def configuration_error_handler(request: Request, exc: ConfigurationError) -> Response:
    logger.error(f"Configuration error for {request.url.path}: {exc}")
    page = render_error_page([str(exc)])
    return Response(
        content=page,
        media_type=MediaType.HTML,
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        headers=NO_STORE,
    )


async def create_archive_repository(settings: Settings) -> ArchiveRepository:
    if settings.use_redis:
        logger.info(f"Persisting archives in Redis at {settings.redis_url}")
        archive_repo = RedisRepository(settings)
        await archive_repo.connect()
        return archive_repo

    logger.info(f"Persisting archives in {settings.archive_cache_dir}")
    return FileRepository(settings)


@asynccontextmanager
async def lifespan(app: Litestar):
    """Application lifespan context manager for initializing resources."""
    settings: Settings = app.state.settings

    # Fails fast when GITHUB_TOKEN or the repository is missing
    owner, repo = settings.repository
    github_repo = GitHubRepository(settings)

    archive_repo = None
    if settings.no_cache:
        logger.info("Caching disabled, every request fetches from GitHub")
    else:
        archive_repo = await create_archive_repository(settings)

    cache = RepositoryCache(settings, ContentLoader(github_repo, archive_repo))
    logger.info(f"Serving newsletters from {owner}/{repo}@{settings.github_ref}")

    # Store in app state
    app.state.github_repo = github_repo
    app.state.archive_repo = archive_repo
    app.state.repository_cache = cache
    app.state.newsletter_service = NewsletterService(settings, cache)

    yield

    # Cleanup
    await cache.wait_for_refreshes()
    if archive_repo is not None:
        await archive_repo.disconnect()
    await github_repo.close()


def create_app(settings: Settings | None = None) -> Litestar:
    """Create and configure Litestar application."""
    settings = settings or get_settings()
    return Litestar(
        debug=settings.dev,
        route_handlers=[
            NewsletterController,
            create_static_files_router(
                path="/static",
                directories=[Path(settings.public_dir)],
                cache_control=STATIC_CACHE_CONTROL,
            ),
        ],
        dependencies={
            "newsletter_service": Provide(get_newsletter_service),
        },
        exception_handlers={
            UpstreamFetchError: upstream_error_handler,
            CorruptArchiveError: upstream_error_handler,
            ConfigurationError: configuration_error_handler,
        },
        compression_config=CompressionConfig(backend="gzip"),
        state=State({"settings": settings}),
        lifespan=[lifespan],
    )


def run() -> None:
    settings = get_settings()

    uvicorn.run(
        "newsletter_archive.main:create_app",
        factory=True,
        reload=settings.dev,
        host=settings.server_host,
        port=settings.server_port,
        workers=settings.workers,
        log_level="debug" if settings.dev else "info",
    )


if __name__ == "__main__":
    run()
