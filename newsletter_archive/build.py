"""Static site build: renders the whole archive into a directory."""

import asyncio
import logging
import shutil
import sys
from pathlib import Path

from newsletter_archive.config.settings import Settings, get_settings
from newsletter_archive.repository.github_repository import GitHubRepository
from newsletter_archive.service.cache_service import RepositoryCache
from newsletter_archive.service.content_loader import ContentLoader
from newsletter_archive.service.newsletter_service import NewsletterService
from newsletter_archive.service.render import (
    extract_preview,
    markdown_to_html,
    render_home_page,
    render_newsletter_page,
    transform_image_urls,
)

logger = logging.getLogger(__name__)


def _write(path: Path, content: str | bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, str):
        path.write_text(content, "utf-8")
    else:
        path.write_bytes(content)


async def build_newsletter(
    service: NewsletterService, number: int, dist_dir: Path
) -> None:
    text = await service.fetch_newsletter(number)
    body = transform_image_urls(markdown_to_html(text), "./image/")
    page = render_newsletter_page(number, body, back_href="../../", asset_prefix="../../")

    newsletter_dir = dist_dir / "newsletter" / str(number)
    _write(newsletter_dir / "index.html", page)

    image_dir = newsletter_dir / "image"
    image_dir.mkdir(parents=True, exist_ok=True)
    for filename in await service.list_newsletter_images(number):
        try:
            content, _ = await service.fetch_newsletter_file(number, filename)
            _write(image_dir / filename, content)
            logger.info(f"    Copied image: {filename}")
        except Exception as e:
            logger.error(f"    Error copying image {filename}: {e}")


def copy_public_assets(public_dir: Path, dist_dir: Path) -> None:
    if not public_dir.is_dir():
        logger.warning(f"Public directory {public_dir} not found, skipping assets")
        return
    shutil.copytree(public_dir, dist_dir, dirs_exist_ok=True)


async def build(service: NewsletterService, dist_dir: Path, public_dir: Path) -> None:
    """Render index, newsletter pages and images into dist_dir."""
    logger.info("Starting build...")
    shutil.rmtree(dist_dir, ignore_errors=True)
    dist_dir.mkdir(parents=True)

    logger.info("Fetching newsletters from GitHub...")
    contents = await service.get_contents()
    newsletters = contents.newsletters
    if not newsletters:
        logger.warning("No newsletters found!")
    else:
        logger.info(f"Found {len(newsletters)} newsletters")

    logger.info("Building home page...")
    previews = {}
    for newsletter in newsletters:
        data = contents.get_file_content(newsletter.path)
        if data:
            text = data.decode("utf-8", errors="replace")
            previews[newsletter.number] = extract_preview(text)
    page = render_home_page(
        newsletters, previews, asset_prefix="./", link_prefix="./", link_suffix="/"
    )
    _write(dist_dir / "index.html", page)

    logger.info("Building newsletter pages...")
    for newsletter in newsletters:
        logger.info(f"  Building newsletter {newsletter.number}...")
        try:
            await build_newsletter(service, newsletter.number, dist_dir)
        except Exception as e:
            logger.error(f"Error building newsletter {newsletter.number}: {e}")

    logger.info("Copying public assets...")
    copy_public_assets(public_dir, dist_dir)

    # GitHub Pages must not run Jekyll over the output
    _write(dist_dir / ".nojekyll", "")
    logger.info("Build complete!")


async def main(settings: Settings) -> None:
    github_repo = GitHubRepository(settings)
    try:
        cache = RepositoryCache(settings, ContentLoader(github_repo))
        service = NewsletterService(settings, cache)
        await build(service, Path(settings.dist_dir), Path(settings.public_dir))
    finally:
        await github_repo.close()


def run() -> None:
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    try:
        asyncio.run(main(get_settings()))
    except Exception as e:
        logger.error(f"Build failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()
