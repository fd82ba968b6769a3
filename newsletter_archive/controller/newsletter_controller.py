import logging

from litestar import Controller, MediaType, get
from litestar.response import Response
from litestar.status_codes import (
    HTTP_200_OK,
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from newsletter_archive.errors import NewsletterFileNotFoundError, NewsletterNotFoundError
from newsletter_archive.service.newsletter_service import NewsletterService
from newsletter_archive.service.render import (
    extract_preview,
    markdown_to_html,
    render_error_page,
    render_home_page,
    render_newsletter_page,
    transform_image_urls,
)

logger = logging.getLogger(__name__)

NO_STORE = {"Cache-Control": "no-store"}


def cache_headers(newsletter_service: NewsletterService) -> dict[str, str]:
    settings = newsletter_service.settings
    return {
        "Cache-Control": (
            f"public, max-age={settings.cache_ttl_seconds}, "
            f"stale-while-revalidate={settings.stale_while_revalidate_seconds}"
        )
    }


def html_response(content: str, status_code: int, headers: dict[str, str]) -> Response:
    return Response(
        content=content,
        media_type=MediaType.HTML,
        status_code=status_code,
        headers=headers,
    )


class NewsletterController(Controller):
    """Controller serving the newsletter archive pages."""

    path = "/"

    @get("/healthcheck", media_type=MediaType.TEXT)
    async def healthcheck(self) -> str:
        return "OK"

    @get("/")
    async def home(self, newsletter_service: NewsletterService) -> Response:
        """Archive index, newest newsletter first."""
        try:
            contents = await newsletter_service.get_contents()
            previews = {}
            for newsletter in contents.newsletters:
                data = contents.get_file_content(newsletter.path)
                if data:
                    text = data.decode("utf-8", errors="replace")
                    previews[newsletter.number] = extract_preview(text)
            page = render_home_page(contents.newsletters, previews)
        except Exception as e:
            logger.exception(f"Error fetching newsletters: {e}")
            page = render_error_page(
                [
                    f"Error loading newsletters: {e}",
                    "Make sure GITHUB_TOKEN environment variable is set and has "
                    "access to the repository.",
                ],
                show_header=True,
            )
            return html_response(page, HTTP_500_INTERNAL_SERVER_ERROR, NO_STORE)

        return html_response(page, HTTP_200_OK, cache_headers(newsletter_service))

    @get("/newsletter/{number:int}")
    async def newsletter(
        self, number: int, newsletter_service: NewsletterService
    ) -> Response:
        """
        Render one newsletter.

        Args:
            number: Newsletter number (1 or higher)

        Returns:
            HTML page, 404 when the newsletter does not exist
        """
        if number < 1:
            page = render_error_page(["Invalid newsletter number."])
            return html_response(page, HTTP_400_BAD_REQUEST, NO_STORE)

        try:
            text = await newsletter_service.fetch_newsletter(number)
        except NewsletterNotFoundError as e:
            logger.info(f"Newsletter {e.number} not found")
            page = render_error_page([f"Newsletter {e.number} not found."])
            return html_response(page, HTTP_404_NOT_FOUND, NO_STORE)

        body = transform_image_urls(markdown_to_html(text), f"/newsletter/{number}/image/")
        page = render_newsletter_page(number, body)
        return html_response(page, HTTP_200_OK, cache_headers(newsletter_service))

    @get("/newsletter/{number:int}/image/{filename:str}")
    async def newsletter_image(
        self, number: int, filename: str, newsletter_service: NewsletterService
    ) -> Response:
        """Serve a file stored next to a newsletter's markdown."""
        if number < 1:
            return Response(
                content="Invalid newsletter number.",
                media_type=MediaType.TEXT,
                status_code=HTTP_400_BAD_REQUEST,
            )

        try:
            content, media_type = await newsletter_service.fetch_newsletter_file(
                number, filename
            )
        except NewsletterFileNotFoundError as e:
            return Response(
                content=f'Image "{e.filename}" not found in newsletter {e.number}.',
                media_type=MediaType.TEXT,
                status_code=HTTP_404_NOT_FOUND,
                headers=NO_STORE,
            )

        return Response(
            content=content,
            media_type=media_type,
            status_code=HTTP_200_OK,
            headers=cache_headers(newsletter_service),
        )
