import unittest

from litestar.di import Provide
from litestar.testing import create_test_client

from newsletter_archive.config.settings import Settings
from newsletter_archive.controller.newsletter_controller import NewsletterController
from newsletter_archive.errors import CorruptArchiveError, UpstreamFetchError
from newsletter_archive.main import upstream_error_handler
from newsletter_archive.service.cache_service import RepositoryCache
from newsletter_archive.service.newsletter_service import NewsletterService

from archive_factory import PREFIX, FakeLoader, make_contents


class TestNewsletterController(unittest.TestCase):
    def setUp(self):
        self.settings = Settings(_env_file=None, github_token="t")
        self.loader = FakeLoader(
            make_contents(
                {
                    f"{PREFIX}/newsletter-1/2024-01-01-remix-newsletter-1.md": (
                        b"# Issue one\n\nWelcome to the first issue.\n\n![pic](pic.png)\n"
                    ),
                    f"{PREFIX}/newsletter-1/pic.png": b"\x89PNG",
                    f"{PREFIX}/newsletter-2/2024-02-01-remix-newsletter-2.md": b"Second.",
                }
            )
        )
        self.service = NewsletterService(
            self.settings, RepositoryCache(self.settings, self.loader)
        )

    def client(self):
        return create_test_client(
            route_handlers=[NewsletterController],
            dependencies={
                "newsletter_service": Provide(lambda: self.service, sync_to_thread=False)
            },
            exception_handlers={
                UpstreamFetchError: upstream_error_handler,
                CorruptArchiveError: upstream_error_handler,
            },
        )

    def test_healthcheck(self):
        with self.client() as client:
            response = client.get("/healthcheck")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.text, "OK")

    def test_home(self):
        with self.client() as client:
            response = client.get("/")

        self.assertEqual(response.status_code, 200)
        self.assertIn("Newsletter #2", response.text)
        self.assertIn("Welcome to the first issue.", response.text)
        self.assertEqual(
            response.headers["cache-control"],
            "public, max-age=3600, stale-while-revalidate=86400",
        )

    def test_home_with_badly_encoded_newsletter(self):
        self.loader.contents = make_contents(
            {
                f"{PREFIX}/newsletter-1/2024-01-01-remix-newsletter-1.md": b"caf\xe9 latin-1",
                f"{PREFIX}/newsletter-2/2024-02-01-remix-newsletter-2.md": b"Second.",
            }
        )
        with self.client() as client:
            home = client.get("/")
            page = client.get("/newsletter/1")

        self.assertEqual(home.status_code, 200)
        self.assertIn("Second.", home.text)
        self.assertEqual(page.status_code, 200)
        self.assertIn("caf\ufffd latin-1", page.text)

    def test_home_error_page(self):
        self.loader.error = UpstreamFetchError(401, "Unauthorized")
        with self.client() as client:
            response = client.get("/")

        self.assertEqual(response.status_code, 500)
        self.assertIn("GITHUB_TOKEN", response.text)
        self.assertEqual(response.headers["cache-control"], "no-store")

    def test_newsletter_page(self):
        with self.client() as client:
            response = client.get("/newsletter/1")

        self.assertEqual(response.status_code, 200)
        self.assertIn("<h1>Issue one</h1>", response.text)
        self.assertIn('src="/newsletter/1/image/pic.png"', response.text)

    def test_newsletter_not_found(self):
        with self.client() as client:
            response = client.get("/newsletter/99")

        self.assertEqual(response.status_code, 404)
        self.assertIn("Newsletter 99 not found.", response.text)

    def test_invalid_newsletter_number(self):
        with self.client() as client:
            response = client.get("/newsletter/0")
        self.assertEqual(response.status_code, 400)

    def test_upstream_failure_is_bad_gateway(self):
        self.loader.error = UpstreamFetchError(500, "Internal Server Error")
        with self.client() as client:
            response = client.get("/newsletter/1")

        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.headers["cache-control"], "no-store")

    def test_newsletter_image(self):
        with self.client() as client:
            response = client.get("/newsletter/1/image/pic.png")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.content, b"\x89PNG")
        self.assertEqual(response.headers["content-type"], "image/png")

    def test_missing_newsletter_image(self):
        with self.client() as client:
            response = client.get("/newsletter/1/image/missing.png")

        self.assertEqual(response.status_code, 404)
        self.assertIn("missing.png", response.text)


if __name__ == "__main__":
    unittest.main()
