import tempfile
import unittest
from pathlib import Path

from newsletter_archive.build import build
from newsletter_archive.config.settings import Settings
from newsletter_archive.service.cache_service import RepositoryCache
from newsletter_archive.service.newsletter_service import NewsletterService

from archive_factory import PREFIX, FakeLoader, make_contents


class TestBuild(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        root = Path(self.tmp.name)
        self.dist = root / "dist"
        self.public = root / "public"
        self.public.mkdir()
        (self.public / "styles.css").write_text("body {}", "utf-8")

        settings = Settings(_env_file=None, github_token="t")
        self.loader = FakeLoader(
            make_contents(
                {
                    f"{PREFIX}/newsletter-1/2024-01-01-remix-newsletter-1.md": (
                        b"Hello there.\n\n![pic](./pic.png)\n"
                    ),
                    f"{PREFIX}/newsletter-1/pic.png": b"\x89PNG",
                    f"{PREFIX}/newsletter-1/notes.txt": b"not an image",
                }
            )
        )
        self.service = NewsletterService(settings, RepositoryCache(settings, self.loader))

    def tearDown(self):
        self.tmp.cleanup()

    async def test_build_writes_site(self):
        # Leftovers from a previous build are removed
        self.dist.mkdir()
        (self.dist / "stale.html").write_text("old", "utf-8")

        await build(self.service, self.dist, self.public)

        index = (self.dist / "index.html").read_text("utf-8")
        self.assertIn('href="./newsletter/1/"', index)
        self.assertIn("Hello there.", index)

        page = (self.dist / "newsletter" / "1" / "index.html").read_text("utf-8")
        self.assertIn('src="./image/pic.png"', page)
        self.assertIn('href="../../styles.css"', page)

        self.assertEqual((self.dist / "newsletter" / "1" / "image" / "pic.png").read_bytes(), b"\x89PNG")
        self.assertFalse((self.dist / "newsletter" / "1" / "image" / "notes.txt").exists())
        self.assertTrue((self.dist / "styles.css").exists())
        self.assertTrue((self.dist / ".nojekyll").exists())
        self.assertFalse((self.dist / "stale.html").exists())
        self.assertEqual(self.loader.fetch_calls, 1)

    async def test_badly_encoded_newsletter_does_not_stop_build(self):
        self.loader.contents = make_contents(
            {
                f"{PREFIX}/newsletter-1/2024-01-01-remix-newsletter-1.md": b"caf\xe9 latin-1",
                f"{PREFIX}/newsletter-2/2024-01-02-remix-newsletter-2.md": b"Second issue.",
            }
        )

        await build(self.service, self.dist, self.public)

        index = (self.dist / "index.html").read_text("utf-8")
        self.assertIn("caf\ufffd latin-1", index)
        self.assertIn("Second issue.", index)
        first = (self.dist / "newsletter" / "1" / "index.html").read_text("utf-8")
        self.assertIn("caf\ufffd latin-1", first)
        self.assertTrue((self.dist / "newsletter" / "2" / "index.html").exists())


if __name__ == "__main__":
    unittest.main()
