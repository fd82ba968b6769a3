"""Markdown and HTML rendering for newsletter pages."""

import re
from datetime import date
from pathlib import Path
from typing import Dict, Iterable, Sequence

import markdown
from jinja2 import Environment, FileSystemLoader, select_autoescape

from newsletter_archive.schema.newsletter import NewsletterMetadata

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"

# src="name.png" or src="./name.png"; absolute URLs and nested paths are left alone
_IMAGE_SRC_RE = re.compile(
    r'src="(\./)?([^"/]+\.(?:jpg|jpeg|png|gif|webp|svg|bmp|ico))"', re.IGNORECASE
)
_PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n")
_INLINE_CODE_RE = re.compile(r"`([^`]+)`")
_LINK_RE = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_BOLD_RE = re.compile(r"\*\*([^*]+)\*\*")
_ITALIC_RE = re.compile(r"\*([^*]+)\*")


def _long_date(value: date) -> str:
    return f"{value.strftime('%B')} {value.day}, {value.year}"


_env = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(["html"]),
)
_env.filters["long_date"] = _long_date


def markdown_to_html(text: str) -> str:
    return markdown.markdown(text, extensions=["fenced_code", "tables"])


def transform_image_urls(html: str, prefix: str) -> str:
    """Point relative image sources at prefix + filename."""
    return _IMAGE_SRC_RE.sub(lambda m: f'src="{prefix}{m.group(2)}"', html)


def extract_preview(text: str, max_length: int = 200) -> str:
    """
    Plain-text preview from the first prose paragraph of a markdown document.

    Headings, images and code fences are skipped. Long previews are cut at the
    last sentence end when that keeps more than half of max_length, otherwise
    they are truncated with "...".
    """
    for paragraph in _PARAGRAPH_SPLIT_RE.split(text):
        trimmed = paragraph.strip()
        if trimmed.startswith(("#", "!", "```")):
            continue

        preview = _INLINE_CODE_RE.sub(r"\1", trimmed)
        preview = _LINK_RE.sub(r"\1", preview)
        preview = _BOLD_RE.sub(r"\1", preview)
        preview = _ITALIC_RE.sub(r"\1", preview).strip()
        if not preview:
            continue

        if len(preview) > max_length:
            preview = preview[:max_length]
            sentence_end = max(preview.rfind("."), preview.rfind("!"), preview.rfind("?"))
            if sentence_end > max_length * 0.5:
                preview = preview[: sentence_end + 1]
            else:
                preview = preview.strip() + "..."
        return preview

    return ""


def render_home_page(
    newsletters: Sequence[NewsletterMetadata],
    previews: Dict[int, str],
    asset_prefix: str = "/static/",
    link_prefix: str = "/",
    link_suffix: str = "",
) -> str:
    return _env.get_template("home.html").render(
        newsletters=newsletters,
        previews=previews,
        asset_prefix=asset_prefix,
        link_prefix=link_prefix,
        link_suffix=link_suffix,
    )


def render_newsletter_page(
    number: int,
    body: str,
    back_href: str = "/",
    asset_prefix: str = "/static/",
) -> str:
    """Wrap already-rendered newsletter HTML in the page layout."""
    return _env.get_template("newsletter.html").render(
        number=number,
        body=body,
        back_href=back_href,
        asset_prefix=asset_prefix,
    )


def render_error_page(
    messages: Iterable[str],
    show_header: bool = False,
    back_href: str = "/",
    asset_prefix: str = "/static/",
) -> str:
    return _env.get_template("error.html").render(
        messages=list(messages),
        show_header=show_header,
        back_href=back_href,
        asset_prefix=asset_prefix,
    )
