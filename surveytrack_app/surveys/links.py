"""Shareable survey URLs and iframe embed snippets."""

from __future__ import annotations

from typing import Mapping
from urllib.parse import urlencode

from django.conf import settings
from django.utils.html import format_html
from django.utils.safestring import mark_safe

PLACEHOLDER_SURVEY_ID = "unknown"
SLUG_LENGTH = 6

EMBED_TEMPLATE = (
    "<iframe \n"
    '  src="{}" \n'
    '  width="100%" \n'
    '  height="600" \n'
    '  frameborder="0" \n'
    '  style="border: none; border-radius: 8px; box-shadow: 0 4px 6px rgba(0, 0, 0, 0.1);"\n'
    '  title="{}">\n'
    "</iframe>"
)


def _get_public_host() -> str:
    return getattr(settings, "SURVEYTRACK_PUBLIC_HOST", "www.surveysgalore.com")


def survey_slug(survey_id: str) -> str:
    """Public slug: first six characters of the id's leading path segment, upper-cased."""
    segment = (survey_id or "").split("/", 1)[0]
    if not segment:
        segment = PLACEHOLDER_SURVEY_ID
    return segment[:SLUG_LENGTH].upper()


def build_survey_url(survey_id: str, parameters: Mapping[str, str]) -> str:
    """Canonical public URL for a survey with its tracking parameters.

    Names and values are used verbatim, so callers pick tagged or decoded
    values beforehand. Query parameters are sorted by name, making the URL
    independent of mapping order.
    """
    url = f"https://{_get_public_host()}/{survey_slug(survey_id)}"
    if not parameters:
        return url
    query = urlencode(sorted((str(k), str(v)) for k, v in parameters.items()))
    return f"{url}?{query}"


def build_embed_code(
    survey_id: str, parameters: Mapping[str, str], title: str = ""
) -> str:
    """Wrap the survey URL in an iframe snippet.

    The URL is already query-encoded and goes in as built; only the title is
    HTML-attribute escaped.
    """
    url = mark_safe(build_survey_url(survey_id, parameters))
    return str(format_html(EMBED_TEMPLATE, url, title))
