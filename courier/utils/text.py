"""Helpers for cleaning user supplied rich text.

Message content arrives as html from the editor. It is stored cleaned down to a
small allow-list of tags and cleaned again on the way out, and the inbox only
ever shows a plain text excerpt of it.
"""

import html as html_lib
import re

import bleach
from bleach.html5lib_shim import Filter


ALLOWED_TAGS = frozenset(
    {"p", "br", "b", "i", "em", "strong", "u", "a", "li", "ul", "ol", "blockquote"}
)
ALLOWED_ATTRIBUTES = {"a": ["href"]}
ALLOWED_PROTOCOLS = frozenset({"http", "https", "ftp", "mailto", "tel"})

EXCERPT_LENGTH = 100
EXCERPT_SUFFIX = " …"

_WHITESPACE = re.compile(r"\s+")

# Elements dropped together with everything inside them
DROPPED_TAGS = frozenset({"script", "style", "textarea", "option", "noscript"})


class DropContentFilter(Filter):
    """Skip the whole subtree of every element in ``DROPPED_TAGS``."""

    def __iter__(self):
        depth = 0
        for token in Filter.__iter__(self):
            name = token.get("name")
            if token["type"] == "StartTag" and name in DROPPED_TAGS:
                depth += 1
                continue
            if token["type"] == "EndTag" and name in DROPPED_TAGS:
                depth = max(depth - 1, 0)
                continue
            if token["type"] == "EmptyTag" and name in DROPPED_TAGS:
                continue
            if not depth:
                yield token


# The dropped tags have to get past the sanitizer for the filter to see them.
_html_cleaner = bleach.Cleaner(
    tags=ALLOWED_TAGS | DROPPED_TAGS,
    attributes=ALLOWED_ATTRIBUTES,
    protocols=ALLOWED_PROTOCOLS,
    strip=True,
    filters=[DropContentFilter],
)
_text_cleaner = bleach.Cleaner(tags=DROPPED_TAGS, attributes={}, strip=True, filters=[DropContentFilter])


def plain_text(content: str | None, clean_whitespace: bool = False) -> str:
    """Return ``content`` without any markup and with entities decoded.

    With ``clean_whitespace`` runs of whitespace (newlines and non-breaking
    spaces included) collapse into a single space and the result is trimmed.
    """
    if not content:
        return ""
    text = html_lib.unescape(_text_cleaner.clean(content))
    if clean_whitespace:
        text = _WHITESPACE.sub(" ", text).strip()
    return text


def is_empty(content: str | None) -> bool:
    return plain_text(content, clean_whitespace=True) == ""


def html(content: str | None) -> str:
    """Clean incoming content down to the allowed html subset."""
    if not content:
        return ""
    return _html_cleaner.clean(content).strip()


def sanitize(content: str | None) -> str:
    # outgoing content goes through the same allow-list
    if not content:
        return ""
    return _html_cleaner.clean(content)


def excerpt(content: str | None) -> str:
    return plain_text(content, clean_whitespace=True)[:EXCERPT_LENGTH] + EXCERPT_SUFFIX
