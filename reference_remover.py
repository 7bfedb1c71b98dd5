"""
reference_remover.py - Strips every structural reference to one media item from a document body.

Each structural form is an independent ReferenceMatcher in MATCHERS:

    video_block_by_id   <!-- wp:video {"id":42} --> ... <!-- /wp:video -->
    video_block_by_url  a video block whose body contains the URL
    video_shortcode     [video src="..."][/video]  (also mp4="...", webm="...", ...)
    video_element       <video src="...">...</video>  or  <video><source src="..."></video>
    video_link          <a href="...">...</a>

URL-keyed forms match the full URL and its path-only form, so relative
references to the same upload are caught as well. Tag and attribute names
are matched case-insensitively; URLs are compared exactly. Everything a
matcher does not match is left byte-for-byte as it was.
"""

import html
import logging
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

# Start of a line, without consuming anything.
LINE_START = r"(?<![^\n])[ \t]*"
LINE_END = r"[ \t]*\r?\n"
# The last line of a body goes together with the line break before it.
LAST_LINE_START = r"(?:\r?\n|\A)[ \t]*"
LAST_LINE_END = r"[ \t]*\Z"

# A URL variant starts a value; it is never the tail of a longer URL.
URL_START = r"(?<![\w%/.:@-])"

ATTR_START = r"(?<![\w-])"

BLOCK_OPEN = r"<!--\s*(?i:wp:video)\b"
BLOCK_CLOSE = r"<!--\s*/(?i:wp:video)\s*-->"
# Any text that does not open or close another video block.
BLOCK_BODY = r"(?:(?!<!--\s*/?(?i:wp:video)\b).)*?"

SHORTCODE_SOURCE_ATTRS = r"(?i:src|mp4|m4v|webm|ogv|wmv|flv|mov)"

EMPTY_WRAPPER = (
    r"(?:<(?i:p)\b[^>]*>\s*</(?i:p)\s*>"
    r"|<(?i:figure)\b[^>]*>\s*</(?i:figure)\s*>)"
)
EMPTY_PARAGRAPH_BLOCK = r"<!--\s*(?i:wp:paragraph)\b[^>]*?-->\s*<!--\s*/(?i:wp:paragraph)\s*-->"
EXTRA_BLANK_LINES = re.compile(r"(\r?\n)[ \t]*\r?\n(?:[ \t]*\r?\n)+")


@dataclass(frozen=True)
class ReferenceTarget:
    """The media item being removed, with its URL variants already escaped for regex use."""

    attachment_id: int
    url: str
    url_variants: Tuple[str, ...]

    @classmethod
    def for_media(cls, attachment_id: int, url: Optional[str]) -> "ReferenceTarget":
        url = (url or "").strip()
        variants: List[str] = []
        if url:
            candidates = [url, html.escape(url, quote=False)]
            path = urlparse(url).path
            if path and path != "/" and path != url:
                candidates.extend([path, html.escape(path, quote=False)])
            for candidate in candidates:
                if candidate not in variants:
                    variants.append(candidate)
        # Longest first so the full URL wins over its own path.
        variants.sort(key=len, reverse=True)
        return cls(
            attachment_id=int(attachment_id),
            url=url,
            url_variants=tuple(re.escape(variant) for variant in variants),
        )

    @property
    def has_url(self) -> bool:
        return bool(self.url_variants)

    @property
    def any_url(self) -> str:
        return "(?:" + "|".join(self.url_variants) + ")"

    @property
    def quoted_url(self) -> str:
        """The URL as a complete attribute value in either quote style."""
        return f'(?:"{self.any_url}"|\'{self.any_url}\')'


def _block_by_id(target: ReferenceTarget) -> Optional[str]:
    return (
        BLOCK_OPEN
        + r"[^>]*?\{[^}]*\"id\"\s*:\s*"
        + str(target.attachment_id)
        + r"(?!\d)[^}]*\}[^>]*?-->"
        + BLOCK_BODY
        + BLOCK_CLOSE
    )


def _block_by_url(target: ReferenceTarget) -> Optional[str]:
    if not target.has_url:
        return None
    return (
        BLOCK_OPEN
        + r"[^>]*?-->"
        + BLOCK_BODY
        + URL_START
        + target.any_url
        + r"(?![\w%/-]|\.\w)"
        + BLOCK_BODY
        + BLOCK_CLOSE
    )


def _shortcode(target: ReferenceTarget) -> Optional[str]:
    if not target.has_url:
        return None
    return (
        r"\[(?i:video)\b[^\]]*?"
        + ATTR_START
        + SHORTCODE_SOURCE_ATTRS
        + r"\s*=\s*"
        + target.quoted_url
        + r"[^\]]*\]"
        + r"(?:(?:(?!\[/?(?i:video)\b).)*?\[/(?i:video)\])?"
    )


def _video_element(target: ReferenceTarget) -> Optional[str]:
    if not target.has_url:
        return None
    with_src = (
        r"<(?i:video)\b[^>]*?"
        + ATTR_START
        + r"(?i:src)\s*=\s*"
        + target.quoted_url
        + r"[^>]*?(?:/>|>(?:(?!<(?i:video)\b).)*?</(?i:video)\s*>)"
    )
    with_source = (
        r"<(?i:video)\b[^>]*>"
        + r"(?:(?!</?(?i:video)\b).)*?"
        + r"<(?i:source)\b[^>]*?"
        + ATTR_START
        + r"(?i:src)\s*=\s*"
        + target.quoted_url
        + r"[^>]*>"
        + r"(?:(?!<(?i:video)\b).)*?</(?i:video)\s*>"
    )
    return f"(?:{with_src}|{with_source})"


def _link(target: ReferenceTarget) -> Optional[str]:
    if not target.has_url:
        return None
    return (
        r"<(?i:a)\b[^>]*?"
        + ATTR_START
        + r"(?i:href)\s*=\s*"
        + target.quoted_url
        + r"[^>]*>(?:(?!<(?i:a)\b).)*?</(?i:a)\s*>"
    )


def _whole_line(source: str) -> str:
    """``source`` alone on its line, including the line break that separates it."""
    return (
        f"(?:{LINE_START}(?:{source}){LINE_END}"
        f"|{LAST_LINE_START}(?:{source}){LAST_LINE_END})"
    )


@dataclass(frozen=True)
class ReferenceMatcher:
    name: str
    build: Callable[[ReferenceTarget], Optional[str]]

    def remove(self, body: str, target: ReferenceTarget) -> Tuple[str, int]:
        """
        Removes every occurrence of this form from ``body``.

        An occurrence that is alone on its line takes the line break with it.
        Returns the new body and the number of occurrences removed.
        """
        source = self.build(target)
        if source is None:
            return body, 0
        whole_line = re.compile(_whole_line(source), re.DOTALL)
        inline = re.compile(source, re.DOTALL)
        body, line_hits = whole_line.subn("", body)
        body, inline_hits = inline.subn("", body)
        return body, line_hits + inline_hits


MATCHERS: Tuple[ReferenceMatcher, ...] = (
    ReferenceMatcher("video_block_by_id", _block_by_id),
    ReferenceMatcher("video_block_by_url", _block_by_url),
    ReferenceMatcher("video_shortcode", _shortcode),
    ReferenceMatcher("video_element", _video_element),
    ReferenceMatcher("video_link", _link),
)


def _remove_runs(body: str, unit: str) -> str:
    run = unit + r"(?:[ \t]*" + unit + r")*"
    body = re.sub(_whole_line(run), "", body, flags=re.DOTALL)
    return re.sub(run, "", body, flags=re.DOTALL)


def tidy_body(body: str) -> str:
    """Drops empty wrappers left behind by a removal and collapses 3+ line breaks, keeping CRLF bodies CRLF."""
    body = _remove_runs(body, EMPTY_WRAPPER)
    body = _remove_runs(body, EMPTY_PARAGRAPH_BLOCK)
    return EXTRA_BLANK_LINES.sub(r"\1\1", body)


def strip_references(
    body: str,
    attachment_id: int,
    url: Optional[str],
    matchers: Tuple[ReferenceMatcher, ...] = MATCHERS,
) -> Tuple[str, int]:
    """Like remove_references, but returns how many references were removed."""
    if not body:
        return body or "", 0

    target = ReferenceTarget.for_media(attachment_id, url)
    removed = 0
    for matcher in matchers:
        body, hits = matcher.remove(body, target)
        if hits:
            logger.debug("%s removed %s reference(s) to attachment %s", matcher.name, hits, attachment_id)
        removed += hits

    if removed:
        body = tidy_body(body)
    return body, removed


def remove_references(body: str, attachment_id: int, url: Optional[str]) -> Tuple[str, bool]:
    """
    Removes every reference to the media item from ``body``.

    Returns ``(new_body, changed)``; ``changed`` is False when the body is
    textually identical, in which case callers must not write it back.
    """
    new_body, _ = strip_references(body, attachment_id, url)
    return new_body, new_body != (body or "")
