"""Cross-reference rewriting for chapter markup.

Works on text patterns rather than a parsed tree; only references change.
"""

from __future__ import annotations

import re
from typing import Optional
import urllib.parse

from .errors import NoBodyContentError
from .models import ManifestEntry, RewriteTargets
from .paths import join_fragment, resolve_href, split_fragment

LINE_SENTINEL = "\x00"

_NEWLINE_RE = re.compile(r"\r?\n")
_BODY_RE = re.compile(r"<body[^>]*?>(.*)</body[^>]*?>", re.IGNORECASE)
_SCRIPT_RE = re.compile(r"<script[^>]*?>.*?</script[^>]*?>", re.IGNORECASE)
_STYLE_RE = re.compile(r"<style[^>]*?>.*?</style[^>]*?>", re.IGNORECASE)
# Attribute boundaries: whitespace, or the sentinel standing in for a line break.
_EVENT_HANDLER_RE = re.compile(r"([\s\x00])(on\w+)(\s*=\s*[\"']?[^\"'\s>\x00]*?[\"'\s>\x00])", re.IGNORECASE)
_IMAGE_ATTR_RE = re.compile(
    r"([\s\x00](?:xlink:href|src)\s*=\s*[\"']?)([^\"'\s>\x00]*?)([\"'\s>\x00])",
    re.IGNORECASE,
)
_LINK_ATTR_RE = re.compile(r"([\s\x00]href\s*=\s*[\"']?)([^\"'\s>\x00]*?)([\"'\s>\x00])", re.IGNORECASE)

DISABLED_HANDLER_PREFIX = "skip-"


def _image_index(manifest: dict[str, ManifestEntry]) -> set[str]:
    return {entry.href for entry in manifest.values()}


def _link_index(manifest: dict[str, ManifestEntry]) -> set[str]:
    return {entry.path for entry in manifest.values()}


def extract_body(text: str) -> str:
    match = _BODY_RE.search(text)
    if match is None:
        raise NoBodyContentError("no <body> element found")
    return match.group(1).strip(" \t\r\n\x0b" + LINE_SENTINEL)


def strip_scripts_and_styles(text: str) -> str:
    return _STYLE_RE.sub("", _SCRIPT_RE.sub("", text))


def disable_event_handlers(text: str) -> str:
    return _EVENT_HANDLER_RE.sub(lambda m: f"{m.group(1)}{DISABLED_HANDLER_PREFIX}{m.group(2)}{m.group(3)}", text)


def rewrite_image_refs(text: str, base_href: str, manifest: dict[str, ManifestEntry], image_base: str) -> str:
    """Point ``src``/``xlink:href`` at ``image_base``; values outside the manifest are emptied."""
    known = _image_index(manifest)

    def replace(match: re.Match) -> str:
        target = resolve_href(base_href, urllib.parse.unquote(match.group(2)), True)
        if target in known:
            return f"{match.group(1)}{image_base}/{target}{match.group(3)}"
        return f"{match.group(1)}{match.group(3)}"

    return _IMAGE_ATTR_RE.sub(replace, text)


def rewrite_link_refs(text: str, base_href: str, manifest: dict[str, ManifestEntry], link_base: str) -> str:
    """Point ``href`` values that name a manifest document at ``link_base``; leave the rest alone."""
    known = _link_index(manifest)

    def replace(match: re.Match) -> str:
        path, fragment = split_fragment(urllib.parse.unquote(match.group(2)))
        if not path:
            return match.group(0)
        target = resolve_href(base_href, path, True)
        if target not in known:
            return match.group(0)
        return f"{match.group(1)}{link_base}/{join_fragment(target, fragment)}{match.group(3)}"

    return _LINK_ATTR_RE.sub(replace, text)


def rewrite_chapter(
    raw: str,
    chapter_href: str,
    manifest: dict[str, ManifestEntry],
    targets: Optional[RewriteTargets] = None,
) -> str:
    """Turn a chapter document into servable body markup.

    Only the ``<body>`` contents survive. Scripts and style blocks are removed,
    ``on*`` handlers are renamed so they no longer fire, and every reference is
    checked against the manifest before it is pointed at the configured bases.
    Raises :class:`NoBodyContentError` when the document has no body.
    """
    targets = targets or RewriteTargets()
    text = _NEWLINE_RE.sub(LINE_SENTINEL, raw)
    text = extract_body(text)
    text = strip_scripts_and_styles(text)
    text = disable_event_handlers(text)
    text = rewrite_image_refs(text, chapter_href, manifest, targets.image_base)
    text = rewrite_link_refs(text, chapter_href, manifest, targets.link_base)
    return text.replace(LINE_SENTINEL, "\n")


def rewrite_extracted_file(
    raw: str,
    file_href: str,
    manifest: dict[str, ManifestEntry],
    targets: Optional[RewriteTargets] = None,
) -> str:
    """Rewrite references in a whole extracted document, keeping its head and wrapper."""
    targets = targets or RewriteTargets()
    text = rewrite_image_refs(raw, file_href, manifest, targets.image_base)
    return rewrite_link_refs(text, file_href, manifest, targets.link_base)
