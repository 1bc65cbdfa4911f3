from __future__ import annotations

import logging
from typing import Iterator, Optional
import urllib.parse

from .archive import EpubArchive
from .errors import EpubError, NavigationError
from .models import ManifestEntry, TocNode
from .paths import join_fragment, resolve_href, split_fragment
from .xml import (
    XMLSyntaxError,
    attr_by_local_name,
    child_by_local_name,
    iter_children_by_local_name,
    node_text,
    parse_xml,
    tag_local_name,
)

NCX_ID = "ncx"
NCX_MEDIA_TYPE = "application/x-dtbncx+xml"

logger = logging.getLogger("epubdoc.toc")


def _find_ncx(manifest: dict[str, ManifestEntry]) -> Optional[ManifestEntry]:
    entry = manifest.get(NCX_ID)
    if entry is not None:
        return entry
    for candidate in manifest.values():
        if candidate.media_type == NCX_MEDIA_TYPE:
            return candidate
    return None


def _find_nav_document(manifest: dict[str, ManifestEntry]) -> Optional[ManifestEntry]:
    for candidate in manifest.values():
        if "nav" in candidate.properties:
            return candidate
    return None


def _make_node(node_id: str, name: str, base: str, target: str, base_is_file: bool) -> TocNode:
    path, fragment = split_fragment(target)
    file_name = resolve_href(base, urllib.parse.unquote(path), base_is_file) if path else ""
    return TocNode(
        id=node_id,
        name=name,
        file_name=file_name,
        src=join_fragment(file_name, fragment),
        page_id=fragment,
    )


def _ncx_points(nav_points, package_dir: str) -> list[TocNode]:
    nodes: list[TocNode] = []
    for point in nav_points:
        content = child_by_local_name(point, "content")
        label = child_by_local_name(point, "navLabel")
        node = _make_node(
            point.attrib.get("id") or "",
            node_text(child_by_local_name(label, "text")) if label is not None else "",
            package_dir,
            (content.attrib.get("src") or "") if content is not None else "",
            base_is_file=False,
        )
        node.children = _ncx_points(iter_children_by_local_name(point, "navPoint"), package_dir)
        nodes.append(node)
    return nodes


def parse_ncx(raw: bytes, package_dir: str) -> list[TocNode]:
    root = parse_xml(raw)
    nav_map = child_by_local_name(root, "navMap")
    if nav_map is None:
        raise NavigationError("NCX document has no navMap")
    # NCX targets are resolved against the package directory, not the NCX file.
    return _ncx_points(iter_children_by_local_name(nav_map, "navPoint"), package_dir)


def _nav_items(ol, nav_href: str) -> list[TocNode]:
    nodes: list[TocNode] = []
    for li in iter_children_by_local_name(ol, "li"):
        anchor = child_by_local_name(li, "a")
        heading = anchor if anchor is not None else child_by_local_name(li, "span")
        node = _make_node(
            li.attrib.get("id") or (heading.attrib.get("id") if heading is not None else None) or "",
            node_text(heading),
            nav_href,
            (anchor.attrib.get("href") or "") if anchor is not None else "",
            base_is_file=True,
        )
        nested = child_by_local_name(li, "ol")
        if nested is not None:
            node.children = _nav_items(nested, nav_href)
        nodes.append(node)
    return nodes


def parse_nav_document(raw: bytes, nav_href: str) -> list[TocNode]:
    root = parse_xml(raw)
    navs = [node for node in root.iter() if tag_local_name(node.tag) == "nav"]
    if not navs:
        raise NavigationError("navigation document has no <nav> element")
    toc_nav = next(
        (nav for nav in navs if "toc" in (attr_by_local_name(nav, "type") or "").split()),
        navs[0],
    )
    ol = next((node for node in toc_nav.iter() if tag_local_name(node.tag) == "ol"), None)
    if ol is None:
        raise NavigationError("navigation document has no <ol> list")
    return _nav_items(ol, nav_href)


def build_toc(archive: EpubArchive, package_dir: str, manifest: dict[str, ManifestEntry]) -> list[TocNode]:
    """Build the table of contents, preferring the NCX over an EPUB 3 nav document.

    A missing navigation document yields an empty list; a broken one is logged and
    also yields an empty list so the rest of the book stays usable.
    """
    ncx = _find_ncx(manifest)
    nav = None if ncx is not None else _find_nav_document(manifest)
    if ncx is None and nav is None:
        return []
    try:
        if ncx is not None:
            return parse_ncx(archive.read_entry(ncx.href), package_dir)
        return parse_nav_document(archive.read_entry(nav.href), nav.href)
    except (EpubError, XMLSyntaxError, ValueError) as exc:
        logger.warning("Error parsing TOC: %s", exc)
        return []


def flatten_toc(nodes: list[TocNode]) -> Iterator[TocNode]:
    for node in nodes:
        yield node
        yield from flatten_toc(node.children)
