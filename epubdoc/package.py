from __future__ import annotations

import logging
import urllib.parse

from .errors import PackageUnreadableError
from .models import ManifestEntry, MetadataValue
from .paths import resolve_href
from .xml import (
    XMLSyntaxError,
    child_by_local_name,
    iter_children_by_local_name,
    node_text,
    parse_xml,
    tag_local_name,
    tag_namespace,
)

DC_NS = "http://purl.org/dc/elements/1.1/"

logger = logging.getLogger("epubdoc.package")


def _dc_elements(metadata_node) -> list:
    elements = []
    for child in metadata_node:
        if tag_local_name(child.tag) == "dc-metadata":
            # OEB 1.x / OPF 2.0 legacy wrapper
            elements.extend(_dc_elements(child))
        elif tag_namespace(child.tag) == DC_NS:
            elements.append(child)
    return elements


def read_metadata(opf: bytes) -> dict[str, MetadataValue]:
    """Collect Dublin Core metadata keyed by local name.

    A repeated element becomes a list of its values in document order; an element
    present but empty maps to ``""``.
    """
    try:
        root = parse_xml(opf)
    except (XMLSyntaxError, ValueError) as exc:
        logger.warning("package metadata unreadable: %s", exc)
        return {}

    metadata_node = child_by_local_name(root, "metadata")
    if metadata_node is None:
        logger.warning("package has no metadata section")
        return {}

    metadata: dict[str, MetadataValue] = {}
    for element in _dc_elements(metadata_node):
        key = tag_local_name(element.tag)
        value = node_text(element)
        current = metadata.get(key)
        if current is None:
            metadata[key] = value
        elif isinstance(current, list):
            current.append(value)
        else:
            metadata[key] = [current, value]
    return metadata


def read_manifest(opf: bytes, package_dir: str) -> dict[str, ManifestEntry]:
    try:
        root = parse_xml(opf)
    except (XMLSyntaxError, ValueError) as exc:
        logger.warning("package manifest unreadable: %s", exc)
        return {}

    manifest_node = child_by_local_name(root, "manifest")
    if manifest_node is None:
        logger.warning("package has no manifest section")
        return {}

    manifest: dict[str, ManifestEntry] = {}
    for node in iter_children_by_local_name(manifest_node, "item"):
        item_id = node.attrib.get("id") or ""
        href = node.attrib.get("href") or ""
        if not item_id or not href:
            continue
        if item_id in manifest:
            logger.warning("duplicate manifest id %r, keeping the last one", item_id)
        manifest[item_id] = ManifestEntry(
            id=item_id,
            href=resolve_href(package_dir, urllib.parse.unquote(href)),
            media_type=node.attrib.get("media-type") or "",
            properties=frozenset((node.attrib.get("properties") or "").split()),
        )
    return manifest


def read_spine(opf: bytes) -> list[str]:
    try:
        root = parse_xml(opf)
    except (XMLSyntaxError, ValueError) as exc:
        raise PackageUnreadableError(f"Failed to parse package document: {exc}") from exc

    spine_node = child_by_local_name(root, "spine")
    if spine_node is None:
        logger.warning("No spine found in package document")
        return []

    return [
        itemref.attrib["idref"]
        for itemref in iter_children_by_local_name(spine_node, "itemref")
        if "idref" in itemref.attrib
    ]
