from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

MetadataValue = Union[str, list[str]]


@dataclass(frozen=True)
class ManifestEntry:
    id: str
    href: str
    media_type: str
    properties: frozenset[str] = frozenset()

    @property
    def path(self) -> str:
        return self.href.split("#", 1)[0]


@dataclass
class TocNode:
    id: str
    name: str
    file_name: str
    src: str
    page_id: Optional[str] = None
    children: list["TocNode"] = field(default_factory=list)


@dataclass(frozen=True)
class RewriteTargets:
    image_base_url: Optional[str] = None
    link_base_url: Optional[str] = None

    @property
    def image_base(self) -> str:
        return self.image_base_url or ""

    @property
    def link_base(self) -> str:
        return self.link_base_url or ""


def toc_node_to_dict(node: TocNode) -> dict:
    return {
        "id": node.id,
        "name": node.name,
        "file_name": node.file_name,
        "src": node.src,
        "page_id": node.page_id,
        "children": [toc_node_to_dict(child) for child in node.children],
    }


def manifest_entry_to_dict(entry: ManifestEntry) -> dict:
    return {
        "id": entry.id,
        "href": entry.href,
        "media_type": entry.media_type,
        "properties": sorted(entry.properties),
    }
