from __future__ import annotations

from typing import Optional

from lxml import etree as LXML_ET

XMLSyntaxError = LXML_ET.XMLSyntaxError


def parse_xml(raw: bytes) -> LXML_ET._Element:
    parser = LXML_ET.XMLParser(resolve_entities=False, no_network=True)
    return LXML_ET.fromstring(raw, parser=parser)


def tag_local_name(tag: object) -> str:
    if not tag or not isinstance(tag, str):
        return ""
    if "}" in tag:
        return tag.split("}", 1)[1]
    return tag


def tag_namespace(tag: object) -> str:
    if not isinstance(tag, str) or not tag.startswith("{"):
        return ""
    return tag[1:].split("}", 1)[0]


def child_by_local_name(node: LXML_ET._Element, local_name: str) -> Optional[LXML_ET._Element]:
    for child in node:
        if tag_local_name(child.tag) == local_name:
            return child
    return None


def iter_children_by_local_name(node: LXML_ET._Element, local_name: str) -> list[LXML_ET._Element]:
    return [child for child in node if tag_local_name(child.tag) == local_name]


def attr_by_local_name(node: LXML_ET._Element, local_name: str) -> Optional[str]:
    for key, value in node.attrib.items():
        if tag_local_name(key) == local_name:
            return value
    return None


def node_text(node: Optional[LXML_ET._Element]) -> str:
    if node is None:
        return ""
    return "".join(node.itertext()).strip()
