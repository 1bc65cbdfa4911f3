from __future__ import annotations

from .errors import MalformedContainerError, MissingRootfileError
from .xml import XMLSyntaxError, child_by_local_name, parse_xml

CONTAINER_PATH = "META-INF/container.xml"


def locate_package(container_xml: bytes) -> str:
    """Return the ``full-path`` of the first rootfile listed in container.xml.

    The value is returned as written; callers normalize it when they look it up.
    """
    try:
        root = parse_xml(container_xml)
    except (XMLSyntaxError, ValueError) as exc:
        raise MalformedContainerError(f"Failed to parse {CONTAINER_PATH}: {exc}") from exc

    rootfiles = child_by_local_name(root, "rootfiles")
    rootfile = child_by_local_name(rootfiles, "rootfile") if rootfiles is not None else None
    if rootfile is None:
        raise MissingRootfileError(f"Invalid {CONTAINER_PATH} structure - missing rootfiles/rootfile")

    full_path = rootfile.attrib.get("full-path") or ""
    if not full_path.strip():
        raise MissingRootfileError(f"No full-path attribute on rootfile in {CONTAINER_PATH}")
    return full_path
