from __future__ import annotations

from typing import Optional


def resolve_href(base: str, reference: str, base_is_file: bool = False) -> str:
    """Resolve ``reference`` against ``base`` and return an archive-root-relative path.

    ``base`` is a directory unless ``base_is_file`` is set, in which case its last
    segment is dropped first. Empty and ``.`` segments are ignored and ``..`` never
    climbs above the archive root. Fragments are not interpreted here; use
    :func:`split_fragment` before and re-append afterwards.
    """
    parts: list[str] = []
    base_segments = (base or "").replace("\\", "/").split("/")
    if base_is_file:
        base_segments = base_segments[:-1]
    for segment in base_segments + (reference or "").replace("\\", "/").split("/"):
        if segment in {"", "."}:
            continue
        if segment == "..":
            if parts:
                parts.pop()
            continue
        parts.append(segment)
    return "/".join(parts)


def split_fragment(value: str) -> tuple[str, Optional[str]]:
    path, sep, fragment = (value or "").partition("#")
    return path, (fragment if sep else None)


def join_fragment(path: str, fragment: Optional[str]) -> str:
    return f"{path}#{fragment}" if fragment is not None else path


def package_dir_of(package_path: str) -> str:
    if "/" not in package_path:
        return ""
    return package_path.rsplit("/", 1)[0]
