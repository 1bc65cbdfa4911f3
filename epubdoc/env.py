from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from .models import RewriteTargets


def read_env(name: str, default: Optional[str] = None) -> Optional[str]:
    """Read ``name`` from the environment, or from the file named by ``{name}_FILE``.

    Values are trimmed; a blank value or an unreadable file counts as unset.
    """
    value = (os.getenv(name) or "").strip()
    if value:
        return value

    file_var = os.getenv(f"{name}_FILE")
    if not file_var:
        return default
    try:
        content = Path(file_var).read_text(encoding="utf-8").strip()
    except OSError:
        return default
    return content or default


def library_dir() -> Path:
    env = read_env("EPUBDOC_LIBRARY_DIR")
    return Path(env) if env else Path.cwd()


def _base_url(name: str) -> Optional[str]:
    # The rewriter joins base and path with "/".
    value = read_env(name)
    return value.rstrip("/") if value else None


def rewrite_targets_from_env() -> RewriteTargets:
    return RewriteTargets(
        image_base_url=_base_url("EPUBDOC_IMAGE_BASE_URL"),
        link_base_url=_base_url("EPUBDOC_LINK_BASE_URL"),
    )
