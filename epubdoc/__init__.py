from .document import EpubDocument
from .errors import EpubError
from .models import ManifestEntry, RewriteTargets, TocNode
from .paths import resolve_href

__all__ = ["EpubDocument", "EpubError", "ManifestEntry", "RewriteTargets", "TocNode", "resolve_href"]
