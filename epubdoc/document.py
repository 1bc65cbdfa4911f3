from __future__ import annotations

import codecs
import copy
import logging
from pathlib import Path
import re
from typing import Iterable, Optional, Pattern, Union

from .archive import open_archive
from .container import CONTAINER_PATH, locate_package
from .errors import (
    DocumentNotLoadedError,
    EntryNotFoundError,
    InvalidDestinationError,
    ItemNotFoundError,
    MalformedContainerError,
    NotAnEpubError,
    PackageUnreadableError,
    UnsupportedMediaTypeError,
)
from .models import ManifestEntry, MetadataValue, RewriteTargets, TocNode
from .package import read_manifest, read_metadata, read_spine
from .paths import package_dir_of, resolve_href
from .rewrite import rewrite_chapter, rewrite_extracted_file
from .toc import build_toc

EPUB_MIMETYPE = "application/epub+zip"
XHTML_MEDIA_TYPE = "application/xhtml+xml"
CHAPTER_MEDIA_TYPES = {XHTML_MEDIA_TYPE, "image/svg+xml"}
XML_ENCODING_RE = re.compile(rb"^\s*<\?xml[^>]*?encoding\s*=\s*[\"']([A-Za-z0-9._-]+)[\"']")

MediaTypeFilter = Union[str, Pattern[str], Iterable[str], None]

logger = logging.getLogger("epubdoc.document")


def markup_encoding(raw: bytes) -> str:
    """Encoding of an XHTML document: its BOM, else its XML declaration, else UTF-8."""
    if raw.startswith(codecs.BOM_UTF8):
        return "utf-8-sig"
    if raw.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        return "utf-16"
    match = XML_ENCODING_RE.match(raw)
    if match is None:
        return "utf-8"
    declared = match.group(1).decode("ascii")
    try:
        return codecs.lookup(declared).name
    except LookupError:
        logger.warning("unknown declared encoding %r, reading as utf-8", declared)
        return "utf-8"


class EpubDocument:
    """An EPUB file loaded into manifest, spine, metadata and table of contents.

    The archive is opened and closed around every public operation, never held
    open between calls. Use :meth:`load` (or :meth:`open`) before querying.
    """

    def __init__(
        self,
        path: Union[str, Path],
        image_base_url: Optional[str] = None,
        link_base_url: Optional[str] = None,
        *,
        targets: Optional[RewriteTargets] = None,
    ) -> None:
        self.path = Path(path)
        self.targets = targets or RewriteTargets(image_base_url=image_base_url, link_base_url=link_base_url)
        self._loaded = False
        self._package_path = ""
        self._package_dir = ""
        self._metadata: dict[str, MetadataValue] = {}
        self._manifest: dict[str, ManifestEntry] = {}
        self._spine: list[str] = []
        self._toc: list[TocNode] = []

    @classmethod
    def open(
        cls,
        path: Union[str, Path],
        image_base_url: Optional[str] = None,
        link_base_url: Optional[str] = None,
    ) -> "EpubDocument":
        return cls(path, image_base_url, link_base_url).load()

    def load(self) -> "EpubDocument":
        if self._loaded:
            return self
        with open_archive(self.path) as archive:
            try:
                mimetype = archive.read_entry("mimetype").decode("ascii", errors="replace")
            except EntryNotFoundError as exc:
                raise NotAnEpubError(f"{self.path}: missing mimetype entry") from exc
            if mimetype.strip().lower() != EPUB_MIMETYPE:
                raise NotAnEpubError(f"{self.path}: mimetype is {mimetype.strip()!r}")

            try:
                container_xml = archive.read_entry(CONTAINER_PATH)
            except EntryNotFoundError as exc:
                raise MalformedContainerError(f"{self.path}: missing {CONTAINER_PATH}") from exc
            package_path = locate_package(container_xml)
            package_dir = package_dir_of(package_path)
            try:
                opf = archive.read_entry(package_path)
            except EntryNotFoundError as exc:
                raise PackageUnreadableError(f"package document {package_path} not found") from exc

            metadata = read_metadata(opf)
            manifest = read_manifest(opf, package_dir)
            spine = read_spine(opf)
            toc = build_toc(archive, package_dir, manifest)

        self._package_path = package_path
        self._package_dir = package_dir
        self._metadata = metadata
        self._manifest = manifest
        self._spine = spine
        self._toc = toc
        self._loaded = True
        logger.info(
            "loaded %s: %d manifest items, %d spine entries, %d top-level toc entries",
            self.path,
            len(manifest),
            len(spine),
            len(toc),
        )
        return self

    @property
    def loaded(self) -> bool:
        return self._loaded

    def _require_loaded(self) -> None:
        if not self._loaded:
            raise DocumentNotLoadedError(f"{self.path} has not been loaded")

    @property
    def package_path(self) -> str:
        self._require_loaded()
        return self._package_path

    @property
    def package_dir(self) -> str:
        self._require_loaded()
        return self._package_dir

    def get_spine(self) -> list[str]:
        self._require_loaded()
        return list(self._spine)

    def spine_entries(self) -> list[tuple[str, Optional[ManifestEntry]]]:
        """Spine ids paired with their manifest entries; dangling ids pair with ``None``."""
        self._require_loaded()
        return [(item_id, self._manifest.get(item_id)) for item_id in self._spine]

    def get_manifest(self, item_id: Optional[str] = None):
        self._require_loaded()
        if item_id is None:
            return dict(self._manifest)
        return self._manifest.get(item_id)

    def get_manifest_by_type(self, pattern: Union[str, Pattern[str]]) -> dict[str, ManifestEntry]:
        self._require_loaded()
        if isinstance(pattern, re.Pattern):
            return {key: entry for key, entry in self._manifest.items() if pattern.search(entry.media_type)}
        return {key: entry for key, entry in self._manifest.items() if entry.media_type == pattern}

    def find_by_href(self, href: str) -> Optional[ManifestEntry]:
        self._require_loaded()
        target = resolve_href("", href)
        for entry in self._manifest.values():
            if entry.href == target:
                return entry
        return None

    def get_metadata(self, key: Optional[str] = None):
        """Metadata map or a single value; callers get copies, never the loaded values."""
        self._require_loaded()
        if key is None:
            return copy.deepcopy(self._metadata)
        return copy.deepcopy(self._metadata.get(key))

    def get_toc(self) -> list[TocNode]:
        self._require_loaded()
        return copy.deepcopy(self._toc)

    def _entry(self, item_id: str) -> ManifestEntry:
        self._require_loaded()
        entry = self._manifest.get(item_id)
        if entry is None:
            raise ItemNotFoundError(item_id)
        return entry

    def _read(self, entry: ManifestEntry) -> bytes:
        with open_archive(self.path) as archive:
            return archive.read_entry(entry.href)

    def get_raw_chapter(self, item_id: str) -> bytes:
        entry = self._entry(item_id)
        if entry.media_type not in CHAPTER_MEDIA_TYPES:
            raise UnsupportedMediaTypeError(item_id, entry.media_type, "a chapter document")
        return self._read(entry)

    def get_chapter(self, item_id: str) -> str:
        raw = self.get_raw_chapter(item_id)
        entry = self._manifest[item_id]
        text = raw.decode(markup_encoding(raw), errors="replace")
        return rewrite_chapter(text, entry.href, self._manifest, self.targets)

    def get_image(self, item_id: str) -> bytes:
        entry = self._entry(item_id)
        if not entry.media_type.strip().lower().startswith("image/"):
            raise UnsupportedMediaTypeError(item_id, entry.media_type, "an image")
        return self._read(entry)

    def get_file(self, item_id: str) -> bytes:
        return self._read(self._entry(item_id))

    def _select_hrefs(self, media_type: MediaTypeFilter, exclude: bool) -> Optional[list[str]]:
        if media_type is None:
            return None
        if isinstance(media_type, (str, re.Pattern)):
            selected = [entry.href for entry in self.get_manifest_by_type(media_type).values()]
        else:
            selected = [resolve_href("", href) for href in media_type]
        if exclude:
            chosen = set(selected)
            selected = [entry.href for entry in self._manifest.values() if entry.href not in chosen]
        return list(dict.fromkeys(selected))

    def extract(
        self,
        destination: Union[str, Path],
        media_type: MediaTypeFilter = None,
        exclude: bool = False,
    ) -> list[str]:
        """Extract the archive (or a filtered part of it) and rewrite the XHTML documents in place.

        ``media_type`` may be an exact media type, a compiled pattern searched in
        each media type, or an iterable of manifest hrefs; ``exclude`` inverts it.
        Returns the hrefs of the documents that were rewritten.
        """
        self._require_loaded()
        dest = Path(destination)
        if not dest.is_dir():
            raise InvalidDestinationError(f"invalid folder given: {dest}")

        selection = self._select_hrefs(media_type, exclude)
        with open_archive(self.path) as archive:
            if selection is None:
                archive.extract_all(dest)
            else:
                archive.extract_selected(dest, selection)

        documents = [entry.href for entry in self._manifest.values() if entry.media_type == XHTML_MEDIA_TYPE]
        if selection is not None:
            allowed = set(selection)
            documents = [href for href in documents if href in allowed]

        for href in documents:
            target = dest.joinpath(*href.split("/"))
            if not target.is_file():
                raise EntryNotFoundError(href)
            # Bytes in and out so line endings and the document encoding survive.
            raw = target.read_bytes()
            encoding = markup_encoding(raw)
            text = rewrite_extracted_file(raw.decode(encoding, errors="replace"), href, self._manifest, self.targets)
            target.write_bytes(text.encode(encoding, errors="xmlcharrefreplace"))
        logger.info("extracted %s to %s, rewrote %d documents", self.path, dest, len(documents))
        return documents
