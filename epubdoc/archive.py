from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, Optional, Union
import urllib.parse
import zipfile
import zlib

from .errors import ArchiveAccessError, ArchiveIntegrityError, EntryNotFoundError
from .paths import resolve_href


def _canonical_member(name: str) -> str:
    return resolve_href("", name)


class EpubArchive:
    """Read access to an open EPUB zip, keyed by normalized member paths."""

    def __init__(self, zf: zipfile.ZipFile) -> None:
        self._zf = zf
        self._index = self._member_index(zf)

    @staticmethod
    def _member_index(zf: zipfile.ZipFile) -> dict[str, str]:
        mapping: dict[str, str] = {}
        for info in zf.infolist():
            if info.is_dir():
                continue
            canonical = _canonical_member(info.filename)
            if not canonical:
                continue
            mapping.setdefault(canonical, info.filename)
            # Some packagers store percent-escaped member names; hrefs are decoded.
            decoded = urllib.parse.unquote(canonical)
            if decoded != canonical:
                mapping.setdefault(decoded, info.filename)
        return mapping

    def member_names(self) -> list[str]:
        return list(self._index)

    def locate(self, entry_path: str) -> Optional[str]:
        canonical = _canonical_member(entry_path)
        if not canonical:
            return None
        return self._index.get(canonical)

    def has_entry(self, entry_path: str) -> bool:
        return self.locate(entry_path) is not None

    def read_entry(self, entry_path: str) -> bytes:
        actual = self.locate(entry_path)
        if actual is None:
            raise EntryNotFoundError(entry_path)
        try:
            return self._zf.read(actual)
        except (zipfile.BadZipFile, zlib.error, EOFError) as exc:
            raise ArchiveIntegrityError(f"{entry_path}: {exc}") from exc
        except OSError as exc:
            raise ArchiveAccessError(f"{entry_path}: {exc}") from exc

    def _write_member(self, dest: Path, canonical: str, actual: str) -> None:
        target = dest.joinpath(*canonical.split("/"))
        target.parent.mkdir(parents=True, exist_ok=True)
        try:
            payload = self._zf.read(actual)
        except (zipfile.BadZipFile, zlib.error, EOFError) as exc:
            raise ArchiveIntegrityError(f"{canonical}: {exc}") from exc
        target.write_bytes(payload)

    def extract_all(self, dest: Union[str, Path]) -> list[str]:
        """Write every member under its decoded path, the form manifest hrefs use."""
        dest = Path(dest)
        written: list[str] = []
        seen: set[str] = set()
        for canonical, actual in self._index.items():
            if actual in seen:
                continue
            seen.add(actual)
            decoded = urllib.parse.unquote(canonical)
            self._write_member(dest, decoded, actual)
            written.append(decoded)
        return written

    def extract_selected(self, dest: Union[str, Path], entry_paths: Iterable[str]) -> list[str]:
        dest = Path(dest)
        written: list[str] = []
        for entry_path in entry_paths:
            canonical = _canonical_member(entry_path)
            actual = self._index.get(canonical) if canonical else None
            if actual is None:
                raise EntryNotFoundError(entry_path)
            self._write_member(dest, canonical, actual)
            written.append(canonical)
        return written


@contextmanager
def open_archive(path: Union[str, Path]) -> Iterator[EpubArchive]:
    try:
        zf = zipfile.ZipFile(path, "r")
    except (OSError, zipfile.BadZipFile) as exc:
        raise ArchiveAccessError(f"Failed opening ebook {path}: {exc}") from exc
    try:
        yield EpubArchive(zf)
    finally:
        zf.close()
