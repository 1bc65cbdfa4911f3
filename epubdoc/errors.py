from __future__ import annotations


class EpubError(Exception):
    """Base class for every error raised by epubdoc."""


class ArchiveAccessError(EpubError):
    """The archive could not be opened or read."""


class ArchiveIntegrityError(ArchiveAccessError):
    """An entry failed its checksum or could not be decompressed."""


class NotFoundError(EpubError):
    pass


class EntryNotFoundError(NotFoundError):
    """No archive member matches the requested path."""


class ItemNotFoundError(NotFoundError):
    """No manifest entry has the requested id."""


class NotAnEpubError(EpubError):
    pass


class MalformedContainerError(EpubError):
    pass


class MissingRootfileError(EpubError):
    pass


class PackageUnreadableError(EpubError):
    pass


class UnsupportedMediaTypeError(EpubError):
    def __init__(self, item_id: str, media_type: str, expected: str) -> None:
        super().__init__(f"{item_id}: media type {media_type!r} is not {expected}")
        self.item_id = item_id
        self.media_type = media_type


class NoBodyContentError(EpubError):
    pass


class InvalidDestinationError(EpubError):
    pass


class DocumentNotLoadedError(EpubError):
    pass


class NavigationError(EpubError):
    """The navigation document does not have the expected structure."""
