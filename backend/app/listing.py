"""
Listing engine: turns the flat key space into a navigable folder view.

Folders do not exist in the store. They are projected from the common
prefixes a delimiter query reports, so everything here is a read-only view
rebuilt on every call.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import List, Optional, Sequence
from urllib.parse import urlsplit

from .object_store import DELIMITER, ObjectRecord, ObjectStore

logger = logging.getLogger(__name__)

FILE_CATEGORIES = {
    "image": {"jpg", "jpeg", "png", "gif", "webp", "svg", "bmp"},
    "video": {"mp4", "webm", "mov", "avi", "mkv"},
    "audio": {"mp3", "wav", "ogg", "m4a"},
    "pdf": {"pdf"},
    "code": {"txt", "md", "json", "js", "css", "html", "xml", "log", "env"},
    "spreadsheet": {"csv", "xls", "xlsx"},
}


@dataclass(frozen=True)
class FolderEntry:
    full_prefix: str
    display_name: str


@dataclass(frozen=True)
class FileEntry:
    key: str
    display_name: str
    size: int
    last_modified: datetime
    type: str
    category: str
    url: Optional[str] = None


@dataclass
class FolderListing:
    prefix: str
    folders: List[FolderEntry] = field(default_factory=list)
    files: List[FileEntry] = field(default_factory=list)


@dataclass(frozen=True)
class BucketStats:
    total_files: int
    total_size: int


def is_folder_marker(key: str) -> bool:
    return key.endswith(DELIMITER)


def file_type(key: str) -> str:
    """Lower-cased extension of the key's base name, empty when it has none."""
    name = key.rsplit(DELIMITER, 1)[-1]
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1].lower()


def file_category(extension: str) -> str:
    for category, extensions in FILE_CATEGORIES.items():
        if extension in extensions:
            return category
    return "other"


def rewrite_public_url(url: str, public_domain: str, bucket: str) -> str:
    """
    Reshape a path-style signed URL onto a custom public domain.

    ``https://<account>.r2.cloudflarestorage.com/<bucket>/<key>?<query>``
    becomes ``https://<public_domain>/<key>?<query>``. This only changes how
    the URL looks; the signature was issued for the store endpoint.
    """
    parts = urlsplit(url)
    path = parts.path
    bucket_segment = f"/{bucket}"
    if path == bucket_segment or path.startswith(bucket_segment + "/"):
        path = path[len(bucket_segment):] or "/"
    base = public_domain if "://" in public_domain else f"https://{public_domain}"
    rewritten = base.rstrip("/") + path
    if parts.query:
        rewritten += "?" + parts.query
    return rewritten


class ListingEngine:
    """Shapes store listings into folder views and bucket-wide inventories."""

    def __init__(
        self,
        store: ObjectStore,
        *,
        download_ttl: int = 3600,
        public_domain: Optional[str] = None,
        signing_concurrency: int = 16,
    ) -> None:
        self.store = store
        self.download_ttl = download_ttl
        self.public_domain = public_domain
        self.signing_concurrency = max(1, signing_concurrency)

    def list_folder(self, prefix: str = "") -> FolderListing:
        """
        Return one level of the namespace below ``prefix``.

        Files come back without signed URLs; call ``sign`` on the slice that
        will actually be shown.
        """
        level = self.store.list_level(prefix)
        listing = FolderListing(prefix=prefix)

        for common_prefix in level.common_prefixes:
            if not common_prefix.startswith(prefix) or not is_folder_marker(common_prefix):
                continue
            listing.folders.append(
                FolderEntry(
                    full_prefix=common_prefix,
                    display_name=common_prefix[len(prefix):-len(DELIMITER)],
                )
            )

        for record in level.objects:
            if record.key == prefix or is_folder_marker(record.key):
                continue
            if not record.key.startswith(prefix):
                continue
            listing.files.append(self._shape_file(record, prefix))

        logger.info(
            "Listed prefix %r: %s folders, %s files",
            prefix,
            len(listing.folders),
            len(listing.files),
        )
        return listing

    def list_all(self, prefix: str = "") -> List[ObjectRecord]:
        """
        Return every object in the bucket (below ``prefix``), folder markers excluded.

        Slow path: one sequential list call per ``max_keys`` objects. Meant for
        statistics, never for navigation.
        """
        records = [
            record for record in self.store.iter_objects(prefix) if not is_folder_marker(record.key)
        ]
        logger.info("Full inventory of prefix %r: %s objects", prefix, len(records))
        return records

    @staticmethod
    def summarize(records: Sequence[ObjectRecord]) -> BucketStats:
        return BucketStats(
            total_files=len(records),
            total_size=sum(record.size for record in records),
        )

    def sign(self, files: Sequence[FileEntry]) -> List[FileEntry]:
        """Attach a fresh read URL to each entry, preserving order."""
        if not files:
            return []
        workers = min(self.signing_concurrency, len(files))
        if workers == 1:
            return [self._with_url(entry) for entry in files]
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(self._with_url, files))

    def download_url(self, key: str) -> str:
        url = self.store.presign_download(key, self.download_ttl)
        if self.public_domain:
            url = rewrite_public_url(url, self.public_domain, self.store.bucket)
        return url

    def _with_url(self, entry: FileEntry) -> FileEntry:
        return replace(entry, url=self.download_url(entry.key))

    @staticmethod
    def _shape_file(record: ObjectRecord, prefix: str) -> FileEntry:
        extension = file_type(record.key)
        return FileEntry(
            key=record.key,
            display_name=record.key[len(prefix):],
            size=record.size,
            last_modified=record.last_modified,
            type=extension,
            category=file_category(extension),
        )
