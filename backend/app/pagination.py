"""
Pagination layer for single-level folder listings.

Pages are cut from the shaped listing, independent of the store's own list
page size. Signed URLs are issued only for the files on the requested page.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from .errors import InvalidArgument
from .listing import FileEntry, FolderEntry, FolderListing, ListingEngine

SORT_KEYS = ("name", "size", "time")
SORT_DIRECTIONS = ("asc", "desc")


@dataclass
class ListingPage:
    folders: List[FolderEntry] = field(default_factory=list)
    files: List[FileEntry] = field(default_factory=list)
    page: int = 1
    page_size: int = 50
    total_files: int = 0
    total_pages: int = 0

    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev_page(self) -> bool:
        return self.page > 1


def parse_sort(value: Optional[str]) -> Optional[Tuple[str, bool]]:
    """Parse ``"<key>-<asc|desc>"`` into ``(key, descending)``."""
    if not value:
        return None
    key, _, direction = value.partition("-")
    direction = direction or "asc"
    if key not in SORT_KEYS or direction not in SORT_DIRECTIONS:
        raise InvalidArgument(
            f"Invalid sort '{value}', expected one of "
            + ", ".join(f"{k}-{d}" for k in SORT_KEYS for d in SORT_DIRECTIONS)
        )
    return key, direction == "desc"


def filter_listing(listing: FolderListing, search: Optional[str]) -> FolderListing:
    """Keep entries whose display name contains ``search`` (case-insensitive)."""
    if not search:
        return listing
    needle = search.lower()
    return FolderListing(
        prefix=listing.prefix,
        folders=[f for f in listing.folders if needle in f.display_name.lower()],
        files=[f for f in listing.files if needle in f.display_name.lower()],
    )


def sort_listing(listing: FolderListing, sort: Optional[Tuple[str, bool]]) -> FolderListing:
    if sort is None:
        return listing
    key, descending = sort
    if key == "size":
        files = sorted(listing.files, key=lambda f: f.size, reverse=descending)
    elif key == "time":
        files = sorted(listing.files, key=lambda f: f.last_modified, reverse=descending)
    else:
        files = sorted(listing.files, key=lambda f: f.display_name, reverse=descending)
    # Folders carry no size or timestamp; only a name sort reorders them.
    folders = listing.folders
    if key == "name":
        folders = sorted(folders, key=lambda f: f.display_name, reverse=descending)
    return FolderListing(prefix=listing.prefix, folders=folders, files=files)


def paginate(files: Sequence[FileEntry], page: int, page_size: int) -> ListingPage:
    """
    Slice ``files`` into a 1-indexed page.

    A page outside ``1..total_pages`` is a valid, empty result rather than an
    error. Folders are not paginated; callers attach them to the page.
    """
    if page_size < 1:
        raise InvalidArgument("Page size must be at least 1")
    total_files = len(files)
    total_pages = math.ceil(total_files / page_size)
    if 1 <= page <= total_pages:
        start = (page - 1) * page_size
        visible = list(files[start:start + page_size])
    else:
        visible = []
    return ListingPage(
        files=visible,
        page=page,
        page_size=page_size,
        total_files=total_files,
        total_pages=total_pages,
    )


class FolderPaginator:
    """Lists one folder level and returns a single signed page of it."""

    def __init__(self, engine: ListingEngine) -> None:
        self.engine = engine

    def page(
        self,
        prefix: str,
        page: int,
        page_size: int,
        *,
        sort: Optional[str] = None,
        search: Optional[str] = None,
    ) -> ListingPage:
        order = parse_sort(sort)
        listing = self.engine.list_folder(prefix)
        listing = sort_listing(filter_listing(listing, search), order)

        result = paginate(listing.files, page, page_size)
        result.folders = list(listing.folders)
        result.files = self.engine.sign(result.files)
        return result
