"""Per-session link library: cached records, filter state and mutations."""

import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Union

from ..models.filters import CategoryFilter, FilterState, NoFilter, SearchFilter, TagFilter
from ..models.link import Link, LinkInput
from ..models.session import Session
from .record_store import RecordStore
from .transfer import dump_export, export_filename, parse_import
from .views import LinkView, derive_view

logger = logging.getLogger(__name__)


@dataclass
class ExportDocument:
    filename: str
    content: str
    count: int


@dataclass
class ImportResult:
    imported: int
    message: str


class LinkLibrary:
    """Holds the owner's full link list and the active filter.

    The cached list is replaced wholesale after every mutation; the derived
    view is memoized until either the list or the filter changes.
    """

    def __init__(self, store: RecordStore, session: Session):
        self.store = store
        self.session = session
        self._links: List[Link] = []
        self._filter: FilterState = NoFilter()
        self._view: Optional[LinkView] = None

    @property
    def links(self) -> List[Link]:
        return list(self._links)

    @property
    def filter_state(self) -> FilterState:
        return self._filter

    @property
    def view(self) -> LinkView:
        if self._view is None:
            self._view = derive_view(self._links, self._filter)
        return self._view

    async def refresh(self) -> List[Link]:
        """Reload the owner's links from the store.

        Raises:
            StoreError: If the store call fails
        """
        self._links = await self.store.list_by_owner(self.session, self.session.user_id)
        self._view = None
        return self.links

    def apply(self, state: FilterState) -> LinkView:
        self._filter = state
        self._view = None
        return self.view

    def search(self, text: str) -> LinkView:
        if text.strip():
            return self.apply(SearchFilter(text=text))
        return self.apply(NoFilter())

    def select_tag(self, tag: Optional[str]) -> LinkView:
        return self.apply(TagFilter(tag=tag) if tag else NoFilter())

    def select_category(self, category: Optional[str]) -> LinkView:
        return self.apply(CategoryFilter(category=category) if category else NoFilter())

    def show_all(self) -> LinkView:
        return self.apply(NoFilter())

    async def add(self, data: LinkInput) -> Link:
        link = await self.store.create(self.session, data)
        logger.info(f"Added link {link.id}: {link.url}")
        await self.refresh()
        return link

    async def edit(self, link_id: str, data: LinkInput) -> Link:
        link = await self.store.update(self.session, link_id, data)
        logger.info(f"Updated link {link_id}")
        await self.refresh()
        return link

    async def remove(self, link_id: str) -> None:
        await self.store.delete(self.session, link_id)
        logger.info(f"Deleted link {link_id}")
        await self.refresh()

    async def export_document(self, on: Optional[date] = None) -> Optional[ExportDocument]:
        """Export the full record set, bypassing any filter.

        Returns:
            The export document, or None when there is nothing to export

        Raises:
            StoreError: If fetching the records fails
        """
        links = await self.store.list_by_owner(self.session, self.session.user_id)
        if not links:
            logger.info(f"Nothing to export for {self.session.user_id}")
            return None

        document = ExportDocument(
            filename=export_filename(on),
            content=dump_export(links),
            count=len(links),
        )
        logger.info(f"Exported {document.count} links for {self.session.user_id}")
        return document

    async def import_document(self, content: Union[str, bytes]) -> ImportResult:
        """Validate a document and insert all of its links in one request.

        Raises:
            FormatError: If the document is malformed
            StoreError: If the bulk insert fails; nothing is reported as imported
        """
        items = parse_import(content)
        if not items:
            return ImportResult(imported=0, message="Import file contains no links.")

        inserted = await self.store.bulk_insert(self.session, items)
        logger.info(f"Imported {len(inserted)} links for {self.session.user_id}")
        await self.refresh()
        return ImportResult(
            imported=len(inserted),
            message=f"Successfully imported {len(inserted)} links!",
        )
