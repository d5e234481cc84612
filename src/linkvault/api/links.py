"""Link CRUD, filtering, import/export and tag suggestion endpoints."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, Response
from pydantic import BaseModel

from ..core.auth import AuthError, bearer_token
from ..core.library import LinkLibrary
from ..core.metadata import NetworkError
from ..core.record_store import LinkNotFoundError, StoreError
from ..core.tag_suggester import pick_suggestion_text
from ..core.transfer import FormatError, ensure_json_content_type
from ..models.filters import FilterState, resolve_filter
from ..models.link import Link, LinkInput
from ..models.session import Session

logger = logging.getLogger(__name__)

router = APIRouter()


class LinkListResponse(BaseModel):
    links: List[Link]
    categories: List[str]
    tags: List[str]
    total: int
    filter: FilterState


class ImportResponse(BaseModel):
    imported: int
    message: str


class SuggestTagsRequest(BaseModel):
    url: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None


class SuggestTagsResponse(BaseModel):
    tags: List[str]


async def current_session(authorization: Optional[str] = Header(default=None)) -> Session:
    """Resolve the caller's session from the Authorization header."""
    from . import session_resolver

    try:
        return await session_resolver.resolve(bearer_token(authorization))
    except AuthError as e:
        raise HTTPException(
            status_code=401, detail=str(e), headers={"WWW-Authenticate": "Bearer"}
        )


def _library(session: Session) -> LinkLibrary:
    from . import record_store

    return LinkLibrary(record_store, session)


async def _autofill(data: LinkInput) -> LinkInput:
    """Fill title and favicon from page metadata; failures are ignored."""
    from . import metadata_fetcher, runtime_config

    if not runtime_config.autofill_metadata or (data.title and data.favicon_url):
        return data

    try:
        metadata = await metadata_fetcher.fetch(data.url)
    except NetworkError as e:
        logger.warning(f"Metadata fetch failed for {data.url}: {e}")
        return data

    update = {}
    if not data.title and metadata.title:
        update["title"] = metadata.title
    if not data.favicon_url and metadata.favicon:
        update["favicon_url"] = metadata.favicon
    return data.model_copy(update=update)


@router.get("/links", response_model=LinkListResponse)
async def list_links(
    q: Optional[str] = Query(None, description="Search text"),
    tag: Optional[str] = Query(None, description="Selected tag"),
    category: Optional[str] = Query(None, description="Selected category"),
    session: Session = Depends(current_session),
):
    """List the caller's links with derived categories and tags.

    A non-blank search overrides tag and category selections.
    """
    library = _library(session)
    try:
        await library.refresh()
    except StoreError as e:
        logger.error(f"Failed to list links: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    view = library.apply(resolve_filter(q, tag, category))
    return LinkListResponse(
        links=view.links,
        categories=view.categories,
        tags=view.tags,
        total=len(view.links),
        filter=library.filter_state,
    )


@router.post("/links", response_model=Link, status_code=201)
async def create_link(data: LinkInput, session: Session = Depends(current_session)):
    """Add a link, fetching title and favicon when they are not supplied."""
    try:
        data = await _autofill(data)
        return await _library(session).add(data)
    except StoreError as e:
        logger.error(f"Failed to add link: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to add link. {e}")


@router.put("/links/{link_id}", response_model=Link)
async def update_link(
    link_id: str, data: LinkInput, session: Session = Depends(current_session)
):
    """Replace all editable fields of a link."""
    try:
        return await _library(session).edit(link_id, data)
    except LinkNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StoreError as e:
        logger.error(f"Failed to update link {link_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to update link. {e}")


@router.delete("/links/{link_id}", status_code=204)
async def delete_link(link_id: str, session: Session = Depends(current_session)):
    """Delete a link."""
    try:
        await _library(session).remove(link_id)
    except LinkNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StoreError as e:
        logger.error(f"Failed to delete link {link_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    return Response(status_code=204)


@router.get("/links/export")
async def export_links(session: Session = Depends(current_session)):
    """Download every link as a JSON document (204 when there are none)."""
    try:
        document = await _library(session).export_document()
    except StoreError as e:
        logger.error(f"Export failed: {e}")
        raise HTTPException(status_code=500, detail=f"Export failed: {e}")

    if document is None:
        return Response(status_code=204)

    return Response(
        content=document.content,
        media_type="application/json; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{document.filename}"',
            "X-Export-Count": str(document.count),
        },
    )


@router.post("/links/import", response_model=ImportResponse)
async def import_links(request: Request, session: Session = Depends(current_session)):
    """Import a JSON array of links in one bulk insert."""
    try:
        ensure_json_content_type(request.headers.get("content-type"))
    except FormatError as e:
        raise HTTPException(status_code=415, detail=f"Import failed: {e}")

    content = await request.body()
    try:
        result = await _library(session).import_document(content)
    except FormatError as e:
        raise HTTPException(status_code=400, detail=f"Import failed: {e}")
    except StoreError as e:
        logger.error(f"Import failed: {e}")
        raise HTTPException(status_code=500, detail=f"Import failed: {e}")

    return ImportResponse(imported=result.imported, message=result.message)


@router.post("/suggest-tags", response_model=SuggestTagsResponse)
async def suggest_tags(
    request: SuggestTagsRequest, session: Session = Depends(current_session)
):
    """Suggest tags from the description, title or URL."""
    from . import tag_suggester

    text = pick_suggestion_text(request.url, request.title, request.description)
    if not text:
        raise HTTPException(
            status_code=400, detail="Please enter a Description, Title, or URL first."
        )

    return SuggestTagsResponse(tags=await tag_suggester.suggest_tags(text))
