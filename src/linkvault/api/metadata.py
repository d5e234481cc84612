"""Page metadata lookup endpoint."""

import logging
from typing import Optional

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from ..core.metadata import NetworkError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/metadata")
async def get_metadata(url: Optional[str] = Query(None, description="Page URL; http:// is assumed")):
    """Return ``{title?, description?, favicon?}`` for a page, or ``{error}``."""
    from . import metadata_fetcher

    try:
        metadata = await metadata_fetcher.fetch(url)
    except NetworkError as e:
        return JSONResponse(status_code=e.status_code, content={"error": e.message})

    return metadata.model_dump(exclude_none=True)
