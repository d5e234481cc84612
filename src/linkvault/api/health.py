"""Health check endpoint."""

from fastapi import APIRouter

router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    # Read live globals from api module at request time.
    from linkvault import api
    from linkvault.core.record_store import FileRecordStore

    store = api.record_store
    store_ready = store is not None
    backend = api.runtime_config.store_backend if api.runtime_config else "unknown"

    load_errors = []
    if isinstance(store, FileRecordStore):
        store_ready = store.links_path.is_dir()
        load_errors = store.load_errors

    return {
        "status": "healthy" if store_ready else "degraded",
        "version": api.VERSION,
        "store_backend": backend,
        "store_ready": store_ready,
        "load_error_count": len(load_errors),
        "recent_load_errors": load_errors[-10:],
        "ai_suggestions_configured": bool(api.tag_suggester and api.tag_suggester.is_configured),
    }
