"""FastAPI application and routes."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config import ConfigManager
from ..core.auth import SessionResolver
from ..core.metadata import MetadataFetcher
from ..core.record_store import RecordStore, create_record_store
from ..core.tag_suggester import TagSuggester
from ..models.config import AppConfig, EnvSettings

logger = logging.getLogger(__name__)

VERSION = "0.1.0"

# Global state (initialized in lifespan)
config_manager: ConfigManager = None
runtime_config: AppConfig = None
runtime_env_settings: EnvSettings = None
record_store: RecordStore = None
session_resolver: SessionResolver = None
metadata_fetcher: MetadataFetcher = None
tag_suggester: TagSuggester = None


def configure(app_config: AppConfig, env_settings: EnvSettings, store: RecordStore) -> None:
    """Install runtime services into module state."""
    global runtime_config, runtime_env_settings, record_store
    global session_resolver, metadata_fetcher, tag_suggester

    runtime_config = app_config
    runtime_env_settings = env_settings
    record_store = store
    session_resolver = SessionResolver(app_config, env_settings)
    metadata_fetcher = MetadataFetcher(timeout=app_config.metadata_timeout_seconds)
    tag_suggester = TagSuggester(app_config, env_settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    global config_manager

    logger.info("Starting LinkVault API...")

    config_manager = ConfigManager()
    try:
        app_config = config_manager.load_app_config()
        env_settings = config_manager.load_env_settings()
    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        raise

    store = await create_record_store(app_config, env_settings)
    configure(app_config, env_settings, store)

    logger.info(f"Initialized with {app_config.store_backend} record store")

    yield

    logger.info("Shutting down LinkVault API...")


def create_app(use_lifespan: bool = True, allowed_origins: list[str] = None) -> FastAPI:
    """Build the FastAPI app with middleware and routers."""
    from .health import router as health_router
    from .links import router as links_router
    from .metadata import router as metadata_router

    application = FastAPI(
        title="LinkVault API",
        description="Personal link bookmarking with tags, categories and search",
        version=VERSION,
        lifespan=lifespan if use_lifespan else None,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins or [],
        allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(links_router, prefix="/api/v1", tags=["links"])
    application.include_router(health_router, prefix="/api/v1", tags=["health"])
    application.include_router(metadata_router, prefix="/api", tags=["metadata"])

    @application.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": "LinkVault API",
            "version": VERSION,
            "docs": "/docs",
            "health": "/api/v1/health",
        }

    return application


cors_origins: list[str] = []
try:
    cors_origins.extend(ConfigManager().load_app_config().allowed_origins)
except Exception:
    # Config may be absent in test and import contexts
    pass

app = create_app(allowed_origins=cors_origins)
