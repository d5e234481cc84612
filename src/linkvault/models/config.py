"""Configuration models."""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvSettings(BaseSettings):
    """Settings loaded from .env file (secrets and credentials)."""

    # Bearer token accepted by the API when the file backend is active
    api_token: Optional[str] = Field(None, description="Local API bearer token")

    # Managed database service
    service_anon_key: Optional[str] = Field(
        None, description="Public API key of the hosted database service"
    )

    # Tag suggestion endpoint
    ai_api_key: Optional[str] = Field(None, description="Chat-completion API key")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class AppConfig(BaseModel):
    """Application configuration from config.yaml."""

    # Server settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")
    allowed_origins: List[str] = Field(
        default_factory=list, description="Extra CORS origins for the web client"
    )

    # Record store
    store_backend: Literal["file", "rest"] = Field(
        default="file",
        description="'file' keeps YAML records locally; 'rest' uses the hosted table API.",
    )
    data_path: Optional[str] = Field(
        None, description="Directory for the file backend (required when store_backend=file)"
    )
    local_owner_id: str = Field(
        default="local", min_length=1, description="Owner id used by the file backend"
    )
    service_url: Optional[str] = Field(
        None, description="Base URL of the hosted database service (rest backend)"
    )
    links_table: str = Field(default="links", description="Table holding link rows")

    # Metadata lookup
    metadata_timeout_seconds: float = Field(default=5.0, gt=0, le=60)
    autofill_metadata: bool = Field(
        default=True, description="Fetch title/favicon when a new link omits them"
    )

    # Tag suggestions
    ai_endpoint: Optional[str] = Field(None, description="Chat-completion endpoint URL")
    ai_model: str = Field(default="gpt-3.5-turbo")
    ai_max_tokens: int = Field(default=50, ge=1, le=1000)
    ai_temperature: float = Field(default=0.5, ge=0.0, le=2.0)
    ai_timeout_seconds: Optional[float] = Field(
        None, description="Request timeout for suggestions (None waits indefinitely)"
    )

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "host": "127.0.0.1",
            "port": 8000,
            "store_backend": "file",
            "data_path": "/home/user/.linkvault/data",
            "local_owner_id": "local",
            "autofill_metadata": True,
            "ai_endpoint": "https://api.openai.com/v1/chat/completions",
            "ai_model": "gpt-3.5-turbo",
            "allowed_origins": ["http://localhost:3000"],
        }
    })
