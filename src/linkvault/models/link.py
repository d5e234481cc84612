"""Link data models."""

from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    return v if v.strip() else None


def split_tags(value: Any) -> List[str]:
    """Normalize a tag list or a comma-separated tag string.

    Example:
        "python, web ,, api" -> ["python", "web", "api"]
    """
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)):
        raise ValueError("Tags must be a list or a comma-separated string.")
    return [t.strip() for t in value if isinstance(t, str) and t.strip()]


class LinkInput(BaseModel):
    """Mutable link fields submitted by the add and edit flows."""

    url: str = Field(..., description="The bookmarked URL")
    title: Optional[str] = Field(None, description="Page or user-supplied title")
    description: Optional[str] = Field(None, description="Free-form notes")
    tags: List[str] = Field(default_factory=list, description="Free-form labels")
    category: Optional[str] = Field(None, description="Single optional category")
    favicon_url: Optional[str] = Field(None, description="Absolute favicon URL")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "url": "https://github.com/python/cpython",
                "title": "CPython",
                "description": "Reference interpreter source",
                "tags": ["python", "github"],
                "category": "Development",
                "favicon_url": "https://github.com/favicon.ico",
            }
        }
    )

    @field_validator("url", mode="before")
    @classmethod
    def validate_url(cls, v: Any) -> Any:
        """URL is required and cannot be blank."""
        if not isinstance(v, str) or not v.strip():
            raise ValueError("URL is required.")
        return v

    @field_validator("title", "description", "category", "favicon_url", mode="before")
    @classmethod
    def validate_optional_text(cls, v: Any) -> Any:
        """Empty optional fields normalize to absent."""
        if isinstance(v, str):
            return _blank_to_none(v)
        return v

    @field_validator("tags", mode="before")
    @classmethod
    def validate_tags(cls, v: Any) -> List[str]:
        """Accept a list or the form's comma-separated string."""
        return split_tags(v)

    def to_record(self, owner_id: str) -> dict:
        """Row payload for the store, scoped to ``owner_id``."""
        data = self.model_dump(mode="json")
        data["user_id"] = owner_id
        return data


class ImportedLink(LinkInput):
    """A link read from an export document."""

    created_at: Optional[datetime] = Field(
        None, description="Original creation time, if the document carried one"
    )

    @field_validator("created_at")
    @classmethod
    def validate_created_at(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Treat naive timestamps as UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def to_record(self, owner_id: str) -> dict:
        data = super().to_record(owner_id)
        if data.get("created_at") is None:
            data.pop("created_at", None)
        return data


class Link(BaseModel):
    """A stored link record."""

    id: str = Field(..., description="Store-assigned identifier")
    owner_id: str = Field(..., alias="user_id", description="Owning user id")
    url: str
    title: Optional[str] = None
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    favicon_url: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("tags", mode="before")
    @classmethod
    def validate_tags(cls, v: Any) -> List[str]:
        # Stored rows may carry null for an empty tag array
        if v is None:
            return []
        return v
