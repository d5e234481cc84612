"""Authenticated session model."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Session(BaseModel):
    """Identity of the caller, passed explicitly to components that need it."""

    user_id: str = Field(..., min_length=1, description="Authenticated owner id")
    access_token: Optional[str] = Field(
        None, description="Bearer token forwarded to the backing store"
    )
    email: Optional[str] = Field(None, description="Account email, when known")

    model_config = ConfigDict(frozen=True)
