"""Pydantic schemas for writers, their documents and writing snapshots."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class User(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    session_id: str | None = None
    created_at: datetime | None = None


class Document(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    user_id: int
    content: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("content", mode="before")
    @classmethod
    def none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class LoginRequest(BaseModel):
    """Writer login: pick an existing user by id, or log in/register by name."""

    name: str = Field(..., min_length=1, description="Display name")
    user_id: int | None = Field(default=None, description="Existing user picked from the list")
    session_id: str | None = Field(default=None, description="Client session token")


class LoginResponse(BaseModel):
    user: User
    document: Document | None = None
    created: bool = Field(..., description="True when a new user was registered")


class DocumentUpdate(BaseModel):
    content: str


class SnapshotCreate(BaseModel):
    """Point-in-time capture of the writer's text."""

    session_id: str
    full_text: str = ""
    typing_speed: float | None = Field(
        default=None, ge=0, description="Characters per minute; computed when omitted"
    )


class WritingSnapshot(BaseModel):
    model_config = ConfigDict(extra="ignore")

    user_id: int
    session_id: str
    timestamp: datetime
    text_length: int
    word_count: int
    sentence_count: int
    last_sentence: str = ""
    typing_speed: float = 0
    full_text: str = ""
