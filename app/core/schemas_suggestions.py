"""Pydantic schemas for suggestions and their lifecycle."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

SuggestionType = Literal["append", "comment"]
ReactionType = Literal["like", "apply", "reject"]


class Suggestion(BaseModel):
    """A suggestion row as stored in the `suggestions` table."""

    model_config = ConfigDict(extra="ignore")

    id: int
    content: str = ""
    user_id: int
    wizard_session_id: str | None = None
    type: SuggestionType
    is_accepted: bool | None = None
    reaction: ReactionType | None = None
    position: int | None = Field(default=None, ge=0)
    end_position: int | None = Field(default=None, ge=0)
    selected_text: str | None = None
    created_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        """Pending iff neither an acceptance nor a reaction has been recorded."""
        return self.is_accepted is None and self.reaction is None


class SuggestionCreate(BaseModel):
    """Operator request to send a suggestion to a writer."""

    user_id: int = Field(..., description="Target writer")
    content: str = Field(..., min_length=1, description="Suggestion text")
    type: SuggestionType = Field(default="append")
    wizard_session_id: str | None = Field(default=None, description="Operator session tag")
    position: int | None = Field(default=None, ge=0, description="Span start (comment only)")
    end_position: int | None = Field(default=None, ge=0, description="Span end (comment only)")
    selected_text: str | None = Field(default=None, description="Spanned text (comment only)")

    @model_validator(mode="after")
    def check_span(self) -> "SuggestionCreate":
        if self.end_position is not None:
            if self.position is None:
                raise ValueError("end_position requires position")
            if self.end_position < self.position:
                raise ValueError("end_position must not precede position")
        return self

    def to_row(self) -> dict:
        """Build the insert row, leaving span fields out of append suggestions."""
        row = {
            "content": self.content,
            "user_id": self.user_id,
            "wizard_session_id": self.wizard_session_id,
            "type": self.type,
        }
        if self.type == "comment" and self.position is not None:
            row["position"] = self.position
            if self.end_position is not None:
                row["end_position"] = self.end_position
            if self.selected_text:
                row["selected_text"] = self.selected_text
        return row


class PartialAcceptRequest(BaseModel):
    """Writer-edited portion of an append suggestion."""

    text: str = Field(..., description="Text to append instead of the full suggestion")


class SuggestionListResponse(BaseModel):
    suggestions: list[Suggestion]
    active_suggestion: Suggestion | None = None
    total: int


class TransitionResponse(BaseModel):
    """Outcome of a writer action on a suggestion."""

    suggestion: Suggestion
    state: str
    text_changed: bool
    document_text: str | None = None
    active_suggestion: Suggestion | None = None
