"""Pydantic schemas for the completion proxy."""

from pydantic import BaseModel, ConfigDict, Field


class CompletionVariant(BaseModel):
    label: str
    text: str


class SuggestionRequest(BaseModel):
    prompt: str | None = Field(default=None, description="Writer text to continue")


class CommentSuggestionRequest(BaseModel):
    """Either the document plus a selected excerpt, or a free-form prompt."""

    model_config = ConfigDict(populate_by_name=True)

    content: str | None = Field(default=None, description="Full document text")
    selected_text: str | None = Field(default=None, alias="selectedText")
    prompt: str | None = Field(default=None, description="Free-form prompt")


class SuggestionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    suggestion: str
    original_context: str | None = Field(default=None, alias="originalContext")
    variants: list[CompletionVariant] = Field(default_factory=list)
