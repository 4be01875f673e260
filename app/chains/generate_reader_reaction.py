"""LLM chain for reader reactions to a selected excerpt."""

from dataclasses import dataclass, field

from app.core.completion_variants import REACTION_LABELS, split_variants
from app.core.config import Settings
from app.core.llm import complete
from app.core.logging import get_logger
from app.core.schemas_completions import CompletionVariant

logger = get_logger(__name__)


# ruff: noqa: E501
SYSTEM_PROMPT = """You are a casual reader reacting to a selected text. Your task is to provide 3 different types of feedback:

1. Text refinement - a polished, improved version of the selected text that maintains its original meaning
2. Keyword feedback - 2-3 simple keywords or short phrases that describe your reaction to the text
3. Reader reaction - a natural, conversational reaction as an average reader (1-2 sentences with natural language patterns)

Format rules:
- Keep all feedback concise and tied closely to the selected text
- For the reader reaction, include casual language and genuine emotion
- Avoid sounding like a professional critic or editor in the reader reaction
- Separate each feedback with the delimiter "||" (two vertical bars)
- Don't include any explanations or additional text
- Format your response exactly like: "refined text||keywords||reader reaction"
"""


@dataclass
class ReaderReactionOutput:
    raw: str
    variants: list[CompletionVariant] = field(default_factory=list)


def build_user_prompt(content: str, selected_text: str) -> str:
    return (
        "I am reading an article and came across this passage. React to it the way "
        "an ordinary reader would, briefly and honestly.\n\n"
        f"Document: {content}\n\n"
        f"Selected text: \"{selected_text}\"\n\n"
        "Answer casually, as in a chat, with your first reaction (1-2 sentences)."
    )


def generate_reader_reaction(
    content: str | None = None,
    selected_text: str | None = None,
    prompt: str | None = None,
    settings: Settings | None = None,
) -> ReaderReactionOutput:
    """
    Ask the LLM for reader feedback on an excerpt.

    Either ``content`` with ``selected_text`` or a free-form ``prompt`` must be
    given; the prompt is sent as-is.

    Raises:
        ValueError: If neither input form is complete
        CompletionError: If the upstream call fails
    """
    if content and selected_text:
        user_prompt = build_user_prompt(content, selected_text)
    elif prompt:
        user_prompt = prompt
    else:
        raise ValueError("Content and selectedText are required")

    logger.info(f"Generating reader reaction for {len(user_prompt)} characters")
    raw = complete(SYSTEM_PROMPT, user_prompt, settings)
    return ReaderReactionOutput(raw=raw, variants=split_variants(raw, REACTION_LABELS))
