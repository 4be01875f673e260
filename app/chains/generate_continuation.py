"""LLM chain for continuation suggestions on the writer's text."""

from dataclasses import dataclass, field

from app.core.completion_variants import (
    CONTINUATION_LABELS,
    last_fragment,
    split_variants,
)
from app.core.config import Settings
from app.core.llm import complete
from app.core.logging import get_logger
from app.core.schemas_completions import CompletionVariant

logger = get_logger(__name__)


# ruff: noqa: E501
SYSTEM_PROMPT = """You are a helpful AI assistant that provides text completion suggestions. Your task is to provide 3 different types of suggestions:

1. Direct text completion - a natural, coherent continuation of the text to the next punctuation mark that flows naturally from what was written
2. Keyword prompt - 2-3 simple keywords or short phrases that could inspire the writer to continue
3. Reader expectation - what a typical reader would expect or want to read next based on the current context

Format rules:
- Keep all suggestions concise and relevant to the context
- Maintain the style and tone of the original text
- Separate each suggestion with the delimiter "||" (two vertical bars)
- Don't include any explanations or additional text
- Format your response exactly like: "direct completion||keywords||reader expectation"
"""


@dataclass
class ContinuationOutput:
    raw: str
    original_context: str
    variants: list[CompletionVariant] = field(default_factory=list)


def build_user_prompt(prompt: str, tail: str) -> str:
    return (
        f"Writer's text: {prompt}\n\n"
        f"Continue directly from the last fragment \"{tail}\" without repeating it."
    )


def generate_continuation(prompt: str, settings: Settings | None = None) -> ContinuationOutput:
    """
    Ask the LLM to continue the writer's text.

    Args:
        prompt: The writer's current text
        settings: Application settings

    Returns:
        ContinuationOutput with the raw completion, the fragment it continues
        from and up to three labelled variants

    Raises:
        CompletionError: If the upstream call fails
    """
    tail = last_fragment(prompt)
    logger.info(
        f"Generating continuation for {len(prompt)} characters",
        extra={"extra_data": {"tail": tail}},
    )

    raw = complete(SYSTEM_PROMPT, build_user_prompt(prompt, tail), settings)
    return ContinuationOutput(
        raw=raw,
        original_context=tail,
        variants=split_variants(raw, CONTINUATION_LABELS),
    )
