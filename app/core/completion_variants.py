"""Splitting of delimiter-separated LLM completions into labelled variants."""

import re

from app.core.schemas_completions import CompletionVariant

VARIANT_DELIMITER = "||"
MAX_VARIANTS = 3

CONTINUATION_LABELS = ("continuation", "keywords", "reader_expectation")
REACTION_LABELS = ("refinement", "keywords", "reader_reaction")

# Fragment boundaries used to find the tail of the writer's text
_FRAGMENT_SPLIT = re.compile(r"[.,。 ，]|\s")


class CompletionError(Exception):
    """Raised when the hosted LLM call fails or returns nothing."""


def split_variants(raw: str, labels: tuple[str, ...]) -> list[CompletionVariant]:
    """
    Split a raw completion on ``||`` into at most three labelled variants.

    Empty pieces are dropped; pieces beyond the third are discarded.
    """
    pieces = [piece.strip() for piece in raw.split(VARIANT_DELIMITER)]
    pieces = [piece for piece in pieces if piece][:MAX_VARIANTS]
    return [
        CompletionVariant(label=labels[index % len(labels)], text=piece)
        for index, piece in enumerate(pieces)
    ]


def last_fragment(text: str) -> str:
    """Text after the last sentence/clause boundary or whitespace (may be empty)."""
    return _FRAGMENT_SPLIT.split(text)[-1]
