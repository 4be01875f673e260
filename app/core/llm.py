"""Client utilities for the hosted completion service (OpenAI-compatible API)."""

from openai import OpenAI

from app.core.completion_variants import CompletionError
from app.core.config import Settings, get_settings
from app.core.logging import get_logger

logger = get_logger(__name__)


def get_completion_client(settings: Settings | None = None) -> OpenAI:
    """
    Get an OpenAI client pointed at the configured completion endpoint.

    Args:
        settings: Application settings (defaults to cached settings)

    Returns:
        OpenAI client configured with API key and base URL
    """
    settings = settings or get_settings()
    return OpenAI(api_key=settings.LLM_API_KEY, base_url=settings.LLM_BASE_URL)


def complete(system_prompt: str, user_prompt: str, settings: Settings | None = None) -> str:
    """
    Run a single chat completion and return the raw text.

    No retries: any upstream failure is terminal for this call.

    Raises:
        CompletionError: If the upstream call fails or returns no content
    """
    settings = settings or get_settings()
    client = get_completion_client(settings)

    try:
        logger.info(f"Calling LLM with model {settings.LLM_MODEL}")
        response = client.chat.completions.create(
            model=settings.LLM_MODEL,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=settings.LLM_TEMPERATURE,
        )
    except Exception as e:
        logger.error(f"LLM call failed: {e}")
        raise CompletionError(f"Completion request failed: {e}") from e

    raw_output = response.choices[0].message.content if response.choices else None
    if not raw_output:
        raise CompletionError("Completion service returned no content")

    logger.info(f"Received LLM response: {len(raw_output)} characters")
    return raw_output
