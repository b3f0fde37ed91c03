"""Chat completions call shared by the orchestrator, validator and evaluator."""

from __future__ import annotations

import logging
from typing import Dict, List

from pydantic import ValidationError

from edurag.exceptions import MalformedResponseError
from edurag.models import ModelConfig
from edurag.schemas import ChatCompletionResponse
from edurag.services.http_client import ResilientClient

logger = logging.getLogger(__name__)


async def create_chat_completion(
    client: ResilientClient,
    config: ModelConfig,
    messages: List[Dict[str, str]],
    temperature: float,
    max_tokens: int,
) -> ChatCompletionResponse:
    """POST {base_url}/chat/completions and validate the answer.

    Args:
        client: Resilient HTTP client
        config: Chatbot model settings
        messages: Wire-form messages
        temperature: Sampling temperature
        max_tokens: Completion budget

    Returns:
        Validated ChatCompletionResponse

    Raises:
        ConfigError: If the API key is missing (no request is sent)
        MalformedResponseError: If choices[0].message.content is missing
    """
    config.require_credentials()

    data = await client.post_json(
        f"{config.base_url}/chat/completions",
        {
            "model": config.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        },
        config.api_key,
    )

    try:
        return ChatCompletionResponse.model_validate(data)
    except ValidationError as e:
        logger.error(f"Malformed chat completion response: {e.error_count()} errors")
        raise MalformedResponseError(
            f"Chat completion response has no choices[0].message.content: {e}"
        ) from e
