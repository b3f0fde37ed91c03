"""Chat orchestrator.

One chat turn:
1. history + new user message
2. retrieved knowledge-base chunks spliced in as a system message right
   before the new user message
3. superprompt prepended to the leading system message
4. model call
5. grounded answers pass through the output validator
6. learning-progress evaluation and usage recording as background tasks
   (best effort, awaited by drain)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, List, Optional, Sequence, Set

from edurag.config import get_config
from edurag.models import ChatMessage, ChatResult, ModelConfig, UsageRecord
from edurag.services.collaborators import UsageLog
from edurag.services.completions import create_chat_completion
from edurag.services.http_client import ResilientClient
from edurag.services.learning_progress import LearningProgressEngine
from edurag.services.output_validator import OutputValidator
from edurag.services.retriever import Retriever

logger = logging.getLogger(__name__)

REFUSAL_MESSAGE = (
    "I'm sorry, I can't give a good answer to that based on this course's materials. "
    "Could you rephrase your question or ask about a topic covered here?"
)

GROUNDING_HEADER = "Here is relevant context from the knowledge base:"
GROUNDING_INSTRUCTION = (
    "Base your answer on this context. If it does not cover the question, say so "
    "instead of guessing."
)


def build_grounding_message(chunks: Sequence[str]) -> ChatMessage:
    context = "\n\n".join(chunks)
    return ChatMessage.system(f"{GROUNDING_HEADER}\n\n{context}\n\n{GROUNDING_INSTRUCTION}")


class ChatOrchestrator:
    """Assembles prompts, calls the model and gates its output.

    Attributes:
        client: Resilient HTTP client
        retriever: Knowledge-base retriever
        validator: Output validator for grounded answers
        progress: Learning-progress engine (optional)
        usage_log: Usage sink (optional)
    """

    def __init__(
        self,
        client: ResilientClient,
        retriever: Retriever,
        validator: OutputValidator,
        progress: Optional[LearningProgressEngine] = None,
        usage_log: Optional[UsageLog] = None,
    ) -> None:
        config = get_config()
        self.client = client
        self.retriever = retriever
        self.validator = validator
        self.progress = progress
        self.usage_log = usage_log
        self.temperature = config.chat_temperature
        self.max_tokens = config.chat_max_tokens
        self._pending: Set[asyncio.Task] = set()

    async def respond(
        self,
        history: Sequence[ChatMessage],
        new_user_text: str,
        config: ModelConfig,
        collection_id: Optional[str] = None,
        *,
        session_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> ChatResult:
        """Answer one user turn.

        Args:
            history: Previous messages; a system message may only come first
            new_user_text: The user's new message
            config: Chatbot model settings
            collection_id: Knowledge base to ground the answer in
            session_id: Chat session for learning-progress evaluation
            user_id: User the usage is attributed to

        Returns:
            ChatResult with the delivered text and the answering call's tokens

        Raises:
            ValueError: If a system message is not first in history
            ConfigError: If the API key is missing (no request is sent)
            AuthenticationError: If the key is rejected
            MalformedResponseError: If the model answer has no content
            UpstreamError / RateLimited / RequestTimeout / NetworkError:
                If the provider keeps failing after retries
        """
        self._check_order(history)
        config.require_credentials()

        user_message = ChatMessage.user(new_user_text)
        messages: List[ChatMessage] = [*history, user_message]

        grounding: Optional[ChatMessage] = None
        if collection_id:
            chunks = await self.retriever.retrieve(collection_id, new_user_text, config)
            if chunks:
                grounding = build_grounding_message([chunk.content for chunk in chunks])
                messages.insert(len(messages) - 1, grounding)
                logger.debug(f"Spliced {len(chunks)} context chunks from {collection_id}")

        if config.superprompt and messages[0].role == "system":
            messages[0] = ChatMessage.system(f"{config.superprompt}\n\n{messages[0].content}")

        response = await create_chat_completion(
            self.client,
            config,
            [message.to_dict() for message in messages],
            self.temperature,
            self.max_tokens,
        )
        answer = response.content
        tokens_used = response.total_tokens

        result = ChatResult(text=answer, tokens_used=tokens_used, grounded=grounding is not None)
        if grounding is not None:
            verdict = await self.validator.validate(answer, grounding.content, config)
            result.allowed = verdict.allow
            result.validation_reason = verdict.reason
            if not verdict.allow:
                result.text = REFUSAL_MESSAGE

        if session_id and self.progress is not None:
            transcript = [*history, user_message, ChatMessage.assistant(result.text)]
            self._schedule(
                self.progress.evaluate(session_id, transcript, config),
                "Learning progress evaluation crashed",
            )

        self._record_usage(UsageRecord(tokens_used, collection_id=collection_id, user_id=user_id))
        return result

    async def drain(self) -> None:
        """Wait for pending progress evaluations and usage records."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    @staticmethod
    def _check_order(history: Sequence[ChatMessage]) -> None:
        for index, message in enumerate(history):
            if message.role == "system" and index != 0:
                raise ValueError(f"System message must be first, found at position {index}")

    def _record_usage(self, record: UsageRecord) -> None:
        if self.usage_log is None:
            return
        self._schedule(self.usage_log.append(record), "Error recording usage")

    def _schedule(self, coro: Awaitable, error_prefix: str) -> None:
        task = asyncio.create_task(coro)
        self._pending.add(task)

        def done(finished: asyncio.Task) -> None:
            self._pending.discard(finished)
            if not finished.cancelled() and finished.exception() is not None:
                logger.error(f"{error_prefix}: {finished.exception()}")

        task.add_done_callback(done)
