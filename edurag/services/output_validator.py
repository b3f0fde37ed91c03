"""Output validator.

Second model call that scores a grounded answer for topical and
educational fitness. Only a confident negative verdict blocks an answer:
any parse or request failure lets the answer through.
"""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import ValidationError

from edurag.config import get_config
from edurag.exceptions import EduRAGException, ValidationParseError
from edurag.models import ModelConfig, ValidationVerdict
from edurag.schemas import ValidatorVerdictSchema, load_model_json
from edurag.services.completions import create_chat_completion
from edurag.services.http_client import ResilientClient

logger = logging.getLogger(__name__)

VALIDATOR_PROMPT = """You review answers of an educational chatbot.

Score the ANSWER from 1 to 5 for how well it stays on topic and serves the
learner, judged against the CONTEXT from the chatbot's knowledge base:
5 - accurate, on topic and educationally useful
4 - on topic with minor gaps
3 - acceptable, loosely related to the context
2 - mostly off topic or misleading
1 - off topic, harmful or contradicting the context

Set "allow" to true only if the score is {threshold} or higher.

Respond with a single JSON object and nothing else:
{{"score": <1-5>, "reason": "<one sentence>", "allow": <true|false>}}"""


class OutputValidator:
    """Scores answers with a second chat call and vetoes weak ones."""

    def __init__(self, client: ResilientClient, accept_threshold: Optional[int] = None) -> None:
        config = get_config()
        self.client = client
        self.accept_threshold = accept_threshold or config.validator_accept_threshold
        self.temperature = config.validator_temperature
        self.max_tokens = config.validator_max_tokens

    async def validate(
        self, answer_text: str, grounding_context: str, config: ModelConfig
    ) -> ValidationVerdict:
        """Score an answer against its grounding context.

        Args:
            answer_text: Raw model answer
            grounding_context: System grounding message the answer was built on
            config: Chatbot model settings

        Returns:
            ValidationVerdict; allow=True whenever the verdict cannot be obtained
        """
        messages = [
            {"role": "system", "content": VALIDATOR_PROMPT.format(threshold=self.accept_threshold)},
            {
                "role": "user",
                "content": f"CONTEXT:\n{grounding_context}\n\nANSWER:\n{answer_text}",
            },
        ]

        try:
            response = await create_chat_completion(
                self.client, config, messages, self.temperature, self.max_tokens
            )
            verdict = self._parse(response.content)
        except ValidationParseError as e:
            logger.warning(f"Validator answer unreadable, allowing: {e.message}")
            return ValidationVerdict(allow=True, reason="validator answer unreadable")
        except EduRAGException as e:
            logger.warning(f"Validator call failed, allowing: {e.message}")
            return ValidationVerdict(allow=True, reason="validator unavailable")

        if not verdict.allow:
            logger.info(f"Answer rejected by validator (score {verdict.score}): {verdict.reason}")
        return verdict

    @staticmethod
    def _parse(raw: str) -> ValidationVerdict:
        try:
            parsed = ValidatorVerdictSchema.model_validate(load_model_json(raw))
        except (ValueError, ValidationError) as e:
            raise ValidationParseError(f"Invalid validator JSON: {e}", raw=raw) from e
        return ValidationVerdict(allow=parsed.allow, reason=parsed.reason, score=parsed.score)
