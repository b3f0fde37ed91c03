"""Schemas for upstream model responses.

Every JSON body coming back from the provider is validated against one of
these models before use. A mismatch surfaces as pydantic.ValidationError,
which each caller maps to its own typed failure.
"""

import json
import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, RootModel, field_validator


class EmbeddingItem(BaseModel):
    embedding: List[float] = Field(..., min_length=1)


class EmbeddingResponse(BaseModel):
    """Body of POST /embeddings."""

    data: List[EmbeddingItem] = Field(..., min_length=1)

    @property
    def first_vector(self) -> List[float]:
        return self.data[0].embedding


class CompletionMessage(BaseModel):
    role: Optional[str] = None
    content: str


class CompletionChoice(BaseModel):
    message: CompletionMessage


class CompletionUsage(BaseModel):
    total_tokens: int = 0


class ChatCompletionResponse(BaseModel):
    """Body of POST /chat/completions."""

    choices: List[CompletionChoice] = Field(..., min_length=1)
    usage: Optional[CompletionUsage] = None

    @property
    def content(self) -> str:
        return self.choices[0].message.content

    @property
    def total_tokens(self) -> int:
        return self.usage.total_tokens if self.usage else 0


class ValidatorVerdictSchema(BaseModel):
    """JSON the output validator model must return."""

    score: int = Field(..., ge=1, le=5)
    reason: str
    allow: bool


class ObjectiveScore(BaseModel):
    score: float = Field(..., ge=0, le=5)
    reason: str = ""


class ProgressEvaluation(RootModel[Dict[str, ObjectiveScore]]):
    """JSON the progress evaluator model must return, keyed by objective id."""

    @field_validator("root")
    @classmethod
    def _not_empty(cls, value: Dict[str, ObjectiveScore]) -> Dict[str, ObjectiveScore]:
        if not value:
            raise ValueError("evaluation contains no objectives")
        return value

    def require(self, objective_ids: List[str]) -> None:
        missing = [oid for oid in objective_ids if oid not in self.root]
        if missing:
            raise ValueError(f"evaluation is missing objectives: {missing}")


_CODE_FENCE = re.compile(r"```(?:json)?\s*|\s*```")


def load_model_json(raw: str) -> Any:
    """Parse JSON a model returned, tolerating markdown code fences.

    Raises:
        ValueError: If the text is not valid JSON
    """
    cleaned = _CODE_FENCE.sub("", raw or "").strip()
    return json.loads(cleaned)
