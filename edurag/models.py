"""Data models for the EduRAG engine.

Defines core data structures for model configuration, chat messages,
documents, chunks, retrieval results and learning progress.
"""

from copy import deepcopy
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from edurag.exceptions import ConfigError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ModelConfig:
    """Language model settings for one chat turn.

    Attributes:
        provider: Provider name (informational, e.g. "openai")
        model: Chat model id
        api_key: Bearer token for the provider
        base_url: OpenAI-compatible API root (no trailing slash)
        superprompt: Operator-level prefix for every chatbot's system prompt
    """

    provider: str
    model: str
    api_key: str
    base_url: str
    superprompt: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "base_url", (self.base_url or "").rstrip("/"))

    def require_credentials(self) -> None:
        """Fail fast before any outbound call.

        Raises:
            ConfigError: If api key, base url or model is missing
        """
        if not self.api_key or not self.api_key.strip():
            raise ConfigError("API key is not configured", config_key="api_key")
        if not self.base_url:
            raise ConfigError("Base URL is not configured", config_key="base_url")
        if not self.model:
            raise ConfigError("Model is not configured", config_key="model")

    def auth_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def __repr__(self) -> str:
        # never leak the key into logs
        return (
            f"ModelConfig(provider={self.provider!r}, model={self.model!r}, "
            f"base_url={self.base_url!r}, superprompt={'set' if self.superprompt else None})"
        )


@dataclass(frozen=True)
class ChatMessage:
    """One message of a conversation.

    Attributes:
        role: system, user or assistant
        content: Message text
    """

    role: str
    content: str

    ROLES = ("system", "user", "assistant")

    def __post_init__(self):
        if self.role not in self.ROLES:
            raise ValueError(f"Invalid role: {self.role!r}")
        if self.content is None:
            raise ValueError("Message content cannot be None")

    @classmethod
    def system(cls, content: str) -> "ChatMessage":
        return cls("system", content)

    @classmethod
    def user(cls, content: str) -> "ChatMessage":
        return cls("user", content)

    @classmethod
    def assistant(cls, content: str) -> "ChatMessage":
        return cls("assistant", content)

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class Document:
    """A document registered in a chatbot's knowledge base.

    Attributes:
        id: Unique document identifier
        collection_id: Owning chatbot / collection
        content: Full extracted text
        title: Human-readable title (file name)
        metadata: Custom metadata; holds chunk_count after ingestion
        created_at: Registration timestamp
    """

    id: str
    collection_id: str
    content: str
    title: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)

    @property
    def chunk_count(self) -> Optional[int]:
        return self.metadata.get("chunk_count")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "collection_id": self.collection_id,
            "title": self.title,
            "metadata": self.metadata,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class DocumentChunk:
    """A bounded piece of a document prepared for embedding.

    Attributes:
        document_id: Parent document id
        collection_id: Owning chatbot / collection
        content: Chunk text
        position: Chunk number inside the document
        embedding: Vector, or None while processing
    """

    document_id: str
    collection_id: str
    content: str
    position: int = 0
    embedding: Optional[List[float]] = None

    def __post_init__(self):
        if not self.content or not self.content.strip():
            raise ValueError("Chunk content cannot be empty")

        if self.position < 0:
            raise ValueError(f"Chunk position must be non-negative, got {self.position}")

    @property
    def id(self) -> str:
        return f"{self.document_id}_chunk_{self.position}"

    @property
    def is_embedded(self) -> bool:
        return bool(self.embedding)


@dataclass(frozen=True)
class RetrievedChunk:
    """A chunk returned by similarity search. Never persisted."""

    content: str
    similarity: float
    document_id: Optional[str] = None

    def __post_init__(self):
        if not (0 <= self.similarity <= 1):
            raise ValueError(f"Similarity must be in [0, 1], got {self.similarity}")

    def __repr__(self) -> str:
        return f"RetrievedChunk(similarity={self.similarity:.3f}, text={self.content[:50]}...)"


class ObjectiveStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


MIN_CONFIDENCE = 0.0
MAX_CONFIDENCE = 5.0


def status_for_confidence(
    confidence: float, completed_threshold: float = 4.0
) -> ObjectiveStatus:
    """Derive an objective's status from its confidence."""
    if confidence >= completed_threshold:
        return ObjectiveStatus.COMPLETED
    if confidence > MIN_CONFIDENCE:
        return ObjectiveStatus.IN_PROGRESS
    return ObjectiveStatus.NOT_STARTED


@dataclass
class LearningObjective:
    """One mastery dimension tracked per chat session.

    Attributes:
        id: Fixed objective id
        title: Display title
        description: What the evaluator should look for
        status: not_started, in_progress or completed
        confidence: Smoothed mastery estimate in [0, 5]
    """

    id: str
    title: str
    description: str = ""
    status: ObjectiveStatus = ObjectiveStatus.NOT_STARTED
    confidence: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LearningObjective":
        return cls(
            id=str(data["id"]),
            title=data["title"],
            description=data.get("description", ""),
            status=ObjectiveStatus(data.get("status", ObjectiveStatus.NOT_STARTED.value)),
            confidence=float(data.get("confidence", 0.0)),
        )


DEFAULT_OBJECTIVES: List[LearningObjective] = [
    LearningObjective(
        id="1",
        title="Basic Understanding",
        description=(
            "Comprehension of core concepts, explaining ideas in their own words, "
            "quality of questions asked, engagement with the material"
        ),
    ),
    LearningObjective(
        id="2",
        title="Practical Application",
        description=(
            "Attempts to apply concepts, problem-solving, quality of exercises "
            "completed, improvement over time"
        ),
    ),
    LearningObjective(
        id="3",
        title="Advanced Understanding & Transfer",
        description=(
            "Connections to other topics, critical thinking and analysis, "
            "understanding of relationships, extending concepts"
        ),
    ),
]


def default_objectives() -> List[LearningObjective]:
    """Fresh copies of the default objectives for a new session."""
    return [replace(objective) for objective in DEFAULT_OBJECTIVES]


@dataclass
class LearningProgress:
    """Learning progress of one chat session.

    Attributes:
        chatbot_id: Chatbot the session belongs to
        session_id: Chat session id
        objectives: Fixed, ordered objectives
        last_updated: Last mutation timestamp (UTC)
    """

    chatbot_id: str
    session_id: str
    objectives: List[LearningObjective] = field(default_factory=default_objectives)
    last_updated: datetime = field(default_factory=utcnow)

    def get_objective(self, objective_id: str) -> Optional[LearningObjective]:
        for objective in self.objectives:
            if objective.id == objective_id:
                return objective
        return None

    def touch(self) -> None:
        self.last_updated = utcnow()

    def copy(self) -> "LearningProgress":
        return deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chatbot_id": self.chatbot_id,
            "session_id": self.session_id,
            "objectives": [objective.to_dict() for objective in self.objectives],
            "last_updated": self.last_updated.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LearningProgress":
        return cls(
            chatbot_id=data["chatbot_id"],
            session_id=data["session_id"],
            objectives=[LearningObjective.from_dict(o) for o in data["objectives"]],
            last_updated=datetime.fromisoformat(data["last_updated"]),
        )


@dataclass
class ValidationVerdict:
    """Outcome of the output validator."""

    allow: bool
    reason: str = ""
    score: Optional[int] = None


@dataclass
class ChatResult:
    """Answer of one chat turn.

    Attributes:
        text: Answer delivered to the user (refusal when rejected)
        tokens_used: total_tokens of the answering model call
        grounded: Whether retrieved context was spliced into the prompt
        allowed: Validator decision (True when not validated)
        validation_reason: Validator explanation, if validated
    """

    text: str
    tokens_used: int = 0
    grounded: bool = False
    allowed: bool = True
    validation_reason: Optional[str] = None


@dataclass
class UsageRecord:
    """Token usage of one chat turn."""

    tokens_used: int
    collection_id: Optional[str] = None
    user_id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "collection_id": self.collection_id,
            "tokens_used": self.tokens_used,
            "user_id": self.user_id,
            "created_at": self.created_at.isoformat(),
        }
