"""Configuration for the EduRAG engine.

Policy constants of the pipeline, loaded from environment variables with
defaults taken from the production chatbot builder.

Example:
    export CHUNK_MAX_LENGTH=1000
    export RETRIEVAL_TOP_K=3
    export MAX_CONFIDENCE_STEP=1.0
"""

import logging
from dataclasses import asdict, dataclass, field
from os import getenv
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def _env_float(name: str, default: str) -> float:
    return float(getenv(name, default))


def _env_int(name: str, default: str) -> int:
    return int(getenv(name, default))


@dataclass
class EngineConfig:
    """Configuration for the engine.

    Attributes:
        request_timeout: Hard timeout per outbound call (seconds)
        max_retries: Retries after the first attempt for 429/5xx/transport errors
        backoff_base: Base delay for exponential backoff (seconds)
        max_retry_after: Longest honored Retry-After wait (seconds)
        chunk_max_length: Maximum characters per chunk
        embedding_model: Model id sent to the embeddings endpoint
        embedding_dimension: Expected vector length (None = not checked)
        embedding_batch_size: Chunks per ingestion batch
        chunk_delay: Pause after each embedded chunk (seconds)
        batch_delay: Pause between ingestion batches (seconds)
        top_k: Default number of retrieved chunks
        min_similarity: Default similarity floor (0-1)
        chat_temperature: Sampling temperature for answers
        chat_max_tokens: Completion budget for answers
        validator_temperature: Sampling temperature for the output validator
        validator_max_tokens: Completion budget for the output validator
        validator_accept_threshold: Lowest score (1-5) the validator accepts
        evaluator_temperature: Sampling temperature for progress evaluation
        evaluator_max_tokens: Completion budget for progress evaluation
        max_confidence_step: Largest confidence change per update
        completed_threshold: Confidence at which an objective is completed
        session_dir: Directory for persisted learning progress (None = memory)
    """

    # Request client
    request_timeout: float = field(default_factory=lambda: _env_float("REQUEST_TIMEOUT", "30"))
    max_retries: int = field(default_factory=lambda: _env_int("MAX_RETRIES", "3"))
    backoff_base: float = field(default_factory=lambda: _env_float("RETRY_BACKOFF_BASE", "1.0"))
    max_retry_after: float = field(default_factory=lambda: _env_float("MAX_RETRY_AFTER", "60"))

    # Chunking / embeddings
    chunk_max_length: int = field(default_factory=lambda: _env_int("CHUNK_MAX_LENGTH", "1000"))
    embedding_model: str = field(
        default_factory=lambda: getenv("EMBEDDING_MODEL", "text-embedding-3-small")
    )
    embedding_dimension: Optional[int] = None
    embedding_batch_size: int = field(default_factory=lambda: _env_int("EMBEDDING_BATCH_SIZE", "3"))
    chunk_delay: float = field(default_factory=lambda: _env_float("CHUNK_DELAY", "0.2"))
    batch_delay: float = field(default_factory=lambda: _env_float("BATCH_DELAY", "1.0"))

    # Retrieval
    top_k: int = field(default_factory=lambda: _env_int("RETRIEVAL_TOP_K", "3"))
    min_similarity: float = field(default_factory=lambda: _env_float("MIN_SIMILARITY", "0.7"))

    # Chat
    chat_temperature: float = 0.7
    chat_max_tokens: int = 1000

    # Output validator
    validator_temperature: float = 0.0
    validator_max_tokens: int = 300
    validator_accept_threshold: int = field(
        default_factory=lambda: _env_int("VALIDATOR_ACCEPT_THRESHOLD", "3")
    )

    # Learning progress
    evaluator_temperature: float = 0.2
    evaluator_max_tokens: int = 600
    max_confidence_step: float = field(
        default_factory=lambda: _env_float("MAX_CONFIDENCE_STEP", "1.0")
    )
    completed_threshold: float = 4.0
    session_dir: Optional[Path] = field(
        default_factory=lambda: Path(getenv("SESSION_DIR")) if getenv("SESSION_DIR") else None
    )

    debug: bool = getenv("DEBUG", "false").lower() == "true"

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.request_timeout <= 0:
            raise ValueError(f"request_timeout must be positive, got {self.request_timeout}")

        if self.max_retries < 0:
            raise ValueError(f"max_retries must be non-negative, got {self.max_retries}")

        if self.backoff_base < 0:
            raise ValueError(f"backoff_base must be non-negative, got {self.backoff_base}")

        if not (0 < self.max_retry_after < float("inf")):
            raise ValueError(
                f"max_retry_after must be positive and finite, got {self.max_retry_after}"
            )

        if self.chunk_max_length <= 0:
            raise ValueError(f"chunk_max_length must be positive, got {self.chunk_max_length}")

        if self.embedding_batch_size <= 0:
            raise ValueError(
                f"embedding_batch_size must be positive, got {self.embedding_batch_size}"
            )

        if self.chunk_delay < 0 or self.batch_delay < 0:
            raise ValueError("chunk_delay and batch_delay must be non-negative")

        if self.top_k <= 0:
            raise ValueError(f"top_k must be positive, got {self.top_k}")

        if not (0 <= self.min_similarity <= 1):
            raise ValueError(f"min_similarity must be in [0, 1], got {self.min_similarity}")

        if not (0 <= self.chat_temperature <= 2):
            raise ValueError(f"chat_temperature must be in [0, 2], got {self.chat_temperature}")

        if not (1 <= self.validator_accept_threshold <= 5):
            raise ValueError(
                f"validator_accept_threshold must be in [1, 5], "
                f"got {self.validator_accept_threshold}"
            )

        if not (0 < self.max_confidence_step <= 5):
            raise ValueError(
                f"max_confidence_step must be in (0, 5], got {self.max_confidence_step}"
            )

        if not (0 < self.completed_threshold <= 5):
            raise ValueError(
                f"completed_threshold must be in (0, 5], got {self.completed_threshold}"
            )

        if self.debug:
            logger.info("DEBUG mode enabled")
            logger.debug(f"Configuration: {self}")

    def to_dict(self) -> dict:
        """Convert configuration to dictionary."""
        data = asdict(self)
        data["session_dir"] = str(self.session_dir) if self.session_dir else None
        return data


# Global config instance
_config: Optional[EngineConfig] = None


def get_config() -> EngineConfig:
    """Get global engine configuration."""
    global _config
    if _config is None:
        _config = EngineConfig()
    return _config


def set_config(config: EngineConfig) -> None:
    """Set global engine configuration.

    Args:
        config: New configuration instance
    """
    global _config
    _config = config
    logger.info("Engine configuration updated")


def reset_config() -> None:
    """Reset configuration to defaults."""
    global _config
    _config = None
    logger.info("Engine configuration reset to defaults")
