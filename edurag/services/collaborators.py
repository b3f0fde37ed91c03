"""External collaborators consumed by the engine.

SettingsStore supplies the chatbot's model configuration per turn, UsageLog
receives token usage records. Both are protocols; the simple
implementations below cover tests and single-process deployments.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, Protocol, runtime_checkable

from edurag.models import ModelConfig, UsageRecord

logger = logging.getLogger(__name__)


@runtime_checkable
class SettingsStore(Protocol):
    async def get_config(self) -> ModelConfig: ...


@runtime_checkable
class UsageLog(Protocol):
    async def append(self, record: UsageRecord) -> None: ...


class StaticSettingsStore:
    """Settings store returning one fixed ModelConfig."""

    def __init__(self, config: ModelConfig) -> None:
        self.config = config

    async def get_config(self) -> ModelConfig:
        return self.config


class LoggingUsageLog:
    """Usage log that writes records to the log and keeps the latest in memory.

    Only the last `max_records` records are kept; `total_tokens` counts
    every record appended.
    """

    def __init__(self, max_records: int = 1000) -> None:
        if max_records <= 0:
            raise ValueError(f"max_records must be positive, got {max_records}")
        self.records: Deque[UsageRecord] = deque(maxlen=max_records)
        self._total_tokens = 0

    async def append(self, record: UsageRecord) -> None:
        self.records.append(record)
        self._total_tokens += record.tokens_used
        logger.info(
            f"Usage: collection={record.collection_id} user={record.user_id} "
            f"tokens={record.tokens_used}"
        )

    @property
    def total_tokens(self) -> int:
        return self._total_tokens
