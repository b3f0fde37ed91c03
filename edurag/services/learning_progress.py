"""Learning-progress engine.

Tracks, per chat session, a smoothed confidence (0-5) and a status for a
fixed set of learning objectives. After each evaluated turn a model call
scores the transcript per objective and every score is applied as one
smoothed update.

Sessions live in an injected SessionStore:
- InMemorySessionStore: process-local dict (default)
- JsonSessionStore: one JSON file per session in a directory
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Union

from pydantic import ValidationError

from edurag.config import get_config
from edurag.exceptions import EduRAGException, ValidationParseError
from edurag.models import (
    MAX_CONFIDENCE,
    MIN_CONFIDENCE,
    ChatMessage,
    LearningObjective,
    LearningProgress,
    ModelConfig,
    ObjectiveStatus,
    status_for_confidence,
)
from edurag.schemas import ProgressEvaluation, load_model_json
from edurag.services.completions import create_chat_completion
from edurag.services.http_client import ResilientClient

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    def create(self, progress: LearningProgress) -> None: ...

    def get(self, session_id: str) -> Optional[LearningProgress]: ...

    def save(self, progress: LearningProgress) -> None: ...

    def clear(self, session_id: str) -> None: ...


class InMemorySessionStore:
    """Session progress kept in a dict."""

    def __init__(self) -> None:
        self._sessions: Dict[str, LearningProgress] = {}

    def create(self, progress: LearningProgress) -> None:
        self._sessions[progress.session_id] = progress

    def get(self, session_id: str) -> Optional[LearningProgress]:
        return self._sessions.get(session_id)

    def save(self, progress: LearningProgress) -> None:
        self._sessions[progress.session_id] = progress

    def clear(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)


class JsonSessionStore:
    """Session progress persisted as <directory>/<session_id>.json."""

    def __init__(self, directory: Union[str, Path]) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._cache: Dict[str, LearningProgress] = {}

    def _path(self, session_id: str) -> Path:
        safe_id = "".join(c if c.isalnum() or c in "-_" else "_" for c in session_id)
        return self.directory / f"{safe_id}.json"

    def create(self, progress: LearningProgress) -> None:
        self.save(progress)

    def get(self, session_id: str) -> Optional[LearningProgress]:
        if session_id in self._cache:
            return self._cache[session_id]

        path = self._path(session_id)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                progress = LearningProgress.from_dict(json.load(f))
        except (OSError, ValueError, KeyError) as e:
            logger.warning(f"Failed to load progress of session {session_id}: {e}")
            return None
        self._cache[session_id] = progress
        return progress

    def save(self, progress: LearningProgress) -> None:
        self._cache[progress.session_id] = progress
        with open(self._path(progress.session_id), "w", encoding="utf-8") as f:
            json.dump(progress.to_dict(), f, ensure_ascii=False, indent=2)

    def clear(self, session_id: str) -> None:
        self._cache.pop(session_id, None)
        self._path(session_id).unlink(missing_ok=True)


EVALUATOR_PROMPT = """You are a learning progress evaluator. Analyze the conversation and
evaluate the learner's progress on each of these objectives (scale 0-5):

{objectives}

IMPORTANT: respond with a valid JSON object keyed by objective id, exactly:
{example}

Do not include any additional text or formatting. Only return the JSON object."""


def build_evaluator_prompt(objectives: Iterable[LearningObjective]) -> str:
    objectives = list(objectives)
    listing = "\n".join(
        f'Objective "{o.id}": {o.title}\nConsider: {o.description}' for o in objectives
    )
    example = json.dumps(
        {o.id: {"score": "<number 0-5>", "reason": "<brief explanation>"} for o in objectives},
        indent=2,
    )
    return EVALUATOR_PROMPT.format(objectives=listing, example=example)


class LearningProgressEngine:
    """Per-session learning objectives with smoothed confidence.

    Attributes:
        store: Session store
        client: HTTP client for evaluation calls (None disables evaluate)
        max_step: Largest confidence change per update
        completed_threshold: Confidence at which an objective is completed
    """

    def __init__(
        self,
        store: Optional[SessionStore] = None,
        client: Optional[ResilientClient] = None,
        max_step: Optional[float] = None,
        completed_threshold: Optional[float] = None,
    ) -> None:
        config = get_config()
        self.store = store if store is not None else InMemorySessionStore()
        self.client = client
        self.max_step = max_step or config.max_confidence_step
        self.completed_threshold = completed_threshold or config.completed_threshold
        self.temperature = config.evaluator_temperature
        self.max_tokens = config.evaluator_max_tokens

    # ---------- Sessions ----------

    def init_session(self, chatbot_id: str, session_id: str) -> LearningProgress:
        """Create progress for a session, or return the existing one."""
        existing = self.store.get(session_id)
        if existing is not None:
            return existing

        progress = LearningProgress(chatbot_id=chatbot_id, session_id=session_id)
        self.store.create(progress)
        logger.info(f"Initialized learning progress for session {session_id}")
        return progress

    def get_progress(self, session_id: str) -> Optional[LearningProgress]:
        progress = self.store.get(session_id)
        if progress is None:
            logger.warning(f"Session {session_id} not initialized")
        return progress

    def is_initialized(self, session_id: str) -> bool:
        return self.store.get(session_id) is not None

    def clear_session(self, session_id: str) -> None:
        self.store.clear(session_id)
        logger.info(f"Cleared learning progress of session {session_id}")

    def reset_objectives(self, session_id: str) -> bool:
        """Reset every objective of a session to confidence 0, not_started."""
        progress = self.store.get(session_id)
        if progress is None:
            return False

        for objective in progress.objectives:
            objective.confidence = MIN_CONFIDENCE
            objective.status = ObjectiveStatus.NOT_STARTED
        progress.touch()
        self.store.save(progress)
        return True

    # ---------- Updates ----------

    def update(
        self,
        session_id: str,
        objective_id: str,
        *,
        status: Optional[Union[ObjectiveStatus, str]] = None,
        confidence: Optional[float] = None,
    ) -> bool:
        """Apply one update to an objective.

        The stored confidence moves toward the target by at most max_step,
        then the status is derived from it. An explicit status wins over the
        derived one.

        Args:
            session_id: Chat session
            objective_id: Objective to update
            status: Forced status
            confidence: Target confidence in [0, 5]

        Returns:
            True if applied; False (nothing changed) for an unseeded session,
            unknown objective, invalid status or out-of-range confidence
        """
        progress = self.store.get(session_id)
        if progress is None:
            logger.warning(f"Cannot update objective: session {session_id} not initialized")
            return False

        objective = progress.get_objective(objective_id)
        if objective is None:
            logger.warning(f"No objective found with id {objective_id}")
            return False

        forced_status = None
        if status is not None:
            try:
                forced_status = ObjectiveStatus(status)
            except ValueError:
                logger.warning(f"Invalid status value: {status}")
                return False

        if confidence is not None:
            if not (MIN_CONFIDENCE <= confidence <= MAX_CONFIDENCE):
                logger.warning(f"Invalid confidence value: {confidence}")
                return False

            change = confidence - objective.confidence
            step = min(abs(change), self.max_step)
            smoothed = objective.confidence + (step if change >= 0 else -step)
            objective.confidence = max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, smoothed))
            objective.status = status_for_confidence(objective.confidence, self.completed_threshold)

        if forced_status is not None:
            objective.status = forced_status

        progress.touch()
        self.store.save(progress)
        return True

    # ---------- Evaluation ----------

    async def evaluate(
        self, session_id: str, transcript: List[ChatMessage], config: ModelConfig
    ) -> bool:
        """Score the transcript per objective and apply the scores.

        Never raises. A parse failure resets the session's objectives; a
        request failure leaves them untouched.

        Returns:
            True if scores were applied
        """
        progress = self.store.get(session_id)
        if progress is None:
            logger.warning(f"Skipping evaluation: session {session_id} not initialized")
            return False
        if self.client is None:
            logger.debug("No client attached, evaluation disabled")
            return False

        objective_ids = [o.id for o in progress.objectives]
        messages = [
            {"role": "system", "content": build_evaluator_prompt(progress.objectives)},
            {
                "role": "user",
                "content": json.dumps(
                    {"messages": [m.to_dict() for m in transcript if m.role != "system"]},
                    ensure_ascii=False,
                    indent=2,
                ),
            },
        ]

        try:
            response = await create_chat_completion(
                self.client, config, messages, self.temperature, self.max_tokens
            )
            evaluation = self._parse(response.content, objective_ids)
        except ValidationParseError as e:
            logger.error(f"Failed to parse evaluation, resetting objectives: {e.message}")
            self.reset_objectives(session_id)
            return False
        except EduRAGException as e:
            logger.error(f"Learning progress evaluation failed: {e.message}")
            return False

        for objective_id in objective_ids:
            self.update(session_id, objective_id, confidence=evaluation.root[objective_id].score)

        logger.debug(
            "Evaluation applied: "
            + ", ".join(f"{oid}={evaluation.root[oid].score}" for oid in objective_ids)
        )
        return True

    @staticmethod
    def _parse(raw: str, objective_ids: List[str]) -> ProgressEvaluation:
        try:
            evaluation = ProgressEvaluation.model_validate(load_model_json(raw))
            evaluation.require(objective_ids)
        except (ValueError, ValidationError) as e:
            raise ValidationParseError(f"Invalid evaluation JSON: {e}", raw=raw) from e
        return evaluation
