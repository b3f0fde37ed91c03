"""Tests for the learning-progress engine."""

import json

import httpx
import pytest

from edurag.models import DEFAULT_OBJECTIVES, ChatMessage, ObjectiveStatus
from edurag.services.learning_progress import (
    JsonSessionStore,
    LearningProgressEngine,
    build_evaluator_prompt,
)
from tests.conftest import completion

TRANSCRIPT = [
    ChatMessage.system("You are a tutor."),
    ChatMessage.user("What is osmosis?"),
    ChatMessage.assistant("Osmosis is the movement of water across a membrane."),
]


@pytest.fixture
def engine():
    return LearningProgressEngine()


@pytest.fixture
def seeded(engine):
    engine.init_session("bot-1", "s-1")
    return engine


def confidences(engine, session_id="s-1"):
    return [o.confidence for o in engine.get_progress(session_id).objectives]


def statuses(engine, session_id="s-1"):
    return [o.status for o in engine.get_progress(session_id).objectives]


class TestSessions:
    def test_init_session_defaults(self, engine):
        progress = engine.init_session("bot-1", "s-1")

        assert progress.chatbot_id == "bot-1"
        assert [o.id for o in progress.objectives] == ["1", "2", "3"]
        assert all(o.confidence == 0 for o in progress.objectives)
        assert all(o.status == ObjectiveStatus.NOT_STARTED for o in progress.objectives)

    def test_init_session_is_idempotent(self, seeded):
        seeded.update("s-1", "1", confidence=1)

        again = seeded.init_session("bot-1", "s-1")

        assert again.objectives[0].confidence == 1.0

    def test_sessions_do_not_share_objectives(self, seeded):
        seeded.init_session("bot-1", "s-2")

        seeded.update("s-1", "1", confidence=1)

        assert confidences(seeded, "s-2") == [0.0, 0.0, 0.0]
        assert DEFAULT_OBJECTIVES[0].confidence == 0.0

    def test_clear_session(self, seeded):
        seeded.clear_session("s-1")

        assert not seeded.is_initialized("s-1")
        assert seeded.get_progress("s-1") is None


class TestUpdate:
    def test_unseeded_session(self, engine):
        assert engine.update("missing", "1", confidence=3) is False
        assert engine.get_progress("missing") is None

    @pytest.mark.parametrize(
        "changes",
        [
            {"confidence": 5.5},
            {"confidence": -1},
            {"status": "mastered"},
            {"status": "mastered", "confidence": 2},
        ],
    )
    def test_invalid_update_changes_nothing(self, seeded, changes):
        before = seeded.get_progress("s-1").last_updated

        assert seeded.update("s-1", "1", **changes) is False

        assert confidences(seeded) == [0.0, 0.0, 0.0]
        assert seeded.get_progress("s-1").last_updated == before

    def test_unknown_objective(self, seeded):
        assert seeded.update("s-1", "42", confidence=3) is False

    def test_step_is_capped(self, seeded):
        for expected in (1.0, 2.0, 3.0):
            assert seeded.update("s-1", "1", confidence=5)
            assert confidences(seeded)[0] == expected

        assert statuses(seeded)[0] == ObjectiveStatus.IN_PROGRESS

    def test_completed_after_four_full_scores(self, seeded):
        for _ in range(3):
            seeded.update("s-1", "1", confidence=5)
        assert statuses(seeded)[0] != ObjectiveStatus.COMPLETED

        seeded.update("s-1", "1", confidence=5)

        assert confidences(seeded)[0] == 4.0
        assert statuses(seeded)[0] == ObjectiveStatus.COMPLETED

    def test_small_change_applied_fully(self, seeded):
        seeded.update("s-1", "2", confidence=0.4)

        assert confidences(seeded)[1] == pytest.approx(0.4)
        assert statuses(seeded)[1] == ObjectiveStatus.IN_PROGRESS

    def test_decrease_is_capped(self, seeded):
        for _ in range(3):
            seeded.update("s-1", "1", confidence=5)

        seeded.update("s-1", "1", confidence=0)

        assert confidences(seeded)[0] == 2.0

    def test_back_to_zero_is_not_started(self, seeded):
        seeded.update("s-1", "3", confidence=0.5)
        seeded.update("s-1", "3", confidence=0)

        assert statuses(seeded)[2] == ObjectiveStatus.NOT_STARTED

    def test_explicit_status_wins(self, seeded):
        assert seeded.update("s-1", "1", status="completed", confidence=1)

        objective = seeded.get_progress("s-1").objectives[0]
        assert objective.confidence == 1.0
        assert objective.status == ObjectiveStatus.COMPLETED

    def test_status_only(self, seeded):
        assert seeded.update("s-1", "2", status=ObjectiveStatus.IN_PROGRESS)

        assert statuses(seeded)[1] == ObjectiveStatus.IN_PROGRESS
        assert confidences(seeded)[1] == 0.0

    def test_update_touches_timestamp(self, seeded):
        before = seeded.get_progress("s-1").last_updated

        seeded.update("s-1", "1", confidence=1)

        assert seeded.get_progress("s-1").last_updated >= before

    def test_custom_step(self):
        engine = LearningProgressEngine(max_step=0.5)
        engine.init_session("bot-1", "s-1")

        engine.update("s-1", "1", confidence=5)

        assert confidences(engine)[0] == 0.5

    def test_reset_objectives(self, seeded):
        seeded.update("s-1", "1", confidence=1)

        assert seeded.reset_objectives("s-1")

        assert confidences(seeded) == [0.0, 0.0, 0.0]
        assert statuses(seeded) == [ObjectiveStatus.NOT_STARTED] * 3
        assert not seeded.reset_objectives("missing")


class TestEvaluate:
    @pytest.fixture
    def evaluator(self, client):
        engine = LearningProgressEngine(client=client)
        engine.init_session("bot-1", "s-1")
        return engine

    @pytest.mark.asyncio
    async def test_scores_applied_with_smoothing(self, evaluator, provider, model_config):
        provider.chat_replies = [
            completion(
                json.dumps(
                    {
                        "1": {"score": 4, "reason": "explains well"},
                        "2": {"score": 2, "reason": "some practice"},
                        "3": {"score": 0.5, "reason": "little transfer"},
                    }
                )
            )
        ]

        assert await evaluator.evaluate("s-1", TRANSCRIPT, model_config)

        assert confidences(evaluator) == [1.0, 1.0, 0.5]
        call = provider.calls("/chat/completions")[0]
        sent = json.loads(call["messages"][1]["content"])["messages"]
        assert [m["role"] for m in sent] == ["user", "assistant"]

    @pytest.mark.asyncio
    async def test_unparseable_answer_resets(self, evaluator, provider, model_config):
        evaluator.update("s-1", "1", confidence=1)
        provider.chat_replies = [completion("The learner is doing great!")]

        assert not await evaluator.evaluate("s-1", TRANSCRIPT, model_config)

        assert confidences(evaluator) == [0.0, 0.0, 0.0]

    @pytest.mark.asyncio
    async def test_missing_objective_resets(self, evaluator, provider, model_config):
        evaluator.update("s-1", "1", confidence=1)
        provider.chat_replies = [completion(json.dumps({"1": {"score": 3}, "2": {"score": 3}}))]

        assert not await evaluator.evaluate("s-1", TRANSCRIPT, model_config)

        assert confidences(evaluator) == [0.0, 0.0, 0.0]

    @pytest.mark.asyncio
    async def test_request_failure_keeps_state(self, evaluator, provider, model_config):
        evaluator.update("s-1", "1", confidence=1)
        provider.chat_replies = [httpx.Response(400, text="bad request")]

        assert not await evaluator.evaluate("s-1", TRANSCRIPT, model_config)

        assert confidences(evaluator) == [1.0, 0.0, 0.0]

    @pytest.mark.asyncio
    async def test_unseeded_session_sends_nothing(self, client, provider, model_config):
        engine = LearningProgressEngine(client=client)

        assert not await engine.evaluate("missing", TRANSCRIPT, model_config)
        assert provider.requests == []

    @pytest.mark.asyncio
    async def test_without_client(self, seeded, model_config):
        assert not await seeded.evaluate("s-1", TRANSCRIPT, model_config)

    def test_prompt_lists_objectives(self):
        prompt = build_evaluator_prompt(DEFAULT_OBJECTIVES)

        for objective in DEFAULT_OBJECTIVES:
            assert objective.title in prompt
            assert f'"{objective.id}"' in prompt


class TestJsonSessionStore:
    def test_progress_survives_restart(self, tmp_path):
        engine = LearningProgressEngine(JsonSessionStore(tmp_path))
        engine.init_session("bot-1", "tg:42/abc")
        engine.update("tg:42/abc", "2", confidence=1)

        restarted = LearningProgressEngine(JsonSessionStore(tmp_path))
        progress = restarted.get_progress("tg:42/abc")

        assert progress.chatbot_id == "bot-1"
        assert progress.objectives[1].confidence == 1.0
        assert progress.objectives[1].status == ObjectiveStatus.IN_PROGRESS
        assert len(list(tmp_path.glob("*.json"))) == 1

    def test_clear_removes_file(self, tmp_path):
        store = JsonSessionStore(tmp_path)
        engine = LearningProgressEngine(store)
        engine.init_session("bot-1", "s-1")

        engine.clear_session("s-1")
        engine.clear_session("s-1")

        assert list(tmp_path.glob("*.json")) == []
        assert JsonSessionStore(tmp_path).get("s-1") is None

    def test_corrupted_file_is_ignored(self, tmp_path):
        (tmp_path / "s-1.json").write_text("{not json", encoding="utf-8")

        assert JsonSessionStore(tmp_path).get("s-1") is None
