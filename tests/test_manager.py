"""End-to-end tests for EduChatEngine."""

import json

import pytest
import pytest_asyncio

from edurag.config import EngineConfig, set_config
from edurag.models import ChatMessage, Document, ObjectiveStatus
from edurag.services.collaborators import LoggingUsageLog, StaticSettingsStore
from edurag.services.learning_progress import InMemorySessionStore, JsonSessionStore
from edurag.services.manager import EduChatEngine
from tests.conftest import completion


@pytest.fixture
def usage_log():
    return LoggingUsageLog()


@pytest_asyncio.fixture
async def engine(model_config, provider, usage_log):
    engine = EduChatEngine(
        StaticSettingsStore(model_config),
        usage_log=usage_log,
        transport=provider.transport,
    )
    yield engine
    await engine.aclose()


class TestEduChatEngine:
    @pytest.mark.asyncio
    async def test_full_turn(self, engine, provider, usage_log, sample_text):
        count = await engine.ingest(Document(id="doc-1", collection_id="bot-1", content=sample_text))
        assert count == 1

        engine.init_session("bot-1", "s-1")
        provider.chat_replies = [
            completion("Plants turn light into sugar.", total_tokens=90),
            completion('{"score": 5, "reason": "accurate", "allow": true}', total_tokens=20),
            completion(json.dumps({"1": {"score": 3}, "2": {"score": 0}, "3": {"score": 0}})),
        ]

        result = await engine.respond(
            [ChatMessage.system("You are a biology tutor.")],
            "What is photosynthesis?",
            collection_id="bot-1",
            session_id="s-1",
            user_id="u-1",
        )
        await engine.chat.drain()

        assert result.text == "Plants turn light into sugar."
        assert result.grounded
        assert result.tokens_used == 90
        assert len(provider.calls("/chat/completions")) == 3
        assert usage_log.total_tokens == 90

        objectives = engine.get_progress("s-1").objectives
        assert objectives[0].confidence == 1.0
        assert objectives[0].status == ObjectiveStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_retrieve(self, engine, sample_text):
        await engine.ingest(Document(id="doc-1", collection_id="bot-1", content=sample_text))

        results = await engine.retrieve("bot-1", "leaves", top_k=2)

        assert len(results) == 1
        assert results[0].document_id == "doc-1"
        assert await engine.retrieve("bot-2", "leaves") == []

    @pytest.mark.asyncio
    async def test_ingest_file(self, engine, tmp_path):
        path = tmp_path / "lesson.md"
        path.write_text("Cells divide by mitosis. Gametes form by meiosis.", encoding="utf-8")

        count = await engine.ingest_file(path, "file-1", "bot-1")

        assert count == 1
        assert (await engine.store.get_document("file-1")).title == "lesson.md"

    @pytest.mark.asyncio
    async def test_progress_operations(self, engine, provider):
        engine.init_session("bot-1", "s-1")

        assert engine.update("s-1", "2", confidence=3)
        assert engine.update("s-1", "3", status="completed")
        assert not engine.update("s-1", "2", confidence=9)

        provider.chat_replies = [completion("not json")]
        assert not await engine.evaluate("s-1", [ChatMessage.user("Hi")])
        assert all(o.confidence == 0 for o in engine.get_progress("s-1").objectives)

        engine.clear_session("s-1")
        assert engine.get_progress("s-1") is None

    @pytest.mark.asyncio
    async def test_session_store_selection(self, model_config, provider, tmp_path):
        async with EduChatEngine(StaticSettingsStore(model_config), transport=provider.transport) as default:
            assert isinstance(default.progress.store, InMemorySessionStore)

        set_config(EngineConfig(session_dir=tmp_path, chunk_delay=0.0, batch_delay=0.0))
        async with EduChatEngine(StaticSettingsStore(model_config), transport=provider.transport) as persistent:
            assert isinstance(persistent.progress.store, JsonSessionStore)
            persistent.init_session("bot-1", "s-1")

        assert (tmp_path / "s-1.json").exists()
