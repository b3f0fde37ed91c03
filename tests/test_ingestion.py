"""Tests for the document ingestion pipeline."""

import httpx
import pytest

from edurag.exceptions import ConfigError, FileProcessingError
from edurag.models import Document, ModelConfig
from edurag.services.chunker import Chunker
from edurag.services.embeddings import EmbeddingService
from edurag.services.ingestion import IngestionPipeline
from tests.conftest import SleepRecorder


@pytest.fixture
def pipeline_sleeps():
    return SleepRecorder()


@pytest.fixture
def make_pipeline(client, store, pipeline_sleeps):
    def _make(max_length=1000, **kwargs):
        return IngestionPipeline(
            store,
            EmbeddingService(client),
            Chunker(max_length),
            sleep=pipeline_sleeps,
            **kwargs,
        )

    return _make


def make_document(content, doc_id="doc-1"):
    return Document(id=doc_id, collection_id="bot-1", content=content, title="Lesson")


class TestIngestionPipeline:
    @pytest.mark.asyncio
    async def test_short_document_single_chunk(self, make_pipeline, provider, store, model_config):
        document = make_document("Cats purr. Dogs bark. Birds sing loudly.")

        count = await make_pipeline().ingest(document, model_config)

        assert count == 1
        assert len(provider.calls("/embeddings")) == 1
        assert await store.count_chunks("doc-1") == 1
        stored = await store.get_document("doc-1")
        assert stored.metadata["chunk_count"] == 1
        assert stored.metadata["embedded_chunk_count"] == 1
        assert "ingested_at" in stored.metadata

    @pytest.mark.asyncio
    async def test_reingest_replaces_chunks(self, make_pipeline, provider, store, model_config, sample_text):
        pipeline = make_pipeline(max_length=60)

        first = await pipeline.ingest(make_document(sample_text), model_config)
        second = await pipeline.ingest(make_document(sample_text), model_config)

        assert first == second > 1
        assert await store.count_chunks("doc-1") == first
        assert len(provider.calls("/embeddings")) == 2 * first

    @pytest.mark.asyncio
    async def test_failed_chunk_is_skipped(self, make_pipeline, provider, store, model_config):
        provider.embed = lambda text: (
            httpx.Response(400, text="bad input") if "FAIL" in text else [1.0, 0.0, 0.0]
        )
        document = make_document("Alpha one. FAIL two. Gamma three.")

        count = await make_pipeline(max_length=10).ingest(document, model_config)

        assert count == 3
        assert await store.count_chunks("doc-1") == 2
        stored = await store.get_document("doc-1")
        assert stored.metadata["chunk_count"] == 3
        assert stored.metadata["embedded_chunk_count"] == 2

    @pytest.mark.asyncio
    async def test_pauses_between_chunks_and_batches(self, make_pipeline, model_config, pipeline_sleeps):
        pipeline = make_pipeline(max_length=5, batch_size=3, chunk_delay=0.2, batch_delay=1.0)

        count = await pipeline.ingest(make_document("Aaaa. Bbbb. Cccc. Dddd."), model_config)

        assert count == 4
        assert pipeline_sleeps.delays == [0.2, 0.2, 0.2, 1.0, 0.2]

    @pytest.mark.asyncio
    async def test_missing_key_writes_nothing(self, make_pipeline, provider, store):
        config = ModelConfig(provider="openai", model="gpt-test", api_key="  ", base_url="https://x")

        with pytest.raises(ConfigError):
            await make_pipeline().ingest(make_document("Some text."), config)

        assert provider.requests == []
        assert await store.get_document("doc-1") is None

    @pytest.mark.asyncio
    async def test_ingest_text_file(self, make_pipeline, store, model_config, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("Mitochondria make energy. Ribosomes make proteins.", encoding="utf-8")

        count = await make_pipeline().ingest_file(path, "file-1", "bot-1", model_config)

        assert count == 1
        stored = await store.get_document("file-1")
        assert stored.title == "notes.txt"
        assert stored.metadata["file_type"] == "txt"
        assert stored.collection_id == "bot-1"

    @pytest.mark.asyncio
    async def test_ingest_empty_file(self, make_pipeline, provider, model_config, tmp_path):
        path = tmp_path / "empty.md"
        path.write_text("  \n\n ", encoding="utf-8")

        with pytest.raises(FileProcessingError):
            await make_pipeline().ingest_file(path, "file-2", "bot-1", model_config)
        assert provider.requests == []
