"""Unit tests for the sentence-aligned chunker."""

import pytest

from edurag.exceptions import ChunkingError
from edurag.services.chunker import Chunker, chunk_text, split_sentences


class TestSplitSentences:
    """Tests for sentence splitting."""

    def test_keeps_terminators(self):
        assert split_sentences("One. Two! Three?") == ["One.", "Two!", "Three?"]

    def test_trailing_unterminated_run(self):
        assert split_sentences("First. second part") == ["First.", "second part"]

    def test_punctuation_only_runs_kept(self):
        assert split_sentences("Hello. ... !!! World?") == ["Hello.", "...", "!!!", "World?"]

    def test_drops_trailing_whitespace_run(self):
        assert split_sentences("One. Two.  \n ") == ["One.", "Two."]

    def test_empty_text(self):
        assert split_sentences("") == []
        assert split_sentences("   \n ") == []


class TestChunker:
    """Tests for greedy chunk packing."""

    def test_short_document_is_one_chunk(self):
        text = "Cats purr. Dogs bark. Birds sing loudly."
        assert len(text) == 40

        chunks = chunk_text(text, max_length=1000)

        assert chunks == [text]

    def test_greedy_packing(self):
        chunks = chunk_text("Aaaa. Bbbb. Cccc.", max_length=11)
        assert chunks == ["Aaaa. Bbbb.", "Cccc."]

    def test_oversize_sentence_kept_whole(self):
        long_sentence = "This sentence is definitely too long."
        chunks = chunk_text(f"Short. {long_sentence} End.", max_length=10)
        assert chunks == ["Short.", long_sentence, "End."]

    def test_preserves_sentence_order(self, sample_text):
        chunks = chunk_text(sample_text, max_length=60)
        assert " ".join(chunks) == " ".join(split_sentences(sample_text))

    @pytest.mark.parametrize("max_length", [20, 50, 100, 1000])
    def test_chunks_respect_limit(self, sample_text, max_length):
        for chunk in chunk_text(sample_text, max_length=max_length):
            assert chunk.strip()
            if len(chunk) > max_length:
                # only a single sentence may exceed the limit
                assert len(split_sentences(chunk)) == 1

    def test_whitespace_only_text(self):
        assert chunk_text("  \n\t ", max_length=100) == []

    def test_stream_is_reiterable(self, sample_text):
        stream = Chunker(50).chunk(sample_text)
        assert list(stream) == list(stream)
        assert stream.to_list() == list(stream)

    def test_default_length_from_config(self, engine_config):
        assert Chunker().max_length == engine_config.chunk_max_length

    def test_override_per_call(self):
        chunker = Chunker(1000)
        assert chunker.chunk("Aaaa. Bbbb.", max_length=5).to_list() == ["Aaaa.", "Bbbb."]

    @pytest.mark.parametrize("max_length", [0, -5])
    def test_invalid_length(self, max_length):
        with pytest.raises(ChunkingError):
            Chunker(max_length)

        with pytest.raises(ChunkingError):
            Chunker(100).chunk("Text.", max_length=max_length)
