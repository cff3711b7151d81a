"""
Tests for ranked search.
"""
import pytest

from models.search_models import SearchMode, SearchOptions
from models.transcript_models import TranscriptDocument
from services.processing.index_builder import index_builder
from services.processing.payload import (
    assemble_payloads,
    decode_payload,
    encode_payload,
    search_index_payload,
    transcript_index_payload,
)
from services.processing.tokenizer import default_tokenizer
from services.search.query_engine import QueryEngine, phrase_pattern, query_engine


@pytest.fixture
def archive(corpus):
    return index_builder.build_archive(corpus)


def run(archive, query, **options):
    return query_engine.search(archive.store, archive.index, query, SearchOptions(**options))


class TestBasicSearch:
    """Single-document lookups and empty inputs."""

    def test_single_word(self, archive):
        results = run(archive, "boss", mode=SearchMode.ALL)

        first = next(r for r in results if r.date == "2001-01-01")
        assert first.score == 45  # one term, one phrase, short line
        assert [m.panel_index for m in first.matched_panels] == [1]
        assert first.matched_panels[0].spans == [(4, 8)]
        assert first.matched_panels[0].highlighted == "The <mark>boss</mark> is late"

    def test_only_document_in_corpus(self):
        archive = index_builder.build_archive([
            {"date": "2001-01-01", "panels": [{"panel": 1, "dialogue": ["The boss is late"]}]},
        ])

        results = run(archive, "boss")

        assert [r.date for r in results] == ["2001-01-01"]
        assert results[0].matched_panels[0].panel_index == 1

    def test_unknown_word(self, archive):
        assert run(archive, "missing") == []

    def test_empty_query(self, archive):
        assert run(archive, "") == []
        assert run(archive, "   ") == []

    def test_query_of_only_stopwords(self, archive):
        assert run(archive, "the is a") == []

    def test_case_insensitive(self, archive):
        assert [r.date for r in run(archive, "BOSS")] == [r.date for r in run(archive, "boss")]

    def test_default_options(self, archive):
        results = query_engine.search(archive.store, archive.index, "meeting")

        assert [r.date for r in results] == ["2001-01-03", "2001-01-02"]


class TestRanking:
    """Scoring and ordering."""

    def test_term_frequency_and_line_bonus(self, archive):
        results = run(archive, "meeting")

        assert [(r.date, r.score) for r in results] == [("2001-01-03", 105), ("2001-01-02", 90)]

    def test_matches_across_lines(self, archive):
        results = run(archive, "meeting")
        doc = next(r for r in results if r.date == "2001-01-02")

        assert [(m.panel_index, m.dialogue_index) for m in doc.matched_panels] == [(2, 0), (2, 1)]

    def test_all_mode_requires_every_token(self, archive):
        results = run(archive, "boss late", mode=SearchMode.ALL)

        assert [(r.date, r.score) for r in results] == [("2001-01-02", 50), ("2001-01-01", 35)]

    def test_all_mode_without_overlap(self, archive):
        assert run(archive, "boss catbert", mode=SearchMode.ALL) == []

    def test_any_mode_ties_break_by_date(self, archive):
        results = run(archive, "boss catbert", mode=SearchMode.ANY)

        assert [(r.date, r.score) for r in results] == [
            ("2001-01-01", 25),
            ("2001-01-02", 25),
            ("2001-01-04", 25),
        ]

    def test_phrase_match_bonus(self, archive):
        results = run(archive, "boss is late")

        assert [(r.date, r.score) for r in results] == [("2001-01-01", 55), ("2001-01-02", 50)]

    def test_line_length_bonus(self):
        engine = QueryEngine()

        assert engine.line_bonus("x" * 49) == 15
        assert engine.line_bonus("x" * 50) == 10
        assert engine.line_bonus("x" * 99) == 10
        assert engine.line_bonus("x" * 100) == 5

    def test_custom_weights(self, archive):
        engine = QueryEngine(term_frequency_weight=1, phrase_match_weight=0, short_line_bonus=0)

        results = engine.search(archive.store, archive.index, "meeting")

        assert [(r.date, r.score) for r in results] == [("2001-01-03", 3), ("2001-01-02", 2)]


class TestPagination:

    def test_limit_and_offset(self, archive):
        everything = run(archive, "boss catbert", mode=SearchMode.ANY)

        assert run(archive, "boss catbert", mode=SearchMode.ANY, limit=2) == everything[:2]
        assert run(archive, "boss catbert", mode=SearchMode.ANY, limit=2, offset=2) == everything[2:]
        assert run(archive, "boss catbert", mode=SearchMode.ANY, offset=10) == []


class TestHighlighting:

    def test_markup_is_escaped(self):
        archive = index_builder.build_archive([
            {"date": "2001-01-01", "panels": [{"panel": 3, "dialogue": ["<b>Boss</b> & co"]}]},
        ])

        match = run(archive, "boss")[0].matched_panels[0]

        assert match.panel_index == 3
        assert match.highlighted == "&lt;b&gt;<mark>Boss</mark>&lt;/b&gt; &amp; co"

    def test_phrase_span_merged_with_tokens(self, archive):
        result = run(archive, "boss is late")[0]

        assert result.matched_panels[0].spans == [(4, 16)]
        assert result.matched_panels[0].highlighted == "The <mark>boss is late</mark>"

    def test_phrase_pattern_tolerates_whitespace(self):
        pattern = phrase_pattern("Boss   is late")

        assert pattern.search("the BOSS is\tlate")
        assert phrase_pattern("   ") is None


class TestRetrieval:
    """Every indexed word finds its document, including after serialization."""

    def test_every_token_finds_its_document(self, corpus, archive):
        for raw in corpus:
            document = TranscriptDocument.from_dict(raw)
            for token in default_tokenizer.unique_tokens(document.full_text):
                dates = [r.date for r in run(archive, token, limit=500)]
                assert document.date in dates, token

    def test_serialized_archive_answers_identically(self, archive):
        payloads = [
            decode_payload(encode_payload(search_index_payload(archive, include_comics=False))),
            decode_payload(encode_payload(transcript_index_payload(archive))),
        ]
        store, index, _ = assemble_payloads(payloads)

        assert index.to_dict() == archive.index.to_dict()
        for token in archive.index:
            original = query_engine.search(archive.store, archive.index, token)
            restored = query_engine.search(store, index, token)
            assert [(r.date, r.score) for r in restored] == [(r.date, r.score) for r in original]

    def test_index_built_by_js_generator(self):
        # Shape and word split of the published JS-built search index
        dialogue = ["Send me your résumé by Friday.", "No cost_cutting!"]
        payload = {
            "version": "1.0",
            "generatedAt": "2023-03-12T00:00:00.000Z",
            "stats": {"totalComics": 1, "totalWords": 5},
            "wordIndex": {word: ["2002-02-02"] for word in ("send", "your", "sum", "friday", "cost_cutting")},
            "comics": {"2002-02-02": {"date": "2002-02-02", "panels": [{"panel": 1, "dialogue": dialogue}]}},
        }
        store, index, _ = assemble_payloads([payload])

        for query in ("résumé", "Friday", "cost_cutting", "send résumé"):
            assert [r.date for r in query_engine.search(store, index, query)] == ["2002-02-02"], query

        rebuilt = index_builder.build_archive([payload["comics"]["2002-02-02"]]).index
        assert set(rebuilt) <= set(index)
