"""Tests for the result normalizer."""

from __future__ import annotations

import pytest

from omnisearch_mcp.orchestration.base import (
    AnswerText,
    Capability,
    EnrichmentRecord,
    ExtractedDocument,
    RawResult,
    SearchHitList,
)
from omnisearch_mcp.orchestration.errors import ProviderResponseError
from omnisearch_mcp.orchestration.normalizer import (
    CANONICAL_SHAPES,
    NormalizationError,
    normalize,
)


def _raw(**payload) -> RawResult:
    return RawResult(payload=payload)


class TestNormalize:
    """Tests for well-formed payloads."""

    def test_every_capability_has_a_shape(self):
        """Test no capability lacks a normalization path."""
        assert set(CANONICAL_SHAPES) == set(Capability)

    def test_search(self):
        """Test search hits keep their order."""
        result = normalize(
            Capability.SEARCH,
            _raw(
                hits=[
                    {"title": "A", "url": "https://a.com", "snippet": "first", "score": 0.9},
                    {"title": "B", "url": "https://b.com", "snippet": ""},
                ]
            ),
        )

        assert isinstance(result, SearchHitList)
        assert [hit.url for hit in result.hits] == ["https://a.com", "https://b.com"]
        assert result.count == 2

    def test_answer(self):
        """Test answers carry citations."""
        result = normalize(
            Capability.ANSWER,
            _raw(text="Paris", citations=[{"url": "https://en.wikipedia.org/wiki/Paris"}]),
        )

        assert isinstance(result, AnswerText)
        assert result.citations[0].title is None

    def test_extract(self):
        """Test documents default to markdown."""
        result = normalize(Capability.EXTRACT, _raw(url="https://a.com", content="# Title"))

        assert isinstance(result, ExtractedDocument)
        assert result.format == "markdown"

    def test_enrich(self):
        """Test enrichment facts accept scalars and lists."""
        result = normalize(
            Capability.ENRICH,
            _raw(subject="claim", facts={"factuality": 0.8, "result": True, "tags": ["a", "b"]}),
        )

        assert isinstance(result, EnrichmentRecord)
        assert result.facts["tags"] == ["a", "b"]

    def test_matching_type_tag_accepted(self):
        """Test an explicit matching type tag is fine."""
        result = normalize(Capability.ANSWER, _raw(type="answer", text="yes"))

        assert result.text == "yes"


class TestMalformed:
    """Tests for shape violations."""

    @pytest.mark.parametrize(
        ("capability", "payload"),
        [
            (Capability.SEARCH, {"hits": [{"title": "A", "snippet": "no url"}]}),
            (Capability.SEARCH, {"hits": [{"title": "A", "url": "javascript:x", "snippet": ""}]}),
            (Capability.SEARCH, {"hits": [], "unexpected": 1}),
            (Capability.ANSWER, {"text": ""}),
            (Capability.EXTRACT, {"url": "https://a.com", "content": "x", "format": "pdf"}),
            (Capability.ENRICH, {"subject": "s", "facts": {}}),
        ],
    )
    def test_violations_rejected(self, capability, payload):
        """Test any violation fails the whole result."""
        with pytest.raises(NormalizationError) as exc_info:
            normalize(capability, RawResult(payload=payload), provider="p")

        assert isinstance(exc_info.value, ProviderResponseError)
        assert exc_info.value.provider == "p"
        assert capability.value in str(exc_info.value)

    def test_wrong_type_tag(self):
        """Test a payload declaring another shape is rejected."""
        with pytest.raises(NormalizationError, match="'answer' payload"):
            normalize(Capability.SEARCH, _raw(type="answer", text="x"))
