# tests/unit/core/test_schemas.py
"""Unit tests for the request/response models."""

import pytest
from pydantic import ValidationError

from support_rag.answer.state import Source
from support_rag.schemas import QueryRequest, QueryResponse, extract_filters


class TestQueryRequest:
    def test_camel_case_input(self):
        request = QueryRequest.model_validate(
            {"query": "  How do refunds work?  ", "sessionId": "abc", "context": {"tone": "brief"}}
        )

        assert request.query == "How do refunds work?"
        assert request.session_id == "abc"
        assert request.context == {"tone": "brief"}
        assert request.stream is False

    def test_snake_case_input(self):
        assert QueryRequest(query="refunds", session_id="abc").session_id == "abc"

    @pytest.mark.parametrize("query", ["", "   ", "\n\t"])
    def test_blank_query(self, query):
        with pytest.raises(ValidationError):
            QueryRequest(query=query)

    def test_unknown_field(self):
        with pytest.raises(ValidationError):
            QueryRequest.model_validate({"query": "refunds", "userName": "x"})


class TestQueryResponse:
    def test_serialises_camel_case(self):
        response = QueryResponse(
            response="Thirty days.",
            sources=[Source(document_id="returns", title="Return policy", excerpt="Items...")],
            confidence_score=0.8,
        )

        dumped = response.model_dump(by_alias=True)

        assert dumped["confidenceScore"] == 0.8
        assert dumped["sources"][0]["documentId"] == "returns"
        assert dumped["sources"][0]["relevanceScore"] == 1.0
        assert dumped["metadata"]["tokensUsed"] == 0

    @pytest.mark.parametrize("score", [-0.1, 1.5])
    def test_confidence_range(self, score):
        with pytest.raises(ValidationError):
            QueryResponse(response="x", confidence_score=score)


class TestExtractFilters:
    def test_known_keys_only(self):
        context = {"documentType": "policy", "source": "kb", "dateFrom": None, "tone": "brief"}
        assert extract_filters(context) == {"documentType": "policy", "source": "kb"}

    @pytest.mark.parametrize("context", [None, {}, {"tone": "brief"}])
    def test_none_when_empty(self, context):
        assert extract_filters(context) is None
