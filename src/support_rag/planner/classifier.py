# src/support_rag/planner/classifier.py

from __future__ import annotations

import logging

from langchain_core.prompts import ChatPromptTemplate

from support_rag.planner.prompts.planner import CLASSIFICATION_PROMPT, QUERY_INPUT
from support_rag.planner.state import DEFAULT_QUERY_TYPE, ClassificationResult
from support_rag.utils import observe

logger = logging.getLogger(__name__)

CLASSIFICATION_FAILED = ClassificationResult(
    query_type=DEFAULT_QUERY_TYPE,
    confidence=0.5,
    reasoning="Classification failed, defaulted to FACTUAL",
)


class QueryClassifier:
    """Tags a question FACTUAL / COMPARISON / PROCEDURAL / ANALYTICAL."""

    def __init__(self, llm):
        self._prompt = ChatPromptTemplate.from_messages(
            [("system", CLASSIFICATION_PROMPT), ("human", QUERY_INPUT)]
        )
        self._model = llm.with_structured_output(ClassificationResult, method="function_calling")

    @observe
    async def classify(self, query: str) -> ClassificationResult:
        try:
            prompt_value = await self._prompt.ainvoke({"query": query})
            raw = await self._model.ainvoke(prompt_value)
            result = ClassificationResult.model_validate(raw)
        except Exception as e:
            logger.warning(f"Query classification failed: {e}")
            return CLASSIFICATION_FAILED
        logger.info(f"Classified query as {result.query_type} ({result.confidence:.2f})")
        return result
