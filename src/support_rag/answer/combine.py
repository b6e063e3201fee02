# src/support_rag/answer/combine.py

from __future__ import annotations

import logging
from typing import List, Sequence

from langchain_core.prompts import ChatPromptTemplate

from support_rag.answer.prompts.synthesis import MULTI_QUERY_SYNTHESIS_INPUT, MULTI_QUERY_SYNTHESIS_PROMPT
from support_rag.answer.state import NO_INFORMATION_RESPONSE, Source, SynthesisResult
from support_rag.answer.synthesis import CHARS_PER_TOKEN, reply_model, reply_tokens
from support_rag.executor.state import SubQueryResult
from support_rag.utils import message_text, observe

logger = logging.getLogger(__name__)

FAILED_ANSWER_MARKER = "[Failed to retrieve answer]"


def format_sub_answers(results: Sequence[SubQueryResult]) -> str:
    lines = []
    for i, r in enumerate(results, start=1):
        answer = r.response if r.success else FAILED_ANSWER_MARKER
        lines.append(f"{i}. Question: {r.query}\n   Answer: {answer}\n\n")
    return "".join(lines)


def merge_sources(results: Sequence[SubQueryResult]) -> List[Source]:
    """Sources of successful sub-queries, deduplicated by document id."""
    seen = set()
    out: List[Source] = []
    for r in results:
        if not r.success:
            continue
        for s in r.sources:
            if s.document_id in seen:
                continue
            seen.add(s.document_id)
            out.append(s)
    return out


def concatenate_answers(results: Sequence[SubQueryResult]) -> str:
    parts = []
    for r in results:
        parts.append(r.response if r.success else f"Unable to answer: {r.query}")
    return "\n\n".join(parts)


class ResultSynthesizer:
    """Combines sub-query answers into one response."""

    def __init__(self, llm):
        self._llm = llm
        self._prompt = ChatPromptTemplate.from_messages(
            [("system", MULTI_QUERY_SYNTHESIS_PROMPT), ("human", MULTI_QUERY_SYNTHESIS_INPUT)]
        )

    @observe
    async def combine(self, query: str, results: Sequence[SubQueryResult]) -> SynthesisResult:
        results = list(results)
        if not results:
            return SynthesisResult(response=NO_INFORMATION_RESPONSE)

        if len(results) == 1:
            r = results[0]
            return SynthesisResult(
                response=r.response,
                sources=list(r.sources),
                tokens_used=r.tokens_used,
                model_used=r.model_used,
            )

        sources = merge_sources(results)
        sub_tokens = sum(r.tokens_used for r in results)
        answers = format_sub_answers(results)

        try:
            prompt_value = await self._prompt.ainvoke({"query": query, "answers": answers})
            reply = await self._llm.ainvoke(prompt_value)
            response = message_text(reply).strip()
        except Exception as e:
            logger.warning(f"Combining sub-query answers failed, concatenating instead: {e}")
            models = [r.model_used for r in results if r.success]
            return SynthesisResult(
                response=concatenate_answers(results),
                sources=sources,
                tokens_used=sub_tokens,
                model_used=models[0] if models else "none",
            )

        tokens = reply_tokens(reply)
        if tokens is None:
            tokens = (len(answers) + len(response)) // CHARS_PER_TOKEN

        logger.info(f"Combined {len(results)} sub-query answers, {len(sources)} distinct sources")
        return SynthesisResult(
            response=response,
            sources=sources,
            tokens_used=sub_tokens + tokens,
            model_used=reply_model(reply, self._llm),
        )
