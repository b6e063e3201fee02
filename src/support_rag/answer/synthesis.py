# src/support_rag/answer/synthesis.py

from __future__ import annotations

import logging
import re
from typing import Any, List, Optional, Sequence

from langchain_core.prompts import ChatPromptTemplate

from support_rag.answer.prompts.synthesis import SYNTHESIS_INPUT, SYNTHESIS_PROMPT
from support_rag.answer.state import NO_INFORMATION_RESPONSE, Source, SynthesisResult
from support_rag.errors import InvalidInputError
from support_rag.retrieval.state import RetrievedDocument
from support_rag.utils import message_text, observe

logger = logging.getLogger(__name__)

CITATION_RE = re.compile(r"\[Source:\s*([^\]]+)\]")
CHARS_PER_TOKEN = 4


def build_context(documents: Sequence[RetrievedDocument]) -> str:
    blocks = []
    for doc in documents:
        blocks.append(f"--- Document: {doc.title or 'Untitled'} ---\n{doc.content}\n")
    return "\n".join(blocks)


def title_index(documents: Sequence[RetrievedDocument]) -> str:
    """Citable titles for a compressed context, which has no document headers."""
    titles: List[str] = []
    for doc in documents:
        title = doc.title or "Untitled"
        if title not in titles:
            titles.append(title)
    return "Documents:\n" + "\n".join(f"- {t}" for t in titles)


def extract_cited_titles(response: str) -> List[str]:
    return [m.strip() for m in CITATION_RE.findall(response or "")]


def match_sources(response: str, documents: Sequence[RetrievedDocument]) -> List[Source]:
    """Sources for the documents cited in the response; all documents if none match."""
    cited = {t.lower() for t in extract_cited_titles(response)}
    matched: List[Source] = []
    seen = set()
    if cited:
        for doc in documents:
            if doc.title and doc.title.strip().lower() in cited and doc.dedup_key not in seen:
                seen.add(doc.dedup_key)
                matched.append(Source.from_document(doc))
    if matched:
        return matched
    return [Source.from_document(doc) for doc in documents]


def reply_tokens(reply: Any) -> Optional[int]:
    usage = getattr(reply, "usage_metadata", None) or {}
    total = usage.get("total_tokens") if isinstance(usage, dict) else None
    return int(total) if total else None


def reply_model(reply: Any, llm: Any) -> str:
    meta = getattr(reply, "response_metadata", None)
    name = None
    if isinstance(meta, dict):
        name = meta.get("model_name") or meta.get("model")
    if not name:
        name = getattr(llm, "model_name", None) or getattr(llm, "model", None)
    return str(name) if isinstance(name, str) and name else "unknown"


class SynthesisService:
    """Grounded answer generation over retrieved (or compressed) context."""

    def __init__(self, llm):
        self._llm = llm
        self._prompt = ChatPromptTemplate.from_messages(
            [("system", SYNTHESIS_PROMPT), ("human", SYNTHESIS_INPUT)]
        )

    @observe
    async def synthesize(
        self,
        query: str,
        documents: Sequence[RetrievedDocument],
        compressed_context: Optional[str] = None,
    ) -> SynthesisResult:
        if not query or not query.strip():
            raise InvalidInputError("Synthesis query must not be blank")
        if not documents:
            logger.info("No documents to synthesize from, returning no-information answer")
            return SynthesisResult(response=NO_INFORMATION_RESPONSE, sources=[], tokens_used=0, model_used="none")

        if compressed_context:
            context = f"{compressed_context}\n\n{title_index(documents)}"
        else:
            context = build_context(documents)
        prompt_value = await self._prompt.ainvoke({"context": context, "query": query})
        reply = await self._llm.ainvoke(prompt_value)
        response = message_text(reply).strip()

        tokens = reply_tokens(reply)
        if tokens is None:
            tokens = (len(context) + len(query) + len(response)) // CHARS_PER_TOKEN

        sources = match_sources(response, documents)
        logger.info(f"Synthesized answer ({len(response)} chars, {len(sources)} sources, {tokens} tokens)")
        return SynthesisResult(
            response=response,
            sources=sources,
            tokens_used=tokens,
            model_used=reply_model(reply, self._llm),
        )
