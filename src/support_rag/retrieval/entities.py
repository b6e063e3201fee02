# src/support_rag/retrieval/entities.py

from __future__ import annotations

import logging
import re
from typing import List, Sequence

from langchain_core.prompts import ChatPromptTemplate

from support_rag.retrieval.constants import (
    ENTITY_DOC_CHARS,
    ENTITY_DOC_LIMIT,
    MAX_ENTITIES,
    MIN_ENTITY_LENGTH,
)
from support_rag.retrieval.prompts.entities import ENTITY_EXTRACTION_INPUT, ENTITY_EXTRACTION_PROMPT
from support_rag.retrieval.state import RetrievedDocument
from support_rag.utils import message_text, observe

logger = logging.getLogger(__name__)

_SPLIT_RE = re.compile(r"[,\n]")
_PREFIX_RE = re.compile(r"^\s*entities\s*:\s*", re.IGNORECASE)
_BULLET_RE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s*")


def format_documents(documents: Sequence[RetrievedDocument], limit: int = ENTITY_DOC_LIMIT) -> str:
    blocks = []
    for i, doc in enumerate(documents[:limit], start=1):
        content = doc.content
        if len(content) > ENTITY_DOC_CHARS:
            content = content[:ENTITY_DOC_CHARS] + "..."
        blocks.append(f"[{i}] {doc.title or 'Untitled'}\n{content}")
    return "\n\n".join(blocks)


def parse_entities(text: str, max_entities: int = MAX_ENTITIES) -> List[str]:
    """Parse 'Entities: a, b, c' (or a bullet list) into a clean list."""
    text = _PREFIX_RE.sub("", text.strip())
    out: List[str] = []
    seen = set()
    for raw in _SPLIT_RE.split(text):
        item = _PREFIX_RE.sub("", _BULLET_RE.sub("", raw)).strip().strip("\"'")
        if len(item) < MIN_ENTITY_LENGTH or item.lower() in seen:
            continue
        seen.add(item.lower())
        out.append(item)
        if len(out) >= max_entities:
            break
    return out


class EntityExtractor:
    """Asks the LLM for follow-up search entities. Never raises."""

    def __init__(self, llm, *, max_entities: int = MAX_ENTITIES):
        self._llm = llm
        self._max_entities = max_entities
        self._prompt = ChatPromptTemplate.from_messages(
            [("system", ENTITY_EXTRACTION_PROMPT), ("human", ENTITY_EXTRACTION_INPUT)]
        )

    @observe
    async def extract(self, query: str, documents: Sequence[RetrievedDocument]) -> List[str]:
        if not documents:
            return []
        try:
            prompt_value = await self._prompt.ainvoke(
                {"query": query, "documents": format_documents(documents)}
            )
            reply = await self._llm.ainvoke(prompt_value)
            entities = parse_entities(message_text(reply), self._max_entities)
        except Exception as e:
            logger.warning(f"Entity extraction failed: {e}")
            return []
        logger.info(f"Extracted {len(entities)} entities: {entities}")
        return entities
