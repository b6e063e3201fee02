# src/support_rag/answer/validator.py
"""Heuristic response validation.

Confidence is on a 0-100 scale:
    0.4 * term coverage + 0.4 * source sentence overlap + 0.2 * response quality

A response sentence is a hallucination candidate when fewer than 30% of its
content words appear anywhere in the sources.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Protocol, Sequence

from support_rag.answer.state import ValidationResult
from support_rag.config import ValidationConfig
from support_rag.errors import InvalidInputError
from support_rag.retrieval.state import RetrievedDocument
from support_rag.utils import observe

logger = logging.getLogger(__name__)

NO_INFORMATION_MARKER = "i don't have enough information"
HEDGE_PHRASES = ("maybe", "possibly", "might be", "could be")
CITATION_MARKER = "[source:"

MIN_TERM_LENGTH = 5  # words shorter than this are ignored as content words
MIN_SENTENCE_CHARS = 20
MIN_CLAIM_WORDS = 6
SUPPORT_RATIO = 0.3
SHORT_RESPONSE_CHARS = 50

_SENTENCE_RE = re.compile(r"[.!?]+")
_WORD_RE = re.compile(r"[a-z0-9']+")


class ValidatorAdapter(Protocol):
    async def validate(
        self,
        response: str,
        sources: Sequence[RetrievedDocument],
        query: Optional[str] = None,
    ) -> ValidationResult:
        ...


def _sentences(text: str) -> List[str]:
    return [s.strip() for s in _SENTENCE_RE.split(text) if s.strip()]


def _content_words(text: str) -> List[str]:
    return [w for w in _WORD_RE.findall(text.lower()) if len(w) >= MIN_TERM_LENGTH]


def term_coverage(response: str, source_text: str) -> float:
    terms = set(_content_words(source_text))
    if not terms:
        return 50.0
    lowered = response.lower()
    hits = sum(1 for t in terms if t in lowered)
    return hits / len(terms) * 100.0


def sentence_overlap(response: str, source_text: str) -> float:
    lowered = response.lower()
    score = 0.0
    for sentence in _sentences(source_text):
        if len(sentence) > MIN_SENTENCE_CHARS and sentence.lower() in lowered:
            score += 20.0
    return min(100.0, score)


def response_quality(response: str) -> float:
    lowered = response.lower()
    score = 100.0
    if len(response) < SHORT_RESPONSE_CHARS:
        score -= 30.0
    if any(h in lowered for h in HEDGE_PHRASES):
        score -= 20.0
    if CITATION_MARKER in lowered:
        score += 10.0
    return max(0.0, min(100.0, score))


def find_unsupported_claims(response: str, source_text: str) -> List[str]:
    source_words = set(_content_words(source_text))
    claims: List[str] = []
    for sentence in _sentences(response):
        if len(sentence) <= MIN_SENTENCE_CHARS or sentence.lower().startswith("i don't"):
            continue
        if len(sentence.split()) < MIN_CLAIM_WORDS:
            continue
        words = _content_words(sentence)
        if not words:
            continue
        supported = sum(1 for w in words if w in source_words)
        if supported / len(words) < SUPPORT_RATIO:
            claims.append(sentence)
    return claims


class HeuristicValidator:
    def __init__(self, config: Optional[ValidationConfig] = None):
        self.config = config or ValidationConfig()

    @observe
    async def validate(
        self,
        response: str,
        sources: Sequence[RetrievedDocument],
        query: Optional[str] = None,
    ) -> ValidationResult:
        if not response or not response.strip():
            raise InvalidInputError("Response to validate must not be blank")
        if not sources:
            raise InvalidInputError("Validation requires at least one source document")

        if not self.config.enabled:
            return ValidationResult(valid=True, confidence_score=100.0, verification_details={"enabled": False})

        if NO_INFORMATION_MARKER in response.lower():
            return ValidationResult(
                valid=True,
                confidence_score=100.0,
                verification_details={"reason": "explicit_no_information"},
            )

        source_text = "\n".join(doc.content for doc in sources)
        scores: Dict[str, float] = {
            "semantic_similarity": term_coverage(response, source_text),
            "source_overlap": sentence_overlap(response, source_text),
            "response_quality": response_quality(response),
        }
        confidence = (
            0.4 * scores["semantic_similarity"] + 0.4 * scores["source_overlap"] + 0.2 * scores["response_quality"]
        )
        confidence = max(0.0, min(100.0, confidence))
        claims = find_unsupported_claims(response, source_text)

        threshold = self.config.confidence_threshold
        requires_review = confidence < threshold or bool(claims)
        reason = None
        if confidence < threshold:
            reason = f"Low confidence score: {confidence:.2f} (threshold: {threshold:.2f})"
        elif claims:
            reason = f"Detected {len(claims)} potential hallucinations"

        result = ValidationResult(
            valid=not claims and confidence >= threshold,
            confidence_score=confidence,
            hallucinated_claims=claims,
            verification_details={**scores, "source_count": len(sources)},
            requires_human_review=requires_review,
            review_reason=reason,
        )
        logger.info(
            f"Validation: confidence={confidence:.1f} claims={len(claims)} review={requires_review}"
        )
        return result
