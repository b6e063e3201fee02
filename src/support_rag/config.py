# src/support_rag/config.py
"""Configuration models for the support RAG pipeline."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from support_rag.compression import constants as cc
from support_rag.retrieval import constants as rc


class RetrievalConfig(BaseModel):
    """Hybrid search and rerank parameters."""

    model_config = ConfigDict(extra="forbid")

    default_top_k: int = Field(default=rc.DEFAULT_TOP_K, ge=1)
    rrf_k: int = Field(default=rc.DEFAULT_RRF_K, ge=1)
    vector_weight: float = Field(default=rc.DEFAULT_VECTOR_WEIGHT, ge=0.0)
    keyword_weight: float = Field(default=rc.DEFAULT_KEYWORD_WEIGHT, ge=0.0)
    use_reranking: bool = True
    rerank_concurrency: int = Field(default=rc.DEFAULT_RERANK_CONCURRENCY, ge=1)


class MultiHopConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = True
    max_hops: int = Field(default=rc.DEFAULT_MAX_HOPS, ge=1)
    top_k_per_hop: int = Field(default=rc.DEFAULT_TOP_K_PER_HOP, ge=1)
    max_entities: int = Field(default=rc.MAX_ENTITIES, ge=0)


class CompressionConfig(BaseModel):
    """Token budget and sentence selection parameters."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool = True
    max_tokens: int = Field(default=cc.DEFAULT_MAX_CONTEXT_TOKENS, ge=1)
    relevance_threshold: float = Field(default=cc.DEFAULT_RELEVANCE_THRESHOLD, ge=-1.0, le=1.0)
    similarity_threshold: float = Field(default=cc.DEFAULT_SIMILARITY_THRESHOLD, ge=0.0, le=1.0)
    fallback_sentence_count: int = Field(default=cc.FALLBACK_SENTENCE_COUNT, ge=1)
    min_partial_tokens: int = Field(default=cc.MIN_PARTIAL_TOKENS, ge=0)
    encoding_name: str = cc.DEFAULT_ENCODING


class ValidationConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = True
    confidence_threshold: float = Field(default=70.0, ge=0.0, le=100.0)
    # Below this (and flagged for review) the workflow re-runs retrieval.
    low_confidence_threshold: float = Field(default=50.0, ge=0.0, le=100.0)


class WorkflowConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    max_retries: int = Field(default=3, ge=0)
    stage_timeout_seconds: float = Field(default=30.0, gt=0)
    use_planning: bool = True


class AppConfig(BaseSettings):
    """Top-level configuration assembled from the section models.

    Fields load from SUPPORT_RAG_<SECTION>__<FIELD> environment variables,
    e.g. SUPPORT_RAG_RETRIEVAL__RRF_K=30 or SUPPORT_RAG_MULTI_HOP__ENABLED=false.
    """

    # model names (SUPPORT_RAG_CHAT_MODEL, ...) share the prefix and are read in support_rag.model
    model_config = SettingsConfigDict(env_prefix="SUPPORT_RAG_", env_nested_delimiter="__", extra="ignore")

    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)
    multi_hop: MultiHopConfig = Field(default_factory=MultiHopConfig)
    compression: CompressionConfig = Field(default_factory=CompressionConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    workflow: WorkflowConfig = Field(default_factory=WorkflowConfig)
