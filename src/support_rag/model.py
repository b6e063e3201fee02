# src/support_rag/model.py
import logging
import os

from langchain.chat_models import init_chat_model
from langchain.embeddings import init_embeddings

logger = logging.getLogger(__name__)

DEFAULT_CHAT_MODEL = "gpt-4.1"
DEFAULT_EMBEDDING_MODEL = "openai:text-embedding-3-small"


def get_default_model():
    name = os.getenv("SUPPORT_RAG_CHAT_MODEL", DEFAULT_CHAT_MODEL)
    model = init_chat_model(model=name, temperature=0.0, max_tokens=5000)
    return model


def get_default_embeddings():
    name = os.getenv("SUPPORT_RAG_EMBEDDING_MODEL", DEFAULT_EMBEDDING_MODEL)
    logger.debug(f"Initialising embeddings model {name}")
    return init_embeddings(name)
