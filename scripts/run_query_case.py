# scripts/run_query_case.py
"""Run query case(s) through the full workflow against an in-memory corpus.

Case format:
    {
      "case_id": "return_policy",
      "query": "What is the return policy and how do I initiate a return?",
      "context": {"documentType": "policy"},
      "documents": [{"id": "doc-1", "title": "Return Policy", "content": "...", "document_type": "policy"}]
    }
"""

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List

from dotenv import load_dotenv

env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(env_path)

from langchain_core.documents import Document
from langchain_core.vectorstores import InMemoryVectorStore

from scripts.case_utils import get_case_id, resolve_cases, write_artifact
from support_rag.config import AppConfig
from support_rag.model import get_default_embeddings, get_default_model
from support_rag.retrieval.adapters import InMemoryKeywordSearch, LangChainVectorSearch, build_vector_filter
from support_rag.retrieval.state import RetrievedDocument
from support_rag.workflow.orchestrator import AgentOrchestrator


def metadata_predicate(filters):
    """InMemoryVectorStore filters with a callable; equality on the mapped keys only."""
    mapped = build_vector_filter(filters) or {}
    equality = {k: v for k, v in mapped.items() if not isinstance(v, dict)}
    if not equality:
        return None
    return lambda doc: all(doc.metadata.get(k) == v for k, v in equality.items())


def corpus_from_case(case: Dict[str, Any]) -> List[RetrievedDocument]:
    docs = []
    for raw in case.get("documents") or []:
        meta = {k: v for k, v in raw.items() if k not in ("id", "content")}
        docs.append(RetrievedDocument(id=str(raw["id"]), content=raw["content"], metadata=meta))
    return docs


async def run_single_case(case_path: Path, case: Dict[str, Any], *, run_id: str, config: AppConfig, llm, embeddings):
    case_id = get_case_id(case_path, case)
    corpus = corpus_from_case(case)

    store = InMemoryVectorStore(embeddings)
    if corpus:
        await store.aadd_documents(
            [Document(id=d.id, page_content=d.content, metadata=dict(d.metadata)) for d in corpus]
        )

    orchestrator = AgentOrchestrator.from_components(
        llm=llm,
        embeddings=embeddings,
        vector_search=LangChainVectorSearch(store, filter_builder=metadata_predicate),
        keyword_search=InMemoryKeywordSearch(corpus),
        config=config,
    )

    request = {"query": case["query"], "sessionId": case.get("session_id"), "context": case.get("context") or {}}

    print(f"\nRunning query case: {case_id}")
    response = await orchestrator.process_query(request)

    info = response.metadata.additional_info
    print(f"  ✓ {info.get('workflowStatus')} in {response.metadata.latency_ms} ms")
    print(f"  ➡ {response.response[:100]}...")

    artifacts_dir = Path("artifacts/query_eval")
    write_artifact(artifacts_dir, run_id, case_id, "input", case)
    write_artifact(artifacts_dir, run_id, case_id, "response", response)
    print(f"Artifacts written to: {artifacts_dir / run_id / case_id}")


async def run_cases(args) -> None:
    cases = resolve_cases(args.case)
    print(f"Found {len(cases)} case(s) to process")

    config = AppConfig()
    if args.max_retries is not None:
        config.workflow.max_retries = args.max_retries

    llm = get_default_model()
    embeddings = get_default_embeddings()

    for case_path, case_data in cases:
        try:
            await run_single_case(
                case_path, case_data, run_id=args.run_id, config=config, llm=llm, embeddings=embeddings
            )
        except Exception as e:
            print(f"\n❌ Error processing {case_path.name}: {e}")
            raise


def main():
    parser = argparse.ArgumentParser(description="Run the support workflow on query case(s).")
    parser.add_argument("--case", required=True, help="Path to case JSON or glob pattern")
    parser.add_argument("--run-id", default="manual_query", help="Run id for artifacts")
    parser.add_argument("--max-retries", type=int, default=None, help="Override workflow max retries")
    parser.add_argument("--log-level", default="INFO", help="Logging level")

    args = parser.parse_args()
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    asyncio.run(run_cases(args))


if __name__ == "__main__":
    main()
