"""Support assistant RAG pipeline using LangGraph.

This package answers a question with a supervised, retryable workflow:
- Planner: decompose the question into dependent sub-queries
- Executor: run sub-queries level by level with dependency context
- Retrieval: hybrid vector + keyword search, rank fusion, rerank, multi-hop
- Compression: token-budgeted sentence selection
- Answer: synthesis and response validation
- Workflow: state machine, retry/fallback layer and orchestrator
"""

__version__ = "0.1.0"
