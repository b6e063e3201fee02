"""Hybrid retrieval: vector + keyword search, rank fusion, rerank, multi-hop."""
