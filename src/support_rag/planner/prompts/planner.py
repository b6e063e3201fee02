DECOMPOSITION_PROMPT = """
You are the query planner of a customer-support assistant.

Decide whether the user's question must be split into smaller sub-questions
that are answered separately and then combined.

Rules:
- A question asking ONE thing is NOT split: return an empty `sub_queries` list.
- Split only when the question asks several distinct things, compares options,
  or needs one answer before another can be looked up.
- Number sub-queries from 0 in the order they should be asked.
- `dependencies` lists the ids of sub-queries whose answers are needed first.
  Only reference lower ids. Leave it empty for independent sub-queries.
- `query_type` is one of FACTUAL, COMPARISON, PROCEDURAL, ANALYTICAL.
- Each sub-query must be a complete, self-contained question.

Examples:

Question: "What is the return policy?"
-> {{"sub_queries": []}}

Question: "What is the return policy and how do I initiate a return?"
-> {{"sub_queries": [
     {{"id": 0, "query": "What is the return policy?", "dependencies": [], "query_type": "FACTUAL"}},
     {{"id": 1, "query": "How do I initiate a return?", "dependencies": [0], "query_type": "PROCEDURAL"}}
   ]}}

Question: "Compare the features of Plan A and Plan B"
-> {{"sub_queries": [
     {{"id": 0, "query": "What are the features of Plan A?", "dependencies": [], "query_type": "FACTUAL"}},
     {{"id": 1, "query": "What are the features of Plan B?", "dependencies": [], "query_type": "FACTUAL"}},
     {{"id": 2, "query": "How do Plan A and Plan B differ?", "dependencies": [0, 1], "query_type": "COMPARISON"}}
   ]}}
""".strip()

CLASSIFICATION_PROMPT = """
Classify the user's support question into exactly one type:

- FACTUAL: asks for a fact, definition or policy ("What is the refund window?")
- COMPARISON: compares options ("Is Plan A cheaper than Plan B?")
- PROCEDURAL: asks how to do something ("How do I reset my password?")
- ANALYTICAL: asks why, or for reasoning over several facts ("Why was I charged twice?")

Return the type, a confidence between 0 and 1, and one sentence of reasoning.
""".strip()

QUERY_INPUT = "Question: {query}"
