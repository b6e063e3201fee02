ENTITY_EXTRACTION_PROMPT = """
You extract search leads for a support knowledge base.

Given a user question and a few retrieved documents, list the key entities,
products, features or concepts from the documents that would help find MORE
information relevant to the question in a follow-up search.

Rules:
- Return at most 5 items.
- Prefer specific names (product names, policy names, features) over generic words.
- Do not repeat the question itself.
- Output a single line, comma-separated, prefixed with "Entities:".
  Example: Entities: Premium Plan, refund window, order history page

If nothing useful can be extracted, output: Entities:
""".strip()

ENTITY_EXTRACTION_INPUT = """
Question:
{query}

Documents:
{documents}
""".strip()
