"""
DocQA

Answers natural-language questions about product documentation.

Philosophy:
- Chunks are derived from the documentation, never edited in place
- Retrieval is hybrid: vector similarity re-ranked with keyword evidence
- Every answer carries exactly one editor Action
- Provider failures get one fallback, then a single clean error

Usage:
    from docqa.common import load_config, DocumentStore
    from docqa.retriever import RagIndex, Retriever, Orchestrator
"""

__version__ = "0.1.0"
