"""
Hospital Assistant RAG Pipeline

Query classification, multi-query retrieval over a Pinecone namespace and
context-aware answer generation for the hospital information assistant.
"""

__version__ = "1.0.0"
__author__ = "Hospital Assistant Team"
