"""
RAG (Retrieval-Augmented Generation) pipeline for hospital question answering.
"""

from .answer_generator import AnswerGenerator
from .models import AssistantContent, ContextUsedItem, ProgressStage, RAGAnswer, SearchHit
from .orchestrator import RAGOrchestrator
from .retriever import Retriever, build_context
from .vector_store import VectorIndex, PineconeVectorIndex

__all__ = [
    "AnswerGenerator",
    "AssistantContent",
    "ContextUsedItem",
    "ProgressStage",
    "RAGAnswer",
    "SearchHit",
    "RAGOrchestrator",
    "Retriever",
    "build_context",
    "VectorIndex",
    "PineconeVectorIndex",
]
