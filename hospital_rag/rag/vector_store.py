"""
Vector index access for hospital knowledge-base search.
"""

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional

from pinecone import Pinecone

from ..models.llm_manager import LLMManager, resolve_env_vars
from .models import SearchHit

logger = logging.getLogger(__name__)


def _get(obj: Any, key: str, default: Any = None) -> Any:
    """Read ``key`` from a dict-like or attribute-style response object."""
    if obj is None:
        return default
    if isinstance(obj, dict):
        return obj.get(key, default)
    try:
        return obj[key]
    except (KeyError, TypeError, AttributeError):
        return getattr(obj, key.lstrip("_"), getattr(obj, key, default))


def _coerce_page(value: Any) -> Optional[int]:
    """Pinecone stores numbers as floats; keep whole pages as int."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


class VectorIndex(ABC):
    """Namespaced semantic search over the hospital knowledge base."""

    @abstractmethod
    async def search(self, query_text: str, top_k: int, namespace: Optional[str] = None) -> List[SearchHit]:
        """Return hits for ``query_text``, most relevant first."""
        pass


class PineconeVectorIndex(VectorIndex):
    """Pinecone-backed vector index."""

    def __init__(self, config: Dict[str, Any], llm_manager: Optional[LLMManager] = None):
        self.config = config
        self.llm_manager = llm_manager
        self.index_name = resolve_env_vars(config.get("pinecone_index_name", "hospital-docs"))
        self.namespace = resolve_env_vars(config.get("namespace", "hospital"))
        self.embedding_mode = config.get("embedding_mode", "integrated")
        self.text_field = config.get("text_field", "text")
        self.page_field = config.get("page_field", "page")
        self.pinecone_api_key = os.getenv("PINECONE_API_KEY")

        if not self.pinecone_api_key:
            raise ValueError("Pinecone API key must be provided")

        if self.embedding_mode not in ("integrated", "client"):
            raise ValueError(f"Unsupported embedding mode: {self.embedding_mode}")

        if self.embedding_mode == "client" and llm_manager is None:
            raise ValueError("Client-side embeddings require an LLM manager")

        self.pc = Pinecone(api_key=self.pinecone_api_key)
        self.index = self.pc.Index(self.index_name)

        logger.info(f"Using Pinecone index: {self.index_name} (mode={self.embedding_mode})")

    async def search(self, query_text: str, top_k: int, namespace: Optional[str] = None) -> List[SearchHit]:
        """
        Search the namespace for ``query_text``.

        Args:
            query_text: Search text
            top_k: Number of hits to request
            namespace: Namespace to search, defaults to the configured one

        Returns:
            List of SearchHit in the order returned by Pinecone
        """
        namespace = namespace or self.namespace

        if self.embedding_mode == "client":
            vector = await self.llm_manager.embed(query_text)
            response = await asyncio.to_thread(
                self.index.query,
                vector=vector,
                top_k=top_k,
                include_metadata=True,
                namespace=namespace
            )
            hits = [self._hit_from_match(match) for match in (_get(response, "matches") or [])]
        else:
            response = await asyncio.to_thread(
                self.index.search,
                namespace=namespace,
                query={"inputs": {"text": query_text}, "top_k": top_k},
                fields=[self.text_field, self.page_field]
            )
            result = _get(response, "result")
            hits = [self._hit_from_record(hit) for hit in (_get(result, "hits") or [])]

        logger.debug(f"Pinecone returned {len(hits)} hits for '{query_text}' in namespace '{namespace}'")
        return hits

    def _hit_from_record(self, hit: Any) -> SearchHit:
        """Map an integrated-inference search hit."""
        fields = _get(hit, "fields") or {}
        return SearchHit(
            id=str(_get(hit, "_id")),
            score=float(_get(hit, "_score") or 0.0),
            text=str(_get(fields, self.text_field) or ""),
            page=_coerce_page(_get(fields, self.page_field))
        )

    def _hit_from_match(self, match: Any) -> SearchHit:
        """Map a vector query match."""
        metadata = _get(match, "metadata") or {}
        return SearchHit(
            id=str(_get(match, "id")),
            score=float(_get(match, "score") or 0.0),
            text=str(_get(metadata, self.text_field) or ""),
            page=_coerce_page(_get(metadata, self.page_field))
        )

    def get_stats(self) -> Dict[str, Any]:
        """Get Pinecone index statistics."""
        try:
            index_stats = self.index.describe_index_stats()
            namespaces = _get(index_stats, "namespaces") or {}

            return {
                "index_name": self.index_name,
                "namespace": self.namespace,
                "embedding_mode": self.embedding_mode,
                "total_vector_count": _get(index_stats, "total_vector_count", 0),
                "dimension": _get(index_stats, "dimension", 0),
                "namespace_vector_count": _get(_get(namespaces, self.namespace), "vector_count", 0),
            }
        except Exception as e:
            logger.error(f"Failed to get Pinecone stats: {e}")
            return {"error": str(e)}
