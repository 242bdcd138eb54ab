"""
Multi-query retriever that merges vector index hits into one context bundle.
"""

import asyncio
import logging
from typing import Dict, Any, List, Optional, Sequence

from .models import SearchHit
from .vector_store import VectorIndex

logger = logging.getLogger(__name__)


def build_context(hits: Sequence[SearchHit]) -> str:
    """Render hits as labelled source blocks for the answer prompt."""
    blocks = []
    for i, hit in enumerate(hits, start=1):
        label = f"Source {i}" if hit.page is None else f"Source {i} (page {hit.page})"
        blocks.append(f"{label}:\n{hit.text}")
    return "\n\n".join(blocks)


class Retriever:
    """Runs one search per sub-query and merges the results."""

    def __init__(self, config: Dict[str, Any], vector_index: VectorIndex):
        self.config = config
        self.vector_index = vector_index
        self.search_timeout = config.get("search_timeout", 10.0)
        self.result_multiplier = config.get("result_multiplier", 2)
        self.min_score = config.get("min_score")

    async def retrieve(
        self,
        sub_queries: Sequence[str],
        top_k: int,
        namespace: Optional[str] = None
    ) -> List[SearchHit]:
        """
        Retrieve a deduplicated, score-sorted context bundle.

        Searches run concurrently and fail independently; a failed search
        contributes no hits.

        Args:
            sub_queries: Queries to search for
            top_k: Hits requested per query
            namespace: Optional namespace override

        Returns:
            Hits sorted by descending score, unique by id, at most
            ``top_k * result_multiplier`` long. Empty when nothing was found.

        Raises:
            ValueError: if ``top_k`` is less than 1
        """
        if top_k < 1:
            raise ValueError(f"top_k must be at least 1, got {top_k}")

        queries = list(dict.fromkeys(q.strip() for q in sub_queries if q and q.strip()))
        if not queries:
            return []

        logger.info(f"Searching {len(queries)} queries: {queries}")

        results = await asyncio.gather(
            *(self._search_one(query, top_k, namespace) for query in queries)
        )

        merged: List[SearchHit] = []
        seen_ids = set()
        for hits in results:
            for hit in hits:
                if hit.id in seen_ids:
                    continue
                seen_ids.add(hit.id)
                merged.append(hit)

        if self.min_score is not None:
            merged = [hit for hit in merged if hit.score >= self.min_score]

        merged.sort(key=lambda hit: hit.score, reverse=True)
        bundle = merged[:top_k * self.result_multiplier]

        logger.info(f"Returning {len(bundle)} hits ({len(merged)} unique)")
        return bundle

    async def _search_one(self, query: str, top_k: int, namespace: Optional[str]) -> List[SearchHit]:
        try:
            hits = await asyncio.wait_for(
                self.vector_index.search(query, top_k, namespace=namespace),
                timeout=self.search_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"Search timed out after {self.search_timeout}s for query '{query}'")
            return []
        except Exception as e:
            logger.warning(f"Search failed for query '{query}': {e}")
            return []

        logger.debug(f"Found {len(hits)} hits for '{query}'")
        return list(hits)
