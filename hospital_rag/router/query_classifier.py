"""
Query Classifier for determining intent and retrieval needs of user queries.
"""

import logging
import re
from typing import Dict, Any, List
from dataclasses import dataclass, field
from enum import Enum

from ..models.llm_manager import LLMManager

logger = logging.getLogger(__name__)


class QueryIntent(Enum):
    """Intents a user query can carry."""
    GREETING = "greeting"
    IDENTITY = "identity"
    HOSPITAL_INFO = "hospital_info"
    COMPLEX_QUERY = "complex_query"
    UNCLEAR = "unclear"


QUERY_CLASSIFIER_SCHEMA = {
    "type": "object",
    "properties": {
        "intent": {
            "type": "string",
            "enum": [intent.value for intent in QueryIntent],
        },
        "refinedQuery": {"type": "string"},
        "needsRAG": {"type": "boolean"},
        "subQueries": {
            "type": "array",
            "items": {"type": "string"},
        },
    },
    "required": ["intent", "refinedQuery", "needsRAG"],
}


@dataclass
class ClassifiedQuery:
    """Result of query classification."""
    intent: QueryIntent
    refined_query: str
    needs_rag: bool
    sub_queries: List[str] = field(default_factory=list)

    def __post_init__(self):
        # A compound question always needs retrieval and at least one sub-query
        if self.intent == QueryIntent.COMPLEX_QUERY:
            self.needs_rag = True
            if not self.sub_queries:
                self.sub_queries = [self.refined_query]
        else:
            self.sub_queries = []

        if not self.needs_rag:
            self.sub_queries = []

    @property
    def search_queries(self) -> List[str]:
        """Queries to send to the vector index."""
        return list(self.sub_queries) if self.sub_queries else [self.refined_query]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "intent": self.intent.value,
            "refined_query": self.refined_query,
            "needs_rag": self.needs_rag,
            "sub_queries": list(self.sub_queries),
        }


class QueryClassifier:
    """LLM-backed query classifier with a deterministic pattern fallback."""

    GREETING_PATTERN = re.compile(
        r"^(hi|hello|hey|hiya|good (morning|afternoon|evening)|"
        r"salam|salaam|salams|assalam\w*|as-salam\w*|asalam\w*)\b",
        re.IGNORECASE
    )
    IDENTITY_PATTERN = re.compile(
        r"who are you|what (can|do) you|your (purpose|function|capabilities)",
        re.IGNORECASE
    )
    CONJUNCTION_PATTERN = re.compile(r"\s+and\s+", re.IGNORECASE)

    def __init__(self, config: Dict[str, Any], llm_manager: LLMManager):
        self.config = config
        self.llm_manager = llm_manager
        self.timeout = config.get("timeout", 8.0)
        self.temperature = config.get("temperature", 0.3)
        self.max_tokens = config.get("max_tokens", 512)
        self.provider = config.get("provider")

    async def classify(self, query: str) -> ClassifiedQuery:
        """
        Classify a user query.

        Args:
            query: Non-empty user query

        Returns:
            ClassifiedQuery; the pattern fallback is used whenever the model
            call fails, times out or returns malformed output.
        """
        logger.info(f"Classifying query: {query}")

        try:
            result = await self.llm_manager.generate_structured(
                self._build_prompt(query),
                QUERY_CLASSIFIER_SCHEMA,
                provider=self.provider,
                timeout=self.timeout,
                temperature=self.temperature,
                max_tokens=self.max_tokens
            )
            classified = self._from_model_output(query, result)
        except Exception as e:
            logger.warning(f"LLM classification failed: {e!r}, using fallback")
            classified = self._fallback_classification(query)

        logger.info(f"Classified as {classified.intent.value} (needs_rag={classified.needs_rag})")
        logger.debug(f"Classification: {classified.to_dict()}")
        return classified

    def _build_prompt(self, query: str) -> str:
        return f"""You are a query classifier for a hospital information system.

Analyze this user query and determine:
1. The intent (greeting, identity question, hospital info, complex query, or unclear)
2. A refined/optimized version for search
3. Whether RAG (knowledge base search) is needed
4. If it's complex, split into sub-queries

User Query: "{query}"

Classification Rules:
- "greeting": hi, hello, hey, good morning, salam, etc. -> needsRAG: false
- "identity": who are you, what can you do, your capabilities -> needsRAG: false
- "hospital_info": specific hospital questions -> needsRAG: true, create clear refined query
- "complex_query": multiple questions in one (e.g., "OPD timing AND hospital address") -> needsRAG: true, split into subQueries
- "unclear": vague, off-topic, or non-hospital related -> needsRAG: false

Language:
- Classify the intent whatever language the query is written in.
- Always write refinedQuery and subQueries in English, translating the query if needed.

Examples:
- "what is opd timing and hospital name" -> complex_query, subQueries: ["OPD operating hours", "hospital name and location"]
- "hi there" -> greeting, needsRAG: false
- "who are you" -> identity, needsRAG: false
- "what are the opd timings" -> hospital_info, needsRAG: true
- "xyz random text" -> unclear, needsRAG: false

Output JSON format:
{{
  "intent": "greeting" | "identity" | "hospital_info" | "complex_query" | "unclear",
  "refinedQuery": "optimized search query",
  "needsRAG": true/false,
  "subQueries": ["sub-query 1", "sub-query 2"]
}}
subQueries is only for complex_query, otherwise an empty array."""

    def _from_model_output(self, query: str, result: Dict[str, Any]) -> ClassifiedQuery:
        """Convert parsed model output into a ClassifiedQuery."""
        # Unknown intents raise ValueError and send the caller to the fallback
        intent = QueryIntent(result.get("intent"))

        refined_query = result.get("refinedQuery")
        if not isinstance(refined_query, str) or not refined_query.strip():
            refined_query = query.strip()

        needs_rag = result.get("needsRAG")
        if not isinstance(needs_rag, bool):
            needs_rag = True

        sub_queries = result.get("subQueries") or []
        if not isinstance(sub_queries, list):
            sub_queries = []
        sub_queries = [q.strip() for q in sub_queries if isinstance(q, str) and q.strip()]

        return ClassifiedQuery(
            intent=intent,
            refined_query=refined_query.strip(),
            needs_rag=needs_rag,
            sub_queries=sub_queries
        )

    def _fallback_classification(self, query: str) -> ClassifiedQuery:
        """Rule-based classification used when the model is unavailable."""
        trimmed = query.strip()

        if self.GREETING_PATTERN.search(trimmed):
            return ClassifiedQuery(QueryIntent.GREETING, trimmed, needs_rag=False)

        if self.IDENTITY_PATTERN.search(trimmed):
            return ClassifiedQuery(QueryIntent.IDENTITY, trimmed, needs_rag=False)

        if self.CONJUNCTION_PATTERN.search(trimmed) or trimmed.count("?") > 1:
            return ClassifiedQuery(
                QueryIntent.COMPLEX_QUERY,
                trimmed,
                needs_rag=True,
                sub_queries=[trimmed]
            )

        return ClassifiedQuery(QueryIntent.HOSPITAL_INFO, trimmed, needs_rag=True)
