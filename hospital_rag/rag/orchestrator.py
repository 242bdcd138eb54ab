"""
RAG orchestrator composing classification, retrieval and answer generation.
"""

import logging
from typing import Dict, Any, Callable, Optional, Tuple

from ..router.query_classifier import QueryClassifier, ClassifiedQuery, QueryIntent
from .answer_generator import AnswerGenerator, TEXT_FALLBACK
from .models import AssistantContent, ContextUsedItem, ProgressStage, RAGAnswer
from .retriever import Retriever, build_context

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, Dict[str, Any]], None]

EXAMPLE_QUESTIONS = [
    "What are the hospital timings?",
    "How can I contact the hospital?",
    "What services are available?",
]

FALLBACK_ANSWER = "I'm experiencing technical difficulties. Please try again in a moment."

CANNED_RESPONSES = {
    QueryIntent.GREETING: AssistantContent(
        answer="Hello! I'm the hospital information assistant. How can I help you today?",
        suggestions=[
            "What are the OPD timings?",
            "Where is the hospital located?",
            "How do I book an appointment?",
        ]
    ),
    QueryIntent.IDENTITY: AssistantContent(
        answer=(
            "I'm the hospital information assistant. I can answer questions about "
            "timings, departments, doctors, services, appointments and contact details "
            "using the hospital's documents."
        ),
        suggestions=[
            "Which departments does the hospital have?",
            "What are the visiting hours?",
            "How can I contact the hospital?",
        ]
    ),
    QueryIntent.UNCLEAR: AssistantContent(
        answer=(
            "I'm not sure I understood that. I can help with hospital information such as "
            "timings, departments, services and appointments."
        ),
        suggestions=EXAMPLE_QUESTIONS
    ),
}

STATIC_TEXT_RESPONSES = {
    QueryIntent.GREETING: (
        "Hello! I'm your hospital information assistant. Ask me about timings, "
        "departments, appointments, services, or location."
    ),
    QueryIntent.IDENTITY: (
        "I'm a hospital information assistant. I can help you with services, timings, "
        "departments, doctors, appointments, and more. What would you like to know?"
    ),
    QueryIntent.UNCLEAR: (
        "I'm not sure I understood that. I can help with hospital timings, departments, "
        "appointments, and services. Could you rephrase your question?"
    ),
}


class RAGOrchestrator:
    """Runs one hospital question through the full RAG pipeline."""

    def __init__(
        self,
        config: Dict[str, Any],
        classifier: QueryClassifier,
        retriever: Retriever,
        generator: AnswerGenerator
    ):
        self.config = config
        self.classifier = classifier
        self.retriever = retriever
        self.generator = generator
        self.top_k = config.get("top_k", 3)

    async def answer(
        self,
        query: str,
        namespace: Optional[str] = None,
        top_k: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None
    ) -> RAGAnswer:
        """
        Answer a user query.

        Failures inside the pipeline never propagate: the caller always gets
        a usable RAGAnswer, falling back to a fixed answer with example
        questions after an "error" progress event.

        Args:
            query: The user's question
            namespace: Optional vector index namespace override
            top_k: Hits requested per sub-query
            on_progress: Optional ``(stage, details)`` callback

        Returns:
            RAGAnswer with the assistant content and the context used

        Raises:
            ValueError: if ``query`` is empty or ``top_k`` is less than 1
        """
        query, top_k = self._validate(query, top_k)
        logger.info(f"RAG pipeline started for query: {query}")

        try:
            self._notify(on_progress, ProgressStage.CLASSIFYING, {"query": query})
            classified = await self.classifier.classify(query)
            self._notify(on_progress, ProgressStage.CLASSIFYING, {
                "intent": classified.intent.value,
                "needs_rag": classified.needs_rag,
                "refined_query": classified.refined_query,
            })

            if self._is_static(classified):
                logger.info(f"Static response for intent {classified.intent.value}")
                canned = CANNED_RESPONSES[classified.intent]
                self._notify(on_progress, ProgressStage.COMPLETE, {"used_rag": False, "sources": 0})
                return RAGAnswer(
                    assistant_content=AssistantContent(canned.answer, list(canned.suggestions)),
                    context_used=[],
                    intent=classified.intent.value
                )

            context = ""
            context_used = []
            if classified.needs_rag:
                queries = classified.search_queries
                self._notify(on_progress, ProgressStage.SEARCHING, {
                    "sub_queries": queries,
                    "is_complex": classified.intent == QueryIntent.COMPLEX_QUERY or len(queries) > 1,
                })

                hits = await self.retriever.retrieve(queries, top_k, namespace=namespace)
                context = build_context(hits)
                context_used = [ContextUsedItem.from_hit(hit) for hit in hits]
                logger.info(f"Found {len(context_used)} relevant sources")

            self._notify(on_progress, ProgressStage.GENERATING, {
                "type": "rag_response" if classified.needs_rag else "direct_response",
                "sources_found": len(context_used),
            })

            # The original wording is answered, not the refined search query
            assistant_content = await self.generator.generate(query, context)

            if assistant_content.degraded:
                self._notify(on_progress, ProgressStage.WARNING, {
                    "stage": ProgressStage.GENERATING.value,
                    "message": "Answer generation failed, using fallback answer",
                })

            self._notify(on_progress, ProgressStage.COMPLETE, {
                "used_rag": bool(context_used),
                "sources": len(context_used),
            })
            logger.info(f"RAG pipeline complete - intent: {classified.intent.value}, sources: {len(context_used)}")

            return RAGAnswer(
                assistant_content=assistant_content,
                context_used=context_used,
                intent=classified.intent.value
            )

        except Exception as e:
            logger.error(f"RAG pipeline failed: {e}", exc_info=True)
            self._notify(on_progress, ProgressStage.ERROR, {"error": str(e)})

            return RAGAnswer(
                assistant_content=AssistantContent(
                    answer=FALLBACK_ANSWER,
                    suggestions=list(EXAMPLE_QUESTIONS),
                    degraded=True
                ),
                context_used=[]
            )

    async def answer_text(
        self,
        query: str,
        namespace: Optional[str] = None,
        top_k: Optional[int] = None
    ) -> str:
        """
        Answer a user query as one plain-text message for chat channels.

        Non-retrieval intents get a fixed reply. There are no suggestions
        or progress events, and any pipeline failure yields a fixed apology.

        Raises:
            ValueError: if ``query`` is empty or ``top_k`` is less than 1
        """
        query, top_k = self._validate(query, top_k)
        logger.info(f"Text pipeline started for query: {query}")

        try:
            classified = await self.classifier.classify(query)

            if not classified.needs_rag or classified.intent in (QueryIntent.GREETING, QueryIntent.IDENTITY):
                logger.info(f"Static text response for intent {classified.intent.value}")
                return STATIC_TEXT_RESPONSES.get(classified.intent, STATIC_TEXT_RESPONSES[QueryIntent.UNCLEAR])

            hits = await self.retriever.retrieve(classified.search_queries, top_k, namespace=namespace)
            logger.info(f"Found {len(hits)} relevant sources")

            return await self.generator.generate_text(query, build_context(hits))

        except Exception as e:
            logger.error(f"Text pipeline failed: {e}", exc_info=True)
            return TEXT_FALLBACK

    def _validate(self, query: str, top_k: Optional[int]) -> Tuple[str, int]:
        query = (query or "").strip()
        if not query:
            raise ValueError("Query must be a non-empty string")

        top_k = self.top_k if top_k is None else top_k
        if top_k < 1:
            raise ValueError(f"top_k must be at least 1, got {top_k}")

        return query, top_k

    @staticmethod
    def _is_static(classified: ClassifiedQuery) -> bool:
        if classified.intent in (QueryIntent.GREETING, QueryIntent.IDENTITY):
            return True
        return classified.intent == QueryIntent.UNCLEAR and not classified.needs_rag

    @staticmethod
    def _notify(on_progress: Optional[ProgressCallback], stage: ProgressStage, details: Dict[str, Any]):
        """Send a progress event; observer errors never reach the pipeline."""
        if on_progress is None:
            return
        try:
            on_progress(stage.value, details)
        except Exception as e:
            logger.warning(f"Progress callback failed at stage {stage.value}: {e}")
