"""
Answer generation from retrieved hospital context.
"""

import logging
from typing import Dict, Any, List

from ..models.llm_manager import LLMManager, StructuredOutputError
from .models import AssistantContent

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "Information not available"
GENERATION_FALLBACK = "I'm having trouble answering right now. Please try again shortly."
TEXT_FALLBACK = "I'm having trouble answering right now. Please try again or contact the hospital directly."
SNIPPET_PREFIX = "Here's what I found:\n\n"
SNIPPET_LENGTH = 600

ANSWER_SCHEMA = {
    "type": "object",
    "properties": {
        "answer": {
            "type": "string",
            "description": "Short factual answer or 'Information not available'",
        },
        "suggestions": {
            "type": "array",
            "items": {"type": "string"},
            "description": "5-6 follow-up questions",
        },
    },
    "required": ["answer", "suggestions"],
}

# Suggestions are optional when parsing; a bare answer is still usable.
ANSWER_REQUIRED_KEYS = ["answer"]

TEXT_ANSWER_SCHEMA = {
    "type": "object",
    "properties": {
        "answer": {
            "type": "string",
            "description": "Plain-text reply for a chat message",
        },
    },
    "required": ["answer"],
}


class AnswerGenerator:
    """Generates short factual answers and follow-up suggestions."""

    def __init__(self, config: Dict[str, Any], llm_manager: LLMManager):
        self.config = config
        self.llm_manager = llm_manager
        self.timeout = config.get("timeout", 15.0)
        self.temperature = config.get("temperature", 0.7)
        self.max_tokens = config.get("max_tokens", 1024)
        self.max_suggestions = config.get("max_suggestions", 6)
        self.text_temperature = config.get("text_temperature", 0.5)
        self.text_max_tokens = config.get("text_max_tokens", 512)
        self.provider = config.get("provider")

    async def generate(self, query: str, context: str) -> AssistantContent:
        """
        Answer ``query`` from ``context``.

        An empty context switches the prompt to the not-found branch, which
        still asks for follow-up questions inferred from the query.
        """
        prompt = self._build_context_prompt(query, context) if context.strip() else self._build_no_context_prompt(query)

        try:
            parsed = await self.llm_manager.generate_structured(
                prompt,
                ANSWER_SCHEMA,
                provider=self.provider,
                timeout=self.timeout,
                required=ANSWER_REQUIRED_KEYS,
                temperature=self.temperature,
                max_tokens=self.max_tokens
            )
        except StructuredOutputError as e:
            logger.warning(f"Failed to parse answer response: {e}")
            return AssistantContent(answer=e.raw_text.strip() or NOT_AVAILABLE, suggestions=[])
        except Exception as e:
            logger.warning(f"Answer generation failed: {e!r}")
            return AssistantContent(answer=GENERATION_FALLBACK, suggestions=[], degraded=True)

        answer = parsed.get("answer")
        if not isinstance(answer, str) or not answer.strip():
            answer = NOT_AVAILABLE

        return AssistantContent(
            answer=answer.strip(),
            suggestions=self._clean_suggestions(parsed.get("suggestions"))
        )

    async def generate_text(self, query: str, context: str) -> str:
        """
        Answer ``query`` as a single plain-text chat message.

        Used by messaging channels that cannot render suggestions or
        markdown. If the model call fails and context was retrieved, the
        start of the context is returned so the user still gets the facts.
        """
        prompt = self._build_text_prompt(query, context) if context.strip() else self._build_text_no_context_prompt(query)

        try:
            parsed = await self.llm_manager.generate_structured(
                prompt,
                TEXT_ANSWER_SCHEMA,
                provider=self.provider,
                timeout=self.timeout,
                temperature=self.text_temperature,
                max_tokens=self.text_max_tokens
            )
        except StructuredOutputError as e:
            logger.warning(f"Failed to parse text answer response: {e}")
            return e.raw_text.strip() or TEXT_FALLBACK
        except Exception as e:
            logger.warning(f"Text answer generation failed: {e!r}")
            if context.strip():
                return SNIPPET_PREFIX + context.strip()[:SNIPPET_LENGTH]
            return TEXT_FALLBACK

        answer = parsed.get("answer")
        if not isinstance(answer, str) or not answer.strip():
            return TEXT_FALLBACK
        return answer.strip()

    def _clean_suggestions(self, suggestions: Any) -> List[str]:
        if not isinstance(suggestions, list):
            return []
        cleaned = [s.strip() for s in suggestions if isinstance(s, str) and s.strip()]
        return cleaned[:self.max_suggestions]

    def _build_context_prompt(self, query: str, context: str) -> str:
        return f"""You are a hospital information assistant.

RULES:
- Answer ONLY from the given context.
- Maximum 10 lines.
- Clear, short, factual.
- If the context is insufficient to answer, say: "{NOT_AVAILABLE}". Never invent facts.
- ALWAYS generate 5-6 follow-up questions for the user, based on the context.

Context:
{context}

User Question:
{query}

Output JSON format:
{{
  "answer": "<short factual answer or '{NOT_AVAILABLE}'>",
  "suggestions": ["question 1", "question 2", "question 3", "question 4", "question 5"]
}}"""

    def _build_no_context_prompt(self, query: str) -> str:
        return f"""You are a hospital information assistant.

No information was found in the hospital knowledge base for the user's question.

RULES:
- Reply politely that the information is not available. Do not guess or invent facts.
- Keep the answer to one or two short sentences.
- ALWAYS generate 5-6 follow-up questions for the user based on their input.
  Interpret the input as best you can and expand short queries meaningfully
  (e.g., if the user typed a hospital name, suggest questions about address,
  visiting hours, appointments, services, departments, doctors).

User Question:
{query}

Output JSON format:
{{
  "answer": "<polite not-found answer>",
  "suggestions": ["question 1", "question 2", "question 3", "question 4", "question 5"]
}}"""

    def _build_text_prompt(self, query: str, context: str) -> str:
        return f"""You are a hospital information assistant replying via WhatsApp.

RULES:
- Answer ONLY from the given context. Never invent facts.
- Maximum 8 lines.
- Clear, short, friendly.
- No bullet points or markdown. Plain text only.
- If the context does not answer the question, say so politely.

Context:
{context}

User Question:
{query}

Output JSON format:
{{
  "answer": "<plain-text reply>"
}}"""

    def _build_text_no_context_prompt(self, query: str) -> str:
        return f"""You are a hospital information assistant replying via WhatsApp.

No information was found in the hospital knowledge base for the user's question.

RULES:
- Politely say the information was not found, in one or two sentences.
- Suggest asking about timings, departments, appointments or location.
- No bullet points or markdown. Plain text only.

User Question:
{query}

Output JSON format:
{{
  "answer": "<plain-text reply>"
}}"""
