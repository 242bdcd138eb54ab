"""
Data models for the RAG module.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional


class ProgressStage(Enum):
    """Pipeline stages reported to the progress callback."""
    CLASSIFYING = "classifying"
    SEARCHING = "searching"
    GENERATING = "generating"
    WARNING = "warning"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass
class SearchHit:
    """A snippet returned by the vector index."""
    id: str
    score: float
    text: str
    page: Optional[int] = None


@dataclass
class ContextUsedItem:
    """Reference to a hit that was given to the answer generator."""
    id: str
    score: float
    page: Optional[int] = None

    @classmethod
    def from_hit(cls, hit: SearchHit) -> "ContextUsedItem":
        return cls(id=hit.id, score=hit.score, page=hit.page)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "score": self.score, "page": self.page}


@dataclass
class AssistantContent:
    """Answer and follow-up suggestions returned to the user."""
    answer: str
    suggestions: List[str] = field(default_factory=list)
    # Set when the answer is a fallback produced after a failed model call
    degraded: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"answer": self.answer, "suggestions": list(self.suggestions)}


@dataclass
class RAGAnswer:
    """Result of one pipeline invocation."""
    assistant_content: AssistantContent
    context_used: List[ContextUsedItem] = field(default_factory=list)
    intent: Optional[str] = None

    @property
    def used_rag(self) -> bool:
        return bool(self.context_used)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "assistant_content": self.assistant_content.to_dict(),
            "context_used": [item.to_dict() for item in self.context_used],
            "intent": self.intent,
        }
