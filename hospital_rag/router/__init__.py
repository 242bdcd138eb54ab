"""
Query classification for the hospital assistant.
"""

from .query_classifier import QueryClassifier, ClassifiedQuery, QueryIntent

__all__ = ["QueryClassifier", "ClassifiedQuery", "QueryIntent"]
