"""Page classifier implementations."""

from .base import ClassificationResult, PageClassifier
from .keyword_classifier import KeywordPageClassifier

__all__ = ["ClassificationResult", "KeywordPageClassifier", "PageClassifier"]
