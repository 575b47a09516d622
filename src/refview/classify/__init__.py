"""Reference classification strategies."""

from .base import Classifier, DocumentReader, FallbackClassifier, UnresolvedPolicyClassifier
from .cache import CachedClassifier, ClassificationCache
from .heuristic import HeuristicClassifier, MaskRules, classify_line, mask_line, symbol_text_for
from .oracle import (
    DocumentHighlight,
    HighlightKind,
    HighlightProvider,
    OracleClassifier,
    select_highlight,
)
from .runtime import build_classifier

__all__ = [
    "CachedClassifier",
    "ClassificationCache",
    "Classifier",
    "DocumentHighlight",
    "DocumentReader",
    "FallbackClassifier",
    "HeuristicClassifier",
    "HighlightKind",
    "HighlightProvider",
    "MaskRules",
    "OracleClassifier",
    "UnresolvedPolicyClassifier",
    "build_classifier",
    "classify_line",
    "mask_line",
    "select_highlight",
    "symbol_text_for",
]
