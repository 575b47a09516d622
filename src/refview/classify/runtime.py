"""Runtime classifier construction."""

from __future__ import annotations

from refview.classify.base import (
    Classifier,
    DocumentReader,
    FallbackClassifier,
    UnresolvedPolicyClassifier,
)
from refview.classify.heuristic import HeuristicClassifier
from refview.classify.oracle import HighlightProvider, OracleClassifier
from refview.config import ClassificationConfig
from refview.models import Classification


def build_classifier(
    config: ClassificationConfig,
    reader: DocumentReader | None = None,
    oracle: HighlightProvider | None = None,
) -> Classifier:
    """Build the classification strategy chain from effective config."""
    if config.strategy == "oracle":
        if oracle is None:
            raise ValueError("Classification strategy 'oracle' requires a highlight provider.")
        classifier: Classifier = OracleClassifier(oracle)
    elif config.strategy == "heuristic":
        if reader is None:
            raise ValueError("Classification strategy 'heuristic' requires a document reader.")
        classifier = HeuristicClassifier(reader)
    elif oracle is not None and reader is not None:
        classifier = FallbackClassifier(OracleClassifier(oracle), HeuristicClassifier(reader))
    elif oracle is not None:
        classifier = OracleClassifier(oracle)
    elif reader is not None:
        classifier = HeuristicClassifier(reader)
    else:
        raise ValueError("Classification needs a highlight provider or a document reader.")

    unresolved = (
        Classification.READ if config.unresolved == "read" else Classification.UNKNOWN
    )
    if unresolved is Classification.UNKNOWN:
        return classifier
    return UnresolvedPolicyClassifier(classifier, unresolved)
