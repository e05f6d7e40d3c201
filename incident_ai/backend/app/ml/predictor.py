# incident_ai/backend/app/ml/predictor.py

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from .errors import ModelNotTrained
from .model import PRIORITY_CLASSES, ClassifierModel, PriorityClass, load_model
from .rules import DEFAULT_CRITICAL_BOOST, DEFAULT_HIGH_BOOST, apply_domain_boost
from .tokenizer import tokenize

logger = logging.getLogger(__name__)


@dataclass
class ClassificationResult:
    priority_class: PriorityClass
    confidence: float
    matched_rule_tag: Optional[str] = None
    # Diagnostics: full softmax distribution and every matched rule tag
    distribution: Dict[PriorityClass, float] = field(default_factory=dict)
    matched_rule_tags: List[str] = field(default_factory=list)


NEUTRAL_RESULT_CLASS = PriorityClass.MEDIUM


def softmax(log_scores: Dict[PriorityClass, float]) -> Dict[PriorityClass, float]:
    """Max-subtracted softmax over the classes in log_scores."""
    if not log_scores:
        return {}
    top = max(log_scores.values())
    exps = {label: math.exp(score - top) for label, score in log_scores.items()}
    total = sum(exps.values()) or 1.0
    return {label: value / total for label, value in exps.items()}


class ClassifierService:
    """
    Priority suggestion service.

    Owns one lazily-loaded ClassifierModel. Construct once per process
    and hand it to request handlers. A failed load is not cached: the
    next call tries again, so dropping an artifact in place is enough
    to recover. Once loaded the model is never reloaded.
    """

    def __init__(
        self,
        model_path: Union[str, Path, None] = None,
        critical_boost: float = DEFAULT_CRITICAL_BOOST,
        high_boost: float = DEFAULT_HIGH_BOOST,
        model: Optional[ClassifierModel] = None,
    ):
        self.model_path = Path(model_path) if model_path is not None else None
        self.critical_boost = critical_boost
        self.high_boost = high_boost
        self._model = model
        self._lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    def load(self) -> ClassifierModel:
        """Return the model, loading it on first use. ModelNotTrained if unavailable."""
        model = self._model
        if model is not None:
            return model

        with self._lock:
            if self._model is not None:
                return self._model
            if self.model_path is None:
                raise ModelNotTrained("No priority model path configured")
            try:
                self._model = load_model(self.model_path)
            except ModelNotTrained as exc:
                logger.warning("[ML] %s", exc)
                raise
            logger.info(
                "[ML] Loaded priority model from %s (%d docs, vocabulary %d)",
                self.model_path,
                self._model.total_document_count,
                self._model.vocabulary_size,
            )
            return self._model

    def _log_scores(self, model: ClassifierModel, tokens: List[str]) -> Dict[PriorityClass, float]:
        num_classes = len(PRIORITY_CLASSES)
        vocab_size = model.vocabulary_size
        smoothing = model.smoothing
        indices = [model.vocabulary[t] for t in tokens if t in model.vocabulary]

        scores: Dict[PriorityClass, float] = {}
        for label in PRIORITY_CLASSES:
            docs = model.class_document_counts.get(label, 0)
            score = math.log(docs + 1) - math.log(model.total_document_count + num_classes)

            denom = model.class_token_total(label) + smoothing * vocab_size
            counts = model.class_token_counts.get(label, {})
            for idx in indices:
                score += math.log(counts.get(idx, 0) + smoothing) - math.log(denom)

            scores[label] = score
        return scores

    def score(self, title: Optional[str], description: Optional[str]):
        """
        Raw log-scores per class after the domain boost, plus matched tags.
        Returns ({}, []) for input with no tokens.
        """
        tokens = tokenize(title) + tokenize(description)
        if not tokens:
            return {}, []

        model = self.load()
        scores = self._log_scores(model, tokens)
        raw_text = f"{title or ''} {description or ''}"
        tags = apply_domain_boost(
            scores,
            raw_text,
            critical_boost=self.critical_boost,
            high_boost=self.high_boost,
        )
        return scores, tags

    def classify(self, title: Optional[str], description: Optional[str]) -> ClassificationResult:
        scores, tags = self.score(title, description)
        if not scores:
            # Neutral answer for near-empty input
            return ClassificationResult(priority_class=NEUTRAL_RESULT_CLASS, confidence=0.0)

        probs = softmax(scores)
        best = PRIORITY_CLASSES[0]
        for label in PRIORITY_CLASSES:
            if probs[label] > probs[best]:
                best = label

        return ClassificationResult(
            priority_class=best,
            confidence=probs[best],
            matched_rule_tag=tags[0] if tags else None,
            distribution=probs,
            matched_rule_tags=tags,
        )
