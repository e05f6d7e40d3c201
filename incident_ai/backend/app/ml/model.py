# incident_ai/backend/app/ml/model.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import joblib

from .errors import ModelNotTrained

ARTIFACT_SCHEMA_VERSION = 1


class PriorityClass(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["PriorityClass"]:
        """Case-insensitive lookup; None for empty or unknown labels."""
        if value is None:
            return None
        if isinstance(value, cls):
            return value
        key = str(value).strip().upper()
        if not key:
            return None
        try:
            return cls(key)
        except ValueError:
            return None


# Canonical order, also used to break exact probability ties
PRIORITY_CLASSES: List[PriorityClass] = list(PriorityClass)


@dataclass(frozen=True)
class TrainingExample:
    text: str
    label: PriorityClass


@dataclass
class ClassifierModel:
    """
    Trained multinomial Naive Bayes parameters.

    Every class in PRIORITY_CLASSES is always present in
    class_document_counts and class_token_counts, with zeros for classes
    that had no training examples.
    """

    vocabulary: Dict[str, int]
    class_token_counts: Dict[PriorityClass, Dict[int, int]]
    class_document_counts: Dict[PriorityClass, int]
    total_document_count: int
    smoothing: float = 1.0
    _token_totals: Dict[PriorityClass, int] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    @property
    def vocabulary_size(self) -> int:
        return len(self.vocabulary)

    def class_token_total(self, label: PriorityClass) -> int:
        if label not in self._token_totals:
            self._token_totals[label] = sum(
                self.class_token_counts.get(label, {}).values()
            )
        return self._token_totals[label]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema_version": ARTIFACT_SCHEMA_VERSION,
            "classes": [c.value for c in PRIORITY_CLASSES],
            "vocabulary": dict(self.vocabulary),
            "class_token_counts": {
                c.value: {int(i): int(n) for i, n in self.class_token_counts.get(c, {}).items()}
                for c in PRIORITY_CLASSES
            },
            "class_document_counts": {
                c.value: int(self.class_document_counts.get(c, 0))
                for c in PRIORITY_CLASSES
            },
            "total_document_count": int(self.total_document_count),
            "smoothing": float(self.smoothing),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "ClassifierModel":
        """Rebuild a model from its canonical dict; ValueError if malformed."""
        if not isinstance(data, dict):
            raise ValueError(f"artifact must be a dict, got {type(data).__name__}")

        version = data.get("schema_version")
        if version != ARTIFACT_SCHEMA_VERSION:
            raise ValueError(f"unsupported artifact schema_version {version!r}")

        expected = [c.value for c in PRIORITY_CLASSES]
        doc_counts_raw = data.get("class_document_counts") or {}
        if sorted(doc_counts_raw) != sorted(expected):
            raise ValueError(
                f"class_document_counts keys {sorted(doc_counts_raw)} "
                f"do not match {expected}"
            )

        vocabulary = {str(tok): int(idx) for tok, idx in (data.get("vocabulary") or {}).items()}
        known_indices = set(vocabulary.values())

        token_counts_raw = data.get("class_token_counts") or {}
        class_token_counts: Dict[PriorityClass, Dict[int, int]] = {}
        for label in PRIORITY_CLASSES:
            counts = {int(i): int(n) for i, n in (token_counts_raw.get(label.value) or {}).items()}
            unknown = set(counts) - known_indices
            if unknown:
                raise ValueError(
                    f"class {label.value} references token indices missing "
                    f"from vocabulary: {sorted(unknown)[:5]}"
                )
            class_token_counts[label] = counts

        class_document_counts = {
            label: int(doc_counts_raw[label.value]) for label in PRIORITY_CLASSES
        }
        total = int(data.get("total_document_count", 0))
        if total != sum(class_document_counts.values()):
            raise ValueError(
                f"total_document_count {total} does not match per-class sum "
                f"{sum(class_document_counts.values())}"
            )

        smoothing = float(data.get("smoothing", 1.0))
        if not smoothing > 0:
            raise ValueError(f"smoothing must be greater than 0, got {smoothing!r}")

        return cls(
            vocabulary=vocabulary,
            class_token_counts=class_token_counts,
            class_document_counts=class_document_counts,
            total_document_count=total,
            smoothing=smoothing,
        )


def save_model(model: ClassifierModel, path: Union[str, Path]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    joblib.dump(model.to_dict(), path)
    return path


def load_model(path: Union[str, Path]) -> ClassifierModel:
    """Load an artifact written by save_model(). ModelNotTrained on any problem."""
    path = Path(path)
    if not path.exists():
        raise ModelNotTrained(f"No priority model found at {path}")
    try:
        data = joblib.load(path)
        return ClassifierModel.from_dict(data)
    except Exception as exc:
        raise ModelNotTrained(f"Unreadable priority model at {path}: {exc}") from exc
