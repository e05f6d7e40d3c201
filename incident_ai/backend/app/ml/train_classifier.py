# incident_ai/backend/app/ml/train_classifier.py
from __future__ import annotations

import argparse
import csv
import json
import logging
import sys
from collections import Counter
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

from sklearn.metrics import accuracy_score, classification_report, f1_score
from sklearn.model_selection import train_test_split

from ..config import get_settings
from .errors import EmptyCorpus
from .model import (
    PRIORITY_CLASSES,
    ClassifierModel,
    PriorityClass,
    TrainingExample,
    save_model,
)
from .predictor import ClassifierService
from .rules import DEFAULT_CRITICAL_BOOST, DEFAULT_HIGH_BOOST, baseline_predict
from .tokenizer import tokenize

logger = logging.getLogger(__name__)

TITLE_COLUMNS = ["title", "subject", "name"]
DESCRIPTION_COLUMNS = ["description", "details", "detail", "notes", "note", "body", "text"]
LABEL_COLUMNS = ["priority", "label", "class", "severity"]

# Only hold out a test set when the corpus is big enough
MIN_SAMPLES_PER_CLASS_FOR_SPLIT = 5
MIN_TOTAL_SAMPLES_FOR_SPLIT = 50


def _find_column(fieldnames: Sequence[str], candidates: List[str]) -> Optional[str]:
    lower = {name.strip().lower(): name for name in fieldnames}
    for cand in candidates:
        if cand in lower:
            return lower[cand]
    return None


# Load labelled data

def read_training_csv(path: Union[str, Path]) -> List[TrainingExample]:
    """
    Read (text, priority) rows from a CSV with a header row.

    Title and description columns are joined into the example text; rows
    with an unknown priority or no text at all are skipped.
    """
    path = Path(path)
    with path.open(newline="", encoding="utf-8-sig") as fh:
        reader = csv.DictReader(fh)
        fieldnames = reader.fieldnames or []
        title_col = _find_column(fieldnames, TITLE_COLUMNS)
        desc_col = _find_column(fieldnames, DESCRIPTION_COLUMNS)
        label_col = _find_column(fieldnames, LABEL_COLUMNS)

        if label_col is None or (title_col is None and desc_col is None):
            raise EmptyCorpus(
                f"{path}: cannot find text/label columns in header {fieldnames}. "
                f"Expected one of {TITLE_COLUMNS + DESCRIPTION_COLUMNS} "
                f"and one of {LABEL_COLUMNS}."
            )

        examples: List[TrainingExample] = []
        skipped = 0
        for row in reader:
            label = PriorityClass.parse(row.get(label_col))
            title = (row.get(title_col) or "") if title_col else ""
            desc = (row.get(desc_col) or "") if desc_col else ""
            text = f"{title} {desc}".strip()
            if label is None or not text:
                skipped += 1
                continue
            examples.append(TrainingExample(text=text, label=label))

    logger.info(
        "[TRAIN] Read %d examples from %s (skipped %d; columns title=%s description=%s label=%s)",
        len(examples), path, skipped, title_col, desc_col, label_col,
    )
    return examples


def build_model(examples: Iterable[TrainingExample], smoothing: float = 1.0) -> ClassifierModel:
    """Count tokens per class. EmptyCorpus if nothing usable is left."""
    if not smoothing > 0:
        raise ValueError(f"smoothing must be greater than 0, got {smoothing!r}")

    vocabulary: Dict[str, int] = {}
    token_counts: Dict[PriorityClass, Counter] = {label: Counter() for label in PRIORITY_CLASSES}
    doc_counts: Dict[PriorityClass, int] = {label: 0 for label in PRIORITY_CLASSES}
    total = 0

    for ex in examples:
        label = PriorityClass.parse(ex.label)
        if label is None or not (ex.text or "").strip():
            continue
        for tok in tokenize(ex.text):
            idx = vocabulary.setdefault(tok, len(vocabulary))
            token_counts[label][idx] += 1
        doc_counts[label] += 1
        total += 1

    if total == 0:
        raise EmptyCorpus("No usable training examples (need non-empty text and a known priority).")

    return ClassifierModel(
        vocabulary=vocabulary,
        class_token_counts={label: dict(counts) for label, counts in token_counts.items()},
        class_document_counts=doc_counts,
        total_document_count=total,
        smoothing=smoothing,
    )


def evaluate(
    examples: List[TrainingExample],
    smoothing: float = 1.0,
    critical_boost: float = DEFAULT_CRITICAL_BOOST,
    high_boost: float = DEFAULT_HIGH_BOOST,
) -> dict:
    """
    Accuracy / macro F1 of the classifier against the keyword-only baseline.
    """
    labels = [ex.label.value for ex in examples]
    label_counts = Counter(labels)

    use_train_test = (
        len(label_counts) > 1
        and min(label_counts.values()) >= MIN_SAMPLES_PER_CLASS_FOR_SPLIT
        and len(examples) >= MIN_TOTAL_SAMPLES_FOR_SPLIT
    )
    if use_train_test:
        train, test = train_test_split(
            examples,
            test_size=0.3,
            stratify=labels,
            random_state=42,
        )
        eval_mode = "train/test split"
    else:
        train, test = examples, examples
        eval_mode = "full dataset (no hold-out)"
    logger.info("[TRAIN] Evaluating on %s: %d train, %d test", eval_mode, len(train), len(test))

    service = ClassifierService(
        model=build_model(train, smoothing=smoothing),
        critical_boost=critical_boost,
        high_boost=high_boost,
    )
    y_true = [ex.label.value for ex in test]
    y_pred_ml = [service.classify(ex.text, "").priority_class.value for ex in test]
    y_pred_base = [baseline_predict(ex.text).value for ex in test]

    report = {"eval_mode": eval_mode, "label_counts": dict(label_counts)}
    for name, y_pred in (("ml", y_pred_ml), ("baseline", y_pred_base)):
        report[name] = {
            "accuracy": float(accuracy_score(y_true, y_pred)),
            "macro_f1": float(f1_score(y_true, y_pred, average="macro", zero_division=0)),
            "report": classification_report(y_true, y_pred, output_dict=True, zero_division=0),
        }
        logger.info(
            "[TRAIN] [%s] %s accuracy=%.3f, macro F1=%.3f",
            eval_mode, name, report[name]["accuracy"], report[name]["macro_f1"],
        )
    return report


def train_and_save(
    csv_path: Union[str, Path, None] = None,
    model_path: Union[str, Path, None] = None,
) -> dict:
    """
    Main entrypoint.

    - Reads labelled rows from the training CSV
    - Builds the Naive Bayes counts over the whole corpus
    - Compares the classifier to the keyword baseline
    - Saves the artifact and a <artifact>.metrics.json report next to it
    """
    settings = get_settings()
    csv_path = Path(csv_path or settings.TRAINING_CSV_PATH)
    model_path = Path(model_path or settings.MODEL_PATH)

    if not csv_path.exists():
        raise FileNotFoundError(f"Training CSV not found at {csv_path}")

    examples = read_training_csv(csv_path)
    model = build_model(examples, smoothing=settings.NB_SMOOTHING)
    logger.info(
        "[TRAIN] %d documents, vocabulary %d, per class %s",
        model.total_document_count,
        model.vocabulary_size,
        {label.value: n for label, n in model.class_document_counts.items()},
    )

    metrics = evaluate(
        examples,
        smoothing=settings.NB_SMOOTHING,
        critical_boost=settings.CRITICAL_BOOST,
        high_boost=settings.HIGH_BOOST,
    )

    save_model(model, model_path)
    logger.info("[TRAIN] Saved model to %s", model_path)

    metrics_path = model_path.with_name(model_path.name + ".metrics.json")
    metrics_path.write_text(json.dumps(metrics, indent=2), encoding="utf-8")
    logger.info("[TRAIN] Wrote metrics to %s", metrics_path)
    return metrics


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Train the incident priority model.")
    parser.add_argument("--csv", dest="csv_path", help="training CSV (default: TRAINING_CSV_PATH)")
    parser.add_argument("--out", dest="model_path", help="artifact path (default: PRIORITY_MODEL_PATH)")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=get_settings().LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        train_and_save(args.csv_path, args.model_path)
    except (EmptyCorpus, OSError, ValueError) as exc:
        logger.error("[TRAIN] Training failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    # CLI usage: python -m incident_ai.backend.app.ml.train_classifier --csv data/training.csv
    sys.exit(main())
