# scripts/migrate_model_artifact.py
"""
Convert a legacy JSON priority model into the current artifact format.

Legacy files come in two shapes, with or without the outer "classifier" key:

  {"classifier": {"features": {...},
                  "classifier": {"classFeatures": {...}, "classTotals": {...},
                                 "totalExamples": N, "smoothing": 1}}}

  {"classifier": {"features": {...}, "classFeatures": {...},
                  "classTotals": {...}, "totalExamples": N, "smoothing": 1}}

Usage:
  python scripts/migrate_model_artifact.py models/priority-nb.json \
      incident_ai/backend/app/ml/models/priority_nb.joblib
"""
import argparse
import json
import logging
import sys
from pathlib import Path

from incident_ai.backend.app.ml.model import (
    PRIORITY_CLASSES,
    ClassifierModel,
    PriorityClass,
    save_model,
)

logger = logging.getLogger("migrate_model_artifact")


def convert_legacy(data: dict) -> ClassifierModel:
    """Build a ClassifierModel from either legacy JSON shape. ValueError if neither."""
    c = data.get("classifier", data) if isinstance(data, dict) else None
    if not isinstance(c, dict) or "features" not in c:
        raise ValueError("not a legacy priority model: no 'features' mapping")

    inner = c.get("classifier")
    if isinstance(inner, dict) and "classFeatures" in inner:
        params = inner
    elif "classFeatures" in c:
        params = c
    else:
        raise ValueError("not a legacy priority model: no 'classFeatures' mapping")

    vocabulary = {str(tok): int(idx) for tok, idx in c["features"].items()}

    class_token_counts = {label: {} for label in PRIORITY_CLASSES}
    for raw_label, counts in (params.get("classFeatures") or {}).items():
        label = PriorityClass.parse(raw_label)
        if label is None:
            raise ValueError(f"unknown priority class {raw_label!r} in classFeatures")
        class_token_counts[label] = {int(i): int(n) for i, n in (counts or {}).items()}

    class_document_counts = {label: 0 for label in PRIORITY_CLASSES}
    for raw_label, n in (params.get("classTotals") or {}).items():
        label = PriorityClass.parse(raw_label)
        if label is None:
            raise ValueError(f"unknown priority class {raw_label!r} in classTotals")
        class_document_counts[label] = int(n)

    total = params.get("totalExamples")
    total = int(total) if total is not None else sum(class_document_counts.values())
    if total != sum(class_document_counts.values()):
        logger.warning(
            "totalExamples=%d disagrees with classTotals sum=%d; using the sum",
            total,
            sum(class_document_counts.values()),
        )
        total = sum(class_document_counts.values())

    # Round-trip through the canonical dict so the same checks as load_model() apply
    model = ClassifierModel(
        vocabulary=vocabulary,
        class_token_counts=class_token_counts,
        class_document_counts=class_document_counts,
        total_document_count=total,
        smoothing=float(params.get("smoothing", 1) or 1),
    )
    return ClassifierModel.from_dict(model.to_dict())


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("legacy_json", help="legacy JSON artifact")
    parser.add_argument("output", help="where to write the migrated artifact")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    try:
        data = json.loads(Path(args.legacy_json).read_text(encoding="utf-8"))
        model = convert_legacy(data)
    except (OSError, ValueError) as exc:
        logger.error("Migration failed: %s", exc)
        return 1

    save_model(model, args.output)
    logger.info(
        "Migrated %s -> %s (%d docs, vocabulary %d)",
        args.legacy_json,
        args.output,
        model.total_document_count,
        model.vocabulary_size,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
