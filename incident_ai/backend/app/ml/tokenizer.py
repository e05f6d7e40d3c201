# incident_ai/backend/app/ml/tokenizer.py
"""
Text normalization shared by the trainer and the classifier.

Both sides MUST go through tokenize(); a model trained with one
tokenizer and scored with another silently loses accuracy.
"""

from __future__ import annotations

import re
from typing import List, Optional

_SPLIT_RE = re.compile(r"[^a-z0-9]+")

STOPWORDS = frozenset(
    [
        "the", "a", "an", "and", "or", "but",
        "of", "on", "at", "to", "for", "from", "by", "with", "in", "into",
        "over", "under",
        "is", "are", "was", "were", "be", "been", "being",
        "this", "that", "these", "those", "as", "it", "its", "we", "you",
    ]
)


def light_stem(word: str) -> str:
    """
    Strip at most one suffix. Rules are checked in order and the
    length condition is on the whole word, not on the stem left after
    stripping. Existing priority models were trained that way, so
    changing it would stop their tokens from matching. E.g.

      flooding    -> flood
      inspected   -> inspect
      valves      -> valv
      inspections -> inspection
    """
    if word.endswith("ing") and len(word) > 5:
        return word[:-3]
    if word.endswith("ed") and len(word) > 4:
        return word[:-2]
    if word.endswith("es") and len(word) > 4:
        return word[:-2]
    if word.endswith("s") and len(word) > 3:
        return word[:-1]
    return word


def tokenize(text: Optional[str]) -> List[str]:
    """Lowercase, split on anything outside [a-z0-9], drop stopwords, stem."""
    if not text:
        return []
    return [
        light_stem(tok)
        for tok in _SPLIT_RE.split(text.lower())
        if tok and tok not in STOPWORDS
    ]
