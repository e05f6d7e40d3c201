# incident_ai/backend/app/ml/rules.py
"""
Domain boost rules.

The statistical model under-weights a handful of phrasings that dispatchers
always treat as severe. Each rule that matches the raw incident text adds a
fixed amount to one class's log-score before softmax. Rules are scanned in
list order (critical list first); every match counts, boosts are additive.
"""

from __future__ import annotations

import re
from typing import Dict, List, Tuple

from .model import PriorityClass

DEFAULT_CRITICAL_BOOST = 2.0
DEFAULT_HIGH_BOOST = 1.0

Rule = Tuple[str, re.Pattern]


def _rule(tag: str, pattern: str) -> Rule:
    return tag, re.compile(pattern, re.IGNORECASE)


CRITICAL_RULES: List[Rule] = [
    _rule("boil_water_advisory", r"\bboil[- ]?water\b"),
    _rule("contamination", r"\bcontaminat(?:ed|ion|ing)\b|\bcoliform\b|\be\.?\s?coli\b"),
    _rule("sewage_overflow", r"\b(?:sewage|sewer|sanitary)\s+(?:overflow|spill|backup|back[- ]up)\b|\bsso\b"),
    _rule(
        "transmission_main_break",
        r"\btransmission\s+main\b|\b(?:2[4-9]|[3-9]\d|\d{3})\s*(?:\"|in\b|inch)[- ]?\s*(?:water\s+)?main\b",
    ),
    _rule(
        "critical_facility_outage",
        r"\b(?:hospital|dialysis|nursing home|fire station|school)\b.{0,40}\b(?:no water|outage|without water|out of service)\b"
        r"|\b(?:no water|outage|without water)\b.{0,40}\b(?:hospital|dialysis|nursing home|fire station|school)\b",
    ),
    _rule("chlorine_release", r"\bchlorine\s+(?:leak|release|gas|spill)\b"),
    _rule("treatment_plant_failure", r"\b(?:treatment|filtration)\s+plant\b.{0,30}\b(?:fail|offline|down|shut)"),
]

HIGH_RULES: List[Rule] = [
    _rule("main_break", r"\bmain\s+break\b|\bbroken\s+(?:water\s+)?main\b|\bwater\s+main\s+(?:burst|rupture)"),
    _rule("major_leak", r"\b(?:major|large|significant|massive)\s+leak\b|\bgushing\b"),
    _rule("widespread_low_pressure", r"\b(?:widespread|area[- ]wide|multiple)\b.{0,30}\blow\s+pressure\b|\bno\s+pressure\b"),
    _rule("pump_station_failure", r"\bpump(?:ing)?\s+station\b.{0,30}\b(?:fail|down|offline|alarm)|\bpump\s+failure\b"),
    _rule("backflow_event", r"\bback[- ]?flow\b|\bback[- ]?siphon"),
    _rule("valve_failure", r"\bvalve\b.{0,20}\b(?:fail|failure|stuck|broken|inoperable)|\bprv\b.{0,20}\bfail"),
    _rule("road_impact", r"\bsinkhole\b|\broad\s+(?:closed|closure|collapse)\b|\bwater\s+(?:on|over)\s+(?:the\s+)?(?:road|roadway|street)\b"),
]


def match_rules(text: str) -> List[Tuple[PriorityClass, str]]:
    """Return (class, tag) for every matching rule, in scan order."""
    if not text:
        return []
    matches: List[Tuple[PriorityClass, str]] = []
    for label, rules in (
        (PriorityClass.CRITICAL, CRITICAL_RULES),
        (PriorityClass.HIGH, HIGH_RULES),
    ):
        for tag, pattern in rules:
            if pattern.search(text):
                matches.append((label, tag))
    return matches


def apply_domain_boost(
    log_scores: Dict[PriorityClass, float],
    text: str,
    critical_boost: float = DEFAULT_CRITICAL_BOOST,
    high_boost: float = DEFAULT_HIGH_BOOST,
) -> List[str]:
    """
    Add rule boosts to log_scores in place and return the matched tags.
    """
    boosts = {
        PriorityClass.CRITICAL: critical_boost,
        PriorityClass.HIGH: high_boost,
    }
    tags: List[str] = []
    for label, tag in match_rules(text):
        if label in log_scores:
            log_scores[label] += boosts[label]
        tags.append(tag)
    return tags


def baseline_predict(text: str) -> PriorityClass:
    """
    Keyword-only priority, no statistics.
    Used by the trainer as the comparison baseline, not in production.
    """
    matches = match_rules(text)
    if any(label is PriorityClass.CRITICAL for label, _ in matches):
        return PriorityClass.CRITICAL
    if matches:
        return PriorityClass.HIGH
    return PriorityClass.MEDIUM
