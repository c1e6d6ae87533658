"""Keyword based ticket classifier.

Scores the lower-cased ``subject + description`` text against fixed keyword
tables:

 - Category: every matched keyword adds 0.3 (multi-word phrase) or 0.15
   (single word) to its category; the best total wins. Totals below 0.3 fall
   back to ``other`` with confidence 0.2.
 - Priority: urgent / high / low keyword lists weighted 0.4 / 0.3 / 0.2 per
   match. The most severe tier with any match wins, whatever the scores of
   the other tiers; no match at all means ``medium`` with confidence 0.5.

The classifier holds no state; each call emits one audit log record.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Tuple

from app.logging_utils import audit_event
from app.models.schemas import ClassificationResult, TicketCategory, TicketPriority

logger = logging.getLogger(__name__)


CATEGORY_KEYWORDS: Dict[TicketCategory, List[str]] = {
    TicketCategory.ACCOUNT_ACCESS: [
        "login", "password", "sign in", "authentication", "2fa", "two factor",
        "access denied", "locked out", "forgot password", "reset password",
        "cannot log in", "can't log in", "unable to login",
    ],
    TicketCategory.TECHNICAL_ISSUE: [
        "error", "bug", "crash", "broken", "not working", "doesn't work",
        "fails", "failure", "issue", "problem", "500 error", "404",
        "exception", "stack trace",
    ],
    TicketCategory.BILLING_QUESTION: [
        "payment", "invoice", "billing", "charge", "refund", "subscription",
        "price", "cost", "credit card", "receipt", "transaction",
        "overcharged", "cancel subscription",
    ],
    TicketCategory.FEATURE_REQUEST: [
        "feature", "enhancement", "suggestion", "would like", "could you add",
        "please add", "new feature", "improve", "improvement", "request",
        "wish", "want",
    ],
    TicketCategory.BUG_REPORT: [
        "bug", "defect", "incorrect", "wrong", "unexpected", "reproduce",
        "steps to reproduce", "regression", "should work", "expected", "actual",
    ],
}

PRIORITY_KEYWORDS: Dict[TicketPriority, List[str]] = {
    TicketPriority.URGENT: [
        "can't access", "cannot access", "critical", "production down",
        "security", "urgent", "emergency", "immediately", "asap", "data loss",
        "outage", "down",
    ],
    TicketPriority.HIGH: [
        "important", "blocking", "high priority", "need soon",
        "customers affected", "revenue impact",
    ],
    TicketPriority.LOW: [
        "minor", "cosmetic", "suggestion", "nice to have", "low priority",
        "when you have time",
    ],
}

# Checked in this order; the first tier with a match wins.
PRIORITY_TIERS: List[Tuple[TicketPriority, float]] = [
    (TicketPriority.URGENT, 0.4),
    (TicketPriority.HIGH, 0.3),
    (TicketPriority.LOW, 0.2),
]

PHRASE_WEIGHT = 0.3
WORD_WEIGHT = 0.15
CATEGORY_MIN_SCORE = 0.3
FALLBACK_CATEGORY_CONFIDENCE = 0.2
DEFAULT_PRIORITY_CONFIDENCE = 0.5
LOW_CONFIDENCE_THRESHOLD = 0.4


@dataclass
class _Decision:
    label: str
    confidence: float
    keywords: List[str]


class TicketClassifier:
    """Stateless keyword scorer for ticket category and priority."""

    def classify(self, subject: str, description: str) -> ClassificationResult:
        text = f"{subject or ''} {description or ''}".lower()

        category = self._classify_category(text)
        priority = self._classify_priority(text)

        confidence = min((category.confidence + priority.confidence) / 2, 1.0)
        result = ClassificationResult(
            category=TicketCategory(category.label),
            priority=TicketPriority(priority.label),
            confidence=round(confidence, 2),
            reasoning=self._reasoning(category, priority),
            keywords=category.keywords + priority.keywords,
        )

        audit_event(
            logger,
            "ticket_classification",
            "ticket classified",
            category=result.category.value,
            priority=result.priority.value,
            confidence=result.confidence,
            keywords=result.keywords,
        )
        return result

    # Internal helpers ------------------------------------------------
    def _classify_category(self, text: str) -> _Decision:
        best = TicketCategory.OTHER
        best_score = 0.0
        best_keywords: List[str] = []

        for category, keywords in CATEGORY_KEYWORDS.items():
            matched = [kw for kw in keywords if kw in text]
            score = sum(PHRASE_WEIGHT if len(kw.split(" ")) > 1 else WORD_WEIGHT for kw in matched)
            # strictly greater: ties keep the earlier category
            if matched and score > best_score:
                best, best_score, best_keywords = category, score, matched

        if best_score < CATEGORY_MIN_SCORE:
            return _Decision(TicketCategory.OTHER.value, FALLBACK_CATEGORY_CONFIDENCE, [])
        return _Decision(best.value, min(best_score, 1.0), best_keywords)

    def _classify_priority(self, text: str) -> _Decision:
        for priority, weight in PRIORITY_TIERS:
            matched = [kw for kw in PRIORITY_KEYWORDS[priority] if kw in text]
            if matched:
                return _Decision(priority.value, min(len(matched) * weight, 1.0), matched)
        return _Decision(TicketPriority.MEDIUM.value, DEFAULT_PRIORITY_CONFIDENCE, [])

    def _reasoning(self, category: _Decision, priority: _Decision) -> str:
        parts: List[str] = []
        if category.label == TicketCategory.OTHER.value:
            parts.append('Categorized as "other" due to insufficient matching keywords.')
        elif category.keywords:
            parts.append(
                f'Categorized as "{category.label}" based on keywords: {", ".join(category.keywords)}.'
            )

        if priority.keywords:
            parts.append(
                f'Priority set to "{priority.label}" based on keywords: {", ".join(priority.keywords)}.'
            )
        else:
            parts.append(f'Priority defaulted to "{priority.label}" (no specific priority indicators found).')

        if (category.confidence + priority.confidence) / 2 < LOW_CONFIDENCE_THRESHOLD:
            parts.append("Confidence is low; manual review recommended.")
        return " ".join(parts)


__all__ = [
    "TicketClassifier",
    "CATEGORY_KEYWORDS",
    "PRIORITY_KEYWORDS",
]
