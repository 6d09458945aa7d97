"""Per-message hot lead classifier (0-10) backed by a reasoning service."""

import json
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from pydantic import ValidationError

from bizzybot.services.reasoning import ReasoningService, ReasoningVerdict

logger = logging.getLogger(__name__)

HOT_MESSAGE_THRESHOLD = 7
HISTORY_WINDOW = 5

HIGH_INTENT = [
    "asap", "urgent", "immediately", "right away", "emergency", "today",
    "this week", "ready to buy", "ready to start", "want to buy", "purchase",
    "budget is", "my budget", "how soon", "when can you", "call me",
    "sign me up", "need this",
]
MEDIUM_INTENT = [
    "price", "pricing", "cost", "quote", "estimate", "schedule", "appointment",
    "meeting", "interested", "comparing", "competitor", "other company",
    "not working", "broken", "deadline",
]
LOW_INTENT = [
    "just browsing", "just looking", "maybe later", "not sure", "someday",
    "thinking about", "no rush", "curious",
]


@dataclass
class MessageClassification:
    score: float
    is_hot_lead: bool
    reasoning: str
    keywords: List[str] = field(default_factory=list)
    urgency: str = "low"
    next_action: str = ""
    method: str = "reasoning"

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "is_hot_lead": self.is_hot_lead,
            "reasoning": self.reasoning,
            "keywords": self.keywords,
            "urgency": self.urgency,
            "next_action": self.next_action,
            "method": self.method,
        }


def _matches(text: str, phrases: Iterable[str]) -> List[str]:
    return [p for p in phrases if p.lower() in text]


def match_keyword_tiers(message: str, extra_keywords: Optional[Iterable[str]] = None) -> Dict[str, List[str]]:
    """Case-insensitive substring matches per intent tier. Extra keywords count as high intent."""
    text = (message or "").lower()
    high = _matches(text, HIGH_INTENT)
    for keyword in _matches(text, [k for k in (extra_keywords or []) if k]):
        if keyword.lower() not in high:
            high.append(keyword.lower())
    return {
        "high": high,
        "medium": _matches(text, MEDIUM_INTENT),
        "low": _matches(text, LOW_INTENT),
    }


def _fail_safe(reason: str, keywords: List[str]) -> MessageClassification:
    return MessageClassification(
        score=0,
        is_hot_lead=False,
        reasoning=reason,
        keywords=keywords,
        urgency="low",
        next_action="",
        method="fallback",
    )


async def classify_message_urgency(
    message: str,
    history: Optional[List[Dict[str, str]]] = None,
    reasoning: Optional[ReasoningService] = None,
    threshold: int = HOT_MESSAGE_THRESHOLD,
    extra_keywords: Optional[Iterable[str]] = None,
) -> MessageClassification:
    """
    Rate one message 0-10 for buying intent.

    Keyword matches are computed locally and handed to the reasoning service as
    context; the score itself comes from the service. Any failure (no service,
    upstream error, malformed payload) degrades to a cold classification and is
    never raised.
    """
    message = message if isinstance(message, str) else ""
    tiers = match_keyword_tiers(message, extra_keywords)
    local_keywords = tiers["high"] + [k for k in tiers["medium"] if k not in tiers["high"]]

    if reasoning is None:
        return _fail_safe("Reasoning service not configured", local_keywords)

    window = [turn for turn in (history or []) if isinstance(turn, dict)][-HISTORY_WINDOW:]
    try:
        raw = await reasoning.assess(message, window, tiers)
        payload = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
        verdict = ReasoningVerdict.model_validate(payload)
    except (ValueError, TypeError, ValidationError) as e:
        logger.warning(f"Unparseable reasoning verdict: {e}")
        return _fail_safe("Reasoning service returned an invalid verdict", local_keywords)
    except Exception as e:
        logger.error(f"Reasoning service unavailable: {e}")
        return _fail_safe("Reasoning service unavailable", local_keywords)

    keywords = list(local_keywords)
    for keyword in verdict.keywords:
        if keyword and keyword.lower() not in {k.lower() for k in keywords}:
            keywords.append(keyword)

    score = verdict.score
    return MessageClassification(
        score=score,
        is_hot_lead=score >= threshold,
        reasoning=verdict.reasoning,
        keywords=keywords,
        urgency=verdict.urgency,
        next_action=verdict.next_action,
        method="reasoning",
    )
