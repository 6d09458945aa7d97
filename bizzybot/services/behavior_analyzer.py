"""Behavior analyzer — detects what an AI reply actually did (asked for a phone, offered a slot, ...)."""

import logging
import re
from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from bizzybot.services.events import record_event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BehaviorEvent:
    type: str
    confidence: float
    data: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"type": self.type, "confidence": self.confidence, "data": self.data}


def _compile(*patterns: str) -> List[re.Pattern]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


# ── Vocabularies (matched against the AI reply unless noted) ──
PHONE_PATTERNS = _compile(
    r"phone number",
    r"call you",
    r"best number to reach",
    r"contact number",
    r"phone to discuss",
    r"number to call",
    r"reach you by phone",
    r"give me a call",
    r"phone consultation",
)

SCHEDULING_PATTERNS = _compile(
    r"schedule.*appointment",
    r"book.*meeting",
    r"available.*time",
    r"calendar.*availability",
    r"within.*24.*hour",
    r"tomorrow.*available",
    r"today.*available",
    r"this week.*meet",
    r"consultation.*time",
    r"demo.*schedule",
)
SCHEDULING_URGENT = re.compile(r"within.*24.*hour|\btoday\b|\btomorrow\b|\basap\b|\burgent", re.IGNORECASE)

PRICING_PATTERNS = _compile(
    r"\b(price|pricing|cost|quote|estimate|budget|investment|fee)",
    r"how much|what.*charge|\brate\b|\bpackage",
)

CTA_PATTERNS = _compile(
    r"click.*here|visit.*website|check out|learn more|get started",
    r"sign up|register|\bjoin\b|subscribe|download",
    r"contact us|reach out|let.*know|\breply\b",
    r"book now|reserve|\bclaim\b|secure your",
)

COMPETITIVE_PATTERNS = _compile(
    r"better than|unlike.*competitor|advantage|superior",
    r"why choose us|what sets us apart|difference",
    r"\bunique\b|exclusive|only.*offer|special",
)

EMAIL_REQUEST_PATTERN = re.compile(r"email.*address|email me|send.*email", re.IGNORECASE)
FOLLOWUP_PATTERN = re.compile(r"follow up|check in|circle back|touch base|reach out again", re.IGNORECASE)

QUALIFYING_PATTERNS = _compile(
    r"what.*looking for|what.*need|what.*goal",
    r"tell.*more about|help.*understand|clarify",
    r"how many|how often|when.*need|timeline",
    r"budget.*mind|price range|investment level",
)

URGENCY_CREATED_PATTERN = re.compile(
    r"limited time|act now|expires|ending soon|last chance|today only", re.IGNORECASE
)

# Urgency expressed by the user, then met by a fast-response commitment in the reply
USER_URGENCY_PATTERN = re.compile(
    r"\b(urgent|urgently|asap|immediately|right away|emergency|as soon as possible)\b", re.IGNORECASE
)
URGENCY_ACK_PATTERNS = _compile(
    r"\bright away\b|\bimmediately\b",
    r"as soon as possible|\basap\b",
    r"\bpriorit(y|ize)\b",
    r"within (the )?(next )?(hour|24 hours|few hours)",
    r"first thing|\btoday\b",
)

# Hot lead signals: (pattern, weight) on the user message
USER_HOT_SIGNALS = {
    "urgency": (re.compile(r"\b(urgent|asap|immediately|right away|today|now)\b", re.IGNORECASE), 25),
    "budget": (re.compile(r"\b(budget|pay|afford|invest|spend|cost)", re.IGNORECASE), 20),
    "timeline": (re.compile(r"this week|next week|this month|\bsoon\b|when can", re.IGNORECASE), 15),
    "readiness": (re.compile(r"\bready\b|prepared|decided|want to start|need this", re.IGNORECASE), 20),
    "comparison": (re.compile(r"compare|versus|\bvs\b|other options|alternatives", re.IGNORECASE), 10),
    "specific": (re.compile(r"specifically|exactly|particular|precise", re.IGNORECASE), 10),
}
# ... and on the AI reply
AI_HOT_SIGNALS = {
    "immediate_action_offered": (re.compile(r"schedule.*immediately|available.*today|call.*now", re.IGNORECASE), 15),
    "strong_match_identified": (re.compile(r"perfect.*fit|exactly.*need|ideal.*solution", re.IGNORECASE), 10),
}
HOT_SIGNAL_THRESHOLD = 40

_PRICE = re.compile(r"\$[\d,]+(?:\.\d{2})?")
_SENTENCE_SPLIT = re.compile(r"[.!?]+")


# ── Helpers ───────────────────────────────────────────
def calculate_confidence(text: str, patterns: List[re.Pattern]) -> float:
    matches = sum(1 for p in patterns if p.search(text))
    return round(min(0.6 + matches * 0.1, 1.0), 2)


def _any(text: str, patterns: List[re.Pattern]) -> bool:
    return any(p.search(text) for p in patterns)


def extract_relevant_excerpt(text: str, keyword: str) -> str:
    for sentence in _SENTENCE_SPLIT.split(text):
        if keyword in sentence.lower():
            return sentence.strip()[:200]
    return ""


def extract_timeframe(text: str) -> str:
    lowered = text.lower()
    for needle, label in (
        ("today", "today"),
        ("tomorrow", "tomorrow"),
        ("24 hour", "24_hours"),
        ("this week", "this_week"),
        ("next week", "next_week"),
    ):
        if needle in lowered:
            return label
    return "flexible"


def extract_price(text: str) -> Optional[str]:
    match = _PRICE.search(text)
    return match.group(0) if match else None


def identify_cta_type(text: str) -> str:
    checks = [
        (r"book|schedule|appointment", "booking"),
        (r"\bcall\b|phone", "call"),
        (r"email|contact", "contact"),
        (r"visit|website|learn more", "website"),
        (r"sign up|register|join", "signup"),
    ]
    for pattern, label in checks:
        if re.search(pattern, text, re.IGNORECASE):
            return label
    return "general"


def extract_advantages(text: str) -> List[str]:
    checks = [
        (r"faster", "speed"),
        (r"cheaper|affordable|save", "price"),
        (r"quality|premium|\bbest\b", "quality"),
        (r"experience|years|trusted", "experience"),
        (r"local|nearby|community", "local"),
    ]
    return [label for pattern, label in checks if re.search(pattern, text, re.IGNORECASE)]


def extract_followup_timeframe(text: str) -> str:
    checks = [
        (r"tomorrow", "tomorrow"),
        (r"few days", "few_days"),
        (r"next week", "next_week"),
        (r"couple.*days", "couple_days"),
    ]
    for pattern, label in checks:
        if re.search(pattern, text, re.IGNORECASE):
            return label
    return "unspecified"


def _hot_lead_reasoning(signals: List[str], score: int) -> str:
    listed = ", ".join(signals)
    if score >= 80:
        return f"Very hot lead ({score}/100): Strong buying signals including {listed}"
    if score >= 60:
        return f"Hot lead ({score}/100): Multiple positive indicators including {listed}"
    if score >= 40:
        return f"Warm lead ({score}/100): Some interest signals including {listed}"
    return f"Standard lead ({score}/100): Basic inquiry with limited buying signals"


def analyze_hot_lead_signals(user_message: str, ai_response: str) -> dict:
    """Weighted buying signals across both sides of one exchange."""
    signals, total = [], 0
    for name, (pattern, weight) in USER_HOT_SIGNALS.items():
        if pattern.search(user_message):
            signals.append(name)
            total += weight
    for name, (pattern, weight) in AI_HOT_SIGNALS.items():
        if pattern.search(ai_response):
            signals.append(name)
            total += weight

    score = min(total, 100)
    return {
        "is_hot_lead": total >= HOT_SIGNAL_THRESHOLD,
        "score": score,
        "confidence": round(min(0.5 + len(signals) * 0.1, 1.0), 2),
        "signals": signals,
        "reasoning": _hot_lead_reasoning(signals, score),
    }


# ── Analyzer ──────────────────────────────────────────
def analyze_behaviors(ai_response: str, user_message: str = "", channel: str = "email") -> Iterator[BehaviorEvent]:
    """
    Yield behaviors detected in one AI reply / user message pair.

    Each tag is checked independently, so one reply may yield several. No
    signal yields nothing. Nothing is stored here.
    """
    response = ai_response if isinstance(ai_response, str) else ""
    message = user_message if isinstance(user_message, str) else ""
    channel = channel if isinstance(channel, str) and channel else "email"

    if _any(response, PHONE_PATTERNS):
        yield BehaviorEvent(
            "phone_requested",
            calculate_confidence(response, PHONE_PATTERNS),
            {"response_excerpt": extract_relevant_excerpt(response, "phone"), "channel": channel},
        )

    if _any(response, SCHEDULING_PATTERNS):
        yield BehaviorEvent(
            "appointment_offered",
            calculate_confidence(response, SCHEDULING_PATTERNS),
            {
                "urgency": "high" if SCHEDULING_URGENT.search(response) else "normal",
                "timeframe": extract_timeframe(response),
                "channel": channel,
            },
        )

    hot = analyze_hot_lead_signals(message, response)
    if hot["is_hot_lead"]:
        yield BehaviorEvent(
            "hot_lead_detected",
            hot["confidence"],
            {
                "score": hot["score"],
                "signals": hot["signals"],
                "reasoning": hot["reasoning"],
                "channel": channel,
            },
        )

    if USER_URGENCY_PATTERN.search(message) and _any(response, URGENCY_ACK_PATTERNS):
        yield BehaviorEvent(
            "urgency_acknowledged",
            calculate_confidence(response, URGENCY_ACK_PATTERNS),
            {"timeframe": extract_timeframe(response), "channel": channel},
        )

    if _any(response, PRICING_PATTERNS):
        yield BehaviorEvent(
            "pricing_discussed",
            calculate_confidence(response, PRICING_PATTERNS),
            {"quoted_price": extract_price(response), "channel": channel},
        )

    if _any(response, CTA_PATTERNS):
        yield BehaviorEvent(
            "cta_included",
            calculate_confidence(response, CTA_PATTERNS),
            {"cta_type": identify_cta_type(response), "channel": channel},
        )

    if _any(response, COMPETITIVE_PATTERNS):
        yield BehaviorEvent(
            "advantages_highlighted",
            calculate_confidence(response, COMPETITIVE_PATTERNS),
            {"advantages_mentioned": extract_advantages(response), "channel": channel},
        )

    if EMAIL_REQUEST_PATTERN.search(response):
        yield BehaviorEvent("email_requested", 0.9, {"channel": channel})

    if FOLLOWUP_PATTERN.search(response):
        yield BehaviorEvent(
            "followup_offered",
            0.85,
            {"timeframe": extract_followup_timeframe(response), "channel": channel},
        )

    qualifying = sum(1 for p in QUALIFYING_PATTERNS if p.search(response))
    if qualifying:
        yield BehaviorEvent(
            "qualifying_questions_asked",
            round(min(0.6 + qualifying * 0.1, 1.0), 2),
            {"question_count": qualifying, "channel": channel},
        )

    if URGENCY_CREATED_PATTERN.search(response):
        yield BehaviorEvent("urgency_created", 0.9, {"channel": channel})


async def track_behavior_events(
    store,
    customer_id: str,
    ai_response: str,
    user_message: str = "",
    channel: str = "email",
    metadata: Optional[dict] = None,
) -> list:
    """Analyze one exchange and append every detected behavior as an event."""
    if not customer_id:
        raise ValueError("customer_id is required")

    saved = []
    for behavior in analyze_behaviors(ai_response, user_message, channel):
        try:
            record = await record_event(
                store,
                customer_id=customer_id,
                event_type=behavior.type,
                channel=channel,
                metadata={**(metadata or {}), **behavior.data},
                user_message=user_message or "",
                ai_response=ai_response or "",
                confidence_score=behavior.confidence,
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to track behavior {behavior.type}: {e}")
            continue
        saved.append(record)
        logger.info(f"Tracked behavior: {behavior.type} (confidence: {behavior.confidence})")
    return saved
