"""
Reasoning service — asks an LLM to rate how ready a lead is to buy.

The classifier only depends on the `ReasoningService` protocol, so tests and
alternative providers can stand in for OpenAI.
"""

import logging
from typing import Dict, List, Literal, Optional, Protocol

from openai import AsyncOpenAI
from pydantic import BaseModel, Field

from bizzybot.config import Settings

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a sales qualification expert. Analyze messages for buying intent and urgency."

PROMPT_TEMPLATE = """Analyze this customer message for hot lead potential.

Conversation context (last 5 turns):
{history}

Current message: "{message}"

Keyword analysis:
- High intent keywords found: {high}
- Medium intent keywords found: {medium}
- Low intent keywords found: {low}

Rate this lead 0-10 where 10 is ready to buy right now.

Return JSON only:
{{
  "score": <0-10>,
  "isHotLead": <true if score >= 7>,
  "reasoning": "<one short sentence>",
  "keywords": [<buying signals found>],
  "urgency": "<low|medium|high>",
  "nextAction": "<recommended next step>"
}}"""


class ReasoningVerdict(BaseModel):
    """Payload the reasoning service must return."""

    score: float = Field(ge=0, le=10)
    is_hot_lead: bool = Field(alias="isHotLead")
    reasoning: str = ""
    keywords: List[str] = Field(default_factory=list)
    urgency: Literal["low", "medium", "high"] = "low"
    next_action: str = Field(default="", alias="nextAction")

    model_config = {"populate_by_name": True}


class ReasoningService(Protocol):
    async def assess(
        self,
        current_message: str,
        conversation_history: List[Dict[str, str]],
        keyword_context: Dict[str, List[str]],
    ) -> str:
        """Return the raw JSON verdict for one message."""
        ...


def format_history(history: List[Dict[str, str]]) -> str:
    if not history:
        return "(no previous messages)"
    return "\n".join(f"{turn.get('role', 'user')}: {turn.get('content', '')}" for turn in history)


class OpenAIReasoningService:
    """Chat-completions backed verdicts, JSON response format."""

    DEFAULT_MODEL = "gpt-4o-mini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_id: str = DEFAULT_MODEL,
        max_tokens: int = 200,
        temperature: float = 0.3,
        client: Optional[AsyncOpenAI] = None,
    ):
        self._client = client or (AsyncOpenAI(api_key=api_key) if api_key else AsyncOpenAI())
        self.model_id = model_id
        self.max_tokens = max_tokens
        self.temperature = temperature
        logger.info(f"OpenAI reasoning service initialized: {model_id}")

    async def assess(
        self,
        current_message: str,
        conversation_history: List[Dict[str, str]],
        keyword_context: Dict[str, List[str]],
    ) -> str:
        prompt = PROMPT_TEMPLATE.format(
            history=format_history(conversation_history),
            message=current_message,
            high=", ".join(keyword_context.get("high", [])) or "none",
            medium=", ".join(keyword_context.get("medium", [])) or "none",
            low=", ".join(keyword_context.get("low", [])) or "none",
        )
        try:
            response = await self._client.chat.completions.create(
                model=self.model_id,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                response_format={"type": "json_object"},
            )
        except Exception as e:
            logger.error(f"OpenAI reasoning failed: {e}")
            raise
        return (response.choices[0].message.content or "").strip()


def build_reasoning_service(settings: Settings) -> Optional[ReasoningService]:
    """OpenAI-backed service when an API key is configured, otherwise None."""
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY not set; message classification will fall back to cold")
        return None
    return OpenAIReasoningService(
        api_key=settings.openai_api_key,
        model_id=settings.openai_model,
        max_tokens=settings.openai_max_tokens,
        temperature=settings.openai_temperature,
    )
