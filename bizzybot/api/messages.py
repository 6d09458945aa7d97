"""Conversation analysis API — behavior detection on AI replies and per-message hot lead rating."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from bizzybot.config import get_settings
from bizzybot.dependencies import get_event_store, get_reasoning_service
from bizzybot.repositories.sql import SqlEventStore
from bizzybot.schemas import (
    BehaviorAnalyzeRequest,
    BehaviorAnalyzeResponse,
    BehaviorEventOut,
    ClassificationOut,
    ClassifyRequest,
    HotLeadSignals,
)
from bizzybot.services.behavior_analyzer import analyze_behaviors, analyze_hot_lead_signals, track_behavior_events
from bizzybot.services.events import HOT_LEAD, record_event
from bizzybot.services.message_classifier import classify_message_urgency
from bizzybot.services.reasoning import ReasoningService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["conversations"])
settings = get_settings()


@router.post("/behaviors/analyze", response_model=BehaviorAnalyzeResponse)
async def analyze(data: BehaviorAnalyzeRequest, store: SqlEventStore = Depends(get_event_store)):
    channel = data.channel.value
    behaviors = list(analyze_behaviors(data.ai_response, data.user_message, channel))

    tracked = 0
    if data.track:
        if not data.customer_id:
            raise HTTPException(422, "customer_id is required to track behaviors")
        saved = await track_behavior_events(
            store,
            data.customer_id,
            data.ai_response,
            data.user_message,
            channel,
            data.metadata,
        )
        tracked = len(saved)

    return BehaviorAnalyzeResponse(
        behaviors=[BehaviorEventOut(**b.to_dict()) for b in behaviors],
        hot_lead=HotLeadSignals(**analyze_hot_lead_signals(data.user_message, data.ai_response)),
        tracked=tracked,
    )


@router.post("/messages/classify", response_model=ClassificationOut)
async def classify(
    data: ClassifyRequest,
    store: SqlEventStore = Depends(get_event_store),
    reasoning: Optional[ReasoningService] = Depends(get_reasoning_service),
):
    result = await classify_message_urgency(
        data.message,
        history=[turn.model_dump() for turn in data.history],
        reasoning=reasoning,
        threshold=settings.hot_message_threshold,
        extra_keywords=data.keywords,
    )

    event_id = None
    if result.is_hot_lead and data.customer_id:
        try:
            record = await record_event(
                store,
                customer_id=data.customer_id,
                event_type=HOT_LEAD,
                channel=data.channel,
                metadata={
                    **data.metadata,
                    "score": result.score,
                    "keywords": result.keywords,
                    "urgency": result.urgency,
                },
                user_message=data.message,
                confidence_score=round(result.score / 10, 2),
            )
        except ValueError as e:
            raise HTTPException(422, str(e))
        event_id = record.id
        logger.info(f"Hot lead recorded from message: customer={data.customer_id} score={result.score}")

    return ClassificationOut(**result.to_dict(), event_id=event_id)
