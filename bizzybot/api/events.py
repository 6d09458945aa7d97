"""Event ingestion API — the only write path into lead state."""

from fastapi import APIRouter, Depends, HTTPException

from bizzybot.dependencies import get_event_store
from bizzybot.repositories.sql import SqlEventStore
from bizzybot.schemas import EventCreate, EventOut
from bizzybot.services.events import record_event

router = APIRouter(prefix="/events", tags=["events"])


@router.post("/", response_model=EventOut, status_code=201)
async def create_event(data: EventCreate, store: SqlEventStore = Depends(get_event_store)):
    try:
        record = await record_event(
            store,
            customer_id=data.customer_id,
            event_type=data.event_type,
            channel=data.channel,
            metadata=data.metadata,
            created_at=data.created_at,
            user_message=data.user_message,
            ai_response=data.ai_response,
            confidence_score=data.confidence_score,
        )
    except ValueError as e:
        raise HTTPException(422, str(e))
    return EventOut.from_record(record)
