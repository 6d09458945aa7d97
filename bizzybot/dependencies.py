"""FastAPI dependencies — storage backends and shared services per request."""

from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from bizzybot.database import get_db
from bizzybot.repositories.sql import SqlEventStore, SqlNoteStore
from bizzybot.services.identity import ContactIndexCache
from bizzybot.services.reasoning import ReasoningService


def get_event_store(db: AsyncSession = Depends(get_db)) -> SqlEventStore:
    return SqlEventStore(db)


def get_note_store(db: AsyncSession = Depends(get_db)) -> SqlNoteStore:
    return SqlNoteStore(db)


def get_contact_cache(request: Request) -> ContactIndexCache:
    return request.app.state.contact_cache


def get_reasoning_service(request: Request) -> Optional[ReasoningService]:
    return getattr(request.app.state, "reasoning_service", None)
