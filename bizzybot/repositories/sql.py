"""SQLAlchemy-backed stores over an AsyncSession."""

import json
import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.exc import OperationalError, ProgrammingError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bizzybot.models import InteractionEvent, LeadNote, new_uuid, utcnow
from bizzybot.repositories.base import NoteRecord
from bizzybot.services.events import EventRecord, as_utc

logger = logging.getLogger(__name__)


def _to_record(row: InteractionEvent) -> EventRecord:
    return EventRecord(
        id=row.id,
        customer_id=row.customer_id,
        event_type=row.event_type,
        channel=row.channel or "chat",
        created_at=as_utc(row.created_at),
        metadata=row.metadata_dict,
        user_message=row.user_message or "",
        ai_response=row.ai_response or "",
        confidence_score=row.confidence_score,
    )


def _to_note(row: LeadNote) -> NoteRecord:
    return NoteRecord(
        customer_id=row.customer_id,
        lead_id=row.lead_id,
        notes=row.notes or "",
        updated_by=row.updated_by or "",
        updated_at=as_utc(row.updated_at),
        created_at=as_utc(row.created_at),
    )


class SqlEventStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def append(
        self,
        customer_id: str,
        event_type: str,
        channel: str,
        metadata: dict,
        created_at: Optional[datetime] = None,
        user_message: str = "",
        ai_response: str = "",
        confidence_score: Optional[float] = None,
    ) -> EventRecord:
        row = InteractionEvent(
            customer_id=customer_id,
            event_type=event_type,
            channel=channel,
            metadata_=json.dumps(metadata or {}, default=str),
            user_message=user_message[:1000],
            ai_response=ai_response[:2000],
            confidence_score=confidence_score,
            created_at=created_at or utcnow(),
        )
        self.session.add(row)
        try:
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise
        return _to_record(row)

    async def list_for_customer(self, customer_id: str) -> List[EventRecord]:
        result = await self.session.execute(
            select(InteractionEvent)
            .where(InteractionEvent.customer_id == customer_id)
            .order_by(InteractionEvent.created_at.asc(), InteractionEvent.id.asc())
        )
        return [_to_record(row) for row in result.scalars().all()]

    async def fingerprint(self, customer_id: str) -> Tuple[int, Optional[str]]:
        row = (
            await self.session.execute(
                select(func.count(InteractionEvent.id), func.max(InteractionEvent.created_at)).where(
                    InteractionEvent.customer_id == customer_id
                )
            )
        ).one()
        count, newest = row
        newest = as_utc(newest)
        return int(count or 0), newest.isoformat() if newest else None


class SqlNoteStore:
    """Lead notes table is created on first write if it does not exist yet."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._table_ready = False

    async def _ensure_table(self) -> None:
        if self._table_ready:
            return

        def _create(sync_session):
            LeadNote.__table__.create(bind=sync_session.connection(), checkfirst=True)

        await self.session.run_sync(_create)
        await self.session.commit()
        self._table_ready = True

    def _insert(self):
        if self.session.get_bind().dialect.name == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        else:
            from sqlalchemy.dialects.sqlite import insert
        return insert(LeadNote)

    async def upsert(self, customer_id: str, lead_id: str, notes: str, updated_by: str) -> NoteRecord:
        await self._ensure_table()
        now = datetime.now(timezone.utc)
        stmt = self._insert().values(
            id=new_uuid(),
            customer_id=customer_id,
            lead_id=lead_id,
            notes=notes,
            updated_by=updated_by,
            updated_at=now,
            created_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[LeadNote.customer_id, LeadNote.lead_id],
            set_={
                "notes": stmt.excluded.notes,
                "updated_by": stmt.excluded.updated_by,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        await self.session.execute(stmt)
        await self.session.commit()

        result = await self.session.execute(
            select(LeadNote)
            .where(LeadNote.customer_id == customer_id, LeadNote.lead_id == lead_id)
            .execution_options(populate_existing=True)
        )
        return _to_note(result.scalar_one())

    async def get(self, customer_id: str, lead_id: str) -> Optional[NoteRecord]:
        notes = await self.history(customer_id, lead_id, limit=1)
        return notes[0] if notes else None

    async def history(self, customer_id: str, lead_id: str, limit: int = 10) -> List[NoteRecord]:
        return await self.history_many(customer_id, [lead_id], limit=limit)

    async def history_many(self, customer_id: str, lead_ids: List[str], limit: int = 10) -> List[NoteRecord]:
        if not lead_ids:
            return []
        try:
            result = await self.session.execute(
                select(LeadNote)
                .where(LeadNote.customer_id == customer_id, LeadNote.lead_id.in_(sorted(set(lead_ids))))
                .order_by(LeadNote.updated_at.desc())
                .limit(limit)
            )
        except (OperationalError, ProgrammingError) as e:
            # No notes table yet means no notes
            logger.debug(f"Lead notes unavailable: {e}")
            await self.session.rollback()
            return []
        return [_to_note(row) for row in result.scalars().all()]

    async def delete(self, customer_id: str, lead_id: str) -> bool:
        try:
            result = await self.session.execute(
                delete(LeadNote).where(LeadNote.customer_id == customer_id, LeadNote.lead_id == lead_id)
            )
        except (OperationalError, ProgrammingError) as e:
            logger.debug(f"Lead notes unavailable: {e}")
            await self.session.rollback()
            return False
        await self.session.commit()
        return result.rowcount > 0
