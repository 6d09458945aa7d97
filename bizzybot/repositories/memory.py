"""In-memory stores — one instance per owner, never shared at module level."""

from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from bizzybot.models import new_uuid, utcnow
from bizzybot.repositories.base import NoteRecord
from bizzybot.services.events import EventRecord, as_utc


class InMemoryEventStore:
    def __init__(self):
        self._events: Dict[str, List[EventRecord]] = defaultdict(list)

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
        record = EventRecord(
            id=new_uuid(),
            customer_id=customer_id,
            event_type=event_type,
            channel=channel,
            created_at=as_utc(created_at) or utcnow(),
            metadata=dict(metadata or {}),
            user_message=user_message,
            ai_response=ai_response,
            confidence_score=confidence_score,
        )
        self._events[customer_id].append(record)
        return record

    async def list_for_customer(self, customer_id: str) -> List[EventRecord]:
        return sorted(self._events.get(customer_id, []), key=lambda e: (e.created_at, e.id))

    async def fingerprint(self, customer_id: str) -> Tuple[int, Optional[str]]:
        events = self._events.get(customer_id, [])
        if not events:
            return 0, None
        return len(events), max(e.created_at for e in events).isoformat()


class InMemoryNoteStore:
    def __init__(self):
        self._notes: Dict[Tuple[str, str], NoteRecord] = {}

    async def upsert(self, customer_id: str, lead_id: str, notes: str, updated_by: str) -> NoteRecord:
        now = datetime.now(timezone.utc)
        existing = self._notes.get((customer_id, lead_id))
        record = NoteRecord(
            customer_id=customer_id,
            lead_id=lead_id,
            notes=notes,
            updated_by=updated_by,
            updated_at=now,
            created_at=existing.created_at if existing else now,
        )
        self._notes[(customer_id, lead_id)] = record
        return record

    async def get(self, customer_id: str, lead_id: str) -> Optional[NoteRecord]:
        return self._notes.get((customer_id, lead_id))

    async def history(self, customer_id: str, lead_id: str, limit: int = 10) -> List[NoteRecord]:
        note = self._notes.get((customer_id, lead_id))
        return [note][:limit] if note else []

    async def history_many(self, customer_id: str, lead_ids: List[str], limit: int = 10) -> List[NoteRecord]:
        notes = [self._notes[(customer_id, lead_id)] for lead_id in dict.fromkeys(lead_ids)
                 if (customer_id, lead_id) in self._notes]
        return sorted(notes, key=lambda n: n.updated_at, reverse=True)[:limit]

    async def delete(self, customer_id: str, lead_id: str) -> bool:
        return self._notes.pop((customer_id, lead_id), None) is not None

    def __len__(self) -> int:
        return len(self._notes)
