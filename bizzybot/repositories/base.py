"""Repository protocols shared by the SQL and in-memory backends."""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Protocol, Tuple, runtime_checkable

from bizzybot.services.events import EventRecord


@dataclass(frozen=True)
class NoteRecord:
    customer_id: str
    lead_id: str
    notes: str
    updated_by: str
    updated_at: datetime
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "customer_id": self.customer_id,
            "lead_id": self.lead_id,
            "notes": self.notes,
            "updated_by": self.updated_by,
            "updated_at": self.updated_at.isoformat(),
            "created_at": self.created_at.isoformat(),
        }


@runtime_checkable
class EventStore(Protocol):
    """Append-only event storage."""

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
        """Store a new event and return it with id and timestamp assigned."""
        ...

    async def list_for_customer(self, customer_id: str) -> List[EventRecord]:
        """All events of a customer, oldest first."""
        ...

    async def fingerprint(self, customer_id: str) -> Tuple[int, Optional[str]]:
        """(event count, newest timestamp) — changes whenever an event is appended."""
        ...


@runtime_checkable
class NoteStore(Protocol):
    """Keyed lead-note storage with upsert semantics."""

    async def upsert(self, customer_id: str, lead_id: str, notes: str, updated_by: str) -> NoteRecord:
        ...

    async def get(self, customer_id: str, lead_id: str) -> Optional[NoteRecord]:
        ...

    async def history(self, customer_id: str, lead_id: str, limit: int = 10) -> List[NoteRecord]:
        ...

    async def history_many(self, customer_id: str, lead_ids: List[str], limit: int = 10) -> List[NoteRecord]:
        """Notes stored under any of lead_ids, newest first."""
        ...

    async def delete(self, customer_id: str, lead_id: str) -> bool:
        ...
