"""Lead notes — free-text notes attached to a contact, one per (customer, lead)."""

import logging
from typing import List, Optional

from bizzybot.repositories.base import NoteRecord

logger = logging.getLogger(__name__)

NOTE_HISTORY_LIMIT = 10


def _require(customer_id: str, lead_id: str) -> None:
    if not customer_id or not str(customer_id).strip():
        raise ValueError("customer_id is required")
    if not lead_id or not str(lead_id).strip():
        raise ValueError("lead_id is required")


async def save_note(note_store, customer_id: str, lead_id: str, text: str, author: str = "user") -> NoteRecord:
    """Create or replace the note for a lead. Saving twice keeps a single row."""
    _require(customer_id, lead_id)
    note = await note_store.upsert(customer_id, lead_id, text or "", author or "user")
    logger.info(f"Lead note saved: customer={customer_id} lead={lead_id}")
    return note


async def get_note(note_store, customer_id: str, lead_id: str) -> Optional[NoteRecord]:
    _require(customer_id, lead_id)
    return await note_store.get(customer_id, lead_id)


async def get_note_history(
    note_store, customer_id: str, lead_id: str, limit: int = NOTE_HISTORY_LIMIT
) -> List[NoteRecord]:
    _require(customer_id, lead_id)
    return await note_store.history(customer_id, lead_id, limit=limit)


async def delete_note(note_store, customer_id: str, lead_id: str) -> bool:
    _require(customer_id, lead_id)
    deleted = await note_store.delete(customer_id, lead_id)
    if deleted:
        logger.info(f"Lead note deleted: customer={customer_id} lead={lead_id}")
    return deleted
