"""Leads API — scored listing, analytics, lead details and lead notes."""

from fastapi import APIRouter, Depends, HTTPException, Query

from bizzybot.config import get_settings
from bizzybot.dependencies import get_contact_cache, get_event_store, get_note_store
from bizzybot.repositories.sql import SqlEventStore, SqlNoteStore
from bizzybot.schemas import NoteEnvelope, NoteIn, NoteOut
from bizzybot.services import leads as leads_service
from bizzybot.services import notes as notes_service
from bizzybot.services.identity import ContactIndexCache

router = APIRouter(prefix="/customers/{customer_id}/leads", tags=["leads"])
settings = get_settings()


@router.get("/", response_model=leads_service.LeadPage)
async def list_leads(
    customer_id: str,
    channel: str = "all",
    temperature: str = "all",
    search: str = "",
    sort_by: str = "score",
    limit: int = Query(settings.leads_default_limit, ge=1, le=settings.leads_max_limit),
    offset: int = Query(0, ge=0),
    store: SqlEventStore = Depends(get_event_store),
    cache: ContactIndexCache = Depends(get_contact_cache),
):
    try:
        return await leads_service.list_leads(
            store,
            customer_id,
            channel=channel,
            temperature_filter=temperature,
            search_term=search,
            sort_by=sort_by,
            limit=limit,
            offset=offset,
            cache=cache,
            hot_threshold=settings.hot_score_threshold,
            warm_threshold=settings.warm_score_threshold,
        )
    except ValueError as e:
        raise HTTPException(422, str(e))


# Registered before /{lead_identifier} so "analytics" is not taken as a lead
@router.get("/analytics", response_model=leads_service.LeadAnalytics)
async def lead_analytics(
    customer_id: str,
    period_days: int = Query(30, ge=1, le=365),
    store: SqlEventStore = Depends(get_event_store),
    cache: ContactIndexCache = Depends(get_contact_cache),
):
    try:
        return await leads_service.get_lead_analytics(
            store,
            customer_id,
            period_days=period_days,
            cache=cache,
            hot_threshold=settings.hot_score_threshold,
            warm_threshold=settings.warm_score_threshold,
        )
    except ValueError as e:
        raise HTTPException(422, str(e))


@router.get("/{lead_identifier}", response_model=leads_service.LeadDetail)
async def get_lead(
    customer_id: str,
    lead_identifier: str,
    store: SqlEventStore = Depends(get_event_store),
    note_store: SqlNoteStore = Depends(get_note_store),
    cache: ContactIndexCache = Depends(get_contact_cache),
):
    try:
        detail = await leads_service.get_lead_details(
            store,
            note_store,
            customer_id,
            lead_identifier,
            cache=cache,
            high_value_threshold=settings.high_value_threshold,
            hot_threshold=settings.hot_score_threshold,
            warm_threshold=settings.warm_score_threshold,
        )
    except ValueError as e:
        raise HTTPException(422, str(e))
    if not detail:
        raise HTTPException(404, "Lead not found")
    return detail


# ── Notes ────────────────────────────────────────────────
@router.get("/{lead_id}/notes", response_model=NoteEnvelope)
async def get_notes(customer_id: str, lead_id: str, note_store: SqlNoteStore = Depends(get_note_store)):
    history = await notes_service.get_note_history(note_store, customer_id, lead_id)
    return NoteEnvelope(
        notes=NoteOut.model_validate(history[0]) if history else None,
        history=[NoteOut.model_validate(n) for n in history],
    )


@router.put("/{lead_id}/notes", response_model=NoteOut)
async def save_notes(
    customer_id: str,
    lead_id: str,
    data: NoteIn,
    note_store: SqlNoteStore = Depends(get_note_store),
):
    try:
        note = await notes_service.save_note(note_store, customer_id, lead_id, data.notes, data.updated_by)
    except ValueError as e:
        raise HTTPException(422, str(e))
    return NoteOut.model_validate(note)


@router.delete("/{lead_id}/notes", status_code=204)
async def delete_notes(customer_id: str, lead_id: str, note_store: SqlNoteStore = Depends(get_note_store)):
    if not await notes_service.delete_note(note_store, customer_id, lead_id):
        raise HTTPException(404, "Note not found")
