"""
Contact form routes.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from contractor_api.dependencies import get_record_store
from contractor_api.guards import require_admin
from contractor_api.records import CONTACT_MESSAGES, CONTACT_STATUS_ALIASES
from contractor_api.schemas import (
    ContactCreate,
    ContactCreated,
    ContactMessageOut,
    ContactMessageResponse,
    ContactPage,
    ContactStatusUpdate,
    page_meta,
)
from contractor_api.store import RecordStore

router = APIRouter(prefix="/contact", tags=["contact"])


@router.post("", response_model=ContactCreated, status_code=201)
def submit_contact_message(
    payload: ContactCreate, store: RecordStore = Depends(get_record_store)
):
    created = store.create(CONTACT_MESSAGES, {**payload.model_dump(), "status": "unread"})
    return ContactCreated(message="Contact message submitted successfully", id=created.id)


@router.get("", response_model=ContactPage, dependencies=[Depends(require_admin)])
def list_contact_messages(
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    store: RecordStore = Depends(get_record_store),
):
    filters = {"status": CONTACT_STATUS_ALIASES.get(status, status) or None}
    messages = store.list(CONTACT_MESSAGES, filters, page=page, limit=limit)
    return ContactPage(
        messages=[ContactMessageOut.model_validate(m) for m in messages],
        **page_meta(page, limit, store.count(CONTACT_MESSAGES, filters)),
    )


@router.put(
    "/{message_id}",
    response_model=ContactMessageResponse,
    dependencies=[Depends(require_admin)],
)
def update_contact_status(
    message_id: str,
    payload: ContactStatusUpdate,
    store: RecordStore = Depends(get_record_store),
):
    updated = store.update(CONTACT_MESSAGES, message_id, {"status": payload.status})
    return ContactMessageResponse(
        message="Contact message status updated successfully",
        contact_message=ContactMessageOut.model_validate(updated),
    )
