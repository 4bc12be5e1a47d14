"""
Work request routes. Anyone may submit a request; reading and triage are
admin-only.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from contractor_api.dependencies import get_record_store
from contractor_api.errors import ValidationError
from contractor_api.guards import require_admin
from contractor_api.records import WORK_REQUESTS
from contractor_api.schemas import (
    MessageResponse,
    WorkRequestCreate,
    WorkRequestOut,
    WorkRequestPage,
    WorkRequestResponse,
    WorkRequestSummary,
    WorkRequestUpdate,
    page_meta,
)
from contractor_api.store import RecordStore

router = APIRouter(prefix="/work-requests", tags=["work-requests"])


@router.get("", response_model=WorkRequestPage, dependencies=[Depends(require_admin)])
def list_work_requests(
    status: Optional[str] = Query(None),
    urgency_level: Optional[str] = Query(None, alias="urgencyLevel"),
    service_preference: Optional[str] = Query(None, alias="servicePreference"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    store: RecordStore = Depends(get_record_store),
):
    filters = {
        "status": status or None,
        "urgency_level": urgency_level or None,
        "service_preference": service_preference or None,
    }
    requests = store.list(WORK_REQUESTS, filters, page=page, limit=limit)
    return WorkRequestPage(
        work_requests=[WorkRequestOut.model_validate(r) for r in requests],
        **page_meta(page, limit, store.count(WORK_REQUESTS, filters)),
    )


@router.get(
    "/stats/summary",
    response_model=WorkRequestSummary,
    dependencies=[Depends(require_admin)],
)
def summarize_work_requests(store: RecordStore = Depends(get_record_store)):
    return WorkRequestSummary(
        total=store.count(WORK_REQUESTS),
        by_status=store.count_by(WORK_REQUESTS, "status"),
        by_urgency=store.count_by(WORK_REQUESTS, "urgency_level"),
        by_service_type=store.count_by(WORK_REQUESTS, "service_preference"),
    )


@router.get(
    "/{work_request_id}",
    response_model=WorkRequestOut,
    dependencies=[Depends(require_admin)],
)
def get_work_request(work_request_id: str, store: RecordStore = Depends(get_record_store)):
    return WorkRequestOut.model_validate(store.get(WORK_REQUESTS, work_request_id))


@router.post("", response_model=WorkRequestResponse, status_code=201)
def create_work_request(
    payload: WorkRequestCreate, store: RecordStore = Depends(get_record_store)
):
    created = store.create(WORK_REQUESTS, {**payload.model_dump(), "status": "pending"})
    return WorkRequestResponse(
        message="Work request submitted successfully",
        work_request=WorkRequestOut.model_validate(created),
    )


@router.put(
    "/{work_request_id}",
    response_model=WorkRequestResponse,
    dependencies=[Depends(require_admin)],
)
def update_work_request(
    work_request_id: str,
    payload: WorkRequestUpdate,
    store: RecordStore = Depends(get_record_store),
):
    changes = payload.changes()
    if not changes:
        raise ValidationError("No valid fields to update")
    updated = store.update(WORK_REQUESTS, work_request_id, changes)
    return WorkRequestResponse(
        message="Work request updated successfully",
        work_request=WorkRequestOut.model_validate(updated),
    )


@router.delete(
    "/{work_request_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_admin)],
)
def delete_work_request(work_request_id: str, store: RecordStore = Depends(get_record_store)):
    store.delete(WORK_REQUESTS, work_request_id)
    return MessageResponse(message="Work request deleted successfully")
