"""
Service catalogue routes. Reads are public, mutations need an admin token.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from contractor_api.dependencies import get_record_store
from contractor_api.errors import ValidationError
from contractor_api.guards import require_admin
from contractor_api.records import SERVICES
from contractor_api.schemas import (
    CategorySummary,
    MessageResponse,
    ServiceCreate,
    ServiceOut,
    ServiceResponse,
    ServiceUpdate,
)
from contractor_api.store import RecordStore, list_all

router = APIRouter(prefix="/services", tags=["services"])


@router.get("", response_model=list[ServiceOut])
def list_services(
    category: Optional[str] = Query(None),
    active_only: bool = Query(True),
    store: RecordStore = Depends(get_record_store),
):
    filters = {"category": category or None, "is_active": True if active_only else None}
    return [ServiceOut.model_validate(s) for s in list_all(store, SERVICES, filters)]


@router.get("/categories", response_model=list[CategorySummary])
def list_categories(store: RecordStore = Depends(get_record_store)):
    return [CategorySummary(**row) for row in store.category_summary()]


@router.get("/{service_id}", response_model=ServiceOut)
def get_service(service_id: str, store: RecordStore = Depends(get_record_store)):
    return ServiceOut.model_validate(store.get(SERVICES, service_id))


@router.post(
    "",
    response_model=ServiceResponse,
    status_code=201,
    dependencies=[Depends(require_admin)],
)
def create_service(
    payload: ServiceCreate, store: RecordStore = Depends(get_record_store)
):
    service = store.create(SERVICES, payload.model_dump())
    return ServiceResponse(
        message="Service created successfully",
        service=ServiceOut.model_validate(service),
    )


@router.put(
    "/{service_id}",
    response_model=ServiceResponse,
    dependencies=[Depends(require_admin)],
)
def update_service(
    service_id: str,
    payload: ServiceUpdate,
    store: RecordStore = Depends(get_record_store),
):
    changes = payload.changes()
    if not changes:
        raise ValidationError("No valid fields to update")
    service = store.update(SERVICES, service_id, changes)
    return ServiceResponse(
        message="Service updated successfully",
        service=ServiceOut.model_validate(service),
    )


@router.delete(
    "/{service_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_admin)],
)
def delete_service(service_id: str, store: RecordStore = Depends(get_record_store)):
    store.delete(SERVICES, service_id)
    return MessageResponse(message="Service deleted successfully")
