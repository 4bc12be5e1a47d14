"""
Work order routes.

Submission is open to guests (see `optional_auth`), "my orders" needs a user
token, everything else needs an admin token.
"""

from __future__ import annotations

from typing import Optional, Union

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from contractor_api.dependencies import get_record_store, get_upload_store
from contractor_api.errors import ValidationError
from contractor_api.guards import optional_auth, require_admin, require_user
from contractor_api.records import WORK_ORDERS, UserRecord
from contractor_api.schemas import (
    MessageResponse,
    WorkOrderCreate,
    WorkOrderOut,
    WorkOrderPage,
    WorkOrderResponse,
    WorkOrderUpdate,
    page_meta,
)
from contractor_api.store import RecordStore
from contractor_api.uploads import (
    WORK_ORDER_UPLOADS,
    UploadStore,
    chosen_files,
    store_uploads,
)

router = APIRouter(prefix="/work-orders", tags=["work-orders"])


def _page(store: RecordStore, filters: dict, page: int, limit: int) -> WorkOrderPage:
    orders = store.list(WORK_ORDERS, filters, page=page, limit=limit)
    return WorkOrderPage(
        work_orders=[WorkOrderOut.model_validate(o) for o in orders],
        **page_meta(page, limit, store.count(WORK_ORDERS, filters)),
    )


@router.get("", response_model=WorkOrderPage, dependencies=[Depends(require_admin)])
def list_work_orders(
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    store: RecordStore = Depends(get_record_store),
):
    return _page(store, {"status": status or None}, page, limit)


@router.get("/my-orders", response_model=WorkOrderPage)
def list_my_work_orders(
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: UserRecord = Depends(require_user),
    store: RecordStore = Depends(get_record_store),
):
    # The owner filter comes from the token, never from the query string.
    return _page(store, {"user_id": user.id, "status": status or None}, page, limit)


@router.get(
    "/{work_order_id}",
    response_model=WorkOrderOut,
    dependencies=[Depends(require_admin)],
)
def get_work_order(work_order_id: str, store: RecordStore = Depends(get_record_store)):
    return WorkOrderOut.model_validate(store.get(WORK_ORDERS, work_order_id))


@router.post("", response_model=WorkOrderResponse, status_code=201)
def create_work_order(
    customer_name: Optional[str] = Form(None, alias="customerName"),
    customer_email: Optional[str] = Form(None, alias="customerEmail"),
    customer_phone: Optional[str] = Form(None, alias="customerPhone"),
    customer_address: Optional[str] = Form(None, alias="customerAddress"),
    service_type: Optional[str] = Form(None, alias="serviceType"),
    description: Optional[str] = Form(None),
    priority: Optional[str] = Form(None),
    preferred_date: Optional[str] = Form(None, alias="preferredDate"),
    preferred_time: Optional[str] = Form(None, alias="preferredTime"),
    budget_range: Optional[str] = Form(None, alias="budgetRange"),
    notes: Optional[str] = Form(None),
    images: Optional[list[Union[UploadFile, str]]] = File(None),
    owner_id: Optional[str] = Depends(optional_auth),
    store: RecordStore = Depends(get_record_store),
    uploads: UploadStore = Depends(get_upload_store),
):
    submitted = {
        "customer_name": customer_name,
        "customer_email": customer_email,
        "customer_phone": customer_phone,
        "customer_address": customer_address,
        "service_type": service_type,
        "description": description,
        "priority": priority,
        "preferred_date": preferred_date,
        "preferred_time": preferred_time,
        "budget_range": budget_range,
        "notes": notes,
    }
    payload = WorkOrderCreate.model_validate(
        {name: value for name, value in submitted.items() if value is not None}
    )
    image_paths = store_uploads(uploads, chosen_files(images), WORK_ORDER_UPLOADS)
    order = store.create(
        WORK_ORDERS,
        {
            **payload.model_dump(),
            "user_id": owner_id,
            "images": image_paths,
            "status": "pending",
        },
    )
    return WorkOrderResponse(
        message="Work order submitted successfully",
        work_order=WorkOrderOut.model_validate(order),
    )


@router.put(
    "/{work_order_id}",
    response_model=WorkOrderResponse,
    dependencies=[Depends(require_admin)],
)
def update_work_order(
    work_order_id: str,
    payload: WorkOrderUpdate,
    store: RecordStore = Depends(get_record_store),
):
    changes = payload.changes()
    if not changes:
        raise ValidationError("No valid fields to update")
    order = store.update(WORK_ORDERS, work_order_id, changes)
    return WorkOrderResponse(
        message="Work order updated successfully",
        work_order=WorkOrderOut.model_validate(order),
    )


@router.delete(
    "/{work_order_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_admin)],
)
def delete_work_order(work_order_id: str, store: RecordStore = Depends(get_record_store)):
    store.delete(WORK_ORDERS, work_order_id)
    return MessageResponse(message="Work order deleted successfully")
