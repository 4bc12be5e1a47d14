"""
Pydantic schemas for the contractor marketplace API.

Wire names are camelCase; Python attributes stay snake_case and match the
record fields, so `model_dump()` output can go straight to the record store.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Annotated, Any, ClassVar, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from contractor_api.records import (
    CONTACT_STATUS_ALIASES,
    CONTACT_STATUSES,
    SERVICE_PREFERENCES,
    URGENCY_LEVELS,
    WORK_ORDER_PRIORITIES,
    WORK_ORDER_STATUSES,
    WORK_REQUEST_STATUSES,
)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^[\+]?[1-9][\d]{0,15}$")


def _required_text(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise PydanticCustomError("missing", "Field required")
    return value


def _optional_text(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _required_secret(value: Any) -> Any:
    if value == "":
        raise PydanticCustomError("missing", "Field required")
    return value


def _email(value: Any) -> Any:
    value = _required_text(value)
    if not isinstance(value, str) or not EMAIL_PATTERN.match(value):
        raise PydanticCustomError("email_format", "Invalid email format")
    return value.lower()


def _phone(value: Any) -> Any:
    value = _optional_text(value)
    if value is not None and not PHONE_PATTERN.match(str(value)):
        raise PydanticCustomError("phone_format", "Please enter a valid phone number")
    return value


def _price(value: Any) -> float:
    if isinstance(value, bool):
        raise PydanticCustomError("price", "basePrice must be a positive number")
    try:
        price = float(value)
    except (TypeError, ValueError, OverflowError):
        raise PydanticCustomError("price", "basePrice must be a positive number")
    if not math.isfinite(price) or price < 0:
        raise PydanticCustomError("price", "basePrice must be a positive number")
    return price


def _unit(value: Any) -> Any:
    return _optional_text(value) or "per hour"


def _featured(value: Any) -> bool:
    # Form fields arrive as strings; anything but true/"true" is false.
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return value is True


def _optional_date(value: Any) -> Optional[str]:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    value = _optional_text(value)
    if value is None:
        return None
    try:
        return date.fromisoformat(str(value)[:10]).isoformat()
    except ValueError:
        raise PydanticCustomError("date_format", "Invalid date format")


def _choice(allowed: tuple[str, ...], message: str, *, optional: bool = False, aliases: Optional[dict] = None):
    def check(value: Any) -> Any:
        if value is None and optional:
            return None
        if isinstance(value, str):
            value = value.strip()
            value = (aliases or {}).get(value, value)
        if value not in allowed:
            raise PydanticCustomError("invalid_choice", message)
        return value

    return Annotated[Optional[str] if optional else str, BeforeValidator(check)]


RequiredText = Annotated[str, BeforeValidator(_required_text)]
OptionalText = Annotated[Optional[str], BeforeValidator(_optional_text)]
Secret = Annotated[str, BeforeValidator(_required_secret)]
Email = Annotated[str, BeforeValidator(_email)]
Phone = Annotated[Optional[str], BeforeValidator(_phone)]
Price = Annotated[float, BeforeValidator(_price)]
OptionalPrice = Annotated[Optional[float], BeforeValidator(_price)]
Unit = Annotated[str, BeforeValidator(_unit)]
FeaturedFlag = Annotated[Optional[bool], BeforeValidator(_featured)]
OptionalDate = Annotated[Optional[str], BeforeValidator(_optional_date)]

Priority = _choice(WORK_ORDER_PRIORITIES, "Invalid priority value")
WorkOrderStatus = _choice(WORK_ORDER_STATUSES, "Invalid status value", optional=True)
WorkRequestStatus = _choice(WORK_REQUEST_STATUSES, "Invalid status value", optional=True)
UrgencyLevel = _choice(URGENCY_LEVELS, "Invalid urgency level")
ServicePreference = _choice(SERVICE_PREFERENCES, "Invalid service preference")
ContactStatus = _choice(CONTACT_STATUSES, "Invalid status value", aliases=CONTACT_STATUS_ALIASES)


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class PartialUpdate(CamelModel):
    """
    Explicit partial update: a field is present only if the client sent it
    (pydantic's `model_fields_set`). Sent nulls clear a field only when the
    field is listed in `nullable`; otherwise they count as absent.
    """

    nullable: ClassVar[frozenset[str]] = frozenset()

    def changes(self) -> dict[str, Any]:
        present = {}
        for name in self.model_fields_set:
            value = getattr(self, name)
            if value is None and name not in self.nullable:
                continue
            present[name] = value
        return present


# Requests


class ServiceCreate(CamelModel):
    name: RequiredText
    description: OptionalText = None
    category: RequiredText
    base_price: Price
    unit: Unit = "per hour"
    is_active: bool = True
    image_url: OptionalText = None


class ServiceUpdate(PartialUpdate):
    nullable: ClassVar[frozenset[str]] = frozenset({"description", "image_url"})

    name: OptionalText = None
    description: OptionalText = None
    category: OptionalText = None
    base_price: OptionalPrice = None
    unit: OptionalText = None
    is_active: Optional[bool] = None
    image_url: OptionalText = None


class WorkOrderCreate(CamelModel):
    customer_name: RequiredText
    customer_email: Email
    customer_phone: OptionalText = None
    customer_address: OptionalText = None
    service_type: RequiredText
    description: RequiredText
    priority: Priority = "medium"
    preferred_date: OptionalDate = None
    preferred_time: OptionalText = None
    budget_range: OptionalText = None
    notes: OptionalText = None


class WorkOrderUpdate(PartialUpdate):
    nullable: ClassVar[frozenset[str]] = frozenset({"notes"})

    status: WorkOrderStatus = None
    notes: OptionalText = None


class WorkRequestCreate(CamelModel):
    customer_name: RequiredText
    customer_address: RequiredText
    project_type: RequiredText
    urgency_level: UrgencyLevel
    service_preference: ServicePreference


class WorkRequestUpdate(PartialUpdate):
    nullable: ClassVar[frozenset[str]] = frozenset({"notes", "assigned_to"})

    status: WorkRequestStatus = None
    notes: OptionalText = None
    assigned_to: OptionalText = None


class ContactCreate(CamelModel):
    name: RequiredText
    email: Email
    subject: OptionalText = None
    message: RequiredText


class ContactStatusUpdate(CamelModel):
    status: ContactStatus


class GalleryImageCreate(CamelModel):
    title: OptionalText = None
    description: OptionalText = None
    category: OptionalText = None
    project_date: OptionalDate = None
    is_featured: FeaturedFlag = False


class GalleryImageUpdate(PartialUpdate):
    nullable: ClassVar[frozenset[str]] = frozenset(
        {"title", "description", "category", "project_date"}
    )

    title: OptionalText = None
    description: OptionalText = None
    category: OptionalText = None
    project_date: OptionalDate = None
    is_featured: FeaturedFlag = None


class AdminLoginRequest(CamelModel):
    # Either the username or the email address.
    username: RequiredText
    password: Secret


class AdminRegisterRequest(CamelModel):
    username: RequiredText
    email: Email
    password: Secret


class ChangePasswordRequest(CamelModel):
    current_password: Secret
    new_password: Secret


class UserRegisterRequest(CamelModel):
    email: Email
    password: Secret
    first_name: RequiredText = Field(max_length=50)
    last_name: RequiredText = Field(max_length=50)
    phone: Phone = None
    address: OptionalText = Field(default=None, max_length=200)


class UserLoginRequest(CamelModel):
    email: RequiredText
    password: Secret


# Responses


class MessageResponse(BaseModel):
    message: str


class PageMeta(CamelModel):
    page: int
    limit: int
    total_count: int
    total_pages: int


def page_meta(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total_count": total,
        "total_pages": math.ceil(total / limit) if limit else 0,
    }


class ServiceOut(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    category: str
    base_price: float
    unit: Optional[str] = None
    is_active: bool
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ServiceResponse(CamelModel):
    message: str
    service: ServiceOut


class CategorySummary(BaseModel):
    category: str
    service_count: int
    min_price: Optional[float] = None
    max_price: Optional[float] = None


class WorkOrderOut(CamelModel):
    id: str
    user_id: Optional[str] = None
    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    service_type: str
    description: str
    priority: str
    preferred_date: Optional[str] = None
    preferred_time: Optional[str] = None
    budget_range: Optional[str] = None
    status: str
    notes: Optional[str] = None
    images: list[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class WorkOrderResponse(CamelModel):
    message: str
    work_order: WorkOrderOut


class WorkOrderPage(PageMeta):
    work_orders: list[WorkOrderOut]


class WorkRequestOut(CamelModel):
    id: str
    customer_name: str
    customer_address: str
    project_type: str
    urgency_level: str
    service_preference: str
    status: str
    notes: Optional[str] = None
    assigned_to: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class WorkRequestResponse(CamelModel):
    message: str
    work_request: WorkRequestOut


class WorkRequestPage(PageMeta):
    work_requests: list[WorkRequestOut]


class WorkRequestSummary(CamelModel):
    total: int
    by_status: dict[str, int]
    by_urgency: dict[str, int]
    by_service_type: dict[str, int]


class ContactMessageOut(CamelModel):
    id: str
    name: str
    email: str
    subject: Optional[str] = None
    message: str
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ContactCreated(CamelModel):
    message: str
    id: str


class ContactMessageResponse(CamelModel):
    message: str
    contact_message: ContactMessageOut


class ContactPage(PageMeta):
    messages: list[ContactMessageOut]


class GalleryImageOut(CamelModel):
    id: str
    title: Optional[str] = None
    description: Optional[str] = None
    image_url: str
    category: Optional[str] = None
    project_date: Optional[str] = None
    is_featured: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class GalleryImageResponse(CamelModel):
    message: str
    image: GalleryImageOut


class GalleryPage(PageMeta):
    images: list[GalleryImageOut]


class AdminOut(CamelModel):
    id: str
    username: str
    email: str
    role: str
    last_login: Optional[datetime] = None


class UserOut(CamelModel):
    id: str
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    role: str
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None


class AdminLoginResponse(CamelModel):
    message: str
    token: str
    user: AdminOut


class AdminRegistered(CamelModel):
    message: str
    user_id: str


class AdminMeResponse(CamelModel):
    user: AdminOut


class UserAuthResponse(CamelModel):
    message: str
    token: str
    user: UserOut


class UserMeResponse(CamelModel):
    user: UserOut


class PopularService(CamelModel):
    service_type: str
    count: int


class DailyCount(CamelModel):
    date: str
    count: int


class DashboardResponse(CamelModel):
    orders_by_status: dict[str, int]
    pending_orders: int
    in_progress_orders: int
    completed_orders: int
    unread_messages: int
    gallery_images: int
    active_services: int
    popular_services: list[PopularService]
    weekly_activity: list[DailyCount]


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    uptime: float
    environment: str
