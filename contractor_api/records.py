"""
Record types and the per-kind descriptors the record store is driven by.

Records are plain dataclasses with snake_case attributes; both backends
build them from their own rows/documents, so handlers never see a
backend-specific object.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Optional

ASC = 1
DESC = -1

WORK_ORDER_PRIORITIES = ("low", "medium", "high", "urgent")
WORK_ORDER_STATUSES = ("pending", "in-progress", "completed", "cancelled", "on-hold")
WORK_REQUEST_STATUSES = ("pending", "in-progress", "completed", "cancelled")
URGENCY_LEVELS = ("24hours", "1week", "1month", "annual")
SERVICE_PREFERENCES = ("licensed", "general")
CONTACT_STATUSES = ("unread", "read", "replied")
# Older clients send "responded"; "replied" is the stored value.
CONTACT_STATUS_ALIASES = {"responded": "replied"}


def utcnow() -> datetime:
    """Naive UTC timestamp truncated to milliseconds (the document store's precision)."""
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


@dataclass
class ServiceRecord:
    id: str
    name: str
    category: str
    base_price: float
    description: Optional[str] = None
    unit: str = "per hour"
    is_active: bool = True
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class WorkOrderRecord:
    id: str
    customer_name: str
    customer_email: str
    service_type: str
    description: str
    user_id: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    priority: str = "medium"
    preferred_date: Optional[str] = None
    preferred_time: Optional[str] = None
    budget_range: Optional[str] = None
    status: str = "pending"
    notes: Optional[str] = None
    images: list[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class WorkRequestRecord:
    id: str
    customer_name: str
    customer_address: str
    project_type: str
    urgency_level: str
    service_preference: str
    status: str = "pending"
    notes: Optional[str] = None
    assigned_to: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class ContactMessageRecord:
    id: str
    name: str
    email: str
    message: str
    subject: Optional[str] = None
    status: str = "unread"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class GalleryImageRecord:
    id: str
    image_url: str
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    project_date: Optional[str] = None
    is_featured: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class AdminUserRecord:
    id: str
    username: str
    email: str
    password_hash: str
    role: str = "admin"
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class UserRecord:
    id: str
    email: str
    password_hash: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    role: str = "user"
    is_active: bool = True
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class RecordKind:
    """Describes one record kind: where it lives and how it is listed."""

    name: str
    label: str
    record_type: type
    filterable: frozenset[str]
    sort: tuple[tuple[str, int], ...]
    unique: tuple[str, ...] = ()
    json_fields: frozenset[str] = frozenset()

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(f.name for f in fields(self.record_type) if f.name != "id")

    @property
    def id_direction(self) -> int:
        """Ties are broken by id, in the direction of the last sort key."""
        return self.sort[-1][1] if self.sort else ASC

    def check_filters(self, filters: Optional[dict]) -> dict:
        """Drop unset values and reject keys outside the whitelist."""
        active = {k: v for k, v in (filters or {}).items() if v is not None}
        unknown = set(active) - self.filterable
        if unknown:
            raise ValueError(
                f"Cannot filter {self.name} by {', '.join(sorted(unknown))}"
            )
        return active


SERVICES = RecordKind(
    name="services",
    label="service",
    record_type=ServiceRecord,
    filterable=frozenset({"category", "is_active"}),
    sort=(("category", ASC), ("name", ASC)),
)

WORK_ORDERS = RecordKind(
    name="work_orders",
    label="work order",
    record_type=WorkOrderRecord,
    filterable=frozenset({"status", "user_id", "service_type", "priority"}),
    sort=(("created_at", DESC),),
    json_fields=frozenset({"images"}),
)

WORK_REQUESTS = RecordKind(
    name="work_requests",
    label="work request",
    record_type=WorkRequestRecord,
    filterable=frozenset({"status", "urgency_level", "service_preference"}),
    sort=(("created_at", DESC),),
)

CONTACT_MESSAGES = RecordKind(
    name="contact_messages",
    label="contact message",
    record_type=ContactMessageRecord,
    filterable=frozenset({"status"}),
    sort=(("created_at", DESC),),
)

GALLERY_IMAGES = RecordKind(
    name="gallery_images",
    label="gallery image",
    record_type=GalleryImageRecord,
    filterable=frozenset({"category", "is_featured"}),
    sort=(("is_featured", DESC), ("created_at", DESC)),
)

ADMIN_USERS = RecordKind(
    name="admin_users",
    label="admin user",
    record_type=AdminUserRecord,
    filterable=frozenset({"username", "email", "role"}),
    sort=(("created_at", DESC),),
    unique=("username", "email"),
)

USERS = RecordKind(
    name="users",
    label="user",
    record_type=UserRecord,
    filterable=frozenset({"email", "role", "is_active"}),
    sort=(("created_at", DESC),),
    unique=("email",),
)

ALL_KINDS = (
    SERVICES,
    WORK_ORDERS,
    WORK_REQUESTS,
    CONTACT_MESSAGES,
    GALLERY_IMAGES,
    ADMIN_USERS,
    USERS,
)
