"""
Record store abstraction with a MongoDB (document) backend and a
SQLAlchemy (relational) backend.

Both backends honour the same contract: identical filter semantics, the
fixed per-kind sort order (ties broken by id), offset pagination, and the
same record shapes. Identifiers are validated for the active backend before
any query is issued.
"""

from __future__ import annotations

import json
import re
from dataclasses import asdict
from datetime import datetime
from typing import Any, Optional, Protocol

from bson import ObjectId
from pymongo import MongoClient, ReturnDocument
from pymongo.errors import DuplicateKeyError
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    String,
    Text,
    create_engine,
    func,
    select,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from contractor_api.errors import DuplicateKey, InvalidIdentifier, NotFound
from contractor_api.records import ALL_KINDS, ASC, SERVICES, RecordKind, utcnow

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20

_SQL_ID = re.compile(r"[1-9][0-9]{0,17}")
_READ_ONLY_FIELDS = frozenset({"created_at"})


class RecordStore(Protocol):
    """Interface for record persistence, implemented by both backends."""

    def list(
        self,
        kind: RecordKind,
        filters: Optional[dict] = None,
        *,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_LIMIT,
    ) -> list:
        ...

    def get(self, kind: RecordKind, record_id: str) -> Any:
        ...

    def find_one(self, kind: RecordKind, **criteria: Any) -> Optional[Any]:
        ...

    def create(self, kind: RecordKind, fields: dict) -> Any:
        ...

    def update(self, kind: RecordKind, record_id: str, changes: dict) -> Any:
        ...

    def delete(self, kind: RecordKind, record_id: str) -> None:
        ...

    def count(self, kind: RecordKind, filters: Optional[dict] = None) -> int:
        ...

    def count_by(
        self,
        kind: RecordKind,
        field: str,
        *,
        filters: Optional[dict] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> dict:
        ...

    def created_since(
        self, kind: RecordKind, since: datetime, until: Optional[datetime] = None
    ) -> list:
        ...

    def category_summary(self) -> list:
        ...

    def close(self) -> None:
        ...


def page_offset(page: int, limit: int) -> int:
    if page < 1 or limit < 1:
        raise ValueError("page and limit must be positive integers")
    return (page - 1) * limit


def list_all(store: RecordStore, kind: RecordKind, filters: Optional[dict] = None) -> list:
    """Every matching record, in the kind's fixed order (unpaginated listings)."""
    total = store.count(kind, filters)
    return store.list(kind, filters, page=1, limit=max(total, 1))


def _new_values(kind: RecordKind, fields: dict) -> dict:
    # Building the record first applies the dataclass defaults for absent fields.
    draft = kind.record_type(id="", **fields)
    values = asdict(draft)
    values.pop("id")
    now = utcnow()
    values["created_at"] = now
    values["updated_at"] = now
    return values


def _checked_changes(kind: RecordKind, changes: dict) -> dict:
    rejected = (set(changes) - set(kind.field_names)) | (_READ_ONLY_FIELDS & set(changes))
    if rejected:
        raise ValueError(
            f"Cannot update {kind.name} fields: {', '.join(sorted(rejected))}"
        )
    return {**changes, "updated_at": utcnow()}


def _check_field(kind: RecordKind, field: str) -> None:
    if field not in kind.field_names:
        raise ValueError(f"{kind.name} has no field {field}")


def _created_range(since: Optional[datetime], until: Optional[datetime]) -> dict:
    """Mongo condition on created_at; both bounds inclusive."""
    bounds = {}
    if since is not None:
        bounds["$gte"] = since
    if until is not None:
        bounds["$lte"] = until
    return bounds


class MongoRecordStore:
    """Document backend: one MongoDB collection per record kind."""

    def __init__(self, client: MongoClient, database: Optional[str] = None):
        self.client = client
        self.db = client[database] if database else client.get_default_database()
        for kind in ALL_KINDS:
            for field_name in kind.unique:
                self.db[kind.name].create_index(field_name, unique=True)

    @classmethod
    def from_uri(cls, uri: str) -> "MongoRecordStore":
        return cls(MongoClient(uri, serverSelectionTimeoutMS=5000))

    def _object_id(self, kind: RecordKind, record_id: str) -> ObjectId:
        if not isinstance(record_id, str) or not ObjectId.is_valid(record_id):
            raise InvalidIdentifier(kind.label)
        return ObjectId(record_id)

    def _to_record(self, kind: RecordKind, doc: dict) -> Any:
        values = {name: doc.get(name) for name in kind.field_names}
        for name in kind.json_fields:
            values[name] = list(values[name] or [])
        return kind.record_type(id=str(doc["_id"]), **values)

    def _sort_spec(self, kind: RecordKind) -> list[tuple[str, int]]:
        return [*kind.sort, ("_id", kind.id_direction)]

    def list(
        self,
        kind: RecordKind,
        filters: Optional[dict] = None,
        *,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_LIMIT,
    ) -> list:
        offset = page_offset(page, limit)
        cursor = (
            self.db[kind.name]
            .find(kind.check_filters(filters))
            .sort(self._sort_spec(kind))
            .skip(offset)
            .limit(limit)
        )
        return [self._to_record(kind, doc) for doc in cursor]

    def get(self, kind: RecordKind, record_id: str) -> Any:
        doc = self.db[kind.name].find_one({"_id": self._object_id(kind, record_id)})
        if doc is None:
            raise NotFound.for_label(kind.label)
        return self._to_record(kind, doc)

    def find_one(self, kind: RecordKind, **criteria: Any) -> Optional[Any]:
        query = kind.check_filters(criteria)
        if not query:
            raise ValueError("find_one needs at least one criterion")
        docs = list(
            self.db[kind.name].find(query).sort(self._sort_spec(kind)).limit(1)
        )
        return self._to_record(kind, docs[0]) if docs else None

    def create(self, kind: RecordKind, fields: dict) -> Any:
        values = _new_values(kind, fields)
        try:
            result = self.db[kind.name].insert_one(values)
        except DuplicateKeyError as exc:
            raise DuplicateKey() from exc
        values["_id"] = result.inserted_id
        return self._to_record(kind, values)

    def update(self, kind: RecordKind, record_id: str, changes: dict) -> Any:
        object_id = self._object_id(kind, record_id)
        try:
            doc = self.db[kind.name].find_one_and_update(
                {"_id": object_id},
                {"$set": _checked_changes(kind, changes)},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError as exc:
            raise DuplicateKey() from exc
        if doc is None:
            raise NotFound.for_label(kind.label)
        return self._to_record(kind, doc)

    def delete(self, kind: RecordKind, record_id: str) -> None:
        result = self.db[kind.name].delete_one(
            {"_id": self._object_id(kind, record_id)}
        )
        if result.deleted_count == 0:
            raise NotFound.for_label(kind.label)

    def count(self, kind: RecordKind, filters: Optional[dict] = None) -> int:
        return self.db[kind.name].count_documents(kind.check_filters(filters))

    def count_by(
        self,
        kind: RecordKind,
        field: str,
        *,
        filters: Optional[dict] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> dict:
        _check_field(kind, field)
        match = kind.check_filters(filters)
        created = _created_range(since, until)
        if created:
            match["created_at"] = created
        pipeline = [
            {"$match": match},
            {"$group": {"_id": f"${field}", "count": {"$sum": 1}}},
        ]
        return {row["_id"]: row["count"] for row in self.db[kind.name].aggregate(pipeline)}

    def created_since(
        self, kind: RecordKind, since: datetime, until: Optional[datetime] = None
    ) -> list:
        cursor = self.db[kind.name].find(
            {"created_at": _created_range(since, until)}, {"created_at": 1}
        )
        return [doc["created_at"] for doc in cursor]

    def category_summary(self) -> list:
        pipeline = [
            {"$match": {"is_active": True}},
            {
                "$group": {
                    "_id": "$category",
                    "service_count": {"$sum": 1},
                    "min_price": {"$min": "$base_price"},
                    "max_price": {"$max": "$base_price"},
                }
            },
            {"$sort": {"_id": 1}},
        ]
        return [
            {
                "category": row["_id"],
                "service_count": row["service_count"],
                "min_price": row["min_price"],
                "max_price": row["max_price"],
            }
            for row in self.db[SERVICES.name].aggregate(pipeline)
        ]

    def close(self) -> None:
        self.client.close()


class SqlRecordStore:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (a SQLite file
    by default, in-memory SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlRecordStore")
        engine_kwargs: dict[str, Any] = {"future": True, "pool_pre_ping": True}
        if database_url.startswith("sqlite"):
            # Handlers run in a threadpool; in-memory databases need one shared connection.
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in database_url or database_url.endswith("://"):
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs["pool_recycle"] = 1800
        self.engine = create_engine(database_url, **engine_kwargs)
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _row_id(self, kind: RecordKind, record_id: str) -> int:
        if not isinstance(record_id, str) or not _SQL_ID.fullmatch(record_id):
            raise InvalidIdentifier(kind.label)
        return int(record_id)

    def _to_record(self, kind: RecordKind, row: Any) -> Any:
        values = {}
        for name in kind.field_names:
            value = getattr(row, name)
            if name in kind.json_fields:
                value = json.loads(value) if value else []
            values[name] = value
        return kind.record_type(id=str(row.id), **values)

    def _to_columns(self, kind: RecordKind, values: dict) -> dict:
        return {
            name: json.dumps(value if value is not None else [])
            if name in kind.json_fields
            else value
            for name, value in values.items()
        }

    def _conditions(self, row_type: Any, filters: dict) -> list:
        return [getattr(row_type, name) == value for name, value in filters.items()]

    def _created_range(
        self, row_type: Any, since: Optional[datetime], until: Optional[datetime]
    ) -> list:
        conditions = []
        if since is not None:
            conditions.append(row_type.created_at >= since)
        if until is not None:
            conditions.append(row_type.created_at <= until)
        return conditions

    def _ordering(self, row_type: Any, kind: RecordKind) -> list:
        ordering = []
        for name, direction in (*kind.sort, ("id", kind.id_direction)):
            column = getattr(row_type, name)
            ordering.append(column.asc() if direction == ASC else column.desc())
        return ordering

    def list(
        self,
        kind: RecordKind,
        filters: Optional[dict] = None,
        *,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_LIMIT,
    ) -> list:
        offset = page_offset(page, limit)
        row_type = ROW_TYPES[kind.name]
        stmt = (
            select(row_type)
            .where(*self._conditions(row_type, kind.check_filters(filters)))
            .order_by(*self._ordering(row_type, kind))
            .offset(offset)
            .limit(limit)
        )
        with self.Session() as session:
            rows = session.execute(stmt).scalars().all()
            return [self._to_record(kind, row) for row in rows]

    def get(self, kind: RecordKind, record_id: str) -> Any:
        row_id = self._row_id(kind, record_id)
        with self.Session() as session:
            row = session.get(ROW_TYPES[kind.name], row_id)
            if row is None:
                raise NotFound.for_label(kind.label)
            return self._to_record(kind, row)

    def find_one(self, kind: RecordKind, **criteria: Any) -> Optional[Any]:
        query = kind.check_filters(criteria)
        if not query:
            raise ValueError("find_one needs at least one criterion")
        row_type = ROW_TYPES[kind.name]
        stmt = (
            select(row_type)
            .where(*self._conditions(row_type, query))
            .order_by(*self._ordering(row_type, kind))
            .limit(1)
        )
        with self.Session() as session:
            row = session.execute(stmt).scalars().first()
            return self._to_record(kind, row) if row is not None else None

    def create(self, kind: RecordKind, fields: dict) -> Any:
        row = ROW_TYPES[kind.name](**self._to_columns(kind, _new_values(kind, fields)))
        with self.Session() as session:
            session.add(row)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateKey() from exc
            session.refresh(row)
            return self._to_record(kind, row)

    def update(self, kind: RecordKind, record_id: str, changes: dict) -> Any:
        row_id = self._row_id(kind, record_id)
        columns = self._to_columns(kind, _checked_changes(kind, changes))
        with self.Session() as session:
            row = session.get(ROW_TYPES[kind.name], row_id)
            if row is None:
                raise NotFound.for_label(kind.label)
            for name, value in columns.items():
                setattr(row, name, value)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateKey() from exc
            return self._to_record(kind, row)

    def delete(self, kind: RecordKind, record_id: str) -> None:
        row_id = self._row_id(kind, record_id)
        with self.Session() as session:
            row = session.get(ROW_TYPES[kind.name], row_id)
            if row is None:
                raise NotFound.for_label(kind.label)
            session.delete(row)
            session.commit()

    def count(self, kind: RecordKind, filters: Optional[dict] = None) -> int:
        row_type = ROW_TYPES[kind.name]
        stmt = (
            select(func.count())
            .select_from(row_type)
            .where(*self._conditions(row_type, kind.check_filters(filters)))
        )
        with self.Session() as session:
            return session.scalar(stmt) or 0

    def count_by(
        self,
        kind: RecordKind,
        field: str,
        *,
        filters: Optional[dict] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> dict:
        _check_field(kind, field)
        row_type = ROW_TYPES[kind.name]
        column = getattr(row_type, field)
        conditions = self._conditions(row_type, kind.check_filters(filters))
        conditions += self._created_range(row_type, since, until)
        stmt = select(column, func.count()).where(*conditions).group_by(column)
        with self.Session() as session:
            return {value: count for value, count in session.execute(stmt)}

    def created_since(
        self, kind: RecordKind, since: datetime, until: Optional[datetime] = None
    ) -> list:
        row_type = ROW_TYPES[kind.name]
        stmt = select(row_type.created_at).where(
            *self._created_range(row_type, since, until)
        )
        with self.Session() as session:
            return list(session.scalars(stmt))

    def category_summary(self) -> list:
        stmt = (
            select(
                ServiceRow.category,
                func.count(ServiceRow.id),
                func.min(ServiceRow.base_price),
                func.max(ServiceRow.base_price),
            )
            .where(ServiceRow.is_active.is_(True))
            .group_by(ServiceRow.category)
            .order_by(ServiceRow.category.asc())
        )
        with self.Session() as session:
            return [
                {
                    "category": category,
                    "service_count": service_count,
                    "min_price": min_price,
                    "max_price": max_price,
                }
                for category, service_count, min_price, max_price in session.execute(stmt)
            ]

    def close(self) -> None:
        self.engine.dispose()


Base = declarative_base()


class ServiceRow(Base):
    __tablename__ = "services"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=True)
    category = Column(String, nullable=False, index=True)
    base_price = Column(Float, nullable=False)
    unit = Column(String, nullable=False, default="per hour")
    is_active = Column(Boolean, nullable=False, default=True)
    image_url = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)


class WorkOrderRow(Base):
    __tablename__ = "work_orders"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=True, index=True)
    customer_name = Column(String, nullable=False)
    customer_email = Column(String, nullable=False, index=True)
    customer_phone = Column(String, nullable=True)
    customer_address = Column(String, nullable=True)
    service_type = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=False)
    priority = Column(String, nullable=False, default="medium")
    preferred_date = Column(String, nullable=True)
    preferred_time = Column(String, nullable=True)
    budget_range = Column(String, nullable=True)
    status = Column(String, nullable=False, default="pending", index=True)
    notes = Column(Text, nullable=True)
    # JSON-encoded list of upload paths, decoded on every read.
    images = Column(Text, nullable=False, default="[]")
    created_at = Column(DateTime, nullable=False, index=True)
    updated_at = Column(DateTime, nullable=False)


class WorkRequestRow(Base):
    __tablename__ = "work_requests"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_name = Column(String, nullable=False)
    customer_address = Column(String, nullable=False)
    project_type = Column(String, nullable=False)
    urgency_level = Column(String, nullable=False, index=True)
    service_preference = Column(String, nullable=False, index=True)
    status = Column(String, nullable=False, default="pending", index=True)
    notes = Column(Text, nullable=True)
    assigned_to = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, index=True)
    updated_at = Column(DateTime, nullable=False)


class ContactMessageRow(Base):
    __tablename__ = "contact_messages"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, index=True)
    subject = Column(String, nullable=True)
    message = Column(Text, nullable=False)
    status = Column(String, nullable=False, default="unread", index=True)
    created_at = Column(DateTime, nullable=False, index=True)
    updated_at = Column(DateTime, nullable=False)


class GalleryImageRow(Base):
    __tablename__ = "gallery_images"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    image_url = Column(String, nullable=False)
    category = Column(String, nullable=True, index=True)
    project_date = Column(String, nullable=True)
    is_featured = Column(Boolean, nullable=False, default=False, index=True)
    created_at = Column(DateTime, nullable=False, index=True)
    updated_at = Column(DateTime, nullable=False)


class AdminUserRow(Base):
    __tablename__ = "admin_users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String, nullable=False, unique=True)
    email = Column(String, nullable=False, unique=True)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, default="admin")
    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)


class UserRow(Base):
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String, nullable=False, unique=True)
    password_hash = Column(String, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    address = Column(String, nullable=True)
    role = Column(String, nullable=False, default="user")
    is_active = Column(Boolean, nullable=False, default=True)
    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)


ROW_TYPES = {
    row_type.__tablename__: row_type
    for row_type in (
        ServiceRow,
        WorkOrderRow,
        WorkRequestRow,
        ContactMessageRow,
        GalleryImageRow,
        AdminUserRow,
        UserRow,
    )
}
