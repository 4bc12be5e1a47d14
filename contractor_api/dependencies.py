"""
Dependency wiring for the FastAPI app.

The record store, session issuer and upload store are built once per app in
`create_app` and kept on `app.state`; handlers receive them through these
dependencies so tests can hand in their own instances.
"""

from __future__ import annotations

import logging

from fastapi import Request
from sqlalchemy.engine import make_url

from contractor_api.config import Settings
from contractor_api.credentials import CredentialManager
from contractor_api.sessions import SessionIssuer
from contractor_api.store import MongoRecordStore, RecordStore, SqlRecordStore
from contractor_api.uploads import UploadStore

logger = logging.getLogger(__name__)


def build_record_store(settings: Settings) -> RecordStore:
    """Open the process-wide store handle for the configured backend."""
    if settings.database_backend == "mongo":
        logger.info("Using MongoDB record store")
        return MongoRecordStore.from_uri(settings.mongodb_uri)
    logger.info(
        "Using SQL record store at %s",
        make_url(settings.database_url).render_as_string(hide_password=True),
    )
    return SqlRecordStore(settings.database_url)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_record_store(request: Request) -> RecordStore:
    return request.app.state.store


def get_session_issuer(request: Request) -> SessionIssuer:
    return request.app.state.sessions


def get_credential_manager(request: Request) -> CredentialManager:
    return request.app.state.credentials


def get_upload_store(request: Request) -> UploadStore:
    return request.app.state.uploads
