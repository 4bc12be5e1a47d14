"""
Request authorization policies.

* public routes take no guard;
* `optional_auth` is used by work-order submission only: a valid user token
  attaches the owner, anything else is treated as a guest;
* `require_admin` / `require_user` reject missing or bad tokens with 401 and
  tokens of the other identity kind with 403.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from contractor_api.dependencies import get_record_store, get_session_issuer
from contractor_api.errors import (
    Forbidden,
    InvalidIdentifier,
    NotFound,
    Unauthorized,
)
from contractor_api.records import ADMIN_USERS, USERS, AdminUserRecord, UserRecord
from contractor_api.sessions import SessionClaims, SessionIssuer
from contractor_api.store import RecordStore

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def _verified_claims(
    credentials: Optional[HTTPAuthorizationCredentials], issuer: SessionIssuer
) -> SessionClaims:
    if credentials is None or not credentials.credentials:
        raise Unauthorized("Access token required")
    return issuer.verify(credentials.credentials)


def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    issuer: SessionIssuer = Depends(get_session_issuer),
    store: RecordStore = Depends(get_record_store),
) -> AdminUserRecord:
    claims = _verified_claims(credentials, issuer)
    if claims.kind != "admin" or claims.role != "admin":
        raise Forbidden("Admin access required")
    try:
        return store.get(ADMIN_USERS, claims.subject)
    except (InvalidIdentifier, NotFound) as exc:
        raise Unauthorized("Invalid token") from exc


def require_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    issuer: SessionIssuer = Depends(get_session_issuer),
    store: RecordStore = Depends(get_record_store),
) -> UserRecord:
    claims = _verified_claims(credentials, issuer)
    if claims.kind != "user" or claims.role != "user":
        raise Forbidden("Access denied. User account required.")
    try:
        user = store.get(USERS, claims.subject)
    except (InvalidIdentifier, NotFound) as exc:
        raise Unauthorized("Invalid token") from exc
    if not user.is_active:
        raise Forbidden("Account is disabled")
    return user


def optional_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    issuer: SessionIssuer = Depends(get_session_issuer),
) -> Optional[str]:
    """Owner id for a valid user token; None (guest) for absent or unusable tokens."""
    if credentials is None or not credentials.credentials:
        return None
    try:
        claims = issuer.verify(credentials.credentials)
    except Unauthorized as exc:
        logger.info("Ignoring unusable token on guest-capable route: %s", exc.message)
        return None
    if claims.kind != "user" or claims.role != "user":
        return None
    return claims.subject
