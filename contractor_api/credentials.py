"""
Password hashing and account credential flows for admins and end users.
"""

from __future__ import annotations

import logging
from typing import Optional

from passlib.context import CryptContext

from contractor_api.errors import DuplicateKey, Forbidden, Unauthorized, ValidationError
from contractor_api.records import (
    ADMIN_USERS,
    USERS,
    AdminUserRecord,
    RecordKind,
    UserRecord,
    utcnow,
)
from contractor_api.store import RecordStore

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


class PasswordHasher:
    """bcrypt hashing; the salt makes every hash of the same input different."""

    def __init__(self, rounds: int = 12):
        self._context = CryptContext(
            schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds
        )

    def hash(self, plaintext: str) -> str:
        return self._context.hash(plaintext)

    def verify(self, plaintext: str, hashed: Optional[str]) -> bool:
        if not hashed:
            return False
        try:
            return self._context.verify(plaintext, hashed)
        except (ValueError, TypeError):
            # Unrecognised or corrupt hash.
            return False


def check_password_length(password: str, *, field: str = "Password") -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"{field} must be at least {MIN_PASSWORD_LENGTH} characters long"
        )


class CredentialManager:
    def __init__(self, store: RecordStore, hasher: PasswordHasher):
        self.store = store
        self.hasher = hasher

    def bootstrap_admin(
        self, username: str, email: str, password: str
    ) -> Optional[AdminUserRecord]:
        """
        Create the first admin account when none exists. Later calls are no-ops,
        whatever the configured username.
        """
        if self.store.count(ADMIN_USERS) > 0:
            return None
        admin = self.store.create(
            ADMIN_USERS,
            {
                "username": username,
                "email": email.strip().lower(),
                "password_hash": self.hasher.hash(password),
                "role": "admin",
            },
        )
        logger.warning(
            "Default admin user created: username=%s email=%s password=%s",
            admin.username,
            admin.email,
            password,
        )
        logger.warning("Change the default admin password after first login")
        return admin

    def register_first_admin(
        self, username: str, email: str, password: str
    ) -> AdminUserRecord:
        if self.store.count(ADMIN_USERS) > 0:
            raise Forbidden("Admin registration disabled. Contact existing admin.")
        check_password_length(password)
        try:
            return self.store.create(
                ADMIN_USERS,
                {
                    "username": username,
                    "email": email,
                    "password_hash": self.hasher.hash(password),
                    "role": "admin",
                },
            )
        except DuplicateKey as exc:
            raise DuplicateKey("Username or email already exists") from exc

    def authenticate_admin(self, login: str, password: str) -> AdminUserRecord:
        """`login` may be the username or the email; no length rule applies here."""
        admin = self.store.find_one(ADMIN_USERS, username=login) or self.store.find_one(
            ADMIN_USERS, email=login.strip().lower()
        )
        if admin is None or not self.hasher.verify(password, admin.password_hash):
            logger.info("Rejected admin login for %r", login)
            raise Unauthorized("Invalid credentials")
        return self.store.update(ADMIN_USERS, admin.id, {"last_login": utcnow()})

    def register_user(
        self,
        *,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        phone: Optional[str] = None,
        address: Optional[str] = None,
    ) -> UserRecord:
        check_password_length(password)
        if self.store.find_one(USERS, email=email) is not None:
            raise DuplicateKey("Email already registered")
        try:
            return self.store.create(
                USERS,
                {
                    "email": email,
                    "password_hash": self.hasher.hash(password),
                    "first_name": first_name,
                    "last_name": last_name,
                    "phone": phone,
                    "address": address,
                    "role": "user",
                },
            )
        except DuplicateKey as exc:
            raise DuplicateKey("Email already registered") from exc

    def authenticate_user(self, email: str, password: str) -> UserRecord:
        user = self.store.find_one(USERS, email=email.strip().lower())
        if user is None or not self.hasher.verify(password, user.password_hash):
            logger.info("Rejected user login for %r", email)
            raise Unauthorized("Invalid credentials")
        if not user.is_active:
            raise Forbidden("Account is disabled")
        return self.store.update(USERS, user.id, {"last_login": utcnow()})

    def change_password(
        self,
        kind: RecordKind,
        account: AdminUserRecord | UserRecord,
        current_password: str,
        new_password: str,
    ) -> None:
        if not self.hasher.verify(current_password, account.password_hash):
            raise Unauthorized("Current password is incorrect")
        check_password_length(new_password, field="New password")
        self.store.update(
            kind, account.id, {"password_hash": self.hasher.hash(new_password)}
        )
