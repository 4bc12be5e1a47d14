"""
Stateless session tokens (HS256 JWT) for admin and end-user identities.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Literal, Optional

from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError

from contractor_api.errors import Unauthorized

IdentityKind = Literal["admin", "user"]

_DURATION = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_UNIT_SECONDS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: str) -> timedelta:
    """Parse `24h`, `30m`, `7d`, `45s` or a bare number of seconds."""
    match = _DURATION.match(value or "")
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(seconds=int(amount) * _UNIT_SECONDS[unit])


@dataclass(frozen=True)
class SessionClaims:
    subject: str
    kind: IdentityKind
    role: str
    name: Optional[str]
    expires_at: datetime


class SessionIssuer:
    """Issues and verifies signed, time-limited session tokens."""

    def __init__(
        self, secret: str, expires_in: timedelta, algorithm: str = "HS256"
    ):
        if not secret:
            raise ValueError("JWT_SECRET is required")
        self._secret = secret
        self._algorithm = algorithm
        self.expires_in = expires_in

    def issue(
        self,
        *,
        subject: str,
        kind: IdentityKind,
        role: str,
        name: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> str:
        issued_at = now or datetime.now(timezone.utc)
        claims = {
            "sub": subject,
            "kind": kind,
            "role": role,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self.expires_in).timestamp()),
        }
        # Admin tokens carry the username, user tokens the email.
        claims["username" if kind == "admin" else "email"] = name
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> SessionClaims:
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except ExpiredSignatureError as exc:
            raise Unauthorized("Token expired") from exc
        except JWTError as exc:
            raise Unauthorized("Invalid token") from exc

        subject = payload.get("sub")
        kind = payload.get("kind")
        role = payload.get("role")
        exp = payload.get("exp")
        if not subject or kind not in ("admin", "user") or not role or exp is None:
            raise Unauthorized("Invalid token")
        return SessionClaims(
            subject=str(subject),
            kind=kind,
            role=str(role),
            name=payload.get("username" if kind == "admin" else "email"),
            expires_at=datetime.fromtimestamp(int(exp), tz=timezone.utc),
        )
