"""
Upload storage for work-order and gallery images.

Records only ever hold the returned relative path (`/uploads/<folder>/<name>`),
never file contents.
"""

from __future__ import annotations

import os
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, Sequence

from fastapi import UploadFile

from contractor_api.errors import UploadError

MB = 1024 * 1024


@dataclass(frozen=True)
class UploadPolicy:
    folder: str
    max_files: int
    max_bytes: int


WORK_ORDER_UPLOADS = UploadPolicy(folder="work-orders", max_files=5, max_bytes=5 * MB)
GALLERY_UPLOADS = UploadPolicy(folder="gallery", max_files=1, max_bytes=10 * MB)


class UploadStore(Protocol):
    """Persists validated image bytes and returns the public path."""

    def save(self, folder: str, filename: str, content: bytes) -> str:
        ...


@dataclass
class InMemoryUploadStore:
    """Test double for upload storage."""

    stored_files: dict = field(default_factory=dict)

    def save(self, folder: str, filename: str, content: bytes) -> str:
        path = f"/uploads/{folder}/{filename}"
        self.stored_files[path] = content
        return path


@dataclass
class LocalUploadStore:
    """Writes uploads below `root`, one directory per folder."""

    root: str

    def save(self, folder: str, filename: str, content: bytes) -> str:
        directory = Path(self.root) / folder
        directory.mkdir(parents=True, exist_ok=True)
        (directory / filename).write_bytes(content)
        return f"/uploads/{folder}/{filename}"


def chosen_files(parts: Sequence[UploadFile | str] | None) -> list[UploadFile]:
    """
    Drop the empty parts a browser sends for a file input left blank. Those
    arrive as plain strings or as files without a name.
    """
    return [
        part for part in parts or [] if not isinstance(part, str) and part.filename
    ]


def _unique_name(original: str | None) -> str:
    extension = os.path.splitext(original or "")[1].lower()
    return f"{uuid.uuid4()}{extension}"


def store_uploads(
    uploads: UploadStore, files: Sequence[UploadFile], policy: UploadPolicy
) -> list[str]:
    """
    Validate every file against the policy, then store them in the order given.
    Nothing is written if any file is rejected.
    """
    if len(files) > policy.max_files:
        raise UploadError(
            f"Too many files. Maximum is {policy.max_files} files per upload."
        )
    accepted: list[tuple[str, bytes]] = []
    for upload in files:
        if not (upload.content_type or "").startswith("image/"):
            raise UploadError("Only image files are allowed")
        content = upload.file.read()
        if len(content) > policy.max_bytes:
            raise UploadError(
                f"File too large. Maximum size is {policy.max_bytes // MB}MB."
            )
        accepted.append((_unique_name(upload.filename), content))
    return [uploads.save(policy.folder, name, content) for name, content in accepted]
