"""
Project gallery routes. Browsing is public; uploads and edits are admin-only.
"""

from __future__ import annotations

from typing import Optional, Union

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from contractor_api.dependencies import get_record_store, get_upload_store
from contractor_api.errors import UploadError, ValidationError
from contractor_api.guards import require_admin
from contractor_api.records import GALLERY_IMAGES
from contractor_api.schemas import (
    GalleryImageCreate,
    GalleryImageOut,
    GalleryImageResponse,
    GalleryImageUpdate,
    GalleryPage,
    MessageResponse,
    page_meta,
)
from contractor_api.store import RecordStore
from contractor_api.uploads import GALLERY_UPLOADS, UploadStore, chosen_files, store_uploads

router = APIRouter(prefix="/gallery", tags=["gallery"])


@router.get("", response_model=GalleryPage)
def list_gallery_images(
    category: Optional[str] = Query(None),
    featured_only: bool = Query(False),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    store: RecordStore = Depends(get_record_store),
):
    filters = {"category": category or None, "is_featured": True if featured_only else None}
    images = store.list(GALLERY_IMAGES, filters, page=page, limit=limit)
    return GalleryPage(
        images=[GalleryImageOut.model_validate(i) for i in images],
        **page_meta(page, limit, store.count(GALLERY_IMAGES, filters)),
    )


@router.get("/{image_id}", response_model=GalleryImageOut)
def get_gallery_image(image_id: str, store: RecordStore = Depends(get_record_store)):
    return GalleryImageOut.model_validate(store.get(GALLERY_IMAGES, image_id))


@router.post(
    "",
    response_model=GalleryImageResponse,
    status_code=201,
    dependencies=[Depends(require_admin)],
)
def upload_gallery_image(
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    project_date: Optional[str] = Form(None, alias="projectDate"),
    is_featured: Optional[str] = Form(None, alias="isFeatured"),
    image: Union[UploadFile, str, None] = File(None),
    store: RecordStore = Depends(get_record_store),
    uploads: UploadStore = Depends(get_upload_store),
):
    files = chosen_files([image] if image is not None else [])
    if not files:
        raise UploadError("No image file provided")
    submitted = {
        "title": title,
        "description": description,
        "category": category,
        "project_date": project_date,
        "is_featured": is_featured,
    }
    payload = GalleryImageCreate.model_validate(
        {name: value for name, value in submitted.items() if value is not None}
    )
    [image_url] = store_uploads(uploads, files, GALLERY_UPLOADS)
    created = store.create(GALLERY_IMAGES, {**payload.model_dump(), "image_url": image_url})
    return GalleryImageResponse(
        message="Gallery image uploaded successfully",
        image=GalleryImageOut.model_validate(created),
    )


@router.put(
    "/{image_id}",
    response_model=GalleryImageResponse,
    dependencies=[Depends(require_admin)],
)
def update_gallery_image(
    image_id: str,
    payload: GalleryImageUpdate,
    store: RecordStore = Depends(get_record_store),
):
    changes = payload.changes()
    if not changes:
        raise ValidationError("No valid fields to update")
    updated = store.update(GALLERY_IMAGES, image_id, changes)
    return GalleryImageResponse(
        message="Gallery image updated successfully",
        image=GalleryImageOut.model_validate(updated),
    )


@router.delete(
    "/{image_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_admin)],
)
def delete_gallery_image(image_id: str, store: RecordStore = Depends(get_record_store)):
    store.delete(GALLERY_IMAGES, image_id)
    return MessageResponse(message="Gallery image deleted successfully")
