"""
JSON API routes for the treat catalog.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile

from treatshelf.config import Settings
from treatshelf.db import TreatDatabase
from treatshelf.dependencies import (
    get_image_storage,
    get_settings_dep,
    get_treat_database,
)
from treatshelf.schemas import (
    HealthResponse,
    ListTreatsResponse,
    TreatPayload,
    TreatResponse,
)
from treatshelf.storage import ImageStorage

logger = logging.getLogger(__name__)

router = APIRouter()


def upload_image_file(storage: ImageStorage, upload: UploadFile) -> str:
    """Store an uploaded image and return its public URL."""
    content_type = upload.content_type or ""
    if not content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="Uploaded file must be an image")
    return storage.upload_image(
        upload.file, filename=upload.filename or "", content_type=content_type
    )


@router.get("/health", response_model=HealthResponse)
def health(settings: Settings = Depends(get_settings_dep)):
    return HealthResponse(status="ok", database_backend=settings.database_backend)


@router.get("/treats", response_model=ListTreatsResponse)
def list_treats(
    db: TreatDatabase = Depends(get_treat_database),
    settings: Settings = Depends(get_settings_dep),
):
    treats = db.list_treats(timeout=settings.request_timeout_seconds)
    return ListTreatsResponse(treats=[TreatResponse.from_treat(t) for t in treats])


@router.get("/treats/{treat_id}", response_model=TreatResponse)
def get_treat(
    treat_id: str,
    db: TreatDatabase = Depends(get_treat_database),
    settings: Settings = Depends(get_settings_dep),
):
    treat = db.get_treat(treat_id, timeout=settings.request_timeout_seconds)
    return TreatResponse.from_treat(treat)


@router.post("/treats", response_model=TreatResponse, status_code=201)
def create_treat(
    payload: TreatPayload,
    db: TreatDatabase = Depends(get_treat_database),
    settings: Settings = Depends(get_settings_dep),
):
    treat = payload.to_treat()
    treat_id = db.add_treat(treat, timeout=settings.request_timeout_seconds)
    logger.info("Created treat %s (%r)", treat_id, treat.title)
    return TreatResponse.from_treat(treat)


@router.put("/treats/{treat_id}", response_model=TreatResponse)
def update_treat(
    treat_id: str,
    payload: TreatPayload,
    db: TreatDatabase = Depends(get_treat_database),
    settings: Settings = Depends(get_settings_dep),
):
    treat = payload.to_treat(treat_id)
    db.update_treat(treat, timeout=settings.request_timeout_seconds)
    return TreatResponse.from_treat(treat)


@router.delete("/treats/{treat_id}", status_code=204)
def delete_treat(
    treat_id: str,
    db: TreatDatabase = Depends(get_treat_database),
    settings: Settings = Depends(get_settings_dep),
):
    db.delete_treat(treat_id, timeout=settings.request_timeout_seconds)
    logger.info("Deleted treat %s", treat_id)
    return Response(status_code=204)


@router.post("/treats/{treat_id}/image", response_model=TreatResponse)
def upload_treat_image(
    treat_id: str,
    image: UploadFile = File(...),
    db: TreatDatabase = Depends(get_treat_database),
    storage: ImageStorage = Depends(get_image_storage),
    settings: Settings = Depends(get_settings_dep),
):
    treat = db.get_treat(treat_id, timeout=settings.request_timeout_seconds)
    treat.image_url = upload_image_file(storage, image)
    db.update_treat(treat, timeout=settings.request_timeout_seconds)
    return TreatResponse.from_treat(treat)
