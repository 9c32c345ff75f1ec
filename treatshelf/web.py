"""
HTML pages for browsing and editing the treat catalog.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from treatshelf.config import Settings
from treatshelf.db import Treat, TreatDatabase
from treatshelf.dependencies import (
    get_image_storage,
    get_settings_dep,
    get_treat_database,
)
from treatshelf.reporting import report_error
from treatshelf.routes import upload_image_file
from treatshelf.storage import ImageStorage

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
router = APIRouter(tags=["web"])


def treat_from_form(
    title: str = Form(""),
    author: str = Form(""),
    published_date: str = Form("", alias="publishedDate"),
    image_url: str = Form("", alias="imageURL"),
    description: str = Form(""),
    image: Optional[UploadFile] = File(None),
    storage: ImageStorage = Depends(get_image_storage),
) -> Treat:
    """Populate a Treat from the edit form; an uploaded image wins over imageURL."""
    if image is not None and image.filename:
        image_url = upload_image_file(storage, image)
    return Treat(
        title=title,
        author=author,
        published_date=published_date,
        image_url=image_url,
        description=description,
    )


@router.get("/")
def home() -> RedirectResponse:
    return RedirectResponse(url="/treats", status_code=302)


@router.get("/treats")
def list_page(
    request: Request,
    db: TreatDatabase = Depends(get_treat_database),
    settings: Settings = Depends(get_settings_dep),
):
    treats = db.list_treats(timeout=settings.request_timeout_seconds)
    return templates.TemplateResponse(request, "list.html", {"treats": treats})


@router.get("/treats/add")
def add_form_page(request: Request):
    return templates.TemplateResponse(request, "edit.html", {"treat": None})


@router.get("/about")
def about_page(request: Request):
    return templates.TemplateResponse(request, "about.html", {})


@router.get("/treats/{treat_id}")
def detail_page(
    treat_id: str,
    request: Request,
    db: TreatDatabase = Depends(get_treat_database),
    settings: Settings = Depends(get_settings_dep),
):
    treat = db.get_treat(treat_id, timeout=settings.request_timeout_seconds)
    return templates.TemplateResponse(request, "detail.html", {"treat": treat})


@router.get("/treats/{treat_id}/edit")
def edit_form_page(
    treat_id: str,
    request: Request,
    db: TreatDatabase = Depends(get_treat_database),
    settings: Settings = Depends(get_settings_dep),
):
    treat = db.get_treat(treat_id, timeout=settings.request_timeout_seconds)
    return templates.TemplateResponse(request, "edit.html", {"treat": treat})


@router.post("/treats")
def create_from_form(
    treat: Treat = Depends(treat_from_form),
    db: TreatDatabase = Depends(get_treat_database),
    settings: Settings = Depends(get_settings_dep),
) -> RedirectResponse:
    treat_id = db.add_treat(treat, timeout=settings.request_timeout_seconds)
    logger.info("Created treat %s (%r)", treat_id, treat.title)
    return RedirectResponse(url=f"/treats/{treat_id}", status_code=302)


# Registered before the update route, which would otherwise capture ":delete".
@router.post("/treats/{treat_id}:delete")
def delete_from_form(
    treat_id: str,
    db: TreatDatabase = Depends(get_treat_database),
    settings: Settings = Depends(get_settings_dep),
) -> RedirectResponse:
    db.delete_treat(treat_id, timeout=settings.request_timeout_seconds)
    logger.info("Deleted treat %s", treat_id)
    return RedirectResponse(url="/treats", status_code=302)


@router.post("/treats/{treat_id}")
def update_from_form(
    treat_id: str,
    treat: Treat = Depends(treat_from_form),
    db: TreatDatabase = Depends(get_treat_database),
    settings: Settings = Depends(get_settings_dep),
) -> RedirectResponse:
    treat.id = treat_id
    db.update_treat(treat, timeout=settings.request_timeout_seconds)
    return RedirectResponse(url=f"/treats/{treat_id}", status_code=302)


@router.get("/logs", response_class=HTMLResponse)
def send_log() -> str:
    logger.info("Hey, you triggered a custom log entry. Good job!")
    return (
        '<html>Log sent! Check the <a href="http://console.cloud.google.com/logs">'
        "logging section of the Cloud Console</a>.</html>"
    )


@router.get("/errors", response_class=HTMLResponse)
def send_error(request: Request) -> HTMLResponse:
    message = (
        '<html>Logging an error. Check <a href="http://console.cloud.google.com/errors">'
        "Error Reporting</a> (it may take a minute or two for the error to appear).</html>"
    )
    report_error(
        request,
        RuntimeError("uh oh! an error occurred"),
        status_code=500,
        message=message,
    )
    return HTMLResponse(message, status_code=500)
