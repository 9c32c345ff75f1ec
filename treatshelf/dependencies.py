"""
Dependency wiring for the FastAPI app.

Backends are built once from Settings when the process starts and kept on
``app.state``; request handlers receive them through the getters below.
"""

from __future__ import annotations

from fastapi import Request
from google.auth import exceptions as auth_exceptions
from google.cloud import firestore

from treatshelf.config import Settings
from treatshelf.db import InMemoryTreatDatabase, SqlTreatDatabase, TreatDatabase
from treatshelf.errors import DatabaseConnectionError
from treatshelf.firestore_db import FirestoreTreatDatabase
from treatshelf.storage import ImageStorage, InMemoryImageStorage, S3ImageStorage


def build_treat_database(settings: Settings) -> TreatDatabase:
    """Create the database backend named by ``settings.database_backend``."""
    if settings.database_backend == "firestore":
        try:
            client = firestore.Client(project=settings.google_cloud_project)
        except auth_exceptions.GoogleAuthError as exc:
            raise DatabaseConnectionError(
                f"firestoredb: could not create client: {exc}", op="connect"
            ) from exc
        return FirestoreTreatDatabase(client, collection=settings.firestore_collection)
    if settings.database_backend == "sql":
        return SqlTreatDatabase(settings.database_url)
    return InMemoryTreatDatabase()


def build_image_storage(settings: Settings) -> ImageStorage:
    if settings.use_in_memory_storage or not settings.storage_bucket:
        return InMemoryImageStorage()
    return S3ImageStorage(
        bucket=settings.storage_bucket,
        region=settings.storage_region or "",
        endpoint=settings.storage_endpoint or "",
        access_key_id=settings.aws_access_key_id or "",
        secret_access_key=settings.aws_secret_access_key or "",
        public_base_url=settings.storage_public_base_url or "",
    )


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_treat_database(request: Request) -> TreatDatabase:
    return request.app.state.db


def get_image_storage(request: Request) -> ImageStorage:
    return request.app.state.storage
