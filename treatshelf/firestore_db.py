"""
Cloud Firestore implementation of the TreatDatabase interface.

See https://cloud.google.com/firestore/docs. Every call is a single attempt
(``retry=None``); the caller's ``timeout`` is passed to the RPC.
"""

from __future__ import annotations

import logging
from typing import Iterator, Optional

from dacite import DaciteError
from google.api_core import exceptions as api_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.field_path import FieldPath

from treatshelf.db import Treat
from treatshelf.errors import (
    BackendError,
    DatabaseConnectionError,
    InvalidArgumentError,
    NotFoundError,
)

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION = "treats"


class DocumentCursor:
    """
    Forward-only, single-use iterator over a Firestore query stream.

    The underlying stream is closed when it is exhausted, when reading from it
    raises, or when the cursor is closed early (leaving a ``with`` block).
    """

    def __init__(self, stream: Iterator[firestore.DocumentSnapshot]):
        self._stream = stream
        self.closed = False

    def __iter__(self) -> "DocumentCursor":
        return self

    def __next__(self) -> firestore.DocumentSnapshot:
        if self.closed:
            raise StopIteration
        try:
            return next(self._stream)
        except Exception:
            # Includes StopIteration at the end of the stream.
            self.close()
            raise

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._stream.close()

    def __enter__(self) -> "DocumentCursor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def _decode(snapshot: firestore.DocumentSnapshot, op: str) -> Treat:
    """Build a Treat from a snapshot; undecodable documents are backend errors."""
    try:
        document = snapshot.to_dict()
        if not isinstance(document, dict):
            raise TypeError(f"document has no data: {document!r}")
        treat = Treat.from_document(document)
    except (TypeError, ValueError, DaciteError) as exc:
        raise BackendError(
            f'firestoredb: {op}: could not decode treat "{snapshot.id}": {exc}',
            op=op,
            treat_id=snapshot.id,
        ) from exc
    treat.id = snapshot.id
    return treat


class FirestoreTreatDatabase:
    """Persists treats to a Cloud Firestore collection."""

    def __init__(
        self, client: firestore.Client, collection: str = DEFAULT_COLLECTION
    ):
        self._client = client
        self.collection = collection
        self._check_connection()

    def _check_connection(self) -> None:
        """Verify that we can communicate and authenticate with Firestore."""

        @firestore.transactional
        def _noop(transaction):
            return None

        try:
            _noop(self._client.transaction())
        except (api_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as exc:
            raise DatabaseConnectionError(
                f"firestoredb: could not connect: {exc}", op="connect"
            ) from exc
        logger.info("firestoredb: connected, collection=%s", self.collection)

    def _document(self, treat_id: str) -> firestore.DocumentReference:
        return self._client.collection(self.collection).document(treat_id)

    def close(self) -> None:
        self._client.close()

    def get_treat(self, treat_id: str, *, timeout: Optional[float] = None) -> Treat:
        if not treat_id:
            raise NotFoundError(
                "firestoredb: get_treat: treat with empty ID", op="get_treat"
            )
        try:
            snapshot = self._document(treat_id).get(retry=None, timeout=timeout)
        except api_exceptions.GoogleAPIError as exc:
            raise BackendError(
                f'firestoredb: get_treat "{treat_id}": {exc}',
                op="get_treat",
                treat_id=treat_id,
            ) from exc
        if not snapshot.exists:
            raise NotFoundError(
                f'firestoredb: get_treat: treat not found with ID "{treat_id}"',
                op="get_treat",
                treat_id=treat_id,
            )
        return _decode(snapshot, "get_treat")

    def add_treat(self, treat: Treat, *, timeout: Optional[float] = None) -> str:
        ref = self._client.collection(self.collection).document()
        treat.id = ref.id
        try:
            ref.create(treat.to_document(), retry=None, timeout=timeout)
        except api_exceptions.GoogleAPIError as exc:
            raise BackendError(
                f'firestoredb: add_treat "{ref.id}": {exc}',
                op="add_treat",
                treat_id=ref.id,
            ) from exc
        return ref.id

    def update_treat(self, treat: Treat, *, timeout: Optional[float] = None) -> None:
        if not treat.id:
            raise InvalidArgumentError(
                "firestoredb: update_treat: treat with unassigned ID",
                op="update_treat",
            )
        try:
            # update() fails with NotFound when the document does not exist.
            self._document(treat.id).update(
                treat.to_document(), retry=None, timeout=timeout
            )
        except api_exceptions.NotFound as exc:
            raise NotFoundError(
                f'firestoredb: update_treat: treat "{treat.id}" does not exist',
                op="update_treat",
                treat_id=treat.id,
            ) from exc
        except api_exceptions.GoogleAPIError as exc:
            raise BackendError(
                f'firestoredb: update_treat "{treat.id}": {exc}',
                op="update_treat",
                treat_id=treat.id,
            ) from exc

    def delete_treat(self, treat_id: str, *, timeout: Optional[float] = None) -> None:
        if not treat_id:
            raise InvalidArgumentError(
                "firestoredb: delete_treat: treat with unassigned ID",
                op="delete_treat",
            )
        try:
            self._document(treat_id).delete(
                option=self._client.write_option(exists=True),
                retry=None,
                timeout=timeout,
            )
        except api_exceptions.NotFound as exc:
            raise NotFoundError(
                f'firestoredb: delete_treat: treat "{treat_id}" does not exist',
                op="delete_treat",
                treat_id=treat_id,
            ) from exc
        except api_exceptions.GoogleAPIError as exc:
            raise BackendError(
                f'firestoredb: delete_treat "{treat_id}": {exc}',
                op="delete_treat",
                treat_id=treat_id,
            ) from exc

    def list_treats(self, *, timeout: Optional[float] = None) -> list[Treat]:
        query = (
            self._client.collection(self.collection)
            .order_by("title")
            .order_by(FieldPath.document_id())
        )
        treats: list[Treat] = []
        try:
            with DocumentCursor(query.stream(retry=None, timeout=timeout)) as cursor:
                for snapshot in cursor:
                    treat = _decode(snapshot, "list_treats")
                    logger.debug("Treat %r ID: %r", treat.title, treat.id)
                    treats.append(treat)
        except api_exceptions.GoogleAPIError as exc:
            raise BackendError(
                f"firestoredb: could not list treats: {exc}", op="list_treats"
            ) from exc
        return treats
