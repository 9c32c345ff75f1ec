import unittest
from unittest.mock import MagicMock, patch

from google.api_core import exceptions as api_exceptions

from treatshelf.db import Treat
from treatshelf.errors import (
    BackendError,
    DatabaseConnectionError,
    InvalidArgumentError,
    NotFoundError,
)
from treatshelf.firestore_db import DocumentCursor, FirestoreTreatDatabase


class FakeStream:
    """Stands in for the generator returned by Query.stream()."""

    def __init__(self, items):
        self._items = list(items)
        self.close_calls = 0

    def __iter__(self):
        return self

    def __next__(self):
        if not self._items:
            raise StopIteration
        item = self._items.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self):
        self.close_calls += 1


def _snapshot(doc_id, **fields):
    snapshot = MagicMock()
    snapshot.id = doc_id
    snapshot.exists = True
    snapshot.to_dict.return_value = dict(fields, id=doc_id)
    return snapshot


def _make_db(client=None):
    client = client or MagicMock()
    # The connection check runs against a mock client, so skip the real
    # retry/commit wrapper and call the no-op directly.
    with patch("treatshelf.firestore_db.firestore.transactional", new=lambda fn: fn):
        return FirestoreTreatDatabase(client, collection="treats"), client


class FirestoreConnectTests(unittest.TestCase):
    def test_connection_check_runs_a_transaction(self):
        _, client = _make_db()
        client.transaction.assert_called_once_with()

    def test_connection_check_failure_raises_connection_error(self):
        client = MagicMock()
        client.transaction.side_effect = api_exceptions.Unauthenticated("no creds")
        with self.assertRaises(DatabaseConnectionError) as ctx:
            _make_db(client)
        self.assertIsInstance(ctx.exception.__cause__, api_exceptions.Unauthenticated)

    def test_close_closes_client(self):
        db, client = _make_db()
        db.close()
        client.close.assert_called_once_with()


class FirestoreTreatDatabaseTests(unittest.TestCase):
    def setUp(self):
        self.db, self.client = _make_db()
        self.collection = self.client.collection.return_value
        self.doc_ref = self.collection.document.return_value

    def test_add_uses_generated_document_id(self):
        self.doc_ref.id = "abc123"
        treat = Treat(id="ignored", title="Kouign-amann", author="Yann")

        treat_id = self.db.add_treat(treat, timeout=5)

        self.assertEqual(treat_id, "abc123")
        self.assertEqual(treat.id, "abc123")
        self.client.collection.assert_called_with("treats")
        self.collection.document.assert_called_once_with()
        self.doc_ref.create.assert_called_once_with(
            {
                "id": "abc123",
                "title": "Kouign-amann",
                "author": "Yann",
                "publishedDate": "",
                "imageURL": "",
                "description": "",
            },
            retry=None,
            timeout=5,
        )

    def test_add_failure_is_backend_error(self):
        self.doc_ref.id = "abc123"
        self.doc_ref.create.side_effect = api_exceptions.ServiceUnavailable("down")
        with self.assertRaises(BackendError) as ctx:
            self.db.add_treat(Treat(title="x"))
        self.assertEqual(ctx.exception.op, "add_treat")

    def test_get_deserializes_snapshot(self):
        self.doc_ref.get.return_value = _snapshot(
            "abc", title="Mille-feuille", publishedDate="1651", imageURL="https://x/y.png"
        )

        treat = self.db.get_treat("abc", timeout=2.0)

        self.collection.document.assert_called_once_with("abc")
        self.doc_ref.get.assert_called_once_with(retry=None, timeout=2.0)
        self.assertEqual(
            treat,
            Treat(
                id="abc",
                title="Mille-feuille",
                published_date="1651",
                image_url="https://x/y.png",
            ),
        )

    def test_get_missing_is_not_found(self):
        snapshot = MagicMock()
        snapshot.exists = False
        self.doc_ref.get.return_value = snapshot
        with self.assertRaises(NotFoundError) as ctx:
            self.db.get_treat("nope")
        self.assertEqual(ctx.exception.treat_id, "nope")

    def test_get_empty_id_is_not_found(self):
        with self.assertRaises(NotFoundError):
            self.db.get_treat("")
        self.doc_ref.get.assert_not_called()

    def test_get_api_failure_is_backend_error(self):
        self.doc_ref.get.side_effect = api_exceptions.DeadlineExceeded("slow")
        with self.assertRaises(BackendError) as ctx:
            self.db.get_treat("abc", timeout=0.1)
        self.assertIsInstance(ctx.exception.__cause__, api_exceptions.DeadlineExceeded)

    def test_get_undecodable_document_is_backend_error(self):
        snapshot = _snapshot("abc", title="x")
        snapshot.to_dict.side_effect = ValueError("corrupt")
        self.doc_ref.get.return_value = snapshot
        with self.assertRaises(BackendError) as ctx:
            self.db.get_treat("abc")
        self.assertEqual(ctx.exception.op, "get_treat")
        self.assertEqual(ctx.exception.treat_id, "abc")
        self.assertIsInstance(ctx.exception.__cause__, ValueError)

    def test_update_overwrites_fields(self):
        self.db.update_treat(Treat(id="abc", title="Cannoli"), timeout=3)
        self.collection.document.assert_called_once_with("abc")
        args, kwargs = self.doc_ref.update.call_args
        self.assertEqual(args[0]["title"], "Cannoli")
        self.assertEqual(kwargs, {"retry": None, "timeout": 3})

    def test_update_missing_is_not_found(self):
        self.doc_ref.update.side_effect = api_exceptions.NotFound("no document")
        with self.assertRaises(NotFoundError):
            self.db.update_treat(Treat(id="abc", title="Cannoli"))

    def test_update_requires_id(self):
        with self.assertRaises(InvalidArgumentError):
            self.db.update_treat(Treat(title="Cannoli"))
        self.doc_ref.update.assert_not_called()

    def test_delete_requires_existing_document(self):
        self.db.delete_treat("abc")
        self.client.write_option.assert_called_once_with(exists=True)
        self.doc_ref.delete.assert_called_once_with(
            option=self.client.write_option.return_value, retry=None, timeout=None
        )

    def test_delete_missing_is_not_found(self):
        self.doc_ref.delete.side_effect = api_exceptions.NotFound("no document")
        with self.assertRaises(NotFoundError):
            self.db.delete_treat("abc")

    def test_delete_requires_id(self):
        with self.assertRaises(InvalidArgumentError):
            self.db.delete_treat("")
        self.doc_ref.delete.assert_not_called()

    def _query(self):
        return self.collection.order_by.return_value.order_by.return_value

    def test_list_orders_by_title_then_document_id(self):
        stream = FakeStream([_snapshot("b", title="Alpha"), _snapshot("a", title="Zeta")])
        self._query().stream.return_value = stream

        treats = self.db.list_treats(timeout=4)

        self.collection.order_by.assert_called_once_with("title")
        self.collection.order_by.return_value.order_by.assert_called_once_with("__name__")
        self._query().stream.assert_called_once_with(retry=None, timeout=4)
        self.assertEqual([(t.id, t.title) for t in treats], [("b", "Alpha"), ("a", "Zeta")])
        self.assertEqual(stream.close_calls, 1)

    def test_list_empty(self):
        self._query().stream.return_value = FakeStream([])
        self.assertEqual(self.db.list_treats(), [])

    def test_list_closes_stream_on_api_error(self):
        stream = FakeStream(
            [_snapshot("a", title="A"), api_exceptions.ServiceUnavailable("reset")]
        )
        self._query().stream.return_value = stream
        with self.assertRaises(BackendError):
            self.db.list_treats()
        self.assertEqual(stream.close_calls, 1)

    def test_list_closes_stream_on_bad_document(self):
        bad = _snapshot("a", title="A")
        bad.to_dict.side_effect = ValueError("corrupt")
        stream = FakeStream([bad, _snapshot("b", title="B")])
        self._query().stream.return_value = stream
        with self.assertRaises(BackendError) as ctx:
            self.db.list_treats()
        self.assertEqual(ctx.exception.op, "list_treats")
        self.assertEqual(ctx.exception.treat_id, "a")
        self.assertIsInstance(ctx.exception.__cause__, ValueError)
        self.assertEqual(stream.close_calls, 1)

    def test_list_document_without_data_is_backend_error(self):
        empty = _snapshot("a", title="A")
        empty.to_dict.return_value = None
        stream = FakeStream([empty])
        self._query().stream.return_value = stream
        with self.assertRaises(BackendError) as ctx:
            self.db.list_treats()
        self.assertEqual(ctx.exception.treat_id, "a")
        self.assertEqual(stream.close_calls, 1)


class DocumentCursorTests(unittest.TestCase):
    def test_exhaustion_closes_stream(self):
        stream = FakeStream(["a", "b"])
        cursor = DocumentCursor(stream)
        self.assertEqual(list(cursor), ["a", "b"])
        self.assertTrue(cursor.closed)
        self.assertEqual(stream.close_calls, 1)

    def test_early_exit_closes_stream(self):
        stream = FakeStream(["a", "b", "c"])
        with DocumentCursor(stream) as cursor:
            for item in cursor:
                break
        self.assertEqual(item, "a")
        self.assertEqual(stream.close_calls, 1)

    def test_cursor_is_single_use(self):
        stream = FakeStream(["a"])
        cursor = DocumentCursor(stream)
        self.assertEqual(list(cursor), ["a"])
        self.assertEqual(list(cursor), [])
        cursor.close()
        self.assertEqual(stream.close_calls, 1)


if __name__ == "__main__":
    unittest.main()
