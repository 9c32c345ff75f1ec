"""
Treatshelf: a small catalog of treats served by FastAPI.

The persistence layer (``treatshelf.db``) defines the TreatDatabase interface
with in-memory, Firestore and SQL implementations; the web layer renders the
catalog as HTML pages and a JSON API.
"""
