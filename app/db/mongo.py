import logging
import uuid
from typing import Any, Callable, Dict, Optional

from pymongo import MongoClient
from pymongo.errors import PyMongoError

from app.database import DocumentStore, StoreError

logger = logging.getLogger(__name__)


def _from_mongo(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if doc is None:
        return None
    out = dict(doc)
    out["id"] = str(out.pop("_id"))
    return out


class MongoDocumentStore(DocumentStore):
    """
    Documents in MongoDB. One client (and its connection pool) is created on
    connect() and shared until close(). Document 'id' is stored as '_id'.
    """

    def __init__(
        self,
        uri: str,
        db_name: str,
        timeout_ms: int = 5000,
        client_factory: Callable[..., Any] = MongoClient,
    ):
        self.uri = uri
        self.db_name = db_name
        self.timeout_ms = timeout_ms
        self._client_factory = client_factory
        self._client = None
        self._db = None

    @property
    def connected(self) -> bool:
        return self._client is not None

    def connect(self) -> "MongoDocumentStore":
        if self._client is not None:
            return self
        try:
            self._client = self._client_factory(self.uri, serverSelectionTimeoutMS=self.timeout_ms)
        except PyMongoError as exc:
            raise StoreError(f"Cannot connect to MongoDB: {exc}") from exc
        self._db = self._client[self.db_name]
        logger.info("Mongo store ready (db=%s)", self.db_name)
        return self

    def close(self) -> None:
        if self._client is None:
            return
        self._client.close()
        self._client = None
        self._db = None

    def _collection(self, name: str):
        self.connect()
        return self._db[name]

    def find_by_id(self, collection: str, doc_id: Any) -> Optional[Dict[str, Any]]:
        if doc_id is None or doc_id == "":
            return None
        try:
            doc = self._collection(collection).find_one({"_id": doc_id})
        except PyMongoError as exc:
            raise StoreError(str(exc)) from exc
        return _from_mongo(doc)

    def save(self, collection: str, document: Dict[str, Any]) -> Dict[str, Any]:
        doc = dict(document)
        doc_id = doc.pop("id", None)
        if doc_id is None or doc_id == "":
            raise StoreError("Cannot save a document without an id")
        try:
            self._collection(collection).replace_one({"_id": doc_id}, doc, upsert=True)
        except PyMongoError as exc:
            raise StoreError(str(exc)) from exc
        return document

    def insert(self, collection: str, document: Dict[str, Any]) -> Dict[str, Any]:
        document = dict(document)
        if not document.get("id"):
            document["id"] = uuid.uuid4().hex
        doc = dict(document)
        doc["_id"] = doc.pop("id")
        try:
            self._collection(collection).insert_one(doc)
        except PyMongoError as exc:
            raise StoreError(str(exc)) from exc
        return document
