# app/database.py
"""
Document store layer. User documents live in an external store; this module
provides the connector/repository seam the cart handler talks to plus the
default file-backed implementation (CSV preferred, Excel supported).

Usage:
    from app.database import build_store
    store = build_store(settings).connect()
    store.find_by_id("users", "u1")
    store.save("users", {"id": "u1", "cartItem": {"p1": 2}})

Every store is connected once and reused; connect() may be called again at any
time and returns the already connected store.
"""

import json
import logging
import os
import uuid
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import pandas as pd
from filelock import FileLock

from app.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when the underlying store cannot be read or written."""


class DocumentStore:
    """
    Minimal document repository contract. Documents are plain dicts keyed by 'id'.
    """

    def connect(self) -> "DocumentStore":
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError

    def find_by_id(self, collection: str, doc_id: Any) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def save(self, collection: str, document: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def insert(self, collection: str, document: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError


# columns always stored as JSON text, whatever the value's type
JSON_COLUMNS: Dict[str, Tuple[str, ...]] = {"users": ("cartItem",)}


def _encode_value(value: Any) -> Any:
    # nested values in free-form columns are kept as JSON text, the files only hold strings
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    if value is None:
        return ""
    return value


def _decode_value(value: Any) -> Any:
    if isinstance(value, str) and value[:1] in ("{", "["):
        try:
            return json.loads(value)
        except ValueError:
            return value
    return value


class FileBackedDB(DocumentStore):
    """
    Keeps one CSV / Excel file per collection inside data_dir.
    Collection name maps to a file name from settings, else <collection>.csv.
    """

    def __init__(
        self,
        data_dir: Optional[Path] = None,
        files: Optional[Dict[str, str]] = None,
        json_columns: Optional[Dict[str, Tuple[str, ...]]] = None,
    ):
        self.data_dir = Path(data_dir if data_dir is not None else default_settings.DATA_DIR)
        self.files = files if files is not None else {"users": default_settings.USERS_FILE}
        self.json_columns = json_columns if json_columns is not None else JSON_COLUMNS
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    def connect(self) -> "FileBackedDB":
        if self._connected:
            return self
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(f"Cannot open data dir {self.data_dir}: {e}") from e
        self._connected = True
        logger.info("File store ready at %s", self.data_dir)
        return self

    def close(self) -> None:
        self._connected = False

    def _file_path(self, collection: str) -> Path:
        """
        Resolve collection -> file path. Explicit filenames (.csv/.xlsx) are used as-is
        relative to data_dir.
        """
        if collection.endswith(".csv") or collection.endswith(".xlsx"):
            return self.data_dir / collection
        filename = self.files.get(collection, f"{collection}.csv")
        return self.data_dir / filename

    def _lock_for(self, path: Path) -> FileLock:
        return FileLock(str(path) + ".lock")

    def _read_df(self, path: Path) -> pd.DataFrame:
        if not path.exists():
            return pd.DataFrame()
        try:
            if path.suffix.lower() in (".xls", ".xlsx"):
                return pd.read_excel(path, dtype=str, keep_default_na=False).fillna("")
            return pd.read_csv(path, dtype=str, keep_default_na=False)
        except pd.errors.EmptyDataError:
            return pd.DataFrame()
        except (OSError, ValueError) as e:
            raise StoreError(f"Cannot read {path.name}: {e}") from e

    def _write_df_nolock(self, path: Path, df: pd.DataFrame) -> None:
        """
        Write DataFrame to `path` WITHOUT acquiring file lock.
        Use this only when the caller already holds the lock. The file is swapped in
        whole so unlocked readers never see a partial write.
        """
        tmp = path.with_name(f".{path.stem}.tmp{path.suffix}")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            if path.suffix.lower() in (".xls", ".xlsx"):
                df.to_excel(tmp, index=False)
            else:
                df.to_csv(tmp, index=False)
            os.replace(tmp, path)
        except (OSError, ValueError) as e:
            raise StoreError(f"Cannot write {path.name}: {e}") from e

    def _row_to_document(self, collection: str, row: Dict[str, Any]) -> Dict[str, Any]:
        json_cols = self.json_columns.get(collection, ())
        doc: Dict[str, Any] = {}
        for k, v in row.items():
            if k in json_cols:
                # blank cell: the document never had this field
                if v == "":
                    continue
                try:
                    doc[k] = json.loads(v)
                except ValueError as e:
                    raise StoreError(f"Corrupt {k} value in {collection}: {e}") from e
            else:
                doc[k] = _decode_value(v)
        return doc

    def _document_to_row(self, collection: str, document: Dict[str, Any]) -> Dict[str, Any]:
        json_cols = self.json_columns.get(collection, ())
        return {
            k: json.dumps(v, ensure_ascii=False) if k in json_cols else _encode_value(v)
            for k, v in document.items()
        }

    def find_by_id(self, collection: str, doc_id: Any) -> Optional[Dict[str, Any]]:
        if doc_id is None or doc_id == "":
            return None
        df = self._read_df(self._file_path(collection))
        if df.empty or "id" not in df.columns:
            return None
        mask = df["id"].astype(str) == str(doc_id)
        if not mask.any():
            return None
        return self._row_to_document(collection, df[mask].iloc[0].to_dict())

    def save(self, collection: str, document: Dict[str, Any]) -> Dict[str, Any]:
        """
        Replace the stored document with the same id, or append it. The whole document
        is written: columns missing from it are blanked on its row. Last write wins.
        """
        doc_id = document.get("id")
        if doc_id is None or doc_id == "":
            raise StoreError("Cannot save a document without an id")
        row = self._document_to_row(collection, document)
        row["id"] = str(doc_id)

        path = self._file_path(collection)
        with self._lock_for(path):
            df = self._read_df(path)
            if df.empty:
                df = pd.DataFrame([row], dtype=str)
            else:
                mask = df["id"].astype(str) == row["id"] if "id" in df.columns else None
                if mask is not None and mask.any():
                    for col in df.columns:
                        if col not in row:
                            df.loc[mask, col] = ""
                    for k, v in row.items():
                        df.loc[mask, k] = str(v)
                else:
                    df = pd.concat([df, pd.DataFrame([row], dtype=str)], ignore_index=True, sort=False)
            df = df.fillna("")
            self._write_df_nolock(path, df)
        return document

    def insert(self, collection: str, document: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a new document. If 'id' is missing one is generated (uuid4 hex).
        Returns the saved document (with id).
        """
        document = dict(document)
        if not document.get("id"):
            document["id"] = uuid.uuid4().hex
        return self.save(collection, document)


def build_store(config: Optional[Settings] = None) -> DocumentStore:
    """Create the (not yet connected) store selected by STORE_BACKEND."""
    config = config or default_settings
    backend = config.STORE_BACKEND.strip().lower()
    if backend == "file":
        return FileBackedDB(data_dir=config.DATA_DIR, files={"users": config.USERS_FILE})
    if backend == "mongo":
        from app.db.mongo import MongoDocumentStore

        return MongoDocumentStore(
            uri=config.MONGO_URI,
            db_name=config.MONGO_DB,
            timeout_ms=config.MONGO_TIMEOUT_MS,
        )
    raise ValueError(f"Unknown STORE_BACKEND: {config.STORE_BACKEND!r}")
