"""SQLite-backed document store for users and distribution groups."""
from __future__ import annotations

import json
import logging
import re
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from .errors import StorageError, UniqueConstraintViolation
from .identifiers import Identifier

logger = logging.getLogger("assessment.storage")

# Passing this as the filter to ``read`` returns every document in a collection.
ALL_DOCUMENTS = None

UNIQUE_FIELDS: Dict[str, Tuple[str, ...]] = {
    "users": ("user_name",),
}

_FIELD_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

Document = Dict[str, object]
Filter = Optional[Mapping[str, object]]


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the document store."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "assessment.sqlite3").resolve(strict=False)


def _current_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _encode_value(value: object) -> object:
    if isinstance(value, Identifier):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [_encode_value(item) for item in value]
    return value


def _encode_document(document: Mapping[str, object]) -> Document:
    encoded: Document = {}
    for key, value in document.items():
        if key == "_id":
            raise StorageError("Documents must not carry their own '_id'")
        encoded[key] = _encode_value(value)
    return encoded


def _field_expression(field: str) -> str:
    if not _FIELD_PATTERN.match(field):
        raise StorageError(f"Invalid document field name: {field!r}")
    return f"json_extract(body, '$.{field}')"


def _build_where(collection: str, filter: Filter) -> Tuple[str, List[object]]:
    clauses = ["collection = ?"]
    params: List[object] = [collection]
    for key, value in (filter or {}).items():
        if key == "_id":
            clauses.append("id = ?")
        else:
            clauses.append(f"{_field_expression(key)} = ?")
        params.append(_encode_value(value))
    return " AND ".join(clauses), params


def _find_violation(
    conn: sqlite3.Connection,
    collection: str,
    document: Mapping[str, object],
    *,
    exclude_id: Optional[str] = None,
) -> Optional[UniqueConstraintViolation]:
    for field in UNIQUE_FIELDS.get(collection, ()):
        if field not in document:
            continue
        value = _encode_value(document[field])
        row = conn.execute(
            f"SELECT id FROM documents WHERE collection = ? AND {_field_expression(field)} = ?",
            (collection, value),
        ).fetchone()
        if row is not None and row["id"] != exclude_id:
            return UniqueConstraintViolation(collection, field, value)
    return None


class _DocumentOperations:
    """CRUD operations shared by the store and its transactions."""

    def _connection(self):  # pragma: no cover - overridden
        raise NotImplementedError

    def create(self, collection: str, document: Mapping[str, object]) -> Identifier:
        """Insert ``document`` and return its new identifier."""

        identifier = Identifier.generate()
        encoded = _encode_document(document)
        with self._connection() as conn:
            try:
                conn.execute(
                    "INSERT INTO documents (collection, id, body, created_at) VALUES (?, ?, ?, ?)",
                    (collection, str(identifier), json.dumps(encoded), _current_timestamp()),
                )
            except sqlite3.IntegrityError as exc:
                violation = _find_violation(conn, collection, encoded)
                if violation is not None:
                    raise violation from exc
                raise StorageError(f"Failed to insert into '{collection}': {exc}") from exc
        return identifier

    def read(self, collection: str, filter: Filter = ALL_DOCUMENTS) -> Dict[Identifier, Document]:
        """Return matching documents keyed by identifier, in insertion order."""

        where, params = _build_where(collection, filter)
        with self._connection() as conn:
            rows = conn.execute(
                f"SELECT id, body FROM documents WHERE {where} ORDER BY seq",
                params,
            ).fetchall()
        return {Identifier(row["id"]): json.loads(row["body"]) for row in rows}

    def update(self, collection: str, filter: Filter, fields: Mapping[str, object]) -> bool:
        """Merge ``fields`` into every matching document."""

        if not fields:
            return False
        encoded = _encode_document(fields)
        where, params = _build_where(collection, filter)
        with self._connection() as conn:
            rows = conn.execute(
                f"SELECT id, body FROM documents WHERE {where}",
                params,
            ).fetchall()
            for row in rows:
                body = json.loads(row["body"])
                body.update(encoded)
                try:
                    conn.execute(
                        "UPDATE documents SET body = ? WHERE collection = ? AND id = ?",
                        (json.dumps(body), collection, row["id"]),
                    )
                except sqlite3.IntegrityError as exc:
                    violation = _find_violation(conn, collection, encoded, exclude_id=row["id"])
                    if violation is not None:
                        raise violation from exc
                    raise StorageError(f"Failed to update '{collection}': {exc}") from exc
        return bool(rows)

    def delete(self, collection: str, filter: Filter) -> bool:
        """Remove every matching document; ``True`` if anything was removed."""

        where, params = _build_where(collection, filter)
        with self._connection() as conn:
            cursor = conn.execute(f"DELETE FROM documents WHERE {where}", params)
            return cursor.rowcount > 0


class StoreTransaction(_DocumentOperations):
    """Document operations sharing one connection inside an open transaction."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        yield self._conn


class DocumentStore(_DocumentOperations):
    """Simple document store on top of SQLite's JSON functions."""

    def __init__(self, path: Path, *, timeout: float = 5.0) -> None:
        _ensure_directory(path)
        self._path = path
        self._timeout = timeout

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path, timeout=self._timeout, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise StorageError(f"Unable to open document store at {self._path}: {exc}") from exc
        try:
            with conn:
                yield conn
        except sqlite3.Error as exc:
            raise StorageError(f"Document store failure: {exc}") from exc
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create the documents table and unique indexes if they do not already exist."""

        statements = [
            """
            CREATE TABLE IF NOT EXISTS documents (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                collection TEXT NOT NULL,
                id TEXT NOT NULL,
                body TEXT NOT NULL,
                created_at TEXT NOT NULL,
                UNIQUE (collection, id)
            )
            """,
        ]
        for collection, fields in UNIQUE_FIELDS.items():
            for field in fields:
                statements.append(
                    f"CREATE UNIQUE INDEX IF NOT EXISTS ux_{collection}_{field} "
                    f"ON documents ({_field_expression(field)}) "
                    f"WHERE collection = '{collection}'"
                )

        with self._connection() as conn:
            for statement in statements:
                conn.execute(statement)
        logger.debug("Document store initialised at %s", self._path)

    @contextmanager
    def transaction(self) -> Iterator[StoreTransaction]:
        """Run several operations atomically, holding the write lock throughout."""

        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise StorageError(f"Unable to open document store at {self._path}: {exc}") from exc
        conn.isolation_level = None
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield StoreTransaction(conn)
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        except sqlite3.Error as exc:
            raise StorageError(f"Document store transaction failed: {exc}") from exc
        finally:
            conn.close()


__all__ = [
    "ALL_DOCUMENTS",
    "DocumentStore",
    "StoreTransaction",
    "UNIQUE_FIELDS",
    "resolve_database_path",
]
