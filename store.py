# store.py: JSON document store on Postgres (psycopg3 + pooling)
# One table, keyed by (collection, id); documents live in a JSONB column.

import os
import json
from contextlib import contextmanager
from datetime import datetime, date
from urllib.parse import urlparse, parse_qs, unquote
from typing import Any, Dict, List, Optional

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from psycopg_pool import ConnectionPool

QUIZZES = "quizzes"
ATTEMPTS = "attempts"
CHATS = "chats"
COURSES = "courses"
USERS = "users"

_SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS public.documents (
        collection  text        NOT NULL,
        id          text        NOT NULL,
        doc         jsonb       NOT NULL,
        created_at  timestamptz NOT NULL DEFAULT now(),
        updated_at  timestamptz NOT NULL DEFAULT now(),
        PRIMARY KEY (collection, id)
    );
"""

# =============================================================================
# Connection configuration
# =============================================================================
def _parse_database_url(url: str) -> dict:
    if not url:
        raise ValueError("Empty DATABASE_URL")
    for pref in ("postgresql+psycopg://", "postgres+psycopg://",
                 "postgresql+psycopg2://", "postgres+psycopg2://"):
        if url.startswith(pref):
            url = "postgresql://" + url.split("://", 1)[1]
            break

    p = urlparse(url)
    if p.scheme not in ("postgresql", "postgres"):
        raise ValueError(f"Unsupported scheme '{p.scheme}'")
    qs = parse_qs(p.query or "", keep_blank_values=True)
    dbname = (p.path or "").lstrip("/") or (qs.get("dbname") or [""])[0]
    if not dbname:
        raise ValueError("DATABASE_URL missing dbname")
    kwargs = {
        "dbname": dbname,
        "user": unquote(p.username or ""),
        "password": unquote(p.password or ""),
        "connect_timeout": 10,
    }
    host = (qs.get("host") or [p.hostname])[0]
    if host:
        kwargs["host"] = host
    if p.port and not (isinstance(host, str) and host.startswith("/")):
        kwargs["port"] = p.port
    if qs.get("sslmode"):
        kwargs["sslmode"] = qs["sslmode"][0]
    return kwargs


def connection_kwargs_from_env() -> dict:
    """DATABASE_URL wins; otherwise DB_HOST/DB_PORT/DB_NAME/DB_USER/DB_PASS over TCP."""
    url = os.getenv("DATABASE_URL")
    if url:
        kwargs = _parse_database_url(url)
        print(f"[db] using DATABASE_URL -> {kwargs.get('host', 'localhost')}", flush=True)
        return kwargs
    name = os.getenv("DB_NAME")
    user = os.getenv("DB_USER")
    password = os.getenv("DB_PASS") or os.getenv("DB_PASSWORD")
    if not all([name, user, password]):
        raise RuntimeError("Set DATABASE_URL, or DB_NAME, DB_USER and DB_PASS.")
    kwargs = {
        "host": os.getenv("DB_HOST") or "127.0.0.1",
        "port": int(os.getenv("DB_PORT") or "5432"),
        "dbname": name,
        "user": user,
        "password": password,
        "connect_timeout": 10,
    }
    print(f"[db] TCP -> {kwargs['host']}:{kwargs['port']}", flush=True)
    return kwargs


def _to_conninfo(kwargs: dict) -> str:
    parts = []
    for k, v in kwargs.items():
        if v is None:
            continue
        s = str(v)
        if not s or any(ch.isspace() for ch in s) or "'" in s or "\\" in s:
            s = "'" + s.replace("\\", "\\\\").replace("'", "\\'") + "'"
        parts.append(f"{k}={s}")
    return " ".join(parts)


def _json_default(value: Any):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _jsonable(doc: Dict[str, Any]) -> Dict[str, Any]:
    # Round-trip so datetimes land in JSONB as ISO strings
    return json.loads(json.dumps(doc, default=_json_default))


# =============================================================================
# Store
# =============================================================================
class DocumentStore:
    """
    Collection/id keyed JSON documents. Built once by the app factory and
    handed to blueprints through their deps; nothing here is module-global.
    """

    def __init__(self, conninfo: str, min_size: int = 1, max_size: int = 6):
        self._pool = ConnectionPool(conninfo=conninfo, min_size=min_size,
                                    max_size=max_size, open=False)
        self._opened = False

    @classmethod
    def from_env(cls) -> "DocumentStore":
        max_size = int(os.getenv("DB_POOL_MAX") or 6)
        return cls(_to_conninfo(connection_kwargs_from_env()), max_size=max_size)

    @contextmanager
    def _conn(self):
        if not self._opened:
            self._pool.open()
            self._opened = True
        with self._pool.connection() as conn:
            yield conn

    def close(self) -> None:
        if self._opened:
            self._pool.close()
            self._opened = False

    # ---- raw helpers ---------------------------------------------------------
    def fetch_all(self, q, params=None) -> List[dict]:
        with self._conn() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(q, params or ())
                return cur.fetchall()

    def fetch_one(self, q, params=None) -> Optional[dict]:
        rows = self.fetch_all(q, params)
        return rows[0] if rows else None

    def execute(self, q, params=None) -> None:
        with self._conn() as conn:
            with conn.cursor() as cur:
                cur.execute(q, params or ())
            conn.commit()

    def execute_returning(self, q, params=None) -> List[dict]:
        with self._conn() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(q, params or ())
                rows = cur.fetchall()
            conn.commit()
            return rows

    # ---- documents -----------------------------------------------------------
    def ensure_schema(self) -> None:
        self.execute(_SCHEMA_SQL)

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        row = self.fetch_one("""
            SELECT doc
              FROM public.documents
             WHERE collection = %s AND id = %s;
        """, (collection, str(doc_id)))
        return row["doc"] if row else None

    def find(self, collection: str, match: Optional[Dict[str, Any]] = None,
             order_by: Optional[str] = None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Documents whose JSON contains `match`; optional ascending sort on a top-level key."""
        sql = "SELECT doc FROM public.documents WHERE collection = %s"
        params: List[Any] = [collection]
        if match:
            sql += " AND doc @> %s"
            params.append(Jsonb(_jsonable(match)))
        if order_by:
            sql += " ORDER BY doc ->> %s ASC"
            params.append(order_by)
        else:
            sql += " ORDER BY created_at ASC"
        if limit:
            sql += " LIMIT %s"
            params.append(int(limit))
        return [r["doc"] for r in self.fetch_all(sql + ";", tuple(params))]

    def upsert(self, collection: str, doc_id: str, doc: Dict[str, Any]) -> Dict[str, Any]:
        """Whole-document replace keyed by id; returns what was stored."""
        body = dict(doc)
        body["id"] = str(doc_id)
        rows = self.execute_returning("""
            INSERT INTO public.documents (collection, id, doc)
            VALUES (%s, %s, %s)
            ON CONFLICT (collection, id)
            DO UPDATE SET doc = EXCLUDED.doc, updated_at = now()
            RETURNING doc;
        """, (collection, str(doc_id), Jsonb(_jsonable(body))))
        return rows[0]["doc"]

    def insert(self, collection: str, doc_id: str, doc: Dict[str, Any]) -> Dict[str, Any]:
        """Insert-only; raises psycopg.errors.UniqueViolation on an existing id."""
        body = dict(doc)
        body["id"] = str(doc_id)
        rows = self.execute_returning("""
            INSERT INTO public.documents (collection, id, doc)
            VALUES (%s, %s, %s)
            RETURNING doc;
        """, (collection, str(doc_id), Jsonb(_jsonable(body))))
        return rows[0]["doc"]
