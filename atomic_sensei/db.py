"""Document store: one table per collection, JSON documents keyed by id.

Supabase is used when configured, SQLite otherwise (and as a fallback when a
Supabase call fails).
"""
import json
import os
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

# Load environment variables from .env file in package directory
from dotenv import load_dotenv
env_path = Path(__file__).parent / ".env"
load_dotenv(dotenv_path=env_path)

# Check if Supabase is configured
USE_SUPABASE = bool(os.getenv("SUPABASE_URL"))

if USE_SUPABASE:
    try:
        from .supabase_client import get_supabase
        print("[DB] Using Supabase database")
    except Exception as e:
        print(f"[DB] Supabase import failed: {e}. Falling back to SQLite")
        USE_SUPABASE = False
else:
    print("[DB] Using SQLite database (local file)")

DB_PATH = Path(os.getenv("SENSEI_DB_PATH") or Path(__file__).parent / "atomic_sensei.db")

COLLECTIONS = (
    "users",
    "roadmaps",
    "contents",
    "quizzes",
    "quiz_results",
    "timers",
    "reminders",
    "notifications",
)


def get_connection() -> sqlite3.Connection:
    """Get SQLite connection (used when Supabase is not configured)."""
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    return conn


def init_db() -> None:
    conn = get_connection()
    try:
        for name in COLLECTIONS:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {name} (
                    id TEXT PRIMARY KEY,
                    user_id TEXT,
                    data TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            conn.execute(f"CREATE INDEX IF NOT EXISTS idx_{name}_user ON {name}(user_id)")
        conn.commit()
    finally:
        conn.close()


def _check_collection(collection: str) -> None:
    if collection not in COLLECTIONS:
        raise ValueError(f"Unknown collection '{collection}'")


def _matches(doc: Dict[str, Any], filters: Dict[str, Any]) -> bool:
    return all(doc.get(key) == value for key, value in filters.items())


def save_document(collection: str, doc: Dict[str, Any]) -> Dict[str, Any]:
    """Insert or replace a document. ``doc`` must carry ``id``; ``user_id`` is indexed."""
    _check_collection(collection)
    now = datetime.now().isoformat()

    if USE_SUPABASE:
        try:
            supabase = get_supabase()
            supabase.table(collection).upsert(
                {
                    "id": doc["id"],
                    "user_id": doc.get("user_id"),
                    "data": doc,
                    "updated_at": now,
                },
                on_conflict="id",
            ).execute()
            return doc
        except Exception as e:
            print(f"[DB] Supabase save to {collection} failed: {e}. Falling back to SQLite")

    # SQLite fallback
    conn = get_connection()
    try:
        conn.execute(
            f"""
            INSERT INTO {collection} (id, user_id, data, created_at, updated_at)
            VALUES (:id, :user_id, :data, :now, :now)
            ON CONFLICT(id) DO UPDATE SET
                user_id = excluded.user_id,
                data = excluded.data,
                updated_at = excluded.updated_at
            """,
            {"id": doc["id"], "user_id": doc.get("user_id"), "data": json.dumps(doc), "now": now},
        )
        conn.commit()
        return doc
    finally:
        conn.close()


def get_document(collection: str, doc_id: str, user_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """Fetch one document, optionally scoped to its owner."""
    _check_collection(collection)

    if USE_SUPABASE:
        try:
            supabase = get_supabase()
            query = supabase.table(collection).select("data").eq("id", doc_id)
            if user_id is not None:
                query = query.eq("user_id", user_id)
            result = query.execute()
            return result.data[0]["data"] if result.data else None
        except Exception as e:
            print(f"[DB] Supabase get from {collection} failed: {e}. Falling back to SQLite")

    conn = get_connection()
    try:
        if user_id is None:
            row = conn.execute(f"SELECT data FROM {collection} WHERE id = ?", (doc_id,)).fetchone()
        else:
            row = conn.execute(
                f"SELECT data FROM {collection} WHERE id = ? AND user_id = ?", (doc_id, user_id)
            ).fetchone()
        return json.loads(row["data"]) if row else None
    finally:
        conn.close()


def find_documents(collection: str, user_id: Optional[str] = None, **filters: Any) -> List[Dict[str, Any]]:
    """List documents in insertion order, filtered by owner and exact field values."""
    _check_collection(collection)

    if USE_SUPABASE:
        try:
            supabase = get_supabase()
            query = supabase.table(collection).select("data")
            if user_id is not None:
                query = query.eq("user_id", user_id)
            result = query.order("created_at").execute()
            return [row["data"] for row in result.data if _matches(row["data"], filters)]
        except Exception as e:
            print(f"[DB] Supabase find in {collection} failed: {e}. Falling back to SQLite")

    conn = get_connection()
    try:
        if user_id is None:
            cursor = conn.execute(f"SELECT data FROM {collection} ORDER BY created_at, rowid")
        else:
            cursor = conn.execute(
                f"SELECT data FROM {collection} WHERE user_id = ? ORDER BY created_at, rowid", (user_id,)
            )
        docs = [json.loads(row["data"]) for row in cursor.fetchall()]
        return [doc for doc in docs if _matches(doc, filters)]
    finally:
        conn.close()


def find_one(collection: str, user_id: Optional[str] = None, **filters: Any) -> Optional[Dict[str, Any]]:
    docs = find_documents(collection, user_id, **filters)
    return docs[0] if docs else None


def delete_document(collection: str, doc_id: str, user_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """Delete a document and return what was deleted (None if it did not exist)."""
    existing = get_document(collection, doc_id, user_id)
    if existing is None:
        return None

    if USE_SUPABASE:
        try:
            supabase = get_supabase()
            supabase.table(collection).delete().eq("id", doc_id).execute()
            return existing
        except Exception as e:
            print(f"[DB] Supabase delete from {collection} failed: {e}. Falling back to SQLite")

    conn = get_connection()
    try:
        conn.execute(f"DELETE FROM {collection} WHERE id = ?", (doc_id,))
        conn.commit()
        return existing
    finally:
        conn.close()


def delete_documents(collection: str, user_id: str, **filters: Any) -> int:
    """Delete every matching document of a user. Returns the number removed."""
    docs = find_documents(collection, user_id, **filters)
    for doc in docs:
        delete_document(collection, doc["id"], user_id)
    return len(docs)
