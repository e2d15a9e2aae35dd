"""
Database helpers for the lesson grading backend.

The MongoDB handle is created from environment variables at import time.
`db` is None when the connection settings are missing; request handlers get
it through `get_db()` so tests can swap in another database.
"""
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

_client = None
db = None

if DATABASE_URL and DATABASE_NAME:
    _client = MongoClient(DATABASE_URL)
    db = _client[DATABASE_NAME]


def get_db():
    """FastAPI dependency returning the shared database handle."""
    return db


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_dict(data: Union[BaseModel, dict]) -> Dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump(exclude_none=True)
    return dict(data)


def create_document(database, collection_name: str, data: Union[BaseModel, dict]) -> str:
    """Insert a document with timestamps and return its id as a string."""
    doc = _to_dict(data)
    now = utcnow()
    doc.setdefault("created_at", now)
    doc["updated_at"] = now
    result = database[collection_name].insert_one(doc)
    return str(result.inserted_id)


def get_documents(
    database,
    collection_name: str,
    filter_dict: Optional[dict] = None,
    sort_field: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[dict]:
    cursor = database[collection_name].find(filter_dict or {})
    if sort_field:
        cursor = cursor.sort(sort_field, ASCENDING)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def ensure_indexes(database) -> None:
    """Indexes the grading flow relies on. Safe to call repeatedly."""
    database["task"].create_index([("lesson_id", ASCENDING), ("order", ASCENDING)])
    database["quizquestion"].create_index([("lesson_id", ASCENDING), ("order", ASCENDING)])
    database["useractivity"].create_index(
        [("user_id", ASCENDING), ("course_id", ASCENDING), ("activity_type", ASCENDING)]
    )
    database["userprogress"].create_index(
        [("user_id", ASCENDING), ("course_id", ASCENDING)], unique=True
    )
    database["courserating"].create_index(
        [("user_id", ASCENDING), ("course_id", ASCENDING)], unique=True
    )
