"""
MongoDB access for SoilQ.

`db` is None when DATABASE_URL / DATABASE_NAME are not configured; routes
receive the handle through the `get_db` dependency so tests can swap it.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from fastapi import HTTPException
from pydantic import BaseModel
from pymongo import MongoClient, ReturnDocument
from pymongo.database import Database

import config
from errors import ValidationError

logger = logging.getLogger(__name__)

_client: Optional[MongoClient] = None
db: Optional[Database] = None

if config.DATABASE_URL and config.DATABASE_NAME:
    _client = MongoClient(config.DATABASE_URL)
    db = _client[config.DATABASE_NAME]
    logger.info("MongoDB client created for database %s", config.DATABASE_NAME)
else:
    logger.warning("DATABASE_URL/DATABASE_NAME not set, database disabled")


def get_db() -> Database:
    if db is None:
        raise HTTPException(status_code=500, detail="Database not configured")
    return db


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def oid(s: str) -> ObjectId:
    try:
        return ObjectId(s)
    except Exception:
        raise ValidationError("Invalid id format")


def serialize_doc(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not doc:
        return doc
    d = doc.copy()
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    return d


def create_document(database: Database, collection_name: str, data: Union[BaseModel, dict]) -> ObjectId:
    """Insert a document stamped with created_at/updated_at and return its _id."""
    if isinstance(data, BaseModel):
        doc = data.model_dump()
    else:
        doc = data.copy()
    now = utcnow()
    doc.setdefault("created_at", now)
    doc["updated_at"] = now
    result = database[collection_name].insert_one(doc)
    return result.inserted_id


def get_documents(database: Database, collection_name: str, filter_dict: Optional[dict] = None,
                  sort_field: str = "created_at", limit: Optional[int] = None) -> List[Dict[str, Any]]:
    cursor = database[collection_name].find(filter_dict or {}).sort(sort_field, -1)
    if limit:
        cursor = cursor.limit(limit)
    return [serialize_doc(d) for d in cursor]


def update_document(database: Database, collection_name: str, _id: ObjectId, changes: dict) -> Optional[dict]:
    """Apply a $set (with a fresh updated_at) and return the updated document."""
    changes = dict(changes, updated_at=utcnow())
    return database[collection_name].find_one_and_update(
        {"_id": _id},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )


def next_sequence(database: Database, name: str) -> int:
    seq = database["sequence"].find_one_and_update(
        {"_id": name},
        {"$inc": {"last_number": 1}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    return seq.get("last_number", 1)
