"""
Database helpers

Connection factory and small document helpers over pymongo. The database
handle is created once by the caller and passed around; nothing here keeps a
module-level client.
"""
import os
from datetime import datetime, timezone
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from dotenv import load_dotenv
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from errors import NotFound

load_dotenv()


def connect(database_url: Optional[str] = None, database_name: Optional[str] = None) -> Optional[Database]:
    """Return a database handle, or None when no database is configured."""
    database_url = database_url or os.getenv("DATABASE_URL")
    database_name = database_name or os.getenv("DATABASE_NAME")
    if not database_url or not database_name:
        return None
    client = MongoClient(database_url)
    return client[database_name]


def ensure_indexes(db: Database):
    """Unique indexes backing the one-tag-one-garment, one-email and one-stamp rules."""
    strings = {"$type": "string"}
    db.tagcode.create_index("code", unique=True)
    db.tagcode.create_index("nfc_uid", unique=True, partialFilterExpression={"nfc_uid": strings})
    db.tagcode.create_index("qr_code", unique=True, partialFilterExpression={"qr_code": strings})
    db.user.create_index("email", unique=True, partialFilterExpression={"email": strings})
    db.stamp.create_index([("user_id", ASCENDING), ("garment_id", ASCENDING)], unique=True)
    db.userbadge.create_index([("user_id", ASCENDING), ("badge_id", ASCENDING)], unique=True)


def as_object_id(value):
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def doc_to_response(doc):
    doc = dict(doc)
    doc["id"] = str(doc.pop("_id"))
    return doc


def _stamped(data):
    data_dict = data.model_dump() if isinstance(data, BaseModel) else dict(data)
    now = datetime.now(timezone.utc)
    data_dict["created_at"] = now
    data_dict["updated_at"] = now
    return data_dict


def create_document(db: Database, collection_name: str, data) -> str:
    """Insert a document with timestamps and return its id as a string"""
    result = db[collection_name].insert_one(_stamped(data))
    return str(result.inserted_id)


def insert_document(db: Database, collection_name: str, data) -> dict:
    """create_document, then read the stored document back for the response."""
    doc_id = create_document(db, collection_name, data)
    return doc_to_response(db[collection_name].find_one({"_id": ObjectId(doc_id)}))


def upsert_document(db: Database, collection_name: str, key: dict, data):
    """Insert data unless a document matching key exists. Returns (doc, created)."""
    try:
        result = db[collection_name].update_one(key, {"$setOnInsert": _stamped(data)}, upsert=True)
        created = result.upserted_id is not None
    except DuplicateKeyError:
        # a concurrent upsert for the same key got there first
        created = False
    return doc_to_response(db[collection_name].find_one(key)), created


def get_documents(db: Database, collection_name: str, filter_dict=None, limit=None):
    cursor = db[collection_name].find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return [doc_to_response(d) for d in cursor]


def get_document(db, collection_name, doc_id):
    oid = as_object_id(doc_id)
    if oid is None:
        return None
    doc = db[collection_name].find_one({"_id": oid})
    return doc_to_response(doc) if doc else None


def require_document(db, collection_name, doc_id, label):
    doc = get_document(db, collection_name, doc_id)
    if doc is None:
        raise NotFound(f"{label} not found")
    return doc


def find_by_ids(db, collection_name, ids):
    """Fetch documents by string id in one query, keyed by string id."""
    oids = {as_object_id(i) for i in ids}
    oids.discard(None)
    if not oids:
        return {}
    docs = db[collection_name].find({"_id": {"$in": list(oids)}})
    return {str(d["_id"]): doc_to_response(d) for d in docs}
