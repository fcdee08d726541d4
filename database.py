"""
MongoDB access helpers.

The connection is created once from DATABASE_URL / DATABASE_NAME. Routes never
touch the module-level ``db`` directly; they receive it through the ``get_db``
dependency so tests can swap in another database.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import MongoClient
from pymongo.errors import PyMongoError

import settings
from errors import APIError

logger = logging.getLogger(__name__)

client = MongoClient(settings.DATABASE_URL) if settings.DATABASE_URL else None
db = client[settings.DATABASE_NAME] if client is not None else None

CARS = "cars"
BRANDS = "brands"
CATEGORIES = "categories"
USERS = "users"


def get_db():
    if db is None:
        raise APIError(500, "Database not configured")
    return db


def object_id(value: str) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def serialize(doc: Optional[dict]) -> Optional[dict]:
    """Replace Mongo's ``_id`` with a string ``id`` placed first."""
    if doc is None:
        return None
    d = dict(doc)
    _id = d.pop("_id", None)
    return {"id": str(_id), **d}


def find_by_id(database, collection_name: str, doc_id: str) -> Optional[dict]:
    oid = object_id(doc_id)
    if oid is None:
        return None
    return database[collection_name].find_one({"_id": oid})


def create_document(database, collection_name: str, data: Any) -> str:
    payload = data.model_dump() if isinstance(data, BaseModel) else dict(data)
    result = database[collection_name].insert_one(payload)
    return str(result.inserted_id)


def get_documents(database, collection_name: str, filter_dict: Optional[Dict[str, Any]] = None,
                  limit: Optional[int] = None) -> List[dict]:
    cursor = database[collection_name].find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return [serialize(d) for d in cursor]


@contextmanager
def store_errors(message: str):
    """Turn driver failures inside a handler into a 500 with ``message``."""
    try:
        yield
    except PyMongoError as e:
        logger.exception("%s", message)
        raise APIError(500, message, details=str(e))
