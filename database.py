"""
MongoDB helpers for the admin panel's own directory database.

`db` is the directory database handle, or None when no connection string is
configured. Routes that need it check for None and fail with a 500.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from config import DEFAULT_ADMIN_DATABASE, load_settings

logger = logging.getLogger(__name__)


def database_name_from_uri(uri: str, default: str) -> str:
    """
    Resolve the target database name carried by a connection string.

    Everything after the last "/" up to the query string is the database name.
    An empty segment falls back to `default`, which almost certainly is not the
    database the caller meant, so a warning is logged.
    """
    name = uri.rsplit("/", 1)[-1].split("?", 1)[0]
    if not name.strip():
        logger.warning(
            "No database name in connection string for %s; falling back to %r. "
            "Append the database name: mongodb+srv://host/DATABASE_NAME?params",
            redact_uri(uri), default,
        )
        return default
    return name


def redact_uri(uri: str) -> str:
    """Host portion of a connection string, without scheme, credentials or path."""
    rest = uri.split("://", 1)[-1]
    rest = rest.split("/", 1)[0].split("?", 1)[0]
    return rest.rsplit("@", 1)[-1]


def oid_to_str(doc: Dict[str, Any]) -> Dict[str, Any]:
    if not doc:
        return doc
    d = dict(doc)
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    # convert nested ObjectIds if any
    for k, v in list(d.items()):
        if isinstance(v, ObjectId):
            d[k] = str(v)
    return d


def to_object_id(value: str) -> Optional[ObjectId]:
    """Parse an id from a URL; malformed ids resolve to None (treated as not found)."""
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def utcnow() -> datetime:
    # BSON dates hold milliseconds
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def create_document(database: Database, collection_name: str, data: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
    """Insert with createdAt/updatedAt stamps; returns (inserted id, stored document)."""
    now = utcnow()
    doc = {**data, "createdAt": now, "updatedAt": now}
    result = database[collection_name].insert_one(doc)
    return str(result.inserted_id), doc


def ensure_indexes(database: Database) -> None:
    try:
        database["users"].create_index([("email", ASCENDING)], unique=True)
        database["shops"].create_index([("ownerId", ASCENDING)])
        database["shops"].create_index([("createdAt", DESCENDING)])
        database["shops"].create_index([("name", ASCENDING)])
        logger.info("Directory indexes ensured")
    except PyMongoError as e:
        logger.error("Error creating directory indexes: %s", e)


def connect(uri: str) -> Tuple[MongoClient, Database]:
    client = MongoClient(uri, tz_aware=True)
    name = database_name_from_uri(uri, DEFAULT_ADMIN_DATABASE)
    logger.info("Directory database: %s on %s", name, redact_uri(uri))
    return client, client.get_database(name)


_settings = load_settings()

if _settings.admin_mongodb_uri:
    client, db = connect(_settings.admin_mongodb_uri)
else:
    client, db = None, None
