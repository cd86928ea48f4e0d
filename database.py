"""
MongoDB access for the ScholarLink API.

The client is created once at startup (see ``main.lifespan``) and the
database handle is handed to routes through ``get_db``.
"""
import logging
from typing import Any, Dict, Optional

from bson import ObjectId
from fastapi import Request
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.results import DeleteResult, UpdateResult
from pymongo.server_api import ServerApi

from errors import BadRequest, InternalError

logger = logging.getLogger(__name__)

USERS = "users"
SCHOLARSHIPS = "scholarships"
APPLICATIONS = "appliedScholarships"
REVIEWS = "reviews"


def connect(uri: Optional[str]) -> MongoClient:
    if not uri:
        raise RuntimeError("MONGODB_URI is not set")
    client = MongoClient(
        uri,
        server_api=ServerApi("1", strict=True, deprecation_errors=True),
    )
    logger.info("MongoDB client created")
    return client


def get_db(request: Request) -> Database:
    db = getattr(request.app.state, "db", None)
    if db is None:
        raise InternalError("Database not configured")
    return db


# ---------- Helpers ----------

def oid(id_str: str) -> ObjectId:
    try:
        return ObjectId(id_str)
    except Exception:
        raise BadRequest("Invalid id")


def serialize(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if doc is None:
        return None
    if "_id" in doc:
        doc["_id"] = str(doc["_id"])
    return doc


def insert_result(inserted_id) -> Dict[str, Any]:
    return {"acknowledged": True, "insertedId": str(inserted_id)}


def update_result(result: UpdateResult) -> Dict[str, Any]:
    return {
        "acknowledged": result.acknowledged,
        "matchedCount": result.matched_count,
        "modifiedCount": result.modified_count,
    }


def delete_result(result: DeleteResult) -> Dict[str, Any]:
    return {"acknowledged": result.acknowledged, "deletedCount": result.deleted_count}
