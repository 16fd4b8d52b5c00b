"""
Database Context

Holds the MongoDB connection for the catalog service. A single `Catalog`
is created at startup and shared by every request handler; pymongo pools
connections internally, so handlers never coordinate with each other.

Collections:
- users     -> login identifiers, plaintext passwords and roles
- animes    -> media entries (anime, movie, series, ...)
- schedules -> broadcast schedule entries
- visitors  -> one timestamp per tracked visit
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from dotenv import load_dotenv
from pydantic import BaseModel
from pymongo import MongoClient
from pymongo.errors import PyMongoError

load_dotenv()

logger = logging.getLogger("catalog")

USERS = "users"
ANIMES = "animes"
SCHEDULES = "schedules"
VISITORS = "visitors"

LIVE_WINDOW = timedelta(minutes=5)


@dataclass(frozen=True)
class Settings:
    database_url: Optional[str]
    database_name: str = "animeDB"
    port: int = 5000
    admin_user: Optional[str] = None
    admin_password: Optional[str] = None
    admin_role: str = "admin"
    timeout_ms: int = 5000
    allowed_origins: tuple = ("*",)
    log_config: str = os.path.join(os.path.dirname(__file__), "logger_config.yaml")

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.getenv("ALLOWED_ORIGINS", "*")
        return cls(
            database_url=os.getenv("DATABASE_URL") or os.getenv("MONGO_URI"),
            database_name=os.getenv("DATABASE_NAME", "animeDB"),
            port=int(os.getenv("PORT", 5000)),
            admin_user=os.getenv("ADMIN_USER"),
            admin_password=os.getenv("ADMIN_PASSWORD"),
            admin_role=os.getenv("ADMIN_ROLE", "admin"),
            timeout_ms=int(os.getenv("DATABASE_TIMEOUT_MS", 5000)),
            allowed_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
            log_config=os.getenv("LOG_CONFIG", cls.log_config),
        )


def utcnow() -> datetime:
    """Naive UTC timestamp, the form MongoDB stores dates in."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def start_of_local_day(now: datetime) -> datetime:
    """
    Local midnight of the day containing `now`, returned as naive UTC.
    `now` is a naive UTC datetime.
    """
    local = now.replace(tzinfo=timezone.utc).astimezone()
    # naive wall time picks up the offset in force at midnight
    midnight = datetime(local.year, local.month, local.day)
    return midnight.astimezone(timezone.utc).replace(tzinfo=None)


def serialize(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Make a stored document JSON friendly (ObjectId -> str)."""
    if doc is None:
        return None
    out = dict(doc)
    if isinstance(out.get("_id"), ObjectId):
        out["_id"] = str(out["_id"])
    return out


class Catalog:
    """Open handles shared by all request handlers."""

    def __init__(self, client: MongoClient, database_name: str):
        self.client = client
        self.db = client[database_name]

    @property
    def name(self) -> str:
        return self.db.name

    def close(self):
        self.client.close()

    # Generic collection helpers

    def create_document(self, collection_name: str, data: Union[BaseModel, dict]) -> str:
        if isinstance(data, BaseModel):
            data_dict = data.model_dump()
        else:
            data_dict = data.copy()
        result = self.db[collection_name].insert_one(data_dict)
        return str(result.inserted_id)

    def get_documents(self, collection_name: str, filter_dict: Optional[dict] = None) -> List[dict]:
        cursor = self.db[collection_name].find(filter_dict or {})
        return [serialize(d) for d in cursor]

    def get_document(self, collection_name: str, doc_id: str) -> Optional[dict]:
        return serialize(self.db[collection_name].find_one({"_id": ObjectId(doc_id)}))

    def update_document(self, collection_name: str, doc_id: str, fields: dict):
        return self.db[collection_name].update_one({"_id": ObjectId(doc_id)}, {"$set": fields})

    def delete_document(self, collection_name: str, doc_id: str) -> int:
        result = self.db[collection_name].delete_one({"_id": ObjectId(doc_id)})
        return result.deleted_count

    def count_documents(self, collection_name: str, filter_dict: Optional[dict] = None) -> int:
        return self.db[collection_name].count_documents(filter_dict or {})

    # Users

    def find_user(self, user: str) -> Optional[dict]:
        return self.db[USERS].find_one({"user": user})

    def seed_admin(self, settings: Settings) -> Optional[str]:
        """
        Insert the configured admin user unless one with the same identifier
        exists. Returns the new id, or None when nothing was inserted.
        """
        if not settings.admin_user or not settings.admin_password:
            logger.warning("ADMIN_USER/ADMIN_PASSWORD not set, skipping admin seed")
            return None
        if self.find_user(settings.admin_user):
            logger.info("Admin user already exists!")
            return None
        inserted_id = self.create_document(USERS, {
            "user": settings.admin_user,
            "password": settings.admin_password,
            "role": settings.admin_role,
        })
        logger.info("Admin user added successfully!")
        return inserted_id

    # Visitors

    def track_visitor(self, now: Optional[datetime] = None) -> str:
        return self.create_document(VISITORS, {"date": now or utcnow()})

    def visitor_stats(self, now: Optional[datetime] = None) -> Dict[str, int]:
        now = now or utcnow()
        return {
            "total": self.count_documents(VISITORS),
            "today": self.count_documents(VISITORS, {"date": {"$gte": start_of_local_day(now)}}),
            "live": self.count_documents(VISITORS, {"date": {"$gte": now - LIVE_WINDOW}}),
        }


def connect(settings: Settings) -> Catalog:
    """Open the client and ping the server. Raises PyMongoError on failure."""
    if not settings.database_url:
        raise ValueError("DATABASE_URL is not set")
    client = MongoClient(settings.database_url, serverSelectionTimeoutMS=settings.timeout_ms)
    try:
        client.admin.command("ping")
    except PyMongoError:
        client.close()
        raise
    logger.info("Connected to MongoDB database %s", settings.database_name)
    return Catalog(client, settings.database_name)
