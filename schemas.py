"""
Database Schemas

Pydantic models for the catalog's MongoDB collections and request bodies.

Media entries and schedules are open documents: callers may send any
fields, only a handful are checked for presence. Request fields are
Optional so that a missing value is answered with a 400 message rather
than a validation error.
"""

from pydantic import BaseModel, Field
from typing import Optional

# Media types with a dedicated listing route. Any other string is still
# accepted on create and through /api/all-anime?type=...
MEDIA_TYPES = {
    "anime": "anime",
    "movie": "movie",
    "series": "series",
    "tv-show": "tv-show",
    "animation&cartoon": "animation & cartoon",
}

SCHEDULE_REQUIRED = ("day", "time", "title", "type")


class User(BaseModel):
    """
    Users collection schema
    Collection name: "users"

    Passwords are stored and compared in plaintext.
    """
    user: str = Field(..., description="Login identifier")
    password: str = Field(..., description="Plaintext password")
    role: str = Field(..., description="Role string, e.g. admin")


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class NewUserRequest(BaseModel):
    user: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None


class VisitorStats(BaseModel):
    total: int
    today: int
    live: int
