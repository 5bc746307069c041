"""
User documents stored in the `users` collection.

Identity itself lives with the external provider; this collection only keeps the
profile created at sign-up. Passwords are stored as PBKDF2-SHA256 hashes.
"""

import hashlib
import logging
import secrets
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from .schemas import SignUpRequest, UserOut
from .utils import safe_json

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"
PBKDF2_ITERATIONS = 260000


class MissingFieldsError(ValueError):
    pass


class UserAlreadyExistsError(Exception):
    pass


def hash_password(password: str, salt: Optional[str] = None) -> str:
    """Return 'pbkdf2_sha256$<iterations>$<salt>$<hex digest>'."""
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), PBKDF2_ITERATIONS)
    return f"pbkdf2_sha256${PBKDF2_ITERATIONS}${salt}${digest.hex()}"


def ensure_indexes(db: Database) -> None:
    users = db[USERS_COLLECTION]
    users.create_index("username", unique=True)
    users.create_index("email", unique=True)


def normalize_sign_up(payload: SignUpRequest) -> Dict[str, str]:
    fields = {
        "username": (payload.username or "").strip().lower(),
        "email": (payload.email or "").strip().lower(),
        "name": (payload.name or "").strip(),
        "password": payload.password or "",
    }
    if not all(fields.values()):
        raise MissingFieldsError("Missing required fields")
    return fields


def create_user(db: Database, payload: SignUpRequest) -> Dict[str, Any]:
    """
    Insert a new user document.

    Raises MissingFieldsError if any field is blank and UserAlreadyExistsError if the
    username or email is taken.
    """
    fields = normalize_sign_up(payload)
    users = db[USERS_COLLECTION]

    existing = users.find_one({"$or": [{"email": fields["email"]}, {"username": fields["username"]}]})
    if existing:
        raise UserAlreadyExistsError(fields["username"])

    now = datetime.now(timezone.utc)
    doc = {
        "username": fields["username"],
        "email": fields["email"],
        "name": fields["name"],
        "password": hash_password(fields["password"]),
        "last_login": now,
        "created_at": now,
        "updated_at": now,
    }
    try:
        result = users.insert_one(doc)
    except DuplicateKeyError:
        # lost a race with a concurrent sign-up
        raise UserAlreadyExistsError(fields["username"])

    doc["_id"] = result.inserted_id
    logger.info(f"Created user {fields['username']}")
    return doc


def to_user_out(doc: Dict[str, Any]) -> UserOut:
    data = safe_json(doc)
    return UserOut(
        id=data["_id"],
        username=data["username"],
        email=data["email"],
        name=data["name"],
        last_login=data.get("last_login"),
        created_at=data.get("created_at"),
        updated_at=data.get("updated_at"),
    )
