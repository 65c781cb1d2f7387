"""
Directory store: administrators and their shop registrations.

Every shop query carries the owner id in its filter, so a shop owned by
someone else is indistinguishable from one that does not exist.
"""

import hashlib
import hmac
import logging
import secrets
from typing import Any, Dict, List, Optional

from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import create_document, oid_to_str, to_object_id, utcnow
from errors import ValidationFailed
from schemas import AdminUser, ShopCreate, ShopUpdate

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 260_000


def hash_password(password: str, iterations: Optional[int] = None) -> str:
    iterations = iterations or PBKDF2_ITERATIONS
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), iterations).hex()
    return f"pbkdf2_sha256${iterations}${salt}${digest}"


def verify_password(password: str, stored: str) -> bool:
    try:
        algorithm, iterations, salt, digest = stored.split("$")
    except ValueError:
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    candidate = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), int(iterations)).hex()
    return hmac.compare_digest(candidate, digest)


def public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    return {"id": user["id"], "email": user["email"], "name": user["name"]}


class DirectoryStore:
    """Users and owner-scoped shops in the admin panel's own database."""

    def __init__(self, database: Database):
        self.db = database
        self.users = database["users"]
        self.shops = database["shops"]

    # ----- users -----

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        return oid_to_str(self.users.find_one({"_id": oid}))

    def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return oid_to_str(self.users.find_one({"email": email}))

    def create_user(self, email: str, password: str, name: str) -> Dict[str, Any]:
        if self.get_user_by_email(email):
            raise ValidationFailed("User already exists")
        user = AdminUser(email=email, name=name, password=hash_password(password))
        try:
            _, doc = create_document(self.db, "users", user.model_dump(by_alias=True))
        except DuplicateKeyError as e:
            raise ValidationFailed("User already exists") from e
        logger.info("Created administrator %s", email)
        return oid_to_str(doc)

    def authenticate(self, email: str, password: str) -> Optional[Dict[str, Any]]:
        user = self.get_user_by_email(email)
        if not user or not verify_password(password, user.get("password", "")):
            return None
        return user

    # ----- shops -----

    def list_shops(self, owner_id: str) -> List[Dict[str, Any]]:
        cursor = self.shops.find({"ownerId": owner_id}).sort("createdAt", DESCENDING)
        return [oid_to_str(s) for s in cursor]

    def get_shop(self, shop_id: str, owner_id: str) -> Optional[Dict[str, Any]]:
        oid = to_object_id(shop_id)
        if oid is None:
            return None
        return oid_to_str(self.shops.find_one({"_id": oid, "ownerId": owner_id}))

    def create_shop(self, payload: ShopCreate, owner_id: str) -> Dict[str, Any]:
        data = payload.model_dump(by_alias=True, exclude_none=True)
        data["ownerId"] = owner_id
        _, doc = create_document(self.db, "shops", data)
        return oid_to_str(doc)

    def update_shop(self, shop_id: str, payload: ShopUpdate, owner_id: str) -> Optional[Dict[str, Any]]:
        oid = to_object_id(shop_id)
        if oid is None:
            return None
        changes = payload.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)
        changes["updatedAt"] = utcnow()
        doc = self.shops.find_one_and_update(
            {"_id": oid, "ownerId": owner_id},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        return oid_to_str(doc)

    def delete_shop(self, shop_id: str, owner_id: str) -> bool:
        oid = to_object_id(shop_id)
        if oid is None:
            return False
        res = self.shops.delete_one({"_id": oid, "ownerId": owner_id})
        return res.deleted_count > 0
