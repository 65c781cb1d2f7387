"""
Catalog connector for shop-owned MongoDB databases.

Each shop stores its categories and products in its own database, identified
entirely by the connection string saved on the shop record. Every operation
opens a fresh client for that string, runs one round trip, and closes the
client again whether or not the operation succeeded. Nothing is cached or
mirrored locally.

Usage:
    connector = CatalogConnector(timeout_ms=5000)
    categories = connector.list_categories(shop["mongodbUri"])
    rings = connector.list_products(shop["mongodbUri"], category="Rings")
"""

import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional

from pymongo import ASCENDING, MongoClient, ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

from config import DEFAULT_SHOP_DATABASE
from database import database_name_from_uri, oid_to_str, redact_uri, to_object_id
from errors import UpstreamUnavailable
from schemas import ProductCreate, ProductUpdate

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "all"

CATEGORIES = "categories"
PRODUCTS = "products"


class CatalogConnector:
    """
    Runs catalog CRUD against a shop's external database.

    Attributes:
        client_factory: Callable building a client from (uri, **options)
        timeout_ms: Server selection / connect / socket timeout per client
    """

    def __init__(self, client_factory: Callable[..., MongoClient] = MongoClient, timeout_ms: int = 5000):
        self.client_factory = client_factory
        self.timeout_ms = timeout_ms

    @contextmanager
    def shop_database(self, uri: str) -> Iterator[Database]:
        """
        Open the shop database named by `uri` for the duration of the block.

        Any driver failure, including a malformed connection string, is
        re-raised as UpstreamUnavailable. The client is always closed.
        """
        name = database_name_from_uri(uri, DEFAULT_SHOP_DATABASE)
        try:
            client = self.client_factory(
                uri,
                serverSelectionTimeoutMS=self.timeout_ms,
                connectTimeoutMS=self.timeout_ms,
                socketTimeoutMS=self.timeout_ms,
            )
        except (PyMongoError, ValueError) as e:
            logger.error("Invalid shop connection string for %s: %s", redact_uri(uri), type(e).__name__)
            raise UpstreamUnavailable() from e

        logger.debug("Connecting to shop database %r on %s", name, redact_uri(uri))
        try:
            yield client.get_database(name)
        except PyMongoError as e:
            logger.error("Shop database %r on %s failed: %s", name, redact_uri(uri), e)
            raise UpstreamUnavailable() from e
        finally:
            client.close()

    # ----- categories -----

    def list_categories(self, uri: str) -> List[Dict[str, Any]]:
        with self.shop_database(uri) as db:
            cursor = db.get_collection(CATEGORIES).find().sort("displayOrder", ASCENDING)
            return [oid_to_str(c) for c in cursor]

    # ----- products -----

    def list_products(self, uri: str, category: Optional[str] = None) -> List[Dict[str, Any]]:
        query = {"category": category} if category and category != ALL_CATEGORIES else {}
        with self.shop_database(uri) as db:
            cursor = db.get_collection(PRODUCTS).find(query).sort("displayOrder", ASCENDING)
            return [oid_to_str(p) for p in cursor]

    def get_product(self, uri: str, product_id: str) -> Optional[Dict[str, Any]]:
        oid = to_object_id(product_id)
        if oid is None:
            return None
        with self.shop_database(uri) as db:
            return oid_to_str(db.get_collection(PRODUCTS).find_one({"_id": oid}))

    def create_product(self, uri: str, payload: ProductCreate) -> Dict[str, Any]:
        # Defaults (tags, featured, inStock, displayOrder) come from the model
        doc = payload.model_dump(by_alias=True, exclude_none=True)
        with self.shop_database(uri) as db:
            result = db.get_collection(PRODUCTS).insert_one(doc)
        doc["_id"] = result.inserted_id
        return oid_to_str(doc)

    def update_product(self, uri: str, product_id: str, payload: ProductUpdate) -> Optional[Dict[str, Any]]:
        """Partial merge: only fields present in the payload are written."""
        oid = to_object_id(product_id)
        if oid is None:
            return None
        changes = payload.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)
        with self.shop_database(uri) as db:
            products = db.get_collection(PRODUCTS)
            if not changes:
                return oid_to_str(products.find_one({"_id": oid}))
            doc = products.find_one_and_update(
                {"_id": oid},
                {"$set": changes},
                return_document=ReturnDocument.AFTER,
            )
            return oid_to_str(doc)

    def delete_product(self, uri: str, product_id: str) -> bool:
        oid = to_object_id(product_id)
        if oid is None:
            return False
        with self.shop_database(uri) as db:
            return db.get_collection(PRODUCTS).delete_one({"_id": oid}).deleted_count > 0
