"""
MongoDB access for PlantNet

PlantStore wraps the ``users``, ``plants`` and ``orders`` collections of one
database. It is opened once by the application lifespan and handed to route
handlers through a dependency, so tests can swap in a store backed by any
pymongo-compatible client.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from bson import ObjectId
from pymongo import MongoClient, ReturnDocument
from pymongo.results import DeleteResult, InsertOneResult, UpdateResult

logger = logging.getLogger(__name__)

DELIVERED = "Delivered"
REQUESTED = "Requested"


class OrderAlreadyDelivered(Exception):
    pass


class StatusAlreadyRequested(Exception):
    pass


def customer_orders_pipeline(email: str) -> List[dict]:
    """Orders of one customer joined with the plant they reference.

    ``plantId`` is stored as a string, so it is converted to an ObjectId before
    the lookup. The plant's name, image and category are copied onto the order
    and the joined sub-document is dropped.
    """
    return [
        {"$match": {"customer.email": email}},
        {"$addFields": {"plantId": {"$toObjectId": "$plantId"}}},
        {
            "$lookup": {
                "from": "plants",
                "localField": "plantId",
                "foreignField": "_id",
                "as": "plants",
            }
        },
        {"$unwind": "$plants"},
        {
            "$addFields": {
                "name": "$plants.name",
                "image": "$plants.image",
                "category": "$plants.category",
            }
        },
        {"$project": {"plants": 0}},
    ]


class PlantStore:
    def __init__(self, client: MongoClient, database_name: str):
        self.client = client
        self.db = client[database_name]
        self.users = self.db["users"]
        self.plants = self.db["plants"]
        self.orders = self.db["orders"]

    @classmethod
    def connect(cls, database_url: str, database_name: str) -> "PlantStore":
        return cls(MongoClient(database_url), database_name)

    def ping(self) -> dict:
        return self.client.admin.command("ping")

    def ensure_indexes(self) -> None:
        # Concurrent first sign-ins for one email must not create two users.
        self.users.create_index("email", unique=True)

    def close(self) -> None:
        self.client.close()

    # Users

    def upsert_user(self, email: str, profile: dict) -> dict:
        doc = {k: v for k, v in profile.items() if k != "email"}
        doc.update({"role": "customer", "timestamp": datetime.now(timezone.utc)})
        return self.users.find_one_and_update(
            {"email": email},
            {"$setOnInsert": doc},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )

    def request_status_change(self, email: str) -> UpdateResult:
        result = self.users.update_one(
            {"email": email, "status": {"$ne": REQUESTED}},
            {"$set": {"status": REQUESTED}},
        )
        # Nothing matched: either no such user or a request is already pending.
        if result.matched_count == 0:
            raise StatusAlreadyRequested(email)
        return result

    def get_user_role(self, email: str) -> Optional[str]:
        user = self.users.find_one({"email": email}, {"role": 1})
        return user.get("role") if user else None

    def update_user_role(self, email: str, role: str) -> UpdateResult:
        return self.users.update_one(
            {"email": email},
            {"$set": {"role": role}, "$unset": {"status": ""}},
        )

    # Plants

    def insert_plant(self, plant: dict) -> InsertOneResult:
        return self.plants.insert_one(plant)

    def get_plant(self, plant_id: str) -> Optional[dict]:
        return self.plants.find_one({"_id": ObjectId(plant_id)})

    def list_plants(self) -> List[dict]:
        return list(self.plants.find())

    def adjust_plant_quantity(self, plant_id: str, delta: int, status: Optional[str] = None) -> UpdateResult:
        # No floor: over-decrementing leaves a negative quantity.
        amount = delta if status == "increase" else -delta
        return self.plants.update_one({"_id": ObjectId(plant_id)}, {"$inc": {"quantity": amount}})

    # Orders

    def insert_order(self, order: dict) -> InsertOneResult:
        return self.orders.insert_one(order)

    def get_order(self, order_id: str) -> Optional[dict]:
        return self.orders.find_one({"_id": ObjectId(order_id)})

    def list_customer_orders(self, email: str) -> List[dict]:
        return list(self.orders.aggregate(customer_orders_pipeline(email)))

    def delete_order(self, order_id: str) -> DeleteResult:
        oid = ObjectId(order_id)
        result = self.orders.delete_one({"_id": oid, "status": {"$ne": DELIVERED}})
        if result.deleted_count == 0 and self.orders.find_one({"_id": oid}, {"_id": 1}):
            raise OrderAlreadyDelivered(order_id)
        return result
