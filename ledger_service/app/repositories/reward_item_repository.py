from __future__ import annotations

from datetime import datetime
from typing import Any

from pymongo import ReturnDocument
from pymongo.client_session import ClientSession
from pymongo.database import Database

from common.mongo.types import is_object_id, to_object_id

from .documents.reward_item_document import RewardItemDocument
from .interfaces import RewardItemRepositoryInterface
from ..models.reward import RewardItem


class RewardItemRepository(RewardItemRepositoryInterface):
    """reward_items 컬렉션에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database, session: ClientSession | None = None) -> None:
        self._db = database
        self._col = database["reward_items"]
        self._session = session

    @staticmethod
    def _from_document(doc: dict) -> RewardItem:
        return RewardItemDocument.model_validate(doc).to_domain()

    def find_by_id(self, item_id: str) -> RewardItem | None:
        if not is_object_id(item_id):
            return None
        doc = self._col.find_one({"_id": to_object_id(item_id)}, session=self._session)
        if not doc:
            return None
        return self._from_document(doc)

    def insert(self, item: RewardItem) -> RewardItem:
        payload = RewardItemDocument.from_domain(item).to_mongo_record()
        result = self._col.insert_one(payload, session=self._session)
        payload["_id"] = result.inserted_id
        return self._from_document(payload)

    def update_fields(
        self, item_id: str, updates: dict[str, Any], now: datetime
    ) -> RewardItem | None:
        if not is_object_id(item_id):
            return None
        doc = self._col.find_one_and_update(
            {"_id": to_object_id(item_id)},
            {"$set": {**updates, "updated_at": now}},
            return_document=ReturnDocument.AFTER,
            session=self._session,
        )
        if not doc:
            return None
        return self._from_document(doc)

    def delete(self, item_id: str) -> bool:
        if not is_object_id(item_id):
            return False
        result = self._col.delete_one({"_id": to_object_id(item_id)}, session=self._session)
        return result.deleted_count > 0

    def decrement_stock(self, item_id: str, now: datetime) -> int | None:
        if not is_object_id(item_id):
            return None
        doc = self._col.find_one_and_update(
            {"_id": to_object_id(item_id), "stock": {"$gt": 0}},
            {"$inc": {"stock": -1}, "$set": {"updated_at": now}},
            projection={"stock": 1},
            return_document=ReturnDocument.AFTER,
            session=self._session,
        )
        if not doc:
            return None
        return int(doc["stock"])

    def set_stock(self, item_id: str, stock: int | None, now: datetime) -> RewardItem | None:
        if not is_object_id(item_id):
            return None
        doc = self._col.find_one_and_update(
            {"_id": to_object_id(item_id)},
            {"$set": {"stock": stock, "updated_at": now}},
            return_document=ReturnDocument.AFTER,
            session=self._session,
        )
        if not doc:
            return None
        return self._from_document(doc)

    def list(self, page: int, page_size: int) -> tuple[list[RewardItem], int]:
        if page <= 0:
            page = 1
        if page_size <= 0 or page_size > 100:
            page_size = 20

        skip = (page - 1) * page_size

        total = self._col.count_documents({}, session=self._session)
        cursor = self._col.find(
            {},
            sort=[("created_at", -1), ("_id", -1)],
            skip=skip,
            limit=page_size,
            session=self._session,
        )
        return [self._from_document(raw) for raw in cursor], total
