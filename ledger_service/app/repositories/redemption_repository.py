from __future__ import annotations

from datetime import datetime

from pymongo import ReturnDocument
from pymongo.client_session import ClientSession
from pymongo.database import Database

from common.mongo.types import from_object_id, is_object_id, to_object_id

from .documents.redemption_document import RedemptionDocument
from .interfaces import RedemptionRepositoryInterface
from ..models.reward import RedemptionRecord, RedemptionStatus


class RedemptionRepository(RedemptionRepositoryInterface):
    """redemptions 컬렉션에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database, session: ClientSession | None = None) -> None:
        self._db = database
        self._col = database["redemptions"]
        self._session = session

    @staticmethod
    def _from_document(doc: dict) -> RedemptionRecord:
        return RedemptionDocument.model_validate(doc).to_domain()

    def insert(self, record: RedemptionRecord) -> RedemptionRecord:
        payload = RedemptionDocument.from_domain(record).to_mongo_record()
        result = self._col.insert_one(payload, session=self._session)
        return record.model_copy(update={"id": from_object_id(result.inserted_id)})

    def find_by_id(self, redemption_id: str) -> RedemptionRecord | None:
        if not is_object_id(redemption_id):
            return None
        doc = self._col.find_one(
            {"_id": to_object_id(redemption_id)}, session=self._session
        )
        if not doc:
            return None
        return self._from_document(doc)

    def mark_redeemed(
        self, redemption_id: str, actor_account_id: str, now: datetime
    ) -> RedemptionRecord | None:
        if not is_object_id(redemption_id):
            return None
        doc = self._col.find_one_and_update(
            {
                "_id": to_object_id(redemption_id),
                "status": str(RedemptionStatus.PENDING),
            },
            {
                "$set": {
                    "status": str(RedemptionStatus.REDEEMED),
                    "redeemed_at": now,
                    "redeemed_by": actor_account_id,
                    "updated_at": now,
                }
            },
            return_document=ReturnDocument.AFTER,
            session=self._session,
        )
        if not doc:
            return None
        return self._from_document(doc)

    def _paginate(
        self, flt: dict, page: int, page_size: int
    ) -> tuple[list[RedemptionRecord], int]:
        if page <= 0:
            page = 1
        if page_size <= 0 or page_size > 100:
            page_size = 20

        total = self._col.count_documents(flt, session=self._session)
        cursor = self._col.find(
            flt,
            sort=[("created_at", -1), ("_id", -1)],
            skip=(page - 1) * page_size,
            limit=page_size,
            session=self._session,
        )
        return [self._from_document(raw) for raw in cursor], total

    def list_by_account(
        self, account_id: str, page: int, page_size: int
    ) -> tuple[list[RedemptionRecord], int]:
        return self._paginate({"account_id": account_id}, page, page_size)

    def list(
        self, status: RedemptionStatus | None, page: int, page_size: int
    ) -> tuple[list[RedemptionRecord], int]:
        flt = {"status": str(status)} if status is not None else {}
        return self._paginate(flt, page, page_size)
