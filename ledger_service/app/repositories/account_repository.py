from __future__ import annotations

from datetime import datetime

from pymongo import ReturnDocument
from pymongo.client_session import ClientSession
from pymongo.database import Database

from common.models.account import Account

from .documents.account_document import AccountDocument
from .interfaces import AccountRepositoryInterface


class AccountRepository(AccountRepositoryInterface):
    """accounts 컬렉션에 대한 MongoDB 접근 레이어.

    session 이 주어지면 모든 읽기/쓰기가 해당 트랜잭션에 참여한다.
    """

    def __init__(self, database: Database, session: ClientSession | None = None) -> None:
        self._db = database
        self._col = database["accounts"]
        self._session = session

    @staticmethod
    def _from_document(doc: dict) -> Account:
        return AccountDocument.model_validate(doc).to_domain()

    def find_by_account_id(self, account_id: str) -> Account | None:
        doc = self._col.find_one({"account_id": account_id}, session=self._session)
        if not doc:
            return None
        return self._from_document(doc)

    def insert(self, account: Account) -> Account:
        payload = AccountDocument.from_domain(account).to_mongo_record()
        self._col.insert_one(payload, session=self._session)
        return self._from_document(payload)

    def _update_balance(self, flt: dict, update: dict) -> int | None:
        doc = self._col.find_one_and_update(
            flt,
            update,
            projection={"balance": 1},
            return_document=ReturnDocument.AFTER,
            session=self._session,
        )
        if not doc:
            return None
        return int(doc["balance"])

    def increment_balance(self, account_id: str, amount: int, now: datetime) -> int | None:
        return self._update_balance(
            {"account_id": account_id},
            {"$inc": {"balance": amount}, "$set": {"updated_at": now}},
        )

    def spend_balance(self, account_id: str, amount: int, now: datetime) -> int | None:
        return self._update_balance(
            {"account_id": account_id, "balance": {"$gte": amount}},
            {"$inc": {"balance": -amount}, "$set": {"updated_at": now}},
        )

    def claim_cooldown(
        self,
        account_id: str,
        cooldown_key: str,
        amount: int,
        now: datetime,
        cutoff: datetime,
    ) -> int | None:
        field = f"cooldowns.{cooldown_key}"
        # {field: None} 은 필드가 없거나 null 인 경우 모두 매칭된다.
        return self._update_balance(
            {
                "account_id": account_id,
                "$or": [{field: None}, {field: {"$lte": cutoff}}],
            },
            {
                "$inc": {"balance": amount},
                "$set": {field: now, "updated_at": now},
            },
        )

    def list_top_by_balance(self, limit: int) -> list[Account]:
        cursor = self._col.find(
            {},
            sort=[("balance", -1), ("_id", 1)],
            limit=limit,
            session=self._session,
        )
        return [self._from_document(doc) for doc in cursor]
