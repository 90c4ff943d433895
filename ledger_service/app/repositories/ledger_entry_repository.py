"""원장 엔트리 레포지토리 구현체 (Activity Log).

엔트리는 append-only 이며 수정/삭제 메서드를 제공하지 않는다.
"""

from __future__ import annotations

from pymongo.client_session import ClientSession
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from common.mongo.types import from_object_id

from .documents.ledger_entry_document import LedgerEntryDocument
from .interfaces import LedgerEntryRepositoryInterface
from ..exceptions import AlreadyClaimedError
from ..models.ledger import LedgerEntry


class LedgerEntryRepository(LedgerEntryRepositoryInterface):
    """ledger_entries 컬렉션에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database, session: ClientSession | None = None) -> None:
        self._db = database
        self._col = database["ledger_entries"]
        self._session = session

    def exists_by_key(self, account_id: str, action_key: str) -> bool:
        doc = self._col.find_one(
            {"account_id": account_id, "action_key": action_key, "idempotent": True},
            projection={"_id": 1},
            session=self._session,
        )
        return doc is not None

    def insert(self, entry: LedgerEntry) -> LedgerEntry:
        payload = LedgerEntryDocument.from_domain(entry).to_mongo_record()
        try:
            result = self._col.insert_one(payload, session=self._session)
        except DuplicateKeyError as exc:
            # uniq_idempotent_action 충돌: 다른 요청이 먼저 같은 키로 지급받음
            raise AlreadyClaimedError(entry.account_id, entry.action_key) from exc
        return entry.model_copy(update={"id": from_object_id(result.inserted_id)})

    def list_by_account(
        self, account_id: str, page: int, page_size: int
    ) -> tuple[list[LedgerEntry], int]:
        """계정의 원장 이력 조회 (최신순)."""
        if page <= 0:
            page = 1
        if page_size <= 0 or page_size > 100:
            page_size = 20

        skip = (page - 1) * page_size

        total = self._col.count_documents({"account_id": account_id}, session=self._session)
        cursor = self._col.find(
            {"account_id": account_id},
            sort=[("created_at", -1), ("_id", -1)],
            skip=skip,
            limit=page_size,
            session=self._session,
        )

        items: list[LedgerEntry] = []
        for raw in cursor:
            items.append(LedgerEntryDocument.model_validate(raw).to_domain())

        return items, total
