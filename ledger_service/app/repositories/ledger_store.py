"""MongoDB 기반 원장 저장소 (트랜잭션 경계).

각 원장 연산은 MongoDB 멀티 도큐먼트 트랜잭션 하나로 실행된다.
snapshot read concern 이므로 같은 계정/아이템을 동시에 바꾸려는 트랜잭션 중 하나는
WriteConflict 로 실패하고, 이는 ContentionError 로 호출자에게 전달된다.
재시도는 하지 않는다 (모든 연산이 키 기준으로 멱등이라 호출자가 안전하게 재시도할 수 있다).
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from fastapi import Depends
from pymongo import MongoClient
from pymongo.client_session import ClientSession
from pymongo.database import Database
from pymongo.errors import OperationFailure, PyMongoError
from pymongo.read_concern import ReadConcern
from pymongo.read_preferences import ReadPreference
from pymongo.write_concern import WriteConcern

from common.mongo.client import get_client, get_database
from common.mongo.config import get_max_commit_time_ms

from .account_repository import AccountRepository
from .interfaces import LedgerStoreInterface
from .ledger_entry_repository import LedgerEntryRepository
from .redemption_repository import RedemptionRepository
from .reward_item_repository import RewardItemRepository
from ..exceptions import ContentionError


logger = logging.getLogger(__name__)

WRITE_CONFLICT_CODE = 112
CONTENTION_LABELS = ("TransientTransactionError", "UnknownTransactionCommitResult")


def is_contention_error(exc: PyMongoError) -> bool:
    """재시도로 해결될 수 있는 트랜잭션 충돌인지 판별한다."""

    if any(exc.has_error_label(label) for label in CONTENTION_LABELS):
        return True
    return isinstance(exc, OperationFailure) and exc.code == WRITE_CONFLICT_CODE


class MongoLedgerUnitOfWork:
    """같은 session 을 공유하는 레포지토리 묶음."""

    def __init__(self, database: Database, session: ClientSession | None = None) -> None:
        self.accounts = AccountRepository(database, session)
        self.items = RewardItemRepository(database, session)
        self.entries = LedgerEntryRepository(database, session)
        self.redemptions = RedemptionRepository(database, session)


class MongoLedgerStore(LedgerStoreInterface):
    def __init__(
        self,
        client: MongoClient,
        database: Database,
        max_commit_time_ms: int | None = None,
    ) -> None:
        self._client = client
        self._db = database
        self._max_commit_time_ms = max_commit_time_ms

    @contextmanager
    def transaction(self) -> Iterator[MongoLedgerUnitOfWork]:
        with self._client.start_session() as session:
            try:
                # 정상 종료 시 commit, 예외 시 abort 후 예외를 그대로 전파한다.
                with session.start_transaction(
                    read_concern=ReadConcern("snapshot"),
                    write_concern=WriteConcern("majority"),
                    read_preference=ReadPreference.PRIMARY,
                    max_commit_time_ms=self._max_commit_time_ms,
                ):
                    yield MongoLedgerUnitOfWork(self._db, session)
            except PyMongoError as exc:
                if is_contention_error(exc):
                    logger.warning("ledger transaction aborted by contention: %s", exc)
                    raise ContentionError(
                        "concurrent update detected, retry the request"
                    ) from exc
                raise

    @contextmanager
    def reader(self) -> Iterator[MongoLedgerUnitOfWork]:
        yield MongoLedgerUnitOfWork(self._db)


def get_ledger_store(
    db: Database = Depends(get_database),
) -> LedgerStoreInterface:
    """FastAPI DI용 LedgerStore 팩토리."""

    return MongoLedgerStore(get_client(), db, get_max_commit_time_ms())
