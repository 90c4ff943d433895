from __future__ import annotations

import logging
import threading
from typing import Optional, cast

from pymongo import ASCENDING, DESCENDING, IndexModel, MongoClient
from pymongo.database import Database

from .config import get_mongo_db_name, get_mongo_uri


logger = logging.getLogger(__name__)


_client: Optional[MongoClient] = None
_db: Optional[Database] = None
_lock = threading.Lock()


def get_client() -> MongoClient:
    """전역 MongoClient 싱글톤을 반환한다.

    - MONGO_URI 에서 URI 를 읽어온다.
    - ping 으로 연결을 검증한다.
    - 원장 컬렉션에 필요한 인덱스를 한 번만 생성한다.
    """

    global _client, _db

    if _client is not None:
        return _client

    with _lock:
        if _client is not None:
            return _client

        uri = get_mongo_uri()
        # tz_aware: cooldown 계산 시 naive/aware datetime 비교 에러를 막는다.
        client: MongoClient = MongoClient(uri, tz_aware=True)

        try:
            client.admin.command("ping")
        except Exception as exc:  # noqa: BLE001
            client.close()
            raise RuntimeError(f"failed to connect to MongoDB: {exc}") from exc

        db_name = get_mongo_db_name()
        try:
            if db_name:
                db = client[db_name]
            else:
                db = client.get_default_database()
        except Exception as exc:  # noqa: BLE001
            client.close()
            raise RuntimeError(
                "MongoDB database name must be specified via MONGO_DB_NAME or in MONGO_URI (mongodb://.../db_name)",
            ) from exc

        try:
            ensure_indexes(db)
        except Exception as exc:  # noqa: BLE001
            logger.error("failed to ensure MongoDB indexes: %s", exc)
            client.close()
            raise

        _client = client
        _db = db

        safe_db = cast(Database, _db)
        logger.info("MongoDB connected and indexes ensured (db=%s)", safe_db.name)
        return _client


def get_database() -> Database:
    """전역 기본 Database 객체를 반환한다."""

    global _db

    if _db is None:
        get_client()
    assert _db is not None
    return _db


def ensure_indexes(db: Database) -> None:
    """원장 컬렉션의 필수 인덱스를 생성한다.

    트랜잭션 안에서는 컬렉션/인덱스를 만들 수 없으므로 기동 시점에 미리 만든다.
    중복 생성해도 MongoDB 가 처리하므로 idempotent 하다.
    """

    db["accounts"].create_indexes(
        [
            IndexModel(
                [("account_id", ASCENDING)],
                name="uniq_account_id",
                unique=True,
            ),
            IndexModel(
                [("balance", DESCENDING), ("_id", ASCENDING)],
                name="idx_balance_desc",
            ),
        ]
    )

    # 멱등 액션(news_read:<id> 등)만 (account_id, action_key) 유니크.
    # cooldown/redeem 엔트리는 같은 키가 반복되므로 부분 인덱스로 제외한다.
    db["ledger_entries"].create_indexes(
        [
            IndexModel(
                [("account_id", ASCENDING), ("action_key", ASCENDING)],
                name="uniq_idempotent_action",
                unique=True,
                partialFilterExpression={"idempotent": True},
            ),
            IndexModel(
                [("account_id", ASCENDING), ("created_at", DESCENDING)],
                name="idx_account_created_at",
            ),
        ]
    )

    db["redemptions"].create_indexes(
        [
            IndexModel(
                [("account_id", ASCENDING), ("created_at", DESCENDING)],
                name="idx_account_created_at",
            ),
            IndexModel(
                [("status", ASCENDING), ("created_at", DESCENDING)],
                name="idx_status_created_at",
            ),
        ]
    )

    db["reward_items"].create_index(
        [("created_at", DESCENDING)],
        name="idx_created_at_desc",
    )
