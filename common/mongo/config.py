from __future__ import annotations

import os


MONGO_URI_ENV = "MONGO_URI"
MONGO_DB_NAME_ENV = "MONGO_DB_NAME"
MONGO_MAX_COMMIT_TIME_MS_ENV = "MONGO_MAX_COMMIT_TIME_MS"

DEFAULT_MAX_COMMIT_TIME_MS = 5000


def get_mongo_uri() -> str:
    """MongoDB 연결에 사용할 URI를 반환한다.

    원장 트랜잭션은 레플리카셋에서만 동작하므로 URI 는 레플리카셋(또는 mongos)을
    가리켜야 한다. 설정되지 않은 경우 즉시 실패하도록 RuntimeError를 발생시킨다.
    """

    value = os.getenv(MONGO_URI_ENV)
    if not value:
        raise RuntimeError(
            f"{MONGO_URI_ENV} environment variable is required for MongoDB",
        )
    return value


def get_mongo_db_name() -> str | None:
    """MONGO_DB_NAME 이 있으면 그 값을, 없으면 None(URI 기본 DB 사용)을 반환한다."""

    value = os.getenv(MONGO_DB_NAME_ENV, "").strip()
    return value or None


def get_max_commit_time_ms() -> int:
    """트랜잭션 commit 대기 상한(ms). 잘못된 값은 설정 오류로 간주한다."""

    raw_value = os.getenv(MONGO_MAX_COMMIT_TIME_MS_ENV, "").strip()
    if not raw_value:
        return DEFAULT_MAX_COMMIT_TIME_MS

    try:
        value = int(raw_value)
    except ValueError as exc:  # noqa: TRY003
        raise RuntimeError(
            f"{MONGO_MAX_COMMIT_TIME_MS_ENV} must be an integer value, got: {raw_value!r}"
        ) from exc

    if value <= 0:
        return DEFAULT_MAX_COMMIT_TIME_MS
    return value
