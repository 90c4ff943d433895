from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Annotated

from pydantic.functional_serializers import PlainSerializer


def utcnow() -> datetime:
    """tz-aware UTC 현재 시각. 서비스 clock 기본값으로 사용한다."""
    return datetime.now(timezone.utc)


def to_utc(value: datetime) -> datetime:
    # naive 값은 UTC 로 저장된 것으로 본다 (pymongo 기본 동작).
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def coerce_utc_datetime(value: Any) -> Any:
    """검증기용. ISO8601 문자열도 받아 UTC datetime 으로 바꾸고, 그 밖의 값은 그대로 둔다."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if isinstance(value, datetime):
        return to_utc(value)
    return value


def to_utc_iso8601(value: datetime) -> str:
    return to_utc(value).isoformat()


# 응답 스키마 전용. JSON 모드에서만 문자열이 된다.
UtcDateTime = Annotated[
    datetime,
    PlainSerializer(to_utc_iso8601, return_type=str, when_used="json"),
]
