from __future__ import annotations

import uuid
from typing import Any, Mapping

from .core import Event


def new_json_event(
    payload: Mapping[str, Any],
    *,
    key: str | None = None,
    max_retry: int | None = None,
    event_id: str | None = None,
) -> Event:
    """payload 를 JSON 이벤트 envelope 으로 감싼다.

    event_id 가 비어 있으면 uuid4 를 사용한다. max_retry 범위 보정은 Event 가 한다.
    """
    return Event(
        id=event_id or str(uuid.uuid4()),
        payload=dict(payload),
        retry=0,
        max_retry=max_retry or 0,
        key=key,
    )


def event_to_dict(event: Event) -> dict[str, Any]:
    """Kafka 메시지 value 로 보낼 dict. 파티션 키는 메시지 key 로만 전달한다."""
    return {
        "id": event.id,
        "payload": event.payload,
        "retry": event.retry,
        "max_retry": event.max_retry,
    }
