from __future__ import annotations

from dataclasses import dataclass
from typing import Any


# 다운스트림 컨슈머가 재시도할 수 있는 최대 횟수. max_retry 의 상한이자 기본값.
MAX_RETRY = 5


@dataclass(slots=True)
class Event:
    """Kafka 메시지 envelope.

    - payload 는 JSON 직렬화 가능한 dict 이고, 인코딩은 Kafka I/O 레이어가 맡는다.
    - key 는 파티션 키다. 원장 이벤트는 account_id 를 써서 계정 단위 순서를 보장한다.
      비어 있으면 id 를 키로 사용한다.
    """

    id: str
    payload: Any
    retry: int = 0
    max_retry: int = 0
    key: str | None = None

    def __post_init__(self) -> None:
        if self.max_retry <= 0 or self.max_retry > MAX_RETRY:
            self.max_retry = MAX_RETRY

    @property
    def partition_key(self) -> str:
        return self.key or self.id


@dataclass(frozen=True, slots=True)
class Topic:
    base: str
