from __future__ import annotations

import os
from dataclasses import dataclass


KAFKA_BOOTSTRAP_SERVERS_ENV = "KAFKA_BOOTSTRAP_SERVERS"
KAFKA_MESSAGE_MAX_BYTES_ENV = "KAFKA_MESSAGE_MAX_BYTES"
KAFKA_CLIENT_ID_ENV = "KAFKA_CLIENT_ID"

DEFAULT_CLIENT_ID = "kabayan-hub-ledger"


@dataclass(frozen=True, slots=True)
class KafkaSettings:
    brokers: str
    client_id: str = DEFAULT_CLIENT_ID
    message_max_bytes: int | None = None

    def producer_config(self) -> dict[str, object]:
        conf: dict[str, object] = {
            "bootstrap.servers": self.brokers,
            "client.id": self.client_id,
            # 재전송으로 같은 원장 이벤트가 중복 기록되지 않도록 한다.
            "enable.idempotence": True,
        }
        if self.message_max_bytes is not None:
            conf["message.max.bytes"] = self.message_max_bytes
        return conf


def is_enabled() -> bool:
    """KAFKA_BOOTSTRAP_SERVERS 가 설정된 경우에만 이벤트 발행을 켠다."""
    return bool(os.getenv(KAFKA_BOOTSTRAP_SERVERS_ENV, "").strip())


def _message_max_bytes() -> int | None:
    """비어 있거나 0 이하이면 None(라이브러리 기본값). 정수가 아니면 설정 오류."""

    raw_value = os.getenv(KAFKA_MESSAGE_MAX_BYTES_ENV, "").strip()
    if not raw_value:
        return None

    try:
        value = int(raw_value)
    except ValueError as exc:  # noqa: TRY003
        raise RuntimeError(
            f"{KAFKA_MESSAGE_MAX_BYTES_ENV} must be an integer value, got: {raw_value!r}"
        ) from exc

    return value if value > 0 else None


def load_kafka_settings() -> KafkaSettings:
    brokers = os.getenv(KAFKA_BOOTSTRAP_SERVERS_ENV, "").strip()
    if not brokers:
        raise RuntimeError(
            f"{KAFKA_BOOTSTRAP_SERVERS_ENV} environment variable is required"
        )
    return KafkaSettings(
        brokers=brokers,
        client_id=os.getenv(KAFKA_CLIENT_ID_ENV, "").strip() or DEFAULT_CLIENT_ID,
        message_max_bytes=_message_max_bytes(),
    )
