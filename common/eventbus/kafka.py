from __future__ import annotations

import json
import logging
import threading
from typing import Optional

from confluent_kafka import Producer

from .config import KafkaSettings, load_kafka_settings
from .core import Event
from .helpers import event_to_dict

logger = logging.getLogger(__name__)


class KafkaEventBus:
    """Kafka 기반 이벤트 발행기.

    원장 서비스는 commit 이후의 알림만 발행하고 구독은 하지 않는다.
    메시지 key 는 Event.partition_key 이므로 같은 계정의 이벤트는 같은 파티션에 쌓인다.
    """

    def __init__(self, settings: KafkaSettings, producer: Producer | None = None) -> None:
        self._settings = settings
        self._producer = producer or Producer(settings.producer_config())

    def close(self) -> None:
        remaining = self._producer.flush(10)
        if remaining:
            logger.warning(
                "kafka producer closed with undelivered messages",
                extra={"remaining": remaining, "client_id": self._settings.client_id},
            )

    def publish(self, topic: str, event: Event) -> None:
        value = json.dumps(event_to_dict(event), ensure_ascii=False, default=str)

        def _on_delivery(err, msg) -> None:  # type: ignore[no-untyped-def]
            if err is not None:
                logger.error(
                    "failed to deliver ledger event",
                    extra={"topic": msg.topic(), "event_id": event.id, "error": str(err)},
                )

        self._producer.produce(
            topic=topic,
            value=value.encode("utf-8"),
            key=event.partition_key.encode("utf-8"),
            callback=_on_delivery,
        )
        self._producer.poll(0)


_bus: Optional[KafkaEventBus] = None
_lock = threading.Lock()


def get_kafka_event_bus() -> KafkaEventBus:
    """프로세스 전역 KafkaEventBus 싱글톤을 반환한다."""

    global _bus

    if _bus is not None:
        return _bus

    with _lock:
        if _bus is None:
            settings = load_kafka_settings()
            _bus = KafkaEventBus(settings)
            logger.info(
                "kafka producer initialised", extra={"client_id": settings.client_id}
            )
        return _bus


def close_kafka_event_bus() -> None:
    """남은 메시지를 flush 하고 싱글톤을 해제한다."""

    global _bus

    with _lock:
        if _bus is not None:
            _bus.close()
            _bus = None
