"""원장 이벤트 발행기.

트랜잭션 commit 이후 서비스 레이어에서 호출된다.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import asdict
from typing import Protocol

from common.eventbus.config import is_enabled
from common.eventbus.helpers import new_json_event
from common.eventbus.kafka import KafkaEventBus, get_kafka_event_bus
from common.eventbus.topics import TOPIC_LEDGER
from common.events.ledger import (
    ItemRedeemedEvent,
    LedgerEventType,
    PointsAwardedEvent,
    RedemptionFulfilledEvent,
)
from common.types.datetime import to_utc_iso8601

from ..models.ledger import AwardResult
from ..models.reward import RedeemResult, RedemptionRecord


logger = logging.getLogger(__name__)

EVENT_SOURCE = "ledger-service"
EVENT_VERSION = "1.0"


class LedgerEventPublisherInterface(Protocol):
    def points_awarded(self, result: AwardResult) -> None:  # pragma: no cover - Protocol
        ...

    def item_redeemed(self, result: RedeemResult) -> None:  # pragma: no cover - Protocol
        ...

    def redemption_fulfilled(
        self, record: RedemptionRecord
    ) -> None:  # pragma: no cover - Protocol
        ...


class KafkaLedgerEventPublisher(LedgerEventPublisherInterface):
    """TOPIC_LEDGER 로 JSON 이벤트를 발행한다."""

    def __init__(self, bus: KafkaEventBus) -> None:
        self._bus = bus

    def _publish(self, event_id: str, account_id: str, payload: object) -> None:
        wrapped = new_json_event(
            asdict(payload), key=account_id, event_id=event_id  # type: ignore[call-overload]
        )
        self._bus.publish(TOPIC_LEDGER.base, wrapped)
        logger.debug(
            "ledger event queued",
            extra={"event_id": event_id, "account_id": account_id, "topic": TOPIC_LEDGER.base},
        )

    def points_awarded(self, result: AwardResult) -> None:
        event_id = str(uuid.uuid4())
        entry = result.entry
        self._publish(
            event_id,
            entry.account_id,
            PointsAwardedEvent(
                id=event_id,
                type=LedgerEventType.POINTS_AWARDED,
                timestamp=to_utc_iso8601(entry.created_at),
                source=EVENT_SOURCE,
                version=EVENT_VERSION,
                account_id=entry.account_id,
                action_key=entry.action_key,
                amount=entry.amount,
                balance=result.balance,
            ),
        )

    def item_redeemed(self, result: RedeemResult) -> None:
        event_id = str(uuid.uuid4())
        record = result.record
        self._publish(
            event_id,
            record.account_id,
            ItemRedeemedEvent(
                id=event_id,
                type=LedgerEventType.ITEM_REDEEMED,
                timestamp=to_utc_iso8601(record.created_at),
                source=EVENT_SOURCE,
                version=EVENT_VERSION,
                redemption_id=record.id or "",
                account_id=record.account_id,
                item_id=record.item_id,
                item_title=record.item_title,
                price=record.price,
                balance=result.balance,
                remaining_stock=result.remaining_stock,
            ),
        )

    def redemption_fulfilled(self, record: RedemptionRecord) -> None:
        event_id = str(uuid.uuid4())
        self._publish(
            event_id,
            record.account_id,
            RedemptionFulfilledEvent(
                id=event_id,
                type=LedgerEventType.REDEMPTION_FULFILLED,
                timestamp=to_utc_iso8601(record.redeemed_at or record.updated_at),
                source=EVENT_SOURCE,
                version=EVENT_VERSION,
                redemption_id=record.id or "",
                account_id=record.account_id,
                item_id=record.item_id,
                fulfilled_by=record.redeemed_by or "",
            ),
        )


def get_event_publisher() -> LedgerEventPublisherInterface | None:
    """FastAPI DI용 발행기 팩토리. Kafka 미설정 시 None (발행 안 함)."""

    if not is_enabled():
        return None
    return KafkaLedgerEventPublisher(get_kafka_event_bus())
