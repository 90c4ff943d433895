"""원장(Kabayan Points) 관련 이벤트 정의.

모든 이벤트는 트랜잭션 commit 이후에만 발행된다.
"""

from __future__ import annotations

from dataclasses import dataclass


class LedgerEventType:
    """원장 이벤트 타입 상수."""

    POINTS_AWARDED = "ledger.points_awarded"
    ITEM_REDEEMED = "ledger.item_redeemed"
    REDEMPTION_FULFILLED = "ledger.redemption_fulfilled"


@dataclass(slots=True)
class PointsAwardedEvent:
    """포인트 지급 이벤트.

    award_once / award_with_cooldown 이 성공하면 발행된다.
    """

    id: str
    type: str
    timestamp: str
    source: str
    version: str
    account_id: str
    action_key: str
    amount: int
    balance: int  # 지급 후 잔액


@dataclass(slots=True)
class ItemRedeemedEvent:
    """마켓플레이스 교환 이벤트."""

    id: str
    type: str
    timestamp: str
    source: str
    version: str
    redemption_id: str
    account_id: str
    item_id: str
    item_title: str
    price: int
    balance: int
    remaining_stock: int | None  # None = 무제한


@dataclass(slots=True)
class RedemptionFulfilledEvent:
    """관리자가 교환 건을 지급 완료(redeemed)로 처리하면 발행된다."""

    id: str
    type: str
    timestamp: str
    source: str
    version: str
    redemption_id: str
    account_id: str
    item_id: str
    fulfilled_by: str
