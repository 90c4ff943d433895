"""마켓플레이스 보상 카탈로그 / 교환 기록 도메인 모델."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class RewardItem(BaseModel):
    """교환 가능한 보상 아이템."""

    id: str | None = None
    title: str
    tag: str | None = None
    description: str | None = None
    image_url: str | None = None
    price: int = Field(gt=0)
    stock: int | None = Field(default=None, ge=0)  # None = 무제한
    created_at: datetime
    updated_at: datetime

    @property
    def is_sold_out(self) -> bool:
        return self.stock is not None and self.stock <= 0


class RedemptionStatus(StrEnum):
    PENDING = "pending"
    REDEEMED = "redeemed"


class RedemptionRecord(BaseModel):
    """교환 기록.

    item_title / price 는 교환 시점의 스냅샷이라 아이템이 삭제돼도 남는다.
    """

    id: str | None = None
    account_id: str
    item_id: str
    item_title: str
    price: int
    status: RedemptionStatus = RedemptionStatus.PENDING
    redeemed_at: datetime | None = None
    redeemed_by: str | None = None
    created_at: datetime
    updated_at: datetime


class RedeemResult(BaseModel):
    record: RedemptionRecord
    balance: int
    remaining_stock: int | None
