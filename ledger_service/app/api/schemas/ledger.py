from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from common.types.datetime import UtcDateTime

from ...models.ledger import AwardResult, LedgerEntry
from ...models.reward import RedeemResult
from .redemptions import RedemptionResponse


class AwardRequest(BaseModel):
    """임의 action_key 1회성 지급 요청 (내부 서비스용)."""

    action_key: str = Field(min_length=1)
    amount: int
    metadata: dict[str, Any] | None = None


class ContentClaimRequest(BaseModel):
    # 생략하면 설정된 기본 지급량. 지정은 admin 만 가능
    amount: int | None = None


class LedgerEntryResponse(BaseModel):
    id: str | None
    action_key: str
    amount: int
    metadata: dict[str, Any] | None
    created_at: UtcDateTime

    @classmethod
    def from_domain(cls, entry: LedgerEntry) -> "LedgerEntryResponse":
        return cls(
            id=entry.id,
            action_key=entry.action_key,
            amount=entry.amount,
            metadata=entry.metadata,
            created_at=entry.created_at,
        )


class AwardResponse(BaseModel):
    account_id: str
    entry: LedgerEntryResponse
    balance: int

    @classmethod
    def from_domain(cls, result: AwardResult) -> "AwardResponse":
        return cls(
            account_id=result.entry.account_id,
            entry=LedgerEntryResponse.from_domain(result.entry),
            balance=result.balance,
        )


class RedeemResponse(BaseModel):
    redemption: RedemptionResponse
    balance: int
    remaining_stock: int | None

    @classmethod
    def from_domain(cls, result: RedeemResult) -> "RedeemResponse":
        return cls(
            redemption=RedemptionResponse.from_domain(result.record),
            balance=result.balance,
            remaining_stock=result.remaining_stock,
        )
