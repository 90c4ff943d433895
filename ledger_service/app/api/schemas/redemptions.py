from __future__ import annotations

from pydantic import BaseModel

from common.types.datetime import UtcDateTime

from ...models.reward import RedemptionRecord


class RedemptionResponse(BaseModel):
    id: str | None
    account_id: str
    item_id: str
    item_title: str
    price: int
    status: str
    redeemed_at: UtcDateTime | None
    redeemed_by: str | None
    created_at: UtcDateTime

    @classmethod
    def from_domain(cls, record: RedemptionRecord) -> "RedemptionResponse":
        return cls(
            id=record.id,
            account_id=record.account_id,
            item_id=record.item_id,
            item_title=record.item_title,
            price=record.price,
            status=str(record.status),
            redeemed_at=record.redeemed_at,
            redeemed_by=record.redeemed_by,
            created_at=record.created_at,
        )
