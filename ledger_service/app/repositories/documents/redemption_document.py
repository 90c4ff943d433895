from __future__ import annotations

from common.mongo.types import (
    BaseDocument,
    MongoDateTime,
    build_document_data_from_domain,
    from_object_id,
)

from ...models.reward import RedemptionRecord, RedemptionStatus


class RedemptionDocument(BaseDocument):
    """MongoDB redemptions 컬렉션 도큐먼트 모델."""

    account_id: str
    item_id: str
    item_title: str
    price: int
    status: RedemptionStatus = RedemptionStatus.PENDING
    redeemed_at: MongoDateTime | None = None
    redeemed_by: str | None = None

    @classmethod
    def from_domain(cls, record: RedemptionRecord) -> "RedemptionDocument":
        data = build_document_data_from_domain(record)
        return cls.model_validate(data)

    def to_mongo_record(self) -> dict:
        record = super().to_mongo_record()
        record["status"] = str(self.status)
        return record

    def to_domain(self) -> RedemptionRecord:
        return RedemptionRecord(
            id=from_object_id(self.id),
            account_id=self.account_id,
            item_id=self.item_id,
            item_title=self.item_title,
            price=self.price,
            status=self.status,
            redeemed_at=self.redeemed_at,
            redeemed_by=self.redeemed_by,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
