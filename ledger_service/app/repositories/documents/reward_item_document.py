from __future__ import annotations

from common.mongo.types import (
    BaseDocument,
    build_document_data_from_domain,
    from_object_id,
)

from ...models.reward import RewardItem


class RewardItemDocument(BaseDocument):
    """MongoDB reward_items 컬렉션 도큐먼트 모델."""

    title: str
    tag: str | None = None
    description: str | None = None
    image_url: str | None = None
    price: int
    stock: int | None = None

    @classmethod
    def from_domain(cls, item: RewardItem) -> "RewardItemDocument":
        data = build_document_data_from_domain(item)
        return cls.model_validate(data)

    def to_mongo_record(self) -> dict:
        record = super().to_mongo_record()
        # stock=None(무제한)도 명시적으로 저장해 $gt 조건 업데이트와 구분한다.
        record["stock"] = self.stock
        return record

    def to_domain(self) -> RewardItem:
        return RewardItem(
            id=from_object_id(self.id),
            title=self.title,
            tag=self.tag,
            description=self.description,
            image_url=self.image_url,
            price=self.price,
            stock=self.stock,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
