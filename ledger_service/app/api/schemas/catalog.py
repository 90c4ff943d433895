from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from common.types.datetime import UtcDateTime

from ...models.reward import RewardItem


class CreateItemRequest(BaseModel):
    title: str = Field(min_length=1)
    price: int
    stock: int | None = None  # null = 무제한
    tag: str | None = None
    description: str | None = None
    image_url: str | None = None


class UpdateItemRequest(BaseModel):
    """부분 수정. 보낸 필드만 반영된다. 재고는 RestockRequest 로 바꾼다."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=1)
    price: int | None = None
    tag: str | None = None
    description: str | None = None
    image_url: str | None = None


class RestockRequest(BaseModel):
    stock: int | None  # null = 무제한


class RewardItemResponse(BaseModel):
    id: str | None
    title: str
    tag: str | None
    description: str | None
    image_url: str | None
    price: int
    stock: int | None
    sold_out: bool
    created_at: UtcDateTime
    updated_at: UtcDateTime

    @classmethod
    def from_domain(cls, item: RewardItem) -> "RewardItemResponse":
        return cls(
            id=item.id,
            title=item.title,
            tag=item.tag,
            description=item.description,
            image_url=item.image_url,
            price=item.price,
            stock=item.stock,
            sold_out=item.is_sold_out,
            created_at=item.created_at,
            updated_at=item.updated_at,
        )
