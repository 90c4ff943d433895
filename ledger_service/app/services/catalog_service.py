"""보상 카탈로그 관리.

조회는 공개, 생성/수정/삭제는 관리자 전용이다.
생성 시의 초기 재고 외에 stock 은 여기서 바꾸지 않는다. 재입고는 LedgerService.restock 으로 한다.
관리자 확인은 쓰기와 같은 트랜잭션 안에서 actor 의 role 을 새로 읽어 수행한다.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Depends

from common.types.datetime import utcnow

from ..exceptions import InvalidAmountError, ItemNotFoundError
from ..models.reward import RewardItem
from ..repositories.interfaces import LedgerStoreInterface
from ..repositories.ledger_store import get_ledger_store
from .ledger_service import validate_stock
from .role_gate import require_admin


logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("title", "tag", "description", "image_url", "price")


def _validate_price(price: Any) -> None:
    if isinstance(price, bool) or not isinstance(price, int) or price <= 0:
        raise InvalidAmountError(f"price must be a positive integer, got {price!r}")


class CatalogService:
    def __init__(self, store: LedgerStoreInterface) -> None:
        self._store = store

    def list_items(self, page: int = 1, page_size: int = 20) -> tuple[list[RewardItem], int]:
        with self._store.reader() as uow:
            return uow.items.list(page, page_size)

    def get_item(self, item_id: str) -> RewardItem:
        with self._store.reader() as uow:
            item = uow.items.find_by_id(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        return item

    def create_item(
        self,
        actor_account_id: str | None,
        *,
        title: str,
        price: int,
        stock: int | None = None,
        tag: str | None = None,
        description: str | None = None,
        image_url: str | None = None,
    ) -> RewardItem:
        _validate_price(price)
        validate_stock(stock)

        now = utcnow()
        with self._store.transaction() as uow:
            require_admin(uow.accounts, actor_account_id)
            item = uow.items.insert(
                RewardItem(
                    title=title,
                    tag=tag,
                    description=description,
                    image_url=image_url,
                    price=price,
                    stock=stock,
                    created_at=now,
                    updated_at=now,
                )
            )

        logger.info(
            "reward item created",
            extra={"account_id": actor_account_id, "item_id": item.id},
        )
        return item

    def update_item(
        self, actor_account_id: str | None, item_id: str, updates: dict[str, Any]
    ) -> RewardItem:
        """부분 수정. 모르는 키는 무시하고, stock 은 거부한다."""
        if "stock" in updates:
            raise InvalidAmountError("stock is changed through restock, not item updates")
        fields = {k: v for k, v in updates.items() if k in UPDATABLE_FIELDS}
        if fields.get("title", "") is None:
            del fields["title"]
        if "price" in fields:
            _validate_price(fields["price"])

        now = utcnow()
        with self._store.transaction() as uow:
            require_admin(uow.accounts, actor_account_id)
            if not fields:
                item = uow.items.find_by_id(item_id)
            else:
                item = uow.items.update_fields(item_id, fields, now)
            if item is None:
                raise ItemNotFoundError(item_id)

        logger.info(
            "reward item updated fields=%s",
            sorted(fields),
            extra={"account_id": actor_account_id, "item_id": item_id},
        )
        return item

    def delete_item(self, actor_account_id: str | None, item_id: str) -> None:
        with self._store.transaction() as uow:
            require_admin(uow.accounts, actor_account_id)
            if not uow.items.delete(item_id):
                raise ItemNotFoundError(item_id)

        logger.info(
            "reward item deleted",
            extra={"account_id": actor_account_id, "item_id": item_id},
        )


def get_catalog_service(
    store: LedgerStoreInterface = Depends(get_ledger_store),
) -> CatalogService:
    return CatalogService(store=store)
