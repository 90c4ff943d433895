from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from ..dependencies import get_actor_account_id
from ..schemas.catalog import (
    CreateItemRequest,
    RestockRequest,
    RewardItemResponse,
    UpdateItemRequest,
)
from ..schemas.common import MAX_PAGE_SIZE, PaginatedResponse
from ...services.catalog_service import CatalogService, get_catalog_service
from ...services.ledger_service import LedgerService, get_ledger_service

router = APIRouter()


@router.get(
    "", response_model=PaginatedResponse[RewardItemResponse], summary="카탈로그 목록"
)
def list_items(
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=MAX_PAGE_SIZE),
    service: CatalogService = Depends(get_catalog_service),
) -> PaginatedResponse[RewardItemResponse]:
    items, total = service.list_items(page, page_size)
    return PaginatedResponse(
        items=[RewardItemResponse.from_domain(i) for i in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{item_id}", response_model=RewardItemResponse, summary="아이템 조회")
def get_item(
    item_id: str,
    service: CatalogService = Depends(get_catalog_service),
) -> RewardItemResponse:
    return RewardItemResponse.from_domain(service.get_item(item_id))


@router.post(
    "",
    response_model=RewardItemResponse,
    status_code=status.HTTP_201_CREATED,
    summary="아이템 생성 (admin)",
)
def create_item(
    body: CreateItemRequest,
    actor: str | None = Depends(get_actor_account_id),
    service: CatalogService = Depends(get_catalog_service),
) -> RewardItemResponse:
    item = service.create_item(actor, **body.model_dump())
    return RewardItemResponse.from_domain(item)


@router.patch(
    "/{item_id}", response_model=RewardItemResponse, summary="아이템 수정 (admin)"
)
def update_item(
    item_id: str,
    body: UpdateItemRequest,
    actor: str | None = Depends(get_actor_account_id),
    service: CatalogService = Depends(get_catalog_service),
) -> RewardItemResponse:
    item = service.update_item(actor, item_id, body.model_dump(exclude_unset=True))
    return RewardItemResponse.from_domain(item)


@router.put(
    "/{item_id}/stock", response_model=RewardItemResponse, summary="재입고 (admin)"
)
def restock_item(
    item_id: str,
    body: RestockRequest,
    actor: str | None = Depends(get_actor_account_id),
    ledger: LedgerService = Depends(get_ledger_service),
) -> RewardItemResponse:
    item = ledger.restock(actor, item_id, body.stock)
    return RewardItemResponse.from_domain(item)


@router.delete(
    "/{item_id}", status_code=status.HTTP_204_NO_CONTENT, summary="아이템 삭제 (admin)"
)
def delete_item(
    item_id: str,
    actor: str | None = Depends(get_actor_account_id),
    service: CatalogService = Depends(get_catalog_service),
) -> None:
    service.delete_item(actor, item_id)
