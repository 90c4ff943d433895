from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ..dependencies import get_actor_account_id
from ..schemas.common import MAX_PAGE_SIZE, PaginatedResponse
from ..schemas.redemptions import RedemptionResponse
from ...models.reward import RedemptionStatus
from ...services.ledger_service import LedgerService, get_ledger_service

router = APIRouter()


@router.get(
    "",
    response_model=PaginatedResponse[RedemptionResponse],
    summary="전체 교환 목록 (admin)",
)
def list_redemptions(
    status: RedemptionStatus | None = None,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=MAX_PAGE_SIZE),
    actor: str | None = Depends(get_actor_account_id),
    ledger: LedgerService = Depends(get_ledger_service),
) -> PaginatedResponse[RedemptionResponse]:
    records, total = ledger.list_redemptions(actor, status, page, page_size)
    return PaginatedResponse(
        items=[RedemptionResponse.from_domain(r) for r in records],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post(
    "/{redemption_id}/mark-redeemed",
    response_model=RedemptionResponse,
    summary="교환 지급 완료 처리 (admin)",
)
def mark_redeemed(
    redemption_id: str,
    actor: str | None = Depends(get_actor_account_id),
    ledger: LedgerService = Depends(get_ledger_service),
) -> RedemptionResponse:
    return RedemptionResponse.from_domain(ledger.mark_redeemed(redemption_id, actor))
