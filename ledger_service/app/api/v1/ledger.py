"""원장 API 라우터 (지급 / 교환 / 이력).

Gateway 및 내부 서비스에서 호출한다.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from ..dependencies import get_actor_account_id
from ..schemas.common import MAX_PAGE_SIZE, PaginatedResponse
from ..schemas.ledger import (
    AwardRequest,
    AwardResponse,
    ContentClaimRequest,
    LedgerEntryResponse,
    RedeemResponse,
)
from ...services.ledger_service import LedgerService, get_ledger_service
from ...services.rewards_service import ActionKind, RewardsService, get_rewards_service


router = APIRouter(prefix="/ledger", tags=["ledger"])


@router.post("/{account_id}/award")
def award(
    account_id: str,
    req: AwardRequest,
    ledger: Annotated[LedgerService, Depends(get_ledger_service)],
) -> AwardResponse:
    """action_key 기준 1회성 지급. 이미 받았으면 409."""
    result = ledger.award_once(account_id, req.action_key, req.amount, req.metadata)
    return AwardResponse.from_domain(result)


@router.post("/{account_id}/claims/{kind}/{ref_id}")
def claim_content_reward(
    account_id: str,
    kind: ActionKind,
    ref_id: str,
    rewards: Annotated[RewardsService, Depends(get_rewards_service)],
    actor: Annotated[str | None, Depends(get_actor_account_id)],
    req: ContentClaimRequest | None = None,
) -> AwardResponse:
    """뉴스 읽기/공유, 영상 시청/공유 보상. body 의 amount 는 admin 만 지정할 수 있다 (403)."""
    amount = req.amount if req is not None else None
    result = rewards.claim_content_reward(
        account_id, kind, ref_id, amount, actor_account_id=actor
    )
    return AwardResponse.from_domain(result)


@router.post("/{account_id}/daily-checkin")
def daily_checkin(
    account_id: str,
    rewards: Annotated[RewardsService, Depends(get_rewards_service)],
) -> AwardResponse:
    """출석 체크. cooldown 중이면 429 + Retry-After."""
    return AwardResponse.from_domain(rewards.daily_checkin(account_id))


@router.post("/{account_id}/weekly-quiz")
def weekly_quiz(
    account_id: str,
    rewards: Annotated[RewardsService, Depends(get_rewards_service)],
) -> AwardResponse:
    return AwardResponse.from_domain(rewards.weekly_quiz(account_id))


@router.post("/{account_id}/redeem/{item_id}")
def redeem(
    account_id: str,
    item_id: str,
    ledger: Annotated[LedgerService, Depends(get_ledger_service)],
) -> RedeemResponse:
    """마켓플레이스 교환. 잔액 부족 402, 품절 409."""
    return RedeemResponse.from_domain(ledger.redeem(account_id, item_id))


@router.get("/{account_id}/history")
def get_history(
    account_id: str,
    ledger: Annotated[LedgerService, Depends(get_ledger_service)],
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=MAX_PAGE_SIZE),
) -> PaginatedResponse[LedgerEntryResponse]:
    """원장 이력 조회 (최신순)."""
    entries, total = ledger.get_history(account_id, page, page_size)
    return PaginatedResponse(
        items=[LedgerEntryResponse.from_domain(e) for e in entries],
        total=total,
        page=page,
        page_size=page_size,
    )
