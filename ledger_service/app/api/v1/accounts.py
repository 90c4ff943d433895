from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from ..schemas.accounts import (
    AccountProfileResponse,
    AccountResponse,
    CreateAccountRequest,
    LeaderboardEntryResponse,
    LeaderboardResponse,
    RankResponse,
)
from ..schemas.common import MAX_PAGE_SIZE, PaginatedResponse
from ..schemas.redemptions import RedemptionResponse
from ...models.rank import get_rank
from ...services.accounts_service import AccountsService, get_accounts_service
from ...services.ledger_service import LedgerService, get_ledger_service

router = APIRouter()


@router.post(
    "",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
    summary="계정 생성 (이미 있으면 그대로 반환)",
)
def create_account(
    body: CreateAccountRequest,
    service: AccountsService = Depends(get_accounts_service),
) -> AccountResponse:
    account = service.create_account(body.account_id, body.email, body.display_name)
    return AccountResponse.from_domain(account)


@router.get("/leaderboard", response_model=LeaderboardResponse, summary="리더보드")
def get_leaderboard(
    limit: int | None = Query(default=None, ge=1, le=100),
    service: AccountsService = Depends(get_accounts_service),
) -> LeaderboardResponse:
    accounts = service.leaderboard(limit)
    return LeaderboardResponse(
        items=[
            LeaderboardEntryResponse(
                position=index,
                account_id=account.account_id,
                display_name=account.display_name,
                balance=account.balance,
                rank_title=get_rank(account.balance).current.title,
            )
            for index, account in enumerate(accounts, start=1)
        ]
    )


@router.get(
    "/{account_id}", response_model=AccountProfileResponse, summary="계정 프로필 조회"
)
def get_account_profile(
    account_id: str,
    service: AccountsService = Depends(get_accounts_service),
) -> AccountProfileResponse:
    profile = service.get_profile(account_id)
    base = AccountResponse.from_domain(profile.account)
    return AccountProfileResponse(
        **base.model_dump(), rank=RankResponse.from_domain(profile.rank)
    )


@router.get(
    "/{account_id}/redemptions",
    response_model=PaginatedResponse[RedemptionResponse],
    summary="내 교환 내역",
)
def list_account_redemptions(
    account_id: str,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=MAX_PAGE_SIZE),
    ledger: LedgerService = Depends(get_ledger_service),
) -> PaginatedResponse[RedemptionResponse]:
    records, total = ledger.list_redemptions_for_account(account_id, page, page_size)
    return PaginatedResponse(
        items=[RedemptionResponse.from_domain(r) for r in records],
        total=total,
        page=page,
        page_size=page_size,
    )
