from __future__ import annotations

from pydantic import BaseModel, Field

from common.models.account import Account
from common.types.datetime import UtcDateTime

from ...models.rank import RankProgress


class CreateAccountRequest(BaseModel):
    account_id: str = Field(min_length=1)
    email: str | None = None
    display_name: str | None = None


class RankResponse(BaseModel):
    title: str
    color: str
    progress: float
    points_to_next: int
    next_title: str | None = None

    @classmethod
    def from_domain(cls, rank: RankProgress) -> "RankResponse":
        return cls(
            title=rank.current.title,
            color=rank.current.color,
            progress=rank.progress,
            points_to_next=rank.points_to_next,
            next_title=rank.next.title if rank.next else None,
        )


class AccountResponse(BaseModel):
    account_id: str
    email: str | None
    display_name: str | None
    role: str
    balance: int
    last_daily_checkin: UtcDateTime | None
    last_weekly_quiz: UtcDateTime | None
    created_at: UtcDateTime
    updated_at: UtcDateTime

    @classmethod
    def from_domain(cls, account: Account) -> "AccountResponse":
        return cls(
            account_id=account.account_id,
            email=account.email,
            display_name=account.display_name,
            role=str(account.role),
            balance=account.balance,
            last_daily_checkin=account.last_daily_checkin,
            last_weekly_quiz=account.last_weekly_quiz,
            created_at=account.created_at,
            updated_at=account.updated_at,
        )


class AccountProfileResponse(AccountResponse):
    rank: RankResponse


class LeaderboardEntryResponse(BaseModel):
    position: int
    account_id: str
    display_name: str | None
    balance: int
    rank_title: str


class LeaderboardResponse(BaseModel):
    items: list[LeaderboardEntryResponse]
