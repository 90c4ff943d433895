"""원장 엔트리 도메인 모델.

포인트 지급(+)과 사용(-)은 모두 append-only 엔트리로 남는다.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class LedgerEntry(BaseModel):
    """불변 원장 엔트리."""

    id: str | None = None
    account_id: str
    action_key: str  # 예: "news_read:42", "market_redeem:<itemId>", "daily_checkin"
    amount: int  # + 지급, - 사용
    idempotent: bool = False  # True 이면 (account_id, action_key) 당 1건만 존재
    metadata: dict | None = None
    created_at: datetime
    updated_at: datetime


class AwardResult(BaseModel):
    """지급 결과: 생성된 엔트리와 지급 후 잔액."""

    entry: LedgerEntry
    balance: int
