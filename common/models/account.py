from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


# cooldown 키. Account.cooldowns 딕셔너리의 키로 저장된다.
DAILY_CHECKIN_COOLDOWN_KEY = "daily_checkin"
WEEKLY_QUIZ_COOLDOWN_KEY = "weekly_quiz"


class AccountRole(StrEnum):
    USER = "user"
    ADMIN = "admin"


class Account(BaseModel):
    """Kabayan Hub 계정 도메인 모델.

    - account_id 는 외부 identity provider 가 발급한 불변 식별자다.
    - balance(Kabayan Points)는 0 이상이며 원장 서비스만 변경한다.
    - cooldowns 는 cooldown 키별 마지막 성공 지급 시각을 담는다.
    """

    account_id: str
    email: str | None = None
    display_name: str | None = None
    role: AccountRole = AccountRole.USER
    balance: int = Field(default=0, ge=0)
    cooldowns: dict[str, datetime] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime

    @property
    def is_admin(self) -> bool:
        return self.role == AccountRole.ADMIN

    @property
    def last_daily_checkin(self) -> datetime | None:
        return self.cooldowns.get(DAILY_CHECKIN_COOLDOWN_KEY)

    @property
    def last_weekly_quiz(self) -> datetime | None:
        return self.cooldowns.get(WEEKLY_QUIZ_COOLDOWN_KEY)
