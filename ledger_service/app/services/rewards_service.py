"""콘텐츠 액션 / 출석 / 주간 퀴즈 보상.

설정(LedgerConfig)의 지급량으로 LedgerService 를 호출하는 얇은 레이어다.
"""

from __future__ import annotations

from enum import StrEnum

from fastapi import Depends

from common.models.account import DAILY_CHECKIN_COOLDOWN_KEY, WEEKLY_QUIZ_COOLDOWN_KEY

from ..config import LedgerConfig, get_ledger_config
from ..exceptions import InvalidAmountError
from ..models.ledger import AwardResult
from .ledger_service import LedgerService, get_ledger_service


class ActionKind(StrEnum):
    NEWS_READ = "news_read"
    NEWS_SHARE = "news_share"
    VIDEO_WATCHED = "video_watched"
    VIDEO_SHARE = "video_share"


def build_action_key(kind: ActionKind, ref_id: str) -> str:
    """멱등 지급 키: "<kind>:<refId>" (예: "news_read:42")."""
    return f"{kind}:{ref_id}"


class RewardsService:
    def __init__(self, ledger: LedgerService, config: LedgerConfig) -> None:
        self._ledger = ledger
        self._config = config

    def claim_content_reward(
        self,
        account_id: str,
        kind: ActionKind,
        ref_id: str,
        amount: int | None = None,
        actor_account_id: str | None = None,
    ) -> AwardResult:
        """콘텐츠 액션 1회성 보상.

        기본 지급량은 설정값이다. amount 로 바꾸는 것은 admin actor 만 가능하다 (이벤트성 보너스 등).
        """
        if not ref_id:
            raise InvalidAmountError("ref_id must not be empty")
        if amount is not None:
            self._ledger.ensure_admin(actor_account_id)
        points = amount if amount is not None else self._config.content_rewards.amount_for(kind)
        return self._ledger.award_once(
            account_id,
            build_action_key(kind, ref_id),
            points,
            metadata={"kind": str(kind), "ref_id": ref_id},
        )

    def daily_checkin(self, account_id: str) -> AwardResult:
        policy = self._config.daily_checkin
        return self._ledger.award_with_cooldown(
            account_id, DAILY_CHECKIN_COOLDOWN_KEY, policy.points, policy.cooldown
        )

    def weekly_quiz(self, account_id: str) -> AwardResult:
        policy = self._config.weekly_quiz
        return self._ledger.award_with_cooldown(
            account_id, WEEKLY_QUIZ_COOLDOWN_KEY, policy.points, policy.cooldown
        )


def get_rewards_service(
    ledger: LedgerService = Depends(get_ledger_service),
    config: LedgerConfig = Depends(get_ledger_config),
) -> RewardsService:
    return RewardsService(ledger=ledger, config=config)
