"""관리자 전용 연산의 권한 확인.

권한은 세션/페이지 단위로 캐시하지 않는다. 매 연산마다 같은 트랜잭션 안에서
actor 계정의 role 을 새로 읽어 확인한다.
"""

from __future__ import annotations

import logging

from common.models.account import Account

from ..exceptions import ForbiddenError
from ..repositories.interfaces import AccountRepositoryInterface


logger = logging.getLogger(__name__)


def require_admin(
    accounts: AccountRepositoryInterface, actor_account_id: str | None
) -> Account:
    """actor 가 admin 이면 계정을 반환하고, 아니면 ForbiddenError."""

    if not actor_account_id:
        raise ForbiddenError(None)

    actor = accounts.find_by_account_id(actor_account_id)
    if actor is None or not actor.is_admin:
        logger.warning(
            "admin operation rejected",
            extra={"account_id": actor_account_id, "reason": ForbiddenError.code},
        )
        raise ForbiddenError(actor_account_id)
    return actor
