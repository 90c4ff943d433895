from __future__ import annotations

from fastapi import Header

from common.middleware.request_trace import ACCOUNT_ID_HEADER


def get_actor_account_id(
    actor: str | None = Header(default=None, alias=ACCOUNT_ID_HEADER),
) -> str | None:
    """gateway 가 인증 후 넣어 주는 호출자 account_id. 없으면 None."""
    return actor or None
