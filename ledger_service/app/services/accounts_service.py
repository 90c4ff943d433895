from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Depends
from pymongo.errors import DuplicateKeyError

from common.models.account import Account, AccountRole
from common.types.datetime import utcnow

from ..config import LedgerConfig, get_ledger_config
from ..exceptions import AccountNotFoundError
from ..models.rank import RankProgress, get_rank
from ..repositories.interfaces import LedgerStoreInterface
from ..repositories.ledger_store import get_ledger_store


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AccountProfile:
    account: Account
    rank: RankProgress


class AccountsService:
    """계정 생성 / 프로필 / 리더보드.

    balance 는 여기서 바꾸지 않는다 (LedgerService 전용).
    """

    def __init__(self, store: LedgerStoreInterface, config: LedgerConfig) -> None:
        self._store = store
        self._config = config

    def create_account(
        self,
        account_id: str,
        email: str | None = None,
        display_name: str | None = None,
    ) -> Account:
        """계정을 생성한다. 이미 있으면 기존 계정을 그대로 반환한다."""
        with self._store.reader() as uow:
            existing = uow.accounts.find_by_account_id(account_id)
            if existing is not None:
                return existing

            now = utcnow()
            account = Account(
                account_id=account_id,
                email=email,
                display_name=display_name,
                role=AccountRole.USER,
                balance=0,
                created_at=now,
                updated_at=now,
            )
            try:
                created = uow.accounts.insert(account)
            except DuplicateKeyError:
                # 동시 가입 요청: 먼저 생성된 계정을 반환
                found = uow.accounts.find_by_account_id(account_id)
                if found is None:
                    raise
                return found

        logger.info("account created", extra={"account_id": account_id})
        return created

    def get_profile(self, account_id: str) -> AccountProfile:
        with self._store.reader() as uow:
            account = uow.accounts.find_by_account_id(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return AccountProfile(account=account, rank=get_rank(account.balance))

    def leaderboard(self, limit: int | None = None) -> list[Account]:
        """잔액 내림차순 상위 계정."""
        size = limit if limit and limit > 0 else self._config.leaderboard_size
        with self._store.reader() as uow:
            return uow.accounts.list_top_by_balance(size)


def get_accounts_service(
    store: LedgerStoreInterface = Depends(get_ledger_store),
    config: LedgerConfig = Depends(get_ledger_config),
) -> AccountsService:
    return AccountsService(store=store, config=config)
