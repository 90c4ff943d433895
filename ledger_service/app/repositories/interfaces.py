from __future__ import annotations

from contextlib import AbstractContextManager
from datetime import datetime
from typing import Any, Protocol

from common.models.account import Account
from ..models.ledger import LedgerEntry
from ..models.reward import RedemptionRecord, RedemptionStatus, RewardItem


class AccountRepositoryInterface(Protocol):
    """AccountRepository가 따라야 할 최소한의 계약.

    - balance 변경 메서드는 모두 조건부 단일 도큐먼트 업데이트다.
      조건이 맞지 않으면 아무것도 바꾸지 않고 None 을 반환한다.
    """

    def find_by_account_id(
        self, account_id: str
    ) -> Account | None:  # pragma: no cover - Protocol
        ...

    def insert(self, account: Account) -> Account:  # pragma: no cover - Protocol
        ...

    def increment_balance(
        self, account_id: str, amount: int, now: datetime
    ) -> int | None:  # pragma: no cover - Protocol
        """balance += amount. 변경 후 잔액, 계정이 없으면 None."""
        ...

    def spend_balance(
        self, account_id: str, amount: int, now: datetime
    ) -> int | None:  # pragma: no cover - Protocol
        """balance >= amount 인 경우에만 balance -= amount. 변경 후 잔액 또는 None."""
        ...

    def claim_cooldown(
        self,
        account_id: str,
        cooldown_key: str,
        amount: int,
        now: datetime,
        cutoff: datetime,
    ) -> int | None:  # pragma: no cover - Protocol
        """마지막 claim 이 없거나 cutoff 이전인 경우에만 지급하고 now 를 기록한다."""
        ...

    def list_top_by_balance(
        self, limit: int
    ) -> list[Account]:  # pragma: no cover - Protocol
        ...


class RewardItemRepositoryInterface(Protocol):
    """보상 카탈로그 저장소. 형식이 잘못된 item_id 는 '없음'으로 취급한다."""

    def find_by_id(self, item_id: str) -> RewardItem | None:  # pragma: no cover - Protocol
        ...

    def insert(self, item: RewardItem) -> RewardItem:  # pragma: no cover - Protocol
        ...

    def update_fields(
        self, item_id: str, updates: dict[str, Any], now: datetime
    ) -> RewardItem | None:  # pragma: no cover - Protocol
        ...

    def delete(self, item_id: str) -> bool:  # pragma: no cover - Protocol
        ...

    def decrement_stock(
        self, item_id: str, now: datetime
    ) -> int | None:  # pragma: no cover - Protocol
        """stock > 0 인 경우에만 1 차감. 차감 후 재고 또는 None."""
        ...

    def set_stock(
        self, item_id: str, stock: int | None, now: datetime
    ) -> RewardItem | None:  # pragma: no cover - Protocol
        """재입고. stock 을 그대로 덮어쓴다 (None = 무제한)."""
        ...

    def list(
        self, page: int, page_size: int
    ) -> tuple[list[RewardItem], int]:  # pragma: no cover - Protocol
        ...


class LedgerEntryRepositoryInterface(Protocol):
    """append-only 원장 엔트리 저장소 (Activity Log).

    - idempotent 엔트리는 (account_id, action_key) 당 1건만 허용한다.
      중복 insert 는 AlreadyClaimedError 로 거부된다.
    """

    def exists_by_key(
        self, account_id: str, action_key: str
    ) -> bool:  # pragma: no cover - Protocol
        ...

    def insert(self, entry: LedgerEntry) -> LedgerEntry:  # pragma: no cover - Protocol
        ...

    def list_by_account(
        self, account_id: str, page: int, page_size: int
    ) -> tuple[list[LedgerEntry], int]:  # pragma: no cover - Protocol
        ...


class RedemptionRepositoryInterface(Protocol):
    def insert(
        self, record: RedemptionRecord
    ) -> RedemptionRecord:  # pragma: no cover - Protocol
        ...

    def find_by_id(
        self, redemption_id: str
    ) -> RedemptionRecord | None:  # pragma: no cover - Protocol
        ...

    def mark_redeemed(
        self, redemption_id: str, actor_account_id: str, now: datetime
    ) -> RedemptionRecord | None:  # pragma: no cover - Protocol
        """status 가 pending 인 경우에만 redeemed 로 전이한다."""
        ...

    def list_by_account(
        self, account_id: str, page: int, page_size: int
    ) -> tuple[list[RedemptionRecord], int]:  # pragma: no cover - Protocol
        ...

    def list(
        self, status: RedemptionStatus | None, page: int, page_size: int
    ) -> tuple[list[RedemptionRecord], int]:  # pragma: no cover - Protocol
        ...


class LedgerUnitOfWork(Protocol):
    """하나의 트랜잭션(또는 읽기 세션)에 묶인 저장소 묶음."""

    accounts: AccountRepositoryInterface
    items: RewardItemRepositoryInterface
    entries: LedgerEntryRepositoryInterface
    redemptions: RedemptionRepositoryInterface


class LedgerStoreInterface(Protocol):
    """원장 저장소 진입점.

    - transaction(): with 블록 안의 모든 쓰기를 all-or-nothing 으로 commit 한다.
      블록에서 예외가 나면 전부 롤백된다. 일시적 충돌은 ContentionError 로 올린다.
    - reader(): 트랜잭션 없는 조회 전용 세션.
    """

    def transaction(
        self,
    ) -> AbstractContextManager[LedgerUnitOfWork]:  # pragma: no cover - Protocol
        ...

    def reader(
        self,
    ) -> AbstractContextManager[LedgerUnitOfWork]:  # pragma: no cover - Protocol
        ...
