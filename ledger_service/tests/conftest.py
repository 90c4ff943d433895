from __future__ import annotations

import copy
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterator

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from common.models.account import Account, AccountRole
from ledger_service.app.config import LedgerConfig
from ledger_service.app.exceptions import AlreadyClaimedError, ContentionError
from ledger_service.app.models.ledger import AwardResult, LedgerEntry
from ledger_service.app.models.reward import (
    RedeemResult,
    RedemptionRecord,
    RedemptionStatus,
    RewardItem,
)
from ledger_service.app.services.ledger_service import LedgerService


BASE_TIME = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


# -------- In-memory store --------


@dataclass
class StoreState:
    accounts: dict[str, Account] = field(default_factory=dict)
    items: dict[str, RewardItem] = field(default_factory=dict)
    entries: list[LedgerEntry] = field(default_factory=list)
    redemptions: dict[str, RedemptionRecord] = field(default_factory=dict)
    competing_write: Callable[[StoreState], None] | None = field(default=None, repr=False)

    def apply_competing_write(self) -> None:
        """조건부 갱신 직전에 다른 트랜잭션의 commit 이 끼어든 상황을 만든다 (1회)."""
        if self.competing_write is not None:
            write, self.competing_write = self.competing_write, None
            write(self)


def _paginate(rows: list, page: int, page_size: int) -> tuple[list, int]:
    if page <= 0:
        page = 1
    if page_size <= 0 or page_size > 100:
        page_size = 20
    start = (page - 1) * page_size
    return rows[start : start + page_size], len(rows)


class FakeAccountRepository:
    def __init__(self, state: StoreState) -> None:
        self._state = state

    def find_by_account_id(self, account_id: str) -> Account | None:
        return self._state.accounts.get(account_id)

    def insert(self, account: Account) -> Account:
        if account.account_id in self._state.accounts:
            raise DuplicateKeyError(f"duplicate account_id: {account.account_id}")
        self._state.accounts[account.account_id] = account
        return account

    def _set(self, account: Account, **update: Any) -> int:
        updated = account.model_copy(update=update)
        self._state.accounts[account.account_id] = updated
        return updated.balance

    def increment_balance(self, account_id: str, amount: int, now: datetime) -> int | None:
        self._state.apply_competing_write()
        account = self._state.accounts.get(account_id)
        if account is None:
            return None
        return self._set(account, balance=account.balance + amount, updated_at=now)

    def spend_balance(self, account_id: str, amount: int, now: datetime) -> int | None:
        self._state.apply_competing_write()
        account = self._state.accounts.get(account_id)
        if account is None or account.balance < amount:
            return None
        return self._set(account, balance=account.balance - amount, updated_at=now)

    def claim_cooldown(
        self,
        account_id: str,
        cooldown_key: str,
        amount: int,
        now: datetime,
        cutoff: datetime,
    ) -> int | None:
        self._state.apply_competing_write()
        account = self._state.accounts.get(account_id)
        if account is None:
            return None
        last = account.cooldowns.get(cooldown_key)
        if last is not None and last > cutoff:
            return None
        return self._set(
            account,
            balance=account.balance + amount,
            cooldowns={**account.cooldowns, cooldown_key: now},
            updated_at=now,
        )

    def list_top_by_balance(self, limit: int) -> list[Account]:
        ranked = sorted(self._state.accounts.values(), key=lambda a: -a.balance)
        return ranked[:limit]


class FakeRewardItemRepository:
    def __init__(self, state: StoreState) -> None:
        self._state = state

    def find_by_id(self, item_id: str) -> RewardItem | None:
        return self._state.items.get(item_id)

    def insert(self, item: RewardItem) -> RewardItem:
        stored = item.model_copy(update={"id": item.id or str(ObjectId())})
        self._state.items[stored.id] = stored
        return stored

    def update_fields(
        self, item_id: str, updates: dict[str, Any], now: datetime
    ) -> RewardItem | None:
        item = self._state.items.get(item_id)
        if item is None:
            return None
        updated = item.model_copy(update={**updates, "updated_at": now})
        self._state.items[item_id] = updated
        return updated

    def delete(self, item_id: str) -> bool:
        return self._state.items.pop(item_id, None) is not None

    def decrement_stock(self, item_id: str, now: datetime) -> int | None:
        self._state.apply_competing_write()
        item = self._state.items.get(item_id)
        if item is None or item.stock is None or item.stock <= 0:
            return None
        updated = item.model_copy(update={"stock": item.stock - 1, "updated_at": now})
        self._state.items[item_id] = updated
        return updated.stock

    def set_stock(self, item_id: str, stock: int | None, now: datetime) -> RewardItem | None:
        return self.update_fields(item_id, {"stock": stock}, now)

    def list(self, page: int, page_size: int) -> tuple[list[RewardItem], int]:
        rows = sorted(self._state.items.values(), key=lambda i: i.created_at, reverse=True)
        return _paginate(rows, page, page_size)


class FakeLedgerEntryRepository:
    def __init__(self, state: StoreState) -> None:
        self._state = state

    def exists_by_key(self, account_id: str, action_key: str) -> bool:
        return any(
            e.idempotent and e.account_id == account_id and e.action_key == action_key
            for e in self._state.entries
        )

    def insert(self, entry: LedgerEntry) -> LedgerEntry:
        if entry.idempotent and self.exists_by_key(entry.account_id, entry.action_key):
            raise AlreadyClaimedError(entry.account_id, entry.action_key)
        stored = entry.model_copy(update={"id": str(ObjectId())})
        self._state.entries.append(stored)
        return stored

    def list_by_account(
        self, account_id: str, page: int, page_size: int
    ) -> tuple[list[LedgerEntry], int]:
        rows = [e for e in reversed(self._state.entries) if e.account_id == account_id]
        return _paginate(rows, page, page_size)


class FakeRedemptionRepository:
    def __init__(self, state: StoreState) -> None:
        self._state = state

    def insert(self, record: RedemptionRecord) -> RedemptionRecord:
        stored = record.model_copy(update={"id": str(ObjectId())})
        self._state.redemptions[stored.id] = stored
        return stored

    def find_by_id(self, redemption_id: str) -> RedemptionRecord | None:
        return self._state.redemptions.get(redemption_id)

    def mark_redeemed(
        self, redemption_id: str, actor_account_id: str, now: datetime
    ) -> RedemptionRecord | None:
        self._state.apply_competing_write()
        record = self._state.redemptions.get(redemption_id)
        if record is None or record.status != RedemptionStatus.PENDING:
            return None
        updated = record.model_copy(
            update={
                "status": RedemptionStatus.REDEEMED,
                "redeemed_at": now,
                "redeemed_by": actor_account_id,
                "updated_at": now,
            }
        )
        self._state.redemptions[redemption_id] = updated
        return updated

    def _newest_first(self, rows: list[RedemptionRecord]) -> list[RedemptionRecord]:
        return list(reversed(rows))

    def list_by_account(
        self, account_id: str, page: int, page_size: int
    ) -> tuple[list[RedemptionRecord], int]:
        rows = [r for r in self._state.redemptions.values() if r.account_id == account_id]
        return _paginate(self._newest_first(rows), page, page_size)

    def list(
        self, status: RedemptionStatus | None, page: int, page_size: int
    ) -> tuple[list[RedemptionRecord], int]:
        rows = [
            r
            for r in self._state.redemptions.values()
            if status is None or r.status == status
        ]
        return _paginate(self._newest_first(rows), page, page_size)


class FakeUnitOfWork:
    def __init__(self, state: StoreState) -> None:
        self.accounts = FakeAccountRepository(state)
        self.items = FakeRewardItemRepository(state)
        self.entries = FakeLedgerEntryRepository(state)
        self.redemptions = FakeRedemptionRepository(state)


class InMemoryLedgerStore:
    """락 + copy-on-commit 으로 직렬화된 트랜잭션을 흉내 내는 저장소.

    with 블록이 예외로 끝나면 작업 사본을 버리므로 아무 변경도 남지 않는다.
    competing_write 를 걸어 두면 다음 트랜잭션의 첫 조건부 갱신 직전에 그 함수가
    commit 된 상태와 작업 사본 양쪽에 적용된다. 서비스가 이미 읽은 값은 그대로 남는다.
    """

    def __init__(self) -> None:
        self.state = StoreState()
        self._lock = threading.RLock()
        self.contention_failures = 0  # 남은 횟수만큼 commit 을 ContentionError 로 실패시킨다
        self.commits = 0
        self.competing_write: Callable[[StoreState], None] | None = None

    @contextmanager
    def transaction(self) -> Iterator[FakeUnitOfWork]:
        with self._lock:
            working = copy.deepcopy(self.state)
            competing, self.competing_write = self.competing_write, None
            if competing is not None:

                def _commit_competitor(state: StoreState) -> None:
                    competing(self.state)
                    competing(state)

                working.competing_write = _commit_competitor

            yield FakeUnitOfWork(working)
            working.competing_write = None
            if self.contention_failures > 0:
                self.contention_failures -= 1
                raise ContentionError("simulated write conflict")
            self.state = working
            self.commits += 1

    @contextmanager
    def reader(self) -> Iterator[FakeUnitOfWork]:
        with self._lock:
            yield FakeUnitOfWork(self.state)

    # 테스트 데이터 준비용 헬퍼
    def add_account(
        self,
        account_id: str,
        *,
        balance: int = 0,
        role: AccountRole = AccountRole.USER,
        cooldowns: dict[str, datetime] | None = None,
    ) -> Account:
        account = Account(
            account_id=account_id,
            role=role,
            balance=balance,
            cooldowns=cooldowns or {},
            created_at=BASE_TIME,
            updated_at=BASE_TIME,
        )
        self.state.accounts[account_id] = account
        return account

    def add_item(
        self, title: str, *, price: int, stock: int | None = None
    ) -> RewardItem:
        item = RewardItem(
            id=str(ObjectId()),
            title=title,
            price=price,
            stock=stock,
            created_at=BASE_TIME,
            updated_at=BASE_TIME,
        )
        self.state.items[item.id] = item
        return item

    def balance(self, account_id: str) -> int:
        return self.state.accounts[account_id].balance

    def stock(self, item_id: str) -> int | None:
        return self.state.items[item_id].stock


# -------- Clock / publisher --------


class FakeClock:
    def __init__(self, now: datetime = BASE_TIME) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


class RecordingPublisher:
    def __init__(self) -> None:
        self.awarded: list[AwardResult] = []
        self.redeemed: list[RedeemResult] = []
        self.fulfilled: list[RedemptionRecord] = []
        self.fail = False

    def _check(self) -> None:
        if self.fail:
            raise RuntimeError("broker unavailable")

    def points_awarded(self, result: AwardResult) -> None:
        self._check()
        self.awarded.append(result)

    def item_redeemed(self, result: RedeemResult) -> None:
        self._check()
        self.redeemed.append(result)

    def redemption_fulfilled(self, record: RedemptionRecord) -> None:
        self._check()
        self.fulfilled.append(record)


# -------- Fixtures --------


@pytest.fixture
def store() -> InMemoryLedgerStore:
    return InMemoryLedgerStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def ledger_config() -> LedgerConfig:
    return LedgerConfig()


@pytest.fixture
def ledger(
    store: InMemoryLedgerStore, publisher: RecordingPublisher, clock: FakeClock
) -> LedgerService:
    return LedgerService(store=store, publisher=publisher, clock=clock)
