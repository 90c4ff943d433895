"""Kabayan Points 원장 서비스.

포인트 지급(1회성 / cooldown), 마켓플레이스 교환, 교환 지급 완료 처리를 담당한다.
모든 상태 변경은 LedgerStore 트랜잭션 하나 안에서 확인과 적용을 함께 수행한다.
balance / stock 은 이 서비스를 통해서만 변경된다.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable

from fastapi import Depends

from common.types.datetime import utcnow

from ..events.publisher import LedgerEventPublisherInterface, get_event_publisher
from ..exceptions import (
    AccountNotFoundError,
    AlreadyClaimedError,
    ContentionError,
    CooldownActiveError,
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidStateError,
    ItemNotFoundError,
    LedgerError,
    RedemptionNotFoundError,
    SoldOutError,
)
from ..models.ledger import AwardResult, LedgerEntry
from ..models.reward import (
    RedeemResult,
    RedemptionRecord,
    RedemptionStatus,
    RewardItem,
)
from ..repositories.interfaces import LedgerStoreInterface
from ..repositories.ledger_store import get_ledger_store
from .role_gate import require_admin


logger = logging.getLogger(__name__)

MARKET_REDEEM_ACTION_PREFIX = "market_redeem"


def _require_positive_amount(amount: int) -> None:
    # bool 은 int 의 서브클래스라 명시적으로 거부한다.
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmountError(f"amount must be a positive integer, got {amount!r}")


def validate_stock(stock: object) -> None:
    """None(무제한) 또는 0 이상의 정수만 허용한다."""
    if stock is None:
        return
    if isinstance(stock, bool) or not isinstance(stock, int) or stock < 0:
        raise InvalidAmountError(
            f"stock must be null or a non-negative integer, got {stock!r}"
        )


class LedgerService:
    """원장 엔진.

    - 실패는 모두 LedgerError 하위 예외로 보고되며, 실패 시 아무 변경도 남지 않는다.
    - 내부 재시도는 하지 않는다. ContentionError 는 같은 인자로 재시도하면 된다.
    """

    def __init__(
        self,
        store: LedgerStoreInterface,
        publisher: LedgerEventPublisherInterface | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._publisher = publisher
        self._clock = clock

    # 지급 -----------------------------------------------------------------
    def award_once(
        self,
        account_id: str,
        action_key: str,
        amount: int,
        metadata: dict | None = None,
    ) -> AwardResult:
        """(account_id, action_key) 당 정확히 한 번만 포인트를 지급한다.

        이미 지급된 키면 AlreadyClaimedError. 동시 호출 중 하나만 성공한다.
        """
        _require_positive_amount(amount)
        if not action_key:
            raise InvalidAmountError("action_key must not be empty")

        now = self._clock()
        try:
            with self._store.transaction() as uow:
                if uow.accounts.find_by_account_id(account_id) is None:
                    raise AccountNotFoundError(account_id)

                if uow.entries.exists_by_key(account_id, action_key):
                    raise AlreadyClaimedError(account_id, action_key)

                # 멱등 엔트리 insert 가 유니크 인덱스로 중복을 한 번 더 막는다.
                entry = uow.entries.insert(
                    LedgerEntry(
                        account_id=account_id,
                        action_key=action_key,
                        amount=amount,
                        idempotent=True,
                        metadata=metadata,
                        created_at=now,
                        updated_at=now,
                    )
                )
                balance = uow.accounts.increment_balance(account_id, amount, now)
                if balance is None:
                    raise AccountNotFoundError(account_id)
        except LedgerError as exc:
            self._log_rejection("award_once", exc, account_id, action_key=action_key)
            raise

        result = AwardResult(entry=entry, balance=balance)
        logger.info(
            "points awarded amount=%d balance=%d",
            amount,
            balance,
            extra={"account_id": account_id, "action_key": action_key},
        )
        self._publish_awarded(result)
        return result

    def award_with_cooldown(
        self,
        account_id: str,
        cooldown_key: str,
        amount: int,
        cooldown: timedelta,
    ) -> AwardResult:
        """직전 성공 지급 이후 cooldown 이 지난 경우에만 지급한다.

        - now - last >= cooldown 이면 지급하고 now 를 새 기준 시각으로 기록한다.
        - 아니면 CooldownActiveError(remaining = cooldown - 경과 시간).
        - 달력 날짜가 아니라 경과 시간 기준이다 ("daily" = 24시간마다).
        """
        _require_positive_amount(amount)
        if cooldown <= timedelta(0):
            raise InvalidAmountError("cooldown must be a positive duration")

        now = self._clock()
        try:
            with self._store.transaction() as uow:
                account = uow.accounts.find_by_account_id(account_id)
                if account is None:
                    raise AccountNotFoundError(account_id)

                last = account.cooldowns.get(cooldown_key)
                if last is not None:
                    elapsed = now - last
                    if elapsed < cooldown:
                        raise CooldownActiveError(cooldown_key, cooldown - elapsed)

                balance = uow.accounts.claim_cooldown(
                    account_id, cooldown_key, amount, now, cutoff=now - cooldown
                )
                if balance is None:
                    # 읽은 직후 다른 트랜잭션이 먼저 claim 함
                    raise ContentionError(f"{cooldown_key} was claimed concurrently")

                entry = uow.entries.insert(
                    LedgerEntry(
                        account_id=account_id,
                        action_key=cooldown_key,
                        amount=amount,
                        idempotent=False,
                        metadata={"cooldown_seconds": int(cooldown.total_seconds())},
                        created_at=now,
                        updated_at=now,
                    )
                )
        except LedgerError as exc:
            self._log_rejection(
                "award_with_cooldown", exc, account_id, action_key=cooldown_key
            )
            raise

        result = AwardResult(entry=entry, balance=balance)
        logger.info(
            "cooldown reward awarded amount=%d balance=%d",
            amount,
            balance,
            extra={"account_id": account_id, "action_key": cooldown_key},
        )
        self._publish_awarded(result)
        return result

    # 교환 -----------------------------------------------------------------
    def redeem(self, account_id: str, item_id: str) -> RedeemResult:
        """잔액과 재고를 확인하고 아이템을 교환한다.

        잔액 차감, 재고 차감, 음수 원장 엔트리, pending 교환 기록을 한 트랜잭션으로 적용한다.
        재고 확인이 잔액 확인보다 먼저다 (품절 아이템은 잔액과 무관하게 SoldOut).
        """
        now = self._clock()
        try:
            with self._store.transaction() as uow:
                account = uow.accounts.find_by_account_id(account_id)
                if account is None:
                    raise AccountNotFoundError(account_id)

                item = uow.items.find_by_id(item_id)
                if item is None:
                    raise ItemNotFoundError(item_id)
                if item.is_sold_out:
                    raise SoldOutError(item_id)
                if account.balance < item.price:
                    raise InsufficientBalanceError(account.balance, item.price)

                balance = uow.accounts.spend_balance(account_id, item.price, now)
                if balance is None:
                    raise InsufficientBalanceError(account.balance, item.price)

                remaining_stock: int | None = None
                if item.stock is not None:
                    remaining_stock = uow.items.decrement_stock(item_id, now)
                    if remaining_stock is None:
                        raise SoldOutError(item_id)

                uow.entries.insert(
                    LedgerEntry(
                        account_id=account_id,
                        action_key=f"{MARKET_REDEEM_ACTION_PREFIX}:{item_id}",
                        amount=-item.price,
                        idempotent=False,
                        metadata={"item_title": item.title},
                        created_at=now,
                        updated_at=now,
                    )
                )
                record = uow.redemptions.insert(
                    RedemptionRecord(
                        account_id=account_id,
                        item_id=item_id,
                        item_title=item.title,
                        price=item.price,
                        status=RedemptionStatus.PENDING,
                        created_at=now,
                        updated_at=now,
                    )
                )
        except LedgerError as exc:
            self._log_rejection("redeem", exc, account_id, item_id=item_id)
            raise

        result = RedeemResult(record=record, balance=balance, remaining_stock=remaining_stock)
        logger.info(
            "item redeemed price=%d balance=%d remaining_stock=%s",
            item.price,
            balance,
            remaining_stock,
            extra={
                "account_id": account_id,
                "item_id": item_id,
                "redemption_id": record.id,
            },
        )
        if self._publisher is not None:
            try:
                self._publisher.item_redeemed(result)
            except Exception:  # noqa: BLE001
                logger.exception("failed to publish item redeemed event")
        return result

    def mark_redeemed(
        self, redemption_id: str, actor_account_id: str | None
    ) -> RedemptionRecord:
        """관리자가 pending 교환 건을 redeemed 로 전이한다."""
        now = self._clock()
        try:
            with self._store.transaction() as uow:
                require_admin(uow.accounts, actor_account_id)

                record = uow.redemptions.find_by_id(redemption_id)
                if record is None:
                    raise RedemptionNotFoundError(redemption_id)
                if record.status != RedemptionStatus.PENDING:
                    raise InvalidStateError(
                        f"redemption {redemption_id} is {record.status}, expected pending"
                    )

                updated = uow.redemptions.mark_redeemed(
                    redemption_id, actor_account_id or "", now
                )
                if updated is None:
                    raise InvalidStateError(
                        f"redemption {redemption_id} is no longer pending"
                    )
        except LedgerError as exc:
            self._log_rejection(
                "mark_redeemed", exc, actor_account_id, redemption_id=redemption_id
            )
            raise

        logger.info(
            "redemption marked redeemed",
            extra={"account_id": actor_account_id, "redemption_id": redemption_id},
        )
        if self._publisher is not None:
            try:
                self._publisher.redemption_fulfilled(updated)
            except Exception:  # noqa: BLE001
                logger.exception("failed to publish redemption fulfilled event")
        return updated

    # 조회 -----------------------------------------------------------------
    def get_history(
        self, account_id: str, page: int = 1, page_size: int = 20
    ) -> tuple[list[LedgerEntry], int]:
        """원장 이력 조회 (최신순)."""
        with self._store.reader() as uow:
            if uow.accounts.find_by_account_id(account_id) is None:
                raise AccountNotFoundError(account_id)
            return uow.entries.list_by_account(account_id, page, page_size)

    def list_redemptions_for_account(
        self, account_id: str, page: int = 1, page_size: int = 20
    ) -> tuple[list[RedemptionRecord], int]:
        with self._store.reader() as uow:
            if uow.accounts.find_by_account_id(account_id) is None:
                raise AccountNotFoundError(account_id)
            return uow.redemptions.list_by_account(account_id, page, page_size)

    def restock(
        self, actor_account_id: str | None, item_id: str, stock: int | None
    ) -> RewardItem:
        """관리자 재입고. 재고를 stock 으로 맞춘다 (None = 무제한).

        교환 중인 트랜잭션과 같은 문서를 갱신하므로 충돌 시 ContentionError 로 끝난다.
        """
        validate_stock(stock)

        now = self._clock()
        try:
            with self._store.transaction() as uow:
                require_admin(uow.accounts, actor_account_id)
                item = uow.items.set_stock(item_id, stock, now)
                if item is None:
                    raise ItemNotFoundError(item_id)
        except LedgerError as exc:
            self._log_rejection("restock", exc, actor_account_id, item_id=item_id)
            raise

        logger.info(
            "reward item restocked stock=%s",
            stock,
            extra={"account_id": actor_account_id, "item_id": item_id},
        )
        return item

    def ensure_admin(self, actor_account_id: str | None) -> None:
        with self._store.reader() as uow:
            require_admin(uow.accounts, actor_account_id)

    def list_redemptions(
        self,
        actor_account_id: str | None,
        status: RedemptionStatus | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[RedemptionRecord], int]:
        """전체 교환 목록 (관리자 전용)."""
        with self._store.reader() as uow:
            require_admin(uow.accounts, actor_account_id)
            return uow.redemptions.list(status, page, page_size)

    # 내부 util -------------------------------------------------------------
    def _publish_awarded(self, result: AwardResult) -> None:
        if self._publisher is None:
            return
        try:
            self._publisher.points_awarded(result)
        except Exception:  # noqa: BLE001
            # 이미 commit 된 지급은 되돌리지 않는다.
            logger.exception("failed to publish points awarded event")

    @staticmethod
    def _log_rejection(
        operation: str,
        exc: LedgerError,
        account_id: str | None,
        **extra: object,
    ) -> None:
        logger.info(
            "%s rejected: %s",
            operation,
            exc.message,
            extra={"account_id": account_id, "reason": exc.code, **extra},
        )


def get_ledger_service(
    store: LedgerStoreInterface = Depends(get_ledger_store),
    publisher: LedgerEventPublisherInterface | None = Depends(get_event_publisher),
) -> LedgerService:
    """FastAPI DI용 LedgerService 팩토리."""

    return LedgerService(store=store, publisher=publisher)
