from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from typing import Callable

import pytest

from common.models.account import AccountRole
from ledger_service.app.exceptions import (
    AccountNotFoundError,
    AlreadyClaimedError,
    ContentionError,
    CooldownActiveError,
    ForbiddenError,
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidStateError,
    ItemNotFoundError,
    RedemptionNotFoundError,
    SoldOutError,
)
from ledger_service.app.models.reward import RedemptionStatus
from ledger_service.app.services.ledger_service import LedgerService


DAY = timedelta(hours=24)


def _run_concurrently(calls: list[Callable[[], object]]) -> list[object]:
    """모든 호출을 동시에 출발시키고 결과 또는 예외를 순서대로 돌려준다."""
    barrier = threading.Barrier(len(calls))

    def _run(call: Callable[[], object]) -> object:
        barrier.wait()
        try:
            return call()
        except Exception as exc:  # noqa: BLE001
            return exc

    with ThreadPoolExecutor(max_workers=len(calls)) as pool:
        return list(pool.map(_run, calls))


# -------- award_once --------


def test_award_once_credits_balance_and_appends_entry(store, ledger) -> None:
    store.add_account("A")

    result = ledger.award_once("A", "news_read:42", 10)

    assert result.balance == 10
    assert result.entry.action_key == "news_read:42"
    assert result.entry.amount == 10
    assert result.entry.idempotent is True
    assert store.balance("A") == 10
    assert len(store.state.entries) == 1


def test_award_once_second_call_is_already_claimed_and_balance_unchanged(
    store, ledger
) -> None:
    store.add_account("A")
    ledger.award_once("A", "news_read:42", 10)

    with pytest.raises(AlreadyClaimedError) as exc_info:
        ledger.award_once("A", "news_read:42", 10)

    assert exc_info.value.action_key == "news_read:42"
    assert store.balance("A") == 10
    assert len(store.state.entries) == 1


def test_award_once_same_key_is_independent_per_account(store, ledger) -> None:
    store.add_account("A")
    store.add_account("B")

    ledger.award_once("A", "video_watched:7", 15)
    ledger.award_once("B", "video_watched:7", 15)

    assert store.balance("A") == 15
    assert store.balance("B") == 15


def test_award_once_unknown_account(store, ledger) -> None:
    with pytest.raises(AccountNotFoundError):
        ledger.award_once("ghost", "news_read:1", 10)

    assert store.state.entries == []


@pytest.mark.parametrize("amount", [0, -5, True])
def test_award_once_rejects_non_positive_amount(store, ledger, amount) -> None:
    store.add_account("A")

    with pytest.raises(InvalidAmountError):
        ledger.award_once("A", "news_read:1", amount)

    assert store.balance("A") == 0
    assert store.commits == 0


def test_award_once_concurrent_same_key_awards_exactly_once(store, ledger) -> None:
    store.add_account("A")

    results = _run_concurrently(
        [lambda: ledger.award_once("A", "news_read:42", 10) for _ in range(8)]
    )

    successes = [r for r in results if not isinstance(r, Exception)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(successes) == 1
    assert all(isinstance(f, AlreadyClaimedError) for f in failures)
    assert store.balance("A") == 10
    assert len(store.state.entries) == 1


# -------- award_with_cooldown --------


def test_award_with_cooldown_blocks_inside_window(store, ledger, clock) -> None:
    store.add_account("A")
    first = ledger.award_with_cooldown("A", "daily_checkin", 5, DAY)
    clock.advance(timedelta(hours=3))

    with pytest.raises(CooldownActiveError) as exc_info:
        ledger.award_with_cooldown("A", "daily_checkin", 5, DAY)

    assert first.balance == 5
    assert exc_info.value.remaining == timedelta(hours=21)
    assert exc_info.value.remaining > timedelta(0)
    assert store.balance("A") == 5
    assert len(store.state.entries) == 1


def test_award_with_cooldown_succeeds_after_window(store, ledger, clock) -> None:
    store.add_account("A")
    ledger.award_with_cooldown("A", "daily_checkin", 5, DAY)
    clock.advance(DAY + timedelta(minutes=1))

    result = ledger.award_with_cooldown("A", "daily_checkin", 5, DAY)

    assert result.balance == 10
    assert store.state.accounts["A"].cooldowns["daily_checkin"] == clock.now


def test_award_with_cooldown_boundary_is_inclusive(store, ledger, clock) -> None:
    store.add_account("A")
    ledger.award_with_cooldown("A", "weekly_quiz", 15, timedelta(days=7))

    clock.advance(timedelta(days=7) - timedelta(seconds=1))
    with pytest.raises(CooldownActiveError) as exc_info:
        ledger.award_with_cooldown("A", "weekly_quiz", 15, timedelta(days=7))
    assert exc_info.value.remaining == timedelta(seconds=1)

    clock.advance(timedelta(seconds=1))
    result = ledger.award_with_cooldown("A", "weekly_quiz", 15, timedelta(days=7))
    assert result.balance == 30


def test_award_with_cooldown_keys_are_independent(store, ledger) -> None:
    store.add_account("A")

    ledger.award_with_cooldown("A", "daily_checkin", 5, DAY)
    result = ledger.award_with_cooldown("A", "weekly_quiz", 15, timedelta(days=7))

    assert result.balance == 20


def test_award_with_cooldown_entries_are_not_idempotent(store, ledger, clock) -> None:
    store.add_account("A")

    ledger.award_with_cooldown("A", "daily_checkin", 5, DAY)
    clock.advance(DAY)
    ledger.award_with_cooldown("A", "daily_checkin", 5, DAY)

    keys = [(e.action_key, e.idempotent) for e in store.state.entries]
    assert keys == [("daily_checkin", False), ("daily_checkin", False)]


def test_award_with_cooldown_concurrent_claims_award_once(store, ledger) -> None:
    store.add_account("A")

    results = _run_concurrently(
        [lambda: ledger.award_with_cooldown("A", "daily_checkin", 5, DAY) for _ in range(6)]
    )

    successes = [r for r in results if not isinstance(r, Exception)]
    assert len(successes) == 1
    assert all(
        isinstance(r, CooldownActiveError)
        for r in results
        if isinstance(r, Exception)
    )
    assert store.balance("A") == 5


# -------- redeem --------


def test_redeem_sticker_scenario(store, ledger) -> None:
    store.add_account("A", balance=100)
    sticker = store.add_item("sticker", price=60, stock=1)

    result = ledger.redeem("A", sticker.id)

    assert result.balance == 40
    assert result.remaining_stock == 0
    assert result.record.status == RedemptionStatus.PENDING
    assert result.record.item_title == "sticker"
    assert result.record.price == 60
    assert store.balance("A") == 40
    assert store.stock(sticker.id) == 0

    spend = store.state.entries[-1]
    assert spend.amount == -60
    assert spend.action_key == f"market_redeem:{sticker.id}"

    with pytest.raises(SoldOutError):
        ledger.redeem("A", sticker.id)
    assert store.balance("A") == 40
    assert len(store.state.redemptions) == 1


def test_redeem_insufficient_balance_changes_nothing(store, ledger) -> None:
    store.add_account("A", balance=50)
    item = store.add_item("jacket", price=60, stock=3)

    with pytest.raises(InsufficientBalanceError) as exc_info:
        ledger.redeem("A", item.id)

    assert exc_info.value.balance == 50
    assert exc_info.value.price == 60
    assert store.balance("A") == 50
    assert store.stock(item.id) == 3
    assert store.state.entries == []
    assert store.state.redemptions == {}


def test_redeem_sold_out_is_reported_before_insufficient_balance(store, ledger) -> None:
    store.add_account("A", balance=0)
    item = store.add_item("mug", price=60, stock=0)

    with pytest.raises(SoldOutError):
        ledger.redeem("A", item.id)


def test_redeem_unlimited_stock(store, ledger) -> None:
    store.add_account("A", balance=100)
    item = store.add_item("voucher", price=30)

    ledger.redeem("A", item.id)
    result = ledger.redeem("A", item.id)

    assert result.balance == 40
    assert result.remaining_stock is None
    assert store.stock(item.id) is None


def test_redeem_unknown_item_and_account(store, ledger) -> None:
    store.add_account("A", balance=100)
    item = store.add_item("cap", price=10, stock=1)

    with pytest.raises(ItemNotFoundError):
        ledger.redeem("A", "missing-item")
    with pytest.raises(AccountNotFoundError):
        ledger.redeem("ghost", item.id)


def test_redeem_never_drives_balance_negative(store, ledger) -> None:
    store.add_account("A", balance=100)
    cheap = store.add_item("pin", price=30)
    pricey = store.add_item("bag", price=45)

    outcomes = []
    for item in [pricey, cheap, pricey, cheap, cheap, pricey]:
        try:
            outcomes.append(ledger.redeem("A", item.id).balance)
        except InsufficientBalanceError:
            outcomes.append("insufficient")
        assert store.balance("A") >= 0

    assert outcomes == [55, 25, "insufficient", "insufficient", "insufficient", "insufficient"]


def test_redeem_last_unit_concurrently_from_two_accounts(store, ledger) -> None:
    store.add_account("A", balance=100)
    store.add_account("B", balance=100)
    item = store.add_item("sticker", price=60, stock=1)

    results = _run_concurrently(
        [lambda: ledger.redeem("A", item.id), lambda: ledger.redeem("B", item.id)]
    )

    successes = [r for r in results if not isinstance(r, Exception)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(successes) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], SoldOutError)
    assert store.stock(item.id) == 0
    assert sorted([store.balance("A"), store.balance("B")]) == [40, 100]


def test_redeem_concurrent_spends_never_overdraw(store, ledger) -> None:
    store.add_account("A", balance=100)
    item = store.add_item("pin", price=30)

    results = _run_concurrently([lambda: ledger.redeem("A", item.id) for _ in range(5)])

    successes = [r for r in results if not isinstance(r, Exception)]
    assert len(successes) == 3
    assert store.balance("A") == 10


# -------- mark_redeemed --------


def _pending_redemption(store, ledger) -> str:
    store.add_account("A", balance=100)
    item = store.add_item("sticker", price=60, stock=1)
    return ledger.redeem("A", item.id).record.id


def test_mark_redeemed_by_admin(store, ledger, clock) -> None:
    redemption_id = _pending_redemption(store, ledger)
    store.add_account("admin", role=AccountRole.ADMIN)

    record = ledger.mark_redeemed(redemption_id, "admin")

    assert record.status == RedemptionStatus.REDEEMED
    assert record.redeemed_by == "admin"
    assert record.redeemed_at == clock.now
    assert store.state.redemptions[redemption_id].status == RedemptionStatus.REDEEMED


def test_mark_redeemed_by_non_admin_is_forbidden(store, ledger) -> None:
    redemption_id = _pending_redemption(store, ledger)
    before = store.state.redemptions[redemption_id]

    with pytest.raises(ForbiddenError):
        ledger.mark_redeemed(redemption_id, "A")
    with pytest.raises(ForbiddenError):
        ledger.mark_redeemed(redemption_id, None)

    assert store.state.redemptions[redemption_id] == before


def test_mark_redeemed_reads_role_fresh(store, ledger) -> None:
    redemption_id = _pending_redemption(store, ledger)
    store.add_account("ops", role=AccountRole.ADMIN)
    # 권한 회수 후에는 바로 거부된다
    store.state.accounts["ops"] = store.state.accounts["ops"].model_copy(
        update={"role": AccountRole.USER}
    )

    with pytest.raises(ForbiddenError):
        ledger.mark_redeemed(redemption_id, "ops")


def test_mark_redeemed_twice_is_invalid_state(store, ledger) -> None:
    redemption_id = _pending_redemption(store, ledger)
    store.add_account("admin", role=AccountRole.ADMIN)
    ledger.mark_redeemed(redemption_id, "admin")

    with pytest.raises(InvalidStateError):
        ledger.mark_redeemed(redemption_id, "admin")


def test_mark_redeemed_unknown_record(store, ledger) -> None:
    store.add_account("admin", role=AccountRole.ADMIN)

    with pytest.raises(RedemptionNotFoundError):
        ledger.mark_redeemed("missing", "admin")


# -------- commit landing between read and guarded write --------


def _update_account(account_id: str, **update):
    def write(state) -> None:
        account = state.accounts[account_id]
        state.accounts[account_id] = account.model_copy(update=update)

    return write


def test_cooldown_claimed_by_other_writer_is_contention(store, ledger, clock) -> None:
    store.add_account("A")
    store.competing_write = _update_account(
        "A", balance=5, cooldowns={"daily_checkin": clock.now}
    )

    with pytest.raises(ContentionError):
        ledger.award_with_cooldown("A", "daily_checkin", 5, DAY)

    assert store.balance("A") == 5
    assert store.state.entries == []
    assert store.commits == 0


def test_balance_spent_by_other_writer_is_insufficient(store, ledger) -> None:
    store.add_account("A", balance=100)
    item = store.add_item("sticker", price=60, stock=3)
    store.competing_write = _update_account("A", balance=40)

    with pytest.raises(InsufficientBalanceError):
        ledger.redeem("A", item.id)

    assert store.balance("A") == 40
    assert store.stock(item.id) == 3
    assert store.state.entries == []
    assert store.state.redemptions == {}


def test_last_unit_taken_by_other_writer_is_sold_out(store, ledger) -> None:
    store.add_account("A", balance=100)
    item = store.add_item("sticker", price=30, stock=1)

    def take_last_unit(state) -> None:
        state.items[item.id] = state.items[item.id].model_copy(update={"stock": 0})

    store.competing_write = take_last_unit

    with pytest.raises(SoldOutError):
        ledger.redeem("A", item.id)

    assert store.balance("A") == 100
    assert store.stock(item.id) == 0
    assert store.state.entries == []
    assert store.state.redemptions == {}


def test_redemption_fulfilled_by_other_admin_is_invalid_state(
    store, ledger, publisher
) -> None:
    redemption_id = _pending_redemption(store, ledger)
    store.add_account("admin", role=AccountRole.ADMIN)

    def fulfilled_elsewhere(state) -> None:
        record = state.redemptions[redemption_id]
        state.redemptions[redemption_id] = record.model_copy(
            update={"status": RedemptionStatus.REDEEMED, "redeemed_by": "admin2"}
        )

    store.competing_write = fulfilled_elsewhere

    with pytest.raises(InvalidStateError):
        ledger.mark_redeemed(redemption_id, "admin")

    assert store.state.redemptions[redemption_id].redeemed_by == "admin2"
    assert publisher.fulfilled == []


def test_account_removed_before_credit_is_not_found(store, ledger) -> None:
    store.add_account("A")

    def remove_account(state) -> None:
        del state.accounts["A"]

    store.competing_write = remove_account

    with pytest.raises(AccountNotFoundError):
        ledger.award_once("A", "news_read:9", 10)

    assert "A" not in store.state.accounts
    assert store.state.entries == []


# -------- contention / events --------


def test_contention_is_propagated_without_partial_state(store, ledger, publisher) -> None:
    store.add_account("A")
    store.contention_failures = 1

    with pytest.raises(ContentionError) as exc_info:
        ledger.award_once("A", "news_read:9", 10)

    assert exc_info.value.retryable is True
    assert store.balance("A") == 0
    assert store.state.entries == []
    assert publisher.awarded == []

    # 같은 인자로 재시도하면 확정된 결과를 얻는다
    assert ledger.award_once("A", "news_read:9", 10).balance == 10


def test_events_are_published_after_commit(store, ledger, publisher) -> None:
    store.add_account("A", balance=100)
    store.add_account("admin", role=AccountRole.ADMIN)
    item = store.add_item("sticker", price=60, stock=1)

    ledger.award_once("A", "news_share:3", 5)
    redeemed = ledger.redeem("A", item.id)
    ledger.mark_redeemed(redeemed.record.id, "admin")

    assert [r.entry.action_key for r in publisher.awarded] == ["news_share:3"]
    assert [r.record.id for r in publisher.redeemed] == [redeemed.record.id]
    assert [r.status for r in publisher.fulfilled] == [RedemptionStatus.REDEEMED]


def test_rejected_operations_publish_nothing(store, ledger, publisher) -> None:
    store.add_account("A")
    ledger.award_once("A", "news_read:1", 10)

    with pytest.raises(AlreadyClaimedError):
        ledger.award_once("A", "news_read:1", 10)

    assert len(publisher.awarded) == 1


def test_publish_failure_does_not_undo_commit(store, ledger, publisher) -> None:
    store.add_account("A")
    publisher.fail = True

    result = ledger.award_once("A", "news_read:5", 10)

    assert result.balance == 10
    assert store.balance("A") == 10


def test_ledger_without_publisher(store, clock) -> None:
    store.add_account("A")
    service = LedgerService(store=store, clock=clock)

    assert service.award_once("A", "news_read:5", 10).balance == 10


# -------- queries --------


def test_history_is_newest_first_and_paginated(store, ledger, clock) -> None:
    store.add_account("A")
    for ref in range(5):
        ledger.award_once("A", f"news_read:{ref}", 10)
        clock.advance(timedelta(minutes=1))

    entries, total = ledger.get_history("A", page=1, page_size=2)

    assert total == 5
    assert [e.action_key for e in entries] == ["news_read:4", "news_read:3"]


def test_list_redemptions_requires_admin(store, ledger) -> None:
    _pending_redemption(store, ledger)
    store.add_account("admin", role=AccountRole.ADMIN)

    with pytest.raises(ForbiddenError):
        ledger.list_redemptions("A")

    records, total = ledger.list_redemptions("admin", status=RedemptionStatus.PENDING)
    assert total == 1
    assert records[0].account_id == "A"

    _, redeemed_total = ledger.list_redemptions("admin", status=RedemptionStatus.REDEEMED)
    assert redeemed_total == 0


def test_list_redemptions_for_account(store, ledger) -> None:
    _pending_redemption(store, ledger)

    records, total = ledger.list_redemptions_for_account("A")

    assert total == 1
    assert records[0].item_title == "sticker"
