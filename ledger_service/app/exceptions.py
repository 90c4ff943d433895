from __future__ import annotations

from datetime import timedelta
from http import HTTPStatus


class LedgerError(Exception):
    """Base exception for all ledger-service rejections.

    Every subclass is a terminal outcome for the call that raised it: the
    transaction was rolled back and nothing became visible.
    """

    code: str = "ledger_error"
    status_code: int = HTTPStatus.BAD_REQUEST

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AccountNotFoundError(LedgerError):
    code = "account_not_found"
    status_code = HTTPStatus.NOT_FOUND

    def __init__(self, account_id: str) -> None:
        super().__init__(f"account not found: {account_id}")
        self.account_id = account_id


class ItemNotFoundError(LedgerError):
    code = "item_not_found"
    status_code = HTTPStatus.NOT_FOUND

    def __init__(self, item_id: str) -> None:
        super().__init__(f"reward item not found: {item_id}")
        self.item_id = item_id


class RedemptionNotFoundError(LedgerError):
    code = "redemption_not_found"
    status_code = HTTPStatus.NOT_FOUND

    def __init__(self, redemption_id: str) -> None:
        super().__init__(f"redemption not found: {redemption_id}")
        self.redemption_id = redemption_id


class AlreadyClaimedError(LedgerError):
    """The (account, action key) pair already has a ledger entry."""

    code = "already_claimed"
    status_code = HTTPStatus.CONFLICT

    def __init__(self, account_id: str, action_key: str) -> None:
        super().__init__(f"reward already claimed for {action_key}")
        self.account_id = account_id
        self.action_key = action_key


class CooldownActiveError(LedgerError):
    """A time-gated reward was claimed again inside its window."""

    code = "cooldown_active"
    status_code = HTTPStatus.TOO_MANY_REQUESTS

    def __init__(self, cooldown_key: str, remaining: timedelta) -> None:
        super().__init__(
            f"{cooldown_key} available again in {int(remaining.total_seconds())}s"
        )
        self.cooldown_key = cooldown_key
        self.remaining = remaining


class InsufficientBalanceError(LedgerError):
    code = "insufficient_balance"
    status_code = HTTPStatus.PAYMENT_REQUIRED

    def __init__(self, balance: int, price: int) -> None:
        super().__init__(f"not enough Kabayan Points: balance={balance} price={price}")
        self.balance = balance
        self.price = price


class SoldOutError(LedgerError):
    code = "sold_out"
    status_code = HTTPStatus.CONFLICT

    def __init__(self, item_id: str) -> None:
        super().__init__(f"reward item is sold out: {item_id}")
        self.item_id = item_id


class ForbiddenError(LedgerError):
    code = "forbidden"
    status_code = HTTPStatus.FORBIDDEN

    def __init__(self, account_id: str | None) -> None:
        super().__init__("admin role is required for this operation")
        self.account_id = account_id


class InvalidStateError(LedgerError):
    code = "invalid_state"
    status_code = HTTPStatus.CONFLICT


class InvalidAmountError(LedgerError):
    code = "invalid_amount"
    status_code = HTTPStatus.UNPROCESSABLE_ENTITY


class ContentionError(LedgerError):
    """Transient store conflict. Safe to retry with the same arguments."""

    code = "contention"
    status_code = HTTPStatus.CONFLICT
    retryable = True
