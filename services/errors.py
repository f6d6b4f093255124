"""Результаты операций движка расчётов"""
import enum
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, enum.Enum):
    """Ожидаемые отказы операций.

    Это нормальные исходы проверки предусловий, они возвращаются
    вызывающему коду, а не выбрасываются.
    """
    AUCTION_NOT_FOUND = "auction_not_found"
    AUCTION_NOT_ACTIVE = "auction_not_active"
    OWNER_CANNOT_BID = "owner_cannot_bid"
    BID_TOO_LOW = "bid_too_low"
    NO_BIDS_ON_AUCTION = "no_bids_on_auction"
    UNAUTHORIZED_PAYMENT = "unauthorized_payment"
    PAYMENT_WINDOW_EXPIRED = "payment_window_expired"
    INVALID_PAYMENT_AMOUNT = "invalid_payment_amount"
    NO_ELIGIBLE_BIDDER_REMAINING = "no_eligible_bidder_remaining"
    PAYMENT_ATTEMPT_NOT_FOUND = "payment_attempt_not_found"
    AUCTION_NOT_AWAITING_PAYMENT = "auction_not_awaiting_payment"
    RETRY_LIMIT_REACHED = "retry_limit_reached"
    INVALID_AUCTION_DURATION = "invalid_auction_duration"


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Итог операции: значение и/или вид отказа"""

    value: Optional[T] = None
    error: Optional[ErrorKind] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: ErrorKind, detail: str = "", value: Optional[T] = None) -> "Outcome[T]":
        return cls(value=value, error=error, detail=detail)


class ConcurrencyConflictError(Exception):
    """Единица работы не зафиксировалась и после повторной попытки"""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Не удалось зафиксировать операцию {operation}: конфликт не разрешился")
