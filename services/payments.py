"""Сервис попыток оплаты"""
import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config import SettlementSettings
from database.atomic import run_atomic
from database.models.auction import Auction, AuctionStatus
from database.models.bid import Bid
from database.models.payment import PaymentAttempt, PaymentStatus
from database.models.transaction import Transaction, TransactionStatus
from services.auction import get_auction_by_product, get_pending_attempt, get_payment_attempts_for_auction
from services.clock import Clock, as_utc, utc_now
from services.errors import ErrorKind, Outcome
from services.notifications import Notifier, send_payment_notice

if TYPE_CHECKING:
    from services.retry_cascade import RetryCascade

logger = logging.getLogger(__name__)


async def open_attempt(
    session: AsyncSession,
    auction: Auction,
    bid: Bid,
    attempt_number: int,
    now: datetime,
    config: SettlementSettings
) -> PaymentAttempt:
    """Выдать участнику новую ожидающую попытку оплаты"""
    attempt = PaymentAttempt(
        auction_id=auction.id,
        bidder_id=bid.bidder_id,
        status=PaymentStatus.PENDING.value,
        attempt_number=attempt_number,
        attempt_time=now,
        expiry_time=now + timedelta(minutes=config.payment_window_minutes),
        amount=bid.amount,
    )
    session.add(attempt)
    auction.updated_at = now
    await session.flush()

    logger.info(
        f"Попытка оплаты {attempt.id} (№{attempt_number}) для аукциона {auction.id}: "
        f"участник {bid.bidder_id}, сумма {bid.amount}, до {attempt.expiry_time}"
    )
    return attempt


def record_transaction(
    session: AsyncSession,
    attempt: PaymentAttempt,
    status: TransactionStatus,
    amount: int,
    now: datetime
) -> Transaction:
    """Записать итог попытки оплаты"""
    transaction = Transaction(
        payment_attempt_id=attempt.id,
        status=status.value,
        amount=amount,
        timestamp=now,
    )
    session.add(transaction)
    return transaction


class PaymentAttemptManager:
    """Первая попытка оплаты для победителя и подтверждение оплаты"""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        config: SettlementSettings,
        notifier: Notifier,
        cascade: "RetryCascade",
        clock: Clock = utc_now
    ):
        self._session_maker = session_maker
        self._config = config
        self._notifier = notifier
        self._cascade = cascade
        self._clock = clock

    # =========================================================================
    # Первая попытка
    # =========================================================================

    async def create_first_attempt(self, auction_id: int) -> Outcome[PaymentAttempt]:
        """Создать первую попытку оплаты для лидера торгов"""
        created: list[PaymentAttempt] = []

        async def work(session: AsyncSession) -> Outcome[PaymentAttempt]:
            created.clear()
            auction = await session.get(Auction, auction_id)
            if auction is None:
                return Outcome.failure(ErrorKind.AUCTION_NOT_FOUND, f"Аукцион {auction_id} не найден")
            if auction.status != AuctionStatus.PENDING_PAYMENT.value:
                return Outcome.failure(
                    ErrorKind.AUCTION_NOT_AWAITING_PAYMENT,
                    f"Аукцион {auction_id} в статусе {auction.status}"
                )
            existing = await get_payment_attempts_for_auction(session, auction_id)
            if existing:
                # Первая попытка уже выдана
                return Outcome.success(existing[0])
            step = await self.open_first_attempt(session, auction, self._clock())
            if step.ok:
                created.append(step.value)
            return step

        outcome = await run_atomic(
            self._session_maker, work, operation=f"create_first_attempt(auction={auction_id})"
        )
        for attempt in created:
            await self.notify(attempt)
        return outcome

    async def open_first_attempt(
        self,
        session: AsyncSession,
        auction: Auction,
        now: datetime
    ) -> Outcome[PaymentAttempt]:
        """Выдать попытку №1 внутри уже открытой транзакции"""
        if auction.highest_bid_id is None:
            return Outcome.failure(ErrorKind.NO_BIDS_ON_AUCTION, f"На аукционе {auction.id} нет ставок")

        highest = await session.get(Bid, auction.highest_bid_id)
        attempt = await open_attempt(session, auction, highest, 1, now, self._config)
        return Outcome.success(attempt)

    # =========================================================================
    # Подтверждение оплаты
    # =========================================================================

    async def confirm_payment(
        self,
        product_id: int,
        caller_user_id: int,
        confirmed_amount: int,
        force_fail: bool = False
    ) -> Outcome[Transaction]:
        """Подтвердить оплату лота.

        При отказе (force_fail или неверная сумма) попытка закрывается
        как неудачная, и в той же транзакции оплата переходит к
        следующему участнику. Возвращается неудачная транзакция.
        """
        logger.info(
            f"Подтверждение оплаты товара {product_id} пользователем {caller_user_id}: "
            f"сумма {confirmed_amount}, force_fail={force_fail}"
        )
        new_attempts: list[PaymentAttempt] = []

        async def work(session: AsyncSession) -> Outcome[Transaction]:
            new_attempts.clear()
            return await self._confirm(
                session, product_id, caller_user_id, confirmed_amount, force_fail, self._clock(), new_attempts
            )

        outcome = await run_atomic(
            self._session_maker, work, operation=f"confirm_payment(product={product_id})"
        )

        if outcome.value is not None and outcome.value.status == TransactionStatus.SUCCESS.value:
            logger.info(f"Оплата товара {product_id} подтверждена, транзакция {outcome.value.id}")
        elif outcome.value is not None:
            logger.warning(f"Оплата товара {product_id} отклонена, транзакция {outcome.value.id}")
        else:
            logger.warning(f"Подтверждение оплаты товара {product_id} отклонено: {outcome.error.value}")

        for attempt in new_attempts:
            await self.notify(attempt)
        return outcome

    async def _confirm(
        self,
        session: AsyncSession,
        product_id: int,
        caller_user_id: int,
        confirmed_amount: int,
        force_fail: bool,
        now: datetime,
        new_attempts: list[PaymentAttempt]
    ) -> Outcome[Transaction]:
        auction = await get_auction_by_product(session, product_id)
        if auction is None:
            return Outcome.failure(ErrorKind.AUCTION_NOT_FOUND, f"Аукцион для товара {product_id} не найден")

        attempt = await get_pending_attempt(session, auction.id)
        if attempt is None:
            return Outcome.failure(
                ErrorKind.PAYMENT_ATTEMPT_NOT_FOUND,
                f"Нет ожидающей оплаты по аукциону {auction.id}"
            )

        if attempt.bidder_id != caller_user_id:
            return Outcome.failure(
                ErrorKind.UNAUTHORIZED_PAYMENT,
                f"Оплату ожидают от пользователя {attempt.bidder_id}"
            )

        if auction.status != AuctionStatus.PENDING_PAYMENT.value:
            return Outcome.failure(
                ErrorKind.AUCTION_NOT_AWAITING_PAYMENT,
                f"Аукцион {auction.id} в статусе {auction.status}"
            )

        if force_fail:
            transaction = await self._fail(session, auction, attempt, confirmed_amount, now, new_attempts)
            return Outcome.success(transaction)

        if now > as_utc(attempt.expiry_time):
            return Outcome.failure(
                ErrorKind.PAYMENT_WINDOW_EXPIRED,
                f"Окно оплаты закрылось {as_utc(attempt.expiry_time)}"
            )

        if confirmed_amount != attempt.amount:
            transaction = await self._fail(session, auction, attempt, confirmed_amount, now, new_attempts)
            return Outcome.failure(
                ErrorKind.INVALID_PAYMENT_AMOUNT,
                f"Ожидалось {attempt.amount}, подтверждено {confirmed_amount}",
                value=transaction
            )

        attempt.status = PaymentStatus.SUCCESS.value
        attempt.confirmed_amount = confirmed_amount
        auction.status = AuctionStatus.COMPLETED.value
        auction.updated_at = now
        transaction = record_transaction(session, attempt, TransactionStatus.SUCCESS, confirmed_amount, now)
        await session.flush()
        return Outcome.success(transaction)

    async def _fail(
        self,
        session: AsyncSession,
        auction: Auction,
        attempt: PaymentAttempt,
        confirmed_amount: int,
        now: datetime,
        new_attempts: list[PaymentAttempt]
    ) -> Transaction:
        """Закрыть попытку как неудачную и сразу передать оплату дальше"""
        attempt.status = PaymentStatus.FAILED.value
        attempt.confirmed_amount = confirmed_amount
        transaction = record_transaction(session, attempt, TransactionStatus.FAILED, confirmed_amount, now)
        await session.flush()

        step = await self._cascade.advance(session, auction, now)
        if step.value is not None:
            new_attempts.append(step.value)
        return transaction

    async def notify(self, attempt: Optional[PaymentAttempt]) -> None:
        """Уведомить участника о выданной попытке"""
        if attempt is not None:
            await send_payment_notice(self._session_maker, self._notifier, attempt)
