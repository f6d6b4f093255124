"""Передача оплаты следующему участнику торгов"""
import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config import SettlementSettings
from database.atomic import run_atomic
from database.models.auction import Auction, AuctionStatus
from database.models.payment import PaymentAttempt, PaymentStatus
from database.models.transaction import TransactionStatus
from services.auction import get_bids_for_auction, get_expired_pending_attempts, get_payment_attempts_for_auction
from services.clock import Clock, utc_now
from services.errors import ErrorKind, Outcome
from services.notifications import Notifier, send_payment_notice
from services.payments import open_attempt, record_transaction

logger = logging.getLogger(__name__)


class RetryCascade:
    """Каскад повторных попыток оплаты.

    Вызывается двумя путями: периодической проверкой истёкших окон
    оплаты и напрямую при отказе в подтверждении. Обработка одной и
    той же попытки повторно ничего не меняет.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        config: SettlementSettings,
        notifier: Notifier,
        clock: Clock = utc_now
    ):
        self._session_maker = session_maker
        self._config = config
        self._notifier = notifier
        self._clock = clock

    async def process_failed_attempt(self, payment_id: int) -> Outcome[PaymentAttempt]:
        """Закрыть неудачную попытку и выдать оплату следующему участнику.

        Возвращает новую попытку, пустой успех, если делать нечего,
        или отказ, если каскад завершил аукцион.
        """
        created: list[PaymentAttempt] = []

        async def work(session: AsyncSession) -> Outcome[PaymentAttempt]:
            created.clear()
            step = await self._process(session, payment_id, self._clock())
            if step.value is not None:
                created.append(step.value)
            return step

        outcome = await run_atomic(
            self._session_maker, work, operation=f"process_failed_attempt(payment={payment_id})"
        )
        for attempt in created:
            await send_payment_notice(self._session_maker, self._notifier, attempt)
        return outcome

    async def _process(self, session: AsyncSession, payment_id: int, now: datetime) -> Outcome[PaymentAttempt]:
        attempt = await session.get(PaymentAttempt, payment_id)
        if attempt is None:
            logger.warning(f"Попытка оплаты {payment_id} не найдена")
            return Outcome.failure(ErrorKind.PAYMENT_ATTEMPT_NOT_FOUND, f"Попытка {payment_id} не найдена")

        if attempt.status == PaymentStatus.SUCCESS.value:
            logger.debug(f"Попытка {payment_id} уже оплачена, пропускаю")
            return Outcome.success()

        auction = await session.get(Auction, attempt.auction_id)
        if auction.status != AuctionStatus.PENDING_PAYMENT.value:
            logger.debug(f"Аукцион {auction.id} уже в статусе {auction.status}, попытку {payment_id} пропускаю")
            return Outcome.success()

        attempts = await get_payment_attempts_for_auction(session, auction.id)
        if attempts and attempts[-1].attempt_number > attempt.attempt_number:
            # Каскад по этой попытке уже выполнен
            logger.debug(f"Для попытки {payment_id} уже выдана следующая, пропускаю")
            return Outcome.success()

        if attempt.status == PaymentStatus.PENDING.value:
            logger.info(f"Окно оплаты попытки {payment_id} истекло, закрываю как неудачную")
            attempt.status = PaymentStatus.FAILED.value
            record_transaction(session, attempt, TransactionStatus.FAILED, attempt.amount, now)
            await session.flush()

        return await self.advance(session, auction, now)

    async def advance(self, session: AsyncSession, auction: Auction, now: datetime) -> Outcome[PaymentAttempt]:
        """Выдать попытку следующему участнику или завершить аукцион.

        Вызывается внутри транзакции, когда последняя попытка уже закрыта.
        """
        attempts = await get_payment_attempts_for_auction(session, auction.id)

        if len(attempts) >= self._config.max_retry_attempts:
            logger.warning(
                f"Аукцион {auction.id}: исчерпано {len(attempts)} попыток оплаты "
                f"(максимум {self._config.max_retry_attempts}), аукцион не состоялся"
            )
            self._fail_auction(auction, now)
            return Outcome.failure(ErrorKind.RETRY_LIMIT_REACHED, f"Использовано попыток: {len(attempts)}")

        tried = {a.bidder_id for a in attempts}
        bids = await get_bids_for_auction(session, auction.id)
        next_bid = next((bid for bid in bids if bid.bidder_id not in tried), None)

        if next_bid is None:
            logger.warning(f"Аукцион {auction.id}: больше нет участников для оплаты, аукцион не состоялся")
            self._fail_auction(auction, now)
            return Outcome.failure(ErrorKind.NO_ELIGIBLE_BIDDER_REMAINING, "Все участники уже получали попытку")

        last_number = max((a.attempt_number for a in attempts), default=0)
        attempt = await open_attempt(session, auction, next_bid, last_number + 1, now, self._config)
        return Outcome.success(attempt)

    @staticmethod
    def _fail_auction(auction: Auction, now: datetime) -> None:
        auction.status = AuctionStatus.FAILED.value
        auction.updated_at = now

    async def run_tick(self) -> int:
        """Обработать все попытки с истёкшим окном оплаты.

        Ошибка одной попытки не мешает обработке остальных.
        Возвращает число успешно обработанных попыток.
        """
        async with self._session_maker() as session:
            expired = await get_expired_pending_attempts(session, self._clock())

        if not expired:
            logger.debug("Нет попыток оплаты с истёкшим окном")
            return 0

        logger.info(f"Найдено {len(expired)} попыток оплаты с истёкшим окном")
        processed = 0
        for attempt in expired:
            try:
                await self.process_failed_attempt(attempt.id)
                processed += 1
            except Exception as e:
                logger.error(f"Ошибка при обработке попытки оплаты {attempt.id}: {e}", exc_info=True)

        logger.info(f"Обработано {processed} из {len(expired)} попыток оплаты")
        return processed
