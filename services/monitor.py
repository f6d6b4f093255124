"""Завершение истёкших аукционов"""
import logging
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database.atomic import run_atomic
from database.models.auction import Auction, AuctionStatus
from database.models.payment import PaymentAttempt
from services.auction import get_expired_active_auctions
from services.clock import Clock, as_utc, utc_now
from services.payments import PaymentAttemptManager

logger = logging.getLogger(__name__)


class AuctionMonitor:
    """Находит истёкшие активные аукционы и подводит итоги.

    Со ставками - ожидание оплаты и первая попытка для победителя,
    без ставок - аукцион не состоялся.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        payments: PaymentAttemptManager,
        clock: Clock = utc_now
    ):
        self._session_maker = session_maker
        self._payments = payments
        self._clock = clock

    async def run_tick(self) -> int:
        """Проверить и завершить истёкшие аукционы.

        Каждый аукцион обрабатывается в своей транзакции; ошибка одного
        не мешает остальным. Возвращает число завершённых аукционов.
        """
        async with self._session_maker() as session:
            expired = await get_expired_active_auctions(session, self._clock())

        if not expired:
            logger.debug("Нет истёкших аукционов")
            return 0

        logger.info(f"Найдено {len(expired)} истёкших аукционов")
        finalized = 0
        for auction in expired:
            try:
                if await self.finalize(auction.id):
                    finalized += 1
            except Exception as e:
                logger.error(f"Ошибка при завершении аукциона {auction.id}: {e}", exc_info=True)

        logger.info(f"Завершено {finalized} из {len(expired)} истёкших аукционов")
        return finalized

    async def finalize(self, auction_id: int) -> bool:
        """Завершить один аукцион, если он всё ещё активен и истёк"""
        created: list[PaymentAttempt] = []

        async def work(session: AsyncSession) -> bool:
            created.clear()
            finalized, attempt = await self._finalize(session, auction_id, self._clock())
            if attempt is not None:
                created.append(attempt)
            return finalized

        finalized = await run_atomic(self._session_maker, work, operation=f"finalize_auction({auction_id})")
        for attempt in created:
            await self._payments.notify(attempt)
        return finalized

    async def _finalize(
        self,
        session: AsyncSession,
        auction_id: int,
        now: datetime
    ) -> Tuple[bool, Optional[PaymentAttempt]]:
        # Перечитываем: ставка могла продлить аукцион после выборки
        auction = await session.get(Auction, auction_id)
        if auction is None or auction.status != AuctionStatus.ACTIVE.value:
            return False, None
        if as_utc(auction.expiry_time) >= now:
            logger.info(f"Аукцион {auction_id} продлён после выборки, пропускаю")
            return False, None

        auction.updated_at = now
        if auction.highest_bid_id is None:
            auction.status = AuctionStatus.FAILED.value
            await session.flush()
            logger.info(f"Аукцион {auction_id} завершён без ставок")
            return True, None

        auction.status = AuctionStatus.PENDING_PAYMENT.value
        step = await self._payments.open_first_attempt(session, auction, now)
        logger.info(f"Аукцион {auction_id} завершён, ожидается оплата (лидирующая ставка {auction.highest_bid_id})")
        return True, step.value
