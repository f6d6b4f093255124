"""Приём ставок"""
import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database.atomic import run_atomic
from database.models.auction import Auction, AuctionStatus
from database.models.bid import Bid
from services.clock import Clock, as_utc, utc_now
from services.errors import ErrorKind, Outcome
from services.extension import AuctionExtension

logger = logging.getLogger(__name__)


class BidAdmission:
    """Проверка и запись ставки.

    Продление аукциона, сама ставка и указатель на лидирующую ставку
    фиксируются одной транзакцией.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        extension: AuctionExtension,
        clock: Clock = utc_now
    ):
        self._session_maker = session_maker
        self._extension = extension
        self._clock = clock

    async def place_bid(self, auction_id: int, bidder_id: int, amount: int) -> Outcome[Bid]:
        """Сделать ставку"""
        logger.info(f"Пользователь {bidder_id} делает ставку {amount} на аукцион {auction_id}")

        async def work(session: AsyncSession) -> Outcome[Bid]:
            return await self._place_bid(session, auction_id, bidder_id, amount, self._clock())

        outcome = await run_atomic(self._session_maker, work, operation=f"place_bid(auction={auction_id})")
        if outcome.ok:
            logger.info(f"Ставка {outcome.value.id} принята на аукционе {auction_id}")
        else:
            logger.warning(f"Ставка на аукцион {auction_id} отклонена: {outcome.error.value} {outcome.detail}")
        return outcome

    async def _place_bid(
        self,
        session: AsyncSession,
        auction_id: int,
        bidder_id: int,
        amount: int,
        now: datetime
    ) -> Outcome[Bid]:
        auction = await session.get(Auction, auction_id)
        if auction is None:
            return Outcome.failure(ErrorKind.AUCTION_NOT_FOUND, f"Аукцион {auction_id} не найден")

        # Истёкший, но ещё не завершённый монитором аукцион ставок не принимает
        if auction.status != AuctionStatus.ACTIVE.value or now >= as_utc(auction.expiry_time):
            return Outcome.failure(ErrorKind.AUCTION_NOT_ACTIVE, f"Аукцион {auction_id} не активен")

        if auction.product.user_id == bidder_id:
            return Outcome.failure(ErrorKind.OWNER_CANNOT_BID, "Владелец лота не может делать ставки")

        current_highest = await self._current_highest(session, auction)
        if amount <= current_highest:
            return Outcome.failure(
                ErrorKind.BID_TOO_LOW,
                f"Ставка должна быть выше {current_highest}"
            )

        await self._extension.maybe_extend(session, auction, now)

        bid = Bid(
            auction_id=auction.id,
            bidder_id=bidder_id,
            amount=amount,
            timestamp=now,
        )
        session.add(bid)
        await session.flush()

        auction.highest_bid_id = bid.id
        auction.updated_at = now
        await session.flush()

        return Outcome.success(bid)

    @staticmethod
    async def _current_highest(session: AsyncSession, auction: Auction) -> int:
        """Текущая лидирующая сумма или начальная цена"""
        if auction.highest_bid_id is None:
            return auction.start_price
        highest = await session.get(Bid, auction.highest_bid_id)
        return highest.amount
