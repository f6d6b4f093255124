"""Продление аукциона при поздней ставке (антиснайпинг)"""
import logging
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from config import SettlementSettings
from database.models.auction import Auction
from database.models.extension_history import ExtensionHistory
from services.clock import as_utc

logger = logging.getLogger(__name__)


class AuctionExtension:
    """Решает, нужно ли отодвинуть окончание аукциона из-за ставки.

    Число продлений не ограничено: пока ставки идут чаще, чем раз
    в порог продления, аукцион остаётся открытым.
    """

    def __init__(self, config: SettlementSettings):
        self._threshold = timedelta(minutes=config.extension_threshold_minutes)
        self._duration = timedelta(minutes=config.extension_duration_minutes)

    def needs_extension(self, expiry_time: datetime, bid_time: datetime) -> bool:
        """Ставка сделана не позже чем за порог до окончания"""
        return as_utc(expiry_time) - as_utc(bid_time) <= self._threshold

    async def maybe_extend(
        self,
        session: AsyncSession,
        auction: Auction,
        bid_time: datetime
    ) -> bool:
        """Продлить аукцион, если ставка пришла слишком близко к окончанию.

        Изменения (срок, счётчик, запись в истории) добавляются в сессию
        и фиксируются вместе со ставкой.
        """
        if not self.needs_extension(auction.expiry_time, bid_time):
            logger.debug(f"Аукцион {auction.id}: продление не требуется")
            return False

        previous_expiry = as_utc(auction.expiry_time)
        new_expiry = previous_expiry + self._duration

        auction.expiry_time = new_expiry
        auction.extension_count = (auction.extension_count or 0) + 1

        session.add(ExtensionHistory(
            auction_id=auction.id,
            extended_at=as_utc(bid_time),
            previous_expiry=previous_expiry,
            new_expiry=new_expiry,
        ))

        logger.info(
            f"Аукцион {auction.id} продлён с {previous_expiry} до {new_expiry} "
            f"(продление №{auction.extension_count})"
        )
        return True
