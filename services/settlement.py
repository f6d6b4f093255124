"""Движок расчётов по аукционам"""
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config import SettlementSettings
from database.models.bid import Bid
from database.models.payment import PaymentAttempt
from database.models.transaction import Transaction
from services.bidding import BidAdmission
from services.clock import Clock, utc_now
from services.errors import Outcome
from services.extension import AuctionExtension
from services.monitor import AuctionMonitor
from services.notifications import Notifier
from services.payments import PaymentAttemptManager
from services.retry_cascade import RetryCascade


class SettlementEngine:
    """Точка входа для обработчиков бота и фоновых задач.

    Собирает компоненты и передаёт им одну и ту же конфигурацию,
    фабрику сессий и часы.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        config: SettlementSettings,
        notifier: Notifier,
        clock: Clock = utc_now
    ):
        self.session_maker = session_maker
        self.config = config
        self.clock = clock

        self.extension = AuctionExtension(config)
        self.bidding = BidAdmission(session_maker, self.extension, clock)
        self.cascade = RetryCascade(session_maker, config, notifier, clock)
        self.payments = PaymentAttemptManager(session_maker, config, notifier, self.cascade, clock)
        self.monitor = AuctionMonitor(session_maker, self.payments, clock)

    async def place_bid(self, auction_id: int, bidder_id: int, amount: int) -> Outcome[Bid]:
        return await self.bidding.place_bid(auction_id, bidder_id, amount)

    async def confirm_payment(
        self,
        product_id: int,
        caller_user_id: int,
        confirmed_amount: int,
        force_fail: bool = False
    ) -> Outcome[Transaction]:
        return await self.payments.confirm_payment(product_id, caller_user_id, confirmed_amount, force_fail)

    async def create_first_attempt(self, auction_id: int) -> Outcome[PaymentAttempt]:
        return await self.payments.create_first_attempt(auction_id)

    async def process_failed_attempt(self, payment_id: int) -> Outcome[PaymentAttempt]:
        return await self.cascade.process_failed_attempt(payment_id)

    async def run_auction_monitor_tick(self) -> int:
        return await self.monitor.run_tick()

    async def run_retry_cascade_tick(self) -> int:
        return await self.cascade.run_tick()
