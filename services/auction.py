"""Сервис для работы с аукционами"""
from datetime import datetime, timedelta
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from config import SettlementSettings
from database.models.auction import Auction, AuctionStatus
from database.models.bid import Bid
from database.models.extension_history import ExtensionHistory
from database.models.payment import PaymentAttempt, PaymentStatus
from database.models.product import Product
from database.models.transaction import Transaction
from services.errors import ErrorKind, Outcome

logger = logging.getLogger(__name__)


async def create_product(
    session: AsyncSession,
    owner_id: int,
    title: str,
    description: str | None = None
) -> Product:
    """Создать товар для аукциона"""
    product = Product(user_id=owner_id, title=title, description=description)
    session.add(product)
    await session.flush()
    return product


async def create_auction(
    session: AsyncSession,
    product_id: int,
    start_price: int,
    duration_minutes: int,
    config: SettlementSettings,
    now: datetime
) -> Outcome[Auction]:
    """Создать активный аукцион для товара"""
    if not config.min_auction_duration_minutes <= duration_minutes <= config.max_auction_duration_minutes:
        return Outcome.failure(
            ErrorKind.INVALID_AUCTION_DURATION,
            f"Длительность должна быть от {config.min_auction_duration_minutes} "
            f"до {config.max_auction_duration_minutes} минут"
        )

    if start_price <= 0:
        return Outcome.failure(ErrorKind.BID_TOO_LOW, "Начальная цена должна быть больше нуля")

    auction = Auction(
        product_id=product_id,
        start_price=start_price,
        status=AuctionStatus.ACTIVE.value,
        expiry_time=now + timedelta(minutes=duration_minutes),
        extension_count=0,
        updated_at=now,
    )
    session.add(auction)
    await session.commit()
    await session.refresh(auction)

    logger.info(f"Аукцион {auction.id} для товара {product_id} создан, окончание {auction.expiry_time}")
    return Outcome.success(auction)


async def get_auction_by_product(session: AsyncSession, product_id: int) -> Auction | None:
    """Получить аукцион по товару"""
    result = await session.execute(
        select(Auction).where(Auction.product_id == product_id)
    )
    return result.scalar_one_or_none()


async def get_active_auctions(session: AsyncSession) -> list[Auction]:
    """Получить активные аукционы"""
    result = await session.execute(
        select(Auction)
        .where(Auction.status == AuctionStatus.ACTIVE.value)
        .order_by(Auction.expiry_time.asc())
    )
    return list(result.scalars().all())


async def get_expired_active_auctions(session: AsyncSession, now: datetime) -> list[Auction]:
    """Активные аукционы, срок которых уже прошёл"""
    result = await session.execute(
        select(Auction)
        .where(
            Auction.status == AuctionStatus.ACTIVE.value,
            Auction.expiry_time < now
        )
        .order_by(Auction.expiry_time.asc())
    )
    return list(result.scalars().all())


async def get_bids_for_auction(session: AsyncSession, auction_id: int) -> list[Bid]:
    """Ставки аукциона по убыванию суммы, при равенстве - сначала новые"""
    result = await session.execute(
        select(Bid)
        .where(Bid.auction_id == auction_id)
        .order_by(Bid.amount.desc(), Bid.timestamp.desc())
    )
    return list(result.scalars().all())


async def get_payment_attempts_for_auction(session: AsyncSession, auction_id: int) -> list[PaymentAttempt]:
    """Все попытки оплаты аукциона по порядку"""
    result = await session.execute(
        select(PaymentAttempt)
        .where(PaymentAttempt.auction_id == auction_id)
        .order_by(PaymentAttempt.attempt_number.asc())
    )
    return list(result.scalars().all())


async def get_pending_attempt(session: AsyncSession, auction_id: int) -> PaymentAttempt | None:
    """Текущая ожидающая попытка оплаты (не более одной на аукцион)"""
    result = await session.execute(
        select(PaymentAttempt).where(
            PaymentAttempt.auction_id == auction_id,
            PaymentAttempt.status == PaymentStatus.PENDING.value
        )
    )
    return result.scalar_one_or_none()


async def get_expired_pending_attempts(session: AsyncSession, now: datetime) -> list[PaymentAttempt]:
    """Ожидающие попытки, окно оплаты которых истекло"""
    result = await session.execute(
        select(PaymentAttempt)
        .where(
            PaymentAttempt.status == PaymentStatus.PENDING.value,
            PaymentAttempt.expiry_time < now
        )
        .order_by(PaymentAttempt.expiry_time.asc())
    )
    return list(result.scalars().all())


async def get_transactions_for_auction(session: AsyncSession, auction_id: int) -> list[Transaction]:
    """Транзакции по всем попыткам оплаты аукциона"""
    result = await session.execute(
        select(Transaction)
        .join(PaymentAttempt, Transaction.payment_attempt_id == PaymentAttempt.id)
        .where(PaymentAttempt.auction_id == auction_id)
        .order_by(Transaction.timestamp.asc(), Transaction.id.asc())
    )
    return list(result.scalars().all())


async def get_extension_history(session: AsyncSession, auction_id: int) -> list[ExtensionHistory]:
    """История продлений аукциона"""
    result = await session.execute(
        select(ExtensionHistory)
        .where(ExtensionHistory.auction_id == auction_id)
        .order_by(ExtensionHistory.id.asc())
    )
    return list(result.scalars().all())
