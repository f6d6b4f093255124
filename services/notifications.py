"""Уведомления участников торгов об оплате"""
import logging
from typing import Protocol

from aiogram import Bot
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database.models.auction import Auction
from database.models.payment import PaymentAttempt
from database.models.user import User
from services.clock import as_utc

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Доставка сообщения участнику. Работает по принципу best effort."""

    async def notify(self, bidder: User, auction: Auction, attempt: PaymentAttempt) -> None:
        ...


def build_payment_text(auction: Auction, attempt: PaymentAttempt) -> str:
    """Текст сообщения о необходимости оплаты"""
    deadline = as_utc(attempt.expiry_time).strftime("%d.%m.%Y %H:%M UTC")
    title = auction.product.title if auction.product else f"Лот #{auction.product_id}"
    if attempt.attempt_number == 1:
        header = "🏆 Вы выиграли аукцион!"
    else:
        header = "🔔 Лот перешёл к вам: предыдущий участник не оплатил покупку"
    return (
        f"{header}\n\n"
        f"Лот: <b>{title}</b>\n"
        f"Сумма к оплате: <b>{attempt.amount:,}</b>\n"
        f"Попытка оплаты: №{attempt.attempt_number}\n"
        f"Оплатите до: <b>{deadline}</b>\n\n"
        "Если не подтвердить оплату вовремя, лот перейдёт следующему участнику."
    )


class TelegramNotifier:
    """Отправка уведомлений через Telegram-бота"""

    def __init__(self, bot: Bot):
        self._bot = bot

    async def notify(self, bidder: User, auction: Auction, attempt: PaymentAttempt) -> None:
        from bot.keyboards.payments import get_payment_keyboard

        await self._bot.send_message(
            bidder.telegram_id,
            build_payment_text(auction, attempt),
            parse_mode="HTML",
            reply_markup=get_payment_keyboard(auction.product_id, attempt.amount)
        )
        logger.info(
            f"Уведомление об оплате отправлено пользователю {bidder.telegram_id} "
            f"(аукцион {auction.id}, попытка №{attempt.attempt_number})"
        )


class LogNotifier:
    """Уведомления только в лог, когда бот не настроен"""

    async def notify(self, bidder: User, auction: Auction, attempt: PaymentAttempt) -> None:
        logger.info(
            f"Оплата ожидается от пользователя {bidder.id}: аукцион {auction.id}, "
            f"попытка №{attempt.attempt_number}, сумма {attempt.amount}"
        )


async def send_payment_notice(
    session_maker: async_sessionmaker[AsyncSession],
    notifier: Notifier,
    attempt: PaymentAttempt
) -> bool:
    """Уведомить участника о выданной попытке оплаты.

    Вызывается после фиксации транзакции. Любая ошибка доставки
    записывается в лог и не влияет на ход расчётов.
    """
    try:
        async with session_maker() as session:
            bidder = await session.get(User, attempt.bidder_id)
            auction = await session.get(Auction, attempt.auction_id)
        await notifier.notify(bidder, auction, attempt)
        return True
    except Exception as e:
        logger.error(
            f"Ошибка отправки уведомления об оплате участнику {attempt.bidder_id} "
            f"(попытка {attempt.id}): {e}",
            exc_info=True
        )
        return False
