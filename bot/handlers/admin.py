"""Обработчики для админов"""
import logging
from aiogram import Router
from aiogram.types import Message
from aiogram.filters import Command
from sqlalchemy.ext.asyncio import AsyncSession
from config import settings
from database.models.auction import Auction
from services.auction import (
    create_auction,
    create_product,
    get_extension_history,
    get_payment_attempts_for_auction,
    get_transactions_for_auction,
)
from services.clock import as_utc
from services.settlement import SettlementEngine
from services.user import get_or_create_user
from bot.handlers.messages import NEW_AUCTION_USAGE, describe_error, parse_int_args, parse_new_auction

logger = logging.getLogger(__name__)

router = Router()


def is_admin(telegram_id: int) -> bool:
    """Проверить, является ли пользователь админом"""
    return telegram_id in settings.admin_ids_list


def _fmt(value) -> str:
    return as_utc(value).strftime("%d.%m %H:%M")


@router.message(Command("newauction"))
async def cmd_new_auction(message: Message, session: AsyncSession, settlement: SettlementEngine):
    """Выставить лот: /newauction <начальная цена> <минуты> <название>"""
    if not is_admin(message.from_user.id):
        await message.answer("У вас нет прав для этой команды")
        return

    args = parse_new_auction(message.text)
    if args is None:
        await message.answer(NEW_AUCTION_USAGE)
        return

    start_price, duration_minutes, title = args
    owner = await get_or_create_user(
        session,
        telegram_id=message.from_user.id,
        username=message.from_user.username,
        first_name=message.from_user.first_name,
        last_name=message.from_user.last_name
    )
    product = await create_product(session, owner.id, title)
    outcome = await create_auction(
        session, product.id, start_price, duration_minutes, settlement.config, settlement.clock()
    )
    if not outcome.ok:
        await message.answer(f"{describe_error(outcome.error)}\n{outcome.detail}")
        return

    auction = outcome.value
    await message.answer(
        f"✅ Аукцион #{auction.id} создан\n"
        f"Товар #{product.id}: <b>{title}</b>\n"
        f"Начальная цена: {start_price:,}\n"
        f"Окончание: {as_utc(auction.expiry_time).strftime('%d.%m.%Y %H:%M UTC')}"
    )


@router.message(Command("history"))
async def cmd_history(message: Message, session: AsyncSession):
    """История продлений и оплат аукциона"""
    if not is_admin(message.from_user.id):
        await message.answer("У вас нет прав для этой команды")
        return

    args = parse_int_args(message.text, 1)
    if args is None:
        await message.answer("Использование: /history &lt;номер аукциона&gt;")
        return

    auction = await session.get(Auction, args[0])
    if not auction:
        await message.answer("❌ Аукцион не найден")
        return

    extensions = await get_extension_history(session, auction.id)
    attempts = await get_payment_attempts_for_auction(session, auction.id)
    transactions = await get_transactions_for_auction(session, auction.id)

    lines = [f"📜 Аукцион #{auction.id}, статус: {auction.status}"]
    if extensions:
        lines.append("\nПродления:")
        for record in extensions:
            lines.append(f"• {_fmt(record.previous_expiry)} → {_fmt(record.new_expiry)}")
    if attempts:
        lines.append("\nПопытки оплаты:")
        for attempt in attempts:
            lines.append(
                f"• №{attempt.attempt_number}: участник {attempt.bidder_id}, "
                f"{attempt.amount:,}, {attempt.status} (до {_fmt(attempt.expiry_time)})"
            )
    if transactions:
        lines.append("\nТранзакции:")
        for transaction in transactions:
            lines.append(f"• {_fmt(transaction.timestamp)}: {transaction.status}, {transaction.amount:,}")

    await message.answer("\n".join(lines))


@router.message(Command("settle"))
async def cmd_settle(message: Message, settlement: SettlementEngine):
    """Запустить проверку аукционов и оплат вне расписания"""
    if not is_admin(message.from_user.id):
        await message.answer("У вас нет прав для этой команды")
        return

    finalized = await settlement.run_auction_monitor_tick()
    processed = await settlement.run_retry_cascade_tick()
    logger.info(f"Ручной запуск расчётов админом {message.from_user.id}: {finalized} аукционов, {processed} попыток")
    await message.answer(
        f"✅ Проверка выполнена\n"
        f"Завершено аукционов: {finalized}\n"
        f"Обработано попыток оплаты: {processed}"
    )
