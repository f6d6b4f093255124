"""Обработчики ставок на аукционах"""
import logging
from aiogram import Router, F
from aiogram.types import Message, CallbackQuery, User as TelegramUser
from aiogram.filters import Command
from sqlalchemy.ext.asyncio import AsyncSession
from database.models.auction import Auction, AuctionStatus
from database.models.bid import Bid
from services.auction import get_active_auctions, get_bids_for_auction
from services.clock import as_utc
from services.errors import ConcurrencyConflictError
from services.settlement import SettlementEngine
from services.user import get_or_create_user
from bot.handlers.messages import BID_USAGE, CONFLICT_MESSAGE, describe_error, parse_callback_ints, parse_int_args
from bot.keyboards.auction import get_bid_keyboard

logger = logging.getLogger(__name__)

router = Router()

STATUS_TITLES = {
    AuctionStatus.ACTIVE.value: "🟢 Идут торги",
    AuctionStatus.PENDING_PAYMENT.value: "💳 Ожидается оплата",
    AuctionStatus.COMPLETED.value: "✅ Оплачен",
    AuctionStatus.FAILED.value: "⚪ Не состоялся",
}


async def _place_bid(
    session: AsyncSession,
    settlement: SettlementEngine,
    from_user: TelegramUser,
    auction_id: int,
    amount: int
) -> str:
    """Сделать ставку от имени пользователя Telegram и вернуть текст ответа"""
    user = await get_or_create_user(
        session,
        telegram_id=from_user.id,
        username=from_user.username,
        first_name=from_user.first_name,
        last_name=from_user.last_name
    )

    try:
        outcome = await settlement.place_bid(auction_id, user.id, amount)
    except ConcurrencyConflictError as e:
        logger.warning(f"Ставка пользователя {user.id} не зафиксирована: {e}")
        return CONFLICT_MESSAGE

    if not outcome.ok:
        return describe_error(outcome.error)

    auction = await session.get(Auction, auction_id, populate_existing=True)
    expiry = as_utc(auction.expiry_time).strftime("%d.%m.%Y %H:%M UTC")
    return (
        f"✅ Ставка {outcome.value.amount:,} принята!\n"
        f"Аукцион завершится: {expiry}"
    )


@router.message(Command("auctions"))
async def cmd_auctions(message: Message, session: AsyncSession):
    """Список идущих аукционов"""
    auctions = await get_active_auctions(session)
    if not auctions:
        await message.answer("Сейчас нет активных аукционов")
        return

    lines = ["🔨 Активные аукционы:"]
    for auction in auctions:
        lines.append(
            f"#{auction.id} {auction.product.title} - до "
            f"{as_utc(auction.expiry_time).strftime('%d.%m %H:%M UTC')}"
        )
    lines.append("\nПодробнее: /auction &lt;номер&gt;")
    await message.answer("\n".join(lines))


@router.message(Command("auction"))
async def cmd_auction(message: Message, session: AsyncSession):
    """Показать состояние аукциона"""
    args = parse_int_args(message.text, 1)
    if args is None:
        await message.answer("Использование: /auction &lt;номер аукциона&gt;")
        return

    auction = await session.get(Auction, args[0])
    if not auction:
        await message.answer("❌ Аукцион не найден")
        return

    bids = await get_bids_for_auction(session, auction.id)
    current_price = auction.start_price
    if auction.highest_bid_id:
        highest = await session.get(Bid, auction.highest_bid_id)
        current_price = highest.amount

    text = (
        f"🔨 Аукцион #{auction.id}: <b>{auction.product.title}</b>\n\n"
        f"Статус: {STATUS_TITLES.get(auction.status, auction.status)}\n"
        f"Начальная цена: {auction.start_price:,}\n"
        f"Текущая цена: <b>{current_price:,}</b>\n"
        f"Ставок: {len(bids)}\n"
        f"Окончание: {as_utc(auction.expiry_time).strftime('%d.%m.%Y %H:%M UTC')}"
    )
    if auction.extension_count:
        text += f" (продлён {auction.extension_count} раз)"

    if auction.status == AuctionStatus.ACTIVE.value:
        await message.answer(text, reply_markup=get_bid_keyboard(auction.id, current_price))
    else:
        await message.answer(text)


@router.message(Command("bid"))
async def cmd_bid(message: Message, session: AsyncSession, settlement: SettlementEngine):
    """Сделать ставку: /bid <номер аукциона> <сумма>"""
    args = parse_int_args(message.text, 2)
    if args is None:
        await message.answer(BID_USAGE)
        return

    auction_id, amount = args
    await message.answer(await _place_bid(session, settlement, message.from_user, auction_id, amount))


@router.callback_query(F.data.startswith("bid:amount:"))
async def callback_quick_bid(callback: CallbackQuery, session: AsyncSession, settlement: SettlementEngine):
    """Быстрая ставка с кнопки"""
    args = parse_callback_ints(callback.data, "bid:amount:", 2)
    if args is None:
        await callback.answer("❌ Ошибка", show_alert=True)
        return

    auction_id, amount = args
    text = await _place_bid(session, settlement, callback.from_user, auction_id, amount)
    await callback.answer()
    await callback.message.answer(text)
