"""Обработчики подтверждения оплаты выигранного лота"""
import logging
from aiogram import Router, F
from aiogram.types import Message, CallbackQuery, User as TelegramUser
from aiogram.filters import Command
from sqlalchemy.ext.asyncio import AsyncSession
from database.models.transaction import TransactionStatus
from services.errors import ConcurrencyConflictError
from services.settlement import SettlementEngine
from services.user import get_or_create_user
from bot.handlers.messages import CONFLICT_MESSAGE, PAY_USAGE, describe_error, parse_callback_ints, parse_int_args

logger = logging.getLogger(__name__)

router = Router()


async def _confirm(
    session: AsyncSession,
    settlement: SettlementEngine,
    from_user: TelegramUser,
    product_id: int,
    amount: int,
    force_fail: bool = False
) -> str:
    """Подтвердить оплату (или отказ) и вернуть текст ответа"""
    user = await get_or_create_user(
        session,
        telegram_id=from_user.id,
        username=from_user.username,
        first_name=from_user.first_name,
        last_name=from_user.last_name
    )

    try:
        outcome = await settlement.confirm_payment(product_id, user.id, amount, force_fail=force_fail)
    except ConcurrencyConflictError as e:
        logger.warning(f"Подтверждение оплаты пользователя {user.id} не зафиксировано: {e}")
        return CONFLICT_MESSAGE

    if not outcome.ok:
        return describe_error(outcome.error)

    if outcome.value.status == TransactionStatus.SUCCESS.value:
        return f"✅ Оплата {outcome.value.amount:,} подтверждена. Спасибо за покупку!"
    return "Вы отказались от покупки. Лот передан следующему участнику."


@router.message(Command("pay"))
async def cmd_pay(message: Message, session: AsyncSession, settlement: SettlementEngine):
    """Подтвердить оплату: /pay <номер товара> <сумма>"""
    args = parse_int_args(message.text, 2)
    if args is None:
        await message.answer(PAY_USAGE)
        return

    product_id, amount = args
    await message.answer(await _confirm(session, settlement, message.from_user, product_id, amount))


@router.callback_query(F.data.startswith("pay:"))
async def callback_pay(callback: CallbackQuery, session: AsyncSession, settlement: SettlementEngine):
    """Подтверждение оплаты с кнопки"""
    args = parse_callback_ints(callback.data, "pay:", 2)
    if args is None:
        await callback.answer("❌ Ошибка", show_alert=True)
        return

    product_id, amount = args
    text = await _confirm(session, settlement, callback.from_user, product_id, amount)
    await callback.answer()
    await callback.message.edit_reply_markup(reply_markup=None)
    await callback.message.answer(text)


@router.callback_query(F.data.startswith("payrefuse:"))
async def callback_refuse(callback: CallbackQuery, session: AsyncSession, settlement: SettlementEngine):
    """Отказ от покупки выигранного лота"""
    args = parse_callback_ints(callback.data, "payrefuse:", 1)
    if args is None:
        await callback.answer("❌ Ошибка", show_alert=True)
        return

    product_id = args[0]
    text = await _confirm(session, settlement, callback.from_user, product_id, 0, force_fail=True)
    await callback.answer()
    await callback.message.edit_reply_markup(reply_markup=None)
    await callback.message.answer(text)
