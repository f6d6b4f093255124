"""Обработчики команды /start"""
from aiogram import Router
from aiogram.types import Message
from aiogram.filters import Command
from sqlalchemy.ext.asyncio import AsyncSession
from services.user import get_or_create_user

router = Router()


@router.message(Command("start"))
async def cmd_start(message: Message, session: AsyncSession):
    """Обработчик команды /start"""
    user = await get_or_create_user(
        session,
        telegram_id=message.from_user.id,
        username=message.from_user.username,
        first_name=message.from_user.first_name,
        last_name=message.from_user.last_name
    )

    await message.answer(
        f"👋 Здравствуйте, {user.display_name}!\n\n"
        "Здесь проходят аукционы. Команды:\n"
        "/auctions - активные аукционы\n"
        "/auction &lt;номер&gt; - состояние аукциона\n"
        "/bid &lt;номер аукциона&gt; &lt;сумма&gt; - сделать ставку\n"
        "/pay &lt;номер товара&gt; &lt;сумма&gt; - подтвердить оплату выигранного лота\n\n"
        "Если ставка сделана в последние минуты, аукцион продлевается."
    )
