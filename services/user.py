"""Сервис для работы с пользователями"""
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from database.models.user import User


async def get_user_by_telegram_id(session: AsyncSession, telegram_id: int) -> Optional[User]:
    """Найти пользователя по Telegram ID"""
    result = await session.execute(
        select(User).where(User.telegram_id == telegram_id)
    )
    return result.scalar_one_or_none()


async def get_or_create_user(
    session: AsyncSession,
    telegram_id: int,
    username: Optional[str] = None,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None
) -> User:
    """Получить или создать участника торгов"""
    user = await get_user_by_telegram_id(session, telegram_id)

    if user is None:
        user = User(
            telegram_id=telegram_id,
            username=username,
            first_name=first_name,
            last_name=last_name
        )
        session.add(user)
        await session.commit()
        await session.refresh(user)
    elif (username, first_name, last_name) != (user.username, user.first_name, user.last_name):
        # Профиль в Telegram поменялся
        user.username = username
        user.first_name = first_name
        user.last_name = last_name
        await session.commit()

    return user
