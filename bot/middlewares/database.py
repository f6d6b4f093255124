"""Middleware для работы с базой данных"""
from typing import Callable, Dict, Any, Awaitable
from aiogram import BaseMiddleware
from aiogram.types import TelegramObject
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from services.settlement import SettlementEngine


class DatabaseMiddleware(BaseMiddleware):
    """Middleware для создания сессии БД и передачи движка расчётов"""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession], settlement: SettlementEngine):
        self.session_maker = session_maker
        self.settlement = settlement

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any]
    ) -> Any:
        async with self.session_maker() as session:
            data["session"] = session
            data["settlement"] = self.settlement
            return await handler(event, data)
