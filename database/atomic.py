"""Атомарное выполнение единицы работы"""
import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from services.errors import ConcurrencyConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Ошибки, после которых имеет смысл перечитать состояние и повторить
RETRYABLE_ERRORS = (StaleDataError, OperationalError, IntegrityError)


async def run_atomic(
    session_maker: async_sessionmaker[AsyncSession],
    work: Callable[[AsyncSession], Awaitable[T]],
    operation: str,
    retries: int = 1,
) -> T:
    """Выполнить work в одной транзакции.

    Конфликт версий или сбой соединения повторяется не более retries раз.
    Каждая попытка начинается с новой сессии, поэтому work заново читает
    состояние и перепроверяет предусловия. Если конфликт не разрешился,
    выбрасывается ConcurrencyConflictError.
    """
    attempt = 0
    while True:
        try:
            async with session_maker() as session:
                async with session.begin():
                    return await work(session)
        except RETRYABLE_ERRORS as e:
            if attempt >= retries:
                logger.error(f"Операция {operation} не зафиксирована после {attempt + 1} попыток: {e!r}")
                raise ConcurrencyConflictError(operation) from e
            attempt += 1
            logger.warning(f"Конфликт при фиксации {operation}, повторяю с перечитыванием состояния: {e!r}")
