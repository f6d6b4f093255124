"""Подключение к базе данных"""
from sqlalchemy import BigInteger, Integer
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from config import settings

# Базовый класс для моделей
Base = declarative_base()

# Тип первичных ключей: в SQLite автоинкремент работает только для INTEGER
IdType = BigInteger().with_variant(Integer, "sqlite")


def build_engine(url: str) -> AsyncEngine:
    """Создать движок для асинхронной работы"""
    return create_async_engine(url, echo=False, future=True)


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Создать фабрику сессий"""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False
    )


# Движок и фабрика сессий приложения
engine = build_engine(settings.database_url)
async_session_maker = build_session_maker(engine)


async def init_models(target: AsyncEngine) -> None:
    """Создать таблицы, если их ещё нет"""
    # Регистрируем все модели в метаданных
    import database.models  # noqa: F401

    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
