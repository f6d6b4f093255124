"""
Общие фикстуры тестов.

Каждый тест получает свою файловую базу SQLite (aiosqlite) в tmp_path,
управляемые часы и записывающий уведомитель.
"""

import os

# Движок приложения создаётся при импорте database.connection
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

import itertools
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from config import SettlementSettings
from database.connection import build_engine, build_session_maker, init_models
from database.models.auction import Auction
from database.models.product import Product
from database.models.user import User
from services.auction import create_auction
from services.settlement import SettlementEngine

START_TIME = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Часы, которые двигаются только вручную"""

    def __init__(self, now: datetime = START_TIME):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class Factory:
    """Создание пользователей, товаров и аукционов для тестов"""

    _telegram_ids = itertools.count(1000)

    def __init__(self, session_maker, config: SettlementSettings, clock: FakeClock):
        self.session_maker = session_maker
        self.config = config
        self.clock = clock

    async def user(self, username: str = None) -> User:
        async with self.session_maker() as session:
            user = User(telegram_id=next(self._telegram_ids), username=username)
            session.add(user)
            await session.commit()
            return user

    async def product(self, owner: User, title: str = "Букет роз") -> Product:
        async with self.session_maker() as session:
            product = Product(user_id=owner.id, title=title)
            session.add(product)
            await session.commit()
            return product

    async def auction(
        self,
        owner: User = None,
        start_price: int = 100,
        duration_minutes: int = 60
    ) -> Auction:
        if owner is None:
            owner = await self.user("seller")
        product = await self.product(owner)
        async with self.session_maker() as session:
            outcome = await create_auction(
                session, product.id, start_price, duration_minutes, self.config, self.clock()
            )
        assert outcome.ok, outcome
        return outcome.value

    async def won_auction(self, settlement, amounts, bidders=None):
        """Аукцион, завершённый монитором. Ставки делаются по порядку amounts."""
        auction = await self.auction(start_price=50, duration_minutes=60)
        if bidders is None:
            bidders = [await self.user() for _ in amounts]
        for bidder, amount in zip(bidders, amounts):
            outcome = await settlement.place_bid(auction.id, bidder.id, amount)
            assert outcome.ok, outcome
        self.clock.advance(minutes=61)
        assert await settlement.monitor.finalize(auction.id)
        return auction, bidders

    async def load(self, model, object_id):
        """Свежая копия строки из базы"""
        async with self.session_maker() as session:
            return await session.get(model, object_id)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    return SettlementSettings()


@pytest.fixture
def notifier():
    return AsyncMock()


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'settlement.db'}")
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    return build_session_maker(db_engine)


@pytest.fixture
def settlement(session_maker, config, notifier, clock):
    return SettlementEngine(session_maker, config, notifier, clock)


@pytest.fixture
def factory(session_maker, config, clock):
    return Factory(session_maker, config, clock)
