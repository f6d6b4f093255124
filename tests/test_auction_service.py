"""Тесты создания аукционов и выборок"""

from datetime import timedelta

import pytest

from database.models.auction import AuctionStatus
from services.auction import (
    create_auction,
    create_product,
    get_active_auctions,
    get_auction_by_product,
    get_expired_active_auctions,
)
from services.clock import as_utc
from services.errors import ErrorKind
from services.user import get_or_create_user, get_user_by_telegram_id


@pytest.mark.asyncio
async def test_create_auction(session_maker, factory, config, clock):
    owner = await factory.user()

    async with session_maker() as session:
        product = await create_product(session, owner.id, "Тюльпаны")
        outcome = await create_auction(session, product.id, 300, 90, config, clock())

    assert outcome.ok
    auction = outcome.value
    assert auction.status == AuctionStatus.ACTIVE.value
    assert auction.extension_count == 0
    assert auction.highest_bid_id is None
    assert as_utc(auction.expiry_time) == clock() + timedelta(minutes=90)

    async with session_maker() as session:
        stored = await get_auction_by_product(session, product.id)
    assert stored.id == auction.id
    assert stored.product.title == "Тюльпаны"


@pytest.mark.parametrize("duration", [1, 24 * 60 + 1])
@pytest.mark.asyncio
async def test_duration_outside_bounds_is_rejected(session_maker, factory, config, clock, duration):
    owner = await factory.user()

    async with session_maker() as session:
        product = await create_product(session, owner.id, "Тюльпаны")
        outcome = await create_auction(session, product.id, 300, duration, config, clock())

    assert outcome.error == ErrorKind.INVALID_AUCTION_DURATION
    async with session_maker() as session:
        assert await get_auction_by_product(session, product.id) is None


@pytest.mark.asyncio
async def test_non_positive_start_price_is_rejected(session_maker, factory, config, clock):
    owner = await factory.user()

    async with session_maker() as session:
        product = await create_product(session, owner.id, "Тюльпаны")
        outcome = await create_auction(session, product.id, 0, 60, config, clock())

    assert outcome.error == ErrorKind.BID_TOO_LOW


@pytest.mark.asyncio
async def test_active_and_expired_selections(session_maker, factory, clock):
    short = await factory.auction(duration_minutes=10)
    long = await factory.auction(duration_minutes=120)

    clock.advance(minutes=30)
    async with session_maker() as session:
        active = await get_active_auctions(session)
        expired = await get_expired_active_auctions(session, clock())

    assert [a.id for a in active] == [short.id, long.id]
    assert [a.id for a in expired] == [short.id]


@pytest.mark.asyncio
async def test_get_or_create_user_updates_profile(session_maker):
    async with session_maker() as session:
        created = await get_or_create_user(session, 777, username="old")
    async with session_maker() as session:
        updated = await get_or_create_user(session, 777, username="new", first_name="Анна")

    assert updated.id == created.id
    async with session_maker() as session:
        stored = await get_user_by_telegram_id(session, 777)
    assert stored.username == "new"
    assert stored.display_name == "@new"
