"""
Тесты каскада повторных попыток оплаты.

Tests:
- Передача лота следующему участнику по истечении окна оплаты
- Исключение участников, уже получавших попытку
- Ограничение числа попыток
- Идемпотентность повторной обработки
"""

import pytest
from sqlalchemy import func, select

from config import SettlementSettings
from database.models.auction import Auction, AuctionStatus
from database.models.payment import PaymentAttempt, PaymentStatus
from database.models.transaction import Transaction, TransactionStatus
from services.auction import get_payment_attempts_for_auction, get_transactions_for_auction
from services.errors import ErrorKind
from services.settlement import SettlementEngine


async def _attempts(factory, auction_id):
    async with factory.session_maker() as session:
        return await get_payment_attempts_for_auction(session, auction_id)


async def _transaction_count(factory):
    async with factory.session_maker() as session:
        return await session.scalar(select(func.count()).select_from(Transaction))


async def _expire_window(settlement, clock, config):
    clock.advance(minutes=config.payment_window_minutes, seconds=1)
    return await settlement.run_retry_cascade_tick()


@pytest.mark.asyncio
async def test_expired_attempt_passes_to_next_bidder(settlement, factory, clock, config, notifier):
    """Попытка №1 (200) истекла: попытка №2 достаётся участнику со ставкой 150"""
    auction, (runner_up, winner) = await factory.won_auction(settlement, [150, 200])
    notifier.notify.reset_mock()

    assert await _expire_window(settlement, clock, config) == 1

    first, second = await _attempts(factory, auction.id)
    assert first.bidder_id == winner.id
    assert first.status == PaymentStatus.FAILED.value
    assert first.confirmed_amount is None
    assert second.bidder_id == runner_up.id
    assert second.attempt_number == 2
    assert second.amount == 150
    assert second.status == PaymentStatus.PENDING.value

    async with factory.session_maker() as session:
        transactions = await get_transactions_for_auction(session, auction.id)
    assert len(transactions) == 1
    assert transactions[0].status == TransactionStatus.FAILED.value
    assert transactions[0].payment_attempt_id == first.id
    assert transactions[0].amount == 200

    notifier.notify.assert_awaited_once()
    assert notifier.notify.await_args.args[0].id == runner_up.id


@pytest.mark.asyncio
async def test_bidder_with_previous_attempt_is_skipped(settlement, factory, clock, config):
    """Участник, уже получавший попытку, не получает её снова по своей меньшей ставке"""
    x, y = await factory.user(), await factory.user()
    auction, _ = await factory.won_auction(settlement, [120, 150, 200], bidders=[x, y, x])

    await _expire_window(settlement, clock, config)
    attempts = await _attempts(factory, auction.id)
    assert [a.bidder_id for a in attempts] == [x.id, y.id]

    await _expire_window(settlement, clock, config)

    attempts = await _attempts(factory, auction.id)
    assert [a.bidder_id for a in attempts] == [x.id, y.id]
    assert all(a.status == PaymentStatus.FAILED.value for a in attempts)
    assert (await factory.load(Auction, auction.id)).status == AuctionStatus.FAILED.value


@pytest.mark.asyncio
async def test_retry_limit_stops_cascade(settlement, factory, clock, config):
    """Три попытки истекли: аукцион не состоялся, попытки №4 нет, хотя ставки остались"""
    auction, bidders = await factory.won_auction(settlement, [60, 100, 150, 200])

    for _ in range(3):
        await _expire_window(settlement, clock, config)

    attempts = await _attempts(factory, auction.id)
    assert [a.attempt_number for a in attempts] == [1, 2, 3]
    assert [a.amount for a in attempts] == [200, 150, 100]
    assert all(a.status == PaymentStatus.FAILED.value for a in attempts)
    assert (await factory.load(Auction, auction.id)).status == AuctionStatus.FAILED.value

    # Дальнейшие тики ничего не меняют
    assert await _expire_window(settlement, clock, config) == 0
    assert len(await _attempts(factory, auction.id)) == 3


@pytest.mark.asyncio
async def test_three_bidders_all_expire(settlement, factory, clock, config):
    auction, _ = await factory.won_auction(settlement, [100, 150, 200])

    for _ in range(3):
        await _expire_window(settlement, clock, config)

    attempts = await _attempts(factory, auction.id)
    assert len(attempts) == 3
    assert (await factory.load(Auction, auction.id)).status == AuctionStatus.FAILED.value
    assert await _transaction_count(factory) == 3


@pytest.mark.asyncio
async def test_refusal_with_single_attempt_limit_fails_auction(factory, session_maker, notifier, clock):
    engine = SettlementEngine(session_maker, SettlementSettings(max_retry_attempts=1), notifier, clock)
    auction, (_, winner) = await factory.won_auction(engine, [150, 200])

    outcome = await engine.confirm_payment(auction.product_id, winner.id, 200, force_fail=True)

    assert outcome.ok
    assert (await factory.load(Auction, auction.id)).status == AuctionStatus.FAILED.value
    assert len(await _attempts(factory, auction.id)) == 1


@pytest.mark.asyncio
async def test_direct_processing_reports_exhaustion(settlement, factory, clock, config):
    auction, _ = await factory.won_auction(settlement, [200])
    attempt = (await _attempts(factory, auction.id))[0]

    clock.advance(minutes=config.payment_window_minutes, seconds=1)
    outcome = await settlement.process_failed_attempt(attempt.id)

    assert outcome.error == ErrorKind.NO_ELIGIBLE_BIDDER_REMAINING
    assert (await factory.load(Auction, auction.id)).status == AuctionStatus.FAILED.value


@pytest.mark.asyncio
async def test_processing_twice_changes_nothing(settlement, factory, clock, config, notifier):
    auction, _ = await factory.won_auction(settlement, [150, 200])
    first = (await _attempts(factory, auction.id))[0]

    clock.advance(minutes=config.payment_window_minutes, seconds=1)
    created = await settlement.process_failed_attempt(first.id)
    assert created.ok and created.value.attempt_number == 2

    notifier.notify.reset_mock()
    transactions_before = await _transaction_count(factory)

    repeated = await settlement.process_failed_attempt(first.id)

    assert repeated.ok
    assert repeated.value is None
    assert len(await _attempts(factory, auction.id)) == 2
    assert await _transaction_count(factory) == transactions_before
    notifier.notify.assert_not_awaited()


@pytest.mark.asyncio
async def test_tick_after_explicit_failure_does_not_cascade_twice(settlement, factory, clock, config):
    auction, (first, second, third) = await factory.won_auction(settlement, [100, 150, 200])

    await settlement.confirm_payment(auction.product_id, third.id, 1)
    attempts = await _attempts(factory, auction.id)
    await settlement.process_failed_attempt(attempts[0].id)

    attempts = await _attempts(factory, auction.id)
    assert [a.bidder_id for a in attempts] == [third.id, second.id]
    assert attempts[1].status == PaymentStatus.PENDING.value


@pytest.mark.asyncio
async def test_successful_attempt_is_not_processed(settlement, factory):
    auction, (winner,) = await factory.won_auction(settlement, [200])
    assert (await settlement.confirm_payment(auction.product_id, winner.id, 200)).ok
    attempt = (await _attempts(factory, auction.id))[0]

    outcome = await settlement.process_failed_attempt(attempt.id)

    assert outcome.ok and outcome.value is None
    assert (await factory.load(Auction, auction.id)).status == AuctionStatus.COMPLETED.value
    stored = await factory.load(PaymentAttempt, attempt.id)
    assert stored.status == PaymentStatus.SUCCESS.value


@pytest.mark.asyncio
async def test_unknown_attempt(settlement):
    outcome = await settlement.process_failed_attempt(999)

    assert outcome.error == ErrorKind.PAYMENT_ATTEMPT_NOT_FOUND


@pytest.mark.asyncio
async def test_pending_attempt_within_window_is_not_picked_up(settlement, factory, clock):
    auction, _ = await factory.won_auction(settlement, [150, 200])

    clock.advance(minutes=5)
    assert await settlement.run_retry_cascade_tick() == 0

    attempts = await _attempts(factory, auction.id)
    assert [a.status for a in attempts] == [PaymentStatus.PENDING.value]


@pytest.mark.asyncio
async def test_attempt_numbers_have_no_gaps_and_one_pending(settlement, factory, clock, config):
    auction, (a, b, c) = await factory.won_auction(settlement, [100, 150, 200])

    await settlement.confirm_payment(auction.product_id, c.id, 1)
    await _expire_window(settlement, clock, config)

    attempts = await _attempts(factory, auction.id)
    assert [x.attempt_number for x in attempts] == [1, 2, 3]
    assert [x.status for x in attempts].count(PaymentStatus.PENDING.value) == 1
    assert attempts[-1].bidder_id == a.id


@pytest.mark.asyncio
async def test_broken_attempt_does_not_block_tick(settlement, factory, clock, config, monkeypatch):
    broken, _ = await factory.won_auction(settlement, [200])
    healthy, (runner_up, _) = await factory.won_auction(settlement, [150, 200])
    broken_attempt = (await _attempts(factory, broken.id))[0]

    original = settlement.cascade._process

    async def flaky(session, payment_id, now):
        if payment_id == broken_attempt.id:
            raise RuntimeError("сбой при обработке")
        return await original(session, payment_id, now)

    monkeypatch.setattr(settlement.cascade, "_process", flaky)

    assert await _expire_window(settlement, clock, config) == 1

    assert [a.status for a in await _attempts(factory, broken.id)] == [PaymentStatus.PENDING.value]
    healthy_attempts = await _attempts(factory, healthy.id)
    assert healthy_attempts[-1].bidder_id == runner_up.id
