"""Планировщик фоновых задач расчётов"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from config import SettlementSettings
from services.settlement import SettlementEngine

logger = logging.getLogger(__name__)


async def scheduler_loop(
    name: str,
    tick: Callable[[], Awaitable[object]],
    interval_seconds: float,
    stop_event: asyncio.Event
):
    """Основной цикл планировщика.

    Ошибка в тике записывается в лог и не останавливает цикл.
    После установки stop_event текущий тик доводится до конца.
    """
    logger.info(f"Планировщик {name} запущен, интервал {interval_seconds} с")

    while not stop_event.is_set():
        try:
            await tick()
        except Exception as e:
            logger.error(f"Ошибка в планировщике {name}: {e}", exc_info=True)

        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
        except asyncio.TimeoutError:
            pass

    logger.info(f"Планировщик {name} остановлен")


class SettlementScheduler:
    """Две независимые фоновые задачи: монитор аукционов и каскад оплат"""

    def __init__(self, engine: SettlementEngine, config: SettlementSettings):
        self._engine = engine
        self._config = config
        self._stop_event: Optional[asyncio.Event] = None
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    def start(self):
        """Запустить планировщик"""
        if self._tasks:
            return
        self._stop_event = asyncio.Event()
        self._tasks = [
            asyncio.create_task(scheduler_loop(
                "auction_monitor",
                self._engine.run_auction_monitor_tick,
                self._config.monitoring_interval_seconds,
                self._stop_event,
            )),
            asyncio.create_task(scheduler_loop(
                "retry_cascade",
                self._engine.run_retry_cascade_tick,
                self._config.retry_check_interval_seconds,
                self._stop_event,
            )),
        ]
        logger.info("Планировщик расчётов запущен")

    async def stop(self):
        """Дождаться окончания текущих тиков и остановиться"""
        if not self._tasks:
            return
        self._stop_event.set()
        await asyncio.gather(*self._tasks)
        self._tasks = []
        logger.info("Планировщик расчётов остановлен")
