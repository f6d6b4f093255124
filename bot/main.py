"""Главный файл бота"""
import asyncio
import logging
from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from config import settings
from database.connection import engine, async_session_maker, init_models
from services.notifications import LogNotifier, TelegramNotifier
from services.scheduler import SettlementScheduler
from services.settlement import SettlementEngine
from bot.handlers import start, admin, auction, payments
from bot.middlewares.database import DatabaseMiddleware

# Настройка логирования
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def main():
    """Запуск бота"""
    config = settings.settlement

    # Создаем таблицы
    await init_models(engine)

    bot = None
    if settings.BOT_TOKEN:
        bot = Bot(
            token=settings.BOT_TOKEN,
            default=DefaultBotProperties(parse_mode=ParseMode.HTML)
        )
        notifier = TelegramNotifier(bot)
    else:
        logger.warning("BOT_TOKEN не задан: уведомления пишутся только в лог, бот не запускается")
        notifier = LogNotifier()

    settlement = SettlementEngine(async_session_maker, config, notifier)

    # Запускаем планировщик для завершения аукционов и каскада оплат
    scheduler = SettlementScheduler(settlement, config)
    scheduler.start()

    try:
        if bot is None:
            # Без бота работают только фоновые задачи
            await asyncio.Event().wait()
            return

        dp = Dispatcher()

        # Регистрируем middleware
        dp.message.middleware(DatabaseMiddleware(async_session_maker, settlement))
        dp.callback_query.middleware(DatabaseMiddleware(async_session_maker, settlement))

        # Регистрируем роутеры
        dp.include_router(start.router)
        dp.include_router(admin.router)
        dp.include_router(auction.router)
        dp.include_router(payments.router)

        logger.info("Бот запущен")

        # Запускаем polling
        await dp.start_polling(bot)
    finally:
        await scheduler.stop()
        if bot is not None:
            await bot.session.close()
        await engine.dispose()
        logger.info("Бот остановлен")


if __name__ == "__main__":
    asyncio.run(main())
