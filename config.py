"""Конфигурация приложения"""
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings
from typing import List


class SettlementSettings(BaseModel):
    """Параметры движка расчётов по аукционам.

    Неизменяемый объект: создаётся один раз при старте и передаётся
    в конструктор каждого компонента.
    """

    # Антиснайпинг
    extension_threshold_minutes: int = Field(default=5, ge=0)
    extension_duration_minutes: int = Field(default=10, ge=1)

    # Фоновые проверки
    monitoring_interval_seconds: int = Field(default=30, ge=1)
    retry_check_interval_seconds: int = Field(default=60, ge=1)

    # Оплата
    payment_window_minutes: int = Field(default=30, ge=1)
    max_retry_attempts: int = Field(default=3, ge=1)

    # Длительность лота при создании аукциона
    min_auction_duration_minutes: int = Field(default=2, ge=1)
    max_auction_duration_minutes: int = Field(default=24 * 60, ge=1)

    class Config:
        frozen = True


class Settings(BaseSettings):
    """Настройки приложения"""

    # Telegram Bot
    BOT_TOKEN: str = ""

    # Database
    DATABASE_URL: str = ""
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str = ""
    DB_PASSWORD: str = ""
    DB_NAME: str = ""

    # Admin
    ADMIN_USER_IDS: str = ""

    # Logging
    LOG_LEVEL: str = "INFO"

    # Auction Settings
    EXTENSION_THRESHOLD_MINUTES: int = 5
    EXTENSION_DURATION_MINUTES: int = 10
    MONITORING_INTERVAL_SECONDS: int = 30
    MIN_AUCTION_DURATION_MINUTES: int = 2
    MAX_AUCTION_DURATION_MINUTES: int = 24 * 60

    # Payment Settings
    PAYMENT_WINDOW_MINUTES: int = 30
    MAX_RETRY_ATTEMPTS: int = 3
    RETRY_CHECK_INTERVAL_SECONDS: int = 60

    @property
    def admin_ids_list(self) -> List[int]:
        """Список ID администраторов"""
        if not self.ADMIN_USER_IDS:
            return []
        return [int(uid.strip()) for uid in self.ADMIN_USER_IDS.split(",") if uid.strip()]

    @property
    def database_url(self) -> str:
        """URL подключения к базе данных"""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    @property
    def settlement(self) -> SettlementSettings:
        """Параметры расчётов, собранные в неизменяемый объект"""
        return SettlementSettings(
            extension_threshold_minutes=self.EXTENSION_THRESHOLD_MINUTES,
            extension_duration_minutes=self.EXTENSION_DURATION_MINUTES,
            monitoring_interval_seconds=self.MONITORING_INTERVAL_SECONDS,
            retry_check_interval_seconds=self.RETRY_CHECK_INTERVAL_SECONDS,
            payment_window_minutes=self.PAYMENT_WINDOW_MINUTES,
            max_retry_attempts=self.MAX_RETRY_ATTEMPTS,
            min_auction_duration_minutes=self.MIN_AUCTION_DURATION_MINUTES,
            max_auction_duration_minutes=self.MAX_AUCTION_DURATION_MINUTES,
        )

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
