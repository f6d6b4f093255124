"""Модель пользователя"""
from sqlalchemy import Column, BigInteger, String, DateTime, Boolean
from sqlalchemy.sql import func
from database.connection import Base, IdType


class User(Base):
    """Модель пользователя Telegram (продавец или участник торгов)"""
    __tablename__ = "users"

    id = Column(IdType, primary_key=True, index=True)
    telegram_id = Column(BigInteger, unique=True, nullable=False, index=True)
    username = Column(String(255), nullable=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    @property
    def display_name(self) -> str:
        """Имя для сообщений"""
        if self.username:
            return f"@{self.username}"
        full_name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return full_name or f"#{self.telegram_id}"
